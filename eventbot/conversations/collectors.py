import base64
import logging
import re
from typing import Optional

from aiogram.types import InlineKeyboardMarkup

from eventbot.conversations.base import Conversation, Incoming, Outcome
from eventbot.keyboards import categories_keyboard, prompt_keyboard
from eventbot.services.draft import Draft
from eventbot.utils import callbacks as cb
from eventbot.utils.constants import (
    CATEGORIES,
    LINK_MAX_LENGTH,
    MAX_LINKS,
)
from eventbot.utils.formatters import escape, format_link
from eventbot.utils.i18n import t
from eventbot.utils.messaging import TRANSPORT_ERRORS

logger = logging.getLogger(__name__)

_URL_PATTERN = re.compile(r"^(https?://)?[\w-]+(\.[\w-]+)+(:\d+)?([/?#]\S*)?$", re.IGNORECASE)
_NO_WORDS = {"no", "none", "-"}

PENDING_CATEGORIES_KEY = "pending_categories"


def looks_like_url(value: str) -> bool:
    return bool(_URL_PATTERN.match(value))


class FieldCollector:
    """Asks for one draft field and validates the answer; never touches other fields."""

    field: str = ""
    prompt_key: str = ""
    none_label_key: Optional[str] = None

    def keyboard(self, draft: Draft, *, editing: bool) -> InlineKeyboardMarkup:
        none_label = t(self.none_label_key) if self.none_label_key else None
        return prompt_keyboard(keep=editing, none_label=none_label)

    def prompt_text(self, conv: Conversation, draft: Draft, *, editing: bool) -> str:
        text = t(self.prompt_key)
        current = self.current_value(draft)
        if editing and current:
            text = f"{text}\n\n{t('collect.current_value', value=current)}"
        return text

    def current_value(self, draft: Draft) -> Optional[str]:
        value = getattr(draft, self.field, None)
        return escape(value) if value else None

    async def prompt(self, conv: Conversation, draft: Draft, *, editing: bool) -> None:
        await conv.say(self.prompt_text(conv, draft, editing=editing), reply_markup=self.keyboard(draft, editing=editing))

    async def reprompt(self, conv: Conversation, draft: Draft, error: str, *, editing: bool) -> Outcome:
        await conv.say(error, reply_markup=self.keyboard(draft, editing=editing))
        return Outcome.PENDING

    async def receive(self, conv: Conversation, incoming: Incoming, draft: Draft, *, editing: bool) -> Outcome:
        match incoming.action:
            case cb.Control(action=cb.CANCEL):
                await conv.ack(incoming)
                return Outcome.ABORTED
            case cb.Control(action=cb.KEEP) if editing:
                await conv.ack(incoming, t("collect.kept"))
                return Outcome.KEPT
        return await self.take(conv, incoming, draft, editing=editing)

    async def take(self, conv: Conversation, incoming: Incoming, draft: Draft, *, editing: bool) -> Outcome:
        raise NotImplementedError

    async def expect_text(self, conv: Conversation, incoming: Incoming, draft: Draft, *, editing: bool) -> Optional[str]:
        if incoming.text is not None:
            return incoming.text.strip()
        if incoming.is_button:
            await conv.ack(incoming, t("conversation.unexpected_button"))
        else:
            await self.reprompt(conv, draft, t("collect.text_expected"), editing=editing)
        return None


class TextCollector(FieldCollector):
    def __init__(self, field: str, prompt_key: str, *, min_length: int, max_length: int) -> None:
        self.field = field
        self.prompt_key = prompt_key
        self.min_length = min_length
        self.max_length = max_length

    def prompt_text(self, conv: Conversation, draft: Draft, *, editing: bool) -> str:
        text = t(self.prompt_key, max=self.max_length)
        current = self.current_value(draft)
        if editing and current:
            text = f"{text}\n\n{t('collect.current_value', value=current)}"
        return text

    async def take(self, conv: Conversation, incoming: Incoming, draft: Draft, *, editing: bool) -> Outcome:
        value = await self.expect_text(conv, incoming, draft, editing=editing)
        if value is None:
            return Outcome.PENDING
        if len(value) < self.min_length:
            error = t("collect.too_short", field=t(f"field.{self.field}"), min=self.min_length)
            return await self.reprompt(conv, draft, error, editing=editing)
        if len(value) > self.max_length:
            error = t("collect.too_long", field=t(f"field.{self.field}"), max=self.max_length, length=len(value))
            return await self.reprompt(conv, draft, error, editing=editing)
        setattr(draft, self.field, value)
        return Outcome.ACCEPTED


class LinksCollector(FieldCollector):
    field = "links"
    prompt_key = "collect.links_prompt"
    none_label_key = "button.no_links"

    def prompt_text(self, conv: Conversation, draft: Draft, *, editing: bool) -> str:
        text = t(self.prompt_key, max=MAX_LINKS)
        if editing and draft.links:
            current = ", ".join(format_link(link) for link in draft.links)
            text = f"{text}\n\n{t('collect.current_value', value=current)}"
        return text

    async def take(self, conv: Conversation, incoming: Incoming, draft: Draft, *, editing: bool) -> Outcome:
        if isinstance(incoming.action, cb.Control) and incoming.action.action == cb.NONE:
            await conv.ack(incoming)
            draft.links = []
            return Outcome.ACCEPTED
        value = await self.expect_text(conv, incoming, draft, editing=editing)
        if value is None:
            return Outcome.PENDING
        if value.lower() in _NO_WORDS:
            draft.links = []
            return Outcome.ACCEPTED
        links = value.split()
        if len(links) > MAX_LINKS:
            return await self.reprompt(conv, draft, t("collect.links_too_many", max=MAX_LINKS), editing=editing)
        for link in links:
            if len(link) > LINK_MAX_LENGTH:
                return await self.reprompt(conv, draft, t("collect.link_too_long", max=LINK_MAX_LENGTH), editing=editing)
            if not looks_like_url(link):
                return await self.reprompt(conv, draft, t("collect.link_invalid", link=escape(link)), editing=editing)
        draft.links = links
        return Outcome.ACCEPTED


class GroupLinkCollector(FieldCollector):
    field = "group_link"
    prompt_key = "collect.group_link_prompt"
    none_label_key = "button.no_group_link"

    async def take(self, conv: Conversation, incoming: Incoming, draft: Draft, *, editing: bool) -> Outcome:
        if isinstance(incoming.action, cb.Control) and incoming.action.action == cb.NONE:
            await conv.ack(incoming)
            draft.group_link = None
            return Outcome.ACCEPTED
        value = await self.expect_text(conv, incoming, draft, editing=editing)
        if value is None:
            return Outcome.PENDING
        if value.lower() in _NO_WORDS:
            draft.group_link = None
            return Outcome.ACCEPTED
        if len(value) > LINK_MAX_LENGTH:
            return await self.reprompt(conv, draft, t("collect.link_too_long", max=LINK_MAX_LENGTH), editing=editing)
        if " " in value or not looks_like_url(value):
            return await self.reprompt(conv, draft, t("collect.link_invalid", link=escape(value)), editing=editing)
        draft.group_link = value
        return Outcome.ACCEPTED


class ImageCollector(FieldCollector):
    field = "image_base64"
    prompt_key = "collect.image_prompt"
    none_label_key = "button.no_image"

    def current_value(self, draft: Draft) -> Optional[str]:
        return t("collect.image_present") if draft.image_base64 else None

    async def take(self, conv: Conversation, incoming: Incoming, draft: Draft, *, editing: bool) -> Outcome:
        if isinstance(incoming.action, cb.Control) and incoming.action.action == cb.NONE:
            await conv.ack(incoming)
            draft.image_base64 = None
            return Outcome.ACCEPTED
        if incoming.photo_ref is None:
            if incoming.is_button:
                await conv.ack(incoming, t("conversation.unexpected_button"))
                return Outcome.PENDING
            return await self.reprompt(conv, draft, t("collect.image_expected"), editing=editing)
        try:
            payload = await conv.channel.fetch_file(incoming.photo_ref)
        except TRANSPORT_ERRORS as e:
            logger.warning(f"[image_collector] fetch failed: user_id={conv.actor.id}, error={e}")
            return await self.reprompt(conv, draft, t("collect.image_fetch_failed"), editing=editing)
        draft.image_base64 = base64.b64encode(payload).decode("ascii")
        return Outcome.ACCEPTED


class CategoryCollector(FieldCollector):
    field = "categories"
    prompt_key = "collect.categories_prompt"

    def keyboard(self, draft: Draft, *, editing: bool, selected: Optional[list[str]] = None) -> InlineKeyboardMarkup:
        return categories_keyboard(selected if selected is not None else draft.categories, keep=editing)

    def prompt_text(self, conv: Conversation, draft: Draft, *, editing: bool) -> str:
        return t(self.prompt_key, max=conv.config.events.max_categories)

    async def prompt(self, conv: Conversation, draft: Draft, *, editing: bool) -> None:
        await conv.update(**{PENDING_CATEGORIES_KEY: list(draft.categories)})
        await super().prompt(conv, draft, editing=editing)

    async def take(self, conv: Conversation, incoming: Incoming, draft: Draft, *, editing: bool) -> Outcome:
        data = await conv.data()
        selected: list[str] = list(data.get(PENDING_CATEGORIES_KEY) or [])
        limit = conv.config.events.max_categories
        match incoming.action:
            case cb.CategoryToggle(index=index) if 0 <= index < len(CATEGORIES):
                name = CATEGORIES[index]
                if name in selected:
                    selected.remove(name)
                    await conv.ack(incoming, t("collect.category_removed", category=name))
                elif len(selected) >= limit:
                    await conv.ack(incoming, t("collect.categories_limit", max=limit), alert=True)
                    return Outcome.PENDING
                else:
                    selected.append(name)
                    await conv.ack(incoming, t("collect.category_added", category=name))
                await conv.update(**{PENDING_CATEGORIES_KEY: selected})
                await self._refresh(conv, incoming, draft, selected, editing=editing)
                return Outcome.PENDING
            case cb.Control(action=cb.RESET):
                await conv.update(**{PENDING_CATEGORIES_KEY: []})
                await conv.ack(incoming, t("collect.categories_reset"))
                await self._refresh(conv, incoming, draft, [], editing=editing)
                return Outcome.PENDING
            case cb.Control(action=cb.DONE):
                if not selected:
                    await conv.ack(incoming, t("collect.categories_empty"), alert=True)
                    return Outcome.PENDING
                await conv.ack(incoming)
                draft.categories = selected
                await conv.update(**{PENDING_CATEGORIES_KEY: None})
                return Outcome.ACCEPTED
        if incoming.is_button:
            await conv.ack(incoming, t("conversation.unexpected_button"))
        else:
            await conv.say(t("collect.categories_use_buttons"))
        return Outcome.PENDING

    async def _refresh(
        self,
        conv: Conversation,
        incoming: Incoming,
        draft: Draft,
        selected: list[str],
        *,
        editing: bool,
    ) -> None:
        if not incoming.message_id:
            return
        try:
            await conv.channel.edit_markup(
                conv.chat_id,
                incoming.message_id,
                reply_markup=self.keyboard(draft, editing=editing, selected=selected),
            )
        except TRANSPORT_ERRORS as e:
            logger.debug(f"[category_collector] keyboard refresh failed: user_id={conv.actor.id}, error={e}")

