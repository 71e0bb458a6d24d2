import logging
from typing import Optional

import asyncpg
from aiogram.fsm.state import State, StatesGroup

from eventbot.conversations.base import Conversation, Flow, Incoming
from eventbot.conversations.drafting import DraftFlow, announce_submission
from eventbot.database.repositories.templates import EventTemplate
from eventbot.keyboards import (
    cancel_keyboard,
    confirm_cancel_keyboard,
    template_list_keyboard,
    template_menu_keyboard,
    yes_no_keyboard,
)
from eventbot.services.draft import Draft
from eventbot.services.template_service import TemplateSaveOutcome
from eventbot.utils import callbacks as cb
from eventbot.utils.constants import TEMPLATE_DESCRIPTION_MAX_LENGTH, TEMPLATE_NAME_MAX_LENGTH
from eventbot.utils.formatters import escape, truncate
from eventbot.utils.i18n import t

logger = logging.getLogger(__name__)

TEMPLATE_PREVIEW_LENGTH = 200


class TemplateUseStates(StatesGroup):
    collecting = State()
    summary = State()
    confirm_cancel = State()


class TemplateListStates(StatesGroup):
    choosing = State()
    menu = State()
    confirm_delete = State()


class TemplateSaveStates(StatesGroup):
    naming = State()


class TemplateUseFlow(DraftFlow):
    """Submit a new event prefilled from a template; only the dates are asked up front."""

    name = "template_use"
    states = TemplateUseStates
    first_pass = ("dates",)
    description_limit = TEMPLATE_DESCRIPTION_MAX_LENGTH

    async def start(self, conv: Conversation, template_id: str) -> None:
        template = await conv.services.templates.get_owned(template_id, conv.actor.id)
        await conv.finish()
        if template is None:
            await conv.say(t("templates.not_found"))
            return
        await conv.save_draft(Draft.from_source(template, with_dates=False))
        await conv.update(template_id=template.id)
        await conv.say(t("templates.use_intro", name=escape(template.name)))
        await self.begin_collecting(conv, "dates", editing=False)

    async def handle_step(self, conv: Conversation, incoming: Incoming, step: Optional[str]) -> None:
        if step != TemplateUseStates.confirm_cancel.state:
            await super().handle_step(conv, incoming, step)
            return
        match incoming.action:
            case cb.Control(action=cb.YES):
                await conv.ack(incoming)
                await self.abort(conv)
            case cb.Control(action=cb.NO):
                await conv.ack(incoming)
                data = await conv.data()
                field = data.get("interrupted_field") or "dates"
                await self.begin_collecting(conv, field, editing=bool(data.get("interrupted_editing")))
            case _:
                await self.unexpected(conv, incoming)

    async def on_collector_cancel(self, conv: Conversation, field: str, *, editing: bool) -> None:
        await conv.enter(
            TemplateUseStates.confirm_cancel,
            interrupted_field=field,
            interrupted_editing=editing,
        )
        await conv.say(t("templates.confirm_cancel"), reply_markup=yes_no_keyboard())

    async def complete(self, conv: Conversation, draft: Draft) -> None:
        data = await conv.data()
        template_id = data.get("template_id")
        try:
            event = await conv.services.events.create_from_draft(draft, conv.actor.id, conv.actor.name)
        except asyncpg.PostgresError as e:
            logger.error(f"[template_use] save failed: user_id={conv.actor.id}, error={e}")
            await conv.finish()
            await conv.say(t("error.save_failed"))
            return
        await conv.finish()
        await announce_submission(conv, event, is_edit=False)
        if template_id:
            await conv.services.templates.refresh_from_draft(template_id, draft)


class TemplateListFlow(Flow):
    name = "templates"
    states = TemplateListStates

    def __init__(self, use_flow: TemplateUseFlow) -> None:
        self._use_flow = use_flow

    async def start(self, conv: Conversation) -> None:
        await conv.finish()
        service = conv.services.templates
        templates = await service.list_for_owner(conv.actor.id)
        if not templates:
            await conv.say(t("templates.none"))
            return
        await conv.enter(TemplateListStates.choosing)
        await conv.say(
            t("templates.list", count=len(templates), max=service.max_templates),
            reply_markup=template_list_keyboard(templates),
        )

    async def handle(self, conv: Conversation, incoming: Incoming) -> None:
        step = await conv.current_step()
        if step == TemplateListStates.choosing.state:
            await self._on_choosing(conv, incoming)
        elif step == TemplateListStates.menu.state:
            await self._on_menu(conv, incoming)
        elif step == TemplateListStates.confirm_delete.state:
            await self._on_confirm_delete(conv, incoming)
        else:
            await self.unexpected(conv, incoming)

    async def _on_choosing(self, conv: Conversation, incoming: Incoming) -> None:
        match incoming.action:
            case cb.Control(action=cb.CANCEL):
                await conv.ack(incoming)
                await self.abort(conv, text_key="templates.closed")
            case cb.TemplateChoice(template_id=template_id):
                await conv.ack(incoming)
                await self._open(conv, template_id)
            case _:
                await self.unexpected(conv, incoming)

    async def _on_menu(self, conv: Conversation, incoming: Incoming) -> None:
        match incoming.action:
            case cb.TemplateMenu(action=cb.TEMPLATE_USE, template_id=template_id):
                await conv.ack(incoming)
                await self._use_flow.start(conv, template_id)
            case cb.TemplateMenu(action=cb.TEMPLATE_DELETE, template_id=template_id):
                await conv.ack(incoming)
                template = await conv.services.templates.get_owned(template_id, conv.actor.id)
                if template is None:
                    await conv.finish()
                    await conv.say(t("templates.not_found"))
                    return
                await conv.enter(TemplateListStates.confirm_delete, template_id=template.id)
                await conv.say(
                    t("templates.delete_confirm", name=escape(template.name)),
                    reply_markup=confirm_cancel_keyboard(t("button.template_delete")),
                )
            case cb.Control(action=cb.BACK):
                await conv.ack(incoming)
                await self.start(conv)
            case _:
                await self.unexpected(conv, incoming)

    async def _on_confirm_delete(self, conv: Conversation, incoming: Incoming) -> None:
        data = await conv.data()
        template_id = data.get("template_id")
        match incoming.action:
            case cb.Control(action=cb.CONFIRM):
                await conv.ack(incoming)
                deleted = await conv.services.templates.delete_owned(template_id, conv.actor.id)
                await conv.finish()
                await conv.say(t("templates.deleted" if deleted else "templates.not_found"))
                logger.info(f"[templates] delete template_id={template_id}, user_id={conv.actor.id}, deleted={deleted}")
            case cb.Control(action=cb.CANCEL):
                await conv.ack(incoming)
                await self._open(conv, template_id)
            case _:
                await self.unexpected(conv, incoming)

    async def _open(self, conv: Conversation, template_id: str) -> None:
        template = await conv.services.templates.get_owned(template_id, conv.actor.id)
        if template is None:
            await conv.finish()
            await conv.say(t("templates.not_found"))
            return
        await conv.enter(TemplateListStates.menu, template_id=template.id)
        await conv.say(_describe(template), reply_markup=template_menu_keyboard(template.id))


class TemplateSaveFlow(Flow):
    """Names and stores the draft staged after a successful submission."""

    name = "template_save"
    states = TemplateSaveStates

    async def start(self, conv: Conversation) -> None:
        await conv.finish()
        if conv.actor.id not in conv.services.staging:
            await conv.say(t("templates.nothing_staged"))
            return
        await conv.enter(TemplateSaveStates.naming)
        await conv.say(t("templates.name_prompt", max=TEMPLATE_NAME_MAX_LENGTH), reply_markup=cancel_keyboard())

    async def handle(self, conv: Conversation, incoming: Incoming) -> None:
        staging = conv.services.staging
        if isinstance(incoming.action, cb.Control) and incoming.action.action == cb.CANCEL:
            await conv.ack(incoming)
            staging.discard(conv.actor.id)
            await self.abort(conv, text_key="templates.save_cancelled")
            return
        if incoming.text is None:
            await self.unexpected(conv, incoming)
            return
        name = incoming.text.strip()
        if not name or len(name) > TEMPLATE_NAME_MAX_LENGTH:
            await conv.say(t("templates.name_invalid", max=TEMPLATE_NAME_MAX_LENGTH), reply_markup=cancel_keyboard())
            return
        draft = staging.get(conv.actor.id)
        await conv.finish()
        if draft is None:
            await conv.say(t("templates.nothing_staged"))
            return
        outcome = await conv.services.templates.save_from_draft(conv.actor.id, conv.actor.name, name, draft)
        staging.discard(conv.actor.id)
        match outcome:
            case TemplateSaveOutcome.SAVED:
                await conv.say(t("templates.saved", name=escape(name)))
            case TemplateSaveOutcome.LIMIT_REACHED:
                await conv.say(t("templates.limit_reached", max=conv.services.templates.max_templates))
            case TemplateSaveOutcome.FAILED:
                await conv.say(t("error.save_failed"))


def _describe(template: EventTemplate) -> str:
    lines = [
        t("templates.details_header", name=escape(template.name)),
        "",
        t("event.title", title=escape(template.title)),
    ]
    if template.description:
        lines.append(escape(truncate(template.description, TEMPLATE_PREVIEW_LENGTH)))
    lines.append(t("event.location", location=escape(template.location)))
    if template.categories:
        lines.append(t("event.categories", categories=escape(", ".join(template.categories))))
    return "\n".join(lines)
