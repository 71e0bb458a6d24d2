import logging
from typing import Optional

from eventbot.conversations.base import DRAFT_KEY, Conversation, Flow, Incoming, Outcome
from eventbot.conversations.collectors import (
    CategoryCollector,
    FieldCollector,
    GroupLinkCollector,
    ImageCollector,
    LinksCollector,
    TextCollector,
)
from eventbot.conversations.dates import DateTriadCollector
from eventbot.database.repositories.events import Event
from eventbot.keyboards import SUMMARY_FIELDS, summary_keyboard
from eventbot.services.draft import Draft
from eventbot.services.moderation_service import PublishOutcome
from eventbot.utils import callbacks as cb
from eventbot.utils.constants import (
    DESCRIPTION_MAX_LENGTH,
    LOCATION_MAX_LENGTH,
    LOCATION_MIN_LENGTH,
    TITLE_MAX_LENGTH,
)
from eventbot.utils.i18n import t
from eventbot.utils.messaging import TRANSPORT_ERRORS

logger = logging.getLogger(__name__)

FIRST_PASS = ("title", "description", "location", "dates", "categories", "links", "group_link", "image")


def build_collectors(description_limit: int = DESCRIPTION_MAX_LENGTH) -> dict[str, FieldCollector]:
    return {
        "title": TextCollector("title", "collect.title_prompt", min_length=1, max_length=TITLE_MAX_LENGTH),
        "description": TextCollector("description", "collect.description_prompt", min_length=1, max_length=description_limit),
        "location": TextCollector(
            "location",
            "collect.location_prompt",
            min_length=LOCATION_MIN_LENGTH,
            max_length=LOCATION_MAX_LENGTH,
        ),
        "dates": DateTriadCollector(),
        "categories": CategoryCollector(),
        "links": LinksCollector(),
        "group_link": GroupLinkCollector(),
        "image": ImageCollector(),
    }


def missing_field(draft: Draft) -> Optional[str]:
    if not draft.title:
        return "title"
    if not draft.description:
        return "description"
    if not draft.location:
        return "location"
    if not draft.has_dates:
        return "dates"
    if not draft.categories:
        return "categories"
    return None


class DraftFlow(Flow):
    """Collect fields in a first pass, then loop over the summary until confirm or cancel.

    Subclass ``states`` must define ``collecting`` and ``summary``.
    """

    first_pass: tuple[str, ...] = FIRST_PASS
    description_limit: int = DESCRIPTION_MAX_LENGTH
    summary_header_key: str = "summary.header"

    def __init__(self) -> None:
        self.collectors = build_collectors(self.description_limit)

    async def handle(self, conv: Conversation, incoming: Incoming) -> None:
        step = await conv.current_step()
        if step == self.states.collecting.state:
            await self.on_collecting(conv, incoming)
        elif step == self.states.summary.state:
            await self.on_summary(conv, incoming)
        else:
            await self.handle_step(conv, incoming, step)

    async def handle_step(self, conv: Conversation, incoming: Incoming, step: Optional[str]) -> None:
        logger.warning(f"[{self.name}] no handler for step={step}, user_id={conv.actor.id}")
        await self.unexpected(conv, incoming)

    async def begin_collecting(self, conv: Conversation, field: str, *, editing: bool) -> None:
        await conv.enter(self.states.collecting, field=field, editing=editing)
        draft = await conv.load_draft()
        await self.collectors[field].prompt(conv, draft, editing=editing)

    async def on_collecting(self, conv: Conversation, incoming: Incoming) -> None:
        data = await conv.data()
        field = data.get("field")
        editing = bool(data.get("editing"))
        collector = self.collectors.get(field)
        if collector is None:
            logger.error(f"[{self.name}] unknown field={field}, user_id={conv.actor.id}")
            await self.show_summary(conv)
            return
        draft = Draft.from_dict(data.get(DRAFT_KEY))
        outcome = await collector.receive(conv, incoming, draft, editing=editing)
        match outcome:
            case Outcome.PENDING:
                return
            case Outcome.ABORTED:
                await self.on_collector_cancel(conv, field, editing=editing)
            case Outcome.ACCEPTED | Outcome.KEPT:
                await conv.save_draft(draft)
                await self.after_field(conv, field, editing=editing)

    async def after_field(self, conv: Conversation, field: str, *, editing: bool) -> None:
        if editing or field not in self.first_pass:
            await self.show_summary(conv)
            return
        position = self.first_pass.index(field)
        if position + 1 < len(self.first_pass):
            await self.begin_collecting(conv, self.first_pass[position + 1], editing=False)
        else:
            await self.show_summary(conv)

    async def on_collector_cancel(self, conv: Conversation, field: str, *, editing: bool) -> None:
        await self.abort(conv)

    async def show_summary(self, conv: Conversation) -> None:
        await conv.enter(self.states.summary)
        draft = await conv.load_draft()
        try:
            await conv.services.moderation.send_event(
                conv.chat_id,
                draft,
                header=t(self.summary_header_key),
                reply_markup=summary_keyboard(SUMMARY_FIELDS),
            )
        except TRANSPORT_ERRORS as e:
            logger.error(f"[{self.name}] summary failed: user_id={conv.actor.id}, error={e}")
            await conv.say(t("error.generic"))

    async def on_summary(self, conv: Conversation, incoming: Incoming) -> None:
        match incoming.action:
            case cb.Control(action=cb.CONFIRM):
                await conv.ack(incoming)
                draft = await conv.load_draft()
                gap = missing_field(draft)
                if gap is not None:
                    await conv.say(t("summary.incomplete", field=t(f"field.{gap}")))
                    await self.begin_collecting(conv, gap, editing=True)
                    return
                await self.complete(conv, draft)
            case cb.Control(action=cb.CANCEL):
                await conv.ack(incoming)
                await self.abort(conv)
            case cb.SummaryEdit(field=field) if field in self.collectors:
                await conv.ack(incoming)
                await self.begin_collecting(conv, field, editing=True)
            case _:
                await self.unexpected(conv, incoming)

    async def complete(self, conv: Conversation, draft: Draft) -> None:
        raise NotImplementedError


async def announce_submission(conv: Conversation, event: Event, *, is_edit: bool) -> None:
    """Hand a freshly saved event to review or straight to the public channel."""
    moderation = conv.services.moderation
    if conv.config.events.require_approval:
        await conv.say(t("edit.pending" if is_edit else "submit.pending"))
        await moderation.notify_admins(event, is_edit=is_edit)
        return
    result = await moderation.publish(event)
    if result.outcome in (PublishOutcome.POSTED, PublishOutcome.REPLACED):
        await conv.say(t("edit.published" if is_edit else "submit.published"))
    else:
        await conv.say(t("submit.publish_failed"))
