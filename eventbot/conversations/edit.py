import logging
from typing import Optional

import asyncpg
from aiogram.fsm.state import State, StatesGroup

from eventbot.conversations.base import Conversation, Incoming
from eventbot.conversations.drafting import DraftFlow, announce_submission
from eventbot.database.repositories.events import Event
from eventbot.keyboards import event_choice_keyboard
from eventbot.services.draft import Draft
from eventbot.utils import callbacks as cb
from eventbot.utils.dates import format_local
from eventbot.utils.formatters import format_remaining_edits
from eventbot.utils.i18n import t

logger = logging.getLogger(__name__)


class EditStates(StatesGroup):
    choosing = State()
    collecting = State()
    summary = State()


class EditFlow(DraftFlow):
    name = "edit"
    states = EditStates
    summary_header_key = "edit.summary_header"

    async def start(self, conv: Conversation) -> None:
        await conv.finish()
        service = conv.services.events
        events = await service.list_upcoming_published(conv.actor.id)
        if not events:
            await conv.say(t("edit.none"))
            return
        editable = [event for event in events if service.can_edit(event)]
        if not editable:
            await conv.say(t("edit.limit_reached", max=service.rules.max_event_edits))
            return
        items = [(event.id, self._label(conv, event)) for event in editable]
        await conv.enter(EditStates.choosing)
        await conv.say(t("edit.choose"), reply_markup=event_choice_keyboard(items))

    async def handle_step(self, conv: Conversation, incoming: Incoming, step: Optional[str]) -> None:
        if step != EditStates.choosing.state:
            await super().handle_step(conv, incoming, step)
            return
        match incoming.action:
            case cb.Control(action=cb.CANCEL):
                await conv.ack(incoming)
                await self.abort(conv)
            case cb.EventChoice(event_id=event_id):
                await conv.ack(incoming)
                await self._select(conv, event_id)
            case _:
                await self.unexpected(conv, incoming)

    async def _select(self, conv: Conversation, event_id: str) -> None:
        service = conv.services.events
        event = await service.get_event(event_id)
        if event is None or event.submitter_id != conv.actor.id or not event.is_published_status:
            await conv.finish()
            await conv.say(t("edit.not_found"))
            return
        if not service.can_edit(event):
            await conv.finish()
            await conv.say(t("edit.limit_reached", max=service.rules.max_event_edits))
            return
        await conv.save_draft(Draft.from_source(event))
        await conv.update(event_id=event.id)
        await self.show_summary(conv)

    async def complete(self, conv: Conversation, draft: Draft) -> None:
        data = await conv.data()
        event_id = data.get("event_id")
        service = conv.services.events
        current = await service.get_event(event_id) if event_id else None
        if current is None or current.submitter_id != conv.actor.id:
            await conv.finish()
            await conv.say(t("edit.not_found"))
            return
        if not service.can_edit(current):
            await conv.finish()
            await conv.say(t("edit.limit_reached", max=service.rules.max_event_edits))
            return
        try:
            event = await service.apply_edit(event_id, draft)
        except asyncpg.PostgresError as e:
            logger.error(f"[edit] save failed: event_id={event_id}, error={e}")
            await conv.finish()
            await conv.say(t("error.save_failed"))
            return
        await conv.finish()
        if event is None:
            await conv.say(t("edit.not_found"))
            return
        await announce_submission(conv, event, is_edit=True)

    def _label(self, conv: Conversation, event: Event) -> str:
        rules = conv.config.events
        return t(
            "edit.choice_label",
            title=event.title,
            start=format_local(event.start_date, rules.date_only_format, rules.tz),
            remaining=format_remaining_edits(event.updated_count, rules.max_event_edits),
        )
