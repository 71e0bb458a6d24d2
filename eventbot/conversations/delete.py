import logging

from aiogram.fsm.state import State, StatesGroup

from eventbot.conversations.base import Conversation, Flow, Incoming
from eventbot.keyboards import confirm_cancel_keyboard, event_choice_keyboard
from eventbot.services.moderation_service import DeleteOutcome
from eventbot.utils import callbacks as cb
from eventbot.utils.dates import format_local
from eventbot.utils.i18n import t
from eventbot.utils.messaging import TRANSPORT_ERRORS

logger = logging.getLogger(__name__)


class DeleteStates(StatesGroup):
    choosing = State()
    confirming = State()


class DeleteFlow(Flow):
    name = "delete"
    states = DeleteStates

    async def start(self, conv: Conversation) -> None:
        await conv.finish()
        events = await conv.services.events.list_upcoming_published(conv.actor.id)
        if not events:
            await conv.say(t("delete.none"))
            return
        rules = conv.config.events
        items = [
            (event.id, t("delete.choice_label", title=event.title, start=format_local(event.start_date, rules.date_only_format, rules.tz)))
            for event in events
        ]
        await conv.enter(DeleteStates.choosing)
        await conv.say(t("delete.choose"), reply_markup=event_choice_keyboard(items))

    async def handle(self, conv: Conversation, incoming: Incoming) -> None:
        step = await conv.current_step()
        if isinstance(incoming.action, cb.Control) and incoming.action.action == cb.CANCEL:
            await conv.ack(incoming)
            await self.abort(conv)
            return
        if step == DeleteStates.choosing.state and isinstance(incoming.action, cb.EventChoice):
            await conv.ack(incoming)
            await self._preview(conv, incoming.action.event_id)
        elif step == DeleteStates.confirming.state and isinstance(incoming.action, cb.Control) and incoming.action.action == cb.CONFIRM:
            await conv.ack(incoming)
            await self._delete(conv)
        else:
            await self.unexpected(conv, incoming)

    async def _preview(self, conv: Conversation, event_id: str) -> None:
        event = await conv.services.events.get_event(event_id)
        if event is None or event.submitter_id != conv.actor.id:
            await conv.finish()
            await conv.say(t("delete.not_found"))
            return
        await conv.enter(DeleteStates.confirming, event_id=event.id)
        try:
            await conv.services.moderation.send_event(conv.chat_id, event, header=t("delete.preview_header"))
        except TRANSPORT_ERRORS as e:
            logger.warning(f"[delete] preview failed: event_id={event.id}, error={e}")
        await conv.say(t("delete.confirm"), reply_markup=confirm_cancel_keyboard(t("button.delete")))

    async def _delete(self, conv: Conversation) -> None:
        data = await conv.data()
        event_id = data.get("event_id")
        await conv.finish()
        event = await conv.services.events.get_event(event_id) if event_id else None
        if event is None or event.submitter_id != conv.actor.id:
            await conv.say(t("delete.not_found"))
            return
        outcome = await conv.services.moderation.delete_event(event.id)
        logger.info(f"[delete] event_id={event.id}, user_id={conv.actor.id}, outcome={outcome.value}")
        match outcome:
            case DeleteOutcome.DELETED:
                await conv.say(t("delete.done"))
            case DeleteOutcome.NOT_FOUND:
                await conv.say(t("delete.not_found"))
            case DeleteOutcome.FAILED:
                await conv.say(t("delete.failed"))
