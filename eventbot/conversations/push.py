import logging

from aiogram.fsm.state import State, StatesGroup

from eventbot.conversations.base import Conversation, Flow, Incoming
from eventbot.keyboards import confirm_cancel_keyboard, event_choice_keyboard
from eventbot.utils import callbacks as cb
from eventbot.utils.dates import format_local
from eventbot.utils.i18n import t
from eventbot.utils.messaging import TRANSPORT_ERRORS

logger = logging.getLogger(__name__)


class PushStates(StatesGroup):
    choosing = State()
    confirming = State()


class PushFlow(Flow):
    """Re-post an older published event to the top of the channel, once per event."""

    name = "push"
    states = PushStates

    async def start(self, conv: Conversation) -> None:
        await conv.finish()
        rules = conv.config.events
        events = await conv.services.events.list_pushable(conv.actor.id)
        if not events:
            await conv.say(t("push.none", days=rules.push_min_age_days))
            return
        items = [
            (event.id, t("push.choice_label", title=event.title, start=format_local(event.start_date, rules.date_only_format, rules.tz)))
            for event in events
        ]
        await conv.enter(PushStates.choosing)
        await conv.say(t("push.choose"), reply_markup=event_choice_keyboard(items))

    async def handle(self, conv: Conversation, incoming: Incoming) -> None:
        step = await conv.current_step()
        match incoming.action:
            case cb.Control(action=cb.CANCEL):
                await conv.ack(incoming)
                await self.abort(conv)
            case cb.EventChoice(event_id=event_id) if step == PushStates.choosing.state:
                await conv.ack(incoming)
                await self._preview(conv, event_id)
            case cb.Control(action=cb.CONFIRM) if step == PushStates.confirming.state:
                await conv.ack(incoming)
                await self._push(conv)
            case _:
                await self.unexpected(conv, incoming)

    async def _preview(self, conv: Conversation, event_id: str) -> None:
        event = await conv.services.events.get_event(event_id)
        if event is None or event.submitter_id != conv.actor.id:
            await conv.finish()
            await conv.say(t("push.outcome.not_found"))
            return
        await conv.enter(PushStates.confirming, event_id=event.id)
        try:
            await conv.services.moderation.send_event(conv.chat_id, event, header=t("push.preview_header"))
        except TRANSPORT_ERRORS as e:
            logger.warning(f"[push] preview failed: event_id={event.id}, error={e}")
        await conv.say(t("push.confirm"), reply_markup=confirm_cancel_keyboard(t("button.push")))

    async def _push(self, conv: Conversation) -> None:
        data = await conv.data()
        event_id = data.get("event_id")
        await conv.finish()
        outcome = await conv.services.moderation.push(event_id, conv.actor.id)
        logger.info(f"[push] event_id={event_id}, user_id={conv.actor.id}, outcome={outcome.value}")
        await conv.say(t(f"push.outcome.{outcome.value}", days=conv.config.events.push_min_age_days))
