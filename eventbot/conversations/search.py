import logging
from datetime import date, timedelta

from aiogram.fsm.state import State, StatesGroup

from eventbot.conversations.base import Conversation, Flow, Incoming
from eventbot.keyboards import cancel_keyboard, search_menu_keyboard
from eventbot.utils import callbacks as cb
from eventbot.utils.dates import format_hint, local_today, parse_local_date
from eventbot.utils.i18n import t

logger = logging.getLogger(__name__)


class SearchStates(StatesGroup):
    menu = State()
    date_input = State()


class SearchFlow(Flow):
    """Day search over published events; one result per message."""

    name = "search"
    states = SearchStates

    async def start(self, conv: Conversation) -> None:
        await conv.finish()
        await conv.enter(SearchStates.menu)
        await conv.say(t("search.menu"), reply_markup=search_menu_keyboard())

    async def handle(self, conv: Conversation, incoming: Incoming) -> None:
        step = await conv.current_step()
        if step == SearchStates.menu.state:
            await self._on_menu(conv, incoming)
        elif step == SearchStates.date_input.state:
            await self._on_date(conv, incoming)
        else:
            await self.unexpected(conv, incoming)

    async def _on_menu(self, conv: Conversation, incoming: Incoming) -> None:
        tz = conv.config.events.tz
        match incoming.action:
            case cb.SearchChoice(choice=cb.SEARCH_TODAY):
                await conv.ack(incoming)
                await self._run(conv, local_today(tz))
            case cb.SearchChoice(choice=cb.SEARCH_TOMORROW):
                await conv.ack(incoming)
                await self._run(conv, local_today(tz) + timedelta(days=1))
            case cb.SearchChoice(choice=cb.SEARCH_SPECIFIC):
                await conv.ack(incoming)
                await conv.enter(SearchStates.date_input)
                hint = format_hint(conv.config.events.date_only_format)
                await conv.say(t("search.date_prompt", format=hint), reply_markup=cancel_keyboard())
            case cb.SearchChoice(choice=cb.SEARCH_EXIT) | cb.Control(action=cb.CANCEL):
                await conv.ack(incoming)
                await self.abort(conv, text_key="search.closed")
            case _:
                await self.unexpected(conv, incoming)

    async def _on_date(self, conv: Conversation, incoming: Incoming) -> None:
        if isinstance(incoming.action, cb.Control) and incoming.action.action == cb.CANCEL:
            await conv.ack(incoming)
            await self.abort(conv, text_key="search.closed")
            return
        if incoming.text is None:
            await self.unexpected(conv, incoming)
            return
        fmt = conv.config.events.date_only_format
        try:
            day = parse_local_date(incoming.text.strip(), fmt)
        except ValueError:
            await conv.say(t("search.invalid_date", format=format_hint(fmt)), reply_markup=cancel_keyboard())
            return
        await self._run(conv, day)

    async def _run(self, conv: Conversation, day: date) -> None:
        await conv.finish()
        rules = conv.config.events
        events = await conv.services.events.search_day(day)
        date_text = day.strftime(rules.date_only_format)
        delivered = await conv.services.moderation.deliver_search_results(conv.chat_id, events, date_text)
        logger.info(f"[search] user_id={conv.actor.id}, day={day.isoformat()}, found={len(events)}, delivered={delivered}")
