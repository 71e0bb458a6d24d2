import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import InlineKeyboardMarkup

from config import Config
from eventbot.services.container import ServiceContainer
from eventbot.services.draft import Draft
from eventbot.utils.callbacks import Action
from eventbot.utils.i18n import t
from eventbot.utils.messaging import Channel, safe_answer_callback, safe_send_text

logger = logging.getLogger(__name__)

DRAFT_KEY = "draft"


@dataclass(frozen=True)
class Actor:
    id: int
    name: str


@dataclass(frozen=True)
class Incoming:
    """One inbound action, already decoded at the transport boundary."""

    text: Optional[str] = None
    action: Optional[Action] = None
    photo_ref: Optional[str] = None
    callback_id: Optional[str] = None
    message_id: Optional[int] = None

    @property
    def is_button(self) -> bool:
        return self.callback_id is not None

    @property
    def is_command(self) -> bool:
        return bool(self.text) and self.text.startswith("/")


class Outcome(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    KEPT = "kept"
    ABORTED = "aborted"


class Conversation:
    """Per-update view of one actor's dialogue: stored cursor, draft and outbound channel."""

    def __init__(
        self,
        state: FSMContext,
        services: ServiceContainer,
        config: Config,
        actor: Actor,
        chat_id: int,
    ) -> None:
        self.state = state
        self.services = services
        self.config = config
        self.actor = actor
        self.chat_id = chat_id
        self._answered: set[str] = set()

    @property
    def channel(self) -> Channel:
        return self.services.channel

    async def say(self, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> Optional[int]:
        return await safe_send_text(self.channel, self.chat_id, text, reply_markup=reply_markup)

    async def ack(self, incoming: Incoming, text: Optional[str] = None, alert: bool = False) -> None:
        if not incoming.callback_id or incoming.callback_id in self._answered:
            return
        self._answered.add(incoming.callback_id)
        await safe_answer_callback(self.channel, incoming.callback_id, text=text, show_alert=alert)

    async def data(self) -> dict[str, Any]:
        return await self.state.get_data()

    async def update(self, **values: Any) -> None:
        await self.state.update_data(**values)

    async def current_step(self) -> Optional[str]:
        return await self.state.get_state()

    async def enter(self, step: State, **values: Any) -> None:
        if values:
            await self.state.update_data(**values)
        await self.state.set_state(step)

    async def load_draft(self) -> Draft:
        data = await self.state.get_data()
        return Draft.from_dict(data.get(DRAFT_KEY))

    async def save_draft(self, draft: Draft) -> None:
        await self.state.update_data(**{DRAFT_KEY: draft.to_dict()})

    async def finish(self) -> None:
        await self.state.clear()


class Flow:
    """A resumable dialogue: ``states`` names its steps, ``handle`` advances it by one input."""

    name: str = "flow"
    states: type[StatesGroup]
    accepts_commands: bool = False

    def owns(self, step: Optional[str]) -> bool:
        return bool(step) and step.split(":", 1)[0] == self.states.__full_group_name__

    async def handle(self, conv: Conversation, incoming: Incoming) -> None:
        raise NotImplementedError

    async def abort(self, conv: Conversation, text_key: str = "conversation.cancelled") -> None:
        logger.info(f"[{self.name}] aborted: user_id={conv.actor.id}")
        await conv.finish()
        await conv.say(t(text_key))

    async def unexpected(self, conv: Conversation, incoming: Incoming) -> None:
        if incoming.is_button:
            await conv.ack(incoming, t("conversation.unexpected_button"))
        else:
            await conv.say(t("conversation.use_buttons"))
