from typing import Optional

from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message, User

from eventbot.conversations import Actor, Conversation, Incoming
from eventbot.utils.callbacks import parse_action
from eventbot.utils.constants import ANONYMOUS_NAME
from eventbot.utils.di import get_config, get_services


def actor_from(user: Optional[User]) -> Actor:
    if user is None:
        return Actor(0, ANONYMOUS_NAME)
    return Actor(user.id, user.username or user.first_name or ANONYMOUS_NAME)


def incoming_from_message(message: Message) -> Incoming:
    photo_ref = message.photo[-1].file_id if message.photo else None
    return Incoming(text=message.text, photo_ref=photo_ref, message_id=message.message_id)


def incoming_from_callback(callback: CallbackQuery) -> Incoming:
    return Incoming(
        action=parse_action(callback.data or ""),
        callback_id=callback.id,
        message_id=callback.message.message_id if callback.message else None,
    )


def conversation_for_message(message: Message, state: FSMContext) -> Conversation:
    return Conversation(state, get_services(), get_config(), actor_from(message.from_user), message.chat.id)


def conversation_for_callback(callback: CallbackQuery, state: FSMContext) -> Conversation:
    chat_id = callback.message.chat.id if callback.message else callback.from_user.id
    return Conversation(state, get_services(), get_config(), actor_from(callback.from_user), chat_id)
