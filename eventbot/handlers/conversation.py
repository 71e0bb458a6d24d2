import logging

from aiogram import Router
from aiogram.filters import StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from eventbot.conversations import dispatch
from eventbot.handlers.common import (
    conversation_for_callback,
    conversation_for_message,
    incoming_from_callback,
    incoming_from_message,
)
from eventbot.utils.callbacks import AdminControl, Review
from eventbot.utils.di import get_services
from eventbot.utils.i18n import t
from eventbot.utils.messaging import safe_answer_callback

logger = logging.getLogger(__name__)

router = Router()


@router.message(~StateFilter(None))
async def continue_from_message(message: Message, state: FSMContext) -> None:
    conv = conversation_for_message(message, state)
    await dispatch(conv, incoming_from_message(message))


@router.callback_query(~StateFilter(None))
async def continue_from_callback(callback: CallbackQuery, state: FSMContext) -> None:
    conv = conversation_for_callback(callback, state)
    incoming = incoming_from_callback(callback)
    if not await dispatch(conv, incoming):
        await conv.ack(incoming, t("conversation.expired"))
    await conv.ack(incoming)


@router.callback_query()
async def stale_callback(callback: CallbackQuery) -> None:
    incoming = incoming_from_callback(callback)
    user_id = callback.from_user.id if callback.from_user else 0
    logger.info(f"[stale_callback] data={(callback.data or '')[:50]}, user_id={user_id}")
    channel = get_services().channel
    # Moderation buttons pressed outside the admin venue are dropped without a hint.
    if isinstance(incoming.action, (Review, AdminControl)):
        await safe_answer_callback(channel, callback.id)
        return
    await safe_answer_callback(channel, callback.id, text=t("conversation.expired"))
