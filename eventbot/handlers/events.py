import logging

from aiogram import F, Router
from aiogram.enums import ChatType
from aiogram.filters import Command, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from eventbot.conversations.registry import DELETE, EDIT, PUSH, SEARCH, SUBMIT, TEMPLATE_LIST, TEMPLATE_SAVE
from eventbot.handlers.common import conversation_for_callback, conversation_for_message, incoming_from_callback
from eventbot.utils.callbacks import YES, TemplateOffer
from eventbot.utils.i18n import t
from eventbot.utils.messaging import safe_clear_markup

logger = logging.getLogger(__name__)

router = Router()
router.message.filter(F.chat.type == ChatType.PRIVATE)
router.callback_query.filter(F.message.chat.type == ChatType.PRIVATE)


@router.message(Command("submit"), StateFilter(None))
async def start_submit(message: Message, state: FSMContext) -> None:
    conv = conversation_for_message(message, state)
    logger.info(f"[start_submit] user_id={conv.actor.id}")
    await SUBMIT.start(conv)


@router.message(Command("edit"), StateFilter(None))
async def start_edit(message: Message, state: FSMContext) -> None:
    conv = conversation_for_message(message, state)
    logger.info(f"[start_edit] user_id={conv.actor.id}")
    await EDIT.start(conv)


@router.message(Command("delete"), StateFilter(None))
async def start_delete(message: Message, state: FSMContext) -> None:
    conv = conversation_for_message(message, state)
    logger.info(f"[start_delete] user_id={conv.actor.id}")
    await DELETE.start(conv)


@router.message(Command("search"), StateFilter(None))
async def start_search(message: Message, state: FSMContext) -> None:
    await SEARCH.start(conversation_for_message(message, state))


@router.message(Command("push"), StateFilter(None))
async def start_push(message: Message, state: FSMContext) -> None:
    conv = conversation_for_message(message, state)
    logger.info(f"[start_push] user_id={conv.actor.id}")
    await PUSH.start(conv)


@router.message(Command("templates"), StateFilter(None))
async def start_templates(message: Message, state: FSMContext) -> None:
    await TEMPLATE_LIST.start(conversation_for_message(message, state))


@router.callback_query(TemplateOffer.filter(), StateFilter(None))
async def answer_template_offer(callback: CallbackQuery, callback_data: TemplateOffer, state: FSMContext) -> None:
    conv = conversation_for_callback(callback, state)
    incoming = incoming_from_callback(callback)
    await conv.ack(incoming)
    await safe_clear_markup(conv.channel, conv.chat_id, incoming.message_id)
    if callback_data.answer == YES:
        await TEMPLATE_SAVE.start(conv)
        return
    conv.services.staging.discard(conv.actor.id)
    await conv.say(t("templates.offer_declined"))
