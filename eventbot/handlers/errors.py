import logging

from aiogram import Router
from aiogram.types import ErrorEvent

from eventbot.utils.di import get_services
from eventbot.utils.i18n import t
from eventbot.utils.messaging import safe_answer_callback, safe_send_text

logger = logging.getLogger(__name__)

router = Router()


@router.errors()
async def handle_error(event: ErrorEvent) -> bool:
    update = event.update
    logger.error(f"[handle_error] update_id={update.update_id}, error={event.exception!r}", exc_info=event.exception)
    channel = get_services().channel
    if update.callback_query is not None:
        callback = update.callback_query
        await safe_answer_callback(channel, callback.id, text=t("error.generic"), show_alert=True)
        return True
    if update.message is not None:
        await safe_send_text(channel, update.message.chat.id, t("error.generic"))
    return True
