import logging
from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject, User

from eventbot.utils.di import get_services
from eventbot.utils.i18n import t
from eventbot.utils.messaging import safe_answer_callback, safe_send_text

logger = logging.getLogger(__name__)


class BlacklistMiddleware(BaseMiddleware):
    """Stops every update from a banned actor before any handler or flow sees it."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        user: User | None = data.get("event_from_user")
        if user is None:
            return await handler(event, data)
        services = get_services()
        if not await services.blacklist.is_banned(user.id):
            return await handler(event, data)
        logger.info(f"[blacklist] dropped update from user_id={user.id}")
        if isinstance(event, CallbackQuery):
            await safe_answer_callback(services.channel, event.id, text=t("blacklist.banned_notice"), show_alert=True)
        elif isinstance(event, Message):
            await safe_send_text(services.channel, event.chat.id, t("blacklist.banned_notice"))
        return None
