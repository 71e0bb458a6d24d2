from aiogram.filters import BaseFilter
from aiogram.types import CallbackQuery, Message

from eventbot.utils.di import get_config


class AdminChatFilter(BaseFilter):
    """Passes only updates that originate in the configured admin chat."""

    async def __call__(self, event: Message | CallbackQuery) -> bool:
        if isinstance(event, CallbackQuery):
            chat = event.message.chat if event.message else None
        else:
            chat = event.chat
        return chat is not None and chat.id == get_config().venues.admin_chat_id
