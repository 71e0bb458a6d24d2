import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

import aiohttp
from aiogram import Bot
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest
from aiogram.types import BufferedInputFile, InlineKeyboardMarkup, LinkPreviewOptions, ReactionTypeEmoji

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (TelegramAPIError, aiohttp.ClientError, asyncio.TimeoutError)

CAPTION_LIMIT = 1024
MESSAGE_LIMIT = 4096


class Channel(Protocol):
    async def send_text(self, chat_id: int | str, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> int: ...

    async def send_photo(
        self,
        chat_id: int | str,
        photo: bytes,
        caption: Optional[str] = None,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> int: ...

    async def edit_text(
        self,
        chat_id: int | str,
        message_id: int,
        text: str,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> None: ...

    async def edit_markup(
        self,
        chat_id: int | str,
        message_id: int,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> None: ...

    async def delete_message(self, chat_id: int | str, message_id: int) -> None: ...

    async def answer_callback(self, callback_id: str, text: Optional[str] = None, show_alert: bool = False) -> None: ...

    async def fetch_file(self, file_ref: str) -> bytes: ...

    async def react(self, chat_id: int | str, message_id: int, emoji: str) -> None: ...


class AiogramChannel:
    """Outbound transport backed by an aiogram ``Bot``."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_text(self, chat_id: int | str, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> int:
        message = await self._bot.send_message(
            chat_id=chat_id,
            text=text,
            reply_markup=reply_markup,
            link_preview_options=LinkPreviewOptions(is_disabled=True),
        )
        return message.message_id

    async def send_photo(
        self,
        chat_id: int | str,
        photo: bytes,
        caption: Optional[str] = None,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> int:
        message = await self._bot.send_photo(
            chat_id=chat_id,
            photo=BufferedInputFile(photo, filename="event.jpg"),
            caption=caption,
            reply_markup=reply_markup,
        )
        return message.message_id

    async def edit_text(
        self,
        chat_id: int | str,
        message_id: int,
        text: str,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> None:
        await self._bot.edit_message_text(
            text=text,
            chat_id=chat_id,
            message_id=message_id,
            reply_markup=reply_markup,
            link_preview_options=LinkPreviewOptions(is_disabled=True),
        )

    async def edit_markup(
        self,
        chat_id: int | str,
        message_id: int,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> None:
        await self._bot.edit_message_reply_markup(chat_id=chat_id, message_id=message_id, reply_markup=reply_markup)

    async def delete_message(self, chat_id: int | str, message_id: int) -> None:
        await self._bot.delete_message(chat_id=chat_id, message_id=message_id)

    async def answer_callback(self, callback_id: str, text: Optional[str] = None, show_alert: bool = False) -> None:
        await self._bot.answer_callback_query(callback_query_id=callback_id, text=text, show_alert=show_alert)

    async def fetch_file(self, file_ref: str) -> bytes:
        file = await self._bot.get_file(file_ref)
        if not file.file_path:
            raise aiohttp.ClientError(f"Telegram returned no file path for {file_ref}")
        buffer = await self._bot.download_file(file.file_path)
        return buffer.read()

    async def react(self, chat_id: int | str, message_id: int, emoji: str) -> None:
        await self._bot.set_message_reaction(
            chat_id=chat_id,
            message_id=message_id,
            reaction=[ReactionTypeEmoji(emoji=emoji)],
        )


class ReplaceOutcome(Enum):
    EDITED = "edited"
    REPLACED = "replaced"
    FAILED = "failed"


@dataclass(frozen=True)
class Delivery:
    outcome: ReplaceOutcome
    message_id: Optional[int]


async def edit_or_replace(
    channel: Channel,
    chat_id: int | str,
    message_id: Optional[int],
    text: str,
    reply_markup: Optional[InlineKeyboardMarkup] = None,
) -> Delivery:
    """Edit a message in place; when that is impossible delete it and send a new one."""
    if message_id:
        try:
            await channel.edit_text(chat_id, message_id, text, reply_markup=reply_markup)
            return Delivery(ReplaceOutcome.EDITED, message_id)
        except TRANSPORT_ERRORS as e:
            logger.info(f"[edit_or_replace] edit failed, replacing: chat_id={chat_id}, message_id={message_id}, error={e}")
        await safe_delete_by_id(channel, chat_id, message_id)
    try:
        new_id = await channel.send_text(chat_id, text, reply_markup=reply_markup)
    except TRANSPORT_ERRORS as e:
        logger.error(f"[edit_or_replace] send failed: chat_id={chat_id}, error={e}")
        return Delivery(ReplaceOutcome.FAILED, None)
    return Delivery(ReplaceOutcome.REPLACED, new_id)


async def safe_send_text(
    channel: Channel,
    chat_id: int | str,
    text: str,
    reply_markup: Optional[InlineKeyboardMarkup] = None,
) -> Optional[int]:
    try:
        return await channel.send_text(chat_id, text, reply_markup=reply_markup)
    except TRANSPORT_ERRORS as e:
        logger.warning(f"[safe_send_text] chat_id={chat_id}, error={e}")
        return None


async def safe_delete_by_id(channel: Channel, chat_id: int | str | None, message_id: Optional[int]) -> bool:
    if not chat_id or not message_id:
        return False
    try:
        await channel.delete_message(chat_id, message_id)
        return True
    except TRANSPORT_ERRORS as e:
        logger.warning(f"[safe_delete_by_id] chat_id={chat_id}, message_id={message_id}, error={e}")
        return False


async def safe_clear_markup(channel: Channel, chat_id: int | str, message_id: Optional[int]) -> None:
    if not message_id:
        return
    try:
        await channel.edit_markup(chat_id, message_id, reply_markup=None)
    except TRANSPORT_ERRORS as e:
        logger.debug(f"[safe_clear_markup] chat_id={chat_id}, message_id={message_id}, error={e}")


async def safe_answer_callback(
    channel: Channel,
    callback_id: str,
    text: Optional[str] = None,
    show_alert: bool = False,
) -> None:
    try:
        await channel.answer_callback(callback_id, text=text, show_alert=show_alert)
    except TelegramBadRequest as e:
        error_message = str(e).lower()
        if "too old" in error_message or "query id is invalid" in error_message:
            return
        logger.warning(f"[safe_answer_callback] callback_id={callback_id}, error={e}")
    except TRANSPORT_ERRORS as e:
        logger.warning(f"[safe_answer_callback] callback_id={callback_id}, error={e}")


async def safe_react(channel: Channel, chat_id: int | str, message_id: Optional[int], emoji: str) -> None:
    if not message_id:
        return
    try:
        await channel.react(chat_id, message_id, emoji)
    except TRANSPORT_ERRORS as e:
        logger.debug(f"[safe_react] chat_id={chat_id}, message_id={message_id}, error={e}")
