from html import escape

from aiogram import F, Router
from aiogram.enums import ChatType
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from eventbot.utils.di import get_config
from eventbot.utils.i18n import t

router = Router()
router.message.filter(F.chat.type == ChatType.PRIVATE)


@router.message(CommandStart())
async def handle_start(message: Message) -> None:
    tg_user = message.from_user
    raw_name = (tg_user.full_name if tg_user else "").strip()
    display_name = escape(raw_name) if raw_name else t("start.fallback_name")
    await message.answer(t("start.welcome", name=display_name))


@router.message(Command("help"))
async def handle_help(message: Message) -> None:
    await message.answer(t("help.text"))


@router.message(Command("support"))
async def handle_support(message: Message) -> None:
    support = get_config().support
    lines = []
    if support.email:
        lines.append(t("support.email", email=escape(support.email)))
    if support.telegram_user:
        lines.append(t("support.telegram", user=escape(support.telegram_user.lstrip("@"))))
    if not lines:
        await message.answer(t("support.unavailable"))
        return
    await message.answer("\n".join([t("support.header"), *lines]))


@router.message(Command("rules"))
async def handle_rules(message: Message) -> None:
    rules = get_config().support.rules
    await message.answer(escape(rules) if rules else t("rules.unavailable"))
