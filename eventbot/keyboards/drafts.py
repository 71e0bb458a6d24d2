from typing import Iterable, Sequence

from aiogram.utils.keyboard import InlineKeyboardBuilder

from eventbot.utils.callbacks import (
    CANCEL,
    CONFIRM,
    DONE,
    KEEP,
    RESET,
    CategoryToggle,
    Control,
    SummaryEdit,
)
from eventbot.utils.constants import CATEGORIES
from eventbot.utils.i18n import t

SUMMARY_FIELDS = ("title", "description", "location", "dates", "categories", "links", "group_link", "image")


def categories_keyboard(selected: Iterable[str], *, keep: bool = False):
    chosen = set(selected)
    builder = InlineKeyboardBuilder()
    for index, name in enumerate(CATEGORIES):
        label = f"✅ {name}" if name in chosen else name
        builder.button(text=label, callback_data=CategoryToggle(index=index))
    builder.adjust(3)
    footer = InlineKeyboardBuilder()
    footer.button(text=t("button.categories_reset"), callback_data=Control(action=RESET))
    footer.button(text=t("button.categories_done"), callback_data=Control(action=DONE))
    if keep:
        footer.button(text=t("button.keep"), callback_data=Control(action=KEEP))
    footer.button(text=t("button.cancel"), callback_data=Control(action=CANCEL))
    footer.adjust(2)
    builder.attach(footer)
    return builder.as_markup()


def dates_confirm_keyboard():
    builder = InlineKeyboardBuilder()
    builder.button(text=t("button.dates_confirm"), callback_data=Control(action=CONFIRM))
    builder.button(text=t("button.dates_reset"), callback_data=Control(action=RESET))
    builder.button(text=t("button.cancel"), callback_data=Control(action=CANCEL))
    builder.adjust(2, 1)
    return builder.as_markup()


def summary_keyboard(fields: Sequence[str] = SUMMARY_FIELDS):
    builder = InlineKeyboardBuilder()
    for field in fields:
        builder.button(text=t(f"button.edit_{field}"), callback_data=SummaryEdit(field=field))
    builder.adjust(2)
    footer = InlineKeyboardBuilder()
    footer.button(text=t("button.submit"), callback_data=Control(action=CONFIRM))
    footer.button(text=t("button.cancel"), callback_data=Control(action=CANCEL))
    footer.adjust(2)
    builder.attach(footer)
    return builder.as_markup()
