from aiogram.utils.keyboard import InlineKeyboardBuilder

from eventbot.utils.callbacks import CANCEL, CONFIRM, KEEP, NO, NONE, YES, Control
from eventbot.utils.i18n import t


def cancel_keyboard():
    builder = InlineKeyboardBuilder()
    builder.button(text=t("button.cancel"), callback_data=Control(action=CANCEL))
    return builder.as_markup()


def prompt_keyboard(*, keep: bool = False, none_label: str | None = None):
    builder = InlineKeyboardBuilder()
    if none_label:
        builder.button(text=none_label, callback_data=Control(action=NONE))
    if keep:
        builder.button(text=t("button.keep"), callback_data=Control(action=KEEP))
    builder.button(text=t("button.cancel"), callback_data=Control(action=CANCEL))
    builder.adjust(1)
    return builder.as_markup()


def yes_no_keyboard():
    builder = InlineKeyboardBuilder()
    builder.button(text=t("button.yes"), callback_data=Control(action=YES))
    builder.button(text=t("button.no"), callback_data=Control(action=NO))
    builder.adjust(2)
    return builder.as_markup()


def confirm_cancel_keyboard(confirm_label: str | None = None):
    builder = InlineKeyboardBuilder()
    builder.button(text=confirm_label or t("button.confirm"), callback_data=Control(action=CONFIRM))
    builder.button(text=t("button.cancel"), callback_data=Control(action=CANCEL))
    builder.adjust(2)
    return builder.as_markup()
