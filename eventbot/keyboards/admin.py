from aiogram.utils.keyboard import InlineKeyboardBuilder

from eventbot.utils.callbacks import (
    ADMIN_BAN_DELETE,
    ADMIN_DELETE,
    CANCEL,
    CONFIRM,
    REVIEW_APPROVE,
    REVIEW_REJECT,
    AdminControl,
    Control,
    Review,
)
from eventbot.utils.i18n import t


def review_keyboard(event_id: str):
    builder = InlineKeyboardBuilder()
    builder.button(text=t("button.approve"), callback_data=Review(decision=REVIEW_APPROVE, event_id=event_id))
    builder.button(text=t("button.reject"), callback_data=Review(decision=REVIEW_REJECT, event_id=event_id))
    builder.adjust(2)
    return builder.as_markup()


def moderation_controls_keyboard(event_id: str):
    builder = InlineKeyboardBuilder()
    builder.button(text=t("button.admin_delete"), callback_data=AdminControl(action=ADMIN_DELETE, event_id=event_id))
    builder.button(text=t("button.admin_ban_delete"), callback_data=AdminControl(action=ADMIN_BAN_DELETE, event_id=event_id))
    builder.adjust(2)
    return builder.as_markup()


def admin_delete_keyboard():
    builder = InlineKeyboardBuilder()
    builder.button(text=t("button.admin_delete_no_reason"), callback_data=Control(action=CONFIRM))
    builder.button(text=t("button.cancel"), callback_data=Control(action=CANCEL))
    builder.adjust(1)
    return builder.as_markup()
