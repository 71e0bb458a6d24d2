from .admin import admin_delete_keyboard, moderation_controls_keyboard, review_keyboard
from .common import cancel_keyboard, confirm_cancel_keyboard, prompt_keyboard, yes_no_keyboard
from .drafts import SUMMARY_FIELDS, categories_keyboard, dates_confirm_keyboard, summary_keyboard
from .selection import (
    event_choice_keyboard,
    search_menu_keyboard,
    template_list_keyboard,
    template_menu_keyboard,
    template_offer_keyboard,
)

__all__ = [
    "SUMMARY_FIELDS",
    "admin_delete_keyboard",
    "cancel_keyboard",
    "categories_keyboard",
    "confirm_cancel_keyboard",
    "dates_confirm_keyboard",
    "event_choice_keyboard",
    "moderation_controls_keyboard",
    "prompt_keyboard",
    "review_keyboard",
    "search_menu_keyboard",
    "summary_keyboard",
    "template_list_keyboard",
    "template_menu_keyboard",
    "template_offer_keyboard",
    "yes_no_keyboard",
]
