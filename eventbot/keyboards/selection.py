from typing import Sequence

from aiogram.utils.keyboard import InlineKeyboardBuilder

from eventbot.utils.callbacks import (
    BACK,
    CANCEL,
    NO,
    SEARCH_EXIT,
    SEARCH_SPECIFIC,
    SEARCH_TODAY,
    SEARCH_TOMORROW,
    TEMPLATE_DELETE,
    TEMPLATE_USE,
    YES,
    Control,
    EventChoice,
    SearchChoice,
    TemplateChoice,
    TemplateMenu,
    TemplateOffer,
)
from eventbot.utils.i18n import t


def event_choice_keyboard(items: Sequence[tuple[str, str]]):
    builder = InlineKeyboardBuilder()
    for event_id, label in items:
        builder.button(text=label, callback_data=EventChoice(event_id=event_id))
    builder.button(text=t("button.cancel"), callback_data=Control(action=CANCEL))
    builder.adjust(1)
    return builder.as_markup()


def search_menu_keyboard():
    builder = InlineKeyboardBuilder()
    builder.button(text=t("button.search_today"), callback_data=SearchChoice(choice=SEARCH_TODAY))
    builder.button(text=t("button.search_tomorrow"), callback_data=SearchChoice(choice=SEARCH_TOMORROW))
    builder.button(text=t("button.search_specific"), callback_data=SearchChoice(choice=SEARCH_SPECIFIC))
    builder.button(text=t("button.search_exit"), callback_data=SearchChoice(choice=SEARCH_EXIT))
    builder.adjust(2, 1, 1)
    return builder.as_markup()


def template_list_keyboard(templates):
    builder = InlineKeyboardBuilder()
    for template in templates:
        builder.button(text=template.name, callback_data=TemplateChoice(template_id=template.id))
    builder.button(text=t("button.cancel"), callback_data=Control(action=CANCEL))
    builder.adjust(1)
    return builder.as_markup()


def template_menu_keyboard(template_id: str):
    builder = InlineKeyboardBuilder()
    builder.button(text=t("button.template_use"), callback_data=TemplateMenu(action=TEMPLATE_USE, template_id=template_id))
    builder.button(text=t("button.template_delete"), callback_data=TemplateMenu(action=TEMPLATE_DELETE, template_id=template_id))
    builder.button(text=t("button.back"), callback_data=Control(action=BACK))
    builder.adjust(2, 1)
    return builder.as_markup()


def template_offer_keyboard():
    builder = InlineKeyboardBuilder()
    builder.button(text=t("button.template_save"), callback_data=TemplateOffer(answer=YES))
    builder.button(text=t("button.template_skip"), callback_data=TemplateOffer(answer=NO))
    builder.adjust(2)
    return builder.as_markup()
