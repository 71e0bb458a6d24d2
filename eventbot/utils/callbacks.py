from typing import Union

from aiogram.filters.callback_data import CallbackData

CANCEL = "cancel"
KEEP = "keep"
NONE = "none"
DONE = "done"
RESET = "reset"
CONFIRM = "confirm"
YES = "yes"
NO = "no"
BACK = "back"

SEARCH_TODAY = "today"
SEARCH_TOMORROW = "tomorrow"
SEARCH_SPECIFIC = "specific"
SEARCH_EXIT = "exit"

TEMPLATE_USE = "use"
TEMPLATE_DELETE = "delete"

REVIEW_APPROVE = "approve"
REVIEW_REJECT = "reject"

ADMIN_DELETE = "delete"
ADMIN_BAN_DELETE = "ban_delete"


class Control(CallbackData, prefix="ctl"):
    action: str


class CategoryToggle(CallbackData, prefix="cat"):
    index: int


class SummaryEdit(CallbackData, prefix="sum"):
    field: str


class EventChoice(CallbackData, prefix="evc"):
    event_id: str


class SearchChoice(CallbackData, prefix="srch"):
    choice: str


class TemplateChoice(CallbackData, prefix="tpl"):
    template_id: str


class TemplateMenu(CallbackData, prefix="tplm"):
    action: str
    template_id: str


class TemplateOffer(CallbackData, prefix="tplo"):
    answer: str


class Review(CallbackData, prefix="rev"):
    decision: str
    event_id: str


class AdminControl(CallbackData, prefix="adm"):
    action: str
    event_id: str


Action = Union[
    Control,
    CategoryToggle,
    SummaryEdit,
    EventChoice,
    SearchChoice,
    TemplateChoice,
    TemplateMenu,
    TemplateOffer,
    Review,
    AdminControl,
]

_FACTORIES: dict[str, type[CallbackData]] = {
    factory.__prefix__: factory
    for factory in (
        Control,
        CategoryToggle,
        SummaryEdit,
        EventChoice,
        SearchChoice,
        TemplateChoice,
        TemplateMenu,
        TemplateOffer,
        Review,
        AdminControl,
    )
}


def parse_action(data: str | None) -> Action | None:
    """Decode raw button data into one of the known actions, or ``None``."""
    if not data:
        return None
    prefix = data.split(":", 1)[0]
    factory = _FACTORIES.get(prefix)
    if factory is None:
        return None
    try:
        return factory.unpack(data)
    except (TypeError, ValueError):
        return None
