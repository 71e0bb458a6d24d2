import logging
from typing import Optional

from eventbot.conversations.admin import AdminDeleteFlow, BanFlow, RejectFlow, UnbanFlow
from eventbot.conversations.base import Conversation, Flow, Incoming
from eventbot.conversations.delete import DeleteFlow
from eventbot.conversations.edit import EditFlow
from eventbot.conversations.push import PushFlow
from eventbot.conversations.search import SearchFlow
from eventbot.conversations.submit import SubmitFlow
from eventbot.conversations.templates import TemplateListFlow, TemplateSaveFlow, TemplateUseFlow
from eventbot.utils.i18n import t

logger = logging.getLogger(__name__)

CANCEL_COMMAND = "/cancel"

SUBMIT = SubmitFlow()
EDIT = EditFlow()
DELETE = DeleteFlow()
SEARCH = SearchFlow()
PUSH = PushFlow()
TEMPLATE_USE = TemplateUseFlow()
TEMPLATE_LIST = TemplateListFlow(TEMPLATE_USE)
TEMPLATE_SAVE = TemplateSaveFlow()
REJECT = RejectFlow()
ADMIN_DELETE = AdminDeleteFlow()
BAN = BanFlow()
UNBAN = UnbanFlow()

FLOWS: tuple[Flow, ...] = (
    SUBMIT,
    EDIT,
    DELETE,
    SEARCH,
    PUSH,
    TEMPLATE_USE,
    TEMPLATE_LIST,
    TEMPLATE_SAVE,
    REJECT,
    ADMIN_DELETE,
    BAN,
    UNBAN,
)


def flow_for(step: Optional[str]) -> Optional[Flow]:
    for flow in FLOWS:
        if flow.owns(step):
            return flow
    return None


async def dispatch(conv: Conversation, incoming: Incoming) -> bool:
    """Feed one input to the flow that owns the actor's current step.

    Returns False when the actor is idle or the stored step belongs to no known flow.
    """
    step = await conv.current_step()
    if step is None:
        return False
    flow = flow_for(step)
    if flow is None:
        logger.warning(f"[dispatch] unknown step={step}, user_id={conv.actor.id}, resetting")
        await conv.finish()
        return False
    if incoming.is_command:
        command = incoming.text.split()[0].split("@", 1)[0].lower()
        if command == CANCEL_COMMAND:
            await flow.abort(conv)
            return True
        if not flow.accepts_commands:
            await conv.say(t("conversation.busy"))
            return True
    await flow.handle(conv, incoming)
    return True
