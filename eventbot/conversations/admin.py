import logging
from typing import Optional

from aiogram.fsm.state import State, StatesGroup

from eventbot.conversations.base import Conversation, Flow, Incoming
from eventbot.keyboards import admin_delete_keyboard, cancel_keyboard
from eventbot.services.blacklist_service import BanOutcome, UnbanOutcome
from eventbot.services.event_service import RejectionOutcome
from eventbot.services.moderation_service import DeleteOutcome
from eventbot.utils import callbacks as cb
from eventbot.utils.constants import BAN_REASON_MAX_LENGTH
from eventbot.utils.formatters import escape, format_user_mention
from eventbot.utils.i18n import t
from eventbot.utils.messaging import safe_clear_markup, safe_send_text

logger = logging.getLogger(__name__)

REJECT_REACTION = "👎"
SKIP_COMMAND = "/skip"


class RejectStates(StatesGroup):
    reason = State()


class AdminDeleteStates(StatesGroup):
    reason = State()


class BanStates(StatesGroup):
    user_id = State()
    reason = State()


class UnbanStates(StatesGroup):
    user_id = State()


def _is_cancel(incoming: Incoming) -> bool:
    return isinstance(incoming.action, cb.Control) and incoming.action.action == cb.CANCEL


def _parse_user_id(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    value = text.strip()
    if not value.lstrip("-").isdigit():
        return None
    return int(value)


class RejectFlow(Flow):
    """Collects the mandatory rejection reason for a pending event."""

    name = "reject"
    states = RejectStates

    async def start(self, conv: Conversation, event_id: str, review_message_id: Optional[int]) -> None:
        await conv.finish()
        event = await conv.services.events.get_event(event_id)
        if event is None:
            await conv.say(t("moderation.not_found"))
            return
        if event.is_published_status:
            await conv.say(t("moderation.already_published", title=escape(event.title)))
            return
        await conv.enter(RejectStates.reason, event_id=event.id, review_message_id=review_message_id)
        await conv.say(t("reject.reason_prompt", title=escape(event.title)), reply_markup=cancel_keyboard())

    async def handle(self, conv: Conversation, incoming: Incoming) -> None:
        if _is_cancel(incoming):
            await conv.ack(incoming)
            await self.abort(conv)
            return
        if incoming.text is None or incoming.is_command:
            await self.unexpected(conv, incoming)
            return
        reason = incoming.text.strip()
        if not reason or len(reason) > BAN_REASON_MAX_LENGTH:
            await conv.say(t("reject.reason_invalid", max=BAN_REASON_MAX_LENGTH), reply_markup=cancel_keyboard())
            return
        data = await conv.data()
        await conv.finish()
        moderation = conv.services.moderation
        result = await moderation.reject(data["event_id"], reason)
        logger.info(f"[reject] event_id={data['event_id']}, admin_id={conv.actor.id}, outcome={result.outcome.value}")
        match result.outcome:
            case RejectionOutcome.REJECTED:
                event = result.event
                await moderation.stamp_review(
                    data.get("review_message_id"),
                    t(
                        "moderation.stamp_rejected",
                        title=escape(event.title),
                        admin=escape(conv.actor.name),
                        reason=escape(reason),
                    ),
                    REJECT_REACTION,
                )
                await conv.say(t("reject.done", title=escape(event.title)))
            case RejectionOutcome.ALREADY_PUBLISHED:
                await conv.say(t("moderation.already_published", title=escape(result.event.title)))
            case RejectionOutcome.NOT_FOUND:
                await conv.say(t("moderation.not_found"))


class AdminDeleteFlow(Flow):
    """Admin override delete: a text reply is the reason, the confirm button deletes without one."""

    name = "admin_delete"
    states = AdminDeleteStates

    async def start(self, conv: Conversation, event_id: str) -> None:
        await conv.finish()
        event = await conv.services.events.get_event(event_id)
        if event is None:
            await conv.say(t("moderation.not_found"))
            return
        await conv.enter(AdminDeleteStates.reason, event_id=event.id)
        prompt_id = await conv.say(t("admin_delete.prompt", title=escape(event.title)), reply_markup=admin_delete_keyboard())
        await conv.update(prompt_message_id=prompt_id)

    async def handle(self, conv: Conversation, incoming: Incoming) -> None:
        data = await conv.data()
        match incoming.action:
            case cb.Control(action=cb.CANCEL):
                await conv.ack(incoming)
                await safe_clear_markup(conv.channel, conv.chat_id, data.get("prompt_message_id"))
                await self.abort(conv, text_key="admin_delete.cancelled")
                return
            case cb.Control(action=cb.CONFIRM):
                await conv.ack(incoming)
                await self._execute(conv, data, None)
                return
        if incoming.text is None or incoming.is_command:
            await self.unexpected(conv, incoming)
            return
        reason = incoming.text.strip()
        if len(reason) > BAN_REASON_MAX_LENGTH:
            await conv.say(t("reject.reason_invalid", max=BAN_REASON_MAX_LENGTH), reply_markup=admin_delete_keyboard())
            return
        await self._execute(conv, data, reason or None)

    async def _execute(self, conv: Conversation, data: dict, reason: Optional[str]) -> None:
        await safe_clear_markup(conv.channel, conv.chat_id, data.get("prompt_message_id"))
        await conv.finish()
        event_id = data["event_id"]
        event = await conv.services.events.get_event(event_id)
        if event is None:
            await conv.say(t("moderation.not_found"))
            return
        outcome = await conv.services.moderation.delete_event(event_id)
        logger.info(f"[admin_delete] event_id={event_id}, admin_id={conv.actor.id}, outcome={outcome.value}")
        if outcome is not DeleteOutcome.DELETED:
            await conv.say(t("moderation.not_found" if outcome is DeleteOutcome.NOT_FOUND else "admin_delete.failed"))
            return
        if reason:
            notice = t("admin_delete.submitter_notice_reason", title=escape(event.title), reason=escape(reason))
        else:
            notice = t("admin_delete.submitter_notice", title=escape(event.title))
        if await safe_send_text(conv.channel, event.submitter_id, notice) is None:
            logger.warning(f"[admin_delete] event_id={event_id}, submitter_id={event.submitter_id} was not notified")
        await conv.say(t("admin_delete.done", title=escape(event.title), admin=escape(conv.actor.name)))


class BanFlow(Flow):
    name = "ban"
    states = BanStates
    accepts_commands = True

    async def start(self, conv: Conversation) -> None:
        await conv.finish()
        await conv.enter(BanStates.user_id)
        await conv.say(t("ban.id_prompt"), reply_markup=cancel_keyboard())

    async def handle(self, conv: Conversation, incoming: Incoming) -> None:
        if _is_cancel(incoming):
            await conv.ack(incoming)
            await self.abort(conv)
            return
        if incoming.text is None:
            await self.unexpected(conv, incoming)
            return
        step = await conv.current_step()
        if step == BanStates.user_id.state:
            user_id = _parse_user_id(incoming.text)
            if user_id is None:
                await conv.say(t("ban.invalid_id"), reply_markup=cancel_keyboard())
                return
            await conv.enter(BanStates.reason, target_id=user_id)
            await conv.say(t("ban.reason_prompt", skip=SKIP_COMMAND), reply_markup=cancel_keyboard())
            return
        text = incoming.text.strip()
        if text.lower() == SKIP_COMMAND:
            reason = None
        elif incoming.is_command:
            await conv.say(t("conversation.busy"))
            return
        elif len(text) > BAN_REASON_MAX_LENGTH:
            await conv.say(t("reject.reason_invalid", max=BAN_REASON_MAX_LENGTH), reply_markup=cancel_keyboard())
            return
        else:
            reason = text or None
        data = await conv.data()
        await conv.finish()
        target_id = data["target_id"]
        outcome = await conv.services.blacklist.ban(target_id, None, conv.actor.id, conv.actor.name, reason=reason)
        mention = format_user_mention(target_id, None)
        match outcome:
            case BanOutcome.BANNED:
                await conv.say(t("ban.done", user=mention))
            case BanOutcome.ALREADY_BANNED:
                await conv.say(t("ban.already", user=mention))
            case BanOutcome.FAILED:
                await conv.say(t("error.generic"))


class UnbanFlow(Flow):
    name = "unban"
    states = UnbanStates

    async def start(self, conv: Conversation) -> None:
        await conv.finish()
        await conv.enter(UnbanStates.user_id)
        await conv.say(t("unban.id_prompt"), reply_markup=cancel_keyboard())

    async def handle(self, conv: Conversation, incoming: Incoming) -> None:
        if _is_cancel(incoming):
            await conv.ack(incoming)
            await self.abort(conv)
            return
        if incoming.text is None:
            await self.unexpected(conv, incoming)
            return
        user_id = _parse_user_id(incoming.text)
        if user_id is None:
            await conv.say(t("ban.invalid_id"), reply_markup=cancel_keyboard())
            return
        await conv.finish()
        outcome = await conv.services.blacklist.unban(user_id)
        mention = format_user_mention(user_id, None)
        match outcome:
            case UnbanOutcome.UNBANNED:
                await conv.say(t("unban.done", user=mention))
            case UnbanOutcome.NOT_FOUND:
                await conv.say(t("unban.not_found", user=mention))
            case UnbanOutcome.FAILED:
                await conv.say(t("error.generic"))
