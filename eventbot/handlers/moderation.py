import logging

from aiogram import F, Router
from aiogram.filters import Command, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from eventbot.conversations.registry import ADMIN_DELETE, BAN, REJECT, UNBAN
from eventbot.filters import AdminChatFilter
from eventbot.handlers.common import conversation_for_callback, conversation_for_message, incoming_from_callback
from eventbot.services.event_service import ApprovalOutcome
from eventbot.services.moderation_service import BanDeleteOutcome, PublishOutcome
from eventbot.utils.callbacks import (
    ADMIN_BAN_DELETE,
    ADMIN_DELETE,
    REVIEW_APPROVE,
    REVIEW_REJECT,
    AdminControl,
    Review,
)
from eventbot.utils.dates import format_local
from eventbot.utils.di import get_config
from eventbot.utils.formatters import chunk_lines, escape, format_user_mention
from eventbot.utils.i18n import t
from eventbot.utils.messaging import safe_clear_markup, safe_send_text

logger = logging.getLogger(__name__)

APPROVE_REACTION = "👍"

router = Router()
router.message.filter(AdminChatFilter())
router.callback_query.filter(AdminChatFilter())


@router.callback_query(Review.filter(F.decision == REVIEW_APPROVE), StateFilter(None))
async def approve_event(callback: CallbackQuery, callback_data: Review, state: FSMContext) -> None:
    conv = conversation_for_callback(callback, state)
    incoming = incoming_from_callback(callback)
    moderation = conv.services.moderation
    report = await moderation.approve(callback_data.event_id)
    logger.info(f"[approve_event] event_id={callback_data.event_id}, admin_id={conv.actor.id}, outcome={report.outcome.value}")
    match report.outcome:
        case ApprovalOutcome.APPROVED:
            event = report.publish.event if report.publish and report.publish.event else report.approval.event
            published = report.publish is not None and report.publish.outcome in (PublishOutcome.POSTED, PublishOutcome.REPLACED)
            if not published:
                # The review buttons stay in place so the approval can be retried.
                await conv.ack(incoming)
                await conv.say(t("moderation.publish_failed", title=escape(event.title)))
                return
            await conv.ack(incoming, t("moderation.approved_toast"))
            await moderation.stamp_review(
                incoming.message_id,
                t("moderation.stamp_approved", title=escape(event.title), admin=escape(conv.actor.name)),
                APPROVE_REACTION,
            )
        case ApprovalOutcome.ALREADY_PUBLISHED:
            await conv.ack(incoming, t("moderation.already_published", title=report.approval.event.title), alert=True)
            await safe_clear_markup(conv.channel, conv.chat_id, incoming.message_id)
        case ApprovalOutcome.NOT_FOUND:
            await conv.ack(incoming, t("moderation.not_found"), alert=True)
            await safe_clear_markup(conv.channel, conv.chat_id, incoming.message_id)
        case ApprovalOutcome.UNEXPECTED_STATE:
            await conv.ack(incoming, t("error.generic"), alert=True)


@router.callback_query(Review.filter(F.decision == REVIEW_REJECT), StateFilter(None))
async def reject_event(callback: CallbackQuery, callback_data: Review, state: FSMContext) -> None:
    conv = conversation_for_callback(callback, state)
    incoming = incoming_from_callback(callback)
    await conv.ack(incoming)
    await REJECT.start(conv, callback_data.event_id, incoming.message_id)


@router.callback_query(AdminControl.filter(F.action == ADMIN_DELETE), StateFilter(None))
async def delete_event(callback: CallbackQuery, callback_data: AdminControl, state: FSMContext) -> None:
    conv = conversation_for_callback(callback, state)
    await conv.ack(incoming_from_callback(callback))
    await ADMIN_DELETE.start(conv, callback_data.event_id)


@router.callback_query(AdminControl.filter(F.action == ADMIN_BAN_DELETE), StateFilter(None))
async def ban_and_delete_event(callback: CallbackQuery, callback_data: AdminControl, state: FSMContext) -> None:
    conv = conversation_for_callback(callback, state)
    incoming = incoming_from_callback(callback)
    await conv.ack(incoming)
    outcome, event = await conv.services.moderation.ban_and_delete(callback_data.event_id, conv.actor.id, conv.actor.name)
    logger.info(f"[ban_and_delete_event] event_id={callback_data.event_id}, admin_id={conv.actor.id}, outcome={outcome.value}")
    if outcome is BanDeleteOutcome.NOT_FOUND:
        await conv.say(t("moderation.not_found"))
        return
    values = {
        "title": escape(event.title),
        "user": format_user_mention(event.submitter_id, event.submitter_name),
    }
    match outcome:
        case BanDeleteOutcome.DONE:
            await safe_clear_markup(conv.channel, conv.chat_id, incoming.message_id)
            await conv.say(t("ban_delete.done", **values))
        case BanDeleteOutcome.ALREADY_BANNED:
            await conv.say(t("ban_delete.already_banned", **values))
        case BanDeleteOutcome.BAN_FAILED | BanDeleteOutcome.DELETE_FAILED:
            await conv.say(t("ban_delete.failed", **values))


@router.message(Command("ban"), StateFilter(None))
async def start_ban(message: Message, state: FSMContext) -> None:
    await BAN.start(conversation_for_message(message, state))


@router.message(Command("unban"), StateFilter(None))
async def start_unban(message: Message, state: FSMContext) -> None:
    await UNBAN.start(conversation_for_message(message, state))


@router.message(Command("blacklist"), StateFilter(None))
async def show_blacklist(message: Message, state: FSMContext) -> None:
    conv = conversation_for_message(message, state)
    banned = await conv.services.blacklist.list_banned()
    if not banned:
        await conv.say(t("blacklist.empty"))
        return
    rules = get_config().events
    lines = [t("blacklist.header", count=len(banned))]
    for entry in banned:
        lines.append(
            t(
                "blacklist.item",
                user=format_user_mention(entry.user_id, entry.user_name),
                user_id=entry.user_id,
                admin=escape(entry.banned_by_name or entry.banned_by),
                when=escape(format_local(entry.banned_at, rules.date_format, rules.tz)),
                reason=escape(entry.reason) if entry.reason else t("blacklist.no_reason"),
            )
        )
    for chunk in chunk_lines(lines):
        await safe_send_text(conv.channel, conv.chat_id, chunk)


@router.message(Command("users"), StateFilter(None))
async def show_submitters(message: Message, state: FSMContext) -> None:
    conv = conversation_for_message(message, state)
    submitters = await conv.services.events.list_submitters()
    if not submitters:
        await conv.say(t("users.empty"))
        return
    lines = [t("users.header", count=len(submitters))]
    for user_id, name, count in submitters:
        lines.append(t("users.item", user=format_user_mention(user_id, name), user_id=user_id, count=count))
    for chunk in chunk_lines(lines):
        await safe_send_text(conv.channel, conv.chat_id, chunk)
