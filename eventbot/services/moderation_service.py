import base64
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

import asyncpg
from aiogram.types import InlineKeyboardMarkup

from config import Config
from eventbot.database.repositories.events import Event
from eventbot.keyboards import moderation_controls_keyboard, review_keyboard
from eventbot.services.blacklist_service import BanOutcome, BlacklistService
from eventbot.services.event_service import (
    ApprovalOutcome,
    ApprovalResult,
    EventService,
    PushEligibility,
    RejectionOutcome,
    RejectionResult,
)
from eventbot.utils.formatters import (
    escape,
    format_event_caption,
    format_event_details,
    format_event_text,
    format_moderation_controls,
    format_review_footer,
    review_header,
    split_caption,
)
from eventbot.utils.i18n import t
from eventbot.utils.messaging import (
    TRANSPORT_ERRORS,
    Channel,
    Delivery,
    edit_or_replace,
    safe_delete_by_id,
    safe_react,
    safe_send_text,
)

logger = logging.getLogger(__name__)

PUBLISH_ATTEMPTS = 2


class PublishOutcome(Enum):
    POSTED = "posted"
    REPLACED = "replaced"
    FAILED = "failed"
    INVALID_STATE = "invalid_state"


class PushOutcome(Enum):
    PUSHED = "pushed"
    NOT_FOUND = "not_found"
    NOT_PUBLISHED = "not_published"
    ALREADY_PUSHED = "already_pushed"
    TOO_RECENT = "too_recent"
    ALREADY_ENDED = "already_ended"
    FAILED = "failed"


class DeleteOutcome(Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class BanDeleteOutcome(Enum):
    DONE = "done"
    NOT_FOUND = "not_found"
    ALREADY_BANNED = "already_banned"
    BAN_FAILED = "ban_failed"
    DELETE_FAILED = "delete_failed"


_PUSH_REFUSALS = {
    PushEligibility.NOT_PUBLISHED: PushOutcome.NOT_PUBLISHED,
    PushEligibility.ALREADY_PUSHED: PushOutcome.ALREADY_PUSHED,
    PushEligibility.TOO_RECENT: PushOutcome.TOO_RECENT,
    PushEligibility.ALREADY_ENDED: PushOutcome.ALREADY_ENDED,
}


@dataclass(frozen=True)
class PostedMessages:
    message_id: int
    details_message_id: Optional[int] = None


@dataclass(frozen=True)
class PublishResult:
    outcome: PublishOutcome
    event: Optional[Event] = None


@dataclass(frozen=True)
class ApprovalReport:
    approval: ApprovalResult
    publish: Optional[PublishResult] = None

    @property
    def outcome(self) -> ApprovalOutcome:
        return self.approval.outcome


class ModerationService:
    """Publishing pipeline: admin review, public posts and the pointers to them."""

    def __init__(
        self,
        events: EventService,
        blacklist: BlacklistService,
        channel: Channel,
        config: Config,
    ) -> None:
        self._events = events
        self._blacklist = blacklist
        self._channel = channel
        self._config = config

    @property
    def admin_chat_id(self) -> int:
        return self._config.venues.admin_chat_id

    @property
    def public_chat_id(self) -> int | str:
        return self._config.venues.channel_id

    async def send_event(
        self,
        chat_id: int | str,
        content: Any,
        *,
        header: str | None = None,
        footer_lines: Iterable[str] = (),
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> PostedMessages:
        """Render ``content`` for one venue; raises on transport failure."""
        rules = self._config.events
        footer = list(footer_lines)
        text = format_event_text(content, rules, header=header, footer_lines=footer)
        if not content.image_base64:
            message_id = await self._channel.send_text(chat_id, text, reply_markup=reply_markup)
            return PostedMessages(message_id)
        photo = base64.b64decode(content.image_base64)
        caption, follow_up = split_caption(
            text,
            format_event_caption(content, rules, header=header, footer_lines=footer),
            format_event_details(content),
        )
        if follow_up is None:
            message_id = await self._channel.send_photo(chat_id, photo, caption=caption, reply_markup=reply_markup)
            return PostedMessages(message_id)
        message_id = await self._channel.send_photo(chat_id, photo, caption=caption)
        try:
            details_id = await self._channel.send_text(chat_id, follow_up, reply_markup=reply_markup)
        except TRANSPORT_ERRORS:
            await safe_delete_by_id(self._channel, chat_id, message_id)
            raise
        return PostedMessages(message_id, details_id)

    async def notify_admins(self, event: Event, *, is_edit: bool = False) -> bool:
        try:
            await self.send_event(
                self.admin_chat_id,
                event,
                header=review_header(is_edit=is_edit),
                footer_lines=format_review_footer(event),
                reply_markup=review_keyboard(event.id),
            )
        except TRANSPORT_ERRORS as e:
            logger.error(f"[notify_admins] event_id={event.id}, error={e}")
            return False
        logger.info(f"[notify_admins] event_id={event.id}, is_edit={is_edit}")
        return True

    async def post_moderation_controls(self, event: Event, *, is_push: bool = False) -> Optional[int]:
        text = format_moderation_controls(event, self._config.events, is_push=is_push)
        message_id = await safe_send_text(
            self._channel,
            self.admin_chat_id,
            text,
            reply_markup=moderation_controls_keyboard(event.id),
        )
        if message_id is None:
            logger.error(f"[post_moderation_controls] event_id={event.id} controls were not posted")
        return message_id

    async def stamp_review(self, message_id: Optional[int], text: str, emoji: str) -> Delivery:
        """Mark a review message with the decision taken on it."""
        delivery = await edit_or_replace(self._channel, self.admin_chat_id, message_id, text)
        logger.info(f"[stamp_review] message_id={message_id}, outcome={delivery.outcome.value}")
        await safe_react(self._channel, self.admin_chat_id, delivery.message_id, emoji)
        return delivery

    async def publish(self, event: Event) -> PublishResult:
        if not event.is_published_status:
            logger.error(f"[publish] event_id={event.id} cannot be published with status={event.status.value}")
            return PublishResult(PublishOutcome.INVALID_STATE, event)
        previous = event.message_ids
        posted = await self._post_public(event)
        if posted is None:
            return PublishResult(PublishOutcome.FAILED, event)
        updated = await self._events.record_publication(event.id, posted.message_id, posted.details_message_id)
        await self._remove_public_messages(previous)
        current = updated or event
        await self.post_moderation_controls(current)
        outcome = PublishOutcome.REPLACED if previous else PublishOutcome.POSTED
        logger.info(f"[publish] event_id={event.id}, outcome={outcome.value}, message_id={posted.message_id}")
        return PublishResult(outcome, current)

    async def approve(self, event_id: str) -> ApprovalReport:
        approval = await self._events.approve(event_id)
        if approval.outcome is not ApprovalOutcome.APPROVED or approval.event is None:
            return ApprovalReport(approval)
        publish = await self.publish(approval.event)
        if publish.outcome not in (PublishOutcome.POSTED, PublishOutcome.REPLACED):
            # Nothing reached the channel, so the event goes back to review and Approve can be pressed again.
            restored = await self._events.revert_approval(approval.previous) if approval.previous else None
            logger.warning(f"[approve] event_id={event_id} was not published ({publish.outcome.value}), approval reverted")
            return ApprovalReport(approval, PublishResult(publish.outcome, restored or publish.event))
        event = approval.event
        notified = await safe_send_text(
            self._channel,
            event.submitter_id,
            t("approve.submitter_notice", title=escape(event.title)),
        )
        if notified is None:
            logger.warning(f"[approve] event_id={event_id}, submitter_id={event.submitter_id} was not notified")
        return ApprovalReport(approval, publish)

    async def reject(self, event_id: str, reason: str) -> RejectionResult:
        result = await self._events.reject(event_id, reason)
        if result.outcome is RejectionOutcome.REJECTED and result.event is not None:
            event = result.event
            notified = await safe_send_text(
                self._channel,
                event.submitter_id,
                t("reject.submitter_notice", title=escape(event.title), reason=escape(reason)),
            )
            if notified is None:
                logger.warning(f"[reject] event_id={event_id}, submitter_id={event.submitter_id} was not notified")
        return result

    async def push(self, event_id: str, requester_id: int, now: datetime | None = None) -> PushOutcome:
        event = await self._events.get_event(event_id)
        if event is None or event.submitter_id != requester_id:
            return PushOutcome.NOT_FOUND
        eligibility = self._events.push_eligibility(event, now)
        if eligibility is not PushEligibility.ELIGIBLE:
            return _PUSH_REFUSALS[eligibility]
        previous = event.message_ids
        posted = await self._post_public(event)
        if posted is None:
            return PushOutcome.FAILED
        updated = await self._events.record_push(event.id, posted.message_id, posted.details_message_id, now)
        await self._remove_public_messages(previous)
        await self.post_moderation_controls(updated or event, is_push=True)
        logger.info(f"[push] event_id={event_id}, message_id={posted.message_id}")
        return PushOutcome.PUSHED

    async def delete_event(self, event_id: str) -> DeleteOutcome:
        event = await self._events.get_event(event_id)
        if event is None:
            return DeleteOutcome.NOT_FOUND
        try:
            deleted = await self._events.delete(event_id)
        except asyncpg.PostgresError as e:
            logger.error(f"[delete_event] event_id={event_id}, error={e}")
            return DeleteOutcome.FAILED
        if not deleted:
            return DeleteOutcome.NOT_FOUND
        # Channel posts are removed only after the row is gone.
        await self._remove_public_messages(event.message_ids)
        logger.info(f"[delete_event] event_id={event_id}")
        return DeleteOutcome.DELETED

    async def ban_and_delete(self, event_id: str, admin_id: int, admin_name: str) -> tuple[BanDeleteOutcome, Optional[Event]]:
        event = await self._events.get_event(event_id)
        if event is None:
            return BanDeleteOutcome.NOT_FOUND, None
        ban = await self._blacklist.ban(
            event.submitter_id,
            event.submitter_name,
            admin_id,
            admin_name,
            reason=t("blacklist.ban_delete_reason", title=event.title),
        )
        if ban is BanOutcome.ALREADY_BANNED:
            return BanDeleteOutcome.ALREADY_BANNED, event
        if ban is not BanOutcome.BANNED:
            return BanDeleteOutcome.BAN_FAILED, event
        deleted = await self.delete_event(event_id)
        if deleted is not DeleteOutcome.DELETED:
            # Roll the ban back so the admin never sees half of the action applied.
            await self._blacklist.unban(event.submitter_id)
            logger.error(f"[ban_and_delete] event_id={event_id} delete failed ({deleted.value}), ban reverted")
            return BanDeleteOutcome.DELETE_FAILED, event
        return BanDeleteOutcome.DONE, event

    async def deliver_search_results(self, chat_id: int, events: Sequence[Event], date_text: str) -> int:
        if not events:
            await safe_send_text(self._channel, chat_id, t("search.no_results", date=escape(date_text)))
            return 0
        delivered = 0
        total = len(events)
        for index, event in enumerate(events, start=1):
            header = t("search.result_header", index=index, total=total, date=escape(date_text))
            try:
                await self.send_event(chat_id, event, header=header)
                delivered += 1
            except TRANSPORT_ERRORS as e:
                logger.warning(f"[deliver_search_results] event_id={event.id}, chat_id={chat_id}, error={e}")
                await safe_send_text(self._channel, chat_id, t("search.item_failed", index=index))
        return delivered

    async def _post_public(self, event: Event) -> Optional[PostedMessages]:
        for attempt in range(1, PUBLISH_ATTEMPTS + 1):
            try:
                return await self.send_event(self.public_chat_id, event)
            except TRANSPORT_ERRORS as e:
                logger.warning(f"[post_public] event_id={event.id}, attempt={attempt}, error={e}")
        logger.error(f"[post_public] event_id={event.id} could not be posted, stored message pointer left unchanged")
        return None

    async def _remove_public_messages(self, message_ids: Iterable[int]) -> None:
        for message_id in message_ids:
            await safe_delete_by_id(self._channel, self.public_chat_id, message_id)


def build_moderation_service(
    events: EventService,
    blacklist: BlacklistService,
    channel: Channel,
    config: Config,
) -> ModerationService:
    return ModerationService(events, blacklist, channel, config)
