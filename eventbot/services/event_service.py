import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Sequence
from uuid import uuid4

from config import EventRules
from eventbot.database.pool import get_pool
from eventbot.database.repositories.events import PUBLISHED_STATUSES, Event, EventRepository, EventStatus
from eventbot.services.draft import Draft
from eventbot.utils.dates import day_bounds, utcnow

logger = logging.getLogger(__name__)

_APPROVAL_TRANSITIONS = {
    EventStatus.PENDING: EventStatus.APPROVED,
    EventStatus.REJECTED: EventStatus.APPROVED,
    EventStatus.EDITED_PENDING: EventStatus.EDITED_APPROVED,
}


class ApprovalOutcome(Enum):
    APPROVED = "approved"
    ALREADY_PUBLISHED = "already_published"
    NOT_FOUND = "not_found"
    UNEXPECTED_STATE = "unexpected_state"


class RejectionOutcome(Enum):
    REJECTED = "rejected"
    ALREADY_PUBLISHED = "already_published"
    NOT_FOUND = "not_found"


class PushEligibility(Enum):
    ELIGIBLE = "eligible"
    NOT_PUBLISHED = "not_published"
    ALREADY_PUSHED = "already_pushed"
    TOO_RECENT = "too_recent"
    ALREADY_ENDED = "already_ended"


@dataclass(frozen=True)
class ApprovalResult:
    outcome: ApprovalOutcome
    event: Optional[Event] = None
    previous: Optional[Event] = None


@dataclass(frozen=True)
class RejectionResult:
    outcome: RejectionOutcome
    event: Optional[Event] = None


class EventService:
    def __init__(self, repository: EventRepository, rules: EventRules) -> None:
        self._repository = repository
        self._rules = rules

    @property
    def rules(self) -> EventRules:
        return self._rules

    async def get_event(self, event_id: str) -> Event | None:
        return await self._repository.get(event_id)

    async def create_from_draft(self, draft: Draft, submitter_id: int, submitter_name: str) -> Event:
        status = EventStatus.PENDING if self._rules.require_approval else EventStatus.APPROVED
        data = {
            "id": uuid4().hex,
            **draft.content_fields(),
            "entry_date": draft.entry_date,
            "start_date": draft.start_date,
            "end_date": draft.end_date,
            "submitter_id": submitter_id,
            "submitter_name": submitter_name,
            "status": status,
        }
        event = await self._repository.create(data)
        logger.info(f"[create_from_draft] event_id={event.id}, submitter_id={submitter_id}, status={event.status.value}")
        return event

    async def apply_edit(self, event_id: str, draft: Draft) -> Event | None:
        event = await self._repository.get(event_id)
        if event is None:
            return None
        status = EventStatus.EDITED_PENDING if self._rules.require_approval else EventStatus.EDITED_APPROVED
        data = {
            **draft.content_fields(),
            "entry_date": draft.entry_date,
            "start_date": draft.start_date,
            "end_date": draft.end_date,
            "status": status,
            "updated_count": event.updated_count + 1,
        }
        updated = await self._repository.update(event_id, data)
        if updated is not None:
            logger.info(f"[apply_edit] event_id={event_id}, status={updated.status.value}, updated_count={updated.updated_count}")
        return updated

    async def list_upcoming_published(self, submitter_id: int, now: datetime | None = None) -> Sequence[Event]:
        return await self._repository.list_by_submitter(submitter_id, PUBLISHED_STATUSES, starts_after=now or utcnow())

    def can_edit(self, event: Event) -> bool:
        limit = self._rules.max_event_edits
        return limit <= 0 or event.updated_count < limit

    async def list_pushable(self, submitter_id: int, now: datetime | None = None) -> Sequence[Event]:
        current = now or utcnow()
        events = await self._repository.list_by_submitter(submitter_id, PUBLISHED_STATUSES)
        return [event for event in events if self.push_eligibility(event, current) is PushEligibility.ELIGIBLE]

    def push_eligibility(self, event: Event, now: datetime | None = None) -> PushEligibility:
        current = now or utcnow()
        if not event.is_published_status:
            return PushEligibility.NOT_PUBLISHED
        if event.pushed_count > 0:
            return PushEligibility.ALREADY_PUSHED
        if event.end_date <= current:
            return PushEligibility.ALREADY_ENDED
        created_at = event.created_at or current
        if current - created_at < timedelta(days=self._rules.push_min_age_days):
            return PushEligibility.TOO_RECENT
        return PushEligibility.ELIGIBLE

    async def approve(self, event_id: str) -> ApprovalResult:
        event = await self._repository.get(event_id)
        if event is None:
            return ApprovalResult(ApprovalOutcome.NOT_FOUND)
        if event.is_published_status:
            logger.info(f"[approve] event_id={event_id} already published, status={event.status.value}")
            return ApprovalResult(ApprovalOutcome.ALREADY_PUBLISHED, event)
        target = _APPROVAL_TRANSITIONS.get(event.status)
        if target is None:
            logger.error(f"[approve] event_id={event_id} has unexpected status={event.status.value}")
            return ApprovalResult(ApprovalOutcome.UNEXPECTED_STATE, event)
        updated = await self._repository.update(event_id, {"status": target, "rejection_reason": None})
        if updated is None:
            return ApprovalResult(ApprovalOutcome.NOT_FOUND)
        logger.info(f"[approve] event_id={event_id}, {event.status.value} -> {updated.status.value}")
        return ApprovalResult(ApprovalOutcome.APPROVED, updated, previous=event)

    async def revert_approval(self, previous: Event) -> Event | None:
        """Put an approved event that never reached the channel back into its reviewed state."""
        restored = await self._repository.update(
            previous.id,
            {"status": previous.status, "rejection_reason": previous.rejection_reason},
        )
        if restored is not None:
            logger.info(f"[revert_approval] event_id={previous.id}, status -> {previous.status.value}")
        return restored

    async def reject(self, event_id: str, reason: str) -> RejectionResult:
        event = await self._repository.get(event_id)
        if event is None:
            return RejectionResult(RejectionOutcome.NOT_FOUND)
        if event.is_published_status:
            return RejectionResult(RejectionOutcome.ALREADY_PUBLISHED, event)
        updated = await self._repository.update(
            event_id,
            {"status": EventStatus.REJECTED, "rejection_reason": reason},
        )
        if updated is None:
            return RejectionResult(RejectionOutcome.NOT_FOUND)
        logger.info(f"[reject] event_id={event_id}, {event.status.value} -> REJECTED")
        return RejectionResult(RejectionOutcome.REJECTED, updated)

    async def record_publication(self, event_id: str, message_id: int, details_message_id: int | None) -> Event | None:
        return await self._repository.update(
            event_id,
            {"message_id": message_id, "details_message_id": details_message_id},
        )

    async def record_push(
        self,
        event_id: str,
        message_id: int,
        details_message_id: int | None,
        now: datetime | None = None,
    ) -> Event | None:
        return await self._repository.update(
            event_id,
            {
                "message_id": message_id,
                "details_message_id": details_message_id,
                "pushed_at": now or utcnow(),
                "pushed_count": 1,
            },
        )

    async def delete(self, event_id: str) -> bool:
        return await self._repository.delete(event_id)

    async def search_day(self, day: date) -> Sequence[Event]:
        window_start, window_end = day_bounds(day, self._rules.tz)
        events = await self._repository.list_overlapping(window_start, window_end, PUBLISHED_STATUSES)
        return sorted(events, key=lambda event: event.start_date)

    async def list_submitters(self) -> Sequence[tuple[int, str, int]]:
        return await self._repository.list_submitters()


def build_event_service(rules: EventRules) -> EventService:
    pool = get_pool()
    repository = EventRepository(pool)
    return EventService(repository, rules)
