from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Sequence

import asyncpg


class EventStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EDITED_PENDING = "EDITED_PENDING"
    EDITED_APPROVED = "EDITED_APPROVED"


PUBLISHED_STATUSES = (EventStatus.APPROVED, EventStatus.EDITED_APPROVED)


@dataclass
class Event:
    id: str
    title: str
    description: str
    location: str
    categories: tuple[str, ...]
    links: tuple[str, ...]
    group_link: Optional[str]
    image_base64: Optional[str]
    entry_date: datetime
    start_date: datetime
    end_date: datetime
    submitter_id: int
    submitter_name: str
    status: EventStatus
    rejection_reason: Optional[str] = None
    updated_count: int = 0
    message_id: Optional[int] = None
    details_message_id: Optional[int] = None
    pushed_at: Optional[datetime] = None
    pushed_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def message_ids(self) -> tuple[int, ...]:
        return tuple(message_id for message_id in (self.message_id, self.details_message_id) if message_id)

    @property
    def is_published_status(self) -> bool:
        return self.status in PUBLISHED_STATUSES


COLUMNS = """
id, title, description, location, categories, links, group_link, image_base64,
entry_date, start_date, end_date, submitter_id, submitter_name, status,
rejection_reason, updated_count, message_id, details_message_id, pushed_at,
pushed_count, created_at, updated_at
"""


class EventRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get(self, event_id: str) -> Optional[Event]:
        query = f"SELECT {COLUMNS} FROM events WHERE id = $1"
        record = await self._pool.fetchrow(query, event_id)
        return self._to_event(record) if record else None

    async def create(self, data: dict) -> Event:
        query = f"""
        INSERT INTO events (
            id, title, description, location, categories, links, group_link, image_base64,
            entry_date, start_date, end_date, submitter_id, submitter_name, status
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14)
        RETURNING {COLUMNS}
        """
        record = await self._pool.fetchrow(
            query,
            data["id"],
            data["title"],
            data.get("description") or "",
            data["location"],
            list(data.get("categories") or ()),
            list(data.get("links") or ()),
            data.get("group_link"),
            data.get("image_base64"),
            data["entry_date"],
            data["start_date"],
            data["end_date"],
            data["submitter_id"],
            data["submitter_name"],
            EventStatus(data["status"]).value,
        )
        return self._to_event(record)

    async def update(self, event_id: str, data: dict) -> Optional[Event]:
        fields = []
        values = []
        for idx, (key, value) in enumerate(data.items(), start=1):
            if key in {"categories", "links"}:
                value = list(value or ())
            elif isinstance(value, EventStatus):
                value = value.value
            fields.append(f"{key} = ${idx}")
            values.append(value)
        if not fields:
            return await self.get(event_id)
        values.append(event_id)
        placeholders = ", ".join(fields)
        query = f"""
        UPDATE events
        SET {placeholders}, updated_at = NOW()
        WHERE id = ${len(values)}
        RETURNING {COLUMNS}
        """
        record = await self._pool.fetchrow(query, *values)
        return self._to_event(record) if record else None

    async def delete(self, event_id: str) -> bool:
        result = await self._pool.execute("DELETE FROM events WHERE id = $1", event_id)
        return result.endswith(" 1")

    async def list_by_submitter(
        self,
        submitter_id: int,
        statuses: Iterable[EventStatus],
        starts_after: Optional[datetime] = None,
    ) -> Sequence[Event]:
        query = f"""
        SELECT {COLUMNS}
        FROM events
        WHERE submitter_id = $1
          AND status = ANY($2::varchar[])
          AND ($3::timestamptz IS NULL OR start_date >= $3)
        ORDER BY start_date ASC
        """
        records = await self._pool.fetch(query, submitter_id, [status.value for status in statuses], starts_after)
        return [self._to_event(record) for record in records]

    async def list_overlapping(
        self,
        window_start: datetime,
        window_end: datetime,
        statuses: Iterable[EventStatus],
    ) -> Sequence[Event]:
        query = f"""
        SELECT {COLUMNS}
        FROM events
        WHERE start_date < $2
          AND end_date >= $1
          AND status = ANY($3::varchar[])
        ORDER BY start_date ASC
        """
        records = await self._pool.fetch(query, window_start, window_end, [status.value for status in statuses])
        return [self._to_event(record) for record in records]

    async def list_ended_before(self, cutoff: datetime) -> Sequence[Event]:
        query = f"""
        SELECT {COLUMNS}
        FROM events
        WHERE end_date < $1
        ORDER BY end_date ASC
        """
        records = await self._pool.fetch(query, cutoff)
        return [self._to_event(record) for record in records]

    async def list_submitters(self) -> Sequence[tuple[int, str, int]]:
        query = """
        SELECT submitter_id, MAX(submitter_name) AS submitter_name, COUNT(*) AS total
        FROM events
        GROUP BY submitter_id
        ORDER BY total DESC, submitter_id ASC
        """
        records = await self._pool.fetch(query)
        return [(record["submitter_id"], record["submitter_name"], record["total"]) for record in records]

    def _to_event(self, record: asyncpg.Record) -> Event:
        return Event(
            id=record["id"],
            title=record["title"],
            description=record["description"],
            location=record["location"],
            categories=tuple(record["categories"] or ()),
            links=tuple(record["links"] or ()),
            group_link=record["group_link"],
            image_base64=record["image_base64"],
            entry_date=record["entry_date"],
            start_date=record["start_date"],
            end_date=record["end_date"],
            submitter_id=record["submitter_id"],
            submitter_name=record["submitter_name"],
            status=EventStatus(record["status"]),
            rejection_reason=record["rejection_reason"],
            updated_count=record["updated_count"],
            message_id=record["message_id"],
            details_message_id=record["details_message_id"],
            pushed_at=record["pushed_at"],
            pushed_count=record["pushed_count"],
            created_at=record["created_at"],
            updated_at=record["updated_at"],
        )
