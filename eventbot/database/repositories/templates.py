from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

import asyncpg


@dataclass
class EventTemplate:
    id: str
    owner_id: int
    owner_name: str
    name: str
    title: str
    description: str
    location: str
    categories: tuple[str, ...]
    links: tuple[str, ...]
    group_link: Optional[str]
    image_base64: Optional[str]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


COLUMNS = """
id, owner_id, owner_name, name, title, description, location, categories, links,
group_link, image_base64, created_at, updated_at
"""


class TemplateRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get(self, template_id: str) -> Optional[EventTemplate]:
        query = f"SELECT {COLUMNS} FROM event_templates WHERE id = $1"
        record = await self._pool.fetchrow(query, template_id)
        return self._to_template(record) if record else None

    async def list_by_owner(self, owner_id: int) -> Sequence[EventTemplate]:
        query = f"""
        SELECT {COLUMNS}
        FROM event_templates
        WHERE owner_id = $1
        ORDER BY created_at DESC
        """
        records = await self._pool.fetch(query, owner_id)
        return [self._to_template(record) for record in records]

    async def count_by_owner(self, owner_id: int) -> int:
        value = await self._pool.fetchval("SELECT COUNT(*) FROM event_templates WHERE owner_id = $1", owner_id)
        return int(value or 0)

    async def create(self, data: dict) -> EventTemplate:
        query = f"""
        INSERT INTO event_templates (
            id, owner_id, owner_name, name, title, description, location,
            categories, links, group_link, image_base64
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
        RETURNING {COLUMNS}
        """
        record = await self._pool.fetchrow(
            query,
            data["id"],
            data["owner_id"],
            data["owner_name"],
            data["name"],
            data["title"],
            data.get("description") or "",
            data["location"],
            list(data.get("categories") or ()),
            list(data.get("links") or ()),
            data.get("group_link"),
            data.get("image_base64"),
        )
        return self._to_template(record)

    async def update(self, template_id: str, data: dict) -> Optional[EventTemplate]:
        fields = []
        values = []
        for idx, (key, value) in enumerate(data.items(), start=1):
            if key in {"categories", "links"}:
                value = list(value or ())
            fields.append(f"{key} = ${idx}")
            values.append(value)
        if not fields:
            return await self.get(template_id)
        values.append(template_id)
        query = f"""
        UPDATE event_templates
        SET {", ".join(fields)}, updated_at = NOW()
        WHERE id = ${len(values)}
        RETURNING {COLUMNS}
        """
        record = await self._pool.fetchrow(query, *values)
        return self._to_template(record) if record else None

    async def delete(self, template_id: str) -> bool:
        result = await self._pool.execute("DELETE FROM event_templates WHERE id = $1", template_id)
        return result.endswith(" 1")

    def _to_template(self, record: asyncpg.Record) -> EventTemplate:
        return EventTemplate(
            id=record["id"],
            owner_id=record["owner_id"],
            owner_name=record["owner_name"],
            name=record["name"],
            title=record["title"],
            description=record["description"],
            location=record["location"],
            categories=tuple(record["categories"] or ()),
            links=tuple(record["links"] or ()),
            group_link=record["group_link"],
            image_base64=record["image_base64"],
            created_at=record["created_at"],
            updated_at=record["updated_at"],
        )
