import asyncpg

from .events import Event


class EventArchiveRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def create(self, event: Event) -> None:
        query = """
        INSERT INTO event_archive (
            id, title, description, location, categories, links, group_link, image_base64,
            entry_date, start_date, end_date, submitter_id, submitter_name, status,
            rejection_reason, updated_count, message_id, details_message_id, pushed_at,
            pushed_count, created_at, updated_at, archived_at
        )
        VALUES (
            $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14,
            $15, $16, $17, $18, $19, $20, $21, $22, NOW()
        )
        ON CONFLICT (id) DO NOTHING
        """
        await self._pool.execute(
            query,
            event.id,
            event.title,
            event.description,
            event.location,
            list(event.categories),
            list(event.links),
            event.group_link,
            event.image_base64,
            event.entry_date,
            event.start_date,
            event.end_date,
            event.submitter_id,
            event.submitter_name,
            event.status.value,
            event.rejection_reason,
            event.updated_count,
            event.message_id,
            event.details_message_id,
            event.pushed_at,
            event.pushed_count,
            event.created_at,
            event.updated_at,
        )
