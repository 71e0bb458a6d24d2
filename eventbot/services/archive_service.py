import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from eventbot.database.pool import get_pool
from eventbot.database.repositories.archive import EventArchiveRepository
from eventbot.database.repositories.events import EventRepository
from eventbot.utils.dates import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveReport:
    archived: int = 0
    failed: int = 0


class ArchiveService:
    def __init__(
        self,
        events: EventRepository,
        archive: EventArchiveRepository,
        retention: timedelta,
    ) -> None:
        self._events = events
        self._archive = archive
        self._retention = retention

    async def sweep(self, now: datetime | None = None) -> ArchiveReport:
        cutoff = (now or utcnow()) - self._retention
        candidates = await self._events.list_ended_before(cutoff)
        archived = 0
        failed = 0
        for event in candidates:
            # Copy first: a failed delete leaves a harmless duplicate, never a lost event.
            try:
                await self._archive.create(event)
            except Exception:
                failed += 1
                logger.exception(f"[archive_sweep] copy failed: event_id={event.id}")
                continue
            try:
                await self._events.delete(event.id)
            except Exception:
                failed += 1
                logger.exception(f"[archive_sweep] delete failed after copy: event_id={event.id}")
                continue
            archived += 1
        if candidates:
            logger.info(f"[archive_sweep] cutoff={cutoff.isoformat()}, archived={archived}, failed={failed}")
        return ArchiveReport(archived=archived, failed=failed)


def build_archive_service(retention_hours: int) -> ArchiveService:
    pool = get_pool()
    return ArchiveService(
        EventRepository(pool),
        EventArchiveRepository(pool),
        timedelta(hours=retention_hours),
    )
