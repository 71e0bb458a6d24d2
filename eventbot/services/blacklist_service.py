import logging
from enum import Enum
from typing import Sequence

import asyncpg

from eventbot.database.pool import get_pool
from eventbot.database.repositories.blacklist import BlacklistedUser, BlacklistRepository

logger = logging.getLogger(__name__)


class BanOutcome(Enum):
    BANNED = "banned"
    ALREADY_BANNED = "already_banned"
    FAILED = "failed"


class UnbanOutcome(Enum):
    UNBANNED = "unbanned"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class BlacklistService:
    def __init__(self, repository: BlacklistRepository) -> None:
        self._repository = repository

    async def is_banned(self, user_id: int) -> bool:
        return await self._repository.get(user_id) is not None

    async def ban(
        self,
        user_id: int,
        user_name: str | None,
        banned_by: int,
        banned_by_name: str | None,
        reason: str | None = None,
    ) -> BanOutcome:
        if await self._repository.get(user_id) is not None:
            return BanOutcome.ALREADY_BANNED
        try:
            await self._repository.create(user_id, user_name, banned_by, banned_by_name, reason)
        except asyncpg.UniqueViolationError:
            return BanOutcome.ALREADY_BANNED
        except asyncpg.PostgresError as e:
            logger.error(f"[ban] user_id={user_id}, banned_by={banned_by}, error={e}")
            return BanOutcome.FAILED
        logger.info(f"[ban] user_id={user_id}, banned_by={banned_by}")
        return BanOutcome.BANNED

    async def unban(self, user_id: int) -> UnbanOutcome:
        try:
            removed = await self._repository.delete(user_id)
        except asyncpg.PostgresError as e:
            logger.error(f"[unban] user_id={user_id}, error={e}")
            return UnbanOutcome.FAILED
        if not removed:
            return UnbanOutcome.NOT_FOUND
        logger.info(f"[unban] user_id={user_id}")
        return UnbanOutcome.UNBANNED

    async def list_banned(self) -> Sequence[BlacklistedUser]:
        return await self._repository.list_all()


def build_blacklist_service() -> BlacklistService:
    pool = get_pool()
    repository = BlacklistRepository(pool)
    return BlacklistService(repository)
