from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

import asyncpg


@dataclass
class BlacklistedUser:
    user_id: int
    user_name: Optional[str]
    banned_by: int
    banned_by_name: Optional[str]
    reason: Optional[str]
    banned_at: datetime


class BlacklistRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get(self, user_id: int) -> Optional[BlacklistedUser]:
        query = """
        SELECT user_id, user_name, banned_by, banned_by_name, reason, banned_at
        FROM blacklisted_users
        WHERE user_id = $1
        """
        record = await self._pool.fetchrow(query, user_id)
        return self._to_user(record) if record else None

    async def create(
        self,
        user_id: int,
        user_name: Optional[str],
        banned_by: int,
        banned_by_name: Optional[str],
        reason: Optional[str],
    ) -> BlacklistedUser:
        # Raises asyncpg.UniqueViolationError for an existing entry.
        query = """
        INSERT INTO blacklisted_users (user_id, user_name, banned_by, banned_by_name, reason, banned_at)
        VALUES ($1, $2, $3, $4, $5, NOW())
        RETURNING user_id, user_name, banned_by, banned_by_name, reason, banned_at
        """
        record = await self._pool.fetchrow(query, user_id, user_name, banned_by, banned_by_name, reason)
        return self._to_user(record)

    async def delete(self, user_id: int) -> bool:
        result = await self._pool.execute("DELETE FROM blacklisted_users WHERE user_id = $1", user_id)
        return result.endswith(" 1")

    async def list_all(self) -> Sequence[BlacklistedUser]:
        query = """
        SELECT user_id, user_name, banned_by, banned_by_name, reason, banned_at
        FROM blacklisted_users
        ORDER BY banned_at DESC
        """
        records = await self._pool.fetch(query)
        return [self._to_user(record) for record in records]

    def _to_user(self, record: asyncpg.Record) -> BlacklistedUser:
        return BlacklistedUser(
            user_id=record["user_id"],
            user_name=record["user_name"],
            banned_by=record["banned_by"],
            banned_by_name=record["banned_by_name"],
            reason=record["reason"],
            banned_at=record["banned_at"],
        )
