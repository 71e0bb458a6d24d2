import logging
import time
from collections import deque
from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject, User

from eventbot.utils.di import get_services
from eventbot.utils.i18n import t
from eventbot.utils.messaging import safe_answer_callback, safe_send_text

logger = logging.getLogger(__name__)


class ThrottlingMiddleware(BaseMiddleware):
    """Sliding-window limit per actor; one notice per window, later updates are dropped silently."""

    def __init__(self, requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._requests = requests
        self._window = window_seconds
        self._clock = clock
        self._hits: dict[int, deque[float]] = {}
        self._warned_until: dict[int, float] = {}
        self._next_sweep = 0.0

    @property
    def tracked_users(self) -> int:
        return len(self._hits.keys() | self._warned_until.keys())

    def _sweep(self, now: float) -> None:
        """Forget actors with no hit and no warning inside the current window; runs at most once per window."""
        if now < self._next_sweep:
            return
        self._next_sweep = now + self._window
        for user_id in [uid for uid, hits in self._hits.items() if not hits or now - hits[-1] >= self._window]:
            del self._hits[user_id]
        for user_id in [uid for uid, until in self._warned_until.items() if until <= now]:
            del self._warned_until[user_id]

    def allow(self, user_id: int) -> bool:
        now = self._clock()
        self._sweep(now)
        hits = self._hits.setdefault(user_id, deque())
        while hits and now - hits[0] >= self._window:
            hits.popleft()
        if len(hits) >= self._requests:
            return False
        hits.append(now)
        return True

    def should_warn(self, user_id: int) -> bool:
        now = self._clock()
        if self._warned_until.get(user_id, 0.0) > now:
            return False
        self._warned_until[user_id] = now + self._window
        return True

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        user: User | None = data.get("event_from_user")
        if user is None or self.allow(user.id):
            return await handler(event, data)
        if not self.should_warn(user.id):
            return None
        logger.info(f"[throttling] rate limit hit: user_id={user.id}")
        channel = get_services().channel
        if isinstance(event, CallbackQuery):
            await safe_answer_callback(channel, event.id, text=t("throttling.slow_down"))
        elif isinstance(event, Message):
            await safe_send_text(channel, event.chat.id, t("throttling.slow_down"))
        return None
