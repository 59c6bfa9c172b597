"""Per-actor fixed-window admission control."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from parley.core.metrics import RATE_LIMITED_TOTAL
from parley.errors import RateLimitedError

logger = logging.getLogger(__name__)

DEFAULT_MAX_CALLS = 10
DEFAULT_WINDOW_SECONDS = 60.0


@dataclass(slots=True)
class RateLimitEntry:
    count: int
    reset_at: float


class SlidingWindowRateLimiter:
    """Process-local limiter backed by a lock-guarded map.

    Entries are swept lazily on every call and never persisted, so a restart
    or a second process starts from zero.
    """

    def __init__(
        self,
        max_calls: int = DEFAULT_MAX_CALLS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_calls < 1:
            raise ValueError("max_calls must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self._max_calls = max_calls
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, RateLimitEntry] = {}

    def check_and_consume(self, actor_id: str) -> None:
        with self._lock:
            now = self._clock()
            self._sweep_unlocked(now)

            entry = self._entries.get(actor_id)
            if entry is None or now > entry.reset_at:
                self._entries[actor_id] = RateLimitEntry(count=1, reset_at=now + self._window_seconds)
                return

            if entry.count >= self._max_calls:
                RATE_LIMITED_TOTAL.inc()
                logger.info(
                    "rate limit reached for actor=%s (%d calls, resets in %.1fs)",
                    actor_id,
                    entry.count,
                    entry.reset_at - now,
                )
                raise RateLimitedError(f"rate limit of {self._max_calls} calls reached")

            entry.count += 1

    def tracked_actors(self) -> int:
        with self._lock:
            return len(self._entries)

    def _sweep_unlocked(self, now: float) -> None:
        expired = [actor for actor, entry in self._entries.items() if now > entry.reset_at]
        for actor in expired:
            del self._entries[actor]


__all__ = [
    "DEFAULT_MAX_CALLS",
    "DEFAULT_WINDOW_SECONDS",
    "RateLimitEntry",
    "SlidingWindowRateLimiter",
]
