"""Reusable retry policy for provider calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeAlias, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Backoff: TypeAlias = Callable[[int], float]
RetryPredicate: TypeAlias = Callable[[BaseException], bool]
RetryHook: TypeAlias = Callable[[int, BaseException], None]


def linear_backoff(base_seconds: float) -> Backoff:
    """Delay of ``base_seconds * attempt`` after the given failed attempt."""

    def _delay(attempt: int) -> float:
        return base_seconds * attempt

    return _delay


def _retry_everything(exc: BaseException) -> bool:
    return isinstance(exc, Exception)


@dataclass(slots=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff: Backoff = field(default_factory=lambda: linear_backoff(0.5))
    retry_on: RetryPredicate = _retry_everything
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    async def run(
        self,
        fn: Callable[[], Awaitable[T]],
        *,
        on_retry: RetryHook | None = None,
    ) -> T:
        """Await ``fn`` until it succeeds, re-raising the last error when out of attempts."""
        attempt = 1
        while True:
            try:
                return await fn()
            except Exception as exc:
                if attempt >= self.max_attempts or not self.retry_on(exc):
                    raise
                delay = self.backoff(attempt)
                logger.warning(
                    "attempt %d/%d failed (%s); retrying in %.2fs",
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                if on_retry is not None:
                    on_retry(attempt, exc)
                await self.sleep(delay)
                attempt += 1


__all__ = ["RetryPolicy", "linear_backoff"]
