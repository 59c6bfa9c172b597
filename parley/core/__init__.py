from __future__ import annotations

from parley.core.history import HistoryWindowOptimizer
from parley.core.pager import CursorPager
from parley.core.rate_limiter import SlidingWindowRateLimiter
from parley.core.retry import RetryPolicy, linear_backoff

__all__ = [
    "CursorPager",
    "HistoryWindowOptimizer",
    "RetryPolicy",
    "SlidingWindowRateLimiter",
    "linear_backoff",
]
