"""Prometheus metrics for the conversation pipeline.

All metric objects are module-level singletons registered on the default
registry.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from prometheus_client import Counter, Histogram, generate_latest

TURNS_TOTAL = Counter(
    "parley_turns_total", "Turns sent through the orchestrator", ["surface", "outcome"]
)
TURN_DURATION_SECONDS = Histogram(
    "parley_turn_duration_seconds", "Send-turn duration in seconds", ["surface"]
)
LLM_CALLS_TOTAL = Counter("parley_llm_calls_total", "Total generative provider calls", ["model"])
LLM_RETRIES_TOTAL = Counter(
    "parley_llm_retries_total", "Provider calls retried after malformed output", ["model"]
)
LLM_TOKENS_TOTAL = Counter(
    "parley_llm_tokens_total", "Total provider tokens", ["model", "direction"]
)
RATE_LIMITED_TOTAL = Counter("parley_rate_limited_total", "Calls rejected by the rate limiter")
PAGE_FETCHES_TOTAL = Counter(
    "parley_page_fetches_total", "Pages read from the turn store", ["namespace", "direction"]
)
CACHE_LOOKUPS_TOTAL = Counter(
    "parley_cache_lookups_total", "Client cache lookups", ["namespace", "result"]
)

metrics_generate_latest = generate_latest


@contextmanager
def observe_turn_duration(surface: str) -> Iterator[None]:
    start = time.monotonic()
    try:
        yield
    finally:
        TURN_DURATION_SECONDS.labels(surface=surface).observe(time.monotonic() - start)


__all__ = [
    "CACHE_LOOKUPS_TOTAL",
    "LLM_CALLS_TOTAL",
    "LLM_RETRIES_TOTAL",
    "LLM_TOKENS_TOTAL",
    "PAGE_FETCHES_TOTAL",
    "RATE_LIMITED_TOTAL",
    "TURNS_TOTAL",
    "TURN_DURATION_SECONDS",
    "metrics_generate_latest",
    "observe_turn_duration",
]
