from __future__ import annotations

import pytest

from parley.core.retry import RetryPolicy, linear_backoff
from tests.fakes import RecordingSleep


class _Flaky:
    def __init__(self, failures: int, exc: type[Exception] = ValueError) -> None:
        self.failures = failures
        self.exc = exc
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"failure {self.calls}")
        return "done"


def test_linear_backoff() -> None:
    delay = linear_backoff(0.5)
    assert [delay(attempt) for attempt in (1, 2, 3)] == [0.5, 1.0, 1.5]


async def test_succeeds_after_transient_failures() -> None:
    sleep = RecordingSleep()
    policy = RetryPolicy(max_attempts=3, sleep=sleep)
    flaky = _Flaky(failures=2)

    assert await policy.run(flaky) == "done"
    assert flaky.calls == 3
    assert sleep.delays == [0.5, 1.0]


async def test_reraises_last_error_when_exhausted() -> None:
    policy = RetryPolicy(max_attempts=3, sleep=RecordingSleep())
    flaky = _Flaky(failures=5)

    with pytest.raises(ValueError, match="failure 3"):
        await policy.run(flaky)
    assert flaky.calls == 3


async def test_non_retryable_error_is_not_retried() -> None:
    policy = RetryPolicy(
        max_attempts=3,
        retry_on=lambda exc: isinstance(exc, ValueError),
        sleep=RecordingSleep(),
    )
    flaky = _Flaky(failures=1, exc=KeyError)

    with pytest.raises(KeyError):
        await policy.run(flaky)
    assert flaky.calls == 1


async def test_on_retry_hook_sees_each_failed_attempt() -> None:
    seen: list[int] = []
    policy = RetryPolicy(max_attempts=3, sleep=RecordingSleep())

    await policy.run(_Flaky(failures=2), on_retry=lambda attempt, exc: seen.append(attempt))
    assert seen == [1, 2]


def test_rejects_zero_attempts() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
