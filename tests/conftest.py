from __future__ import annotations

import random
from pathlib import Path

import pytest

from parley.agents.reply import ReplyGenerator, default_retry_policy
from parley.cache.turn_cache import TurnCache
from parley.chat.identity import StaticIdentity
from parley.chat.orchestrator import ConversationOrchestrator
from parley.chat.surfaces import MESSENGER, KindProfileResolver
from parley.core.pager import CursorPager
from parley.core.rate_limiter import SlidingWindowRateLimiter
from parley.models.profiles import CounterpartProfile
from parley.persistence.migrations import run_migrations
from tests.fakes import (
    FakeClock,
    FakeReplyProvider,
    InMemoryProfileStore,
    InMemoryTurnStore,
    RecordingNotifier,
    RecordingSleep,
)


@pytest.fixture
async def db_path(tmp_path: Path) -> str:
    path = str(tmp_path / "parley.db")
    await run_migrations(path)
    return path


@pytest.fixture
def profile_store() -> InMemoryProfileStore:
    return InMemoryProfileStore(
        [
            CounterpartProfile(
                profile_key="scripted",
                instructions="Stay in character as the organization.",
                introduction="Welcome. Ask us anything.",
            ),
            CounterpartProfile(profile_key="default", instructions="Be friendly."),
        ]
    )


@pytest.fixture
def turn_store() -> InMemoryTurnStore:
    return InMemoryTurnStore()


@pytest.fixture
def provider() -> FakeReplyProvider:
    return FakeReplyProvider()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def orchestrator(
    turn_store: InMemoryTurnStore,
    profile_store: InMemoryProfileStore,
    provider: FakeReplyProvider,
    sleeper: RecordingSleep,
    clock: FakeClock,
    notifier: RecordingNotifier,
) -> ConversationOrchestrator:
    resolver = KindProfileResolver(profile_store)
    retry_policy = default_retry_policy()
    retry_policy.sleep = sleeper
    generator = ReplyGenerator(provider, resolver, retry_policy=retry_policy)
    return ConversationOrchestrator(
        MESSENGER,
        StaticIdentity("u1"),
        turn_store,
        CursorPager(turn_store, page_size=20),
        TurnCache(MESSENGER.cache_namespace),
        SlidingWindowRateLimiter(10, 60.0, clock=clock),
        generator,
        notifier,
        profiles=resolver,
        rng=random.Random(7),
    )
