"""The two chat surfaces and the wiring that builds an orchestrator for each."""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass, field

from parley.agents.provider import PydanticAIReplyProvider
from parley.agents.reply import ReplyGenerator, default_retry_policy
from parley.cache.file_backend import JsonFileCacheBackend
from parley.cache.turn_cache import TurnCache
from parley.chat.notifications import LoggingNotifier
from parley.chat.orchestrator import ConversationOrchestrator
from parley.config import ParleySettings
from parley.core.history import HistoryWindowOptimizer
from parley.core.pager import CursorPager
from parley.core.rate_limiter import SlidingWindowRateLimiter
from parley.errors import service_boundary
from parley.models.profiles import CounterpartProfile
from parley.models.turns import Contact, CounterpartKind
from parley.persistence.profile_store import SQLiteProfileStore
from parley.persistence.turn_store import SQLiteTurnStore
from parley.protocols.admission import AdmissionController
from parley.protocols.channels import IdentityProvider, Notifier
from parley.protocols.provider import ProfileResolver, ReplyProvider
from parley.protocols.store import ProfileStore


class KindProfileResolver:
    """Looks profiles up by the counterpart's kind."""

    def __init__(self, profiles: ProfileStore) -> None:
        self._profiles = profiles

    async def resolve(self, counterpart: Contact) -> CounterpartProfile | None:
        with service_boundary("load profile"):
            return await self._profiles.get_profile(counterpart.kind.value)


class ContactProfileResolver:
    """Looks profiles up by the counterpart's contact id."""

    def __init__(self, profiles: ProfileStore) -> None:
        self._profiles = profiles

    async def resolve(self, counterpart: Contact) -> CounterpartProfile | None:
        with service_boundary("load profile"):
            return await self._profiles.get_profile(counterpart.contact_id)


@dataclass(frozen=True, slots=True)
class ChatSurface:
    name: str
    namespace: str
    cache_namespace: str
    resolver: Callable[[ProfileStore], ProfileResolver]
    default_contacts: tuple[Contact, ...] = field(default_factory=tuple)


MESSENGER = ChatSurface(
    name="messenger",
    namespace="messenger",
    cache_namespace="messenger_turns",
    resolver=KindProfileResolver,
    default_contacts=(
        Contact(contact_id="the_syndicate", name="The Syndicate", kind=CounterpartKind.scripted),
    ),
)

DIRECT = ChatSurface(
    name="direct",
    namespace="direct_messages",
    cache_namespace="direct_turns",
    resolver=ContactProfileResolver,
    default_contacts=(Contact(contact_id="rin_aoki", name="Rin Aoki"),),
)

SURFACES: dict[str, ChatSurface] = {surface.name: surface for surface in (MESSENGER, DIRECT)}


def build_orchestrator(
    settings: ParleySettings,
    surface: ChatSurface,
    identity: IdentityProvider,
    *,
    provider: ReplyProvider | None = None,
    limiter: AdmissionController | None = None,
    notifier: Notifier | None = None,
    profile_store: ProfileStore | None = None,
    rng: random.Random | None = None,
) -> ConversationOrchestrator:
    """Wire one orchestrator for ``surface`` from settings.

    ``limiter`` should be shared between surfaces served by one process so
    the per-actor ceiling covers both.
    """
    db_path = str(settings.store.db_path)
    store = SQLiteTurnStore(db_path, namespace=surface.namespace)
    profiles = surface.resolver(profile_store or SQLiteProfileStore(db_path))

    if provider is None:
        provider = PydanticAIReplyProvider(
            settings.models.reply,
            temperature=settings.models.temperature,
            max_tokens=settings.models.max_tokens,
        )

    retry_policy = default_retry_policy(
        settings.retry.max_attempts, settings.retry.base_delay_seconds
    )

    generator = ReplyGenerator(
        provider,
        profiles,
        optimizer=HistoryWindowOptimizer(settings.history.max_turns, settings.history.max_bytes),
        retry_policy=retry_policy,
        max_input_chars=settings.input.max_input_chars,
        max_reply_chars=settings.input.max_reply_chars,
        model_name=settings.models.reply,
    )

    backend = JsonFileCacheBackend(settings.cache.dir) if settings.cache.persist else None

    return ConversationOrchestrator(
        surface,
        identity,
        store,
        CursorPager(store, settings.paging.page_size, namespace=surface.namespace),
        TurnCache(surface.cache_namespace, backend),
        limiter
        or SlidingWindowRateLimiter(
            settings.rate_limit.max_calls, settings.rate_limit.window_seconds
        ),
        generator,
        notifier or LoggingNotifier(),
        profiles=profiles,
        rng=rng,
    )


__all__ = [
    "DIRECT",
    "MESSENGER",
    "SURFACES",
    "ChatSurface",
    "ContactProfileResolver",
    "KindProfileResolver",
    "build_orchestrator",
]
