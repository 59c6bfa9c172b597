"""Conversation orchestrator: one actor's view of one chat surface.

Coordinates identity, the client cache, the turn store, admission control
and the reply generator. ``send_turn`` is optimistic: the actor's turn shows
up in the cache before any I/O and is rolled back if anything downstream
fails, in which case a synthetic counterpart turn explains the failure.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any

from parley.cache.turn_cache import TurnCache, cache_key
from parley.chat.messages import select_error_message
from parley.core.logging import correlation_scope
from parley.core.metrics import TURNS_TOTAL, observe_turn_duration
from parley.core.pager import CursorPager
from parley.core.telemetry import SURFACE_ATTRIBUTE, get_tracer, record_chat_error
from parley.errors import ChatError, as_chat_error, storage_boundary
from parley.models.cache import oldest_cursor
from parley.models.turns import Contact, Cursor, SenderRole, Turn, TurnPage
from parley.protocols.admission import AdmissionController
from parley.protocols.channels import IdentityProvider, NewTurnEvent, Notifier
from parley.protocols.provider import ProfileResolver
from parley.protocols.store import TurnStore

if TYPE_CHECKING:
    from parley.agents.reply import ReplyGenerator
    from parley.chat.surfaces import ChatSurface

logger = logging.getLogger(__name__)
_TRACER = get_tracer("parley.chat")


class ConversationOrchestrator:
    def __init__(
        self,
        surface: ChatSurface,
        identity: IdentityProvider,
        store: TurnStore,
        pager: CursorPager,
        cache: TurnCache,
        limiter: AdmissionController,
        generator: ReplyGenerator,
        notifier: Notifier | None = None,
        *,
        profiles: ProfileResolver | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.surface = surface
        self._identity = identity
        self._store = store
        self._pager = pager
        self._cache = cache
        self._limiter = limiter
        self._generator = generator
        self._notifier = notifier
        self._profiles = profiles
        self._rng = rng or random.Random()
        self._in_flight: set[str] = set()
        self._background_tasks: set[asyncio.Task[Any]] = set()

    # -- contacts ------------------------------------------------------------

    async def load_contacts(self, refresh: bool = False) -> list[Contact]:
        actor_id = self._identity.require_actor()
        if not refresh:
            cached = self._cache.get_contacts(actor_id)
            if cached is not None:
                return cached
        with storage_boundary("list contacts"):
            contacts = await self._store.list_contacts(actor_id)
        self._cache.put_contacts(actor_id, contacts)
        return contacts

    async def add_contact(self, contact: Contact) -> list[Contact]:
        actor_id = self._identity.require_actor()
        with storage_boundary("add contact"):
            await self._store.add_contact(actor_id, contact)
        return await self.load_contacts(refresh=True)

    async def initialize(self) -> bool:
        """Seed default contacts and introductions for an actor with no contacts yet."""
        actor_id = self._identity.require_actor()
        with storage_boundary("list contacts"):
            existing = await self._store.list_contacts(actor_id)
        if existing or not self.surface.default_contacts:
            return False

        for contact in self.surface.default_contacts:
            with storage_boundary("add contact"):
                await self._store.add_contact(actor_id, contact)
            await self._send_introduction(actor_id, contact)

        await self.load_contacts(refresh=True)
        logger.info(
            "initialized %s for %s with %d contacts",
            self.surface.name,
            actor_id,
            len(self.surface.default_contacts),
        )
        return True

    async def _send_introduction(self, actor_id: str, contact: Contact) -> None:
        if self._profiles is None:
            return
        profile = await self._profiles.resolve(contact)
        if profile is None or not profile.introduction:
            return
        intro = Turn.create(SenderRole.counterpart, profile.introduction)
        with storage_boundary("append introduction"):
            await self._store.append(actor_id, contact.contact_id, intro)
        self._cache.push_latest(cache_key(actor_id, contact.contact_id), intro)
        self._emit(NewTurnEvent(self.surface.name, actor_id, contact.contact_id, intro))

    # -- turns ---------------------------------------------------------------

    def cached_turns(self, conversation_id: str) -> list[Turn]:
        actor_id = self._identity.require_actor()
        entry = self._cache.get(cache_key(actor_id, conversation_id))
        return list(entry.items) if entry is not None else []

    async def load_page(
        self,
        conversation_id: str,
        cursor: Cursor | None = None,
        refresh: bool = False,
    ) -> TurnPage:
        actor_id = self._identity.require_actor()
        key = cache_key(actor_id, conversation_id)

        if cursor is None:
            if not refresh:
                entry = self._cache.get(key)
                if entry is not None:
                    return TurnPage(turns=list(entry.items), has_more=entry.has_more)
            with storage_boundary("load latest page"):
                page = await self._pager.page(actor_id, conversation_id)
            self._cache.put(key, page.turns, page.has_more)
            return page

        with storage_boundary("load older page"):
            page = await self._pager.page(actor_id, conversation_id, cursor=cursor)
        self._cache.append(key, page.turns, page.has_more)
        return page

    async def load_more(self, conversation_id: str) -> TurnPage | None:
        """Fetch the page before the oldest cached turn.

        Returns ``None`` without touching the store when nothing is cached,
        the cached entry says there is nothing older, or a fetch for the same
        conversation is already running.
        """
        actor_id = self._identity.require_actor()
        key = cache_key(actor_id, conversation_id)
        entry = self._cache.get(key)
        cursor = oldest_cursor(entry)
        if entry is None or cursor is None or not entry.has_more or key in self._in_flight:
            return None

        self._in_flight.add(key)
        try:
            return await self.load_page(conversation_id, cursor=cursor)
        finally:
            self._in_flight.discard(key)

    async def send_turn(self, conversation_id: str, text: str) -> list[Turn]:
        """Send one actor turn and return the conversation as cached afterwards.

        Never raises: failures are rendered as a counterpart turn.
        """
        try:
            actor_id = self._identity.require_actor()
        except ChatError as exc:
            TURNS_TOTAL.labels(surface=self.surface.name, outcome=exc.kind.value).inc()
            return [self._error_turn(exc, Contact(contact_id=conversation_id))]

        key = cache_key(actor_id, conversation_id)
        if not text.strip():
            return self.cached_turns(conversation_id)

        if self._cache.get(key) is None:
            # Cold cache: the latest page becomes both the cached view and the history.
            try:
                await self.load_page(conversation_id)
            except ChatError as exc:
                logger.warning("send_turn could not load history: %s", exc)
                TURNS_TOTAL.labels(surface=self.surface.name, outcome=exc.kind.value).inc()
                return [self._error_turn(exc, Contact(contact_id=conversation_id))]
        history = self.cached_turns(conversation_id)
        actor_turn = Turn.create(SenderRole.actor, text)
        self._cache.push_latest(key, actor_turn)
        counterpart = Contact(contact_id=conversation_id)

        with (
            correlation_scope(
                actor_id=actor_id, conversation_id=conversation_id, turn_id=actor_turn.turn_id
            ),
            observe_turn_duration(self.surface.name),
            _TRACER.start_as_current_span("conversation.send_turn") as span,
        ):
            span.set_attribute(SURFACE_ATTRIBUTE, self.surface.name)
            try:
                counterpart = await self._counterpart(actor_id, conversation_id)
                with storage_boundary("append actor turn"):
                    await self._store.append(actor_id, conversation_id, actor_turn)
                self._limiter.check_and_consume(actor_id)
                reply = await self._generator.generate_reply(
                    actor_id, actor_turn.text, history, counterpart
                )
                reply_turn = Turn.create(SenderRole.counterpart, reply)
                with storage_boundary("append reply turn"):
                    await self._store.append(actor_id, conversation_id, reply_turn)
            except Exception as exc:
                error = as_chat_error(exc)
                record_chat_error(span, error)
                logger.warning("send_turn failed with %s: %s", error.kind.value, error)
                TURNS_TOTAL.labels(surface=self.surface.name, outcome=error.kind.value).inc()
                self._cache.remove(key, actor_turn.turn_id)
                self._cache.push_latest(key, self._error_turn(error, counterpart))
                return self.cached_turns(conversation_id)

            self._cache.push_latest(key, reply_turn)
            TURNS_TOTAL.labels(surface=self.surface.name, outcome="ok").inc()
            self._emit(NewTurnEvent(self.surface.name, actor_id, conversation_id, reply_turn))
        return self.cached_turns(conversation_id)

    async def _counterpart(self, actor_id: str, conversation_id: str) -> Contact:
        cached = self._cache.get_contacts(actor_id) or []
        for contact in cached:
            if contact.contact_id == conversation_id:
                return contact
        with storage_boundary("get contact"):
            contact = await self._store.get_contact(actor_id, conversation_id)
        return contact or Contact(contact_id=conversation_id)

    def _error_turn(self, error: ChatError, counterpart: Contact) -> Turn:
        text = select_error_message(error.kind, counterpart.kind, self._rng)
        return Turn.create(SenderRole.counterpart, text)

    # -- notifications -------------------------------------------------------

    def _emit(self, event: NewTurnEvent) -> None:
        if self._notifier is None:
            return
        try:
            result = self._notifier.notify(event)
        except Exception:
            logger.warning("notifier failed for %s", event.conversation_id, exc_info=True)
            return
        if inspect.isawaitable(result):
            self._run_in_background(result)

    def _run_in_background(self, awaitable: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(awaitable)
        self._background_tasks.add(task)

        def _on_done(t: asyncio.Task[Any]) -> None:
            self._background_tasks.discard(t)
            if t.cancelled():
                logger.warning("notification task was cancelled")
            elif exc := t.exception():
                logger.warning("notification failed: %s", exc, exc_info=exc)

        task.add_done_callback(_on_done)

    async def drain_notifications(self) -> None:
        """Wait for notifications already handed off; used on shutdown and in tests."""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)


__all__ = ["ConversationOrchestrator"]
