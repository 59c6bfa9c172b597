"""In-memory client cache with optional write-through local persistence."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import ValidationError

from parley.core.metrics import CACHE_LOOKUPS_TOTAL
from parley.models.cache import ContactCacheEntry, TurnCacheEntry
from parley.models.turns import Contact, Turn, utc_now
from parley.protocols.cache import CacheBackend

logger = logging.getLogger(__name__)

_TURNS_PREFIX = "turns:"
_CONTACTS_PREFIX = "contacts:"


def _escape_actor(actor_id: str) -> str:
    return actor_id.replace("%", "%25").replace("_", "%5F")


def cache_key(actor_id: str, conversation_id: str) -> str:
    """``u1_c1`` style key; the first unescaped ``_`` separates actor from conversation."""
    return f"{_escape_actor(actor_id)}_{conversation_id}"


def contacts_key(actor_id: str) -> str:
    return actor_id


def _merge(turns: Iterable[Turn]) -> list[Turn]:
    """De-duplicate by id (first occurrence wins) and order chronologically."""
    seen: set[str] = set()
    unique: list[Turn] = []
    for turn in turns:
        if turn.turn_id in seen:
            continue
        seen.add(turn.turn_id)
        unique.append(turn)
    unique.sort(key=lambda turn: (turn.created_at, turn.turn_id))
    return unique


class TurnCache:
    """Turn and contact cache scoped by composite keys.

    Keys start with the escaped actor id and never contain another actor's
    prefix, so ``clear_actor`` drops one actor's entries and nothing else.
    """

    def __init__(self, namespace: str, backend: CacheBackend | None = None) -> None:
        self.namespace = namespace
        self._backend = backend
        self._turns: dict[str, TurnCacheEntry] = {}
        self._contacts: dict[str, ContactCacheEntry] = {}
        if backend is not None:
            self._restore(backend)

    # -- turns ---------------------------------------------------------------

    def get(self, key: str) -> TurnCacheEntry | None:
        entry = self._turns.get(key)
        CACHE_LOOKUPS_TOTAL.labels(
            namespace=self.namespace, result="hit" if entry is not None else "miss"
        ).inc()
        return entry

    def put(self, key: str, turns: Iterable[Turn], has_more: bool) -> TurnCacheEntry:
        entry = TurnCacheEntry(items=_merge(turns), has_more=has_more)
        self._store_turns(key, entry)
        return entry

    def append(self, key: str, older_turns: Iterable[Turn], has_more: bool) -> TurnCacheEntry:
        existing = self._turns.get(key)
        current = existing.items if existing is not None else []
        entry = TurnCacheEntry(items=_merge([*older_turns, *current]), has_more=has_more)
        self._store_turns(key, entry)
        return entry

    def push_latest(self, key: str, turn: Turn) -> TurnCacheEntry:
        existing = self._turns.get(key)
        if existing is None:
            entry = TurnCacheEntry(items=[turn], has_more=False)
        elif any(item.turn_id == turn.turn_id for item in existing.items):
            return existing
        else:
            entry = TurnCacheEntry(items=_merge([*existing.items, turn]), has_more=existing.has_more)
        self._store_turns(key, entry)
        return entry

    def remove(self, key: str, turn_id: str) -> TurnCacheEntry | None:
        existing = self._turns.get(key)
        if existing is None:
            return None
        entry = TurnCacheEntry(
            items=[item for item in existing.items if item.turn_id != turn_id],
            has_more=existing.has_more,
        )
        self._store_turns(key, entry)
        return entry

    # -- contacts ------------------------------------------------------------

    def get_contacts(self, actor_id: str) -> list[Contact] | None:
        entry = self._contacts.get(contacts_key(actor_id))
        CACHE_LOOKUPS_TOTAL.labels(
            namespace=self.namespace, result="hit" if entry is not None else "miss"
        ).inc()
        return list(entry.items) if entry is not None else None

    def put_contacts(self, actor_id: str, contacts: Iterable[Contact]) -> None:
        key = contacts_key(actor_id)
        entry = ContactCacheEntry(items=list(contacts), has_more=False, captured_at=utc_now())
        self._contacts[key] = entry
        self._persist(_CONTACTS_PREFIX + key, entry.model_dump_json())

    # -- eviction ------------------------------------------------------------

    def invalidate(self, key: str) -> None:
        if self._turns.pop(key, None) is not None:
            self._drop(_TURNS_PREFIX + key)

    def clear_actor(self, actor_id: str) -> None:
        prefix = cache_key(actor_id, "")
        for key in [k for k in self._turns if k.startswith(prefix)]:
            del self._turns[key]
            self._drop(_TURNS_PREFIX + key)
        if self._contacts.pop(contacts_key(actor_id), None) is not None:
            self._drop(_CONTACTS_PREFIX + contacts_key(actor_id))

    def clear(self) -> None:
        self._turns.clear()
        self._contacts.clear()
        if self._backend is not None:
            try:
                self._backend.clear(self.namespace)
            except OSError:
                logger.warning("failed to clear persisted cache %s", self.namespace, exc_info=True)

    def keys(self) -> list[str]:
        return sorted(self._turns)

    # -- persistence ---------------------------------------------------------

    def _store_turns(self, key: str, entry: TurnCacheEntry) -> None:
        self._turns[key] = entry
        self._persist(_TURNS_PREFIX + key, entry.model_dump_json())

    def _persist(self, key: str, payload: str) -> None:
        if self._backend is None:
            return
        try:
            self._backend.save(self.namespace, key, payload)
        except OSError:
            logger.warning("failed to persist cache entry %s/%s", self.namespace, key, exc_info=True)

    def _drop(self, key: str) -> None:
        if self._backend is None:
            return
        try:
            self._backend.delete(self.namespace, key)
        except OSError:
            logger.warning("failed to delete cache entry %s/%s", self.namespace, key, exc_info=True)

    def _restore(self, backend: CacheBackend) -> None:
        for key, payload in backend.load(self.namespace).items():
            try:
                if key.startswith(_TURNS_PREFIX):
                    self._turns[key.removeprefix(_TURNS_PREFIX)] = TurnCacheEntry.model_validate_json(
                        payload
                    )
                elif key.startswith(_CONTACTS_PREFIX):
                    self._contacts[key.removeprefix(_CONTACTS_PREFIX)] = (
                        ContactCacheEntry.model_validate_json(payload)
                    )
            except ValidationError:
                logger.warning("discarding unreadable cache entry %s/%s", self.namespace, key)
                self._drop(key)


__all__ = ["TurnCache", "cache_key", "contacts_key"]
