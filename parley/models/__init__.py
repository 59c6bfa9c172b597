from __future__ import annotations

from parley.models.cache import CacheEntry, ContactCacheEntry, TurnCacheEntry, oldest_cursor
from parley.models.profiles import CounterpartProfile, ReplyPayload, ScriptedQuestion
from parley.models.turns import (
    MAX_TURN_CHARS,
    Contact,
    CounterpartKind,
    Cursor,
    SenderRole,
    Turn,
    TurnPage,
    new_turn_id,
    utc_now,
)

__all__ = [
    "MAX_TURN_CHARS",
    "CacheEntry",
    "Contact",
    "ContactCacheEntry",
    "CounterpartKind",
    "CounterpartProfile",
    "Cursor",
    "ReplyPayload",
    "ScriptedQuestion",
    "SenderRole",
    "Turn",
    "TurnCacheEntry",
    "TurnPage",
    "new_turn_id",
    "oldest_cursor",
    "utc_now",
]
