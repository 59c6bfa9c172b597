from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from parley.models.turns import Contact, Cursor, Turn, utc_now

ItemT = TypeVar("ItemT", Turn, Contact)


class CacheEntry(BaseModel, Generic[ItemT]):
    items: list[ItemT] = Field(default_factory=list)
    has_more: bool = False
    captured_at: datetime = Field(default_factory=utc_now)

    def age(self, now: datetime | None = None) -> float:
        """Seconds since the entry was captured."""
        return ((now or utc_now()) - self.captured_at).total_seconds()


TurnCacheEntry = CacheEntry[Turn]
ContactCacheEntry = CacheEntry[Contact]


def oldest_cursor(entry: CacheEntry[Turn] | None) -> Cursor | None:
    if entry is None or not entry.items:
        return None
    return Cursor.from_turn(entry.items[0])


__all__ = ["CacheEntry", "ContactCacheEntry", "TurnCacheEntry", "oldest_cursor"]
