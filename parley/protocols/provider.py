from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from parley.models.profiles import CounterpartProfile
from parley.models.turns import Contact, Turn


@runtime_checkable
class ReplyProvider(Protocol):
    async def complete(self, instructions: str, history: Sequence[Turn], prompt: str) -> str:
        """Return the raw provider output for one reply."""
        ...


@runtime_checkable
class ProfileResolver(Protocol):
    async def resolve(self, counterpart: Contact) -> CounterpartProfile | None: ...


__all__ = ["ProfileResolver", "ReplyProvider"]
