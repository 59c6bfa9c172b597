"""Persistence protocols for turns, contacts and counterpart profiles."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from parley.models.profiles import CounterpartProfile, ScriptedQuestion
from parley.models.turns import Contact, Cursor, Turn


@runtime_checkable
class TurnStore(Protocol):
    async def append(self, actor_id: str, conversation_id: str, turn: Turn) -> None: ...

    async def append_many(
        self, actor_id: str, conversation_id: str, turns: Sequence[Turn]
    ) -> None: ...

    async def recent(self, actor_id: str, conversation_id: str, limit: int) -> list[Turn]: ...

    async def older_than(
        self, actor_id: str, conversation_id: str, cursor: Cursor, limit: int
    ) -> list[Turn]: ...

    async def add_contact(self, actor_id: str, contact: Contact) -> None: ...

    async def list_contacts(self, actor_id: str) -> list[Contact]: ...

    async def get_contact(self, actor_id: str, contact_id: str) -> Contact | None: ...


@runtime_checkable
class ProfileStore(Protocol):
    async def get_profile(self, profile_key: str) -> CounterpartProfile | None: ...

    async def put_profile(self, profile: CounterpartProfile) -> None: ...

    async def get_questions(self, profile_key: str) -> list[ScriptedQuestion]: ...


__all__ = ["ProfileStore", "TurnStore"]
