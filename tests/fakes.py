from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

from parley.models.profiles import CounterpartProfile, ScriptedQuestion
from parley.models.turns import Contact, Cursor, Turn
from parley.protocols.channels import NewTurnEvent


class FakeReplyProvider:
    """Returns scripted raw outputs in order; an exception in the script is raised."""

    def __init__(self, outputs: Sequence[str | BaseException] = ()) -> None:
        self._outputs = list(outputs)
        self.calls: list[tuple[str, list[Turn], str]] = []

    def script(self, *outputs: str | BaseException) -> None:
        self._outputs.extend(outputs)

    async def complete(self, instructions: str, history: Sequence[Turn], prompt: str) -> str:
        self.calls.append((instructions, list(history), prompt))
        if not self._outputs:
            return '{"reply": "ok"}'
        output = self._outputs.pop(0)
        if isinstance(output, BaseException):
            raise output
        return output


def _sort_key(turn: Turn) -> tuple[object, str]:
    return (turn.created_at, turn.turn_id)


class InMemoryTurnStore:
    def __init__(self) -> None:
        self.turns: dict[tuple[str, str], dict[str, Turn]] = {}
        self.contacts: dict[str, dict[str, Contact]] = {}
        self.fail_appends = False
        self.fail_reads = False
        self.older_than_calls = 0

    async def append(self, actor_id: str, conversation_id: str, turn: Turn) -> None:
        if self.fail_appends:
            raise OSError("disk I/O error")
        self.turns.setdefault((actor_id, conversation_id), {})[turn.turn_id] = turn

    async def append_many(
        self, actor_id: str, conversation_id: str, turns: Sequence[Turn]
    ) -> None:
        for turn in turns:
            await self.append(actor_id, conversation_id, turn)

    def _timeline(self, actor_id: str, conversation_id: str) -> list[Turn]:
        if self.fail_reads:
            raise OSError("disk I/O error")
        rows = self.turns.get((actor_id, conversation_id), {}).values()
        return sorted(rows, key=_sort_key, reverse=True)

    async def recent(self, actor_id: str, conversation_id: str, limit: int) -> list[Turn]:
        return self._timeline(actor_id, conversation_id)[:limit]

    async def older_than(
        self, actor_id: str, conversation_id: str, cursor: Cursor, limit: int
    ) -> list[Turn]:
        self.older_than_calls += 1
        await asyncio.sleep(0)
        rows = [
            turn
            for turn in self._timeline(actor_id, conversation_id)
            if turn.created_at < cursor.created_at
            or (
                cursor.turn_id is not None
                and turn.created_at == cursor.created_at
                and turn.turn_id < cursor.turn_id
            )
        ]
        return rows[:limit]

    async def add_contact(self, actor_id: str, contact: Contact) -> None:
        if self.fail_appends:
            raise OSError("disk I/O error")
        self.contacts.setdefault(actor_id, {})[contact.contact_id] = contact

    async def list_contacts(self, actor_id: str) -> list[Contact]:
        if self.fail_reads:
            raise OSError("disk I/O error")
        return sorted(
            self.contacts.get(actor_id, {}).values(), key=lambda c: (c.name, c.contact_id)
        )

    async def get_contact(self, actor_id: str, contact_id: str) -> Contact | None:
        return self.contacts.get(actor_id, {}).get(contact_id)


class InMemoryProfileStore:
    def __init__(self, profiles: Sequence[CounterpartProfile] = ()) -> None:
        self.profiles = {profile.profile_key: profile for profile in profiles}
        self.fail_reads = False

    async def get_profile(self, profile_key: str) -> CounterpartProfile | None:
        if self.fail_reads:
            raise OSError("profile database unreachable")
        return self.profiles.get(profile_key)

    async def put_profile(self, profile: CounterpartProfile) -> None:
        self.profiles[profile.profile_key] = profile

    async def get_questions(self, profile_key: str) -> list[ScriptedQuestion]:
        profile = self.profiles.get(profile_key)
        return list(profile.questions) if profile is not None else []


@dataclass
class StaticProfileResolver:
    profile: CounterpartProfile | None

    async def resolve(self, counterpart: Contact) -> CounterpartProfile | None:
        return self.profile


@dataclass
class RecordingNotifier:
    events: list[NewTurnEvent] = field(default_factory=list)

    def notify(self, event: NewTurnEvent) -> None:
        self.events.append(event)


@dataclass
class FakeClock:
    now: float = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


__all__ = [
    "FakeClock",
    "FakeReplyProvider",
    "InMemoryProfileStore",
    "InMemoryTurnStore",
    "RecordingNotifier",
    "RecordingSleep",
    "StaticProfileResolver",
]
