from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_TURN_CHARS = 1000


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_turn_id(created_at: datetime) -> str:
    """Build a globally sortable id: zero-padded epoch millis plus a random suffix."""
    millis = int(created_at.timestamp() * 1000)
    return f"{millis:013d}-{uuid.uuid4().hex[:12]}"


class SenderRole(StrEnum):
    actor = "actor"
    counterpart = "counterpart"


class CounterpartKind(StrEnum):
    scripted = "scripted"
    default = "default"


class Contact(BaseModel):
    model_config = ConfigDict(frozen=True)

    contact_id: str = Field(min_length=1)
    name: str = ""
    kind: CounterpartKind = CounterpartKind.default


class Turn(BaseModel):
    model_config = ConfigDict(frozen=True)

    turn_id: str = Field(min_length=1)
    sender: SenderRole
    text: str = Field(max_length=MAX_TURN_CHARS)
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at")
    @classmethod
    def _ensure_timezone_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
            raise ValueError("created_at must be timezone-aware")
        return value.astimezone(UTC)

    @classmethod
    def create(
        cls,
        sender: SenderRole,
        text: str,
        created_at: datetime | None = None,
    ) -> Turn:
        stamp = created_at or utc_now()
        return cls(
            turn_id=new_turn_id(stamp),
            sender=sender,
            text=text[:MAX_TURN_CHARS],
            created_at=stamp,
        )


class Cursor(BaseModel):
    """Position of the oldest turn a caller holds.

    ``turn_id`` breaks ties between turns that share a timestamp; without it
    the cursor is a plain timestamp and "older" means strictly earlier.
    """

    model_config = ConfigDict(frozen=True)

    created_at: datetime
    turn_id: str | None = None

    @field_validator("created_at")
    @classmethod
    def _ensure_timezone_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
            raise ValueError("cursor timestamp must be timezone-aware")
        return value.astimezone(UTC)

    @classmethod
    def from_turn(cls, turn: Turn) -> Cursor:
        return cls(created_at=turn.created_at, turn_id=turn.turn_id)

    def encode(self) -> str:
        return f"{self.created_at.isoformat()}|{self.turn_id or ''}"

    @classmethod
    def decode(cls, token: str) -> Cursor:
        stamp, _, turn_id = token.partition("|")
        try:
            created_at = datetime.fromisoformat(stamp)
        except ValueError as exc:
            raise ValueError(f"invalid cursor token: {token!r}") from exc
        return cls(created_at=created_at, turn_id=turn_id or None)


class TurnPage(BaseModel):
    turns: list[Turn] = Field(default_factory=list)
    has_more: bool = False

    @property
    def cursor(self) -> Cursor | None:
        if not self.turns:
            return None
        return Cursor.from_turn(self.turns[0])


__all__ = [
    "MAX_TURN_CHARS",
    "Contact",
    "CounterpartKind",
    "Cursor",
    "SenderRole",
    "Turn",
    "TurnPage",
    "new_turn_id",
    "utc_now",
]
