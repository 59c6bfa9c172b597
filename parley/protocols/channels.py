from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from parley.models.turns import Turn


class IdentityProvider(Protocol):
    def require_actor(self) -> str:
        """Return the authenticated actor id or raise ``AuthError``."""
        ...


@dataclass(frozen=True, slots=True)
class NewTurnEvent:
    surface: str
    actor_id: str
    conversation_id: str
    turn: Turn


@runtime_checkable
class Notifier(Protocol):
    def notify(self, event: NewTurnEvent) -> Awaitable[None] | None: ...


__all__ = ["IdentityProvider", "NewTurnEvent", "Notifier"]
