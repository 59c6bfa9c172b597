from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from parley.errors import AuthError


class StaticIdentity:
    """Single-actor identity, e.g. a terminal session."""

    def __init__(self, actor_id: str | None) -> None:
        self.actor_id = actor_id

    def require_actor(self) -> str:
        if not self.actor_id:
            raise AuthError("no signed-in actor")
        return self.actor_id


class ContextIdentity:
    """Identity bound per request through a context variable."""

    def __init__(self) -> None:
        self._actor: ContextVar[str | None] = ContextVar("parley_actor", default=None)

    def require_actor(self) -> str:
        actor_id = self._actor.get()
        if not actor_id:
            raise AuthError("no signed-in actor")
        return actor_id

    @contextmanager
    def bind(self, actor_id: str) -> Iterator[None]:
        token = self._actor.set(actor_id)
        try:
            yield
        finally:
            self._actor.reset(token)


__all__ = ["ContextIdentity", "StaticIdentity"]
