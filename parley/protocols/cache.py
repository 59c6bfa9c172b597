from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class CacheBackend(Protocol):
    """Local persistence behind the in-memory client cache."""

    def load(self, namespace: str) -> dict[str, str]: ...

    def save(self, namespace: str, key: str, payload: str) -> None: ...

    def delete(self, namespace: str, key: str) -> None: ...

    def clear(self, namespace: str) -> None: ...


__all__ = ["CacheBackend"]
