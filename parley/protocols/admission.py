from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class AdmissionController(Protocol):
    def check_and_consume(self, actor_id: str) -> None:
        """Admit one call for ``actor_id`` or raise ``RateLimitedError``."""
        ...


__all__ = ["AdmissionController"]
