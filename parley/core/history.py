from __future__ import annotations

from collections.abc import Sequence

from parley.models.turns import Turn

DEFAULT_MAX_TURNS = 20
DEFAULT_MAX_BYTES = 50_000


def turn_size(turn: Turn) -> int:
    return len(turn.model_dump_json().encode("utf-8"))


def serialized_size(turns: Sequence[Turn]) -> int:
    return sum(turn_size(turn) for turn in turns)


class HistoryWindowOptimizer:
    """Bounds the history handed to the provider by count and by serialized size."""

    def __init__(self, max_turns: int = DEFAULT_MAX_TURNS, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        if max_turns < 0 or max_bytes < 0:
            raise ValueError("history bounds must be non-negative")
        self.max_turns = max_turns
        self.max_bytes = max_bytes

    def optimize(self, history: Sequence[Turn] | None) -> list[Turn]:
        if not history:
            return []

        window = list(history)[-self.max_turns :] if self.max_turns else []

        total = 0
        keep_from = len(window)
        for index in range(len(window) - 1, -1, -1):
            size = turn_size(window[index])
            if total + size > self.max_bytes:
                break
            total += size
            keep_from = index
        return window[keep_from:]


__all__ = [
    "DEFAULT_MAX_BYTES",
    "DEFAULT_MAX_TURNS",
    "HistoryWindowOptimizer",
    "serialized_size",
    "turn_size",
]
