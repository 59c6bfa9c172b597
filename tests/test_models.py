from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from parley.models.turns import MAX_TURN_CHARS, Cursor, SenderRole, Turn, TurnPage


class TestTurn:
    def test_create_truncates_and_stamps(self) -> None:
        turn = Turn.create(SenderRole.actor, "x" * 1500)
        assert len(turn.text) == MAX_TURN_CHARS
        assert turn.created_at.tzinfo is UTC

    def test_ids_sort_by_creation_time(self) -> None:
        early = Turn.create(SenderRole.actor, "a", datetime(2026, 1, 1, tzinfo=UTC))
        late = Turn.create(SenderRole.actor, "b", datetime(2026, 1, 2, tzinfo=UTC))
        assert early.turn_id < late.turn_id

    def test_naive_timestamp_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Turn(turn_id="t1", sender=SenderRole.actor, text="hi", created_at=datetime(2026, 1, 1))

    def test_timestamp_normalized_to_utc(self) -> None:
        offset = timezone(timedelta(hours=9))
        turn = Turn(
            turn_id="t1",
            sender=SenderRole.actor,
            text="hi",
            created_at=datetime(2026, 1, 1, 9, tzinfo=offset),
        )
        assert turn.created_at == datetime(2026, 1, 1, 0, tzinfo=UTC)

    def test_overlong_text_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Turn(turn_id="t1", sender=SenderRole.actor, text="x" * (MAX_TURN_CHARS + 1))


class TestCursor:
    def test_token_round_trip(self) -> None:
        cursor = Cursor(created_at=datetime(2026, 1, 1, 8, 30, tzinfo=UTC), turn_id="abc")
        assert Cursor.decode(cursor.encode()) == cursor

    def test_token_without_id(self) -> None:
        cursor = Cursor(created_at=datetime(2026, 1, 1, tzinfo=UTC))
        assert Cursor.decode(cursor.encode()).turn_id is None

    def test_bad_token(self) -> None:
        with pytest.raises(ValueError):
            Cursor.decode("yesterday|x")

    def test_page_cursor_is_oldest_turn(self) -> None:
        turns = [
            Turn.create(SenderRole.actor, "a", datetime(2026, 1, 1, tzinfo=UTC)),
            Turn.create(SenderRole.actor, "b", datetime(2026, 1, 2, tzinfo=UTC)),
        ]
        assert TurnPage(turns=turns, has_more=True).cursor == Cursor.from_turn(turns[0])
