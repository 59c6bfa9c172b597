from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

from parley.cache.file_backend import JsonFileCacheBackend
from parley.cache.turn_cache import TurnCache, cache_key, contacts_key
from parley.models.turns import Contact, SenderRole, Turn

_BASE = datetime(2026, 2, 1, tzinfo=UTC)


def _turn(index: int) -> Turn:
    return Turn(
        turn_id=f"t{index:03d}",
        sender=SenderRole.actor,
        text=f"turn {index}",
        created_at=_BASE + timedelta(seconds=index),
    )


def test_keys() -> None:
    assert cache_key("u1", "c1") == "u1_c1"
    assert cache_key("a_b", "c") != cache_key("a", "b_c")
    assert cache_key("a%5Fb", "c") != cache_key("a_b", "c")
    assert contacts_key("u1") == "u1"


class TestTurnCache:
    def test_miss_then_put(self) -> None:
        cache = TurnCache("test")
        assert cache.get("u1_c1") is None

        cache.put("u1_c1", [_turn(2), _turn(1)], has_more=True)
        entry = cache.get("u1_c1")
        assert entry is not None
        assert [turn.turn_id for turn in entry.items] == ["t001", "t002"]
        assert entry.has_more is True

    def test_append_prepends_older_and_is_idempotent(self) -> None:
        cache = TurnCache("test")
        cache.put("u1_c1", [_turn(3), _turn(4)], has_more=True)

        cache.append("u1_c1", [_turn(1), _turn(2)], has_more=False)
        once = cache.get("u1_c1")
        cache.append("u1_c1", [_turn(1), _turn(2)], has_more=False)
        twice = cache.get("u1_c1")

        assert once is not None and twice is not None
        assert [turn.turn_id for turn in twice.items] == ["t001", "t002", "t003", "t004"]
        assert once.items == twice.items
        assert twice.has_more is False

    def test_push_latest_creates_missing_entry(self) -> None:
        cache = TurnCache("test")
        entry = cache.push_latest("u1_c1", _turn(1))
        assert entry.items == [_turn(1)]
        assert entry.has_more is False

    def test_push_latest_ignores_duplicate_id(self) -> None:
        cache = TurnCache("test")
        cache.put("u1_c1", [_turn(1)], has_more=True)
        cache.push_latest("u1_c1", _turn(1))
        entry = cache.get("u1_c1")
        assert entry is not None
        assert len(entry.items) == 1
        assert entry.has_more is True

    def test_remove(self) -> None:
        cache = TurnCache("test")
        cache.put("u1_c1", [_turn(1), _turn(2)], has_more=False)
        entry = cache.remove("u1_c1", "t001")
        assert entry is not None
        assert entry.items == [_turn(2)]
        assert cache.remove("u9_c9", "t001") is None

    def test_contacts(self) -> None:
        cache = TurnCache("test")
        assert cache.get_contacts("u1") is None
        cache.put_contacts("u1", [Contact(contact_id="c1", name="One")])
        assert cache.get_contacts("u1") == [Contact(contact_id="c1", name="One")]

    def test_clear_actor_only_drops_that_actor(self) -> None:
        cache = TurnCache("test")
        cache.put(cache_key("u1", "c1"), [_turn(1)], has_more=False)
        cache.put(cache_key("u1", "c2"), [_turn(2)], has_more=False)
        cache.put(cache_key("u2", "c1"), [_turn(3)], has_more=False)
        cache.put_contacts("u1", [])

        cache.clear_actor("u1")

        assert cache.keys() == ["u2_c1"]
        assert cache.get_contacts("u1") is None

    def test_clear_actor_ignores_actors_sharing_a_prefix(self) -> None:
        cache = TurnCache("test")
        cache.put(cache_key("a_b", "c"), [_turn(1)], has_more=False)
        cache.put(cache_key("a", "x"), [_turn(2)], has_more=False)
        cache.put_contacts("a_b", [])

        cache.clear_actor("a")

        assert cache.get(cache_key("a_b", "c")) is not None
        assert cache.get(cache_key("a", "x")) is None
        assert cache.get_contacts("a_b") == []

    def test_invalidate_and_clear(self) -> None:
        cache = TurnCache("test")
        cache.put("u1_c1", [_turn(1)], has_more=False)
        cache.put("u1_c2", [_turn(2)], has_more=False)
        cache.invalidate("u1_c1")
        assert cache.keys() == ["u1_c2"]
        cache.clear()
        assert cache.keys() == []


class TestJsonFileCacheBackend:
    def test_entries_survive_a_new_cache_instance(self, tmp_path: Path) -> None:
        backend = JsonFileCacheBackend(tmp_path)
        first = TurnCache("messenger_turns", backend)
        first.put("u1_c1", [_turn(1), _turn(2)], has_more=True)
        first.put_contacts("u1", [Contact(contact_id="c1", name="One")])

        second = TurnCache("messenger_turns", JsonFileCacheBackend(tmp_path))
        entry = second.get("u1_c1")
        assert entry is not None
        assert entry.items == [_turn(1), _turn(2)]
        assert entry.has_more is True
        assert second.get_contacts("u1") == [Contact(contact_id="c1", name="One")]

    def test_escaped_keys_survive_a_new_cache_instance(self, tmp_path: Path) -> None:
        key = cache_key("a_b", "c")
        TurnCache("ns", JsonFileCacheBackend(tmp_path)).put(key, [_turn(1)], has_more=False)

        restored = TurnCache("ns", JsonFileCacheBackend(tmp_path))
        restored.clear_actor("a")
        assert restored.keys() == [key]

    def test_namespaces_do_not_share_documents(self, tmp_path: Path) -> None:
        TurnCache("a", JsonFileCacheBackend(tmp_path)).put("u1_c1", [_turn(1)], has_more=False)
        assert TurnCache("b", JsonFileCacheBackend(tmp_path)).keys() == []

    def test_corrupt_document_is_discarded(self, tmp_path: Path) -> None:
        backend = JsonFileCacheBackend(tmp_path)
        backend.save("ns", "turns:u1_c1", "{not json")
        cache = TurnCache("ns", backend)

        assert cache.keys() == []
        assert backend.load("ns") == {}

    def test_clear_removes_files(self, tmp_path: Path) -> None:
        backend = JsonFileCacheBackend(tmp_path)
        cache = TurnCache("ns", backend)
        cache.put("u1_c1", [_turn(1)], has_more=False)
        cache.clear()
        assert backend.load("ns") == {}
