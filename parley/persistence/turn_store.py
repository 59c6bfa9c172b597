"""SQLite turn log and contact list.

Rows are addressed ``namespace -> actor -> conversation -> turn`` and
``namespace -> actor -> contact``; the namespace keeps the two chat surfaces
apart inside one database file.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

import aiosqlite

from parley.models.turns import Contact, CounterpartKind, Cursor, SenderRole, Turn

BATCH_SIZE = 500

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def format_timestamp(value: datetime) -> str:
    """Fixed-width UTC text so lexical order equals time order."""
    return value.astimezone(UTC).strftime(_TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, _TIMESTAMP_FORMAT).replace(tzinfo=UTC)


class SQLiteTurnStore:
    def __init__(self, db_path: str, namespace: str = "messenger") -> None:
        self.db_path = db_path
        self.namespace = namespace

    async def append(self, actor_id: str, conversation_id: str, turn: Turn) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """INSERT OR REPLACE INTO turns (
                    namespace, actor_id, conversation_id, turn_id, sender, text, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)""",
                self._turn_row(actor_id, conversation_id, turn),
            )
            await db.commit()

    async def append_many(
        self, actor_id: str, conversation_id: str, turns: Sequence[Turn]
    ) -> None:
        if not turns:
            return
        async with aiosqlite.connect(self.db_path) as db:
            for start in range(0, len(turns), BATCH_SIZE):
                chunk = turns[start : start + BATCH_SIZE]
                await db.executemany(
                    """INSERT OR REPLACE INTO turns (
                        namespace, actor_id, conversation_id, turn_id, sender, text, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    [self._turn_row(actor_id, conversation_id, turn) for turn in chunk],
                )
                await db.commit()

    async def recent(self, actor_id: str, conversation_id: str, limit: int) -> list[Turn]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """SELECT turn_id, sender, text, created_at FROM turns
                   WHERE namespace = ? AND actor_id = ? AND conversation_id = ?
                   ORDER BY created_at DESC, turn_id DESC
                   LIMIT ?""",
                (self.namespace, actor_id, conversation_id, limit),
            )
            rows = await cursor.fetchall()
            return [_row_to_turn(row) for row in rows]

    async def older_than(
        self, actor_id: str, conversation_id: str, cursor: Cursor, limit: int
    ) -> list[Turn]:
        stamp = format_timestamp(cursor.created_at)
        if cursor.turn_id is None:
            position_clause = "created_at < ?"
            position_args: tuple[str, ...] = (stamp,)
        else:
            position_clause = "(created_at < ? OR (created_at = ? AND turn_id < ?))"
            position_args = (stamp, stamp, cursor.turn_id)

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            result = await db.execute(
                f"""SELECT turn_id, sender, text, created_at FROM turns
                    WHERE namespace = ? AND actor_id = ? AND conversation_id = ?
                      AND {position_clause}
                    ORDER BY created_at DESC, turn_id DESC
                    LIMIT ?""",  # noqa: S608
                (self.namespace, actor_id, conversation_id, *position_args, limit),
            )
            rows = await result.fetchall()
            return [_row_to_turn(row) for row in rows]

    async def add_contact(self, actor_id: str, contact: Contact) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """INSERT OR REPLACE INTO contacts (namespace, actor_id, contact_id, name, kind)
                   VALUES (?, ?, ?, ?, ?)""",
                (self.namespace, actor_id, contact.contact_id, contact.name, contact.kind.value),
            )
            await db.commit()

    async def list_contacts(self, actor_id: str) -> list[Contact]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """SELECT contact_id, name, kind FROM contacts
                   WHERE namespace = ? AND actor_id = ?
                   ORDER BY name ASC, contact_id ASC""",
                (self.namespace, actor_id),
            )
            rows = await cursor.fetchall()
            return [_row_to_contact(row) for row in rows]

    async def get_contact(self, actor_id: str, contact_id: str) -> Contact | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """SELECT contact_id, name, kind FROM contacts
                   WHERE namespace = ? AND actor_id = ? AND contact_id = ?""",
                (self.namespace, actor_id, contact_id),
            )
            row = await cursor.fetchone()
            return _row_to_contact(row) if row is not None else None

    def _turn_row(self, actor_id: str, conversation_id: str, turn: Turn) -> tuple[str, ...]:
        return (
            self.namespace,
            actor_id,
            conversation_id,
            turn.turn_id,
            turn.sender.value,
            turn.text,
            format_timestamp(turn.created_at),
        )


def _row_to_turn(row: aiosqlite.Row) -> Turn:
    return Turn(
        turn_id=row["turn_id"],
        sender=SenderRole(row["sender"]),
        text=row["text"],
        created_at=parse_timestamp(row["created_at"]),
    )


def _row_to_contact(row: aiosqlite.Row) -> Contact:
    return Contact(
        contact_id=row["contact_id"],
        name=row["name"],
        kind=CounterpartKind(row["kind"]),
    )


__all__ = ["BATCH_SIZE", "SQLiteTurnStore", "format_timestamp", "parse_timestamp"]
