"""SQLite store for per-counterpart configuration documents."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite
import yaml

from parley.models.profiles import CounterpartProfile, ScriptedQuestion

logger = logging.getLogger(__name__)


class SQLiteProfileStore:
    def __init__(self, db_path: str) -> None:
        self.db_path = db_path

    async def get_profile(self, profile_key: str) -> CounterpartProfile | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM profiles WHERE profile_key = ?",
                (profile_key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return _row_to_profile(row)

    async def put_profile(self, profile: CounterpartProfile) -> None:
        data = profile.model_dump(mode="json")
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """INSERT OR REPLACE INTO profiles (
                    profile_key, instructions, introduction, questions, updated_at
                ) VALUES (?, ?, ?, ?, ?)""",
                (
                    data["profile_key"],
                    data["instructions"],
                    data["introduction"],
                    json.dumps(data["questions"]),
                    datetime.now(UTC).isoformat(),
                ),
            )
            await db.commit()

    async def get_questions(self, profile_key: str) -> list[ScriptedQuestion]:
        profile = await self.get_profile(profile_key)
        return list(profile.questions) if profile is not None else []

    async def load_profiles(self, path: str | Path) -> int:
        """Seed profiles from a YAML mapping of ``profile_key -> profile fields``."""
        source = Path(path)
        loaded = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise ValueError("profiles file must contain a top-level mapping")

        raw_profiles = loaded.get("profiles", loaded)
        if not isinstance(raw_profiles, dict):
            raise ValueError("profiles section must be a mapping")

        count = 0
        for key, fields in raw_profiles.items():
            if not isinstance(fields, dict):
                raise ValueError(f"profile {key!r} must be a mapping")
            await self.put_profile(CounterpartProfile.model_validate({"profile_key": key, **fields}))
            count += 1
        logger.info("seeded %d counterpart profiles from %s", count, source)
        return count


def _row_to_profile(row: aiosqlite.Row) -> CounterpartProfile:
    return CounterpartProfile(
        profile_key=row["profile_key"],
        instructions=row["instructions"],
        introduction=row["introduction"],
        questions=[ScriptedQuestion.model_validate(item) for item in json.loads(row["questions"])],
    )


__all__ = ["SQLiteProfileStore"]
