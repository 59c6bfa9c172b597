"""Persistence: SQLite stores for turns, contacts and counterpart profiles."""

from parley.persistence.migrations import run_migrations
from parley.persistence.profile_store import SQLiteProfileStore
from parley.persistence.turn_store import SQLiteTurnStore

__all__ = ["SQLiteProfileStore", "SQLiteTurnStore", "run_migrations"]
