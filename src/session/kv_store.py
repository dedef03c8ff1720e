"""Durable key-value storage for the session profile."""

import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path

_KV_TABLE = """
CREATE TABLE IF NOT EXISTS kv (
    key    TEXT PRIMARY KEY,
    value  TEXT NOT NULL
);
"""


class KeyValueStore(ABC):
    """String-to-string store that survives restarts (or pretends to, in tests)."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every key."""


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()


class SqliteKeyValueStore(KeyValueStore):
    """Key-value pairs in a single SQLite table.

    Usage::

        store = SqliteKeyValueStore("data/session.db")
        store.set("userProfile", profile.model_dump_json())
        store.close()
    """

    def __init__(self, path: str | Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute(_KV_TABLE)
        self._conn.commit()

    def get(self, key: str) -> str | None:
        row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return None if row is None else row[0]

    def set(self, key: str, value: str) -> None:
        self._conn.execute(
            """
            INSERT INTO kv (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (key, value),
        )
        self._conn.commit()

    def clear(self) -> None:
        self._conn.execute("DELETE FROM kv")
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()
