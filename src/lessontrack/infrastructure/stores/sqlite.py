"""
SQLite Key-Value Store: durable adapter for the KeyValueStore port.

One table, one row per key. Every write commits immediately; batching is
the write-behind queue's job.
"""

import logging
import sqlite3
from pathlib import Path

from lessontrack.domain.errors import StoreError
from lessontrack.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class SqliteKeyValueStore(KeyValueStore):
    def __init__(self, path: Path | str):
        self.path = Path(path) if str(path) != ":memory:" else path
        self._conn: sqlite3.Connection | None = None

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                if isinstance(self.path, Path):
                    self.path.parent.mkdir(parents=True, exist_ok=True)
                self._conn = sqlite3.connect(str(self.path), check_same_thread=False)
                self._conn.execute(_SCHEMA)
                self._conn.commit()
            except (sqlite3.Error, OSError) as e:
                self._conn = None
                raise StoreError(f"Cannot open store at {self.path}: {e}") from e
            logger.debug(f"Opened key-value store at {self.path}")
        return self._conn

    def get(self, key: str) -> str | None:
        try:
            row = self._connect().execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"get({key!r}) failed: {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            conn = self._connect()
            conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"set({key!r}) failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            conn = self._connect()
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"delete({key!r}) failed: {e}") from e

    def keys(self, prefix: str = "") -> list[str]:
        try:
            rows = self._connect().execute(
                "SELECT key FROM kv WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"keys({prefix!r}) failed: {e}") from e
        return [r[0] for r in rows]

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SqliteKeyValueStore":
        self._connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
