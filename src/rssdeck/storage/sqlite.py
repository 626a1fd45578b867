"""SQLite store - zero-config persistent key-value table.

SQLite is a good fit for:
- Single-user readers
- Larger catalogs where rewriting one JSON file per change gets slow

Example:
    >>> import asyncio
    >>> from rssdeck.storage.sqlite import SQLiteStore
    >>> async def example():
    ...     store = SQLiteStore(":memory:")
    ...     await store.initialize()
    ...     await store.set("k", {"v": 1})
    ...     value = await store.get("k")
    ...     await store.close()
    ...     return value
    >>> asyncio.run(example())
    {'v': 1}
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from rssdeck.core.exceptions import StoreError


class SQLiteStore:
    """SQLite store with auto-schema creation.

    Args:
        path: Database file path, or ":memory:" for in-memory.
        timeout: Lock timeout in seconds (default 30).
    """

    def __init__(
        self,
        path: str | Path = ":memory:",
        *,
        timeout: float = 30.0,
    ) -> None:
        self._path = str(path) if str(path) == ":memory:" else str(Path(path).expanduser())
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a cursor with automatic commit/rollback."""
        if not self._conn:
            raise StoreError("Store not initialized. Call initialize() first.")
        cursor = self._conn.cursor()
        try:
            yield cursor
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            raise StoreError(f"SQLite error: {e}", cause=e) from e
        finally:
            cursor.close()

    async def initialize(self) -> None:
        """Open the database and create the table. Safe to call twice."""
        if self._conn is not None:
            return
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(self._path, timeout=self._timeout)
            self._conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open {self._path}: {e}", cause=e) from e
        with self._cursor() as cursor:
            cursor.execute(
                "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    async def get(self, key: str) -> dict[str, Any] | None:
        with self._cursor() as cursor:
            cursor.execute("SELECT value FROM kv WHERE key = ?", (key,))
            row = cursor.fetchone()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            raise StoreError(f"Corrupt value for {key}: {e}", key=key, cause=e) from e

    async def set(self, key: str, value: dict[str, Any]) -> None:
        try:
            encoded = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Value for {key} is not serializable: {e}", key=key, cause=e) from e
        with self._cursor() as cursor:
            cursor.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, encoded),
            )

    async def delete(self, key: str) -> bool:
        with self._cursor() as cursor:
            cursor.execute("DELETE FROM kv WHERE key = ?", (key,))
            return cursor.rowcount > 0

    async def set_batch(self, items: dict[str, dict[str, Any]]) -> int:
        """Upsert all items in one transaction."""
        rows = []
        for key, value in items.items():
            try:
                rows.append((key, json.dumps(value, ensure_ascii=False)))
            except (TypeError, ValueError) as e:
                raise StoreError(
                    f"Value for {key} is not serializable: {e}", key=key, cause=e
                ) from e
        with self._cursor() as cursor:
            cursor.executemany(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                rows,
            )
        return len(rows)

    async def delete_batch(self, keys: list[str]) -> int:
        """Delete keys in one transaction."""
        deleted = 0
        with self._cursor() as cursor:
            for key in dict.fromkeys(keys):
                cursor.execute("DELETE FROM kv WHERE key = ?", (key,))
                deleted += cursor.rowcount
        return deleted

    async def keys(self, prefix: str = "") -> list[str]:
        # substr instead of LIKE: LIKE is case-insensitive in SQLite
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT key FROM kv WHERE substr(key, 1, ?) = ? ORDER BY rowid",
                (len(prefix), prefix),
            )
            return [row[0] for row in cursor.fetchall()]
