"""SQLite key-value store.

Provides persistent storage using a SQLite database file.
Uses aiosqlite for async access.
"""

from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from ..errors import StorageError
from .base import KeyValueStore


class SQLiteStore(KeyValueStore):
    """SQLite-backed key-value store.

    Stores each blob as one row; persists across sessions.
    """

    def __init__(self, path: str | Path = "./khadija.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = await aiosqlite.connect(self._db_path)
            await self._connection.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            await self._connection.commit()
        except (OSError, aiosqlite.Error) as e:
            raise StorageError(f"Cannot open store at {self._db_path}: {e}") from e

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise StorageError("Store not connected. Call connect() first.")
        return self._connection

    async def get(self, key: str) -> str | None:
        conn = self._require_connection()
        try:
            async with conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"Cannot read {key}: {e}") from e
        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        conn = self._require_connection()
        try:
            await conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, datetime.now(timezone.utc).isoformat()),
            )
            await conn.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Cannot write {key}: {e}") from e

    async def remove(self, key: str) -> None:
        conn = self._require_connection()
        try:
            await conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            await conn.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Cannot remove {key}: {e}") from e

    @property
    def backend_type(self) -> str:
        return "sqlite"
