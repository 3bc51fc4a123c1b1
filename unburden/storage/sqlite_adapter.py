"""
Key-value storage using SQLite.

Stores every value in a single kv_store table. Blocking database calls run
in a worker thread so the event loop keeps ticking during disk I/O.
"""

import asyncio
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from unburden.config import STATE_DB_PATH
from unburden.errors import StorageError, StorageWriteFailure
from unburden.storage.base import StorageAdapter

logger = logging.getLogger(__name__)


class SQLiteStorage(StorageAdapter):
    """
    Storage adapter backed by a SQLite database file.

    One connection is shared by all calls; a lock keeps worker threads
    from using it at the same time.
    """

    def __init__(self, db_path: Path = STATE_DB_PATH):
        """
        Initialize the SQLite storage.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self.connection: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def init_db(self) -> None:
        """
        Create the database file and the kv_store table if needed.
        """
        with self._lock:
            self._get_connection()

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get or create database connection.

        The kv_store table is created the first time a connection opens.

        Returns:
            SQLite connection object.

        Note:
            Uses check_same_thread=False because calls are dispatched to
            worker threads; self._lock serializes them.
        """
        if self.connection is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()
            self.connection = conn
        return self.connection

    def _get_sync(self, key: str) -> Optional[str]:
        with self._lock:
            cursor = self._get_connection().cursor()
            cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cursor.fetchone()
        if row is None:
            return None
        return row["value"]

    def _set_sync(self, key: str, value: str) -> None:
        with self._lock:
            conn = self._get_connection()
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, datetime.now().isoformat()),
            )
            conn.commit()

    def _remove_sync(self, key: str) -> None:
        with self._lock:
            conn = self._get_connection()
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()

    async def get(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._get_sync, key)
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Error reading '{key}' from {self.db_path}: {e}")
            raise StorageError(f"Could not read '{key}': {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._set_sync, key, value)
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Error writing '{key}' to {self.db_path}: {e}")
            raise StorageWriteFailure(f"Could not write '{key}': {e}") from e

    async def remove(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._remove_sync, key)
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Error removing '{key}' from {self.db_path}: {e}")
            raise StorageWriteFailure(f"Could not remove '{key}': {e}") from e

    async def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self.connection is not None:
                self.connection.close()
                self.connection = None
