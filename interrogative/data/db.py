"""Module db: SQLite snapshot storage for the scanner stores."""
#
# PURPOSE:
# The durable PersistenceAdapter. Each store's snapshot envelope is kept as
# one JSON row keyed by store name, so a cold start reloads the last
# persisted state of every store with a single query each.
#
# WHY SQLITE:
# - No separate database server needed (just a file in the data directory)
# - Atomic row replacement: a snapshot is either the old one or the new one
#
# KEY CONCEPTS:
# - Async/Await: aiosqlite keeps the event loop free during writes
# - WAL Mode (Write-Ahead Logging): readers do not block the writer
# - One lazily opened connection; writes serialized through an asyncio.Lock
#

import asyncio
import json
import logging
import os
from typing import Any, Dict, List, Optional

import aiosqlite

from interrogative.base.config import get_config
from interrogative.base.errors import ErrorCode, ScannerError
from interrogative.data.persistence import SCHEMA_VERSION_KEY, PersistenceAdapter

logger = logging.getLogger(__name__)


class SnapshotDatabase(PersistenceAdapter):
    """aiosqlite-backed snapshot table."""

    def __init__(self, db_path: Optional[str] = None):
        if db_path is None:
            db_path = str(get_config().storage.db_path)
        self.db_path = str(db_path)
        parent = os.path.dirname(self.db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)

        self._initialized = False
        # Locks are created lazily: asyncio.Lock must be built inside a loop
        self._init_lock: Optional[asyncio.Lock] = None
        self._db_lock: Optional[asyncio.Lock] = None
        self._db_connection: Optional[aiosqlite.Connection] = None

    async def init(self) -> None:
        if self._initialized:
            return

        if self._init_lock is None:
            self._init_lock = asyncio.Lock()
        if self._db_lock is None:
            self._db_lock = asyncio.Lock()

        async with self._init_lock:
            if self._initialized:
                return
            try:
                self._db_connection = await aiosqlite.connect(self.db_path, timeout=5.0)
                await self._db_connection.execute("PRAGMA journal_mode=WAL;")
                await self._db_connection.execute("PRAGMA synchronous=NORMAL;")
                await self._db_connection.execute("PRAGMA busy_timeout=5000;")
                await self._db_connection.execute("""
                    CREATE TABLE IF NOT EXISTS snapshots (
                        store_name TEXT PRIMARY KEY,
                        schema_version INTEGER NOT NULL,
                        data JSON NOT NULL CHECK(json_valid(data)),
                        updated_at TEXT NOT NULL DEFAULT (datetime('now'))
                    )
                """)
                await self._db_connection.commit()
                self._initialized = True
                logger.info(f"[SnapshotDatabase] Initialized at {self.db_path} (WAL mode)")
            except (aiosqlite.Error, OSError) as e:
                logger.error(f"[SnapshotDatabase] Init failed: {e}")
                raise ScannerError(
                    ErrorCode.DB_INIT_FAILED,
                    f"Could not open snapshot database: {e}",
                    details={"db_path": self.db_path},
                ) from e

    async def close(self) -> None:
        """Close the database connection safely."""
        if self._db_connection:
            try:
                await self._db_connection.close()
                logger.info("[SnapshotDatabase] Connection closed.")
            except aiosqlite.Error as e:
                logger.error(f"[SnapshotDatabase] Error closing connection: {e}")
            finally:
                self._db_connection = None
                self._initialized = False

    async def save(self, store_name: str, snapshot: Dict[str, Any]) -> None:
        if not self._initialized:
            await self.init()
        blob = json.dumps(snapshot, sort_keys=True)
        async with self._db_lock:
            try:
                await self._db_connection.execute(
                    """
                    INSERT OR REPLACE INTO snapshots (store_name, schema_version, data, updated_at)
                    VALUES (?, ?, ?, datetime('now'))
                    """,
                    (store_name, int(snapshot.get(SCHEMA_VERSION_KEY, 0)), blob),
                )
                await self._db_connection.commit()
            except aiosqlite.Error as e:
                raise ScannerError(
                    ErrorCode.DB_QUERY_FAILED,
                    f"Saving snapshot {store_name} failed: {e}",
                ) from e

    async def load(self, store_name: str) -> Optional[Dict[str, Any]]:
        if not self._initialized:
            await self.init()
        async with self._db_lock:
            try:
                async with self._db_connection.execute(
                    "SELECT data FROM snapshots WHERE store_name = ?", (store_name,)
                ) as cursor:
                    row = await cursor.fetchone()
            except aiosqlite.Error as e:
                raise ScannerError(
                    ErrorCode.DB_QUERY_FAILED,
                    f"Loading snapshot {store_name} failed: {e}",
                ) from e
        return json.loads(row[0]) if row else None

    async def delete(self, store_name: str) -> None:
        if not self._initialized:
            await self.init()
        async with self._db_lock:
            await self._db_connection.execute(
                "DELETE FROM snapshots WHERE store_name = ?", (store_name,)
            )
            await self._db_connection.commit()

    async def list_stores(self) -> List[str]:
        if not self._initialized:
            await self.init()
        async with self._db_lock:
            async with self._db_connection.execute(
                "SELECT store_name FROM snapshots ORDER BY store_name"
            ) as cursor:
                rows = await cursor.fetchall()
        return [row[0] for row in rows]
