from __future__ import annotations

import asyncio
import json
import math
import sqlite3
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from vrchat_session.application.ports.cache_port import CacheKey, CachedItem, ExpiringCachePort

SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entry (
  segment TEXT NOT NULL,
  id TEXT NOT NULL,
  item TEXT NOT NULL,
  expires_at REAL,
  PRIMARY KEY (segment, id)
);
"""


class SQLiteCache(ExpiringCachePort):
    """SQLite-backed expiring cache. Persists session cookies across restarts.

    File path configurable; creates schema on start. Items must be JSON
    serializable. ``expires_at`` is wall-clock time so entries survive a
    restart with the right remaining lifetime; NULL means no expiry.

    sqlite3 blocks, so every statement runs in a worker thread through
    ``asyncio.to_thread``. A lock keeps one statement at a time on the
    shared connection.
    """

    def __init__(self, db_path: str = ".vrchat_cookies.sqlite", *, clock: Callable[[], float] = time.time) -> None:
        self._path = Path(db_path)
        self._clock = clock
        self._conn: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.executescript(SCHEMA)
        conn.commit()
        return conn

    async def start(self) -> None:
        async with self._lock:
            if self._conn is not None:
                return
            self._conn = await asyncio.to_thread(self._open)

    async def stop(self) -> None:
        async with self._lock:
            if self._conn is not None:
                conn, self._conn = self._conn, None
                await asyncio.to_thread(conn.close)

    def is_ready(self) -> bool:
        return self._conn is not None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("SQLiteCache used before start()")
        return self._conn

    def _get(self, conn: sqlite3.Connection, key: CacheKey, now: float) -> CachedItem | None:
        row = conn.execute(
            "SELECT item, expires_at FROM cache_entry WHERE segment=? AND id=?",
            (key.segment, key.id),
        ).fetchone()
        if not row:
            return None

        item_str, expires_at = row
        if expires_at is None:
            return CachedItem(item=json.loads(item_str), ttl=math.inf)

        remaining = expires_at - now
        if remaining <= 0:
            self._delete(conn, key)
            return None
        return CachedItem(item=json.loads(item_str), ttl=remaining)

    def _set(self, conn: sqlite3.Connection, key: CacheKey, payload: str, expires_at: float | None) -> None:
        conn.execute(
            "INSERT INTO cache_entry (segment, id, item, expires_at) VALUES (?, ?, ?, ?) "
            "ON CONFLICT(segment, id) DO UPDATE SET item=excluded.item, expires_at=excluded.expires_at",
            (key.segment, key.id, payload, expires_at),
        )
        conn.commit()

    def _delete(self, conn: sqlite3.Connection, key: CacheKey) -> None:
        conn.execute("DELETE FROM cache_entry WHERE segment=? AND id=?", (key.segment, key.id))
        conn.commit()

    async def get(self, key: CacheKey) -> CachedItem | None:
        """Reads an entry, evicting it when its lifetime has run out.

        Args:
            key (CacheKey): Segment and id of the entry.

        Returns:
            CachedItem | None: The item with its remaining TTL in seconds, or None.
        """
        async with self._lock:
            conn = self._connection()
            return await asyncio.to_thread(self._get, conn, key, self._clock())

    async def set(self, key: CacheKey, item: Any, ttl: float) -> None:
        """Stores an entry, replacing any previous one.

        Args:
            key (CacheKey): Segment and id of the entry.
            item (Any): JSON-serializable value.
            ttl (float): Lifetime in seconds. ``math.inf`` never expires; ``<= 0`` deletes.
        """
        async with self._lock:
            conn = self._connection()
            if ttl <= 0:
                await asyncio.to_thread(self._delete, conn, key)
                return
            expires_at = None if math.isinf(ttl) else self._clock() + ttl
            await asyncio.to_thread(self._set, conn, key, json.dumps(item), expires_at)
