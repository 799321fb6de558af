"""Connection handling shared by SQLite storage adapters."""

import asyncio
import sqlite3
import threading
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager

import aiosqlite

MEMORY = ":memory:"


class SQLiteStorageBase:
    """Base class for SQLite storage adapters.

    Async methods use aiosqlite; ``*_sync`` methods use the standard
    sqlite3 module for contexts without an event loop. The schema is
    applied once per side, lazily, on first use.

    For :memory: databases a persistent connection is kept per side,
    since SQLite in-memory databases are connection-scoped. The async and
    sync sides therefore see SEPARATE databases in that case; file-based
    databases are shared.
    """

    def __init__(self, db_path: str, schema: str) -> None:
        self._db_path = db_path
        self._schema = schema
        self._async_ready = False
        self._async_lock: asyncio.Lock | None = None
        self._async_conn: aiosqlite.Connection | None = None
        self._sync_ready = False
        self._sync_lock = threading.Lock()
        self._sync_conn: sqlite3.Connection | None = None

    @property
    def _in_memory(self) -> bool:
        return self._db_path == MEMORY

    # --- async side ---

    def _get_async_lock(self) -> asyncio.Lock:
        """Create the init lock lazily so it binds to the running loop."""
        if self._async_lock is None:
            self._async_lock = asyncio.Lock()
        return self._async_lock

    async def _ensure_async_ready(self) -> None:
        if self._async_ready:
            return
        async with self._get_async_lock():
            if self._async_ready:
                return
            if self._in_memory:
                self._async_conn = await aiosqlite.connect(MEMORY)
                await self._async_conn.executescript(self._schema)
            else:
                async with aiosqlite.connect(self._db_path) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.executescript(self._schema)
            self._async_ready = True

    @asynccontextmanager
    async def async_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield an aiosqlite connection, closing it unless persistent."""
        await self._ensure_async_ready()
        if self._in_memory:
            if self._async_conn is None:
                raise RuntimeError("Memory database connection not initialized")
            yield self._async_conn
            return
        db = await aiosqlite.connect(self._db_path)
        try:
            yield db
        finally:
            await db.close()

    async def close(self) -> None:
        """Close the persistent async connection (for :memory: databases)."""
        if self._async_conn is not None:
            await self._async_conn.close()
            self._async_conn = None
            self._async_ready = False

    # --- sync side ---

    def _ensure_sync_ready(self) -> None:
        if self._sync_ready:
            return
        with self._sync_lock:
            if self._sync_ready:
                return
            if self._in_memory:
                self._sync_conn = sqlite3.connect(MEMORY, check_same_thread=False)
                self._sync_conn.executescript(self._schema)
            else:
                with sqlite3.connect(self._db_path) as db:
                    db.execute("PRAGMA journal_mode=WAL")
                    db.executescript(self._schema)
            self._sync_ready = True

    @contextmanager
    def sync_connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a sqlite3 connection, closing it unless persistent."""
        self._ensure_sync_ready()
        if self._in_memory:
            if self._sync_conn is None:
                raise RuntimeError("Sync memory database connection not initialized")
            yield self._sync_conn
            return
        conn = sqlite3.connect(self._db_path)
        try:
            yield conn
        finally:
            conn.close()
