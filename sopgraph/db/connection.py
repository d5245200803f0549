"""Async SQLite connection for the project store and the version log.

One connection is shared by every store. Writes are serialized through a lock
so that a multi-statement transaction never picks up another coroutine's
statements in its commit or rollback.
"""

import asyncio
import logging
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

from sopgraph.db.schema import SCHEMA_SQL
from sopgraph.errors import PersistenceError

logger = logging.getLogger(__name__)


class Transaction:
    """Write handle valid inside `Database.transaction()`. Never commits."""

    def __init__(self, connection: aiosqlite.Connection) -> None:
        self._conn = connection

    async def execute(self, sql: str, params: tuple | None = None) -> aiosqlite.Cursor:
        return await self._conn.execute(sql, params or ())


class Database:
    """aiosqlite connection in WAL mode with auto-schema and grouped writes."""

    def __init__(self, connection: aiosqlite.Connection) -> None:
        self._conn = connection
        self._write_lock = asyncio.Lock()

    @classmethod
    async def connect(cls, path: str = "sopgraph.db") -> "Database":
        """Open a connection, enable WAL, and create tables if missing."""
        conn = await aiosqlite.connect(path)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA busy_timeout=5000")
        db = cls(conn)
        await db._ensure_schema()
        return db

    async def _ensure_schema(self) -> None:
        await self._conn.executescript(SCHEMA_SQL)
        await self._conn.commit()

    async def execute(self, sql: str, params: tuple | None = None) -> aiosqlite.Cursor:
        """Execute one write statement in its own transaction."""
        async with self._write_lock:
            try:
                cursor = await self._conn.execute(sql, params or ())
            except (aiosqlite.Error, sqlite3.Error):
                await self._conn.rollback()
                raise
            await self._conn.commit()
            return cursor

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Run several writes with a single commit.

        Any exception inside the block rolls every write back and propagates.
        A failed commit is raised as PersistenceError.
        """
        async with self._write_lock:
            try:
                yield Transaction(self._conn)
            except BaseException:
                await self._conn.rollback()
                raise
            try:
                await self._conn.commit()
            except (aiosqlite.Error, sqlite3.Error) as e:
                logger.error("Commit failed: %s", e)
                await self._conn.rollback()
                raise PersistenceError("commit") from e

    async def fetchone(self, sql: str, params: tuple | None = None) -> aiosqlite.Row | None:
        cursor = await self._conn.execute(sql, params or ())
        return await cursor.fetchone()

    async def fetchall(self, sql: str, params: tuple | None = None) -> list[aiosqlite.Row]:
        cursor = await self._conn.execute(sql, params or ())
        return list(await cursor.fetchall())

    async def close(self) -> None:
        await self._conn.close()
