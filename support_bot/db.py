from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
from typing import Any, AsyncIterator

import aiosqlite

from support_bot.errors import StoreError

logger = logging.getLogger(__name__)

SCHEMA = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS users (
    telegram_id INTEGER PRIMARY KEY,
    phone TEXT,
    subscription_expires_at TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS credited_payments (
    payment_id TEXT PRIMARY KEY,
    telegram_id INTEGER NOT NULL,
    tariff_token TEXT NOT NULL,
    credited_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_credited_payments_user ON credited_payments(telegram_id);
"""


class Transaction:
    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn

    async def execute(self, query: str, *params: Any) -> int:
        try:
            cursor = await self._conn.execute(query, params)
            rowcount = cursor.rowcount
            await cursor.close()
        except aiosqlite.Error as exc:
            raise StoreError(str(exc)) from exc
        return rowcount

    async def fetchone(self, query: str, *params: Any) -> tuple | None:
        try:
            async with self._conn.execute(query, params) as cursor:
                return await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StoreError(str(exc)) from exc


class Database:
    """Single aiosqlite connection in autocommit mode.

    Every statement goes through one lock so a reader never observes the
    uncommitted half of a transaction running on the same connection.
    """

    def __init__(self, path: str):
        self.path = path
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        try:
            self._conn = await aiosqlite.connect(self.path, isolation_level=None)
            await self._conn.executescript(SCHEMA)
        except aiosqlite.Error as exc:
            raise StoreError(f"Failed to open database {self.path}") from exc
        logger.info("Database ready: path=%s", self.path)

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreError("Database is not connected")
        return self._conn

    async def execute(self, query: str, *params: Any) -> None:
        await self.execute_with_rowcount(query, *params)

    async def execute_with_rowcount(self, query: str, *params: Any) -> int:
        conn = self._connection()
        async with self._lock:
            return await Transaction(conn).execute(query, *params)

    async def fetchone(self, query: str, *params: Any) -> tuple | None:
        conn = self._connection()
        async with self._lock:
            return await Transaction(conn).fetchone(query, *params)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        conn = self._connection()
        async with self._lock:
            try:
                await conn.execute("BEGIN IMMEDIATE")
            except aiosqlite.Error as exc:
                raise StoreError(str(exc)) from exc
            try:
                yield Transaction(conn)
            except BaseException:
                await conn.rollback()
                raise
            try:
                await conn.commit()
            except aiosqlite.Error as exc:
                await conn.rollback()
                raise StoreError(str(exc)) from exc
