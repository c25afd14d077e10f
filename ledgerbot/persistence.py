"""Append-only persistence for message and log records."""
from __future__ import annotations

import abc
import asyncio
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Optional

import asyncpg

from .config import BotConfig, PostgresConfig
from .errors import PersistenceError, StartupError
from .models import InsertResult, LogRecord, MessageRecord, Record

logger = logging.getLogger(__name__)

_POSTGRES_SCHEMA = """
CREATE TABLE IF NOT EXISTS messages (
    id BIGSERIAL PRIMARY KEY,
    author TEXT NOT NULL,
    input TEXT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS logs (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    author TEXT NOT NULL,
    started TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
    ended TIMESTAMPTZ
);
"""

_SQLITE_UUID4 = (
    "lower(hex(randomblob(4)) || '-' || hex(randomblob(2)) || '-4' || "
    "substr(hex(randomblob(2)), 2) || '-' || "
    "substr('89ab', 1 + (abs(random()) % 4), 1) || "
    "substr(hex(randomblob(2)), 2) || '-' || hex(randomblob(6)))"
)

_SQLITE_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    author TEXT NOT NULL,
    input TEXT NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS logs (
    id TEXT PRIMARY KEY DEFAULT ({_SQLITE_UUID4}),
    author TEXT NOT NULL,
    started TEXT DEFAULT CURRENT_TIMESTAMP,
    ended TEXT
);
"""


class PersistenceGateway(abc.ABC):
    """Insert-only access to the relational store.

    Only inserts are exposed; records are never updated or deleted.
    """

    async def connect(self) -> None:
        """Open connections and check the store is reachable."""

    @abc.abstractmethod
    async def ensure_schema(self) -> None:
        """Create the backing tables if they do not exist yet."""

    @abc.abstractmethod
    async def insert(self, record: Record) -> InsertResult:
        """Write one record and return what the store assigned to it."""

    async def close(self) -> None:
        """Release connections."""


class PostgresGateway(PersistenceGateway):
    """PostgreSQL store backed by an ``asyncpg`` pool shared by all handlers.

    The ``logs.id`` default calls ``gen_random_uuid()``, which is built in
    from PostgreSQL 13. Older servers need ``CREATE EXTENSION pgcrypto``
    before the schema is created.
    """

    def __init__(
        self,
        config: PostgresConfig,
        *,
        min_size: int = 1,
        max_size: int = 5,
        command_timeout: float = 30.0,
    ) -> None:
        self._config = config
        self._min_size = min_size
        self._max_size = max_size
        self._command_timeout = command_timeout
        self._pool: Optional[asyncpg.Pool] = None

    async def connect(self) -> None:
        if self._pool is not None:
            return
        try:
            self._pool = await asyncpg.create_pool(
                self._config.dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
            )
            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as exc:
            raise StartupError(
                f"failed to connect to PostgreSQL at {self._config.host}:{self._config.port}: {exc}"
            ) from exc
        logger.info(
            "Connected to PostgreSQL %s:%s/%s",
            self._config.host,
            self._config.port,
            self._config.database,
        )

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise PersistenceError("PostgreSQL pool is not connected")
        return self._pool

    async def ensure_schema(self) -> None:
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                await conn.execute(_POSTGRES_SCHEMA)
        except asyncpg.UndefinedFunctionError as exc:
            raise StartupError(
                "failed to set up schema: gen_random_uuid() needs PostgreSQL 13+ "
                f"or the pgcrypto extension ({exc})"
            ) from exc
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as exc:
            raise StartupError(f"failed to set up schema: {exc}") from exc

    async def insert(self, record: Record) -> InsertResult:
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                if isinstance(record, MessageRecord):
                    row = await conn.fetchrow(
                        "INSERT INTO messages (author, input) VALUES ($1, $2) "
                        "RETURNING id, created_at",
                        record.author,
                        record.input,
                    )
                    return InsertResult("messages", row["id"], row["created_at"])
                if isinstance(record, LogRecord):
                    row = await conn.fetchrow(
                        "INSERT INTO logs (author) VALUES ($1) RETURNING id, started",
                        record.author,
                    )
                    return InsertResult("logs", row["id"], row["started"])
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as exc:
            raise PersistenceError(f"insert failed: {exc}") from exc
        raise PersistenceError(f"unsupported record type {type(record).__name__}")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None


class SqliteGateway(PersistenceGateway):
    """SQLite store for local runs; each call opens its own connection."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def connect(self) -> None:
        try:
            await asyncio.to_thread(self._ping)
        except sqlite3.Error as exc:
            raise StartupError(f"failed to open SQLite database {self._db_path}: {exc}") from exc
        logger.info("Using SQLite database %s", self._db_path)

    def _ping(self) -> None:
        with closing(sqlite3.connect(self._db_path)) as conn:
            conn.execute("SELECT 1").fetchone()

    async def ensure_schema(self) -> None:
        try:
            await asyncio.to_thread(self._ensure_schema)
        except sqlite3.Error as exc:
            raise StartupError(f"failed to set up schema: {exc}") from exc

    def _ensure_schema(self) -> None:
        with closing(sqlite3.connect(self._db_path)) as conn:
            conn.executescript(_SQLITE_SCHEMA)
            conn.commit()

    async def insert(self, record: Record) -> InsertResult:
        if not isinstance(record, (MessageRecord, LogRecord)):
            raise PersistenceError(f"unsupported record type {type(record).__name__}")
        try:
            return await asyncio.to_thread(self._insert, record)
        except sqlite3.Error as exc:
            raise PersistenceError(f"insert failed: {exc}") from exc

    def _insert(self, record: Record) -> InsertResult:
        with closing(sqlite3.connect(self._db_path)) as conn:
            if isinstance(record, MessageRecord):
                cursor = conn.execute(
                    "INSERT INTO messages (author, input) VALUES (?, ?)",
                    (record.author, record.input),
                )
                row = conn.execute(
                    "SELECT id, created_at FROM messages WHERE rowid = ?",
                    (cursor.lastrowid,),
                ).fetchone()
                table = "messages"
            else:
                cursor = conn.execute("INSERT INTO logs (author) VALUES (?)", (record.author,))
                row = conn.execute(
                    "SELECT id, started FROM logs WHERE rowid = ?",
                    (cursor.lastrowid,),
                ).fetchone()
                table = "logs"
            conn.commit()
        return InsertResult(table, row[0], row[1])


def create_gateway(config: BotConfig) -> PersistenceGateway:
    """Pick the store configured for this process."""

    if config.database_backend == "sqlite":
        return SqliteGateway(config.sqlite_path)
    return PostgresGateway(config.postgres)


__all__ = [
    "PersistenceGateway",
    "PostgresGateway",
    "SqliteGateway",
    "create_gateway",
]
