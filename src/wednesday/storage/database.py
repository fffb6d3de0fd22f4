"""Async SQLite database manager for chat subscriptions and user mapping.

Uses aiosqlite for non-blocking database operations with WAL mode
for concurrent read/write performance.
"""

import os
from typing import Self

import aiosqlite

from wednesday.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

ACTIVE_CHATS_TABLE = "active_chats"
ACTIVE_CRYPTO_CHATS_TABLE = "active_crypto_chats"

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS active_chats (
    chat_id INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS active_crypto_chats (
    chat_id INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS mapping (
    user_id INTEGER PRIMARY KEY,
    username TEXT NOT NULL
);
"""


class ChatDatabase:
    """Async SQLite connection manager.

    Usage:
        async with ChatDatabase("data/wednesday.db") as db:
            registry = ChatRegistry(db, ACTIVE_CHATS_TABLE)
    """

    def __init__(self, db_path: str = "data/wednesday.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """Access the raw aiosqlite connection.

        Raises RuntimeError if not connected.
        """
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    async def connect(self) -> None:
        """Open the connection, configure pragmas, and create the schema."""
        db_dir = os.path.dirname(self._db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)

        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")

        await self._connection.executescript(_CREATE_TABLES_SQL)
        await self._connection.commit()
        await self._ensure_schema_version()

        logger.info("chat_db_connected", db_path=self._db_path)

    async def close(self) -> None:
        """Close the database connection if open."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("chat_db_closed", db_path=self._db_path)

    async def _ensure_schema_version(self) -> None:
        assert self._connection is not None
        cursor = await self._connection.execute(
            "SELECT version FROM schema_version LIMIT 1"
        )
        row = await cursor.fetchone()
        if row is None:
            await self._connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            await self._connection.commit()
            logger.info("schema_version_set", version=SCHEMA_VERSION)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
