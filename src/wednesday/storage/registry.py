"""Typed access to the subscription tables and the user display-name mapping."""

from wednesday.logging import get_logger
from wednesday.storage.database import (
    ACTIVE_CHATS_TABLE,
    ACTIVE_CRYPTO_CHATS_TABLE,
    ChatDatabase,
)

logger = get_logger(__name__)

_KNOWN_TABLES = frozenset({ACTIVE_CHATS_TABLE, ACTIVE_CRYPTO_CHATS_TABLE})


class ChatRegistry:
    """One set of subscribed chat ids.

    The table name is interpolated into SQL, so only the known
    subscription tables are accepted.
    """

    def __init__(self, database: ChatDatabase, table: str) -> None:
        if table not in _KNOWN_TABLES:
            raise ValueError(f"unknown subscription table: {table}")
        self._database = database
        self._table = table

    @property
    def name(self) -> str:
        return self._table

    async def list_chats(self) -> list[int]:
        cursor = await self._database.db.execute(
            f"SELECT chat_id FROM {self._table} ORDER BY chat_id"
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def is_active(self, chat_id: int) -> bool:
        cursor = await self._database.db.execute(
            f"SELECT 1 FROM {self._table} WHERE chat_id = ? LIMIT 1", (chat_id,)
        )
        return await cursor.fetchone() is not None

    async def add(self, chat_id: int) -> None:
        await self._database.db.execute(
            f"INSERT OR IGNORE INTO {self._table} (chat_id) VALUES (?)", (chat_id,)
        )
        await self._database.db.commit()
        logger.info("chat_registered", table=self._table, chat_id=chat_id)

    async def remove(self, chat_id: int) -> None:
        await self._database.db.execute(
            f"DELETE FROM {self._table} WHERE chat_id = ?", (chat_id,)
        )
        await self._database.db.commit()
        logger.info("chat_deregistered", table=self._table, chat_id=chat_id)


class UserMapping:
    """user id -> display name, refreshed from incoming messages."""

    def __init__(self, database: ChatDatabase) -> None:
        self._database = database

    async def get_display_names(self) -> dict[int, str]:
        cursor = await self._database.db.execute("SELECT user_id, username FROM mapping")
        rows = await cursor.fetchall()
        return {user_id: username for user_id, username in rows}

    async def update(self, mapping: dict[int, str]) -> None:
        if not mapping:
            return
        await self._database.db.executemany(
            "INSERT INTO mapping (user_id, username) VALUES (?, ?) "
            "ON CONFLICT(user_id) DO UPDATE SET username = excluded.username",
            list(mapping.items()),
        )
        await self._database.db.commit()
