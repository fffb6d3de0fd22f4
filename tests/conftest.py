"""Shared test fixtures for the Wednesday notification engine."""

import time
from collections.abc import Iterable

import pytest

from wednesday.cache.store import RateCache
from wednesday.chat.client import ChatClient
from wednesday.config import AppSettings, ApiSettings, SchedulerSettings, TelegramSettings
from wednesday.exceptions import DeliveryError


class InMemoryRedis:
    """Just enough of redis.asyncio.Redis for RateCache (lists, strings with EX, ping)."""

    def __init__(self) -> None:
        self.lists: dict[str, list[str]] = {}
        self.values: dict[str, tuple[str, float | None]] = {}
        self.closed = False

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True

    async def lrange(self, key: str, start: int, end: int) -> list[str]:
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        return list(items[start:stop])

    async def lpush(self, key: str, *values: str) -> int:
        items = self.lists.setdefault(key, [])
        for value in values:
            items.insert(0, value)
        return len(items)

    async def ltrim(self, key: str, start: int, end: int) -> bool:
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        self.lists[key] = items[start:stop]
        return True

    async def get(self, key: str) -> str | None:
        entry = self.values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            del self.values[key]
            return None
        return value

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        expires_at = time.monotonic() + ex if ex is not None else None
        self.values[key] = (str(value), expires_at)
        return True


class FakeRegistry:
    """In-memory stand-in for ChatRegistry."""

    def __init__(self, chats: Iterable[int] = (), name: str = "active_crypto_chats") -> None:
        self.chats = list(chats)
        self.name = name
        self.removed: list[int] = []
        self.added: list[int] = []

    async def list_chats(self) -> list[int]:
        return list(self.chats)

    async def add(self, chat_id: int) -> None:
        if chat_id not in self.chats:
            self.chats.append(chat_id)
        self.added.append(chat_id)

    async def remove(self, chat_id: int) -> None:
        if chat_id in self.chats:
            self.chats.remove(chat_id)
        self.removed.append(chat_id)


class ScriptedChatClient(ChatClient):
    """ChatClient whose failures are scripted per chat id.

    ``script[chat_id]`` is a list of exceptions raised on successive sends to
    that chat; once exhausted, sends succeed.
    """

    def __init__(self, script: dict[int, list[DeliveryError]] | None = None) -> None:
        self.script = {chat: list(errors) for chat, errors in (script or {}).items()}
        self.attempts: list[tuple[int, str]] = []
        self.sent: list[tuple[int, str]] = []
        self.deleted: list[tuple[int, int]] = []

    async def send_message(self, chat_id: int, text: str) -> int:
        self.attempts.append((chat_id, text))
        pending = self.script.get(chat_id)
        if pending:
            raise pending.pop(0)
        self.sent.append((chat_id, text))
        return len(self.sent)

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        self.deleted.append((chat_id, message_id))

    async def close(self) -> None:
        pass


@pytest.fixture
def redis_double() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def rate_cache(redis_double: InMemoryRedis) -> RateCache:
    return RateCache(redis_double)  # type: ignore[arg-type]


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (dummy token, no retry delay)."""
    return AppSettings(
        log_level="DEBUG",
        telegram=TelegramSettings(
            token="123456:test-token",  # type: ignore[arg-type]
            admin_chat_id=None,
        ),
        api=ApiSettings(retry_attempts=3, retry_delay=0.0),
        scheduler=SchedulerSettings(),
    )


@pytest.fixture
def make_registry() -> type[FakeRegistry]:
    return FakeRegistry


@pytest.fixture
def make_chat_client() -> type[ScriptedChatClient]:
    return ScriptedChatClient
