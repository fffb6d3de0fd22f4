"""Tests for the aiogram-backed chat client and its error classification."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram.exceptions import (
    TelegramBadRequest,
    TelegramForbiddenError,
    TelegramMigrateToChat,
    TelegramNetworkError,
    TelegramRetryAfter,
    TelegramServerError,
)
from aiogram.methods import SendMessage

from wednesday.chat.telegram_client import TelegramChatClient, translate_telegram_error
from wednesday.exceptions import (
    DeliveryError,
    DeliveryNetworkError,
    MigratedTo,
    RateLimited,
    RecipientBlocked,
    RecipientDeactivated,
    RecipientNotFound,
)

METHOD = SendMessage(chat_id=42, text="hello")


class TestTranslateTelegramError:
    def test_retry_after(self) -> None:
        error = TelegramRetryAfter(METHOD, "Too Many Requests", retry_after=17)
        result = translate_telegram_error(42, error)
        assert isinstance(result, RateLimited)
        assert result.retry_after == 17.0
        assert result.chat_id == 42

    def test_migrate_to_chat(self) -> None:
        error = TelegramMigrateToChat(
            METHOD, "group chat was upgraded", migrate_to_chat_id=-1001234
        )
        result = translate_telegram_error(42, error)
        assert isinstance(result, MigratedTo)
        assert result.new_chat_id == -1001234

    def test_blocked_by_user(self) -> None:
        error = TelegramForbiddenError(METHOD, "Forbidden: bot was blocked by the user")
        assert isinstance(translate_telegram_error(42, error), RecipientBlocked)

    def test_kicked_from_group(self) -> None:
        error = TelegramForbiddenError(METHOD, "Forbidden: bot was kicked from the group chat")
        assert isinstance(translate_telegram_error(42, error), RecipientBlocked)

    def test_user_deactivated(self) -> None:
        error = TelegramForbiddenError(METHOD, "Forbidden: user is deactivated")
        assert isinstance(translate_telegram_error(42, error), RecipientDeactivated)

    def test_chat_not_found(self) -> None:
        error = TelegramBadRequest(METHOD, "Bad Request: chat not found")
        assert isinstance(translate_telegram_error(42, error), RecipientNotFound)

    def test_other_bad_request_is_unclassified(self) -> None:
        error = TelegramBadRequest(METHOD, "Bad Request: message is too long")
        result = translate_telegram_error(42, error)
        assert type(result) is DeliveryError
        assert "too long" in str(result)

    def test_network_error(self) -> None:
        error = TelegramNetworkError(METHOD, "connection reset")
        assert isinstance(translate_telegram_error(42, error), DeliveryNetworkError)

    def test_server_error_is_unclassified(self) -> None:
        error = TelegramServerError(METHOD, "Internal Server Error")
        assert type(translate_telegram_error(42, error)) is DeliveryError


@pytest.fixture
def bot() -> MagicMock:
    mock = MagicMock()
    mock.send_message = AsyncMock()
    mock.delete_message = AsyncMock()
    mock.session.close = AsyncMock()
    return mock


class TestTelegramChatClient:
    @pytest.mark.asyncio
    async def test_send_returns_message_id(self, bot: MagicMock) -> None:
        bot.send_message.return_value = MagicMock(message_id=555)
        client = TelegramChatClient(bot=bot)

        assert await client.send_message(42, "hello") == 555
        bot.send_message.assert_awaited_once_with(chat_id=42, text="hello")

    @pytest.mark.asyncio
    async def test_send_translates_errors(self, bot: MagicMock) -> None:
        original = TelegramForbiddenError(METHOD, "Forbidden: bot was blocked by the user")
        bot.send_message.side_effect = original
        client = TelegramChatClient(bot=bot)

        with pytest.raises(RecipientBlocked) as exc_info:
            await client.send_message(42, "hello")
        assert exc_info.value.__cause__ is original

    @pytest.mark.asyncio
    async def test_delete_message(self, bot: MagicMock) -> None:
        client = TelegramChatClient(bot=bot)

        await client.delete_message(42, 555)

        bot.delete_message.assert_awaited_once_with(chat_id=42, message_id=555)

    @pytest.mark.asyncio
    async def test_close_closes_bot_session(self, bot: MagicMock) -> None:
        client = TelegramChatClient(bot=bot)

        await client.close()

        bot.session.close.assert_awaited_once()
