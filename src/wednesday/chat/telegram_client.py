"""Telegram implementation of ChatClient on top of aiogram.

Maps aiogram's exception hierarchy onto the delivery taxonomy so the
broadcaster never sees a platform-specific error.
"""

from aiogram import Bot
from aiogram.exceptions import (
    TelegramAPIError,
    TelegramBadRequest,
    TelegramForbiddenError,
    TelegramMigrateToChat,
    TelegramNetworkError,
    TelegramRetryAfter,
)

from wednesday.chat.client import ChatClient
from wednesday.exceptions import (
    DeliveryError,
    DeliveryNetworkError,
    MigratedTo,
    RateLimited,
    RecipientBlocked,
    RecipientDeactivated,
    RecipientNotFound,
)
from wednesday.logging import get_logger

logger = get_logger(__name__)


def translate_telegram_error(chat_id: int, error: TelegramAPIError) -> DeliveryError:
    """Classify an aiogram error for ``chat_id``."""
    text = error.message or ""
    lowered = text.lower()

    if isinstance(error, TelegramRetryAfter):
        return RateLimited(chat_id, float(error.retry_after))
    if isinstance(error, TelegramMigrateToChat):
        return MigratedTo(chat_id, error.migrate_to_chat_id)
    if isinstance(error, TelegramForbiddenError):
        if "deactivated" in lowered:
            return RecipientDeactivated(chat_id, text)
        return RecipientBlocked(chat_id, text)
    if isinstance(error, TelegramBadRequest) and "chat not found" in lowered:
        return RecipientNotFound(chat_id, text)
    if isinstance(error, TelegramNetworkError):
        return DeliveryNetworkError(chat_id, text)
    return DeliveryError(chat_id, text)


class TelegramChatClient(ChatClient):
    """Sends messages through the Telegram Bot API.

    Args:
        token: Bot token from BotFather.
        bot: Optional pre-built aiogram Bot (used by tests).
    """

    def __init__(self, token: str = "", bot: Bot | None = None) -> None:
        if bot is None:
            bot = Bot(token=token)
        self._bot = bot

    async def send_message(self, chat_id: int, text: str) -> int:
        try:
            message = await self._bot.send_message(chat_id=chat_id, text=text)
        except TelegramAPIError as e:
            raise translate_telegram_error(chat_id, e) from e
        return message.message_id

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        try:
            await self._bot.delete_message(chat_id=chat_id, message_id=message_id)
        except TelegramAPIError as e:
            raise translate_telegram_error(chat_id, e) from e

    async def close(self) -> None:
        await self._bot.session.close()
        logger.info("telegram_session_closed")
