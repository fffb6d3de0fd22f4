"""Chat platform client abstraction and Telegram implementation."""

from wednesday.chat.client import ChatClient
from wednesday.chat.telegram_client import TelegramChatClient

__all__ = ["ChatClient", "TelegramChatClient"]
