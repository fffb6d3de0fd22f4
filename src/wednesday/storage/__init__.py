"""Relational store: chat subscriptions and user display names (SQLite)."""

from wednesday.storage.database import (
    ACTIVE_CHATS_TABLE,
    ACTIVE_CRYPTO_CHATS_TABLE,
    ChatDatabase,
)
from wednesday.storage.registry import ChatRegistry, UserMapping

__all__ = [
    "ACTIVE_CHATS_TABLE",
    "ACTIVE_CRYPTO_CHATS_TABLE",
    "ChatDatabase",
    "ChatRegistry",
    "UserMapping",
]
