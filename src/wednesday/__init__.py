"""Wednesday: scheduled crypto trend alerts and broadcasts for Telegram chats."""
