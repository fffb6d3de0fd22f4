"""Abstract chat client interface.

Delivery code depends only on this interface and on the DeliveryError
taxonomy in ``wednesday.exceptions``; platform specifics stay in the
concrete implementation.
"""

from abc import ABC, abstractmethod


class ChatClient(ABC):
    """Sends and deletes messages in chats identified by integer ids."""

    @abstractmethod
    async def send_message(self, chat_id: int, text: str) -> int:
        """Send ``text`` to ``chat_id`` and return the new message id.

        Raises a DeliveryError subclass on failure.
        """
        ...

    @abstractmethod
    async def delete_message(self, chat_id: int, message_id: int) -> None:
        """Delete a previously sent message."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP session."""
        ...
