"""Custom exceptions for the Wednesday notification engine.

Fetch-layer and delivery-layer exceptions live here so the retry wrapper,
the broadcaster and the chat client can share one taxonomy without
importing each other.
"""

from typing import Any


class WednesdayError(Exception):
    """Base exception for all engine errors."""


# ──────────────────────────────────────────────
# Upstream price APIs
# ──────────────────────────────────────────────


class FetchError(WednesdayError):
    """Base for failures while talking to an upstream price API."""


class TransientFetchError(FetchError):
    """Connection failure, timeout or server-side error. Safe to retry."""


class TerminalFetchError(FetchError):
    """The upstream answered, but with something we cannot use. Never retried."""


class DataFormatError(TerminalFetchError):
    """Response is not a JSON object, or a field is missing or not a finite number."""

    def __init__(self, message: str, field: str | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.field = field
        self.payload = payload

    def __str__(self) -> str:
        text = super().__str__()
        if self.field is not None:
            text = f"{text} (field={self.field!r})"
        if self.payload is not None:
            text = f"{text}; payload={self.payload!r:.300}"
        return text


class UpstreamError(TerminalFetchError):
    """The upstream returned an explicit error payload."""

    def __init__(self, code: Any, message: str) -> None:
        super().__init__(f"upstream error {code}: {message}")
        self.code = code
        self.message = message


class MissingCredentialsError(TerminalFetchError):
    """An endpoint needs an API key that is not configured."""


class RetryExhaustedError(FetchError):
    """All retry attempts failed with transient errors."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


# ──────────────────────────────────────────────
# Chat delivery
# ──────────────────────────────────────────────


class DeliveryError(WednesdayError):
    """Message delivery failed for a reason we do not classify further."""

    def __init__(self, chat_id: int, message: str = "") -> None:
        super().__init__(f"chat {chat_id}: {message}" if message else f"chat {chat_id}")
        self.chat_id = chat_id


class RecipientGoneError(DeliveryError):
    """The recipient will never accept messages again without reconfiguration."""


class RecipientBlocked(RecipientGoneError):
    """The bot was blocked by the user or kicked from the chat."""


class RecipientNotFound(RecipientGoneError):
    """The chat does not exist (anymore)."""


class RecipientDeactivated(RecipientGoneError):
    """The user account was deactivated."""


class RateLimited(DeliveryError):
    """Flood control: wait ``retry_after`` seconds before sending again."""

    def __init__(self, chat_id: int, retry_after: float) -> None:
        super().__init__(chat_id, f"rate limited for {retry_after}s")
        self.retry_after = retry_after


class MigratedTo(DeliveryError):
    """The group was upgraded to a supergroup with a new chat id."""

    def __init__(self, chat_id: int, new_chat_id: int) -> None:
        super().__init__(chat_id, f"migrated to {new_chat_id}")
        self.new_chat_id = new_chat_id


class DeliveryNetworkError(DeliveryError):
    """Network failure between us and the chat platform."""
