"""Fan-out of one message to every chat in a subscription set.

Per-recipient failures are classified:

- recipient gone (blocked, not found, deactivated): deregister, continue
- migrated to a new chat id: swap ids in the registry, resend once, continue
- rate limited: sleep the server-specified cooldown, retry the same chat
- network failure: sleep a fixed interval, retry the same chat
- anything else: propagate and abort the rest of the fan-out
"""

import asyncio
from dataclasses import dataclass, field

from wednesday.chat.client import ChatClient
from wednesday.exceptions import (
    DeliveryError,
    DeliveryNetworkError,
    MigratedTo,
    RateLimited,
    RecipientGoneError,
)
from wednesday.logging import get_logger
from wednesday.storage.registry import ChatRegistry

logger = get_logger(__name__)


@dataclass
class BroadcastReport:
    """What happened during one broadcast."""

    delivered: list[int] = field(default_factory=list)
    removed: list[int] = field(default_factory=list)
    migrated: dict[int, int] = field(default_factory=dict)


class Broadcaster:
    """Delivers messages to chats and keeps subscription sets clean.

    Args:
        chat_client: Platform client raising DeliveryError subclasses.
        network_retry_delay: Seconds to wait after a network failure before resending.
        max_send_attempts: Sends per chat before a rate limit or network failure
            is given up on and raised.
    """

    def __init__(
        self,
        chat_client: ChatClient,
        network_retry_delay: float = 10.0,
        max_send_attempts: int = 5,
    ) -> None:
        if max_send_attempts < 1:
            raise ValueError("max_send_attempts must be >= 1")
        self._chat_client = chat_client
        self._network_retry_delay = network_retry_delay
        self._max_send_attempts = max_send_attempts

    async def send_to_chat(self, chat_id: int, message: str) -> int:
        """Send to one chat, waiting out rate limits and network failures.

        Any other DeliveryError (including recipient-gone and migration)
        is raised to the caller, as is the last rate limit or network
        failure once max_send_attempts is used up.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._chat_client.send_message(chat_id, message)
            except (RateLimited, DeliveryNetworkError) as e:
                if attempt >= self._max_send_attempts:
                    logger.error(
                        "delivery_retries_exhausted",
                        chat_id=chat_id,
                        attempts=attempt,
                        error=str(e),
                    )
                    raise
                if isinstance(e, RateLimited):
                    logger.warning(
                        "delivery_rate_limited", chat_id=chat_id, retry_after=e.retry_after
                    )
                    await asyncio.sleep(e.retry_after)
                    continue
                logger.warning(
                    "delivery_network_error",
                    chat_id=chat_id,
                    delay=self._network_retry_delay,
                    error=str(e),
                )
                await asyncio.sleep(self._network_retry_delay)

    async def broadcast(self, registry: ChatRegistry, message: str) -> BroadcastReport:
        """Send ``message`` to every chat in ``registry``.

        Raises:
            DeliveryError: an unclassified failure; chats after it are not attempted.
        """
        chats = await registry.list_chats()
        report = BroadcastReport()

        for chat_id in chats:
            try:
                await self.send_to_chat(chat_id, message)
            except RecipientGoneError as e:
                logger.warning(
                    "recipient_gone_deregistering",
                    chat_id=chat_id,
                    reason=type(e).__name__,
                    registry=registry.name,
                )
                await registry.remove(chat_id)
                report.removed.append(chat_id)
                continue
            except MigratedTo as e:
                await self._handle_migration(registry, chat_id, e.new_chat_id, message, report)
                continue
            report.delivered.append(chat_id)

        logger.info(
            "broadcast_complete",
            registry=registry.name,
            total=len(chats),
            delivered=len(report.delivered),
            removed=len(report.removed),
            migrated=len(report.migrated),
        )
        return report

    async def _handle_migration(
        self,
        registry: ChatRegistry,
        old_chat_id: int,
        new_chat_id: int,
        message: str,
        report: BroadcastReport,
    ) -> None:
        logger.info("chat_migrated", old_chat_id=old_chat_id, new_chat_id=new_chat_id)
        await registry.remove(old_chat_id)
        await registry.add(new_chat_id)
        report.migrated[old_chat_id] = new_chat_id

        # best effort, a failure here must not stop the fan-out
        try:
            await self._chat_client.send_message(new_chat_id, message)
        except DeliveryError as e:
            logger.warning(
                "migrated_chat_send_failed",
                chat_id=new_chat_id,
                error=str(e),
            )
            return
        report.delivered.append(new_chat_id)
