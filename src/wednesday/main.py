"""Entry point for the Wednesday notification engine.

Wires all components together and runs the scheduler and the worker on a
single asyncio event loop. SIGINT/SIGTERM stop both gracefully.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. ChatDatabase + ChatRegistry (active chats, active crypto chats)
4. RateCache (Redis)
5. JsonHttpClient + PriceFetcher (upstream price APIs)
6. DominanceService (read-through dominance cache)
7. TelegramChatClient + Broadcaster (delivery)
8. RateTrendDetector per tracked asset
9. Jobs (task handlers)
10. Task queue, Scheduler, TaskWorker
"""

import asyncio
import signal
from datetime import datetime
from typing import Any

from wednesday.cache.store import RateCache
from wednesday.chat.telegram_client import TelegramChatClient
from wednesday.config import AppSettings
from wednesday.delivery.broadcast import Broadcaster
from wednesday.jobs import Jobs
from wednesday.logging import get_logger, setup_logging
from wednesday.rates.assets import TRACKED_ASSETS
from wednesday.rates.dominance import DominanceService
from wednesday.rates.fetchers import PriceFetcher
from wednesday.rates.http import JsonHttpClient
from wednesday.rates.trend import RateTrendDetector
from wednesday.retry import RetryPolicy
from wednesday.scheduler.models import Task
from wednesday.scheduler.rules import build_schedule
from wednesday.scheduler.timer import Scheduler
from wednesday.scheduler.worker import TaskWorker
from wednesday.storage.database import (
    ACTIVE_CHATS_TABLE,
    ACTIVE_CRYPTO_CHATS_TABLE,
    ChatDatabase,
)
from wednesday.storage.registry import ChatRegistry


async def _build_components(
    settings: AppSettings, database: ChatDatabase, cache: RateCache
) -> dict[str, Any]:
    """Build the dependency graph on top of already connected stores.

    Args:
        settings: Application-wide settings.
        database: Connected relational store.
        cache: Reachable cache store.

    Returns:
        Dict mapping component names to instances.
    """
    general_chats = ChatRegistry(database, ACTIVE_CHATS_TABLE)
    crypto_chats = ChatRegistry(database, ACTIVE_CRYPTO_CHATS_TABLE)

    http = JsonHttpClient(timeout=settings.api.request_timeout)
    fetcher = PriceFetcher(
        http,
        coinmarketcap_api_key=settings.api.coinmarketcap_api_key.get_secret_value(),
    )
    dominance = DominanceService(
        cache, fetcher, ttl_seconds=settings.storage.dominance_ttl_seconds
    )

    chat_client = TelegramChatClient(token=settings.telegram.token.get_secret_value())
    broadcaster = Broadcaster(
        chat_client,
        network_retry_delay=settings.delivery.network_retry_delay,
        max_send_attempts=settings.delivery.max_send_attempts,
    )

    policy = RetryPolicy(
        attempts=settings.api.retry_attempts, delay=settings.api.retry_delay
    )
    detectors = [
        RateTrendDetector(asset, cache, fetcher, broadcaster, crypto_chats, policy=policy)
        for asset in TRACKED_ASSETS
    ]

    queue: asyncio.Queue[Task] = asyncio.Queue(maxsize=settings.scheduler.queue_size)

    jobs = Jobs(
        broadcaster=broadcaster,
        fetcher=fetcher,
        dominance=dominance,
        cache=cache,
        general_chats=general_chats,
        crypto_chats=crypto_chats,
        detectors=detectors,
        queue=queue,
        admin_chat_id=settings.telegram.admin_chat_id,
        bot_name=settings.telegram.bot_name,
        policy=policy,
    )

    tz = settings.scheduler.tz
    scheduler = Scheduler(
        schedule=build_schedule(settings.scheduler, TRACKED_ASSETS),
        queue=queue,
        clock=lambda: datetime.now(tz),
        tick_seconds=settings.scheduler.tick_seconds,
    )
    worker = TaskWorker(queue, jobs.handlers())

    return {
        "http": http,
        "chat_client": chat_client,
        "scheduler": scheduler,
        "worker": worker,
        "jobs": jobs,
    }


def _setup_signal_handlers(scheduler: Scheduler, worker: TaskWorker) -> None:
    """Register SIGINT/SIGTERM to stop the timer first, then the worker.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("wednesday.main")
    loop = asyncio.get_running_loop()

    async def _shutdown() -> None:
        await scheduler.stop()
        await worker.stop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(_shutdown())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


async def run() -> None:
    """Run the engine until a shutdown signal arrives.

    Configuration errors and unreachable storage at startup are fatal;
    nothing after startup is.
    """
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("wednesday.main")

    database = ChatDatabase(settings.storage.db_path)
    await database.connect()

    cache = RateCache.from_url(settings.storage.redis_url)
    components: dict[str, Any] = {}
    try:
        await cache.ping()
        logger.info("cache_connected", url=settings.storage.redis_url)

        components = await _build_components(settings, database, cache)
        scheduler: Scheduler = components["scheduler"]
        worker: TaskWorker = components["worker"]

        _setup_signal_handlers(scheduler, worker)

        logger.info(
            "wednesday_starting",
            utc_offset_hours=settings.scheduler.utc_offset_hours,
            tracked_assets=[asset.symbol for asset in TRACKED_ASSETS],
        )
        await worker.start()
        await scheduler.start()
        await worker.wait()
    finally:
        if "http" in components:
            await components["http"].close()
        if "chat_client" in components:
            await components["chat_client"].close()
        await cache.close()
        await database.close()
        logger.info("wednesday_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
