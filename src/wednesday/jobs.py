"""Task handlers: the work behind each scheduled task token."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

import redis

from wednesday.cache.store import RateCache
from wednesday.delivery.broadcast import Broadcaster
from wednesday.exceptions import FetchError
from wednesday.logging import get_logger
from wednesday.rates.assets import BTC, AssetConfig
from wednesday.rates.dominance import DominanceService
from wednesday.rates.fetchers import PriceFetcher
from wednesday.rates.trend import RateTrendDetector, format_rate
from wednesday.retry import DEFAULT_POLICY, RetryPolicy, retry_with_policy
from wednesday.scheduler.models import Task
from wednesday.scheduler.worker import TaskHandler
from wednesday.storage.registry import ChatRegistry
from wednesday.toads import pick_toad

logger = get_logger(__name__)

LAMBO_THRESHOLD = 100_000.0


def format_report_headline(btc_rate: float) -> str:
    if btc_rate > LAMBO_THRESHOLD:
        return f"When lambo? Today! BTC = {format_rate(btc_rate)}$"
    return f"When lambo? Not today. BTC = {format_rate(btc_rate)}$"


def format_uptime(seconds: float) -> str:
    minutes, _ = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    return f"{days}d {hours}h {minutes}m"


class Jobs:
    """Owns the collaborators the scheduled tasks need and exposes one handler per task.

    Args:
        broadcaster: Fan-out delivery.
        fetcher: Upstream price fetcher.
        dominance: Read-through dominance cache.
        cache: Cache store (pinged by the heartbeat).
        general_chats: Chats subscribed to the Wednesday broadcast.
        crypto_chats: Chats subscribed to the rate report and trend alerts.
        detectors: Trend detector per tracked asset.
        queue: Worker queue, only read for its depth.
        admin_chat_id: Receives the heartbeat when set.
        bot_name: Shown in the admin heartbeat.
        policy: Retry policy for report price fetches.
    """

    def __init__(
        self,
        broadcaster: Broadcaster,
        fetcher: PriceFetcher,
        dominance: DominanceService,
        cache: RateCache,
        general_chats: ChatRegistry,
        crypto_chats: ChatRegistry,
        detectors: Sequence[RateTrendDetector],
        queue: asyncio.Queue[Task] | None = None,
        admin_chat_id: int | None = None,
        bot_name: str = "wednesday_bot",
        policy: RetryPolicy = DEFAULT_POLICY,
    ) -> None:
        self._broadcaster = broadcaster
        self._fetcher = fetcher
        self._dominance = dominance
        self._cache = cache
        self._general_chats = general_chats
        self._crypto_chats = crypto_chats
        self._detectors = list(detectors)
        self._queue = queue
        self._admin_chat_id = admin_chat_id
        self._bot_name = bot_name
        self._policy = policy
        self._started_at = time.monotonic()

    def handlers(self) -> dict[Task, TaskHandler]:
        handlers: dict[Task, TaskHandler] = {
            Task.WEDNESDAY: self.send_wednesday,
            Task.CRYPTO: self.send_rate_report,
            Task.HEARTBEAT: self.heartbeat,
        }
        for detector in self._detectors:
            handlers[detector.asset.task] = detector.check
        return handlers

    async def send_wednesday(self) -> None:
        url = pick_toad()
        report = await self._broadcaster.broadcast(self._general_chats, url)
        logger.info("wednesday_sent", url=url, delivered=len(report.delivered))

    async def build_rate_report(self) -> str:
        """Headline from the BTC spot price, then 24h changes and dominance when available.

        A failure fetching the headline price aborts the report; the extra
        lines are skipped individually.
        """
        btc_rate = await retry_with_policy(
            lambda: self._fetcher.fetch_price(BTC), self._policy
        )
        lines = [format_report_headline(btc_rate)]

        for detector in self._detectors:
            line = await self._change_line(detector.asset)
            if line is not None:
                lines.append(line)

        try:
            btc_dominance, eth_dominance = await self._dominance.get_dominance()
        except FetchError as e:
            logger.warning("dominance_unavailable", error=str(e))
        else:
            lines.append(f"BTC dominance = {btc_dominance:.2f}%")
            lines.append(f"ETH dominance = {eth_dominance:.2f}%")

        return "\n".join(lines)

    async def _change_line(self, asset: AssetConfig) -> str | None:
        try:
            price, change = await retry_with_policy(
                lambda: self._fetcher.fetch_price_with_change(asset), self._policy
            )
        except FetchError as e:
            logger.warning("rate_change_unavailable", symbol=asset.symbol, error=str(e))
            return None
        return f"{asset.symbol} = {format_rate(price)}$ ({change:+.2f}%)"

    async def send_rate_report(self) -> None:
        text = await self.build_rate_report()
        report = await self._broadcaster.broadcast(self._crypto_chats, text)
        logger.info("rate_report_sent", delivered=len(report.delivered))

    async def heartbeat(self) -> None:
        uptime = time.monotonic() - self._started_at
        pending = self._queue.qsize() if self._queue is not None else 0
        try:
            cache_ok = await self._cache.ping()
        except redis.RedisError as e:
            logger.warning("heartbeat_cache_unreachable", error=str(e))
            cache_ok = False
        logger.info(
            "heartbeat",
            uptime_seconds=round(uptime),
            queued_tasks=pending,
            cache_ok=cache_ok,
        )
        if self._admin_chat_id is not None:
            await self._broadcaster.send_to_chat(
                self._admin_chat_id,
                f"{self._bot_name} heartbeat: up {format_uptime(uptime)}, "
                f"{pending} tasks queued, cache {'ok' if cache_ok else 'DOWN'}",
            )
