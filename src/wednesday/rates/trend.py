"""Bucket-crossing trend detection with a two-crossing debounce.

Prices are quantized into buckets of width ``step``. Only a change of
bucket is recorded, so the rolling history holds bucket-crossing events
rather than every poll. An alert needs a full window (three entries after
the push) and the new direction must repeat the direction of the previous
head, i.e. two consecutive crossings the same way.
"""

import math
from dataclasses import dataclass

from wednesday.cache.store import HISTORY_SIZE, RateCache
from wednesday.delivery.broadcast import Broadcaster
from wednesday.logging import get_logger
from wednesday.rates.assets import AssetConfig
from wednesday.rates.fetchers import PriceFetcher
from wednesday.rates.models import RateObservation
from wednesday.retry import DEFAULT_POLICY, RetryPolicy, retry_with_policy
from wednesday.storage.registry import ChatRegistry

logger = get_logger(__name__)

UP_GLYPH = "📈"
DOWN_GLYPH = "📉"


@dataclass(frozen=True)
class TrendDecision:
    """Outcome of one tick.

    Attributes:
        observation: Observation to push onto the history, or None for a no-op.
        notify: Whether the debounce gate passed.
    """

    observation: RateObservation | None
    notify: bool


def bucket(rate: float, step: float) -> int:
    return math.floor(rate / step)


def evaluate_tick(
    history: list[RateObservation], current: float, step: float
) -> TrendDecision:
    """Decide what to record and whether to alert for one price sample.

    Args:
        history: Stored observations, newest first (at most HISTORY_SIZE).
        current: Freshly fetched price.
        step: Bucket width for the asset.
    """
    if not history:
        # cold start: seed the window, no direction yet
        return TrendDecision(RateObservation(rate=current, grew=True), notify=False)

    head = history[0]
    prev_bucket = bucket(head.rate, step)
    curr_bucket = bucket(current, step)
    if prev_bucket == curr_bucket:
        return TrendDecision(None, notify=False)

    grew = curr_bucket > prev_bucket
    observation = RateObservation(rate=current, grew=grew)

    length_after_push = min(len(history) + 1, HISTORY_SIZE)
    notify = length_after_push >= HISTORY_SIZE and grew == head.grew
    return TrendDecision(observation, notify=notify)


def format_rate(rate: float) -> str:
    """51200.0 -> "51200", 0.01234 -> "0.01234"."""
    return f"{rate:.10g}"


def format_trend_alert(symbol: str, rate: float, grew: bool) -> str:
    glyph = UP_GLYPH if grew else DOWN_GLYPH
    return f"{symbol} rate now is {format_rate(rate)}$ {glyph}"


class RateTrendDetector:
    """Runs one trend tick for a single asset.

    Args:
        asset: Static asset configuration.
        cache: Rolling history store.
        fetcher: Upstream price fetcher.
        broadcaster: Fan-out delivery.
        registry: Chats that receive trend alerts.
        policy: Retry policy for the price fetch.
    """

    def __init__(
        self,
        asset: AssetConfig,
        cache: RateCache,
        fetcher: PriceFetcher,
        broadcaster: Broadcaster,
        registry: ChatRegistry,
        policy: RetryPolicy = DEFAULT_POLICY,
    ) -> None:
        self._asset = asset
        self._cache = cache
        self._fetcher = fetcher
        self._broadcaster = broadcaster
        self._registry = registry
        self._policy = policy

    @property
    def asset(self) -> AssetConfig:
        return self._asset

    async def check(self) -> TrendDecision:
        """Fetch, decide, record and (maybe) alert. Returns the decision taken."""
        asset = self._asset
        history = await self._cache.get_history(asset.history_key)
        current = await retry_with_policy(
            lambda: self._fetcher.fetch_price(asset), self._policy
        )

        decision = evaluate_tick(history, current, asset.step)
        if decision.observation is None:
            logger.debug("rate_within_bucket", symbol=asset.symbol, rate=current)
            return decision

        await self._cache.push_observation(asset.history_key, decision.observation)
        logger.info(
            "rate_bucket_crossed" if history else "rate_history_seeded",
            symbol=asset.symbol,
            rate=current,
            grew=decision.observation.grew,
            notify=decision.notify,
        )

        if decision.notify:
            text = format_trend_alert(asset.symbol, current, decision.observation.grew)
            await self._broadcaster.broadcast(self._registry, text)
            logger.info("trend_alert_sent", symbol=asset.symbol, rate=current)

        return decision
