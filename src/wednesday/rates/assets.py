"""Static table of tracked assets.

Each entry carries everything the generic trend job needs: bucket width,
where to fetch the price, which cache key holds its history, and how often
to sample it.
"""

from dataclasses import dataclass
from typing import Literal

from wednesday.scheduler.models import Task

Provider = Literal["binance", "coingecko"]


@dataclass(frozen=True)
class AssetConfig:
    """Trend configuration for one tracked asset.

    Attributes:
        symbol: Display ticker, e.g. "BTC".
        step: Bucket width; a move is significant only if floor(price/step) changes.
        task: Task token that triggers a trend check for this asset.
        interval_seconds: Sampling period for the trend check.
        provider: Upstream API for the spot price.
        provider_id: Identifier at that provider (Binance pair or CoinGecko id).
        coingecko_id: CoinGecko id used for the 24h change in the rate report.
    """

    symbol: str
    step: float
    task: Task
    interval_seconds: int
    provider: Provider
    provider_id: str
    coingecko_id: str

    @property
    def history_key(self) -> str:
        return f"{self.symbol}_LAST_RATE"


BTC = AssetConfig(
    symbol="BTC",
    step=1000.0,
    task=Task.BTC_RATE,
    interval_seconds=60,
    provider="binance",
    provider_id="BTCUSDT",
    coingecko_id="bitcoin",
)

ETH = AssetConfig(
    symbol="ETH",
    step=100.0,
    task=Task.ETH_RATE,
    interval_seconds=60,
    provider="binance",
    provider_id="ETHUSDT",
    coingecko_id="ethereum",
)

ZEE = AssetConfig(
    symbol="ZEE",
    step=0.001,
    task=Task.ZEE_RATE,
    interval_seconds=120,
    provider="coingecko",
    provider_id="zeroswap",
    coingecko_id="zeroswap",
)

TRACKED_ASSETS: tuple[AssetConfig, ...] = (BTC, ETH, ZEE)


def asset_for_task(task: Task) -> AssetConfig | None:
    """Return the asset whose trend check ``task`` triggers, if any."""
    for asset in TRACKED_ASSETS:
        if asset.task is task:
            return asset
    return None
