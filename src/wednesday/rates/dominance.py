"""Read-through cache for BTC/ETH market dominance."""

from wednesday.cache.store import RateCache
from wednesday.logging import get_logger
from wednesday.rates.fetchers import PriceFetcher
from wednesday.retry import SINGLE_ATTEMPT, RetryPolicy, retry_with_policy

logger = get_logger(__name__)

KEY_BTC_DOMINANCE = "BTC_DOMINANCE"
KEY_ETH_DOMINANCE = "ETH_DOMINANCE"


class DominanceService:
    """Serves dominance percentages from cache, refetching when either is missing.

    Args:
        cache: Scalar cache.
        fetcher: Upstream fetcher (CoinMarketCap).
        ttl_seconds: Lifetime of cached values.
        policy: Retry policy; a single attempt by default since this is a low-priority read.
    """

    def __init__(
        self,
        cache: RateCache,
        fetcher: PriceFetcher,
        ttl_seconds: int = 20 * 60,
        policy: RetryPolicy = SINGLE_ATTEMPT,
    ) -> None:
        self._cache = cache
        self._fetcher = fetcher
        self._ttl = ttl_seconds
        self._policy = policy

    async def get_dominance(self) -> tuple[float, float]:
        btc = await self._cache.get_scalar(KEY_BTC_DOMINANCE)
        eth = await self._cache.get_scalar(KEY_ETH_DOMINANCE)
        if btc is not None and eth is not None:
            return btc, eth

        btc, eth = await retry_with_policy(self._fetcher.fetch_dominance, self._policy)
        await self._cache.set_scalar(KEY_BTC_DOMINANCE, btc, self._ttl)
        await self._cache.set_scalar(KEY_ETH_DOMINANCE, eth, self._ttl)
        logger.info("dominance_refreshed", btc=btc, eth=eth)
        return btc, eth
