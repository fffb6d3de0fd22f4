"""Tests for the read-through dominance cache."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from wednesday.exceptions import (
    MissingCredentialsError,
    RetryExhaustedError,
    TransientFetchError,
)
from wednesday.rates.dominance import KEY_BTC_DOMINANCE, KEY_ETH_DOMINANCE, DominanceService


@pytest.fixture
def fetcher() -> MagicMock:
    mock = MagicMock()
    mock.fetch_dominance = AsyncMock(return_value=(52.4, 17.1))
    return mock


class TestDominanceService:
    @pytest.mark.asyncio
    async def test_cold_cache_fetches_and_stores(self, rate_cache, fetcher) -> None:
        service = DominanceService(rate_cache, fetcher, ttl_seconds=1200)

        assert await service.get_dominance() == (52.4, 17.1)
        assert await rate_cache.get_scalar(KEY_BTC_DOMINANCE) == 52.4
        assert await rate_cache.get_scalar(KEY_ETH_DOMINANCE) == 17.1

    @pytest.mark.asyncio
    async def test_warm_cache_skips_upstream(self, rate_cache, fetcher) -> None:
        service = DominanceService(rate_cache, fetcher)

        await service.get_dominance()
        await service.get_dominance()

        fetcher.fetch_dominance.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_half_cached_refetches(self, rate_cache, fetcher) -> None:
        await rate_cache.set_scalar(KEY_BTC_DOMINANCE, 50.0, ttl_seconds=1200)
        service = DominanceService(rate_cache, fetcher)

        assert await service.get_dominance() == (52.4, 17.1)
        fetcher.fetch_dominance.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self, rate_cache, fetcher) -> None:
        fetcher.fetch_dominance.side_effect = TransientFetchError("timeout")
        service = DominanceService(rate_cache, fetcher)

        with pytest.raises(RetryExhaustedError):
            await service.get_dominance()
        assert fetcher.fetch_dominance.await_count == 1

    @pytest.mark.asyncio
    async def test_failure_caches_nothing(self, rate_cache, fetcher) -> None:
        fetcher.fetch_dominance.side_effect = MissingCredentialsError("no key")
        service = DominanceService(rate_cache, fetcher)

        with pytest.raises(MissingCredentialsError):
            await service.get_dominance()
        assert await rate_cache.get_scalar(KEY_BTC_DOMINANCE) is None
