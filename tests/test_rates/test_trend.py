"""Tests for bucket-crossing trend detection and the debounce gate."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from wednesday.delivery.broadcast import Broadcaster
from wednesday.exceptions import DataFormatError, RetryExhaustedError, TransientFetchError
from wednesday.rates.assets import BTC, ZEE
from wednesday.rates.models import RateObservation
from wednesday.rates.trend import (
    RateTrendDetector,
    bucket,
    evaluate_tick,
    format_rate,
    format_trend_alert,
)
from wednesday.retry import RetryPolicy

FAST = RetryPolicy(attempts=3, delay=0.0)


def _obs(rate: float, grew: bool) -> RateObservation:
    return RateObservation(rate=rate, grew=grew)


class TestBucket:
    def test_floor_division(self) -> None:
        assert bucket(50999.0, 1000.0) == 50
        assert bucket(51000.0, 1000.0) == 51

    def test_negative_floor(self) -> None:
        assert bucket(-0.5, 1.0) == -1

    def test_small_step(self) -> None:
        assert bucket(0.0157, ZEE.step) == 15


class TestEvaluateTick:
    def test_cold_start_seeds_without_notify(self) -> None:
        decision = evaluate_tick([], 50000.0, 1000.0)
        assert decision.observation == _obs(50000.0, True)
        assert decision.notify is False

    def test_same_bucket_is_noop(self) -> None:
        decision = evaluate_tick([_obs(50000.0, True)], 50999.0, 1000.0)
        assert decision.observation is None
        assert decision.notify is False

    def test_second_entry_never_notifies(self) -> None:
        decision = evaluate_tick([_obs(50000.0, True)], 51200.0, 1000.0)
        assert decision.observation == _obs(51200.0, True)
        assert decision.notify is False

    def test_two_crossings_same_direction_notify(self) -> None:
        history = [_obs(51200.0, True), _obs(50000.0, True)]
        decision = evaluate_tick(history, 52100.0, 1000.0)
        assert decision.observation == _obs(52100.0, True)
        assert decision.notify is True

    def test_direction_reversal_suppresses(self) -> None:
        history = [_obs(52100.0, True), _obs(51200.0, True), _obs(50000.0, True)]
        decision = evaluate_tick(history, 51900.0, 1000.0)
        assert decision.observation == _obs(51900.0, False)
        assert decision.notify is False

    def test_repeated_fall_notifies(self) -> None:
        history = [_obs(51900.0, False), _obs(52100.0, True), _obs(51200.0, True)]
        decision = evaluate_tick(history, 50900.0, 1000.0)
        assert decision.observation == _obs(50900.0, False)
        assert decision.notify is True

    def test_direction_compares_buckets_not_raw_rates(self) -> None:
        # head sits high in bucket 51, current is bucket 52: still growth
        decision = evaluate_tick([_obs(51999.0, False)], 52000.0, 1000.0)
        assert decision.observation is not None
        assert decision.observation.grew is True

    def test_history_is_not_mutated(self) -> None:
        history = [_obs(51200.0, True), _obs(50000.0, True)]
        evaluate_tick(history, 52100.0, 1000.0)
        assert history == [_obs(51200.0, True), _obs(50000.0, True)]


class TestFormatting:
    def test_format_rate(self) -> None:
        assert format_rate(51200.0) == "51200"
        assert format_rate(0.01234) == "0.01234"
        assert format_rate(3150.75) == "3150.75"

    def test_alert_up(self) -> None:
        assert format_trend_alert("BTC", 52100.0, True) == "BTC rate now is 52100$ 📈"

    def test_alert_down(self) -> None:
        assert format_trend_alert("ETH", 2999.5, False) == "ETH rate now is 2999.5$ 📉"


# ---------------------------------------------------------------------------
# RateTrendDetector
# ---------------------------------------------------------------------------


@pytest.fixture
def fetcher() -> MagicMock:
    mock = MagicMock()
    mock.fetch_price = AsyncMock()
    return mock


class TestRateTrendDetector:
    @pytest.mark.asyncio
    async def test_full_trace_alerts_once(
        self, rate_cache, fetcher, make_registry, make_chat_client
    ) -> None:
        registry = make_registry([10, 20])
        client = make_chat_client()
        detector = RateTrendDetector(
            BTC, rate_cache, fetcher, Broadcaster(client), registry, policy=FAST
        )
        fetcher.fetch_price.side_effect = [50000.0, 50999.0, 51200.0, 52100.0]

        decisions = [await detector.check() for _ in range(4)]

        assert [d.notify for d in decisions] == [False, False, False, True]
        assert client.sent == [
            (10, "BTC rate now is 52100$ 📈"),
            (20, "BTC rate now is 52100$ 📈"),
        ]
        history = await rate_cache.get_history(BTC.history_key)
        assert [o.rate for o in history] == [52100.0, 51200.0, 50000.0]

    @pytest.mark.asyncio
    async def test_history_is_capped(self, rate_cache, fetcher, make_registry, make_chat_client) -> None:
        detector = RateTrendDetector(
            BTC, rate_cache, fetcher, Broadcaster(make_chat_client()), make_registry(), policy=FAST
        )
        fetcher.fetch_price.side_effect = [50000.0, 51000.0, 52000.0, 53000.0, 54000.0]

        for _ in range(5):
            await detector.check()

        history = await rate_cache.get_history(BTC.history_key)
        assert [o.rate for o in history] == [54000.0, 53000.0, 52000.0]

    @pytest.mark.asyncio
    async def test_transient_fetch_is_retried(
        self, rate_cache, fetcher, make_registry, make_chat_client
    ) -> None:
        detector = RateTrendDetector(
            BTC, rate_cache, fetcher, Broadcaster(make_chat_client()), make_registry(), policy=FAST
        )
        fetcher.fetch_price.side_effect = [TransientFetchError("timeout"), 50000.0]

        decision = await detector.check()

        assert decision.observation == _obs(50000.0, True)
        assert fetcher.fetch_price.await_count == 2

    @pytest.mark.asyncio
    async def test_fetch_failure_leaves_history_untouched(
        self, rate_cache, fetcher, make_registry, make_chat_client
    ) -> None:
        await rate_cache.push_observation(BTC.history_key, _obs(50000.0, True))
        client = make_chat_client()
        detector = RateTrendDetector(
            BTC, rate_cache, fetcher, Broadcaster(client), make_registry([1]), policy=FAST
        )
        fetcher.fetch_price.side_effect = TransientFetchError("down")

        with pytest.raises(RetryExhaustedError):
            await detector.check()

        assert await rate_cache.get_history(BTC.history_key) == [_obs(50000.0, True)]
        assert client.attempts == []

    @pytest.mark.asyncio
    async def test_malformed_response_is_not_retried(
        self, rate_cache, fetcher, make_registry, make_chat_client
    ) -> None:
        detector = RateTrendDetector(
            BTC, rate_cache, fetcher, Broadcaster(make_chat_client()), make_registry(), policy=FAST
        )
        fetcher.fetch_price.side_effect = DataFormatError("missing field", field="price")

        with pytest.raises(DataFormatError):
            await detector.check()

        assert fetcher.fetch_price.await_count == 1

    @pytest.mark.asyncio
    async def test_assets_keep_separate_histories(
        self, rate_cache, fetcher, make_registry, make_chat_client
    ) -> None:
        broadcaster = Broadcaster(make_chat_client())
        btc = RateTrendDetector(BTC, rate_cache, fetcher, broadcaster, make_registry(), policy=FAST)
        zee = RateTrendDetector(ZEE, rate_cache, fetcher, broadcaster, make_registry(), policy=FAST)
        fetcher.fetch_price.side_effect = [50000.0, 0.0157]

        await btc.check()
        await zee.check()

        assert await rate_cache.get_history(BTC.history_key) == [_obs(50000.0, True)]
        assert await rate_cache.get_history(ZEE.history_key) == [_obs(0.0157, True)]
