"""Price fetchers for Binance, CoinGecko and CoinMarketCap.

Parsing is split from transport: the ``parse_*`` functions are pure and
validate the response shape, while PriceFetcher only knows URLs. A missing
or non-numeric field is a DataFormatError and an error envelope is an
UpstreamError; both are terminal, so the retry wrapper gives up at once.
Fetchers hold no cache.
"""

import math
from typing import Any

from wednesday.exceptions import DataFormatError, MissingCredentialsError
from wednesday.logging import get_logger
from wednesday.rates.assets import AssetConfig
from wednesday.rates.http import JsonHttpClient, detect_upstream_error

logger = get_logger(__name__)

BINANCE_TICKER_URL = "https://api.binance.com/api/v3/ticker/price"
COINGECKO_SIMPLE_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"
COINMARKETCAP_GLOBAL_URL = "https://pro-api.coinmarketcap.com/v1/global-metrics/quotes/latest"


# ──────────────────────────────────────────────
# Response validation
# ──────────────────────────────────────────────


def _require_object(payload: Any) -> dict:
    error = detect_upstream_error(payload)
    if error is not None:
        raise error
    if not isinstance(payload, dict):
        raise DataFormatError("expected a JSON object", payload=payload)
    return payload


def _require_field(obj: dict, key: str, path: str, payload: Any) -> Any:
    if key not in obj:
        raise DataFormatError("missing field", field=path, payload=payload)
    return obj[key]


def _to_finite(value: Any, path: str, payload: Any) -> float:
    """Accept JSON numbers and numeric strings; reject bools, NaN and infinities."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise DataFormatError("not a number", field=path, payload=payload)
    try:
        number = float(value)
    except ValueError as e:
        raise DataFormatError("not a number", field=path, payload=payload) from e
    if not math.isfinite(number):
        raise DataFormatError("not a finite number", field=path, payload=payload)
    return number


def _coin_entry(payload: Any, coin_id: str) -> dict:
    obj = _require_object(payload)
    entry = _require_field(obj, coin_id, coin_id, payload)
    if not isinstance(entry, dict):
        raise DataFormatError("expected a JSON object", field=coin_id, payload=payload)
    return entry


def parse_binance_price(payload: Any) -> float:
    """``{"symbol": "BTCUSDT", "price": "65000.01"}`` -> 65000.01"""
    obj = _require_object(payload)
    return _to_finite(_require_field(obj, "price", "price", payload), "price", payload)


def parse_coingecko_price(payload: Any, coin_id: str) -> float:
    """``{"bitcoin": {"usd": 65000}}`` -> 65000.0"""
    entry = _coin_entry(payload, coin_id)
    path = f"{coin_id}.usd"
    return _to_finite(_require_field(entry, "usd", path, payload), path, payload)


def parse_coingecko_price_with_change(payload: Any, coin_id: str) -> tuple[float, float]:
    """``{"bitcoin": {"usd": 65000, "usd_24h_change": -1.5}}`` -> (65000.0, -1.5)"""
    entry = _coin_entry(payload, coin_id)
    price_path = f"{coin_id}.usd"
    change_path = f"{coin_id}.usd_24h_change"
    price = _to_finite(_require_field(entry, "usd", price_path, payload), price_path, payload)
    change = _to_finite(
        _require_field(entry, "usd_24h_change", change_path, payload), change_path, payload
    )
    return price, change


def parse_dominance(payload: Any) -> tuple[float, float]:
    """CoinMarketCap global metrics -> (btc_dominance, eth_dominance) in percent."""
    obj = _require_object(payload)
    data = _require_field(obj, "data", "data", payload)
    if not isinstance(data, dict):
        raise DataFormatError("expected a JSON object", field="data", payload=payload)
    btc = _to_finite(
        _require_field(data, "btc_dominance", "data.btc_dominance", payload),
        "data.btc_dominance",
        payload,
    )
    eth = _to_finite(
        _require_field(data, "eth_dominance", "data.eth_dominance", payload),
        "data.eth_dominance",
        payload,
    )
    return btc, eth


# ──────────────────────────────────────────────
# Fetchers
# ──────────────────────────────────────────────


class PriceFetcher:
    """Fetches current prices from the upstream APIs.

    Args:
        http: JSON HTTP client (owns the aiohttp session and timeout).
        coinmarketcap_api_key: Key for the dominance endpoint; empty disables it.
    """

    def __init__(self, http: JsonHttpClient, coinmarketcap_api_key: str = "") -> None:
        self._http = http
        self._cmc_api_key = coinmarketcap_api_key

    async def fetch_binance_price(self, pair: str) -> float:
        payload = await self._http.get_json(BINANCE_TICKER_URL, params={"symbol": pair})
        return parse_binance_price(payload)

    async def fetch_coingecko_price(self, coin_id: str) -> float:
        payload = await self._http.get_json(
            COINGECKO_SIMPLE_PRICE_URL,
            params={"ids": coin_id, "vs_currencies": "usd"},
        )
        return parse_coingecko_price(payload, coin_id)

    async def fetch_coingecko_price_with_change(self, coin_id: str) -> tuple[float, float]:
        payload = await self._http.get_json(
            COINGECKO_SIMPLE_PRICE_URL,
            params={
                "ids": coin_id,
                "vs_currencies": "usd",
                "include_24hr_change": "true",
            },
        )
        return parse_coingecko_price_with_change(payload, coin_id)

    async def fetch_price(self, asset: AssetConfig) -> float:
        """Current spot price for a tracked asset from its configured provider."""
        if asset.provider == "binance":
            price = await self.fetch_binance_price(asset.provider_id)
        else:
            price = await self.fetch_coingecko_price(asset.provider_id)
        logger.debug("price_fetched", symbol=asset.symbol, provider=asset.provider, price=price)
        return price

    async def fetch_price_with_change(self, asset: AssetConfig) -> tuple[float, float]:
        """(price, 24h change %) for a tracked asset, always from CoinGecko."""
        return await self.fetch_coingecko_price_with_change(asset.coingecko_id)

    async def fetch_dominance(self) -> tuple[float, float]:
        """(BTC dominance %, ETH dominance %) from CoinMarketCap."""
        if not self._cmc_api_key:
            raise MissingCredentialsError("coinmarketcap api key is not configured")
        payload = await self._http.get_json(
            COINMARKETCAP_GLOBAL_URL,
            headers={"X-CMC_PRO_API_KEY": self._cmc_api_key},
        )
        return parse_dominance(payload)
