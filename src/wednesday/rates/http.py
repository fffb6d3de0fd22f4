"""Thin JSON-over-HTTP client for the upstream price APIs.

Turns the many ways an HTTP call can fail into the two buckets the
retry wrapper cares about: TransientFetchError (try again) and
TerminalFetchError subclasses (don't).
"""

import asyncio
import json
from typing import Any

import aiohttp

from wednesday.exceptions import DataFormatError, TransientFetchError, UpstreamError
from wednesday.logging import get_logger

logger = get_logger(__name__)

_USER_AGENT = "WednesdayBot/1.0"


def detect_upstream_error(payload: Any) -> UpstreamError | None:
    """Recognise the error envelopes used by Binance, CoinGecko and CoinMarketCap.

    - Binance: ``{"code": -1121, "msg": "Invalid symbol."}``
    - CoinGecko / CoinMarketCap: ``{"status": {"error_code": 429, "error_message": "..."}}``
      (a zero error_code is the success envelope)
    - CoinGecko (older): ``{"error": "coin not found"}``
    """
    if not isinstance(payload, dict):
        return None

    if "code" in payload and "msg" in payload:
        return UpstreamError(payload["code"], str(payload["msg"]))

    status = payload.get("status")
    if isinstance(status, dict):
        code = status.get("error_code")
        if code not in (None, 0, "0"):
            return UpstreamError(code, str(status.get("error_message") or ""))

    error = payload.get("error")
    if isinstance(error, str):
        return UpstreamError("error", error)

    return None


class JsonHttpClient:
    """Issues GET requests and returns decoded JSON.

    Owns its aiohttp session unless one is passed in.

    Args:
        timeout: Total per-request timeout in seconds.
        session: Optional externally managed session.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Accept": "application/json", "User-Agent": _USER_AGENT},
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def get_json(
        self,
        url: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET ``url`` and decode the body as JSON.

        Raises:
            TransientFetchError: connection failure, timeout, HTTP 429 or 5xx.
            UpstreamError: HTTP 4xx, with the upstream's own code/message when present.
            DataFormatError: the body is not valid JSON.
        """
        session = self._get_session()
        try:
            async with session.get(
                url, params=params, headers=headers, timeout=self._timeout
            ) as resp:
                status = resp.status
                body = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientFetchError(
                f"GET {url} failed: {type(e).__name__}: {e}"
            ) from e

        if status == 429 or status >= 500:
            logger.warning("upstream_unavailable", url=url, status=status)
            raise TransientFetchError(f"GET {url} returned HTTP {status}")

        try:
            payload = json.loads(body)
        except ValueError as e:
            if status >= 400:
                # HTML error pages from CDNs and geo-blocks
                raise UpstreamError(status, body[:200]) from e
            raise DataFormatError(
                f"GET {url} returned a non-JSON body", payload=body[:500]
            ) from e

        if status >= 400:
            raise detect_upstream_error(payload) or UpstreamError(status, body[:200])

        return payload
