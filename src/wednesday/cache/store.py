"""Redis-backed rolling rate history and TTL-bound scalar values.

History lists are stored newest-first (LPUSH) and trimmed to the last
HISTORY_SIZE entries after every push. Each entry is a JSON-encoded
RateObservation.
"""

import redis.asyncio as redis

from wednesday.logging import get_logger
from wednesday.rates.models import RateObservation

logger = get_logger(__name__)

HISTORY_SIZE = 3


class RateCache:
    """Per-asset observation history plus simple scalar entries.

    Operations on different keys are independent. Concurrent pushes to the
    same key race at last-write-wins granularity.

    Args:
        client: A ``redis.asyncio.Redis`` created with ``decode_responses=True``.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RateCache":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=5.0,
            socket_connect_timeout=5.0,
        )
        return cls(client)

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()

    async def get_history(self, key: str) -> list[RateObservation]:
        """Return up to HISTORY_SIZE observations, newest first."""
        raw = await self._client.lrange(key, 0, -1)
        return [RateObservation.from_json(item) for item in raw[:HISTORY_SIZE]]

    async def push_observation(self, key: str, observation: RateObservation) -> None:
        """Prepend ``observation`` and drop everything past HISTORY_SIZE."""
        await self._client.lpush(key, observation.to_json())
        await self._client.ltrim(key, 0, HISTORY_SIZE - 1)
        logger.debug(
            "observation_pushed",
            key=key,
            rate=observation.rate,
            grew=observation.grew,
        )

    async def get_scalar(self, key: str) -> float | None:
        value = await self._client.get(key)
        if value is None:
            return None
        return float(value)

    async def set_scalar(self, key: str, value: float, ttl_seconds: int) -> None:
        await self._client.set(key, repr(float(value)), ex=ttl_seconds)
