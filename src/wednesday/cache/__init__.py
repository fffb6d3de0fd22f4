"""Cache store: rolling rate history and TTL scalars in Redis."""

from wednesday.cache.store import HISTORY_SIZE, RateCache

__all__ = ["HISTORY_SIZE", "RateCache"]
