"""
Cached integer counters.

Usage:
    likes = cached_counter("model-likes", fetch_fn=count_likes)
    likes.get(42)              # from Redis, or count_likes(42) on a miss
    likes.increment_by(42, 1)  # INCRBY, returns the expected new value
    likes.clear(42)

A cached value of zero reads as a miss and calls ``fetch_fn`` again.
"""

from collections.abc import Callable
from typing import Any, Generic, Optional, TypeVar

import structlog

from cache_aside.cache.cache_keys import CacheKeys
from cache_aside.cache.redis_client import resolve_client
from cache_aside.config import get_settings
from cache_aside.logging import get_logger

K = TypeVar("K", int, str)


class CachedCounter(Generic[K]):
    """Lazily populated counter stored as a plain Redis integer."""

    def __init__(
        self,
        root_key: str,
        fetch_fn: Optional[Callable[[K], int]] = None,
        *,
        ttl: Optional[int] = None,
        client: Any = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self.root_key = root_key
        self.fetch_fn = fetch_fn
        self.ttl = ttl or get_settings().cache_counter_ttl
        self._client = client
        self.logger = (logger or get_logger("cache.counter")).bind(counter=root_key)

    @property
    def client(self) -> Any:
        return resolve_client(self._client)

    def get(self, id: K) -> int:
        key = CacheKeys.counter(self.root_key, id)
        client = self.client
        cached_count = int(client.get(key) or 0)
        if cached_count:
            return cached_count

        count = self.fetch_fn(id) if self.fetch_fn is not None else 0
        count = int(count or 0)
        client.set(key, count, ex=self.ttl)
        self.logger.debug("counter_populated", id=id, count=count)
        return count

    def increment_by(self, id: K, amount: int = 1) -> int:
        """
        Increment the stored counter and return ``previous + amount``.

        The read and the INCRBY are separate commands; a racing increment is
        never lost, but the returned value may not include it.
        """
        key = CacheKeys.counter(self.root_key, id)
        count = self.get(id)
        self.client.incrby(key, amount)
        return count + amount

    def clear(self, id: K) -> None:
        self.client.delete(CacheKeys.counter(self.root_key, id))


def cached_counter(
    root_key: str,
    fetch_fn: Optional[Callable[[K], int]] = None,
    **options: Any,
) -> CachedCounter[K]:
    """Build a CachedCounter; options as for CachedCounter."""
    return CachedCounter(root_key, fetch_fn, **options)


__all__ = ["CachedCounter", "cached_counter"]
