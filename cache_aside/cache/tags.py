"""
Tag-based bulk invalidation.

A tag is a Redis set of cache keys. Tagging adds a key to the set;
busting a tag deletes every member key and then the set itself, so
related entries can be invalidated without scanning the keyspace.

Usage:
    from cache_aside.cache import bust_cache_tag

    bust_cache_tag(["model-search", "model-count"])
"""

from collections.abc import Iterable
from typing import Any

import structlog

from cache_aside.cache.cache_keys import CacheKeys
from cache_aside.cache.packed import PackedRedis
from cache_aside.cache.redis_client import resolve_client
from cache_aside.logging import get_logger


def _as_list(tags: str | Iterable[str]) -> list[str]:
    if isinstance(tags, str):
        return [tags]
    return list(tags)


class TagRegistry:
    """Maps tags to the cache keys they protect."""

    def __init__(self, client: Any = None, logger: structlog.stdlib.BoundLogger | None = None):
        self._client = client
        self.logger = logger or get_logger("cache.tags")

    @property
    def packed(self) -> PackedRedis:
        return PackedRedis(resolve_client(self._client))

    def tag(self, key: str, tags: str | Iterable[str]) -> None:
        """Add ``key`` to each tag's key set."""
        packed = self.packed
        for tag in _as_list(tags):
            packed.sadd(CacheKeys.tag(tag), key)

    def bust(self, tags: str | Iterable[str]) -> None:
        """Delete every key under each tag, then the tag set itself."""
        packed = self.packed
        for tag in _as_list(tags):
            tag_key = CacheKeys.tag(tag)
            keys = packed.smembers(tag_key)
            for key in keys:
                packed.delete(key)
            packed.delete(tag_key)
            self.logger.debug("cache_tag_busted", tag=tag, keys=len(keys))


def tag_cache_key(key: str, tags: str | Iterable[str], client: Any = None) -> None:
    """Tag ``key`` using the shared client unless one is given."""
    TagRegistry(client).tag(key, tags)


def bust_cache_tag(tags: str | Iterable[str], client: Any = None) -> None:
    """Bust ``tags`` using the shared client unless one is given."""
    TagRegistry(client).bust(tags)


__all__ = ["TagRegistry", "tag_cache_key", "bust_cache_tag"]
