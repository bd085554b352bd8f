"""
Redis Cache-Aside Layer.

Read-through caching between an application, its SQL database and Redis:
- Query results cached by statement hash, with tag-based invalidation
- Batch entity lookups with negative caching and bust debouncing
- Lazily populated counters with atomic increments

Usage:
    from cache_aside.cache import cache, create_cached_array, query_cache

    cache.initialize()

    users = create_cached_array(key="user", lookup_fn=lookup_users)
    users.fetch([1, 2, 3])
    users.bust([2])

    search = query_cache("model-search", version="v2", session=session)
    rows = search(stmt, ttl=CacheTTL.MD, tag="model-search")
    bust_cache_tag("model-search")
"""

from cache_aside.cache.cache_keys import CacheKeys
from cache_aside.cache.counter import CachedCounter, cached_counter
from cache_aside.cache.decorators import cached_array, cached_count, cached_object
from cache_aside.cache.lookup import (
    CachedArray,
    CachedObject,
    create_cached_array,
    create_cached_object,
)
from cache_aside.cache.packed import Codec, JsonCodec, PackedRedis, PickleCodec
from cache_aside.cache.query_cache import QueryCache, hash_query, query_cache
from cache_aside.cache.redis_client import (
    CacheError,
    CacheUnavailableError,
    RedisCache,
    cache,
)
from cache_aside.cache.tags import TagRegistry, bust_cache_tag, tag_cache_key

__all__ = [
    "RedisCache",
    "cache",
    "CacheError",
    "CacheUnavailableError",
    "CacheKeys",
    "Codec",
    "JsonCodec",
    "PickleCodec",
    "PackedRedis",
    "TagRegistry",
    "tag_cache_key",
    "bust_cache_tag",
    "QueryCache",
    "query_cache",
    "hash_query",
    "CachedArray",
    "CachedObject",
    "create_cached_array",
    "create_cached_object",
    "CachedCounter",
    "cached_counter",
    "cached_array",
    "cached_object",
    "cached_count",
]
