"""
Caching decorators.

Turn a plain lookup or count function into its cached counterpart:

    @cached_array("user", ttl=CacheTTL.MD)
    def user_cache(ids: list[int], force_refresh: bool = False) -> dict[int, dict]:
        return load_users(ids)

    user_cache.fetch([1, 2, 3])
    user_cache.bust(2)

    @cached_count("model-likes")
    def model_likes(model_id: int) -> int:
        return count_likes(model_id)

    model_likes.increment_by(42)

The decorated name is bound to the cache object; the original function
stays reachable as ``lookup_fn`` / ``fetch_fn`` and ``__wrapped__``.
"""

import functools
from collections.abc import Callable
from typing import Any

from cache_aside.cache.counter import CachedCounter
from cache_aside.cache.lookup import CachedArray, CachedObject, LookupFn


def cached_array(key: str, **options: Any) -> Callable[[LookupFn], CachedArray]:
    """
    Decorator building a ``CachedArray`` around a bulk lookup function.

    Args:
        key: Root cache key
        **options: Any ``CachedArray`` keyword option (id_key, ttl,
            debounce_time, cache_not_found, append_fn, client, ...)
    """

    def decorator(func: LookupFn) -> CachedArray:
        cached = CachedArray(key, func, **options)
        functools.update_wrapper(cached, func)  # type: ignore[arg-type]
        return cached

    return decorator


def cached_object(key: str, **options: Any) -> Callable[[LookupFn], CachedObject]:
    """Decorator building a ``CachedObject`` around a bulk lookup function."""

    def decorator(func: LookupFn) -> CachedObject:
        cached = CachedObject(key, func, **options)
        functools.update_wrapper(cached, func)  # type: ignore[arg-type]
        return cached

    return decorator


def cached_count(root_key: str, **options: Any) -> Callable[[Callable[[Any], int]], CachedCounter]:
    """Decorator building a ``CachedCounter`` whose misses call the function."""

    def decorator(func: Callable[[Any], int]) -> CachedCounter:
        counter: CachedCounter = CachedCounter(root_key, func, **options)
        functools.update_wrapper(counter, func)  # type: ignore[arg-type]
        return counter

    return decorator


__all__ = ["cached_array", "cached_object", "cached_count"]
