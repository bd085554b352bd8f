"""
Batch lookup cache for entities keyed by integer id.

``CachedArray`` sits in front of a bulk lookup function such as::

    def lookup_users(ids: list[int], force_refresh: bool = False) -> dict[int, dict]:
        rows = session.execute(select(User).where(User.id.in_(ids))).scalars()
        return {u.id: {"id": u.id, "username": u.username} for u in rows}

    users = create_cached_array(key="user", lookup_fn=lookup_users, ttl=CacheTTL.MD)
    users.fetch([1, 2, 3])   # list of entities found
    users.bust(2)            # after writing user 2
    users.refresh([1, 3])    # force repopulation from the lookup function

Ids the lookup function does not return are cached as tombstones (unless
``cache_not_found=False``) so repeat lookups of missing ids stay off the
database. ``bust`` replaces an entry with a short-lived debounce marker:
until it lapses, fetches still go to the lookup function but do not write
the result back, which keeps rapidly changing entities from churning the
cache.

``CachedObject`` is the same engine returning ``{str(id): entity}``.
"""

import time
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from typing import Any, Optional, TypeVar

import structlog

from cache_aside.cache.cache_keys import CacheKeys
from cache_aside.cache.entries import Debounced, Positive, Tombstone, from_record
from cache_aside.cache.packed import Codec, PackedRedis
from cache_aside.cache.redis_client import resolve_client
from cache_aside.config import get_settings
from cache_aside.logging import get_logger

T = TypeVar("T")

Entity = Mapping[str, Any]
LookupFn = Callable[..., Mapping[Any, Entity]]
AppendFn = Callable[[list[Entity]], None]


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most ``size`` items."""
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _as_id_list(ids: int | str | Iterable[int | str]) -> list[int]:
    """Dedupe ids preserving first-seen order, normalized to int."""
    if isinstance(ids, (int, str)):
        ids = [ids]
    return list(dict.fromkeys(int(entity_id) for entity_id in ids))


class CachedArray:
    """
    Read-through cache over a bulk lookup function.

    Args:
        key: Root key; entries live at ``<key>:<id>``
        lookup_fn: ``(ids, force_refresh=False) -> {id: entity}``
        id_key: Name of the id field on entities
        append_fn: Called with the result list before it is returned;
            may extend or mutate it in place
        ttl: Seconds to keep positive entries and tombstones
        debounce_time: Seconds a bust suppresses re-caching
        cache_not_found: Cache tombstones for ids the lookup did not return
        mget_batch_size: Keys per MGET
        lookup_batch_size: Ids per lookup_fn call
        client: Redis client; the shared client when omitted
        codec: Value codec; JSON when omitted
        clock: Returns the current POSIX time
        logger: Structured logger
    """

    def __init__(
        self,
        key: str,
        lookup_fn: LookupFn,
        *,
        id_key: str = "id",
        append_fn: Optional[AppendFn] = None,
        ttl: Optional[int] = None,
        debounce_time: Optional[int] = None,
        cache_not_found: bool = True,
        mget_batch_size: Optional[int] = None,
        lookup_batch_size: Optional[int] = None,
        client: Any = None,
        codec: Optional[Codec] = None,
        clock: Callable[[], float] = time.time,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        settings = get_settings()
        self.key = key
        self.lookup_fn = lookup_fn
        self.id_key = id_key
        self.append_fn = append_fn
        self.ttl = ttl or settings.cache_default_ttl
        self.debounce_time = debounce_time or settings.cache_debounce_seconds
        self.cache_not_found = cache_not_found
        self.mget_batch_size = mget_batch_size or settings.cache_mget_batch_size
        self.lookup_batch_size = lookup_batch_size or settings.cache_lookup_batch_size
        self.clock = clock
        self._client = client
        self._codec = codec
        self.logger = (logger or get_logger("cache.lookup")).bind(cache=key)

    @property
    def packed(self) -> PackedRedis:
        return PackedRedis(resolve_client(self._client), self._codec)

    def _key(self, entity_id: int) -> str:
        return CacheKeys.entity(self.key, entity_id)

    def _lookup(self, ids: Sequence[int], force_refresh: bool = False) -> dict[int, Entity]:
        """Call lookup_fn in batches and merge results keyed by int id."""
        found: dict[int, Entity] = {}
        for batch in chunked(ids, self.lookup_batch_size):
            if force_refresh:
                batch_results = self.lookup_fn(list(batch), True)
            else:
                batch_results = self.lookup_fn(list(batch))
            for entity_id, entity in (batch_results or {}).items():
                found[int(entity_id)] = entity
        return found

    def fetch(self, ids: Iterable[int | str]) -> list[Entity]:
        """Return the entities found for ``ids``; missing ids are omitted."""
        unique_ids = _as_id_list(ids)
        if not unique_ids:
            return []

        packed = self.packed
        entries = {}
        for batch in chunked(unique_ids, self.mget_batch_size):
            records = packed.mget([self._key(entity_id) for entity_id in batch])
            for entity_id, record in zip(batch, records):
                entry = from_record(record, self.id_key)
                if entry is not None:
                    entries[entity_id] = entry

        now = self.clock()
        results: list[Entity] = []
        misses: list[int] = []
        dont_cache: set[int] = set()
        for entity_id in unique_ids:
            entry = entries.get(entity_id)
            if entry is None:
                misses.append(entity_id)
            elif isinstance(entry, Tombstone):
                continue
            elif isinstance(entry, Debounced):
                if entry.is_active(now, self.debounce_time):
                    dont_cache.add(entity_id)
                misses.append(entity_id)
            else:
                results.append(entry.entity)

        if dont_cache:
            self.logger.debug("cache_debounce", count=len(dont_cache), ids=sorted(dont_cache))

        if misses:
            self.logger.debug("cache_miss", count=len(misses), ids=misses)
            found = self._lookup(misses)

            cached_at = self.clock()
            to_cache: dict[str, dict[str, Any]] = {}
            to_cache_not_found: dict[str, dict[str, Any]] = {}
            for entity_id in misses:
                entity = found.get(entity_id)
                if entity is None:
                    if self.cache_not_found:
                        tombstone = Tombstone(id=entity_id, cached_at=cached_at)
                        to_cache_not_found[self._key(entity_id)] = tombstone.to_record(self.id_key)
                    continue
                # same shape a later cache hit will decode
                entity = packed.round_trip(dict(entity))
                results.append(entity)
                if entity_id not in dont_cache:
                    positive = Positive(entity=entity, cached_at=cached_at)
                    to_cache[self._key(entity_id)] = positive.to_record(self.id_key)

            packed.set_many(to_cache, ex=self.ttl)
            # NX so a tombstone never overwrites a value written concurrently
            packed.setnx_many(to_cache_not_found, ex=self.ttl)

        if self.append_fn is not None:
            self.append_fn(results)

        return results

    def bust(self, ids: int | Iterable[int]) -> None:
        """Replace entries with debounce markers that expire after the window."""
        id_list = _as_id_list(ids)
        if not id_list:
            return

        now = self.clock()
        markers = {
            self._key(entity_id): Debounced(id=entity_id, cached_at=now).to_record(self.id_key)
            for entity_id in id_list
        }
        self.packed.set_many(markers, ex=self.debounce_time)
        self.logger.debug("cache_busted", count=len(id_list), ids=id_list)

    def refresh(self, ids: int | Iterable[int]) -> None:
        """
        Repopulate entries straight from the lookup function.

        The lookup is told to skip its own caches. Ids it no longer returns
        have their entries deleted.
        """
        id_list = _as_id_list(ids)
        if not id_list:
            return

        found = self._lookup(id_list, force_refresh=True)
        cached_at = self.clock()
        packed = self.packed
        packed.set_many(
            {
                self._key(entity_id): Positive(entity=dict(entity), cached_at=cached_at).to_record(
                    self.id_key
                )
                for entity_id, entity in found.items()
            },
            ex=self.ttl,
        )

        to_remove = [self._key(entity_id) for entity_id in id_list if entity_id not in found]
        packed.delete(*to_remove)
        self.logger.debug("cache_refreshed", refreshed=len(found), removed=len(to_remove))


class CachedObject:
    """Mapping view over ``CachedArray``: ``fetch`` returns ``{str(id): entity}``."""

    def __init__(self, key: str, lookup_fn: LookupFn, **options: Any):
        self.array = CachedArray(key, lookup_fn, **options)

    @property
    def key(self) -> str:
        return self.array.key

    def fetch(self, ids: Iterable[int | str]) -> dict[str, Entity]:
        id_key = self.array.id_key
        return {str(entity[id_key]): entity for entity in self.array.fetch(ids)}

    def bust(self, ids: int | Iterable[int]) -> None:
        self.array.bust(ids)

    def refresh(self, ids: int | Iterable[int]) -> None:
        self.array.refresh(ids)


def create_cached_array(key: str, lookup_fn: LookupFn, **options: Any) -> CachedArray:
    """Build a CachedArray; options as for CachedArray."""
    return CachedArray(key, lookup_fn, **options)


def create_cached_object(key: str, lookup_fn: LookupFn, **options: Any) -> CachedObject:
    """Build a CachedObject; options as for CachedArray."""
    return CachedObject(key, lookup_fn, **options)


__all__ = [
    "CachedArray",
    "CachedObject",
    "create_cached_array",
    "create_cached_object",
    "chunked",
]
