"""
Read-through caching of SQL query results.

Usage:
    from sqlalchemy import text
    from cache_aside.cache import query_cache

    search = query_cache("model-search", version="v2", session=session)
    rows = search(
        text("SELECT id, name FROM model WHERE status = :status"),
        {"status": "published"},
        ttl=CacheTTL.MD,
        tag="model-search",
    )

Rows are returned as a list of dicts, in the codec-decoded form on both a
miss and a hit. An empty result is cached like any other, so it is served
from Redis on the next call.
"""

import hashlib
import json
from collections.abc import Iterable, Mapping
from contextlib import contextmanager
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import Session
from sqlalchemy.sql import ClauseElement

from cache_aside.cache.cache_keys import CacheKeys
from cache_aside.cache.packed import Codec, PackedRedis
from cache_aside.cache.redis_client import resolve_client
from cache_aside.cache.tags import TagRegistry
from cache_aside.db import db
from cache_aside.logging import get_logger

Rows = list[dict[str, Any]]

_UNSET: Any = object()


def hash_query(
    query: ClauseElement,
    params: Optional[Mapping[str, Any]] = None,
    dialect: Optional[Dialect] = None,
) -> str:
    """
    Stable hash of a statement's SQL text and bound parameter values.

    Two structurally identical statements hash the same regardless of
    object identity. Pass the dialect the statement will run on so
    dialect-specific constructs compile as they will be executed.
    """
    compiled = query.compile(dialect=dialect)
    bound = dict(compiled.params)
    if params:
        bound.update(params)
    payload = json.dumps({"sql": str(compiled), "params": bound}, sort_keys=True, default=str)
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


class QueryCache:
    """Caches query results under ``<namespace>[:<version>]:<hash>``."""

    def __init__(
        self,
        namespace: str,
        version: Optional[str] = None,
        *,
        session: Optional[Session] = None,
        client: Any = None,
        codec: Optional[Codec] = None,
        default_ttl: Optional[int] = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self.namespace = namespace
        self.version = version
        self.session = session
        self.default_ttl = default_ttl
        self._client = client
        self._codec = codec
        self.logger = (logger or get_logger("cache.query")).bind(namespace=namespace)
        self.tags = TagRegistry(client, logger=self.logger)

    @property
    def packed(self) -> PackedRedis:
        return PackedRedis(resolve_client(self._client), self._codec)

    def _dialect(self) -> Optional[Dialect]:
        if self.session is None:
            return db.engine.dialect if db.engine is not None else None
        get_bind = getattr(self.session, "get_bind", None)
        return get_bind().dialect if get_bind is not None else None

    def cache_key(self, query: ClauseElement, params: Optional[Mapping[str, Any]] = None) -> str:
        query_hash = hash_query(query, params, self._dialect())
        return CacheKeys.query(self.namespace, self.version, query_hash)

    @contextmanager
    def _session_scope(self):
        if self.session is not None:
            yield self.session
        else:
            with db.session() as session:
                yield session

    def _execute(self, query: ClauseElement, params: Optional[Mapping[str, Any]]) -> Rows:
        with self._session_scope() as session:
            result = session.execute(query, dict(params) if params else None)
            return [dict(row) for row in result.mappings().all()]

    def run(
        self,
        query: ClauseElement,
        params: Optional[Mapping[str, Any]] = None,
        *,
        ttl: Optional[int] = _UNSET,
        tag: str | Iterable[str] | None = None,
    ) -> Rows:
        """
        Return the rows for ``query``, from cache when possible.

        Args:
            query: SQLAlchemy executable (``text()`` or Core select)
            params: Bound parameter values
            ttl: Seconds to keep the result; 0 bypasses the cache entirely,
                None stores without expiry. Defaults to ``default_ttl``.
            tag: Tag or tags to register the cache key under on a miss
        """
        if ttl is _UNSET:
            ttl = self.default_ttl
        if ttl == 0:
            return self._execute(query, params)

        cache_key = self.cache_key(query, params)
        packed = self.packed
        cached = packed.get(cache_key)
        if cached is not None:
            self.logger.debug("cache_hit", key=cache_key)
            return cached

        self.logger.debug("cache_miss", key=cache_key)
        result = packed.store(cache_key, self._execute(query, params), ex=ttl)

        if tag:
            self.tags.tag(cache_key, tag)
        return result

    __call__ = run


def query_cache(namespace: str, version: Optional[str] = None, **kwargs: Any) -> QueryCache:
    """Build a QueryCache for ``namespace``; kwargs as for QueryCache."""
    return QueryCache(namespace, version, **kwargs)


__all__ = ["QueryCache", "query_cache", "hash_query"]
