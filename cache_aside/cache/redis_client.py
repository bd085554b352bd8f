"""
Redis client with connection pooling.

Provides a singleton Redis connection manager with:
- Connection pooling (configurable max connections)
- Explicit client injection for applications that own their client
- Health reporting

Unlike the read helpers built on top of it, the manager itself never
raises on a failed connection attempt: it records availability and logs.
Helpers that need a client call ``require_client()``, which raises
``CacheUnavailableError`` when none can be had.
"""

from typing import Any, Optional

import redis
from redis.exceptions import ConnectionError, TimeoutError

from cache_aside.config import get_settings
from cache_aside.logging import get_logger

logger = get_logger("cache")


class CacheError(Exception):
    """Base error for the cache-aside helpers."""


class CacheUnavailableError(CacheError):
    """Raised when a helper needs Redis and no connection could be made."""


class RedisCache:
    """
    Redis connection manager with connection pooling.

    Features:
    - Singleton pattern for connection reuse
    - Connection pooling (configurable max connections)
    - Binary-safe clients (``decode_responses=False``); encoding is done
      by the packed layer

    Usage:
        from cache_aside.cache import cache

        cache.initialize()
        client = cache.require_client()
    """

    _instance: Optional["RedisCache"] = None
    _pool: Optional[redis.ConnectionPool] = None
    _client: Optional[redis.Redis] = None
    _initialized: bool = False
    _available: bool = False

    def __new__(cls) -> "RedisCache":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        # Prevent re-initialization
        pass

    def initialize(self, force: bool = False) -> bool:
        """
        Initialize Redis connection pool.

        Args:
            force: Force re-initialization even if already initialized

        Returns:
            True if Redis is available and connected, False otherwise
        """
        if self._initialized and not force:
            return self._available

        settings = get_settings()
        try:
            self._pool = redis.ConnectionPool(
                host=settings.redis_host,
                port=settings.redis_port,
                db=settings.redis_db,
                password=settings.redis_password,
                max_connections=settings.redis_max_connections,
                socket_timeout=settings.redis_socket_timeout,
                socket_connect_timeout=settings.redis_socket_timeout,
                decode_responses=False,  # We handle encoding ourselves
            )

            client = redis.Redis(connection_pool=self._pool)
            client.ping()

            self._client = client
            self._available = True
            self._initialized = True
            logger.info("redis_connected", host=settings.redis_host, port=settings.redis_port)
            return True

        except (ConnectionError, TimeoutError) as e:
            logger.warning("redis_connection_failed", error=str(e))
            self._client = None
            self._available = False
            self._initialized = True
            return False

    def use_client(self, client: Any) -> None:
        """
        Install an externally created client (or a test double).

        The client must expose the redis-py command methods used by the
        helpers: get/set/mget/setnx/expire/delete/incrby/sadd/smembers
        and pipeline().
        """
        self._pool = None
        self._client = client
        self._available = True
        self._initialized = True

    @property
    def client(self) -> Optional[redis.Redis]:
        """Get the shared Redis client, initializing on first use."""
        if not self._initialized:
            self.initialize()

        if not self._available:
            return None

        return self._client

    @property
    def is_available(self) -> bool:
        """Check if Redis is available."""
        if not self._initialized:
            self.initialize()
        return self._available

    def require_client(self) -> redis.Redis:
        """Return the shared client or raise ``CacheUnavailableError``."""
        client = self.client
        if client is None:
            raise CacheUnavailableError("Redis is not available")
        return client

    def reset(self) -> None:
        """Drop the pool and client so the next access re-initializes."""
        if self._pool is not None:
            self._pool.disconnect()
        self._pool = None
        self._client = None
        self._available = False
        self._initialized = False

    # =========================================================================
    # Health Check
    # =========================================================================

    def health_check(self) -> dict[str, Any]:
        """
        Get cache health status.

        Returns:
            Dictionary with health information
        """
        status: dict[str, Any] = {
            "available": self._available,
            "initialized": self._initialized,
        }

        client = self.client
        if client is None:
            status["status"] = "unavailable"
            return status

        try:
            client.ping()
            memory_info = client.info("memory")
            if isinstance(memory_info, dict):
                status["memory_used"] = memory_info.get("used_memory_human", "unknown")
            else:
                status["memory_used"] = "unknown"
            status["status"] = "healthy"
        except (ConnectionError, TimeoutError):
            status["status"] = "degraded"

        return status


# Global singleton instance
cache = RedisCache()


def resolve_client(client: Any = None) -> Any:
    """Return ``client`` when given, else the shared client."""
    if client is not None:
        return client
    return cache.require_client()
