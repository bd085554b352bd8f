"""
Application configuration using Pydantic settings.

Usage:
    from cache_aside.config import get_settings
    settings = get_settings()

For TTL presets, import from cache_aside.constants:
    from cache_aside.constants import CacheTTL
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_DEBOUNCE_SECONDS,
    LOOKUP_BATCH_SIZE,
    MGET_BATCH_SIZE,
    CacheTTL,
)


class Settings(BaseSettings):
    """
    Cache-aside settings loaded from environment variables and .env file.

    Only the Redis connection is required in production; every cache
    tunable has a default matching the values the helpers were designed
    around.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Database
    database_url: str = Field(default="sqlite:///cache_aside.db", validation_alias="DATABASE_URL")
    db_pool_size: int = Field(default=10, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, validation_alias="DB_MAX_OVERFLOW")
    db_pool_pre_ping: bool = Field(default=True, validation_alias="DB_POOL_PRE_PING")

    # Redis
    redis_host: str = Field(default="localhost", validation_alias="REDIS_HOST")
    redis_port: int = Field(default=6379, validation_alias="REDIS_PORT")
    redis_db: int = Field(default=0, validation_alias="REDIS_DB")
    redis_password: Optional[str] = Field(default=None, validation_alias="REDIS_PASSWORD")
    redis_max_connections: int = Field(default=50, validation_alias="REDIS_MAX_CONNECTIONS")
    redis_socket_timeout: float = Field(default=5.0, validation_alias="REDIS_SOCKET_TIMEOUT")

    @property
    def redis_url(self) -> str:
        """Construct Redis URL from components."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Cache behaviour
    cache_default_ttl: int = Field(default=CacheTTL.XS, validation_alias="CACHE_DEFAULT_TTL")
    cache_debounce_seconds: int = Field(
        default=DEFAULT_DEBOUNCE_SECONDS, validation_alias="CACHE_DEBOUNCE_SECONDS"
    )
    cache_mget_batch_size: int = Field(default=MGET_BATCH_SIZE, validation_alias="CACHE_MGET_BATCH_SIZE")
    cache_lookup_batch_size: int = Field(
        default=LOOKUP_BATCH_SIZE, validation_alias="CACHE_LOOKUP_BATCH_SIZE"
    )
    cache_counter_ttl: int = Field(default=CacheTTL.HOUR, validation_alias="CACHE_COUNTER_TTL")

    @field_validator("cache_mget_batch_size", "cache_lookup_batch_size", "cache_debounce_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Batch sizes and the debounce window must be positive."""
        if v <= 0:
            raise ValueError(f"must be a positive integer (got {v})")
        return v

    @field_validator("cache_default_ttl", "cache_counter_ttl")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        """TTLs of zero would make Redis reject SET ... EX."""
        if v <= 0:
            raise ValueError(f"TTL must be at least 1 second (got {v})")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


__all__ = ["Settings", "get_settings"]
