"""
Cache-Aside Helpers.

This package provides read-through caching over Redis for SQL queries,
batched entity lookups and counters, plus the configuration, logging and
database plumbing they rely on.

Usage:
    # Caches
    from cache_aside.cache import create_cached_array, query_cache, cached_counter

    # Config
    from cache_aside.config import get_settings, Settings

    # Logging
    from cache_aside.logging import get_logger, configure_logging
"""

__version__ = "1.0.0"

# Lazy imports to avoid circular dependencies
# Users should import directly from submodules:
#   from cache_aside.cache import cache
#   from cache_aside.config import get_settings
#   from cache_aside.logging import get_logger
