"""
Cache constants for the cache-aside helpers.

Contains TTL presets and the batching bounds used when talking to Redis
and to lookup functions.
"""

# =============================================================================
# TTL presets (seconds)
# =============================================================================


class CacheTTL:
    """Common time-to-live values for cached data."""

    XS = 60
    SM = 60 * 3
    MD = 60 * 10
    LG = 60 * 30
    HOUR = 60 * 60
    DAY = 60 * 60 * 24
    WEEK = 60 * 60 * 24 * 7


# =============================================================================
# Batching
# =============================================================================

# Keys per MGET round-trip
MGET_BATCH_SIZE = 200

# Ids per lookup function call
LOOKUP_BATCH_SIZE = 10_000

# =============================================================================
# Debounce
# =============================================================================

# Window after a bust during which fresh lookups are served but not re-cached
DEFAULT_DEBOUNCE_SECONDS = 10

# =============================================================================
# Key prefixes
# =============================================================================

TAG_PREFIX = "tag"
KEY_SEPARATOR = ":"
