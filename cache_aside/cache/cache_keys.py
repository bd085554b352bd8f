"""
Cache key management.

Centralized cache key construction to:
- Prevent key collisions across namespaces
- Keep entity, query, tag and counter keys in one place
- Document cache structure
"""

from typing import Optional

from cache_aside.constants import KEY_SEPARATOR, TAG_PREFIX


class CacheKeys:
    """
    Centralized cache key definitions.

    Naming convention: {namespace}:{segment}[:{segment}...]

    Examples:
        - user:123 -> cached user entity 123
        - user-count:123 -> counter for user 123
        - model-search:v2:9f86d081... -> cached query result
        - tag:model-search -> set of keys tagged "model-search"
    """

    @staticmethod
    def join(*parts: Optional[object]) -> str:
        """Join non-None parts with the key separator."""
        return KEY_SEPARATOR.join(str(part) for part in parts if part is not None)

    @staticmethod
    def entity(root_key: str, entity_id: int | str) -> str:
        """Cache key for a single entity in a batch lookup cache."""
        return CacheKeys.join(root_key, entity_id)

    @staticmethod
    def counter(root_key: str, entity_id: int | str) -> str:
        """Cache key for a counter."""
        return CacheKeys.join(root_key, entity_id)

    @staticmethod
    def query(namespace: str, version: Optional[str], query_hash: str) -> str:
        """Cache key for a query result; the version segment is optional."""
        return CacheKeys.join(namespace, version, query_hash)

    @staticmethod
    def tag(tag: str) -> str:
        """Key of the set holding every cache key tagged ``tag``."""
        return CacheKeys.join(TAG_PREFIX, tag)
