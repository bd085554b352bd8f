"""
Cache entry states for the batch lookup cache.

An entry is exactly one of:
- Positive: the entity as returned by the lookup function
- Tombstone: the id was looked up and does not exist
- Debounced: the id was recently busted

The entity is nested under its own field, so envelope flags never mix with
entity fields:

    {"entity": {"id": 1, "name": "Ada"}, "cached_at": 1700000000.0}
    {"id": 2, "not_found": true, "cached_at": 1700000000.0}
    {"id": 3, "debounce": true, "cached_at": 1700000000.0}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

ENTITY = "entity"
CACHED_AT = "cached_at"
NOT_FOUND = "not_found"
DEBOUNCE = "debounce"


@dataclass(frozen=True)
class Positive:
    entity: dict[str, Any]
    cached_at: float

    def to_record(self, id_key: str) -> dict[str, Any]:
        return {ENTITY: self.entity, CACHED_AT: self.cached_at}


@dataclass(frozen=True)
class Tombstone:
    id: int
    cached_at: float

    def to_record(self, id_key: str) -> dict[str, Any]:
        return {id_key: self.id, NOT_FOUND: True, CACHED_AT: self.cached_at}


@dataclass(frozen=True)
class Debounced:
    id: int
    cached_at: float

    def is_active(self, now: float, window: float) -> bool:
        """True while the bust is younger than the debounce window."""
        return self.cached_at > now - window

    def to_record(self, id_key: str) -> dict[str, Any]:
        return {id_key: self.id, DEBOUNCE: True, CACHED_AT: self.cached_at}


CacheEntry = Union[Positive, Tombstone, Debounced]


def from_record(record: Any, id_key: str) -> Optional[CacheEntry]:
    """
    Rebuild an entry from its stored record.

    Returns None for anything that is not a recognised record, so the
    caller treats it as a miss and overwrites it.
    """
    if not isinstance(record, dict):
        return None
    cached_at = float(record.get(CACHED_AT) or 0.0)
    if ENTITY in record:
        return Positive(entity=record[ENTITY], cached_at=cached_at)
    if record.get(NOT_FOUND):
        return Tombstone(id=record.get(id_key), cached_at=cached_at)
    if record.get(DEBOUNCE):
        return Debounced(id=record.get(id_key), cached_at=cached_at)
    return None


__all__ = ["CacheEntry", "Positive", "Tombstone", "Debounced", "from_record"]
