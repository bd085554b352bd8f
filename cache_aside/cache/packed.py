"""
Packed Redis access.

Wraps a raw redis-py client with a codec so callers read and write
structured values instead of bytes:

    packed = PackedRedis(client)
    packed.set("user:1", {"id": 1, "name": "Ada"}, ex=60)
    packed.get("user:1")  # {"id": 1, "name": "Ada"}

Counters and tag sets are not packed: INCRBY needs a plain integer and
tag members are plain key strings.
"""

import json
import pickle
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol


class Codec(Protocol):
    """Encodes structured values to bytes and back."""

    def encode(self, value: Any) -> bytes: ...

    def decode(self, data: bytes) -> Any: ...


class JsonCodec:
    """
    JSON codec (default).

    Values that JSON cannot represent natively (datetimes, decimals, UUIDs)
    are stored as their ``str()`` form.
    """

    def encode(self, value: Any) -> bytes:
        return json.dumps(value, default=str, separators=(",", ":")).encode("utf-8")

    def decode(self, data: bytes) -> Any:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return json.loads(data)


class PickleCodec:
    """Pickle codec for values that must round-trip with their Python types."""

    def encode(self, value: Any) -> bytes:
        return pickle.dumps(value)

    def decode(self, data: bytes) -> Any:
        return pickle.loads(data)


class PackedRedis:
    """Codec-aware view over a raw Redis client."""

    def __init__(self, client: Any, codec: Codec | None = None):
        self.raw = client
        self.codec: Codec = codec or JsonCodec()

    def _decode(self, data: bytes | None) -> Any | None:
        if data is None:
            return None
        return self.codec.decode(data)

    def round_trip(self, value: Any) -> Any:
        """Return ``value`` as a later get() of it would decode it."""
        return self.codec.decode(self.codec.encode(value))

    def get(self, key: str) -> Any | None:
        """Get and decode a single value; None when absent."""
        return self._decode(self.raw.get(key))

    def mget(self, keys: Sequence[str]) -> list[Any | None]:
        """Get and decode many values, positionally aligned with ``keys``."""
        if not keys:
            return []
        return [self._decode(data) for data in self.raw.mget(list(keys))]

    def set(self, key: str, value: Any, ex: int | None = None) -> None:
        """Encode and store a value, with an optional expiry in seconds."""
        self.raw.set(key, self.codec.encode(value), ex=ex)

    def store(self, key: str, value: Any, ex: int | None = None) -> Any:
        """Like set(), returning the value as a later get() will decode it."""
        data = self.codec.encode(value)
        self.raw.set(key, data, ex=ex)
        return self.codec.decode(data)

    def set_many(self, values: Mapping[str, Any], ex: int | None = None) -> None:
        """Store many values in one non-transactional pipeline."""
        if not values:
            return
        pipe = self.raw.pipeline(transaction=False)
        for key, value in values.items():
            pipe.set(key, self.codec.encode(value), ex=ex)
        pipe.execute()

    def setnx_many(self, values: Mapping[str, Any], ex: int) -> None:
        """
        SETNX each value, then EXPIRE its key.

        SETNX takes no expiry, so the TTL is applied as a second command.
        The EXPIRE runs whether or not the SETNX won, refreshing the TTL of
        a concurrently written entry.
        """
        if not values:
            return
        pipe = self.raw.pipeline(transaction=False)
        for key, value in values.items():
            pipe.setnx(key, self.codec.encode(value))
            pipe.expire(key, ex)
        pipe.execute()

    def delete(self, *keys: str | bytes) -> int:
        if not keys:
            return 0
        return self.raw.delete(*keys)

    def smembers(self, key: str) -> list[str]:
        """Read a set of plain strings."""
        members: Iterable[bytes | str] = self.raw.smembers(key) or ()
        return sorted(m.decode("utf-8") if isinstance(m, bytes) else m for m in members)

    def sadd(self, key: str, *members: str) -> None:
        self.raw.sadd(key, *members)


__all__ = ["Codec", "JsonCodec", "PickleCodec", "PackedRedis"]
