"""
Pytest fixtures for cache-aside tests.

Redis is replaced by an in-memory fake with a controllable clock so TTLs
and debounce windows can be tested without sleeping. SQL tests use an
in-memory SQLite database through SQLAlchemy.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cache_aside.cache.redis_client import cache


class FakeClock:
    """Callable clock returning a settable POSIX time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePipeline:
    """Buffers commands and runs them against the fake on execute()."""

    def __init__(self, redis: "FakeRedis"):
        self._redis = redis
        self._commands: list[tuple[Any, tuple, dict]] = []

    def __getattr__(self, name: str):
        method = getattr(self._redis, name)

        def queue(*args, **kwargs):
            self._commands.append((method, args, kwargs))
            return self

        return queue

    def execute(self) -> list[Any]:
        self._redis.calls["pipeline_execute"] += 1
        results = [method(*args, **kwargs) for method, args, kwargs in self._commands]
        self._commands = []
        return results


def _key(key: str | bytes) -> str:
    return key.decode("utf-8") if isinstance(key, bytes) else key


def _bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


class FakeRedis:
    """Just enough of redis-py's command surface for the helpers."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self._data: dict[str, Any] = {}
        self._expires: dict[str, float] = {}
        self.calls: Counter = Counter()

    # -- internals ---------------------------------------------------------

    def _alive(self, key: str) -> bool:
        expires_at = self._expires.get(key)
        if expires_at is not None and self.clock() >= expires_at:
            self._data.pop(key, None)
            self._expires.pop(key, None)
        return key in self._data

    def _store(self, key: str, value: Any, ex: int | None) -> None:
        self._data[key] = value
        if ex is not None:
            self._expires[key] = self.clock() + ex
        else:
            self._expires.pop(key, None)

    def ttl(self, key: str | bytes) -> int:
        key = _key(key)
        if not self._alive(key):
            return -2
        expires_at = self._expires.get(key)
        if expires_at is None:
            return -1
        return int(expires_at - self.clock())

    # -- commands ----------------------------------------------------------

    def ping(self) -> bool:
        return True

    def info(self, section: str | None = None) -> dict[str, Any]:
        return {"used_memory_human": "1.00M"}

    def get(self, key: str | bytes) -> bytes | None:
        self.calls["get"] += 1
        key = _key(key)
        return self._data[key] if self._alive(key) else None

    def mget(self, keys: list[str]) -> list[bytes | None]:
        self.calls["mget"] += 1
        return [self._data[_key(k)] if self._alive(_key(k)) else None for k in keys]

    def set(self, key: str | bytes, value: Any, ex: int | None = None, nx: bool = False):
        self.calls["set"] += 1
        key = _key(key)
        if nx and self._alive(key):
            return None
        self._store(key, _bytes(value), ex)
        return True

    def setnx(self, key: str | bytes, value: Any) -> bool:
        self.calls["setnx"] += 1
        key = _key(key)
        if self._alive(key):
            return False
        self._store(key, _bytes(value), None)
        return True

    def expire(self, key: str | bytes, seconds: int) -> bool:
        self.calls["expire"] += 1
        key = _key(key)
        if not self._alive(key):
            return False
        self._expires[key] = self.clock() + seconds
        return True

    def delete(self, *keys: str | bytes) -> int:
        self.calls["delete"] += 1
        deleted = 0
        for key in map(_key, keys):
            if self._alive(key):
                deleted += 1
            self._data.pop(key, None)
            self._expires.pop(key, None)
        return deleted

    def incrby(self, key: str | bytes, amount: int = 1) -> int:
        self.calls["incrby"] += 1
        key = _key(key)
        current = int(self._data[key]) if self._alive(key) else 0
        self._data[key] = _bytes(current + amount)
        return current + amount

    def sadd(self, key: str | bytes, *members: Any) -> int:
        self.calls["sadd"] += 1
        key = _key(key)
        if not self._alive(key):
            self._data[key] = set()
        before = len(self._data[key])
        self._data[key].update(_bytes(m) for m in members)
        return len(self._data[key]) - before

    def smembers(self, key: str | bytes) -> set[bytes]:
        self.calls["smembers"] += 1
        key = _key(key)
        return set(self._data[key]) if self._alive(key) else set()

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)


class RecordingLookup:
    """Lookup function double backed by a dict, recording every call."""

    def __init__(self, rows: dict[int, dict[str, Any]] | None = None):
        self.rows = rows or {}
        self.calls: list[tuple[list[int], bool]] = []

    def __call__(self, ids: list[int], force_refresh: bool = False) -> dict[int, dict[str, Any]]:
        self.calls.append((list(ids), force_refresh))
        return {i: dict(self.rows[i]) for i in ids if i in self.rows}

    @property
    def requested_ids(self) -> list[int]:
        return [i for ids, _ in self.calls for i in ids]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def redis_client(clock):
    return FakeRedis(clock)


@pytest.fixture
def shared_redis(redis_client):
    """Install the fake as the process-wide client for helpers built without one."""
    cache.use_client(redis_client)
    yield redis_client
    cache.reset()


@pytest.fixture
def make_lookup():
    return RecordingLookup


@pytest.fixture
def sqlite_engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE model (id INTEGER PRIMARY KEY, name TEXT, status TEXT)"))
        conn.execute(
            text("INSERT INTO model (id, name, status) VALUES (:id, :name, :status)"),
            [
                {"id": 1, "name": "alpha", "status": "published"},
                {"id": 2, "name": "beta", "status": "draft"},
                {"id": 3, "name": "gamma", "status": "published"},
            ],
        )
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(sqlite_engine):
    """Get a session on the in-memory database."""
    SessionLocal = sessionmaker(bind=sqlite_engine, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
