"""
Default SQL executor for QueryCache.

A ``QueryCache`` built without a session opens one per call from the
module-level ``db`` manager:

    from cache_aside.db import db

    db.initialize("postgresql+psycopg://app@localhost/app")
    search = query_cache("model-search")  # runs queries through db.session()
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings
from .logging import get_logger

logger = get_logger("cache.db")


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        # one shared connection keeps an in-memory database alive across sessions
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    settings = get_settings()
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": settings.db_pool_pre_ping,
    }


class DatabaseManager:
    """Owns the engine and session factory that QueryCache falls back to."""

    def __init__(self):
        self.engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def is_initialized(self) -> bool:
        return self._sessionmaker is not None

    def initialize(self, database_url: str | None = None) -> None:
        """Create the engine; repeat calls are no-ops until reset()."""
        if self.is_initialized:
            return

        settings = get_settings()
        url = database_url or settings.database_url
        self.engine = create_engine(url, echo=settings.debug, **_engine_options(url))
        self._sessionmaker = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        logger.info("database_initialized", dialect=self.engine.dialect.name)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session that commits when the block exits cleanly and rolls back otherwise."""
        if self._sessionmaker is None:
            raise RuntimeError("DatabaseManager not initialized. Call initialize() first.")
        with self._sessionmaker() as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    def reset(self) -> None:
        """Dispose the engine so the next initialize() starts fresh."""
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self._sessionmaker = None


db = DatabaseManager()


__all__ = ["DatabaseManager", "db"]
