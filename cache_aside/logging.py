"""
structlog setup for the cache-aside helpers.

Each cache component takes an optional ``logger``; without one it calls
``get_logger("cache.<part>")``, which configures structlog from settings
the first time it is needed. An application that has already configured
structlog keeps its own configuration.
"""

import logging
import os
import sys
from functools import lru_cache

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from .config import get_settings


def _add_library(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mark events emitted by this package."""
    event_dict.setdefault("lib", "cache_aside")
    return event_dict


def _renderers(debug: bool) -> list[Processor]:
    if debug or os.getenv("ENV", "development") == "development":
        return [structlog.dev.ConsoleRenderer(exception_formatter=structlog.dev.plain_traceback)]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


@lru_cache(maxsize=1)
def configure_logging(level: str = "INFO", debug: bool = False) -> None:
    """Route structlog through stdlib logging at ``level``. Runs once per process."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_library,
            *_renderers(debug),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "cache") -> structlog.stdlib.BoundLogger:
    """Get a structured logger, configuring structlog from settings if nobody has."""
    if not structlog.is_configured():
        settings = get_settings()
        configure_logging(settings.log_level, settings.debug)
    return structlog.get_logger(name)  # type: ignore[no-any-return]


__all__ = ["configure_logging", "get_logger"]
