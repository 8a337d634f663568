"""structlog setup: one JSON object per line on stderr.

Every logger carries a ``component`` key. Stores also bind ``resource`` and
``namespace`` so the list-watch history of one store can be filtered out of
the stream.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog


def setup_logging(level: str = "info", stream: TextIO | None = None) -> None:
    """Configure structlog for JSON output to *stream* (stderr by default)."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.dict_tracebacks,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name and any extra *context*."""
    return structlog.get_logger(component=component, **context)  # type: ignore[return-value]
