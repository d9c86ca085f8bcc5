"""Logging setup with a per-request correlation id."""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Optional

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(correlation_id)s] %(name)s: %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Add the current request's correlation id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id.get() or "-"
        return True


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def ensure_correlation_id(value: Optional[str] = None) -> str:
    """Bind ``value`` (or a fresh id) to the current context and return it."""
    correlation_id = value or uuid.uuid4().hex
    _correlation_id.set(correlation_id)
    return correlation_id


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(CorrelationIdFilter())

    package_logger = logging.getLogger("expense_bot")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.propagate = False
