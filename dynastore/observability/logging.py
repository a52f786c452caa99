"""
Structured Logging: JSON Records with Trace Correlation

Provides:
- JsonFormatter: one JSON object per record, carrying the current
  trace/span IDs and any `extra=` fields
- StructuredLogger: keyword-field logging with bound defaults
- log_context(): request-scoped fields added to every record
- setup_logging(): root logger configuration from ObservabilityConfig
  or explicit arguments

Library modules log through `logging.getLogger(__name__)`; only
applications call setup_logging().
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Iterator, Optional, TextIO

from dynastore.core.config import ObservabilityConfig
from dynastore.observability.tracing import Tracer


class LogLevel(IntEnum):
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


_log_context: ContextVar[dict[str, Any]] = ContextVar("dynastore_log_context", default={})

# Attributes every logging.LogRecord carries; anything else came from extra=
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """JSON formatter adding trace correlation and context fields."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "@timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        span = Tracer.get_current_span()
        if span:
            data["trace_id"] = span.context.trace_id
            data["span_id"] = span.context.span_id

        data.update(_log_context.get())
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                data[key] = value

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)


class StructuredLogger:
    """
    Logger taking fields as keyword arguments.

    Usage:
        log = StructuredLogger("dynastore.requests").bind(table="kv")
        log.info("RequestSent", operation="AtomicPut", key="alice")
    """

    __slots__ = ("_logger", "_bound")

    def __init__(self, name: str, bound: Optional[dict[str, Any]] = None) -> None:
        self._logger = logging.getLogger(name)
        self._bound: dict[str, Any] = dict(bound or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **fields: Any) -> StructuredLogger:
        """Child logger adding `fields` to every record."""
        return StructuredLogger(self._logger.name, {**self._bound, **fields})

    def is_enabled_for(self, level: LogLevel) -> bool:
        return self._logger.isEnabledFor(level)

    def log(self, level: LogLevel, message: str, **fields: Any) -> None:
        self._log(level, message, fields)

    def debug(self, message: str, **fields: Any) -> None:
        self._log(LogLevel.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(LogLevel.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(LogLevel.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._log(LogLevel.ERROR, message, fields)

    def _log(self, level: LogLevel, message: str, fields: dict[str, Any]) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, message, extra={**self._bound, **fields})


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Add `fields` to every JSON record emitted inside the block."""
    token = _log_context.set({**_log_context.get(), **fields})
    try:
        yield
    finally:
        _log_context.reset(token)


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    json_output: bool = True,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Minimum log level
        json_output: Use JSON formatting
        stream: Output stream (default: stderr)
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        ))
    root.addHandler(handler)

    # botocore logs every request at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("aiobotocore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def setup_logging_from_config(
    config: ObservabilityConfig,
    stream: Optional[TextIO] = None,
) -> None:
    setup_logging(LogLevel(config.level), config.log_json, stream)
