"""
Observability: structured logging, tracing and instrumentation hooks.
"""

from dynastore.observability.tracing import Tracer, Span, SpanContext, SpanStatus
from dynastore.observability.logging import (
    LogLevel,
    JsonFormatter,
    StructuredLogger,
    log_context,
    setup_logging,
    setup_logging_from_config,
)
from dynastore.observability.hooks import logging_hooks, tracing_hooks

__all__ = [
    "Tracer",
    "Span",
    "SpanContext",
    "SpanStatus",
    "LogLevel",
    "JsonFormatter",
    "StructuredLogger",
    "log_context",
    "setup_logging",
    "setup_logging_from_config",
    "logging_hooks",
    "tracing_hooks",
]
