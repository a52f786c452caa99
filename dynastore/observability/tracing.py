"""
Tracing: Span Management for Store Calls

Provides request correlation for dynastore operations:
- Span contexts with W3C-compatible trace/span IDs
- Parent-child relationships through a context variable
- Span events, used by tracing_hooks() to mark each remote request

Spans live in-process; an optional exporter callable receives every
finished, sampled span.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections import deque
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Iterator, Optional

logger = logging.getLogger(__name__)

# Finished spans retained for get_recent_spans()
_MAX_RETAINED_SPANS = 1000


class SpanStatus(Enum):
    UNSET = auto()
    OK = auto()
    ERROR = auto()


@dataclass(frozen=True)
class SpanContext:
    """Identity of a span, propagated to children."""

    trace_id: str  # 32-char hex
    span_id: str   # 16-char hex
    parent_span_id: Optional[str] = None
    sampled: bool = True

    @classmethod
    def generate(cls, parent: Optional[SpanContext] = None) -> SpanContext:
        if parent:
            return cls(
                trace_id=parent.trace_id,
                span_id=secrets.token_hex(8),
                parent_span_id=parent.span_id,
                sampled=parent.sampled,
            )
        return cls(trace_id=secrets.token_hex(16), span_id=secrets.token_hex(8))

    def traceparent(self) -> str:
        """W3C traceparent header value."""
        flags = "01" if self.sampled else "00"
        return f"00-{self.trace_id}-{self.span_id}-{flags}"


@dataclass
class Span:
    """A timed unit of work with attributes and events."""

    name: str
    context: SpanContext
    start_time_ns: int
    end_time_ns: Optional[int] = None
    status: SpanStatus = SpanStatus.UNSET
    attributes: dict[str, Any] = field(default_factory=dict)
    events: list[tuple[int, str, dict[str, Any]]] = field(default_factory=list)

    @property
    def duration_ms(self) -> Optional[float]:
        if self.end_time_ns is None:
            return None
        return (self.end_time_ns - self.start_time_ns) / 1_000_000

    def set_attribute(self, key: str, value: Any) -> Span:
        self.attributes[key] = value
        return self

    def add_event(self, name: str, attributes: Optional[dict[str, Any]] = None) -> Span:
        self.events.append((time.time_ns(), name, attributes or {}))
        return self

    def set_status(self, status: SpanStatus, message: Optional[str] = None) -> Span:
        self.status = status
        if message:
            self.attributes["status_message"] = message
        return self

    def end(self) -> None:
        self.end_time_ns = time.time_ns()
        if self.status == SpanStatus.UNSET:
            self.status = SpanStatus.OK

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "trace_id": self.context.trace_id,
            "span_id": self.context.span_id,
            "parent_span_id": self.context.parent_span_id,
            "duration_ms": self.duration_ms,
            "status": self.status.name,
            "attributes": self.attributes,
            "events": [
                {"time_ns": t, "name": n, "attributes": a}
                for t, n, a in self.events
            ],
        }


_current_span: ContextVar[Optional[Span]] = ContextVar("dynastore_span", default=None)


class Tracer:
    """
    Span factory.

    Usage:
        tracer = Tracer("orders-service")

        with tracer.start_span("checkout") as span:
            span.set_attribute("order_id", order_id)
            await kv.atomic_put(order_id, write_with_string(body))
    """

    __slots__ = ("_service_name", "_sample_rate", "_exporter", "_spans", "_lock")

    def __init__(
        self,
        service_name: str = "dynastore",
        sample_rate: float = 1.0,
        exporter: Optional[Callable[[Span], None]] = None,
    ) -> None:
        if not 0.0 <= sample_rate <= 1.0:
            raise ValueError(f"sample_rate must be in [0, 1], got {sample_rate}")
        self._service_name = service_name
        self._sample_rate = sample_rate
        self._exporter = exporter
        self._spans: deque[Span] = deque(maxlen=_MAX_RETAINED_SPANS)
        self._lock = threading.Lock()

    @contextmanager
    def start_span(
        self,
        name: str,
        attributes: Optional[dict[str, Any]] = None,
    ) -> Iterator[Span]:
        """Start a span, child of the current one if any, and make it current."""
        current = _current_span.get()
        context = SpanContext.generate(current.context if current else None)
        if current is None and not self._should_sample():
            context = SpanContext(context.trace_id, context.span_id, sampled=False)

        span = Span(
            name=name,
            context=context,
            start_time_ns=time.time_ns(),
            attributes={"service.name": self._service_name, **(attributes or {})},
        )
        token = _current_span.set(span)
        try:
            yield span
        except Exception as e:
            span.set_status(SpanStatus.ERROR, str(e))
            raise
        finally:
            span.end()
            _current_span.reset(token)
            if context.sampled:
                self._export(span)

    def _should_sample(self) -> bool:
        return secrets.randbelow(1000) < int(self._sample_rate * 1000)

    def _export(self, span: Span) -> None:
        with self._lock:
            self._spans.append(span)
        if self._exporter:
            try:
                self._exporter(span)
            except Exception as e:
                logger.warning(f"Span export failed: {e}")

    def get_recent_spans(self, limit: int = 100) -> list[Span]:
        with self._lock:
            return list(self._spans)[-limit:]

    @staticmethod
    def get_current_span() -> Optional[Span]:
        return _current_span.get()

    @staticmethod
    def get_current_trace_id() -> Optional[str]:
        span = _current_span.get()
        return span.context.trace_id if span else None
