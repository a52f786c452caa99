"""
Request Context
===============

Immutable per-call context threaded through every table operation.

Carries:
- the operation name ("Put", "AtomicPut", ...) set by the operation itself
- an optional deadline on the monotonic clock
- arbitrary values added by callers or instrumentation hooks

Deadlines only ever shrink: with_timeout() keeps the earlier of the
existing deadline and the new one.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Optional


@dataclass(frozen=True)
class RequestContext:
    operation: str = ""
    deadline: Optional[float] = None
    values: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def background(cls) -> RequestContext:
        """Empty context: no operation name, no deadline."""
        return cls()

    def with_operation_name(self, name: str) -> RequestContext:
        return replace(self, operation=name)

    def with_deadline(self, deadline: float) -> RequestContext:
        """Bound the context by an absolute time.monotonic() deadline."""
        if self.deadline is not None and self.deadline <= deadline:
            return self
        return replace(self, deadline=deadline)

    def with_timeout(self, seconds: float) -> RequestContext:
        return self.with_deadline(time.monotonic() + seconds)

    def with_value(self, key: str, value: Any) -> RequestContext:
        return replace(self, values={**self.values, key: value})

    def value(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, None when unbounded."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0


def operation_name(ctx: RequestContext) -> str:
    """Name of the operation handled under `ctx`, empty when unknown."""
    return ctx.operation
