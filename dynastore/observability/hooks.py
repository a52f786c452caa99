"""
Instrumentation Hook Factories

Ready-made StoreHooks for the two common uses of the request hook:

    session = DynaSession(config, hooks=logging_hooks().chain(tracing_hooks()))

- logging_hooks(): one "RequestSent" structured record per remote call
- tracing_hooks(): a "RequestSent" event on the current span, plus the
  span's traceparent stored in the request context
"""

from __future__ import annotations

from typing import Any, Optional

from dynastore.core import constants as C
from dynastore.observability.logging import LogLevel, StructuredLogger
from dynastore.observability.tracing import Tracer
from dynastore.storage.context import RequestContext, operation_name
from dynastore.storage.hooks import StoreHooks

REQUEST_SENT = "RequestSent"
TRACEPARENT_KEY = "traceparent"


def _request_fields(ctx: RequestContext, params: dict[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "operation": operation_name(ctx),
        "table": params.get("TableName", ""),
    }
    key = params.get("Key")
    if key:
        fields["partition"] = key.get(C.DEFAULT_PARTITION_KEY_ATTRIBUTE, {}).get("S", "")
        fields["key"] = key.get(C.DEFAULT_SORT_KEY_ATTRIBUTE, {}).get("S", "")
    if "IndexName" in params:
        fields["index"] = params["IndexName"]
    return fields


def logging_hooks(
    logger: Optional[StructuredLogger] = None,
    level: LogLevel = LogLevel.DEBUG,
) -> StoreHooks:
    """Hooks logging every outgoing request."""
    log = logger or StructuredLogger("dynastore.requests")

    def request_built(ctx: RequestContext, params: dict[str, Any]) -> RequestContext:
        log.log(level, REQUEST_SENT, **_request_fields(ctx, params))
        return ctx

    return StoreHooks(request_built=request_built)


def tracing_hooks() -> StoreHooks:
    """Hooks recording each outgoing request on the current span."""

    def request_built(ctx: RequestContext, params: dict[str, Any]) -> RequestContext:
        span = Tracer.get_current_span()
        if span is None:
            return ctx
        span.add_event(REQUEST_SENT, _request_fields(ctx, params))
        return ctx.with_value(TRACEPARENT_KEY, span.context.traceparent())

    return StoreHooks(request_built=request_built)
