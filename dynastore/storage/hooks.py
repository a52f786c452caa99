"""
Store Hooks
===========

Injectable instrumentation invoked synchronously immediately before each
remote call. The hook receives the request context (carrying the
operation name) and the outgoing request parameters, and returns the
context used for the call, so it may attach values or tighten the
deadline.

Hooks must not mutate the request parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from dynastore.storage.context import RequestContext

RequestBuiltHook = Callable[[RequestContext, dict[str, Any]], RequestContext]


def _noop(ctx: RequestContext, params: dict[str, Any]) -> RequestContext:
    return ctx


@dataclass(frozen=True)
class StoreHooks:
    request_built: RequestBuiltHook = _noop

    def chain(self, other: StoreHooks) -> StoreHooks:
        """Run this hook, then `other` with the context it returned."""
        first, second = self.request_built, other.request_built

        def request_built(ctx: RequestContext, params: dict[str, Any]) -> RequestContext:
            return second(first(ctx, params), params)

        return StoreHooks(request_built=request_built)


DEFAULT_HOOKS = StoreHooks()
