"""
Unit Tests for Request Context and Store Hooks

Tests cover:
- RequestContext values and deadlines
- Hook invocation: once per remote call, with the operation name
- Hooks shaping the context of the call they precede
- Hook chaining order
"""

import time

import pytest

from dynastore.core.errors import OperationTimeoutError
from dynastore.storage import (
    DynaSession,
    RequestContext,
    StoreHooks,
    operation_name,
    read_with_limit,
    write_with_fields,
    write_with_previous_kv,
)
from dynastore.tests.conftest import TABLE_NAME, assert_err, assert_ok


class Recorder:
    """Hook recording (operation, request) for every remote call."""

    def __init__(self):
        self.seen = []

    def __call__(self, ctx, params):
        self.seen.append((operation_name(ctx), params))
        return ctx

    @property
    def operations(self):
        return [op for op, _ in self.seen]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def hooked(fake, recorder):
    session = DynaSession.with_client(fake, hooks=StoreHooks(request_built=recorder))
    return session.table(TABLE_NAME)


class TestRequestContext:
    """Tests for RequestContext."""

    def test_background(self):
        ctx = RequestContext.background()
        assert operation_name(ctx) == ""
        assert ctx.remaining() is None
        assert not ctx.expired()

    def test_values_are_copied(self):
        base = RequestContext.background()
        ctx = base.with_value("request_id", "r1")
        assert ctx.value("request_id") == "r1"
        assert base.value("request_id") is None
        assert base.value("request_id", "default") == "default"

    def test_deadline_only_shrinks(self):
        """A later deadline never extends an earlier one."""
        ctx = RequestContext.background().with_timeout(1)
        assert ctx.with_timeout(60).deadline == ctx.deadline
        assert ctx.with_timeout(0.5).deadline < ctx.deadline

    def test_expired(self):
        ctx = RequestContext.background().with_deadline(time.monotonic() - 1)
        assert ctx.expired()
        assert ctx.remaining() < 0


class TestHookInvocation:
    """Tests for when and how hooks run."""

    @pytest.mark.asyncio
    async def test_one_call_per_request(self, hooked, recorder, fake):
        await hooked.put("users", "alice")
        await hooked.get("users", "alice")
        await hooked.exists("users", "alice")
        await hooked.delete("users", "alice")
        assert recorder.operations == ["Put", "Get", "Exists", "Delete"]
        assert len(recorder.seen) == len(fake.calls)

    @pytest.mark.asyncio
    async def test_sees_outgoing_request(self, hooked, recorder, fake):
        """The hook receives the exact parameters sent to the store."""
        created = assert_ok(await hooked.atomic_put("users", "alice"))
        assert_ok(await hooked.atomic_put("users", "alice", write_with_previous_kv(created)))
        _, params = recorder.seen[-1]
        assert params == fake.calls[-1][1]
        assert params["TableName"] == TABLE_NAME
        assert "ConditionExpression" in params

    @pytest.mark.asyncio
    async def test_atomic_delete_runs_twice(self, hooked, recorder):
        created = assert_ok(await hooked.atomic_put("users", "alice"))
        recorder.seen.clear()
        assert_ok(await hooked.atomic_delete("users", "alice", created))
        assert recorder.operations == ["AtomicDelete", "AtomicDelete"]

    @pytest.mark.asyncio
    async def test_list_runs_per_page(self, hooked, recorder):
        for key in ("a", "b", "c"):
            assert_ok(await hooked.put("docs", key))
        recorder.seen.clear()

        with pytest.warns(DeprecationWarning):
            assert_ok(await hooked.list("docs", "", read_with_limit(1)))
        assert recorder.operations == ["List"] * 3

        recorder.seen.clear()
        assert_ok(await hooked.list_page("docs", ""))
        assert recorder.operations == ["ListPage"]

    @pytest.mark.asyncio
    async def test_not_run_when_validation_fails(self, hooked, recorder):
        await hooked.put("users", "alice", write_with_fields({"expires": 1}))
        assert recorder.seen == []

    @pytest.mark.asyncio
    async def test_hook_can_bound_the_call(self, fake):
        """The context a hook returns is the one the call runs under."""

        def no_time_left(ctx, params):
            return ctx.with_timeout(-1)

        table = DynaSession.with_client(fake, StoreHooks(no_time_left)).table(TABLE_NAME)
        error = assert_err(await table.get("users", "alice"))
        assert isinstance(error, OperationTimeoutError)
        assert fake.calls == []


class TestChaining:
    """Tests for StoreHooks.chain."""

    def test_order_and_context_threading(self):
        order = []

        def first(ctx, params):
            order.append("first")
            return ctx.with_value("seen_by", ["first"])

        def second(ctx, params):
            order.append("second")
            return ctx.with_value("seen_by", ctx.value("seen_by") + ["second"])

        hooks = StoreHooks(first).chain(StoreHooks(second))
        ctx = hooks.request_built(RequestContext.background(), {})
        assert order == ["first", "second"]
        assert ctx.value("seen_by") == ["first", "second"]

    def test_default_is_noop(self):
        ctx = RequestContext.background().with_operation_name("Get")
        assert StoreHooks().request_built(ctx, {}) is ctx
