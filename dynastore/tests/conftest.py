"""Shared fixtures: an in-memory DynamoDB double wired into a session."""

from __future__ import annotations

from typing import Any

import pytest

from dynastore.storage import DynaPartition, DynaSession, DynaTable
from dynastore.tests.fake_dynamo import FakeDynamo

TABLE_NAME = "kv"
LOCAL_INDEX = "idx_created"
GLOBAL_INDEX = "idx_owner"


# =============================================================================
# TEST UTILITIES
# =============================================================================

def assert_ok(result: Any, message: str = "Expected Ok result") -> Any:
    """Assert that result is Ok and return its value."""
    if result.is_err():
        raise AssertionError(f"{message}: {result.error}")
    return result.unwrap()


def assert_err(result: Any, message: str = "Expected Err result") -> Any:
    """Assert that result is Err and return its error."""
    if result.is_ok():
        raise AssertionError(f"{message}: got Ok({result.unwrap()!r})")
    return result.error


def freeze_time(monkeypatch: pytest.MonkeyPatch, now: float) -> None:
    """Pin the Unix clock used by table operations."""
    monkeypatch.setattr("dynastore.storage.table._now", lambda: now)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def fake() -> FakeDynamo:
    client = FakeDynamo()
    client.create_table(
        TABLE_NAME,
        local_indexes={LOCAL_INDEX: "created"},
        global_indexes={GLOBAL_INDEX: ("owner", "created")},
    )
    return client


@pytest.fixture
def session(fake: FakeDynamo) -> DynaSession:
    return DynaSession.with_client(fake)


@pytest.fixture
def table(session: DynaSession) -> DynaTable:
    return session.table(TABLE_NAME)


@pytest.fixture
def users(table: DynaTable) -> DynaPartition:
    return table.partition("users")
