"""
Read and Write Options
======================

Functional options for every table and partition call.

An option is a plain function mapping an options instance to a new
instance. Options are folded left to right over a default, so the last
option wins, except write_with_fields which merges field maps key by key.

Example:
    >>> opts = new_write_options(
    ...     write_with_string("hello"),
    ...     write_with_ttl(timedelta(minutes=5)),
    ...     write_with_fields({"created": 1700000000}),
    ... )
    >>> opts.ttl
    datetime.timedelta(seconds=300)
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Any, Callable, Mapping, Optional

from dynastore.core.errors import ReservedFieldError
from dynastore.core.types import AttributeMap, AttributeValue, Err, KVPair, Ok, Result
from dynastore.storage.codec import encode_fields, is_reserved_field


# =============================================================================
# WRITE OPTIONS
# =============================================================================
@dataclass(frozen=True)
class WriteOptions:
    """
    Per-call write configuration.

    Attributes:
        value: Payload in wire form, None leaves the stored payload alone.
        fields: Extra top-level attributes in wire form (index attributes).
        ttl: Relative expiry, resolved against the clock when the write runs.
        clear_ttl: Remove any stored expiry (write_with_no_expires).
        previous: Record read earlier; its version is asserted by atomic_put.
            None means the write must be a create.
    """

    value: Optional[AttributeValue] = None
    fields: AttributeMap = field(default_factory=dict)
    ttl: Optional[timedelta] = None
    clear_ttl: bool = False
    previous: Optional[KVPair] = None

    def append(self, *opts: WriteOption) -> WriteOptions:
        """Fold more options over this instance."""
        result = self
        for opt in opts:
            result = opt(result)
        return result


WriteOption = Callable[[WriteOptions], WriteOptions]


def new_write_options(*opts: WriteOption) -> WriteOptions:
    """Defaults (no value, no TTL, no previous) with `opts` applied in order."""
    return WriteOptions().append(*opts)


def validate_write_options(options: WriteOptions) -> Result[WriteOptions, ReservedFieldError]:
    """Reject extra fields that collide with reserved attribute names."""
    reserved = [name for name in options.fields if is_reserved_field(name)]
    if reserved:
        return Err(ReservedFieldError.for_fields(reserved))
    return Ok(options)


def write_with_string(value: str) -> WriteOption:
    """Store a string payload."""
    return lambda opts: replace(opts, value={"S": value})


def write_with_bytes(value: bytes) -> WriteOption:
    """
    Store a binary payload.

    The payload is written as a standard base64 string, the representation
    other dynastore clients read back; KVPair.bytes_value() decodes it.
    """
    encoded = base64.b64encode(value).decode("ascii")
    return lambda opts: replace(opts, value={"S": encoded})


def write_with_attribute_value(value: AttributeValue) -> WriteOption:
    """Store a payload already in wire form, e.g. from marshal_struct()."""
    return lambda opts: replace(opts, value=dict(value))


def write_with_fields(values: Mapping[str, Any]) -> WriteOption:
    """
    Set extra top-level attributes, typically secondary index keys.

    Values are plain Python values and are serialized immediately.
    Repeated use merges; later names overwrite earlier ones.

    Raises:
        TypeError: If a value has no DynamoDB representation. This is a
            programming error and surfaces when the option is built,
            before any request.
    """
    encoded = encode_fields(values)
    return lambda opts: replace(opts, fields={**opts.fields, **encoded})


def write_with_ttl(ttl: timedelta) -> WriteOption:
    """Expire the record `ttl` after the write executes."""
    return lambda opts: replace(opts, ttl=ttl, clear_ttl=False)


def write_with_no_expires() -> WriteOption:
    """Drop any TTL so the record never expires."""
    return lambda opts: replace(opts, ttl=None, clear_ttl=True)


def write_with_previous_kv(previous: Optional[KVPair]) -> WriteOption:
    """Assert the stored version matches `previous` (compare-and-swap)."""
    return lambda opts: replace(opts, previous=previous)


# =============================================================================
# READ OPTIONS
# =============================================================================
@dataclass(frozen=True, slots=True)
class IndexSpec:
    """
    Secondary index selection.

    A local index shares the table's partition attribute and only
    replaces the sort attribute; a global index names both.
    """

    name: str
    sort_attribute: str
    partition_attribute: Optional[str] = None

    @property
    def is_global(self) -> bool:
        return self.partition_attribute is not None


@dataclass(frozen=True)
class ReadOptions:
    """
    Per-call read configuration.

    Reads are strongly consistent unless read_consistent_disable() is
    applied. Queries against a global index are always sent eventually
    consistent since the store rejects anything else.
    """

    consistent: bool = True
    limit: Optional[int] = None
    start_key: Optional[str] = None
    scan_forward: bool = True
    index: Optional[IndexSpec] = None

    def append(self, *opts: ReadOption) -> ReadOptions:
        """Fold more options over this instance."""
        result = self
        for opt in opts:
            result = opt(result)
        return result

    @property
    def has_index(self) -> bool:
        return self.index is not None


ReadOption = Callable[[ReadOptions], ReadOptions]


def new_read_options(*opts: ReadOption) -> ReadOptions:
    """Defaults (consistent, forward, no limit) with `opts` applied in order."""
    return ReadOptions().append(*opts)


def read_consistent_disable() -> ReadOption:
    return lambda opts: replace(opts, consistent=False)


def read_consistent_enable() -> ReadOption:
    return lambda opts: replace(opts, consistent=True)


def read_with_limit(limit: int) -> ReadOption:
    """
    Cap the number of items evaluated per page. Applies to list calls only.

    Raises:
        ValueError: If limit is not positive. Raised when the option is
            built, like the config validation in core.config.
    """
    if limit <= 0:
        raise ValueError(f"limit must be > 0, got {limit}")
    return lambda opts: replace(opts, limit=limit)


def read_with_start_key(cursor: str) -> ReadOption:
    """Resume a listing from KVPairPage.last_key. Applies to list calls only."""
    return lambda opts: replace(opts, start_key=cursor)


def read_with_scan_forward(forward: bool) -> ReadOption:
    return lambda opts: replace(opts, scan_forward=forward)


def read_reverse() -> ReadOption:
    """List in descending sort key order."""
    return read_with_scan_forward(False)


def read_with_local_index(name: str, sort_attribute: str) -> ReadOption:
    """Query a local secondary index sorted on `sort_attribute`."""
    return lambda opts: replace(opts, index=IndexSpec(name, sort_attribute))


def read_with_global_index(
    name: str,
    partition_attribute: str,
    sort_attribute: str,
) -> ReadOption:
    """Query a global secondary index keyed on its own attribute pair."""
    return lambda opts: replace(
        opts, index=IndexSpec(name, sort_attribute, partition_attribute)
    )
