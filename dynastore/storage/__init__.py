"""
Storage Module: DynamoDB Key-Value Layer
========================================

Provides:
- DynaSession / DynaTable / DynaPartition facade
- Functional read and write options
- Optimistic-concurrency expression builder
- Record and cursor codecs
- Request context and instrumentation hooks

Example:
    >>> async with DynaSession(DynamoConfig.from_env()) as session:
    ...     kv = session.table("kv").partition("users")
    ...     created = (await kv.atomic_put("alice", write_with_string("v1"))).unwrap()
"""

from __future__ import annotations

from dynastore.storage.codec import (
    build_keys,
    decode_item,
    encode_fields,
    encode_value,
    is_item_expired,
    is_reserved_field,
    marshal_struct,
    unmarshal_struct,
)
from dynastore.storage.context import RequestContext, operation_name
from dynastore.storage.cursor import decode_cursor, encode_cursor
from dynastore.storage.hooks import StoreHooks
from dynastore.storage.options import (
    IndexSpec,
    ReadOption,
    ReadOptions,
    WriteOption,
    WriteOptions,
    new_read_options,
    new_write_options,
    read_consistent_disable,
    read_consistent_enable,
    read_reverse,
    read_with_global_index,
    read_with_limit,
    read_with_local_index,
    read_with_scan_forward,
    read_with_start_key,
    validate_write_options,
    write_with_attribute_value,
    write_with_bytes,
    write_with_fields,
    write_with_no_expires,
    write_with_previous_kv,
    write_with_string,
    write_with_ttl,
)
from dynastore.storage.partition import DynaPartition
from dynastore.storage.protocols import DynamoClient
from dynastore.storage.session import DynaSession
from dynastore.storage.table import DynaTable

__all__ = [
    # Facade
    "DynaSession",
    "DynaTable",
    "DynaPartition",
    "DynamoClient",
    # Context and hooks
    "RequestContext",
    "operation_name",
    "StoreHooks",
    # Codec
    "build_keys",
    "decode_item",
    "encode_fields",
    "encode_value",
    "is_item_expired",
    "is_reserved_field",
    "marshal_struct",
    "unmarshal_struct",
    "encode_cursor",
    "decode_cursor",
    # Options
    "IndexSpec",
    "ReadOption",
    "ReadOptions",
    "WriteOption",
    "WriteOptions",
    "new_read_options",
    "new_write_options",
    "validate_write_options",
    "read_consistent_disable",
    "read_consistent_enable",
    "read_reverse",
    "read_with_global_index",
    "read_with_limit",
    "read_with_local_index",
    "read_with_scan_forward",
    "read_with_start_key",
    "write_with_attribute_value",
    "write_with_bytes",
    "write_with_fields",
    "write_with_no_expires",
    "write_with_previous_kv",
    "write_with_string",
    "write_with_ttl",
]
