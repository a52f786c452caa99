"""
dynastore: Key-Value Records on Amazon DynamoDB

Organizes records into tables and partitions on top of DynamoDB and adds
optimistic concurrency control:
- every write increments a per-record `version` counter
- atomic_put creates only if absent (or expired) and updates only if the
  version read earlier is still current
- atomic_delete removes a record only at the expected version
- optional TTL via the `expires` attribute, honored on read
- resumable prefix listings with opaque cursors

All operations are async and return Result values (Ok / Err).
"""

__version__ = "1.0.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================
from dynastore.core.types import (
    Result,
    Ok,
    Err,
    KVPair,
    KVPairPage,
)
from dynastore.core.errors import (
    ErrorCode,
    DynastoreError,
    KeyNotFoundError,
    KeyExistsError,
    KeyModifiedError,
    ReservedFieldError,
    IndexNotSupportedError,
    DecodeError,
    InvalidCursorError,
    RemoteStoreError,
    OperationTimeoutError,
    ConfigurationError,
)
from dynastore.core.config import DynamoConfig, DynastoreConfig

# Facade
from dynastore.storage import (
    DynaSession,
    DynaTable,
    DynaPartition,
    RequestContext,
    StoreHooks,
    operation_name,
    marshal_struct,
    unmarshal_struct,
)

# Options
from dynastore.storage import (
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
    write_with_attribute_value,
    write_with_bytes,
    write_with_fields,
    write_with_no_expires,
    write_with_previous_kv,
    write_with_string,
    write_with_ttl,
)

__all__ = [
    "__version__",
    # Core
    "Result",
    "Ok",
    "Err",
    "KVPair",
    "KVPairPage",
    "DynamoConfig",
    "DynastoreConfig",
    # Errors
    "ErrorCode",
    "DynastoreError",
    "KeyNotFoundError",
    "KeyExistsError",
    "KeyModifiedError",
    "ReservedFieldError",
    "IndexNotSupportedError",
    "DecodeError",
    "InvalidCursorError",
    "RemoteStoreError",
    "OperationTimeoutError",
    "ConfigurationError",
    # Facade
    "DynaSession",
    "DynaTable",
    "DynaPartition",
    "RequestContext",
    "StoreHooks",
    "operation_name",
    "marshal_struct",
    "unmarshal_struct",
    # Options
    "new_read_options",
    "new_write_options",
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
