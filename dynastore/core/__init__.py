"""
Core module: Type definitions, error hierarchy, and configuration.

This module provides the foundational abstractions for dynastore:
- Result/Either monads for zero-exception control flow
- KVPair / KVPairPage record types
- Exhaustive error hierarchy with pattern matching support
- Configuration management with validation
"""

from dynastore.core.types import (
    Result,
    Ok,
    Err,
    AttributeValue,
    AttributeMap,
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
from dynastore.core.config import DynamoConfig, ObservabilityConfig, DynastoreConfig

__all__ = [
    "Result",
    "Ok",
    "Err",
    "AttributeValue",
    "AttributeMap",
    "KVPair",
    "KVPairPage",
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
    "DynamoConfig",
    "ObservabilityConfig",
    "DynastoreConfig",
]
