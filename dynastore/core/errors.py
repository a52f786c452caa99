"""
Error Hierarchy for dynastore

Design Principles:
- Errors are returned as values inside Err(...), never used for control flow
- Each failure mode has its own class so callers can match on it
- Condition-check failures from the store are always translated into
  KeyExistsError / KeyModifiedError / KeyNotFoundError
- Carry full error context (operation, table, partition, key) for debugging

Each error type includes:
- Unique error code for programmatic handling
- Human-readable message for logging
- Optional cause for root cause analysis
- Timestamp for correlation with request logs

Usage:
    match await kv.atomic_put("user/1", write_with_previous_kv(pair)):
        case Ok(updated):
            process(updated)
        case Err(KeyModifiedError()):
            reload_and_retry()
        case Err(error):
            log.error("put failed", **error.to_dict())
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional
from uuid import uuid4


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Record state (optimistic concurrency outcomes)
    - 2xxx: Request validation
    - 3xxx: Wire decoding
    - 4xxx: Remote store
    - 9xxx: Configuration
    """

    KEY_NOT_FOUND = 1001
    KEY_EXISTS = 1002
    KEY_MODIFIED = 1003

    RESERVED_FIELD = 2001
    INDEX_NOT_SUPPORTED = 2002

    DECODE_FAILED = 3001
    INVALID_CURSOR = 3002

    REMOTE_CALL_FAILED = 4001
    NOT_CONNECTED = 4002
    OPERATION_TIMEOUT = 4003

    INVALID_CONFIGURATION = 9001


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass
class DynastoreError(Exception):
    """
    Base class for all dynastore errors.

    Provides common infrastructure for error handling:
    - Unique error ID for log correlation
    - Error code for programmatic handling
    - Timestamp (nanoseconds since epoch)
    - Cause chain for root cause analysis
    """

    code: ErrorCode
    message: str
    error_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp_nanos: int = field(default_factory=time.time_ns)
    cause: Optional[BaseException] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.cause is not None:
            self.__cause__ = self.cause

    def with_context(self, **kwargs: Any) -> DynastoreError:
        """Add context to error (returns new instance of the same class)."""
        return type(self)(
            code=self.code,
            message=self.message,
            error_id=self.error_id,
            timestamp_nanos=self.timestamp_nanos,
            cause=self.cause,
            context={**self.context, **kwargs},
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize error to dictionary for logging."""
        return {
            "error_id": self.error_id,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "timestamp_nanos": self.timestamp_nanos,
            "context": self.context,
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r}, "
            f"error_id={self.error_id!r})"
        )


# =============================================================================
# RECORD STATE ERRORS
# =============================================================================
@dataclass
class KeyNotFoundError(DynastoreError):
    """Point lookup found nothing, or found something logically expired."""

    @classmethod
    def for_key(
        cls,
        table: str,
        partition: str,
        key: str,
        operation: str = "",
    ) -> KeyNotFoundError:
        return cls(
            code=ErrorCode.KEY_NOT_FOUND,
            message="key not found in table",
            context={
                "table": table,
                "partition": partition,
                "key": key,
                "operation": operation,
            },
        )

    @classmethod
    def for_prefix(
        cls,
        table: str,
        partition: str,
        prefix: str,
    ) -> KeyNotFoundError:
        return cls(
            code=ErrorCode.KEY_NOT_FOUND,
            message="no keys found in table matching prefix",
            context={"table": table, "partition": partition, "prefix": prefix},
        )


@dataclass
class KeyExistsError(DynastoreError):
    """A create found the key already live."""

    @classmethod
    def for_key(
        cls,
        table: str,
        partition: str,
        key: str,
        operation: str = "",
    ) -> KeyExistsError:
        return cls(
            code=ErrorCode.KEY_EXISTS,
            message="key already exists in table",
            context={
                "table": table,
                "partition": partition,
                "key": key,
                "operation": operation,
            },
        )


@dataclass
class KeyModifiedError(DynastoreError):
    """An update lost the optimistic race: the stored version moved."""

    @classmethod
    def for_key(
        cls,
        table: str,
        partition: str,
        key: str,
        expected_version: int,
    ) -> KeyModifiedError:
        return cls(
            code=ErrorCode.KEY_MODIFIED,
            message="key has been modified or expired since it was read",
            context={
                "table": table,
                "partition": partition,
                "key": key,
                "expected_version": expected_version,
            },
        )


# =============================================================================
# REQUEST VALIDATION ERRORS
# =============================================================================
@dataclass
class ReservedFieldError(DynastoreError):
    """Caller supplied extra fields colliding with reserved attribute names."""

    @classmethod
    def for_fields(cls, names: Iterable[str]) -> ReservedFieldError:
        names = sorted(names)
        return cls(
            code=ErrorCode.RESERVED_FIELD,
            message=f"fields contain reserved attribute names: {', '.join(names)}",
            context={"fields": names},
        )


@dataclass
class IndexNotSupportedError(DynastoreError):
    """An index option was supplied to a primary-key-only operation."""

    @classmethod
    def for_operation(cls, operation: str, index_name: str) -> IndexNotSupportedError:
        return cls(
            code=ErrorCode.INDEX_NOT_SUPPORTED,
            message=f"operation '{operation}' does not support index reads",
            context={"operation": operation, "index": index_name},
        )


# =============================================================================
# WIRE DECODING ERRORS
# =============================================================================
@dataclass
class DecodeError(DynastoreError):
    """An item returned by the store does not match the record schema."""

    @classmethod
    def wrong_type(
        cls,
        attribute: str,
        expected: str,
        actual: Iterable[str],
    ) -> DecodeError:
        actual = sorted(actual)
        return cls(
            code=ErrorCode.DECODE_FAILED,
            message=(
                f"attribute '{attribute}' expected wire type {expected}, "
                f"got {'/'.join(actual) or 'nothing'}"
            ),
            context={"attribute": attribute, "expected": expected, "actual": actual},
        )

    @classmethod
    def invalid_number(
        cls,
        attribute: str,
        raw: Any,
        cause: Optional[BaseException] = None,
    ) -> DecodeError:
        return cls(
            code=ErrorCode.DECODE_FAILED,
            message=f"attribute '{attribute}' is not an integer: {str(raw)[:50]}",
            cause=cause,
            context={"attribute": attribute},
        )

    @classmethod
    def struct_mismatch(cls, target: str, cause: BaseException) -> DecodeError:
        return cls(
            code=ErrorCode.DECODE_FAILED,
            message=f"cannot unmarshal map attribute into {target}: {cause}",
            cause=cause,
            context={"target": target},
        )


@dataclass
class InvalidCursorError(DynastoreError):
    """Pagination cursor is malformed."""

    @classmethod
    def malformed(
        cls,
        cursor: str,
        reason: str,
        cause: Optional[BaseException] = None,
    ) -> InvalidCursorError:
        return cls(
            code=ErrorCode.INVALID_CURSOR,
            message=f"malformed cursor: {reason}",
            cause=cause,
            context={"cursor": cursor[:50], "reason": reason},
        )


# =============================================================================
# REMOTE STORE ERRORS
# =============================================================================
@dataclass
class RemoteStoreError(DynastoreError):
    """
    Transport or service failure from the remote store.

    Propagated with call-site context, never retried by dynastore
    (retries belong to the botocore client underneath).
    """

    @classmethod
    def call_failed(
        cls,
        operation: str,
        table: str,
        cause: BaseException,
        error_code: str = "",
    ) -> RemoteStoreError:
        return cls(
            code=ErrorCode.REMOTE_CALL_FAILED,
            message=f"failed to {operation} in table '{table}': {cause}",
            cause=cause,
            context={
                "operation": operation,
                "table": table,
                "aws_error_code": error_code,
            },
        )

    @classmethod
    def not_connected(cls, operation: str) -> RemoteStoreError:
        return cls(
            code=ErrorCode.NOT_CONNECTED,
            message=f"session is not connected, cannot run '{operation}'",
            context={"operation": operation},
        )


@dataclass
class OperationTimeoutError(RemoteStoreError):
    """The request context deadline elapsed before the store answered."""

    @classmethod
    def deadline_exceeded(
        cls,
        operation: str,
        table: str,
        timeout_seconds: float,
    ) -> OperationTimeoutError:
        return cls(
            code=ErrorCode.OPERATION_TIMEOUT,
            message=(
                f"operation '{operation}' on table '{table}' exceeded its "
                f"deadline ({timeout_seconds:.3f}s remaining at call time)"
            ),
            context={
                "operation": operation,
                "table": table,
                "timeout_seconds": timeout_seconds,
            },
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================
@dataclass
class ConfigurationError(DynastoreError):
    """Configuration could not be loaded or failed validation."""

    @classmethod
    def invalid(cls, reason: str, cause: Optional[BaseException] = None) -> ConfigurationError:
        return cls(
            code=ErrorCode.INVALID_CONFIGURATION,
            message=f"configuration error: {reason}",
            cause=cause,
        )
