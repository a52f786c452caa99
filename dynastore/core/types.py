"""
Core Type Definitions for dynastore

Implements the Result/Either monad used for zero-exception control flow
and the record types returned by every storage operation.

Design Principles:
- Never use null for absence (use Optional or Result)
- Errors travel as values; Err(...).unwrap() re-raises the carried error
- Option builders and configs raise on programming errors when constructed
- Record payloads stay in DynamoDB wire form until explicitly decoded

Wire form:
    DynamoDB attribute values are single-key dicts, e.g. {"S": "abc"},
    {"N": "42"}, {"B": b"..."}, {"M": {...}}. KVPair keeps the payload
    and the extra fields in this form and decodes them lazily.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Generic,
    Literal,
    Optional,
    TypeVar,
    Union,
)

from boto3.dynamodb.types import Binary, TypeDeserializer

# =============================================================================
# TYPE VARIABLES FOR GENERIC CONTAINERS
# =============================================================================
T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Transform result type

# Wire attribute value, e.g. {"S": "value"}
AttributeValue = dict[str, Any]
AttributeMap = dict[str, AttributeValue]


# =============================================================================
# RESULT MONAD: ZERO-EXCEPTION CONTROL FLOW
# =============================================================================
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Success variant of Result monad.

    Immutable container for a successful computation result.
    """

    value: T

    def is_ok(self) -> Literal[True]:
        return True

    def is_err(self) -> Literal[False]:
        return False

    def unwrap(self) -> T:
        """
        Extract value. Safe to call after is_ok() check.

        Returns:
            T: The wrapped success value
        """
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return value, ignoring default."""
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Apply transformation to success value."""
        return Ok(fn(self.value))

    def flat_map(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Monadic bind for chaining fallible operations."""
        return fn(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """
    Failure variant of Result monad.

    Immutable container for error information. In dynastore the
    carried error is always a DynastoreError, so callers can match
    on the error class:

        match await kv.get("user/1"):
            case Ok(pair):
                ...
            case Err(KeyNotFoundError()):
                ...
    """

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> Any:
        """
        Unwrapping an error re-raises it.

        Raises:
            The carried error when it is an exception, otherwise
            RuntimeError with the error context.
        """
        if isinstance(self.error, BaseException):
            raise self.error
        raise RuntimeError(f"Called unwrap() on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        """Return default value on error."""
        return default

    def map(self, fn: Callable[[Any], U]) -> Err[E]:
        """No-op on error variant - propagates error unchanged."""
        return self

    def flat_map(self, fn: Callable[[Any], Result[U, E]]) -> Err[E]:
        """Propagate error through monadic chain."""
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Union type for pattern matching
Result = Union[Ok[T], Err[E]]


# =============================================================================
# RECORD TYPES
# =============================================================================
_deserializer = TypeDeserializer()


@dataclass(frozen=True, slots=True)
class KVPair:
    """
    A single record: {partition, key, version, expires} plus payload.

    Attributes:
        partition: Partition (hash key) value, wire attribute "id".
        key: Record key (range key) value, wire attribute "name".
        version: Optimistic-locking counter, incremented on every write.
        expires: Unix timestamp in seconds, 0 when the record never expires.
        value: Raw wire payload attribute, None when no payload was written.
        fields: Non-reserved attributes in wire form (index attributes).
    """

    partition: str
    key: str
    version: int = 0
    expires: int = 0
    value: Optional[AttributeValue] = None
    fields: AttributeMap = field(default_factory=dict)

    def bytes_value(self) -> Optional[bytes]:
        """
        Return the payload as bytes, None if it is empty or not binary.

        Payloads written with write_with_bytes are stored as base64
        strings; native binary attributes are returned as-is.
        """
        if not self.value:
            return None
        if "B" in self.value:
            raw = self.value["B"]
            return raw.value if isinstance(raw, Binary) else bytes(raw)
        if "S" in self.value:
            try:
                return base64.b64decode(self.value["S"], validate=True)
            except (binascii.Error, ValueError):
                return None
        return None

    def string_value(self) -> str:
        """Return the payload as a string, empty if it is not a string."""
        if not self.value or "S" not in self.value:
            return ""
        return self.value["S"]

    def decode_value(self) -> Any:
        """Decode the payload into Python values (numbers as Decimal)."""
        if not self.value:
            return None
        return _deserializer.deserialize(self.value)

    def decode_fields(self, factory: Optional[Callable[..., T]] = None) -> Any:
        """
        Decode the extra fields, typically index attributes.

        Args:
            factory: Optional callable (e.g. a dataclass) receiving the
                decoded fields as keyword arguments.

        Returns:
            Dict of decoded fields, or the factory's return value.
        """
        decoded = {
            name: _deserializer.deserialize(av)
            for name, av in self.fields.items()
        }
        if factory is None:
            return decoded
        return factory(**decoded)

    def is_expired(self, now: float) -> bool:
        """True when an expiry is set and it is not after `now`."""
        return self.expires != 0 and self.expires <= now


@dataclass(frozen=True, slots=True)
class KVPairPage:
    """
    A page of records with a continuation cursor.

    `last_key` is the opaque cursor to pass to read_with_start_key(),
    empty when there are no more results.
    """

    keys: list[KVPair] = field(default_factory=list)
    last_key: str = ""

    @property
    def has_more(self) -> bool:
        return self.last_key != ""

    def __len__(self) -> int:
        return len(self.keys)
