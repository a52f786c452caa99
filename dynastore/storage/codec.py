"""
Record Codec
============

Translates between DynamoDB wire items and KVPair records.

Item layout:
------------
| attribute | wire type | meaning                               |
|-----------|-----------|---------------------------------------|
| id        | S         | partition (hash key)                  |
| name      | S         | record key (range key)                |
| version   | N         | optimistic-locking counter            |
| expires   | N         | Unix seconds, absent = never expires  |
| payload   | any       | caller value, kept verbatim           |
| (other)   | any       | extra fields, e.g. index attributes   |

Python values are converted with boto3's TypeSerializer /
TypeDeserializer. Floats are not accepted by DynamoDB's number type as
Python floats, so they are converted to Decimal via their repr first.
"""

from __future__ import annotations

import dataclasses
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

from dynastore.core import constants as C
from dynastore.core.errors import DecodeError
from dynastore.core.types import AttributeMap, AttributeValue, Err, KVPair, Ok, Result

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


# =============================================================================
# RESERVED FIELDS
# =============================================================================
def is_reserved_field(name: str) -> bool:
    """True when `name` is one of the attributes owned by dynastore."""
    return name in C.RESERVED_FIELDS


def build_keys(
    partition: str,
    key: str,
    partition_attr: str = C.DEFAULT_PARTITION_KEY_ATTRIBUTE,
    sort_attr: str = C.DEFAULT_SORT_KEY_ATTRIBUTE,
) -> AttributeMap:
    """Primary key attribute map for a (partition, key) pair."""
    return {
        partition_attr: {"S": partition},
        sort_attr: {"S": key},
    }


# =============================================================================
# DECODING
# =============================================================================
def _read_string(item: Mapping[str, AttributeValue], name: str) -> Result[str, DecodeError]:
    av = item.get(name)
    if av is None:
        return Ok("")
    if "S" not in av:
        return Err(DecodeError.wrong_type(name, "S", av.keys()))
    return Ok(av["S"])


def _read_int(item: Mapping[str, AttributeValue], name: str) -> Result[int, DecodeError]:
    av = item.get(name)
    if av is None:
        return Ok(0)
    if "N" not in av:
        return Err(DecodeError.wrong_type(name, "N", av.keys()))
    try:
        # "1.5e3" is a valid DynamoDB number, hence Decimal rather than int()
        number = Decimal(av["N"])
        if number != number.to_integral_value():
            return Err(DecodeError.invalid_number(name, av["N"]))
        return Ok(int(number))
    except (ArithmeticError, TypeError, ValueError) as e:
        return Err(DecodeError.invalid_number(name, av["N"], cause=e))


def decode_item(item: Mapping[str, AttributeValue]) -> Result[KVPair, DecodeError]:
    """
    Decode a wire item into a KVPair.

    Reserved attributes are type-checked; `payload` is kept verbatim and
    every non-reserved attribute is copied into `fields`.

    Returns:
        Ok(KVPair), or Err(DecodeError) when a reserved attribute carries
        the wrong wire type or an unparsable number.
    """
    partition = _read_string(item, C.DEFAULT_PARTITION_KEY_ATTRIBUTE)
    if partition.is_err():
        return partition
    key = _read_string(item, C.DEFAULT_SORT_KEY_ATTRIBUTE)
    if key.is_err():
        return key
    version = _read_int(item, C.VERSION_ATTRIBUTE)
    if version.is_err():
        return version
    expires = _read_int(item, C.EXPIRES_ATTRIBUTE)
    if expires.is_err():
        return expires

    return Ok(KVPair(
        partition=partition.value,
        key=key.value,
        version=version.value,
        expires=expires.value,
        value=item.get(C.PAYLOAD_ATTRIBUTE),
        fields={
            name: av for name, av in item.items() if not is_reserved_field(name)
        },
    ))


def is_item_expired(item: Mapping[str, AttributeValue], now: float) -> bool:
    """
    True when the raw item carries an `expires` at or before `now`.

    An unparsable `expires` is treated as not expired; decode_item reports
    it as a DecodeError.
    """
    av = item.get(C.EXPIRES_ATTRIBUTE)
    if not av or "N" not in av:
        return False
    try:
        expires = int(Decimal(av["N"]))
    except (ArithmeticError, TypeError, ValueError):
        return False
    return expires != 0 and expires <= now


# =============================================================================
# ENCODING
# =============================================================================
def _to_wire_compatible(value: Any) -> Any:
    """Recursively convert floats to Decimal for TypeSerializer."""
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, Mapping):
        return {k: _to_wire_compatible(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_wire_compatible(v) for v in value]
    return value


def encode_value(value: Any) -> AttributeValue:
    """
    Serialize one Python value to a wire attribute value.

    Raises:
        TypeError: If the value has no DynamoDB representation.
    """
    return _serializer.serialize(_to_wire_compatible(value))


def encode_fields(values: Mapping[str, Any]) -> AttributeMap:
    """Serialize a mapping of Python values to a wire attribute map."""
    return {name: encode_value(value) for name, value in values.items()}


def marshal_struct(obj: Any) -> AttributeValue:
    """
    Marshal a mapping or dataclass instance into a map ("M") attribute.

    The result can be written with write_with_attribute_value and read
    back with unmarshal_struct(pair.value).

    Raises:
        TypeError: If obj is neither a mapping nor a dataclass instance,
            or holds values with no DynamoDB representation.
    """
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        obj = dataclasses.asdict(obj)
    if not isinstance(obj, Mapping):
        raise TypeError(f"cannot marshal {type(obj).__name__} into a map attribute")
    return {"M": encode_fields(obj)}


def unmarshal_struct(
    value: Optional[AttributeValue],
    factory: Optional[Callable[..., Any]] = None,
) -> Result[Any, DecodeError]:
    """
    Unmarshal a map ("M") attribute produced by marshal_struct.

    Args:
        value: Wire attribute value, typically KVPair.value.
        factory: Optional callable receiving the decoded members as
            keyword arguments.

    Returns:
        Ok(dict or factory result), Err(DecodeError) if value is not a map.
    """
    if not value or "M" not in value:
        return Err(DecodeError.wrong_type(
            C.PAYLOAD_ATTRIBUTE, "M", value.keys() if value else ()
        ))
    decoded = {
        name: _deserializer.deserialize(av) for name, av in value["M"].items()
    }
    if factory is None:
        return Ok(decoded)
    try:
        return Ok(factory(**decoded))
    except TypeError as e:
        return Err(DecodeError.struct_mismatch(getattr(factory, "__name__", repr(factory)), e))
