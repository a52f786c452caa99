"""
Pagination Cursor: Resumable Range Scans

Provides:
- Opaque encoding of DynamoDB's LastEvaluatedKey
- Decoding back into an ExclusiveStartKey
- Compatibility with cursors produced by the Go client

Cursor Format:
    base58( gzip( json(attribute_map) + "\\n" ) )

    - JSON uses sorted keys and compact separators, so equal maps always
      produce equal cursors (gzip mtime is pinned to 0)
    - Binary attribute values ("B", "BS") travel as base64 strings, the
      way Go's encoding/json writes []byte
    - Base58 uses the Bitcoin alphabet

Go compatibility:
    The Go client flushes the gzip writer without closing it, so its
    streams have no trailer; decoding therefore uses a raw zlib
    decompressor rather than gzip.decompress. Its attribute values also
    carry every type slot with null members, which are dropped.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import json
import zlib
from typing import Any

import base58

from dynastore.core.errors import InvalidCursorError
from dynastore.core.types import AttributeMap, AttributeValue, Err, Ok, Result

# zlib window bits selecting the gzip container
_GZIP_WBITS = 16 + zlib.MAX_WBITS
# Upper bound on a decompressed key document
_MAX_DOCUMENT_BYTES = 64 * 1024


# =============================================================================
# ATTRIBUTE VALUE <-> JSON
# =============================================================================
def _to_json_value(av: AttributeValue) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for type_key, member in av.items():
        if type_key == "B":
            out[type_key] = base64.b64encode(bytes(member)).decode("ascii")
        elif type_key == "BS":
            out[type_key] = [base64.b64encode(bytes(b)).decode("ascii") for b in member]
        elif type_key == "M":
            out[type_key] = {name: _to_json_value(v) for name, v in member.items()}
        elif type_key == "L":
            out[type_key] = [_to_json_value(v) for v in member]
        else:
            out[type_key] = member
    return out


def _from_json_value(raw: Any) -> AttributeValue:
    if not isinstance(raw, dict):
        raise ValueError(f"attribute value must be an object, got {type(raw).__name__}")
    av: AttributeValue = {}
    for type_key, member in raw.items():
        if member is None:
            continue
        if type_key == "B":
            av[type_key] = base64.b64decode(member, validate=True)
        elif type_key == "BS":
            av[type_key] = [base64.b64decode(b, validate=True) for b in member]
        elif type_key == "M":
            av[type_key] = {name: _from_json_value(v) for name, v in member.items()}
        elif type_key == "L":
            av[type_key] = [_from_json_value(v) for v in member]
        else:
            av[type_key] = member
    if not av:
        raise ValueError("attribute value has no type member")
    return av


# =============================================================================
# CURSOR CODEC
# =============================================================================
def encode_cursor(key: AttributeMap) -> Result[str, InvalidCursorError]:
    """
    Encode a LastEvaluatedKey into an opaque cursor string.

    Returns:
        Ok(cursor), or Err(InvalidCursorError) if the key holds values
        that cannot be represented as JSON.
    """
    try:
        document = json.dumps(
            {name: _to_json_value(av) for name, av in key.items()},
            sort_keys=True,
            separators=(",", ":"),
        ) + "\n"
    except (TypeError, ValueError) as e:
        return Err(InvalidCursorError.malformed(str(key), "unencodable key", cause=e))

    compressed = gzip.compress(document.encode("utf-8"), mtime=0)
    return Ok(base58.b58encode(compressed).decode("ascii"))


def decode_cursor(cursor: str) -> Result[AttributeMap, InvalidCursorError]:
    """
    Decode a cursor produced by encode_cursor (or by the Go client).

    Returns:
        Ok(attribute map) suitable for ExclusiveStartKey, or
        Err(InvalidCursorError) on a bad alphabet, corrupt gzip stream or
        malformed JSON structure.
    """
    try:
        compressed = base58.b58decode(cursor)
    except ValueError as e:
        return Err(InvalidCursorError.malformed(cursor, "invalid base58", cause=e))

    try:
        decompressor = zlib.decompressobj(wbits=_GZIP_WBITS)
        document = decompressor.decompress(compressed, _MAX_DOCUMENT_BYTES)
    except zlib.error as e:
        return Err(InvalidCursorError.malformed(cursor, "corrupt gzip stream", cause=e))
    if decompressor.unconsumed_tail:
        return Err(InvalidCursorError.malformed(cursor, "key document too large"))

    try:
        raw = json.loads(document.decode("utf-8"))
        if not isinstance(raw, dict):
            raise ValueError("cursor document must be an object")
        return Ok({name: _from_json_value(av) for name, av in raw.items()})
    except (binascii.Error, UnicodeDecodeError, ValueError, TypeError, AttributeError) as e:
        return Err(InvalidCursorError.malformed(cursor, "malformed key document", cause=e))
