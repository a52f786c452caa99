"""
Unit Tests for the Record Codec and Record Types

Tests cover:
- decode_item reserved attribute handling and type checks
- Expiry evaluation on raw items
- Value and struct marshaling
- KVPair payload accessors
"""

from dataclasses import dataclass
from decimal import Decimal

import pytest

from dynastore.core.errors import DecodeError, ErrorCode
from dynastore.core.types import Err, KVPair, KVPairPage, Ok
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
from dynastore.storage.options import new_write_options, write_with_bytes
from dynastore.tests.conftest import assert_err, assert_ok


@dataclass
class Profile:
    name: str
    age: int


class TestReservedFields:
    """Tests for the reserved attribute set."""

    @pytest.mark.parametrize("name", ["id", "name", "version", "expires", "payload"])
    def test_reserved(self, name):
        """dynastore's own attributes are reserved."""
        assert is_reserved_field(name)

    @pytest.mark.parametrize("name", ["created", "owner", "Version", ""])
    def test_not_reserved(self, name):
        """Other names, including case variants, are free."""
        assert not is_reserved_field(name)

    def test_build_keys(self):
        """Primary key uses id / name string attributes."""
        assert build_keys("users", "alice") == {"id": {"S": "users"}, "name": {"S": "alice"}}


class TestDecodeItem:
    """Tests for decode_item."""

    def test_full_item(self):
        """Reserved attributes map onto KVPair, others into fields."""
        pair = assert_ok(decode_item({
            "id": {"S": "users"},
            "name": {"S": "alice"},
            "version": {"N": "3"},
            "expires": {"N": "1700000000"},
            "payload": {"S": "hello"},
            "created": {"N": "42"},
        }))
        assert pair.partition == "users"
        assert pair.key == "alice"
        assert pair.version == 3
        assert pair.expires == 1700000000
        assert pair.value == {"S": "hello"}
        assert pair.fields == {"created": {"N": "42"}}

    def test_missing_attributes_default(self):
        """Absent attributes decode to empty / zero."""
        pair = assert_ok(decode_item({"id": {"S": "p"}, "name": {"S": "k"}}))
        assert pair.version == 0
        assert pair.expires == 0
        assert pair.value is None
        assert pair.fields == {}

    def test_payload_kept_verbatim(self):
        """Map payloads are not decoded eagerly."""
        payload = {"M": {"a": {"N": "1"}}}
        pair = assert_ok(decode_item({"id": {"S": "p"}, "name": {"S": "k"}, "payload": payload}))
        assert pair.value == payload

    def test_wrong_type_for_key(self):
        """A numeric sort key is a decode failure."""
        error = assert_err(decode_item({"id": {"S": "p"}, "name": {"N": "1"}}))
        assert isinstance(error, DecodeError)
        assert error.code == ErrorCode.DECODE_FAILED
        assert error.context["attribute"] == "name"

    def test_wrong_type_for_version(self):
        """A string version is a decode failure."""
        error = assert_err(decode_item({"id": {"S": "p"}, "name": {"S": "k"}, "version": {"S": "1"}}))
        assert error.context == {"attribute": "version", "expected": "N", "actual": ["S"]}

    @pytest.mark.parametrize("raw", ["1.5", "abc"])
    def test_non_integer_version(self, raw):
        """Versions must be integral numbers."""
        result = decode_item({"id": {"S": "p"}, "name": {"S": "k"}, "version": {"N": raw}})
        assert isinstance(assert_err(result), DecodeError)

    def test_exponent_notation(self):
        """Integral numbers in exponent form are accepted."""
        pair = assert_ok(decode_item({"id": {"S": "p"}, "name": {"S": "k"}, "version": {"N": "1e2"}}))
        assert pair.version == 100


class TestExpiry:
    """Tests for is_item_expired and KVPair.is_expired."""

    def test_no_expiry(self):
        """Items without expires never expire."""
        assert not is_item_expired({}, 1000)

    def test_zero_never_expires(self):
        """expires = 0 means no expiry."""
        assert not is_item_expired({"expires": {"N": "0"}}, 1000)

    def test_boundary_is_expired(self):
        """An item expiring exactly now is expired."""
        assert is_item_expired({"expires": {"N": "1000"}}, 1000)
        assert not is_item_expired({"expires": {"N": "1001"}}, 1000)

    def test_unparsable_is_not_expired(self):
        """Garbage in expires does not hide the item."""
        assert not is_item_expired({"expires": {"N": "soon"}}, 1000)
        assert not is_item_expired({"expires": {"S": "1"}}, 1000)

    def test_pair_boundary(self):
        """KVPair applies the same boundary."""
        assert KVPair("p", "k", expires=1000).is_expired(1000)
        assert not KVPair("p", "k", expires=1000).is_expired(999)
        assert not KVPair("p", "k").is_expired(10**12)


class TestEncoding:
    """Tests for value and struct marshaling."""

    def test_encode_scalars(self):
        """Plain values use DynamoDB wire types."""
        assert encode_value("x") == {"S": "x"}
        assert encode_value(5) == {"N": "5"}
        assert encode_value(True) == {"BOOL": True}

    def test_encode_float_as_decimal(self):
        """Floats are accepted via their repr."""
        assert encode_value(1.5) == {"N": "1.5"}
        assert encode_fields({"score": [0.25]}) == {"score": {"L": [{"N": "0.25"}]}}

    def test_encode_unsupported(self):
        """Values with no wire form raise TypeError."""
        with pytest.raises(TypeError):
            encode_value(object())

    def test_marshal_dataclass(self):
        """Dataclasses marshal into a map attribute."""
        assert marshal_struct(Profile("ada", 36)) == {
            "M": {"name": {"S": "ada"}, "age": {"N": "36"}}
        }

    def test_marshal_rejects_scalars(self):
        """Only mappings and dataclass instances marshal."""
        with pytest.raises(TypeError):
            marshal_struct("ada")
        with pytest.raises(TypeError):
            marshal_struct(Profile)

    def test_unmarshal_into_factory(self):
        """Map attributes unmarshal into the factory."""
        value = marshal_struct({"name": "ada", "age": 36})
        profile = assert_ok(unmarshal_struct(value, Profile))
        assert profile == Profile("ada", 36)

    def test_unmarshal_plain(self):
        """Without a factory, members decode into a dict."""
        assert assert_ok(unmarshal_struct({"M": {"n": {"N": "2"}}})) == {"n": Decimal(2)}

    def test_unmarshal_wrong_type(self):
        """Non-map payloads are a decode failure."""
        assert isinstance(assert_err(unmarshal_struct({"S": "x"})), DecodeError)
        assert isinstance(assert_err(unmarshal_struct(None)), DecodeError)

    def test_unmarshal_field_mismatch(self):
        """Members the factory does not accept are a decode failure."""
        error = assert_err(unmarshal_struct({"M": {"nickname": {"S": "x"}}}, Profile))
        assert error.context == {"target": "Profile"}


class TestKVPair:
    """Tests for KVPair payload accessors."""

    def test_string_value(self):
        assert KVPair("p", "k", value={"S": "hi"}).string_value() == "hi"
        assert KVPair("p", "k", value={"N": "1"}).string_value() == ""
        assert KVPair("p", "k").string_value() == ""

    def test_bytes_from_base64_string(self):
        """Payloads written with write_with_bytes decode back to bytes."""
        value = new_write_options(write_with_bytes(b"\x00\x01\xfe")).value
        assert KVPair("p", "k", value=value).bytes_value() == b"\x00\x01\xfe"

    def test_bytes_from_binary(self):
        """Native binary payloads are returned as-is."""
        assert KVPair("p", "k", value={"B": b"raw"}).bytes_value() == b"raw"

    def test_bytes_not_binary(self):
        """Non-base64 strings and other types are not bytes."""
        assert KVPair("p", "k", value={"S": "not base64!"}).bytes_value() is None
        assert KVPair("p", "k", value={"N": "1"}).bytes_value() is None
        assert KVPair("p", "k").bytes_value() is None

    def test_decode_value(self):
        assert KVPair("p", "k", value={"N": "7"}).decode_value() == Decimal(7)
        assert KVPair("p", "k").decode_value() is None

    def test_decode_fields(self):
        """Fields decode into a dict or a factory."""
        pair = KVPair("p", "k", fields={"name": {"S": "ada"}, "age": {"N": "36"}})
        assert pair.decode_fields() == {"name": "ada", "age": Decimal(36)}
        assert pair.decode_fields(Profile) == Profile("ada", 36)

    def test_page(self):
        """A page has more results exactly when it carries a cursor."""
        assert not KVPairPage().has_more
        page = KVPairPage(keys=[KVPair("p", "k")], last_key="abc")
        assert page.has_more
        assert len(page) == 1


class TestResult:
    """Tests for the Result variants."""

    def test_ok(self):
        assert Ok(2).map(lambda v: v * 2) == Ok(4)
        assert Ok(2).unwrap_or(0) == 2

    def test_err_unwrap_raises_error(self):
        """Unwrapping an Err re-raises the carried exception."""
        error = DecodeError.invalid_number("version", "x")
        with pytest.raises(DecodeError):
            Err(error).unwrap()
        assert Err(error).unwrap_or(5) == 5
