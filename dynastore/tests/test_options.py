"""
Unit Tests for Read and Write Options

Tests cover:
- Defaults and left-to-right folding
- Field merging and reserved name validation
- TTL / no-expiry interplay
- Index selection
"""

import base64
from datetime import timedelta

import pytest

from dynastore.core.errors import ErrorCode, ReservedFieldError
from dynastore.core.types import KVPair
from dynastore.storage.options import (
    IndexSpec,
    ReadOptions,
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
from dynastore.tests.conftest import assert_err, assert_ok


class TestWriteOptions:
    """Tests for write option folding."""

    def test_defaults(self):
        """No options: no payload, no TTL, create semantics."""
        opts = new_write_options()
        assert opts == WriteOptions()
        assert opts.value is None
        assert opts.fields == {}
        assert opts.ttl is None
        assert not opts.clear_ttl
        assert opts.previous is None

    def test_last_value_wins(self):
        """Later payload options replace earlier ones."""
        opts = new_write_options(write_with_string("a"), write_with_string("b"))
        assert opts.value == {"S": "b"}

    def test_bytes_stored_as_base64_string(self):
        opts = new_write_options(write_with_bytes(b"\x00hi"))
        assert opts.value == {"S": base64.b64encode(b"\x00hi").decode("ascii")}

    def test_attribute_value_copied(self):
        """The caller's dict is not aliased."""
        value = {"S": "before"}
        opts = new_write_options(write_with_attribute_value(value))
        value["S"] = "after"
        assert opts.value == {"S": "before"}

    def test_fields_merge(self):
        """Repeated write_with_fields merge; later names overwrite."""
        opts = new_write_options(
            write_with_fields({"owner": "bob", "created": 1}),
            write_with_fields({"created": 2}),
        )
        assert opts.fields == {"owner": {"S": "bob"}, "created": {"N": "2"}}

    def test_unserializable_field_raises_when_built(self):
        """A value with no wire form fails at option construction."""
        with pytest.raises(TypeError):
            write_with_fields({"handler": object()})

    def test_ttl_then_no_expires(self):
        opts = new_write_options(write_with_ttl(timedelta(minutes=5)), write_with_no_expires())
        assert opts.ttl is None
        assert opts.clear_ttl

    def test_no_expires_then_ttl(self):
        opts = new_write_options(write_with_no_expires(), write_with_ttl(timedelta(seconds=30)))
        assert opts.ttl == timedelta(seconds=30)
        assert not opts.clear_ttl

    def test_previous(self):
        pair = KVPair("p", "k", version=4)
        assert new_write_options(write_with_previous_kv(pair)).previous is pair
        assert new_write_options(write_with_previous_kv(None)).previous is None

    def test_append(self):
        """Options fold over an existing instance without mutating it."""
        base = new_write_options(write_with_string("a"))
        extended = base.append(write_with_ttl(timedelta(seconds=1)))
        assert base.ttl is None
        assert extended.value == {"S": "a"}
        assert extended.ttl == timedelta(seconds=1)


class TestValidateWriteOptions:
    """Tests for reserved field rejection."""

    def test_accepts_free_fields(self):
        opts = new_write_options(write_with_fields({"created": 1}))
        assert assert_ok(validate_write_options(opts)) is opts

    def test_rejects_reserved(self):
        """Every colliding name is reported."""
        opts = new_write_options(write_with_fields({"version": "x", "payload": 1, "ok": 2}))
        error = assert_err(validate_write_options(opts))
        assert isinstance(error, ReservedFieldError)
        assert error.code == ErrorCode.RESERVED_FIELD
        assert error.context["fields"] == ["payload", "version"]


class TestReadOptions:
    """Tests for read option folding."""

    def test_defaults(self):
        """Strongly consistent, forward, unbounded, primary key."""
        opts = new_read_options()
        assert opts == ReadOptions()
        assert opts.consistent
        assert opts.scan_forward
        assert opts.limit is None
        assert opts.start_key is None
        assert not opts.has_index

    def test_consistency_toggle(self):
        assert not new_read_options(read_consistent_disable()).consistent
        assert new_read_options(read_consistent_disable(), read_consistent_enable()).consistent

    def test_limit(self):
        assert new_read_options(read_with_limit(25)).limit == 25

    @pytest.mark.parametrize("limit", [0, -1])
    def test_limit_must_be_positive(self, limit):
        with pytest.raises(ValueError):
            read_with_limit(limit)

    def test_start_key(self):
        assert new_read_options(read_with_start_key("abc")).start_key == "abc"

    def test_direction(self):
        assert not new_read_options(read_reverse()).scan_forward
        assert new_read_options(read_reverse(), read_with_scan_forward(True)).scan_forward

    def test_local_index(self):
        """A local index keeps the table's partition attribute."""
        opts = new_read_options(read_with_local_index("idx_created", "created"))
        assert opts.index == IndexSpec("idx_created", "created")
        assert not opts.index.is_global

    def test_global_index(self):
        opts = new_read_options(read_with_global_index("idx_owner", "owner", "created"))
        assert opts.index == IndexSpec("idx_owner", "created", "owner")
        assert opts.index.is_global
        assert opts.has_index
