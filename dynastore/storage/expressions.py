"""
Optimistic Concurrency Expressions
==================================

A small expression tree rendered into DynamoDB expression strings, plus
the conditions that implement compare-and-swap on the `version` counter.

Design:
    Names and values never appear literally in rendered expressions. The
    ExpressionBuilder assigns `#n<i>` placeholders to attribute names and
    `:v<i>` placeholders to values, so reserved words such as `name` or
    `expires` are always safe to reference.

Write conditions (now = Unix seconds at execution time):
    create   attribute_not_exists(id)
             OR (attribute_exists(expires) AND expires <> 0 AND expires <= now)
    update   version = previous.version
             AND (attribute_not_exists(expires) OR expires = 0 OR expires > now)
    delete   version = previous.version

    A record whose `expires` equals `now` is expired: it may be recreated
    and it may no longer be updated. An `expires` of 0 never expires.

Example:
    >>> update = build_update(new_write_options(write_with_string("x")), now).unwrap()
    >>> expr = (
    ...     ExpressionBuilder()
    ...     .with_update(update)
    ...     .with_condition(update_condition(None, now))
    ...     .build()
    ... )
    >>> expr.to_params()["UpdateExpression"]
    'SET #n1 = :v1 ADD #n0 :v0'
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from dynastore.core import constants as C
from dynastore.core.errors import ReservedFieldError
from dynastore.core.types import AttributeValue, Err, KVPair, Ok, Result
from dynastore.storage.codec import is_reserved_field
from dynastore.storage.options import WriteOptions


# =============================================================================
# OPERANDS
# =============================================================================
@dataclass(frozen=True, slots=True)
class Name:
    """Reference to a top-level attribute."""

    name: str

    def eq(self, other: Operand) -> Comparison:
        return Comparison(self, "=", other)

    def ne(self, other: Operand) -> Comparison:
        return Comparison(self, "<>", other)

    def lt(self, other: Operand) -> Comparison:
        return Comparison(self, "<", other)

    def le(self, other: Operand) -> Comparison:
        return Comparison(self, "<=", other)

    def gt(self, other: Operand) -> Comparison:
        return Comparison(self, ">", other)

    def ge(self, other: Operand) -> Comparison:
        return Comparison(self, ">=", other)

    def exists(self) -> AttributeExists:
        return AttributeExists(self)

    def not_exists(self) -> AttributeNotExists:
        return AttributeNotExists(self)

    def begins_with(self, prefix: str) -> BeginsWith:
        return BeginsWith(self, Value.of_string(prefix))


@dataclass(frozen=True)
class Value:
    """A literal value in wire form."""

    value: AttributeValue

    @classmethod
    def of_string(cls, value: str) -> Value:
        return cls({"S": value})

    @classmethod
    def of_int(cls, value: int) -> Value:
        return cls({"N": str(value)})


Operand = Union[Name, Value]


# =============================================================================
# CONDITIONS
# =============================================================================
class Condition:
    """Base class for condition nodes; combine with `&`, `|` and `~`."""

    def __and__(self, other: Condition) -> And:
        return And((self, other))

    def __or__(self, other: Condition) -> Or:
        return Or((self, other))

    def __invert__(self) -> Not:
        return Not(self)


@dataclass(frozen=True)
class Comparison(Condition):
    left: Operand
    op: str
    right: Operand


@dataclass(frozen=True)
class AttributeExists(Condition):
    name: Name


@dataclass(frozen=True)
class AttributeNotExists(Condition):
    name: Name


@dataclass(frozen=True)
class BeginsWith(Condition):
    name: Name
    prefix: Value


@dataclass(frozen=True)
class And(Condition):
    operands: tuple[Condition, ...]


@dataclass(frozen=True)
class Or(Condition):
    operands: tuple[Condition, ...]


@dataclass(frozen=True)
class Not(Condition):
    operand: Condition


# =============================================================================
# UPDATE BUILDER
# =============================================================================
@dataclass(frozen=True)
class UpdateBuilder:
    """
    Immutable collection of SET / ADD / REMOVE actions.

    Each method returns a new builder; an attribute appears in at most one
    action (the latest call wins).
    """

    sets: tuple[tuple[Name, Value], ...] = ()
    adds: tuple[tuple[Name, Value], ...] = ()
    removes: tuple[Name, ...] = ()

    def _without(self, name: Name) -> UpdateBuilder:
        return UpdateBuilder(
            sets=tuple(a for a in self.sets if a[0] != name),
            adds=tuple(a for a in self.adds if a[0] != name),
            removes=tuple(n for n in self.removes if n != name),
        )

    def set(self, name: Name, value: Value) -> UpdateBuilder:
        base = self._without(name)
        return UpdateBuilder(base.sets + ((name, value),), base.adds, base.removes)

    def add(self, name: Name, value: Value) -> UpdateBuilder:
        base = self._without(name)
        return UpdateBuilder(base.sets, base.adds + ((name, value),), base.removes)

    def remove(self, name: Name) -> UpdateBuilder:
        base = self._without(name)
        return UpdateBuilder(base.sets, base.adds, base.removes + (name,))

    @property
    def names(self) -> list[str]:
        """Attribute names touched, in rendering order."""
        return (
            [n.name for n, _ in self.adds]
            + [n.name for n, _ in self.sets]
            + [n.name for n in self.removes]
        )

    def is_empty(self) -> bool:
        return not (self.sets or self.adds or self.removes)


# =============================================================================
# RENDERING
# =============================================================================
@dataclass(frozen=True)
class Expression:
    """Rendered expressions with their placeholder tables."""

    names: dict[str, str] = field(default_factory=dict)
    values: dict[str, AttributeValue] = field(default_factory=dict)
    condition: Optional[str] = None
    update: Optional[str] = None
    key_condition: Optional[str] = None

    def to_params(self) -> dict[str, Any]:
        """Request parameters for the low-level client, empty parts omitted."""
        params: dict[str, Any] = {}
        if self.key_condition:
            params["KeyConditionExpression"] = self.key_condition
        if self.condition:
            params["ConditionExpression"] = self.condition
        if self.update:
            params["UpdateExpression"] = self.update
        if self.names:
            params["ExpressionAttributeNames"] = dict(self.names)
        if self.values:
            params["ExpressionAttributeValues"] = dict(self.values)
        return params


class _Renderer:
    __slots__ = ("names", "values", "_name_refs")

    def __init__(self) -> None:
        self.names: dict[str, str] = {}
        self.values: dict[str, AttributeValue] = {}
        self._name_refs: dict[str, str] = {}

    def name(self, name: Name) -> str:
        ref = self._name_refs.get(name.name)
        if ref is None:
            ref = f"#n{len(self._name_refs)}"
            self._name_refs[name.name] = ref
            self.names[ref] = name.name
        return ref

    def value(self, value: Value) -> str:
        ref = f":v{len(self.values)}"
        self.values[ref] = value.value
        return ref

    def operand(self, operand: Operand) -> str:
        if isinstance(operand, Name):
            return self.name(operand)
        return self.value(operand)

    def condition(self, cond: Condition) -> str:
        if isinstance(cond, Comparison):
            return f"{self.operand(cond.left)} {cond.op} {self.operand(cond.right)}"
        if isinstance(cond, AttributeExists):
            return f"attribute_exists({self.name(cond.name)})"
        if isinstance(cond, AttributeNotExists):
            return f"attribute_not_exists({self.name(cond.name)})"
        if isinstance(cond, BeginsWith):
            return f"begins_with({self.name(cond.name)}, {self.value(cond.prefix)})"
        if isinstance(cond, And):
            return " AND ".join(f"({self.condition(c)})" for c in cond.operands)
        if isinstance(cond, Or):
            return " OR ".join(f"({self.condition(c)})" for c in cond.operands)
        if isinstance(cond, Not):
            return f"NOT ({self.condition(cond.operand)})"
        raise TypeError(f"unsupported condition node: {type(cond).__name__}")

    def update(self, update: UpdateBuilder) -> str:
        # ADD is rendered first so the version counter owns #n0 / :v0
        adds = [f"{self.name(n)} {self.value(v)}" for n, v in update.adds]
        sets = [f"{self.name(n)} = {self.value(v)}" for n, v in update.sets]
        removes = [self.name(n) for n in update.removes]

        clauses = []
        if sets:
            clauses.append("SET " + ", ".join(sets))
        if adds:
            clauses.append("ADD " + ", ".join(adds))
        if removes:
            clauses.append("REMOVE " + ", ".join(removes))
        return " ".join(clauses)


class ExpressionBuilder:
    """
    Collects key condition, condition and update, then renders them with a
    shared placeholder table.
    """

    __slots__ = ("_key_condition", "_condition", "_update")

    def __init__(self) -> None:
        self._key_condition: Optional[Condition] = None
        self._condition: Optional[Condition] = None
        self._update: Optional[UpdateBuilder] = None

    def with_key_condition(self, cond: Condition) -> ExpressionBuilder:
        self._key_condition = cond
        return self

    def with_condition(self, cond: Condition) -> ExpressionBuilder:
        self._condition = cond
        return self

    def with_update(self, update: UpdateBuilder) -> ExpressionBuilder:
        self._update = update
        return self

    def build(self) -> Expression:
        renderer = _Renderer()
        update = None
        if self._update is not None and not self._update.is_empty():
            update = renderer.update(self._update)
        key_condition = None
        if self._key_condition is not None:
            key_condition = renderer.condition(self._key_condition)
        condition = None
        if self._condition is not None:
            condition = renderer.condition(self._condition)
        return Expression(
            names=renderer.names,
            values=renderer.values,
            condition=condition,
            update=update,
            key_condition=key_condition,
        )


# =============================================================================
# OPTIMISTIC CONCURRENCY CONDITIONS
# =============================================================================
_PARTITION = Name(C.DEFAULT_PARTITION_KEY_ATTRIBUTE)
_VERSION = Name(C.VERSION_ATTRIBUTE)
_EXPIRES = Name(C.EXPIRES_ATTRIBUTE)
_PAYLOAD = Name(C.PAYLOAD_ATTRIBUTE)


def update_condition(previous: Optional[KVPair], now: float) -> Condition:
    """
    Condition guarding atomic_put.

    Without `previous` the write is a create, allowed when the slot is
    empty or holds an expired record. With `previous` the stored version
    must match and the record must not have expired. A stored `expires`
    of 0 means the record never expires, as on the read path.
    """
    now_value = Value.of_int(int(now))
    if previous is None:
        return _PARTITION.not_exists() | And((
            _EXPIRES.exists(),
            _EXPIRES.ne(Value.of_int(0)),
            _EXPIRES.le(now_value),
        ))
    return _VERSION.eq(Value.of_int(previous.version)) & Or((
        _EXPIRES.not_exists(),
        _EXPIRES.eq(Value.of_int(0)),
        _EXPIRES.gt(now_value),
    ))


def delete_condition(previous: Optional[KVPair]) -> Condition:
    """
    Condition guarding atomic_delete: the stored version must match.

    Without `previous` the expected version is 0, which no stored record
    carries, so the delete always fails its condition.
    """
    version = previous.version if previous is not None else 0
    return _VERSION.eq(Value.of_int(version))


def key_condition(
    partition_attribute: str,
    partition: str,
    sort_attribute: str,
    prefix: str,
) -> Condition:
    """Partition equality, plus begins_with on the sort attribute for a non-empty prefix."""
    cond: Condition = Name(partition_attribute).eq(Value.of_string(partition))
    if prefix:
        cond = cond & Name(sort_attribute).begins_with(prefix)
    return cond


def build_update(
    options: WriteOptions,
    now: float,
) -> Result[UpdateBuilder, ReservedFieldError]:
    """
    Translate write options into the update applied by put / atomic_put.

    The version is always incremented. Field names are checked against the
    reserved set again here so options assembled by hand cannot overwrite
    dynastore's own attributes.
    """
    update = UpdateBuilder().add(_VERSION, Value.of_int(1))

    if options.value is not None:
        update = update.set(_PAYLOAD, Value(options.value))

    reserved = [name for name in options.fields if is_reserved_field(name)]
    if reserved:
        return Err(ReservedFieldError.for_fields(reserved))
    for name, value in options.fields.items():
        update = update.set(Name(name), Value(value))

    if options.ttl is not None:
        # Truncate once, after adding, so a fractional TTL is not shortened
        expires = int(now + options.ttl.total_seconds())
        update = update.set(_EXPIRES, Value.of_int(expires))
    elif options.clear_ttl:
        update = update.remove(_EXPIRES)

    return Ok(update)
