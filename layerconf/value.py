"""Configuration values and their conversion into Python types."""

from __future__ import annotations

import dataclasses
import math
import re
import types
import typing
from collections.abc import Mapping
from enum import Enum
from typing import Any, Union

from .errors import (
    ConfigError,
    MessageError,
    Unexpected,
    _format_float,
    invalid_type,
)

_I64 = (-(2**63), 2**63 - 1)
_U64_MAX = 2**64 - 1
_I128 = (-(2**127), 2**127 - 1)
_U128_MAX = 2**128 - 1
_INT_RE = re.compile(r"[+-]?[0-9]+")
_TRUE_WORDS = {"1", "true", "on", "yes"}
_FALSE_WORDS = {"0", "false", "off", "no"}


class ValueKind(Enum):
    NIL = "nil"
    BOOLEAN = "boolean"
    I64 = "i64"
    I128 = "i128"
    U64 = "u64"
    U128 = "u128"
    FLOAT = "float"
    STRING = "string"
    TABLE = "table"
    ARRAY = "array"


_INT_KINDS = {ValueKind.I64, ValueKind.I128, ValueKind.U64, ValueKind.U128}


def _int_kind(number: int) -> ValueKind:
    if _I64[0] <= number <= _I64[1]:
        return ValueKind.I64
    if 0 <= number <= _U64_MAX:
        return ValueKind.U64
    if _I128[0] <= number <= _I128[1]:
        return ValueKind.I128
    if 0 <= number <= _U128_MAX:
        return ValueKind.U128
    raise MessageError(f"integer {number} does not fit in 128 bits")


def _round_half_away(number: float) -> int:
    return int(math.copysign(math.floor(abs(number) + 0.5), number))


class Value:
    """A configuration value together with the origin it came from."""

    __slots__ = ("kind", "data", "origin")
    __hash__ = None  # type: ignore[assignment]

    def __init__(self, kind: ValueKind, data: Any = None, origin: str | None = None) -> None:
        self.kind = kind
        self.data = data
        self.origin = origin

    @classmethod
    def from_python(cls, data: Any, origin: str | None = None) -> Value:
        """Build a value tree from plain Python data."""
        if isinstance(data, Value):
            return data
        if data is None:
            return cls(ValueKind.NIL, None, origin)
        if isinstance(data, bool):
            return cls(ValueKind.BOOLEAN, data, origin)
        if isinstance(data, Enum):
            return cls(ValueKind.STRING, data.name, origin)
        if isinstance(data, int):
            return cls(_int_kind(data), data, origin)
        if isinstance(data, float):
            return cls(ValueKind.FLOAT, data, origin)
        if isinstance(data, str):
            return cls(ValueKind.STRING, data, origin)
        if dataclasses.is_dataclass(data) and not isinstance(data, type):
            data = {f.name: getattr(data, f.name) for f in dataclasses.fields(data)}
        if isinstance(data, Mapping):
            table = {str(k): cls.from_python(v, origin) for k, v in data.items()}
            return cls(ValueKind.TABLE, table, origin)
        if isinstance(data, (list, tuple, set, frozenset)):
            return cls(ValueKind.ARRAY, [cls.from_python(v, origin) for v in data], origin)
        raise TypeError(f"cannot convert {type(data).__name__} into a configuration value")

    def to_python(self) -> Any:
        """Return the value as plain Python data."""
        if self.kind is ValueKind.TABLE:
            return {k: v.to_python() for k, v in self.data.items()}
        if self.kind is ValueKind.ARRAY:
            return [v.to_python() for v in self.data]
        return self.data

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self.kind is other.kind and self.data == other.data

    def __repr__(self) -> str:
        return f"Value({self.kind.name}, {self.data!r}, origin={self.origin!r})"

    def unexpected(self) -> Unexpected:
        """Describe this value for an error message."""
        match self.kind:
            case ValueKind.NIL:
                return Unexpected("unit")
            case ValueKind.BOOLEAN:
                return Unexpected("bool", self.data)
            case ValueKind.I64:
                return Unexpected("i64", self.data)
            case ValueKind.I128:
                return Unexpected("i128", self.data)
            case ValueKind.U64:
                return Unexpected("u64", self.data)
            case ValueKind.U128:
                return Unexpected("u128", self.data)
            case ValueKind.FLOAT:
                return Unexpected("float", self.data)
            case ValueKind.STRING:
                return Unexpected("str", self.data)
            case ValueKind.TABLE:
                return Unexpected("map")
            case _:
                return Unexpected("seq")

    def _error(self, expected: str) -> ConfigError:
        return invalid_type(self.origin, self.unexpected(), expected)

    def into_bool(self) -> bool:
        if self.kind is ValueKind.BOOLEAN:
            return self.data
        if self.kind in _INT_KINDS or self.kind is ValueKind.FLOAT:
            return self.data != 0
        if self.kind is ValueKind.STRING:
            word = self.data.lower()
            if word in _TRUE_WORDS:
                return True
            if word in _FALSE_WORDS:
                return False
        raise self._error("a boolean")

    def _string_to_int(self) -> int:
        text = self.data
        if _INT_RE.fullmatch(text):
            return int(text)
        word = text.lower()
        if word in ("true", "on", "yes"):
            return 1
        if word in ("false", "off", "no"):
            return 0
        raise self._error("an integer")

    def into_int(self) -> int:
        if self.kind in _INT_KINDS:
            number = self.data
        elif self.kind is ValueKind.BOOLEAN:
            return int(self.data)
        elif self.kind is ValueKind.FLOAT:
            return _round_half_away(self.data)
        elif self.kind is ValueKind.STRING:
            number = self._string_to_int()
        else:
            raise self._error("an integer")
        if not _I64[0] <= number <= _I64[1]:
            raise invalid_type(
                self.origin, Value(_int_kind(number), number).unexpected(),
                "an signed 64 bit or less integer",
            )
        return number

    def into_uint(self) -> int:
        if self.kind in _INT_KINDS:
            number = self.data
        elif self.kind is ValueKind.BOOLEAN:
            return int(self.data)
        elif self.kind is ValueKind.FLOAT:
            number = _round_half_away(self.data)
        elif self.kind is ValueKind.STRING:
            number = self._string_to_int()
        else:
            raise self._error("an integer")
        if not 0 <= number <= _U64_MAX:
            raise invalid_type(
                self.origin, Value(_int_kind(number), number).unexpected(),
                "an unsigned 64 bit or less integer",
            )
        return number

    def into_float(self) -> float:
        if self.kind is ValueKind.FLOAT:
            return self.data
        if self.kind in _INT_KINDS or self.kind is ValueKind.BOOLEAN:
            return float(self.data)
        if self.kind is ValueKind.STRING:
            text = self.data
            if text == text.strip() and "_" not in text:
                try:
                    return float(text)
                except ValueError:
                    pass
            word = text.lower()
            if word in ("true", "on", "yes"):
                return 1.0
            if word in ("false", "off", "no"):
                return 0.0
        raise self._error("a floating point")

    def into_string(self) -> str:
        match self.kind:
            case ValueKind.STRING:
                return self.data
            case ValueKind.BOOLEAN:
                return "true" if self.data else "false"
            case ValueKind.FLOAT:
                return _format_float(self.data)
            case kind if kind in _INT_KINDS:
                return str(self.data)
        raise self._error("a string")

    def into_table(self) -> dict[str, Value]:
        if self.kind is ValueKind.TABLE:
            return dict(self.data)
        raise self._error("a map")

    def into_array(self) -> list[Value]:
        if self.kind is ValueKind.ARRAY:
            return list(self.data)
        raise self._error("an array")

    def try_deserialize(self, target: Any) -> Any:
        """Convert this value into ``target``.

        ``target`` may be a builtin scalar type, ``Value``, ``Any``, a
        generic ``list``/``tuple``/``set``/``dict``, an ``Optional``/union,
        an ``Enum`` or a dataclass. An enum written as a one-key table
        yields ``(member, payload)``, the payload converted to the member's
        value when that is a type.
        """
        return _deserialize(self, target)


_NAMED_TYPES: dict[str, Any] = {
    "int": int,
    "str": str,
    "float": float,
    "bool": bool,
    "Any": Any,
    "Value": Value,
}


def _field_type(field: dataclasses.Field) -> Any:
    """Return the declared type of a dataclass field.

    Annotations written as text are resolved only for plain scalar names;
    anything else is taken as ``Any``.
    """
    declared = field.type
    if isinstance(declared, str):
        return _NAMED_TYPES.get(declared.strip(), Any)
    return declared


def _deserialize(value: Value, target: Any) -> Any:
    if target is Any or target is object:
        return value.to_python()
    if target is Value:
        return value
    if target is type(None):
        if value.kind is ValueKind.NIL:
            return None
        raise value._error("unit")
    origin = typing.get_origin(target)
    args = typing.get_args(target)
    if origin is Union or origin is types.UnionType:
        return _deserialize_union(value, args)
    if target is bool:
        return value.into_bool()
    if target is int:
        return value.into_int()
    if target is float:
        return value.into_float()
    if target is str:
        return value.into_string()
    if isinstance(target, type) and issubclass(target, Enum):
        return _deserialize_enum(value, target)
    if isinstance(target, type) and dataclasses.is_dataclass(target):
        return _deserialize_dataclass(value, target)
    container = origin or target
    if container in (list, tuple, set, frozenset):
        return _deserialize_seq(value, container, args)
    if container is dict or (isinstance(container, type) and issubclass(container, Mapping)):
        return _deserialize_map(value, args)
    raise TypeError(f"cannot deserialize into {target!r}")


def _deserialize_union(value: Value, args: tuple) -> Any:
    options = [a for a in args if a is not type(None)]
    if len(options) < len(args) and value.kind is ValueKind.NIL:
        return None
    last: ConfigError | None = None
    for option in options:
        try:
            return _deserialize(value, option)
        except ConfigError as error:
            last = error
    assert last is not None
    raise last


def _deserialize_seq(value: Value, container: type, args: tuple) -> Any:
    if value.kind is not ValueKind.ARRAY:
        raise value._error("a sequence")
    items = value.data
    if container is tuple and args and not (len(args) == 2 and args[1] is Ellipsis):
        if len(items) != len(args):
            raise MessageError(f"invalid length {len(items)}, expected a tuple of size {len(args)}")
        item_types = list(args)
    else:
        item_types = [args[0] if args else Any] * len(items)
    result = []
    for idx, (item, item_type) in enumerate(zip(items, item_types)):
        try:
            result.append(_deserialize(item, item_type))
        except ConfigError as error:
            raise error.prepend_index(idx) from None
    return container(result)


def _deserialize_map(value: Value, args: tuple) -> dict:
    if value.kind is not ValueKind.TABLE:
        raise value._error("a map")
    key_type, value_type = args if len(args) == 2 else (str, Any)
    result = {}
    for key, item in value.data.items():
        parsed_key = _deserialize(Value(ValueKind.STRING, key, value.origin), key_type)
        try:
            result[parsed_key] = _deserialize(item, value_type)
        except ConfigError as error:
            raise error.prepend_key(key) from None
    return result


def _structural_error(name: str) -> MessageError:
    return MessageError(
        f"value of enum {name} should be represented by either string or table with exactly one key"
    )


def _deserialize_enum(value: Value, target: type[Enum]) -> Any:
    name = target.__name__
    if value.kind is ValueKind.STRING:
        variant = value.data
    elif value.kind is ValueKind.TABLE and len(value.data) == 1:
        variant = next(iter(value.data))
    else:
        raise _structural_error(name)
    member = target.__members__.get(variant)
    if member is None:
        raise MessageError(f"enum {name} does not have variant constructor {variant}")
    if value.kind is ValueKind.STRING:
        return member
    member_value = member.value
    is_type = isinstance(member_value, type) or typing.get_origin(member_value) is not None
    payload_type = member_value if is_type else Any
    return member, _deserialize(value.data[variant], payload_type)


def _deserialize_dataclass(value: Value, target: type) -> Any:
    if value.kind is not ValueKind.TABLE:
        raise value._error(f"struct {target.__name__}")
    kwargs = {}
    for field in dataclasses.fields(target):
        if not field.init:
            continue
        field_type = _field_type(field)
        if field.name in value.data:
            try:
                kwargs[field.name] = _deserialize(value.data[field.name], field_type)
            except ConfigError as error:
                raise error.prepend_key(field.name) from None
        elif (
            field.default is not dataclasses.MISSING
            or field.default_factory is not dataclasses.MISSING
        ):
            continue
        elif type(None) in typing.get_args(field_type):
            kwargs[field.name] = None
        else:
            raise MessageError(f"missing field `{field.name}`")
    return target(**kwargs)