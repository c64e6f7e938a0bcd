"""Text formats that configuration files can be written in."""

from __future__ import annotations

import configparser
import datetime as dt
import json
import re
import tomllib
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable

import yaml

from .errors import invalid_root
from .value import Value, ValueKind

_I64_MIN, _I64_MAX = -(2**63), 2**63 - 1


class Format(ABC):
    """Something that turns configuration text into a table of values."""

    @abstractmethod
    def parse(self, uri: str | None, text: str) -> dict[str, Value]:
        """Parse ``text`` into a table; ``uri`` names where it came from."""


class FileStoredFormat(Format):
    """A format that is also tied to file extensions."""

    @abstractmethod
    def file_extensions(self) -> tuple[str, ...]:
        """Return the file extensions of this format, without the dot."""


class MultipleDocumentsError(Exception):
    """A YAML text held more than one document."""

    def __init__(self, count: int) -> None:
        super().__init__(count)
        self.count = count

    def __str__(self) -> str:
        return f"Got {self.count} YAML documents, expected 1"


class FileFormat(Enum):
    """The formats understood out of the box."""

    TOML = "toml"
    JSON = "json"
    YAML = "yaml"
    INI = "ini"

    def extensions(self) -> tuple[str, ...]:
        """Return the file extensions registered for this format."""
        return _EXTENSIONS[self]

    def file_extensions(self) -> tuple[str, ...]:
        return self.extensions()

    def parse(self, uri: str | None, text: str) -> dict[str, Value]:
        """Parse ``text`` written in this format into a table."""
        return _PARSERS[self](uri, text)


FileStoredFormat.register(FileFormat)

_EXTENSIONS: dict[FileFormat, tuple[str, ...]] = {
    FileFormat.TOML: ("toml",),
    FileFormat.JSON: ("json",),
    FileFormat.YAML: ("yaml", "yml"),
    FileFormat.INI: ("ini",),
}


def all_extensions() -> dict[FileFormat, tuple[str, ...]]:
    """Return every built-in format with its file extensions, in lookup order."""
    return dict(_EXTENSIONS)


def extract_root_table(uri: str | None, value: Value) -> dict[str, Value]:
    """Return the table at the root of a document, or raise if it is not one."""
    if value.kind is ValueKind.TABLE:
        return value.data
    raise invalid_root(uri, value.unexpected())


def _table(uri: str | None, items: dict[str, Value]) -> Value:
    return Value(ValueKind.TABLE, items, uri)


def _array(uri: str | None, items: list[Value]) -> Value:
    return Value(ValueKind.ARRAY, items, uri)


# JSON


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid number {name}")


def _from_json(uri: str | None, obj: Any) -> Value:
    match obj:
        case None:
            return Value(ValueKind.NIL, None, uri)
        case bool():
            return Value(ValueKind.BOOLEAN, obj, uri)
        case int():
            if _I64_MIN <= obj <= _I64_MAX:
                return Value(ValueKind.I64, obj, uri)
            return Value(ValueKind.FLOAT, float(obj), uri)
        case float():
            return Value(ValueKind.FLOAT, obj, uri)
        case str():
            return Value(ValueKind.STRING, obj, uri)
        case dict():
            return _table(uri, {k: _from_json(uri, v) for k, v in obj.items()})
        case list():
            return _array(uri, [_from_json(uri, v) for v in obj])
    raise TypeError(f"unexpected JSON value {obj!r}")


def _parse_json(uri: str | None, text: str) -> dict[str, Value]:
    data = json.loads(text, parse_constant=_reject_constant)
    return extract_root_table(uri, _from_json(uri, data))


# TOML


def _toml_date(value: dt.date) -> str:
    return f"{value.year:04}-{value.month:02}-{value.day:02}"


def _toml_time(value: dt.time | dt.datetime) -> str:
    text = f"{value.hour:02}:{value.minute:02}:{value.second:02}"
    if value.microsecond:
        text += "." + f"{value.microsecond * 1000:09}".rstrip("0")
    return text


def _toml_offset(value: dt.datetime) -> str:
    delta = value.utcoffset()
    if delta is None:
        return ""
    minutes = int(delta.total_seconds() // 60)
    if minutes == 0:
        return "Z"
    sign = "+" if minutes > 0 else "-"
    minutes = abs(minutes)
    return f"{sign}{minutes // 60:02}:{minutes % 60:02}"


def _toml_datetime(value: dt.datetime | dt.date | dt.time) -> str:
    if isinstance(value, dt.datetime):
        return f"{_toml_date(value)}T{_toml_time(value)}{_toml_offset(value)}"
    if isinstance(value, dt.date):
        return _toml_date(value)
    return _toml_time(value)


def _from_toml(uri: str | None, obj: Any) -> Value:
    match obj:
        case str():
            return Value(ValueKind.STRING, obj, uri)
        case bool():
            return Value(ValueKind.BOOLEAN, obj, uri)
        case int():
            if not _I64_MIN <= obj <= _I64_MAX:
                raise ValueError(f"integer {obj} does not fit in 64 bits")
            return Value(ValueKind.I64, obj, uri)
        case float():
            return Value(ValueKind.FLOAT, obj, uri)
        case dict():
            return _table(uri, {k: _from_toml(uri, v) for k, v in obj.items()})
        case list():
            return _array(uri, [_from_toml(uri, v) for v in obj])
        case dt.date() | dt.time():
            return Value(ValueKind.STRING, _toml_datetime(obj), uri)
    raise TypeError(f"unexpected TOML value {obj!r}")


def _parse_toml(uri: str | None, text: str) -> dict[str, Value]:
    return extract_root_table(uri, _from_toml(uri, tomllib.loads(text)))


# YAML


class _YamlLoader(yaml.SafeLoader):
    """Safe loader with core-schema booleans and no timestamp resolution."""


_DROPPED_TAGS = {"tag:yaml.org,2002:bool", "tag:yaml.org,2002:timestamp"}
_YamlLoader.yaml_implicit_resolvers = {
    first: [(tag, rx) for tag, rx in resolvers if tag not in _DROPPED_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_YamlLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def _yaml_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, int) and not isinstance(key, bool):
        return str(key)
    raise ValueError(f"unsupported YAML mapping key {key!r}")


def _from_yaml(uri: str | None, obj: Any) -> Value:
    match obj:
        case str():
            return Value(ValueKind.STRING, obj, uri)
        case bool():
            return Value(ValueKind.BOOLEAN, obj, uri)
        case int():
            if _I64_MIN <= obj <= _I64_MAX:
                return Value(ValueKind.I64, obj, uri)
            return Value(ValueKind.FLOAT, float(obj), uri)
        case float():
            return Value(ValueKind.FLOAT, obj, uri)
        case dict():
            return _table(uri, {_yaml_key(k): _from_yaml(uri, v) for k, v in obj.items()})
        case list():
            return _array(uri, [_from_yaml(uri, v) for v in obj])
    return Value(ValueKind.NIL, None, uri)


def _parse_yaml(uri: str | None, text: str) -> dict[str, Value]:
    docs = list(yaml.load_all(text, Loader=_YamlLoader))
    match len(docs):
        case 0:
            root: Value = _table(uri, {})
        case 1:
            root = _from_yaml(uri, docs[0])
        case count:
            raise MultipleDocumentsError(count)
    return extract_root_table(uri, root)


# INI

_GENERAL_SECTION = "\x00general"
_DEFAULT_SECTION = "\x00default"


def _parse_ini(uri: str | None, text: str) -> dict[str, Value]:
    parser = configparser.ConfigParser(
        interpolation=None,
        default_section=_DEFAULT_SECTION,
        strict=False,
        delimiters=("=", ":"),
    )
    parser.optionxform = str  # type: ignore[assignment, method-assign]
    parser.read_string(f"[{_GENERAL_SECTION}]\n{text}")
    result: dict[str, Value] = {}
    for name in parser.sections():
        entries = {
            key: Value(ValueKind.STRING, raw, uri)
            for key, raw in parser.items(name, raw=True)
        }
        if name == _GENERAL_SECTION:
            result.update(entries)
        else:
            result[name] = _table(uri, entries)
    return result


_PARSERS: dict[FileFormat, Callable[[str | None, str], dict[str, Value]]] = {
    FileFormat.TOML: _parse_toml,
    FileFormat.JSON: _parse_json,
    FileFormat.YAML: _parse_yaml,
    FileFormat.INI: _parse_ini,
}