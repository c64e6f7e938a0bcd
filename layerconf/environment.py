"""A configuration source read from environment variables."""

from __future__ import annotations

import copy
import os
import re
from collections.abc import Mapping
from typing import Any

from .errors import MessageError, _debug_str
from .source import Source
from .value import Value, ValueKind

_URI = "the environment"
_INT_RE = re.compile(r"[+-]?[0-9]+")
_I64_MIN, _I64_MAX = -(2**63), 2**63 - 1


def _is_unicode(text: str) -> bool:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _parse_int(text: str) -> int | None:
    if _INT_RE.fullmatch(text):
        number = int(text)
        if _I64_MIN <= number <= _I64_MAX:
            return number
    return None


def _parse_float(text: str) -> float | None:
    if not text or not text.isascii() or text != text.strip() or "_" in text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _split(text: str, separator: str) -> list[str]:
    if separator:
        return text.split(separator)
    return ["", *text, ""]


class Environment(Source):
    """Environment variables gathered into a table of configuration values.

    Keys are lower-cased, filtered and stripped by an optional prefix, and
    turned into dotted paths by an optional separator. Builder methods
    return modified copies.
    """

    def __init__(self) -> None:
        self._prefix: str | None = None
        self._prefix_separator: str | None = None
        self._separator: str | None = None
        self._list_separator: str | None = None
        self._list_parse_keys: list[str] | None = None
        self._ignore_empty = False
        self._try_parsing = False
        self._keep_prefix = False
        self._source: dict[str, str] | None = None

    def __repr__(self) -> str:
        return (
            f"Environment(prefix={self._prefix!r}, separator={self._separator!r}, "
            f"try_parsing={self._try_parsing!r})"
        )

    def _with(self, **changes: Any) -> Environment:
        clone = copy.copy(self)
        for name, value in changes.items():
            setattr(clone, f"_{name}", value)
        return clone

    @classmethod
    def with_prefix(cls, prefix: str) -> Environment:
        """Only read variables whose names start with ``prefix``."""
        return cls().prefix(prefix)

    def prefix(self, prefix: str) -> Environment:
        return self._with(prefix=prefix)

    def prefix_separator(self, separator: str) -> Environment:
        """Text between the prefix and the rest of the key."""
        return self._with(prefix_separator=separator)

    def separator(self, separator: str) -> Environment:
        """Text between the segments of a nested key."""
        return self._with(separator=separator)

    def list_separator(self, separator: str) -> Environment:
        """With parsing on, split values into lists at ``separator``."""
        return self._with(list_separator=separator)

    def with_list_parse_key(self, key: str) -> Environment:
        """Split only the listed keys into lists."""
        keys = [*(self._list_parse_keys or []), key]
        return self._with(list_parse_keys=keys)

    def ignore_empty(self, ignore: bool) -> Environment:
        """Treat empty variables as unset."""
        return self._with(ignore_empty=ignore)

    def try_parsing(self, try_parsing: bool) -> Environment:
        """Parse booleans, integers and floats where the text allows."""
        return self._with(try_parsing=try_parsing)

    def keep_prefix(self, keep: bool) -> Environment:
        """Keep the prefix in the collected keys."""
        return self._with(keep_prefix=keep)

    def source(self, source: Mapping[str, str] | None) -> Environment:
        """Read from ``source`` instead of the process environment."""
        return self._with(source=None if source is None else dict(source))

    def _parse_value(self, key: str, value: str) -> Value:
        if not self._try_parsing:
            return Value(ValueKind.STRING, value, _URI)
        lowered = value.lower()
        if lowered in ("true", "false"):
            return Value(ValueKind.BOOLEAN, lowered == "true", _URI)
        number = _parse_int(value)
        if number is not None:
            return Value(ValueKind.I64, number, _URI)
        real = _parse_float(value)
        if real is not None:
            return Value(ValueKind.FLOAT, real, _URI)
        if self._list_separator is not None and (
            self._list_parse_keys is None or key in self._list_parse_keys
        ):
            items = [
                Value(ValueKind.STRING, part, _URI)
                for part in _split(value, self._list_separator)
            ]
            return Value(ValueKind.ARRAY, items, _URI)
        return Value(ValueKind.STRING, value, _URI)

    def collect(self) -> dict[str, Value]:
        separator = self._separator or ""
        if self._prefix_separator is not None:
            prefix_separator = self._prefix_separator
        elif self._separator is not None:
            prefix_separator = self._separator
        else:
            prefix_separator = "_"
        prefix_pattern = (
            None if self._prefix is None else f"{self._prefix}{prefix_separator}".lower()
        )

        variables = self._source if self._source is not None else os.environ
        result: dict[str, Value] = {}
        for raw_key, raw_value in variables.items():
            if not _is_unicode(raw_key):
                continue
            if self._ignore_empty and not raw_value:
                continue

            key = raw_key.lower()
            if prefix_pattern is not None:
                if not key.startswith(prefix_pattern):
                    continue
                if not self._keep_prefix:
                    key = key[len(prefix_pattern):]

            if not _is_unicode(raw_value):
                raise MessageError(
                    f"env variable {_debug_str(key)} contains non-Unicode data: {raw_value!r}"
                )

            if separator:
                key = key.replace(separator, ".")

            result[key] = self._parse_value(key, raw_value)
        return result