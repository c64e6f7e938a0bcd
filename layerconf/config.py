"""Layered configuration: defaults, sources and overrides merged into one tree."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any, Union

from .errors import ConfigError, NotFoundError, PathParseError
from .source import AsyncSource, Source
from .value import Value, ValueKind

_Segment = Union[str, int]
_Path = tuple[_Segment, ...]

_PATH_RE = re.compile(r"[\w-]+((?:\.[\w-]+|\[\s*-?\d+\s*\])*)")
_SEGMENT_RE = re.compile(r"\.([\w-]+)|\[\s*(-?\d+)\s*\]")


def _parse_key(key: str) -> _Path:
    """Parse a key such as ``items[0].name`` into its path segments."""
    match = _PATH_RE.fullmatch(key)
    if match is None:
        raise PathParseError(f"invalid configuration key {key!r}")
    segments: list[_Segment] = [key[: match.start(1)]]
    for segment in _SEGMENT_RE.finditer(match.group(1)):
        name, index = segment.groups()
        segments.append(name if name is not None else int(index))
    return tuple(segments)


def _clone(value: Value) -> Value:
    if value.kind is ValueKind.TABLE:
        data: Any = {key: _clone(item) for key, item in value.data.items()}
    elif value.kind is ValueKind.ARRAY:
        data = [_clone(item) for item in value.data]
    else:
        data = value.data
    return Value(value.kind, data, value.origin)


def _nil() -> Value:
    return Value(ValueKind.NIL)


def _force_table(node: Value) -> dict[str, Value]:
    if node.kind is not ValueKind.TABLE:
        node.kind, node.data, node.origin = ValueKind.TABLE, {}, None
    return node.data


def _force_array(node: Value) -> list[Value]:
    if node.kind is not ValueKind.ARRAY:
        node.kind, node.data, node.origin = ValueKind.ARRAY, [], None
    return node.data


def _step(node: Value, segment: _Segment) -> Value:
    """Move one segment down, creating whatever is missing on the way."""
    if isinstance(segment, str):
        return _force_table(node).setdefault(segment, _nil())
    items = _force_array(node)
    if segment >= 0:
        if segment >= len(items):
            items.extend(_nil() for _ in range(segment + 1 - len(items)))
        return items[segment]
    if -segment <= len(items):
        return items[len(items) + segment]
    items[0:0] = [_nil() for _ in range(-segment - len(items))]
    return items[0]


def _assign(target: Value, value: Value) -> None:
    if value.kind is ValueKind.TABLE:
        table = _force_table(target)
        for key, item in value.data.items():
            _assign(table.setdefault(key, _nil()), item)
    else:
        target.kind, target.data, target.origin = value.kind, value.data, value.origin


def _set_path(root: Value, path: _Path, value: Value) -> None:
    node = root
    for segment in path:
        node = _step(node, segment)
    _assign(node, _clone(value))


def _get_path(root: Value, path: _Path) -> Value | None:
    node = root
    for segment in path:
        if isinstance(segment, str):
            if node.kind is not ValueKind.TABLE:
                return None
            found = node.data.get(segment)
            if found is None:
                return None
            node = found
        else:
            if node.kind is not ValueKind.ARRAY:
                return None
            length = len(node.data)
            index = segment if segment >= 0 else length + segment
            if not 0 <= index < length:
                return None
            node = node.data[index]
    return node


def _empty_table() -> Value:
    return Value(ValueKind.TABLE, {})


class Config(Source):
    """A built configuration tree that values are read from."""

    def __init__(self, cache: Value | None = None) -> None:
        self.cache = cache if cache is not None else _empty_table()

    def __repr__(self) -> str:
        return f"Config({self.cache!r})"

    @staticmethod
    def builder() -> ConfigBuilder:
        """Start a new, empty builder."""
        return ConfigBuilder()

    def get_value(self, key: str) -> Value:
        """Return a copy of the value at ``key``."""
        found = _get_path(self.cache, _parse_key(key))
        if found is None:
            raise NotFoundError(key)
        return _clone(found)

    def get(self, key: str, target: Any) -> Any:
        """Return the value at ``key`` converted into ``target``."""
        value = self.get_value(key)
        try:
            return value.try_deserialize(target)
        except ConfigError as error:
            raise error.extend_with_key(key) from None

    def _convert(self, key: str, convert: str) -> Any:
        value = self.get_value(key)
        try:
            return getattr(value, convert)()
        except ConfigError as error:
            raise error.extend_with_key(key) from None

    def get_string(self, key: str) -> str:
        return self._convert(key, "into_string")

    def get_int(self, key: str) -> int:
        return self._convert(key, "into_int")

    def get_float(self, key: str) -> float:
        return self._convert(key, "into_float")

    def get_bool(self, key: str) -> bool:
        return self._convert(key, "into_bool")

    def get_table(self, key: str) -> dict[str, Value]:
        return self._convert(key, "into_table")

    def get_array(self, key: str) -> list[Value]:
        return self._convert(key, "into_array")

    def try_deserialize(self, target: Any) -> Any:
        """Convert the whole configuration into ``target``."""
        return self.cache.try_deserialize(target)

    def collect(self) -> dict[str, Value]:
        return {key: _clone(item) for key, item in self.cache.into_table().items()}


class ConfigBuilder:
    """Collects defaults, sources and overrides, then builds a ``Config``.

    Defaults come first, sources next in the order they were added, and
    overrides last. Every method returns a new builder; nothing is read
    until one of the build methods runs.
    """

    def __init__(self) -> None:
        self._defaults: dict[_Path, Value] = {}
        self._overrides: dict[_Path, Value] = {}
        self._sources: list[Source | AsyncSource] = []

    def __repr__(self) -> str:
        return (
            f"ConfigBuilder(defaults={len(self._defaults)}, "
            f"sources={len(self._sources)}, overrides={len(self._overrides)})"
        )

    def _copy(self) -> ConfigBuilder:
        clone = ConfigBuilder()
        clone._defaults = dict(self._defaults)
        clone._overrides = dict(self._overrides)
        clone._sources = list(self._sources)
        return clone

    def set_default(self, key: str, value: Any) -> ConfigBuilder:
        """Set a value that any source or override may replace."""
        clone = self._copy()
        clone._defaults[_parse_key(key)] = Value.from_python(value)
        return clone

    def set_override(self, key: str, value: Any) -> ConfigBuilder:
        """Set a value that no default or source can replace."""
        clone = self._copy()
        clone._overrides[_parse_key(key)] = Value.from_python(value)
        return clone

    def set_override_option(self, key: str, value: Any) -> ConfigBuilder:
        """Set an override unless ``value`` is ``None``."""
        if value is None:
            return self._copy()
        return self.set_override(key, value)

    def add_source(self, source: Source | Iterable[Source]) -> ConfigBuilder:
        """Register a source, or several in order; nothing is read yet."""
        clone = self._copy()
        if isinstance(source, Source):
            clone._sources.append(source)
        else:
            clone._sources.extend(source)
        return clone

    def add_async_source(self, source: AsyncSource) -> ConfigBuilder:
        """Register an asynchronous source; the builder must then use ``build_async``."""
        clone = self._copy()
        clone._sources.append(source)
        return clone

    def _start(self) -> Value:
        cache = _empty_table()
        for path, value in self._defaults.items():
            _set_path(cache, path, value)
        return cache

    def _finish(self, cache: Value) -> Config:
        for path, value in self._overrides.items():
            _set_path(cache, path, value)
        return Config(cache)

    def build(self) -> Config:
        """Read every source and build the configuration."""
        if any(isinstance(source, AsyncSource) for source in self._sources):
            raise TypeError("builder holds asynchronous sources; use build_async()")
        cache = self._start()
        for source in self._sources:
            source.collect_to(cache)
        return self._finish(cache)

    def build_cloned(self) -> Config:
        """Build the configuration, leaving this builder ready for reuse."""
        return self._copy().build()

    async def build_async(self) -> Config:
        """Read every source, awaiting asynchronous ones, and build the configuration."""
        cache = self._start()
        for source in self._sources:
            if isinstance(source, AsyncSource):
                await source.collect_to(cache)
            else:
                source.collect_to(cache)
        return self._finish(cache)