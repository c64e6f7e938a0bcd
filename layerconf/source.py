"""Sources that supply tables of configuration values."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass

from .formats import Format
from .value import Value, ValueKind


def _split_path(key: str) -> list[str]:
    segments = key.split(".")
    if any(not segment for segment in segments):
        return [key]
    return segments


def _force_table(node: Value) -> dict[str, Value]:
    if node.kind is not ValueKind.TABLE:
        node.kind = ValueKind.TABLE
        node.data = {}
    return node.data


def _set(target: Value, value: Value) -> None:
    if value.kind is ValueKind.TABLE:
        table = _force_table(target)
        for key, item in value.data.items():
            _set(table.setdefault(key, Value(ValueKind.NIL)), item)
    else:
        target.kind = value.kind
        target.data = value.data
        target.origin = value.origin


def merge_into(cache: Value, table: Mapping[str, Value]) -> None:
    """Deep-merge ``table`` into ``cache`` in place.

    Each key is read as a dotted path of table names. Tables merge key by
    key; every other value replaces what was there.
    """
    for key, value in table.items():
        node = cache
        for segment in _split_path(key):
            node = _force_table(node).setdefault(segment, Value(ValueKind.NIL))
        _set(node, value)


class Source(ABC):
    """A source of configuration read on demand."""

    @abstractmethod
    def collect(self) -> dict[str, Value]:
        """Read the source and return its table of values."""

    def collect_to(self, cache: Value) -> None:
        """Read the source and merge its values into ``cache``."""
        merge_into(cache, self.collect())


class AsyncSource(ABC):
    """A source of configuration read asynchronously."""

    @abstractmethod
    async def collect(self) -> dict[str, Value]:
        """Read the source and return its table of values."""

    async def collect_to(self, cache: Value) -> None:
        """Read the source and merge its values into ``cache``."""
        merge_into(cache, await self.collect())


@dataclass
class FileSourceResult:
    """The text of a located file, where it came from and how to parse it."""

    uri: str | None
    content: str
    format: Format