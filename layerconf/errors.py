"""Error types raised while building or reading a configuration."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal

_UNEXPECTED_KINDS = frozenset(
    {"bool", "i64", "i128", "u64", "u128", "float", "str", "unit", "seq", "map"}
)


def _format_float(number: float) -> str:
    """Render a float the way a plain decimal display would."""
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "inf" if number > 0 else "-inf"
    if number.is_integer():
        return str(int(number))
    text = repr(number)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    return text


def _debug_str(text: str) -> str:
    """Quote a string with escapes for quotes, backslashes and control chars."""
    escapes = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t", "\0": "\\0"}
    return '"' + "".join(escapes.get(ch, ch) for ch in text) + '"'


@dataclass(frozen=True)
class Unexpected:
    """What was actually found where a different kind of value was expected."""

    kind: str
    value: object = None

    def __post_init__(self) -> None:
        if self.kind not in _UNEXPECTED_KINDS:
            raise ValueError(f"unknown unexpected kind {self.kind!r}")

    def __str__(self) -> str:
        match self.kind:
            case "bool":
                return f"boolean `{'true' if self.value else 'false'}`"
            case "i64":
                return f"64-bit integer `{self.value}`"
            case "i128":
                return f"128-bit integer `{self.value}`"
            case "u64":
                return f"64-bit unsigned integer `{self.value}`"
            case "u128":
                return f"128-bit unsigned integer `{self.value}`"
            case "float":
                return f"floating point `{_format_float(float(self.value))}`"
            case "str":
                return f"string {_debug_str(str(self.value))}"
            case "unit":
                return "unit value"
            case "seq":
                return "sequence"
            case _:
                return "map"


def _join(segment: str, key: str | None, add_dot: bool) -> str:
    key = key or ""
    first = key[0] if key else "["
    dot = "." if add_dot and first != "[" else ""
    return f"{segment}{dot}{key}"


def _suffix(key: str | None, origin: str | None) -> str:
    text = ""
    if key is not None:
        text += f" for key `{key}`"
    if origin is not None:
        text += f" in {origin}"
    return text


class ConfigError(Exception):
    """Base class of every configuration error."""

    def extend_with_key(self, key: str) -> ConfigError:
        """Return this error annotated with the key it occurred at."""
        return AtError(self, None, key)

    def _prepend(self, segment: str, add_dot: bool) -> ConfigError:
        return AtError(self, None, _join(segment, None, add_dot))

    def prepend_key(self, key: str) -> ConfigError:
        """Return this error with a table key prepended to its path."""
        return self._prepend(key, True)

    def prepend_index(self, idx: int) -> ConfigError:
        """Return this error with an array index prepended to its path."""
        return self._prepend(f"[{idx}]", False)


class FrozenError(ConfigError):
    """Configuration is frozen and can no longer change."""

    def __str__(self) -> str:
        return "configuration is frozen"


class NotFoundError(ConfigError):
    """A configuration property was not found."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"configuration property {_debug_str(self.key)} not found"

    def _prepend(self, segment: str, add_dot: bool) -> ConfigError:
        return NotFoundError(_join(segment, self.key, add_dot))


class PathParseError(ConfigError):
    """A configuration path could not be parsed."""

    def __init__(self, cause: object) -> None:
        super().__init__(cause)
        self.cause = cause

    def __str__(self) -> str:
        return str(self.cause)


class FileParseError(ConfigError):
    """Configuration text could not be parsed."""

    def __init__(self, uri: str | None, cause: object) -> None:
        super().__init__(uri, cause)
        self.uri = uri
        self.cause = cause

    def __str__(self) -> str:
        text = str(self.cause)
        if self.uri is not None:
            text += f" in {self.uri}"
        return text


class ConfigTypeError(ConfigError):
    """A value could not be converted into the requested type."""

    def __init__(
        self,
        origin: str | None,
        unexpected: Unexpected,
        expected: str,
        key: str | None = None,
    ) -> None:
        super().__init__(origin, unexpected, expected, key)
        self.origin = origin
        self.unexpected = unexpected
        self.expected = expected
        self.key = key

    def __str__(self) -> str:
        return f"invalid type: {self.unexpected}, expected {self.expected}" + _suffix(
            self.key, self.origin
        )

    def extend_with_key(self, key: str) -> ConfigError:
        return ConfigTypeError(self.origin, self.unexpected, self.expected, key)

    def _prepend(self, segment: str, add_dot: bool) -> ConfigError:
        return ConfigTypeError(
            self.origin, self.unexpected, self.expected, _join(segment, self.key, add_dot)
        )


class AtError(ConfigError):
    """Another error located at a key and, optionally, an origin."""

    def __init__(self, error: ConfigError, origin: str | None, key: str | None) -> None:
        super().__init__(error, origin, key)
        self.error = error
        self.origin = origin
        self.key = key

    def __str__(self) -> str:
        return str(self.error) + _suffix(self.key, self.origin)

    def extend_with_key(self, key: str) -> ConfigError:
        return AtError(self.error, self.origin, key)

    def _prepend(self, segment: str, add_dot: bool) -> ConfigError:
        return AtError(self.error, self.origin, _join(segment, self.key, add_dot))


class MessageError(ConfigError):
    """A free-form error message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ForeignError(ConfigError):
    """An error coming from outside the library."""

    def __init__(self, cause: object) -> None:
        super().__init__(cause)
        self.cause = cause

    def __str__(self) -> str:
        return str(self.cause)


def invalid_type(origin: str | None, unexpected: Unexpected, expected: str) -> ConfigTypeError:
    """Build a type error without a key."""
    return ConfigTypeError(origin, unexpected, expected)


def invalid_root(origin: str | None, unexpected: Unexpected) -> ConfigTypeError:
    """Build the error raised when a document's root is not a table."""
    return ConfigTypeError(origin, unexpected, "a map")