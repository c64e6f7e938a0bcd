"""Configuration sources backed by files on disk or by text held in memory."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import FileParseError, ForeignError
from .formats import FileStoredFormat, all_extensions
from .source import FileSourceResult, Source
from .value import Value


@dataclass
class FileSourceFile:
    """A configuration file located on disk, by exact path or by base name."""

    name: Path = field()

    def __post_init__(self) -> None:
        self.name = Path(self.name)

    def _find_file(
        self, format_hint: FileStoredFormat | None
    ) -> tuple[Path, FileStoredFormat]:
        filename = self.name if self.name.is_absolute() else Path.cwd() / self.name

        if filename.is_file():
            if format_hint is not None:
                return filename, format_hint
            extension = filename.suffix[1:]
            for fmt, extensions in all_extensions().items():
                if extension in extensions:
                    return filename, fmt
            raise FileNotFoundError(
                f'configuration file "{filename}" is not of a registered file format'
            )

        # Extensions are appended, so "file.local" is searched as "file.local.<ext>".
        if format_hint is not None:
            candidates = [(ext, format_hint) for ext in format_hint.file_extensions()]
        else:
            candidates = [
                (ext, fmt) for fmt, extensions in all_extensions().items() for ext in extensions
            ]
        for ext, fmt in candidates:
            path = Path(f"{filename}.{ext}")
            if path.is_file():
                return path, fmt

        raise FileNotFoundError(f'configuration file "{self.name}" not found')

    def resolve(self, format_hint: FileStoredFormat | None) -> FileSourceResult:
        """Locate the file, read it and pick the format to parse it with."""
        filename, fmt = self._find_file(format_hint)
        try:
            uri = os.path.relpath(filename, Path.cwd())
        except (ValueError, OSError):
            uri = str(filename)
        with filename.open(encoding="utf-8", newline="") as handle:
            content = handle.read()
        return FileSourceResult(uri, content, fmt)


@dataclass
class FileSourceString:
    """Configuration text held in memory."""

    text: str

    def resolve(self, format_hint: FileStoredFormat | None) -> FileSourceResult:
        """Return the text with the format it must be parsed with."""
        if format_hint is None:
            raise ValueError("from_str requires a set file format")
        return FileSourceResult(None, self.text, format_hint)


class File(Source):
    """A configuration source read from a file or from a string."""

    def __init__(
        self,
        source: FileSourceFile | FileSourceString,
        format: FileStoredFormat | None = None,
        required: bool = True,
    ) -> None:
        self.source = source
        self._format = format
        self._required = required

    def __repr__(self) -> str:
        return (
            f"File({self.source!r}, format={self._format!r}, required={self._required!r})"
        )

    @classmethod
    def from_str(cls, text: str, format: FileStoredFormat) -> File:
        """Use ``text`` itself as the configuration, written in ``format``."""
        return cls(FileSourceString(text), format)

    @classmethod
    def new(cls, name: str | os.PathLike[str], format: FileStoredFormat) -> File:
        """Read the file ``name`` in the given format."""
        return cls(FileSourceFile(name), format)

    @classmethod
    def with_name(cls, name: str) -> File:
        """Find a file by name, trying every registered extension if needed."""
        return cls(FileSourceFile(name))

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> File:
        """Read the file at ``path``, choosing the format by its extension."""
        return cls(FileSourceFile(path))

    def format(self, format: FileStoredFormat) -> File:
        """Return a copy of this source that parses with ``format``."""
        return type(self)(self.source, format, self._required)

    def required(self, required: bool) -> File:
        """Return a copy of this source; an optional one yields nothing when missing."""
        return type(self)(self.source, self._format, required)

    def collect(self) -> dict[str, Value]:
        try:
            result = self.source.resolve(self._format)
        except (OSError, UnicodeDecodeError) as error:
            if not self._required:
                return {}
            raise ForeignError(error) from error

        try:
            return result.format.parse(result.uri, result.content)
        except Exception as error:
            raise FileParseError(result.uri, error) from error