"""File access - The file-system capability used by validation and navigation.

The validator only needs to know whether a path exists, whether it is a
directory, and the text of individual lines. ``LocalFileSystem`` provides
that over the real disk; tests and other hosts may supply their own
``FileAccess`` implementation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class TextDocument:
    """An opened text file with random access to its lines.

    Line splitting matches editor semantics: a trailing newline yields a
    final empty line, and an empty file has one (empty) line.
    """

    path: str
    lines: tuple[str, ...]

    @classmethod
    def from_text(cls, path: str, text: str) -> TextDocument:
        return cls(path=path, lines=tuple(_LINE_BREAK_RE.split(text)))

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def line_at(self, index: int) -> str:
        """Return the text of a line by 0-based index.

        Raises:
            IndexError: If the index is outside the document.
        """
        if index < 0 or index >= len(self.lines):
            raise IndexError(f"Line {index} out of range (document has {len(self.lines)} lines)")
        return self.lines[index]


class FileAccess(Protocol):
    """Capability for inspecting and reading files."""

    def exists(self, path: str) -> bool: ...

    def is_dir(self, path: str) -> bool: ...

    def open_text(self, path: str) -> TextDocument: ...


class LocalFileSystem:
    """FileAccess backed by the local disk.

    Relative paths are resolved against ``workspace_root`` when given,
    otherwise against the current working directory.
    """

    def __init__(self, workspace_root: Path | None = None, encoding: str = "utf-8") -> None:
        self.workspace_root = workspace_root
        self.encoding = encoding

    def resolve(self, path: str) -> Path:
        p = Path(path)
        if p.is_absolute() or self.workspace_root is None:
            return p
        return self.workspace_root / p

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def is_dir(self, path: str) -> bool:
        return self.resolve(path).is_dir()

    def open_text(self, path: str) -> TextDocument:
        """Read a file as text.

        Raises:
            OSError: If the file cannot be read.
            UnicodeDecodeError: If the file is not valid text in ``encoding``.
        """
        text = self.resolve(path).read_text(encoding=self.encoding)
        return TextDocument.from_text(path, text)
