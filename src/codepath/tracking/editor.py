"""Editor surfaces - Where navigation lands.

An ``EditorSurface`` opens a file with the caret at a 0-based position,
or reveals a directory in a file browser. ``RecordingEditor`` is the
headless surface (it only records calls); ``CommandEditor`` runs an
external command built from a configured template.
"""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass, field
from typing import Protocol


class EditorError(RuntimeError):
    """Raised when an editor surface cannot show a location."""


class EditorSurface(Protocol):
    """Capability for showing a location to the user."""

    def open_file(self, path: str, line: int, column: int) -> None:
        """Open path with the caret at (line, column), both 0-based, scrolled into view."""
        ...

    def reveal_directory(self, path: str) -> None: ...


@dataclass(frozen=True)
class EditorCall:
    """One recorded editor request."""

    action: str  # "open" or "reveal"
    path: str
    line: int = 0
    column: int = 0


@dataclass
class RecordingEditor:
    """Headless editor surface that records every request."""

    calls: list[EditorCall] = field(default_factory=list)

    def open_file(self, path: str, line: int, column: int) -> None:
        self.calls.append(EditorCall("open", path, line, column))

    def reveal_directory(self, path: str) -> None:
        self.calls.append(EditorCall("reveal", path))

    @property
    def last(self) -> EditorCall | None:
        return self.calls[-1] if self.calls else None


class CommandEditor:
    """Editor surface that shells out to an external program.

    Templates may use ``{path}``, ``{line}`` and ``{column}``; the
    placeholders are filled with 1-based values, which is what most
    editors expect on the command line (e.g. ``code -g {path}:{line}:{column}``).

    Args:
        command: Template for opening files.
        directory_command: Template for revealing directories; defaults
            to ``command`` with only ``{path}`` meaningful.
    """

    def __init__(self, command: str, directory_command: str | None = None) -> None:
        if not command.strip():
            raise ValueError("Editor command must be a non-empty string")
        self.command = command
        self.directory_command = directory_command or command
        for template in (self.command, self.directory_command):
            try:
                self._build(template, "path", 1, 1)
            except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
                raise ValueError(f"Invalid editor command template {template!r}: {e!r}") from e

    @staticmethod
    def _build(template: str, path: str, line: int, column: int) -> list[str]:
        return [
            part.format(path=path, line=line, column=column) for part in shlex.split(template)
        ]

    def _run(self, argv: list[str]) -> None:
        """Run the command.

        Raises:
            EditorError: If the program cannot be started or exits non-zero.
        """
        try:
            subprocess.run(argv, check=True, capture_output=True)
        except (OSError, subprocess.CalledProcessError) as e:
            raise EditorError(f"Could not run {argv[0]!r}: {e}") from e

    def open_file(self, path: str, line: int, column: int) -> None:
        self._run(self._build(self.command, path, line + 1, column + 1))

    def reveal_directory(self, path: str) -> None:
        self._run(self._build(self.directory_command, path, 1, 1))
