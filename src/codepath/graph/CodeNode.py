"""CodeNode - A named marker anchored to a line in a source file.

This module provides the vertex type of the code path graph:
- SourceLocation: Portable (path, line) reference
- CodeNode: Marker with identity, content anchor and id-based links

Nodes reference their parent and children by id only. Cross-node
consistency (back-references, cycles, the root list) is owned by
CodeGraph; the methods here only perform local checks.
"""

from __future__ import annotations

import random
import re
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
INVALID_PATH_CHARS = re.compile(r'[<>"|?*]')

MAX_NAME_LENGTH = 200
MAX_LINE_NUMBER = 1_000_000
MAX_SNIPPET_LENGTH = 5000
MAX_DESCRIPTION_LENGTH = 1000

_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class SourceLocation:
    """Reference to a line in a file.

    Paths are kept exactly as stored on the node (absolute or
    workspace-relative).
    """

    path: str
    line: int  # 1-based line number

    def absolute(self, workspace_root: Path) -> Path:
        """Resolve to an absolute path."""
        p = Path(self.path)
        if p.is_absolute():
            return p
        return workspace_root / p

    def to_dict(self) -> dict[str, object]:
        return {"filePath": self.path, "lineNumber": self.line}

    def __str__(self) -> str:
        return f"{self.path}:{self.line}"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_id(prefix: str) -> str:
    """Generate an id of the form ``<prefix>_<base36 millis>_<5 random chars>``."""
    timestamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(random.choices(_BASE36, k=5))
    return f"{prefix}_{timestamp}_{suffix}"


def generate_node_id() -> str:
    """Generate a unique node id."""
    return generate_id("node")


def validate_identifier(value: object, label: str) -> None:
    """Check an id against the shared id rules.

    Raises:
        ValueError: If the id is empty, blank, or contains characters
            other than letters, digits, underscores and hyphens.
    """
    if not value or not isinstance(value, str):
        raise ValueError(f"{label} must be a non-empty string")
    if not value.strip():
        raise ValueError(f"{label} cannot be empty or whitespace only")
    if not ID_PATTERN.match(value):
        raise ValueError(
            f"{label} must contain only alphanumeric characters, underscores, and hyphens"
        )


def _validate_name(name: object) -> None:
    if not name or not isinstance(name, str):
        raise ValueError("Node name must be a non-empty string")
    if not name.strip():
        raise ValueError("Node name cannot be empty or whitespace only")
    if len(name) > MAX_NAME_LENGTH:
        raise ValueError(f"Node name cannot exceed {MAX_NAME_LENGTH} characters")


def _validate_file_path(file_path: object) -> None:
    if not file_path or not isinstance(file_path, str):
        raise ValueError("File path must be a non-empty string")
    if not file_path.strip():
        raise ValueError("File path cannot be empty or whitespace only")
    if INVALID_PATH_CHARS.search(file_path):
        raise ValueError("File path contains invalid characters")


def _validate_line_number(line_number: object) -> None:
    # bool is an int subclass; reject it explicitly
    if isinstance(line_number, bool) or not isinstance(line_number, (int, float)):
        raise ValueError("Line number must be a number")
    if isinstance(line_number, float) and not line_number.is_integer():
        raise ValueError("Line number must be an integer")
    if line_number < 1:
        raise ValueError("Line number must be greater than 0")
    if line_number > MAX_LINE_NUMBER:
        raise ValueError("Line number cannot exceed 1,000,000")


def _validate_code_snippet(code_snippet: object) -> None:
    if not isinstance(code_snippet, str):
        raise ValueError("Code snippet must be a string")
    if len(code_snippet) > MAX_SNIPPET_LENGTH:
        raise ValueError(f"Code snippet cannot exceed {MAX_SNIPPET_LENGTH} characters")


def _validate_description(description: object) -> None:
    if not isinstance(description, str):
        raise ValueError("Description must be a string")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValueError(f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters")


def extract_file_name(file_path: str) -> str:
    """Return the last component of a slash- or backslash-separated path."""
    parts = re.split(r"[/\\]", file_path)
    return parts[-1] or file_path


@dataclass
class CodeNode:
    """A single tracked code position.

    Construction validates id, name, file path, line number and snippet
    eagerly and raises ValueError on the first violation.

    Attributes:
        id: Stable identifier, unique within a graph.
        name: Display name (1..200 chars).
        file_path: Absolute or workspace-relative path of the anchored file.
        line_number: 1-based line the marker points at.
        code_snippet: Text expected at that line when the node was created.
        parent_id: Id of the parent node, or None for a root.
        created_at: Creation timestamp.
        code_hash: Precomputed fingerprint of the snippet.
        file_name: Last path component; derived from file_path when omitted.
        child_ids: Ordered ids of child nodes.
        validation_warning: Reason set by the last failed location check.
        description: Free-form, possibly multi-line notes.
    """

    id: str
    name: str
    file_path: str
    line_number: int
    code_snippet: str | None = None
    parent_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    code_hash: str | None = None
    file_name: str | None = None
    child_ids: list[str] = field(default_factory=list)
    validation_warning: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        validate_identifier(self.id, "Node ID")
        _validate_name(self.name)
        _validate_file_path(self.file_path)
        _validate_line_number(self.line_number)
        self.line_number = int(self.line_number)
        if self.code_snippet is not None:
            _validate_code_snippet(self.code_snippet)
        if self.description is not None:
            _validate_description(self.description)
        if not self.file_name:
            self.file_name = extract_file_name(self.file_path)

    @property
    def location(self) -> SourceLocation:
        """The stored anchor as a SourceLocation."""
        return SourceLocation(path=self.file_path, line=self.line_number)

    # ─────────────────────────────────────────────────────────────────────────
    # Field updates (each re-validates only the field it touches)
    # ─────────────────────────────────────────────────────────────────────────

    def update_name(self, new_name: str) -> None:
        _validate_name(new_name)
        self.name = new_name

    def update_file_path(self, new_file_path: str) -> None:
        _validate_file_path(new_file_path)
        self.file_path = new_file_path
        self.file_name = extract_file_name(new_file_path)

    def update_line_number(self, new_line_number: int) -> None:
        _validate_line_number(new_line_number)
        self.line_number = int(new_line_number)

    def update_code_snippet(self, new_code_snippet: str | None) -> None:
        """Replace the snippet; None clears it."""
        if new_code_snippet is not None:
            _validate_code_snippet(new_code_snippet)
        self.code_snippet = new_code_snippet

    def update_description(self, new_description: str | None) -> None:
        """Replace the description; None or blank text clears it."""
        if new_description is not None and not new_description.strip():
            self.description = None
            return
        if new_description is not None:
            _validate_description(new_description)
        self.description = new_description

    # ─────────────────────────────────────────────────────────────────────────
    # Relationship fields (local checks only; CodeGraph keeps both sides in sync)
    # ─────────────────────────────────────────────────────────────────────────

    def add_child(self, child_id: str) -> None:
        """Append a child id.

        Raises:
            ValueError: If the id is malformed, is this node's own id,
                or is already a child.
        """
        validate_identifier(child_id, "Child node ID")
        if child_id == self.id:
            raise ValueError("Node cannot be its own child")
        if child_id in self.child_ids:
            raise ValueError(f"Child node {child_id} already exists")
        self.child_ids.append(child_id)

    def remove_child(self, child_id: str) -> None:
        """Remove a child id.

        Raises:
            ValueError: If the id is not a child of this node.
        """
        try:
            self.child_ids.remove(child_id)
        except ValueError:
            raise ValueError(f"Child node {child_id} not found") from None

    def set_parent(self, parent_id: str | None) -> None:
        """Set or clear the parent id.

        Raises:
            ValueError: If the id is malformed or is this node's own id.
        """
        if parent_id is not None:
            validate_identifier(parent_id, "Parent node ID")
            if parent_id == self.id:
                raise ValueError("Node cannot be its own parent")
        self.parent_id = parent_id

    def has_children(self) -> bool:
        return len(self.child_ids) > 0

    def has_parent(self) -> bool:
        return self.parent_id is not None

    @property
    def is_root(self) -> bool:
        """True if this node has no parent."""
        return self.parent_id is None

    @property
    def is_leaf(self) -> bool:
        """True if this node has no children."""
        return len(self.child_ids) == 0

    def validate(self) -> None:
        """Re-check every field constraint.

        Raises:
            ValueError: On the first violated constraint, including
                self-references and duplicate child ids.
        """
        validate_identifier(self.id, "Node ID")
        _validate_name(self.name)
        _validate_file_path(self.file_path)
        _validate_line_number(self.line_number)
        if self.code_snippet is not None:
            _validate_code_snippet(self.code_snippet)
        if self.description is not None:
            _validate_description(self.description)

        if self.parent_id is not None:
            validate_identifier(self.parent_id, "Parent node ID")
            if self.parent_id == self.id:
                raise ValueError("Node cannot be its own parent")

        for child_id in self.child_ids:
            validate_identifier(child_id, "Child node ID")
            if child_id == self.id:
                raise ValueError("Node cannot be its own child")

        if len(set(self.child_ids)) != len(self.child_ids):
            raise ValueError("Duplicate child IDs found")
