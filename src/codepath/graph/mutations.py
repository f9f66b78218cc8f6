"""Mutation and repair records for CodeGraph operations.

This module provides dataclasses for tracking structural changes made
to a graph: explicit mutations (add/remove/link) and the corrections
applied by ``CodeGraph.repair()``.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

DEFAULT_MAX_ENTRIES = 1000


@dataclass(frozen=True)
class RepairAction:
    """A single correction applied while repairing a graph.

    Attributes:
        action: What was done ("drop_child", "clear_parent", "add_root", ...).
        node_id: The node that was changed (or the id that was dropped).
        detail: The reference that was removed or added, if any.
    """

    action: str
    node_id: str
    detail: str | None = None

    def __str__(self) -> str:
        """Human-readable representation."""
        if self.detail:
            return f"{self.action}({self.node_id}: {self.detail})"
        return f"{self.action}({self.node_id})"


@dataclass
class MutationEntry:
    """Single mutation operation record.

    Attributes:
        operation: Operation type (e.g., "add_node", "set_parent_child").
        target_id: Primary target of the mutation.
        before_state: Relationship state before the mutation.
        after_state: Relationship state after the mutation.
        id: Unique mutation ID (UUID4 hex).
        timestamp: When the mutation occurred.
    """

    operation: str
    target_id: str
    before_state: dict[str, Any]
    after_state: dict[str, Any]
    id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        """Human-readable representation."""
        return f"[{self.id[:8]}] {self.operation}({self.target_id})"


class MutationLog:
    """Append-only mutation history, in chronological order.

    Only the most recent ``max_entries`` entries are kept.

    Example:
        >>> log = MutationLog()
        >>> log.append(MutationEntry("add_node", "n1", {}, {"parent_id": None}))
        >>> len(log)
        1
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._entries: deque[MutationEntry] = deque(maxlen=max_entries)

    def append(self, entry: MutationEntry) -> None:
        self._entries.append(entry)

    def iter_entries(self) -> Iterator[MutationEntry]:
        """Iterate over all entries in chronological order."""
        yield from self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def last(self) -> MutationEntry | None:
        """Return the most recent entry, or None if empty."""
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["MutationEntry", "MutationLog", "RepairAction"]
