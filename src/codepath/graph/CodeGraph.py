"""CodeGraph - Owned collection of CodeNodes forming a forest of trees.

The graph is the single owner of its nodes (an id-keyed arena) and the
only place where parent/child links are changed, so both directions of
every edge stay consistent. ``root_nodes`` and ``current_node_id`` are
derived views; ``repair()`` rebuilds them after untrusted loads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator

from codepath.graph.CodeNode import CodeNode, generate_id, validate_identifier
from codepath.graph.mutations import MutationEntry, MutationLog, RepairAction

logger = logging.getLogger(__name__)

MAX_GRAPH_NAME_LENGTH = 100


class GraphIntegrityError(ValueError):
    """Raised when a graph's structural invariants do not hold."""


def generate_graph_id() -> str:
    """Generate a unique graph id."""
    return generate_id("graph")


def _validate_graph_name(name: object) -> None:
    if not name or not isinstance(name, str):
        raise ValueError("Graph name must be a non-empty string")
    if not name.strip():
        raise ValueError("Graph name cannot be empty or whitespace only")
    if len(name) > MAX_GRAPH_NAME_LENGTH:
        raise ValueError(f"Graph name cannot exceed {MAX_GRAPH_NAME_LENGTH} characters")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CodeGraph:
    """A named forest of code location markers.

    Attributes:
        id: Graph identifier (same character rules as node ids).
        name: Display name (1..100 chars).
        created_at: Creation timestamp.
        updated_at: Timestamp of the last mutation.
        nodes: Node id -> CodeNode, in insertion order.
        root_nodes: Ordered ids of nodes without a parent.
        current_node_id: The active node, or None.
    """

    id: str
    name: str
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    nodes: dict[str, CodeNode] = field(default_factory=dict, init=False)
    root_nodes: list[str] = field(default_factory=list, init=False)
    current_node_id: str | None = field(default=None, init=False)

    _mutation_log: MutationLog = field(
        default_factory=MutationLog, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        validate_identifier(self.id, "Graph ID")
        _validate_graph_name(self.name)

    @property
    def mutation_log(self) -> MutationLog:
        return self._mutation_log

    def update_name(self, new_name: str) -> None:
        _validate_graph_name(new_name)
        self.name = new_name
        self._touch()

    def _touch(self) -> None:
        self.updated_at = _now()

    def _require(self, node_id: str, role: str = "Node") -> CodeNode:
        node = self.nodes.get(node_id)
        if node is None:
            raise KeyError(f"{role} '{node_id}' not found")
        return node

    # ─────────────────────────────────────────────────────────────────────────
    # Lookup API
    # ─────────────────────────────────────────────────────────────────────────

    def get_node(self, node_id: str) -> CodeNode | None:
        return self.nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def all_nodes(self) -> Iterator[CodeNode]:
        """Iterate all nodes in insertion order."""
        yield from self.nodes.values()

    def node_count(self) -> int:
        return len(self.nodes)

    def get_root_nodes(self) -> list[CodeNode]:
        """Return root nodes in root-list order, skipping unresolved ids."""
        return [self.nodes[i] for i in self.root_nodes if i in self.nodes]

    def get_children(self, node_id: str) -> list[CodeNode]:
        """Return the children of a node in order.

        Raises:
            KeyError: If node_id is not found.
        """
        node = self._require(node_id)
        return [self.nodes[c] for c in node.child_ids if c in self.nodes]

    def get_parent(self, node_id: str) -> CodeNode | None:
        """Return the parent of a node, or None for roots.

        Raises:
            KeyError: If node_id is not found.
        """
        node = self._require(node_id)
        if node.parent_id is None:
            return None
        return self.nodes.get(node.parent_id)

    def get_descendants(self, node_id: str) -> list[CodeNode]:
        """Return every node below node_id, depth-first pre-order.

        Raises:
            KeyError: If node_id is not found.
        """
        node = self._require(node_id)
        descendants: list[CodeNode] = []
        visited: set[str] = {node_id}
        stack = list(reversed(node.child_ids))
        while stack:
            current_id = stack.pop()
            if current_id in visited:
                continue
            visited.add(current_id)
            current = self.nodes.get(current_id)
            if current is None:
                continue
            descendants.append(current)
            stack.extend(reversed(current.child_ids))
        return descendants

    def get_ancestors(self, node_id: str) -> list[CodeNode]:
        """Return the parent chain of a node, nearest first.

        Raises:
            KeyError: If node_id is not found.
        """
        node = self._require(node_id)
        ancestors: list[CodeNode] = []
        seen: set[str] = {node_id}
        current = node
        while current.parent_id is not None and current.parent_id not in seen:
            parent = self.nodes.get(current.parent_id)
            if parent is None:
                break
            ancestors.append(parent)
            seen.add(parent.id)
            current = parent
        return ancestors

    def get_depth(self, node_id: str) -> int:
        """Depth from root (0 for roots)."""
        return len(self.get_ancestors(node_id))

    def max_depth(self) -> int:
        """Deepest node depth in the graph (0 for an empty graph)."""
        return max((self.get_depth(node_id) for node_id in self.nodes), default=0)

    # ─────────────────────────────────────────────────────────────────────────
    # Search API
    # ─────────────────────────────────────────────────────────────────────────

    def find_nodes_by_name(self, name: str) -> list[CodeNode]:
        """Case-insensitive substring match on node names."""
        term = name.lower()
        return [n for n in self.nodes.values() if term in n.name.lower()]

    def find_nodes_by_file_path(self, file_path: str) -> list[CodeNode]:
        return [n for n in self.nodes.values() if n.file_path == file_path]

    def find_nodes_by_location(self, file_path: str, line_number: int) -> list[CodeNode]:
        return [
            n
            for n in self.nodes.values()
            if n.file_path == file_path and n.line_number == line_number
        ]

    # ─────────────────────────────────────────────────────────────────────────
    # Current node
    # ─────────────────────────────────────────────────────────────────────────

    def set_current_node(self, node_id: str | None) -> None:
        """Set or clear the active node.

        Raises:
            KeyError: If node_id is not None and not found.
        """
        if node_id is not None:
            self._require(node_id)
        self.current_node_id = node_id
        self._touch()

    def get_current_node(self) -> CodeNode | None:
        if self.current_node_id is None:
            return None
        return self.nodes.get(self.current_node_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Mutation API
    # ─────────────────────────────────────────────────────────────────────────

    def add_node(self, node: CodeNode) -> MutationEntry:
        """Add a node to the graph.

        A node without a parent becomes a root. A node that already names
        an existing parent is appended to that parent's children.

        Returns:
            MutationEntry recording the operation.

        Raises:
            ValueError: If the id already exists, the node is invalid, or
                it already lists children.
            KeyError: If the node names a parent that is not in the graph.
        """
        if node.id in self.nodes:
            raise ValueError(f"Node with ID {node.id} already exists in the graph")
        node.validate()
        if node.child_ids:
            raise ValueError(
                f"Node {node.id} already lists children; link them with set_parent_child"
            )

        parent = None
        if node.parent_id is not None:
            parent = self._require(node.parent_id, "Parent node")

        self.nodes[node.id] = node
        if parent is None:
            self.root_nodes.append(node.id)
        elif node.id not in parent.child_ids:
            parent.add_child(node.id)

        entry = MutationEntry(
            operation="add_node",
            target_id=node.id,
            before_state={},
            after_state={"parent_id": node.parent_id},
        )
        self._mutation_log.append(entry)
        self._touch()
        return entry

    def remove_node(self, node_id: str) -> MutationEntry:
        """Remove a node, handing its children to its parent.

        Children take the removed node's place, in order, in the parent's
        child list (or in the root list when the node was a root).

        Returns:
            MutationEntry recording the operation.

        Raises:
            KeyError: If node_id is not found.
        """
        node = self._require(node_id)
        parent = self.nodes.get(node.parent_id) if node.parent_id else None
        new_parent_id = parent.id if parent is not None else None
        orphans = [c for c in node.child_ids if c in self.nodes]

        entry = MutationEntry(
            operation="remove_node",
            target_id=node_id,
            before_state={"parent_id": node.parent_id, "child_ids": list(node.child_ids)},
            after_state={"reparented_to": new_parent_id},
        )

        for child_id in orphans:
            self.nodes[child_id].parent_id = new_parent_id

        if parent is not None:
            siblings = parent.child_ids
            index = siblings.index(node_id) if node_id in siblings else len(siblings)
            remaining = [c for c in siblings if c != node_id and c not in orphans]
            index = min(index, len(remaining))
            parent.child_ids[:] = remaining[:index] + orphans + remaining[index:]
            if node_id in self.root_nodes:
                self.root_nodes.remove(node_id)
        else:
            roots = self.root_nodes
            index = roots.index(node_id) if node_id in roots else len(roots)
            remaining = [r for r in roots if r != node_id and r not in orphans]
            index = min(index, len(remaining))
            self.root_nodes[:] = remaining[:index] + orphans + remaining[index:]

        if self.current_node_id == node_id:
            self.current_node_id = None

        del self.nodes[node_id]
        self._mutation_log.append(entry)
        self._touch()
        return entry

    def would_create_cycle(self, parent_id: str, child_id: str) -> bool:
        """True if making child_id a child of parent_id closes a loop.

        Simulates the edge by walking up from the proposed parent: the
        edge is cyclic when child_id is the parent itself or one of its
        ancestors.
        """
        seen: set[str] = set()
        current_id: str | None = parent_id
        while current_id is not None and current_id not in seen:
            if current_id == child_id:
                return True
            seen.add(current_id)
            current = self.nodes.get(current_id)
            current_id = current.parent_id if current is not None else None
        return False

    def set_parent_child(self, parent_id: str, child_id: str) -> MutationEntry:
        """Make child_id a child of parent_id, detaching it from any old parent.

        All checks run before anything is changed, so a rejected call
        leaves the graph untouched.

        Returns:
            MutationEntry recording the operation.

        Raises:
            ValueError: On self-parenting or if the edge would create a cycle.
            KeyError: If either node is not found.
        """
        if parent_id == child_id:
            raise ValueError("Node cannot be its own parent")
        parent = self._require(parent_id, "Parent node")
        child = self._require(child_id, "Child node")

        if self.would_create_cycle(parent_id, child_id):
            raise ValueError(
                f"Cannot make {child_id} a child of {parent_id}: "
                "would create a cycle (cycle prevention)"
            )

        entry = MutationEntry(
            operation="set_parent_child",
            target_id=child_id,
            before_state={"parent_id": child.parent_id},
            after_state={"parent_id": parent_id},
        )

        if child.parent_id != parent_id:
            old_parent = self.nodes.get(child.parent_id) if child.parent_id else None
            if old_parent is not None and child_id in old_parent.child_ids:
                old_parent.remove_child(child_id)
            if child_id in self.root_nodes:
                self.root_nodes.remove(child_id)

        if child_id not in parent.child_ids:
            parent.add_child(child_id)
        child.set_parent(parent_id)

        self._mutation_log.append(entry)
        self._touch()
        return entry

    def remove_parent_child(self, parent_id: str, child_id: str) -> MutationEntry:
        """Unlink a child from its parent; the child becomes a root.

        Returns:
            MutationEntry recording the operation.

        Raises:
            KeyError: If either node is not found.
            ValueError: If the two nodes are not linked.
        """
        parent = self._require(parent_id, "Parent node")
        child = self._require(child_id, "Child node")
        if child.parent_id != parent_id:
            raise ValueError(f"Node {child_id} is not a child of node {parent_id}")

        if child_id in parent.child_ids:
            parent.remove_child(child_id)
        child.set_parent(None)
        if child_id not in self.root_nodes:
            self.root_nodes.append(child_id)

        entry = MutationEntry(
            operation="remove_parent_child",
            target_id=child_id,
            before_state={"parent_id": parent_id},
            after_state={"parent_id": None},
        )
        self._mutation_log.append(entry)
        self._touch()
        return entry

    def clear(self) -> None:
        """Remove every node."""
        self.nodes.clear()
        self.root_nodes.clear()
        self.current_node_id = None
        self._mutation_log.clear()
        self._touch()

    # ─────────────────────────────────────────────────────────────────────────
    # Integrity
    # ─────────────────────────────────────────────────────────────────────────

    def validate(self) -> None:
        """Check every structural invariant.

        Raises:
            ValueError: If a graph or node field is invalid.
            GraphIntegrityError: Describing the first broken invariant.
        """
        validate_identifier(self.id, "Graph ID")
        _validate_graph_name(self.name)
        for node in self.nodes.values():
            node.validate()

        root_set = set(self.root_nodes)
        if len(root_set) != len(self.root_nodes):
            raise GraphIntegrityError("Root nodes list contains duplicate ids")

        for root_id in self.root_nodes:
            if root_id not in self.nodes:
                raise GraphIntegrityError(f"Root node {root_id} not found in nodes collection")

        for root_id in self.root_nodes:
            if self.nodes[root_id].parent_id is not None:
                raise GraphIntegrityError(f"Root node {root_id} has a parent, but should not")

        for node in self.nodes.values():
            if node.id not in root_set and node.parent_id is None:
                raise GraphIntegrityError(
                    f"Node {node.id} has no parent but is not in root nodes list"
                )

        for node in self.nodes.values():
            if node.parent_id is not None and node.parent_id not in self.nodes:
                raise GraphIntegrityError(
                    f"Node {node.id} references non-existent parent {node.parent_id}"
                )

        for node in self.nodes.values():
            for child_id in node.child_ids:
                if child_id not in self.nodes:
                    raise GraphIntegrityError(
                        f"Node {node.id} references non-existent child {child_id}"
                    )

        for node in self.nodes.values():
            if node.parent_id is not None:
                if node.id not in self.nodes[node.parent_id].child_ids:
                    raise GraphIntegrityError(
                        f"Parent node {node.parent_id} does not list {node.id} as a child"
                    )
            for child_id in node.child_ids:
                if self.nodes[child_id].parent_id != node.id:
                    raise GraphIntegrityError(
                        f"Child node {child_id} does not reference {node.id} as parent"
                    )

        self._detect_cycles()

        if self.current_node_id is not None and self.current_node_id not in self.nodes:
            raise GraphIntegrityError(
                f"Current node {self.current_node_id} not found in nodes collection"
            )

    def _detect_cycles(self) -> None:
        """Three-colour DFS over child edges across the whole node set."""
        white, gray, black = 0, 1, 2
        color = dict.fromkeys(self.nodes, white)

        for start in self.nodes:
            if color[start] != white:
                continue
            color[start] = gray
            stack: list[tuple[str, Iterator[str]]] = [(start, iter(self.nodes[start].child_ids))]
            while stack:
                node_id, children = stack[-1]
                child_id = next(children, None)
                if child_id is None:
                    color[node_id] = black
                    stack.pop()
                    continue
                if child_id not in color:
                    continue
                if color[child_id] == gray:
                    raise GraphIntegrityError(
                        f"Cycle detected in graph structure at node {child_id}"
                    )
                if color[child_id] == white:
                    color[child_id] = gray
                    stack.append((child_id, iter(self.nodes[child_id].child_ids)))

    def repair(self) -> list[RepairAction]:
        """Heal structural corruption in place. Never raises.

        A node's ``parent_id`` is treated as authoritative: dangling or
        mismatched child entries are dropped, missing back-references are
        added, cycles are broken by detaching the node that closes them,
        and the root list is rebuilt from the parentless nodes (keeping
        the existing order where possible).

        Returns:
            The corrections applied, in order; empty if none were needed.
        """
        actions: list[RepairAction] = []

        def record(action: str, node_id: str, detail: str | None = None) -> None:
            repair = RepairAction(action, node_id, detail)
            logger.info("Repair: %s", repair)
            actions.append(repair)

        # Dangling, self and duplicate child references
        for node in self.nodes.values():
            kept: list[str] = []
            for child_id in node.child_ids:
                if child_id not in self.nodes or child_id == node.id or child_id in kept:
                    record("drop_child", node.id, child_id)
                else:
                    kept.append(child_id)
            node.child_ids[:] = kept

        # Dangling and self parent references
        for node in self.nodes.values():
            if node.parent_id is not None and (
                node.parent_id not in self.nodes or node.parent_id == node.id
            ):
                record("clear_parent", node.id, node.parent_id)
                node.parent_id = None

        # Child entries the child does not agree with
        for node in self.nodes.values():
            kept = [c for c in node.child_ids if self.nodes[c].parent_id == node.id]
            for child_id in node.child_ids:
                if child_id not in kept:
                    record("drop_child", node.id, child_id)
            node.child_ids[:] = kept

        # Missing back-references
        for node in self.nodes.values():
            if node.parent_id is not None:
                parent = self.nodes[node.parent_id]
                if node.id not in parent.child_ids:
                    record("add_child", parent.id, node.id)
                    parent.child_ids.append(node.id)

        # Parent-chain cycles
        state = dict.fromkeys(self.nodes, 0)
        for start in self.nodes:
            path: list[str] = []
            current_id: str | None = start
            while current_id is not None and state[current_id] == 0:
                state[current_id] = 1
                path.append(current_id)
                current_id = self.nodes[current_id].parent_id
            if current_id is not None and state[current_id] == 1:
                looped = self.nodes[current_id]
                old_parent = self.nodes[looped.parent_id]
                record("break_cycle", looped.id, old_parent.id)
                if looped.id in old_parent.child_ids:
                    old_parent.child_ids.remove(looped.id)
                looped.parent_id = None
            for path_id in path:
                state[path_id] = 2

        # Root list rebuilt from parentless nodes
        roots: list[str] = []
        for root_id in self.root_nodes:
            node = self.nodes.get(root_id)
            if node is None or node.parent_id is not None or root_id in roots:
                record("drop_root", root_id)
                continue
            roots.append(root_id)
        for node in self.nodes.values():
            if node.parent_id is None and node.id not in roots:
                record("add_root", node.id)
                roots.append(node.id)
        self.root_nodes[:] = roots

        if self.current_node_id is not None and self.current_node_id not in self.nodes:
            record("clear_current", self.current_node_id)
            self.current_node_id = None

        logger.info("Repair of graph %s complete: %d repairs made", self.id, len(actions))
        if actions:
            self._touch()
        return actions


__all__ = ["CodeGraph", "GraphIntegrityError", "generate_graph_id"]
