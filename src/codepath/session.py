"""Graph session - The single active graph and the operations on it.

A ``GraphSession`` ties the pieces together: a ``GraphStore`` for
persistence, a ``LocationValidator`` for anchors and a ``Navigator`` for
editor jumps. Every mutating operation saves the active graph.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from codepath.config import ConfigLoader, load_config
from codepath.graph.CodeGraph import CodeGraph, generate_graph_id
from codepath.graph.CodeNode import CodeNode, generate_node_id
from codepath.store import GraphStore, GraphSummary
from codepath.tracking.editor import CommandEditor, EditorSurface, RecordingEditor
from codepath.tracking.files import LocalFileSystem
from codepath.tracking.navigator import NavigationResult, Navigator
from codepath.tracking.validator import Confidence, LocationValidator, ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_WARNING = "Code snippet not found in file"

_EDITABLE_FIELDS = {"name", "file_path", "line_number", "code_snippet", "description"}
_EDITABLE_ATTRS = (
    "name",
    "file_path",
    "file_name",
    "line_number",
    "code_snippet",
    "code_hash",
    "description",
)


def apply_validation_warning(node: CodeNode, result: ValidationResult) -> bool:
    """Set or clear a node's validation warning from a verdict.

    Only a lost anchor (invalid with FAILED confidence) is warned about;
    any other verdict clears a previous warning.

    Returns:
        True if the node now carries a warning.
    """
    if not result.is_valid and result.confidence == Confidence.FAILED:
        node.validation_warning = result.reason or DEFAULT_WARNING
        return True
    node.validation_warning = None
    return False


class GraphSession:
    """Holds the active graph and persists every change to it.

    Args:
        store: Where graphs are saved.
        validator: Location validator (a local-disk one by default).
        navigator: Navigator (one sharing the validator by default).
        validate_on_load: Check node anchors whenever a graph is loaded.
    """

    def __init__(
        self,
        store: GraphStore,
        validator: LocationValidator | None = None,
        navigator: Navigator | None = None,
        validate_on_load: bool = True,
    ) -> None:
        self.store = store
        self.validator = (
            validator
            if validator is not None
            else LocationValidator(LocalFileSystem(store.workspace_root))
        )
        self.navigator = navigator if navigator is not None else Navigator(self.validator)
        self.validate_on_load = validate_on_load
        self._graph: CodeGraph | None = None

    @classmethod
    def from_config(
        cls, config: ConfigLoader, editor: EditorSurface | None = None
    ) -> GraphSession:
        """Build a session for the workspace a configuration belongs to.

        Args:
            config: Loaded configuration.
            editor: Editor surface; when None, ``editor.command`` selects a
                CommandEditor, or a RecordingEditor if it is empty.
        """
        root: Path = config.workspace_root
        validator = LocationValidator(
            LocalFileSystem(root),
            search_radius=int(config.get("tracking.search_radius", 20)),
            fuzzy_threshold=float(config.get("tracking.fuzzy_threshold", 0.8)),
            multiline_span=int(config.get("tracking.multiline_span", 8)),
            hash_length=int(config.get("tracking.hash_length", 16)),
        )
        if editor is None:
            command = config.get("editor.command", "")
            if command:
                editor = CommandEditor(command, config.get("editor.directory_command") or None)
            else:
                editor = RecordingEditor()
        return cls(
            GraphStore(root, config.get("storage.directory", ".codepath")),
            validator=validator,
            navigator=Navigator(validator, editor),
            validate_on_load=bool(config.get("tracking.validate_on_load", True)),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Graph lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def graph(self) -> CodeGraph | None:
        """The active graph, if any."""
        return self._graph

    def require_graph(self) -> CodeGraph:
        """Return the active graph.

        Raises:
            ValueError: If no graph is active.
        """
        if self._graph is None:
            raise ValueError("No active graph. Create or load a graph first.")
        return self._graph

    def create_graph(self, name: str | None = None) -> CodeGraph:
        """Create, save and activate a new empty graph."""
        if name is None:
            name = f"Graph {datetime.now().strftime('%Y-%m-%d %H:%M')}"
        graph = CodeGraph(id=generate_graph_id(), name=name)
        self.store.save_graph(graph)
        self._graph = graph
        logger.debug("Created graph %s (%s)", graph.id, graph.name)
        return graph

    def load_graph(self, graph_id: str) -> CodeGraph:
        """Load (repairing if needed) and activate a stored graph.

        Node anchors are checked when ``validate_on_load`` is set; lost
        anchors are flagged with ``validation_warning`` and never stop
        the load.

        Raises:
            FileNotFoundError: If the graph is not stored.
            ValueError: If the stored data is invalid beyond repair.
        """
        graph = self.store.load_graph(graph_id)
        if self.validate_on_load:
            self.validate_node_locations(graph)
        self._graph = graph
        return graph

    def load_last_used_graph(self) -> CodeGraph | None:
        """Activate the graph recorded as current, if it can still be loaded."""
        graph_id = self.store.get_current_graph_id()
        if graph_id is None:
            return None
        try:
            return self.load_graph(graph_id)
        except (FileNotFoundError, ValueError) as e:
            logger.warning("Could not load last used graph %s: %s", graph_id, e)
            return None

    def load_graph_or_last(self, graph_id: str | None = None) -> CodeGraph:
        """Load graph_id, or the last used graph when it is None.

        Raises:
            FileNotFoundError: If graph_id is not stored.
            ValueError: If no graph id is given and none was used before.
        """
        if graph_id is not None:
            return self.load_graph(graph_id)
        last_id = self.store.get_current_graph_id()
        if last_id is None:
            raise ValueError(
                f"No graph selected and no last used graph in {self.store.graphs_dir}"
            )
        return self.load_graph(last_id)

    def save_graph(self) -> Path:
        """Persist the active graph.

        Raises:
            ValueError: If no graph is active.
        """
        return self.store.save_graph(self.require_graph())

    def delete_graph(self, graph_id: str) -> None:
        """Delete a stored graph, deactivating it if it is the active one."""
        self.store.delete_graph(graph_id)
        if self._graph is not None and self._graph.id == graph_id:
            self._graph = None

    def list_graphs(self) -> list[GraphSummary]:
        return self.store.list_graphs()

    def validate_node_locations(self, graph: CodeGraph) -> int:
        """Check every anchored node in a graph and update its warning.

        Nodes without a snippet are left untouched.

        Returns:
            Number of nodes that now carry a warning.
        """
        warned = 0
        for node in graph.all_nodes():
            if not node.code_snippet:
                continue
            result = self.validator.validate_location(node)
            if apply_validation_warning(node, result):
                warned += 1
                logger.info("Node %s (%s): %s", node.id, node.name, node.validation_warning)
        if warned:
            logger.info("%d node(s) in graph %s have validation warnings", warned, graph.id)
        return warned

    # ─────────────────────────────────────────────────────────────────────────
    # Node operations
    # ─────────────────────────────────────────────────────────────────────────

    def _new_node(
        self, name: str, file_path: str, line_number: int, code_snippet: str | None
    ) -> CodeNode:
        # The live line wins over a caller-supplied snippet
        anchor = self.validator.read_anchor(file_path, line_number)
        code_hash: str | None = None
        if anchor is not None and anchor[0]:
            code_snippet, code_hash = anchor
        elif code_snippet:
            code_hash = self.validator.generate_code_hash(code_snippet)
        else:
            code_snippet = None
        return CodeNode(
            id=generate_node_id(),
            name=name,
            file_path=file_path,
            line_number=line_number,
            code_snippet=code_snippet,
            code_hash=code_hash,
        )

    def _commit(self, graph: CodeGraph, current_id: str | None) -> None:
        graph.set_current_node(current_id)
        entry = graph.mutation_log.last()
        if entry is not None:
            logger.debug("Saving graph %s after %s", graph.id, entry)
        self.store.save_graph(graph)

    def create_node(
        self, name: str, file_path: str, line_number: int, code_snippet: str | None = None
    ) -> CodeNode:
        """Add a new root node, creating a graph first if none is active."""
        graph = self._graph if self._graph is not None else self.create_graph()
        node = self._new_node(name, file_path, line_number, code_snippet)
        graph.add_node(node)
        self._commit(graph, node.id)
        return node

    def create_child_node(
        self,
        parent_id: str,
        name: str,
        file_path: str,
        line_number: int,
        code_snippet: str | None = None,
    ) -> CodeNode:
        """Add a new node as the last child of parent_id.

        Raises:
            KeyError: If the parent is not in the active graph.
        """
        graph = self.require_graph()
        if not graph.has_node(parent_id):
            raise KeyError(f"Parent node '{parent_id}' not found")
        node = self._new_node(name, file_path, line_number, code_snippet)
        graph.add_node(node)
        graph.set_parent_child(parent_id, node.id)
        self._commit(graph, node.id)
        return node

    def create_parent_node(
        self,
        child_id: str,
        name: str,
        file_path: str,
        line_number: int,
        code_snippet: str | None = None,
    ) -> CodeNode:
        """Add a new node above child_id.

        A root child is simply placed under the new node. A child that
        already has a parent is forked: a copy of it moves under the new
        node and takes over its children, while the original stays where
        it was as a leaf.

        Raises:
            KeyError: If the child is not in the active graph.
        """
        graph = self.require_graph()
        child = graph.get_node(child_id)
        if child is None:
            raise KeyError(f"Child node '{child_id}' not found")

        parent = self._new_node(name, file_path, line_number, code_snippet)
        graph.add_node(parent)

        if child.parent_id is None:
            graph.set_parent_child(parent.id, child_id)
        else:
            fork = CodeNode(
                id=generate_node_id(),
                name=child.name,
                file_path=child.file_path,
                line_number=child.line_number,
                code_snippet=child.code_snippet,
                code_hash=child.code_hash,
                file_name=child.file_name,
                description=child.description,
            )
            graph.add_node(fork)
            for grandchild_id in list(child.child_ids):
                graph.set_parent_child(fork.id, grandchild_id)
            graph.set_parent_child(parent.id, fork.id)

        self._commit(graph, parent.id)
        return parent

    def update_node(self, node_id: str, **updates: Any) -> CodeNode:
        """Update node fields and re-check its anchor.

        Accepted keys: ``name``, ``file_path``, ``line_number``,
        ``code_snippet``, ``description``. The fingerprint follows the
        snippet.

        Raises:
            KeyError: If the node is not in the active graph.
            ValueError: On an unknown field or an invalid value.
        """
        graph = self.require_graph()
        node = graph.get_node(node_id)
        if node is None:
            raise KeyError(f"Node '{node_id}' not found")

        unknown = set(updates) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown node field(s): {', '.join(sorted(unknown))}")

        # Updaters run on a draft so a rejected field leaves the node untouched
        draft = copy.deepcopy(node)
        if "name" in updates:
            draft.update_name(updates["name"])
        if "file_path" in updates:
            draft.update_file_path(updates["file_path"])
        if "line_number" in updates:
            draft.update_line_number(updates["line_number"])
        if "code_snippet" in updates:
            snippet = updates["code_snippet"]
            draft.update_code_snippet(snippet)
            draft.code_hash = self.validator.generate_code_hash(snippet) if snippet else None
        if "description" in updates:
            draft.update_description(updates["description"])
        for attr in _EDITABLE_ATTRS:
            setattr(node, attr, getattr(draft, attr))

        if node.code_snippet:
            apply_validation_warning(node, self.validator.validate_location(node))
        else:
            node.validation_warning = None

        self.store.save_graph(graph)
        return node

    def delete_node(self, node_id: str) -> None:
        """Remove a node; its children move up to its parent."""
        graph = self.require_graph()
        graph.remove_node(node_id)
        self.store.save_graph(graph)

    def delete_node_with_children(self, node_id: str) -> int:
        """Remove a node and its whole subtree.

        Returns:
            Number of nodes removed.
        """
        graph = self.require_graph()
        descendants = graph.get_descendants(node_id)
        for descendant in reversed(descendants):
            graph.remove_node(descendant.id)
        graph.remove_node(node_id)
        self.store.save_graph(graph)
        return len(descendants) + 1

    def set_current_node(self, node_id: str | None) -> None:
        graph = self.require_graph()
        self._commit(graph, node_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Tracking
    # ─────────────────────────────────────────────────────────────────────────

    def validate_node_location(self, node_id: str) -> ValidationResult:
        """Validate one node of the active graph.

        Raises:
            KeyError: If the node is not in the active graph.
        """
        node = self.require_graph().get_node(node_id)
        if node is None:
            raise KeyError(f"Node '{node_id}' not found")
        return self.validator.validate_location(node)

    def validate_all_nodes(self) -> dict[str, ValidationResult]:
        """Validate every node of the active graph, one after another."""
        graph = self.require_graph()
        return {node.id: self.validator.validate_location(node) for node in graph.all_nodes()}

    def relocate_node(self, node_id: str, file_path: str, line_number: int) -> CodeNode:
        """Move a node's anchor and take the snippet from the new line.

        Raises:
            KeyError: If the node is not in the active graph.
            ValueError: If the path or line number is invalid.
        """
        graph = self.require_graph()
        node = graph.get_node(node_id)
        if node is None:
            raise KeyError(f"Node '{node_id}' not found")
        self.validator.update_node_location(node, file_path, line_number)
        node.validation_warning = None
        self.store.save_graph(graph)
        return node

    def apply_suggestions(self) -> list[CodeNode]:
        """Move every relocatable node to its suggested location.

        Nodes whose verdict is FAILED, or that carry no suggestion, are
        left as they are.

        Returns:
            The nodes that were moved.
        """
        graph = self.require_graph()
        moved: list[CodeNode] = []
        for node in graph.all_nodes():
            result = self.validator.validate_location(node)
            location = result.suggested_location
            if result.is_valid or location is None or result.confidence == Confidence.FAILED:
                continue
            self.validator.update_node_location(node, location.path, location.line)
            node.validation_warning = None
            moved.append(node)
        if moved:
            self.store.save_graph(graph)
        return moved

    def navigate_to_node(self, node_id: str) -> NavigationResult:
        """Jump to a node and make it the current node.

        Raises:
            KeyError: If the node is not in the active graph.
        """
        graph = self.require_graph()
        node = graph.get_node(node_id)
        if node is None:
            raise KeyError(f"Node '{node_id}' not found")
        result = self.navigator.navigate_to_node(node)
        if result.success and graph.current_node_id != node_id:
            self._commit(graph, node_id)
        return result

    # ─────────────────────────────────────────────────────────────────────────
    # Search
    # ─────────────────────────────────────────────────────────────────────────

    def find_nodes_by_name(self, name: str) -> list[CodeNode]:
        return self.require_graph().find_nodes_by_name(name)

    def find_nodes_by_file_path(self, file_path: str) -> list[CodeNode]:
        return self.require_graph().find_nodes_by_file_path(file_path)

    def find_nodes_by_location(self, file_path: str, line_number: int) -> list[CodeNode]:
        return self.require_graph().find_nodes_by_location(file_path, line_number)


def open_session(
    config_path: Path | None = None,
    workspace: Path | None = None,
    editor: EditorSurface | None = None,
) -> GraphSession:
    """Load configuration for a workspace and build a session on it.

    Args:
        config_path: Explicit config file (discovered when None).
        workspace: Directory to start discovery from (default: cwd).
        editor: Editor surface override.
    """
    config = load_config(config_path, start=workspace)
    return GraphSession.from_config(config, editor=editor)
