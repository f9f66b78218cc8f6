"""Graph store - JSON files under ``<workspace>/.codepath/graphs``.

Each graph is saved as ``<graph id>.json`` in the serialized wire format.
``current-graph.json`` records the id of the graph saved or loaded last.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from codepath.graph.CodeGraph import CodeGraph
from codepath.graph.CodeNode import validate_identifier
from codepath.graph.serialize import dumps_graph, loads_graph, parse_timestamp

logger = logging.getLogger(__name__)

CURRENT_GRAPH_FILE = "current-graph.json"


@dataclass(frozen=True)
class GraphSummary:
    """Listing entry for a stored graph."""

    id: str
    name: str
    created_at: datetime
    updated_at: datetime
    node_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "nodeCount": self.node_count,
        }


class GraphStore:
    """Reads and writes graphs as JSON files in a workspace.

    Args:
        workspace_root: Workspace directory.
        directory: Storage directory name relative to the workspace.
    """

    def __init__(self, workspace_root: Path, directory: str = ".codepath") -> None:
        self.workspace_root = workspace_root
        self.base_dir = workspace_root / directory
        self.graphs_dir = self.base_dir / "graphs"

    def ensure_directories(self) -> None:
        self.graphs_dir.mkdir(parents=True, exist_ok=True)

    def _graph_file(self, graph_id: str) -> Path:
        validate_identifier(graph_id, "Graph ID")
        return self.graphs_dir / f"{graph_id}.json"

    def save_graph(self, graph: CodeGraph) -> Path:
        """Write a graph and mark it as current.

        Returns:
            The path written.
        """
        self.ensure_directories()
        path = self._graph_file(graph.id)
        path.write_text(dumps_graph(graph), encoding="utf-8")
        self._set_current_graph_id(graph.id)
        return path

    def read_graph_text(self, graph_id: str) -> str:
        """Return the stored JSON text of a graph.

        Raises:
            FileNotFoundError: If no graph with that id is stored.
        """
        path = self._graph_file(graph_id)
        if not path.is_file():
            raise FileNotFoundError(f"Graph '{graph_id}' not found in {self.graphs_dir}")
        return path.read_text(encoding="utf-8")

    def load_graph(self, graph_id: str, strict: bool = False) -> CodeGraph:
        """Read a graph, validating (and by default repairing) it.

        Raises:
            FileNotFoundError: If no graph with that id is stored.
            ValueError: If the stored data is invalid.
        """
        graph = loads_graph(self.read_graph_text(graph_id), strict=strict)
        self._set_current_graph_id(graph.id)
        return graph

    def delete_graph(self, graph_id: str) -> None:
        """Delete a stored graph.

        Raises:
            FileNotFoundError: If no graph with that id is stored.
        """
        path = self._graph_file(graph_id)
        if not path.is_file():
            raise FileNotFoundError(f"Graph '{graph_id}' not found in {self.graphs_dir}")
        path.unlink()
        if self.get_current_graph_id() == graph_id:
            (self.graphs_dir / CURRENT_GRAPH_FILE).unlink(missing_ok=True)

    def has_graph(self, graph_id: str) -> bool:
        return self._graph_file(graph_id).is_file()

    def list_graphs(self) -> list[GraphSummary]:
        """Summaries of every readable stored graph, most recently updated first."""
        if not self.graphs_dir.is_dir():
            return []

        summaries: list[GraphSummary] = []
        for path in sorted(self.graphs_dir.glob("*.json")):
            if path.name == CURRENT_GRAPH_FILE:
                continue
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                summaries.append(
                    GraphSummary(
                        id=data["id"],
                        name=data["name"],
                        created_at=parse_timestamp(data.get("createdAt")),
                        updated_at=parse_timestamp(data.get("updatedAt")),
                        node_count=len(data.get("nodes") or {}),
                    )
                )
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning("Skipping unreadable graph file %s: %s", path, e)
        summaries.sort(key=lambda s: s.updated_at.timestamp(), reverse=True)
        return summaries

    def get_current_graph_id(self) -> str | None:
        path = self.graphs_dir / CURRENT_GRAPH_FILE
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable %s: %s", path, e)
            return None
        graph_id = data.get("graphId") if isinstance(data, dict) else None
        return graph_id if isinstance(graph_id, str) and graph_id else None

    def _set_current_graph_id(self, graph_id: str) -> None:
        self.ensure_directories()
        path = self.graphs_dir / CURRENT_GRAPH_FILE
        path.write_text(json.dumps({"graphId": graph_id}, indent=2), encoding="utf-8")
