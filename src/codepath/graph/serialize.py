"""Graph Serialization - JSON wire format for CodeGraph and CodeNode.

Field names follow the persisted format (camelCase), timestamps are
ISO-8601 strings and ``nodes`` is a map keyed by node id. Loading always
re-validates; by default a graph that fails validation is repaired once
and validated again before it is returned.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from codepath.graph.CodeGraph import CodeGraph, GraphIntegrityError
from codepath.graph.CodeNode import CodeNode

logger = logging.getLogger(__name__)

_REQUIRED_NODE_FIELDS = ("id", "name", "filePath", "lineNumber")
_REQUIRED_GRAPH_FIELDS = ("id", "name")


def _format_timestamp(value: datetime) -> str:
    return value.isoformat()


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp (accepting a trailing ``Z``)."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return datetime.now(timezone.utc)
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Invalid timestamp: {value!r}") from None


def _require_fields(data: Any, fields: tuple[str, ...], what: str) -> None:
    if not isinstance(data, dict):
        raise ValueError(f"{what} data must be an object")
    for key in fields:
        if key not in data:
            raise ValueError(f"{what} data missing required field '{key}'")


def serialize_node(node: CodeNode) -> dict[str, Any]:
    """Serialize a CodeNode to a JSON-compatible dict.

    Every field is included; absent optional values are written as null.
    """
    return {
        "id": node.id,
        "name": node.name,
        "filePath": node.file_path,
        "fileName": node.file_name,
        "lineNumber": node.line_number,
        "codeSnippet": node.code_snippet,
        "codeHash": node.code_hash,
        "createdAt": _format_timestamp(node.created_at),
        "parentId": node.parent_id,
        "childIds": list(node.child_ids),
        "validationWarning": node.validation_warning,
        "description": node.description,
    }


def deserialize_node(data: dict[str, Any]) -> CodeNode:
    """Rebuild a CodeNode from its serialized form.

    Raises:
        ValueError: If a required field is missing or any field is invalid.
    """
    _require_fields(data, _REQUIRED_NODE_FIELDS, "Node")
    node = CodeNode(
        id=data["id"],
        name=data["name"],
        file_path=data["filePath"],
        line_number=data["lineNumber"],
        code_snippet=data.get("codeSnippet"),
        parent_id=data.get("parentId"),
        created_at=parse_timestamp(data.get("createdAt")),
        code_hash=data.get("codeHash"),
        file_name=data.get("fileName"),
        validation_warning=data.get("validationWarning") or None,
        description=data.get("description") or None,
    )
    node.child_ids = list(data.get("childIds") or [])
    node.validate()
    return node


def serialize_graph(graph: CodeGraph) -> dict[str, Any]:
    """Serialize a CodeGraph to a JSON-compatible dict."""
    return {
        "id": graph.id,
        "name": graph.name,
        "createdAt": _format_timestamp(graph.created_at),
        "updatedAt": _format_timestamp(graph.updated_at),
        "nodes": {node_id: serialize_node(node) for node_id, node in graph.nodes.items()},
        "rootNodes": list(graph.root_nodes),
        "currentNodeId": graph.current_node_id,
    }


def build_graph(data: dict[str, Any]) -> CodeGraph:
    """Rebuild a CodeGraph without checking its structure.

    Node fields are still validated; relationships are taken as stored,
    so the result may violate graph invariants.

    Raises:
        ValueError: If a field is missing or invalid.
    """
    _require_fields(data, _REQUIRED_GRAPH_FIELDS, "Graph")
    graph = CodeGraph(
        id=data["id"],
        name=data["name"],
        created_at=parse_timestamp(data.get("createdAt")),
        updated_at=parse_timestamp(data.get("updatedAt")),
    )

    raw_nodes = data.get("nodes") or {}
    if not isinstance(raw_nodes, dict):
        raise ValueError("Graph 'nodes' must be an object keyed by node id")
    for key, node_data in raw_nodes.items():
        node = deserialize_node(node_data)
        if key != node.id:
            raise ValueError(f"Node key {key} does not match node id {node.id}")
        graph.nodes[node.id] = node

    graph.root_nodes = list(data.get("rootNodes") or [])
    graph.current_node_id = data.get("currentNodeId") or None
    return graph


def deserialize_graph(data: dict[str, Any], strict: bool = False) -> CodeGraph:
    """Rebuild a CodeGraph from its serialized form.

    Args:
        data: Serialized graph dict.
        strict: If True, structural problems raise immediately. If False
            (default), the graph is repaired once and re-validated.

    Returns:
        A graph that passes ``validate()``.

    Raises:
        ValueError: If a field is missing or invalid.
        GraphIntegrityError: If the structure is broken (strict mode) or
            still broken after repair.
    """
    graph = build_graph(data)

    if strict:
        graph.validate()
        return graph

    try:
        graph.validate()
    except GraphIntegrityError as e:
        logger.warning("Graph %s failed validation, attempting repair: %s", graph.id, e)
        graph.repair()
        try:
            graph.validate()
        except GraphIntegrityError as repair_error:
            raise GraphIntegrityError(
                f"Graph validation failed even after repair: {repair_error}"
            ) from repair_error
        logger.info("Graph %s successfully repaired and validated", graph.id)

    return graph


def dumps_graph(graph: CodeGraph, indent: int | None = 2) -> str:
    """Serialize a graph to a JSON string."""
    return json.dumps(serialize_graph(graph), indent=indent, ensure_ascii=False)


def loads_graph(text: str, strict: bool = False) -> CodeGraph:
    """Parse a JSON string into a validated graph.

    Raises:
        ValueError: If the text is not valid JSON or the graph is invalid.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid graph JSON: {e}") from e
    return deserialize_graph(data, strict=strict)


__all__ = [
    "serialize_node",
    "deserialize_node",
    "serialize_graph",
    "build_graph",
    "deserialize_graph",
    "dumps_graph",
    "loads_graph",
    "parse_timestamp",
]
