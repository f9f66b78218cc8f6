"""Tests for graph/serialize.py - the JSON wire format."""

import json
from datetime import datetime, timezone

import pytest

from codepath.graph import CodeGraph, GraphIntegrityError
from codepath.graph.serialize import (
    build_graph,
    deserialize_graph,
    deserialize_node,
    dumps_graph,
    loads_graph,
    parse_timestamp,
    serialize_graph,
    serialize_node,
)


def _node_data(node_id, parent_id=None, child_ids=None, **extra):
    data = {
        "id": node_id,
        "name": f"Node {node_id}",
        "filePath": "src/app.py",
        "lineNumber": 3,
        "parentId": parent_id,
        "childIds": child_ids or [],
    }
    data.update(extra)
    return data


class TestNodeFormat:
    """Tests for node serialization."""

    def test_camel_case_keys_and_nulls(self, make_node):
        data = serialize_node(make_node("n1", file_path="src/app.py", line_number=3))
        assert data["filePath"] == "src/app.py"
        assert data["fileName"] == "app.py"
        assert data["lineNumber"] == 3
        assert data["codeSnippet"] is None
        assert data["codeHash"] is None
        assert data["parentId"] is None
        assert data["childIds"] == []
        assert data["validationWarning"] is None
        assert data["description"] is None
        assert isinstance(data["createdAt"], str)

    def test_round_trip_all_fields(self, make_node):
        node = make_node(
            "n1",
            code_snippet="return x",
            code_hash="abc123",
            parent_id="p1",
            validation_warning="File not found",
            description="first\nsecond",
        )
        node.child_ids = ["c1", "c2"]

        restored = deserialize_node(json.loads(json.dumps(serialize_node(node))))

        assert restored == node

    def test_missing_required_field(self):
        data = _node_data("n1")
        del data["lineNumber"]
        with pytest.raises(ValueError, match="lineNumber"):
            deserialize_node(data)

    def test_invalid_field_surfaces(self):
        with pytest.raises(ValueError, match="Line number"):
            deserialize_node(_node_data("n1", lineNumber=0))

    def test_duplicate_children_surface(self):
        with pytest.raises(ValueError, match="Duplicate child IDs"):
            deserialize_node(_node_data("n1", child_ids=["c", "c"]))


class TestGraphFormat:
    """Tests for graph serialization."""

    def test_shape(self, tree_graph):
        tree_graph.set_current_node("a")
        data = serialize_graph(tree_graph)
        assert set(data) == {
            "id",
            "name",
            "createdAt",
            "updatedAt",
            "nodes",
            "rootNodes",
            "currentNodeId",
        }
        assert list(data["nodes"]) == ["r1", "a", "a1", "a2", "b", "r2"]
        assert data["rootNodes"] == ["r1", "r2"]
        assert data["currentNodeId"] == "a"

    def test_round_trip(self, tree_graph):
        tree_graph.set_current_node("a2")
        restored = loads_graph(dumps_graph(tree_graph), strict=True)
        assert serialize_graph(restored) == serialize_graph(tree_graph)
        assert restored.created_at == tree_graph.created_at
        assert restored.updated_at == tree_graph.updated_at

    def test_node_key_must_match_id(self):
        data = {"id": "g", "name": "G", "nodes": {"other": _node_data("n1")}, "rootNodes": ["n1"]}
        with pytest.raises(ValueError, match="does not match"):
            deserialize_graph(data)

    def test_strict_raises_on_corruption(self):
        data = {
            "id": "g",
            "name": "G",
            "nodes": {"p": _node_data("p", child_ids=["ghost"])},
            "rootNodes": ["p"],
        }
        with pytest.raises(GraphIntegrityError, match="non-existent child ghost"):
            deserialize_graph(data, strict=True)

    def test_lenient_load_repairs(self):
        data = {
            "id": "g",
            "name": "G",
            "nodes": {
                "p": _node_data("p", child_ids=["ghost"]),
                "c": _node_data("c", parent_id="p"),
            },
            "rootNodes": ["p", "c"],
            "currentNodeId": "missing",
        }
        graph = deserialize_graph(data)
        graph.validate()
        assert graph.nodes["p"].child_ids == ["c"]
        assert graph.root_nodes == ["p"]
        assert graph.current_node_id is None

    def test_build_graph_keeps_structure_as_stored(self):
        data = {"id": "g", "name": "G", "nodes": {"p": _node_data("p")}, "rootNodes": []}
        graph = build_graph(data)
        assert graph.root_nodes == []
        with pytest.raises(GraphIntegrityError):
            graph.validate()

    def test_invalid_json(self):
        with pytest.raises(ValueError, match="Invalid graph JSON"):
            loads_graph("{not json")

    def test_nodes_must_be_object(self):
        with pytest.raises(ValueError, match="nodes"):
            deserialize_graph({"id": "g", "name": "G", "nodes": ["n1"]})

    def test_empty_graph(self):
        graph = deserialize_graph({"id": "g", "name": "G"})
        assert isinstance(graph, CodeGraph)
        assert graph.node_count() == 0


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    def test_zulu_suffix(self):
        parsed = parse_timestamp("2024-03-01T12:30:00.000Z")
        assert parsed == datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)

    def test_offset(self):
        parsed = parse_timestamp("2024-03-01T12:30:00+00:00")
        assert parsed.tzinfo is not None

    def test_missing_gives_now(self):
        assert isinstance(parse_timestamp(None), datetime)

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid timestamp"):
            parse_timestamp("yesterday")
