"""Tests for store.py - JSON graph files in the workspace."""

import json
import os

import pytest

from codepath.graph import CodeGraph
from codepath.store import CURRENT_GRAPH_FILE, GraphStore


class TestGraphStore:
    """Tests for GraphStore."""

    def test_save_and_load(self, store, tree_graph, tmp_path):
        path = store.save_graph(tree_graph)

        assert path == tmp_path / ".codepath" / "graphs" / "g1.json"
        loaded = store.load_graph("g1")
        assert loaded.root_nodes == ["r1", "r2"]
        assert loaded.nodes["a"].child_ids == ["a1", "a2"]

    def test_saved_file_is_wire_format(self, store, tree_graph):
        path = store.save_graph(tree_graph)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["id"] == "g1"
        assert data["rootNodes"] == ["r1", "r2"]
        assert data["nodes"]["a1"]["parentId"] == "a"

    def test_save_sets_current_graph(self, store, tree_graph):
        assert store.get_current_graph_id() is None
        store.save_graph(tree_graph)
        assert store.get_current_graph_id() == "g1"
        pointer = json.loads((store.graphs_dir / CURRENT_GRAPH_FILE).read_text())
        assert pointer == {"graphId": "g1"}

    def test_load_missing(self, store):
        with pytest.raises(FileNotFoundError, match="nope"):
            store.load_graph("nope")

    def test_invalid_graph_id(self, store):
        with pytest.raises(ValueError, match="Graph ID"):
            store.load_graph("../escape")

    def test_delete_clears_current(self, store, tree_graph):
        store.save_graph(tree_graph)
        store.delete_graph("g1")
        assert not store.has_graph("g1")
        assert store.get_current_graph_id() is None

    def test_delete_missing(self, store):
        with pytest.raises(FileNotFoundError):
            store.delete_graph("nope")

    def test_list_most_recent_first(self, store):
        older = CodeGraph(id="older", name="Older")
        newer = CodeGraph(id="newer", name="Newer")
        store.save_graph(older)
        store.save_graph(newer)
        # Force a distinct, later updated_at on the second graph
        data = json.loads(store.read_graph_text("newer"))
        data["updatedAt"] = "2999-01-01T00:00:00+00:00"
        (store.graphs_dir / "newer.json").write_text(json.dumps(data))

        summaries = store.list_graphs()

        assert [s.id for s in summaries] == ["newer", "older"]
        assert summaries[1].node_count == 0
        assert summaries[1].to_dict()["name"] == "Older"

    def test_list_skips_unreadable_files(self, store, tree_graph):
        store.save_graph(tree_graph)
        (store.graphs_dir / "broken.json").write_text("{not json")
        assert [s.id for s in store.list_graphs()] == ["g1"]

    def test_list_empty_workspace(self, store):
        assert store.list_graphs() == []

    def test_custom_directory(self, tmp_path, tree_graph):
        store = GraphStore(tmp_path, directory=".paths")
        path = store.save_graph(tree_graph)
        assert path.parent == tmp_path / ".paths" / "graphs"
        assert os.path.isfile(path)
