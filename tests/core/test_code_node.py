"""Tests for graph/CodeNode.py - node construction, updates and validation."""

import re
from datetime import datetime

import pytest

from codepath.graph import CodeNode, SourceLocation, generate_node_id


class TestConstruction:
    """Tests for eager field validation on construction."""

    def test_minimal_node(self, make_node):
        node = make_node("n1", file_path="src/app/main.py", line_number=12)
        assert node.id == "n1"
        assert node.file_name == "main.py"
        assert node.parent_id is None
        assert node.child_ids == []
        assert isinstance(node.created_at, datetime)

    def test_file_name_from_windows_path(self, make_node):
        node = make_node(file_path="C:\\work\\src\\util.py")
        assert node.file_name == "util.py"

    def test_explicit_file_name_kept(self, make_node):
        node = make_node(file_name="custom.py")
        assert node.file_name == "custom.py"

    @pytest.mark.parametrize("bad_id", ["", "   ", "has space", "semi;colon", "dot.id"])
    def test_invalid_id(self, make_node, bad_id):
        with pytest.raises(ValueError, match="Node ID"):
            make_node(bad_id)

    def test_name_required(self):
        with pytest.raises(ValueError, match="Node name"):
            CodeNode(id="n1", name="   ", file_path="a.py", line_number=1)

    def test_name_too_long(self, make_node):
        with pytest.raises(ValueError, match="cannot exceed 200 characters"):
            make_node(name="x" * 201)

    def test_name_at_limit(self, make_node):
        assert len(make_node(name="x" * 200).name) == 200

    @pytest.mark.parametrize(
        "bad_path", ["", "  ", "src/<tmp>.py", 'a"b.py', "what?.py", "a|b", "*.py"]
    )
    def test_invalid_file_path(self, make_node, bad_path):
        with pytest.raises(ValueError, match="File path"):
            make_node(file_path=bad_path)

    @pytest.mark.parametrize("bad_line", [0, -1, 1_000_001, 2.5, "3", True])
    def test_invalid_line_number(self, make_node, bad_line):
        with pytest.raises(ValueError, match="Line number"):
            make_node(line_number=bad_line)

    def test_line_number_bounds(self, make_node):
        assert make_node(line_number=1).line_number == 1
        assert make_node(line_number=1_000_000).line_number == 1_000_000

    def test_snippet_too_long(self, make_node):
        with pytest.raises(ValueError, match="Code snippet cannot exceed 5000"):
            make_node(code_snippet="x" * 5001)

    def test_description_too_long(self, make_node):
        with pytest.raises(ValueError, match="Description cannot exceed 1000"):
            make_node(description="x" * 1001)

    def test_location(self, make_node):
        node = make_node(file_path="src/a.py", line_number=7)
        assert node.location == SourceLocation("src/a.py", 7)
        assert str(node.location) == "src/a.py:7"
        assert node.location.to_dict() == {"filePath": "src/a.py", "lineNumber": 7}


class TestUpdates:
    """Tests for per-field update methods."""

    def test_update_name(self, make_node):
        node = make_node()
        node.update_name("Renamed")
        assert node.name == "Renamed"

    def test_update_name_invalid_leaves_node_unchanged(self, make_node):
        node = make_node(name="Original")
        with pytest.raises(ValueError):
            node.update_name("")
        assert node.name == "Original"

    def test_update_file_path_rederives_file_name(self, make_node):
        node = make_node(file_path="src/a.py")
        node.update_file_path("lib/b.py")
        assert node.file_path == "lib/b.py"
        assert node.file_name == "b.py"

    def test_update_line_number(self, make_node):
        node = make_node()
        node.update_line_number(42)
        assert node.line_number == 42
        with pytest.raises(ValueError):
            node.update_line_number(0)

    def test_update_code_snippet_none_clears(self, make_node):
        node = make_node(code_snippet="return 1")
        node.update_code_snippet(None)
        assert node.code_snippet is None

    def test_update_description_blank_clears(self, make_node):
        node = make_node(description="notes")
        node.update_description("   ")
        assert node.description is None

    def test_update_description_multiline(self, make_node):
        node = make_node()
        node.update_description("line one\nline two")
        assert node.description == "line one\nline two"

    def test_update_description_too_long(self, make_node):
        node = make_node()
        with pytest.raises(ValueError):
            node.update_description("x" * 1001)


class TestRelationshipFields:
    """Tests for local child/parent bookkeeping."""

    def test_add_child(self, make_node):
        node = make_node("p")
        node.add_child("c1")
        node.add_child("c2")
        assert node.child_ids == ["c1", "c2"]
        assert node.has_children()
        assert not node.is_leaf

    def test_add_self_as_child(self, make_node):
        node = make_node("p")
        with pytest.raises(ValueError, match="Node cannot be its own child"):
            node.add_child("p")

    def test_add_duplicate_child(self, make_node):
        node = make_node("p")
        node.add_child("c1")
        with pytest.raises(ValueError, match="Child node c1 already exists"):
            node.add_child("c1")

    def test_remove_child(self, make_node):
        node = make_node("p")
        node.add_child("c1")
        node.remove_child("c1")
        assert node.child_ids == []

    def test_remove_missing_child(self, make_node):
        node = make_node("p")
        with pytest.raises(ValueError, match="Child node c9 not found"):
            node.remove_child("c9")

    def test_set_parent(self, make_node):
        node = make_node("c")
        node.set_parent("p")
        assert node.has_parent()
        assert not node.is_root
        node.set_parent(None)
        assert node.is_root

    def test_set_self_as_parent(self, make_node):
        node = make_node("c")
        with pytest.raises(ValueError, match="Node cannot be its own parent"):
            node.set_parent("c")


class TestValidate:
    """Tests for CodeNode.validate()."""

    def test_valid_node(self, make_node):
        make_node(code_snippet="x = 1", description="d").validate()

    def test_duplicate_child_ids(self, make_node):
        node = make_node("p")
        node.child_ids = ["c1", "c1"]
        with pytest.raises(ValueError, match="Duplicate child IDs"):
            node.validate()

    def test_self_reference_in_children(self, make_node):
        node = make_node("p")
        node.child_ids = ["p"]
        with pytest.raises(ValueError):
            node.validate()

    def test_field_corrupted_after_construction(self, make_node):
        node = make_node()
        node.line_number = 0
        with pytest.raises(ValueError, match="Line number"):
            node.validate()


class TestGenerateNodeId:
    """Tests for generate_node_id."""

    def test_format(self):
        assert re.fullmatch(r"node_[0-9a-z]+_[0-9a-z]{5}", generate_node_id())

    def test_unique(self):
        assert len({generate_node_id() for _ in range(50)}) == 50
