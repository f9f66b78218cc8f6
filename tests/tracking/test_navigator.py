"""Tests for tracking/navigator.py - validate then open."""

from codepath.graph import SourceLocation
from codepath.tracking import CommandEditor, Confidence, EditorCall, Navigator

GREET = "src/greet.py"


class _BrokenEditor:
    def open_file(self, path, line, column):
        raise OSError("editor crashed")

    def reveal_directory(self, path):
        raise OSError("editor crashed")


class TestNavigateToNode:
    """Tests for Navigator.navigate_to_node."""

    def test_valid_anchor_opens_stored_line(self, validator, editor, sample_file, make_node):
        node = make_node(file_path=GREET, line_number=4, code_snippet="print(message)")

        result = Navigator(validator, editor).navigate_to_node(node)

        assert result.success
        assert result.confidence == Confidence.EXACT
        assert result.actual_location == SourceLocation(GREET, 4)
        assert result.message is None
        assert editor.calls == [EditorCall("open", GREET, 3, 0)]

    def test_relocated_anchor_opens_suggestion(self, validator, editor, write_file, make_node):
        write_file(GREET, ["# new", "# lines", "import os", "    print(message)"])
        node = make_node(file_path=GREET, line_number=2, code_snippet="print(message)")

        result = Navigator(validator, editor).navigate_to_node(node)

        assert result.success
        assert result.confidence == Confidence.HIGH
        assert result.actual_location == SourceLocation(GREET, 4)
        assert result.message == "Code found at line 4 (moved 2 lines)"
        assert editor.last == EditorCall("open", GREET, 3, 0)

    def test_lost_anchor_opens_stored_location(self, validator, editor, sample_file, make_node):
        node = make_node(file_path=GREET, line_number=2, code_snippet="something_else_entirely()")

        result = Navigator(validator, editor).navigate_to_node(node)

        assert result.success
        assert result.confidence == Confidence.FAILED
        assert result.actual_location == SourceLocation(GREET, 2)
        assert result.message == "Code snippet not found in file"
        assert editor.last == EditorCall("open", GREET, 1, 0)

    def test_missing_file_fails(self, validator, editor, make_node):
        node = make_node(file_path="src/gone.py", line_number=3, code_snippet="x = 1")

        result = Navigator(validator, editor).navigate_to_node(node)

        assert not result.success
        assert result.confidence == Confidence.FAILED
        assert result.message.startswith("File not accessible:")
        assert editor.calls == []

    def test_directory_is_revealed(self, validator, editor, sample_file, make_node):
        node = make_node(file_path="src", line_number=1)

        result = Navigator(validator, editor).navigate_to_node(node)

        assert result.success
        assert editor.calls == [EditorCall("reveal", "src")]

    def test_editor_failure_reported(self, validator, sample_file, make_node):
        node = make_node(file_path=GREET, line_number=4, code_snippet="print(message)")

        result = Navigator(validator, _BrokenEditor()).navigate_to_node(node)

        assert not result.success
        assert result.message == "Editor failed: editor crashed"

    def test_missing_editor_program_is_not_a_file_error(self, validator, sample_file, make_node):
        node = make_node(file_path=GREET, line_number=4, code_snippet="print(message)")
        editor = CommandEditor("codepath-test-no-such-editor {path}")

        result = Navigator(validator, editor).navigate_to_node(node)

        assert not result.success
        assert result.confidence == Confidence.FAILED
        assert result.message.startswith("Editor failed:")
        assert "codepath-test-no-such-editor" in result.message

    def test_to_dict(self, validator, editor, sample_file, make_node):
        node = make_node(file_path=GREET, line_number=4, code_snippet="print(message)")
        data = Navigator(validator, editor).navigate_to_node(node).to_dict()
        assert data == {
            "success": True,
            "confidence": "exact",
            "actualLocation": {"filePath": GREET, "lineNumber": 4},
        }
