"""Tests for tracking/files.py - file access."""

import pytest

from codepath.tracking import LocalFileSystem, TextDocument


class TestTextDocument:
    """Tests for TextDocument line splitting."""

    def test_trailing_newline_gives_empty_last_line(self):
        doc = TextDocument.from_text("a.py", "one\ntwo\n")
        assert doc.lines == ("one", "two", "")
        assert doc.line_count == 3

    def test_mixed_line_endings(self):
        doc = TextDocument.from_text("a.py", "one\r\ntwo\rthree")
        assert doc.lines == ("one", "two", "three")

    def test_empty_file_has_one_line(self):
        assert TextDocument.from_text("a.py", "").line_count == 1

    def test_line_at_out_of_range(self):
        doc = TextDocument.from_text("a.py", "one")
        assert doc.line_at(0) == "one"
        with pytest.raises(IndexError):
            doc.line_at(1)


class TestLocalFileSystem:
    """Tests for LocalFileSystem."""

    def test_relative_paths_resolve_against_workspace(self, tmp_path, sample_file):
        files = LocalFileSystem(tmp_path)
        assert files.exists("src/greet.py")
        assert files.is_dir("src")
        assert not files.is_dir("src/greet.py")
        assert files.open_text("src/greet.py").line_at(0) == "import os"

    def test_absolute_paths_used_as_is(self, sample_file):
        files = LocalFileSystem()
        assert files.resolve(str(sample_file)) == sample_file
        assert files.open_text(str(sample_file)).line_count == 5

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LocalFileSystem(tmp_path).open_text("nope.py")
