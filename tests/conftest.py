"""Shared pytest fixtures for codepath tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from codepath.graph import CodeGraph, CodeNode
from codepath.session import GraphSession
from codepath.store import GraphStore
from codepath.tracking import LocalFileSystem, LocationValidator, Navigator, RecordingEditor

SAMPLE_LINES = [
    "import os",
    "def greet(name):",
    "    message = 'hi ' + name",
    "    print(message)",
    "    return message",
]


@pytest.fixture
def write_file(tmp_path):
    """Write lines (joined with newlines, no trailing newline) under tmp_path."""

    def _write(relative: str, lines: list[str]) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(lines), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_file(write_file) -> Path:
    """A five-line source file at src/greet.py."""
    return write_file("src/greet.py", SAMPLE_LINES)


@pytest.fixture
def make_node():
    """Factory for CodeNode instances with sensible defaults."""

    def _make(
        node_id: str = "n1",
        name: str | None = None,
        file_path: str = "src/app.py",
        line_number: int = 1,
        **kwargs,
    ) -> CodeNode:
        return CodeNode(
            id=node_id,
            name=name or f"Node {node_id}",
            file_path=file_path,
            line_number=line_number,
            **kwargs,
        )

    return _make


@pytest.fixture
def tree_graph(make_node) -> CodeGraph:
    """Graph with r1 -> (a -> (a1, a2), b) and a second root r2."""
    graph = CodeGraph(id="g1", name="Tree")
    for node_id in ("r1", "a", "a1", "a2", "b", "r2"):
        graph.add_node(make_node(node_id))
    graph.set_parent_child("r1", "a")
    graph.set_parent_child("a", "a1")
    graph.set_parent_child("a", "a2")
    graph.set_parent_child("r1", "b")
    return graph


@pytest.fixture
def validator(tmp_path) -> LocationValidator:
    """Validator resolving relative paths against tmp_path."""
    return LocationValidator(LocalFileSystem(tmp_path))


@pytest.fixture
def editor() -> RecordingEditor:
    return RecordingEditor()


@pytest.fixture
def store(tmp_path) -> GraphStore:
    return GraphStore(tmp_path)


@pytest.fixture
def session(store, validator, editor) -> GraphSession:
    """Session over tmp_path with a recording editor."""
    return GraphSession(store, validator, Navigator(validator, editor))
