"""
codepath.commands.show - Print a graph as an indented tree.
"""

from __future__ import annotations

import argparse

from codepath.graph.CodeGraph import CodeGraph
from codepath.graph.CodeNode import CodeNode
from codepath.session import open_session


def format_node(node: CodeNode, current_id: str | None) -> str:
    marker = "*" if node.id == current_id else "-"
    return f"{marker} {node.name}  {node.file_path}:{node.line_number}  [{node.id}]"


def render_tree(graph: CodeGraph) -> list[str]:
    """Render roots and their descendants in order, two spaces per level."""
    lines: list[str] = []
    stack = [(root, 0) for root in reversed(graph.get_root_nodes())]
    while stack:
        node, depth = stack.pop()
        indent = "  " * depth
        lines.append(indent + format_node(node, graph.current_node_id))
        if node.validation_warning:
            lines.append(f"{indent}    ! {node.validation_warning}")
        for child in reversed(graph.get_children(node.id)):
            stack.append((child, depth + 1))
    return lines


def run(args: argparse.Namespace) -> int:
    """Print the selected graph with validation warnings."""
    session = open_session(getattr(args, "config", None), getattr(args, "workspace", None))
    graph = session.load_graph_or_last(getattr(args, "graph_id", None))

    count = graph.node_count()
    print(f"{graph.name} ({graph.id}): {count} node(s), depth {graph.max_depth()}")
    if count == 0:
        print("  (no nodes)")
        return 0
    for line in render_tree(graph):
        print(line)
    return 0
