"""
codepath.commands.goto - Open a node's location in the configured editor.
"""

from __future__ import annotations

import argparse
import sys

from codepath.session import open_session


def run(args: argparse.Namespace) -> int:
    """Navigate to a node; exit 1 when its file cannot be opened."""
    session = open_session(getattr(args, "config", None), getattr(args, "workspace", None))
    session.load_graph_or_last(getattr(args, "graph_id", None))

    result = session.navigate_to_node(args.node_id)
    if not result.success:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    if result.actual_location is not None:
        print(f"{result.actual_location} ({result.confidence.value})")
    if result.message and not args.quiet:
        print(result.message)
    return 0
