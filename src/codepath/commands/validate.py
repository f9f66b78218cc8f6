"""
codepath.commands.validate - Check node anchors against the files on disk.
"""

from __future__ import annotations

import argparse
import json

from codepath.session import open_session
from codepath.tracking.validator import Confidence


def run(args: argparse.Namespace) -> int:
    """
    Run the validate command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 when every node was found, 1 when any node failed)
    """
    session = open_session(getattr(args, "config", None), getattr(args, "workspace", None))
    graph = session.load_graph_or_last(getattr(args, "graph_id", None))
    results = session.validate_all_nodes()
    failed = [
        node_id
        for node_id, result in results.items()
        if not result.is_valid and result.confidence == Confidence.FAILED
    ]

    moved = session.apply_suggestions() if args.apply else []

    if args.json:
        output = {
            "graphId": graph.id,
            "results": {node_id: result.to_dict() for node_id, result in results.items()},
            "failed": failed,
            "moved": [node.id for node in moved],
        }
        print(json.dumps(output, indent=2))
        return 1 if failed else 0

    for node_id, result in results.items():
        if args.quiet and node_id not in failed:
            continue
        node = graph.nodes[node_id]
        line = f"[{result.confidence.value:>6}] {node.name} ({node.file_path}:{node.line_number})"
        if result.reason:
            line += f" - {result.reason}"
        print(line)

    if not args.quiet:
        relocated = sum(
            1 for r in results.values() if not r.is_valid and r.suggested_location is not None
        )
        print(
            f"\n{len(results)} node(s) checked: {len(failed)} failed, {relocated} relocated"
        )
        if moved:
            print(f"Moved {len(moved)} node(s) to their suggested locations")

    return 1 if failed else 0
