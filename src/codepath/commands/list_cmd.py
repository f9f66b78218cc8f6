"""
codepath.commands.list_cmd - List stored graphs.
"""

from __future__ import annotations

import argparse
import json

from codepath.session import open_session


def run(args: argparse.Namespace) -> int:
    """Print one line per stored graph, most recently updated first."""
    session = open_session(getattr(args, "config", None), getattr(args, "workspace", None))
    summaries = session.list_graphs()
    current_id = session.store.get_current_graph_id()

    if getattr(args, "json", False):
        print(json.dumps([s.to_dict() for s in summaries], indent=2))
        return 0

    if not summaries:
        if not args.quiet:
            print(f"No graphs stored in {session.store.graphs_dir}")
        return 0

    for summary in summaries:
        marker = "*" if summary.id == current_id else " "
        updated = summary.updated_at.strftime("%Y-%m-%d %H:%M")
        print(
            f"{marker} {summary.id}  {summary.name}  "
            f"({summary.node_count} nodes, updated {updated})"
        )
    return 0
