"""
codepath.commands.repair - Check graph structure and repair it.
"""

from __future__ import annotations

import argparse
import json
import sys

from codepath.graph.CodeGraph import GraphIntegrityError
from codepath.graph.serialize import build_graph
from codepath.session import open_session


def run(args: argparse.Namespace) -> int:
    """Validate the stored structure, repair it and save unless --dry-run."""
    session = open_session(getattr(args, "config", None), getattr(args, "workspace", None))
    store = session.store

    graph_id = getattr(args, "graph_id", None) or store.get_current_graph_id()
    if graph_id is None:
        print(
            f"Error: No graph selected and no last used graph in {store.graphs_dir}",
            file=sys.stderr,
        )
        return 1

    graph = build_graph(json.loads(store.read_graph_text(graph_id)))
    try:
        graph.validate()
    except GraphIntegrityError as e:
        print(f"Graph {graph.id} is inconsistent: {e}")
    else:
        if not args.quiet:
            print(f"Graph {graph.id} is consistent, nothing to repair")
        return 0

    actions = graph.repair()
    for action in actions:
        print(f"  - {action}")
    graph.validate()

    if args.dry_run:
        print(f"{len(actions)} repair(s) needed (dry run, nothing saved)")
        return 0

    store.save_graph(graph)
    print(f"Applied {len(actions)} repair(s) and saved graph {graph.id}")
    return 0
