"""Graph module - Core graph data structures.

Exports:
- SourceLocation: (path, line) reference
- CodeNode: Marker anchored to a line in a file
- CodeGraph: Owning collection of nodes forming a forest
- GraphIntegrityError: Raised when structural invariants fail
- MutationEntry / MutationLog: Audit trail of graph mutations
- RepairAction: One correction applied by CodeGraph.repair()
"""

from codepath.graph.CodeGraph import CodeGraph, GraphIntegrityError, generate_graph_id
from codepath.graph.CodeNode import CodeNode, SourceLocation, generate_node_id
from codepath.graph.mutations import MutationEntry, MutationLog, RepairAction

__all__ = [
    "SourceLocation",
    "CodeNode",
    "CodeGraph",
    "GraphIntegrityError",
    "MutationEntry",
    "MutationLog",
    "RepairAction",
    "generate_graph_id",
    "generate_node_id",
]
