"""Outline engine: numbering, tree building, reordering, diffing, versions."""

from sopgraph.outline.diff import generate_change_log, has_content_changed
from sopgraph.outline.graph import GraphStore, validate_forest
from sopgraph.outline.processor import compute_codes, process_graph
from sopgraph.outline.reorder import ReorderResult, move_node, try_move_node
from sopgraph.outline.tree import build_tree

__all__ = [
    "GraphStore",
    "ReorderResult",
    "build_tree",
    "compute_codes",
    "generate_change_log",
    "has_content_changed",
    "move_node",
    "process_graph",
    "try_move_node",
    "validate_forest",
]
