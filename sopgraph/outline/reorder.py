"""Reorder engine: turns a drag-and-drop intent into a new edge list.

Sibling order is the order of edges sharing a source, so moving a node means
removing its parent edge and splicing a fresh edge into the new parent's
children at the right index. Codes are not touched here; callers re-run the
outline processor on the returned edges.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

from sopgraph.errors import InvariantViolation
from sopgraph.models import DropMode, Edge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReorderResult:
    edges: list[Edge]
    applied: bool
    warning: str | None = None


def _default_edge_id(parent_id: str, node_id: str) -> str:
    return f"e{parent_id}-{node_id}-{uuid4()}"


def _subtree(edges: list[Edge], node_id: str) -> set[str]:
    found: set[str] = set()
    stack = [node_id]
    while stack:
        current = stack.pop()
        for edge in edges:
            if edge.source == current and edge.target not in found:
                found.add(edge.target)
                stack.append(edge.target)
    return found


def move_node(
    edges: list[Edge],
    dragged_id: str,
    target_id: str,
    mode: DropMode,
    *,
    root_id: str | None,
    edge_id_factory: Callable[[str, str], str] | None = None,
) -> list[Edge]:
    """Return a new edge list with `dragged_id` dropped relative to `target_id`.

    mode "onto" appends the dragged node as the target's last child;
    "before"/"after" make it the target's sibling just above/below it.

    Raises InvariantViolation, leaving `edges` untouched, when the root is
    dragged, when the root would gain a sibling, when the target has no
    parent edge, or when the drop lands inside the dragged node's own subtree.
    """
    if dragged_id == root_id:
        raise InvariantViolation("Root node cannot be moved", node_id=dragged_id)
    if target_id == root_id and mode != "onto":
        raise InvariantViolation(
            "Root must remain unique and cannot gain siblings", node_id=target_id
        )
    if target_id == dragged_id or target_id in _subtree(edges, dragged_id):
        raise InvariantViolation(
            "Cannot move a node into its own subtree", node_id=dragged_id
        )

    remaining = [e for e in edges if e.target != dragged_id]

    if mode == "onto":
        new_parent_id = target_id
        insert_index = sum(1 for e in remaining if e.source == new_parent_id)
    else:
        target_edge = next((e for e in remaining if e.target == target_id), None)
        if target_edge is None:
            raise InvariantViolation(
                f"Drop target {target_id} has no parent edge", node_id=target_id
            )
        new_parent_id = target_edge.source
        siblings = [e for e in remaining if e.source == new_parent_id]
        target_index = next(
            i for i, e in enumerate(siblings) if e.target == target_id
        )
        insert_index = target_index if mode == "before" else target_index + 1

    make_id = edge_id_factory or _default_edge_id
    new_edge = Edge(
        id=make_id(new_parent_id, dragged_id),
        source=new_parent_id,
        target=dragged_id,
    )

    others = [e for e in remaining if e.source != new_parent_id]
    siblings = [e for e in remaining if e.source == new_parent_id]
    siblings.insert(insert_index, new_edge)
    return others + siblings


def try_move_node(
    edges: list[Edge],
    dragged_id: str,
    target_id: str,
    mode: DropMode,
    *,
    root_id: str | None,
    edge_id_factory: Callable[[str, str], str] | None = None,
) -> ReorderResult:
    """Like move_node, but a rejected move comes back as a warning."""
    try:
        new_edges = move_node(
            edges,
            dragged_id,
            target_id,
            mode,
            root_id=root_id,
            edge_id_factory=edge_id_factory,
        )
    except InvariantViolation as e:
        logger.warning(
            "Rejected move of %s %s %s: %s", dragged_id, mode, target_id, e.reason
        )
        return ReorderResult(edges=list(edges), applied=False, warning=e.reason)
    return ReorderResult(edges=new_edges, applied=True)
