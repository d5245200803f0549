"""Outline processor: derives codes, inherited data and visibility.

Given the raw nodes and edges, walks every root depth-first and produces the
list of visible nodes, each enriched with:

- computed_code: "0" for a root, "1", "2"... for its children, and
  "<parent>.<n>" below that. Codes depend only on edge order, never on the
  collapse set, so collapsing a branch never renumbers anything.
- aggregated_data: the parent's aggregated data overlaid with the node's own
  payload. Every node gets a fresh dict.
- children_ids / parent_ids: adjacency in edge order.

A collapsed node stays visible; only its descendants are hidden.
"""

import logging
from collections.abc import Collection

from sopgraph.models import Edge, Node, OutlineNode

logger = logging.getLogger(__name__)

ROOT_CODE = "0"


def _child_code(parent_code: str, index: int) -> str:
    if parent_code == ROOT_CODE:
        return str(index + 1)
    return f"{parent_code}.{index + 1}"


def process_graph(
    nodes: list[Node],
    edges: list[Edge],
    collapsed_ids: Collection[str] = frozenset(),
) -> list[OutlineNode]:
    """Return the visible nodes in depth-first order, enriched."""
    by_id = {n.id: n for n in nodes}
    children: dict[str, list[str]] = {n.id: [] for n in nodes}
    parents: dict[str, list[str]] = {n.id: [] for n in nodes}

    for edge in edges:
        if edge.source in by_id and edge.target in by_id:
            children[edge.source].append(edge.target)
            parents[edge.target].append(edge.source)

    roots = [n.id for n in nodes if not parents[n.id]]

    visible: list[OutlineNode] = []
    emitted: set[str] = set()
    visited: set[tuple[str, str]] = set()

    for root_id in roots:
        # (node_id, code, inherited data, hidden)
        stack: list[tuple[str, str, dict[str, str], bool]] = [
            (root_id, ROOT_CODE, {}, False)
        ]
        while stack:
            node_id, code, inherited, hidden = stack.pop()

            if (node_id, code) in visited or node_id in emitted:
                logger.warning(
                    "Node %s reached again at %s; not descending", node_id, code
                )
                continue
            visited.add((node_id, code))
            emitted.add(node_id)

            node = by_id[node_id]
            aggregated = {**inherited, **node.payload}

            if not hidden:
                visible.append(
                    OutlineNode(
                        **node.model_dump(exclude={"computed_code"}),
                        computed_code=code,
                        children_ids=list(children[node_id]),
                        parent_ids=list(parents[node_id]),
                        aggregated_data=dict(aggregated),
                    )
                )

            hide_children = hidden or node_id in collapsed_ids
            # Reversed so the first child is popped first.
            for index in range(len(children[node_id]) - 1, -1, -1):
                child_id = children[node_id][index]
                stack.append(
                    (child_id, _child_code(code, index), aggregated, hide_children)
                )

    unreachable = len(by_id) - len(emitted)
    if unreachable:
        logger.warning("%d node(s) unreachable from any root", unreachable)

    return visible


def compute_codes(nodes: list[Node], edges: list[Edge]) -> dict[str, str]:
    """Map every reachable node id to its code (empty collapse set)."""
    return {n.id: n.computed_code for n in process_graph(nodes, edges)}
