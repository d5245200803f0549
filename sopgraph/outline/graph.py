"""GraphStore: the raw, ordered node and edge lists of one outline.

Holds authoritative state only. Numbering, inheritance and visibility are
derived elsewhere (see processor.py) and never stored here.
"""

from collections import defaultdict
from uuid import uuid4

from sopgraph.errors import InvariantViolation, NodeNotFoundError
from sopgraph.models import Edge, Node

ROOT_LABEL = "Start"
ROOT_DESCRIPTION = "Process start"

_EDITABLE_FIELDS = {"label", "description", "payload", "jump_target_id"}


class GraphStore:
    """Ordered node list plus ordered edge list. Forest by construction."""

    def __init__(
        self, nodes: list[Node] | None = None, edges: list[Edge] | None = None
    ) -> None:
        self.nodes: list[Node] = [n.model_copy(deep=True) for n in nodes or []]
        self.edges: list[Edge] = [e.model_copy() for e in edges or []]

    # -- reads --

    def get_node(self, node_id: str) -> Node:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise NodeNotFoundError(node_id)

    def has_node(self, node_id: str) -> bool:
        return any(n.id == node_id for n in self.nodes)

    def parent_of(self, node_id: str) -> str | None:
        for edge in self.edges:
            if edge.target == node_id:
                return edge.source
        return None

    @property
    def root_id(self) -> str | None:
        """The designated root: first node in node order without a parent."""
        targets = {e.target for e in self.edges}
        for node in self.nodes:
            if node.id not in targets:
                return node.id
        return None

    def descendants_of(self, node_id: str) -> set[str]:
        children: dict[str, list[str]] = defaultdict(list)
        for edge in self.edges:
            children[edge.source].append(edge.target)
        found: set[str] = set()
        stack = list(children[node_id])
        while stack:
            current = stack.pop()
            if current in found:
                continue
            found.add(current)
            stack.extend(children[current])
        return found

    def copy(self) -> "GraphStore":
        return GraphStore(self.nodes, self.edges)

    # -- mutations --

    def create_root(self, label: str = ROOT_LABEL, description: str = ROOT_DESCRIPTION) -> Node:
        """Create the designated root. Only allowed on an empty outline."""
        if self.nodes:
            raise InvariantViolation("Root must remain unique; outline is not empty")
        node = Node(id=str(uuid4()), label=label, description=description)
        self.nodes.append(node)
        return node

    def add_child(
        self,
        parent_id: str,
        label: str = "",
        description: str = "",
        payload: dict[str, str] | None = None,
        jump_target_id: str | None = None,
    ) -> tuple[Node, Edge]:
        """Create a node attached to `parent_id` as its last child."""
        if not self.has_node(parent_id):
            raise NodeNotFoundError(parent_id)
        node = Node(
            id=str(uuid4()),
            label=label,
            description=description,
            payload=payload or {},
            jump_target_id=jump_target_id,
        )
        edge = Edge(id=f"e{parent_id}-{node.id}", source=parent_id, target=node.id)
        self.nodes.append(node)
        self.edges.append(edge)
        return node, edge

    def add_edge(self, edge: Edge) -> None:
        """Append an edge, refusing anything that would break the forest."""
        for endpoint in (edge.source, edge.target):
            if not self.has_node(endpoint):
                raise NodeNotFoundError(endpoint)
        if self.parent_of(edge.target) is not None:
            raise InvariantViolation(
                f"Node {edge.target} already has a parent", node_id=edge.target
            )
        if edge.source == edge.target or edge.source in self.descendants_of(edge.target):
            raise InvariantViolation(
                f"Edge {edge.source}->{edge.target} would create a cycle",
                node_id=edge.target,
            )
        self.edges.append(edge)

    def update_node(self, node_id: str, **fields: object) -> Node:
        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Not editable: {sorted(unknown)}")
        index = next((i for i, n in enumerate(self.nodes) if n.id == node_id), None)
        if index is None:
            raise NodeNotFoundError(node_id)
        updated = Node.model_validate({**self.nodes[index].model_dump(), **fields})
        self.nodes[index] = updated
        return updated

    def remove_node(self, node_id: str) -> None:
        """Remove a node and every edge touching it. Children become roots."""
        if not self.has_node(node_id):
            raise NodeNotFoundError(node_id)
        self.nodes = [n for n in self.nodes if n.id != node_id]
        self.edges = [
            e for e in self.edges if e.source != node_id and e.target != node_id
        ]

    def remove_subtree(self, node_id: str) -> set[str]:
        """Remove a node with all of its descendants. Returns the removed ids."""
        if not self.has_node(node_id):
            raise NodeNotFoundError(node_id)
        doomed = self.descendants_of(node_id) | {node_id}
        self.nodes = [n for n in self.nodes if n.id not in doomed]
        self.edges = [
            e for e in self.edges if e.source not in doomed and e.target not in doomed
        ]
        return doomed

    def replace(self, nodes: list[Node], edges: list[Edge]) -> None:
        self.nodes = [n.model_copy(deep=True) for n in nodes]
        self.edges = [e.model_copy() for e in edges]


def validate_forest(nodes: list[Node], edges: list[Edge]) -> list[str]:
    """Return every structural problem found. Empty list means a valid forest."""
    problems: list[str] = []
    node_ids: set[str] = set()
    for node in nodes:
        if node.id in node_ids:
            problems.append(f"duplicate node id {node.id}")
        node_ids.add(node.id)

    parent: dict[str, str] = {}
    for edge in edges:
        if edge.source not in node_ids or edge.target not in node_ids:
            problems.append(f"edge {edge.id} references an unknown node")
            continue
        if edge.target in parent:
            problems.append(f"node {edge.target} has more than one parent")
            continue
        parent[edge.target] = edge.source

    # Walk each parent chain; revisiting a node on the same chain is a cycle.
    reported: set[str] = set()
    for start in parent:
        seen: set[str] = set()
        current: str | None = start
        while current is not None and current not in reported:
            if current in seen:
                problems.append(f"cycle through node {current}")
                reported.update(seen)
                break
            seen.add(current)
            current = parent.get(current)
    return problems
