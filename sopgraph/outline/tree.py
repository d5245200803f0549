"""Build the renderable tree from nodes that already carry their codes."""

from collections.abc import Sequence

from sopgraph.models import Edge, Node, TreeEntry

DRAFT_TITLE = "(untitled)"


def build_tree(nodes: Sequence[Node], edges: Sequence[Edge]) -> list[TreeEntry]:
    """One entry per true root (no incoming edge), children in edge order.

    `nodes` should come from an empty-collapse outline run so every node has
    its code. Codes are copied, never computed here.
    """
    by_id = {n.id: n for n in nodes}
    children: dict[str, list[str]] = {}
    targets: set[str] = set()
    for edge in edges:
        targets.add(edge.target)
        if edge.target in by_id:
            children.setdefault(edge.source, []).append(edge.target)

    def build(node: Node, path: frozenset[str]) -> TreeEntry:
        path = path | {node.id}
        return TreeEntry(
            key=node.id,
            title=node.label or DRAFT_TITLE,
            code=node.computed_code or "",
            jump_to=node.jump_target_id,
            children=[
                build(by_id[child_id], path)
                for child_id in children.get(node.id, [])
                if child_id not in path
            ],
        )

    return [build(n, frozenset()) for n in nodes if n.id not in targets]
