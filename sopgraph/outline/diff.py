"""Snapshot diffing: a human-readable change log between two versions.

Entries identify nodes as "[code] label (ID:xxxxxxxx)". Edge changes are
reported as a single structural entry, never per edge.
"""

from sopgraph.models import Node, Snapshot

INITIAL_ENTRY = "Initial version"
STRUCTURE_ENTRY = "Structure changed (edges modified)"


def _identity(node: Node) -> str:
    return f"[{node.computed_code or '?'}] {node.label} (ID:{node.id[:8]})"


def _edge_pairs(snapshot: Snapshot) -> set[tuple[str, str]]:
    return {(e.source, e.target) for e in snapshot.edges}


def generate_change_log(old: Snapshot | None, new: Snapshot) -> list[str]:
    if old is None:
        return [INITIAL_ENTRY]

    logs: list[str] = []

    if old.meta.name != new.meta.name:
        logs.append(f'Process renamed from "{old.meta.name}" to "{new.meta.name}"')

    old_nodes = {n.id: n for n in old.nodes}
    for node in new.nodes:
        identity = _identity(node)
        previous = old_nodes.get(node.id)
        if previous is None:
            logs.append(f"Added node {identity}")
            continue
        if previous.label != node.label:
            logs.append(
                f'Node {identity} label changed: "{previous.label}" -> "{node.label}"'
            )
        if previous.description != node.description:
            logs.append(f"Node {identity} description changed")
        if previous.jump_target_id != node.jump_target_id:
            logs.append(f"Node {identity} jump target changed")
        if previous.payload != node.payload:
            logs.append(f"Node {identity} payload updated")

    new_ids = {n.id for n in new.nodes}
    for node in old.nodes:
        if node.id not in new_ids:
            # The old code is the only meaningful one for a removed node.
            logs.append(f"Removed node {_identity(node)}")

    if len(old.edges) != len(new.edges) or _edge_pairs(old) != _edge_pairs(new):
        logs.append(STRUCTURE_ENTRY)

    return logs


def has_content_changed(old: Snapshot | None, new: Snapshot) -> bool:
    return len(generate_change_log(old, new)) > 0
