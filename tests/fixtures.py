"""Shared test helpers."""

from httpx import AsyncClient

from sopgraph.models import Edge, Node, ProjectMeta, Snapshot


def make_node(node_id: str, label: str | None = None, **fields) -> Node:
    """A node whose label defaults to its id."""
    return Node(id=node_id, label=node_id if label is None else label, **fields)


def make_edge(source: str, target: str) -> Edge:
    return Edge(id=f"e{source}-{target}", source=source, target=target)


def make_graph(*pairs: tuple[str, str], extra_nodes: tuple[str, ...] = ()) -> tuple[list[Node], list[Edge]]:
    """Nodes in first-appearance order plus edges in the given order.

    make_graph(("A", "B"), ("A", "C")) -> A with children B, C.
    """
    order: list[str] = []
    for source, target in pairs:
        for node_id in (source, target):
            if node_id not in order:
                order.append(node_id)
    for node_id in extra_nodes:
        if node_id not in order:
            order.append(node_id)
    return [make_node(n) for n in order], [make_edge(s, t) for s, t in pairs]


def make_snapshot(
    nodes: list[Node],
    edges: list[Edge],
    name: str = "Test Process",
    project_id: str = "project-1",
    version: str = "1.0.0",
) -> Snapshot:
    return Snapshot(
        meta=ProjectMeta(id=project_id, name=name, latest_version=version),
        nodes=[n.model_copy(deep=True) for n in nodes],
        edges=[e.model_copy() for e in edges],
    )


def codes_of(outline_nodes) -> dict[str, str]:
    return {n.id: n.computed_code for n in outline_nodes}


# -- API-level helpers --


async def create_test_project(client: AsyncClient, name: str = "Test Process") -> dict:
    """Create a project via the API and return the response JSON."""
    resp = await client.post("/api/projects", json={"name": name})
    assert resp.status_code == 201
    return resp.json()


async def create_project_with_outline(client: AsyncClient) -> dict:
    """Create a project: root -> A -> (A1, A2), root -> B.

    Returns {"project_id": str, "node_ids": {"root", "A", "A1", "A2", "B"}}.
    """
    project = await create_test_project(client)
    project_id = project["project_id"]

    resp = await client.post(f"/api/projects/{project_id}/nodes", json={})
    assert resp.status_code == 201
    root_id = resp.json()["id"]

    ids = {"root": root_id}
    for name, parent in (("A", "root"), ("A1", "A"), ("A2", "A"), ("B", "root")):
        resp = await client.post(f"/api/projects/{project_id}/nodes", json={
            "parent_id": ids[parent],
            "label": name,
        })
        assert resp.status_code == 201
        ids[name] = resp.json()["id"]

    return {"project_id": project_id, "node_ids": ids}
