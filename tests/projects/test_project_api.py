"""API tests for projects, nodes, collapse and reorder."""

from tests.fixtures import create_project_with_outline, create_test_project


def _codes(outline_json) -> dict[str, str]:
    return {n["id"]: n["computed_code"] for n in outline_json["nodes"]}


class TestProjects:
    async def test_create_project(self, client):
        data = await create_test_project(client, "Onboarding")
        assert data["name"] == "Onboarding"
        assert data["latest_version"] == "1.0.0"
        assert data["nodes"] == []
        assert data["root_id"] is None
        assert data["save_status"] == "idle"

    async def test_unknown_project_opens_fresh(self, client):
        """Opening an id that was never saved starts a new empty project."""
        resp = await client.get("/api/projects/never-saved")
        assert resp.status_code == 200
        data = resp.json()
        assert data["project_id"] == "never-saved"
        assert data["name"] == "Untitled process"
        assert data["nodes"] == []

    async def test_rename_project(self, client):
        project = await create_test_project(client)
        resp = await client.patch(
            f"/api/projects/{project['project_id']}", json={"name": "Renamed"}
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Renamed"

    async def test_list_shows_only_saved_projects(self, client):
        ids = await create_project_with_outline(client)
        await create_test_project(client, "Unsaved")
        await client.post(
            f"/api/projects/{ids['project_id']}/checkpoints", json={"kind": "draft"}
        )
        resp = await client.get("/api/projects")
        assert [p["project_id"] for p in resp.json()] == [ids["project_id"]]

    async def test_delete_project(self, client):
        ids = await create_project_with_outline(client)
        project_id = ids["project_id"]
        await client.post(f"/api/projects/{project_id}/checkpoints", json={"kind": "draft"})

        resp = await client.delete(f"/api/projects/{project_id}")
        assert resp.status_code == 204
        assert (await client.get("/api/projects")).json() == []
        versions = (await client.get(f"/api/projects/{project_id}/versions")).json()
        assert versions["versions"] == []

    async def test_delete_unknown_project(self, client):
        resp = await client.delete("/api/projects/nope")
        assert resp.status_code == 404


class TestNodes:
    async def test_outline_codes(self, client):
        ids = await create_project_with_outline(client)
        n = ids["node_ids"]
        resp = await client.get(f"/api/projects/{ids['project_id']}/outline")
        assert resp.status_code == 200
        assert _codes(resp.json()) == {
            n["root"]: "0", n["A"]: "1", n["A1"]: "1.1", n["A2"]: "1.2", n["B"]: "2",
        }

    async def test_root_gets_default_label(self, client):
        project = await create_test_project(client)
        resp = await client.post(f"/api/projects/{project['project_id']}/nodes", json={})
        assert resp.status_code == 201
        assert resp.json()["label"] == "Start"
        assert resp.json()["computed_code"] == "0"

    async def test_second_root_rejected(self, client):
        ids = await create_project_with_outline(client)
        resp = await client.post(f"/api/projects/{ids['project_id']}/nodes", json={})
        assert resp.status_code == 409

    async def test_unknown_parent(self, client):
        ids = await create_project_with_outline(client)
        resp = await client.post(
            f"/api/projects/{ids['project_id']}/nodes", json={"parent_id": "ghost"}
        )
        assert resp.status_code == 404

    async def test_unknown_jump_target(self, client):
        ids = await create_project_with_outline(client)
        resp = await client.post(
            f"/api/projects/{ids['project_id']}/nodes",
            json={"parent_id": ids["node_ids"]["B"], "jump_target_id": "ghost"},
        )
        assert resp.status_code == 404

    async def test_new_child_inherits_data(self, client):
        ids = await create_project_with_outline(client)
        project_id, n = ids["project_id"], ids["node_ids"]
        await client.patch(
            f"/api/projects/{project_id}/nodes/{n['A']}",
            json={"payload": {"owner": "ops"}},
        )
        resp = await client.post(
            f"/api/projects/{project_id}/nodes",
            json={"parent_id": n["A"], "label": "A3", "payload": {"step": "3"}},
        )
        assert resp.json()["computed_code"] == "1.3"
        assert resp.json()["aggregated_data"] == {"owner": "ops", "step": "3"}

    async def test_patch_only_sent_fields(self, client):
        ids = await create_project_with_outline(client)
        project_id, node_id = ids["project_id"], ids["node_ids"]["A"]
        await client.patch(
            f"/api/projects/{project_id}/nodes/{node_id}",
            json={"description": "first", "payload": {"a": "1"}},
        )
        resp = await client.patch(
            f"/api/projects/{project_id}/nodes/{node_id}", json={"label": "Prepare"}
        )
        data = resp.json()
        assert data["label"] == "Prepare"
        assert data["description"] == "first"
        assert data["payload"] == {"a": "1"}

    async def test_patch_single_payload_entry(self, client):
        ids = await create_project_with_outline(client)
        project_id, node_id = ids["project_id"], ids["node_ids"]["A"]
        await client.patch(
            f"/api/projects/{project_id}/nodes/{node_id}", json={"payload": {"a": "1"}}
        )
        resp = await client.patch(
            f"/api/projects/{project_id}/nodes/{node_id}",
            json={"payload_key": "b", "payload_value": "2"},
        )
        assert resp.json()["payload"] == {"a": "1", "b": "2"}

    async def test_patch_unknown_node(self, client):
        ids = await create_project_with_outline(client)
        resp = await client.patch(
            f"/api/projects/{ids['project_id']}/nodes/ghost", json={"label": "x"}
        )
        assert resp.status_code == 404

    async def test_delete_node_orphans_children(self, client):
        """Without cascade, the children of a deleted node become roots."""
        ids = await create_project_with_outline(client)
        project_id, n = ids["project_id"], ids["node_ids"]
        resp = await client.delete(f"/api/projects/{project_id}/nodes/{n['A']}")
        assert resp.json() == {"removed_ids": [n["A"]]}

        codes = _codes((await client.get(f"/api/projects/{project_id}/outline")).json())
        assert n["A"] not in codes
        assert codes[n["B"]] == "1"
        assert codes[n["A1"]] == "0"

    async def test_delete_node_cascade(self, client):
        ids = await create_project_with_outline(client)
        project_id, n = ids["project_id"], ids["node_ids"]
        resp = await client.delete(
            f"/api/projects/{project_id}/nodes/{n['A']}", params={"cascade": "true"}
        )
        assert sorted(resp.json()["removed_ids"]) == sorted([n["A"], n["A1"], n["A2"]])
        outline = (await client.get(f"/api/projects/{project_id}/outline")).json()
        assert _codes(outline) == {n["root"]: "0", n["B"]: "1"}
        for node in outline["nodes"]:
            assert n["A"] not in node["children_ids"]

    async def test_root_cannot_be_deleted(self, client):
        ids = await create_project_with_outline(client)
        resp = await client.delete(
            f"/api/projects/{ids['project_id']}/nodes/{ids['node_ids']['root']}"
        )
        assert resp.status_code == 409

    async def test_tree(self, client):
        ids = await create_project_with_outline(client)
        resp = await client.get(f"/api/projects/{ids['project_id']}/tree")
        (root,) = resp.json()["tree"]
        assert root["code"] == "0"
        assert [c["title"] for c in root["children"]] == ["A", "B"]
        assert [c["code"] for c in root["children"][0]["children"]] == ["1.1", "1.2"]


class TestCollapse:
    async def test_collapsed_query(self, client):
        ids = await create_project_with_outline(client)
        n = ids["node_ids"]
        resp = await client.get(
            f"/api/projects/{ids['project_id']}/outline", params={"collapsed": n["A"]}
        )
        assert [node["id"] for node in resp.json()["nodes"]] == [n["root"], n["A"], n["B"]]
        assert _codes(resp.json())[n["B"]] == "2"

    async def test_toggle_collapse_is_remembered(self, client):
        ids = await create_project_with_outline(client)
        project_id, n = ids["project_id"], ids["node_ids"]

        resp = await client.post(f"/api/projects/{project_id}/nodes/{n['A']}/collapse")
        assert resp.json()["collapsed"] is True
        outline = (await client.get(f"/api/projects/{project_id}/outline")).json()
        assert n["A1"] not in _codes(outline)

        resp = await client.post(f"/api/projects/{project_id}/nodes/{n['A']}/collapse")
        assert resp.json()["collapsed"] is False
        outline = (await client.get(f"/api/projects/{project_id}/outline")).json()
        assert _codes(outline)[n["A2"]] == "1.2"

    async def test_collapse_unknown_node(self, client):
        ids = await create_project_with_outline(client)
        resp = await client.post(f"/api/projects/{ids['project_id']}/nodes/ghost/collapse")
        assert resp.status_code == 404


class TestReorder:
    async def test_move_before_sibling(self, client):
        ids = await create_project_with_outline(client)
        project_id, n = ids["project_id"], ids["node_ids"]
        resp = await client.post(f"/api/projects/{project_id}/reorder", json={
            "dragged_id": n["B"], "target_id": n["A"], "mode": "before",
        })
        assert resp.status_code == 200
        assert resp.json()["applied"] is True

        codes = _codes((await client.get(f"/api/projects/{project_id}/outline")).json())
        assert codes[n["B"]] == "1"
        assert codes[n["A"]] == "2"
        assert codes[n["A1"]] == "2.1"

    async def test_rejected_move_reports_warning(self, client):
        """Dragging the root answers 200 with applied=false; nothing changes."""
        ids = await create_project_with_outline(client)
        project_id, n = ids["project_id"], ids["node_ids"]
        before = (await client.get(f"/api/projects/{project_id}")).json()["edges"]

        resp = await client.post(f"/api/projects/{project_id}/reorder", json={
            "dragged_id": n["root"], "target_id": n["B"], "mode": "onto",
        })
        assert resp.status_code == 200
        assert resp.json()["applied"] is False
        assert resp.json()["warning"] == "Root node cannot be moved"
        assert resp.json()["edges"] == before

    async def test_invalid_mode(self, client):
        ids = await create_project_with_outline(client)
        n = ids["node_ids"]
        resp = await client.post(f"/api/projects/{ids['project_id']}/reorder", json={
            "dragged_id": n["B"], "target_id": n["A"], "mode": "sideways",
        })
        assert resp.status_code == 422

    async def test_unknown_node(self, client):
        ids = await create_project_with_outline(client)
        resp = await client.post(f"/api/projects/{ids['project_id']}/reorder", json={
            "dragged_id": "ghost", "target_id": ids["node_ids"]["A"], "mode": "onto",
        })
        assert resp.status_code == 404


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/api/health")
        assert resp.json()["status"] == "ok"


class TestSessionLifetime:
    async def test_reading_unknown_projects_keeps_nothing_open(self, client, service):
        """Looking at ids that were never saved does not accumulate sessions."""
        for i in range(50):
            resp = await client.get(f"/api/projects/random-{i}")
            assert resp.status_code == 200
            await client.get(f"/api/projects/random-{i}/outline")
        assert not any(service.is_open(f"random-{i}") for i in range(50))

    async def test_first_mutation_opens_session(self, client, service):
        resp = await client.post("/api/projects/later/nodes", json={"label": "Begin"})
        assert resp.status_code == 201
        assert service.is_open("later")

        detail = (await client.get("/api/projects/later")).json()
        assert [n["label"] for n in detail["nodes"]] == ["Begin"]

    async def test_reading_saved_project_does_not_open_it(self, client, service):
        ids = await create_project_with_outline(client)
        project_id = ids["project_id"]
        await client.post(f"/api/projects/{project_id}/checkpoints", json={"kind": "draft"})
        await service.close_session(project_id)

        detail = (await client.get(f"/api/projects/{project_id}")).json()
        assert detail["latest_version"] == "1.0.1"
        assert len(detail["nodes"]) == 5
        assert not service.is_open(project_id)
