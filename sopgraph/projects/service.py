"""Project service: owns the open editing sessions and their checkpoints.

Every mutation goes through an EditorSession's GraphStore; every read
recomputes the outline from it. Checkpoints diff the current snapshot against
the last persisted one, bump the version, and write through the document
store and the version log.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import UTC, datetime
from uuid import uuid4

from sopgraph.db.connection import Database
from sopgraph.errors import (
    InvariantViolation,
    NodeNotFoundError,
    PersistenceError,
    ProjectNotFoundError,
)
from sopgraph.models import (
    CheckpointType,
    Edge,
    Editor,
    Node,
    OutlineNode,
    ProjectMeta,
    Snapshot,
    VersionRecord,
)
from sopgraph.outline.diff import generate_change_log, has_content_changed
from sopgraph.outline.graph import ROOT_DESCRIPTION, ROOT_LABEL, GraphStore
from sopgraph.outline.processor import process_graph
from sopgraph.outline.reorder import try_move_node
from sopgraph.outline.tree import build_tree
from sopgraph.outline.versioning import bump, version_number
from sopgraph.projects.autosave import AutosaveTask
from sopgraph.projects.schemas import (
    CheckpointRequest,
    CheckpointResponse,
    CollapseResponse,
    CreateNodeRequest,
    CreateProjectRequest,
    OutlineResponse,
    PatchNodeRequest,
    PatchProjectRequest,
    PendingChangesResponse,
    ProjectDetailResponse,
    ProjectSummary,
    ReorderRequest,
    ReorderResponse,
    TreeResponse,
    VersionEntry,
    VersionHistoryResponse,
)
from sopgraph.projects.session import DEFAULT_PROJECT_NAME, EditorSession
from sopgraph.storage.documents import ProjectStore
from sopgraph.storage.history import VersionLog

logger = logging.getLogger(__name__)

_CHECKPOINT_KINDS: dict[str, CheckpointType] = {
    "draft": "patch",
    "archive": "minor",
    "publish": "major",
}

_STATUS_BY_TYPE: dict[CheckpointType, str] = {
    "patch": "draft",
    "minor": "archived",
    "major": "published",
}


class ProjectService:
    """Coordinates sessions, the outline engine, and persistence."""

    def __init__(self, db: Database, autosave_interval: float | None = None) -> None:
        self._db = db
        self._documents = ProjectStore(db)
        self._history = VersionLog(db)
        self._autosave_interval = autosave_interval
        self._sessions: dict[str, EditorSession] = {}
        self._autosaves: dict[str, AutosaveTask] = {}
        self._checkpoint_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def open_session(self, project_id: str, *, register: bool = True) -> EditorSession:
        """Return the open session, loading or initializing it if needed.

        An unknown project id is not an error: it starts a new, unsaved project.
        Reads pass register=False so that looking at a project never keeps a
        session (or its autosave task) alive; the first mutation registers it.
        """
        session = self._sessions.get(project_id)
        if session is not None:
            return session
        try:
            snapshot = await self._documents.load(project_id)
            session = EditorSession.from_snapshot(snapshot)
        except ProjectNotFoundError:
            logger.info("Project %s not found; initializing a new one", project_id)
            session = EditorSession.fresh(project_id)
        if not register:
            return session
        # Another request may have registered it while the load was awaited.
        existing = self._sessions.get(project_id)
        if existing is not None:
            return existing
        self._register(session)
        return session

    def is_open(self, project_id: str) -> bool:
        return project_id in self._sessions

    def _register(self, session: EditorSession) -> None:
        self._sessions[session.project_id] = session
        if self._autosave_interval and session.project_id not in self._autosaves:
            project_id = session.project_id
            task = AutosaveTask(
                project_id,
                lambda: self.autosave(project_id),
                self._autosave_interval,
            )
            self._autosaves[project_id] = task
            task.start()

    async def close_session(self, project_id: str) -> None:
        task = self._autosaves.pop(project_id, None)
        if task is not None:
            await task.stop()
        self._sessions.pop(project_id, None)
        self._checkpoint_locks.pop(project_id, None)

    async def close(self) -> None:
        """Stop every autosave task. Call before closing the database."""
        for project_id in list(self._autosaves):
            await self.close_session(project_id)
        self._sessions.clear()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def create_project(self, request: CreateProjectRequest) -> ProjectDetailResponse:
        """Start a new project. Nothing is stored until the first checkpoint."""
        session = EditorSession.fresh(str(uuid4()), request.name or DEFAULT_PROJECT_NAME)
        session.owner_id = request.owner_id
        session.owner_email = request.owner_email
        self._register(session)
        return self._detail(session)

    async def get_project(self, project_id: str) -> ProjectDetailResponse:
        return self._detail(await self.open_session(project_id, register=False))

    async def list_projects(self, owner_id: str | None = None) -> list[ProjectSummary]:
        rows = await self._documents.list_projects(owner_id)
        return [ProjectSummary(**row) for row in rows]

    async def update_project(
        self, project_id: str, request: PatchProjectRequest
    ) -> ProjectDetailResponse:
        session = await self.open_session(project_id)
        for field_name in request.model_fields_set:
            value = getattr(request, field_name)
            if field_name == "name":
                if value:
                    session.meta.name = value
            else:
                setattr(session, field_name, value)
        return self._detail(session)

    async def delete_project(self, project_id: str) -> None:
        was_open = project_id in self._sessions
        await self.close_session(project_id)
        try:
            await self._documents.delete(project_id)
        except ProjectNotFoundError:
            if not was_open:
                raise
        await self._history.delete_project(project_id)
        logger.info("Deleted project %s", project_id)

    # ------------------------------------------------------------------
    # Outline reads
    # ------------------------------------------------------------------

    async def get_outline(
        self, project_id: str, collapsed_ids: list[str] | None = None
    ) -> OutlineResponse:
        """Visible nodes. Uses the session's collapse set unless one is given."""
        session = await self.open_session(project_id, register=False)
        collapsed = set(collapsed_ids) if collapsed_ids is not None else session.collapsed_ids
        nodes = process_graph(session.graph.nodes, session.graph.edges, collapsed)
        return OutlineResponse(
            project_id=project_id, nodes=nodes, collapsed_ids=sorted(collapsed)
        )

    async def get_tree(self, project_id: str) -> TreeResponse:
        session = await self.open_session(project_id, register=False)
        full = process_graph(session.graph.nodes, session.graph.edges)
        return TreeResponse(
            project_id=project_id, tree=build_tree(full, session.graph.edges)
        )

    async def toggle_collapse(self, project_id: str, node_id: str) -> CollapseResponse:
        session = await self.open_session(project_id)
        if not session.graph.has_node(node_id):
            raise NodeNotFoundError(node_id)
        collapsed = session.toggle_collapsed(node_id)
        return CollapseResponse(
            node_id=node_id,
            collapsed=collapsed,
            collapsed_ids=sorted(session.collapsed_ids),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_node(self, project_id: str, request: CreateNodeRequest) -> OutlineNode:
        """Add a child under parent_id, or the root when the outline is empty."""
        session = await self.open_session(project_id)
        graph = session.graph
        if request.jump_target_id is not None and not graph.has_node(request.jump_target_id):
            raise NodeNotFoundError(request.jump_target_id)

        if request.parent_id is None:
            node = graph.create_root(
                label=request.label or ROOT_LABEL,
                description=request.description or ROOT_DESCRIPTION,
            )
            if request.payload:
                graph.update_node(node.id, payload=request.payload)
        else:
            node, _ = graph.add_child(
                request.parent_id,
                label=request.label,
                description=request.description,
                payload=request.payload,
                jump_target_id=request.jump_target_id,
            )
        return self._outline_node(session, node.id)

    async def update_node(
        self, project_id: str, node_id: str, request: PatchNodeRequest
    ) -> OutlineNode:
        """Edit label/description/payload/jump target. Only sent fields change."""
        session = await self.open_session(project_id)
        graph = session.graph
        current = graph.get_node(node_id)

        changes: dict[str, object] = {}
        for field_name in request.model_fields_set:
            value = getattr(request, field_name)
            if field_name in ("label", "description"):
                changes[field_name] = value or ""
            elif field_name == "payload":
                changes["payload"] = value or {}
            elif field_name == "jump_target_id":
                if value is not None and not graph.has_node(value):
                    raise NodeNotFoundError(value)
                changes["jump_target_id"] = value

        if request.payload_key:
            payload = dict(changes.get("payload", current.payload))  # type: ignore[arg-type]
            payload[request.payload_key] = request.payload_value or ""
            changes["payload"] = payload

        if changes:
            graph.update_node(node_id, **changes)
        return self._outline_node(session, node_id)

    async def delete_node(
        self, project_id: str, node_id: str, *, cascade: bool = False
    ) -> list[str]:
        """Delete a node (children orphaned) or, with cascade, its subtree."""
        session = await self.open_session(project_id)
        graph = session.graph
        if not graph.has_node(node_id):
            raise NodeNotFoundError(node_id)
        if node_id == graph.root_id:
            raise InvariantViolation("Root node cannot be deleted", node_id=node_id)

        if cascade:
            removed = graph.remove_subtree(node_id)
        else:
            graph.remove_node(node_id)
            removed = {node_id}
        session.collapsed_ids -= removed
        return sorted(removed)

    async def reorder(self, project_id: str, request: ReorderRequest) -> ReorderResponse:
        """Apply a drag intent. A rejected move leaves the edges untouched."""
        session = await self.open_session(project_id)
        graph = session.graph
        for node_id in (request.dragged_id, request.target_id):
            if not graph.has_node(node_id):
                raise NodeNotFoundError(node_id)

        result = try_move_node(
            graph.edges,
            request.dragged_id,
            request.target_id,
            request.mode,
            root_id=graph.root_id,
        )
        if result.applied:
            graph.edges = result.edges
        return ReorderResponse(
            applied=result.applied, warning=result.warning, edges=graph.edges
        )

    async def replace_content(
        self,
        project_id: str,
        nodes: list[Node],
        edges: list[Edge],
        name: str | None = None,
    ) -> ProjectDetailResponse:
        """Swap in a whole new outline. Callers validate the document first."""
        session = await self.open_session(project_id)
        session.graph.replace(nodes, edges)
        session.collapsed_ids.clear()
        if name:
            session.meta.name = name
        return self._detail(session)

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------

    async def pending_changes(self, project_id: str) -> PendingChangesResponse:
        session = await self.open_session(project_id, register=False)
        change_log = generate_change_log(session.last_persisted, session.snapshot())
        return PendingChangesResponse(changed=bool(change_log), change_log=change_log)

    async def autosave(self, project_id: str) -> bool:
        """One autosave tick. Returns True if something was persisted.

        Reads the session as it is right now. Failures only flag the session;
        the next tick tries again because the diff still shows a change.
        """
        session = self._sessions.get(project_id)
        if session is None or not session.graph.nodes:
            return False
        async with self._checkpoint_locks[project_id]:
            current = session.snapshot()
            if not has_content_changed(session.last_persisted, current):
                return False
            change_log = generate_change_log(session.last_persisted, current)
            try:
                version = await self._commit(
                    session, current, "patch", change_log, remark="Autosave", editor=None
                )
            except PersistenceError as e:
                logger.error("Autosave of %s failed: %s", project_id, e)
                return False
        logger.info("Autosaved %s as %s", project_id, version)
        return True

    async def checkpoint(
        self, project_id: str, request: CheckpointRequest
    ) -> CheckpointResponse:
        """Explicit draft / archive / publish. Every call bumps the version.

        Checkpoints and autosave ticks of one project run one at a time, so
        each sees the version the previous one wrote.
        """
        session = await self.open_session(project_id)
        if not session.graph.nodes:
            raise InvariantViolation("Nothing to save: the outline is empty")

        kind = _CHECKPOINT_KINDS[request.kind]
        async with self._checkpoint_locks[project_id]:
            current = session.snapshot()
            change_log = generate_change_log(session.last_persisted, current)

            if kind == "major":
                return await self._publish(session, current, change_log, request)

            version = await self._commit(
                session, current, kind, change_log,
                remark=request.remark, editor=request.editor,
            )
        logger.info("Checkpoint %s of %s: %s", request.kind, project_id, version)
        return CheckpointResponse(
            project_id=project_id, version=version, type=kind, change_log=change_log
        )

    async def _publish(
        self,
        source: EditorSession,
        current: Snapshot,
        change_log: list[str],
        request: CheckpointRequest,
    ) -> CheckpointResponse:
        """Fork the current content into a new project one major version up."""
        forked = EditorSession(
            meta=ProjectMeta(
                id=str(uuid4()),
                name=source.meta.name,
                latest_version=source.meta.latest_version,
            ),
            graph=GraphStore(current.nodes, current.edges),
            owner_id=source.owner_id,
            owner_email=source.owner_email,
        )
        remark = request.remark or (
            f"Published from {source.meta.name} v{source.meta.latest_version}"
        )
        version = await self._commit(
            forked, forked.snapshot(), "major", change_log,
            remark=remark, editor=request.editor,
        )
        self._register(forked)
        logger.info(
            "Published %s as new project %s (%s)",
            source.project_id, forked.project_id, version,
        )
        return CheckpointResponse(
            project_id=forked.project_id,
            version=version,
            type="major",
            change_log=change_log,
            source_project_id=source.project_id,
        )

    async def _commit(
        self,
        session: EditorSession,
        current: Snapshot,
        kind: CheckpointType,
        change_log: list[str],
        *,
        remark: str | None,
        editor: Editor | None,
    ) -> str:
        """Persist `current` one `kind` bump up and record it in the history.

        Both writes share one transaction, so the stored document never gets
        ahead of the history. The session is only updated after the commit.
        """
        version = bump(session.meta.latest_version, kind)
        status = _STATUS_BY_TYPE[kind]
        snapshot = current.model_copy(
            update={
                "meta": current.meta.model_copy(update={"latest_version": version}),
                "status": status,
            }
        )
        record = VersionRecord(
            project_id=session.project_id,
            version_str=version,
            version_number=version_number(version),
            type=kind,
            meta=snapshot.meta,
            nodes=snapshot.nodes,
            edges=snapshot.edges,
            change_log=change_log,
            created_at=datetime.now(UTC).isoformat(),
            editor=editor,
            remark=remark,
        )

        session.save_status = "saving"
        try:
            async with self._db.transaction() as tx:
                await self._documents.save(snapshot, tx)
                await self._history.append(record, tx)
        except PersistenceError as e:
            session.save_status = "error"
            session.last_error = str(e)
            raise

        session.meta.latest_version = version
        session.status = status
        session.last_persisted = snapshot
        session.save_status = "saved"
        session.last_error = None
        return version

    async def list_versions(self, project_id: str) -> VersionHistoryResponse:
        records = await self._history.list_versions(project_id)
        return VersionHistoryResponse(
            project_id=project_id,
            versions=[
                VersionEntry(
                    version_str=r.version_str,
                    version_number=r.version_number,
                    type=r.type,
                    change_log=r.change_log,
                    created_at=r.created_at,
                    editor=r.editor,
                    remark=r.remark,
                    node_count=len(r.nodes),
                )
                for r in records
            ],
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _outline_node(session: EditorSession, node_id: str) -> OutlineNode:
        full = process_graph(session.graph.nodes, session.graph.edges)
        node = next((n for n in full if n.id == node_id), None)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    @staticmethod
    def _detail(session: EditorSession) -> ProjectDetailResponse:
        return ProjectDetailResponse(
            project_id=session.project_id,
            name=session.meta.name,
            latest_version=session.meta.latest_version,
            owner_id=session.owner_id,
            owner_email=session.owner_email,
            status=session.status,
            save_status=session.save_status,
            root_id=session.graph.root_id,
            nodes=session.graph.nodes,
            edges=session.graph.edges,
            collapsed_ids=sorted(session.collapsed_ids),
        )
