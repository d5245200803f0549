"""In-memory editing state for one open project."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from sopgraph.models import DEFAULT_VERSION, ProjectMeta, SaveStatus, Snapshot
from sopgraph.outline.graph import GraphStore
from sopgraph.outline.processor import compute_codes

DEFAULT_PROJECT_NAME = "Untitled process"


@dataclass
class EditorSession:
    """The authoritative working copy of a project.

    The service keeps exactly one of these per open project and mutates it in
    place; background tasks look it up by project id every time they run.
    """

    meta: ProjectMeta
    graph: GraphStore
    owner_id: str | None = None
    owner_email: str | None = None
    status: str | None = None
    collapsed_ids: set[str] = field(default_factory=set)
    last_persisted: Snapshot | None = None
    save_status: SaveStatus = "idle"
    last_error: str | None = None

    @property
    def project_id(self) -> str:
        return self.meta.id

    @classmethod
    def fresh(cls, project_id: str, name: str = DEFAULT_PROJECT_NAME) -> "EditorSession":
        return cls(
            meta=ProjectMeta(id=project_id, name=name, latest_version=DEFAULT_VERSION),
            graph=GraphStore(),
        )

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "EditorSession":
        """Open a session on a snapshot that is already persisted."""
        return cls(
            meta=snapshot.meta.model_copy(),
            graph=GraphStore(snapshot.nodes, snapshot.edges),
            owner_id=snapshot.owner_id,
            owner_email=snapshot.owner_email,
            status=snapshot.status,
            last_persisted=snapshot.model_copy(deep=True),
            save_status="saved",
        )

    def snapshot(self) -> Snapshot:
        """Independent copy of the current state, codes embedded for audit."""
        codes = compute_codes(self.graph.nodes, self.graph.edges)
        return Snapshot(
            meta=self.meta.model_copy(),
            nodes=[
                n.model_copy(update={"computed_code": codes.get(n.id)}, deep=True)
                for n in self.graph.nodes
            ],
            edges=[e.model_copy() for e in self.graph.edges],
            updated_at=datetime.now(UTC).isoformat(),
            owner_id=self.owner_id,
            owner_email=self.owner_email,
            status=self.status,
        )

    def toggle_collapsed(self, node_id: str) -> bool:
        """Flip a node's collapsed state. Returns True if now collapsed."""
        if node_id in self.collapsed_ids:
            self.collapsed_ids.discard(node_id)
            return False
        self.collapsed_ids.add(node_id)
        return True
