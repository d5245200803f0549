"""Request and response schemas for project and node endpoints."""

from typing import Literal

from pydantic import BaseModel, Field

from sopgraph.models import DropMode, Edge, Editor, Node, OutlineNode, SaveStatus, TreeEntry

# -- Requests --


class CreateProjectRequest(BaseModel):
    name: str | None = None
    owner_id: str | None = None
    owner_email: str | None = None


class PatchProjectRequest(BaseModel):
    """Only fields present in the request body are changed."""

    name: str | None = None
    owner_id: str | None = None
    owner_email: str | None = None


class CreateNodeRequest(BaseModel):
    """Omit parent_id to create the root of an empty outline."""

    parent_id: str | None = None
    label: str = ""
    description: str = ""
    payload: dict[str, str] = Field(default_factory=dict)
    jump_target_id: str | None = None


class PatchNodeRequest(BaseModel):
    """Only fields present in the request body are changed.

    `payload` replaces the whole mapping; `payload_key`/`payload_value` set a
    single entry, the way the property panel edits one row at a time.
    """

    label: str | None = None
    description: str | None = None
    payload: dict[str, str] | None = None
    payload_key: str | None = None
    payload_value: str | None = None
    jump_target_id: str | None = None


class ReorderRequest(BaseModel):
    dragged_id: str
    target_id: str
    mode: DropMode


class CheckpointRequest(BaseModel):
    kind: Literal["draft", "archive", "publish"]
    remark: str | None = None
    editor: Editor | None = None


# -- Responses --


class ProjectSummary(BaseModel):
    project_id: str
    name: str
    latest_version: str
    owner_id: str | None = None
    owner_email: str | None = None
    status: str | None = None
    updated_at: str | None = None


class ProjectDetailResponse(BaseModel):
    project_id: str
    name: str
    latest_version: str
    owner_id: str | None = None
    owner_email: str | None = None
    status: str | None = None
    save_status: SaveStatus = "idle"
    root_id: str | None = None
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    collapsed_ids: list[str] = Field(default_factory=list)


class OutlineResponse(BaseModel):
    project_id: str
    nodes: list[OutlineNode]
    collapsed_ids: list[str]


class TreeResponse(BaseModel):
    project_id: str
    tree: list[TreeEntry]


class CollapseResponse(BaseModel):
    node_id: str
    collapsed: bool
    collapsed_ids: list[str]


class ReorderResponse(BaseModel):
    applied: bool
    warning: str | None = None
    edges: list[Edge]


class PendingChangesResponse(BaseModel):
    changed: bool
    change_log: list[str]


class CheckpointResponse(BaseModel):
    project_id: str
    version: str
    type: Literal["patch", "minor", "major"]
    change_log: list[str]
    source_project_id: str | None = None  # set when publish forked a new project


class VersionEntry(BaseModel):
    version_str: str
    version_number: int
    type: str
    change_log: list[str]
    created_at: str
    editor: Editor | None = None
    remark: str | None = None
    node_count: int


class VersionHistoryResponse(BaseModel):
    project_id: str
    versions: list[VersionEntry]
