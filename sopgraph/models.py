"""Canonical data structures for sopgraph.

Defined once here, referenced everywhere else. Raw nodes and edges are the
only authoritative state; OutlineNode and TreeEntry are derived views that are
recomputed on every read.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DropMode = Literal["onto", "before", "after"]
CheckpointType = Literal["patch", "minor", "major"]
SaveStatus = Literal["idle", "saving", "saved", "error"]

DEFAULT_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------


class Node(BaseModel):
    id: str
    label: str = ""  # empty = draft
    description: str = ""
    payload: dict[str, str] = Field(default_factory=dict)
    jump_target_id: str | None = None  # weak, display-only reference
    computed_code: str | None = None  # audit copy embedded at snapshot time

    @model_validator(mode="before")
    @classmethod
    def _flatten_legacy_data(cls, value: Any) -> Any:
        """Accept the editor's `{"id", "data": {...}}` shape as well."""
        if not isinstance(value, dict) or not isinstance(value.get("data"), dict):
            return value
        data = value["data"]
        flat = {k: v for k, v in value.items() if k != "data"}
        flat.setdefault("label", data.get("label") or "")
        flat.setdefault("description", data.get("description") or "")
        flat.setdefault("payload", data.get("payload") or {})
        flat.setdefault("jump_target_id", data.get("jumpTargetId"))
        if "computedCode" in value:
            flat.setdefault("computed_code", value["computedCode"])
        return flat

    @field_validator("payload", mode="before")
    @classmethod
    def _stringify_payload(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): "" if v is None else str(v) for k, v in value.items()}
        return value

    @property
    def is_draft(self) -> bool:
        return not self.label


class Edge(BaseModel):
    id: str
    source: str
    target: str


class OutlineNode(Node):
    """A node enriched by the outline processor. Never stored."""

    computed_code: str
    children_ids: list[str] = Field(default_factory=list)
    parent_ids: list[str] = Field(default_factory=list)
    aggregated_data: dict[str, str] = Field(default_factory=dict)


class TreeEntry(BaseModel):
    key: str
    title: str
    code: str
    jump_to: str | None = None
    children: list["TreeEntry"] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Snapshots and versions
# ---------------------------------------------------------------------------


class ProjectMeta(BaseModel):
    id: str
    name: str
    latest_version: str = DEFAULT_VERSION


class Snapshot(BaseModel):
    """Full independent copy of a project at one point in time."""

    meta: ProjectMeta
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    updated_at: str | None = None
    owner_id: str | None = None
    owner_email: str | None = None
    status: str | None = None


class Editor(BaseModel):
    user_id: str | None = None
    name: str | None = None
    email: str | None = None


class VersionRecord(BaseModel):
    """One committed checkpoint in a project's history. Immutable once stored."""

    project_id: str
    version_str: str
    version_number: int
    type: CheckpointType
    meta: ProjectMeta
    nodes: list[Node]
    edges: list[Edge]
    change_log: list[str] = Field(default_factory=list)
    created_at: str
    editor: Editor | None = None
    remark: str | None = None
    sequence_num: int | None = None  # assigned by DB on insert
