"""Bulk import/export of whole outlines, plus the plain-text document view."""

import json
import logging
from typing import Any, Literal

import yaml
from pydantic import ValidationError as PydanticValidationError

from sopgraph.errors import ValidationError
from sopgraph.models import Edge, Node, OutlineNode
from sopgraph.outline.graph import validate_forest
from sopgraph.outline.processor import process_graph
from sopgraph.outline.tree import DRAFT_TITLE
from sopgraph.projects.schemas import ProjectDetailResponse
from sopgraph.projects.service import ProjectService

logger = logging.getLogger(__name__)

ExportFormat = Literal["json", "yaml", "text"]

_YAML_SUFFIXES = (".yaml", ".yml")


def load_document(content: bytes, filename: str) -> Any:
    """Decode an uploaded file. YAML by extension, JSON otherwise."""
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValidationError(f"File is not UTF-8 text: {e}") from e
    try:
        if filename.lower().endswith(_YAML_SUFFIXES):
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValidationError(f"Could not parse {filename}: {e}") from e


def validate_document(data: Any) -> tuple[list[Node], list[Edge], str | None]:
    """Check an import document and return its nodes, edges and name.

    Requires `nodes` and `edges` as sequences; `meta` is optional. Any problem
    rejects the whole document.
    """
    if not isinstance(data, dict):
        raise ValidationError("Document must be an object with nodes and edges")
    raw_nodes, raw_edges = data.get("nodes"), data.get("edges")
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        raise ValidationError("Document must contain 'nodes' and 'edges' lists")

    problems: list[str] = []
    nodes: list[Node] = []
    edges: list[Edge] = []
    for index, raw in enumerate(raw_nodes):
        try:
            nodes.append(Node.model_validate(raw))
        except PydanticValidationError as e:
            problems.append(f"node #{index}: {e.errors()[0]['msg']}")
    for index, raw in enumerate(raw_edges):
        try:
            edges.append(Edge.model_validate(raw))
        except PydanticValidationError as e:
            problems.append(f"edge #{index}: {e.errors()[0]['msg']}")
    if problems:
        raise ValidationError(problems)

    problems = validate_forest(nodes, edges)
    if problems:
        raise ValidationError(problems)

    name = None
    meta = data.get("meta")
    if isinstance(meta, dict) and isinstance(meta.get("name"), str):
        name = meta["name"]
    return nodes, edges, name


def render_outline_text(title: str, version: str, nodes: list[OutlineNode]) -> str:
    """Indented plain-text rendering of an outline, one line per node."""
    codes = {n.id: n.computed_code for n in nodes}
    lines = [f"{title} (v{version})", ""]
    for node in nodes:
        depth = 0 if node.computed_code == "0" else node.computed_code.count(".") + 1
        line = f"{'  ' * depth}{node.computed_code} {node.label or DRAFT_TITLE}"
        if node.aggregated_data:
            line += f"  [data: {', '.join(sorted(node.aggregated_data))}]"
        if node.jump_target_id:
            line += f"  -> jump to {codes.get(node.jump_target_id, '?')}"
        lines.append(line)
    lines += ["", "- End of document -"]
    return "\n".join(lines) + "\n"


class TransferService:
    """Full-replacement import and multi-format export of a project."""

    def __init__(self, projects: ProjectService) -> None:
        self._projects = projects

    async def import_document(
        self, project_id: str, content: bytes, filename: str
    ) -> ProjectDetailResponse:
        data = load_document(content, filename)
        nodes, edges, name = validate_document(data)
        logger.info(
            "Importing %d nodes / %d edges into %s", len(nodes), len(edges), project_id
        )
        return await self._projects.replace_content(project_id, nodes, edges, name)

    async def export_document(self, project_id: str) -> dict:
        """The current state as `{meta, nodes, edges}` with audit codes."""
        session = await self._projects.open_session(project_id, register=False)
        snapshot = session.snapshot()
        return {
            "meta": snapshot.meta.model_dump(),
            "nodes": [n.model_dump() for n in snapshot.nodes],
            "edges": [e.model_dump() for e in snapshot.edges],
        }

    async def export(self, project_id: str, fmt: ExportFormat) -> str:
        if fmt == "text":
            session = await self._projects.open_session(project_id, register=False)
            nodes = process_graph(session.graph.nodes, session.graph.edges)
            return render_outline_text(
                session.meta.name, session.meta.latest_version, nodes
            )
        document = await self.export_document(project_id)
        if fmt == "yaml":
            return yaml.safe_dump(document, allow_unicode=True, sort_keys=False)
        return json.dumps(document, ensure_ascii=False, indent=2)
