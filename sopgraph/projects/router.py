"""FastAPI routes for projects, nodes, reordering and checkpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from sopgraph.errors import (
    InvariantViolation,
    NodeNotFoundError,
    PersistenceError,
    ProjectNotFoundError,
)
from sopgraph.models import OutlineNode
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
    VersionHistoryResponse,
)
from sopgraph.projects.service import ProjectService

router = APIRouter(prefix="/api/projects", tags=["projects"])


def get_project_service() -> ProjectService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("ProjectService not initialized")


def _split_ids(raw: str | None) -> list[str] | None:
    if raw is None:
        return None
    return [x.strip() for x in raw.split(",") if x.strip()]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    request: CreateProjectRequest,
    service: ProjectService = Depends(get_project_service),
) -> ProjectDetailResponse:
    return await service.create_project(request)


@router.get("")
async def list_projects(
    owner_id: str | None = Query(None),
    service: ProjectService = Depends(get_project_service),
) -> list[ProjectSummary]:
    try:
        return await service.list_projects(owner_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
) -> ProjectDetailResponse:
    """Open a project. Unknown ids start a new, unsaved project."""
    try:
        return await service.get_project(project_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.patch("/{project_id}")
async def update_project(
    project_id: str,
    request: PatchProjectRequest,
    service: ProjectService = Depends(get_project_service),
) -> ProjectDetailResponse:
    try:
        return await service.update_project(project_id, request)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
) -> None:
    try:
        await service.delete_project(project_id)
    except ProjectNotFoundError:
        raise HTTPException(status_code=404, detail=f"Project not found: {project_id}")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/{project_id}/outline")
async def get_outline(
    project_id: str,
    collapsed: str | None = Query(None, description="Comma-separated node ids"),
    service: ProjectService = Depends(get_project_service),
) -> OutlineResponse:
    try:
        return await service.get_outline(project_id, _split_ids(collapsed))
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/{project_id}/tree")
async def get_tree(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
) -> TreeResponse:
    try:
        return await service.get_tree(project_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/{project_id}/nodes", status_code=status.HTTP_201_CREATED)
async def create_node(
    project_id: str,
    request: CreateNodeRequest,
    service: ProjectService = Depends(get_project_service),
) -> OutlineNode:
    try:
        return await service.create_node(project_id, request)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvariantViolation as e:
        raise HTTPException(status_code=409, detail=e.reason)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.patch("/{project_id}/nodes/{node_id}")
async def update_node(
    project_id: str,
    node_id: str,
    request: PatchNodeRequest,
    service: ProjectService = Depends(get_project_service),
) -> OutlineNode:
    try:
        return await service.update_node(project_id, node_id, request)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.delete("/{project_id}/nodes/{node_id}")
async def delete_node(
    project_id: str,
    node_id: str,
    cascade: bool = Query(False),
    service: ProjectService = Depends(get_project_service),
) -> dict:
    try:
        removed = await service.delete_node(project_id, node_id, cascade=cascade)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except InvariantViolation as e:
        raise HTTPException(status_code=409, detail=e.reason)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"removed_ids": removed}


@router.post("/{project_id}/nodes/{node_id}/collapse")
async def toggle_collapse(
    project_id: str,
    node_id: str,
    service: ProjectService = Depends(get_project_service),
) -> CollapseResponse:
    try:
        return await service.toggle_collapse(project_id, node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/{project_id}/reorder")
async def reorder(
    project_id: str,
    request: ReorderRequest,
    service: ProjectService = Depends(get_project_service),
) -> ReorderResponse:
    """Rejected moves answer 200 with applied=false and a warning."""
    try:
        return await service.reorder(project_id, request)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/{project_id}/changes")
async def pending_changes(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
) -> PendingChangesResponse:
    try:
        return await service.pending_changes(project_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/{project_id}/checkpoints", status_code=status.HTTP_201_CREATED)
async def create_checkpoint(
    project_id: str,
    request: CheckpointRequest,
    service: ProjectService = Depends(get_project_service),
) -> CheckpointResponse:
    try:
        return await service.checkpoint(project_id, request)
    except InvariantViolation as e:
        raise HTTPException(status_code=409, detail=e.reason)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/{project_id}/versions")
async def list_versions(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
) -> VersionHistoryResponse:
    try:
        return await service.list_versions(project_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
