"""Import/export API routes."""

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile
from fastapi.responses import Response

from sopgraph.errors import PersistenceError, ValidationError
from sopgraph.projects.schemas import ProjectDetailResponse
from sopgraph.transfer.service import ExportFormat, TransferService

router = APIRouter(prefix="/api/projects", tags=["transfer"])

_MEDIA_TYPES = {
    "json": "application/json",
    "yaml": "application/yaml",
    "text": "text/plain; charset=utf-8",
}
_EXTENSIONS = {"json": "json", "yaml": "yaml", "text": "txt"}


def get_transfer_service() -> TransferService:
    """Dependency placeholder, overridden at startup."""
    raise RuntimeError("TransferService not configured")


@router.post("/{project_id}/import")
async def import_document(
    project_id: str,
    file: UploadFile,
    service: TransferService = Depends(get_transfer_service),
) -> ProjectDetailResponse:
    """Replace the project's outline with an uploaded document."""
    content = await file.read()
    try:
        return await service.import_document(
            project_id, content, file.filename or "upload.json"
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.problems) from e
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e


@router.get("/{project_id}/export", response_model=None)
async def export_document(
    project_id: str,
    format: ExportFormat = Query("json"),
    service: TransferService = Depends(get_transfer_service),
) -> Response:
    try:
        body = await service.export(project_id, format)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    headers = {
        "Content-Disposition": (
            f'attachment; filename="{project_id}.{_EXTENSIONS[format]}"'
        ),
    }
    return Response(content=body, media_type=_MEDIA_TYPES[format], headers=headers)
