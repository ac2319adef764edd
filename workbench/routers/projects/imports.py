"""Batch import, import preview and export validation endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.database import get_async_session
from workbench.logging_config import get_logger
from workbench.schemas import ImportRequest
from workbench.services.import_orchestrator import ImportOrchestrator
from workbench.services.validation import ValidationEngine

from ._common import get_import_orchestrator, get_project_or_404, get_validation_engine

logger = get_logger(__name__)
router = APIRouter()


@router.post("/{project_id}/import")
async def import_resources(
    project_id: str,
    req: ImportRequest,
    orchestrator: ImportOrchestrator = Depends(get_import_orchestrator),
):
    """Import resources, pulling in critical dependencies when requested.

    Item failures are reported in the result; only a dependency cycle or a
    missing project fails the whole request.
    """
    logger.debug(f"Importing {len(req.items)} resources into project {project_id}")
    result = await orchestrator.import_resources(project_id, req)
    return {**result.model_dump(), "summary": result.summary}


@router.post("/{project_id}/import/preview")
async def preview_import(
    project_id: str,
    req: ImportRequest,
    orchestrator: ImportOrchestrator = Depends(get_import_orchestrator),
):
    return await orchestrator.preview(project_id, req)


@router.get("/{project_id}/export/validate")
async def validate_export(
    project_id: str,
    session: AsyncSession = Depends(get_async_session),
    engine: ValidationEngine = Depends(get_validation_engine),
):
    await get_project_or_404(session, project_id)
    return await engine.validate_project_export(session, project_id)
