"""Core project CRUD endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.database import get_async_session
from workbench.events import publish_event
from workbench.logging_config import get_logger
from workbench.models import Project
from workbench.schemas import CreateProjectRequest, UpdateProjectRequest, ProjectStatus
from workbench.services.unit_of_work import default_locks
from workbench.utils import now_ms, gen_id

from ._common import get_project_or_404, unique_slug, _serialize_project

logger = get_logger(__name__)
router = APIRouter()


@router.post("/")
async def create_project(
    req: CreateProjectRequest, session: AsyncSession = Depends(get_async_session)
):
    """Create a project; the slug is derived from the name and kept unique."""
    logger.debug(f"Creating project: name={req.name}, status={req.status.value}")
    now = now_ms()
    project = Project(
        id=gen_id("proj_"),
        slug=await unique_slug(session, req.name),
        name=req.name,
        description=req.description,
        status=req.status.value,
        created_at=now,
        updated_at=now,
    )
    session.add(project)
    await session.commit()

    await publish_event("PROJECT_CREATED", {"projectId": project.id, "name": project.name})
    return _serialize_project(project)


@router.get("/")
async def list_projects(
    status: ProjectStatus | None = None,
    session: AsyncSession = Depends(get_async_session),
):
    """List projects, newest first, optionally filtered by status."""
    logger.debug(f"Listing projects: status={status}")
    query = select(Project)
    if status is not None:
        query = query.where(Project.status == status.value)
    result = await session.execute(query.order_by(Project.created_at.desc()))
    return [_serialize_project(p) for p in result.scalars().all()]


@router.get("/by-slug/{slug}")
async def get_project_by_slug(slug: str, session: AsyncSession = Depends(get_async_session)):
    result = await session.execute(select(Project).where(Project.slug == slug))
    project = result.scalar_one_or_none()
    if not project:
        raise HTTPException(status_code=404, detail=f"Project with slug '{slug}' not found")
    return _serialize_project(project)


@router.get("/{project_id}")
async def get_project(project_id: str, session: AsyncSession = Depends(get_async_session)):
    return _serialize_project(await get_project_or_404(session, project_id))


@router.patch("/{project_id}")
async def update_project(
    project_id: str,
    req: UpdateProjectRequest,
    session: AsyncSession = Depends(get_async_session),
):
    """Update project fields. Renaming regenerates the slug."""
    logger.debug(f"Updating project: project_id={project_id}")
    project = await get_project_or_404(session, project_id)
    now = now_ms()

    if req.name is not None:
        name = req.name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Name is required")
        if name != project.name:
            project.slug = await unique_slug(session, name, exclude_id=project.id)
        project.name = name
    if req.description is not None:
        project.description = req.description
    if req.status is not None:
        project.status = req.status.value
        project.completed_at = now if req.status == ProjectStatus.COMPLETED else None
    project.updated_at = now
    await session.commit()

    await publish_event("PROJECT_UPDATED", {"projectId": project_id})
    return _serialize_project(project)


@router.delete("/{project_id}")
async def delete_project(project_id: str, session: AsyncSession = Depends(get_async_session)):
    """Delete a project and its assignments. Assigned resources are kept."""
    logger.debug(f"Deleting project: project_id={project_id}")
    project = await get_project_or_404(session, project_id)
    await session.delete(project)
    await session.commit()
    default_locks.discard(project_id)

    await publish_event("PROJECT_DELETED", {"projectId": project_id})
    return {"status": "deleted", "project_id": project_id}
