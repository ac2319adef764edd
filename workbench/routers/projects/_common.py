"""Shared helpers for the project routers."""

from fastapi import Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.database import get_async_session
from workbench.logging_config import get_logger
from workbench.models import Project
from workbench.services.assignment_manager import AssignmentManager
from workbench.services.import_orchestrator import ImportOrchestrator
from workbench.services.validation import ValidationEngine
from workbench.utils import MAX_SLUG_LENGTH, gen_id, slugify

logger = get_logger(__name__)

__all__ = [
    "logger",
    "get_project_or_404",
    "get_assignment_manager",
    "get_import_orchestrator",
    "get_validation_engine",
    "unique_slug",
    "_serialize_project",
]


async def get_project_or_404(session: AsyncSession, project_id: str) -> Project:
    """Get project by ID or raise 404."""
    result = await session.execute(select(Project).where(Project.id == project_id))
    project = result.scalar_one_or_none()
    if not project:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    return project


def get_assignment_manager(session: AsyncSession = Depends(get_async_session)) -> AssignmentManager:
    return AssignmentManager(session)


def get_import_orchestrator(session: AsyncSession = Depends(get_async_session)) -> ImportOrchestrator:
    return ImportOrchestrator(session)


def get_validation_engine() -> ValidationEngine:
    return ValidationEngine()


async def unique_slug(session: AsyncSession, name: str, exclude_id: str | None = None) -> str:
    """Slug for ``name``, suffixed with -1, -2, ... until no other project uses it."""
    base = slugify(name) or gen_id("project-")
    slug = base
    counter = 1
    while True:
        query = select(Project.id).where(Project.slug == slug)
        if exclude_id:
            query = query.where(Project.id != exclude_id)
        result = await session.execute(query)
        if result.scalar_one_or_none() is None:
            return slug
        suffix = f"-{counter}"
        slug = f"{base[:MAX_SLUG_LENGTH - len(suffix)]}{suffix}"
        counter += 1


def _serialize_project(project: Project) -> dict:
    return {
        "id": project.id,
        "slug": project.slug,
        "name": project.name,
        "description": project.description,
        "status": project.status,
        "created_at": project.created_at,
        "updated_at": project.updated_at,
        "completed_at": project.completed_at,
    }
