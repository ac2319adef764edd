"""Storage access for project_resources and resource_dependencies rows."""

from typing import Optional

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.errors import DuplicateAssignment
from workbench.logging_config import get_logger
from workbench.models import ProjectResource, ResourceDependency
from workbench.utils import gen_id, now_ms

logger = get_logger(__name__)


class AssignmentRepository:
    """CRUD over assignments.

    Writes only flush; committing is the caller's unit of work. The unique
    constraint on (project, type, resource, copy_index) is surfaced as
    DuplicateAssignment.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(
        self,
        project_id: str,
        resource_type: str,
        resource_id: str,
        *,
        is_primary: bool = False,
        assignment_order: int = 0,
        copy_index: int = 0,
        config_overrides: Optional[dict] = None,
        assigned_by: Optional[str] = None,
        assignment_reason: Optional[str] = None,
    ) -> ProjectResource:
        now = now_ms()
        row = ProjectResource(
            id=gen_id("asg_"),
            project_id=project_id,
            resource_type=resource_type,
            resource_id=resource_id,
            is_primary=is_primary,
            assignment_order=assignment_order,
            copy_index=copy_index,
            config_overrides=config_overrides,
            assigned_by=assigned_by,
            assignment_reason=assignment_reason,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        try:
            await self.session.flush()
        except IntegrityError as e:
            logger.debug(f"Insert rejected by unique constraint: {e}")
            raise DuplicateAssignment(project_id, resource_type, resource_id) from e
        return row

    async def update(self, row: ProjectResource, **values) -> ProjectResource:
        for key, value in values.items():
            setattr(row, key, value)
        row.updated_at = now_ms()
        await self.session.flush()
        return row

    async def delete(self, project_id: str, resource_type: str, resource_id: str) -> int:
        """Delete every assignment row for the tuple; returns the row count."""
        result = await self.session.execute(
            delete(ProjectResource).where(
                ProjectResource.project_id == project_id,
                ProjectResource.resource_type == resource_type,
                ProjectResource.resource_id == resource_id,
            )
        )
        return result.rowcount or 0

    async def get(self, assignment_id: str) -> Optional[ProjectResource]:
        result = await self.session.execute(
            select(ProjectResource).where(ProjectResource.id == assignment_id)
        )
        return result.scalar_one_or_none()

    async def find(
        self,
        project_id: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        *,
        canonical_only: bool = False,
    ) -> list[ProjectResource]:
        """Assignments of a project ordered by (type, order, created_at)."""
        query = select(ProjectResource).where(ProjectResource.project_id == project_id)
        if resource_type is not None:
            query = query.where(ProjectResource.resource_type == resource_type)
        if resource_id is not None:
            query = query.where(ProjectResource.resource_id == resource_id)
        if canonical_only:
            query = query.where(ProjectResource.copy_index == 0)
        query = query.order_by(
            ProjectResource.resource_type,
            ProjectResource.assignment_order,
            ProjectResource.created_at,
            ProjectResource.copy_index,
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find_canonical(
        self, project_id: str, resource_type: str, resource_id: str
    ) -> Optional[ProjectResource]:
        rows = await self.find(project_id, resource_type, resource_id, canonical_only=True)
        return rows[0] if rows else None

    async def assigned_ids(self, project_id: str, resource_type: str) -> set[str]:
        result = await self.session.execute(
            select(ProjectResource.resource_id).where(
                ProjectResource.project_id == project_id,
                ProjectResource.resource_type == resource_type,
            )
        )
        return set(result.scalars().all())

    async def clear_primary(
        self, project_id: str, resource_type: str, except_id: Optional[str] = None
    ) -> None:
        """Unset is_primary for every assignment of the (project, type) pair."""
        stmt = (
            update(ProjectResource)
            .where(
                ProjectResource.project_id == project_id,
                ProjectResource.resource_type == resource_type,
                ProjectResource.is_primary.is_(True),
            )
            .values(is_primary=False, updated_at=now_ms())
        )
        if except_id is not None:
            stmt = stmt.where(ProjectResource.id != except_id)
        await self.session.execute(stmt)

    async def next_copy_slot(
        self, project_id: str, resource_type: str, resource_id: str
    ) -> tuple[int, int]:
        """Return (copy_index, assignment_order) for an extra copy of a resource."""
        result = await self.session.execute(
            select(
                func.max(ProjectResource.copy_index),
                func.max(ProjectResource.assignment_order),
            ).where(
                ProjectResource.project_id == project_id,
                ProjectResource.resource_type == resource_type,
                ProjectResource.resource_id == resource_id,
            )
        )
        max_copy, max_order = result.one()
        return (max_copy or 0) + 1, (max_order or 0) + 1

    async def list_dependencies(
        self, resource_type: str, resource_id: str
    ) -> list[ResourceDependency]:
        """Outbound dependency edges declared for a resource."""
        result = await self.session.execute(
            select(ResourceDependency)
            .where(
                ResourceDependency.source_resource_type == resource_type,
                ResourceDependency.source_resource_id == resource_id,
            )
            .order_by(ResourceDependency.created_at, ResourceDependency.id)
        )
        return list(result.scalars().all())
