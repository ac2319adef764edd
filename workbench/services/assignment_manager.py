"""Resource Assignment Manager.

Assigns shared agents, rules and hooks to projects. Two invariants hold after
every call:

- a resource has at most one canonical assignment per project;
- at most one assignment per (project, resource type) is primary.

Setting a primary clears the previous one inside the same unit of work as the
insert/update, so the pair is never observed half-applied.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.errors import (
    AssignmentNotFound,
    DuplicateAssignment,
    ProjectNotFound,
    ResourceNotFound,
)
from workbench.logging_config import get_logger
from workbench.models import Project, ProjectResource
from workbench.schemas import (
    Assignment,
    AssignmentOptions,
    AssignmentPatch,
    AvailableResource,
    ResourceType,
)
from workbench.services.assignment_repository import AssignmentRepository
from workbench.services.resource_store import (
    ResourceInfo,
    ResourceStore,
    SqlResourceStore,
    parse_resource_type,
)
from workbench.services.unit_of_work import ProjectLocks, default_locks, unit_of_work

logger = get_logger(__name__)


def to_assignment(row: ProjectResource, info: Optional[ResourceInfo]) -> Assignment:
    """Build the enriched assignment view (resource fields are read-through)."""
    return Assignment(
        id=row.id,
        project_id=row.project_id,
        resource_type=row.resource_type,
        resource_id=row.resource_id,
        is_primary=bool(row.is_primary),
        assignment_order=row.assignment_order,
        copy_index=row.copy_index,
        config_overrides=row.config_overrides,
        assigned_by=row.assigned_by,
        assignment_reason=row.assignment_reason,
        created_at=row.created_at,
        updated_at=row.updated_at,
        resource_name=info.name if info else None,
        resource_description=info.description if info else None,
        resource_metadata=info.metadata if info else None,
    )


class AssignmentManager:
    def __init__(
        self,
        session: AsyncSession,
        store: Optional[ResourceStore] = None,
        locks: ProjectLocks = default_locks,
    ):
        self.session = session
        self.store = store or SqlResourceStore(session)
        self.repo = AssignmentRepository(session)
        self.locks = locks

    # ── checks ────────────────────────────────────────────────────────────

    async def ensure_project(self, project_id: str) -> Project:
        result = await self.session.execute(select(Project).where(Project.id == project_id))
        project = result.scalar_one_or_none()
        if project is None:
            raise ProjectNotFound(project_id)
        return project

    async def ensure_resource(self, resource_type: ResourceType, resource_id: str) -> ResourceInfo:
        """Return the resource if it exists and is active/enabled."""
        info = await self.store.get(resource_type, resource_id)
        if info is None:
            raise ResourceNotFound(resource_type.value, resource_id, reason="missing")
        if not info.is_active:
            logger.debug(f"Resource {resource_type.value}/{resource_id} exists but is inactive")
            raise ResourceNotFound(resource_type.value, resource_id, reason="inactive")
        return info

    # ── mutations ─────────────────────────────────────────────────────────

    async def assign(
        self,
        project_id: str,
        resource_type: str,
        resource_id: str,
        options: Optional[AssignmentOptions] = None,
    ) -> Assignment:
        rtype = parse_resource_type(resource_type)
        options = options or AssignmentOptions()
        async with unit_of_work(self.session, project_id, self.locks):
            assignment = await self._assign_unlocked(project_id, rtype, resource_id, options)
        logger.info(
            f"Assigned {rtype.value}/{resource_id} to project {project_id}"
            f"{' as primary' if options.is_primary else ''}"
        )
        return assignment

    async def _assign_unlocked(
        self,
        project_id: str,
        rtype: ResourceType,
        resource_id: str,
        options: AssignmentOptions,
    ) -> Assignment:
        """Assign without taking the lock; the caller owns the unit of work."""
        await self.ensure_project(project_id)
        info = await self.ensure_resource(rtype, resource_id)

        if await self.repo.find_canonical(project_id, rtype.value, resource_id):
            raise DuplicateAssignment(project_id, rtype.value, resource_id)

        if options.is_primary:
            await self.repo.clear_primary(project_id, rtype.value)

        row = await self.repo.insert(
            project_id,
            rtype.value,
            resource_id,
            is_primary=options.is_primary,
            assignment_order=options.assignment_order,
            config_overrides=options.config_overrides,
            assigned_by=options.assigned_by,
            assignment_reason=options.assignment_reason,
        )
        return to_assignment(row, info)

    async def unassign(self, project_id: str, resource_type: str, resource_id: str) -> bool:
        """Remove a resource from a project. False when it was not assigned."""
        rtype = parse_resource_type(resource_type)
        async with unit_of_work(self.session, project_id, self.locks):
            removed = await self.repo.delete(project_id, rtype.value, resource_id)
        if removed:
            logger.info(f"Unassigned {rtype.value}/{resource_id} from project {project_id}")
        return removed > 0

    async def update_assignment(self, assignment_id: str, patch: AssignmentPatch) -> Assignment:
        row = await self.repo.get(assignment_id)
        if row is None:
            raise AssignmentNotFound(assignment_id)
        project_id = row.project_id

        async with unit_of_work(self.session, project_id, self.locks):
            # Re-read under the lock; the row may have gone meanwhile
            row = await self.repo.get(assignment_id)
            if row is None:
                raise AssignmentNotFound(assignment_id)
            values = patch.model_dump(exclude_unset=True)
            if values.get("is_primary"):
                await self.repo.clear_primary(project_id, row.resource_type, except_id=row.id)
            await self.repo.update(row, **values)
            info = await self.store.get(ResourceType(row.resource_type), row.resource_id)
            assignment = to_assignment(row, info)
        logger.info(f"Updated assignment {assignment_id}: {sorted(values)}")
        return assignment

    # ── reads ─────────────────────────────────────────────────────────────

    async def get_assignment(self, assignment_id: str) -> Assignment:
        row = await self.repo.get(assignment_id)
        if row is None:
            raise AssignmentNotFound(assignment_id)
        info = await self.store.get(ResourceType(row.resource_type), row.resource_id)
        return to_assignment(row, info)

    async def list_assigned(
        self, project_id: str, resource_type: Optional[str] = None
    ) -> list[Assignment]:
        rtype = parse_resource_type(resource_type) if resource_type else None
        await self.ensure_project(project_id)
        rows = await self.repo.find(project_id, rtype.value if rtype else None)

        infos: dict[tuple[str, str], ResourceInfo] = {}
        for kind in ResourceType:
            ids = [r.resource_id for r in rows if r.resource_type == kind.value]
            for rid, info in (await self.store.get_many(kind, ids)).items():
                infos[(kind.value, rid)] = info

        return [to_assignment(r, infos.get((r.resource_type, r.resource_id))) for r in rows]

    async def list_available(
        self, project_id: str, resource_type: Optional[str] = None
    ) -> list[AvailableResource]:
        """Active resources of the requested type(s), flagged if already assigned."""
        types = [parse_resource_type(resource_type)] if resource_type else list(ResourceType)
        await self.ensure_project(project_id)

        available: list[AvailableResource] = []
        for rtype in types:
            assigned = await self.repo.assigned_ids(project_id, rtype.value)
            for info in await self.store.list_active(rtype):
                available.append(
                    AvailableResource(
                        resource_type=rtype.value,
                        resource_id=info.resource_id,
                        name=info.name,
                        description=info.description,
                        metadata=info.metadata,
                        is_assigned=info.resource_id in assigned,
                    )
                )
        return available
