"""Batch import of resources into a project.

``import_resources`` and ``preview`` share one decision loop; the preview runs
it with ``dry_run=True`` and never writes or takes a project lock. Each plan
node of a real import runs in its own unit of work, so a failed node leaves no
assignment behind while the rest of the batch carries on.
"""

from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from workbench.errors import CriticalDependencyMissing, WorkbenchError
from workbench.events import publish_event
from workbench.logging_config import get_logger
from workbench.schemas import (
    AssignmentOptions,
    CompatibilityReport,
    ConflictResolution,
    DependencyEntry,
    ImportItem,
    ImportOptions,
    ImportOutcome,
    ImportRequest,
    ImportResult,
    ResourceRef,
    ResourceType,
)
from workbench.services.assignment_manager import AssignmentManager
from workbench.services.dependency_resolver import (
    DependencyResolution,
    DependencyResolver,
    Node,
)
from workbench.services.resource_store import ResourceStore
from workbench.services.unit_of_work import ProjectLocks, default_locks, unit_of_work

logger = get_logger(__name__)


class ImportOrchestrator:
    def __init__(
        self,
        session: AsyncSession,
        store: Optional[ResourceStore] = None,
        locks: ProjectLocks = default_locks,
    ):
        self.session = session
        self.locks = locks
        self.manager = AssignmentManager(session, store=store, locks=locks)
        self.repo = self.manager.repo
        self.resolver = DependencyResolver(self.repo, self.manager.store)

    async def import_resources(
        self, project_id: str, request: Union[ImportRequest, dict]
    ) -> ImportResult:
        request = ImportRequest.model_validate(request)
        await self.manager.ensure_project(project_id)

        resolution = await self.resolver.resolve(self._nodes(request))
        # Refuse the whole batch before any write
        resolution.ensure_acyclic()

        result = await self._run(project_id, request, resolution, dry_run=False)
        logger.info(f"Import into project {project_id} finished: {result.summary}")
        if result.successful or any(d.action == "imported" for d in result.dependencies):
            await publish_event("RESOURCES_IMPORTED", {"projectId": project_id, **result.summary})
        return result

    async def preview(
        self, project_id: str, request: Union[ImportRequest, dict]
    ) -> CompatibilityReport:
        request = ImportRequest.model_validate(request)
        await self.manager.ensure_project(project_id)

        resolution = await self.resolver.resolve(self._nodes(request))
        result = await self._run(project_id, request, resolution, dry_run=True)

        report = CompatibilityReport(
            project_id=project_id,
            items=result.successful + result.skipped + result.failed,
            dependencies=result.dependencies,
            warnings=result.warnings,
        )
        for outcome in result.failed:
            report.errors.append(f"{outcome.resource_type}/{outcome.resource_id}: {outcome.message}")
        # Updates and rename copies (imported with a note) hit an existing assignment
        conflicting = [o for o in result.successful if o.status == "updated" or o.note]
        for outcome in result.skipped + conflicting:
            report.conflicts.append(
                f"{outcome.resource_type}/{outcome.resource_id} is already assigned "
                f"({request.options.conflict_resolution.value})"
            )
        if resolution.cycles:
            report.circular_dependencies = [
                [ResourceRef(resource_type=t, resource_id=i) for t, i in cycle]
                for cycle in resolution.cycles
            ]
            for cycle in resolution.cycles:
                path = " -> ".join(f"{t}/{i}" for t, i in cycle)
                report.errors.append(f"CircularDependency: {path}")
        report.can_import = not report.errors
        return report

    # ── shared decision loop ──────────────────────────────────────────────

    @staticmethod
    def _nodes(request: ImportRequest) -> list[Node]:
        return [(item.resource_type.value, item.resource_id) for item in request.items]

    async def _run(
        self,
        project_id: str,
        request: ImportRequest,
        resolution: DependencyResolution,
        dry_run: bool,
    ) -> ImportResult:
        options = request.options
        result = ImportResult(project_id=project_id, warnings=list(resolution.warnings))

        items: dict[Node, ImportItem] = {}
        for item in request.items:
            node = (item.resource_type.value, item.resource_id)
            if node in items:
                result.warnings.append(f"Duplicate import item ignored: {node[0]}/{node[1]}")
                continue
            items[node] = item

        if not options.resolve_dependencies:
            for entry in resolution.critical_missing:
                result.warnings.append(
                    f"Critical dependency {entry.target_type}/{entry.target_id} of "
                    f"{entry.source_type}/{entry.source_id} not found, importing without it"
                )

        if resolution.conflicts:
            assigned = {
                (row.resource_type, row.resource_id)
                for row in await self.repo.find(project_id)
            }
            for entry in resolution.conflicts:
                if (entry.target_type, entry.target_id) in assigned:
                    result.warnings.append(
                        f"{entry.source_type}/{entry.source_id} conflicts with "
                        f"{entry.target_type}/{entry.target_id}, which is already assigned"
                    )

        failed: set[Node] = set()
        actions: dict[Node, tuple[str, Optional[str]]] = {}
        for node in resolution.plan:
            item = items.get(node)
            if item is not None:
                outcome = await self._process(
                    project_id, node, item, options, resolution, failed, dry_run
                )
                if outcome.status == "failed":
                    failed.add(node)
                    result.failed.append(outcome)
                elif outcome.status == "skipped":
                    result.skipped.append(outcome)
                else:
                    result.successful.append(outcome)
            elif options.resolve_dependencies:
                outcome = await self._process(
                    project_id, node, None, options, resolution, failed, dry_run
                )
                if outcome.status == "failed":
                    failed.add(node)
                    actions[node] = ("failed", outcome.message)
                elif outcome.status == "skipped":
                    actions[node] = ("already_assigned", None)
                else:
                    actions[node] = ("imported", None)

        result.dependencies = [self._dependency_entry(e, actions, options) for e in resolution.edges]
        return result

    @staticmethod
    def _dependency_entry(
        entry: DependencyEntry,
        actions: dict[Node, tuple[str, Optional[str]]],
        options: ImportOptions,
    ) -> DependencyEntry:
        target = (entry.target_type, entry.target_id)
        if not entry.exists:
            action, message = "missing", "Resource not found or not active"
        elif target in actions:
            action, message = actions[target]
        else:
            # Requested directly, non-critical, a conflict, or resolution disabled
            action, message = "not_imported", None
            if not entry.is_critical and options.resolve_dependencies:
                message = "Non-critical dependency, not imported automatically"
        return entry.model_copy(update={"action": action, "message": message})

    async def _process(
        self,
        project_id: str,
        node: Node,
        item: Optional[ImportItem],
        options: ImportOptions,
        resolution: DependencyResolution,
        failed: set[Node],
        dry_run: bool,
    ) -> ImportOutcome:
        try:
            if dry_run:
                return await self._decide(project_id, node, item, options, resolution, failed, True)
            async with unit_of_work(self.session, project_id, self.locks):
                return await self._decide(project_id, node, item, options, resolution, failed, False)
        except WorkbenchError as e:
            logger.info(f"Import of {node[0]}/{node[1]} into {project_id} failed: {e.message}")
            return ImportOutcome(
                resource_type=node[0],
                resource_id=node[1],
                status="failed",
                error=e.kind,
                message=e.message,
            )

    async def _decide(
        self,
        project_id: str,
        node: Node,
        item: Optional[ImportItem],
        options: ImportOptions,
        resolution: DependencyResolution,
        failed: set[Node],
        dry_run: bool,
    ) -> ImportOutcome:
        """Apply the per-node import steps; writes only when not a dry run."""
        rtype, rid = ResourceType(node[0]), node[1]
        await self.manager.ensure_resource(rtype, rid)

        if options.resolve_dependencies:
            closure = resolution.critical_closure(node)
            missing = [n for n in closure if not resolution.exists(n) or n in failed]
            if missing:
                raise CriticalDependencyMissing(node[0], node[1], missing)

        outcome = ImportOutcome(resource_type=node[0], resource_id=node[1], status="imported")
        existing = await self.repo.find_canonical(project_id, node[0], rid)

        if existing is not None:
            outcome.assignment_id = existing.id
            # Dependencies that are already present are left alone
            strategy = options.conflict_resolution if item is not None else ConflictResolution.SKIP
            if strategy == ConflictResolution.SKIP:
                outcome.status = "skipped"
                outcome.message = "Resource is already assigned to this project"
            elif strategy == ConflictResolution.OVERWRITE:
                outcome.status = "updated"
                outcome.message = "Existing assignment updated"
                if not dry_run:
                    await self.repo.update(
                        existing,
                        config_overrides=item.config_overrides,
                        assigned_by=options.assigned_by or existing.assigned_by,
                        assignment_reason=options.import_reason or existing.assignment_reason,
                    )
            else:
                copy_index, order = await self.repo.next_copy_slot(project_id, node[0], rid)
                outcome.note = f"Added as an additional assignment (copy {copy_index})"
                if not dry_run:
                    reason = options.import_reason or "Imported"
                    row = await self.repo.insert(
                        project_id,
                        node[0],
                        rid,
                        assignment_order=order,
                        copy_index=copy_index,
                        config_overrides=item.config_overrides,
                        assigned_by=options.assigned_by,
                        assignment_reason=f"{reason} (copy {copy_index})",
                    )
                    outcome.assignment_id = row.id
            return outcome

        if dry_run:
            outcome.message = "Resource will be assigned"
            return outcome

        assignment = await self.manager._assign_unlocked(
            project_id,
            rtype,
            rid,
            AssignmentOptions(
                config_overrides=item.config_overrides if item is not None else None,
                assigned_by=options.assigned_by,
                assignment_reason=options.import_reason
                or ("Imported as dependency" if item is None else None),
            ),
        )
        outcome.assignment_id = assignment.id
        return outcome
