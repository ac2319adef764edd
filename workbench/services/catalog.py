"""Authoring of shared resources and their dependency edges.

Every write is validated first; an invalid definition raises ValidationFailed
carrying the full report. ``load_directory`` seeds the catalog from YAML files
so a deployment can ship its resource library alongside the service.
"""

import os
from typing import Any, Optional

import yaml
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.errors import ResourceNotFound, ValidationFailed, WorkbenchError
from workbench.events import publish_event
from workbench.logging_config import get_logger
from workbench.models import ProjectResource, ResourceDependency
from workbench.schemas import AddDependencyRequest, ResourceType, ValidationReport
from workbench.services.resource_store import ResourceKind, resource_kind
from workbench.services.validation import ValidationEngine
from workbench.utils import gen_id, now_ms

logger = get_logger(__name__)

# Columns accepted from a definition, per kind
WRITABLE_FIELDS: dict[ResourceType, tuple[str, ...]] = {
    ResourceType.AGENT: ("name", "description", "role", "system_prompt", "output_format", "is_active"),
    ResourceType.RULE: ("name", "description", "rule_text", "category", "priority", "is_active"),
    ResourceType.HOOK: (
        "name",
        "description",
        "trigger_event",
        "command",
        "working_directory",
        "timeout_ms",
        "is_enabled",
    ),
}


def serialize_resource(kind: ResourceKind, row) -> dict:
    data = {"id": row.id, "resource_type": kind.resource_type.value}
    for column in WRITABLE_FIELDS[kind.resource_type]:
        data[column] = getattr(row, column)
    if kind.resource_type == ResourceType.RULE:
        data["title"] = row.name
    data["created_at"] = row.created_at
    data["updated_at"] = row.updated_at
    return data


def serialize_dependency(dep: ResourceDependency) -> dict:
    return {
        "id": dep.id,
        "source_type": dep.source_resource_type,
        "source_id": dep.source_resource_id,
        "target_type": dep.target_resource_type,
        "target_id": dep.target_resource_id,
        "dependency_type": dep.dependency_type,
        "is_critical": dep.is_critical,
        "reason": dep.dependency_reason,
        "created_at": dep.created_at,
    }


def _columns(rtype: ResourceType, data: dict) -> dict:
    values = {k: data[k] for k in WRITABLE_FIELDS[rtype] if data.get(k) is not None}
    # Rules are authored with a title
    if rtype == ResourceType.RULE and data.get("title"):
        values["name"] = data["title"]
    return values


class ResourceCatalog:
    def __init__(self, session: AsyncSession, validator: Optional[ValidationEngine] = None):
        self.session = session
        self.validator = validator or ValidationEngine()

    def _validate(self, rtype: ResourceType, data: dict) -> ValidationReport:
        report = self.validator.validate_resource_definition(rtype.value, data)
        if not report.is_valid:
            raise ValidationFailed(report)
        return report

    async def _get_row(self, kind: ResourceKind, resource_id: str):
        result = await self.session.execute(select(kind.model).where(kind.model.id == resource_id))
        row = result.scalar_one_or_none()
        if row is None:
            raise ResourceNotFound(kind.resource_type.value, resource_id)
        return row

    async def get(self, resource_type: str, resource_id: str) -> dict:
        kind = resource_kind(resource_type)
        return serialize_resource(kind, await self._get_row(kind, resource_id))

    async def list_resources(self, resource_type: str, include_inactive: bool = False) -> list[dict]:
        kind = resource_kind(resource_type)
        query = select(kind.model)
        if not include_inactive:
            query = query.where(getattr(kind.model, kind.active_column).is_(True))
        result = await self.session.execute(query.order_by(kind.model.name))
        return [serialize_resource(kind, row) for row in result.scalars().all()]

    async def create(self, resource_type: str, data: dict) -> dict:
        kind = resource_kind(resource_type)
        self._validate(kind.resource_type, data)

        now = now_ms()
        row = kind.model(
            id=data.get("id") or gen_id(kind.id_prefix),
            created_at=now,
            updated_at=now,
            **_columns(kind.resource_type, data),
        )
        self.session.add(row)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise WorkbenchError(f"{kind.resource_type.value} already exists: {row.id}") from None
        logger.info(f"Created {kind.resource_type.value} {row.id} ({row.name})")
        await publish_event("RESOURCE_CREATED", {"resourceType": kind.resource_type.value, "resourceId": row.id})
        return serialize_resource(kind, row)

    async def update(self, resource_type: str, resource_id: str, data: dict) -> dict:
        """Replace fields of a resource; the merged definition must validate."""
        kind = resource_kind(resource_type)
        row = await self._get_row(kind, resource_id)

        merged = serialize_resource(kind, row)
        merged.update(data)
        if kind.resource_type == ResourceType.RULE and "name" in data and "title" not in data:
            merged["title"] = data["name"]
        self._validate(kind.resource_type, merged)

        for key, value in _columns(kind.resource_type, merged).items():
            setattr(row, key, value)
        row.updated_at = now_ms()
        await self.session.commit()
        logger.info(f"Updated {kind.resource_type.value} {resource_id}")
        await publish_event("RESOURCE_UPDATED", {"resourceType": kind.resource_type.value, "resourceId": resource_id})
        return serialize_resource(kind, row)

    async def delete(self, resource_type: str, resource_id: str) -> None:
        """Delete a resource along with its assignments and dependency edges."""
        kind = resource_kind(resource_type)
        rtype = kind.resource_type.value
        row = await self._get_row(kind, resource_id)

        await self.session.execute(
            delete(ProjectResource).where(
                ProjectResource.resource_type == rtype,
                ProjectResource.resource_id == resource_id,
            )
        )
        await self.session.execute(
            delete(ResourceDependency).where(
                or_(
                    (ResourceDependency.source_resource_type == rtype)
                    & (ResourceDependency.source_resource_id == resource_id),
                    (ResourceDependency.target_resource_type == rtype)
                    & (ResourceDependency.target_resource_id == resource_id),
                )
            )
        )
        await self.session.delete(row)
        await self.session.commit()
        logger.info(f"Deleted {rtype} {resource_id}")
        await publish_event("RESOURCE_DELETED", {"resourceType": rtype, "resourceId": resource_id})

    # ── dependencies ──────────────────────────────────────────────────────

    async def add_dependency(self, req: AddDependencyRequest) -> dict:
        source = (req.source_type.value, req.source_id)
        target = (req.target_type.value, req.target_id)
        if source == target:
            raise WorkbenchError("A resource cannot depend on itself")

        # The source must exist; a missing target is allowed and reported at import time
        await self._get_row(resource_kind(req.source_type), req.source_id)

        dep = ResourceDependency(
            id=gen_id("dep_"),
            source_resource_type=source[0],
            source_resource_id=source[1],
            target_resource_type=target[0],
            target_resource_id=target[1],
            dependency_type=req.dependency_type.value,
            dependency_reason=req.reason,
            is_critical=req.is_critical,
            created_at=now_ms(),
        )
        self.session.add(dep)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise WorkbenchError("Dependency already exists") from None
        logger.info(
            f"Added {req.dependency_type.value} dependency {source[0]}/{source[1]} -> {target[0]}/{target[1]}"
        )
        return serialize_dependency(dep)

    async def list_dependencies(
        self, resource_type: Optional[str] = None, resource_id: Optional[str] = None
    ) -> list[dict]:
        """Edges touching a resource (either end), or every edge when unfiltered."""
        query = select(ResourceDependency)
        if resource_type is not None:
            rtype = resource_kind(resource_type).resource_type.value
            source = ResourceDependency.source_resource_type == rtype
            target = ResourceDependency.target_resource_type == rtype
            if resource_id is not None:
                source = source & (ResourceDependency.source_resource_id == resource_id)
                target = target & (ResourceDependency.target_resource_id == resource_id)
            query = query.where(or_(source, target))
        result = await self.session.execute(
            query.order_by(ResourceDependency.created_at, ResourceDependency.id)
        )
        return [serialize_dependency(d) for d in result.scalars().all()]

    async def remove_dependency(self, dependency_id: str) -> bool:
        result = await self.session.execute(
            delete(ResourceDependency).where(ResourceDependency.id == dependency_id)
        )
        await self.session.commit()
        return (result.rowcount or 0) > 0

    # ── disk import ───────────────────────────────────────────────────────

    async def load_directory(self, directory: str) -> dict[str, Any]:
        """Upsert resources and dependencies from every YAML file in a directory.

        A file holds ``agents``, ``rules``, ``hooks`` and ``dependencies``
        lists. Definitions need a stable ``id`` so reloading updates in place.
        Invalid definitions are reported and skipped.
        """
        summary: dict[str, Any] = {"created": [], "updated": [], "invalid": [], "dependencies": 0}
        if not os.path.isdir(directory):
            logger.warning(f"Resources directory not found: {directory}")
            return summary

        for filename in sorted(os.listdir(directory)):
            if not filename.endswith((".yml", ".yaml")):
                continue
            path = os.path.join(directory, filename)
            with open(path, "r") as f:
                content = yaml.safe_load(f) or {}
            if not isinstance(content, dict):
                summary["invalid"].append({"file": filename, "errors": ["File must contain a mapping"]})
                continue

            for rtype in ResourceType:
                for definition in content.get(f"{rtype.value}s") or []:
                    await self._load_definition(rtype, definition, filename, summary)

            for entry in content.get("dependencies") or []:
                if await self._load_dependency(entry, filename, summary):
                    summary["dependencies"] += 1

        logger.info(
            f"Loaded resources from {directory}: {len(summary['created'])} created, "
            f"{len(summary['updated'])} updated, {len(summary['invalid'])} invalid"
        )
        return summary

    async def _load_definition(self, rtype: ResourceType, definition: Any, filename: str, summary: dict):
        if not isinstance(definition, dict) or not definition.get("id"):
            summary["invalid"].append({"file": filename, "errors": [f"{rtype.value} definition needs an id"]})
            return
        definition = {**definition, "id": str(definition["id"])}
        key = f"{rtype.value}/{definition['id']}"
        try:
            try:
                await self.get(rtype.value, definition["id"])
            except ResourceNotFound:
                await self.create(rtype.value, definition)
                summary["created"].append(key)
            else:
                await self.update(rtype.value, definition["id"], definition)
                summary["updated"].append(key)
        except ValidationFailed as e:
            logger.warning(f"Skipping invalid {key} in {filename}: {e.message}")
            summary["invalid"].append({"file": filename, "resource": key, "errors": e.report.errors})

    async def _load_dependency(self, entry: Any, filename: str, summary: dict) -> bool:
        try:
            req = AddDependencyRequest.model_validate(entry)
        except ValueError as e:
            summary["invalid"].append({"file": filename, "errors": [f"Invalid dependency: {e}"]})
            return False
        existing = await self.session.execute(
            select(ResourceDependency.id).where(
                ResourceDependency.source_resource_type == req.source_type.value,
                ResourceDependency.source_resource_id == req.source_id,
                ResourceDependency.target_resource_type == req.target_type.value,
                ResourceDependency.target_resource_id == req.target_id,
            )
        )
        if existing.scalar_one_or_none():
            return False
        try:
            await self.add_dependency(req)
        except WorkbenchError as e:
            summary["invalid"].append({"file": filename, "errors": [e.message]})
            return False
        return True
