"""Read-only lookup of shared resources (agents, rules, hooks).

Each resource kind is described once in ``RESOURCE_KINDS``: which model backs
it, which column carries its active/enabled flag and which column is shown as
display metadata. Everything else dispatches through that table.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.errors import InvalidResourceType
from workbench.logging_config import get_logger
from workbench.models import Agent, Rule, Hook
from workbench.schemas import ResourceType

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResourceKind:
    resource_type: ResourceType
    model: type
    active_column: str
    metadata_column: str
    id_prefix: str


RESOURCE_KINDS: dict[ResourceType, ResourceKind] = {
    ResourceType.AGENT: ResourceKind(ResourceType.AGENT, Agent, "is_active", "role", "agent_"),
    ResourceType.RULE: ResourceKind(ResourceType.RULE, Rule, "is_active", "category", "rule_"),
    ResourceType.HOOK: ResourceKind(ResourceType.HOOK, Hook, "is_enabled", "trigger_event", "hook_"),
}


def parse_resource_type(value: Union[str, ResourceType, None]) -> ResourceType:
    """Coerce a string tag to ResourceType, raising InvalidResourceType."""
    if isinstance(value, ResourceType):
        return value
    try:
        return ResourceType(value)
    except ValueError:
        raise InvalidResourceType(str(value)) from None


def resource_kind(value: Union[str, ResourceType]) -> ResourceKind:
    return RESOURCE_KINDS[parse_resource_type(value)]


@dataclass
class ResourceInfo:
    """Display view of a resource, independent of its kind."""
    resource_type: ResourceType
    resource_id: str
    name: str
    description: str
    metadata: Optional[str]
    is_active: bool


class ResourceStore(Protocol):
    async def exists(self, resource_type: ResourceType, resource_id: str) -> bool: ...

    async def is_active(self, resource_type: ResourceType, resource_id: str) -> bool: ...

    async def get(self, resource_type: ResourceType, resource_id: str) -> Optional[ResourceInfo]: ...

    async def list_active(self, resource_type: ResourceType) -> list[ResourceInfo]: ...

    async def get_many(
        self, resource_type: ResourceType, resource_ids: list[str]
    ) -> dict[str, ResourceInfo]: ...


def _to_info(kind: ResourceKind, row) -> ResourceInfo:
    return ResourceInfo(
        resource_type=kind.resource_type,
        resource_id=row.id,
        name=row.name,
        description=row.description or "",
        metadata=getattr(row, kind.metadata_column),
        is_active=bool(getattr(row, kind.active_column)),
    )


class SqlResourceStore:
    """ResourceStore backed by the agents / agent_rules / hooks tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, resource_type: ResourceType, resource_id: str) -> Optional[ResourceInfo]:
        kind = resource_kind(resource_type)
        result = await self.session.execute(
            select(kind.model).where(kind.model.id == resource_id)
        )
        row = result.scalar_one_or_none()
        return _to_info(kind, row) if row is not None else None

    async def exists(self, resource_type: ResourceType, resource_id: str) -> bool:
        return await self.get(resource_type, resource_id) is not None

    async def is_active(self, resource_type: ResourceType, resource_id: str) -> bool:
        info = await self.get(resource_type, resource_id)
        return info is not None and info.is_active

    async def list_active(self, resource_type: ResourceType) -> list[ResourceInfo]:
        kind = resource_kind(resource_type)
        active = getattr(kind.model, kind.active_column)
        result = await self.session.execute(
            select(kind.model).where(active.is_(True)).order_by(kind.model.name)
        )
        return [_to_info(kind, row) for row in result.scalars().all()]

    async def get_many(
        self, resource_type: ResourceType, resource_ids: list[str]
    ) -> dict[str, ResourceInfo]:
        """Batch lookup used to enrich assignment listings."""
        if not resource_ids:
            return {}
        kind = resource_kind(resource_type)
        result = await self.session.execute(
            select(kind.model).where(kind.model.id.in_(set(resource_ids)))
        )
        return {row.id: _to_info(kind, row) for row in result.scalars().all()}
