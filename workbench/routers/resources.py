"""Shared resource catalog endpoints (agents, rules, hooks)."""

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.database import get_async_session
from workbench.logging_config import get_logger
from workbench.services.catalog import ResourceCatalog
from workbench.services.resource_store import parse_resource_type
from workbench.services.validation import ValidationEngine

logger = get_logger(__name__)
router = APIRouter()


def get_catalog(session: AsyncSession = Depends(get_async_session)) -> ResourceCatalog:
    return ResourceCatalog(session)


@router.post("/{resource_type}/validate")
async def validate_resource(resource_type: str, data: Any = Body(...)):
    """Validate a definition without saving it."""
    return ValidationEngine().validate_resource_definition(resource_type, data)


@router.post("/{resource_type}")
async def create_resource(
    resource_type: str,
    data: dict[str, Any] = Body(...),
    catalog: ResourceCatalog = Depends(get_catalog),
):
    logger.debug(f"Creating resource: type={resource_type}")
    return await catalog.create(resource_type, data)


@router.get("/{resource_type}")
async def list_resources(
    resource_type: str,
    include_inactive: bool = False,
    catalog: ResourceCatalog = Depends(get_catalog),
):
    return await catalog.list_resources(resource_type, include_inactive=include_inactive)


@router.get("/{resource_type}/{resource_id}")
async def get_resource(
    resource_type: str, resource_id: str, catalog: ResourceCatalog = Depends(get_catalog)
):
    return await catalog.get(resource_type, resource_id)


@router.put("/{resource_type}/{resource_id}")
async def update_resource(
    resource_type: str,
    resource_id: str,
    data: dict[str, Any] = Body(...),
    catalog: ResourceCatalog = Depends(get_catalog),
):
    logger.debug(f"Updating resource: type={resource_type}, id={resource_id}")
    return await catalog.update(resource_type, resource_id, data)


@router.delete("/{resource_type}/{resource_id}")
async def delete_resource(
    resource_type: str, resource_id: str, catalog: ResourceCatalog = Depends(get_catalog)
):
    """Delete a resource; its assignments and dependency edges go with it."""
    logger.debug(f"Deleting resource: type={resource_type}, id={resource_id}")
    await catalog.delete(resource_type, resource_id)
    return {"status": "deleted", "resource_type": parse_resource_type(resource_type).value, "resource_id": resource_id}
