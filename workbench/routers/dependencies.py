"""Resource dependency endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from workbench.logging_config import get_logger
from workbench.schemas import AddDependencyRequest
from workbench.services.catalog import ResourceCatalog

from .resources import get_catalog

logger = get_logger(__name__)
router = APIRouter()


@router.post("/")
async def add_dependency(req: AddDependencyRequest, catalog: ResourceCatalog = Depends(get_catalog)):
    """Declare that one resource depends on (or conflicts with) another."""
    logger.debug(
        f"Adding dependency: {req.source_type.value}/{req.source_id} -> "
        f"{req.target_type.value}/{req.target_id} ({req.dependency_type.value})"
    )
    return await catalog.add_dependency(req)


@router.get("/")
async def list_dependencies(
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    catalog: ResourceCatalog = Depends(get_catalog),
):
    return await catalog.list_dependencies(resource_type, resource_id)


@router.delete("/{dependency_id}")
async def remove_dependency(dependency_id: str, catalog: ResourceCatalog = Depends(get_catalog)):
    logger.debug(f"Removing dependency: dependency_id={dependency_id}")
    if not await catalog.remove_dependency(dependency_id):
        raise HTTPException(status_code=404, detail=f"Dependency {dependency_id} not found")
    return {"status": "removed"}
