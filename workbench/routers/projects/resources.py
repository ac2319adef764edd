"""Resource assignment endpoints for a project."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from workbench.events import publish_event
from workbench.logging_config import get_logger
from workbench.schemas import AssignResourceRequest, AssignmentOptions, AssignmentPatch
from workbench.services.assignment_manager import AssignmentManager

from ._common import get_assignment_manager

logger = get_logger(__name__)
router = APIRouter()


@router.post("/{project_id}/resources")
async def assign_resource(
    project_id: str,
    req: AssignResourceRequest,
    manager: AssignmentManager = Depends(get_assignment_manager),
):
    """Assign an agent, rule or hook to a project."""
    logger.debug(
        f"Assigning resource: project_id={project_id}, type={req.resource_type}, "
        f"resource_id={req.resource_id}, primary={req.is_primary}"
    )
    options = AssignmentOptions(**req.model_dump(exclude={"resource_type", "resource_id"}))
    assignment = await manager.assign(project_id, req.resource_type, req.resource_id, options)
    await publish_event("RESOURCE_ASSIGNED", {
        "projectId": project_id,
        "resourceType": assignment.resource_type,
        "resourceId": assignment.resource_id,
    })
    return assignment


@router.get("/{project_id}/resources")
async def list_project_resources(
    project_id: str,
    resource_type: Optional[str] = None,
    manager: AssignmentManager = Depends(get_assignment_manager),
):
    return await manager.list_assigned(project_id, resource_type)


@router.get("/{project_id}/resources/available")
async def list_available_resources(
    project_id: str,
    resource_type: Optional[str] = None,
    manager: AssignmentManager = Depends(get_assignment_manager),
):
    """Active resources that can be assigned, flagged if already assigned."""
    return await manager.list_available(project_id, resource_type)


@router.patch("/{project_id}/resources/{assignment_id}")
async def update_project_resource(
    project_id: str,
    assignment_id: str,
    patch: AssignmentPatch,
    manager: AssignmentManager = Depends(get_assignment_manager),
):
    existing = await manager.get_assignment(assignment_id)
    if existing.project_id != project_id:
        raise HTTPException(status_code=404, detail=f"Assignment {assignment_id} not found in project")
    assignment = await manager.update_assignment(assignment_id, patch)
    await publish_event("ASSIGNMENT_UPDATED", {"projectId": project_id, "assignmentId": assignment_id})
    return assignment


@router.delete("/{project_id}/resources/{resource_type}/{resource_id}")
async def unassign_resource(
    project_id: str,
    resource_type: str,
    resource_id: str,
    manager: AssignmentManager = Depends(get_assignment_manager),
):
    """Remove a resource from a project. The resource itself is untouched."""
    logger.debug(f"Unassigning resource: project_id={project_id}, type={resource_type}, id={resource_id}")
    if not await manager.unassign(project_id, resource_type, resource_id):
        raise HTTPException(status_code=404, detail="Resource is not assigned to this project")
    await publish_event("RESOURCE_UNASSIGNED", {
        "projectId": project_id,
        "resourceType": resource_type,
        "resourceId": resource_id,
    })
    return {"status": "unassigned"}
