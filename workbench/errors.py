"""Domain errors raised by the workbench services.

Each error carries a stable ``kind`` string; batch imports record it per item
instead of raising, and the HTTP layer maps it to a status code.
"""
from typing import Optional

from workbench.schemas import ResourceType


class WorkbenchError(Exception):
    """Base class for all domain errors."""

    kind = "WorkbenchError"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message}


class InvalidResourceType(WorkbenchError):
    kind = "InvalidResourceType"

    def __init__(self, resource_type: str):
        valid = ", ".join(t.value for t in ResourceType)
        super().__init__(
            f"Invalid resource type: {resource_type}. Must be one of: {valid}"
        )
        self.resource_type = resource_type


class ProjectNotFound(WorkbenchError):
    kind = "ProjectNotFound"
    status_code = 404

    def __init__(self, project_id: str):
        super().__init__(f"Project not found: {project_id}")
        self.project_id = project_id


class ResourceNotFound(WorkbenchError):
    """Resource missing or inactive.

    Both cases look the same to callers; ``reason`` keeps the distinction for
    logs ("missing" | "inactive").
    """

    kind = "ResourceNotFound"
    status_code = 404

    def __init__(self, resource_type: str, resource_id: str, reason: str = "missing"):
        super().__init__(f"{resource_type} not found or not active: {resource_id}")
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.reason = reason


class AssignmentNotFound(WorkbenchError):
    kind = "AssignmentNotFound"
    status_code = 404

    def __init__(self, assignment_id: str):
        super().__init__(f"Assignment not found: {assignment_id}")
        self.assignment_id = assignment_id


class DuplicateAssignment(WorkbenchError):
    kind = "DuplicateAssignment"
    status_code = 409

    def __init__(self, project_id: str, resource_type: str, resource_id: str):
        super().__init__(
            f"Resource is already assigned to this project: {resource_type}/{resource_id}"
        )
        self.project_id = project_id
        self.resource_type = resource_type
        self.resource_id = resource_id


class CircularDependency(WorkbenchError):
    kind = "CircularDependency"
    status_code = 409

    def __init__(self, path: list[tuple[str, str]]):
        rendered = " → ".join(f"{t}/{i}" for t, i in path)
        super().__init__(f"Circular dependency detected: {rendered}")
        self.path = path


class CriticalDependencyMissing(WorkbenchError):
    kind = "CriticalDependencyMissing"
    status_code = 409

    def __init__(self, resource_type: str, resource_id: str, missing: list[tuple[str, str]]):
        rendered = ", ".join(f"{t}/{i}" for t, i in missing)
        super().__init__(
            f"Critical dependencies missing for {resource_type}/{resource_id}: {rendered}"
        )
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.missing = missing


class ValidationFailed(WorkbenchError):
    kind = "ValidationFailed"
    status_code = 422

    def __init__(self, report, message: Optional[str] = None):
        super().__init__(message or "; ".join(report.errors) or "Validation failed")
        self.report = report

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message, "report": self.report.model_dump()}
