"""Domain services: assignment, dependency resolution, import, validation, catalog."""

from workbench.services.assignment_manager import AssignmentManager
from workbench.services.assignment_repository import AssignmentRepository
from workbench.services.catalog import ResourceCatalog
from workbench.services.dependency_resolver import DependencyResolution, DependencyResolver
from workbench.services.import_orchestrator import ImportOrchestrator
from workbench.services.resource_store import ResourceStore, SqlResourceStore
from workbench.services.unit_of_work import ProjectLocks, default_locks, unit_of_work
from workbench.services.validation import ValidationEngine

__all__ = [
    "AssignmentManager",
    "AssignmentRepository",
    "DependencyResolution",
    "DependencyResolver",
    "ImportOrchestrator",
    "ProjectLocks",
    "ResourceCatalog",
    "ResourceStore",
    "SqlResourceStore",
    "ValidationEngine",
    "default_locks",
    "unit_of_work",
]
