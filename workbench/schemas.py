from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class ResourceType(str, Enum):
    """The closed set of shareable resource kinds."""
    AGENT = "agent"
    RULE = "rule"
    HOOK = "hook"


class ProjectStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"
    ON_HOLD = "on_hold"


class DependencyType(str, Enum):
    REQUIRES = "requires"
    REFERENCES = "references"
    ENHANCES = "enhances"
    CONFLICTS = "conflicts"


class ConflictResolution(str, Enum):
    """What an import does with a resource that is already assigned."""
    SKIP = "skip"
    OVERWRITE = "overwrite"
    RENAME = "rename"


# ══════════════════════════════════════════════════════════════════════════
# PROJECTS
# ══════════════════════════════════════════════════════════════════════════


class CreateProjectRequest(BaseModel):
    name: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class UpdateProjectRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None


class ProjectResponse(BaseModel):
    """Model for project response data."""
    id: str
    slug: str
    name: str
    description: str = ""
    status: str = "active"
    created_at: int
    updated_at: int
    completed_at: Optional[int] = None


# ══════════════════════════════════════════════════════════════════════════
# ASSIGNMENTS
# ══════════════════════════════════════════════════════════════════════════


class AssignmentOptions(BaseModel):
    """Options accepted by assign()."""
    is_primary: bool = False
    assignment_order: int = 0
    config_overrides: Optional[dict[str, Any]] = None
    assigned_by: Optional[str] = None
    assignment_reason: Optional[str] = None


class AssignResourceRequest(AssignmentOptions):
    """Request to assign a resource to a project."""
    resource_type: str
    resource_id: str


class AssignmentPatch(BaseModel):
    """Partial update of an assignment; unset fields are left alone."""
    is_primary: Optional[bool] = None
    assignment_order: Optional[int] = None
    config_overrides: Optional[dict[str, Any]] = None
    assigned_by: Optional[str] = None
    assignment_reason: Optional[str] = None

    @field_validator("is_primary", "assignment_order")
    @classmethod
    def reject_null(cls, v):
        # Omit the field to leave it alone; these columns are NOT NULL
        if v is None:
            raise ValueError("May be omitted but not null")
        return v


class Assignment(BaseModel):
    """An assignment enriched with the display fields of its resource."""
    id: str
    project_id: str
    resource_type: str
    resource_id: str
    is_primary: bool = False
    assignment_order: int = 0
    copy_index: int = 0
    config_overrides: Optional[dict[str, Any]] = None
    assigned_by: Optional[str] = None
    assignment_reason: Optional[str] = None
    created_at: int
    updated_at: int
    resource_name: Optional[str] = None
    resource_description: Optional[str] = None
    resource_metadata: Optional[str] = None


class AvailableResource(BaseModel):
    resource_type: str
    resource_id: str
    name: str
    description: str = ""
    metadata: Optional[str] = None
    is_assigned: bool = False


# ══════════════════════════════════════════════════════════════════════════
# DEPENDENCIES
# ══════════════════════════════════════════════════════════════════════════


class AddDependencyRequest(BaseModel):
    source_type: ResourceType
    source_id: str
    target_type: ResourceType
    target_id: str
    dependency_type: DependencyType = DependencyType.REQUIRES
    is_critical: bool = True
    reason: Optional[str] = None


class ResourceRef(BaseModel):
    resource_type: str
    resource_id: str


class DependencyEntry(BaseModel):
    """One discovered dependency edge and what happened to its target."""
    source_type: str
    source_id: str
    target_type: str
    target_id: str
    dependency_type: str
    is_critical: bool
    exists: bool
    reason: Optional[str] = None
    # imported | already_assigned | failed | not_imported | missing
    action: Optional[str] = None
    message: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# IMPORT
# ══════════════════════════════════════════════════════════════════════════


class ImportItem(BaseModel):
    resource_type: ResourceType
    resource_id: str
    config_overrides: Optional[dict[str, Any]] = None


class ImportOptions(BaseModel):
    resolve_dependencies: bool = True
    conflict_resolution: ConflictResolution = ConflictResolution.SKIP
    assigned_by: Optional[str] = None
    import_reason: Optional[str] = None


class ImportRequest(BaseModel):
    items: list[ImportItem]
    options: ImportOptions = Field(default_factory=ImportOptions)


class ImportOutcome(BaseModel):
    """Result (or, in a preview, the predicted result) for one requested item."""
    resource_type: str
    resource_id: str
    status: Literal["imported", "updated", "skipped", "failed"]
    assignment_id: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None
    note: Optional[str] = None


class ImportResult(BaseModel):
    project_id: str
    successful: list[ImportOutcome] = []
    failed: list[ImportOutcome] = []
    skipped: list[ImportOutcome] = []
    dependencies: list[DependencyEntry] = []
    warnings: list[str] = []

    @property
    def summary(self) -> dict[str, int]:
        return {
            "requested": len(self.successful) + len(self.failed) + len(self.skipped),
            "successful": len(self.successful),
            "failed": len(self.failed),
            "skipped": len(self.skipped),
            "dependencies_imported": sum(
                1 for d in self.dependencies if d.action == "imported"
            ),
        }


class CompatibilityReport(BaseModel):
    """Read-only forecast of what an import would do."""
    project_id: str
    can_import: bool = True
    items: list[ImportOutcome] = []
    dependencies: list[DependencyEntry] = []
    circular_dependencies: list[list[ResourceRef]] = []
    conflicts: list[str] = []
    warnings: list[str] = []
    errors: list[str] = []


# ══════════════════════════════════════════════════════════════════════════
# VALIDATION
# ══════════════════════════════════════════════════════════════════════════


class ValidationReport(BaseModel):
    is_valid: bool = True
    errors: list[str] = []
    warnings: list[str] = []
    recommendations: list[str] = []
    required_components: dict[str, bool] = {}
    missing_components: list[str] = []

    def error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def recommend(self, message: str) -> None:
        if message not in self.recommendations:
            self.recommendations.append(message)
