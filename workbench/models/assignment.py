"""Project resource assignments and resource dependency edges."""
from typing import Optional
from sqlalchemy import (
    String,
    Text,
    Integer,
    Boolean,
    BigInteger,
    ForeignKey,
    Index,
    UniqueConstraint,
    JSON,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workbench.models.base import Base, TimestampMixin
from workbench.utils import now_ms


class ProjectResource(Base, TimestampMixin):
    """Assignment of an agent, rule or hook to a project.

    copy_index is 0 for the canonical assignment of a resource. The import
    ``rename`` policy adds further rows for the same resource with
    copy_index 1, 2, ... so the unique constraint still admits exactly one
    canonical row per (project, type, resource).
    """
    __tablename__ = "project_resources"
    __table_args__ = (
        UniqueConstraint(
            "project_id",
            "resource_type",
            "resource_id",
            "copy_index",
            name="uq_project_resource",
        ),
        Index("idx_project_resources_project", "project_id"),
        Index("idx_project_resources_resource", "resource_type", "resource_id"),
        Index("idx_project_resources_primary", "project_id", "resource_type", "is_primary"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    project_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    resource_type: Mapped[str] = mapped_column(String(16), nullable=False)
    resource_id: Mapped[str] = mapped_column(String(64), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    assignment_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    copy_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    config_overrides: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    assigned_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    assignment_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    project: Mapped["Project"] = relationship(back_populates="assignments")


class ResourceDependency(Base):
    """Directed dependency between two resources, independent of projects."""
    __tablename__ = "resource_dependencies"
    __table_args__ = (
        UniqueConstraint(
            "source_resource_type",
            "source_resource_id",
            "target_resource_type",
            "target_resource_id",
            name="uq_resource_dependency",
        ),
        Index("idx_resource_dependencies_source", "source_resource_type", "source_resource_id"),
        Index("idx_resource_dependencies_target", "target_resource_type", "target_resource_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    source_resource_type: Mapped[str] = mapped_column(String(16), nullable=False)
    source_resource_id: Mapped[str] = mapped_column(String(64), nullable=False)
    target_resource_type: Mapped[str] = mapped_column(String(16), nullable=False)
    target_resource_id: Mapped[str] = mapped_column(String(64), nullable=False)
    # requires | references | enhances | conflicts
    dependency_type: Mapped[str] = mapped_column(String(16), nullable=False, default="requires")
    dependency_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_critical: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=now_ms)


# Avoid circular import
from workbench.models.project import Project
