"""Project model."""

from sqlalchemy import String, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workbench.models.base import Base, TimestampWithCompletedMixin


class Project(Base, TimestampWithCompletedMixin):
    """Project entity.

    A project owns assignments, never resources: deleting a project removes
    its ``project_resources`` rows and leaves agents, rules and hooks alone.
    """

    __tablename__ = "projects"
    __table_args__ = (Index("idx_projects_status", "status"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # URL-safe, unique across projects (e.g. "my-awesome-project")
    slug: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # draft | active | completed | archived | on_hold
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")

    # Relationships
    assignments: Mapped[list["ProjectResource"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# Import here to avoid circular imports
from workbench.models.assignment import ProjectResource
