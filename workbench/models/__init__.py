"""SQLAlchemy ORM models for the workbench."""

from workbench.models.base import (
    Base,
    TimestampMixin,
    TimestampWithCompletedMixin,
)
from workbench.models.project import Project
from workbench.models.resource import Agent, Rule, Hook
from workbench.models.assignment import ProjectResource, ResourceDependency

__all__ = [
    # SQLAlchemy base
    "Base",
    "TimestampMixin",
    "TimestampWithCompletedMixin",
    # SQLAlchemy models
    "Project",
    "Agent",
    "Rule",
    "Hook",
    "ProjectResource",
    "ResourceDependency",
]
