"""Shared resource definitions: agents, rules and hooks.

Resources are created once and referenced by any number of project
assignments. Nothing in the assignment subsystem writes to these tables.
"""

from typing import Optional
from sqlalchemy import String, Text, Integer, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column

from workbench.models.base import Base, TimestampMixin


class Agent(Base, TimestampMixin):
    """An agent persona with its system prompt."""

    __tablename__ = "agents"
    __table_args__ = (Index("idx_agents_active", "is_active"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    role: Mapped[str] = mapped_column(String(200), nullable=False)
    system_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    # JSON text describing the expected output structure
    output_format: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Rule(Base, TimestampMixin):
    """A behavioural rule that guides agents."""

    __tablename__ = "agent_rules"
    __table_args__ = (
        Index("idx_rules_active", "is_active"),
        Index("idx_rules_category", "category"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    rule_text: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # low | medium | high | critical
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="medium")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Hook(Base, TimestampMixin):
    """A shell command run on a lifecycle event."""

    __tablename__ = "hooks"
    __table_args__ = (
        Index("idx_hooks_enabled", "is_enabled"),
        Index("idx_hooks_trigger", "trigger_event"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    trigger_event: Mapped[str] = mapped_column(String(64), nullable=False)
    command: Mapped[str] = mapped_column(Text, nullable=False)
    working_directory: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timeout_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=60000)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
