"""initial_schema

Projects, the shared resource tables (agents, agent_rules, hooks), project
resource assignments and resource dependency edges.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=False),
    ]


def upgrade() -> None:
    conn = op.get_bind()
    existing = set(inspect(conn).get_table_names())

    if "projects" not in existing:
        op.create_table(
            "projects",
            sa.Column("id", sa.String(64), primary_key=True),
            sa.Column("slug", sa.String(128), nullable=False, unique=True),
            sa.Column("name", sa.String(256), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("status", sa.String(32), nullable=False, server_default="active"),
            *_timestamps(),
            sa.Column("completed_at", sa.BigInteger(), nullable=True),
        )
        op.create_index("idx_projects_status", "projects", ["status"])

    if "agents" not in existing:
        op.create_table(
            "agents",
            sa.Column("id", sa.String(64), primary_key=True),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("role", sa.String(200), nullable=False),
            sa.Column("system_prompt", sa.Text(), nullable=False),
            sa.Column("output_format", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index("idx_agents_active", "agents", ["is_active"])

    if "agent_rules" not in existing:
        op.create_table(
            "agent_rules",
            sa.Column("id", sa.String(64), primary_key=True),
            sa.Column("name", sa.String(200), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("rule_text", sa.Text(), nullable=False),
            sa.Column("category", sa.String(64), nullable=True),
            sa.Column("priority", sa.String(16), nullable=False, server_default="medium"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index("idx_rules_active", "agent_rules", ["is_active"])
        op.create_index("idx_rules_category", "agent_rules", ["category"])

    if "hooks" not in existing:
        op.create_table(
            "hooks",
            sa.Column("id", sa.String(64), primary_key=True),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("trigger_event", sa.String(64), nullable=False),
            sa.Column("command", sa.Text(), nullable=False),
            sa.Column("working_directory", sa.Text(), nullable=True),
            sa.Column("timeout_ms", sa.Integer(), nullable=False, server_default="60000"),
            sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index("idx_hooks_enabled", "hooks", ["is_enabled"])
        op.create_index("idx_hooks_trigger", "hooks", ["trigger_event"])

    if "project_resources" not in existing:
        op.create_table(
            "project_resources",
            sa.Column("id", sa.String(64), primary_key=True),
            sa.Column(
                "project_id",
                sa.String(64),
                sa.ForeignKey("projects.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("resource_type", sa.String(16), nullable=False),
            sa.Column("resource_id", sa.String(64), nullable=False),
            sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("assignment_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("copy_index", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("config_overrides", sa.JSON(), nullable=True),
            sa.Column("assigned_by", sa.String(128), nullable=True),
            sa.Column("assignment_reason", sa.Text(), nullable=True),
            *_timestamps(),
            sa.UniqueConstraint(
                "project_id",
                "resource_type",
                "resource_id",
                "copy_index",
                name="uq_project_resource",
            ),
        )
        op.create_index("idx_project_resources_project", "project_resources", ["project_id"])
        op.create_index(
            "idx_project_resources_resource", "project_resources", ["resource_type", "resource_id"]
        )
        op.create_index(
            "idx_project_resources_primary",
            "project_resources",
            ["project_id", "resource_type", "is_primary"],
        )

    if "resource_dependencies" not in existing:
        op.create_table(
            "resource_dependencies",
            sa.Column("id", sa.String(64), primary_key=True),
            sa.Column("source_resource_type", sa.String(16), nullable=False),
            sa.Column("source_resource_id", sa.String(64), nullable=False),
            sa.Column("target_resource_type", sa.String(16), nullable=False),
            sa.Column("target_resource_id", sa.String(64), nullable=False),
            sa.Column("dependency_type", sa.String(16), nullable=False, server_default="requires"),
            sa.Column("dependency_reason", sa.Text(), nullable=True),
            sa.Column("is_critical", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.BigInteger(), nullable=False),
            sa.UniqueConstraint(
                "source_resource_type",
                "source_resource_id",
                "target_resource_type",
                "target_resource_id",
                name="uq_resource_dependency",
            ),
        )
        op.create_index(
            "idx_resource_dependencies_source",
            "resource_dependencies",
            ["source_resource_type", "source_resource_id"],
        )
        op.create_index(
            "idx_resource_dependencies_target",
            "resource_dependencies",
            ["target_resource_type", "target_resource_id"],
        )


def downgrade() -> None:
    op.drop_table("resource_dependencies")
    op.drop_table("project_resources")
    op.drop_table("hooks")
    op.drop_table("agent_rules")
    op.drop_table("agents")
    op.drop_table("projects")
