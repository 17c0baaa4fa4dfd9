"""Create user, group, Jira mirror and task tables.

Revision ID: jira_integration_20261001
Revises:
Create Date: 2026-10-01 00:00:00.000000
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision = "jira_integration_20261001"
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum("ADMIN", "LECTURER", "STUDENT", name="userrole")
sync_status = sa.Enum("PENDING", "SYNCING", "SUCCESS", "FAILED", name="syncstatus")
jira_priority = sa.Enum("HIGHEST", "HIGH", "MEDIUM", "LOW", "LOWEST", name="jirapriority")
task_status = sa.Enum("TODO", "IN_PROGRESS", "DONE", name="taskstatus")
priority_level = sa.Enum("HIGH", "MEDIUM", "LOW", name="prioritylevel")


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=None if nullable else sa.text("now()"),
    )


def upgrade() -> None:
    """Create the integration schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("student_code", sa.String(length=50), nullable=True),
        sa.Column("jira_account_id", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_role"), "users", ["role"], unique=False)
    op.create_index(op.f("ix_users_jira_account_id"), "users", ["jira_account_id"], unique=False)

    op.create_table(
        "student_groups",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("group_code", sa.String(length=50), nullable=False),
        sa.Column("group_name", sa.String(length=255), nullable=False),
        sa.Column("lecturer_id", sa.UUID(), nullable=False),
        sa.Column("leader_id", sa.UUID(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["lecturer_id"], ["users.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["leader_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_student_groups_id"), "student_groups", ["id"], unique=False)
    op.create_index(op.f("ix_student_groups_group_code"), "student_groups", ["group_code"], unique=True)
    op.create_index(op.f("ix_student_groups_lecturer_id"), "student_groups", ["lecturer_id"], unique=False)
    op.create_index(op.f("ix_student_groups_leader_id"), "student_groups", ["leader_id"], unique=False)

    op.create_table(
        "group_members",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("group_id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        _timestamp("joined_at"),
        sa.ForeignKeyConstraint(["group_id"], ["student_groups.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_member"),
    )
    op.create_index(op.f("ix_group_members_id"), "group_members", ["id"], unique=False)
    op.create_index(op.f("ix_group_members_group_id"), "group_members", ["group_id"], unique=False)
    op.create_index(op.f("ix_group_members_user_id"), "group_members", ["user_id"], unique=False)

    op.create_table(
        "projects",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("group_id", sa.UUID(), nullable=False),
        sa.Column("project_name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["group_id"], ["student_groups.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_projects_id"), "projects", ["id"], unique=False)
    op.create_index(op.f("ix_projects_group_id"), "projects", ["group_id"], unique=True)

    op.create_table(
        "jira_integrations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("project_id", sa.UUID(), nullable=False),
        sa.Column("jira_url", sa.String(length=500), nullable=False),
        sa.Column("jira_email", sa.String(length=255), nullable=False),
        sa.Column("api_token_encrypted", sa.Text(), nullable=False),
        sa.Column("project_key", sa.String(length=50), nullable=False),
        _timestamp("last_sync", nullable=True),
        sa.Column("sync_status", sync_status, nullable=False, server_default="PENDING"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_jira_integrations_id"), "jira_integrations", ["id"], unique=False)
    op.create_index(op.f("ix_jira_integrations_project_id"), "jira_integrations", ["project_id"], unique=True)
    op.create_index(op.f("ix_jira_integrations_sync_status"), "jira_integrations", ["sync_status"], unique=False)

    op.create_table(
        "jira_issues",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("project_id", sa.UUID(), nullable=False),
        sa.Column("jira_id", sa.String(length=50), nullable=False),
        sa.Column("issue_key", sa.String(length=50), nullable=False),
        sa.Column("issue_type", sa.String(length=100), nullable=False),
        sa.Column("summary", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("priority", jira_priority, nullable=True),
        sa.Column("status", sa.String(length=100), nullable=False),
        sa.Column("assignee_jira_id", sa.String(length=100), nullable=True),
        sa.Column("assignee_name", sa.String(length=255), nullable=True),
        _timestamp("created_date", nullable=True),
        _timestamp("updated_date", nullable=True),
        _timestamp("last_synced", nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("jira_id", name="uq_jira_issue_jira_id"),
        sa.UniqueConstraint("issue_key", name="uq_jira_issue_key"),
    )
    op.create_index(op.f("ix_jira_issues_id"), "jira_issues", ["id"], unique=False)
    op.create_index(op.f("ix_jira_issues_project_id"), "jira_issues", ["project_id"], unique=False)
    op.create_index(op.f("ix_jira_issues_jira_id"), "jira_issues", ["jira_id"], unique=False)
    op.create_index(op.f("ix_jira_issues_issue_key"), "jira_issues", ["issue_key"], unique=False)
    op.create_index(op.f("ix_jira_issues_assignee_jira_id"), "jira_issues", ["assignee_jira_id"], unique=False)

    op.create_table(
        "requirements",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("project_id", sa.UUID(), nullable=False),
        sa.Column("jira_issue_id", sa.UUID(), nullable=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["jira_issue_id"], ["jira_issues.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_requirements_id"), "requirements", ["id"], unique=False)
    op.create_index(op.f("ix_requirements_project_id"), "requirements", ["project_id"], unique=False)
    op.create_index(op.f("ix_requirements_jira_issue_id"), "requirements", ["jira_issue_id"], unique=False)

    op.create_table(
        "tasks",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("project_id", sa.UUID(), nullable=False),
        sa.Column("requirement_id", sa.UUID(), nullable=True),
        sa.Column("jira_issue_id", sa.UUID(), nullable=True),
        sa.Column("assigned_to", sa.UUID(), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", task_status, nullable=False, server_default="TODO"),
        sa.Column("priority", priority_level, nullable=False, server_default="MEDIUM"),
        sa.Column("due_date", sa.Date(), nullable=True),
        _timestamp("completed_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["requirement_id"], ["requirements.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["jira_issue_id"], ["jira_issues.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["assigned_to"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_tasks_id"), "tasks", ["id"], unique=False)
    op.create_index(op.f("ix_tasks_project_id"), "tasks", ["project_id"], unique=False)
    op.create_index(op.f("ix_tasks_requirement_id"), "tasks", ["requirement_id"], unique=False)
    op.create_index(op.f("ix_tasks_jira_issue_id"), "tasks", ["jira_issue_id"], unique=True)
    op.create_index(op.f("ix_tasks_assigned_to"), "tasks", ["assigned_to"], unique=False)
    op.create_index(op.f("ix_tasks_status"), "tasks", ["status"], unique=False)


def downgrade() -> None:
    """Drop the integration schema."""
    for table in (
        "tasks",
        "requirements",
        "jira_issues",
        "jira_integrations",
        "projects",
        "group_members",
        "student_groups",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (priority_level, task_status, jira_priority, sync_status, user_role):
        enum.drop(bind, checkfirst=True)
