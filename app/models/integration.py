"""Jira integration models."""
from datetime import datetime
from enum import Enum
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid, Enum as SQLEnum

from app.database import Base


class SyncStatus(str, Enum):
    """State of the most recent sync run for a project."""

    PENDING = "pending"
    SYNCING = "syncing"
    SUCCESS = "success"
    FAILED = "failed"


class JiraPriority(str, Enum):
    """Priority names known to Jira Cloud."""

    HIGHEST = "highest"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    LOWEST = "lowest"


class JiraIntegration(Base):
    """Per-project Jira connection settings. The API token is stored encrypted."""

    __tablename__ = "jira_integrations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    project_id = Column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    jira_url = Column(String(500), nullable=False)
    jira_email = Column(String(255), nullable=False)
    api_token_encrypted = Column(Text, nullable=False)
    project_key = Column(String(50), nullable=False)
    last_sync = Column(DateTime(timezone=True), nullable=True)
    sync_status = Column(SQLEnum(SyncStatus), nullable=False, default=SyncStatus.PENDING, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<JiraIntegration project={self.project_id} key={self.project_key} status={self.sync_status}>"


class JiraIssue(Base):
    """Local mirror of an issue pulled from Jira."""

    __tablename__ = "jira_issues"
    __table_args__ = (
        UniqueConstraint("jira_id", name="uq_jira_issue_jira_id"),
        UniqueConstraint("issue_key", name="uq_jira_issue_key"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    project_id = Column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    jira_id = Column(String(50), nullable=False, index=True)  # Immutable id assigned by Jira
    issue_key = Column(String(50), nullable=False, index=True)  # e.g. SWP391-12
    issue_type = Column(String(100), nullable=False)
    summary = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(SQLEnum(JiraPriority), nullable=True)
    status = Column(String(100), nullable=False)  # Workflow status name, owned by Jira
    assignee_jira_id = Column(String(100), nullable=True, index=True)
    assignee_name = Column(String(255), nullable=True)
    created_date = Column(DateTime(timezone=True), nullable=True)
    updated_date = Column(DateTime(timezone=True), nullable=True)
    last_synced = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
