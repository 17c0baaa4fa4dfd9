"""Task model."""
from datetime import datetime
from enum import Enum
import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Text, Uuid, Enum as SQLEnum

from app.database import Base


class TaskStatus(str, Enum):
    """Canonical task progression, ordered todo < in_progress < done."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    @property
    def ordinal(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = [TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.DONE]


class PriorityLevel(str, Enum):
    """Local task priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Task(Base):
    """Locally authored task, optionally linked to a synced Jira issue."""

    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    requirement_id = Column(Uuid, ForeignKey("requirements.id", ondelete="SET NULL"), nullable=True, index=True)
    jira_issue_id = Column(
        Uuid,
        ForeignKey("jira_issues.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
        index=True,
    )
    assigned_to = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(TaskStatus), nullable=False, default=TaskStatus.TODO, index=True)
    priority = Column(SQLEnum(PriorityLevel), nullable=False, default=PriorityLevel.MEDIUM)
    due_date = Column(Date, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
