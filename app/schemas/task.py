"""Task schemas."""
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.task import PriorityLevel, TaskStatus


class TaskResponse(BaseModel):
    """Task response schema."""

    id: UUID
    project_id: UUID
    requirement_id: Optional[UUID] = None
    jira_issue_id: Optional[UUID] = None
    assigned_to: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: PriorityLevel
    due_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TaskActionResponse(BaseModel):
    """Task after an operation, with any non-blocking Jira warnings."""

    task: TaskResponse
    warnings: List[str] = Field(default_factory=list)


class TaskStatusUpdate(BaseModel):
    """Free-form status text, e.g. "In Progress" or "done"."""

    status: str


class TaskFromJiraIssueCreate(BaseModel):
    """Create a local task from a synced Jira issue."""

    issue_key: str
    title_override: Optional[str] = Field(default=None, max_length=255)
    assigned_to: Optional[UUID] = None
    due_date: Optional[date] = None
    sprint_id: Optional[int] = Field(default=None, ge=0, description="0 moves the issue to the backlog")


class TaskUpdate(BaseModel):
    """Leader edit of a task. Only the fields sent are changed."""

    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    priority: Optional[PriorityLevel] = None
    status: Optional[str] = None
    assigned_to: Optional[UUID] = None
    due_date: Optional[date] = None


class TaskSprintMove(BaseModel):
    sprint_id: int = Field(..., ge=0, description="0 moves the issue to the backlog")


class TaskRequirementLink(BaseModel):
    requirement_id: UUID


class TaskDeleteResponse(BaseModel):
    deleted: bool = True
    warnings: List[str] = Field(default_factory=list)
