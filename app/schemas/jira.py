"""Jira integration schemas."""
import re
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.integration import JiraPriority, SyncStatus

PROJECT_KEY_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]*$")


class JiraIntegrationConfig(BaseModel):
    """Credentials and target project used to configure or update an integration."""

    jira_url: str = Field(..., max_length=500, description="Site URL, e.g. https://team.atlassian.net")
    jira_email: EmailStr
    api_token: str = Field(..., min_length=10, description="Atlassian API token")
    project_key: str = Field(..., max_length=50)

    @field_validator("jira_url")
    @classmethod
    def normalize_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("Jira URL must start with http:// or https://")
        return value.rstrip("/")

    @field_validator("project_key")
    @classmethod
    def validate_project_key(cls, value: str) -> str:
        value = value.strip().upper()
        if not PROJECT_KEY_PATTERN.match(value):
            raise ValueError("Project key must start with a letter and contain only A-Z, 0-9 or _")
        return value


class JiraIntegrationResponse(BaseModel):
    """Stored integration. The API token is never part of this payload."""

    id: UUID
    project_id: UUID
    jira_url: str
    jira_email: str
    project_key: str
    last_sync: Optional[datetime] = None
    sync_status: SyncStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class JiraConnectionTestResult(BaseModel):
    """Outcome of testing stored credentials against Jira."""

    is_connected: bool
    message: str
    jira_project_name: Optional[str] = None
    jira_project_key: Optional[str] = None
    tested_at: datetime


class JiraIssueResponse(BaseModel):
    """Mirrored Jira issue."""

    id: UUID
    project_id: UUID
    jira_id: str
    issue_key: str
    issue_type: str
    summary: str
    description: Optional[str] = None
    priority: Optional[JiraPriority] = None
    status: str
    assignee_jira_id: Optional[str] = None
    assignee_name: Optional[str] = None
    created_date: Optional[datetime] = None
    updated_date: Optional[datetime] = None
    last_synced: Optional[datetime] = None

    class Config:
        from_attributes = True


class JiraSyncResult(BaseModel):
    """Summary of one sync run."""

    project_id: UUID
    total_issues: int
    new_issues: int
    updated_issues: int
    failed_issues: int
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    status: str
    sync_time: datetime


class JiraSyncStatusResponse(BaseModel):
    """Current sync state of a project."""

    project_id: UUID
    project_key: str
    total_issues: int
    last_sync: Optional[datetime] = None
    sync_status: SyncStatus
