"""Schema modules."""
from app.schemas.jira import (
    JiraConnectionTestResult,
    JiraIntegrationConfig,
    JiraIntegrationResponse,
    JiraIssueResponse,
    JiraSyncResult,
    JiraSyncStatusResponse,
)
from app.schemas.task import (
    TaskActionResponse,
    TaskDeleteResponse,
    TaskFromJiraIssueCreate,
    TaskRequirementLink,
    TaskResponse,
    TaskSprintMove,
    TaskStatusUpdate,
    TaskUpdate,
)
