"""Model modules."""
from app.models.user import User
from app.models.group import StudentGroup, GroupMember, Project, Requirement
from app.models.integration import JiraIntegration, JiraIssue, JiraPriority, SyncStatus
from app.models.task import Task, TaskStatus, PriorityLevel

__all__ = [
    "User",
    "StudentGroup",
    "GroupMember",
    "Project",
    "Requirement",
    "JiraIntegration",
    "JiraIssue",
    "JiraPriority",
    "SyncStatus",
    "Task",
    "TaskStatus",
    "PriorityLevel",
]
