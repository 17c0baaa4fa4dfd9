"""Security constants and permissions."""
from enum import Enum


class UserRole(str, Enum):
    """Platform role of a user."""

    ADMIN = "admin"
    LECTURER = "lecturer"
    STUDENT = "student"


class Permission(str, Enum):
    """Permission constants for RBAC."""

    # Integration configuration
    INTEGRATION_MANAGE = "integration.manage"

    # Synced issues
    ISSUE_VIEW = "issue.view"
    ISSUE_SYNC = "issue.sync"

    # Local tasks
    TASK_UPDATE_STATUS = "task.update_status"
    TASK_MANAGE = "task.manage"
    TASK_ADMIN = "task.admin"


# Role definitions with permissions. Project-level relationships (lecturer of
# the group, team leader, member) are checked separately in project_access.
ROLE_PERMISSIONS = {
    UserRole.ADMIN.value: [
        Permission.INTEGRATION_MANAGE,
        Permission.ISSUE_VIEW,
        Permission.ISSUE_SYNC,
        Permission.TASK_MANAGE,
        Permission.TASK_ADMIN,
    ],
    UserRole.LECTURER.value: [
        Permission.ISSUE_VIEW,
    ],
    UserRole.STUDENT.value: [
        Permission.ISSUE_VIEW,
        Permission.ISSUE_SYNC,
        Permission.TASK_UPDATE_STATUS,
        Permission.TASK_MANAGE,
    ],
}
