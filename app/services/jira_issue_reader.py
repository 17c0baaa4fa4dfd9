"""Role-scoped reads over the Jira issue mirror."""
import logging
from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AccessDeniedError, NotFoundError
from app.crud.integration import jira_issue
from app.models.integration import JiraIssue
from app.services.project_access import ProjectAccess, resolve_access

logger = logging.getLogger(__name__)


def _is_assigned_to(issue: JiraIssue, access: ProjectAccess) -> bool:
    account_id = access.user.jira_account_id
    return bool(account_id) and issue.assignee_jira_id == account_id


class JiraIssueReader:
    """Filters mirrored issues by the caller's relationship to the project.

    Admins, the group's lecturer and the team leader see every issue. Other
    group members see only issues whose Jira assignee equals their linked
    ``jira_account_id``; members without a linked account see nothing.
    """

    async def _access(self, db: AsyncSession, caller_id: UUID, project_id: UUID) -> ProjectAccess:
        access = await resolve_access(db, caller_id, project_id)
        if not access.has_access:
            logger.info("User %s denied access to issues of project %s", caller_id, project_id)
            raise AccessDeniedError("You do not have access to this project")
        return access

    async def list_visible(self, db: AsyncSession, caller_id: UUID, project_id: UUID) -> List[JiraIssue]:
        access = await self._access(db, caller_id, project_id)
        if access.sees_all_issues:
            return await jira_issue.get_by_project(db, project_id=project_id)
        if not access.user.jira_account_id:
            return []
        return await jira_issue.get_by_project(
            db,
            project_id=project_id,
            assignee_jira_id=access.user.jira_account_id,
        )

    async def get_visible(self, db: AsyncSession, caller_id: UUID, issue_key: str) -> JiraIssue:
        issue = await jira_issue.get_by_key(db, issue_key=issue_key)
        if issue is None:
            raise NotFoundError(f"Jira issue {issue_key} not found")

        access = await self._access(db, caller_id, issue.project_id)
        if not access.sees_all_issues and not _is_assigned_to(issue, access):
            raise AccessDeniedError("You can only view Jira issues assigned to you")
        return issue


jira_issue_reader = JiraIssueReader()
