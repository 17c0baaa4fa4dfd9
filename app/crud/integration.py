"""Jira integration and mirrored issue CRUD operations."""
from typing import List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select
from app.crud.base import CRUDBase
from app.models.integration import JiraIntegration, JiraIssue


class CRUDJiraIntegration(CRUDBase[JiraIntegration, dict, dict]):
    """CRUD operations for JiraIntegration."""

    async def get_by_project(self, db: AsyncSession, *, project_id: UUID) -> Optional[JiraIntegration]:
        """Get the integration configured for a project."""
        result = await db.execute(
            select(JiraIntegration).where(JiraIntegration.project_id == project_id)
        )
        return result.scalar_one_or_none()

    async def get_all(self, db: AsyncSession) -> List[JiraIntegration]:
        """Get every configured integration."""
        result = await db.execute(select(JiraIntegration).order_by(JiraIntegration.created_at))
        return list(result.scalars().all())


class CRUDJiraIssue(CRUDBase[JiraIssue, dict, dict]):
    """CRUD operations for the local Jira issue mirror."""

    async def get_by_jira_id(self, db: AsyncSession, *, jira_id: str) -> Optional[JiraIssue]:
        """Get a mirrored issue by its immutable Jira id."""
        result = await db.execute(select(JiraIssue).where(JiraIssue.jira_id == jira_id))
        return result.scalar_one_or_none()

    async def get_by_key(self, db: AsyncSession, *, issue_key: str) -> Optional[JiraIssue]:
        """Get a mirrored issue by its human-readable key."""
        result = await db.execute(select(JiraIssue).where(JiraIssue.issue_key == issue_key))
        return result.scalar_one_or_none()

    async def get_by_project(
        self,
        db: AsyncSession,
        *,
        project_id: UUID,
        assignee_jira_id: Optional[str] = None,
    ) -> List[JiraIssue]:
        """Get mirrored issues of a project, most recently updated first.

        When ``assignee_jira_id`` is given only issues assigned to that Jira
        account are returned.
        """
        query = select(JiraIssue).where(JiraIssue.project_id == project_id)
        if assignee_jira_id is not None:
            query = query.where(JiraIssue.assignee_jira_id == assignee_jira_id)
        result = await db.execute(
            query.order_by(JiraIssue.updated_date.desc(), JiraIssue.issue_key)
        )
        return list(result.scalars().all())

    async def count_by_project(self, db: AsyncSession, *, project_id: UUID) -> int:
        """Count mirrored issues of a project."""
        result = await db.execute(
            select(func.count(JiraIssue.id)).where(JiraIssue.project_id == project_id)
        )
        return int(result.scalar_one())


jira_integration = CRUDJiraIntegration(JiraIntegration)
jira_issue = CRUDJiraIssue(JiraIssue)
