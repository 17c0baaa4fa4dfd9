"""Task CRUD operations."""
from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.crud.base import CRUDBase
from app.models.task import Task


class CRUDTask(CRUDBase[Task, dict, dict]):
    """CRUD operations for Task."""

    async def get_by_jira_issue(self, db: AsyncSession, *, jira_issue_id: UUID) -> Optional[Task]:
        """Get the local task linked to a mirrored Jira issue."""
        result = await db.execute(select(Task).where(Task.jira_issue_id == jira_issue_id))
        return result.scalar_one_or_none()


task = CRUDTask(Task)
