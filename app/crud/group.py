"""Group, project and requirement lookups."""
from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.crud.base import CRUDBase
from app.models.group import GroupMember, Project, Requirement, StudentGroup


class CRUDStudentGroup(CRUDBase[StudentGroup, dict, dict]):
    """CRUD operations for StudentGroup."""

    async def is_member(self, db: AsyncSession, *, group_id: UUID, user_id: UUID) -> bool:
        """Check whether a user belongs to a group."""
        result = await db.execute(
            select(GroupMember.id).where(
                GroupMember.group_id == group_id,
                GroupMember.user_id == user_id,
            )
        )
        return result.first() is not None


class CRUDProject(CRUDBase[Project, dict, dict]):
    """CRUD operations for Project."""

    async def get_by_group_id(self, db: AsyncSession, *, group_id: UUID) -> Optional[Project]:
        """Get the project owned by a group."""
        result = await db.execute(select(Project).where(Project.group_id == group_id))
        return result.scalar_one_or_none()


class CRUDRequirement(CRUDBase[Requirement, dict, dict]):
    """CRUD operations for Requirement."""

    pass


group = CRUDStudentGroup(StudentGroup)
project = CRUDProject(Project)
requirement = CRUDRequirement(Requirement)
