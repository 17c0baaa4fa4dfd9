"""Resolve how a user relates to a project."""
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, UnauthorizedError
from app.core.security import UserRole
from app.crud.group import group as group_crud, project as project_crud
from app.crud.user import user as user_crud
from app.models.group import Project, StudentGroup
from app.models.user import User


class ProjectRelation(str, Enum):
    """Strongest relationship a user has with a project."""

    ADMIN = "admin"
    LECTURER = "lecturer"
    LEADER = "leader"
    MEMBER = "member"
    NONE = "none"


@dataclass
class ProjectAccess:
    user: User
    project: Project
    group: StudentGroup
    relation: ProjectRelation

    @property
    def has_access(self) -> bool:
        return self.relation is not ProjectRelation.NONE

    @property
    def sees_all_issues(self) -> bool:
        """Admins, the group's lecturer and the team leader see every issue."""
        return self.relation in (
            ProjectRelation.ADMIN,
            ProjectRelation.LECTURER,
            ProjectRelation.LEADER,
        )

    @property
    def can_sync(self) -> bool:
        return self.relation in (ProjectRelation.ADMIN, ProjectRelation.LEADER)


async def get_project_or_404(db: AsyncSession, project_id: UUID) -> Project:
    project = await project_crud.get(db, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


async def get_group_project(db: AsyncSession, group_id: UUID) -> Project:
    """Return the project owned by a group."""
    student_group = await group_crud.get(db, group_id)
    if student_group is None:
        raise NotFoundError("Group not found")
    project = await project_crud.get_by_group_id(db, group_id=group_id)
    if project is None:
        raise NotFoundError("No project found for this group")
    return project


async def resolve_access(db: AsyncSession, user_id: UUID, project_id: UUID) -> ProjectAccess:
    """Work out the caller's relation to a project.

    Raises NotFoundError when the project does not exist and
    UnauthorizedError when the caller is unknown.
    """
    caller = await user_crud.get(db, user_id)
    if caller is None or not caller.is_active:
        raise UnauthorizedError("User not found or inactive")

    project = await get_project_or_404(db, project_id)
    student_group = await group_crud.get(db, project.group_id)
    if student_group is None:
        raise NotFoundError("Group not found")

    if caller.role == UserRole.ADMIN:
        relation = ProjectRelation.ADMIN
    elif caller.role == UserRole.LECTURER and student_group.lecturer_id == caller.id:
        relation = ProjectRelation.LECTURER
    elif caller.role == UserRole.STUDENT and student_group.leader_id == caller.id:
        relation = ProjectRelation.LEADER
    elif caller.role == UserRole.STUDENT and await group_crud.is_member(
        db, group_id=student_group.id, user_id=caller.id
    ):
        relation = ProjectRelation.MEMBER
    else:
        relation = ProjectRelation.NONE

    return ProjectAccess(user=caller, project=project, group=student_group, relation=relation)
