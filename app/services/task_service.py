"""Local task workflow and pushing task changes back to Jira.

Local changes always win: a task is saved first and Jira is updated
afterwards. Jira failures on that second step are logged and returned as
warnings instead of failing the request. Sprint placement is the exception,
since it has no local state to keep.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AccessDeniedError,
    ConflictError,
    NotConfiguredError,
    NotFoundError,
    ValidationError,
)
from app.crud.group import group as group_crud, requirement as requirement_crud
from app.crud.integration import jira_integration, jira_issue
from app.crud.task import task as task_crud
from app.crud.user import user as user_crud
from app.integrations.jira import JiraClient, JiraIntegrationError
from app.models.integration import JiraIntegration, JiraIssue, JiraPriority
from app.models.task import PriorityLevel, Task, TaskStatus
from app.models.user import User
from app.schemas.task import TaskFromJiraIssueCreate, TaskUpdate
from app.security.encryption import DecryptionError
from app.services.jira_sync_service import apply_remote_fields, parse_priority
from app.services.jira_vault_service import JiraVaultService, jira_vault_service
from app.services.project_access import ProjectAccess, ProjectRelation, get_group_project, resolve_access
from app.services.task_status import apply_status, guard_forward_only, normalize_status

logger = logging.getLogger(__name__)

REMOTE_ERRORS = (JiraIntegrationError, DecryptionError)

JIRA_STATUS_NAMES = {
    TaskStatus.TODO: "To Do",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.DONE: "Done",
}

JIRA_PRIORITY_NAMES = {
    PriorityLevel.HIGH: "High",
    PriorityLevel.MEDIUM: "Medium",
    PriorityLevel.LOW: "Low",
}

_PRIORITY_FROM_JIRA = {
    JiraPriority.HIGHEST: PriorityLevel.HIGH,
    JiraPriority.HIGH: PriorityLevel.HIGH,
    JiraPriority.MEDIUM: PriorityLevel.MEDIUM,
    JiraPriority.LOW: PriorityLevel.LOW,
    JiraPriority.LOWEST: PriorityLevel.LOW,
}


def priority_from_jira(priority: Optional[JiraPriority]) -> PriorityLevel:
    return _PRIORITY_FROM_JIRA.get(priority, PriorityLevel.MEDIUM)


@dataclass
class TaskResult:
    task: Task
    warnings: List[str] = field(default_factory=list)


class TaskService:
    """Task operations for assignees, team leaders and administrators."""

    def __init__(self, vault: JiraVaultService = jira_vault_service):
        self.vault = vault

    # Lookups

    async def _leader_access(self, db: AsyncSession, leader_id: UUID, group_id: UUID) -> ProjectAccess:
        project = await get_group_project(db, group_id)
        access = await resolve_access(db, leader_id, project.id)
        if access.relation is not ProjectRelation.LEADER:
            raise AccessDeniedError("Only the team leader can manage tasks of this group")
        return access

    async def _project_task(self, db: AsyncSession, project_id: UUID, task_id: UUID) -> Task:
        task_obj = await task_crud.get(db, task_id)
        if task_obj is None or task_obj.project_id != project_id:
            raise NotFoundError("Task not found")
        return task_obj

    async def _group_member(self, db: AsyncSession, group_id: UUID, user_id: UUID) -> User:
        member = await user_crud.get(db, user_id)
        if member is None or not await group_crud.is_member(db, group_id=group_id, user_id=user_id):
            raise ValidationError("The specified assignee is not a member of this group.")
        return member

    async def _remote_target(
        self,
        db: AsyncSession,
        task_obj: Task,
    ) -> Optional[Tuple[JiraIntegration, JiraIssue]]:
        """Integration and mirrored issue behind a task, if both exist."""
        if task_obj.jira_issue_id is None:
            return None
        mirror = await jira_issue.get(db, task_obj.jira_issue_id)
        if mirror is None:
            return None
        integration = await jira_integration.get_by_project(db, project_id=task_obj.project_id)
        if integration is None:
            return None
        return integration, mirror

    # Jira helpers

    @staticmethod
    async def _account_id(client: JiraClient, member: User) -> Optional[str]:
        """Linked Jira account of a user, falling back to a search by e-mail."""
        if member.jira_account_id:
            return member.jira_account_id
        return await client.search_account(member.email)

    @staticmethod
    async def _transition(client: JiraClient, mirror: JiraIssue, status: TaskStatus) -> Optional[str]:
        """Move the Jira issue to the status matching ``status``; returns a warning on no match."""
        target = JIRA_STATUS_NAMES[status]
        transitions = await client.list_transitions(mirror.issue_key)
        match = next((t for t in transitions if t.to.name.lower() == target.lower()), None)
        if match is None:
            return f"No Jira transition to '{target}' available for {mirror.issue_key}; status not synced"
        await client.apply_transition(mirror.issue_key, match.id)
        mirror.status = target
        return None

    @staticmethod
    async def _place(client: JiraClient, issue_key: str, sprint_id: int) -> None:
        if sprint_id == 0:
            await client.move_to_backlog(issue_key)
        else:
            await client.move_to_sprint(issue_key, sprint_id)

    def _remote_warning(self, issue_key: str, action: str, exc: Exception) -> str:
        logger.warning("Jira %s failed for %s: %s", action, issue_key, exc)
        return f"Failed to {action} for Jira issue {issue_key}: {exc}"

    # Status

    async def update_status(
        self,
        db: AsyncSession,
        caller_id: UUID,
        task_id: UUID,
        status_text: str,
    ) -> TaskResult:
        """Assignee moves their task forward and the linked Jira issue follows."""
        task_obj = await task_crud.get(db, task_id)
        if task_obj is None:
            raise NotFoundError("Task not found")
        if task_obj.assigned_to != caller_id:
            raise AccessDeniedError("Only the assigned member can update this task's status")

        new_status = normalize_status(status_text)
        guard_forward_only(task_obj.status, new_status)
        changed = task_obj.status != new_status

        apply_status(task_obj, new_status)
        task_obj = await task_crud.save(db, db_obj=task_obj)
        result = TaskResult(task=task_obj)
        if changed:
            await self._push_status(db, task_obj, new_status, result)
        return result

    async def _push_status(self, db: AsyncSession, task_obj: Task, status: TaskStatus, result: TaskResult) -> None:
        target = await self._remote_target(db, task_obj)
        if target is None:
            return
        integration, mirror = target
        try:
            client = self.vault.client_for(integration)
            warning = await self._transition(client, mirror, status)
        except REMOTE_ERRORS as exc:
            result.warnings.append(self._remote_warning(mirror.issue_key, "update status", exc))
            return
        if warning:
            result.warnings.append(warning)
            return
        await jira_issue.save(db, db_obj=mirror)

    async def admin_set_status(self, db: AsyncSession, task_id: UUID, status_text: str) -> Task:
        """Set any status, including moving a task back out of done."""
        task_obj = await task_crud.get(db, task_id)
        if task_obj is None:
            raise NotFoundError("Task not found")
        previous = task_obj.status
        apply_status(task_obj, normalize_status(status_text))
        task_obj = await task_crud.save(db, db_obj=task_obj)
        logger.info("Task %s status set by administrator: %s -> %s", task_id, previous, task_obj.status)
        return task_obj

    # Leader operations

    async def create_from_jira_issue(
        self,
        db: AsyncSession,
        leader_id: UUID,
        group_id: UUID,
        data: TaskFromJiraIssueCreate,
    ) -> TaskResult:
        access = await self._leader_access(db, leader_id, group_id)
        project_id = access.project.id

        mirror = await jira_issue.get_by_key(db, issue_key=data.issue_key)
        if mirror is None:
            raise NotFoundError(f"Jira issue '{data.issue_key}' not found. Run a sync first.")
        if mirror.project_id != project_id:
            raise ValidationError(f"Jira issue '{data.issue_key}' does not belong to this group's project.")
        if await task_crud.get_by_jira_issue(db, jira_issue_id=mirror.id) is not None:
            raise ConflictError(
                f"A task already exists for '{data.issue_key}'. Use the update endpoint to modify it."
            )

        assignee = None
        if data.assigned_to is not None:
            assignee = await self._group_member(db, access.group.id, data.assigned_to)

        task_obj = await task_crud.create(
            db,
            obj_in={
                "project_id": project_id,
                "jira_issue_id": mirror.id,
                "assigned_to": data.assigned_to,
                "title": data.title_override or mirror.summary,
                "description": mirror.description,
                "status": TaskStatus.TODO,
                "priority": priority_from_jira(mirror.priority),
                "due_date": data.due_date,
            },
        )
        result = TaskResult(task=task_obj)

        integration = await jira_integration.get_by_project(db, project_id=project_id)
        if integration is None:
            return result

        try:
            client = self.vault.client_for(integration)
            fields: Dict[str, Any] = {}
            if data.title_override:
                fields["summary"] = data.title_override
            if assignee is not None:
                account_id = await self._account_id(client, assignee)
                if account_id:
                    fields["assignee_account_id"] = account_id
                else:
                    result.warnings.append(f"Assignee {assignee.email} has no Jira account; assignee not synced")
            if fields:
                updated = await client.update_issue(mirror.issue_key, **fields)
                apply_remote_fields(mirror, updated, parse_priority(updated.priority))
                await jira_issue.save(db, db_obj=mirror)
            if data.sprint_id is not None:
                await self._place(client, mirror.issue_key, data.sprint_id)
        except REMOTE_ERRORS as exc:
            result.warnings.append(self._remote_warning(mirror.issue_key, "update issue", exc))
        return result

    async def update_task(
        self,
        db: AsyncSession,
        leader_id: UUID,
        group_id: UUID,
        task_id: UUID,
        data: TaskUpdate,
    ) -> TaskResult:
        """Apply the fields present in ``data`` locally, then mirror them to Jira."""
        access = await self._leader_access(db, leader_id, group_id)
        task_obj = await self._project_task(db, access.project.id, task_id)

        changes = data.model_dump(exclude_unset=True)
        for required in ("title", "priority"):
            if changes.get(required, "") is None:
                del changes[required]

        new_status = None
        status_text = changes.pop("status", None)
        if status_text is not None:
            new_status = normalize_status(status_text)
            guard_forward_only(task_obj.status, new_status)
        status_changed = new_status is not None and new_status != task_obj.status

        assignee = None
        if changes.get("assigned_to") is not None:
            assignee = await self._group_member(db, access.group.id, changes["assigned_to"])

        for name, value in changes.items():
            setattr(task_obj, name, value)
        if new_status is not None:
            apply_status(task_obj, new_status)
        task_obj = await task_crud.save(db, db_obj=task_obj)
        result = TaskResult(task=task_obj)

        target = await self._remote_target(db, task_obj)
        if target is None:
            return result
        integration, mirror = target

        try:
            client = self.vault.client_for(integration)
            fields: Dict[str, Any] = {}
            if "title" in changes:
                fields["summary"] = changes["title"]
            if "description" in changes:
                fields["description"] = changes["description"]
            if "priority" in changes:
                fields["priority"] = JIRA_PRIORITY_NAMES[changes["priority"]]
            if "assigned_to" in changes:
                if assignee is None:
                    fields["assignee_account_id"] = None
                else:
                    account_id = await self._account_id(client, assignee)
                    if account_id:
                        fields["assignee_account_id"] = account_id
                    else:
                        result.warnings.append(
                            f"Assignee {assignee.email} has no Jira account; assignee not synced"
                        )
            if fields:
                updated = await client.update_issue(mirror.issue_key, **fields)
                apply_remote_fields(mirror, updated, parse_priority(updated.priority))
            if status_changed:
                warning = await self._transition(client, mirror, new_status)
                if warning:
                    result.warnings.append(warning)
        except REMOTE_ERRORS as exc:
            result.warnings.append(self._remote_warning(mirror.issue_key, "update issue", exc))
            return result

        await jira_issue.save(db, db_obj=mirror)
        return result

    async def move_to_sprint(
        self,
        db: AsyncSession,
        leader_id: UUID,
        group_id: UUID,
        task_id: UUID,
        sprint_id: int,
    ) -> Task:
        """Place the task's Jira issue in a sprint; ``0`` sends it to the backlog."""
        access = await self._leader_access(db, leader_id, group_id)
        task_obj = await self._project_task(db, access.project.id, task_id)
        if task_obj.jira_issue_id is None:
            raise ValidationError("This task is not linked to a Jira issue. Link it first to use sprint management.")

        mirror = await jira_issue.get(db, task_obj.jira_issue_id)
        if mirror is None:
            raise NotFoundError("Linked Jira issue not found locally. Run a sync.")
        integration = await jira_integration.get_by_project(db, project_id=access.project.id)
        if integration is None:
            raise NotConfiguredError()

        client = self.vault.client_for(integration)
        await self._place(client, mirror.issue_key, sprint_id)
        logger.info("Moved %s to %s", mirror.issue_key, f"sprint {sprint_id}" if sprint_id else "backlog")
        return task_obj

    async def link_to_requirement(
        self,
        db: AsyncSession,
        leader_id: UUID,
        group_id: UUID,
        task_id: UUID,
        requirement_id: UUID,
    ) -> TaskResult:
        access = await self._leader_access(db, leader_id, group_id)
        task_obj = await self._project_task(db, access.project.id, task_id)

        req = await requirement_crud.get(db, requirement_id)
        if req is None:
            raise NotFoundError("Requirement not found")
        if req.project_id != access.project.id:
            raise ValidationError("The requirement does not belong to this group's project.")

        task_obj.requirement_id = req.id
        task_obj = await task_crud.save(db, db_obj=task_obj)
        result = TaskResult(task=task_obj)

        if task_obj.jira_issue_id is None or req.jira_issue_id is None:
            return result
        integration = await jira_integration.get_by_project(db, project_id=access.project.id)
        task_issue = await jira_issue.get(db, task_obj.jira_issue_id)
        req_issue = await jira_issue.get(db, req.jira_issue_id)
        if integration is None or task_issue is None or req_issue is None:
            return result

        try:
            client = self.vault.client_for(integration)
            await client.link_issues(task_issue.issue_key, req_issue.issue_key)
        except REMOTE_ERRORS as exc:
            result.warnings.append(self._remote_warning(task_issue.issue_key, "link issues", exc))
        return result

    async def delete_task(
        self,
        db: AsyncSession,
        leader_id: UUID,
        group_id: UUID,
        task_id: UUID,
    ) -> List[str]:
        """Delete the task and its Jira issue. Returns warnings from the Jira side."""
        access = await self._leader_access(db, leader_id, group_id)
        task_obj = await self._project_task(db, access.project.id, task_id)

        warnings: List[str] = []
        deleted_mirror = None
        target = await self._remote_target(db, task_obj)
        if target is not None:
            integration, mirror = target
            try:
                client = self.vault.client_for(integration)
                await client.delete_issue(mirror.issue_key)
                deleted_mirror = mirror
            except REMOTE_ERRORS as exc:
                warnings.append(self._remote_warning(mirror.issue_key, "delete issue", exc))

        await task_crud.remove(db, id=task_obj.id)
        if deleted_mirror is not None:
            await jira_issue.remove(db, id=deleted_mirror.id)
        logger.info("Deleted task %s of project %s", task_id, access.project.id)
        return warnings


task_service = TaskService()
