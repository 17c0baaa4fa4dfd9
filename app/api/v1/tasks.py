"""Tasks API endpoints."""
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.dependencies import require_permission
from app.models.user import User
from app.core.security import Permission
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
from app.services.task_service import TaskResult, task_service

router = APIRouter()


def _action_response(result: TaskResult) -> TaskActionResponse:
    return TaskActionResponse(
        task=TaskResponse.model_validate(result.task),
        warnings=result.warnings,
    )


@router.patch("/{task_id}/status", response_model=TaskActionResponse)
async def update_task_status(
    task_id: UUID,
    payload: TaskStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.TASK_UPDATE_STATUS)),
):
    """Move an assigned task forward, e.g. "To Do" -> "In Progress"."""
    result = await task_service.update_status(db, current_user.id, task_id, payload.status)
    return _action_response(result)


@router.put("/{task_id}/admin-status", response_model=TaskResponse)
async def admin_set_task_status(
    task_id: UUID,
    payload: TaskStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.TASK_ADMIN)),
):
    """Set any status without the forward-only rule."""
    return await task_service.admin_set_status(db, task_id, payload.status)


@router.post(
    "/groups/{group_id}/from-jira",
    response_model=TaskActionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task_from_jira_issue(
    group_id: UUID,
    payload: TaskFromJiraIssueCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.TASK_MANAGE)),
):
    """Create a local task from a synced Jira issue."""
    result = await task_service.create_from_jira_issue(db, current_user.id, group_id, payload)
    return _action_response(result)


@router.patch("/groups/{group_id}/{task_id}", response_model=TaskActionResponse)
async def update_task(
    group_id: UUID,
    task_id: UUID,
    payload: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.TASK_MANAGE)),
):
    result = await task_service.update_task(db, current_user.id, group_id, task_id, payload)
    return _action_response(result)


@router.post("/groups/{group_id}/{task_id}/sprint", response_model=TaskResponse)
async def move_task_to_sprint(
    group_id: UUID,
    task_id: UUID,
    payload: TaskSprintMove,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.TASK_MANAGE)),
):
    """Move the linked Jira issue to a sprint, or to the backlog with sprint 0."""
    return await task_service.move_to_sprint(db, current_user.id, group_id, task_id, payload.sprint_id)


@router.post("/groups/{group_id}/{task_id}/requirement", response_model=TaskActionResponse)
async def link_task_to_requirement(
    group_id: UUID,
    task_id: UUID,
    payload: TaskRequirementLink,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.TASK_MANAGE)),
):
    result = await task_service.link_to_requirement(
        db, current_user.id, group_id, task_id, payload.requirement_id
    )
    return _action_response(result)


@router.delete("/groups/{group_id}/{task_id}", response_model=TaskDeleteResponse)
async def delete_task(
    group_id: UUID,
    task_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.TASK_MANAGE)),
):
    warnings = await task_service.delete_task(db, current_user.id, group_id, task_id)
    return TaskDeleteResponse(warnings=warnings)
