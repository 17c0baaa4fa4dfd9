"""Jira integration API endpoints."""
from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.dependencies import require_permission
from app.models.user import User
from app.core.security import Permission
from app.schemas.jira import (
    JiraConnectionTestResult,
    JiraIntegrationConfig,
    JiraIntegrationResponse,
    JiraIssueResponse,
    JiraSyncResult,
    JiraSyncStatusResponse,
)
from app.services.jira_vault_service import jira_vault_service
from app.services.jira_sync_service import SyncOutcome, jira_sync_service
from app.services.jira_issue_reader import jira_issue_reader
from app.services.project_access import get_group_project

router = APIRouter()


def _sync_result(project_id: UUID, outcome: SyncOutcome) -> JiraSyncResult:
    return JiraSyncResult(
        project_id=project_id,
        total_issues=outcome.total_issues,
        new_issues=outcome.new_issues,
        updated_issues=outcome.updated_issues,
        failed_issues=outcome.failed_issues,
        errors=outcome.errors,
        warnings=outcome.warnings,
        status=outcome.status,
        sync_time=outcome.sync_time,
    )


# Integration configuration (administrators)

@router.get("/integrations", response_model=List[JiraIntegrationResponse])
async def list_integrations(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.INTEGRATION_MANAGE)),
):
    """List all configured Jira integrations."""
    return await jira_vault_service.list_all(db)


@router.post(
    "/integrations/projects/{project_id}",
    response_model=JiraIntegrationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def configure_integration(
    project_id: UUID,
    cfg: JiraIntegrationConfig,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.INTEGRATION_MANAGE)),
):
    """Configure Jira for a project. Credentials are verified before saving."""
    return await jira_vault_service.configure(db, project_id, cfg)


@router.get("/integrations/projects/{project_id}", response_model=JiraIntegrationResponse)
async def get_integration(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.INTEGRATION_MANAGE)),
):
    return await jira_vault_service.get(db, project_id)


@router.put("/integrations/projects/{project_id}", response_model=JiraIntegrationResponse)
async def update_integration(
    project_id: UUID,
    cfg: JiraIntegrationConfig,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.INTEGRATION_MANAGE)),
):
    return await jira_vault_service.update(db, project_id, cfg)


@router.delete("/integrations/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_integration(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.INTEGRATION_MANAGE)),
):
    await jira_vault_service.delete(db, project_id)


@router.post("/integrations/projects/{project_id}/test", response_model=JiraConnectionTestResult)
async def test_integration(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.INTEGRATION_MANAGE)),
):
    """Test the stored credentials against Jira."""
    return await jira_vault_service.test_stored_connection(db, project_id)


# Sync and mirrored issues

@router.post("/projects/{project_id}/sync", response_model=JiraSyncResult)
async def sync_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.ISSUE_SYNC)),
):
    """Pull issues from Jira into the local mirror."""
    outcome = await jira_sync_service.sync_as(db, current_user.id, project_id)
    return _sync_result(project_id, outcome)


@router.get("/projects/{project_id}/sync-status", response_model=JiraSyncStatusResponse)
async def get_sync_status(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.ISSUE_VIEW)),
):
    return await jira_sync_service.get_sync_status_as(db, current_user.id, project_id)


@router.get("/projects/{project_id}/issues", response_model=List[JiraIssueResponse])
async def list_project_issues(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.ISSUE_VIEW)),
):
    """List mirrored issues visible to the caller."""
    return await jira_issue_reader.list_visible(db, current_user.id, project_id)


@router.get("/issues/{issue_key}", response_model=JiraIssueResponse)
async def get_issue(
    issue_key: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.ISSUE_VIEW)),
):
    return await jira_issue_reader.get_visible(db, current_user.id, issue_key)


# Group-scoped variants

@router.post("/groups/{group_id}/sync", response_model=JiraSyncResult)
async def sync_group(
    group_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.ISSUE_SYNC)),
):
    project = await get_group_project(db, group_id)
    outcome = await jira_sync_service.sync_as(db, current_user.id, project.id)
    return _sync_result(project.id, outcome)


@router.get("/groups/{group_id}/sync-status", response_model=JiraSyncStatusResponse)
async def get_group_sync_status(
    group_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.ISSUE_VIEW)),
):
    project = await get_group_project(db, group_id)
    return await jira_sync_service.get_sync_status_as(db, current_user.id, project.id)


@router.get("/groups/{group_id}/issues", response_model=List[JiraIssueResponse])
async def list_group_issues(
    group_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.ISSUE_VIEW)),
):
    project = await get_group_project(db, group_id)
    return await jira_issue_reader.list_visible(db, current_user.id, project.id)
