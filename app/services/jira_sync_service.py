"""Pull Jira issues into the local mirror."""
import asyncio
import logging
import time
import weakref
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AccessDeniedError, NotConfiguredError
from app.crud.integration import jira_integration, jira_issue
from app.integrations.jira import JiraIssueData
from app.middleware.metrics import jira_sync_duration_seconds, jira_sync_runs_total, jira_synced_issues_total
from app.models.integration import JiraIntegration, JiraIssue, JiraPriority, SyncStatus
from app.schemas.jira import JiraSyncStatusResponse
from app.services.jira_vault_service import JiraVaultService, jira_vault_service
from app.services.project_access import resolve_access

logger = logging.getLogger(__name__)


class SyncRowError(Exception):
    """An issue row that cannot be mirrored as listed."""


@dataclass
class SyncOutcome:
    """Result of one sync run. Per-issue failures are collected, not raised."""

    total_issues: int = 0
    new_issues: int = 0
    updated_issues: int = 0
    failed_issues: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    status: str = "success"
    sync_time: datetime = field(default_factory=datetime.utcnow)


def parse_priority(name: Optional[str]) -> Optional[JiraPriority]:
    """Parse a Jira priority name. Unknown names give None."""
    if not name:
        return None
    try:
        return JiraPriority(name.strip().lower())
    except ValueError:
        return None


def apply_remote_fields(mirror: JiraIssue, remote: JiraIssueData, priority: Optional[JiraPriority]) -> JiraIssue:
    """Copy remote-owned fields onto a mirror row."""
    mirror.issue_key = remote.issue_key
    mirror.issue_type = remote.issue_type
    mirror.summary = remote.summary
    mirror.description = remote.description
    mirror.status = remote.status
    mirror.priority = priority
    mirror.assignee_jira_id = remote.assignee_account_id
    mirror.assignee_name = remote.assignee_name
    mirror.updated_date = remote.updated
    mirror.last_synced = datetime.utcnow()
    return mirror


class JiraSyncService:
    """Reconciles a project's Jira issues with the local mirror."""

    def __init__(self, vault: JiraVaultService = jira_vault_service):
        self.vault = vault
        # Locks stay alive only while a run holds or awaits them.
        self._locks: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, project_id: UUID) -> asyncio.Lock:
        # Serialises runs inside this process only; other workers are not blocked.
        lock = self._locks.get(project_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[project_id] = lock
        return lock

    async def sync(self, db: AsyncSession, project_id: UUID) -> SyncOutcome:
        """Run one sync for a project.

        Raises NotConfiguredError when no integration exists. Connectivity
        failures are reported through the outcome with ``status="failed"``.
        """
        integration = await jira_integration.get_by_project(db, project_id=project_id)
        if integration is None:
            raise NotConfiguredError()

        async with self._lock_for(project_id):
            started = time.perf_counter()
            outcome = await self._run(db, integration)
            jira_sync_duration_seconds.observe(time.perf_counter() - started)

        jira_sync_runs_total.labels(outcome.status).inc()
        jira_synced_issues_total.labels("new").inc(outcome.new_issues)
        jira_synced_issues_total.labels("updated").inc(outcome.updated_issues)
        jira_synced_issues_total.labels("failed").inc(outcome.failed_issues)
        return outcome

    async def _run(self, db: AsyncSession, integration: JiraIntegration) -> SyncOutcome:
        project_id = integration.project_id
        project_key = integration.project_key
        outcome = SyncOutcome()

        integration.sync_status = SyncStatus.SYNCING
        await jira_integration.save(db, db_obj=integration)
        logger.info("Starting Jira sync for project %s (%s)", project_id, project_key)

        try:
            client = self.vault.client_for(integration)
            remote_issues = await client.list_project_issues(project_key)
        except Exception as exc:
            logger.error("Jira sync failed for project %s: %s", project_id, exc)
            integration.sync_status = SyncStatus.FAILED
            await jira_integration.save(db, db_obj=integration)
            outcome.status = "failed"
            outcome.errors.append(f"Sync failed: {exc}")
            return outcome

        outcome.total_issues = len(remote_issues)
        batch = {remote.jira_id: remote for remote in remote_issues}
        for remote in remote_issues:
            try:
                created = await self._upsert_issue(db, project_id, remote, batch, outcome)
            except IntegrityError as exc:
                await db.rollback()
                self._record_failure(outcome, remote, exc.orig)
                continue
            except Exception as exc:
                await db.rollback()
                self._record_failure(outcome, remote, exc)
                continue

            if created:
                outcome.new_issues += 1
            else:
                outcome.updated_issues += 1

        # A per-row rollback expires every loaded instance.
        await db.refresh(integration)
        outcome.sync_time = datetime.utcnow()
        integration.last_sync = outcome.sync_time
        integration.sync_status = SyncStatus.SUCCESS
        await jira_integration.save(db, db_obj=integration)

        logger.info(
            "Jira sync for project %s finished: %d total, %d new, %d updated, %d failed",
            project_id,
            outcome.total_issues,
            outcome.new_issues,
            outcome.updated_issues,
            outcome.failed_issues,
        )
        return outcome

    @staticmethod
    def _record_failure(outcome: SyncOutcome, remote: JiraIssueData, reason: object) -> None:
        message = f"Failed to sync issue {remote.issue_key}: {reason}"
        logger.warning(message)
        outcome.failed_issues += 1
        outcome.errors.append(message)

    async def _release_key(
        self,
        db: AsyncSession,
        project_id: UUID,
        remote: JiraIssueData,
        mirror: Optional[JiraIssue],
        batch: Dict[str, JiraIssueData],
    ) -> None:
        """Move another row off ``remote.issue_key`` when Jira renumbered it in this batch."""
        holder = await jira_issue.get_by_key(db, issue_key=remote.issue_key)
        if holder is None or holder.jira_id == remote.jira_id:
            return

        incoming = batch.get(holder.jira_id)
        if holder.project_id != project_id or incoming is None or incoming.issue_key == remote.issue_key:
            raise SyncRowError(f"issue key {remote.issue_key} is already held by Jira issue {holder.jira_id}")

        if mirror is not None and mirror.issue_key == incoming.issue_key:
            # Two issues swapped keys: park this row's key so the holder can take it.
            mirror.issue_key = f"~{mirror.jira_id}"[:50]
            await db.flush()
        apply_remote_fields(holder, incoming, parse_priority(incoming.priority))
        await db.flush()

    async def _upsert_issue(
        self,
        db: AsyncSession,
        project_id: UUID,
        remote: JiraIssueData,
        batch: Dict[str, JiraIssueData],
        outcome: SyncOutcome,
    ) -> bool:
        """Insert or update one mirror row and commit it. Returns True when inserted."""
        mirror = await jira_issue.get_by_jira_id(db, jira_id=remote.jira_id)
        if mirror is not None and mirror.project_id != project_id:
            raise SyncRowError(f"Jira issue {remote.jira_id} is already mirrored for another project")

        await self._release_key(db, project_id, remote, mirror, batch)

        created = mirror is None
        if created:
            mirror = JiraIssue(project_id=project_id, jira_id=remote.jira_id, created_date=remote.created)
            db.add(mirror)

        priority = parse_priority(remote.priority)
        apply_remote_fields(mirror, remote, priority)
        await db.commit()

        if remote.priority and priority is None:
            outcome.warnings.append(
                f"Issue {remote.issue_key}: unknown priority '{remote.priority}' stored as none"
            )
        return created

    async def get_sync_status(self, db: AsyncSession, project_id: UUID) -> JiraSyncStatusResponse:
        integration = await jira_integration.get_by_project(db, project_id=project_id)
        if integration is None:
            raise NotConfiguredError()
        total = await jira_issue.count_by_project(db, project_id=project_id)
        return JiraSyncStatusResponse(
            project_id=project_id,
            project_key=integration.project_key,
            total_issues=total,
            last_sync=integration.last_sync,
            sync_status=integration.sync_status,
        )

    async def sync_as(self, db: AsyncSession, caller_id: UUID, project_id: UUID) -> SyncOutcome:
        """Sync on behalf of a caller; only admins and the team leader may."""
        access = await resolve_access(db, caller_id, project_id)
        if not access.can_sync:
            raise AccessDeniedError("Only an administrator or the team leader can sync Jira issues")
        return await self.sync(db, project_id)

    async def get_sync_status_as(
        self,
        db: AsyncSession,
        caller_id: UUID,
        project_id: UUID,
    ) -> JiraSyncStatusResponse:
        access = await resolve_access(db, caller_id, project_id)
        if not access.has_access:
            raise AccessDeniedError("You do not have access to this project")
        return await self.get_sync_status(db, project_id)


jira_sync_service = JiraSyncService()
