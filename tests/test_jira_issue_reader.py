"""Tests for role-scoped issue reads."""
import uuid
from datetime import datetime

import pytest
import pytest_asyncio

from app.core.exceptions import AccessDeniedError, NotFoundError
from app.models.integration import JiraIssue
from app.services.jira_issue_reader import JiraIssueReader

reader = JiraIssueReader()


@pytest_asyncio.fixture
async def mirrored_issues(db_session, project):
    """Three issues: one for the member, one for the leader, one unassigned."""
    rows = [
        JiraIssue(
            project_id=project.id,
            jira_id="10001",
            issue_key="ABC-1",
            issue_type="Task",
            summary="Member work",
            status="To Do",
            assignee_jira_id="acc-member",
            updated_date=datetime(2026, 9, 3),
        ),
        JiraIssue(
            project_id=project.id,
            jira_id="10002",
            issue_key="ABC-2",
            issue_type="Task",
            summary="Leader work",
            status="In Progress",
            assignee_jira_id="acc-leader",
            updated_date=datetime(2026, 9, 2),
        ),
        JiraIssue(
            project_id=project.id,
            jira_id="10003",
            issue_key="ABC-3",
            issue_type="Bug",
            summary="Nobody yet",
            status="To Do",
            updated_date=datetime(2026, 9, 1),
        ),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return rows


def _keys(issues):
    return [issue.issue_key for issue in issues]


@pytest.mark.asyncio
async def test_admin_lecturer_and_leader_see_everything(
    db_session, project, mirrored_issues, admin_user, lecturer_user, leader_user
):
    for caller in (admin_user, lecturer_user, leader_user):
        issues = await reader.list_visible(db_session, caller.id, project.id)
        assert _keys(issues) == ["ABC-1", "ABC-2", "ABC-3"]


@pytest.mark.asyncio
async def test_member_sees_only_assigned_issues(db_session, project, mirrored_issues, member_user):
    issues = await reader.list_visible(db_session, member_user.id, project.id)

    assert _keys(issues) == ["ABC-1"]


@pytest.mark.asyncio
async def test_member_without_linked_account_sees_nothing(db_session, project, mirrored_issues, unlinked_member):
    assert await reader.list_visible(db_session, unlinked_member.id, project.id) == []


@pytest.mark.asyncio
async def test_unrelated_callers_are_denied(db_session, project, mirrored_issues, outsider_user, other_lecturer):
    for caller in (outsider_user, other_lecturer):
        with pytest.raises(AccessDeniedError):
            await reader.list_visible(db_session, caller.id, project.id)
        with pytest.raises(AccessDeniedError):
            await reader.get_visible(db_session, caller.id, "ABC-1")


@pytest.mark.asyncio
async def test_member_single_issue_lookup(db_session, mirrored_issues, member_user):
    issue = await reader.get_visible(db_session, member_user.id, "ABC-1")
    assert issue.summary == "Member work"

    with pytest.raises(AccessDeniedError):
        await reader.get_visible(db_session, member_user.id, "ABC-2")


@pytest.mark.asyncio
async def test_leader_single_issue_lookup(db_session, mirrored_issues, leader_user):
    issue = await reader.get_visible(db_session, leader_user.id, "ABC-3")

    assert issue.issue_type == "Bug"


@pytest.mark.asyncio
async def test_missing_issue_and_project(db_session, project, mirrored_issues, admin_user):
    with pytest.raises(NotFoundError):
        await reader.get_visible(db_session, admin_user.id, "ABC-404")
    with pytest.raises(NotFoundError):
        await reader.list_visible(db_session, admin_user.id, uuid.uuid4())
