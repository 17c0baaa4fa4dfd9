"""Tests for the Jira REST client."""
import base64
import json
from datetime import datetime

import httpx
import pytest

from app.config import settings
from app.integrations.adf import adf_to_text, text_to_adf
from app.integrations.jira import JiraClient, JiraIntegrationError, JiraIssueCreate

BASE_URL = "https://alpha.atlassian.net"


def _issue_json(key="ABC-1", jira_id="10001", priority="High", assignee="acc-1"):
    return {
        "id": jira_id,
        "key": key,
        "fields": {
            "summary": "Login page",
            "description": {
                "type": "doc",
                "version": 1,
                "content": [
                    {"type": "paragraph", "content": [{"type": "text", "text": "First "}, {"type": "text", "text": "line"}]},
                    {"type": "paragraph", "content": [{"type": "text", "text": ", second"}]},
                ],
            },
            "status": {"name": "In Progress"},
            "issuetype": {"name": "Story"},
            "priority": {"name": priority} if priority else None,
            "assignee": {"accountId": assignee, "displayName": "Ann"} if assignee else None,
            "created": "2026-09-01T10:00:00.000+0200",
            "updated": "2026-09-02T10:15:30.000+0200",
        },
    }


class Recorder:
    """Collects requests and answers them from a route table."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, text="no route")
        return handler(request)


def _client(recorder) -> JiraClient:
    return JiraClient(
        BASE_URL + "/",
        "bot@example.com",
        "secret-token-123",
        transport=httpx.MockTransport(recorder),
    )


@pytest.mark.asyncio
async def test_every_request_carries_basic_auth():
    recorder = Recorder({("GET", "/rest/api/3/myself"): lambda r: httpx.Response(200, json={"accountId": "me"})})
    client = _client(recorder)

    assert await client.test_connection() is True

    request = recorder.requests[0]
    expected = base64.b64encode(b"bot@example.com:secret-token-123").decode("ascii")
    assert request.headers["Authorization"] == f"Basic {expected}"
    assert request.headers["Accept"] == "application/json"
    assert str(request.url) == f"{BASE_URL}/rest/api/3/myself"


@pytest.mark.asyncio
async def test_connection_false_on_auth_failure_and_network_error():
    unauthorized = Recorder({("GET", "/rest/api/3/myself"): lambda r: httpx.Response(401, text="Unauthorized")})
    assert await _client(unauthorized).test_connection() is False

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    offline = JiraClient(BASE_URL, "bot@example.com", "secret-token-123", transport=httpx.MockTransport(refuse))
    assert await offline.test_connection() is False


@pytest.mark.asyncio
async def test_list_project_issues_query_and_parsing():
    recorder = Recorder(
        {("GET", "/rest/api/3/search/jql"): lambda r: httpx.Response(200, json={"issues": [_issue_json()], "isLast": True})}
    )

    issues = await _client(recorder).list_project_issues("ABC")

    params = recorder.requests[0].url.params
    assert params["jql"] == "project=ABC ORDER BY updated DESC"
    assert params["maxResults"] == "100"
    assert params["fields"] == "summary,description,status,issuetype,priority,assignee,created,updated"
    assert "nextPageToken" not in params

    assert len(issues) == 1
    issue = issues[0]
    assert issue.jira_id == "10001"
    assert issue.issue_key == "ABC-1"
    assert issue.description == "First line, second"
    assert issue.status == "In Progress"
    assert issue.issue_type == "Story"
    assert issue.priority == "High"
    assert issue.assignee_account_id == "acc-1"
    assert issue.updated == datetime(2026, 9, 2, 8, 15, 30)


@pytest.mark.asyncio
async def test_list_project_issues_follows_page_tokens():
    pages = {
        None: {"issues": [_issue_json("ABC-2", "10002")], "nextPageToken": "page-2"},
        "page-2": {"issues": [_issue_json("ABC-1", "10001")], "isLast": True},
    }
    recorder = Recorder(
        {("GET", "/rest/api/3/search/jql"): lambda r: httpx.Response(200, json=pages[r.url.params.get("nextPageToken")])}
    )

    issues = await _client(recorder).list_project_issues("ABC")

    assert [issue.issue_key for issue in issues] == ["ABC-2", "ABC-1"]
    assert len(recorder.requests) == 2
    assert recorder.requests[1].url.params["nextPageToken"] == "page-2"
    assert recorder.requests[1].url.params["jql"] == "project=ABC ORDER BY updated DESC"


@pytest.mark.asyncio
async def test_list_project_issues_stops_at_the_configured_limit(monkeypatch):
    monkeypatch.setattr(settings, "JIRA_MAX_RESULTS", 150)

    def page(request):
        size = int(request.url.params["maxResults"])
        start = 0 if "nextPageToken" not in request.url.params else 100
        raw = [_issue_json(f"ABC-{start + n}", str(20000 + start + n)) for n in range(size)]
        return httpx.Response(200, json={"issues": raw, "nextPageToken": f"after-{start + size}"})

    recorder = Recorder({("GET", "/rest/api/3/search/jql"): page})

    issues = await _client(recorder).list_project_issues("ABC")

    assert len(issues) == 150
    assert [r.url.params["maxResults"] for r in recorder.requests] == ["100", "50"]


@pytest.mark.asyncio
async def test_issue_without_priority_or_assignee():
    recorder = Recorder(
        {("GET", "/rest/api/3/issue/ABC-2"): lambda r: httpx.Response(200, json=_issue_json("ABC-2", "10002", None, None))}
    )

    issue = await _client(recorder).get_issue("ABC-2")

    assert issue.priority is None
    assert issue.assignee_account_id is None
    assert issue.assignee_name is None


@pytest.mark.asyncio
async def test_non_success_raises_with_status_and_body():
    recorder = Recorder(
        {("GET", "/rest/api/3/project/XYZ"): lambda r: httpx.Response(404, text="No project could be found with key 'XYZ'.")}
    )

    with pytest.raises(JiraIntegrationError) as exc_info:
        await _client(recorder).get_project("XYZ")

    assert exc_info.value.status_code == 404
    assert "No project could be found" in exc_info.value.body
    assert "404" in str(exc_info.value)
    assert "No project could be found" in str(exc_info.value)


@pytest.mark.asyncio
async def test_network_error_has_no_status_code():
    def refuse(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    client = JiraClient(BASE_URL, "bot@example.com", "secret-token-123", transport=httpx.MockTransport(refuse))

    with pytest.raises(JiraIntegrationError) as exc_info:
        await client.list_project_issues("ABC")
    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_update_issue_sends_only_explicit_fields():
    recorder = Recorder(
        {
            ("PUT", "/rest/api/3/issue/ABC-1"): lambda r: httpx.Response(204),
            ("GET", "/rest/api/3/issue/ABC-1"): lambda r: httpx.Response(200, json=_issue_json()),
        }
    )

    await _client(recorder).update_issue("ABC-1", summary="Renamed", assignee_account_id=None)

    put = recorder.requests[0]
    assert put.method == "PUT"
    assert json.loads(put.content) == {"fields": {"summary": "Renamed", "assignee": None}}


@pytest.mark.asyncio
async def test_update_issue_with_empty_description_is_sent():
    recorder = Recorder(
        {
            ("PUT", "/rest/api/3/issue/ABC-1"): lambda r: httpx.Response(204),
            ("GET", "/rest/api/3/issue/ABC-1"): lambda r: httpx.Response(200, json=_issue_json()),
        }
    )

    await _client(recorder).update_issue("ABC-1", description="", priority="Low")

    fields = json.loads(recorder.requests[0].content)["fields"]
    assert fields["description"] == text_to_adf("")
    assert fields["priority"] == {"name": "Low"}
    assert "summary" not in fields


@pytest.mark.asyncio
async def test_update_issue_without_fields_skips_put():
    recorder = Recorder({("GET", "/rest/api/3/issue/ABC-1"): lambda r: httpx.Response(200, json=_issue_json())})

    await _client(recorder).update_issue("ABC-1")

    assert [r.method for r in recorder.requests] == ["GET"]


@pytest.mark.asyncio
async def test_create_issue_wraps_description_and_refetches():
    recorder = Recorder(
        {
            ("POST", "/rest/api/3/issue"): lambda r: httpx.Response(201, json={"id": "10001", "key": "ABC-1"}),
            ("GET", "/rest/api/3/issue/ABC-1"): lambda r: httpx.Response(200, json=_issue_json()),
        }
    )

    created = await _client(recorder).create_issue(
        JiraIssueCreate(project_key="ABC", summary="Login page", description="Plain text", priority="High")
    )

    fields = json.loads(recorder.requests[0].content)["fields"]
    assert fields["project"] == {"key": "ABC"}
    assert fields["issuetype"] == {"name": "Task"}
    assert fields["priority"] == {"name": "High"}
    assert fields["description"]["content"][0]["content"][0]["text"] == "Plain text"
    assert "assignee" not in fields
    assert created.issue_key == "ABC-1"


@pytest.mark.asyncio
async def test_transitions_are_listed_and_applied_by_id():
    transitions = {
        "transitions": [
            {"id": "21", "name": "Start", "to": {"id": "3", "name": "In Progress"}},
            {"id": "31", "name": "Finish", "to": {"id": "10001", "name": "Done"}},
        ]
    }
    recorder = Recorder(
        {
            ("GET", "/rest/api/3/issue/ABC-1/transitions"): lambda r: httpx.Response(200, json=transitions),
            ("POST", "/rest/api/3/issue/ABC-1/transitions"): lambda r: httpx.Response(204),
        }
    )
    client = _client(recorder)

    listed = await client.list_transitions("ABC-1")
    await client.apply_transition("ABC-1", "31")

    assert [(t.id, t.to.name) for t in listed] == [("21", "In Progress"), ("31", "Done")]
    assert json.loads(recorder.requests[1].content) == {"transition": {"id": "31"}}


@pytest.mark.asyncio
async def test_search_account_returns_first_match_or_none():
    found = Recorder(
        {("GET", "/rest/api/3/user/search"): lambda r: httpx.Response(200, json=[{"accountId": "a1"}, {"accountId": "a2"}])}
    )
    assert await _client(found).search_account("ann@example.com") == "a1"
    assert found.requests[0].url.params["query"] == "ann@example.com"

    empty = Recorder({("GET", "/rest/api/3/user/search"): lambda r: httpx.Response(200, json=[])})
    assert await _client(empty).search_account("nobody@example.com") is None

    rejected = Recorder({("GET", "/rest/api/3/user/search"): lambda r: httpx.Response(400, text="bad query")})
    assert await _client(rejected).search_account("?") is None


@pytest.mark.asyncio
async def test_sprint_backlog_link_and_delete_payloads():
    recorder = Recorder(
        {
            ("POST", "/rest/agile/1.0/sprint/7/issue"): lambda r: httpx.Response(204),
            ("POST", "/rest/agile/1.0/backlog/issue"): lambda r: httpx.Response(204),
            ("POST", "/rest/api/3/issueLink"): lambda r: httpx.Response(201),
            ("DELETE", "/rest/api/3/issue/ABC-1"): lambda r: httpx.Response(204),
        }
    )
    client = _client(recorder)

    await client.move_to_sprint("ABC-1", 7)
    await client.move_to_backlog("ABC-1")
    await client.link_issues("ABC-1", "ABC-9")
    await client.delete_issue("ABC-1")

    bodies = [json.loads(r.content) if r.content else None for r in recorder.requests]
    assert bodies[0] == {"issues": ["ABC-1"]}
    assert bodies[1] == {"issues": ["ABC-1"]}
    assert bodies[2] == {
        "type": {"name": "Relates"},
        "inwardIssue": {"key": "ABC-1"},
        "outwardIssue": {"key": "ABC-9"},
    }
    assert recorder.requests[3].method == "DELETE"


def test_adf_flattening_keeps_document_order():
    document = {
        "type": "doc",
        "content": [
            {"type": "heading", "content": [{"type": "text", "text": "Title. "}]},
            {
                "type": "bulletList",
                "content": [
                    {"type": "listItem", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "one "}]}]},
                    {"type": "listItem", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "two"}]}]},
                ],
            },
        ],
    }

    assert adf_to_text(document) == "Title. one two"
    assert adf_to_text(None) is None
    assert adf_to_text("already plain") == "already plain"


def test_text_to_adf_single_paragraph():
    assert text_to_adf("hello") == {
        "type": "doc",
        "version": 1,
        "content": [{"type": "paragraph", "content": [{"type": "text", "text": "hello"}]}],
    }
    assert text_to_adf("")["content"][0]["content"] == []
