"""Jira Cloud REST client (API v3 and Agile 1.0).

The client keeps no state between calls: every request opens its own
``httpx.AsyncClient`` and carries Basic credentials built from the account
e-mail and API token. Non-2xx responses raise :class:`JiraIntegrationError`;
nothing is retried here.
"""
from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from dateutil import parser as date_parser

from app.config import settings
from app.integrations.adf import adf_to_text, text_to_adf

logger = logging.getLogger(__name__)

ISSUE_FIELDS = "summary,description,status,issuetype,priority,assignee,created,updated"
SEARCH_PAGE_SIZE = 100
UNSET: Any = object()


class JiraIntegrationError(RuntimeError):
    """Raised when a Jira API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass
class JiraProject:
    """Project metadata returned by Jira."""

    id: str
    key: str
    name: str
    description: Optional[str] = None
    project_type_key: str = ""


@dataclass
class JiraIssueData:
    """Issue payload returned by Jira, with the description flattened to text."""

    jira_id: str
    issue_key: str
    summary: str
    issue_type: str
    status: str
    description: Optional[str] = None
    priority: Optional[str] = None
    assignee_account_id: Optional[str] = None
    assignee_name: Optional[str] = None
    created: Optional[datetime] = None
    updated: Optional[datetime] = None


@dataclass
class JiraStatusRef:
    id: str
    name: str


@dataclass
class JiraTransition:
    """Workflow transition available on an issue."""

    id: str
    name: str
    to: JiraStatusRef


@dataclass
class JiraIssueCreate:
    """Fields for creating an issue."""

    project_key: str
    summary: str
    description: Optional[str] = None
    issue_type: str = "Task"
    priority: Optional[str] = None
    assignee_account_id: Optional[str] = None


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a Jira timestamp into a naive UTC datetime."""
    if not value:
        return None
    parsed = date_parser.isoparse(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _name_of(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("name")
    return None


def parse_issue(raw: Dict[str, Any]) -> JiraIssueData:
    """Convert a Jira issue JSON object into :class:`JiraIssueData`."""
    fields = raw.get("fields") or {}
    assignee = fields.get("assignee") or {}
    return JiraIssueData(
        jira_id=str(raw.get("id", "")),
        issue_key=raw.get("key", ""),
        summary=fields.get("summary") or "",
        issue_type=_name_of(fields.get("issuetype")) or "",
        status=_name_of(fields.get("status")) or "",
        description=adf_to_text(fields.get("description")),
        priority=_name_of(fields.get("priority")),
        assignee_account_id=assignee.get("accountId"),
        assignee_name=assignee.get("displayName"),
        created=_parse_datetime(fields.get("created")),
        updated=_parse_datetime(fields.get("updated")),
    )


class JiraClient:
    """Async client for one Jira site and one set of credentials."""

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.email = email
        self._api_token = api_token
        self.timeout = timeout if timeout is not None else settings.JIRA_REQUEST_TIMEOUT
        self._transport = transport

    def __repr__(self) -> str:
        return f"<JiraClient {self.base_url} as {self.email}>"

    def _build_headers(self) -> Dict[str, str]:
        credentials = f"{self.email}:{self._api_token}".encode("utf-8")
        return {
            "Authorization": f"Basic {base64.b64encode(credentials).decode('ascii')}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                return await client.request(
                    method,
                    url,
                    params=params,
                    json=payload,
                    headers=self._build_headers(),
                )
        except httpx.HTTPError as exc:
            raise JiraIntegrationError(f"Unable to reach Jira at {self.base_url}: {exc}") from exc

    async def _request(
        self,
        method: str,
        path: str,
        *,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        response = await self._send(method, path, params=params, payload=payload)
        if response.is_success:
            return response

        body = response.text
        logger.warning(
            "Jira API call failed",
            extra={"method": method, "url": str(response.request.url), "status": response.status_code, "body": body[:500]},
        )
        raise JiraIntegrationError(
            f"Failed to {action}: {response.status_code} - {body}",
            status_code=response.status_code,
            body=body,
        )

    async def test_connection(self) -> bool:
        """Return True when the credentials authenticate against ``/myself``."""
        try:
            response = await self._send("GET", "/rest/api/3/myself")
        except Exception:  # any failure means "not connected"
            logger.info("Jira connection test failed for %s", self.base_url, exc_info=True)
            return False
        return response.is_success

    async def get_project(self, project_key: str) -> JiraProject:
        response = await self._request("GET", f"/rest/api/3/project/{project_key}", action="get Jira project")
        data = response.json()
        return JiraProject(
            id=str(data.get("id", "")),
            key=data.get("key", ""),
            name=data.get("name", ""),
            description=data.get("description"),
            project_type_key=data.get("projectTypeKey", ""),
        )

    async def list_project_issues(self, project_key: str) -> List[JiraIssueData]:
        """Fetch issues of a project, most recently updated first.

        Pages through the enhanced JQL search until Jira reports the last page
        or ``settings.JIRA_MAX_RESULTS`` issues have been read.
        """
        limit = settings.JIRA_MAX_RESULTS
        params: Dict[str, Any] = {
            "jql": f"project={project_key} ORDER BY updated DESC",
            "fields": ISSUE_FIELDS,
        }
        issues: List[JiraIssueData] = []
        while len(issues) < limit:
            params["maxResults"] = min(SEARCH_PAGE_SIZE, limit - len(issues))
            response = await self._request("GET", "/rest/api/3/search/jql", action="get Jira issues", params=params)
            data = response.json()
            issues.extend(parse_issue(raw) for raw in data.get("issues", []))
            token = data.get("nextPageToken")
            if not token or data.get("isLast"):
                break
            params["nextPageToken"] = token
        return issues[:limit]

    async def get_issue(self, issue_key: str) -> JiraIssueData:
        response = await self._request("GET", f"/rest/api/3/issue/{issue_key}", action="get Jira issue")
        return parse_issue(response.json())

    async def create_issue(self, fields: JiraIssueCreate) -> JiraIssueData:
        """Create an issue and return it as stored by Jira."""
        payload_fields: Dict[str, Any] = {
            "project": {"key": fields.project_key},
            "summary": fields.summary,
            "description": text_to_adf(fields.description),
            "issuetype": {"name": fields.issue_type},
        }
        if fields.priority:
            payload_fields["priority"] = {"name": fields.priority}
        if fields.assignee_account_id:
            payload_fields["assignee"] = {"accountId": fields.assignee_account_id}

        response = await self._request(
            "POST",
            "/rest/api/3/issue",
            action="create Jira issue",
            payload={"fields": payload_fields},
        )
        return await self.get_issue(response.json()["key"])

    async def update_issue(
        self,
        issue_key: str,
        *,
        summary: Any = UNSET,
        description: Any = UNSET,
        priority: Any = UNSET,
        assignee_account_id: Any = UNSET,
    ) -> JiraIssueData:
        """Update only the fields that were passed explicitly.

        ``None`` is a real value (e.g. unassign), distinct from leaving a field
        out.
        """
        fields: Dict[str, Any] = {}
        if summary is not UNSET:
            fields["summary"] = summary
        if description is not UNSET:
            fields["description"] = None if description is None else text_to_adf(description)
        if priority is not UNSET:
            fields["priority"] = None if priority is None else {"name": priority}
        if assignee_account_id is not UNSET:
            fields["assignee"] = None if assignee_account_id is None else {"accountId": assignee_account_id}

        if fields:
            await self._request(
                "PUT",
                f"/rest/api/3/issue/{issue_key}",
                action="update Jira issue",
                payload={"fields": fields},
            )
        return await self.get_issue(issue_key)

    async def list_transitions(self, issue_key: str) -> List[JiraTransition]:
        response = await self._request(
            "GET",
            f"/rest/api/3/issue/{issue_key}/transitions",
            action="get transitions",
        )
        transitions = []
        for item in response.json().get("transitions", []):
            target = item.get("to") or {}
            transitions.append(
                JiraTransition(
                    id=str(item.get("id", "")),
                    name=item.get("name", ""),
                    to=JiraStatusRef(id=str(target.get("id", "")), name=target.get("name", "")),
                )
            )
        return transitions

    async def apply_transition(self, issue_key: str, transition_id: str) -> None:
        await self._request(
            "POST",
            f"/rest/api/3/issue/{issue_key}/transitions",
            action="transition issue",
            payload={"transition": {"id": transition_id}},
        )

    async def search_account(self, term: str) -> Optional[str]:
        """Return the account id of the first user matching ``term``, if any."""
        response = await self._send("GET", "/rest/api/3/user/search", params={"query": term})
        if not response.is_success:
            return None
        users = response.json()
        if not users:
            return None
        return users[0].get("accountId")

    async def move_to_sprint(self, issue_key: str, sprint_id: int) -> None:
        await self._request(
            "POST",
            f"/rest/agile/1.0/sprint/{sprint_id}/issue",
            action="move issue to sprint",
            payload={"issues": [issue_key]},
        )

    async def move_to_backlog(self, issue_key: str) -> None:
        await self._request(
            "POST",
            "/rest/agile/1.0/backlog/issue",
            action="move issue to backlog",
            payload={"issues": [issue_key]},
        )

    async def link_issues(self, from_key: str, to_key: str, link_type: str = "Relates") -> None:
        await self._request(
            "POST",
            "/rest/api/3/issueLink",
            action="link issues",
            payload={
                "type": {"name": link_type},
                "inwardIssue": {"key": from_key},
                "outwardIssue": {"key": to_key},
            },
        )

    async def delete_issue(self, issue_key: str) -> None:
        await self._request("DELETE", f"/rest/api/3/issue/{issue_key}", action="delete Jira issue")
