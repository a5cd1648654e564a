"""Linear GraphQL client implementing the destination side of a sync."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import requests

from .errors import TransportError
from .models import DestinationActor, DestinationIssue, IssueFilter, Team

DEFAULT_LINEAR_URL = "https://api.linear.app/graphql"
USER_AGENT = "linearsync/0.1.0"
HTTP_ERROR_STATUS = 400
REQUEST_TIMEOUT = 30
PAGE_SIZE = 100

_TEAMS_QUERY = """
query Teams($after: String) {
  teams(first: 100, after: $after) {
    pageInfo { hasNextPage endCursor }
    nodes { id name key }
  }
}
"""

_USERS_QUERY = """
query Users($after: String) {
  users(first: 100, after: $after) {
    pageInfo { hasNextPage endCursor }
    nodes { id name displayName email active }
  }
}
"""

_ISSUES_QUERY = """
query Issues($filter: IssueFilter, $after: String) {
  issues(filter: $filter, first: 100, after: $after) {
    pageInfo { hasNextPage endCursor }
    nodes {
      id
      identifier
      title
      description
      priority
      assignee { id name }
      state { type }
    }
  }
}
"""

_ISSUE_UPDATE_MUTATION = """
mutation IssueUpdate($id: String!, $input: IssueUpdateInput!) {
  issueUpdate(id: $id, input: $input) {
    success
    issue { id identifier priority assignee { id } }
  }
}
"""


class LinearAPIError(TransportError):
    """Raised when the Linear API rejects a request or cannot be reached."""


@dataclass
class LinearClient:
    """Thin GraphQL client for the handful of Linear operations a sync needs."""

    api_key: str
    api_url: str = DEFAULT_LINEAR_URL
    session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:  # pragma: no cover - simple wiring
        self._session = self.session or requests.Session()
        # Personal API keys are sent verbatim; OAuth tokens carry their own prefix
        self._session.headers.setdefault("Authorization", self.api_key)
        self._session.headers.setdefault("Content-Type", "application/json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    def _request(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables
        try:
            response = self._session.request(
                "POST",
                self.api_url,
                json=payload,
                headers=self._session.headers,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise LinearAPIError(f"Linear API request failed: {exc}") from exc
        try:
            result = response.json() if response.text else {}
        except ValueError:
            result = {}
        errors = result.get("errors") if isinstance(result, dict) else None
        if response.status_code >= HTTP_ERROR_STATUS or errors:
            message = "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e)
                for e in (errors or [])
            ) or f"HTTP {response.status_code}"
            raise LinearAPIError(
                f"Linear GraphQL error: {message}",
                status=response.status_code,
                response_text=response.text,
            )
        data = result.get("data") if isinstance(result, dict) else None
        return data if isinstance(data, dict) else {}

    def _paginate(
        self, query: str, root: str, variables: dict[str, Any] | None = None
    ) -> Iterator[dict[str, Any]]:
        after: str | None = None
        while True:
            data = self._request(query, {**(variables or {}), "after": after})
            connection = data.get(root) or {}
            for node in connection.get("nodes") or []:
                if isinstance(node, dict):
                    yield node
            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                return
            after = page_info.get("endCursor")

    # ---- Destination API ----------------------------------------------
    def list_teams(self) -> list[Team]:
        return [
            Team(id=str(n.get("id")), name=str(n.get("name") or ""), key=str(n.get("key") or ""))
            for n in self._paginate(_TEAMS_QUERY, "teams")
        ]

    def list_actors(self) -> list[DestinationActor]:
        actors: list[DestinationActor] = []
        for node in self._paginate(_USERS_QUERY, "users"):
            name = node.get("name") or node.get("displayName")
            if not isinstance(name, str) or not name:
                continue
            email = node.get("email")
            actors.append(
                DestinationActor(
                    id=str(node.get("id")),
                    display_name=name,
                    email=email if isinstance(email, str) and email else None,
                )
            )
        return actors

    def find_issues(self, issue_filter: IssueFilter) -> list[DestinationIssue]:
        gql_filter: dict[str, Any] = {"team": {"id": {"eq": issue_filter.team_id}}}
        if issue_filter.title_equals is not None:
            gql_filter["title"] = {"eq": issue_filter.title_equals}
        if issue_filter.description_contains is not None:
            gql_filter["description"] = {"contains": issue_filter.description_contains}
        if not issue_filter.include_completed:
            gql_filter["state"] = {"type": {"neq": "completed"}}
        return [
            _issue_from_node(node)
            for node in self._paginate(_ISSUES_QUERY, "issues", {"filter": gql_filter})
        ]

    def update_issue(
        self,
        issue_id: str,
        *,
        assignee_id: str | None = None,
        priority: int | None = None,
    ) -> dict[str, Any]:
        update: dict[str, Any] = {}
        if assignee_id is not None:
            update["assigneeId"] = assignee_id
        if priority is not None:
            update["priority"] = priority
        if not update:
            raise ValueError("update_issue requires assignee_id or priority")
        data = self._request(_ISSUE_UPDATE_MUTATION, {"id": issue_id, "input": update})
        result = data.get("issueUpdate") or {}
        if not result.get("success"):
            raise LinearAPIError(f"Linear rejected update of issue {issue_id}")
        issue = result.get("issue")
        return issue if isinstance(issue, dict) else {}


def _issue_from_node(node: dict[str, Any]) -> DestinationIssue:
    assignee = node.get("assignee") if isinstance(node.get("assignee"), dict) else {}
    state = node.get("state") if isinstance(node.get("state"), dict) else {}
    priority = node.get("priority")
    return DestinationIssue(
        id=str(node.get("id")),
        identifier=str(node.get("identifier") or ""),
        title=str(node.get("title") or ""),
        description=str(node.get("description") or ""),
        assignee_id=assignee.get("id") if assignee else None,
        assignee_name=assignee.get("name") if assignee else None,
        priority=int(priority) if isinstance(priority, (int, float)) else 0,
        state_type=state.get("type") if state else None,
    )


__all__ = ["DEFAULT_LINEAR_URL", "LinearAPIError", "LinearClient"]
