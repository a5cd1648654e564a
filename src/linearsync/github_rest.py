from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import requests

from .errors import TransportError
from .models import ActorIdentity, IssuePage

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
USER_AGENT = "linearsync/0.1.0"
HTTP_ERROR_STATUS = 400
HTTP_NOT_FOUND = 404
REQUEST_TIMEOUT = 30

_PROJECT_ITEMS_QUERY = """
query($owner: String!, $number: Int!, $after: String) {
  %(owner_type)s(login: $owner) {
    projectV2(number: $number) {
      id
      title
      fields(first: 50) {
        nodes {
          ... on ProjectV2SingleSelectField { id name options { id name } }
        }
      }
      items(first: 100, after: $after) {
        pageInfo { hasNextPage endCursor }
        nodes {
          id
          content {
            ... on Issue {
              number
              title
              url
              state
              repository { name owner { login } }
            }
          }
          fieldValues(first: 20) {
            nodes {
              ... on ProjectV2ItemFieldSingleSelectValue {
                name
                field { ... on ProjectV2SingleSelectField { name } }
              }
            }
          }
        }
      }
    }
  }
}
"""


class GitHubAPIError(TransportError):
    """Raised when the GitHub REST/GraphQL API returns an error."""


@dataclass
class RateLimit:
    remaining: int
    limit: int
    reset_at: datetime | None


@dataclass
class GitHubRestClient:
    """Lightweight REST/GraphQL client exposing the read side of a repository.

    The remaining-request quota is taken from the ``X-RateLimit-Remaining``
    header of the latest response so consulting it after a page costs no
    extra request.
    """

    token: str
    owner: str
    repo: str
    base_url: str = DEFAULT_API_URL
    graphql_url: str = DEFAULT_GRAPHQL_URL
    session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)
    _last_remaining: int | None = field(init=False, default=None, repr=False)

    def __post_init__(self) -> None:  # pragma: no cover - simple wiring
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    # ---- REST helpers -------------------------------------------------
    def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> requests.Response:
        url = (
            path
            if path.startswith("http")
            else f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        )
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._session.headers,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise GitHubAPIError(f"GitHub API {method} {url} failed: {exc}") from exc
        self._record_quota(response)
        if response.status_code >= HTTP_ERROR_STATUS:
            raise GitHubAPIError(
                f"GitHub API {method} {url} failed with {response.status_code}",
                status=response.status_code,
                response_text=response.text,
            )
        return response

    @staticmethod
    def _decode(response: requests.Response, label: str) -> Any:
        if not response.text:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise GitHubAPIError(
                f"GitHub API {label} returned invalid JSON",
                status=response.status_code,
                response_text=response.text,
            ) from exc

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self._send(method, path, **kwargs)
        return self._decode(response, f"{method} {path}")

    def _record_quota(self, response: requests.Response) -> None:
        raw = response.headers.get("X-RateLimit-Remaining") if response.headers else None
        if raw is None:
            return
        try:
            self._last_remaining = int(raw)
        except ValueError:
            return

    # ---- Source API ---------------------------------------------------
    def list_open_issues(self, page: int, *, per_page: int = 100) -> IssuePage:
        """Fetch one page of open issues (pull requests included, as GitHub returns them)."""
        params = {"state": "open", "per_page": per_page, "page": page}
        path = f"/repos/{self.repository}/issues"
        response = self._send("GET", path, params=params)
        data = self._decode(response, f"GET {path}") or []
        if not isinstance(data, list):
            raise GitHubAPIError(
                f"Unexpected issue listing payload for {self.repository}",
                status=response.status_code,
            )
        items = [entry for entry in data if isinstance(entry, dict)]
        link = response.headers.get("Link", "") if response.headers else ""
        has_more = 'rel="next"' in link if link else len(data) >= per_page
        return IssuePage(items=items, has_more=has_more)

    def get_rate_limit(self) -> RateLimit:
        data = self._request("GET", "/rate_limit")
        core: dict[str, Any] = {}
        if isinstance(data, dict):
            resources = data.get("resources")
            if isinstance(resources, dict) and isinstance(resources.get("core"), dict):
                core = resources["core"]
            elif isinstance(data.get("rate"), dict):
                core = data["rate"]
        remaining = int(core.get("remaining", 0))
        reset_raw = core.get("reset")
        reset_at = (
            datetime.fromtimestamp(int(reset_raw), tz=timezone.utc)
            if isinstance(reset_raw, (int, float))
            else None
        )
        self._last_remaining = remaining
        return RateLimit(remaining=remaining, limit=int(core.get("limit", 0)), reset_at=reset_at)

    def get_quota_remaining(self) -> int:
        if self._last_remaining is not None:
            return self._last_remaining
        return self.get_rate_limit().remaining

    def get_actor_details(self, handle: str) -> ActorIdentity | None:
        try:
            data = self._request("GET", f"/users/{handle}")
        except GitHubAPIError as exc:
            if exc.status == HTTP_NOT_FOUND:
                return None
            raise
        if not isinstance(data, dict):
            return None
        login = data.get("login")
        name = data.get("name")
        email = data.get("email")
        return ActorIdentity(
            handle=login if isinstance(login, str) and login else handle,
            display_name=name if isinstance(name, str) and name else None,
            email=email if isinstance(email, str) and email else None,
        )

    # ---- GraphQL ------------------------------------------------------
    def graphql(self, query: str, variables: dict[str, Any] | None = None) -> Any:
        payload = {"query": query, "variables": variables or {}}
        data = self._request("POST", self.graphql_url, json_body=payload)
        if isinstance(data, dict) and data.get("errors"):
            raise GitHubAPIError(f"GraphQL query failed: {data['errors']}")
        if isinstance(data, dict):
            return data.get("data")
        return data

    def get_project_items(
        self, *, number: int, owner_type: str = "organization"
    ) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        """Return the Projects V2 metadata and every item node, following cursors."""
        if owner_type not in {"organization", "user"}:
            raise ValueError("owner_type must be either 'organization' or 'user'")
        query = _PROJECT_ITEMS_QUERY % {"owner_type": owner_type}
        project: dict[str, Any] = {}
        items: list[dict[str, Any]] = []
        after: str | None = None
        while True:
            data = self.graphql(query, {"owner": self.owner, "number": number, "after": after})
            owner_node = data.get(owner_type) if isinstance(data, dict) else None
            node = owner_node.get("projectV2") if isinstance(owner_node, dict) else None
            if not isinstance(node, dict):
                raise GitHubAPIError(
                    f"Project #{number} not found for {owner_type} {self.owner}"
                )
            project = node
            connection = node.get("items") or {}
            items.extend(n for n in connection.get("nodes") or [] if isinstance(n, dict))
            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            after = page_info.get("endCursor")
        return project, items


__all__ = [
    "GitHubAPIError",
    "GitHubRestClient",
    "RateLimit",
]
