"""Collect open GitHub issues carrying the tracked field.

Two collection strategies exist:

* ``RestIssueSource``: exhaustive page-by-page scan of open issues; the
  assignee comes from ``assignee.login``, the priority from the first label
  containing p1/p2/p3.
* ``ProjectFieldSource``: one Projects V2 query; the priority comes from a
  single-select project field.

``FallbackSource`` tries a primary strategy and switches to the secondary one
on ``TransportError``. ``SourceCollector`` never lets a transport failure
escape: a failed collection yields no issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from .errors import TransportError, redact
from .logging import StructuredLogger, get_logger
from .models import SourceIssue, TrackedField
from .protocols import ProjectApi, SourceApi
from .translate import has_priority_token


@dataclass
class CollectionResult:
    issues: list[SourceIssue] = field(default_factory=list)
    strategy: str = ""
    pages: int = 0
    partial: bool = False
    quota_remaining: int | None = None
    skipped: int = 0
    error: str | None = None


class IssueSource(Protocol):
    name: str

    def fetch(self) -> CollectionResult: ...


def _label_names(item: dict[str, Any]) -> list[str]:
    names: list[str] = []
    for entry in item.get("labels") or []:
        if isinstance(entry, dict) and isinstance(entry.get("name"), str):
            names.append(entry["name"])
        elif isinstance(entry, str):
            names.append(entry)
    return names


def extract_assignee(item: dict[str, Any]) -> str | None:
    assignee = item.get("assignee")
    if isinstance(assignee, dict):
        login = assignee.get("login")
        if isinstance(login, str) and login:
            return login
    return None


def extract_priority_label(item: dict[str, Any]) -> str | None:
    for name in _label_names(item):
        if has_priority_token(name):
            return name
    return None


class RestIssueSource:
    name = "rest"

    def __init__(
        self,
        api: SourceApi,
        tracked_field: TrackedField,
        repository: str,
        *,
        page_size: int = 100,
        quota_low_water: int = 10,
        quota_warning: int = 50,
        logger: StructuredLogger | None = None,
    ):
        self.api = api
        self.tracked_field = tracked_field
        self.repository = repository
        self.page_size = page_size
        self.quota_low_water = quota_low_water
        self.quota_warning = quota_warning
        self.logger = logger or get_logger()

    def _extract(self, item: dict[str, Any]) -> str | None:
        if self.tracked_field is TrackedField.ASSIGNEE:
            return extract_assignee(item)
        return extract_priority_label(item)

    def _to_issue(self, item: dict[str, Any]) -> SourceIssue | None:
        number = item.get("number")
        title = item.get("title")
        if not isinstance(number, int) or not isinstance(title, str):
            return None
        value = self._extract(item)
        if value is None:
            self.logger.debug(
                f"skip #{number}: no {self.tracked_field.value}",
                operation="collect",
                issue_number=number,
            )
            return None
        url = item.get("html_url")
        return SourceIssue(
            number=number,
            title=title,
            raw_value=value,
            url=url if isinstance(url, str) and url else f"https://github.com/{self.repository}/issues/{number}",
        )

    def fetch(self) -> CollectionResult:
        result = CollectionResult(strategy=self.name)
        remaining = self.api.get_quota_remaining()
        result.quota_remaining = remaining
        if remaining < self.quota_warning:
            self.logger.warning(
                f"GitHub API quota is low ({remaining} requests remaining)",
                operation="collect",
                quota_remaining=remaining,
            )
        page = 1
        while True:
            batch = self.api.list_open_issues(page, per_page=self.page_size)
            result.pages = page
            if not batch.items:
                break
            for item in batch.items:
                if item.get("pull_request"):
                    continue
                issue = self._to_issue(item)
                if issue is None:
                    result.skipped += 1
                    continue
                result.issues.append(issue)
            if not batch.has_more:
                break
            remaining = self.api.get_quota_remaining()
            result.quota_remaining = remaining
            if remaining < self.quota_low_water:
                self.logger.warning(
                    f"stopping after page {page}: GitHub API quota nearly exhausted "
                    f"({remaining} remaining)",
                    operation="collect",
                    quota_remaining=remaining,
                )
                result.partial = True
                break
            page += 1
        return result


class ProjectFieldSource:
    name = "project_v2"

    def __init__(
        self,
        api: ProjectApi,
        *,
        owner: str,
        repo: str,
        project_number: int,
        field_name: str = "Priority",
        owner_type: str = "organization",
        logger: StructuredLogger | None = None,
    ):
        self.api = api
        self.owner = owner
        self.repo = repo
        self.project_number = project_number
        self.field_name = field_name
        self.owner_type = owner_type
        self.logger = logger or get_logger()

    def _field_names(self, project: dict[str, Any]) -> list[str]:
        nodes = (project.get("fields") or {}).get("nodes") or []
        return [n["name"] for n in nodes if isinstance(n, dict) and isinstance(n.get("name"), str)]

    def _field_value(self, item: dict[str, Any]) -> str | None:
        for value in (item.get("fieldValues") or {}).get("nodes") or []:
            if not isinstance(value, dict):
                continue
            value_field = value.get("field") or {}
            if value_field.get("name") == self.field_name and isinstance(value.get("name"), str):
                return value["name"]
        return None

    def _belongs_to_repo(self, content: dict[str, Any]) -> bool:
        repository = content.get("repository") or {}
        if str(repository.get("name") or "").lower() != self.repo.lower():
            return False
        owner_login = (repository.get("owner") or {}).get("login")
        return owner_login is None or owner_login.lower() == self.owner.lower()

    def fetch(self) -> CollectionResult:
        result = CollectionResult(strategy=self.name, pages=1)
        project, items = self.api.get_project_items(
            number=self.project_number, owner_type=self.owner_type
        )
        available = self._field_names(project)
        if self.field_name not in available:
            result.error = (
                f"project field '{self.field_name}' not found; available fields: "
                + ", ".join(available)
            )
            self.logger.error(result.error, operation="collect")
            return result
        self.logger.info(
            f"reading '{self.field_name}' from project '{project.get('title')}'",
            operation="collect",
        )
        for item in items:
            content = item.get("content")
            if not isinstance(content, dict) or not self._belongs_to_repo(content):
                continue
            number = content.get("number")
            title = content.get("title")
            if not isinstance(number, int) or not isinstance(title, str):
                continue
            if content.get("state") not in (None, "OPEN"):
                continue
            value = self._field_value(item)
            if not has_priority_token(value):
                result.skipped += 1
                self.logger.debug(
                    f"skip #{number}: no usable {self.field_name} value",
                    operation="collect",
                    issue_number=number,
                )
                continue
            url = content.get("url")
            result.issues.append(
                SourceIssue(
                    number=number,
                    title=title,
                    raw_value=value,
                    url=url if isinstance(url, str) and url else f"https://github.com/{self.owner}/{self.repo}/issues/{number}",
                )
            )
        return result


class FallbackSource:
    """Try ``primary``; on ``TransportError`` collect with ``secondary`` instead."""

    def __init__(
        self,
        primary: IssueSource,
        secondary: IssueSource,
        logger: StructuredLogger | None = None,
    ):
        self.primary = primary
        self.secondary = secondary
        self.logger = logger or get_logger()
        self.name = f"{primary.name}->{secondary.name}"

    def fetch(self) -> CollectionResult:
        try:
            return self.primary.fetch()
        except TransportError as exc:
            self.logger.warning(
                f"{self.primary.name} collection failed; falling back to {self.secondary.name}",
                operation="collect",
                error=redact(str(exc)),
            )
        return self.secondary.fetch()


class SourceCollector:
    def __init__(self, source: IssueSource, logger: StructuredLogger | None = None):
        self.source = source
        self.logger = logger or get_logger()
        self.last_result = CollectionResult(strategy=source.name)

    def collect_result(self) -> CollectionResult:
        try:
            result = self.source.fetch()
        except TransportError as exc:
            message = redact(str(exc))
            self.logger.log_error("issue collection failed", error=message, operation="collect")
            result = CollectionResult(strategy=self.source.name, error=message)
        self.last_result = result
        self.logger.log_operation(
            "collect_complete",
            strategy=result.strategy,
            collected=len(result.issues),
            partial=result.partial,
        )
        return result

    def collect(self) -> list[SourceIssue]:
        return list(self.collect_result().issues)


__all__ = [
    "CollectionResult",
    "FallbackSource",
    "IssueSource",
    "ProjectFieldSource",
    "RestIssueSource",
    "SourceCollector",
    "extract_assignee",
    "extract_priority_label",
]
