"""Interfaces the sync engine consumes.

``GitHubRestClient`` and ``LinearClient`` are the production implementations;
tests substitute in-memory fakes.
"""

from __future__ import annotations

from typing import Any, Protocol

from .models import (
    ActorIdentity,
    DestinationActor,
    DestinationIssue,
    IssueFilter,
    IssuePage,
    Team,
)


class SourceApi(Protocol):
    def list_open_issues(self, page: int, *, per_page: int = 100) -> IssuePage: ...

    def get_quota_remaining(self) -> int: ...

    def get_actor_details(self, handle: str) -> ActorIdentity | None: ...


class ProjectApi(Protocol):
    def get_project_items(
        self, *, number: int, owner_type: str = "organization"
    ) -> tuple[dict[str, Any], list[dict[str, Any]]]: ...


class DestinationApi(Protocol):
    def list_teams(self) -> list[Team]: ...

    def list_actors(self) -> list[DestinationActor]: ...

    def find_issues(self, issue_filter: IssueFilter) -> list[DestinationIssue]: ...

    def update_issue(
        self,
        issue_id: str,
        *,
        assignee_id: str | None = None,
        priority: int | None = None,
    ) -> Any: ...


__all__ = ["SourceApi", "ProjectApi", "DestinationApi"]
