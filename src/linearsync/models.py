from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class TrackedField(str, Enum):
    """Issue field carried from GitHub to Linear by a sync run."""

    ASSIGNEE = "assignee"
    PRIORITY = "priority"


@dataclass(frozen=True)
class SourceIssue:
    """Snapshot of an open GitHub issue taken at collection time.

    ``raw_value`` holds the tracked field as GitHub reports it: the assignee
    login, or the priority label / project field option name.
    """

    number: int
    title: str
    raw_value: str | None
    url: str


@dataclass(frozen=True)
class ActorIdentity:
    handle: str  # GitHub login
    display_name: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class DestinationActor:
    id: str
    display_name: str
    email: str | None = None


@dataclass(frozen=True)
class DestinationIssue:
    id: str
    title: str
    description: str
    identifier: str = ""  # human key, e.g. ENG-12
    assignee_id: str | None = None
    assignee_name: str | None = None
    priority: int = 0
    state_type: str | None = None


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    key: str


@dataclass(frozen=True)
class IssuePage:
    items: list[dict[str, object]]
    has_more: bool


@dataclass(frozen=True)
class IssueFilter:
    team_id: str
    title_equals: str | None = None
    description_contains: str | None = None
    include_completed: bool = False


@dataclass(frozen=True)
class MatchedPair:
    source: SourceIssue
    destination: DestinationIssue


@dataclass(frozen=True)
class UpdateIntent:
    destination_id: str
    field: TrackedField
    old_value: str | int | None
    new_value: str | int | None
    destination_identifier: str = ""
    source_number: int | None = None
    source_url: str = ""
    source_value: str | None = None
    context: dict[str, str | None] = field(default_factory=dict, compare=False)

    def describe(self) -> str:
        label = self.destination_identifier or self.destination_id
        old = self.context.get("old_display") or self.old_value
        new = self.context.get("new_display") or self.new_value
        return (
            f"{label} {self.field.value} {old if old is not None else 'unset'} -> {new}"
            f" (GitHub: {self.source_value}, #{self.source_number} {self.source_url})"
        )


__all__ = [
    "TrackedField",
    "SourceIssue",
    "ActorIdentity",
    "DestinationActor",
    "DestinationIssue",
    "Team",
    "IssuePage",
    "IssueFilter",
    "MatchedPair",
    "UpdateIntent",
]
