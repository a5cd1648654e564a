"""Cross-reference GitHub issues with the Linear issues that mirror them.

A Linear issue mirrors GitHub issue ``owner/repo#N`` when both hold:

* its description contains the back-reference token ``owner/repo/issues/N``
  (not followed by another digit, so ``issues/4`` never claims ``issues/42``;
  this deliberately tightens plain substring containment, which would accept
  both)
* its title equals the GitHub title once both are stripped of surrounding
  whitespace; comparison is otherwise exact, case included

One GitHub issue may be mirrored by several Linear issues; each pair is
reconciled on its own. Destination indexes may pre-filter however they like,
but every candidate is re-checked here before it is accepted.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from .errors import TransportError, redact
from .logging import StructuredLogger, get_logger
from .models import DestinationIssue, IssueFilter, MatchedPair, SourceIssue
from .protocols import DestinationApi


def back_reference_token(repository: str, number: int) -> str:
    return f"{repository}/issues/{number}"


def references(description: str | None, token: str) -> bool:
    if not description:
        return False
    return re.search(re.escape(token) + r"(?!\d)", description) is not None


def titles_match(source_title: str, destination_title: str) -> bool:
    return source_title.strip() == destination_title.strip()


class DestinationIndex(Protocol):
    def find(self, token: str, title: str) -> list[DestinationIssue]: ...


class RemoteIssueIndex:
    """Queries Linear once per GitHub issue using title + description filters."""

    def __init__(self, api: DestinationApi, team_id: str, *, include_completed: bool = False):
        self.api = api
        self.team_id = team_id
        self.include_completed = include_completed

    def find(self, token: str, title: str) -> list[DestinationIssue]:
        return self.api.find_issues(
            IssueFilter(
                team_id=self.team_id,
                title_equals=title.strip(),
                description_contains=token,
                include_completed=self.include_completed,
            )
        )


class PrefetchedIssueIndex:
    """In-memory index over a team's issues loaded up front."""

    def __init__(self, issues: Iterable[DestinationIssue]):
        self.issues = list(issues)

    @classmethod
    def load(
        cls, api: DestinationApi, team_id: str, *, include_completed: bool = False
    ) -> PrefetchedIssueIndex:
        return cls(api.find_issues(IssueFilter(team_id=team_id, include_completed=include_completed)))

    def find(self, token: str, title: str) -> list[DestinationIssue]:
        return [i for i in self.issues if references(i.description, token)]


@dataclass
class MatchStats:
    sources: int = 0
    matched_sources: int = 0
    unmatched: int = 0
    lookup_failures: int = 0
    pairs: int = 0


class CrossReferenceMatcher:
    def __init__(
        self,
        repository: str,
        logger: StructuredLogger | None = None,
        cache: dict[int, list[DestinationIssue]] | None = None,
    ):
        self.repository = repository
        self.logger = logger or get_logger()
        # matched pairs for this run, keyed by GitHub issue number
        self.cache: dict[int, list[DestinationIssue]] = cache if cache is not None else {}
        self.stats = MatchStats()

    def _candidates(self, issue: SourceIssue, index: DestinationIndex) -> list[DestinationIssue] | None:
        token = back_reference_token(self.repository, issue.number)
        try:
            found = index.find(token, issue.title)
        except TransportError as exc:
            self.logger.log_error(
                f"Linear lookup failed for #{issue.number}",
                error=redact(str(exc)),
                operation="match",
                issue_number=issue.number,
            )
            return None
        accepted: list[DestinationIssue] = []
        seen: set[str] = set()
        for candidate in found:
            if candidate.id in seen:
                continue
            if not references(candidate.description, token):
                continue
            if not titles_match(issue.title, candidate.title):
                continue
            seen.add(candidate.id)
            accepted.append(candidate)
        return accepted

    def match(
        self, source_issues: Iterable[SourceIssue], index: DestinationIndex
    ) -> dict[int, list[DestinationIssue]]:
        """Return GitHub issue number -> Linear issues, in collection order.

        GitHub issues without a mirror are logged and left out of the result.
        """
        result: dict[int, list[DestinationIssue]] = {}
        stats = MatchStats()
        for issue in source_issues:
            stats.sources += 1
            if issue.number in self.cache:
                matches: list[DestinationIssue] | None = self.cache[issue.number]
            else:
                matches = self._candidates(issue, index)
                if matches is None:
                    stats.lookup_failures += 1
                    continue
                self.cache[issue.number] = matches
            if not matches:
                stats.unmatched += 1
                self.logger.info(
                    f"no Linear issue found for #{issue.number} ({issue.title})",
                    operation="match",
                    issue_number=issue.number,
                )
                continue
            stats.matched_sources += 1
            stats.pairs += len(matches)
            result[issue.number] = list(matches)
            self.logger.debug(
                f"#{issue.number} -> {', '.join(m.identifier or m.id for m in matches)}",
                operation="match",
                issue_number=issue.number,
            )
        self.stats = stats
        return result

    @staticmethod
    def pairs(
        source_issues: Iterable[SourceIssue], matches: dict[int, list[DestinationIssue]]
    ) -> list[MatchedPair]:
        out: list[MatchedPair] = []
        for issue in source_issues:
            for destination in matches.get(issue.number, []):
                out.append(MatchedPair(source=issue, destination=destination))
        return out


__all__ = [
    "CrossReferenceMatcher",
    "DestinationIndex",
    "MatchStats",
    "PrefetchedIssueIndex",
    "RemoteIssueIndex",
    "back_reference_token",
    "references",
    "titles_match",
]
