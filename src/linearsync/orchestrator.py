"""End-to-end sync run: collect -> match -> plan -> execute.

Each stage finishes before the next one starts and returns its own report
object; ``SyncReport`` bundles them. The only fatal condition once the
configuration is valid is an unusable Linear team; everything else degrades
to skipped or failed items.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .collector import (
    CollectionResult,
    FallbackSource,
    IssueSource,
    ProjectFieldSource,
    RestIssueSource,
    SourceCollector,
)
from .config import SyncConfig
from .errors import TeamNotFoundError, TransportError, redact
from .executor import ExecutionReport, UpdateExecutor
from .identity import ActorIndex, IdentityResolver, ResolutionCache
from .logging import StructuredLogger, get_logger
from .matcher import (
    CrossReferenceMatcher,
    DestinationIndex,
    MatchStats,
    PrefetchedIssueIndex,
    RemoteIssueIndex,
)
from .models import Team, TrackedField, UpdateIntent
from .planner import PlanStats, UpdatePlanner
from .protocols import DestinationApi, ProjectApi, SourceApi
from .translate import AssigneeTranslator


@dataclass
class SyncReport:
    field: TrackedField
    repository: str
    team: Team | None = None
    dry_run: bool = False
    collection: CollectionResult = field(default_factory=CollectionResult)
    matching: MatchStats = field(default_factory=MatchStats)
    planning: PlanStats = field(default_factory=PlanStats)
    intents: list[UpdateIntent] = field(default_factory=list)
    execution: ExecutionReport = field(default_factory=ExecutionReport)
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def totals(self) -> dict[str, int]:
        skipped = self.matching.unmatched + self.matching.lookup_failures + self.planning.unresolved
        return {
            "collected": len(self.collection.issues),
            "matched": self.matching.pairs,
            "unmatched": self.matching.unmatched,
            "unchanged": self.planning.unchanged,
            "planned": len(self.intents),
            "updated": self.execution.applied,
            "skipped": skipped,
            "failed": self.execution.failed,
        }

    @property
    def ok(self) -> bool:
        return self.execution.failed == 0 and self.collection.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "field": self.field.value,
            "repository": self.repository,
            "team": {"id": self.team.id, "key": self.team.key, "name": self.team.name}
            if self.team
            else None,
            "dry_run": self.dry_run,
            "collection": {
                "strategy": self.collection.strategy,
                "pages": self.collection.pages,
                "partial": self.collection.partial,
                "quota_remaining": self.collection.quota_remaining,
                "error": self.collection.error,
            },
            "totals": self.totals,
            "updates": [o.to_dict() for o in self.execution.outcomes],
        }


def resolve_team(api: DestinationApi, team: str, logger: StructuredLogger | None = None) -> Team:
    """Find the Linear team whose name or key equals ``team``."""
    log = logger or get_logger()
    teams = api.list_teams()
    for candidate in teams:
        if team in (candidate.name, candidate.key):
            log.info(
                f"using Linear team {candidate.name} ({candidate.key})",
                operation="resolve_team",
                team_id=candidate.id,
            )
            return candidate
    raise TeamNotFoundError(team, [f"{t.name} ({t.key})" for t in teams])


def build_issue_source(
    config: SyncConfig,
    tracked_field: TrackedField,
    github: SourceApi,
    logger: StructuredLogger | None = None,
) -> IssueSource:
    """Choose the collection strategy for a run.

    Priority is read from the Projects V2 field when a project is configured,
    falling back to issue labels if the project query fails. Assignees and
    label priorities come from the REST scan.
    """
    rest = RestIssueSource(
        github,
        tracked_field,
        config.repository,
        page_size=config.page_size,
        quota_low_water=config.quota_low_water,
        quota_warning=config.quota_warning,
        logger=logger,
    )
    if tracked_field is TrackedField.PRIORITY and config.project_number is not None:
        project_api: ProjectApi = github  # type: ignore[assignment]
        project = ProjectFieldSource(
            project_api,
            owner=str(config.owner),
            repo=str(config.repo),
            project_number=config.project_number,
            field_name=config.priority_field,
            owner_type=config.project_owner_type,
            logger=logger,
        )
        return FallbackSource(project, rest, logger=logger)
    return rest


def _load_actors(api: DestinationApi, logger: StructuredLogger) -> ActorIndex:
    try:
        actors = api.list_actors()
    except TransportError as exc:
        logger.log_error("failed to load Linear users", error=redact(str(exc)), operation="actors")
        return ActorIndex([])
    logger.info(f"loaded {len(actors)} Linear users", operation="actors")
    return ActorIndex(actors)


def run_sync(
    config: SyncConfig,
    tracked_field: TrackedField,
    *,
    github: SourceApi,
    linear: DestinationApi,
    dry_run: bool = False,
    prefetch: bool = False,
    cache: ResolutionCache | None = None,
    logger: StructuredLogger | None = None,
) -> SyncReport:
    """Run one sync of ``tracked_field`` from GitHub to Linear.

    Raises ``TeamNotFoundError`` (or ``TransportError`` from the team
    listing) when the configured team cannot be resolved.
    """
    log = logger or get_logger()
    report = SyncReport(field=tracked_field, repository=config.repository, dry_run=dry_run)
    report.team = resolve_team(linear, str(config.team), log)

    translator: AssigneeTranslator | None = None
    if tracked_field is TrackedField.ASSIGNEE:
        resolver = IdentityResolver(config.actor_overrides, cache=cache, logger=log)
        translator = AssigneeTranslator(
            resolver, _load_actors(linear, log), github.get_actor_details, logger=log
        )

    with log.timed_operation("collect", field=tracked_field.value):
        collector = SourceCollector(build_issue_source(config, tracked_field, github, log), log)
        report.collection = collector.collect_result()
    issues = report.collection.issues
    if not issues:
        log.info("no GitHub issues to sync", operation="sync")
        return report

    index: DestinationIndex
    if prefetch:
        try:
            index = PrefetchedIssueIndex.load(
                linear, report.team.id, include_completed=config.include_completed
            )
        except TransportError as exc:
            log.log_error("failed to load Linear issues", error=redact(str(exc)), operation="match")
            index = PrefetchedIssueIndex([])
    else:
        index = RemoteIssueIndex(linear, report.team.id, include_completed=config.include_completed)
    matcher = CrossReferenceMatcher(config.repository, logger=log)
    matches = matcher.match(issues, index)
    report.matching = matcher.stats

    planner = UpdatePlanner(tracked_field, assignees=translator, logger=log)
    report.intents = planner.plan(matcher.pairs(issues, matches))
    report.planning = planner.stats

    report.execution = UpdateExecutor(linear, dry_run=dry_run, logger=log).execute(report.intents)
    log.log_operation("sync_complete", **report.totals)
    return report


def format_report(report: SyncReport) -> list[str]:
    totals = report.totals
    lines = [
        f"[sync] {report.field.value}: {report.repository} -> "
        f"{report.team.key if report.team else '?'}"
        + (" [DRY]" if report.dry_run else "")
    ]
    if report.collection.partial:
        lines.append("  collection stopped early (GitHub quota low); results are partial")
    if report.collection.error:
        lines.append(f"  collection error: {report.collection.error}")
    lines.append(
        "  collected={collected} matched={matched} updated={updated} "
        "skipped={skipped} failed={failed}".format(**totals)
    )
    for outcome in report.execution.failures:
        lines.append(f"  failed: {outcome.intent.describe()} ({outcome.category}: {outcome.error})")
    return lines


def write_summary(path: str | Path, report: SyncReport) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(report.to_dict(), indent=2) + "\n", encoding="utf-8")


__all__ = [
    "SyncReport",
    "build_issue_source",
    "format_report",
    "resolve_team",
    "run_sync",
    "write_summary",
]
