from __future__ import annotations

import json

import pytest
from fakes import FakeDestinationApi, FakeSourceApi, gh_issue, linear_issue

from linearsync.collector import FallbackSource, RestIssueSource
from linearsync.config import SyncConfig
from linearsync.errors import TeamNotFoundError
from linearsync.identity import ResolutionCache
from linearsync.models import DestinationActor, Team, TrackedField
from linearsync.orchestrator import (
    build_issue_source,
    format_report,
    resolve_team,
    run_sync,
    write_summary,
)


def _config(**overrides) -> SyncConfig:
    values = dict(
        team="ENG",
        owner="acme",
        repo="widgets",
        linear_api_key="lin_api_x",
        github_token="ghp_y",
        actor_overrides={"alice": "alice@example.com"},
    )
    values.update(overrides)
    return SyncConfig(**values)


def _apis() -> tuple[FakeSourceApi, FakeDestinationApi]:
    github = FakeSourceApi([[gh_issue(42, "Fix login bug", assignee="alice", labels=["P1 - urgent"])]])
    linear = FakeDestinationApi(
        actors=[DestinationActor("U1", "Alice", "alice@example.com")],
        issues=[linear_issue("lin-1", "Fix login bug", 42, identifier="ENG-1")],
    )
    return github, linear


def test_both_fields_sync_and_rerun_is_a_no_op():
    github, linear = _apis()
    cfg = _config()

    reports = [run_sync(cfg, f, github=github, linear=linear) for f in TrackedField]

    intents = [(i.field, i.old_value, i.new_value) for r in reports for i in r.intents]
    assert intents == [(TrackedField.ASSIGNEE, None, "U1"), (TrackedField.PRIORITY, 0, 1)]
    assert sum(r.execution.applied for r in reports) == 2
    assert sum(r.execution.failed for r in reports) == 0
    assert linear.issues["lin-1"].assignee_id == "U1"
    assert linear.issues["lin-1"].priority == 1

    again = [run_sync(cfg, f, github=github, linear=linear) for f in TrackedField]
    assert [r.intents for r in again] == [[], []]
    assert len(linear.updates) == 2


def test_dry_run_plans_without_updating():
    github, linear = _apis()
    report = run_sync(_config(), TrackedField.PRIORITY, github=github, linear=linear, dry_run=True)

    assert len(report.intents) == 1
    assert linear.updates == []
    assert report.totals["updated"] == 1


def test_prefetch_index_gives_same_result():
    github, linear = _apis()
    report = run_sync(_config(), TrackedField.PRIORITY, github=github, linear=linear, prefetch=True)

    assert report.totals["updated"] == 1
    assert len(linear.filters) == 1
    assert linear.filters[0].title_equals is None


def test_totals_count_skips_and_failures():
    github = FakeSourceApi(
        [
            [
                gh_issue(1, "Mirrored", labels=["P1"]),
                gh_issue(2, "Not mirrored", labels=["P2"]),
                gh_issue(3, "Broken", labels=["P3"]),
            ]
        ]
    )
    linear = FakeDestinationApi(
        issues=[linear_issue("lin-1", "Mirrored", 1), linear_issue("lin-3", "Broken", 3)],
        fail_ids={"lin-3"},
    )
    report = run_sync(_config(), TrackedField.PRIORITY, github=github, linear=linear)

    assert report.totals == {
        "collected": 3,
        "matched": 2,
        "unmatched": 1,
        "unchanged": 0,
        "planned": 2,
        "updated": 1,
        "skipped": 1,
        "failed": 1,
    }
    assert not report.ok
    lines = format_report(report)
    assert any(line.startswith("  failed: LIN-3 priority 0 -> 3") for line in lines)


def test_unresolved_assignee_counts_as_skipped():
    github = FakeSourceApi([[gh_issue(42, "Fix login bug", assignee="stranger")]])
    linear = FakeDestinationApi(issues=[linear_issue("lin-1", "Fix login bug", 42)])
    report = run_sync(_config(), TrackedField.ASSIGNEE, github=github, linear=linear)

    assert report.intents == []
    assert report.totals["skipped"] == 1


def test_shared_cache_skips_repeat_profile_lookups():
    github, linear = _apis()
    cache = ResolutionCache()
    run_sync(_config(), TrackedField.ASSIGNEE, github=github, linear=linear, cache=cache)
    run_sync(_config(), TrackedField.ASSIGNEE, github=github, linear=linear, cache=cache)

    assert github.actor_lookups == ["alice"]
    assert cache.get("alice") == "U1"


def test_collection_failure_ends_run_quietly():
    github = FakeSourceApi([[gh_issue(1, "One", labels=["P1"])]], fail_on_page=1)
    linear = FakeDestinationApi()
    report = run_sync(_config(), TrackedField.PRIORITY, github=github, linear=linear)

    assert report.totals["collected"] == 0
    assert report.collection.error
    assert linear.filters == []


def test_team_lookup_by_key_or_name():
    linear = FakeDestinationApi(teams=[Team("t1", "Platform", "PLT"), Team("t2", "Engineering", "ENG")])
    assert resolve_team(linear, "ENG").id == "t2"
    assert resolve_team(linear, "Platform").id == "t1"


def test_unknown_team_is_fatal_and_lists_teams():
    github, linear = _apis()
    with pytest.raises(TeamNotFoundError) as info:
        run_sync(_config(team="Design"), TrackedField.PRIORITY, github=github, linear=linear)
    assert "Engineering (ENG)" in str(info.value)
    assert github.requested_pages == []


def test_priority_source_selection():
    github = FakeSourceApi()
    assert isinstance(build_issue_source(_config(), TrackedField.PRIORITY, github), RestIssueSource)
    project_cfg = _config(project_number=3)
    assert isinstance(build_issue_source(project_cfg, TrackedField.PRIORITY, github), FallbackSource)
    assert isinstance(build_issue_source(project_cfg, TrackedField.ASSIGNEE, github), RestIssueSource)


def test_summary_json(tmp_path):
    github, linear = _apis()
    report = run_sync(_config(), TrackedField.PRIORITY, github=github, linear=linear)
    target = tmp_path / "out" / "summary.json"

    write_summary(target, report)

    data = json.loads(target.read_text())
    assert data["field"] == "priority"
    assert data["team"]["key"] == "ENG"
    assert data["totals"]["updated"] == 1
    assert data["updates"][0]["identifier"] == "ENG-1"
