from __future__ import annotations

from fakes import FakeSourceApi, gh_issue

from linearsync.collector import (
    FallbackSource,
    ProjectFieldSource,
    RestIssueSource,
    SourceCollector,
    extract_priority_label,
)
from linearsync.models import TrackedField

REPO = "acme/widgets"


def _rest(api: FakeSourceApi, tracked: TrackedField = TrackedField.PRIORITY) -> RestIssueSource:
    return RestIssueSource(api, tracked, REPO, page_size=2)


def test_collects_every_page_in_order():
    api = FakeSourceApi(
        [
            [gh_issue(1, "One", labels=["P1"]), gh_issue(2, "Two", labels=["P2"])],
            [gh_issue(3, "Three", labels=["P3 - medium"])],
        ]
    )
    issues = SourceCollector(_rest(api)).collect()

    assert [(i.number, i.raw_value) for i in issues] == [(1, "P1"), (2, "P2"), (3, "P3 - medium")]
    assert api.requested_pages == [1, 2]


def test_stops_on_empty_page():
    api = FakeSourceApi([[gh_issue(1, "One", labels=["P1"])], []])
    issues = SourceCollector(_rest(api)).collect()

    assert [i.number for i in issues] == [1]
    assert api.requested_pages == [1, 2]


def test_low_quota_after_first_page_stops_collection():
    api = FakeSourceApi(
        [[gh_issue(1, "One", labels=["P1"])], [gh_issue(2, "Two", labels=["P1"])]],
        quota=[5000, 5],
    )
    collector = SourceCollector(_rest(api))
    issues = collector.collect()

    assert [i.number for i in issues] == [1]
    assert api.requested_pages == [1]
    assert collector.last_result.partial
    assert collector.last_result.quota_remaining == 5


def test_pull_requests_and_valueless_issues_are_skipped():
    api = FakeSourceApi(
        [
            [
                gh_issue(1, "PR", labels=["P1"], pull_request=True),
                gh_issue(2, "No priority", labels=["bug"]),
                gh_issue(3, "Has it", labels=["bug", "P2 - High"]),
            ]
        ]
    )
    result = SourceCollector(_rest(api)).collect_result()

    assert [i.number for i in result.issues] == [3]
    assert result.skipped == 1


def test_assignee_collection_reads_login():
    api = FakeSourceApi([[gh_issue(1, "One", assignee="mona"), gh_issue(2, "Two")]])
    issues = SourceCollector(_rest(api, TrackedField.ASSIGNEE)).collect()

    assert [(i.number, i.raw_value) for i in issues] == [(1, "mona")]
    assert issues[0].url == "https://github.com/acme/widgets/issues/1"


def test_transport_error_yields_empty_result():
    api = FakeSourceApi([[gh_issue(1, "One", labels=["P1"])]], fail_on_page=1)
    collector = SourceCollector(_rest(api))

    assert collector.collect() == []
    assert "502" in (collector.last_result.error or "")


def test_first_matching_label_wins():
    item = gh_issue(1, "One", labels=["p3-later", "P1"])
    assert extract_priority_label(item) == "p3-later"


def _project(items, field_names=("Status", "Priority")):
    meta = {"title": "Roadmap", "fields": {"nodes": [{"name": n} for n in field_names]}}
    return meta, items


def _item(number, value, *, repo="widgets", state="OPEN", field_name="Priority"):
    return {
        "content": {
            "number": number,
            "title": f"Issue {number}",
            "url": f"https://github.com/acme/{repo}/issues/{number}",
            "state": state,
            "repository": {"name": repo, "owner": {"login": "acme"}},
        },
        "fieldValues": {"nodes": [{"name": value, "field": {"name": field_name}}]},
    }


def _project_source(api: FakeSourceApi, field_name: str = "Priority") -> ProjectFieldSource:
    return ProjectFieldSource(
        api, owner="acme", repo="widgets", project_number=3, field_name=field_name
    )


def test_project_field_source_filters_repository_state_and_value():
    api = FakeSourceApi(
        project=_project(
            [
                _item(1, "P1 - Urgent"),
                _item(2, "P2", repo="other"),
                _item(3, "P1", state="CLOSED"),
                _item(4, "Someday"),
                _item(5, "P3", field_name="Status"),
            ]
        )
    )
    result = SourceCollector(_project_source(api)).collect_result()

    assert [(i.number, i.raw_value) for i in result.issues] == [(1, "P1 - Urgent")]
    assert result.strategy == "project_v2"


def test_project_items_match_repository_name_in_any_case():
    api = FakeSourceApi(project=_project([_item(1, "P2"), _item(2, "P3", repo="Widgets")]))
    source = ProjectFieldSource(
        api, owner="Acme", repo="WIDGETS", project_number=3, field_name="Priority"
    )
    result = SourceCollector(source).collect_result()

    assert [(i.number, i.raw_value) for i in result.issues] == [(1, "P2"), (2, "P3")]


def test_unknown_project_field_lists_available_fields():
    api = FakeSourceApi(project=_project([_item(1, "P1")]))
    result = SourceCollector(_project_source(api, "Urgency")).collect_result()

    assert result.issues == []
    assert "Status, Priority" in (result.error or "")


def test_fallback_to_labels_when_project_query_fails():
    api = FakeSourceApi([[gh_issue(9, "Nine", labels=["P2"])]], project_error=True)
    source = FallbackSource(_project_source(api), _rest(api))
    result = SourceCollector(source).collect_result()

    assert [i.number for i in result.issues] == [9]
    assert result.strategy == "rest"
