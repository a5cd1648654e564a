from __future__ import annotations

import pytest
from fakes import DummyResponse, DummySession

from linearsync.linear_client import LinearAPIError, LinearClient
from linearsync.models import IssueFilter


def _client(responses: list[DummyResponse]) -> tuple[LinearClient, DummySession]:
    session = DummySession(responses)
    return LinearClient(api_key="lin_api_test", session=session), session


def test_api_key_sent_verbatim():
    client, session = _client(
        [DummyResponse(200, {"data": {"teams": {"nodes": [{"id": "t1", "name": "Eng", "key": "ENG"}]}}})]
    )
    teams = client.list_teams()

    assert [(t.id, t.key) for t in teams] == [("t1", "ENG")]
    assert session.headers["Authorization"] == "lin_api_test"


def test_find_issues_builds_filter_and_paginates():
    node = {
        "id": "lin-1",
        "identifier": "ENG-12",
        "title": "Fix login",
        "description": "acme/widgets/issues/42",
        "priority": 2,
        "assignee": {"id": "u1", "name": "Mona"},
        "state": {"type": "started"},
    }
    client, session = _client(
        [
            DummyResponse(
                200,
                {"data": {"issues": {"pageInfo": {"hasNextPage": True, "endCursor": "c1"}, "nodes": [node]}}},
            ),
            DummyResponse(200, {"data": {"issues": {"nodes": [dict(node, id="lin-2", assignee=None)]}}}),
        ]
    )

    issues = client.find_issues(
        IssueFilter(team_id="t1", title_equals="Fix login", description_contains="acme/widgets/issues/42")
    )

    assert [i.id for i in issues] == ["lin-1", "lin-2"]
    assert issues[0].assignee_id == "u1"
    assert issues[0].priority == 2
    assert issues[1].assignee_id is None
    sent = session.request_log[0][2]["json"]["variables"]["filter"]
    assert sent == {
        "team": {"id": {"eq": "t1"}},
        "title": {"eq": "Fix login"},
        "description": {"contains": "acme/widgets/issues/42"},
        "state": {"type": {"neq": "completed"}},
    }
    assert session.request_log[1][2]["json"]["variables"]["after"] == "c1"


def test_list_actors_prefers_full_name():
    client, _ = _client(
        [
            DummyResponse(
                200,
                {
                    "data": {
                        "users": {
                            "nodes": [
                                {"id": "u1", "name": "Mona Lisa", "displayName": "mona", "email": "m@x.io"},
                                {"id": "u2", "name": "", "displayName": "hubot", "email": None},
                            ]
                        }
                    }
                },
            )
        ]
    )
    actors = client.list_actors()
    assert [(a.id, a.display_name, a.email) for a in actors] == [
        ("u1", "Mona Lisa", "m@x.io"),
        ("u2", "hubot", None),
    ]


def test_update_issue_sends_only_given_fields():
    client, session = _client(
        [DummyResponse(200, {"data": {"issueUpdate": {"success": True, "issue": {"id": "lin-1"}}}})]
    )
    client.update_issue("lin-1", priority=0)

    variables = session.request_log[0][2]["json"]["variables"]
    assert variables == {"id": "lin-1", "input": {"priority": 0}}


def test_update_issue_rejected():
    client, _ = _client([DummyResponse(200, {"data": {"issueUpdate": {"success": False}}})])
    with pytest.raises(LinearAPIError):
        client.update_issue("lin-1", assignee_id="u1")


def test_graphql_errors_raise_with_message():
    client, _ = _client([DummyResponse(400, {"errors": [{"message": "Entity not found"}]})])
    with pytest.raises(LinearAPIError) as info:
        client.update_issue("missing", priority=1)
    assert "Entity not found" in str(info.value)
    assert info.value.status == 400


def test_update_issue_requires_a_field():
    client, _ = _client([])
    with pytest.raises(ValueError):
        client.update_issue("lin-1")
