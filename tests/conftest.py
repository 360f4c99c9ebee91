"""
Shared pytest fixtures for timelog tests.
"""
import pytest
from datetime import date
from typing import Any, Dict, List

from timelog.core.plugin import QueryPlugin, RevisionPlugin
from timelog.exceptions import ExternalFetchFailure
from timelog.models import DateWindow, Revision

USER = "me@example.com"
OTHER_USER = "someone.else@example.com"

MISSING = object()


def raw_revision(rev: int,
                 changed_date: str,
                 completed_work: Any = MISSING,
                 author: str = USER,
                 display_name: str | None = None,
                 title: str | None = "Implement the thing") -> Dict[str, Any]:
    """
    Build a revision as returned by the `workItems/{id}/revisions` endpoint.
    """
    fields: Dict[str, Any] = {
        "System.ChangedDate": changed_date,
        "System.ChangedBy": {
            "id": f"id-{author}",
            "displayName": display_name or author.split("@")[0].title(),
            "uniqueName": author,
        },
    }
    if completed_work is not MISSING:
        fields["Microsoft.VSTS.Scheduling.CompletedWork"] = completed_work
    if title is not None:
        fields["System.Title"] = title
    return {"id": 1, "rev": rev, "fields": fields}


def revisions(*raw: Dict[str, Any]) -> List[Revision]:
    return [Revision.from_dict(r) for r in raw]


class FakeSource(QueryPlugin, RevisionPlugin):
    """
    An in-memory work tracking remote.

    `histories` maps work item ids to raw revisions; an exception instance in
    place of a history is raised when that work item is fetched.
    """

    def __init__(self, histories: Dict[int, Any], work_item_ids: List[int] | None = None):
        super().__init__("fake", {})
        self.histories = histories
        self.work_item_ids = list(histories) if work_item_ids is None else work_item_ids
        self.queried: List[DateWindow] = []
        self.fetched: List[int] = []

    def query_work_items(self, window: DateWindow) -> List[int]:
        self.queried.append(window)
        return list(self.work_item_ids)

    def fetch_revisions(self, work_item_id: int) -> List[Dict[str, Any]]:
        self.fetched.append(work_item_id)
        history = self.histories.get(work_item_id, [])
        if isinstance(history, Exception):
            raise history
        return history


@pytest.fixture
def week():
    """
    Monday 13 January 2025 to Sunday 19 January 2025.
    """
    return DateWindow(date(2025, 1, 13), date(2025, 1, 19))


@pytest.fixture
def scenario_history():
    """
    Completed work goes 0, 2, 2, 5 over four revisions, all by the user.
    """
    return [
        raw_revision(1, "2025-01-13T09:00:00Z", 0),
        raw_revision(2, "2025-01-14T10:00:00Z", 2),
        raw_revision(3, "2025-01-14T11:00:00Z", 2),
        raw_revision(4, "2025-01-15T16:30:00Z", 5),
    ]


@pytest.fixture
def fake_source(scenario_history):
    """
    A remote with three work items: the scenario history, one touched by
    another user, and one that never had completed work.
    """
    return FakeSource({
        101: scenario_history,
        102: [
            raw_revision(1, "2025-01-13T08:00:00Z", title="Review"),
            raw_revision(2, "2025-01-14T12:00:00Z", 1.5, author=OTHER_USER, title="Review"),
            raw_revision(3, "2025-01-14T15:00:00Z", 2.5, title="Review"),
        ],
        103: [
            raw_revision(1, "2025-01-15T08:00:00Z", title="Untracked"),
            raw_revision(2, "2025-01-16T08:00:00Z", title="Untracked"),
        ],
    })


@pytest.fixture
def broken_source(scenario_history):
    """
    A remote where one work item cannot be fetched and another has a revision without an author.
    """
    malformed = raw_revision(2, "2025-01-14T10:00:00Z", 1)
    del malformed["fields"]["System.ChangedBy"]
    return FakeSource({
        101: scenario_history,
        201: ExternalFetchFailure("GET revisions failed: 503 Server Error", 201),
        202: [raw_revision(1, "2025-01-13T10:00:00Z", 0), malformed],
    })


ENV_VARS = ["USERNAME", "ACCESS_TOKEN", "ORG", "PROJECT", "TIMELOG_BASE_URL",
            "TIMELOG_TIMEZONE", "TIMELOG_MAX_WORKERS", "TIMELOG_TIMEOUT"]


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    """
    An environment without any timelog settings, in a directory without a .env file.
    """
    for var in ENV_VARS:
        # recorded as unset, so values loaded from .env are removed on teardown
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    monkeypatch.chdir(tmp_path)
    return tmp_path
