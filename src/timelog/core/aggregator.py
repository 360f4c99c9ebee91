from __future__ import annotations

import datetime

from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import pendulum

from timelog.models import DateWindow, Revision, WorkItemId, WorkItemLog, WorkLogEntry


def _indexed_deltas(revisions: Sequence[Revision]) -> Iterator[Tuple[int, Revision, float]]:
    last_completed_work = 0.0
    for index, revision in enumerate(revisions):
        if revision.completed_work is None:
            continue

        delta = revision.completed_work - last_completed_work
        last_completed_work = revision.completed_work

        if delta == 0.0:
            continue

        yield index, revision, delta


def iter_deltas(revisions: Iterable[Revision]) -> Iterator[Tuple[Revision, float]]:
    """
    Walk a work item's revisions in sequence order and yield each change to completed work.

    The baseline starts at zero and follows every recorded value, whoever made the change
    and whenever it happened. Revisions without a completed work value are skipped without
    touching the baseline, and revisions that leave the value unchanged are not yielded.

    Args:
        revisions (Iterable[Revision]): Revisions ordered by revision number.

    Yields:
        Tuple[Revision, float]: The revision and the signed difference from the previous value.
    """
    for _, revision, delta in _indexed_deltas(list(revisions)):
        yield revision, delta


def _latest_titles(revisions: Sequence[Revision]) -> List[Optional[str]]:
    """The most recent title known at each revision."""
    titles = []
    latest = None
    for revision in revisions:
        latest = revision.title or latest
        titles.append(latest)
    return titles


def aggregate_work_item(work_item_id: WorkItemId,
                        revisions: Iterable[Revision],
                        user: str,
                        window: DateWindow,
                        timezone: str | pendulum.Timezone = "UTC") -> WorkItemLog:
    """
    Attribute the changes to completed work on one work item to days in the window.

    Only changes made by `user` (matched on unique name) whose snapshot falls inside
    the window are attributed. Filtering happens after the delta is taken, so a change
    is always measured against the true preceding value.

    Args:
        work_item_id (WorkItemId): Used to label the result.
        revisions (Iterable[Revision]): Revisions ordered by revision number.
        user (str): Unique name of the user to attribute work to.
        window (DateWindow): Inclusive range of days to attribute.
        timezone: Timezone used to find the calendar day of a snapshot.

    Returns:
        WorkItemLog: The attributed entries and the hours they add per day.
    """
    revisions = list(revisions)
    titles = _latest_titles(revisions)

    title: Optional[str] = None
    entries: List[WorkLogEntry] = []
    totals: Dict[datetime.date, float] = {}
    for index, revision, delta in _indexed_deltas(revisions):
        if not revision.changed_by.same_user(user):
            continue

        date = revision.local_date(timezone)
        if not window.contains(date):
            continue

        if not entries:
            title = titles[index]

        if date in totals:
            totals[date] += delta
        else:
            totals[date] = delta

        entries.append(WorkLogEntry(date=date,
                                    author=revision.changed_by,
                                    completed_work=revision.completed_work,
                                    delta=delta))

    return WorkItemLog(work_item_id=work_item_id,
                       title=title,
                       entries=entries,
                       totals=totals)


def merge_totals(*totals: Mapping[datetime.date, float]) -> Dict[datetime.date, float]:
    """
    Sum hours per day across any number of per-day mappings.

    The inputs are left untouched; the result is ordered by date.
    """
    merged: Dict[datetime.date, float] = {}
    for mapping in totals:
        for date, hours in mapping.items():
            if date in merged:
                merged[date] += hours
            else:
                merged[date] = hours
    return dict(sorted(merged.items()))
