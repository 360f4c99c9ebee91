from __future__ import annotations

import concurrent.futures

from typing import Iterable, List

import pendulum
from tqdm import tqdm

from timelog.core.aggregator import aggregate_work_item, merge_totals
from timelog.core.locator import locate_work_items
from timelog.core.plugin import QueryPlugin, RevisionPlugin
from timelog.exceptions import ExternalFetchFailure, MalformedRevision
from timelog.models import (DateWindow, Revision, TimeReport, WorkItemFailure,
                            WorkItemId, WorkItemLog)


def process_work_item(source: RevisionPlugin,
                      work_item_id: WorkItemId,
                      user: str,
                      window: DateWindow,
                      timezone: str | pendulum.Timezone = "UTC") -> WorkItemLog:
    """
    Fetch the history of one work item and attribute its changes.

    Raises:
        ExternalFetchFailure: If the history could not be fetched.
        MalformedRevision: If a revision lacks an author or a timestamp.
    """
    raw_revisions = source.fetch_revisions(work_item_id)
    revisions = [Revision.from_dict(raw) for raw in raw_revisions]
    return aggregate_work_item(work_item_id, revisions, user, window, timezone)


def collect_work_items(source: RevisionPlugin,
                       work_item_ids: Iterable[WorkItemId],
                       user: str,
                       window: DateWindow,
                       timezone: str | pendulum.Timezone = "UTC",
                       max_workers: int = 4,
                       progress: bool = False) -> TimeReport:
    """
    Process work items concurrently and fold the results into a single report.

    At most `max_workers` work items are fetched at once. Results are folded by the
    calling thread in the order the identifiers were given, so the report does not
    depend on which fetch finishes first. A work item that cannot be fetched or parsed
    is recorded as a failure and does not affect the totals of the others.
    """
    work_item_ids = list(work_item_ids)

    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            work_item_id: executor.submit(process_work_item, source, work_item_id,
                                          user, window, timezone)
            for work_item_id in work_item_ids
        }
        for _ in tqdm(concurrent.futures.as_completed(futures.values()),
                      total=len(futures), desc="Work items", unit="item",
                      disable=not progress, leave=False):
            pass

    logs: List[WorkItemLog] = []
    failures: List[WorkItemFailure] = []
    for work_item_id, future in futures.items():
        try:
            logs.append(future.result())
        except (ExternalFetchFailure, MalformedRevision) as e:
            failures.append(WorkItemFailure(work_item_id, e))

    return TimeReport(window=window,
                      user=user,
                      totals=merge_totals(*(log.totals for log in logs)),
                      work_items=logs,
                      failures=failures)


def build_report(query: QueryPlugin,
                 source: RevisionPlugin,
                 user: str,
                 window: DateWindow,
                 timezone: str | pendulum.Timezone = "UTC",
                 max_workers: int = 4,
                 progress: bool = False) -> TimeReport:
    """
    Locate the work items changed in the window and build the user's time report.

    Raises:
        ExternalFetchFailure: If the work items could not be located.
    """
    work_item_ids = locate_work_items(query, window)
    return collect_work_items(source, work_item_ids, user, window, timezone,
                              max_workers=max_workers, progress=progress)
