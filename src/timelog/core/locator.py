from __future__ import annotations

from typing import List

from timelog.core.plugin import QueryPlugin
from timelog.exceptions import ExternalFetchFailure, TimelogError
from timelog.models import DateWindow, WorkItemId


def locate_work_items(source: QueryPlugin, window: DateWindow) -> List[WorkItemId]:
    """
    Find the work items whose history may hold changes inside the window.

    Duplicates are dropped, keeping the order the source returned them in.

    Raises:
        ExternalFetchFailure: If the source could not be queried.
    """
    try:
        work_item_ids = source.query_work_items(window)
    except TimelogError:
        raise
    except Exception as e:
        raise ExternalFetchFailure(f"Failed to query work items from {source.name}: {e}") from e

    return list(dict.fromkeys(work_item_ids))
