from __future__ import annotations

import threading

from typing import Any, Callable, Dict, List

import requests
from requests.auth import HTTPBasicAuth

from timelog.core.plugin import QueryPlugin, RevisionPlugin
from timelog.exceptions import ExternalFetchFailure
from timelog.models import DateWindow, WorkItemId

WIQL_API_VERSION = "5.1"
REVISIONS_API_VERSION = "5.0"
PAGE_SIZE = 200


class AzureDevOpsPlugin(QueryPlugin, RevisionPlugin):
    """
    Work items and their revision histories from an Azure DevOps project.

    Expects `organization`, `project`, `user` and `token` in its config; `base_url`
    and `timeout` are optional.

    Each thread gets its own `requests.Session`. A session passed in is shared by
    every thread and must be safe to use concurrently.
    """

    def __init__(self, name: str, config: Dict[str, Any],
                 session: requests.Session | None = None):
        super().__init__(name, config)
        self._new_session: Callable[[], requests.Session] = (
            (lambda: session) if session is not None else requests.Session)
        self._local = threading.local()
        self.timeout = config.get('timeout', 30)

    @property
    def session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._new_session()
            session.auth = HTTPBasicAuth(self.config.get('user'), self.config.get('token'))
            self._local.session = session
        return session

    @property
    def project_url(self) -> str:
        base_url = self.config.get('base_url', "https://dev.azure.com").rstrip("/")
        return f"{base_url}/{self.config.get('organization')}/{self.config.get('project')}"

    def build_wiql_changed_during(self, window: DateWindow) -> str:
        """
        Build a WIQL query for work items changed during a date window.

        Args:
            window (DateWindow): Inclusive range of days.

        Returns:
            str: WIQL query string.
        """
        return (
            "SELECT [System.Id] FROM workitems "
            f"WHERE [System.ChangedDate] >= '{window.start.isoformat()}' "
            f"AND [System.ChangedDate] <= '{window.end.isoformat()}' "
            "ORDER BY [System.ChangedDate] DESC"
        )

    def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()  # Raise an error for HTTP issues
        except requests.RequestException as e:
            raise ExternalFetchFailure(f"{method} {url} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise ExternalFetchFailure(f"{method} {url} did not return JSON: {e}") from e

    def query_work_items(self, window: DateWindow) -> List[WorkItemId]:
        url = f"{self.project_url}/_apis/wit/wiql"
        data = self._request("POST", url,
                             params={"api-version": WIQL_API_VERSION},
                             json={"query": self.build_wiql_changed_during(window)})

        work_items = data.get("workItems") if isinstance(data, dict) else None
        if not isinstance(work_items, list):
            raise ExternalFetchFailure(f"Unexpected WIQL response from {url}: no workItems.")

        try:
            return [int(work_item["id"]) for work_item in work_items]
        except (KeyError, TypeError, ValueError) as e:
            raise ExternalFetchFailure(f"Unexpected work item in WIQL response: {e}") from e

    def fetch_revisions(self, work_item_id: WorkItemId) -> List[Dict[str, Any]]:
        """Fetch every revision of a work item, one page at a time."""
        url = f"{self.project_url}/_apis/wit/workItems/{work_item_id}/revisions"

        all_revisions: List[Dict[str, Any]] = []
        skip = 0

        while True:
            query = {
                "api-version": REVISIONS_API_VERSION,
                "$top": PAGE_SIZE,
                "$skip": skip,
            }

            try:
                data = self._request("GET", url, params=query)
            except ExternalFetchFailure as e:
                raise ExternalFetchFailure(str(e), work_item_id) from e

            revisions = data.get("value") if isinstance(data, dict) else None
            if not isinstance(revisions, list):
                raise ExternalFetchFailure(
                    f"Unexpected revisions response for work item {work_item_id}: no value.",
                    work_item_id)
            all_revisions.extend(revisions)

            if len(revisions) < PAGE_SIZE:
                break

            skip += PAGE_SIZE

        return all_revisions
