from __future__ import annotations

from typing import Any, Dict, List

from abc import ABC, abstractmethod

from timelog.models import DateWindow, WorkItemId


class Plugin(ABC):
    def __init__(self, name: str, config: Dict[str, Any]):
        """
        Initialize the plugin with configuration.

        Args:
            name (str): Human readable name of the remote.
            config (Dict[str, Any]): Configuration specific to the remote.
        """
        self.name = name
        self.config = config


class QueryPlugin(Plugin):
    @abstractmethod
    def query_work_items(self, window: DateWindow) -> List[WorkItemId]:
        """
        Finds the work items that changed during a date window.

        Args:
            window (DateWindow): Inclusive range of days.

        Returns:
            List[WorkItemId]: Identifiers of candidate work items.

        Raises:
            ExternalFetchFailure: If the remote could not be queried.
        """
        pass


class RevisionPlugin(Plugin):
    @abstractmethod
    def fetch_revisions(self, work_item_id: WorkItemId) -> List[Dict[str, Any]]:
        """
        Fetches the full revision history of a work item.

        Args:
            work_item_id (WorkItemId): The work item to fetch.

        Returns:
            List[Dict[str, Any]]: Raw revisions, ordered by revision number.

        Raises:
            ExternalFetchFailure: If the remote could not be queried.
        """
        pass
