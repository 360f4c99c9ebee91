from __future__ import annotations

import datetime
import math
import re

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pendulum

from timelog.exceptions import InvalidWindow, MalformedRevision

"""
This module defines the data models.
Models hydrate themselves from the REST payloads via `from_dict` and are immutable;
anything that changes produces a new object.
"""

WorkItemId = int

CHANGED_DATE = "System.ChangedDate"
CHANGED_BY = "System.ChangedBy"
COMPLETED_WORK = "Microsoft.VSTS.Scheduling.CompletedWork"
TITLE = "System.Title"

# Older API versions render identities as "Display Name <unique name>"
IDENTITY_STRING = re.compile(r"^(?P<display_name>.*?)\s*<(?P<unique_name>[^>]+)>$")


@dataclass(frozen=True)
class Identity:
    """The author of a change. Two identities are the same user iff their unique names match."""
    display_name: str
    unique_name: str  # contact handle, usually an email address
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Identity:
        if isinstance(data, str):
            match = IDENTITY_STRING.match(data.strip())
            if match is None:
                raise ValueError(f"Unrecognised identity: {data!r}")
            return cls(display_name=match.group("display_name"),
                       unique_name=match.group("unique_name"))

        if not isinstance(data, dict) or not data.get("uniqueName"):
            raise ValueError(f"Unrecognised identity: {data!r}")

        return cls(
            display_name=data.get("displayName") or data["uniqueName"],
            unique_name=data["uniqueName"],
            id=data.get("id"),
        )

    def same_user(self, unique_name: str) -> bool:
        return self.unique_name == unique_name

    def __str__(self) -> str:
        return f"{self.display_name} <{self.unique_name}>"


def _completed_work(value: Any) -> Optional[float]:
    # bool is an int subclass, but never a meaningful amount of work
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


@dataclass(frozen=True)
class Revision:
    """One historical snapshot of a work item."""
    rev: int
    changed_date: pendulum.DateTime
    changed_by: Identity
    completed_work: Optional[float] = None  # running total, not a delta
    title: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> Revision:
        """
        Hydrate a revision from a `workItems/{id}/revisions` entry.

        Raises:
            MalformedRevision: if the author or the timestamp is missing or unreadable.
        """
        if not isinstance(data, dict):
            raise MalformedRevision(f"unexpected revision {data!r}")

        rev = data.get("rev")
        fields = data.get("fields")
        if not isinstance(fields, dict):
            raise MalformedRevision("no fields", rev)

        raw_date = fields.get(CHANGED_DATE)
        if not raw_date:
            raise MalformedRevision(f"missing {CHANGED_DATE}", rev)
        try:
            changed_date = pendulum.parse(str(raw_date), exact=True)
        except ValueError as e:
            raise MalformedRevision(f"unreadable {CHANGED_DATE} {raw_date!r}: {e}", rev) from e
        if not isinstance(changed_date, pendulum.DateTime):
            raise MalformedRevision(f"unreadable {CHANGED_DATE} {raw_date!r}", rev)

        raw_author = fields.get(CHANGED_BY)
        if not raw_author:
            raise MalformedRevision(f"missing {CHANGED_BY}", rev)
        try:
            changed_by = Identity.from_dict(raw_author)
        except ValueError as e:
            raise MalformedRevision(str(e), rev) from e

        return cls(
            rev=rev,
            changed_date=changed_date,
            changed_by=changed_by,
            completed_work=_completed_work(fields.get(COMPLETED_WORK)),
            title=fields.get(TITLE),
        )

    def local_date(self, timezone: str | pendulum.Timezone = "UTC") -> datetime.date:
        """Calendar date of the snapshot, with time of day dropped."""
        return self.changed_date.in_timezone(timezone).date()


@dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar date range."""
    start: datetime.date
    end: datetime.date

    def __post_init__(self):
        if self.end < self.start:
            raise InvalidWindow(self.start, self.end)

    @classmethod
    def current_week(cls, today: datetime.date) -> DateWindow:
        """The Monday to Sunday span containing `today`."""
        day = pendulum.date(today.year, today.month, today.day)
        return cls(day.start_of("week"), day.end_of("week"))

    def contains(self, day: datetime.date) -> bool:
        return self.start <= day <= self.end

    def __str__(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


@dataclass(frozen=True)
class WorkLogEntry:
    """A change to completed work attributed to the user."""
    date: datetime.date
    author: Identity
    completed_work: float
    delta: float

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "author": str(self.author),
            "completed_work": self.completed_work,
            "delta": self.delta,
        }


@dataclass(frozen=True)
class WorkItemLog:
    """The attributed changes of a single work item and the hours they add to each day."""
    work_item_id: WorkItemId
    title: Optional[str] = None
    entries: List[WorkLogEntry] = field(default_factory=list)
    totals: Dict[datetime.date, float] = field(default_factory=dict)

    @property
    def has_entries(self) -> bool:
        return bool(self.entries)

    def to_dict(self) -> dict:
        return {
            "id": self.work_item_id,
            "title": self.title or "",
            "entries": [entry.to_dict() for entry in self.entries],
        }


@dataclass(frozen=True)
class WorkItemFailure:
    """A work item whose history could not be processed."""
    work_item_id: WorkItemId
    error: Exception

    def to_dict(self) -> dict:
        return {
            "id": self.work_item_id,
            "error": f"{self.error.__class__.__name__}: {self.error}",
        }


@dataclass(frozen=True)
class TimeReport:
    """Hours per day for one user over a date window."""
    window: DateWindow
    user: str
    totals: Dict[datetime.date, float] = field(default_factory=dict)
    work_items: List[WorkItemLog] = field(default_factory=list)
    failures: List[WorkItemFailure] = field(default_factory=list)

    @property
    def total_hours(self) -> float:
        return sum(self.totals.values(), 0.0)

    def to_dict(self) -> dict:
        return {
            "from": self.window.start.isoformat(),
            "to": self.window.end.isoformat(),
            "user": self.user,
            "work_items": [item.to_dict() for item in self.work_items if item.has_entries],
            "totals": {day.isoformat(): hours for day, hours in self.totals.items()},
            "total_hours": self.total_hours,
            "failures": [failure.to_dict() for failure in self.failures],
        }
