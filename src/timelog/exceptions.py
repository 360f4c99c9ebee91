"""Exceptions raised by the timelog core."""


class TimelogError(Exception):
    """Base class for all timelog errors."""


class ConfigError(TimelogError):
    """A required setting is missing or invalid."""


class InvalidWindow(TimelogError, ValueError):
    """The upper bound of a date window lies before its lower bound."""

    def __init__(self, start, end):
        self.start = start
        self.end = end
        super().__init__(f"Invalid date window: {end} is before {start}.")


class MalformedRevision(TimelogError):
    """A revision is missing a field needed to attribute it (author or timestamp)."""

    def __init__(self, message: str, rev=None):
        self.rev = rev
        if rev is not None:
            message = f"Revision {rev}: {message}"
        super().__init__(message)


class ExternalFetchFailure(TimelogError):
    """The work tracking service could not be queried."""

    def __init__(self, message: str, work_item_id=None):
        self.work_item_id = work_item_id
        super().__init__(message)
