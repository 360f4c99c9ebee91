import dateparser
from datetime import datetime, date, time

from timelog.models import DateWindow


def resolve_natural_date(today: date, arg: str | None) -> date:
    """
    Parse a natural-language date string and return a datetime.date.
    Examples: "today", "yesterday", "last monday", "2025-08-03".
    """
    if arg is None or arg.strip().lower() == "today":
        return today

    dt = dateparser.parse(
        arg,
        settings={
            "PREFER_DATES_FROM": "past",
            "RELATIVE_BASE": datetime.combine(today, time.min),
            # Optional, keeps things simple:
            "RETURN_AS_TIMEZONE_AWARE": False,
        },
    )
    if dt is None:
        raise ValueError(f"Invalid date string: {arg}")

    return dt.date()


def resolve_window(today: date, from_date: str | None, to_date: str | None) -> DateWindow:
    """
    Resolve the --from/--to options into a window. Either bound defaults to the
    matching end of the current Monday to Sunday week.

    Raises:
        ValueError: If a date cannot be parsed.
        InvalidWindow: If the end comes before the start.
    """
    week = DateWindow.current_week(today)
    start = resolve_natural_date(today, from_date) if from_date else week.start
    end = resolve_natural_date(today, to_date) if to_date else week.end
    return DateWindow(start, end)
