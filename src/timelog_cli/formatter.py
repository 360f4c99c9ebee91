import datetime
import json

import humanize
from rich.console import Console
from rich.table import Table

from timelog.models import TimeReport


def format_hours(hours: float) -> str:
    """Hours without trailing zeros, e.g. 2, 1.5, -0.25."""
    return f"{hours:g}"


def humanize_hours(hours: float) -> str:
    text = humanize.precisedelta(datetime.timedelta(hours=abs(hours)), minimum_unit="minutes")
    return f"-{text}" if hours < 0 else text


class ReportFormatter:

    @classmethod
    def format_plain(cls, report: TimeReport) -> str:
        formatted = []
        for item in report.work_items:
            if not item.has_entries:
                continue
            formatted.append(f"{item.work_item_id} {item.title or ''}")
            for entry in item.entries:
                formatted.append(
                    f"\t{entry.date.isoformat()} {entry.author} "
                    f"{format_hours(entry.completed_work)} {format_hours(entry.delta)}")

        if formatted:
            formatted.append("")
        for day, hours in report.totals.items():
            formatted.append(f"{day.isoformat()} {day.strftime('%a').upper()} {format_hours(hours)}")
        formatted.append(f"Total {format_hours(report.total_hours)}")
        return "\n".join(formatted)

    @classmethod
    def format_json(cls, report: TimeReport) -> str:
        return json.dumps(report.to_dict(), indent=2)

    @classmethod
    def print_rich(cls, report: TimeReport, console: Console | None = None) -> None:
        console = console or Console()

        details = Table(title=f"Work logged by {report.user}")
        details.add_column("Work item", style="cyan")
        details.add_column("Date")
        details.add_column("Completed", justify="right")
        details.add_column("Logged", justify="right", style="green")
        for item in report.work_items:
            if not item.has_entries:
                continue
            details.add_section()
            header = f"{item.work_item_id} {item.title or ''}".strip()
            for index, entry in enumerate(item.entries):
                details.add_row(header if index == 0 else "",
                                entry.date.isoformat(),
                                format_hours(entry.completed_work),
                                format_hours(entry.delta))

        if details.row_count:
            console.print(details)
        else:
            console.print(f"[yellow]No work logged by {report.user} from {report.window}.[/yellow]")

        totals = Table(title=f"Daily totals {report.window}")
        totals.add_column("Date")
        totals.add_column("Day")
        totals.add_column("Hours", justify="right")
        totals.add_column("", style="dim")
        for day, hours in report.totals.items():
            totals.add_row(day.isoformat(), day.strftime("%a"), format_hours(hours), humanize_hours(hours))
        totals.add_section()
        totals.add_row("TOTAL", "", format_hours(report.total_hours), humanize_hours(report.total_hours))
        console.print(totals)
