import typer
import pendulum

from pathlib import Path
from typing import Optional

from timelog.core import build_report, load_config
from timelog.exceptions import TimelogError
from timelog.plugins.azure_devops import AzureDevOpsPlugin

from timelog_cli.formatter import ReportFormatter
from timelog_cli.utils import resolve_window

cli = typer.Typer(help="Reconstruct a daily time log from Azure DevOps work item history.")


@cli.callback()
def main(ctx: typer.Context,
         config_file: Optional[Path] = typer.Option(
             None,
             "--config", "-c",
             help="TOML file with settings (user, organization, project, timezone, ...).",
         )):
    ctx.obj = config_file


@cli.command()
def report(
    ctx: typer.Context,
    from_date: Optional[str] = typer.Option(
        None,
        "--from", "-f",
        help="First date to include, e.g. 2025-10-06 or 'last monday'. Defaults to this Monday.",
    ),
    to_date: Optional[str] = typer.Option(
        None,
        "--to", "-t",
        help="Last date to include. Defaults to this Sunday.",
    ),
    user: Optional[str] = typer.Option(
        None,
        "--user", "-u",
        help="Unique name (email) of the user. [env: USERNAME]",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        help="Azure DevOps personal access token. [env: ACCESS_TOKEN]",
    ),
    organization: Optional[str] = typer.Option(
        None,
        "--organization", "-o",
        help="Azure DevOps organization. [env: ORG]",
    ),
    project: Optional[str] = typer.Option(
        None,
        "--project", "-p",
        help="Azure DevOps project. [env: PROJECT]",
    ),
    timezone: Optional[str] = typer.Option(
        None,
        "--timezone",
        help="Timezone used to assign changes to days. [env: TIMELOG_TIMEZONE]",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers", "-w",
        help="Work items fetched concurrently. [env: TIMELOG_MAX_WORKERS]",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
    plain_output: bool = typer.Option(
        False,
        "--plain",
        help="Output as plain text (no colors).",
    ),
    progress: bool = typer.Option(
        True,
        "--progress/--no-progress",
        help="Show a progress bar while fetching work items.",
    ),
):
    """
    cli: timelog report
    Show the hours logged per day by a user, from changes to Completed Work.
    """
    try:
        config = load_config(ctx.obj, {
            "user": user,
            "token": token,
            "organization": organization,
            "project": project,
            "timezone": timezone,
            "max_workers": workers,
        })
        window = resolve_window(pendulum.now(config.timezone).date(), from_date, to_date)
    except (TimelogError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"From {window.start.isoformat()} to {window.end.isoformat()}", err=True)

    source = AzureDevOpsPlugin("azure-devops", {
        "base_url": config.base_url,
        "organization": config.organization,
        "project": config.project,
        "user": config.user,
        "token": config.token,
        "timeout": config.timeout,
    })

    try:
        time_report = build_report(source, source, config.user, window,
                                   timezone=config.timezone,
                                   max_workers=config.max_workers,
                                   progress=progress and not json_output)
    except TimelogError as e:
        typer.echo(f"Error building report: {e}", err=True)
        raise typer.Exit(1)

    for failure in time_report.failures:
        typer.echo(f"Warning: Skipped work item {failure.work_item_id}: {failure.error}", err=True)

    if json_output:
        typer.echo(ReportFormatter.format_json(time_report))
    elif plain_output:
        typer.echo(ReportFormatter.format_plain(time_report))
    else:
        ReportFormatter.print_rich(time_report)

    if time_report.failures:
        raise typer.Exit(1)


@cli.command()
def window(
    ctx: typer.Context,
    from_date: Optional[str] = typer.Option(None, "--from", "-f", help="First date to include."),
    to_date: Optional[str] = typer.Option(None, "--to", "-t", help="Last date to include."),
    timezone: Optional[str] = typer.Option(None, "--timezone", help="Timezone used for today."),
):
    """
    cli: timelog window
    Show the date window a report would cover.
    """
    try:
        config = load_config(ctx.obj, {"timezone": timezone}, validate=False)
        resolved = resolve_window(pendulum.now(config.timezone).date(), from_date, to_date)
    except (TimelogError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"From {resolved.start.isoformat()} to {resolved.end.isoformat()}")
