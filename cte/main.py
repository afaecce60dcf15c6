"""CTE CLI: all commands."""

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Annotated

import tomlkit
import typer
from rich import print as rprint
from rich.table import Table

from cte.export import ExportBundle, copy_selection, format_estimate
from cte.models import NormalizedTask, RankedBatch, SourceDescriptor, SourceListError, parse_source_list
from cte.pipeline import fetch_ranked_flat, fetch_ranked_tasks
from cte.providers.base import TaskSource
from cte.providers.clickup import ClickUpProvider
from cte.settings import CONFIG_PATH, ConfigurationError, CteSettings, _list_profiles, get_settings

app = typer.Typer(help="ClickUp task exporter: rank list tasks by BV/hour and export a digest", no_args_is_help=True)

ProfileOpt = Annotated[
    str | None,
    typer.Option("--profile", "-p", help="Profile name from ~/.config/cte/config.toml"),
]
ListIdsArg = Annotated[
    list[str] | None,
    typer.Argument(help="ClickUp list IDs (defaults to list_ids from the profile)"),
]
ListsJsonOpt = Annotated[
    str | None,
    typer.Option("--lists", help='JSON array of list IDs or {"id": ..., "subtasks": true} objects'),
]
SubtasksOpt = Annotated[bool, typer.Option("--subtasks", help="Include subtasks for lists given as bare IDs")]
FlatOpt = Annotated[bool, typer.Option("--flat", help="Query the whole workspace in one request and rank as one list")]


@app.callback()
def main(debug: Annotated[bool, typer.Option("--debug", help="Enable debug logging")] = False) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.WARNING,
    )


# ---------------------------------------------------------------------------
# Provider factory
# ---------------------------------------------------------------------------


def get_provider(settings: CteSettings) -> TaskSource:
    try:
        return ClickUpProvider(settings)
    except ConfigurationError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc


# ---------------------------------------------------------------------------
# Source resolution
# ---------------------------------------------------------------------------


def resolve_sources(
    settings: CteSettings,
    list_ids: list[str] | None,
    lists_json: str | None,
    subtasks: bool,
) -> list[SourceDescriptor]:
    include_subtasks = subtasks or settings.include_subtasks
    if lists_json:
        try:
            return parse_source_list(lists_json, include_subtasks=include_subtasks)
        except SourceListError as exc:
            rprint(f"[red]{exc}[/red]")
            raise typer.Exit(2) from exc

    ids = list_ids or settings.list_ids
    if not ids:
        rprint("[red]No lists given. Pass list IDs or set list_ids in your config profile.[/red]")
        raise typer.Exit(2)
    return [SourceDescriptor(source_id=i, include_subtasks=include_subtasks) for i in ids]


def _load_batch(settings: CteSettings, sources: list[SourceDescriptor]) -> RankedBatch:
    provider = get_provider(settings)
    return asyncio.run(fetch_ranked_tasks(sources, provider, settings))


def _load_flat(settings: CteSettings, list_ids: list[str] | None) -> list[NormalizedTask]:
    provider = get_provider(settings)
    try:
        return asyncio.run(fetch_ranked_flat(provider, settings, list_ids))
    except ConfigurationError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    except Exception as exc:
        rprint(f"[red]Failed to fetch tasks: {exc}[/red]")
        raise typer.Exit(1) from exc


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _task_table(title: str, tasks: list[NormalizedTask]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Task")
    table.add_column("Status")
    table.add_column("Assignee")
    table.add_column("Stakeholder")
    table.add_column("Team")
    table.add_column("BV/h", justify="right")
    table.add_column("Estimate", style="dim")

    for task in tasks:
        table.add_row(
            task.id,
            task.name,
            task.status,
            task.assignee,
            task.stakeholder,
            task.team or "",
            f"{task.priority_score:.2f}",
            format_estimate(task.time_estimate_ms),
        )
    return table


class ConsoleSink:
    """Prints the plain digest; writes the rich digest to a file when asked."""

    def __init__(self, rich_output: Path | None = None) -> None:
        self.rich_output = rich_output

    def write(self, bundle: ExportBundle) -> None:
        if self.rich_output:
            self.rich_output.write_text(bundle.rich, encoding="utf-8")
        typer.echo(bundle.plain)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("list-tasks")
def list_tasks(
    list_ids: ListIdsArg = None,
    lists_json: ListsJsonOpt = None,
    subtasks: SubtasksOpt = False,
    flat: FlatOpt = False,
    profile: ProfileOpt = None,
) -> None:
    """Fetch, filter and rank tasks, one table per list."""
    settings = get_settings(profile=profile)

    if flat:
        tasks = _load_flat(settings, list_ids)
        rprint(_task_table("All lists", tasks))
        if not tasks:
            rprint("[dim]No tasks found. Make sure your ClickUp lists are configured correctly.[/dim]")
        return

    batch = _load_batch(settings, resolve_sources(settings, list_ids, lists_json, subtasks))
    for result in batch.results.values():
        rprint(_task_table(result.label, result.tasks))
        if result.status == "failed":
            rprint(f"[yellow]Could not fetch list {result.source_id}:[/yellow] {result.error}")
        elif result.status == "degraded":
            rprint(f"[dim]List details unavailable for {result.source_id}: {result.error}[/dim]")
        elif not result.tasks:
            rprint("[dim]No matching tasks.[/dim]")


@app.command("export")
def export_cmd(
    list_ids: ListIdsArg = None,
    lists_json: ListsJsonOpt = None,
    subtasks: SubtasksOpt = False,
    flat: FlatOpt = False,
    profile: ProfileOpt = None,
    select: Annotated[
        list[str] | None,
        typer.Option("--select", "-s", help="Task ID to include (repeatable, default: all)"),
    ] = None,
    on: Annotated[
        str | None,
        typer.Option("--date", help="Digest date as YYYY-MM-DD (default: today)"),
    ] = None,
    rich_output: Annotated[
        Path | None,
        typer.Option("--rich-output", "-o", help="Also write the HTML digest to this file"),
    ] = None,
) -> None:
    """Print a digest of the selected tasks, grouped by assignee."""
    settings = get_settings(profile=profile)

    try:
        day = date.fromisoformat(on) if on else date.today()
    except ValueError as exc:
        rprint(f"[red]Invalid --date '{on}'. Expected YYYY-MM-DD.[/red]")
        raise typer.Exit(2) from exc

    if flat:
        tasks = _load_flat(settings, list_ids)
    else:
        batch = _load_batch(settings, resolve_sources(settings, list_ids, lists_json, subtasks))
        tasks = batch.all_tasks()

    selected = set(select) if select else {t.id for t in tasks}
    if not any(t.id in selected for t in tasks):
        rprint("[yellow]Nothing to export.[/yellow]")
        raise typer.Exit(1)

    copy_selection(tasks, selected, ConsoleSink(rich_output), day)


@app.command("set-default")
def set_default(
    profile: Annotated[str, typer.Argument(help="Profile name to set as default")],
) -> None:
    """Set the default profile in ~/.config/cte/config.toml."""
    if not CONFIG_PATH.exists():
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        doc = tomlkit.document()
        doc.add("default_profile", profile)
        CONFIG_PATH.write_text(tomlkit.dumps(doc))
        rprint(f'[green]✓[/green] Default profile set to "{profile}" in {CONFIG_PATH}')
        return

    doc = tomlkit.load(CONFIG_PATH.open())
    profiles = _list_profiles(doc)
    if profile not in profiles:
        rprint(f"[red]Profile '{profile}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}[/red]")
        raise typer.Exit(1)

    doc["default_profile"] = profile
    CONFIG_PATH.write_text(tomlkit.dumps(doc))
    rprint(f'[green]✓[/green] Default profile set to "{profile}" in {CONFIG_PATH}')


@app.command("config-show")
def config_show(profile: ProfileOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings(profile=profile)

    def mask(val: str | None) -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"pk_...{val[-5:]}"

    def show(val: object) -> str:
        if val is None or val == []:
            return "[dim](not set)[/dim]"
        return ", ".join(val) if isinstance(val, list) else str(val)

    table = Table(title="CTE Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("default_profile", show(settings.default_profile))
    table.add_row(
        "clickup_api_token",
        mask(settings.clickup_api_token.get_secret_value() if settings.clickup_api_token else None),
    )
    for name in (
        "clickup_team_id",
        "list_ids",
        "include_subtasks",
        "include_closed",
        "status_filter_in_query",
        "assignee_ids",
        "filter_mode",
        "allowed_statuses",
        "tag_field",
        "tag_value",
        "tag_field_id",
        "max_tasks_per_list",
        "team_list_marker",
        "request_timeout",
        "source_timeout",
    ):
        table.add_row(name, show(getattr(settings, name)))

    rprint(table)
