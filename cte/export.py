"""Digest rendering for selected tasks: plain text and rich text (HTML)."""

import html
from collections.abc import Collection, Iterable
from datetime import date
from typing import Protocol

from pydantic import BaseModel, ConfigDict

from cte.models import UNASSIGNED, NormalizedTask

STATUS_EMOJI = {
    "stakeholder check": "🟣",
    "in progress": "🔵",
    "accepted": "🟢",
    "open": "⚪",
}

MS_PER_HOUR = 3_600_000
NO_ESTIMATE = "No estimate"
CONFIRMATION_REQUEST = "please confirm these are still the right priorities."


class ExportBundle(BaseModel):
    """Both clipboard encodings, complete before anything is written."""

    model_config = ConfigDict(frozen=True)

    plain: str
    rich: str
    task_count: int = 0


class ClipboardSink(Protocol):
    def write(self, bundle: ExportBundle) -> None: ...


def ordinal_suffix(day: int) -> str:
    if day % 100 in (11, 12, 13):
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def format_date_header(day: date) -> str:
    """October 18th, 2026"""
    return f"{day:%B} {day.day}{ordinal_suffix(day.day)}, {day.year}"


def format_estimate(ms: int | None) -> str:
    if not ms:
        return NO_ESTIMATE
    return f"{int(ms / MS_PER_HOUR + 0.5)}h"


def status_prefix(status: str) -> str:
    emoji = STATUS_EMOJI.get(status.casefold())
    return f"{emoji} " if emoji else ""


def group_by_assignee(tasks: Iterable[NormalizedTask]) -> dict[str, list[NormalizedTask]]:
    """Groups in first-appearance order; tasks keep their order inside a group."""
    groups: dict[str, list[NormalizedTask]] = {}
    for task in tasks:
        groups.setdefault(task.assignee, []).append(task)
    return groups


def stakeholder_mentions(tasks: Iterable[NormalizedTask]) -> str:
    seen: dict[str, None] = {}
    for task in tasks:
        if task.stakeholder != UNASSIGNED:
            seen.setdefault(task.stakeholder, None)
    return " ".join(f"@{name}" for name in seen)


def _team_tag(task: NormalizedTask) -> str:
    return f"[{task.team}] " if task.team else ""


def format_task_line(task: NormalizedTask) -> str:
    return (
        f"{status_prefix(task.status)}({task.stakeholder}) {_team_tag(task)}"
        f"{task.source_name} - {task.name} {task.url} ({format_estimate(task.time_estimate_ms)})"
    )


def format_task_line_rich(task: NormalizedTask) -> str:
    e = html.escape
    link = f'<a href="{e(task.url)}">{e(task.name)}</a>'
    return (
        f"{status_prefix(task.status)}({e(task.stakeholder)}) {e(_team_tag(task))}"
        f"{e(task.source_name)} - {link} {e(task.url)} ({format_estimate(task.time_estimate_ms)})"
    )


def _header_lines(tasks: list[NormalizedTask], day: date) -> list[str]:
    mentions = stakeholder_mentions(tasks)
    request = f"{mentions} {CONFIRMATION_REQUEST}" if mentions else CONFIRMATION_REQUEST.capitalize()
    return [f"Priorities for {format_date_header(day)}", "", request, ""]


def render_plain(tasks: list[NormalizedTask], day: date) -> str:
    lines = _header_lines(tasks, day)
    for assignee, group in group_by_assignee(tasks).items():
        lines.append(assignee)
        lines += [format_task_line(t) for t in group]
    return "\n".join(lines)


def render_rich(tasks: list[NormalizedTask], day: date) -> str:
    lines = [html.escape(line) for line in _header_lines(tasks, day)]
    for assignee, group in group_by_assignee(tasks).items():
        lines.append(f"<b>{html.escape(assignee)}</b>")
        lines += [format_task_line_rich(t) for t in group]
    return "<br>\n".join(lines)


def build_export(
    tasks: Iterable[NormalizedTask],
    selected_ids: Collection[str],
    day: date | None = None,
) -> ExportBundle:
    """Render the tasks whose id is in ``selected_ids``, in the order given."""
    day = day or date.today()
    chosen = [t for t in tasks if t.id in selected_ids]
    return ExportBundle(plain=render_plain(chosen, day), rich=render_rich(chosen, day), task_count=len(chosen))


def copy_selection(
    tasks: Iterable[NormalizedTask],
    selected_ids: Collection[str],
    sink: ClipboardSink,
    day: date | None = None,
) -> ExportBundle:
    """Build both encodings, then hand them to the sink in a single write."""
    bundle = build_export(tasks, selected_ids, day)
    sink.write(bundle)
    return bundle
