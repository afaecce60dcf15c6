"""Raw ClickUp task → NormalizedTask, and BV/hour ranking.

Pure functions - no I/O.
"""

from collections.abc import Iterable

from cte.fields import BV_PER_HOUR, STAKEHOLDER, TEAM, as_person, as_score, as_text, find_field, first_name
from cte.models import UNASSIGNED, UNKNOWN_LIST, NormalizedTask, RawTask

TEAM_LIST_MARKER = "other teams"


def is_cross_team(source_name: str, marker: str = TEAM_LIST_MARKER) -> bool:
    return marker.casefold() in source_name.casefold()


def normalize_task(task: RawTask, team_list_marker: str = TEAM_LIST_MARKER) -> NormalizedTask:
    source_name = task.list_ref.name if task.list_ref and task.list_ref.name else UNKNOWN_LIST
    assignee = first_name(task.assignees[0].display_name) if task.assignees else None

    team = None
    if is_cross_team(source_name, team_list_marker):
        team = as_text(find_field(task.custom_fields, TEAM))

    return NormalizedTask(
        id=task.id,
        name=task.name,
        status=task.status.status,
        assignee=assignee or UNASSIGNED,
        stakeholder=as_person(find_field(task.custom_fields, STAKEHOLDER)) or UNASSIGNED,
        team=team,
        priority_score=as_score(find_field(task.custom_fields, BV_PER_HOUR)),
        url=task.url,
        time_estimate_ms=task.time_estimate,
        source_name=source_name,
    )


def rank_tasks(tasks: Iterable[NormalizedTask]) -> list[NormalizedTask]:
    """Sort by priority score, highest first. Ties keep fetch order."""
    return sorted(tasks, key=lambda t: t.priority_score, reverse=True)


def normalize_and_rank(tasks: Iterable[RawTask], team_list_marker: str = TEAM_LIST_MARKER) -> list[NormalizedTask]:
    return rank_tasks(normalize_task(t, team_list_marker) for t in tasks)
