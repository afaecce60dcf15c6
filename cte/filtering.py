"""Selection rules applied to one list's raw tasks before normalization."""

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, field_validator

from cte.fields import find_field, value_equals
from cte.models import RawTask
from cte.settings import DEFAULT_STATUSES, CteSettings

MAX_TASKS_PER_LIST = 15


class StatusFilter(BaseModel):
    """Keep tasks whose status is in the allow-list. An empty allow-list keeps everything."""

    model_config = ConfigDict(frozen=True)

    allowed_statuses: frozenset[str] = frozenset(DEFAULT_STATUSES)

    @field_validator("allowed_statuses", mode="before")
    @classmethod
    def _casefold(cls, value: Iterable[str]) -> frozenset[str]:
        return frozenset(s.strip().casefold() for s in value)

    def accepts(self, task: RawTask) -> bool:
        if not self.allowed_statuses:
            return True
        return task.status.status.casefold() in self.allowed_statuses


class StatusAndTagFilter(StatusFilter):
    """Status allow-list plus a custom field equality predicate (e.g. team == 5)."""

    tag_field: str = "team"
    tag_value: str | None = None  # None disables the predicate

    def accepts(self, task: RawTask) -> bool:
        if not super().accepts(task):
            return False
        if self.tag_value is None:
            return True
        return value_equals(find_field(task.custom_fields, self.tag_field), self.tag_value)


def policy_from_settings(settings: CteSettings) -> StatusFilter:
    match settings.filter_mode:
        case "status_and_tag":
            return StatusAndTagFilter(
                allowed_statuses=settings.allowed_statuses,
                tag_field=settings.tag_field,
                tag_value=settings.tag_value,
            )
        case _:
            return StatusFilter(allowed_statuses=settings.allowed_statuses)


def select_tasks(
    tasks: Iterable[RawTask],
    policy: StatusFilter | None = None,
    limit: int = MAX_TASKS_PER_LIST,
) -> list[RawTask]:
    """Filter, then truncate to ``limit``. Relative order is preserved."""
    kept = [t for t in tasks if policy is None or policy.accepts(t)]
    return kept[:limit]
