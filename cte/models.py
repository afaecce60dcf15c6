"""Shared pydantic models: the contract between the provider, the pipeline and the formatter."""

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

UNASSIGNED = "Unassigned"


# ---------------------------------------------------------------------------
# Inbound
# ---------------------------------------------------------------------------


class SourceListError(ValueError):
    """Raised when a caller-supplied source list is not well-formed."""


class SourceDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_id: str = Field(min_length=1)
    include_subtasks: bool = False


def _is_list_id(value: Any) -> bool:
    return isinstance(value, (str, int)) and not isinstance(value, bool)


def parse_source_list(raw: str, include_subtasks: bool = False) -> list[SourceDescriptor]:
    """Parse a JSON source list into descriptors.

    Accepts an array whose elements are either list ids (``"901"``) or objects
    (``{"id": "901", "subtasks": true}``). Bare ids take ``include_subtasks``.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SourceListError(f"Invalid list id format. Expected JSON array: {exc}") from exc
    if not isinstance(data, list):
        raise SourceListError("Invalid list id format. Expected JSON array.")

    sources = []
    for item in data:
        if _is_list_id(item):
            sources.append({"source_id": str(item), "include_subtasks": include_subtasks})
        elif isinstance(item, dict) and _is_list_id(item.get("id")):
            sources.append({"source_id": str(item["id"]), "include_subtasks": item.get("subtasks", include_subtasks)})
        else:
            raise SourceListError(f"Unsupported list entry: {item!r}")
    try:
        return [SourceDescriptor(**s) for s in sources]
    except ValidationError as exc:
        raise SourceListError(str(exc)) from exc


# ---------------------------------------------------------------------------
# Raw records (as received from ClickUp)
# ---------------------------------------------------------------------------


class TaskStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str
    color: str | None = None


class UserRef(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str | None = None
    username: str | None = None
    email: str | None = None

    @property
    def display_name(self) -> str | None:
        return self.username or self.email


class ListRef(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str
    name: str | None = None


UNKNOWN_LIST = "Unknown List"
UNKNOWN_FOLDER = "Unknown Folder"
NO_FOLDER = "No Folder"


class ListInfo(BaseModel):
    """List metadata from GET /list/{id}."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = UNKNOWN_LIST
    folder_name: str = UNKNOWN_FOLDER

    @property
    def label(self) -> str:
        return f"{self.name} - {self.folder_name}"


# Custom field values come back as whatever the field type dictates. They are
# classified once into one of these variants; coercion happens in cte.fields.


class EmptyValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["empty"] = "empty"


class TextValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str


class NumberValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["number"] = "number"
    number: float


class UsersValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["users"] = "users"
    users: list[UserRef]


class OpaqueValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["opaque"] = "opaque"
    raw: Any


FieldValue = Annotated[
    EmptyValue | TextValue | NumberValue | UsersValue | OpaqueValue,
    Field(discriminator="kind"),
]


def _looks_like_user(item: Any) -> bool:
    return isinstance(item, dict) and ("username" in item or "email" in item)


def classify_value(raw: Any) -> FieldValue:
    """Sort a raw custom field value into its variant."""
    if raw is None or raw == "" or raw == []:
        return EmptyValue()
    if isinstance(raw, bool):
        return OpaqueValue(raw=raw)
    if isinstance(raw, (int, float)):
        return NumberValue(number=raw)
    if isinstance(raw, str):
        return TextValue(text=raw)
    if _looks_like_user(raw):
        return UsersValue(users=[UserRef.model_validate(raw)])
    if isinstance(raw, list) and all(_looks_like_user(item) for item in raw):
        return UsersValue(users=[UserRef.model_validate(item) for item in raw])
    return OpaqueValue(raw=raw)


class CustomField(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: str | None = None
    value: Any = None

    @property
    def typed_value(self) -> FieldValue:
        return classify_value(self.value)


class RawTask(BaseModel):
    """A task exactly as ClickUp returns it (the fields we read)."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True, populate_by_name=True)

    id: str
    name: str
    status: TaskStatus
    assignees: list[UserRef] = []
    custom_fields: list[CustomField] = []
    url: str
    time_estimate: int | None = None  # milliseconds
    list_ref: ListRef | None = Field(default=None, alias="list")
    parent: str | None = None


# ---------------------------------------------------------------------------
# Normalized / ranked
# ---------------------------------------------------------------------------


class NormalizedTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    status: str
    assignee: str = UNASSIGNED
    stakeholder: str = UNASSIGNED
    team: str | None = None  # only for cross-team lists
    priority_score: float = 0.0  # "BV per hour"
    url: str
    time_estimate_ms: int | None = None
    source_name: str

    @property
    def display_score(self) -> int:
        # half-up, matching how the digest rounds hours
        return int(self.priority_score + 0.5)


SourceStatus = Literal["ok", "degraded", "failed"]


class SourceResult(BaseModel):
    """Outcome for one list in a batch."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    label: str  # "<list name> - <folder name>"
    tasks: list[NormalizedTask] = []
    status: SourceStatus = "ok"
    error: str | None = None


class RankedBatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    results: dict[str, SourceResult] = {}

    @property
    def tasks_by_list(self) -> dict[str, list[NormalizedTask]]:
        return {source_id: result.tasks for source_id, result in self.results.items()}

    @property
    def list_names(self) -> dict[str, str]:
        return {source_id: result.label for source_id, result in self.results.items()}

    def all_tasks(self) -> list[NormalizedTask]:
        """Every task in source order, each source already ranked."""
        return [task for result in self.results.values() for task in result.tasks]
