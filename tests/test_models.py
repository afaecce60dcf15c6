"""Tests for cte.models."""

import pytest

from cte.models import (
    CustomField,
    EmptyValue,
    ListInfo,
    NormalizedTask,
    NumberValue,
    OpaqueValue,
    RankedBatch,
    RawTask,
    SourceDescriptor,
    SourceListError,
    SourceResult,
    TextValue,
    UsersValue,
    classify_value,
    parse_source_list,
)

_TASK_NODE = {
    "id": "86a1",
    "name": "Fix invoice rounding",
    "status": {"status": "in progress", "color": "#4194f6"},
    "assignees": [{"id": 81234, "username": "Alice Smith", "email": "alice@example.com"}],
    "custom_fields": [
        {"id": "cf1", "name": "BV per hour", "type": "number", "value": "42.5"},
        {"id": "cf2", "name": "Stakeholder", "type": "users", "value": [{"id": 9, "username": "Carol King"}]},
    ],
    "url": "https://app.clickup.com/t/86a1",
    "time_estimate": 7200000,
    "list": {"id": "901", "name": "Sprint"},
    "date_created": "1700000000000",
}


def test_raw_task_from_api_node() -> None:
    task = RawTask.model_validate(_TASK_NODE)
    assert task.status.status == "in progress"
    assert task.assignees[0].id == "81234"
    assert task.list_ref is not None
    assert task.list_ref.name == "Sprint"
    assert task.time_estimate == 7200000


def test_raw_task_frozen() -> None:
    task = RawTask.model_validate(_TASK_NODE)
    with pytest.raises(Exception):
        task.name = "changed"  # type: ignore[misc]


def test_raw_task_defaults() -> None:
    task = RawTask.model_validate(
        {"id": "1", "name": "Bare", "status": {"status": "open"}, "url": "https://app.clickup.com/t/1"}
    )
    assert task.assignees == []
    assert task.custom_fields == []
    assert task.time_estimate is None
    assert task.list_ref is None


class TestClassifyValue:
    def test_empty(self) -> None:
        assert isinstance(classify_value(None), EmptyValue)
        assert isinstance(classify_value(""), EmptyValue)

    def test_number(self) -> None:
        value = classify_value(5)
        assert isinstance(value, NumberValue)
        assert value.number == 5.0

    def test_text(self) -> None:
        value = classify_value("5")
        assert isinstance(value, TextValue)
        assert value.text == "5"

    def test_user_list(self) -> None:
        value = classify_value([{"id": 1, "username": "Carol King", "email": "carol@example.com"}])
        assert isinstance(value, UsersValue)
        assert value.users[0].username == "Carol King"

    def test_single_user_object(self) -> None:
        value = classify_value({"id": 1, "username": "Carol King"})
        assert isinstance(value, UsersValue)
        assert len(value.users) == 1

    def test_other_structures_are_opaque(self) -> None:
        assert isinstance(classify_value({"foo": "bar"}), OpaqueValue)
        assert isinstance(classify_value(True), OpaqueValue)

    def test_custom_field_typed_value(self) -> None:
        field = CustomField(id="cf", name="team", value=5)
        assert isinstance(field.typed_value, NumberValue)


class TestParseSourceList:
    def test_bare_ids(self) -> None:
        sources = parse_source_list('["901", "902"]')
        assert sources == [
            SourceDescriptor(source_id="901"),
            SourceDescriptor(source_id="902"),
        ]

    def test_numeric_ids_become_strings(self) -> None:
        assert parse_source_list("[901]")[0].source_id == "901"

    def test_objects_with_subtasks(self) -> None:
        sources = parse_source_list('[{"id": "901", "subtasks": true}, "902"]')
        assert sources[0].include_subtasks is True
        assert sources[1].include_subtasks is False

    def test_default_subtasks_flag(self) -> None:
        assert parse_source_list('["901"]', include_subtasks=True)[0].include_subtasks is True

    def test_not_json_raises(self) -> None:
        with pytest.raises(SourceListError, match="Expected JSON array"):
            parse_source_list("901,902")

    def test_not_array_raises(self) -> None:
        with pytest.raises(SourceListError, match="Expected JSON array"):
            parse_source_list('{"id": "901"}')

    def test_bad_entry_raises(self) -> None:
        with pytest.raises(SourceListError, match="Unsupported list entry"):
            parse_source_list("[null]")

    @pytest.mark.parametrize("entry", ['{"id": null}', '{"id": {}}', '{"id": []}', '{"id": true}', '{"subtasks": true}'])
    def test_object_without_usable_id_raises(self, entry: str) -> None:
        with pytest.raises(SourceListError, match="Unsupported list entry"):
            parse_source_list(f"[{entry}]")

    def test_empty_id_raises(self) -> None:
        with pytest.raises(SourceListError):
            parse_source_list('[""]')

    def test_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_source_list("not json")


def test_list_info_label() -> None:
    assert ListInfo(id="901", name="Sprint", folder_name="Platform").label == "Sprint - Platform"
    assert ListInfo(id="901").label == "Unknown List - Unknown Folder"


def test_normalized_task_defaults() -> None:
    task = NormalizedTask(id="1", name="T", status="open", url="https://x", source_name="Sprint")
    assert task.assignee == "Unassigned"
    assert task.stakeholder == "Unassigned"
    assert task.team is None
    assert task.priority_score == 0.0


def test_display_score_rounds_half_up(accepted_task: NormalizedTask) -> None:
    assert accepted_task.display_score == 42
    assert accepted_task.model_copy(update={"priority_score": 2.5}).display_score == 3


def test_ranked_batch_views(accepted_task: NormalizedTask, unestimated_task: NormalizedTask) -> None:
    batch = RankedBatch(
        results={
            "901": SourceResult(source_id="901", label="Sprint - Platform", tasks=[accepted_task]),
            "902": SourceResult(source_id="902", label="Unknown List - Unknown Folder", status="failed", error="x"),
            "903": SourceResult(source_id="903", label="Ops - Infra", tasks=[unestimated_task]),
        }
    )
    assert batch.list_names["901"] == "Sprint - Platform"
    assert batch.tasks_by_list["902"] == []
    assert [t.id for t in batch.all_tasks()] == ["86a1", "86a2"]
