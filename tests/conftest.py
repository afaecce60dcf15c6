"""Shared test fixtures."""

import pytest

from cte.models import NormalizedTask
from cte.settings import CteSettings


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> CteSettings:
    for var in ("CTE_TAG_VALUE", "CTE_FILTER_MODE", "CTE_SOURCE_TIMEOUT", "CTE_CLICKUP_TEAM_ID"):
        monkeypatch.delenv(var, raising=False)
    return CteSettings(clickup_api_token="pk_test_token")  # type: ignore[call-arg]


@pytest.fixture
def accepted_task() -> NormalizedTask:
    return NormalizedTask(
        id="86a1",
        name="Fix invoice rounding",
        status="accepted",
        assignee="Alice",
        stakeholder="Carol",
        priority_score=42.4,
        url="https://app.clickup.com/t/86a1",
        time_estimate_ms=7_200_000,
        source_name="Sprint",
    )


@pytest.fixture
def unestimated_task() -> NormalizedTask:
    return NormalizedTask(
        id="86a2",
        name="Migrate webhooks",
        status="in progress",
        assignee="Bob",
        stakeholder="Dave",
        priority_score=12.0,
        url="https://app.clickup.com/t/86a2",
        time_estimate_ms=None,
        source_name="Sprint",
    )


@pytest.fixture
def team_task() -> NormalizedTask:
    return NormalizedTask(
        id="86a3",
        name="Audit export",
        status="stakeholder check",
        assignee="Alice",
        stakeholder="Erin",
        team="5",
        priority_score=30.0,
        url="https://app.clickup.com/t/86a3",
        time_estimate_ms=3_600_000,
        source_name="From other teams",
    )
