"""ClickUp REST API v2 provider."""

import json
import logging

import httpx

from cte.models import NO_FOLDER, UNKNOWN_LIST, ListInfo, RawTask
from cte.providers.base import TaskSource
from cte.settings import ConfigurationError, CteSettings

logger = logging.getLogger(__name__)

BASE_URL = "https://api.clickup.com/api/v2"


def _flag(value: bool) -> str:
    return "true" if value else "false"


class ClickUpProvider(TaskSource):
    def __init__(self, settings: CteSettings) -> None:
        if not settings.clickup_api_token:
            raise ConfigurationError("clickup_api_token is required")
        self._settings = settings
        # Personal tokens (pk_...) are sent bare, not as "Bearer <token>"
        self._headers = {
            "Authorization": settings.clickup_api_token.get_secret_value(),
            "Content-Type": "application/json",
        }

    async def _get(self, path: str, params: list[tuple[str, str]] | None = None) -> dict:
        async with httpx.AsyncClient(timeout=self._settings.request_timeout) as client:
            response = await client.get(
                f"{BASE_URL}{path}",
                headers=self._headers,
                params=params or [],
            )
        if response.status_code == 401:
            raise RuntimeError("ClickUp API returned 401. Check clickup_api_token for the active profile.")
        response.raise_for_status()
        return response.json()

    def _filter_params(self) -> list[tuple[str, str]]:
        """Query parameters shared by the list and team task endpoints."""
        s = self._settings
        params = [
            ("archived", "false"),
            ("include_closed", _flag(s.include_closed)),
        ]
        if s.status_filter_in_query:
            params += [("statuses[]", status) for status in s.allowed_statuses]
        params += [("assignees[]", assignee) for assignee in s.assignee_ids]
        if s.tag_field_id and s.tag_value is not None:
            custom_fields = [{"field_id": s.tag_field_id, "operator": "=", "value": s.tag_value}]
            params.append(("custom_fields", json.dumps(custom_fields)))
        return params

    def _tasks_from_body(self, data: dict) -> list[RawTask]:
        return [RawTask.model_validate(node) for node in data.get("tasks", [])]

    async def get_list(self, list_id: str) -> ListInfo:
        data = await self._get(f"/list/{list_id}")
        folder = data.get("folder") or {}
        # Lists created directly in a space sit in a hidden placeholder folder
        folder_name = NO_FOLDER if folder.get("hidden") else folder.get("name") or NO_FOLDER
        return ListInfo(id=list_id, name=data.get("name") or UNKNOWN_LIST, folder_name=folder_name)

    async def list_tasks(self, list_id: str, include_subtasks: bool = False) -> list[RawTask]:
        # NOTE: fetches page 0 only (up to 100 tasks). Lists are capped well below that.
        params = [*self._filter_params(), ("subtasks", _flag(include_subtasks)), ("page", "0")]
        data = await self._get(f"/list/{list_id}/task", params=params)
        tasks = self._tasks_from_body(data)
        logger.debug("Fetched %d task(s) from list %s", len(tasks), list_id)
        return tasks

    async def query_team_tasks(self, list_ids: list[str] | None = None) -> list[RawTask]:
        """Filtered team tasks: one request across the whole workspace."""
        team_id = self._settings.clickup_team_id
        if not team_id:
            raise ConfigurationError("clickup_team_id is required for workspace-wide queries")
        params = [
            *self._filter_params(),
            ("subtasks", _flag(self._settings.include_subtasks)),
            ("page", "0"),
        ]
        params += [("list_ids[]", list_id) for list_id in list_ids or []]
        data = await self._get(f"/team/{team_id}/task", params=params)
        tasks = self._tasks_from_body(data)
        logger.debug("Fetched %d task(s) from team %s", len(tasks), team_id)
        return tasks
