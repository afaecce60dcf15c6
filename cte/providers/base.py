"""Abstract base class for task sources."""

from abc import ABC, abstractmethod

from cte.models import ListInfo, RawTask


class TaskSource(ABC):
    @abstractmethod
    async def get_list(self, list_id: str) -> ListInfo: ...

    @abstractmethod
    async def list_tasks(self, list_id: str, include_subtasks: bool = False) -> list[RawTask]: ...

    @abstractmethod
    async def query_team_tasks(self, list_ids: list[str] | None = None) -> list[RawTask]: ...
