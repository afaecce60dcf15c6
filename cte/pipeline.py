"""Fetch → filter → normalize → rank, for a batch of lists.

Every list is fetched concurrently. A list that fails only empties its own
slot in the batch; the batch itself succeeds. Cancelling the coroutine
cancels all in-flight requests and nothing partial is returned.
"""

import asyncio
import logging
from collections.abc import Awaitable, Sequence
from typing import TypeVar

import httpx

from cte.filtering import StatusFilter, policy_from_settings, select_tasks
from cte.models import ListInfo, ListRef, NormalizedTask, RankedBatch, RawTask, SourceDescriptor, SourceResult
from cte.providers.base import TaskSource
from cte.ranking import normalize_and_rank
from cte.settings import CteSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that are contained to a single list
SOURCE_ERRORS = (httpx.HTTPError, RuntimeError, ValueError)


async def _attempt(call: Awaitable[T]) -> tuple[T | None, Exception | None]:
    try:
        return await call, None
    except SOURCE_ERRORS as exc:
        return None, exc


def describe_error(exc: BaseException) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code} {exc.response.reason_phrase}".strip()
    return str(exc) or type(exc).__name__


def _attach_list(task: RawTask, info: ListInfo, resolved: bool) -> RawTask:
    """Point the task at its list. Keeps the task's own list name if the metadata lookup failed."""
    if not resolved and task.list_ref and task.list_ref.name:
        return task
    return task.model_copy(update={"list_ref": ListRef(id=info.id, name=info.name)})


async def _collect_source(
    provider: TaskSource,
    source: SourceDescriptor,
    policy: StatusFilter,
    settings: CteSettings,
) -> SourceResult:
    list_id = source.source_id
    (info, info_error), (raw, tasks_error) = await asyncio.gather(
        _attempt(provider.get_list(list_id)),
        _attempt(provider.list_tasks(list_id, source.include_subtasks)),
    )

    if info_error is not None:
        logger.warning("Could not load metadata for list %s: %s", list_id, describe_error(info_error))
        info = ListInfo(id=list_id)

    if tasks_error is not None:
        logger.warning("Failed to fetch tasks from list %s: %s", list_id, describe_error(tasks_error))
        return SourceResult(source_id=list_id, label=info.label, status="failed", error=describe_error(tasks_error))

    selected = select_tasks(raw, policy, settings.max_tasks_per_list)
    owned = [_attach_list(t, info, info_error is None) for t in selected]
    tasks = normalize_and_rank(owned, settings.team_list_marker)
    logger.debug("List %s: kept %d of %d task(s)", list_id, len(tasks), len(raw))

    if info_error is not None:
        return SourceResult(
            source_id=list_id,
            label=info.label,
            tasks=tasks,
            status="degraded",
            error=describe_error(info_error),
        )
    return SourceResult(source_id=list_id, label=info.label, tasks=tasks)


async def _fetch_source(
    provider: TaskSource,
    source: SourceDescriptor,
    policy: StatusFilter,
    settings: CteSettings,
) -> SourceResult:
    if settings.source_timeout is None:
        return await _collect_source(provider, source, policy, settings)
    try:
        return await asyncio.wait_for(_collect_source(provider, source, policy, settings), settings.source_timeout)
    except asyncio.TimeoutError:
        logger.warning("List %s timed out after %ss", source.source_id, settings.source_timeout)
        return SourceResult(
            source_id=source.source_id,
            label=ListInfo(id=source.source_id).label,
            status="failed",
            error=f"timed out after {settings.source_timeout}s",
        )


async def fetch_ranked_tasks(
    sources: Sequence[SourceDescriptor],
    provider: TaskSource,
    settings: CteSettings,
) -> RankedBatch:
    """Fetch every list in ``sources`` and rank each one independently."""
    policy = policy_from_settings(settings)
    results = await asyncio.gather(*(_fetch_source(provider, s, policy, settings) for s in sources))
    return RankedBatch(results={r.source_id: r for r in results})


async def fetch_ranked_flat(
    provider: TaskSource,
    settings: CteSettings,
    list_ids: Sequence[str] | None = None,
) -> list[NormalizedTask]:
    """One workspace-wide query ranked as a single list.

    Unlike fetch_ranked_tasks there is only one request, so its failure fails
    the whole call.
    """
    ids = list(list_ids) if list_ids is not None else list(settings.list_ids)
    raw = await provider.query_team_tasks(ids or None)

    policy = policy_from_settings(settings)
    by_list: dict[str, list[RawTask]] = {}
    for task in raw:
        by_list.setdefault(task.list_ref.id if task.list_ref else "", []).append(task)
    kept = {t.id for group in by_list.values() for t in select_tasks(group, policy, settings.max_tasks_per_list)}

    return normalize_and_rank([t for t in raw if t.id in kept], settings.team_list_marker)
