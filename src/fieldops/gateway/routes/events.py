"""Event log route

GET /api/tasks/{task_id}/events?cursor=&limit=: one page of a task's events in
(ts, event_id) order. Pass next_cursor back as cursor to resume.
"""

from fastapi import APIRouter, Depends, Query
from fieldops.core.exceptions import TaskNotFoundError
from fieldops.core.models import task_topic
from fieldops.core.store import StoreGroup
from fieldops.core.store.event_store import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

from ..deps import get_store_group

router = APIRouter()


@router.get("/api/tasks/{task_id}/events")
async def list_task_events(
    task_id: str,
    cursor: str | None = Query(default=None, description="event_id of the last event seen"),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    store_group: StoreGroup = Depends(get_store_group),
):
    if await store_group.task_store.get_task(task_id) is None:
        raise TaskNotFoundError(task_id)
    page = await store_group.event_store.list_by_topic(task_topic(task_id), cursor, limit)
    return page.model_dump(mode="json")
