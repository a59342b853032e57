"""Task routes

POST /api/tasks: create a task
GET /api/tasks: list tasks, optional status filter
GET /api/tasks/{task_id}: task snapshot with payment summary
POST /api/tasks/{task_id}/transitions: state machine transition
PUT /api/tasks/{task_id}/expected-revenue: set or clear expected revenue
"""

from fastapi import APIRouter, Depends, Query
from fieldops.core.models import GeoLocation, TaskStatus
from pydantic import BaseModel, Field
from starlette.responses import JSONResponse

from ..deps import get_task_service
from ..services.task_service import TaskService

router = APIRouter()


class CreateTaskBody(BaseModel):
    actor_id: str = Field(min_length=1)
    title: str
    description: str = ""
    customer_id: str | None = None
    site: GeoLocation | None = None
    expected_revenue: str | int | None = None
    currency: str | None = None


class TransitionBody(BaseModel):
    actor_id: str = Field(min_length=1)
    from_status: TaskStatus
    to_status: TaskStatus
    reason: str | None = None


class ExpectedRevenueBody(BaseModel):
    actor_id: str = Field(min_length=1)
    amount: str | int | None
    currency: str | None = None


@router.post("/api/tasks", status_code=201)
async def create_task(
    body: CreateTaskBody,
    service: TaskService = Depends(get_task_service),
):
    task = await service.create_task(
        title=body.title,
        actor_id=body.actor_id,
        description=body.description,
        customer_id=body.customer_id,
        site=body.site,
        expected_revenue=body.expected_revenue,
        currency=body.currency,
    )
    return JSONResponse(status_code=201, content=task.model_dump(mode="json"))


@router.get("/api/tasks")
async def list_tasks(
    status: str | None = Query(default=None, description="Filter by status"),
    service: TaskService = Depends(get_task_service),
):
    """Tasks newest first"""
    tasks = await service.list_tasks(status)
    return {"tasks": [t.model_dump(mode="json") for t in tasks]}


@router.get("/api/tasks/{task_id}")
async def get_task(
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    snapshot = await service.get_snapshot(task_id)
    return snapshot.model_dump(mode="json")


@router.post("/api/tasks/{task_id}/transitions")
async def transition_task(
    task_id: str,
    body: TransitionBody,
    service: TaskService = Depends(get_task_service),
):
    task = await service.transition(
        task_id, body.from_status, body.to_status, body.actor_id, reason=body.reason
    )
    return task.model_dump(mode="json")


@router.put("/api/tasks/{task_id}/expected-revenue")
async def set_expected_revenue(
    task_id: str,
    body: ExpectedRevenueBody,
    service: TaskService = Depends(get_task_service),
):
    task = await service.set_expected_revenue(
        task_id, body.actor_id, body.amount, currency=body.currency
    )
    return task.model_dump(mode="json")
