"""Task Domain Model

The task row owns the current status only. Everything that happened to the
task lives in the event log; status changes go through the state machine.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from .enums import TaskStatus
from .geo import GeoLocation


class Task(BaseModel):
    """Work order performed by mobile workers"""

    task_id: str = Field(description="ULID")
    created_at: datetime
    updated_at: datetime
    status: TaskStatus = Field(default=TaskStatus.PREPARING)
    title: str = Field(default="")
    description: str = Field(default="")
    customer_id: str | None = Field(default=None, description="Opaque customer reference")
    site: GeoLocation | None = Field(default=None, description="Job site location")
    expected_revenue: Decimal | None = Field(default=None)
    expected_currency: str = Field(default="VND")
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @model_validator(mode="after")
    def _completed_at_matches_status(self) -> "Task":
        if (self.status == TaskStatus.COMPLETED) != (self.completed_at is not None):
            raise ValueError("completed_at must be set if and only if status is COMPLETED")
        return self


class PaymentSummary(BaseModel):
    """Payment figures shown next to a task"""

    expected_revenue: Decimal | None = None
    total_collected: Decimal = Decimal("0")
    has_payment: bool = False


class TaskSnapshot(BaseModel):
    """Read model for dashboards: the task plus its payment summary"""

    task: Task
    payment_summary: PaymentSummary
