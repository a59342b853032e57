"""TaskService -- task creation, queries and expected revenue

Task creation writes the task row and its TASK_CREATED event in one
transaction, so a task never exists without the first entry of its log.
"""

from datetime import UTC, datetime
from decimal import Decimal

import structlog
from fieldops.core.config import FieldOpsSettings
from fieldops.core.exceptions import InvalidTaskStateError, TaskNotFoundError, ValidationError
from fieldops.core.geo import validate_coordinate
from fieldops.core.models import (
    EventAction,
    ExpectedRevenueUpdatedPayload,
    GeoLocation,
    PaymentSummary,
    Task,
    TaskCreatedPayload,
    TaskSnapshot,
    TaskStatus,
    parse_amount,
    parse_currency,
    task_topic,
)
from fieldops.core.state_machine import TaskStateMachine
from fieldops.core.store import StoreGroup, append_topic_events
from ulid import ULID

log = structlog.get_logger()

TITLE_MAX_LENGTH = 200


class TaskService:
    """Task business service"""

    def __init__(self, store_group: StoreGroup, settings: FieldOpsSettings | None = None) -> None:
        self._stores = store_group
        self._settings = settings or FieldOpsSettings()
        self._state_machine = TaskStateMachine(store_group, self._settings)

    async def create_task(
        self,
        title: str,
        actor_id: str,
        description: str = "",
        customer_id: str | None = None,
        site: GeoLocation | None = None,
        expected_revenue: Decimal | int | str | None = None,
        currency: str | None = None,
    ) -> Task:
        """Create a PREPARING task

        Raises:
            ValidationError: empty title, bad site coordinates or revenue
        """
        title = title.strip()
        if not title:
            raise ValidationError("Title must not be empty", field="title")
        if len(title) > TITLE_MAX_LENGTH:
            raise ValidationError(
                f"Title must be at most {TITLE_MAX_LENGTH} characters", field="title"
            )
        if site is not None:
            validate_coordinate(site.lat, site.lng)
        revenue = (
            parse_amount(expected_revenue, self._settings.max_payment_amount)
            if expected_revenue is not None
            else None
        )
        currency_code = parse_currency(currency or self._settings.default_currency)

        now = datetime.now(UTC)
        task = Task(
            task_id=str(ULID()),
            created_at=now,
            updated_at=now,
            status=TaskStatus.PREPARING,
            title=title,
            description=description,
            customer_id=customer_id,
            site=site,
            expected_revenue=revenue,
            expected_currency=currency_code,
        )

        async with self._stores.transaction(
            timeout_s=self._settings.transaction_timeout_s,
            lock_wait_s=self._settings.lock_wait_timeout_s,
        ) as tx:
            await tx.task_store.create_task(task)
            await append_topic_events(
                tx.event_store,
                task_topic(task.task_id),
                actor_id,
                [
                    (
                        EventAction.TASK_CREATED,
                        TaskCreatedPayload(title=title, customer_id=customer_id, site=site),
                    )
                ],
                now=now,
            )

        log.info("task_created", task_id=task.task_id, actor_id=actor_id)
        return task

    async def get_task(self, task_id: str) -> Task:
        """Load a task

        Raises:
            TaskNotFoundError: unknown task
        """
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def list_tasks(self, status: TaskStatus | str | None = None) -> list[Task]:
        """Tasks newest first, optionally filtered by status"""
        if status is not None:
            try:
                status = TaskStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown status: {status}", field="status") from None
        return await self._stores.task_store.list_tasks(status)

    async def get_snapshot(self, task_id: str) -> TaskSnapshot:
        """Task plus its payment summary"""
        task = await self.get_task(task_id)
        payment = await self._stores.payment_store.get_payment_for_task(task_id)
        total = await self._stores.payment_store.total_collected(task_id)
        return TaskSnapshot(
            task=task,
            payment_summary=PaymentSummary(
                expected_revenue=task.expected_revenue,
                total_collected=total,
                has_payment=payment is not None,
            ),
        )

    async def transition(
        self,
        task_id: str,
        from_expected: TaskStatus,
        to_status: TaskStatus,
        actor_id: str,
        reason: str | None = None,
    ) -> Task:
        """Dispatcher-driven status change (READY, IN_PROGRESS, ON_HOLD ...)"""
        return await self._state_machine.transition(
            task_id, from_expected, to_status, actor_id, reason=reason
        )

    async def set_expected_revenue(
        self,
        task_id: str,
        actor_id: str,
        amount: Decimal | int | str | None,
        currency: str | None = None,
    ) -> Task:
        """Set or clear a task's expected revenue

        Raises:
            ValidationError: bad amount or currency
            TaskNotFoundError: unknown task
            InvalidTaskStateError: the task is COMPLETED
        """
        new_amount = (
            parse_amount(amount, self._settings.max_payment_amount) if amount is not None else None
        )
        currency_code = parse_currency(currency) if currency is not None else None

        now = datetime.now(UTC)
        async with self._stores.transaction(
            timeout_s=self._settings.transaction_timeout_s,
            lock_wait_s=self._settings.lock_wait_timeout_s,
        ) as tx:
            task = await tx.task_store.get_task(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            currency_code = currency_code or task.expected_currency
            updated = await tx.task_store.set_expected_revenue(
                task_id, new_amount, currency_code, now
            )
            if not updated:
                raise InvalidTaskStateError(
                    "Expected revenue cannot be changed on a completed task",
                    task_id=task_id,
                    status=task.status.value,
                )
            await append_topic_events(
                tx.event_store,
                task_topic(task_id),
                actor_id,
                [
                    (
                        EventAction.EXPECTED_REVENUE_UPDATED,
                        ExpectedRevenueUpdatedPayload(
                            old_amount=task.expected_revenue,
                            new_amount=new_amount,
                            currency=currency_code,
                        ),
                    )
                ],
                now=now,
            )

        log.info(
            "expected_revenue_updated",
            task_id=task_id,
            actor_id=actor_id,
            new_amount=new_amount,
        )
        return await self.get_task(task_id)

