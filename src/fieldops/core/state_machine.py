"""Task State Machine

Owns legal transitions and the conditional-update primitive. Two actors racing
on the same task are serialized by the WHERE status = expected clause, not by
row locks: exactly one update matches, the others get ConflictError.
"""

from datetime import UTC, datetime

import structlog

from .config import FieldOpsSettings
from .exceptions import ConflictError, IllegalTransitionError, TaskNotFoundError
from .models.enums import EventAction, TaskStatus, is_legal
from .models.event import Event, task_topic
from .models.payloads import FieldVisitPayload, PayloadModel, StatusChangedPayload
from .models.task import Task
from .store import StoreGroup, StoreSet, append_topic_events

log = structlog.get_logger()


class TaskStateMachine:
    """Status transitions for tasks"""

    def __init__(self, stores: StoreGroup, settings: FieldOpsSettings | None = None) -> None:
        self._stores = stores
        self._settings = settings or FieldOpsSettings()

    @staticmethod
    def is_legal(from_status: TaskStatus, to_status: TaskStatus) -> bool:
        """Pure predicate over the transition table"""
        return is_legal(from_status, to_status)

    async def transition(
        self,
        task_id: str,
        from_expected: TaskStatus,
        to_status: TaskStatus,
        actor_id: str,
        reason: str | None = None,
    ) -> Task:
        """Move a task from from_expected to to_status and log STATUS_CHANGED

        Raises:
            IllegalTransitionError: the pair is not in the transition table
            TaskNotFoundError: unknown task
            ConflictError: the stored status is no longer from_expected
            TransactionTimeoutError: the atomic phase ran out of budget
        """
        from_expected = TaskStatus(from_expected)
        to_status = TaskStatus(to_status)
        if not self.is_legal(from_expected, to_status):
            raise IllegalTransitionError(task_id, from_expected.value, to_status.value)

        async with self._stores.transaction(
            timeout_s=self._settings.transaction_timeout_s,
            lock_wait_s=self._settings.lock_wait_timeout_s,
        ) as tx:
            await self.transition_in_transaction(
                tx,
                task_id,
                from_expected,
                to_status,
                actor_id,
                reason=reason,
            )

        task = await self._stores.task_store.get_task(task_id)
        log.info(
            "task_status_changed",
            task_id=task_id,
            actor_id=actor_id,
            from_status=from_expected.value,
            to_status=to_status.value,
        )
        return task

    async def transition_in_transaction(
        self,
        tx: StoreSet,
        task_id: str,
        from_expected: TaskStatus,
        to_status: TaskStatus,
        actor_id: str,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> Event:
        """Conditional update + STATUS_CHANGED for a caller already inside the atomic scope"""
        now = now or datetime.now(UTC)
        await self.compare_and_set(tx, task_id, from_expected, to_status, actor_id, now)
        events = await append_topic_events(
            tx.event_store,
            task_topic(task_id),
            actor_id,
            [self.status_changed_entry(from_expected, to_status, reason)],
            now=now,
        )
        return events[0]

    async def compare_and_set(
        self,
        tx: StoreSet,
        task_id: str,
        from_expected: TaskStatus,
        to_status: TaskStatus,
        actor_id: str,
        now: datetime,
    ) -> Task:
        """The conditional write itself; must run inside the atomic scope

        Returns:
            the task as read back after the update

        Raises:
            TaskNotFoundError: unknown task
            ConflictError: zero rows matched
        """
        updated = await tx.task_store.update_status_if(
            task_id, from_expected, to_status, now
        )
        current = await tx.task_store.get_task(task_id)
        if current is None:
            raise TaskNotFoundError(task_id)
        if updated:
            return current
        log.info(
            "task_transition_conflict",
            task_id=task_id,
            actor_id=actor_id,
            expected_status=from_expected.value,
            current_status=current.status.value,
            to_status=to_status.value,
        )
        raise ConflictError(
            f"Task {task_id} is {current.status.value}, expected {from_expected.value}",
            task_id=task_id,
        )

    @staticmethod
    def status_changed_entry(
        from_status: TaskStatus,
        to_status: TaskStatus,
        reason: str | None = None,
        check_out: FieldVisitPayload | None = None,
    ) -> tuple[EventAction, PayloadModel]:
        return (
            EventAction.STATUS_CHANGED,
            StatusChangedPayload(
                from_status=from_status,
                to_status=to_status,
                reason=reason,
                check_out=check_out,
            ),
        )
