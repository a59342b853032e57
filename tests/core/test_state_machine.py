"""Task state machine tests

1. transition table: every legal and illegal pair
2. transition(): conditional update + STATUS_CHANGED in one transaction
3. conflicts and unknown tasks
"""

import itertools

import pytest
from fieldops.core.exceptions import ConflictError, IllegalTransitionError, TaskNotFoundError
from fieldops.core.models import (
    TERMINAL_STATES,
    EventAction,
    TaskStatus,
    is_legal,
    task_topic,
)
from fieldops.core.state_machine import TaskStateMachine

LEGAL = {
    (TaskStatus.PREPARING, TaskStatus.READY),
    (TaskStatus.READY, TaskStatus.IN_PROGRESS),
    (TaskStatus.IN_PROGRESS, TaskStatus.ON_HOLD),
    (TaskStatus.ON_HOLD, TaskStatus.IN_PROGRESS),
    (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED),
}


class TestTransitionTable:
    @pytest.mark.parametrize("pair", sorted(LEGAL))
    def test_legal_pairs(self, pair):
        assert is_legal(*pair) is True
        assert TaskStateMachine.is_legal(*pair) is True

    @pytest.mark.parametrize(
        "pair",
        [p for p in itertools.product(TaskStatus, repeat=2) if p not in LEGAL],
    )
    def test_illegal_pairs(self, pair):
        assert is_legal(*pair) is False

    def test_completed_is_terminal(self):
        assert TERMINAL_STATES == {TaskStatus.COMPLETED}
        assert not any(is_legal(TaskStatus.COMPLETED, s) for s in TaskStatus)

    def test_on_hold_only_through_in_progress(self):
        sources = {s for s in TaskStatus if is_legal(s, TaskStatus.ON_HOLD)}
        targets = {s for s in TaskStatus if is_legal(TaskStatus.ON_HOLD, s)}
        assert sources == {TaskStatus.IN_PROGRESS}
        assert targets == {TaskStatus.IN_PROGRESS}


class TestTransition:
    async def test_transition_updates_status_and_logs_event(self, store_group, make_task):
        task = await make_task(TaskStatus.PREPARING)
        machine = TaskStateMachine(store_group)

        updated = await machine.transition(
            task.task_id, TaskStatus.PREPARING, TaskStatus.READY, "dispatcher-2", reason="scheduled"
        )

        assert updated.status == TaskStatus.READY
        page = await store_group.event_store.list_by_topic(task_topic(task.task_id))
        last = page.events[-1]
        assert last.action == EventAction.STATUS_CHANGED
        assert last.actor_id == "dispatcher-2"
        assert last.payload == {
            "fromStatus": "PREPARING",
            "toStatus": "READY",
            "reason": "scheduled",
            "checkOut": None,
        }

    async def test_started_at_set_on_first_in_progress(self, make_task):
        task = await make_task(TaskStatus.IN_PROGRESS)
        assert task.started_at is not None
        assert task.completed_at is None

    async def test_completed_sets_completed_at(self, make_task):
        task = await make_task(TaskStatus.COMPLETED)
        assert task.status == TaskStatus.COMPLETED
        assert task.completed_at is not None

    async def test_resume_from_hold_keeps_started_at(self, store_group, make_task):
        task = await make_task(TaskStatus.ON_HOLD)
        machine = TaskStateMachine(store_group)
        resumed = await machine.transition(
            task.task_id, TaskStatus.ON_HOLD, TaskStatus.IN_PROGRESS, "worker-1"
        )
        assert resumed.started_at == task.started_at

    async def test_illegal_transition_fails_fast(self, store_group, make_task):
        task = await make_task(TaskStatus.PREPARING)
        machine = TaskStateMachine(store_group)

        with pytest.raises(IllegalTransitionError) as exc_info:
            await machine.transition(
                task.task_id, TaskStatus.PREPARING, TaskStatus.COMPLETED, "worker-1"
            )
        assert exc_info.value.from_status == "PREPARING"
        assert exc_info.value.to_status == "COMPLETED"

        page = await store_group.event_store.list_by_topic(task_topic(task.task_id))
        assert [e.action for e in page.events] == [EventAction.TASK_CREATED]

    async def test_stale_expected_status_conflicts(self, store_group, make_task):
        task = await make_task(TaskStatus.READY)
        machine = TaskStateMachine(store_group)

        with pytest.raises(ConflictError):
            await machine.transition(
                task.task_id, TaskStatus.IN_PROGRESS, TaskStatus.ON_HOLD, "worker-1"
            )

        current = await store_group.task_store.get_task(task.task_id)
        assert current.status == TaskStatus.READY
        events = await store_group.event_store.list_by_topic(task_topic(task.task_id))
        assert len(events.events) == 2

    async def test_unknown_task(self, store_group):
        machine = TaskStateMachine(store_group)
        with pytest.raises(TaskNotFoundError):
            await machine.transition(
                "01J00000000000000000000000", TaskStatus.PREPARING, TaskStatus.READY, "x"
            )

    async def test_events_have_increasing_topic_seq(self, store_group, make_task):
        task = await make_task(TaskStatus.COMPLETED)
        page = await store_group.event_store.list_by_topic(task_topic(task.task_id))
        assert [e.topic_seq for e in page.events] == [1, 2, 3, 4]
