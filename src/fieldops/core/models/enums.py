"""Enums -- task status state machine, event actions, attachment categories

VALID_TRANSITIONS is the single transition table consulted by is_legal.
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task lifecycle status"""

    PREPARING = "PREPARING"
    READY = "READY"
    IN_PROGRESS = "IN_PROGRESS"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"


# PREPARING -> READY -> IN_PROGRESS <-> ON_HOLD, IN_PROGRESS -> COMPLETED
VALID_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PREPARING: frozenset({TaskStatus.READY}),
    TaskStatus.READY: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.ON_HOLD, TaskStatus.COMPLETED}),
    TaskStatus.ON_HOLD: frozenset({TaskStatus.IN_PROGRESS}),
    # corrections to completed tasks go through a separate administrative flow
    TaskStatus.COMPLETED: frozenset(),
}

TERMINAL_STATES: frozenset[TaskStatus] = frozenset({TaskStatus.COMPLETED})


class EventAction(StrEnum):
    """Event log actions; payload shape depends on the action"""

    TASK_CREATED = "TASK_CREATED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    STATUS_CHANGED = "STATUS_CHANGED"
    PAYMENT_COLLECTED = "PAYMENT_COLLECTED"
    COMMENTED = "COMMENTED"
    EXPECTED_REVENUE_UPDATED = "EXPECTED_REVENUE_UPDATED"


class AttachmentCategory(StrEnum):
    """Why an attachment was uploaded"""

    CHECKIN = "CHECKIN"
    CHECKOUT = "CHECKOUT"
    INVOICE = "INVOICE"
    COMMENT = "COMMENT"


def is_legal(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """Whether from_status -> to_status is in the transition table

    Args:
        from_status: current status
        to_status: requested status

    Returns:
        True if the transition is legal
    """
    return to_status in VALID_TRANSITIONS.get(from_status, frozenset())
