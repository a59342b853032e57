"""Task activity projection -- a downstream consumer of the event log

Folds a topic's events into a TaskActivity read model. Delivery is
at-least-once, so apply() is idempotent on event_id: an event seen before is
skipped and leaves the state untouched.
"""

import time
from datetime import datetime
from decimal import Decimal
from typing import cast

import structlog
from pydantic import BaseModel, Field

from .models.enums import EventAction, TaskStatus
from .models.event import Event
from .models.payloads import (
    FieldVisitPayload,
    PaymentCollectedPayload,
    StatusChangedPayload,
    parse_payload,
)
from .store.event_store import SqliteEventStore

log = structlog.get_logger()


class TaskActivity(BaseModel):
    """What a consumer knows about one task, rebuilt from its topic"""

    topic: str
    status: TaskStatus | None = None
    completed_at: datetime | None = None
    check_in_count: int = 0
    check_out_count: int = 0
    warning_count: int = 0
    payment_ids: list[str] = Field(default_factory=list)
    total_collected: Decimal = Decimal("0")
    comment_count: int = 0
    event_count: int = 0
    last_event_id: str | None = None


class TaskActivityProjection:
    """In-memory projection keyed by topic"""

    def __init__(self) -> None:
        self.activities: dict[str, TaskActivity] = {}
        self._applied: set[str] = set()

    def apply(self, event: Event) -> bool:
        """Fold one event into its topic's activity

        Returns:
            False if the event_id was already applied (nothing changed)
        """
        if event.event_id in self._applied:
            return False

        activity = self.activities.get(event.topic) or TaskActivity(topic=event.topic)
        update: dict = {
            "event_count": activity.event_count + 1,
            "last_event_id": event.event_id,
        }

        if event.action == EventAction.TASK_CREATED:
            update["status"] = TaskStatus.PREPARING
        elif event.action == EventAction.STATUS_CHANGED:
            payload = cast(StatusChangedPayload, parse_payload(event.action, event.payload))
            update["status"] = payload.to_status
            update["completed_at"] = event.ts if payload.to_status == TaskStatus.COMPLETED else None
            if payload.check_out is not None:
                update["check_out_count"] = activity.check_out_count + 1
                update["warning_count"] = activity.warning_count + len(payload.check_out.warnings)
        elif event.action in (EventAction.CHECKED_IN, EventAction.CHECKED_OUT):
            payload = cast(FieldVisitPayload, parse_payload(event.action, event.payload))
            if event.action == EventAction.CHECKED_IN:
                update["check_in_count"] = activity.check_in_count + 1
            else:
                update["check_out_count"] = activity.check_out_count + 1
            update["warning_count"] = activity.warning_count + len(payload.warnings)
        elif event.action == EventAction.PAYMENT_COLLECTED:
            payload = cast(PaymentCollectedPayload, parse_payload(event.action, event.payload))
            update["payment_ids"] = [*activity.payment_ids, payload.payment_id]
            update["total_collected"] = activity.total_collected + payload.amount
        elif event.action == EventAction.COMMENTED:
            update["comment_count"] = activity.comment_count + 1

        self.activities[event.topic] = activity.model_copy(update=update)
        self._applied.add(event.event_id)
        return True

    def get(self, topic: str) -> TaskActivity | None:
        return self.activities.get(topic)

    async def replay(
        self,
        event_store: SqliteEventStore,
        topic: str,
        since_cursor: str | None = None,
    ) -> int:
        """Apply every event of a topic from the log

        Returns:
            number of events that changed the projection
        """
        start_time = time.monotonic()
        applied = 0
        async for event in event_store.iter_topic(topic, since_cursor):
            if self.apply(event):
                applied += 1

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        log.info(
            "projection_replay_completed",
            topic=topic,
            applied=applied,
            elapsed_ms=elapsed_ms,
        )
        return applied

    async def rebuild_all(self, event_store: SqliteEventStore) -> int:
        """Drop all state and fold the entire log, topic by topic"""
        self.activities.clear()
        self._applied.clear()

        events = await event_store.get_all_events()
        for event in events:
            self.apply(event)

        log.info(
            "projection_rebuild_completed",
            topics=len(self.activities),
            events=len(events),
        )
        return len(events)
