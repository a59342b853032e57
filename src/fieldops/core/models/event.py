"""Event Domain Model

The events table is append-only: rows are never updated or deleted.
event_id is a ULID; ordering within a topic is (ts, event_id).
topic_seq increases strictly within a topic.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import EventAction


def task_topic(task_id: str) -> str:
    """Topic under which all events of a task are recorded"""
    return f"TASK_{task_id}"


class Event(BaseModel):
    """One immutable occurrence on a topic"""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(description="ULID")
    topic: str = Field(description="Entity the event concerns, e.g. TASK_<id>")
    topic_seq: int = Field(description="Sequence number within the topic")
    action: EventAction
    actor_id: str = Field(description="Who caused the event")
    ts: datetime
    payload: dict[str, Any] = Field(default_factory=dict)


class EventPage(BaseModel):
    """A page of events plus the cursor to resume after it"""

    events: list[Event]
    next_cursor: str | None = Field(
        default=None,
        description="event_id to resume after; the request cursor when the page is empty",
    )
    has_more: bool = Field(default=False, description="The page was full")
