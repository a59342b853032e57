"""fieldops core domain models -- public type exports"""

from .attachment import Attachment, AttachmentRef, UploadFile
from .enums import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    AttachmentCategory,
    EventAction,
    TaskStatus,
    is_legal,
)
from .event import Event, EventPage, task_topic
from .geo import GeoLocation
from .payloads import (
    PAYLOAD_MODELS,
    CommentedPayload,
    ExpectedRevenueUpdatedPayload,
    FieldVisitPayload,
    PaymentCollectedPayload,
    PayloadModel,
    StatusChangedPayload,
    TaskCreatedPayload,
    dump_payload,
    parse_payload,
)
from .payment import Payment, parse_amount, parse_currency
from .task import PaymentSummary, Task, TaskSnapshot

__all__ = [
    # enums
    "TaskStatus",
    "EventAction",
    "AttachmentCategory",
    # state machine table
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "is_legal",
    # task
    "Task",
    "TaskSnapshot",
    "PaymentSummary",
    "GeoLocation",
    # event
    "Event",
    "EventPage",
    "task_topic",
    # attachment
    "Attachment",
    "AttachmentRef",
    "UploadFile",
    # payment
    "Payment",
    "parse_amount",
    "parse_currency",
    # payloads
    "PAYLOAD_MODELS",
    "PayloadModel",
    "TaskCreatedPayload",
    "FieldVisitPayload",
    "StatusChangedPayload",
    "PaymentCollectedPayload",
    "CommentedPayload",
    "ExpectedRevenueUpdatedPayload",
    "dump_payload",
    "parse_payload",
]
