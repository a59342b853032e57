"""Event payload variants -- one model per EventAction

Payloads are stored as schemaless JSON, so a new action needs no migration.
At the application boundary they are typed: PAYLOAD_MODELS maps every action
to its model and parse_payload / dump_payload convert between the two.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .attachment import AttachmentRef
from .enums import EventAction, TaskStatus
from .geo import GeoLocation


class PayloadModel(BaseModel):
    """Base for payloads: camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class TaskCreatedPayload(PayloadModel):
    """TASK_CREATED"""

    title: str
    customer_id: str | None = None
    site: GeoLocation | None = None


class FieldVisitPayload(PayloadModel):
    """CHECKED_IN / CHECKED_OUT, and the checkOut block of a completing STATUS_CHANGED"""

    geo_location: GeoLocation
    distance_from_site_meters: float | None = Field(
        default=None,
        description="None when the task has no site and no distance check ran",
    )
    attachment_refs: list[AttachmentRef] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    note: str | None = None


class StatusChangedPayload(PayloadModel):
    """STATUS_CHANGED"""

    from_status: TaskStatus
    to_status: TaskStatus
    reason: str | None = None
    check_out: FieldVisitPayload | None = None


class PaymentCollectedPayload(PayloadModel):
    """PAYMENT_COLLECTED"""

    payment_id: str
    amount: Decimal
    currency: str
    has_invoice: bool
    invoice_attachment_id: str | None = None


class CommentedPayload(PayloadModel):
    """COMMENTED"""

    body: str
    attachment_refs: list[AttachmentRef] = Field(default_factory=list)


class ExpectedRevenueUpdatedPayload(PayloadModel):
    """EXPECTED_REVENUE_UPDATED"""

    old_amount: Decimal | None = None
    new_amount: Decimal | None = None
    currency: str


PAYLOAD_MODELS: dict[EventAction, type[PayloadModel]] = {
    EventAction.TASK_CREATED: TaskCreatedPayload,
    EventAction.CHECKED_IN: FieldVisitPayload,
    EventAction.CHECKED_OUT: FieldVisitPayload,
    EventAction.STATUS_CHANGED: StatusChangedPayload,
    EventAction.PAYMENT_COLLECTED: PaymentCollectedPayload,
    EventAction.COMMENTED: CommentedPayload,
    EventAction.EXPECTED_REVENUE_UPDATED: ExpectedRevenueUpdatedPayload,
}


def dump_payload(payload: PayloadModel) -> dict[str, Any]:
    """Typed payload -> JSON-ready dict (camelCase keys, decimals as strings)"""
    return payload.model_dump(mode="json", by_alias=True)


def parse_payload(action: EventAction, data: dict[str, Any]) -> PayloadModel:
    """JSON dict -> the typed payload for the action

    Raises:
        KeyError: the action has no payload model
        pydantic.ValidationError: the dict does not match the model
    """
    return PAYLOAD_MODELS[action].model_validate(data)
