"""Domain model and payload tests"""

from datetime import UTC, datetime
from decimal import Decimal

import pydantic
import pytest
from fieldops.core.models import (
    PAYLOAD_MODELS,
    AttachmentRef,
    EventAction,
    FieldVisitPayload,
    GeoLocation,
    PaymentCollectedPayload,
    StatusChangedPayload,
    Task,
    TaskStatus,
    dump_payload,
    parse_payload,
)


class TestTask:
    def test_defaults(self):
        now = datetime.now(UTC)
        task = Task(task_id="01JTASK0000000000000000001", created_at=now, updated_at=now)
        assert task.status == TaskStatus.PREPARING
        assert task.expected_currency == "VND"
        assert task.completed_at is None

    def test_completed_requires_completed_at(self):
        now = datetime.now(UTC)
        with pytest.raises(pydantic.ValidationError):
            Task(
                task_id="01JTASK0000000000000000001",
                created_at=now,
                updated_at=now,
                status=TaskStatus.COMPLETED,
            )

    def test_completed_at_requires_completed(self):
        now = datetime.now(UTC)
        with pytest.raises(pydantic.ValidationError):
            Task(
                task_id="01JTASK0000000000000000001",
                created_at=now,
                updated_at=now,
                status=TaskStatus.IN_PROGRESS,
                completed_at=now,
            )

    def test_geo_location_is_frozen(self):
        loc = GeoLocation(lat=1.0, lng=2.0)
        with pytest.raises(pydantic.ValidationError):
            loc.lat = 3.0


class TestPayloads:
    def test_every_action_has_a_model(self):
        assert set(PAYLOAD_MODELS) == set(EventAction)

    def test_field_visit_wire_shape(self):
        payload = FieldVisitPayload(
            geo_location=GeoLocation(lat=21.0, lng=105.8),
            distance_from_site_meters=30.5,
            attachment_refs=[
                AttachmentRef(id="a1", mime_type="image/jpeg", original_filename="door.jpg")
            ],
            warnings=[],
            note="gate code 1234",
        )
        data = dump_payload(payload)
        assert data["geoLocation"] == {"lat": 21.0, "lng": 105.8, "label": None}
        assert data["distanceFromSiteMeters"] == 30.5
        assert data["attachmentRefs"][0]["mimeType"] == "image/jpeg"
        assert data["attachmentRefs"][0]["originalFilename"] == "door.jpg"
        assert data["note"] == "gate code 1234"

    def test_amount_serialized_as_string(self):
        payload = PaymentCollectedPayload(
            payment_id="p1",
            amount=Decimal("150000.0000"),
            currency="VND",
            has_invoice=False,
        )
        data = dump_payload(payload)
        assert data["amount"] == "150000.0000"
        assert data["hasInvoice"] is False
        assert data["invoiceAttachmentId"] is None

    def test_parse_payload_reads_camel_case(self):
        parsed = parse_payload(
            EventAction.STATUS_CHANGED,
            {"fromStatus": "IN_PROGRESS", "toStatus": "ON_HOLD", "reason": "waiting for parts"},
        )
        assert isinstance(parsed, StatusChangedPayload)
        assert parsed.to_status == TaskStatus.ON_HOLD
        assert parsed.check_out is None

    def test_parse_payload_rejects_wrong_shape(self):
        with pytest.raises(pydantic.ValidationError):
            parse_payload(EventAction.PAYMENT_COLLECTED, {"amount": "1"})
