"""Check-in / check-out coordinator tests

1. events recorded without status changes
2. distance warnings and tasks without a site
3. validation before any I/O
4. completed tasks reject field events
5. upload failure records nothing
"""

import pytest
from fieldops.core.config import FieldOpsSettings
from fieldops.core.exceptions import (
    InvalidTaskStateError,
    TaskNotFoundError,
    UploadError,
    ValidationError,
)
from fieldops.core.models import (
    AttachmentCategory,
    EventAction,
    GeoLocation,
    TaskStatus,
    UploadFile,
    task_topic,
)
from fieldops.gateway.services.field_event_service import FieldEventService, FieldVisitRequest

PHOTO = UploadFile(filename="arrival.jpg", mime_type="image/jpeg", content=b"\xff\xd8photo")


def _visit(task_id: str, location: GeoLocation, **kwargs) -> FieldVisitRequest:
    return FieldVisitRequest(task_id=task_id, worker_id="worker-1", location=location, **kwargs)


class TestCheckIn:
    async def test_check_in_records_event(self, store_group, gateway, make_task, north_of_site):
        task = await make_task(TaskStatus.READY)
        service = FieldEventService(store_group, gateway)

        result = await service.check_in(
            _visit(task.task_id, north_of_site(40), files=[PHOTO], note="at the gate")
        )

        assert result.event.action == EventAction.CHECKED_IN
        assert result.event.actor_id == "worker-1"
        assert result.warnings == []
        payload = result.event.payload
        assert payload["distanceFromSiteMeters"] == pytest.approx(40.0, rel=1e-6)
        assert payload["note"] == "at the gate"
        assert payload["attachmentRefs"][0]["originalFilename"] == "arrival.jpg"
        assert payload["attachmentRefs"][0]["mimeType"] == "image/jpeg"

        stored = await store_group.task_store.get_task(task.task_id)
        assert stored.status == TaskStatus.READY
        attachments = await store_group.attachment_store.list_attachments_for_task(task.task_id)
        assert [a.category for a in attachments] == [AttachmentCategory.CHECKIN]
        assert attachments[0].attachment_id == payload["attachmentRefs"][0]["id"]

    async def test_far_check_in_warns(self, store_group, gateway, make_task, north_of_site):
        task = await make_task(TaskStatus.IN_PROGRESS)

        result = await FieldEventService(store_group, gateway).check_in(
            _visit(task.task_id, north_of_site(250))
        )

        assert result.warnings == ["You are 250m away from the task location (allowed: 100m)"]
        assert result.event.payload["warnings"] == result.warnings

    async def test_task_without_site(self, store_group, gateway, make_task):
        task = await make_task(TaskStatus.READY, site=None)

        result = await FieldEventService(store_group, gateway).check_in(
            _visit(task.task_id, GeoLocation(lat=1.0, lng=1.0))
        )

        assert result.distance_from_site_meters is None
        assert result.event.payload["distanceFromSiteMeters"] is None
        assert result.event.payload["warnings"] == []

    async def test_completed_task_rejected(self, store_group, gateway, make_task, site):
        task = await make_task(TaskStatus.COMPLETED)

        with pytest.raises(InvalidTaskStateError):
            await FieldEventService(store_group, gateway).check_in(_visit(task.task_id, site))
        assert gateway.calls == []

    async def test_unknown_task(self, store_group, gateway, site):
        with pytest.raises(TaskNotFoundError):
            await FieldEventService(store_group, gateway).check_in(
                _visit("01J00000000000000000000000", site)
            )


class TestCheckOut:
    async def test_plain_check_out_keeps_status(self, store_group, gateway, make_task, site):
        task = await make_task(TaskStatus.IN_PROGRESS)

        result = await FieldEventService(store_group, gateway).check_out(
            _visit(task.task_id, site, note="back tomorrow")
        )

        assert result.event.action == EventAction.CHECKED_OUT
        stored = await store_group.task_store.get_task(task.task_id)
        assert stored.status == TaskStatus.IN_PROGRESS
        assert stored.completed_at is None


class TestValidation:
    async def test_too_many_files(self, store_group, gateway, make_task, site):
        task = await make_task(TaskStatus.READY)
        settings = FieldOpsSettings(max_attachments=1)

        with pytest.raises(ValidationError):
            await FieldEventService(store_group, gateway, settings).check_in(
                _visit(task.task_id, site, files=[PHOTO, PHOTO])
            )
        assert gateway.calls == []

    async def test_disallowed_mime_type(self, store_group, gateway, make_task, site):
        task = await make_task(TaskStatus.READY)
        exe = UploadFile(filename="tool.exe", mime_type="application/x-msdownload", content=b"MZ")

        with pytest.raises(ValidationError, match="not allowed"):
            await FieldEventService(store_group, gateway).check_in(
                _visit(task.task_id, site, files=[exe])
            )

    async def test_file_too_large(self, store_group, gateway, make_task, site):
        task = await make_task(TaskStatus.READY)
        settings = FieldOpsSettings(max_attachment_bytes=4)

        with pytest.raises(ValidationError):
            await FieldEventService(store_group, gateway, settings).check_in(
                _visit(task.task_id, site, files=[PHOTO])
            )

    async def test_note_too_long(self, store_group, gateway, make_task, site):
        task = await make_task(TaskStatus.READY)

        with pytest.raises(ValidationError) as exc_info:
            await FieldEventService(store_group, gateway).check_in(
                _visit(task.task_id, site, note="x" * 1001)
            )
        assert exc_info.value.field == "note"

    async def test_invalid_coordinates(self, store_group, gateway, make_task):
        task = await make_task(TaskStatus.READY)

        with pytest.raises(ValidationError):
            await FieldEventService(store_group, gateway).check_in(
                _visit(task.task_id, GeoLocation(lat=0.0, lng=200.0))
            )


class TestUploadFailure:
    async def test_nothing_recorded(self, store_group, gateway, make_task, site):
        task = await make_task(TaskStatus.READY)
        gateway.fail_with = OSError("disk full")
        page_before = await store_group.event_store.list_by_topic(task_topic(task.task_id))

        with pytest.raises(UploadError):
            await FieldEventService(store_group, gateway).check_in(
                _visit(task.task_id, site, files=[PHOTO])
            )

        page_after = await store_group.event_store.list_by_topic(task_topic(task.task_id))
        assert page_after.events == page_before.events
        assert await store_group.attachment_store.list_attachments_for_task(task.task_id) == []


class TestComments:
    async def test_add_comment(self, store_group, gateway, make_task):
        task = await make_task(TaskStatus.COMPLETED)

        event = await FieldEventService(store_group, gateway).add_comment(
            task.task_id, "supervisor-1", "  customer happy  ", [PHOTO]
        )

        assert event.action == EventAction.COMMENTED
        assert event.payload["body"] == "customer happy"
        assert len(event.payload["attachmentRefs"]) == 1
        attachments = await store_group.attachment_store.list_attachments_for_task(task.task_id)
        assert [a.category for a in attachments] == [AttachmentCategory.COMMENT]

    async def test_empty_comment(self, store_group, gateway, make_task):
        task = await make_task(TaskStatus.READY)
        with pytest.raises(ValidationError):
            await FieldEventService(store_group, gateway).add_comment(task.task_id, "x", "   ")

    async def test_unknown_task(self, store_group, gateway):
        with pytest.raises(TaskNotFoundError):
            await FieldEventService(store_group, gateway).add_comment(
                "01J00000000000000000000000", "x", "hello"
            )
