"""FieldEventService -- check-in / check-out coordinator and task comments

Protocol for every field event:
1. validate input (coordinates, attachments, note) before any I/O
2. load the task and reject completed tasks
3. soft distance check against the task site (warning, never failure)
4. upload attachments through the gateway
5. one transaction: attachment rows + the event

Check-in and plain check-out never change task status; completing a task is
CheckoutService.checkout.
"""

from datetime import UTC, datetime

import structlog
from fieldops.core.config import FieldOpsSettings
from fieldops.core.exceptions import InvalidTaskStateError, TaskNotFoundError, ValidationError
from fieldops.core.geo import validate_coordinate, verify_location
from fieldops.core.models import (
    AttachmentCategory,
    CommentedPayload,
    Event,
    EventAction,
    FieldVisitPayload,
    GeoLocation,
    Task,
    TaskStatus,
    UploadFile,
    task_topic,
)
from fieldops.core.store import StoreGroup, append_topic_events
from fieldops.core.store.protocols import AttachmentGateway
from pydantic import BaseModel, Field

from .uploads import upload_files, validate_files, validate_note

log = structlog.get_logger()


class FieldVisitRequest(BaseModel):
    """A worker's arrival or departure at a task site"""

    task_id: str
    worker_id: str
    location: GeoLocation
    files: list[UploadFile] = Field(default_factory=list)
    note: str | None = None


class FieldVisitResult(BaseModel):
    """Recorded visit event plus the soft-check outcome"""

    event: Event
    distance_from_site_meters: float | None = None
    warnings: list[str] = Field(default_factory=list)


class VisitCheck(BaseModel):
    distance_from_site_meters: float | None = None
    warnings: list[str] = Field(default_factory=list)


def check_visit_location(
    task: Task,
    location: GeoLocation,
    settings: FieldOpsSettings,
) -> VisitCheck:
    """Distance from the task site; tasks without a site skip the check"""
    if task.site is None:
        return VisitCheck()
    result = verify_location(task.site, location, settings.distance_threshold_m)
    return VisitCheck(distance_from_site_meters=result.distance_m, warnings=result.warnings)


class FieldEventService:
    """Check-in/check-out coordinator"""

    def __init__(
        self,
        store_group: StoreGroup,
        gateway: AttachmentGateway,
        settings: FieldOpsSettings | None = None,
    ) -> None:
        self._stores = store_group
        self._gateway = gateway
        self._settings = settings or FieldOpsSettings()

    async def check_in(self, request: FieldVisitRequest) -> FieldVisitResult:
        """Record a worker's arrival (CHECKED_IN)

        Raises:
            ValidationError: bad coordinates, attachments or note
            TaskNotFoundError: unknown task
            InvalidTaskStateError: the task is COMPLETED
            UploadError: the attachment gateway failed; nothing was recorded
        """
        return await self._record_visit(
            request, EventAction.CHECKED_IN, AttachmentCategory.CHECKIN
        )

    async def check_out(self, request: FieldVisitRequest) -> FieldVisitResult:
        """Record a departure without completing the task (CHECKED_OUT)"""
        return await self._record_visit(
            request, EventAction.CHECKED_OUT, AttachmentCategory.CHECKOUT
        )

    async def add_comment(
        self,
        task_id: str,
        actor_id: str,
        body: str,
        files: list[UploadFile] | None = None,
    ) -> Event:
        """Append a COMMENTED event with optional attachments"""
        files = files or []
        body = body.strip()
        if not body:
            raise ValidationError("Comment must not be empty", field="body")
        validate_note(body, self._settings, field="body")
        validate_files(files, self._settings)

        if await self._stores.task_store.get_task(task_id) is None:
            raise TaskNotFoundError(task_id)

        refs = await upload_files(
            self._gateway,
            files,
            self._settings.upload_timeout_s,
            task_id=task_id,
            actor_id=actor_id,
            operation="comment",
        )

        now = datetime.now(UTC)
        async with self._stores.transaction(
            timeout_s=self._settings.transaction_timeout_s,
            lock_wait_s=self._settings.lock_wait_timeout_s,
        ) as tx:
            await tx.attachment_store.add_attachments(
                task_id, AttachmentCategory.COMMENT, refs, now
            )
            events = await append_topic_events(
                tx.event_store,
                task_topic(task_id),
                actor_id,
                [(EventAction.COMMENTED, CommentedPayload(body=body, attachment_refs=refs))],
                now=now,
            )

        log.info("task_commented", task_id=task_id, actor_id=actor_id, attachments=len(refs))
        return events[0]

    async def _record_visit(
        self,
        request: FieldVisitRequest,
        action: EventAction,
        category: AttachmentCategory,
    ) -> FieldVisitResult:
        validate_coordinate(request.location.lat, request.location.lng)
        validate_files(request.files, self._settings)
        validate_note(request.note, self._settings)

        task = await self._stores.task_store.get_task(request.task_id)
        if task is None:
            raise TaskNotFoundError(request.task_id)
        self._ensure_open(task, action)

        check = check_visit_location(task, request.location, self._settings)
        if check.warnings:
            log.info(
                "visit_distance_warning",
                task_id=task.task_id,
                actor_id=request.worker_id,
                action=action.value,
                distance_m=round(check.distance_from_site_meters or 0),
            )

        refs = await upload_files(
            self._gateway,
            request.files,
            self._settings.upload_timeout_s,
            task_id=task.task_id,
            actor_id=request.worker_id,
            operation=action.value,
        )

        now = datetime.now(UTC)
        async with self._stores.transaction(
            timeout_s=self._settings.transaction_timeout_s,
            lock_wait_s=self._settings.lock_wait_timeout_s,
        ) as tx:
            # the task may have been completed while uploads were running
            current = await tx.task_store.get_task(task.task_id)
            if current is None:
                raise TaskNotFoundError(task.task_id)
            self._ensure_open(current, action)

            await tx.attachment_store.add_attachments(
                task.task_id, category, refs, now
            )
            payload = FieldVisitPayload(
                geo_location=request.location,
                distance_from_site_meters=check.distance_from_site_meters,
                attachment_refs=refs,
                warnings=check.warnings,
                note=request.note,
            )
            events = await append_topic_events(
                tx.event_store,
                task_topic(task.task_id),
                request.worker_id,
                [(action, payload)],
                now=now,
            )

        log.info(
            "field_visit_recorded",
            task_id=task.task_id,
            actor_id=request.worker_id,
            action=action.value,
            attachments=len(refs),
        )
        return FieldVisitResult(
            event=events[0],
            distance_from_site_meters=check.distance_from_site_meters,
            warnings=check.warnings,
        )

    @staticmethod
    def _ensure_open(task: Task, action: EventAction) -> None:
        if task.status == TaskStatus.COMPLETED:
            raise InvalidTaskStateError(
                f"Cannot record {action.value} on a completed task",
                task_id=task.task_id,
                status=task.status.value,
            )
