"""CheckoutService -- completing a task, optionally with a collected payment

Checkout is two-phase:
1. pre-transaction: validate, fast-fail on status, upload checkout files and
   the invoice. A failure here leaves no trace in the database.
2. atomic phase: conditional update IN_PROGRESS -> COMPLETED, attachment rows,
   at most one payment row, STATUS_CHANGED (+ PAYMENT_COLLECTED). Either all
   of it commits or none of it does.

Two workers checking out the same task race on the conditional update; the
loser gets TaskAlreadyCompletedError. A transaction timeout retries the whole
checkout, uploads included, up to checkout_max_attempts times.
"""

from datetime import UTC, datetime
from decimal import Decimal

import aiosqlite
import structlog
from fieldops.core.config import FieldOpsSettings
from fieldops.core.exceptions import (
    ConflictError,
    IllegalTransitionError,
    InvalidTaskStateError,
    TaskAlreadyCompletedError,
    TaskNotFoundError,
    TransactionTimeoutError,
)
from fieldops.core.geo import validate_coordinate
from fieldops.core.models import (
    AttachmentCategory,
    AttachmentRef,
    Event,
    EventAction,
    FieldVisitPayload,
    GeoLocation,
    Payment,
    PaymentCollectedPayload,
    Task,
    TaskStatus,
    UploadFile,
    parse_amount,
    parse_currency,
    task_topic,
)
from fieldops.core.state_machine import TaskStateMachine
from fieldops.core.store import StoreGroup, append_topic_events
from fieldops.core.store.protocols import AttachmentGateway
from pydantic import BaseModel, Field
from ulid import ULID

from .field_event_service import VisitCheck, check_visit_location
from .uploads import upload_files, validate_files, validate_note

log = structlog.get_logger()

CHECKOUT_REASON = "checkout"


class PaymentInput(BaseModel):
    """Payment collected on site"""

    amount: Decimal | int | str
    currency: str | None = None
    notes: str | None = None
    invoice: UploadFile | None = None


class CheckoutRequest(BaseModel):
    """Worker's request to complete a task"""

    task_id: str
    worker_id: str
    location: GeoLocation
    files: list[UploadFile] = Field(default_factory=list)
    note: str | None = None
    payment: PaymentInput | None = None


class CheckoutResult(BaseModel):
    task: Task
    payment: Payment | None = None
    events: list[Event]
    distance_from_site_meters: float | None = None
    warnings: list[str] = Field(default_factory=list)


class _ValidatedPayment(BaseModel):
    amount: Decimal
    currency: str
    notes: str | None = None
    invoice: UploadFile | None = None


class CheckoutService:
    """Checkout-payment transaction manager"""

    def __init__(
        self,
        store_group: StoreGroup,
        gateway: AttachmentGateway,
        settings: FieldOpsSettings | None = None,
    ) -> None:
        self._stores = store_group
        self._gateway = gateway
        self._settings = settings or FieldOpsSettings()
        self._state_machine = TaskStateMachine(store_group, self._settings)

    async def checkout(self, request: CheckoutRequest) -> CheckoutResult:
        """Complete a task and record the payment atomically

        Raises:
            ValidationError: bad coordinates, attachments, note, amount or currency
            TaskNotFoundError: unknown task
            TaskAlreadyCompletedError: the task is (or just became) COMPLETED
            IllegalTransitionError: the task is not IN_PROGRESS
            InvalidTaskStateError: no prior check-in while one is required
            UploadError: the attachment gateway failed; nothing was recorded
            TransactionTimeoutError: every attempt ran out of budget
        """
        validate_coordinate(request.location.lat, request.location.lng)
        validate_files(request.files, self._settings)
        validate_note(request.note, self._settings)
        payment = self._validate_payment(request.payment)

        task = await self._stores.task_store.get_task(request.task_id)
        if task is None:
            raise TaskNotFoundError(request.task_id)
        self._precheck(task)
        if self._settings.require_check_in_before_checkout:
            await self._ensure_checked_in(task, request.worker_id)

        check = check_visit_location(task, request.location, self._settings)

        max_attempts = self._settings.checkout_max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                return await self._attempt(request, payment, check)
            except TransactionTimeoutError as e:
                if attempt >= max_attempts:
                    log.error(
                        "checkout_failed",
                        task_id=request.task_id,
                        actor_id=request.worker_id,
                        transition=f"{TaskStatus.IN_PROGRESS.value}->{TaskStatus.COMPLETED.value}",
                        attempts=attempt,
                        budget_s=e.budget_s,
                    )
                    raise
                log.warning(
                    "checkout_retry",
                    task_id=request.task_id,
                    actor_id=request.worker_id,
                    attempt=attempt,
                    budget_s=e.budget_s,
                )

        raise RuntimeError("checkout attempts exhausted")

    def _validate_payment(self, payment: PaymentInput | None) -> _ValidatedPayment | None:
        if payment is None:
            return None
        amount = parse_amount(payment.amount, self._settings.max_payment_amount)
        currency = parse_currency(payment.currency or self._settings.default_currency)
        validate_note(payment.notes, self._settings, field="payment.notes")
        if payment.invoice is not None:
            validate_files(
                [payment.invoice],
                self._settings,
                allowed_mime_types=self._settings.invoice_mime_types,
                field="payment.invoice",
            )
        return _ValidatedPayment(
            amount=amount,
            currency=currency,
            notes=payment.notes,
            invoice=payment.invoice,
        )

    @staticmethod
    def _precheck(task: Task) -> None:
        if task.status == TaskStatus.COMPLETED:
            raise TaskAlreadyCompletedError(task.task_id)
        if task.status != TaskStatus.IN_PROGRESS:
            raise IllegalTransitionError(
                task.task_id, task.status.value, TaskStatus.COMPLETED.value
            )

    async def _ensure_checked_in(self, task: Task, worker_id: str) -> None:
        checked_in = await self._stores.event_store.has_action_by_actor(
            task_topic(task.task_id), EventAction.CHECKED_IN, worker_id
        )
        if not checked_in:
            raise InvalidTaskStateError(
                "Check in at the task site before checking out",
                task_id=task.task_id,
                status=task.status.value,
            )

    async def _upload(
        self,
        request: CheckoutRequest,
        payment: _ValidatedPayment | None,
    ) -> tuple[list[AttachmentRef], AttachmentRef | None]:
        files = list(request.files)
        if payment is not None and payment.invoice is not None:
            files.append(payment.invoice)
        refs = await upload_files(
            self._gateway,
            files,
            self._settings.upload_timeout_s,
            task_id=request.task_id,
            actor_id=request.worker_id,
            operation=f"{TaskStatus.IN_PROGRESS.value}->{TaskStatus.COMPLETED.value}",
        )
        if payment is not None and payment.invoice is not None:
            return refs[:-1], refs[-1]
        return refs, None

    async def _attempt(
        self,
        request: CheckoutRequest,
        payment: _ValidatedPayment | None,
        check: VisitCheck,
    ) -> CheckoutResult:
        checkout_refs, invoice_ref = await self._upload(request, payment)

        task_id = request.task_id
        now = datetime.now(UTC)
        payment_row: Payment | None = None

        async with self._stores.transaction(
            timeout_s=self._settings.transaction_timeout_s,
            lock_wait_s=self._settings.lock_wait_timeout_s,
        ) as tx:
            try:
                task = await self._state_machine.compare_and_set(
                    tx,
                    task_id,
                    TaskStatus.IN_PROGRESS,
                    TaskStatus.COMPLETED,
                    request.worker_id,
                    now,
                )
            except ConflictError:
                current = await tx.task_store.get_task(task_id)
                if current is not None and current.status == TaskStatus.COMPLETED:
                    raise TaskAlreadyCompletedError(task_id) from None
                raise

            await tx.attachment_store.add_attachments(
                task_id, AttachmentCategory.CHECKOUT, checkout_refs, now
            )
            if invoice_ref is not None:
                await tx.attachment_store.add_attachments(
                    task_id, AttachmentCategory.INVOICE, [invoice_ref], now
                )

            if payment is not None:
                payment_row = Payment(
                    payment_id=str(ULID()),
                    task_id=task_id,
                    amount=payment.amount,
                    currency=payment.currency,
                    invoice_attachment_id=invoice_ref.id if invoice_ref else None,
                    collected_by=request.worker_id,
                    collected_at=now,
                    notes=payment.notes,
                )
                try:
                    await tx.payment_store.create_payment(payment_row)
                except aiosqlite.IntegrityError:
                    raise TaskAlreadyCompletedError(task_id) from None

            entries = [
                self._state_machine.status_changed_entry(
                    TaskStatus.IN_PROGRESS,
                    TaskStatus.COMPLETED,
                    reason=CHECKOUT_REASON,
                    check_out=FieldVisitPayload(
                        geo_location=request.location,
                        distance_from_site_meters=check.distance_from_site_meters,
                        attachment_refs=checkout_refs,
                        warnings=check.warnings,
                        note=request.note,
                    ),
                )
            ]
            if payment_row is not None:
                entries.append(
                    (
                        EventAction.PAYMENT_COLLECTED,
                        PaymentCollectedPayload(
                            payment_id=payment_row.payment_id,
                            amount=payment_row.amount,
                            currency=payment_row.currency,
                            has_invoice=invoice_ref is not None,
                            invoice_attachment_id=payment_row.invoice_attachment_id,
                        ),
                    )
                )
            events = await append_topic_events(
                tx.event_store,
                task_topic(task_id),
                request.worker_id,
                entries,
                now=now,
            )

        log.info(
            "task_checked_out",
            task_id=task_id,
            actor_id=request.worker_id,
            has_payment=payment_row is not None,
            amount=payment_row.amount if payment_row else None,
            warnings=len(check.warnings),
        )
        return CheckoutResult(
            task=task,
            payment=payment_row,
            events=events,
            distance_from_site_meters=check.distance_from_site_meters,
            warnings=check.warnings,
        )
