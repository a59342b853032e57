"""Attachment validation and the pre-transaction upload phase

Files are checked against the settings before any I/O. Uploading happens
outside the atomic scope and must finish (or fail) before anything is written.
"""

import asyncio

import structlog
from fieldops.core.config import FieldOpsSettings
from fieldops.core.exceptions import UploadError, ValidationError
from fieldops.core.models import AttachmentRef, UploadFile
from fieldops.core.store.protocols import AttachmentGateway

log = structlog.get_logger()


def validate_files(
    files: list[UploadFile],
    settings: FieldOpsSettings,
    allowed_mime_types: tuple[str, ...] | None = None,
    field: str = "files",
) -> None:
    """Count, mime type and size checks

    Raises:
        ValidationError: the first violated limit
    """
    allowed = allowed_mime_types or settings.allowed_mime_types
    if len(files) > settings.max_attachments:
        raise ValidationError(
            f"At most {settings.max_attachments} attachments are allowed",
            field=field,
        )
    for file in files:
        if file.mime_type not in allowed:
            raise ValidationError(
                f"File type {file.mime_type} is not allowed for {file.filename}",
                field=field,
            )
        if file.size == 0:
            raise ValidationError(f"File {file.filename} is empty", field=field)
        if file.size > settings.max_attachment_bytes:
            raise ValidationError(
                f"File {file.filename} exceeds {settings.max_attachment_bytes} bytes",
                field=field,
            )


def validate_note(note: str | None, settings: FieldOpsSettings, field: str = "note") -> None:
    if note is not None and len(note) > settings.max_note_length:
        raise ValidationError(
            f"Note must be at most {settings.max_note_length} characters",
            field=field,
        )


async def upload_files(
    gateway: AttachmentGateway,
    files: list[UploadFile],
    timeout_s: float,
    *,
    task_id: str,
    actor_id: str,
    operation: str,
) -> list[AttachmentRef]:
    """Upload through the gateway within timeout_s

    Raises:
        UploadError: gateway failure or timeout; nothing has been recorded
    """
    if not files:
        return []

    try:
        async with asyncio.timeout(timeout_s):
            refs = await gateway.upload(files)
    except TimeoutError as e:
        log.error(
            "attachment_upload_timeout",
            task_id=task_id,
            actor_id=actor_id,
            operation=operation,
            timeout_s=timeout_s,
            file_count=len(files),
        )
        raise UploadError(f"Attachment upload timed out after {timeout_s}s", original_error=e) from e
    except UploadError as e:
        log.error(
            "attachment_upload_failed",
            task_id=task_id,
            actor_id=actor_id,
            operation=operation,
            error=e.message,
        )
        raise
    except Exception as e:
        log.error(
            "attachment_upload_failed",
            task_id=task_id,
            actor_id=actor_id,
            operation=operation,
            error_type=type(e).__name__,
        )
        raise UploadError("Attachment upload failed", original_error=e) from e

    if len(refs) != len(files):
        log.error(
            "attachment_upload_incomplete",
            task_id=task_id,
            actor_id=actor_id,
            operation=operation,
            expected=len(files),
            received=len(refs),
        )
        raise UploadError("Attachment gateway returned an incomplete result")
    return refs
