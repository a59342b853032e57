"""Domain errors -> HTTP error envelope {"error": {"code", "message"}}"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fieldops.core.exceptions import (
    ConflictError,
    FieldOpsError,
    InvalidTaskStateError,
    TaskNotFoundError,
    TransactionTimeoutError,
    UploadError,
    ValidationError,
)
from starlette.responses import JSONResponse

log = structlog.get_logger()

# checked in order; subclasses before their bases
_STATUS_CODES: list[tuple[type[FieldOpsError], int]] = [
    (ValidationError, 422),
    (TaskNotFoundError, 404),
    (InvalidTaskStateError, 400),
    (ConflictError, 409),
    (UploadError, 502),
    (TransactionTimeoutError, 503),
]


def status_code_for(error: FieldOpsError) -> int:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


async def fieldops_error_handler(request: Request, exc: FieldOpsError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        log.warning(
            "request_failed",
            error_code=exc.code,
            status_code=status_code,
            recoverable=exc.recoverable,
        )
    return error_response(status_code, exc.code, exc.message)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return error_response(422, ValidationError.code, message)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FieldOpsError, fieldops_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
