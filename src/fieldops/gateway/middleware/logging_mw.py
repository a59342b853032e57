"""LoggingMiddleware -- request-scoped log context for the field API

Every request gets a request_id: the caller's X-Request-ID when it is a sane
token (mobile clients reuse it across upload retries), otherwise a fresh ULID.
The id is bound to structlog contextvars, echoed in the response header and
logged with the request's outcome and duration.
"""

import re
import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9._-]{1,64}")


def resolve_request_id(incoming: str | None) -> str:
    """The caller's request id if well formed, else a new ULID"""
    if incoming and _REQUEST_ID_PATTERN.fullmatch(incoming):
        return incoming
    return str(ULID())


class LoggingMiddleware(BaseHTTPMiddleware):
    """Request-scoped logging"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        log = structlog.get_logger()
        await log.ainfo("request_started")
        start_time = time.monotonic()

        try:
            response = await call_next(request)
        except Exception:
            await log.aexception(
                "request_crashed",
                duration_ms=int((time.monotonic() - start_time) * 1000),
            )
            raise

        await log.ainfo(
            "request_completed",
            status_code=response.status_code,
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
