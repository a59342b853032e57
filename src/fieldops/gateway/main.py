"""FastAPI application

create_app builds the app; the lifespan opens the store group, the local blob
gateway and the settings, and closes the database on shutdown.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fieldops.core.config import get_blob_dir, get_db_path, load_settings
from fieldops.core.store import LocalBlobGateway, create_store_group

from .errors import register_error_handlers
from .middleware.logging_config import setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import events, field_events, health, tasks

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database and blob directory on startup, close on shutdown"""
    settings = load_settings()
    app.state.settings = settings

    db_path = get_db_path()
    store_group = await create_store_group(
        db_path, busy_timeout_ms=int(settings.lock_wait_timeout_s * 1000)
    )
    app.state.store_group = store_group

    blob_dir = get_blob_dir()
    blob_dir.mkdir(parents=True, exist_ok=True)
    app.state.attachment_gateway = LocalBlobGateway(blob_dir)

    log.info(
        "gateway_started",
        db_path=db_path,
        blob_dir=str(blob_dir),
        distance_threshold_m=settings.distance_threshold_m,
    )

    yield

    if getattr(app.state, "store_group", None):
        await app.state.store_group.close()


def create_app() -> FastAPI:
    """Create the FastAPI application"""
    app = FastAPI(
        title="FieldOps Gateway",
        version="0.1.0",
        description="Task lifecycle and field-event coordination API",
        lifespan=lifespan,
    )

    # Trace first, then Logging (Logging runs outermost and clears the context)
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()
    register_error_handlers(app)

    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(field_events.router, tags=["field-events"])
    app.include_router(events.router, tags=["events"])
    app.include_router(health.router, tags=["health"])

    return app


# uvicorn entry
app = create_app()
