"""Health routes

GET /health: liveness, always 200.
GET /ready: readiness -- SQLite connectivity, blob directory, free disk space.
"""

import shutil

import structlog
from fastapi import APIRouter, Request
from fieldops.core.store.sqlite_init import verify_wal_mode
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()

MIN_FREE_DISK_MB = 100


@router.get("/health")
async def health():
    """Liveness check"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness check

    Checks:
    1. sqlite: database connectivity (and whether WAL is active)
    2. blob_dir: attachment directory exists
    3. disk_space_mb: free space where blobs are written
    """
    checks: dict = {}
    all_ok = True

    try:
        store_group = request.app.state.store_group
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
        checks["wal_mode"] = "ok" if await verify_wal_mode(store_group.conn) else "off"
    except Exception as e:
        log.warning("readiness_sqlite_failed", error_type=type(e).__name__)
        checks["sqlite"] = f"error: {e}"
        all_ok = False

    blob_dir = getattr(request.app.state.attachment_gateway, "root_dir", None)
    if blob_dir is None:
        checks["blob_dir"] = "skipped"
    elif blob_dir.is_dir():
        checks["blob_dir"] = "ok"
    else:
        checks["blob_dir"] = "error: directory does not exist"
        all_ok = False

    try:
        disk_usage = shutil.disk_usage(blob_dir if blob_dir is not None and blob_dir.is_dir() else "/")
        disk_space_mb = disk_usage.free // (1024 * 1024)
        checks["disk_space_mb"] = disk_space_mb
        if disk_space_mb < MIN_FREE_DISK_MB:
            all_ok = False
    except OSError:
        checks["disk_space_mb"] = 0
        all_ok = False

    status_code = 200 if all_ok else 503
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )
