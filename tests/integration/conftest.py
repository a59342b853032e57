"""Integration fixtures -- the real lifespan on temp paths"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, monkeypatch):
    """App started through its own lifespan"""
    monkeypatch.setenv("FIELDOPS_DB_PATH", str(tmp_path / "sqlite" / "fieldops.db"))
    monkeypatch.setenv("FIELDOPS_BLOB_DIR", str(tmp_path / "blobs"))
    monkeypatch.setenv("FIELDOPS_DISTANCE_THRESHOLD_M", "100")

    from fieldops.gateway.main import create_app, lifespan

    app = create_app()
    async with lifespan(app):
        yield app


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
