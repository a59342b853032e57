"""Gateway test configuration -- FastAPI app with state wired by hand, httpx AsyncClient"""

from collections.abc import AsyncGenerator

import pytest_asyncio
from fieldops.core.config import FieldOpsSettings
from fieldops.core.store import LocalBlobGateway
from httpx import ASGITransport, AsyncClient


@pytest_asyncio.fixture
async def app(store_group, tmp_path):
    """App without lifespan; state comes from the temp store group"""
    from fieldops.gateway.main import create_app

    application = create_app()
    application.state.store_group = store_group
    application.state.settings = FieldOpsSettings()
    blob_dir = tmp_path / "blobs"
    blob_dir.mkdir()
    application.state.attachment_gateway = LocalBlobGateway(blob_dir)
    yield application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
