"""Global pytest configuration -- temp SQLite store group, seeded tasks, fake attachment gateway"""

import asyncio
import math
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from fieldops.core.config import FieldOpsSettings
from fieldops.core.geo import EARTH_RADIUS_M
from fieldops.core.models import AttachmentRef, GeoLocation, Task, TaskStatus, UploadFile
from fieldops.core.state_machine import TaskStateMachine
from fieldops.core.store import StoreGroup, create_store_group
from fieldops.gateway.services.task_service import TaskService
from ulid import ULID

# Hoan Kiem Lake, Hanoi
SITE = GeoLocation(lat=21.0285, lng=105.8542, label="Hoan Kiem")

_PATH_TO: dict[TaskStatus, list[TaskStatus]] = {
    TaskStatus.PREPARING: [],
    TaskStatus.READY: [TaskStatus.READY],
    TaskStatus.IN_PROGRESS: [TaskStatus.READY, TaskStatus.IN_PROGRESS],
    TaskStatus.ON_HOLD: [TaskStatus.READY, TaskStatus.IN_PROGRESS, TaskStatus.ON_HOLD],
    TaskStatus.COMPLETED: [TaskStatus.READY, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED],
}


def north_of(origin: GeoLocation, meters: float) -> GeoLocation:
    """A point exactly `meters` due north of origin on the Haversine sphere"""
    return GeoLocation(
        lat=origin.lat + math.degrees(meters / EARTH_RADIUS_M),
        lng=origin.lng,
    )


class RecordingGateway:
    """AttachmentGateway fake: records calls, can fail or stall"""

    def __init__(self) -> None:
        self.calls: list[list[UploadFile]] = []
        self.fail_with: Exception | None = None
        self.delay_s: float = 0.0

    async def upload(self, files: list[UploadFile]) -> list[AttachmentRef]:
        self.calls.append(list(files))
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.fail_with is not None:
            raise self.fail_with
        return [
            AttachmentRef(
                id=str(ULID()),
                mime_type=f.mime_type,
                original_filename=f.filename,
                size=f.size,
            )
            for f in files
        ]


@pytest.fixture
def site() -> GeoLocation:
    return SITE


@pytest.fixture
def north_of_site():
    """meters -> GeoLocation that far due north of the site"""
    return lambda meters: north_of(SITE, meters)


@pytest.fixture
def settings() -> FieldOpsSettings:
    return FieldOpsSettings()


@pytest_asyncio.fixture
async def store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """StoreGroup on a temporary database"""
    group = await create_store_group(str(tmp_path / "sqlite" / "test.db"))
    yield group
    await group.close()


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def make_task(store_group: StoreGroup):
    """Factory: create a task and walk it to the requested status"""

    async def _make(
        status: TaskStatus = TaskStatus.PREPARING,
        site: GeoLocation | None = SITE,
        title: str = "Repair air conditioner",
    ) -> Task:
        task = await TaskService(store_group).create_task(
            title, actor_id="dispatcher-1", site=site
        )
        machine = TaskStateMachine(store_group)
        current = TaskStatus.PREPARING
        for next_status in _PATH_TO[status]:
            await machine.transition(task.task_id, current, next_status, "dispatcher-1")
            current = next_status
        return await store_group.task_store.get_task(task.task_id)

    return _make
