"""fieldops core store -- SQLite persistence

create_store_group opens two connections to the same WAL database:

- the writer, guarded by one asyncio.Lock and reached only through
  StoreGroup.transaction();
- a query_only reader behind the StoreGroup's own stores. In WAL mode it sees
  committed transactions only, never a writer's rows in flight.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from .attachment_store import SqliteAttachmentStore
from .blob_gateway import LocalBlobGateway
from .event_store import SqliteEventStore
from .payment_store import SqlitePaymentStore
from .sqlite_init import init_db, init_reader
from .task_store import SqliteTaskStore
from .transaction import append_topic_events, atomic


class StoreSet:
    """The stores bound to one connection"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.task_store = SqliteTaskStore(conn)
        self.event_store = SqliteEventStore(conn)
        self.payment_store = SqlitePaymentStore(conn)
        self.attachment_store = SqliteAttachmentStore(conn)


class StoreGroup(StoreSet):
    """Committed-read stores plus the writer's atomic scope"""

    def __init__(self, conn: aiosqlite.Connection, read_conn: aiosqlite.Connection) -> None:
        super().__init__(read_conn)
        self.write_conn = conn
        self.write_lock = asyncio.Lock()
        self.writer = StoreSet(conn)

    @asynccontextmanager
    async def transaction(
        self,
        timeout_s: float = 10.0,
        lock_wait_s: float = 5.0,
    ) -> AsyncIterator[StoreSet]:
        """Atomic write scope yielding the writer's stores, see store.transaction.atomic"""
        async with atomic(self.write_conn, self.write_lock, timeout_s, lock_wait_s):
            yield self.writer

    async def close(self) -> None:
        await self.conn.close()
        await self.write_conn.close()


async def create_store_group(db_path: str, busy_timeout_ms: int = 5000) -> StoreGroup:
    """Open the database, initialize the schema and build the StoreGroup

    Args:
        db_path: SQLite database file path
        busy_timeout_ms: SQLite busy timeout, matching the lock-wait budget

    Returns:
        StoreGroup instance
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    await init_db(conn, busy_timeout_ms=busy_timeout_ms)

    read_conn = await aiosqlite.connect(db_path)
    await init_reader(read_conn, busy_timeout_ms=busy_timeout_ms)

    return StoreGroup(conn=conn, read_conn=read_conn)


__all__ = [
    "StoreGroup",
    "StoreSet",
    "create_store_group",
    "SqliteTaskStore",
    "SqliteEventStore",
    "SqlitePaymentStore",
    "SqliteAttachmentStore",
    "LocalBlobGateway",
    "init_db",
    "init_reader",
    "atomic",
    "append_topic_events",
]
