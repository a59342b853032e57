"""Atomic write scope -- event log writes and state changes commit together

Every write on the writer connection runs inside atomic(): writers are
serialized by an asyncio.Lock (lock-wait budget), the body is bounded by
asyncio.timeout (transaction budget), success commits, anything else rolls
back. Network or file I/O must never run inside the scope.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta

import aiosqlite
import structlog
from ulid import ULID

from ..exceptions import TransactionTimeoutError
from ..models.enums import EventAction
from ..models.event import Event
from ..models.payloads import PayloadModel, dump_payload
from .event_store import SqliteEventStore

log = structlog.get_logger()


def _is_lock_error(error: Exception) -> bool:
    text = str(error).lower()
    return "database is locked" in text or "database is busy" in text


@asynccontextmanager
async def atomic(
    conn: aiosqlite.Connection,
    lock: asyncio.Lock,
    timeout_s: float,
    lock_wait_s: float,
) -> AsyncIterator[aiosqlite.Connection]:
    """Run the body as one SQLite transaction

    Args:
        conn: shared connection
        lock: writer lock guarding the connection
        timeout_s: budget for the body plus commit
        lock_wait_s: budget for acquiring the writer lock

    Raises:
        TransactionTimeoutError: a budget was exceeded. A commit already in
            flight may still land, so callers re-read or retry to learn the outcome
    """
    try:
        await asyncio.wait_for(lock.acquire(), timeout=lock_wait_s)
    except TimeoutError:
        log.warning("transaction_lock_wait_exceeded", lock_wait_s=lock_wait_s)
        raise TransactionTimeoutError(
            f"Could not start transaction within {lock_wait_s}s",
            budget_s=lock_wait_s,
        ) from None

    try:
        try:
            async with asyncio.timeout(timeout_s):
                yield conn
                await conn.commit()
        except TimeoutError:
            await conn.rollback()
            log.warning("transaction_timeout", timeout_s=timeout_s)
            raise TransactionTimeoutError(
                f"Transaction did not complete within {timeout_s}s; outcome confirmed by retry",
                budget_s=timeout_s,
            ) from None
        except aiosqlite.OperationalError as e:
            await conn.rollback()
            if _is_lock_error(e):
                log.warning("transaction_database_locked", lock_wait_s=lock_wait_s)
                raise TransactionTimeoutError(
                    "Database stayed locked past the lock-wait budget",
                    budget_s=lock_wait_s,
                ) from e
            raise
        except BaseException:
            await conn.rollback()
            raise
    finally:
        lock.release()


async def append_topic_events(
    event_store: SqliteEventStore,
    topic: str,
    actor_id: str,
    entries: list[tuple[EventAction, PayloadModel]],
    now: datetime | None = None,
) -> list[Event]:
    """Build and append events for one topic inside the current transaction

    Events written together get consecutive topic_seq values and strictly
    increasing timestamps, so (ts, event_id) order matches write order.
    """
    ts = now or datetime.now(UTC)
    seq = await event_store.next_topic_seq(topic)
    events: list[Event] = []
    for offset, (action, payload) in enumerate(entries):
        event = Event(
            event_id=str(ULID()),
            topic=topic,
            topic_seq=seq + offset,
            action=action,
            actor_id=actor_id,
            ts=ts + timedelta(microseconds=offset),
            payload=dump_payload(payload),
        )
        await event_store.append_event(event)
        events.append(event)
    return events
