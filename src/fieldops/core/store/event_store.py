"""EventStore SQLite implementation

Append-only: there is no update or delete API, and triggers reject both at the
storage layer. Reads are cursor-paginated in (ts, event_id) order.
"""

import json
from collections.abc import AsyncIterator

import aiosqlite

from ..exceptions import ValidationError
from ..models.enums import EventAction
from ..models.event import Event, EventPage
from .serialization import format_ts, parse_ts

_COLUMNS = "event_id, topic, topic_seq, ts, action, actor_id, payload"

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 500


class SqliteEventStore:
    """EventStore backed by SQLite"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_event(self, event: Event) -> str:
        """Append an event (insert only)

        Does not commit; the caller owns the transaction.

        Returns:
            the event_id
        """
        await self._conn.execute(
            f"""
            INSERT INTO events ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.topic,
                event.topic_seq,
                format_ts(event.ts),
                event.action.value,
                event.actor_id,
                json.dumps(event.payload, ensure_ascii=False),
            ),
        )
        return event.event_id

    async def next_topic_seq(self, topic: str) -> int:
        """MAX(topic_seq) + 1 for the topic; call inside the transaction"""
        cursor = await self._conn.execute(
            "SELECT COALESCE(MAX(topic_seq), 0) FROM events WHERE topic = ?",
            (topic,),
        )
        row = await cursor.fetchone()
        return (row[0] if row else 0) + 1

    async def get_event(self, event_id: str) -> Event | None:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM events WHERE event_id = ?",
            (event_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_event(row) if row else None

    async def list_by_topic(
        self,
        topic: str,
        since_cursor: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> EventPage:
        """One page of a topic's events after since_cursor, ordered by (ts, event_id)

        Args:
            topic: topic to read
            since_cursor: event_id of the last event already seen; None reads from the start
            limit: page size (1..MAX_PAGE_SIZE)

        Raises:
            ValidationError: bad limit, or the cursor is not an event of this topic
        """
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")

        if since_cursor is None:
            cursor = await self._conn.execute(
                f"""
                SELECT {_COLUMNS} FROM events
                WHERE topic = ?
                ORDER BY ts ASC, event_id ASC
                LIMIT ?
                """,
                (topic, limit),
            )
        else:
            anchor = await self.get_event(since_cursor)
            if anchor is None or anchor.topic != topic:
                raise ValidationError(f"Unknown cursor: {since_cursor}", field="cursor")
            anchor_ts = format_ts(anchor.ts)
            cursor = await self._conn.execute(
                f"""
                SELECT {_COLUMNS} FROM events
                WHERE topic = ?
                  AND (ts > ? OR (ts = ? AND event_id > ?))
                ORDER BY ts ASC, event_id ASC
                LIMIT ?
                """,
                (topic, anchor_ts, anchor_ts, anchor.event_id, limit),
            )

        rows = await cursor.fetchall()
        events = [self._row_to_event(row) for row in rows]
        return EventPage(
            events=events,
            next_cursor=events[-1].event_id if events else since_cursor,
            has_more=len(events) == limit,
        )

    async def iter_topic(
        self,
        topic: str,
        since_cursor: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> AsyncIterator[Event]:
        """Iterate every event of a topic after since_cursor, page by page

        Finite: stops at the end of the log as it was when each page was read.
        """
        cursor = since_cursor
        while True:
            page = await self.list_by_topic(topic, cursor, page_size)
            for event in page.events:
                yield event
            if not page.has_more:
                return
            cursor = page.next_cursor

    async def has_action_by_actor(self, topic: str, action: EventAction, actor_id: str) -> bool:
        """Whether actor_id has recorded an event with this action on the topic"""
        cursor = await self._conn.execute(
            "SELECT 1 FROM events WHERE topic = ? AND action = ? AND actor_id = ? LIMIT 1",
            (topic, action.value, actor_id),
        )
        return await cursor.fetchone() is not None

    async def get_all_events(self) -> list[Event]:
        """Every event ordered by topic then (ts, event_id), for projection rebuilds"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM events ORDER BY topic, ts ASC, event_id ASC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> Event:
        payload = json.loads(row[6]) if row[6] else {}
        return Event(
            event_id=row[0],
            topic=row[1],
            topic_seq=row[2],
            ts=parse_ts(row[3]),
            action=EventAction(row[4]),
            actor_id=row[5],
            payload=payload,
        )
