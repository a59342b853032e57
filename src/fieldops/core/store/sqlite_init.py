"""SQLite initialization -- PRAGMA settings, table DDL and indexes (aiosqlite)"""

import aiosqlite

_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id           TEXT PRIMARY KEY,
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL,
    status            TEXT NOT NULL DEFAULT 'PREPARING',
    title             TEXT NOT NULL DEFAULT '',
    description       TEXT NOT NULL DEFAULT '',
    customer_id       TEXT,
    site              TEXT,
    expected_revenue  TEXT,
    expected_currency TEXT NOT NULL DEFAULT 'VND',
    started_at        TEXT,
    completed_at      TEXT,

    CHECK ((status = 'COMPLETED') = (completed_at IS NOT NULL))
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC);",
]

_EVENTS_DDL = """
CREATE TABLE IF NOT EXISTS events (
    event_id   TEXT PRIMARY KEY,
    topic      TEXT NOT NULL,
    topic_seq  INTEGER NOT NULL,
    ts         TEXT NOT NULL,
    action     TEXT NOT NULL,
    actor_id   TEXT NOT NULL,
    payload    TEXT NOT NULL DEFAULT '{}'
);
"""

_EVENTS_INDEXES = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_events_topic_seq ON events(topic, topic_seq);",
    # cursor pagination order
    "CREATE INDEX IF NOT EXISTS idx_events_topic_ts ON events(topic, ts, event_id);",
]

# append-only enforcement at the storage layer
_EVENTS_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_events_no_update
    BEFORE UPDATE ON events
    BEGIN
        SELECT RAISE(ABORT, 'events are append-only');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_events_no_delete
    BEFORE DELETE ON events
    BEGIN
        SELECT RAISE(ABORT, 'events are append-only');
    END;
    """,
]

_ATTACHMENTS_DDL = """
CREATE TABLE IF NOT EXISTS attachments (
    attachment_id     TEXT PRIMARY KEY,
    task_id           TEXT NOT NULL,
    category          TEXT NOT NULL,
    mime_type         TEXT NOT NULL,
    original_filename TEXT NOT NULL,
    size              INTEGER NOT NULL DEFAULT 0,
    sha256            TEXT NOT NULL DEFAULT '',
    created_at        TEXT NOT NULL,

    FOREIGN KEY (task_id) REFERENCES tasks(task_id)
);
"""

_ATTACHMENTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_attachments_task_id ON attachments(task_id);",
]

_PAYMENTS_DDL = """
CREATE TABLE IF NOT EXISTS payments (
    payment_id            TEXT PRIMARY KEY,
    task_id               TEXT NOT NULL,
    amount                TEXT NOT NULL,
    currency              TEXT NOT NULL DEFAULT 'VND',
    invoice_attachment_id TEXT,
    collected_by          TEXT NOT NULL,
    collected_at          TEXT NOT NULL,
    notes                 TEXT,

    FOREIGN KEY (task_id) REFERENCES tasks(task_id) ON DELETE CASCADE,
    FOREIGN KEY (invoice_attachment_id) REFERENCES attachments(attachment_id)
);
"""

_PAYMENTS_INDEXES = [
    # one payment per task
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_payments_task_id ON payments(task_id);",
    "CREATE INDEX IF NOT EXISTS idx_payments_collected_by ON payments(collected_by);",
    "CREATE INDEX IF NOT EXISTS idx_payments_collected_at ON payments(collected_at);",
]


async def init_db(conn: aiosqlite.Connection, busy_timeout_ms: int = 5000) -> None:
    """Apply PRAGMAs, create tables, indexes and triggers

    Args:
        conn: aiosqlite connection
        busy_timeout_ms: how long SQLite waits on a locked database
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")

    await conn.execute(_TASKS_DDL)
    await conn.execute(_EVENTS_DDL)
    await conn.execute(_ATTACHMENTS_DDL)
    await conn.execute(_PAYMENTS_DDL)

    for idx_sql in _TASKS_INDEXES + _EVENTS_INDEXES + _ATTACHMENTS_INDEXES + _PAYMENTS_INDEXES:
        await conn.execute(idx_sql)
    for trigger_sql in _EVENTS_TRIGGERS:
        await conn.execute(trigger_sql)

    await conn.commit()


async def init_reader(conn: aiosqlite.Connection, busy_timeout_ms: int = 5000) -> None:
    """Configure a read-side connection; init_db must have run on the database first"""
    await conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")
    await conn.execute("PRAGMA query_only = ON;")


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """True if WAL journal mode is active"""
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
