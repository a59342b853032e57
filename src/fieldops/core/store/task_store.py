"""TaskStore SQLite implementation

The task row holds the current status. Status only changes through
update_status_if, the conditional write the state machine is built on.
Methods do not commit; the caller owns the transaction.
"""

from datetime import datetime
from decimal import Decimal

import aiosqlite

from ..models.enums import TaskStatus
from ..models.geo import GeoLocation
from ..models.task import Task
from .serialization import format_decimal, format_ts, parse_decimal, parse_ts

_COLUMNS = (
    "task_id, created_at, updated_at, status, title, description, customer_id, "
    "site, expected_revenue, expected_currency, started_at, completed_at"
)


class SqliteTaskStore:
    """TaskStore backed by SQLite"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """Insert a task row"""
        await self._conn.execute(
            f"""
            INSERT INTO tasks ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.task_id,
                format_ts(task.created_at),
                format_ts(task.updated_at),
                task.status.value,
                task.title,
                task.description,
                task.customer_id,
                task.site.model_dump_json() if task.site else None,
                format_decimal(task.expected_revenue),
                task.expected_currency,
                format_ts(task.started_at) if task.started_at else None,
                format_ts(task.completed_at) if task.completed_at else None,
            ),
        )

    async def get_task(self, task_id: str) -> Task | None:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(self, status: TaskStatus | None = None) -> list[Task]:
        """List tasks, newest first, optionally filtered by status"""
        if status:
            cursor = await self._conn.execute(
                f"SELECT {_COLUMNS} FROM tasks WHERE status = ? ORDER BY created_at DESC",
                (TaskStatus(status).value,),
            )
        else:
            cursor = await self._conn.execute(
                f"SELECT {_COLUMNS} FROM tasks ORDER BY created_at DESC"
            )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def update_status_if(
        self,
        task_id: str,
        expected_status: TaskStatus,
        new_status: TaskStatus,
        now: datetime,
    ) -> bool:
        """Conditional status update

        Succeeds only if the stored status still equals expected_status.
        completed_at is set iff new_status is COMPLETED; started_at is set the
        first time the task enters IN_PROGRESS.

        Returns:
            True if exactly one row changed, False if another actor got there first
        """
        ts = format_ts(now)
        cursor = await self._conn.execute(
            """
            UPDATE tasks
            SET status = ?,
                updated_at = ?,
                completed_at = CASE WHEN ? = 'COMPLETED' THEN ? ELSE NULL END,
                started_at = CASE
                    WHEN ? = 'IN_PROGRESS' THEN COALESCE(started_at, ?)
                    ELSE started_at
                END
            WHERE task_id = ? AND status = ?
            """,
            (
                new_status.value,
                ts,
                new_status.value,
                ts,
                new_status.value,
                ts,
                task_id,
                expected_status.value,
            ),
        )
        return cursor.rowcount == 1

    async def set_expected_revenue(
        self,
        task_id: str,
        amount: Decimal | None,
        currency: str,
        now: datetime,
    ) -> bool:
        """Set expected revenue on a task that is not completed"""
        cursor = await self._conn.execute(
            """
            UPDATE tasks
            SET expected_revenue = ?, expected_currency = ?, updated_at = ?
            WHERE task_id = ? AND status != 'COMPLETED'
            """,
            (format_decimal(amount), currency, format_ts(now), task_id),
        )
        return cursor.rowcount == 1

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        return Task(
            task_id=row[0],
            created_at=parse_ts(row[1]),
            updated_at=parse_ts(row[2]),
            status=TaskStatus(row[3]),
            title=row[4],
            description=row[5],
            customer_id=row[6],
            site=GeoLocation.model_validate_json(row[7]) if row[7] else None,
            expected_revenue=parse_decimal(row[8]),
            expected_currency=row[9],
            started_at=parse_ts(row[10]),
            completed_at=parse_ts(row[11]),
        )
