"""AttachmentStore -- attachment metadata rows owned by tasks

Rows are inserted inside the same transaction as the event that references
them, so a rolled-back operation leaves no attachment rows behind (only the
gateway blobs, which a separate sweep can collect).
"""

from datetime import datetime

import aiosqlite

from ..models.attachment import Attachment, AttachmentRef
from ..models.enums import AttachmentCategory
from .serialization import format_ts, parse_ts

_COLUMNS = (
    "attachment_id, task_id, category, mime_type, original_filename, "
    "size, sha256, created_at"
)


class SqliteAttachmentStore:
    """AttachmentStore backed by SQLite"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def add_attachments(
        self,
        task_id: str,
        category: AttachmentCategory,
        refs: list[AttachmentRef],
        now: datetime,
    ) -> list[Attachment]:
        """Record gateway refs as attachments of a task (no commit)"""
        attachments = [
            Attachment(
                attachment_id=ref.id,
                task_id=task_id,
                category=category,
                mime_type=ref.mime_type,
                original_filename=ref.original_filename,
                size=ref.size,
                sha256=ref.sha256,
                created_at=now,
            )
            for ref in refs
        ]
        await self._conn.executemany(
            f"INSERT INTO attachments ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (
                    a.attachment_id,
                    a.task_id,
                    a.category.value,
                    a.mime_type,
                    a.original_filename,
                    a.size,
                    a.sha256,
                    format_ts(a.created_at),
                )
                for a in attachments
            ],
        )
        return attachments

    async def list_attachments_for_task(self, task_id: str) -> list[Attachment]:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM attachments WHERE task_id = ? ORDER BY created_at ASC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_attachment(row) for row in rows]

    @staticmethod
    def _row_to_attachment(row: aiosqlite.Row) -> Attachment:
        return Attachment(
            attachment_id=row[0],
            task_id=row[1],
            category=AttachmentCategory(row[2]),
            mime_type=row[3],
            original_filename=row[4],
            size=row[5],
            sha256=row[6],
            created_at=parse_ts(row[7]),
        )
