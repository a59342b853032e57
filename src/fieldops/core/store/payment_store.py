"""PaymentStore SQLite implementation

payments.task_id is UNIQUE: a second payment for the same task raises
aiosqlite.IntegrityError. Methods do not commit.
"""

from decimal import Decimal

import aiosqlite

from ..models.payment import Payment
from .serialization import format_ts, parse_decimal, parse_ts

_COLUMNS = (
    "payment_id, task_id, amount, currency, invoice_attachment_id, "
    "collected_by, collected_at, notes"
)


class SqlitePaymentStore:
    """PaymentStore backed by SQLite"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_payment(self, payment: Payment) -> None:
        await self._conn.execute(
            f"""
            INSERT INTO payments ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                payment.payment_id,
                payment.task_id,
                str(payment.amount),
                payment.currency,
                payment.invoice_attachment_id,
                payment.collected_by,
                format_ts(payment.collected_at),
                payment.notes,
            ),
        )

    async def get_payment_for_task(self, task_id: str) -> Payment | None:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM payments WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_payment(row) if row else None

    async def count_payments_for_task(self, task_id: str) -> int:
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM payments WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def total_collected(self, task_id: str) -> Decimal:
        """Sum of collected amounts, added up as Decimal in Python"""
        cursor = await self._conn.execute(
            "SELECT amount FROM payments WHERE task_id = ?",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return sum((Decimal(row[0]) for row in rows), Decimal("0"))

    @staticmethod
    def _row_to_payment(row: aiosqlite.Row) -> Payment:
        return Payment(
            payment_id=row[0],
            task_id=row[1],
            amount=parse_decimal(row[2]),
            currency=row[3],
            invoice_attachment_id=row[4],
            collected_by=row[5],
            collected_at=parse_ts(row[6]),
            notes=row[7],
        )
