"""Column encoders shared by the SQLite stores

Timestamps are stored as UTC ISO-8601 with fixed microsecond precision so that
lexicographic order equals chronological order. Decimals are stored as text.
"""

from datetime import UTC, datetime
from decimal import Decimal


def format_ts(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_ts(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def format_decimal(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(value)


def parse_decimal(value: str | None) -> Decimal | None:
    if value is None:
        return None
    return Decimal(value)
