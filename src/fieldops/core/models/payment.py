"""Payment Domain Model

At most one payment per task, created only inside the checkout transaction.
Amounts are fixed-point Decimal (15 significant digits, 4 decimal places) and
are stored as canonical strings, never as binary floats.
"""

import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from pydantic import BaseModel, Field

from ..exceptions import ValidationError

AMOUNT_MAX_DIGITS = 15
AMOUNT_DECIMAL_PLACES = 4
AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_DECIMAL_PLACES)

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


class Payment(BaseModel):
    """Payment collected by a worker at checkout"""

    payment_id: str = Field(description="ULID")
    task_id: str
    amount: Decimal
    currency: str
    invoice_attachment_id: str | None = None
    collected_by: str
    collected_at: datetime
    notes: str | None = None


def parse_amount(value: Decimal | int | str, max_amount: Decimal | None = None) -> Decimal:
    """Validate and quantize a money amount to 4 decimal places

    Floats are rejected: they already carry binary rounding error.

    Raises:
        ValidationError: not a number, not positive, too many digits, or above max_amount
    """
    if isinstance(value, (float, bool)):
        raise ValidationError("Amount must be a decimal string or integer, not a float", field="amount")
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}", field="amount") from None

    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}", field="amount")
    if amount <= 0:
        raise ValidationError("Amount must be greater than 0", field="amount")
    # integer part + 4 decimal places must fit in 15 digits
    if amount.adjusted() + 1 > AMOUNT_MAX_DIGITS - AMOUNT_DECIMAL_PLACES:
        raise ValidationError("Amount is too large", field="amount")
    if amount != amount.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP):
        raise ValidationError(
            f"Amount supports at most {AMOUNT_DECIMAL_PLACES} decimal places",
            field="amount",
        )

    amount = amount.quantize(AMOUNT_QUANTUM)
    if max_amount is not None and amount > max_amount:
        raise ValidationError(f"Amount exceeds the maximum of {max_amount}", field="amount")
    return amount


def parse_currency(value: str) -> str:
    """Normalize an ISO-4217 style currency code"""
    code = value.strip().upper()
    if not _CURRENCY_RE.match(code):
        raise ValidationError(f"Invalid currency code: {value!r}", field="currency")
    return code
