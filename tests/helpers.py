"""Builders shared by the bookit tests."""

from datetime import date
from decimal import Decimal

from bookit.domain.entities import DraftEntry, EntryStatus, Movement

OWNER = 1
OTHER_OWNER = 2


def movement(
    amount: str,
    booking_date: date = date(2024, 3, 15),
    subject: str = "Payment",
    recipient_name: str | None = None,
    valuta_date: date | None = None,
    is_preview: bool = False,
) -> Movement:
    """Build a statement movement with a Decimal amount."""
    return Movement(
        booking_date=booking_date,
        amount=Decimal(amount),
        subject=subject,
        recipient_name=recipient_name,
        valuta_date=valuta_date,
        is_preview=is_preview,
    )


def make_entry(**overrides) -> DraftEntry:
    """Build an in-memory draft entry snapshot."""
    values = dict(
        id=1,
        draft_id=1,
        booking_date=date(2024, 3, 15),
        valuta_date=None,
        amount=Decimal("-45.00"),
        subject="Groceries",
        recipient_name="Market",
        currency_code="EUR",
        booking_description=None,
        is_announced=False,
        is_cost_neutral=False,
        status=EntryStatus.OPEN,
    )
    values.update(overrides)
    return DraftEntry(**values)
