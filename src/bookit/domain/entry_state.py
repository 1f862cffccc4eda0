"""State transitions for draft entries.

Every function takes a ``DraftEntry`` snapshot and returns a new snapshot, or
raises when the transition is not allowed from the entry's current state.
Persisting the result is the caller's job.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Optional

from bookit.domain.entities import (
    MONEY_PLACES,
    QUANTITY_PLACES,
    DraftEntry,
    EntryStatus,
    SecurityAssignment,
    fits_places,
)
from bookit.domain.errors import (
    AlreadyLinkedError,
    ConflictingAssignmentError,
    InvalidAmountError,
    InvalidStateError,
    amount_too_precise,
    entry_already_booked,
)


def initial_status(is_announced: bool) -> EntryStatus:
    """Status an unclassified entry falls back to."""
    return EntryStatus.ANNOUNCED if is_announced else EntryStatus.OPEN


def require_money(value: Optional[Decimal], label: str = "Amount") -> Optional[Decimal]:
    """Return ``value`` unchanged, refusing amounts finer than a cent.

    Raises:
        InvalidAmountError: If the amount is not finite or has more than two decimal places
    """
    if value is not None and not fits_places(value, MONEY_PLACES):
        raise InvalidAmountError(amount_too_precise(label, value, MONEY_PLACES))
    return value


def require_quantity(value: Optional[Decimal]) -> Optional[Decimal]:
    if value is not None and not fits_places(value, QUANTITY_PLACES):
        raise InvalidAmountError(amount_too_precise("Quantity", value, QUANTITY_PLACES))
    return value


def _require_not_booked(entry: DraftEntry) -> None:
    if entry.status == EntryStatus.ALREADY_BOOKED:
        raise InvalidStateError(entry_already_booked(entry.id))


def assign_contact(entry: DraftEntry, contact_id: int) -> DraftEntry:
    """Assign a contact and mark the entry accounted."""
    _require_not_booked(entry)
    return replace(entry, contact_id=contact_id, status=EntryStatus.ACCOUNTED)


def clear_contact(entry: DraftEntry) -> DraftEntry:
    """Remove the contact and fall back to Open/Announced."""
    _require_not_booked(entry)
    return replace(entry, contact_id=None, status=initial_status(entry.is_announced))


def reset_open(entry: DraftEntry) -> DraftEntry:
    """Back out of classification: status reverts and cost-neutral is cleared."""
    _require_not_booked(entry)
    return replace(entry, status=initial_status(entry.is_announced), is_cost_neutral=False)


def mark_cost_neutral(entry: DraftEntry, is_cost_neutral: bool) -> DraftEntry:
    _require_not_booked(entry)
    return replace(entry, is_cost_neutral=is_cost_neutral)


def assign_savings_plan(entry: DraftEntry, savings_plan_id: Optional[int]) -> DraftEntry:
    _require_not_booked(entry)
    if savings_plan_id is None:
        return replace(entry, savings_plan_id=None, archive_savings_plan_on_booking=False)
    return replace(entry, savings_plan_id=savings_plan_id)


def set_archive_savings_plan_on_booking(entry: DraftEntry, archive: bool) -> DraftEntry:
    _require_not_booked(entry)
    return replace(entry, archive_savings_plan_on_booking=archive)


def assign_split_draft(entry: DraftEntry, split_draft_id: int) -> DraftEntry:
    """Link a child split draft. The reference is exclusive and set once."""
    _require_not_booked(entry)
    if entry.split_draft_id is not None:
        raise AlreadyLinkedError(
            f"Entry {entry.id} is already linked to split draft {entry.split_draft_id}"
        )
    if entry.security is not None:
        raise ConflictingAssignmentError(
            f"Entry {entry.id} has a security assignment and cannot be split"
        )
    return replace(entry, split_draft_id=split_draft_id)


def clear_split_draft(entry: DraftEntry) -> DraftEntry:
    _require_not_booked(entry)
    return replace(entry, split_draft_id=None)


def set_security(entry: DraftEntry, assignment: Optional[SecurityAssignment]) -> DraftEntry:
    """Set or clear (``None``) the whole security assignment."""
    _require_not_booked(entry)
    if assignment is not None and entry.split_draft_id is not None:
        raise ConflictingAssignmentError(
            f"Entry {entry.id} is linked to split draft {entry.split_draft_id} "
            "and cannot carry a security"
        )
    return replace(entry, security=assignment)


def build_security_assignment(
    security_id: Optional[int],
    transaction_type=None,
    quantity: Optional[Decimal] = None,
    fee_amount: Optional[Decimal] = None,
    tax_amount: Optional[Decimal] = None,
) -> Optional[SecurityAssignment]:
    """Build an assignment, refusing detail fields without a security id."""
    if security_id is None:
        if any(v is not None for v in (transaction_type, quantity, fee_amount, tax_amount)):
            raise ConflictingAssignmentError(
                "Security transaction type, quantity, fee or tax require a security"
            )
        return None
    return SecurityAssignment(
        security_id=security_id,
        transaction_type=transaction_type,
        quantity=require_quantity(quantity),
        fee_amount=require_money(fee_amount, "Fee"),
        tax_amount=require_money(tax_amount, "Tax"),
    )


def update_core(
    entry: DraftEntry,
    booking_date: date,
    valuta_date: Optional[date],
    amount: Decimal,
    subject: str,
    recipient_name: Optional[str],
    currency_code: Optional[str],
    booking_description: Optional[str],
) -> DraftEntry:
    """Edit the statement data of an entry. ``is_announced`` never changes."""
    _require_not_booked(entry)
    if not subject or not subject.strip():
        raise InvalidStateError("Entry subject must not be empty")
    return replace(
        entry,
        booking_date=booking_date,
        valuta_date=valuta_date,
        amount=require_money(amount),
        subject=subject,
        recipient_name=recipient_name,
        currency_code=currency_code or "EUR",
        booking_description=booking_description,
    )


def mark_already_booked(entry: DraftEntry) -> DraftEntry:
    """Terminal transition, reserved for the booking engine."""
    _require_not_booked(entry)
    return replace(entry, status=EntryStatus.ALREADY_BOOKED)
