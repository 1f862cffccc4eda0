"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class NotFoundError(DomainError):
    """Requested entity does not exist or belongs to another owner."""


class InvalidStateError(DomainError):
    """Illegal state transition, such as clearing a booked entry."""


class AlreadyLinkedError(DomainError):
    """A set-once reference (split draft, group id, account) is already set."""


class ConflictingAssignmentError(DomainError):
    """Entry assignments that cannot coexist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class InvalidAmountError(DomainError):
    """Amount or quantity that cannot be stored exactly."""


class ValidationFailedError(DomainError):
    """Validation produced errors. Carries the full report."""

    def __init__(self, message: str, report=None):
        super().__init__(message)
        self.report = report


class ValidationWarningsError(DomainError):
    """Validation produced only warnings and the caller did not force them."""

    def __init__(self, message: str, report=None):
        super().__init__(message)
        self.report = report


class RebuildFailedError(DomainError):
    """Aggregate rebuild aborted. Earlier committed batches stay in place."""

    def __init__(self, message: str, processed: int, total: int):
        super().__init__(message)
        self.processed = processed
        self.total = total


def draft_not_found(draft_id: int) -> str:
    """Return message for missing draft."""
    return f"Draft {draft_id} not found"


def entry_not_found(entry_id: int, draft_id: Optional[int] = None) -> str:
    """Return message for missing draft entry."""
    if draft_id is None:
        return f"Entry {entry_id} not found"
    return f"Entry {entry_id} not found in draft {draft_id}"


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def contact_not_found(contact_id: int) -> str:
    """Return message for missing contact."""
    return f"Contact {contact_id} not found"


def savings_plan_not_found(plan_id: int) -> str:
    """Return message for missing savings plan."""
    return f"Savings plan {plan_id} not found"


def security_not_found(security_id: int) -> str:
    """Return message for missing security."""
    return f"Security {security_id} not found"


def entry_already_booked(entry_id: int) -> str:
    """Return message for operations rejected on booked entries."""
    return f"Entry {entry_id} is already booked"


def draft_not_open(draft_id: int, status: str) -> str:
    """Return message for operations rejected on closed drafts."""
    return f"Draft {draft_id} is {status.lower()}, not open for changes"


def duplicate_name(kind: str, name: str) -> str:
    """Return message for a duplicate name within one owner."""
    return f"{kind} with name '{name}' already exists"


def amount_too_precise(label: str, value, places: int) -> str:
    """Return message for an amount with more decimal places than storable."""
    return f"{label} {value} has more than {places} decimal places"
