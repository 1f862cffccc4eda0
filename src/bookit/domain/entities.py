"""Domain model entities for bookit.

These are pure data classes representing business concepts, independent of
database schema. Services pass them around as immutable snapshots; state
changes produce a new snapshot (see ``bookit.domain.entry_state``) which the
database layer then persists.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional

MONEY_PLACES = 2
QUANTITY_PLACES = 6


def fits_places(value: Decimal, places: int) -> bool:
    """True if ``value`` is finite and has no more than ``places`` decimal places."""
    if not value.is_finite():
        return False
    units = value.scaleb(places)
    return units == units.to_integral_value()


class DraftStatus(str, Enum):
    """Lifecycle of a statement draft."""

    DRAFT = "Draft"
    COMMITTED = "Committed"
    EXPIRED = "Expired"


class EntryStatus(str, Enum):
    """Lifecycle of a single draft entry."""

    OPEN = "Open"
    ANNOUNCED = "Announced"
    ACCOUNTED = "Accounted"
    ALREADY_BOOKED = "AlreadyBooked"


class PostingKind(str, Enum):
    """Which dimension a posting or aggregate belongs to."""

    BANK = "Bank"
    CONTACT = "Contact"
    SAVINGS_PLAN = "SavingsPlan"
    SECURITY = "Security"


class SecurityTransactionType(str, Enum):
    """Transaction type of a security assignment on an entry."""

    BUY = "Buy"
    SELL = "Sell"
    DIVIDEND = "Dividend"


class SecurityPostingSubType(str, Enum):
    """Sub-type of a security posting."""

    BUY = "Buy"
    SELL = "Sell"
    DIVIDEND = "Dividend"
    FEE = "Fee"
    TAX = "Tax"


class SavingsPlanInterval(str, Enum):
    """Contribution rhythm of a recurring savings plan."""

    MONTHLY = "Monthly"
    BI_MONTHLY = "BiMonthly"
    QUARTERLY = "Quarterly"
    SEMI_ANNUALLY = "SemiAnnually"
    ANNUALLY = "Annually"

    @property
    def months(self) -> int:
        return _INTERVAL_MONTHS[self]


_INTERVAL_MONTHS = {
    SavingsPlanInterval.MONTHLY: 1,
    SavingsPlanInterval.BI_MONTHLY: 2,
    SavingsPlanInterval.QUARTERLY: 3,
    SavingsPlanInterval.SEMI_ANNUALLY: 6,
    SavingsPlanInterval.ANNUALLY: 12,
}


class AggregatePeriod(str, Enum):
    """Bucket length of a posting aggregate."""

    MONTH = "Month"
    QUARTER = "Quarter"
    HALF_YEAR = "HalfYear"
    YEAR = "Year"


class DateBasis(str, Enum):
    """Which posting date an aggregate bucket is computed from."""

    BOOKING = "Booking"
    VALUTA = "Valuta"


class Severity(str, Enum):
    """Severity of a validation message."""

    ERROR = "Error"
    WARNING = "Warning"
    INFORMATION = "Information"


@dataclass(frozen=True)
class Dimension:
    """Kind-discriminated reference to the one thing a posting is booked against."""

    kind: PostingKind
    id: int

    @classmethod
    def bank(cls, account_id: int) -> "Dimension":
        return cls(PostingKind.BANK, account_id)

    @classmethod
    def contact(cls, contact_id: int) -> "Dimension":
        return cls(PostingKind.CONTACT, contact_id)

    @classmethod
    def savings_plan(cls, plan_id: int) -> "Dimension":
        return cls(PostingKind.SAVINGS_PLAN, plan_id)

    @classmethod
    def security(cls, security_id: int) -> "Dimension":
        return cls(PostingKind.SECURITY, security_id)


@dataclass(frozen=True)
class Account:
    """Bank account domain entity."""

    id: int
    owner_id: int
    name: str
    bank_name: str
    iban: Optional[str]
    currency_code: str
    current_balance: Decimal
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ContactAlias:
    """Alias pattern used to recognise a contact in statement text."""

    id: int
    contact_id: int
    pattern: str
    created_at: datetime


@dataclass(frozen=True)
class Contact:
    """Counterparty domain entity."""

    id: int
    owner_id: int
    name: str
    created_at: datetime
    aliases: tuple[ContactAlias, ...] = ()


@dataclass(frozen=True)
class SavingsPlan:
    """Savings plan domain entity."""

    id: int
    owner_id: int
    name: str
    target_amount: Optional[Decimal]
    is_active: bool
    created_at: datetime
    target_date: Optional[date] = None
    interval: Optional[SavingsPlanInterval] = None
    contract_number: Optional[str] = None

    @property
    def is_recurring(self) -> bool:
        return self.interval is not None and self.target_date is not None


@dataclass(frozen=True)
class Security:
    """Security (stock, fund, bond) domain entity."""

    id: int
    owner_id: int
    name: str
    identifier: Optional[str]
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class SecurityAssignment:
    """Security fields of an entry. They are set and cleared as one value.

    A stored row can carry detail fields without a security; such an
    assignment has ``security_id`` None and fails validation.
    """

    security_id: Optional[int]
    transaction_type: Optional[SecurityTransactionType] = None
    quantity: Optional[Decimal] = None
    fee_amount: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None


@dataclass(frozen=True)
class Movement:
    """One parsed statement row as produced by a statement file reader."""

    booking_date: date
    amount: Decimal
    subject: str
    recipient_name: Optional[str] = None
    valuta_date: Optional[date] = None
    description: Optional[str] = None
    currency_code: Optional[str] = None
    is_preview: bool = False


@dataclass(frozen=True)
class Draft:
    """Statement draft domain entity."""

    id: int
    owner_id: int
    original_file_name: str
    description: Optional[str]
    account_name: Optional[str]
    detected_account_id: Optional[int]
    status: DraftStatus
    upload_group_id: Optional[str]
    parent_draft_id: Optional[int]
    parent_entry_id: Optional[int]
    parent_entry_amount: Optional[Decimal]
    created_at: datetime
    updated_at: datetime

    @property
    def is_split_draft(self) -> bool:
        return self.parent_entry_id is not None


@dataclass(frozen=True)
class DraftEntry:
    """Candidate transaction row of a draft."""

    id: int
    draft_id: int
    booking_date: date
    valuta_date: Optional[date]
    amount: Decimal
    subject: str
    recipient_name: Optional[str]
    currency_code: str
    booking_description: Optional[str]
    is_announced: bool
    is_cost_neutral: bool
    status: EntryStatus
    contact_id: Optional[int] = None
    savings_plan_id: Optional[int] = None
    archive_savings_plan_on_booking: bool = False
    split_draft_id: Optional[int] = None
    security: Optional[SecurityAssignment] = None

    @property
    def is_booked(self) -> bool:
        return self.status == EntryStatus.ALREADY_BOOKED

    @property
    def security_id(self) -> Optional[int]:
        return self.security.security_id if self.security is not None else None


@dataclass(frozen=True)
class Posting:
    """Immutable ledger row produced by booking."""

    id: Optional[int]
    source_id: int
    group_id: Optional[str]
    dimension: Dimension
    booking_date: date
    valuta_date: date
    amount: Decimal
    subject: Optional[str] = None
    recipient_name: Optional[str] = None
    description: Optional[str] = None
    security_sub_type: Optional[SecurityPostingSubType] = None
    quantity: Optional[Decimal] = None

    @property
    def kind(self) -> PostingKind:
        return self.dimension.kind


@dataclass(frozen=True)
class PostingAggregate:
    """Materialized rolling sum of postings for one bucket."""

    id: int
    dimension: Dimension
    security_sub_type: Optional[SecurityPostingSubType]
    period: AggregatePeriod
    period_start: date
    date_basis: DateBasis
    amount: Decimal


@dataclass(frozen=True)
class AggregateKey:
    """Identity of a posting aggregate row."""

    dimension: Dimension
    security_sub_type: Optional[SecurityPostingSubType]
    period: AggregatePeriod
    period_start: date
    date_basis: DateBasis


@dataclass(frozen=True)
class AggregatePoint:
    """One point of an aggregate time series."""

    period_start: date
    amount: Decimal


@dataclass(frozen=True)
class ValidationMessage:
    """One finding of the validator."""

    code: str
    severity: Severity
    message: str
    entry_id: Optional[int] = None


@dataclass(frozen=True)
class ValidationReport:
    """Result of validating a draft or a single entry."""

    draft_id: int
    messages: tuple[ValidationMessage, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not any(m.severity == Severity.ERROR for m in self.messages)

    @property
    def has_warnings(self) -> bool:
        return any(m.severity == Severity.WARNING for m in self.messages)

    def for_entry(self, entry_id: int) -> "ValidationReport":
        """Messages concerning one entry plus draft-level messages."""
        return ValidationReport(
            draft_id=self.draft_id,
            messages=tuple(m for m in self.messages if m.entry_id in (None, entry_id)),
        )

    def errors(self) -> tuple[ValidationMessage, ...]:
        return tuple(m for m in self.messages if m.severity == Severity.ERROR)


@dataclass(frozen=True)
class BookingResult:
    """Outcome of a booking request."""

    success: bool
    has_warnings: bool
    report: ValidationReport
    group_id: Optional[str] = None
    booked_count: int = 0
    next_entry_id: Optional[int] = None
    entry_results: tuple["BookingResult", ...] = field(default=())
    entry_id: Optional[int] = None


@dataclass(frozen=True)
class RebuildResult:
    """Outcome of a full aggregate rebuild."""

    processed: int
    total: int
    cancelled: bool
    balances_updated: int


@dataclass(frozen=True)
class EntryProposal:
    """Classification suggestions for one unbooked entry.

    Proposals are never applied by the classifier. ``ambiguous`` names the
    dimensions ("savings_plan", "security") for which more than one candidate
    matched; the first candidate is proposed and should be checked.
    """

    entry_id: int
    contact_id: Optional[int] = None
    savings_plan_id: Optional[int] = None
    security_id: Optional[int] = None
    duplicate_posting_id: Optional[int] = None
    ambiguous: tuple[str, ...] = ()
