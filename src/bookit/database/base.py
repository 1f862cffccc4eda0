"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Iterator, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from bookit.domain.entities import (
    Account,
    AggregateKey,
    AggregatePeriod,
    Contact,
    DateBasis,
    Draft,
    DraftEntry,
    DraftStatus,
    EntryStatus,
    Posting,
    PostingAggregate,
    PostingKind,
    SavingsPlan,
    SavingsPlanInterval,
    Security,
    SecurityPostingSubType,
)


class Database(ABC):
    """Abstract database interface for bookit.

    Write methods commit immediately unless they run inside ``transaction()``,
    in which case all writes of the block are committed together on exit and
    rolled back together when the block raises.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Return a context manager wrapping its block in one unit of work."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        owner_id: int,
        name: str,
        bank_name: str,
        iban: Optional[str] = None,
        currency_code: str = "EUR",
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self, owner_id: int) -> list[Account]:
        """List accounts of an owner."""
        pass

    @abstractmethod
    def adjust_account_balance(self, account_id: int, delta: Decimal) -> None:
        """Add ``delta`` to the cached account balance."""
        pass

    @abstractmethod
    def set_account_balance(self, account_id: int, balance: Decimal) -> None:
        """Overwrite the cached account balance."""
        pass

    # Contact operations
    @abstractmethod
    def create_contact(self, owner_id: int, name: str) -> int:
        """Create a contact. Returns contact ID."""
        pass

    @abstractmethod
    def get_contact(self, contact_id: int) -> Optional[Contact]:
        """Get contact (with aliases) by ID."""
        pass

    @abstractmethod
    def list_contacts(self, owner_id: int) -> list[Contact]:
        """List contacts (with aliases) of an owner."""
        pass

    @abstractmethod
    def add_contact_alias(self, contact_id: int, pattern: str) -> int:
        """Add an alias pattern to a contact. Returns alias ID."""
        pass

    @abstractmethod
    def delete_contact_alias(self, alias_id: int) -> None:
        """Delete an alias pattern."""
        pass

    # Savings plan operations
    @abstractmethod
    def create_savings_plan(
        self,
        owner_id: int,
        name: str,
        target_amount: Optional[Decimal] = None,
        target_date: Optional[date] = None,
        interval: Optional[SavingsPlanInterval] = None,
        contract_number: Optional[str] = None,
    ) -> int:
        """Create a savings plan. Returns plan ID."""
        pass

    @abstractmethod
    def get_savings_plan(self, plan_id: int) -> Optional[SavingsPlan]:
        """Get savings plan by ID."""
        pass

    @abstractmethod
    def list_savings_plans(self, owner_id: int) -> list[SavingsPlan]:
        """List savings plans of an owner."""
        pass

    @abstractmethod
    def set_savings_plan_active(self, plan_id: int, is_active: bool) -> None:
        """Activate or archive a savings plan."""
        pass

    @abstractmethod
    def set_savings_plan_target_date(self, plan_id: int, target_date: date) -> None:
        """Move the target date of a savings plan."""
        pass

    # Security operations
    @abstractmethod
    def create_security(self, owner_id: int, name: str, identifier: Optional[str] = None) -> int:
        """Create a security. Returns security ID."""
        pass

    @abstractmethod
    def get_security(self, security_id: int) -> Optional[Security]:
        """Get security by ID."""
        pass

    @abstractmethod
    def list_securities(self, owner_id: int) -> list[Security]:
        """List securities of an owner."""
        pass

    # Draft operations
    @abstractmethod
    def create_draft(
        self,
        owner_id: int,
        original_file_name: str,
        description: Optional[str] = None,
        account_name: Optional[str] = None,
        detected_account_id: Optional[int] = None,
        upload_group_id: Optional[str] = None,
        parent_draft_id: Optional[int] = None,
        parent_entry_id: Optional[int] = None,
        parent_entry_amount: Optional[Decimal] = None,
    ) -> int:
        """Create a draft. Returns draft ID."""
        pass

    @abstractmethod
    def get_draft(self, draft_id: int) -> Optional[Draft]:
        """Get draft by ID."""
        pass

    @abstractmethod
    def list_drafts(
        self,
        owner_id: int,
        status: Optional[DraftStatus] = None,
        upload_group_id: Optional[str] = None,
        created_before: Optional[datetime] = None,
    ) -> list[Draft]:
        """List drafts of an owner ordered by creation, with optional filters."""
        pass

    @abstractmethod
    def set_draft_status(self, draft_id: int, status: DraftStatus) -> None:
        """Update draft status."""
        pass

    @abstractmethod
    def set_draft_account(self, draft_id: int, account_id: int) -> None:
        """Set the detected account of a draft."""
        pass

    @abstractmethod
    def set_draft_parent(
        self, draft_id: int, parent_draft_id: int, parent_entry_id: int, parent_entry_amount: Decimal
    ) -> None:
        """Set the split linkage of a draft.

        Raises:
            AlreadyLinkedError: If the draft already has a parent entry
        """
        pass

    # Draft entry operations
    @abstractmethod
    def create_entry(
        self,
        draft_id: int,
        booking_date: date,
        amount: Decimal,
        subject: str,
        recipient_name: Optional[str] = None,
        valuta_date: Optional[date] = None,
        currency_code: str = "EUR",
        booking_description: Optional[str] = None,
        is_announced: bool = False,
        status: EntryStatus = EntryStatus.OPEN,
    ) -> int:
        """Create a draft entry. Returns entry ID."""
        pass

    @abstractmethod
    def get_entry(self, entry_id: int) -> Optional[DraftEntry]:
        """Get draft entry by ID."""
        pass

    @abstractmethod
    def list_entries(self, draft_id: int) -> list[DraftEntry]:
        """List entries of a draft ordered by ID."""
        pass

    @abstractmethod
    def find_entry_by_split_draft(self, split_draft_id: int) -> Optional[DraftEntry]:
        """Find the entry linking the given split draft, if any."""
        pass

    @abstractmethod
    def save_entry(self, entry: DraftEntry) -> None:
        """Persist the mutable fields of an entry snapshot."""
        pass

    @abstractmethod
    def delete_entry(self, entry_id: int) -> None:
        """Delete a draft entry."""
        pass

    # Posting operations
    @abstractmethod
    def add_posting(self, posting: Posting) -> Posting:
        """Append a posting. Returns the stored posting with its ID."""
        pass

    @abstractmethod
    def get_posting(self, posting_id: int) -> Optional[Posting]:
        """Get posting by ID."""
        pass

    @abstractmethod
    def assign_posting_group(self, posting_id: int, group_id: str) -> str:
        """Set the group id if none is set yet. Returns the effective group id."""
        pass

    @abstractmethod
    def list_postings(
        self,
        source_id: Optional[int] = None,
        kind: Optional[PostingKind] = None,
        dimension_id: Optional[int] = None,
        group_id: Optional[str] = None,
        booking_date_from: Optional[date] = None,
        booking_date_to: Optional[date] = None,
    ) -> list[Posting]:
        """List postings with optional filters, ordered by ID.

        Booking date bounds are inclusive.
        """
        pass

    @abstractmethod
    def iter_postings_for_dimensions(
        self, dimension_ids: dict[PostingKind, Iterable[int]], chunk_size: int = 1000
    ) -> Iterator[Posting]:
        """Stream all postings booked against any of the given dimensions."""
        pass

    @abstractmethod
    def sum_postings_by_dimension(
        self, kind: PostingKind, dimension_ids: Iterable[int]
    ) -> dict[int, Decimal]:
        """Sum posting amounts per dimension ID for one kind."""
        pass

    # Posting aggregate operations
    @abstractmethod
    def add_to_aggregate(self, key: AggregateKey, delta: Decimal) -> None:
        """Add ``delta`` to the aggregate row of ``key``, creating it on first use."""
        pass

    @abstractmethod
    def insert_aggregates(self, rows: Iterable[tuple[AggregateKey, Decimal]]) -> None:
        """Insert new aggregate rows."""
        pass

    @abstractmethod
    def delete_aggregates_for_dimensions(self, dimension_ids: dict[PostingKind, Iterable[int]]) -> int:
        """Delete all aggregate rows of the given dimensions. Returns rows deleted."""
        pass

    @abstractmethod
    def list_aggregates(
        self,
        kind: PostingKind,
        dimension_ids: Iterable[int],
        period: Optional[AggregatePeriod] = None,
        date_basis: Optional[DateBasis] = None,
        security_sub_type: Optional[SecurityPostingSubType] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[PostingAggregate]:
        """List aggregate rows ordered by period start, with optional filters."""
        pass
