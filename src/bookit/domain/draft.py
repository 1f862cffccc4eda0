"""Statement draft domain service."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional

from bookit.database.base import Database
from bookit.domain import entry_state
from bookit.domain.directory import (
    AccountService,
    ContactService,
    SavingsPlanService,
    SecurityService,
)
from bookit.domain.entities import (
    Draft as DraftEntity,
    DraftEntry as DraftEntryEntity,
    DraftStatus,
    Movement,
    SecurityTransactionType,
)
from bookit.domain.errors import (
    AlreadyLinkedError,
    InvalidStateError,
    NotFoundError,
    draft_not_found,
    draft_not_open,
    entry_not_found,
)
from bookit.logging_config import get_logger

logger = get_logger("drafts")


class DraftService:
    """Service for statement drafts and their entries.

    All operations are scoped to an owner; a draft of another owner is
    reported as not found. Entry changes go through the transition functions
    of ``bookit.domain.entry_state`` and are only allowed while the draft is
    open.
    """

    def __init__(self, db: Database):
        """Initialize draft service.

        Args:
            db: Database instance
        """
        self.db = db
        self.accounts = AccountService(db)
        self.contacts = ContactService(db)
        self.savings_plans = SavingsPlanService(db)
        self.securities = SecurityService(db)

    # Lookups
    def get_draft(self, draft_id: int, owner_id: int) -> Optional[DraftEntity]:
        """Get draft by ID, or None if missing or foreign."""
        draft = self.db.get_draft(draft_id)
        if draft is None or draft.owner_id != owner_id:
            return None
        return draft

    def require_draft(self, draft_id: int, owner_id: int) -> DraftEntity:
        draft = self.get_draft(draft_id, owner_id)
        if draft is None:
            raise NotFoundError(draft_not_found(draft_id))
        return draft

    def require_open_draft(self, draft_id: int, owner_id: int) -> DraftEntity:
        draft = self.require_draft(draft_id, owner_id)
        if draft.status != DraftStatus.DRAFT:
            raise InvalidStateError(draft_not_open(draft_id, draft.status.value))
        return draft

    def get_entry(self, draft_id: int, entry_id: int, owner_id: int) -> DraftEntryEntity:
        """Get an entry of an owned draft.

        Raises:
            NotFoundError: If the draft or the entry does not exist
        """
        self.require_draft(draft_id, owner_id)
        entry = self.db.get_entry(entry_id)
        if entry is None or entry.draft_id != draft_id:
            raise NotFoundError(entry_not_found(entry_id, draft_id))
        return entry

    def list_entries(self, draft_id: int, owner_id: int) -> list[DraftEntryEntity]:
        self.require_draft(draft_id, owner_id)
        return self.db.list_entries(draft_id)

    def list_open_drafts(self, owner_id: int) -> list[DraftEntity]:
        """List drafts still in review."""
        return self.db.list_drafts(owner_id, status=DraftStatus.DRAFT)

    def get_upload_group_neighbors(
        self, draft_id: int, owner_id: int
    ) -> tuple[Optional[int], Optional[int]]:
        """Return (previous, next) open draft IDs of the same upload group."""
        draft = self.require_draft(draft_id, owner_id)
        if draft.upload_group_id is None:
            return None, None
        siblings = [
            d.id
            for d in self.db.list_drafts(owner_id, upload_group_id=draft.upload_group_id)
            if d.status == DraftStatus.DRAFT or d.id == draft_id
        ]
        index = siblings.index(draft_id)
        previous_id = siblings[index - 1] if index > 0 else None
        next_id = siblings[index + 1] if index + 1 < len(siblings) else None
        return previous_id, next_id

    # Creation
    def _add_movement(self, draft_id: int, movement: Movement) -> int:
        return self.db.create_entry(
            draft_id=draft_id,
            booking_date=movement.booking_date,
            amount=entry_state.require_money(movement.amount),
            subject=movement.subject,
            recipient_name=movement.recipient_name,
            valuta_date=movement.valuta_date,
            currency_code=movement.currency_code or "EUR",
            booking_description=movement.description,
            is_announced=movement.is_preview,
            status=entry_state.initial_status(movement.is_preview),
        )

    def create_draft(
        self,
        owner_id: int,
        original_file_name: str,
        movements: Iterable[Movement] = (),
        account_name: Optional[str] = None,
        description: Optional[str] = None,
        upload_group_id: Optional[str] = None,
    ) -> int:
        """Create a draft with one entry per movement.

        Preview movements become announced entries.

        Args:
            owner_id: Owning user
            original_file_name: Name of the uploaded statement file
            movements: Parsed statement rows
            account_name: Raw account identifier (IBAN) from the statement header
            description: Optional draft description
            upload_group_id: Shared ID of drafts created from the same upload

        Returns:
            Draft ID
        """
        with self.db.transaction():
            draft_id = self.db.create_draft(
                owner_id=owner_id,
                original_file_name=original_file_name,
                description=description,
                account_name=account_name,
                upload_group_id=upload_group_id,
            )
            count = 0
            for movement in movements:
                self._add_movement(draft_id, movement)
                count += 1
        logger.info(
            "Draft created",
            extra={"draft_id": draft_id, "owner_id": owner_id, "entries": count},
        )
        return draft_id

    def create_drafts_from_upload(
        self,
        owner_id: int,
        original_file_name: str,
        movements: Iterable[Movement],
        max_entries_per_draft: int,
        account_name: Optional[str] = None,
    ) -> list[int]:
        """Split one uploaded statement into drafts of at most ``max_entries_per_draft``.

        Movements are ordered by booking date. All drafts share one upload group.

        Returns:
            Draft IDs in upload order
        """
        if max_entries_per_draft <= 0:
            raise ValueError("max_entries_per_draft must be positive")
        ordered = sorted(movements, key=lambda m: m.booking_date)
        chunks = [
            ordered[i : i + max_entries_per_draft]
            for i in range(0, len(ordered), max_entries_per_draft)
        ] or [[]]
        if len(chunks) == 1:
            return [
                self.create_draft(owner_id, original_file_name, chunks[0], account_name=account_name)
            ]

        upload_group_id = uuid.uuid4().hex
        draft_ids = []
        with self.db.transaction():
            for number, chunk in enumerate(chunks, start=1):
                draft_ids.append(
                    self.create_draft(
                        owner_id,
                        original_file_name,
                        chunk,
                        account_name=account_name,
                        description=f"Part {number}/{len(chunks)}",
                        upload_group_id=upload_group_id,
                    )
                )
        return draft_ids

    # Entry editing
    def add_entry(
        self,
        draft_id: int,
        owner_id: int,
        booking_date: date,
        amount: Decimal,
        subject: str,
        recipient_name: Optional[str] = None,
        valuta_date: Optional[date] = None,
        currency_code: Optional[str] = None,
        booking_description: Optional[str] = None,
        is_announced: bool = False,
    ) -> int:
        """Add a manual entry to an open draft. Returns entry ID."""
        self.require_open_draft(draft_id, owner_id)
        if not subject or not subject.strip():
            raise InvalidStateError("Entry subject must not be empty")
        return self._add_movement(
            draft_id,
            Movement(
                booking_date=booking_date,
                amount=amount,
                subject=subject,
                recipient_name=recipient_name,
                valuta_date=valuta_date,
                description=booking_description,
                currency_code=currency_code,
                is_preview=is_announced,
            ),
        )

    def update_entry(
        self,
        draft_id: int,
        entry_id: int,
        owner_id: int,
        booking_date: Optional[date] = None,
        valuta_date: Optional[date] = None,
        amount: Optional[Decimal] = None,
        subject: Optional[str] = None,
        recipient_name: Optional[str] = None,
        currency_code: Optional[str] = None,
        booking_description: Optional[str] = None,
    ) -> DraftEntryEntity:
        """Edit statement data of an entry. Arguments left as None keep their value."""
        entry = self._open_entry(draft_id, entry_id, owner_id)
        updated = entry_state.update_core(
            entry,
            booking_date=booking_date if booking_date is not None else entry.booking_date,
            valuta_date=valuta_date if valuta_date is not None else entry.valuta_date,
            amount=amount if amount is not None else entry.amount,
            subject=subject if subject is not None else entry.subject,
            recipient_name=recipient_name if recipient_name is not None else entry.recipient_name,
            currency_code=currency_code if currency_code is not None else entry.currency_code,
            booking_description=(
                booking_description if booking_description is not None else entry.booking_description
            ),
        )
        self.db.save_entry(updated)
        return updated

    def delete_entry(self, draft_id: int, entry_id: int, owner_id: int) -> None:
        """Delete an entry that is neither booked nor linked to a split draft."""
        entry = self._open_entry(draft_id, entry_id, owner_id)
        if entry.is_booked:
            raise InvalidStateError(f"Entry {entry_id} is already booked")
        if entry.split_draft_id is not None:
            raise InvalidStateError(
                f"Entry {entry_id} is linked to split draft {entry.split_draft_id}; clear it first"
            )
        self.db.delete_entry(entry_id)

    # Classification
    def _open_entry(self, draft_id: int, entry_id: int, owner_id: int) -> DraftEntryEntity:
        self.require_open_draft(draft_id, owner_id)
        return self.get_entry(draft_id, entry_id, owner_id)

    def _transition(
        self,
        draft_id: int,
        entry_id: int,
        owner_id: int,
        transition: Callable[[DraftEntryEntity], DraftEntryEntity],
    ) -> DraftEntryEntity:
        entry = self._open_entry(draft_id, entry_id, owner_id)
        updated = transition(entry)
        self.db.save_entry(updated)
        return updated

    def set_account(self, draft_id: int, owner_id: int, account_id: int) -> None:
        """Set the account the draft books against. The account is set once.

        Raises:
            NotFoundError: If draft or account does not exist for the owner
            AlreadyLinkedError: If a different account is already set
        """
        draft = self.require_open_draft(draft_id, owner_id)
        self.accounts.require_account(account_id, owner_id)
        if draft.detected_account_id == account_id:
            return
        if draft.detected_account_id is not None:
            raise AlreadyLinkedError(
                f"Draft {draft_id} is already assigned to account {draft.detected_account_id}"
            )
        self.db.set_draft_account(draft_id, account_id)

    def assign_contact(
        self, draft_id: int, entry_id: int, owner_id: int, contact_id: int
    ) -> DraftEntryEntity:
        self.contacts.require_contact(contact_id, owner_id)
        return self._transition(
            draft_id, entry_id, owner_id, lambda e: entry_state.assign_contact(e, contact_id)
        )

    def clear_contact(self, draft_id: int, entry_id: int, owner_id: int) -> DraftEntryEntity:
        return self._transition(draft_id, entry_id, owner_id, entry_state.clear_contact)

    def reset_open(self, draft_id: int, entry_id: int, owner_id: int) -> DraftEntryEntity:
        return self._transition(draft_id, entry_id, owner_id, entry_state.reset_open)

    def set_cost_neutral(
        self, draft_id: int, entry_id: int, owner_id: int, is_cost_neutral: bool
    ) -> DraftEntryEntity:
        return self._transition(
            draft_id,
            entry_id,
            owner_id,
            lambda e: entry_state.mark_cost_neutral(e, is_cost_neutral),
        )

    def assign_savings_plan(
        self, draft_id: int, entry_id: int, owner_id: int, savings_plan_id: Optional[int]
    ) -> DraftEntryEntity:
        """Assign a savings plan, or clear it with None."""
        if savings_plan_id is not None:
            self.savings_plans.require_savings_plan(savings_plan_id, owner_id)
        return self._transition(
            draft_id,
            entry_id,
            owner_id,
            lambda e: entry_state.assign_savings_plan(e, savings_plan_id),
        )

    def set_archive_savings_plan_on_booking(
        self, draft_id: int, entry_id: int, owner_id: int, archive: bool
    ) -> DraftEntryEntity:
        return self._transition(
            draft_id,
            entry_id,
            owner_id,
            lambda e: entry_state.set_archive_savings_plan_on_booking(e, archive),
        )

    def set_security(
        self,
        draft_id: int,
        entry_id: int,
        owner_id: int,
        security_id: Optional[int],
        transaction_type: Optional[SecurityTransactionType] = None,
        quantity: Optional[Decimal] = None,
        fee_amount: Optional[Decimal] = None,
        tax_amount: Optional[Decimal] = None,
    ) -> DraftEntryEntity:
        """Set the security assignment, or clear all security fields with None.

        Raises:
            ConflictingAssignmentError: If the entry is split, or detail fields
                are given without a security
            NotFoundError: If the security does not exist for the owner
        """
        assignment = entry_state.build_security_assignment(
            security_id, transaction_type, quantity, fee_amount, tax_amount
        )
        if security_id is not None:
            self.securities.require_security(security_id, owner_id)
        return self._transition(
            draft_id, entry_id, owner_id, lambda e: entry_state.set_security(e, assignment)
        )

    # Draft lifecycle
    def mark_committed(self, draft_id: int, owner_id: int) -> None:
        """Close a draft whose entries are all booked.

        Raises:
            InvalidStateError: If the draft is not open or has unbooked entries
        """
        self.require_open_draft(draft_id, owner_id)
        unbooked = [e.id for e in self.db.list_entries(draft_id) if not e.is_booked]
        if unbooked:
            raise InvalidStateError(
                f"Draft {draft_id} has {len(unbooked)} unbooked "
                f"entr{'ies' if len(unbooked) != 1 else 'y'}"
            )
        self.db.set_draft_status(draft_id, DraftStatus.COMMITTED)
        logger.info("Draft committed", extra={"draft_id": draft_id, "owner_id": owner_id})

    def cancel(self, draft_id: int, owner_id: int) -> None:
        """Abandon a draft. Committed drafts cannot be cancelled."""
        draft = self.require_draft(draft_id, owner_id)
        if draft.status == DraftStatus.COMMITTED:
            raise InvalidStateError(f"Draft {draft_id} is committed and cannot be cancelled")
        if draft.status == DraftStatus.EXPIRED:
            return
        self.db.set_draft_status(draft_id, DraftStatus.EXPIRED)
        logger.info("Draft expired", extra={"draft_id": draft_id, "owner_id": owner_id})

    expire = cancel

    def expire_older_than(self, owner_id: int, cutoff: datetime) -> list[int]:
        """Expire open drafts created before ``cutoff``. Returns expired draft IDs."""
        stale = self.db.list_drafts(owner_id, status=DraftStatus.DRAFT, created_before=cutoff)
        with self.db.transaction():
            for draft in stale:
                self.db.set_draft_status(draft.id, DraftStatus.EXPIRED)
        if stale:
            logger.info(
                "Expired stale drafts",
                extra={"owner_id": owner_id, "count": len(stale)},
            )
        return [d.id for d in stale]
