"""Split drafts: breaking one statement entry into a child draft of entries."""

from decimal import Decimal
from typing import Iterable

from bookit.database.base import Database
from bookit.domain import entry_state
from bookit.domain.draft import DraftService
from bookit.domain.entities import Draft, DraftEntry, DraftStatus
from bookit.domain.errors import AlreadyLinkedError, InvalidStateError
from bookit.logging_config import get_logger

logger = get_logger("split")


class SplitLinker:
    """Links entries to child split drafts.

    The link is stored twice: the parent entry's ``split_draft_id`` and the
    child draft's parent fields. Both are set in one transaction and the
    parent chain is checked for cycles before linking.
    """

    def __init__(self, db: Database):
        """Initialize split linker.

        Args:
            db: Database instance
        """
        self.db = db
        self.drafts = DraftService(db)

    def ancestors(self, draft_id: int) -> list[int]:
        """Return the parent chain of a draft, nearest first.

        Raises:
            InvalidStateError: If the stored chain contains a cycle
        """
        chain = []
        seen = {draft_id}
        draft = self.db.get_draft(draft_id)
        while draft is not None and draft.parent_draft_id is not None:
            parent_id = draft.parent_draft_id
            if parent_id in seen:
                raise InvalidStateError(f"Split chain of draft {draft_id} contains a cycle")
            seen.add(parent_id)
            chain.append(parent_id)
            draft = self.db.get_draft(parent_id)
        return chain

    def _check_linkable(self, parent_draft: Draft, entry: DraftEntry, child: Draft) -> None:
        if child.id == parent_draft.id or child.id in self.ancestors(parent_draft.id):
            raise InvalidStateError(
                f"Linking draft {child.id} to entry {entry.id} would create a cycle"
            )
        if child.status != DraftStatus.DRAFT:
            raise InvalidStateError(f"Draft {child.id} is {child.status.value.lower()}")
        if child.parent_entry_id is not None and child.parent_entry_id != entry.id:
            raise AlreadyLinkedError(
                f"Draft {child.id} is already the split of entry {child.parent_entry_id}"
            )
        linked = self.db.find_entry_by_split_draft(child.id)
        if linked is not None and linked.id != entry.id:
            raise AlreadyLinkedError(f"Draft {child.id} is already linked to entry {linked.id}")

    def _link(self, parent_draft: Draft, entry: DraftEntry, child: Draft) -> DraftEntry:
        updated = entry_state.assign_split_draft(entry, child.id)
        with self.db.transaction():
            self.db.save_entry(updated)
            # The parent linkage is written once; relinking keeps the original amount
            if child.parent_entry_id is None:
                self.db.set_draft_parent(child.id, parent_draft.id, entry.id, entry.amount)
        logger.info(
            "Split draft linked",
            extra={"entry_id": entry.id, "split_draft_id": child.id},
        )
        return updated

    def create_split_draft(
        self, draft_id: int, entry_id: int, owner_id: int, amounts: Iterable[Decimal] = ()
    ) -> int:
        """Create a child draft for an entry, seeded with one entry per amount.

        The child entries copy date, subject and recipient of the parent entry,
        and the child draft uses the parent's account.

        Returns:
            Child draft ID
        """
        parent_draft = self.drafts.require_open_draft(draft_id, owner_id)
        entry = self.drafts.get_entry(draft_id, entry_id, owner_id)
        # Fail before creating anything
        entry_state.assign_split_draft(entry, -1)
        amounts = [entry_state.require_money(amount) for amount in amounts]

        with self.db.transaction():
            child_id = self.db.create_draft(
                owner_id=owner_id,
                original_file_name=parent_draft.original_file_name,
                description=f"Split of entry {entry.id}: {entry.subject}",
                account_name=parent_draft.account_name,
                detected_account_id=parent_draft.detected_account_id,
                upload_group_id=None,
            )
            for amount in amounts:
                self.db.create_entry(
                    draft_id=child_id,
                    booking_date=entry.booking_date,
                    valuta_date=entry.valuta_date,
                    amount=amount,
                    subject=entry.subject,
                    recipient_name=entry.recipient_name,
                    currency_code=entry.currency_code,
                    booking_description=entry.booking_description,
                )
            child = self.db.get_draft(child_id)
            self._check_linkable(parent_draft, entry, child)
            self._link(parent_draft, entry, child)
        return child_id

    def assign_split_draft(
        self, draft_id: int, entry_id: int, owner_id: int, child_draft_id: int
    ) -> DraftEntry:
        """Link an existing draft as the split of an entry.

        Raises:
            AlreadyLinkedError: If entry or child draft is already linked elsewhere
            ConflictingAssignmentError: If the entry carries a security
            InvalidStateError: If the link creates a cycle or the child is closed
        """
        parent_draft = self.drafts.require_open_draft(draft_id, owner_id)
        entry = self.drafts.get_entry(draft_id, entry_id, owner_id)
        child = self.drafts.require_draft(child_draft_id, owner_id)
        self._check_linkable(parent_draft, entry, child)
        return self._link(parent_draft, entry, child)

    def clear_split_draft(self, draft_id: int, entry_id: int, owner_id: int) -> DraftEntry:
        """Unlink the split draft of an unbooked entry.

        The child keeps its parent fields, so it can only be linked back to the
        same entry.
        """
        self.drafts.require_open_draft(draft_id, owner_id)
        entry = self.drafts.get_entry(draft_id, entry_id, owner_id)
        updated = entry_state.clear_split_draft(entry)
        self.db.save_entry(updated)
        return updated

    def split_sum(self, child_draft_id: int, owner_id: int) -> Decimal:
        """Sum of entry amounts of a split draft."""
        entries = self.drafts.list_entries(child_draft_id, owner_id)
        return sum((e.amount for e in entries), Decimal("0"))
