"""Booking: turning validated draft entries into postings."""

import uuid
from decimal import Decimal
from typing import Optional

from bookit.database.base import Database
from bookit.domain import entry_state
from bookit.domain.aggregation import PostingAggregationService
from bookit.domain.directory import SavingsPlanService
from bookit.domain.draft import DraftService
from bookit.domain.entities import (
    BookingResult,
    Dimension,
    Draft,
    DraftEntry,
    Posting,
    SecurityPostingSubType,
    SecurityTransactionType,
    Severity,
    ValidationMessage,
    ValidationReport,
)
from bookit.domain.errors import ValidationFailedError, ValidationWarningsError
from bookit.domain.validation import BOOKING_FAILED, NOTHING_TO_BOOK, Validator
from bookit.logging_config import get_logger

logger = get_logger("booking")

_TRADE_SUB_TYPES = {
    SecurityTransactionType.BUY: SecurityPostingSubType.BUY,
    SecurityTransactionType.SELL: SecurityPostingSubType.SELL,
    SecurityTransactionType.DIVIDEND: SecurityPostingSubType.DIVIDEND,
}


def security_postings(entry: DraftEntry, template: Posting) -> list[Posting]:
    """Build the trade, fee and tax postings of a security entry.

    Fee and tax carry the sign of the entry amount. The trade posting takes
    the amount net of fee and tax, so trade plus fee plus tax postings add up
    to the entry amount.
    """
    security = entry.security
    fee = abs(security.fee_amount or Decimal("0"))
    tax = abs(security.tax_amount or Decimal("0"))
    if entry.amount < 0:
        fee, tax = -fee, -tax

    is_buy = security.transaction_type == SecurityTransactionType.BUY
    factor = 1 if is_buy else -1
    trade_amount = entry.amount - fee - tax if is_buy else entry.amount + fee + tax

    quantity = None
    if security.quantity is not None:
        if security.transaction_type == SecurityTransactionType.BUY:
            quantity = abs(security.quantity)
        elif security.transaction_type == SecurityTransactionType.SELL:
            quantity = -abs(security.quantity)

    dimension = Dimension.security(security.security_id)
    postings = [
        _derive(
            template,
            dimension,
            trade_amount,
            security_sub_type=_TRADE_SUB_TYPES[security.transaction_type],
            quantity=quantity,
        )
    ]
    if fee != 0:
        postings.append(
            _derive(template, dimension, factor * fee, security_sub_type=SecurityPostingSubType.FEE)
        )
    if tax != 0:
        postings.append(
            _derive(template, dimension, factor * tax, security_sub_type=SecurityPostingSubType.TAX)
        )
    return postings


def _derive(template: Posting, dimension: Dimension, amount: Decimal, **changes) -> Posting:
    return Posting(
        id=None,
        source_id=template.source_id,
        group_id=template.group_id,
        dimension=dimension,
        booking_date=template.booking_date,
        valuta_date=template.valuta_date,
        amount=amount,
        subject=template.subject,
        recipient_name=template.recipient_name,
        description=template.description,
        **changes,
    )


def build_postings(draft: Draft, entry: DraftEntry, group_id: str) -> list[Posting]:
    """Build every posting of one entry, all sharing ``group_id``.

    An entry split into a committed child draft books zero amounts on the bank
    and the contact; the child draft's entries carry the money.
    """
    amount = Decimal("0") if entry.split_draft_id is not None else entry.amount
    template = Posting(
        id=None,
        source_id=entry.id,
        group_id=group_id,
        dimension=Dimension.bank(draft.detected_account_id),
        booking_date=entry.booking_date,
        valuta_date=entry.valuta_date or entry.booking_date,
        amount=amount,
        subject=entry.subject,
        recipient_name=entry.recipient_name,
        description=entry.booking_description,
    )

    postings = [template]
    if entry.contact_id is not None:
        postings.append(_derive(template, Dimension.contact(entry.contact_id), amount))
    if entry.savings_plan_id is not None:
        postings.append(_derive(template, Dimension.savings_plan(entry.savings_plan_id), -amount))
    if entry.security_id is not None and entry.split_draft_id is None:
        postings.extend(security_postings(entry, template))
    return postings


class BookingEngine:
    """Books draft entries into postings, aggregates and account balances."""

    def __init__(self, db: Database):
        """Initialize booking engine.

        Args:
            db: Database instance
        """
        self.db = db
        self.drafts = DraftService(db)
        self.validator = Validator(db)
        self.aggregation = PostingAggregationService(db)
        self.savings_plans = SavingsPlanService(db)

    def book(
        self,
        draft_id: int,
        owner_id: int,
        entry_id: Optional[int] = None,
        force_warnings: bool = False,
    ) -> BookingResult:
        """Book one entry, or every unbooked entry of a draft.

        Each entry is validated and booked in its own transaction. Entries
        with errors, or with warnings unless ``force_warnings`` is set, are
        left untouched. Booking a contribution to a recurring savings plan
        that is due moves the plan's target date forward. The draft itself
        is never committed here; call ``DraftService.mark_committed`` once
        every entry is booked.

        Args:
            draft_id: Draft to book
            owner_id: Owning user
            entry_id: Book only this entry
            force_warnings: Book entries whose report only has warnings

        Returns:
            BookingResult; for a whole draft ``entry_results`` holds one
            result per entry and ``report`` merges their messages.
            A draft without unbooked entries is not successful and reports
            NOTHING_TO_BOOK.

        Raises:
            NotFoundError: If draft or entry does not exist for the owner
        """
        draft = self.drafts.require_draft(draft_id, owner_id)

        if entry_id is not None:
            entry = self.drafts.get_entry(draft_id, entry_id, owner_id)
            result = self._book_entry(draft, entry, owner_id, force_warnings)
            return BookingResult(
                success=result.success,
                has_warnings=result.has_warnings,
                report=result.report,
                group_id=result.group_id,
                booked_count=result.booked_count,
                next_entry_id=self._next_open_entry(draft_id, after=entry_id),
                entry_results=(result,),
                entry_id=entry_id,
            )

        pending = [e for e in self.db.list_entries(draft_id) if not e.is_booked]
        if not pending:
            report = self.validator.validate(draft_id, owner_id)
            nothing = ValidationMessage(
                NOTHING_TO_BOOK, Severity.INFORMATION, f"Draft {draft_id} has no unbooked entries"
            )
            return BookingResult(
                success=False,
                has_warnings=report.has_warnings,
                report=ValidationReport(draft_id, report.messages + (nothing,)),
                next_entry_id=None,
            )

        results = tuple(self._book_entry(draft, e, owner_id, force_warnings) for e in pending)
        messages = []
        for result in results:
            messages.extend(m for m in result.report.messages if m not in messages)
        booked = sum(r.booked_count for r in results)
        logger.info(
            "Draft booked",
            extra={
                "draft_id": draft_id,
                "owner_id": owner_id,
                "booked": booked,
                "pending": len(pending),
            },
        )
        return BookingResult(
            success=all(r.success for r in results),
            has_warnings=any(r.has_warnings for r in results),
            report=ValidationReport(draft_id=draft_id, messages=tuple(messages)),
            booked_count=booked,
            next_entry_id=self._next_open_entry(draft_id),
            entry_results=results,
        )

    def _next_open_entry(self, draft_id: int, after: Optional[int] = None) -> Optional[int]:
        unbooked = [e.id for e in self.db.list_entries(draft_id) if not e.is_booked]
        if after is not None:
            following = [i for i in unbooked if i > after]
            if following:
                return following[0]
        return unbooked[0] if unbooked else None

    def _book_entry(
        self, draft: Draft, entry: DraftEntry, owner_id: int, force_warnings: bool
    ) -> BookingResult:
        try:
            report = self.validator.require_bookable(draft.id, owner_id, entry.id, force_warnings)
        except (ValidationFailedError, ValidationWarningsError) as e:
            return BookingResult(
                success=False,
                has_warnings=e.report.has_warnings,
                report=e.report,
                entry_id=entry.id,
            )

        group_id = uuid.uuid4().hex
        try:
            with self.db.transaction():
                # Re-read inside the transaction; a concurrent booking wins
                current = self.db.get_entry(entry.id)
                booked = entry_state.mark_already_booked(current)
                for posting in build_postings(draft, current, group_id):
                    stored = self.db.add_posting(posting)
                    self.aggregation.upsert_for_posting(stored)
                    self.aggregation.adjust_balance_for_posting(stored)
                self.db.save_entry(booked)
                if current.savings_plan_id is not None and current.archive_savings_plan_on_booking:
                    self.db.set_savings_plan_active(current.savings_plan_id, False)
                if current.savings_plan_id is not None:
                    self.savings_plans.advance_if_due(
                        current.savings_plan_id, owner_id, current.booking_date
                    )
        except Exception as e:
            logger.exception(
                "Booking failed",
                extra={"draft_id": draft.id, "entry_id": entry.id, "owner_id": owner_id},
            )
            failure = ValidationMessage(
                BOOKING_FAILED, Severity.ERROR, f"Booking failed: {e}", entry.id
            )
            return BookingResult(
                success=False,
                has_warnings=report.has_warnings,
                report=ValidationReport(draft.id, report.messages + (failure,)),
                entry_id=entry.id,
            )

        logger.info(
            "Entry booked",
            extra={"draft_id": draft.id, "entry_id": entry.id, "group_id": group_id},
        )
        return BookingResult(
            success=True,
            has_warnings=report.has_warnings,
            report=report,
            group_id=group_id,
            booked_count=1,
            entry_id=entry.id,
        )
