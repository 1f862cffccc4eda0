"""Draft validation.

Every check runs, and each finding becomes one ``ValidationMessage``. A
report without ERROR messages may be booked; WARNING messages need to be
forced.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Optional

from bookit.database.base import Database
from bookit.domain.directory import (
    AccountService,
    ContactService,
    SavingsPlanService,
    SecurityService,
)
from bookit.domain.draft import DraftService
from bookit.domain.entities import (
    Account,
    Draft,
    DraftEntry,
    DraftStatus,
    PostingKind,
    SecurityTransactionType,
    Severity,
    ValidationMessage,
    ValidationReport,
)
from bookit.domain.errors import ValidationFailedError, ValidationWarningsError

# Error codes
DRAFT_NOT_OPEN = "DRAFT_NOT_OPEN"
NO_ACCOUNT = "NO_ACCOUNT"
ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
ENTRY_ALREADY_BOOKED = "ENTRY_ALREADY_BOOKED"
AMOUNT_ZERO = "AMOUNT_ZERO"
ENTRY_NO_DIMENSION = "ENTRY_NO_DIMENSION"
CONTACT_NOT_FOUND = "CONTACT_NOT_FOUND"
SAVINGSPLAN_NOT_FOUND = "SAVINGSPLAN_NOT_FOUND"
SECURITY_NOT_FOUND = "SECURITY_NOT_FOUND"
CURRENCY_MISMATCH = "CURRENCY_MISMATCH"
SECURITY_MISSING_TXTYPE = "SECURITY_MISSING_TXTYPE"
SECURITY_MISSING_QUANTITY = "SECURITY_MISSING_QUANTITY"
SECURITY_QUANTITY_NOT_ALLOWED_FOR_DIVIDEND = "SECURITY_QUANTITY_NOT_ALLOWED_FOR_DIVIDEND"
SECURITY_FEE_TAX_EXCEEDS_AMOUNT = "SECURITY_FEE_TAX_EXCEEDS_AMOUNT"
SECURITY_FIELDS_WITHOUT_SECURITY = "SECURITY_FIELDS_WITHOUT_SECURITY"
SPLIT_WITH_SECURITY = "SPLIT_WITH_SECURITY"
SPLIT_DRAFT_MISSING = "SPLIT_DRAFT_MISSING"
SPLIT_NOT_COMMITTED = "SPLIT_NOT_COMMITTED"
SAVINGSPLAN_ARCHIVE_MISMATCH = "SAVINGSPLAN_ARCHIVE_MISMATCH"
BOOKING_FAILED = "BOOKING_FAILED"

# Warning codes
SPLIT_AMOUNT_MISMATCH = "SPLIT_AMOUNT_MISMATCH"
SAVINGSPLAN_INACTIVE = "SAVINGSPLAN_INACTIVE"
SAVINGSPLAN_GOAL_EXCEEDS = "SAVINGSPLAN_GOAL_EXCEEDS"
ENTRY_ANNOUNCED = "ENTRY_ANNOUNCED"

# Information codes
SAVINGSPLAN_GOAL_REACHED = "SAVINGSPLAN_GOAL_REACHED"
NOTHING_TO_BOOK = "NOTHING_TO_BOOK"


class _Collector:
    def __init__(self):
        self.messages: list[ValidationMessage] = []

    def error(self, code: str, message: str, entry_id: Optional[int] = None) -> None:
        self.messages.append(ValidationMessage(code, Severity.ERROR, message, entry_id))

    def warning(self, code: str, message: str, entry_id: Optional[int] = None) -> None:
        self.messages.append(ValidationMessage(code, Severity.WARNING, message, entry_id))

    def info(self, code: str, message: str, entry_id: Optional[int] = None) -> None:
        self.messages.append(ValidationMessage(code, Severity.INFORMATION, message, entry_id))


class Validator:
    """Checks whether a draft, or one entry of it, can be booked."""

    def __init__(self, db: Database):
        """Initialize validator.

        Args:
            db: Database instance
        """
        self.db = db
        self.drafts = DraftService(db)
        self.accounts = AccountService(db)
        self.contacts = ContactService(db)
        self.savings_plans = SavingsPlanService(db)
        self.securities = SecurityService(db)

    def validate(
        self, draft_id: int, owner_id: int, entry_id: Optional[int] = None
    ) -> ValidationReport:
        """Validate a whole draft or a single entry of it.

        A whole-draft validation only looks at entries not booked yet; asking
        for a booked entry explicitly reports ENTRY_ALREADY_BOOKED.

        Args:
            draft_id: Draft to validate
            owner_id: Owning user
            entry_id: Restrict entry checks to this entry

        Returns:
            ValidationReport with all findings

        Raises:
            NotFoundError: If draft or entry does not exist for the owner
        """
        draft = self.drafts.require_draft(draft_id, owner_id)
        if entry_id is not None:
            entries = [self.drafts.get_entry(draft_id, entry_id, owner_id)]
        else:
            entries = [e for e in self.db.list_entries(draft_id) if not e.is_booked]

        out = _Collector()
        account = self._check_draft(draft, owner_id, out)
        for entry in entries:
            self._check_entry(entry, account, owner_id, out)
        self._check_savings_goals(entries, owner_id, out)
        return ValidationReport(draft_id=draft_id, messages=tuple(out.messages))

    def require_bookable(
        self,
        draft_id: int,
        owner_id: int,
        entry_id: Optional[int] = None,
        force_warnings: bool = False,
    ) -> ValidationReport:
        """Validate and raise unless the result may be booked.

        Raises:
            ValidationFailedError: If the report has errors
            ValidationWarningsError: If it has warnings and ``force_warnings`` is not set
        """
        report = self.validate(draft_id, owner_id, entry_id)
        if not report.is_valid:
            raise ValidationFailedError(
                f"Validation failed with {len(report.errors())} error(s)", report
            )
        if report.has_warnings and not force_warnings:
            raise ValidationWarningsError("Validation produced warnings", report)
        return report

    def _check_draft(self, draft: Draft, owner_id: int, out: _Collector) -> Optional[Account]:
        if draft.status != DraftStatus.DRAFT:
            out.error(DRAFT_NOT_OPEN, f"Draft {draft.id} is {draft.status.value.lower()}")
        if draft.detected_account_id is None:
            out.error(NO_ACCOUNT, "No account assigned to the draft")
            return None
        account = self.accounts.get_account(draft.detected_account_id, owner_id)
        if account is None:
            out.error(ACCOUNT_NOT_FOUND, f"Account {draft.detected_account_id} not found")
        return account

    def _check_entry(
        self, entry: DraftEntry, account: Optional[Account], owner_id: int, out: _Collector
    ) -> None:
        eid = entry.id
        security = entry.security

        if entry.is_booked:
            out.error(ENTRY_ALREADY_BOOKED, f"Entry {eid} is already booked", eid)

        if entry.amount == 0 and not entry.is_cost_neutral:
            out.error(AMOUNT_ZERO, "Amount is zero", eid)

        has_dimension = any(
            ref is not None
            for ref in (
                entry.contact_id,
                entry.savings_plan_id,
                entry.security_id,
                entry.split_draft_id,
            )
        )
        if not has_dimension and not entry.is_cost_neutral:
            out.error(ENTRY_NO_DIMENSION, "No contact, savings plan or security assigned", eid)

        if entry.contact_id is not None and self.contacts.get_contact(entry.contact_id, owner_id) is None:
            out.error(CONTACT_NOT_FOUND, f"Contact {entry.contact_id} not found", eid)

        if entry.savings_plan_id is not None:
            plan = self.savings_plans.get_savings_plan(entry.savings_plan_id, owner_id)
            if plan is None:
                out.error(SAVINGSPLAN_NOT_FOUND, f"Savings plan {entry.savings_plan_id} not found", eid)
            elif not plan.is_active:
                out.warning(SAVINGSPLAN_INACTIVE, f"Savings plan '{plan.name}' is archived", eid)

        if account is not None and entry.currency_code != account.currency_code:
            out.error(
                CURRENCY_MISMATCH,
                f"Entry currency {entry.currency_code} differs from account currency "
                f"{account.currency_code}",
                eid,
            )

        if security is not None:
            self._check_security(entry, owner_id, out)

        if entry.split_draft_id is not None:
            if security is not None:
                out.error(SPLIT_WITH_SECURITY, "Split entries cannot carry a security", eid)
            self._check_split(entry, owner_id, out)

        if entry.is_announced:
            out.warning(ENTRY_ANNOUNCED, "Entry is an announced movement, not yet settled", eid)

    def _check_security(self, entry: DraftEntry, owner_id: int, out: _Collector) -> None:
        eid = entry.id
        security = entry.security
        if security.security_id is None:
            out.error(
                SECURITY_FIELDS_WITHOUT_SECURITY,
                "Security transaction details are set without a security",
                eid,
            )
            return
        if self.securities.get_security(security.security_id, owner_id) is None:
            out.error(SECURITY_NOT_FOUND, f"Security {security.security_id} not found", eid)

        if security.transaction_type is None:
            out.error(SECURITY_MISSING_TXTYPE, "Security transaction type is missing", eid)
        elif security.transaction_type == SecurityTransactionType.DIVIDEND:
            if security.quantity is not None:
                out.error(
                    SECURITY_QUANTITY_NOT_ALLOWED_FOR_DIVIDEND,
                    "Quantity is not allowed for dividends",
                    eid,
                )
        elif security.quantity is None or security.quantity < 0:
            out.error(SECURITY_MISSING_QUANTITY, "Security quantity is missing", eid)

        fee = abs(security.fee_amount or Decimal("0"))
        tax = abs(security.tax_amount or Decimal("0"))
        if fee + tax > abs(entry.amount):
            out.error(
                SECURITY_FEE_TAX_EXCEEDS_AMOUNT, "Fee and tax exceed the entry amount", eid
            )

    def _check_split(self, entry: DraftEntry, owner_id: int, out: _Collector) -> None:
        eid = entry.id
        child = self.drafts.get_draft(entry.split_draft_id, owner_id)
        if child is None:
            out.error(SPLIT_DRAFT_MISSING, f"Split draft {entry.split_draft_id} not found", eid)
            return
        if child.status != DraftStatus.COMMITTED:
            out.error(
                SPLIT_NOT_COMMITTED,
                f"Split draft {child.id} must be booked and committed first",
                eid,
            )
            return
        total = sum((e.amount for e in self.db.list_entries(child.id)), Decimal("0"))
        if total != entry.amount:
            out.warning(
                SPLIT_AMOUNT_MISMATCH,
                f"Split draft total {total} differs from entry amount {entry.amount}",
                eid,
            )

    def _check_savings_goals(
        self, entries: list[DraftEntry], owner_id: int, out: _Collector
    ) -> None:
        planned: dict[int, Decimal] = defaultdict(Decimal)
        archive_requested: set[int] = set()
        for entry in entries:
            if entry.savings_plan_id is None or entry.is_booked:
                continue
            planned[entry.savings_plan_id] -= entry.amount
            if entry.archive_savings_plan_on_booking:
                archive_requested.add(entry.savings_plan_id)
        if not planned:
            return

        current = self.db.sum_postings_by_dimension(PostingKind.SAVINGS_PLAN, planned.keys())
        for plan_id, amount in planned.items():
            plan = self.savings_plans.get_savings_plan(plan_id, owner_id)
            if plan is None or plan.target_amount is None:
                continue
            remaining = plan.target_amount - current[plan_id]
            if remaining > 0 and amount == remaining:
                out.info(
                    SAVINGSPLAN_GOAL_REACHED,
                    f"These entries reach the target of savings plan '{plan.name}'",
                )
            elif remaining > 0 and amount > remaining:
                out.warning(
                    SAVINGSPLAN_GOAL_EXCEEDS,
                    f"These entries exceed the target of savings plan '{plan.name}'",
                )
            if plan_id in archive_requested and current[plan_id] + amount != plan.target_amount:
                out.error(
                    SAVINGSPLAN_ARCHIVE_MISMATCH,
                    f"Savings plan '{plan.name}' cannot be archived: entries do not "
                    "settle the remaining target exactly",
                )
