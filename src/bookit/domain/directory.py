"""Directory services for the things postings are booked against.

Every lookup is scoped to an owner. An entity belonging to another owner is
reported exactly like a missing one.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from bookit.database.base import Database
from bookit.domain.entities import (
    MONEY_PLACES,
    Account as AccountEntity,
    Contact as ContactEntity,
    SavingsPlan as SavingsPlanEntity,
    SavingsPlanInterval,
    Security as SecurityEntity,
    fits_places,
)
from bookit.domain.periods import advance_due_date
from bookit.domain.errors import (
    ConflictError,
    InvalidAmountError,
    NotFoundError,
    account_not_found,
    amount_too_precise,
    contact_not_found,
    duplicate_name,
    savings_plan_not_found,
    security_not_found,
)


def _owned(entity, owner_id: int):
    if entity is None or entity.owner_id != owner_id:
        return None
    return entity


def _require_unique_name(kind: str, name: str, existing) -> None:
    if not name or not name.strip():
        raise ConflictError(f"{kind} name must not be empty")
    for item in existing:
        if item.name == name:
            raise ConflictError(duplicate_name(kind, name))


class AccountService:
    """Service for managing bank accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        owner_id: int,
        name: str,
        bank_name: str,
        iban: Optional[str] = None,
        currency_code: str = "EUR",
    ) -> int:
        """Create a new account.

        Args:
            owner_id: Owning user
            name: Account name, unique per owner
            bank_name: Bank name
            iban: IBAN used to detect the account from statement headers
            currency_code: ISO currency code of the account

        Returns:
            Account ID

        Raises:
            ConflictError: If account name already exists
        """
        _require_unique_name("Account", name, self.db.list_accounts(owner_id))
        normalized_iban = iban.replace(" ", "").upper() if iban else None
        return self.db.create_account(
            owner_id=owner_id,
            name=name,
            bank_name=bank_name,
            iban=normalized_iban,
            currency_code=currency_code.upper(),
        )

    def get_account(self, account_id: int, owner_id: int) -> Optional[AccountEntity]:
        """Get account by ID, or None if missing or foreign."""
        return _owned(self.db.get_account(account_id), owner_id)

    def require_account(self, account_id: int, owner_id: int) -> AccountEntity:
        account = self.get_account(account_id, owner_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def list_accounts(self, owner_id: int) -> list[AccountEntity]:
        """List accounts of an owner."""
        return self.db.list_accounts(owner_id)

    def find_by_iban(self, owner_id: int, iban: str) -> Optional[AccountEntity]:
        """Find an account whose IBAN equals ``iban`` ignoring spaces and case."""
        wanted = iban.replace(" ", "").upper()
        for account in self.db.list_accounts(owner_id):
            if account.iban and account.iban == wanted:
                return account
        return None


class ContactService:
    """Service for managing contacts and their alias patterns."""

    def __init__(self, db: Database):
        self.db = db

    def create_contact(self, owner_id: int, name: str, aliases: tuple[str, ...] = ()) -> int:
        """Create a contact, optionally with alias patterns.

        Raises:
            ConflictError: If contact name already exists
        """
        _require_unique_name("Contact", name, self.db.list_contacts(owner_id))
        with self.db.transaction():
            contact_id = self.db.create_contact(owner_id=owner_id, name=name)
            for pattern in aliases:
                self.db.add_contact_alias(contact_id, pattern)
        return contact_id

    def get_contact(self, contact_id: int, owner_id: int) -> Optional[ContactEntity]:
        return _owned(self.db.get_contact(contact_id), owner_id)

    def require_contact(self, contact_id: int, owner_id: int) -> ContactEntity:
        contact = self.get_contact(contact_id, owner_id)
        if contact is None:
            raise NotFoundError(contact_not_found(contact_id))
        return contact

    def list_contacts(self, owner_id: int) -> list[ContactEntity]:
        return self.db.list_contacts(owner_id)

    def add_alias(self, contact_id: int, owner_id: int, pattern: str) -> int:
        """Add an alias pattern. ``*`` and ``?`` act as wildcards.

        Raises:
            NotFoundError: If the contact does not exist for the owner
            ConflictError: If the pattern is empty or already present
        """
        contact = self.require_contact(contact_id, owner_id)
        pattern = pattern.strip()
        if not pattern:
            raise ConflictError("Alias pattern must not be empty")
        if any(alias.pattern.lower() == pattern.lower() for alias in contact.aliases):
            raise ConflictError(f"Contact '{contact.name}' already has alias '{pattern}'")
        return self.db.add_contact_alias(contact_id, pattern)

    def remove_alias(self, contact_id: int, owner_id: int, alias_id: int) -> None:
        contact = self.require_contact(contact_id, owner_id)
        if not any(alias.id == alias_id for alias in contact.aliases):
            raise NotFoundError(f"Alias {alias_id} not found for contact {contact_id}")
        self.db.delete_contact_alias(alias_id)


class SavingsPlanService:
    """Service for managing savings plans."""

    def __init__(self, db: Database):
        self.db = db

    def create_savings_plan(
        self,
        owner_id: int,
        name: str,
        target_amount: Optional[Decimal] = None,
        target_date: Optional[date] = None,
        interval: Optional[SavingsPlanInterval] = None,
        contract_number: Optional[str] = None,
    ) -> int:
        """Create a savings plan.

        A plan with an interval is recurring: booking a contribution on or after
        its target date moves the target date forward by whole intervals.

        Raises:
            ConflictError: If plan name already exists, the target is not positive
                or an interval is given without a target date
            InvalidAmountError: If the target has more than two decimal places
        """
        _require_unique_name("Savings plan", name, self.db.list_savings_plans(owner_id))
        if target_amount is not None and target_amount <= 0:
            raise ConflictError("Savings plan target amount must be positive")
        if target_amount is not None and not fits_places(target_amount, MONEY_PLACES):
            raise InvalidAmountError(amount_too_precise("Target amount", target_amount, MONEY_PLACES))
        if interval is not None and target_date is None:
            raise ConflictError("A recurring savings plan needs a target date")
        return self.db.create_savings_plan(
            owner_id=owner_id,
            name=name,
            target_amount=target_amount,
            target_date=target_date,
            interval=interval,
            contract_number=contract_number.strip() if contract_number else None,
        )

    def get_savings_plan(self, plan_id: int, owner_id: int) -> Optional[SavingsPlanEntity]:
        return _owned(self.db.get_savings_plan(plan_id), owner_id)

    def require_savings_plan(self, plan_id: int, owner_id: int) -> SavingsPlanEntity:
        plan = self.get_savings_plan(plan_id, owner_id)
        if plan is None:
            raise NotFoundError(savings_plan_not_found(plan_id))
        return plan

    def list_savings_plans(self, owner_id: int) -> list[SavingsPlanEntity]:
        return self.db.list_savings_plans(owner_id)

    def archive(self, plan_id: int, owner_id: int) -> None:
        self.require_savings_plan(plan_id, owner_id)
        self.db.set_savings_plan_active(plan_id, False)

    def reactivate(self, plan_id: int, owner_id: int) -> None:
        self.require_savings_plan(plan_id, owner_id)
        self.db.set_savings_plan_active(plan_id, True)

    def advance_if_due(self, plan_id: int, owner_id: int, as_of: date) -> Optional[date]:
        """Roll a recurring plan's target date past ``as_of`` when it is due.

        Returns the new target date, or None when the plan is not recurring or
        not yet due.
        """
        plan = self.require_savings_plan(plan_id, owner_id)
        if not plan.is_recurring or plan.target_date > as_of:
            return None
        advanced = advance_due_date(plan.target_date, plan.interval, as_of)
        self.db.set_savings_plan_target_date(plan_id, advanced)
        return advanced


class SecurityService:
    """Service for managing securities."""

    def __init__(self, db: Database):
        self.db = db

    def create_security(self, owner_id: int, name: str, identifier: Optional[str] = None) -> int:
        """Create a security (stock, fund, bond).

        Raises:
            ConflictError: If security name already exists
        """
        _require_unique_name("Security", name, self.db.list_securities(owner_id))
        return self.db.create_security(
            owner_id=owner_id, name=name, identifier=identifier.upper() if identifier else None
        )

    def get_security(self, security_id: int, owner_id: int) -> Optional[SecurityEntity]:
        return _owned(self.db.get_security(security_id), owner_id)

    def require_security(self, security_id: int, owner_id: int) -> SecurityEntity:
        security = self.get_security(security_id, owner_id)
        if security is None:
            raise NotFoundError(security_not_found(security_id))
        return security

    def list_securities(self, owner_id: int) -> list[SecurityEntity]:
        return self.db.list_securities(owner_id)
