"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic: enum values are stored as strings,
and the Kind-discriminated ``Dimension`` is stored as a (kind, dimension_id)
column pair.
"""

from typing import Optional

from bookit.domain import entities as domain
from bookit.database.models import (
    Account as ORMAccount,
    Contact as ORMContact,
    ContactAlias as ORMContactAlias,
    SavingsPlan as ORMSavingsPlan,
    Security as ORMSecurity,
    StatementDraft as ORMDraft,
    StatementDraftEntry as ORMDraftEntry,
    Posting as ORMPosting,
    PostingAggregate as ORMPostingAggregate,
)


def _optional_enum(enum_cls, value: Optional[str]):
    return enum_cls(value) if value is not None else None


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        owner_id=orm_account.owner_id,
        name=orm_account.name,
        bank_name=orm_account.bank_name,
        iban=orm_account.iban,
        currency_code=orm_account.currency_code,
        current_balance=orm_account.current_balance,
        created_at=orm_account.created_at,
        updated_at=orm_account.updated_at,
    )


def contact_alias_to_domain(orm_alias: ORMContactAlias) -> domain.ContactAlias:
    """Convert SQLAlchemy ContactAlias model to domain ContactAlias entity."""
    return domain.ContactAlias(
        id=orm_alias.id,
        contact_id=orm_alias.contact_id,
        pattern=orm_alias.pattern,
        created_at=orm_alias.created_at,
    )


def contact_to_domain(orm_contact: ORMContact) -> domain.Contact:
    """Convert SQLAlchemy Contact model (with aliases) to domain Contact entity."""
    return domain.Contact(
        id=orm_contact.id,
        owner_id=orm_contact.owner_id,
        name=orm_contact.name,
        created_at=orm_contact.created_at,
        aliases=tuple(contact_alias_to_domain(a) for a in orm_contact.aliases),
    )


def savings_plan_to_domain(orm_plan: ORMSavingsPlan) -> domain.SavingsPlan:
    """Convert SQLAlchemy SavingsPlan model to domain SavingsPlan entity."""
    return domain.SavingsPlan(
        id=orm_plan.id,
        owner_id=orm_plan.owner_id,
        name=orm_plan.name,
        target_amount=orm_plan.target_amount,
        is_active=orm_plan.is_active,
        created_at=orm_plan.created_at,
        target_date=orm_plan.target_date,
        interval=_optional_enum(domain.SavingsPlanInterval, orm_plan.interval),
        contract_number=orm_plan.contract_number,
    )


def security_to_domain(orm_security: ORMSecurity) -> domain.Security:
    """Convert SQLAlchemy Security model to domain Security entity."""
    return domain.Security(
        id=orm_security.id,
        owner_id=orm_security.owner_id,
        name=orm_security.name,
        identifier=orm_security.identifier,
        is_active=orm_security.is_active,
        created_at=orm_security.created_at,
    )


def draft_to_domain(orm_draft: ORMDraft) -> domain.Draft:
    """Convert SQLAlchemy StatementDraft model to domain Draft entity."""
    return domain.Draft(
        id=orm_draft.id,
        owner_id=orm_draft.owner_id,
        original_file_name=orm_draft.original_file_name,
        description=orm_draft.description,
        account_name=orm_draft.account_name,
        detected_account_id=orm_draft.detected_account_id,
        status=domain.DraftStatus(orm_draft.status),
        upload_group_id=orm_draft.upload_group_id,
        parent_draft_id=orm_draft.parent_draft_id,
        parent_entry_id=orm_draft.parent_entry_id,
        parent_entry_amount=orm_draft.parent_entry_amount,
        created_at=orm_draft.created_at,
        updated_at=orm_draft.updated_at,
    )


def draft_entry_to_domain(orm_entry: ORMDraftEntry) -> domain.DraftEntry:
    """Convert SQLAlchemy StatementDraftEntry model to domain DraftEntry entity."""
    security = None
    security_columns = (
        orm_entry.security_id,
        orm_entry.security_transaction_type,
        orm_entry.security_quantity,
        orm_entry.security_fee_amount,
        orm_entry.security_tax_amount,
    )
    # Detail columns without a security id still form an assignment
    if any(value is not None for value in security_columns):
        security = domain.SecurityAssignment(
            security_id=orm_entry.security_id,
            transaction_type=_optional_enum(
                domain.SecurityTransactionType, orm_entry.security_transaction_type
            ),
            quantity=orm_entry.security_quantity,
            fee_amount=orm_entry.security_fee_amount,
            tax_amount=orm_entry.security_tax_amount,
        )
    return domain.DraftEntry(
        id=orm_entry.id,
        draft_id=orm_entry.draft_id,
        booking_date=orm_entry.booking_date,
        valuta_date=orm_entry.valuta_date,
        amount=orm_entry.amount,
        subject=orm_entry.subject,
        recipient_name=orm_entry.recipient_name,
        currency_code=orm_entry.currency_code,
        booking_description=orm_entry.booking_description,
        is_announced=orm_entry.is_announced,
        is_cost_neutral=orm_entry.is_cost_neutral,
        status=domain.EntryStatus(orm_entry.status),
        contact_id=orm_entry.contact_id,
        savings_plan_id=orm_entry.savings_plan_id,
        archive_savings_plan_on_booking=orm_entry.archive_savings_plan_on_booking,
        split_draft_id=orm_entry.split_draft_id,
        security=security,
    )


def apply_draft_entry(orm_entry: ORMDraftEntry, entry: domain.DraftEntry) -> None:
    """Copy the mutable fields of a domain DraftEntry snapshot onto its ORM row.

    ``is_announced`` is immutable after creation and is not copied.
    """
    orm_entry.booking_date = entry.booking_date
    orm_entry.valuta_date = entry.valuta_date
    orm_entry.amount = entry.amount
    orm_entry.subject = entry.subject
    orm_entry.recipient_name = entry.recipient_name
    orm_entry.currency_code = entry.currency_code
    orm_entry.booking_description = entry.booking_description
    orm_entry.is_cost_neutral = entry.is_cost_neutral
    orm_entry.status = entry.status.value
    orm_entry.contact_id = entry.contact_id
    orm_entry.savings_plan_id = entry.savings_plan_id
    orm_entry.archive_savings_plan_on_booking = entry.archive_savings_plan_on_booking
    orm_entry.split_draft_id = entry.split_draft_id
    security = entry.security
    orm_entry.security_id = security.security_id if security else None
    orm_entry.security_transaction_type = (
        security.transaction_type.value if security and security.transaction_type else None
    )
    orm_entry.security_quantity = security.quantity if security else None
    orm_entry.security_fee_amount = security.fee_amount if security else None
    orm_entry.security_tax_amount = security.tax_amount if security else None


def posting_to_domain(orm_posting: ORMPosting) -> domain.Posting:
    """Convert SQLAlchemy Posting model to domain Posting entity."""
    return domain.Posting(
        id=orm_posting.id,
        source_id=orm_posting.source_id,
        group_id=orm_posting.group_id,
        dimension=domain.Dimension(domain.PostingKind(orm_posting.kind), orm_posting.dimension_id),
        booking_date=orm_posting.booking_date,
        valuta_date=orm_posting.valuta_date,
        amount=orm_posting.amount,
        subject=orm_posting.subject,
        recipient_name=orm_posting.recipient_name,
        description=orm_posting.description,
        security_sub_type=_optional_enum(
            domain.SecurityPostingSubType, orm_posting.security_sub_type
        ),
        quantity=orm_posting.quantity,
    )


def posting_to_orm(posting: domain.Posting) -> ORMPosting:
    """Build a new SQLAlchemy Posting row from a domain Posting."""
    return ORMPosting(
        source_id=posting.source_id,
        group_id=posting.group_id,
        kind=posting.dimension.kind.value,
        dimension_id=posting.dimension.id,
        booking_date=posting.booking_date,
        valuta_date=posting.valuta_date,
        amount=posting.amount,
        subject=posting.subject,
        recipient_name=posting.recipient_name,
        description=posting.description,
        security_sub_type=posting.security_sub_type.value if posting.security_sub_type else None,
        quantity=posting.quantity,
    )


def posting_aggregate_to_domain(orm_aggregate: ORMPostingAggregate) -> domain.PostingAggregate:
    """Convert SQLAlchemy PostingAggregate model to domain PostingAggregate entity."""
    return domain.PostingAggregate(
        id=orm_aggregate.id,
        dimension=domain.Dimension(
            domain.PostingKind(orm_aggregate.kind), orm_aggregate.dimension_id
        ),
        security_sub_type=_optional_enum(
            domain.SecurityPostingSubType, orm_aggregate.security_sub_type
        ),
        period=domain.AggregatePeriod(orm_aggregate.period),
        period_start=orm_aggregate.period_start,
        date_basis=domain.DateBasis(orm_aggregate.date_basis),
        amount=orm_aggregate.amount,
    )
