"""SQLAlchemy models for bookit database."""

from datetime import datetime, UTC
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Boolean,
    Index,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session
from sqlalchemy.types import TypeDecorator

from bookit.domain.entities import MONEY_PLACES, QUANTITY_PLACES, fits_places

Base = declarative_base()


class FixedPoint(TypeDecorator):
    """Exact Decimal stored as an integer count of 10**-places units.

    Values with more decimal places than ``places`` are rejected, never rounded.
    """

    impl = BigInteger
    cache_ok = True

    def __init__(self, places: int):
        super().__init__()
        self.places = places

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = Decimal(value)
        if not fits_places(value, self.places):
            raise ValueError(f"{value} has more than {self.places} decimal places")
        return int(value.scaleb(self.places))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value).scaleb(-self.places)


MONEY = FixedPoint(MONEY_PLACES)
QUANTITY = FixedPoint(QUANTITY_PLACES)


def _now() -> datetime:
    return datetime.now(UTC)


class Account(Base):
    """Bank account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    bank_name = Column(String, nullable=False)
    iban = Column(String, nullable=True)
    currency_code = Column(String(3), default="EUR", nullable=False)
    current_balance = Column(MONEY, default=Decimal("0"), nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("owner_id", "name", name="uq_account_owner_name"),)


class Contact(Base):
    """Contact (counterparty) model."""

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    aliases = relationship(
        "ContactAlias",
        back_populates="contact",
        cascade="all, delete-orphan",
        order_by="ContactAlias.id",
    )


class ContactAlias(Base):
    """Alias pattern of a contact."""

    __tablename__ = "contact_aliases"

    id = Column(Integer, primary_key=True)
    contact_id = Column(Integer, ForeignKey("contacts.id"), nullable=False)
    pattern = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    contact = relationship("Contact", back_populates="aliases")


class SavingsPlan(Base):
    """Savings plan model."""

    __tablename__ = "savings_plans"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    target_amount = Column(MONEY, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    target_date = Column(Date, nullable=True)
    interval = Column(String, nullable=True)
    contract_number = Column(String, nullable=True)


class Security(Base):
    """Security model."""

    __tablename__ = "securities"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    identifier = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)


class StatementDraft(Base):
    """Statement draft model."""

    __tablename__ = "statement_drafts"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, nullable=False, index=True)
    original_file_name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    account_name = Column(String, nullable=True)
    detected_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    status = Column(String, default="Draft", nullable=False)
    upload_group_id = Column(String, nullable=True, index=True)
    parent_draft_id = Column(Integer, ForeignKey("statement_drafts.id"), nullable=True)
    parent_entry_id = Column(Integer, nullable=True)
    parent_entry_amount = Column(MONEY, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    # Relationships
    entries = relationship(
        "StatementDraftEntry",
        back_populates="draft",
        cascade="all, delete-orphan",
        foreign_keys="StatementDraftEntry.draft_id",
        order_by="StatementDraftEntry.id",
    )


class StatementDraftEntry(Base):
    """Statement draft entry model."""

    __tablename__ = "statement_draft_entries"

    id = Column(Integer, primary_key=True)
    draft_id = Column(Integer, ForeignKey("statement_drafts.id"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False)
    valuta_date = Column(Date, nullable=True)
    amount = Column(MONEY, nullable=False)
    subject = Column(String, nullable=False)
    recipient_name = Column(String, nullable=True)
    currency_code = Column(String(3), default="EUR", nullable=False)
    booking_description = Column(String, nullable=True)
    is_announced = Column(Boolean, default=False, nullable=False)
    is_cost_neutral = Column(Boolean, default=False, nullable=False)
    status = Column(String, default="Open", nullable=False)
    contact_id = Column(Integer, ForeignKey("contacts.id"), nullable=True)
    savings_plan_id = Column(Integer, ForeignKey("savings_plans.id"), nullable=True)
    archive_savings_plan_on_booking = Column(Boolean, default=False, nullable=False)
    split_draft_id = Column(Integer, ForeignKey("statement_drafts.id"), nullable=True, unique=True)
    security_id = Column(Integer, ForeignKey("securities.id"), nullable=True)
    security_transaction_type = Column(String, nullable=True)
    security_quantity = Column(QUANTITY, nullable=True)
    security_fee_amount = Column(MONEY, nullable=True)
    security_tax_amount = Column(MONEY, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    draft = relationship("StatementDraft", back_populates="entries", foreign_keys=[draft_id])


class Posting(Base):
    """Posting (ledger row) model. Rows are never updated except for a first group id."""

    __tablename__ = "postings"

    id = Column(Integer, primary_key=True)
    source_id = Column(Integer, nullable=False, index=True)
    group_id = Column(String, nullable=True, index=True)
    kind = Column(String, nullable=False)
    dimension_id = Column(Integer, nullable=False)
    booking_date = Column(Date, nullable=False)
    valuta_date = Column(Date, nullable=False)
    amount = Column(MONEY, nullable=False)
    subject = Column(String, nullable=True)
    recipient_name = Column(String, nullable=True)
    description = Column(String, nullable=True)
    security_sub_type = Column(String, nullable=True)
    quantity = Column(QUANTITY, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (Index("ix_postings_dimension", "kind", "dimension_id"),)


class PostingAggregate(Base):
    """Rolling sum of postings per dimension, period and date basis."""

    __tablename__ = "posting_aggregates"

    id = Column(Integer, primary_key=True)
    kind = Column(String, nullable=False)
    dimension_id = Column(Integer, nullable=False)
    security_sub_type = Column(String, nullable=True)
    period = Column(String, nullable=False)
    period_start = Column(Date, nullable=False)
    date_basis = Column(String, nullable=False)
    amount = Column(MONEY, default=Decimal("0"), nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "kind",
            "dimension_id",
            "security_sub_type",
            "period",
            "period_start",
            "date_basis",
            name="uq_posting_aggregate_key",
        ),
        Index("ix_posting_aggregates_dimension", "kind", "dimension_id"),
    )


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
