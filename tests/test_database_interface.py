"""Tests for Database interface returning domain models."""

import pytest
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

from bookit.domain import entities
from bookit.domain.entities import (
    AggregateKey,
    AggregatePeriod,
    DateBasis,
    Dimension,
    DraftStatus,
    PostingKind,
)
from bookit.database.models import MONEY, QUANTITY, StatementDraftEntry
from bookit.domain.errors import AlreadyLinkedError, NotFoundError
from helpers import OWNER


def _posting(dimension, amount, source_id=1, group_id=None, day=date(2024, 3, 15)):
    return entities.Posting(
        id=None,
        source_id=source_id,
        group_id=group_id,
        dimension=dimension,
        booking_date=day,
        valuta_date=day,
        amount=Decimal(amount),
        subject="Payment",
    )


def _key(dimension, period_start=date(2024, 3, 1)):
    return AggregateKey(
        dimension=dimension,
        security_sub_type=None,
        period=AggregatePeriod.MONTH,
        period_start=period_start,
        date_basis=DateBasis.BOOKING,
    )


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_get_account_returns_domain_model(self, temp_db):
        """Test that get_account returns a domain Account entity."""
        account_id = temp_db.create_account(OWNER, name="Test Account", bank_name="Test Bank")

        account = temp_db.get_account(account_id)

        assert isinstance(account, entities.Account)
        assert account.id == account_id
        assert account.name == "Test Account"
        assert account.currency_code == "EUR"
        assert account.current_balance == Decimal("0")
        assert isinstance(account.created_at, datetime)

    def test_list_accounts_is_owner_scoped(self, temp_db):
        """Test that list_accounts only returns the owner's accounts."""
        temp_db.create_account(OWNER, name="Account 1", bank_name="Bank 1")
        temp_db.create_account(OWNER, name="Account 2", bank_name="Bank 2")
        temp_db.create_account(OWNER + 1, name="Foreign", bank_name="Bank 3")

        accounts = temp_db.list_accounts(OWNER)

        assert [a.name for a in accounts] == ["Account 1", "Account 2"]
        for account in accounts:
            assert isinstance(account, entities.Account)

    def test_contact_includes_aliases(self, temp_db):
        """Test that contacts are returned with their alias patterns."""
        contact_id = temp_db.create_contact(OWNER, "Market")
        alias_id = temp_db.add_contact_alias(contact_id, "*market*")

        contact = temp_db.get_contact(contact_id)

        assert isinstance(contact, entities.Contact)
        assert [(a.id, a.pattern) for a in contact.aliases] == [(alias_id, "*market*")]

        temp_db.delete_contact_alias(alias_id)
        assert temp_db.get_contact(contact_id).aliases == ()

    def test_get_draft_and_entry_return_domain_models(self, temp_db):
        """Test that drafts and entries map to domain entities."""
        draft_id = temp_db.create_draft(OWNER, "statement.csv", account_name="DE00")
        entry_id = temp_db.create_entry(
            draft_id, date(2024, 3, 15), Decimal("-45.00"), "Groceries", recipient_name="Market"
        )

        draft = temp_db.get_draft(draft_id)
        entry = temp_db.get_entry(entry_id)

        assert isinstance(draft, entities.Draft)
        assert draft.status == DraftStatus.DRAFT
        assert not draft.is_split_draft
        assert isinstance(entry, entities.DraftEntry)
        assert entry.amount == Decimal("-45.00")
        assert entry.status == entities.EntryStatus.OPEN
        assert entry.security is None

    def test_save_entry_persists_security_assignment(self, temp_db):
        """Test that a security assignment round-trips through save_entry."""
        draft_id = temp_db.create_draft(OWNER, "statement.csv")
        entry_id = temp_db.create_entry(draft_id, date(2024, 3, 15), Decimal("-100"), "Buy")
        security_id = temp_db.create_security(OWNER, "ACME")
        assignment = entities.SecurityAssignment(
            security_id=security_id,
            transaction_type=entities.SecurityTransactionType.BUY,
            quantity=Decimal("2.5"),
            fee_amount=Decimal("1.00"),
        )

        entry = temp_db.get_entry(entry_id)
        temp_db.save_entry(replace(entry, security=assignment))

        assert temp_db.get_entry(entry_id).security == assignment

    def test_stale_security_details_map_to_assignment(self, temp_db):
        """Test that detail columns without a security id are not dropped."""
        draft_id = temp_db.create_draft(OWNER, "statement.csv")
        entry_id = temp_db.create_entry(draft_id, date(2024, 3, 15), Decimal("-100"), "Buy")
        session = temp_db._get_session()
        row = session.get(StatementDraftEntry, entry_id)
        row.security_fee_amount = Decimal("1.00")
        session.commit()

        security = temp_db.get_entry(entry_id).security

        assert security is not None
        assert security.security_id is None
        assert security.fee_amount == Decimal("1.00")

    def test_draft_parent_is_set_once(self, temp_db):
        parent_id = temp_db.create_draft(OWNER, "parent.csv")
        entry_id = temp_db.create_entry(parent_id, date(2024, 3, 15), Decimal("-45.00"), "Split")
        child_id = temp_db.create_draft(OWNER, "child.csv")

        temp_db.set_draft_parent(child_id, parent_id, entry_id, Decimal("-45.00"))
        with pytest.raises(AlreadyLinkedError):
            temp_db.set_draft_parent(child_id, parent_id, entry_id, Decimal("-99.00"))

        assert temp_db.get_draft(child_id).parent_entry_amount == Decimal("-45.00")

    def test_savings_plan_target_date(self, temp_db):
        plan_id = temp_db.create_savings_plan(
            OWNER,
            "Building loan",
            target_date=date(2024, 3, 1),
            interval=entities.SavingsPlanInterval.QUARTERLY,
            contract_number="12-345",
        )

        temp_db.set_savings_plan_target_date(plan_id, date(2024, 6, 1))

        plan = temp_db.get_savings_plan(plan_id)
        assert plan.target_date == date(2024, 6, 1)
        assert plan.interval == entities.SavingsPlanInterval.QUARTERLY
        assert plan.contract_number == "12-345"

    def test_missing_entities_return_none(self, temp_db):
        """Test that getters return None for unknown IDs."""
        assert temp_db.get_account(999) is None
        assert temp_db.get_contact(999) is None
        assert temp_db.get_draft(999) is None
        assert temp_db.get_entry(999) is None
        assert temp_db.get_posting(999) is None

    def test_writes_to_missing_rows_raise(self, temp_db):
        with pytest.raises(NotFoundError):
            temp_db.set_draft_status(999, DraftStatus.EXPIRED)
        with pytest.raises(NotFoundError):
            temp_db.adjust_account_balance(999, Decimal("1"))


class TestTransactions:
    """Tests for the unit-of-work context manager."""

    def test_transaction_commits_all_writes(self, temp_db):
        with temp_db.transaction():
            temp_db.create_account(OWNER, "A", "Bank")
            temp_db.create_account(OWNER, "B", "Bank")

        assert len(temp_db.list_accounts(OWNER)) == 2

    def test_transaction_rolls_back_on_error(self, temp_db):
        with pytest.raises(RuntimeError):
            with temp_db.transaction():
                temp_db.create_account(OWNER, "A", "Bank")
                raise RuntimeError("boom")

        assert temp_db.list_accounts(OWNER) == []

    def test_nested_transaction_joins_outer(self, temp_db):
        with pytest.raises(RuntimeError):
            with temp_db.transaction():
                temp_db.create_account(OWNER, "A", "Bank")
                with temp_db.transaction():
                    temp_db.create_account(OWNER, "B", "Bank")
                raise RuntimeError("boom")

        assert temp_db.list_accounts(OWNER) == []

    def test_write_after_rollback_commits(self, temp_db):
        with pytest.raises(RuntimeError):
            with temp_db.transaction():
                temp_db.create_account(OWNER, "A", "Bank")
                raise RuntimeError("boom")

        temp_db.create_account(OWNER, "B", "Bank")
        assert [a.name for a in temp_db.list_accounts(OWNER)] == ["B"]


class TestPostings:
    """Tests for posting and aggregate storage."""

    def test_add_posting_assigns_id(self, temp_db):
        stored = temp_db.add_posting(_posting(Dimension.bank(1), "-45.00", group_id="g1"))

        assert stored.id is not None
        assert stored.kind == PostingKind.BANK
        assert temp_db.get_posting(stored.id) == stored

    def test_group_id_is_set_once(self, temp_db):
        stored = temp_db.add_posting(_posting(Dimension.bank(1), "-45.00"))

        assert temp_db.assign_posting_group(stored.id, "first") == "first"
        assert temp_db.assign_posting_group(stored.id, "second") == "first"
        assert temp_db.get_posting(stored.id).group_id == "first"

    def test_list_postings_filters(self, temp_db):
        temp_db.add_posting(_posting(Dimension.bank(1), "-45.00", source_id=1, group_id="g1"))
        temp_db.add_posting(_posting(Dimension.contact(2), "-45.00", source_id=1, group_id="g1"))
        temp_db.add_posting(_posting(Dimension.bank(1), "10.00", source_id=2, group_id="g2"))

        assert len(temp_db.list_postings(source_id=1)) == 2
        assert len(temp_db.list_postings(kind=PostingKind.BANK, dimension_id=1)) == 2
        assert [p.amount for p in temp_db.list_postings(group_id="g2")] == [Decimal("10.00")]

    def test_list_postings_by_booking_date(self, temp_db):
        for day in (1, 15, 31):
            temp_db.add_posting(
                _posting(Dimension.bank(1), "-1.00", source_id=day, day=date(2024, 3, day))
            )

        within = temp_db.list_postings(
            booking_date_from=date(2024, 3, 15), booking_date_to=date(2024, 3, 31)
        )
        assert [p.source_id for p in within] == [15, 31]
        on_day = temp_db.list_postings(
            booking_date_from=date(2024, 3, 15), booking_date_to=date(2024, 3, 15)
        )
        assert [p.source_id for p in on_day] == [15]

    def test_sum_postings_by_dimension_is_exact(self, temp_db):
        for amount in ("0.10", "0.20", "0.10"):
            temp_db.add_posting(_posting(Dimension.bank(1), amount))
        temp_db.add_posting(_posting(Dimension.contact(1), "99.00"))

        sums = temp_db.sum_postings_by_dimension(PostingKind.BANK, [1, 2])

        assert sums == {1: Decimal("0.40"), 2: Decimal("0")}

    def test_iter_postings_for_dimensions(self, temp_db):
        temp_db.add_posting(_posting(Dimension.bank(1), "1.00"))
        temp_db.add_posting(_posting(Dimension.bank(2), "2.00"))
        temp_db.add_posting(_posting(Dimension.contact(1), "3.00"))

        amounts = [
            p.amount
            for p in temp_db.iter_postings_for_dimensions(
                {PostingKind.BANK: [1], PostingKind.CONTACT: [1]}, chunk_size=1
            )
        ]

        assert amounts == [Decimal("1.00"), Decimal("3.00")]
        assert list(temp_db.iter_postings_for_dimensions({PostingKind.BANK: []})) == []

    def test_add_to_aggregate_creates_then_updates(self, temp_db):
        key = _key(Dimension.bank(1))
        temp_db.add_to_aggregate(key, Decimal("-45.00"))
        temp_db.add_to_aggregate(key, Decimal("5.00"))

        rows = temp_db.list_aggregates(PostingKind.BANK, [1])

        assert len(rows) == 1
        assert rows[0].amount == Decimal("-40.00")
        assert rows[0].period == AggregatePeriod.MONTH

    def test_add_to_aggregate_inside_transaction(self, temp_db):
        key = _key(Dimension.bank(1))
        with temp_db.transaction():
            temp_db.add_to_aggregate(key, Decimal("1.00"))
            temp_db.add_to_aggregate(key, Decimal("2.00"))

        assert [r.amount for r in temp_db.list_aggregates(PostingKind.BANK, [1])] == [
            Decimal("3.00")
        ]

    def test_delete_aggregates_for_dimensions(self, temp_db):
        temp_db.insert_aggregates(
            [
                (_key(Dimension.bank(1)), Decimal("1.00")),
                (_key(Dimension.bank(2)), Decimal("2.00")),
            ]
        )

        deleted = temp_db.delete_aggregates_for_dimensions({PostingKind.BANK: [1]})

        assert deleted == 1
        assert temp_db.list_aggregates(PostingKind.BANK, [1]) == []
        assert len(temp_db.list_aggregates(PostingKind.BANK, [2])) == 1

    def test_list_aggregates_range(self, temp_db):
        temp_db.insert_aggregates(
            [
                (_key(Dimension.bank(1), date(2024, 1, 1)), Decimal("1.00")),
                (_key(Dimension.bank(1), date(2024, 2, 1)), Decimal("2.00")),
                (_key(Dimension.bank(1), date(2024, 3, 1)), Decimal("3.00")),
            ]
        )

        rows = temp_db.list_aggregates(
            PostingKind.BANK, [1], start=date(2024, 2, 1), end=date(2024, 3, 1)
        )

        assert [r.period_start for r in rows] == [date(2024, 2, 1), date(2024, 3, 1)]


class TestFixedPointStorage:
    """Amounts are stored as integer minor units."""

    def test_large_amount_round_trips_exactly(self, temp_db):
        amount = Decimal("1234567890123456.78")
        draft_id = temp_db.create_draft(OWNER, "statement.csv")
        entry_id = temp_db.create_entry(draft_id, date(2024, 3, 15), amount, "Bond")

        stored = temp_db.add_posting(_posting(Dimension.bank(1), str(amount)))

        assert temp_db.get_entry(entry_id).amount == amount
        assert temp_db.get_posting(stored.id).amount == amount

    def test_bind_uses_minor_units(self):
        assert MONEY.process_bind_param(Decimal("-45.10"), None) == -4510
        assert QUANTITY.process_bind_param(Decimal("0.5"), None) == 500000
        assert MONEY.process_result_value(-4510, None) == Decimal("-45.10")
        assert MONEY.process_bind_param(None, None) is None

    @pytest.mark.parametrize("value", ["12.345", "NaN", "Infinity"])
    def test_bind_rejects_values_that_do_not_fit(self, value):
        with pytest.raises(ValueError):
            MONEY.process_bind_param(Decimal(value), None)
