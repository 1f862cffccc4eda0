"""Tests for posting aggregates, rebuilds and account balances."""

import threading
from datetime import date
from decimal import Decimal

import pytest

from bookit.domain.aggregation import PostingAggregationService
from bookit.domain.entities import AggregatePeriod, DateBasis, PostingKind
from bookit.domain.errors import NotFoundError, RebuildFailedError
from helpers import OTHER_OWNER, OWNER, movement


@pytest.fixture
def booked_draft(draft_service, booking_engine, sample_account, sample_contact):
    """Book three Market entries spread over two months."""
    draft_id = draft_service.create_draft(
        OWNER,
        "q1.csv",
        [
            movement("-45.00", booking_date=date(2024, 3, 15), recipient_name="Market"),
            movement("-5.00", booking_date=date(2024, 3, 20), recipient_name="Market"),
            movement(
                "100.00",
                booking_date=date(2024, 4, 30),
                valuta_date=date(2024, 5, 2),
                recipient_name="Market",
            ),
        ],
    )
    draft_service.set_account(draft_id, OWNER, sample_account.id)
    for entry in draft_service.list_entries(draft_id, OWNER):
        draft_service.assign_contact(draft_id, entry.id, OWNER, sample_contact.id)
    assert booking_engine.book(draft_id, OWNER).success
    return draft_id


def _snapshot(db, kind, ids):
    return sorted(
        (r.period.value, r.period_start, r.date_basis.value, r.amount)
        for r in db.list_aggregates(kind, ids)
    )


class TestTimeSeries:
    """Reading aggregate time series."""

    def test_monthly_booking_series(self, aggregation_service, booked_draft, sample_account):
        points = aggregation_service.get_time_series(
            OWNER, PostingKind.BANK, AggregatePeriod.MONTH, dimension_id=sample_account.id
        )

        assert [(p.period_start, p.amount) for p in points] == [
            (date(2024, 3, 1), Decimal("-50.00")),
            (date(2024, 4, 1), Decimal("100.00")),
        ]

    def test_valuta_basis(self, aggregation_service, booked_draft):
        points = aggregation_service.get_time_series(
            OWNER, PostingKind.BANK, AggregatePeriod.MONTH, date_basis=DateBasis.VALUTA
        )

        assert [p.period_start for p in points] == [date(2024, 3, 1), date(2024, 5, 1)]

    def test_quarter_series_and_range(self, aggregation_service, booked_draft):
        points = aggregation_service.get_time_series(
            OWNER,
            PostingKind.CONTACT,
            AggregatePeriod.QUARTER,
            start=date(2024, 5, 15),
        )

        assert [(p.period_start, p.amount) for p in points] == [
            (date(2024, 4, 1), Decimal("100.00")),
        ]

    def test_foreign_dimension_rejected(self, aggregation_service, booked_draft, sample_account):
        with pytest.raises(NotFoundError):
            aggregation_service.get_time_series(
                OTHER_OWNER, PostingKind.BANK, AggregatePeriod.MONTH, dimension_id=sample_account.id
            )

    def test_other_owner_sees_nothing(self, aggregation_service, booked_draft):
        assert aggregation_service.get_time_series(OTHER_OWNER, PostingKind.BANK, AggregatePeriod.YEAR) == []


class TestRebuild:
    """Full rebuilds from the posting ledger."""

    def test_rebuild_matches_incremental(self, aggregation_service, temp_db, booked_draft, sample_account, sample_contact):
        before_bank = _snapshot(temp_db, PostingKind.BANK, [sample_account.id])
        before_contact = _snapshot(temp_db, PostingKind.CONTACT, [sample_contact.id])

        result = aggregation_service.rebuild_for_user(OWNER)

        assert not result.cancelled
        assert result.processed == result.total
        assert result.balances_updated == 0
        assert _snapshot(temp_db, PostingKind.BANK, [sample_account.id]) == before_bank
        assert _snapshot(temp_db, PostingKind.CONTACT, [sample_contact.id]) == before_contact

    def test_rebuild_reports_progress(self, aggregation_service, booked_draft):
        calls = []

        result = aggregation_service.rebuild_for_user(
            OWNER, progress=lambda done, total: calls.append((done, total)), batch_size=5
        )

        assert calls[0] == (0, result.total)
        assert calls[-1] == (result.total, result.total)
        assert [done for done, _ in calls] == sorted(done for done, _ in calls)
        assert len(calls) == 1 + -(-result.total // 5)

    def test_rebuild_repairs_balance(
        self, aggregation_service, temp_db, account_service, booked_draft, sample_account
    ):
        temp_db.set_account_balance(sample_account.id, Decimal("999.00"))

        result = aggregation_service.rebuild_for_user(OWNER)

        assert result.balances_updated == 1
        account = account_service.get_account(sample_account.id, OWNER)
        assert account.current_balance == Decimal("50.00")

    def test_recompute_balances_skips_correct_accounts(
        self, aggregation_service, account_service, booked_draft
    ):
        account_service.create_account(OWNER, "Empty", "Bank")

        assert aggregation_service.recompute_balances(OWNER) == 0

    def test_rebuild_cancelled_between_batches(self, aggregation_service, booked_draft):
        cancel = threading.Event()

        def progress(done, total):
            if done > 0:
                cancel.set()

        result = aggregation_service.rebuild_for_user(
            OWNER, progress=progress, cancel=cancel, batch_size=3
        )

        assert result.cancelled
        assert result.processed == 3
        assert result.processed < result.total
        assert result.balances_updated == 0

    def test_rebuild_without_postings(self, aggregation_service, sample_account):
        result = aggregation_service.rebuild_for_user(OWNER)

        assert result.total == 0
        assert result.processed == 0
        assert not result.cancelled

    def test_invalid_batch_size(self, aggregation_service):
        with pytest.raises(ValueError):
            aggregation_service.rebuild_for_user(OWNER, batch_size=0)

    def test_batch_size_from_environment(self, aggregation_service, booked_draft, monkeypatch):
        monkeypatch.setenv("BOOKIT_REBUILD_BATCH_SIZE", "4")
        calls = []

        result = aggregation_service.rebuild_for_user(OWNER, progress=lambda d, t: calls.append(d))

        assert calls[1] == 4
        assert result.processed == result.total

    def test_failed_batch_raises_with_counters(self, temp_db, booked_draft, monkeypatch):
        service = PostingAggregationService(temp_db)
        calls = {"n": 0}
        original = temp_db.insert_aggregates

        def flaky_insert(rows):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("disk full")
            original(rows)

        monkeypatch.setattr(temp_db, "insert_aggregates", flaky_insert)

        with pytest.raises(RebuildFailedError) as exc_info:
            service.rebuild_for_user(OWNER, batch_size=4)

        assert exc_info.value.processed == 4
        assert exc_info.value.total > 4
