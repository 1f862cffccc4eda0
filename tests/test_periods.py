"""Tests for aggregate period bucketing."""

from datetime import date
from decimal import Decimal

import pytest

from bookit.domain import periods
from bookit.domain.aggregation import aggregate_keys
from bookit.domain.entities import (
    AggregatePeriod,
    DateBasis,
    Dimension,
    Posting,
    SavingsPlanInterval,
)


def _posting(booking_date, valuta_date, amount="-45.00"):
    return Posting(
        id=1,
        source_id=1,
        group_id="g",
        dimension=Dimension.bank(1),
        booking_date=booking_date,
        valuta_date=valuta_date,
        amount=Decimal(amount),
    )


@pytest.mark.parametrize(
    "period,expected",
    [
        (AggregatePeriod.MONTH, date(2024, 8, 1)),
        (AggregatePeriod.QUARTER, date(2024, 7, 1)),
        (AggregatePeriod.HALF_YEAR, date(2024, 7, 1)),
        (AggregatePeriod.YEAR, date(2024, 1, 1)),
    ],
)
def test_period_start(period, expected):
    assert periods.period_start(date(2024, 8, 20), period) == expected


def test_period_start_boundaries():
    assert periods.period_start(date(2024, 6, 30), AggregatePeriod.HALF_YEAR) == date(2024, 1, 1)
    assert periods.period_start(date(2024, 12, 31), AggregatePeriod.QUARTER) == date(2024, 10, 1)
    assert periods.period_start(date(2024, 4, 1), AggregatePeriod.QUARTER) == date(2024, 4, 1)


def test_posting_falls_into_eight_buckets():
    posting = _posting(date(2024, 3, 15), date(2024, 3, 15))
    buckets = list(periods.buckets(posting))
    assert len(buckets) == 8
    assert {(p, b) for p, _, b in buckets} == {
        (p, b) for p in periods.PERIODS for b in periods.DATE_BASES
    }


def test_valuta_basis_uses_valuta_date():
    posting = _posting(date(2024, 3, 31), date(2024, 4, 2))
    keys = {(k.period, k.date_basis): k.period_start for k in aggregate_keys(posting)}

    assert keys[(AggregatePeriod.MONTH, DateBasis.BOOKING)] == date(2024, 3, 1)
    assert keys[(AggregatePeriod.MONTH, DateBasis.VALUTA)] == date(2024, 4, 1)
    assert keys[(AggregatePeriod.QUARTER, DateBasis.BOOKING)] == date(2024, 1, 1)
    assert keys[(AggregatePeriod.QUARTER, DateBasis.VALUTA)] == date(2024, 4, 1)
    assert keys[(AggregatePeriod.YEAR, DateBasis.VALUTA)] == date(2024, 1, 1)


def test_keys_carry_dimension_and_sub_type():
    posting = _posting(date(2024, 3, 15), date(2024, 3, 15))
    for key in aggregate_keys(posting):
        assert key.dimension == Dimension.bank(1)
        assert key.security_sub_type is None


@pytest.mark.parametrize(
    "due,interval,as_of,expected",
    [
        (date(2024, 3, 15), SavingsPlanInterval.MONTHLY, date(2024, 3, 15), date(2024, 4, 15)),
        (date(2024, 3, 15), SavingsPlanInterval.MONTHLY, date(2024, 5, 20), date(2024, 6, 15)),
        (date(2024, 1, 15), SavingsPlanInterval.BI_MONTHLY, date(2024, 1, 15), date(2024, 3, 15)),
        (date(2024, 1, 15), SavingsPlanInterval.QUARTERLY, date(2024, 2, 1), date(2024, 4, 15)),
        (date(2024, 1, 15), SavingsPlanInterval.SEMI_ANNUALLY, date(2024, 1, 20), date(2024, 7, 15)),
        (date(2024, 2, 29), SavingsPlanInterval.ANNUALLY, date(2024, 3, 1), date(2025, 2, 28)),
    ],
)
def test_advance_due_date(due, interval, as_of, expected):
    assert periods.advance_due_date(due, interval, as_of) == expected


def test_month_end_due_date_stays_at_month_end():
    assert periods.advance_due_date(
        date(2024, 1, 31), SavingsPlanInterval.MONTHLY, date(2024, 1, 31)
    ) == date(2024, 2, 29)
    assert periods.advance_due_date(
        date(2024, 4, 30), SavingsPlanInterval.MONTHLY, date(2024, 4, 30)
    ) == date(2024, 5, 31)


def test_capped_day_does_not_drift():
    assert periods.advance_due_date(
        date(2024, 1, 30), SavingsPlanInterval.MONTHLY, date(2024, 2, 29)
    ) == date(2024, 3, 30)


def test_future_due_date_is_kept():
    assert periods.advance_due_date(
        date(2024, 6, 1), SavingsPlanInterval.MONTHLY, date(2024, 5, 1)
    ) == date(2024, 6, 1)
