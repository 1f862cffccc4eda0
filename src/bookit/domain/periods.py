"""Period bucketing for posting aggregates and savings plan due dates."""

from datetime import date
from typing import Iterator

from dateutil.relativedelta import relativedelta

from bookit.domain.entities import AggregatePeriod, DateBasis, Posting, SavingsPlanInterval

PERIODS = (
    AggregatePeriod.MONTH,
    AggregatePeriod.QUARTER,
    AggregatePeriod.HALF_YEAR,
    AggregatePeriod.YEAR,
)
DATE_BASES = (DateBasis.BOOKING, DateBasis.VALUTA)


def period_start(day: date, period: AggregatePeriod) -> date:
    """Return the first day of the month/quarter/half-year/year containing ``day``."""
    if period == AggregatePeriod.MONTH:
        return day.replace(day=1)
    if period == AggregatePeriod.QUARTER:
        return date(day.year, ((day.month - 1) // 3) * 3 + 1, 1)
    if period == AggregatePeriod.HALF_YEAR:
        return date(day.year, 1 if day.month <= 6 else 7, 1)
    if period == AggregatePeriod.YEAR:
        return date(day.year, 1, 1)
    raise ValueError(f"Unknown aggregate period: {period}")


def basis_date(posting: Posting, basis: DateBasis) -> date:
    if basis == DateBasis.VALUTA:
        return posting.valuta_date or posting.booking_date
    return posting.booking_date


def buckets(posting: Posting) -> Iterator[tuple[AggregatePeriod, date, DateBasis]]:
    """Yield every (period, period_start, date_basis) bucket a posting falls into."""
    for basis in DATE_BASES:
        day = basis_date(posting, basis)
        for period in PERIODS:
            yield period, period_start(day, period), basis


def is_month_end(day: date) -> bool:
    return day == day + relativedelta(day=31)


def advance_due_date(due: date, interval: SavingsPlanInterval, as_of: date) -> date:
    """Move ``due`` forward by whole intervals until it lies after ``as_of``.

    A due date on the last day of its month stays on the last day of the month.
    Any other day of month is kept, capped at the length of shorter months.
    Every step is counted from the original date, so a capped day never sticks.
    """
    day = 31 if is_month_end(due) else due.day
    months = 0
    advanced = due
    while advanced <= as_of:
        months += interval.months
        advanced = due + relativedelta(months=months, day=day)
    return advanced
