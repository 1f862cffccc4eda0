"""Tests for date parser with relative dates."""

import pytest
from datetime import date, timedelta
from dateutil.relativedelta import relativedelta
from bookit.utils.date_parser import parse_date


def test_parse_absolute_date():
    """Test parsing absolute dates."""
    result = parse_date("2024-01-15")
    assert result == date(2024, 1, 15)


def test_parse_statement_date_day_first():
    """Test parsing German statement dates."""
    assert parse_date("05.03.2024") == date(2024, 3, 5)
    assert parse_date("05.03.24") == date(2024, 3, 5)


def test_parse_today():
    """Test parsing 'today'."""
    result = parse_date("today")
    assert result == date.today()


def test_parse_yesterday():
    """Test parsing 'yesterday'."""
    result = parse_date(" Yesterday ")
    assert result == date.today() - timedelta(days=1)


def test_parse_last_month():
    """Test parsing 'last month'."""
    result = parse_date("last month")
    # Should be first day of last month
    today = date.today()
    if today.month == 1:
        expected = date(today.year - 1, 12, 1)
    else:
        expected = date(today.year, today.month - 1, 1)
    assert result == expected


def test_parse_this_month():
    """Test parsing 'this month'."""
    assert parse_date("this month") == date.today().replace(day=1)


def test_parse_this_and_last_quarter():
    """Test parsing quarter starts."""
    today = date.today()
    this_quarter = date(today.year, ((today.month - 1) // 3) * 3 + 1, 1)
    assert parse_date("this quarter") == this_quarter
    assert parse_date("last quarter") == this_quarter - relativedelta(months=3)


def test_parse_years():
    """Test parsing year starts."""
    today = date.today()
    assert parse_date("this year") == date(today.year, 1, 1)
    assert parse_date("last year") == date(today.year - 1, 1, 1)


def test_invalid_date():
    """Test that invalid dates raise ValueError."""
    with pytest.raises(ValueError):
        parse_date("not a date")
