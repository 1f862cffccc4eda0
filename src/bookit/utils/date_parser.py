"""Date parsing utilities."""

from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports:
    - ISO dates: "2024-03-15"
    - Statement dates, day first: "15.03.2024", "15.03.24"
    - Relative dates: "today", "yesterday", "this month", "last month",
      "this quarter", "this year", "last year"

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    if date_str == "today":
        return today
    if date_str == "yesterday":
        return today - timedelta(days=1)

    if date_str.startswith(("this ", "last ")):
        offset = 0 if date_str.startswith("this ") else 1
        period = date_str[5:]
        if period == "month":
            return today.replace(day=1) - relativedelta(months=offset)
        if period == "quarter":
            start = date(today.year, ((today.month - 1) // 3) * 3 + 1, 1)
            return start - relativedelta(months=3 * offset)
        if period == "year":
            return today.replace(month=1, day=1) - relativedelta(years=offset)

    # ISO dates parse unambiguously; everything else is read day first
    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass
    try:
        return date_parser.parse(date_str, dayfirst=True).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")
