"""Utility functions for bookit."""

from bookit.utils.date_parser import parse_date
from bookit.utils.amount_parser import parse_amount
from bookit.utils.resolver import resolve_by_name_or_id

__all__ = ["parse_date", "parse_amount", "resolve_by_name_or_id"]
