"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re


_AMBIGUOUS_GROUP = re.compile(r"^[-+]?\d{1,3}[.,]\d{3}$")


def _normalize_separators(amount_str: str) -> str:
    """Turn '1.234,56' or '1,234.56' into '1234.56'.

    A lone separator followed by exactly three digits ('1,234', '1.234') reads
    as a thousands group or as a fraction and is rejected.
    """
    if _AMBIGUOUS_GROUP.match(amount_str):
        raise ValueError(
            f"Ambiguous amount '{amount_str}': write '1234,00' or '1.234,00'"
        )
    last_comma = amount_str.rfind(",")
    last_dot = amount_str.rfind(".")
    if last_comma > last_dot:
        # Comma is the decimal separator
        return amount_str.replace(".", "").replace(",", ".")
    return amount_str.replace(",", "")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles the formats found on bank statements:
    - "123.45" / "123,45"
    - "-45.00" / "45,00-" (trailing minus)
    - "€1.234,56" / "1,234.56 EUR"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency symbols and codes
    amount_str = re.sub(r"[$€£¥]|\b[A-Z]{3}\b", "", amount_str).strip()

    if amount_str.endswith("-"):
        is_negative = not is_negative
        amount_str = amount_str[:-1].strip()

    amount_str = _normalize_separators(amount_str.replace(" ", ""))

    try:
        amount = Decimal(amount_str)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount
