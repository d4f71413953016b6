"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re
from typing import Any

from schoolpay.utils.text import normalize_text

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def parse_amount(value: Any) -> Decimal:
    """Parse an amount into a Decimal, returning zero when unparseable.

    Handles various formats:
    - "123.45"
    - "EGP 1,234.50"
    - "-123.45"
    - "١٢٣" (Arabic-Indic digits)
    - 123.45 (numeric spreadsheet cell)

    Args:
        value: Amount cell value

    Returns:
        Decimal amount (zero for empty or invalid input)
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, (int, float, Decimal)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return Decimal("0")
        return amount if amount.is_finite() else Decimal("0")

    text = normalize_text(value).replace(",", "")
    text = _NON_NUMERIC.sub("", text)
    if not text:
        return Decimal("0")

    # Keep the leading numeric run, like parseFloat does with "12.5.3" or "5-"
    match = re.match(r"-?\d*\.?\d+|-?\d+\.?", text)
    if match is None:
        return Decimal("0")

    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return Decimal("0")


def clean_amount(value: Any) -> str:
    """Return an amount cell as a two-decimal string ("0.00" when invalid)."""
    return f"{parse_amount(value):.2f}"


def format_amount(value: Decimal, currency: str = "EGP") -> str:
    """Format an amount for display, e.g. ``EGP 1,234.50``."""
    return f"{currency.upper()} {value:,.2f}"
