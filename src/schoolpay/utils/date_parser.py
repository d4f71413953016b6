"""Date parsing utilities."""

import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

from dateutil import parser as date_parser

from schoolpay.utils.text import to_text

# Excel's day zero is 1899-12-30 (it counts the fictitious 1900-02-29)
EXCEL_EPOCH = datetime(1899, 12, 30)
EXCEL_SERIAL_MIN = 20000
EXCEL_SERIAL_MAX = 90000

_DAY_FIRST = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:\s+(\d{1,2}):(\d{2})(?::(\d{2}))?)?$"
)
_NUMERIC = re.compile(r"^\d+(\.\d+)?$")
_YEAR_FIRST = re.compile(r"^\d{4}[-/.]")


def excel_serial_to_datetime(serial: float) -> datetime:
    """Convert an Excel serial day number to a naive datetime.

    The fractional part is the time of day, truncated to whole seconds.
    """
    days = int(serial)
    seconds = int(86400 * (serial - days) + 1e-7 * 86400)
    return EXCEL_EPOCH + timedelta(days=days, seconds=seconds)


def parse_transaction_date(value: Any) -> Optional[datetime]:
    """Parse a transaction date cell.

    Supports:
    - datetime/date cells (openpyxl returns these for typed cells)
    - Excel serial numbers between 20000 and 90000 (other bare numbers are rejected)
    - "dd/mm/yyyy" with optional "hh:mm" or "hh:mm:ss"
    - anything dateutil understands (ISO strings, "Jan 5 2025", ...), reading
      ambiguous day/month orders day first unless the year leads

    Args:
        value: Raw cell value

    Returns:
        Naive datetime, or None when the value is empty or unparseable
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if EXCEL_SERIAL_MIN < value < EXCEL_SERIAL_MAX:
            return excel_serial_to_datetime(float(value))

    text = to_text(value)
    if not text:
        return None

    if _NUMERIC.match(text):
        number = float(text)
        if EXCEL_SERIAL_MIN < number < EXCEL_SERIAL_MAX:
            return excel_serial_to_datetime(number)
        return None

    match = _DAY_FIRST.match(text)
    if match:
        day, month, year = (int(part) for part in match.group(1, 2, 3))
        hour, minute, second = (int(part or 0) for part in match.group(4, 5, 6))
        try:
            return datetime(year, month, day, hour, minute, second)
        except ValueError:
            return None

    try:
        parsed = date_parser.parse(text, dayfirst=not _YEAR_FIRST.match(text))
    except (ValueError, OverflowError, TypeError):
        return None
    return parsed.replace(tzinfo=None)


def format_display_date(value: datetime) -> str:
    """Format a date as dd/mm/yyyy."""
    return value.strftime("%d/%m/%Y")


def parse_input_date(value: Optional[str]) -> Optional[date]:
    """Parse a yyyy-mm-dd filter bound.

    Raises:
        ValueError: If the value is not a valid yyyy-mm-dd date
    """
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"Could not parse date '{value}': expected YYYY-MM-DD")
