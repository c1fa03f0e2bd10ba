"""
Coercion helpers for spreadsheet-sourced values.

Spreadsheet rows arrive as loosely-typed JSON: dates in several formats,
numbers as strings with thousands separators or currency symbols, and
blank cells as empty strings. These helpers turn them into typed values
once, at the ingestion boundary.
"""

from datetime import date, datetime, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

# Formats seen in the source sheets besides ISO 8601
DATE_FORMATS = [
    "%m/%d/%Y",      # US: 05/27/2024
    "%d-%b-%Y",      # 1-Jul-2025 (month name is matched case-insensitively)
    "%Y/%m/%d",      # 2024/07/25
]

_NUMBER_JUNK = str.maketrans("", "", ",$ \u00a0")


def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings."""
    return value is None or (isinstance(value, str) and not value.strip())


def parse_date(value: Any, tz: Optional[tzinfo] = None) -> Optional[date]:
    """
    Parse a calendar date.

    Aware datetimes (and ISO strings carrying an offset or ``Z``) are
    converted into ``tz`` before the date is taken, so the same instant
    always lands on the same calendar day. Naive values are read as
    already being in ``tz``.

    Returns:
        The date, or None when the value is blank or matches no format
    """
    if is_blank(value):
        return None

    if isinstance(value, datetime):
        return _to_local_date(value, tz)
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()

    try:
        return _to_local_date(datetime.fromisoformat(text.replace("Z", "+00:00")), tz)
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


def _to_local_date(value: datetime, tz: Optional[tzinfo]) -> date:
    if value.tzinfo is not None and tz is not None:
        value = value.astimezone(tz)
    return value.date()


def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse a number into a Decimal.

    Accepts ints, floats, Decimals and strings such as ``"$1,250.50"``.

    Returns:
        Decimal, or None when the value is blank

    Raises:
        ValueError: If the value is not numeric or not finite
    """
    if is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        text = str(value).translate(_NUMBER_JUNK) if isinstance(value, str) else str(value)
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}")
    else:
        raise ValueError(f"Not a number: {value!r}")

    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def parse_int(value: Any) -> Optional[int]:
    """
    Parse a whole number.

    ``"10"``, ``10.0`` and ``"1,000"`` are accepted; ``10.5`` is not.

    Raises:
        ValueError: If the value is not numeric or has a fractional part
    """
    number = parse_decimal(value)
    if number is None:
        return None
    if number != number.to_integral_value():
        raise ValueError(f"Not a whole number: {value!r}")
    return int(number)


def clean_text(value: Any) -> Optional[str]:
    """Strip a cell value to text, returning None for blanks."""
    if is_blank(value):
        return None
    return str(value).strip()


def reference_today(tz: tzinfo) -> date:
    """Today's calendar date in ``tz``."""
    return datetime.now(tz).date()
