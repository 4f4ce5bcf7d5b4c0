"""Utility functions for the repayment-schedule engine.

Helpers for turning user input (form fields, CLI options) into ``Decimal`` and
``date`` values, and for advancing dates by whole calendar months.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal, InvalidOperation

_HUNDRED = Decimal("100")


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date``.

    Raises
    ------
    ValueError
        If the string is not a valid calendar date.
    """
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid date (expected YYYY-MM-DD): {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    Commas and surrounding whitespace are stripped. Non-finite values such as
    ``"nan"`` are rejected along with anything that does not parse.
    """
    try:
        result = Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: str) -> Decimal:
    """Parse an amount with optional ``k``/``m`` suffixes ("1.2m" is 1,200,000)."""
    text = str(value).strip().lower().replace(",", "")
    factor = Decimal("1")
    if text.endswith("k"):
        factor = Decimal("1000")
        text = text[:-1]
    elif text.endswith("m"):
        factor = Decimal("1000000")
        text = text[:-1]
    return decimal_from_str(text) * factor


def percent_to_fraction(value: str) -> Decimal:
    """Convert a percentage such as ``"3.5"`` or ``"3.5%"`` into ``0.035``."""
    text = str(value).strip()
    if text.endswith("%"):
        text = text[:-1]
    return decimal_from_str(text) / _HUNDRED
