"""Utility functions for the gold loan calculator.

This module provides helpers for parsing user input into Python data types and
for handling dates, including adding months with day-of-month clamping and
normalizing ``YYYY-MM-DD`` strings to ``datetime.date`` instances.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, getcontext
from typing import Any, Optional

from .config import DATE_FORMAT
from .exceptions import InvalidAmount

getcontext().prec = 28  # increase decimal precision to avoid rounding errors


def parse_date(value: Any) -> date:
    """Parse a ``YYYY-MM-DD`` string (or pass through a date) into a ``date``.

    A trailing time component such as ``2025-01-05T10:00:00`` is ignored.

    Raises
    ------
    ValueError
        If the value is not a valid date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        text = str(value).strip()[:10]
        return datetime.strptime(text, DATE_FORMAT).date()
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid date: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def decimal_from_str(value: Any, field: str = "amount") -> Decimal:
    """Convert a numeric string (or number) into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. Floats go through ``str`` first so ``0.1`` stays ``0.1``. It
    raises ``InvalidAmount`` if conversion fails.
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Invalid numeric value for {field}: {value}", {field: value})
    if isinstance(value, Decimal):
        return value
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmount(f"Invalid numeric value for {field}: {value}", {field: value}) from exc
    if not result.is_finite():
        raise InvalidAmount(f"Invalid numeric value for {field}: {value}", {field: value})
    return result


def optional_decimal(value: Any, field: str) -> Optional[Decimal]:
    """Like :func:`decimal_from_str` but maps ``None`` and blanks to ``None``."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return decimal_from_str(value, field)


def optional_int(value: Any, field: str) -> Optional[int]:
    """Parse an optional whole number such as a month or day count."""
    number = optional_decimal(value, field)
    if number is None:
        return None
    if number != number.to_integral_value():
        raise InvalidAmount(f"{field} must be a whole number: {value}", {field: str(value)})
    return int(number)
