"""Elapsed time between a loan's start date and its closing date.

Whole months are calendar months: a month only counts once the closing date
has reached the start's day of month, clamped to the end of shorter months
(a loan taken on Jan 31 completes its first month on Feb 28 or 29). Days left
over after the whole months are returned separately for the day-basis
schemes.
"""

from __future__ import annotations

from datetime import date
from typing import Tuple

from .exceptions import InvalidRange
from .utils import add_months


def elapsed_days(start: date, end: date) -> int:
    """Return the number of calendar days from ``start`` to ``end``."""
    if end < start:
        raise InvalidRange(start, end)
    return (end - start).days


def resolve(start: date, end: date) -> Tuple[int, int]:
    """Return ``(whole_months, remaining_days)`` elapsed from ``start`` to ``end``.

    >>> resolve(date(2025, 1, 15), date(2025, 3, 20))
    (2, 5)
    >>> resolve(date(2025, 1, 31), date(2025, 2, 28))
    (1, 0)
    """
    if end < start:
        raise InvalidRange(start, end)

    months = (end.year - start.year) * 12 + (end.month - start.month)
    anniversary = add_months(start, months)
    if anniversary > end:
        months -= 1
        anniversary = add_months(start, months)
    return months, (end - anniversary).days
