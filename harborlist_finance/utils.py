"""Utility functions for the finance calculator.

Helpers for turning user input into ``Decimal`` amounts, for calendar month
arithmetic on payment dates and for generating record identifiers.
"""

from __future__ import annotations

import calendar
import time
import uuid
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Union

Number = Union[str, int, float, Decimal]


def decimal_from_str(value: Number) -> Decimal:
    """Convert a number or numeric string into a ``Decimal``.

    Commas and a leading ``$`` are stripped. Floats go through ``str`` so that
    ``6.5`` becomes ``Decimal("6.5")`` rather than its binary expansion.
    Raises ``ValueError`` if conversion fails.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value}")
    try:
        cleaned = str(value).strip().replace(",", "").lstrip("$")
        result = Decimal(cleaned)
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def int_from_value(value: Number) -> int:
    """Convert a whole number (``180``, ``"180"``, ``180.0``) into an ``int``.

    Raises ``ValueError`` for booleans and for values with a fractional part
    rather than truncating them.
    """
    if isinstance(value, bool):
        raise ValueError(f"Expected a whole number: {value}")
    if isinstance(value, int):
        return value
    number = decimal_from_str(value)
    if number != number.to_integral_value():
        raise ValueError(f"Expected a whole number: {value}")
    return int(number)


def parse_amount(value: str) -> Decimal:
    """Parse a money amount with optional ``k``/``m`` suffixes.

    ``"85k"`` means 85,000 and ``"1.2m"`` means 1,200,000.
    """
    cleaned = value.strip().lower().replace(",", "").lstrip("$")
    factor = Decimal(1)
    if cleaned.endswith("k"):
        factor = Decimal(1_000)
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = Decimal(1_000_000)
        cleaned = cleaned[:-1]
    return decimal_from_str(cleaned) * factor


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` or ``YYYY-MM`` string (day defaults to 1)."""
    try:
        parts = [int(p) for p in value.strip().split("-")]
        if len(parts) == 2:
            return date(parts[0], parts[1], 1)
        if len(parts) == 3:
            return date(parts[0], parts[1], parts[2])
    except ValueError as exc:
        raise ValueError(f"Invalid date string: {value}") from exc
    raise ValueError(f"Invalid date string: {value}")


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def generate_id() -> str:
    return uuid.uuid4().hex


def now_millis() -> int:
    return int(time.time() * 1000)
