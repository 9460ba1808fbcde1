from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import pandas as pd

from ..errors import InvalidDateError
from .parsing import ParseResult, is_empty_cell

"""Invoice date normalization.

Accepted cell representations, tried in order:
1. datetime / date values (already structured by the spreadsheet reader)
2. numbers: spreadsheet serial day counts (1900 date system)
3. localized strings ``2023年1月15日``
4. anything pandas.to_datetime can parse (ISO and common calendar strings)
"""

__all__ = [
    "SERIAL_EPOCH",
    "normalize_date",
    "parse_date",
]

# Day 0 of the 1900 date system with the 1900 leap-year bug folded in
SERIAL_EPOCH = "1899-12-30"

_LOCALIZED_DATE = re.compile(r"(\d{4})年(\d{1,2})月(\d{1,2})日")


def _from_serial(value: int | float | Decimal) -> date:
    try:
        ts = pd.to_datetime(float(value), unit="D", origin=SERIAL_EPOCH)
    except (ValueError, OverflowError) as e:
        raise InvalidDateError(f"Invalid serial date {value}: {e}") from e
    if pd.isna(ts):
        raise InvalidDateError(f"Invalid serial date {value}")
    return ts.date()


def _from_localized(match: re.Match[str]) -> date:
    year, month, day = match.group(1), match.group(2), match.group(3)
    iso = f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    try:
        return date.fromisoformat(iso)
    except ValueError as e:
        raise InvalidDateError(f"Invalid date '{match.group(0)}': {e}") from e


def _from_text(text: str) -> date:
    try:
        ts = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError) as e:
        raise InvalidDateError(f"Failed to parse invoice date '{text}'") from e
    if pd.isna(ts):
        raise InvalidDateError(f"Failed to parse invoice date '{text}'")
    return ts.date()


def normalize_date(value: Any) -> date:
    """Convert one raw cell value into a calendar date.

    Raises:
        InvalidDateError: value is empty or matches none of the accepted
            representations.
    """
    if is_empty_cell(value):
        raise InvalidDateError("Invoice date cannot be empty")

    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, bool):
        raise InvalidDateError(f"Invalid date format: {value!r}")
    if isinstance(value, (int, float, Decimal)):
        return _from_serial(value)

    if isinstance(value, str):
        text = value.strip()
        match = _LOCALIZED_DATE.search(text)
        if match:
            return _from_localized(match)
        return _from_text(text)

    raise InvalidDateError(f"Invalid date format: {value!r}")


def parse_date(value: Any) -> ParseResult[date]:
    """Typed-result wrapper around normalize_date."""
    try:
        return ParseResult.success(normalize_date(value))
    except InvalidDateError as e:
        return ParseResult.failure(str(e), InvalidDateError.error_type)
