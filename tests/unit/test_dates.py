from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from invoice_importer.errors import InvalidDateError
from invoice_importer.services.dates import normalize_date, parse_date


def test_localized_string_is_normalized():
    assert normalize_date("2023年1月15日") == date(2023, 1, 15)


def test_localized_string_with_surrounding_text():
    assert normalize_date(" 発行日 2023年12月5日 ") == date(2023, 12, 5)


def test_localized_string_invalid_calendar_day():
    with pytest.raises(InvalidDateError):
        normalize_date("2023年2月30日")


def test_datetime_passes_through_as_date():
    assert normalize_date(datetime(2023, 1, 15, 13, 45)) == date(2023, 1, 15)


def test_date_passes_through_unchanged():
    d = date(2024, 2, 29)
    assert normalize_date(d) is d


@pytest.mark.parametrize(
    "serial, expected",
    [
        (44941, date(2023, 1, 15)),
        (44941.75, date(2023, 1, 15)),
        (Decimal("1"), date(1899, 12, 31)),
        (60, date(1900, 2, 28)),
    ],
)
def test_numeric_values_are_serial_days(serial, expected):
    assert normalize_date(serial) == expected


@pytest.mark.parametrize("text", ["2023-01-15", "2023/01/15", "15 January 2023"])
def test_generic_calendar_strings(text):
    assert normalize_date(text) == date(2023, 1, 15)


@pytest.mark.parametrize("value", [None, "", "   ", float("nan")])
def test_empty_values_fail(value):
    with pytest.raises(InvalidDateError, match="cannot be empty"):
        normalize_date(value)


@pytest.mark.parametrize("value", ["not a date", True, object()])
def test_unparseable_values_fail(value):
    with pytest.raises(InvalidDateError):
        normalize_date(value)


def test_parse_date_returns_typed_failure():
    result = parse_date("garbage")
    assert not result.ok
    assert result.error_type == "INVALID_DATE"
    assert "garbage" in result.error


def test_parse_date_success():
    result = parse_date("2023年1月16日")
    assert result.ok
    assert result.value == date(2023, 1, 16)
