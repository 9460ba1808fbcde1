from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Generic, TypeVar

from ..errors import ValidationError
from ..models.entities import MAX_NAME_LENGTH, PRICE_STEP, QUANTITY_STEP

"""Typed field parsers for raw spreadsheet cells.

Each parser returns a ParseResult instead of raising, so the entity builder
can collect a field failure and turn it into a group-scoped result without
exceptions driving per-row control flow. There is no truthiness-based
coercion: booleans are never numbers, NaN is never a number, and "0" is a
valid number.
"""

__all__ = [
    "ParseResult",
    "is_empty_cell",
    "parse_invoice_number",
    "parse_number",
    "parse_quantity",
    "parse_unit_price",
    "parse_text",
]

T = TypeVar("T")

_VALIDATION = ValidationError.error_type

# C0 controls except tab, LF and CR (multi-line addresses are allowed)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    value: T | None = None
    error: str | None = None
    error_type: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> ParseResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: str, error_type: str = _VALIDATION) -> ParseResult[T]:
        return cls(error=error, error_type=error_type)


def is_empty_cell(value: Any) -> bool:
    """None, NaN and whitespace-only strings count as empty."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def parse_number(value: Any) -> ParseResult[Decimal]:
    """Coerce a cell to Decimal.

    Accepts int, float, Decimal and numeric strings (surrounding whitespace and
    ``,`` thousands separators are ignored).
    """
    if is_empty_cell(value):
        return ParseResult.failure("value is empty")
    if isinstance(value, bool):
        return ParseResult.failure(f"not a number: {value!r}")
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        if math.isinf(value):
            return ParseResult.failure(f"not a finite number: {value!r}")
        number = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        try:
            number = Decimal(cleaned)
        except InvalidOperation:
            return ParseResult.failure(f"not a number: {value!r}")
    else:
        return ParseResult.failure(f"not a number: {value!r}")
    if not number.is_finite():
        return ParseResult.failure(f"not a finite number: {value!r}")
    return ParseResult.success(number)


def parse_invoice_number(value: Any) -> ParseResult[int]:
    """Column [0] -> integer invoice number (fractional part truncated)."""
    number = parse_number(value)
    if not number.ok:
        return ParseResult.failure(f"invalid invoice number: {number.error}")
    return ParseResult.success(int(number.value))


def parse_text(value: Any, field_name: str, max_length: int | None = MAX_NAME_LENGTH) -> ParseResult[str]:
    """Trimmed non-empty text, optionally length-limited."""
    if is_empty_cell(value):
        return ParseResult.failure(f"{field_name} cannot be empty")
    text = str(value).strip()
    if _CONTROL_CHARS.search(text):
        return ParseResult.failure(f"{field_name} contains control characters")
    if max_length is not None and len(text) > max_length:
        return ParseResult.failure(f"{field_name} cannot exceed {max_length} characters")
    return ParseResult.success(text)


def parse_quantity(value: Any) -> ParseResult[int | Decimal]:
    number = parse_number(value)
    if not number.ok:
        return ParseResult.failure(f"Invalid quantity: {number.error}")
    # stored as NUMERIC(12, 3): totals must be computed from the stored value
    quantity = number.value.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)
    if quantity <= 0:
        return ParseResult.failure(f"Quantity must be greater than 0 (got {quantity})")
    if quantity == quantity.to_integral_value():
        return ParseResult.success(int(quantity))
    return ParseResult.success(quantity)


def parse_unit_price(value: Any) -> ParseResult[Decimal]:
    number = parse_number(value)
    if not number.ok:
        return ParseResult.failure(f"Invalid unit price: {number.error}")
    if number.value < 0:
        return ParseResult.failure(f"Unit price cannot be negative (got {number.value})")
    return ParseResult.success(number.value.quantize(PRICE_STEP, rounding=ROUND_HALF_UP))
