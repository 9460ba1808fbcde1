from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from .parsing import is_empty_cell, parse_invoice_number

"""Row grouping: flat spreadsheet rows -> per-invoice row lists.

Column [0] carries the invoice number. Groups are returned in first-seen
order of their invoice number and each group keeps its rows in source order.
"""

__all__ = [
    "HEADER_KEYWORDS",
    "group_rows_by_invoice",
    "has_header_row",
]

logger = logging.getLogger(__name__)

HEADER_KEYWORDS = ("invoice", "customer", "product", "quantity", "price", "date")

Row = Sequence[Any]


def has_header_row(rows: Sequence[Row]) -> bool:
    """True when any string cell of the first row contains a header keyword."""
    if not rows:
        return False
    for cell in rows[0]:
        if not isinstance(cell, str):
            continue
        lowered = cell.lower()
        if any(keyword in lowered for keyword in HEADER_KEYWORDS):
            return True
    return False


def group_rows_by_invoice(rows: Sequence[Row]) -> dict[int, list[Row]]:
    """Partition rows into invoice groups.

    Skipped silently (not errors): the header row, rows whose cells are all
    empty, rows whose column [0] is missing or not numeric. An empty result
    means the input is ungroupable; the caller decides how to fail.
    """
    start = 1 if has_header_row(rows) else 0
    grouped: dict[int, list[Row]] = {}
    skipped = 0

    for index in range(start, len(rows)):
        row = rows[index]
        if all(is_empty_cell(cell) for cell in row):
            continue

        first = row[0] if len(row) > 0 else None
        number = parse_invoice_number(first)
        if not number.ok:
            skipped += 1
            logger.debug("row=%d skipped: %s", index, number.error)
            continue

        grouped.setdefault(number.value, []).append(row)

    if skipped:
        logger.debug("skipped %d row(s) without a numeric invoice number", skipped)
    return grouped
