from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from ..db.gateway import StorageGateway
from ..errors import StorageError, ValidationError
from ..models.config_models import ImportSettings
from ..models.entities import CENT, Customer, Invoice, InvoiceItem
from .dates import parse_date
from .parsing import ParseResult, is_empty_cell, parse_number, parse_quantity, parse_text, parse_unit_price

"""Entity building: one invoice group -> validated Customer + Invoice + items.

Column mapping: 0=invoice number, 1=date, 2=customer name, 3=customer
address, 4=product, 5=quantity, 6=unit price, 7=line total, 8=grand total.
Columns 7 and 8 are ignored unless strict totals are enabled; item and
invoice totals are always recomputed.

The builder never writes to storage. A customer missing from storage is
returned unsaved together with ``customer_created=True`` and the coordinator
writes it inside the group's transaction.
"""

__all__ = [
    "BuildResult",
    "EntityBuilder",
]

logger = logging.getLogger(__name__)

COL_DATE = 1
COL_CUSTOMER_NAME = 2
COL_CUSTOMER_ADDRESS = 3
COL_PRODUCT = 4
COL_QUANTITY = 5
COL_UNIT_PRICE = 6
COL_LINE_TOTAL = 7
COL_GRAND_TOTAL = 8


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


@dataclass(frozen=True)
class BuildResult:
    """Outcome of building one group. Exactly one of invoice/error is set."""
    invoice_number: int
    row_count: int
    invoice: Invoice | None = None
    customer_created: bool = False
    error: str | None = None
    error_type: str | None = None

    @property
    def ok(self) -> bool:
        return self.invoice is not None and self.error is None

    @classmethod
    def failed(cls, invoice_number: int, row_count: int, result: ParseResult[Any]) -> BuildResult:
        return cls(
            invoice_number=invoice_number,
            row_count=row_count,
            error=result.error,
            error_type=result.error_type or ValidationError.error_type,
        )


class EntityBuilder:
    """Builds validated invoice entities from grouped rows.

    Args:
        gateway: used read-only, for the customer identity lookup
        settings: pipeline options (strict totals)
    """

    def __init__(self, gateway: StorageGateway, settings: ImportSettings | None = None) -> None:
        self.gateway = gateway
        self.settings = settings or ImportSettings()

    def resolve_customer(self, name: str, address: str) -> tuple[Customer, bool]:
        """Find the customer by exact identity or return a new unsaved one.

        Returns:
            (customer, created) where created is True for a new customer.

        Raises:
            StorageError: the lookup itself failed.
        """
        existing = self.gateway.find_customer_by_identity(name, address)
        if existing is not None:
            return existing, False
        return Customer(name=name, address=address), True

    def build_item(self, row: Sequence[Any]) -> ParseResult[InvoiceItem]:
        product = parse_text(_cell(row, COL_PRODUCT), "Product name")
        if not product.ok:
            return ParseResult.failure(product.error)
        quantity = parse_quantity(_cell(row, COL_QUANTITY))
        if not quantity.ok:
            return ParseResult.failure(quantity.error)
        unit_price = parse_unit_price(_cell(row, COL_UNIT_PRICE))
        if not unit_price.ok:
            return ParseResult.failure(unit_price.error)

        item = InvoiceItem(
            product_name=product.value,
            quantity=quantity.value,
            unit_price=unit_price.value,
        )
        if self.settings.strict_totals:
            mismatch = self._check_supplied(
                _cell(row, COL_LINE_TOTAL), item.total_price, "line total"
            )
            if mismatch is not None:
                return ParseResult.failure(f"{item.product_name}: {mismatch}")
        return ParseResult.success(item)

    @staticmethod
    def _check_supplied(supplied: Any, computed: Decimal, label: str) -> str | None:
        """Compare a supplied total with the recomputed one (strict mode only).

        Empty supplied cells are not checked.
        """
        if is_empty_cell(supplied):
            return None
        number = parse_number(supplied)
        if not number.ok:
            return f"invalid {label}: {number.error}"
        if abs(number.value - computed) > CENT:
            return f"{label} {number.value} does not match computed {computed}"
        return None

    def build(self, invoice_number: int, rows: Sequence[Sequence[Any]]) -> BuildResult:
        """Build one invoice group. Never raises for data problems."""
        row_count = len(rows)
        if not rows:
            return BuildResult.failed(
                invoice_number, 0, ParseResult.failure("Invoice must have at least one item")
            )

        first = rows[0]
        name = parse_text(_cell(first, COL_CUSTOMER_NAME), "Customer name")
        if not name.ok:
            return BuildResult.failed(invoice_number, row_count, name)
        address = parse_text(_cell(first, COL_CUSTOMER_ADDRESS), "Customer address", max_length=None)
        if not address.ok:
            return BuildResult.failed(invoice_number, row_count, address)

        invoice_date = parse_date(_cell(first, COL_DATE))
        if not invoice_date.ok:
            return BuildResult.failed(invoice_number, row_count, invoice_date)

        try:
            customer, created = self.resolve_customer(name.value, address.value)
        except StorageError as e:
            return BuildResult.failed(
                invoice_number,
                row_count,
                ParseResult.failure(f"Customer lookup failed: {e}", StorageError.error_type),
            )

        invoice = Invoice(
            invoice_number=invoice_number,
            invoice_date=invoice_date.value,
            customer=customer,
        )
        for position, row in enumerate(rows, start=1):
            item = self.build_item(row)
            if not item.ok:
                return BuildResult.failed(
                    invoice_number,
                    row_count,
                    ParseResult.failure(f"Failed to process item {position}: {item.error}"),
                )
            invoice.add_item(item.value)

        if self.settings.strict_totals:
            mismatch = self._check_supplied(
                _cell(first, COL_GRAND_TOTAL), invoice.grand_total, "grand total"
            )
            if mismatch is not None:
                return BuildResult.failed(invoice_number, row_count, ParseResult.failure(mismatch))

        problems = invoice.validation_errors()
        if problems:
            return BuildResult.failed(
                invoice_number, row_count, ParseResult.failure("; ".join(problems))
            )

        logger.debug(
            "invoice=%d built items=%d grand_total=%s customer_created=%s",
            invoice_number,
            len(invoice.items),
            invoice.grand_total,
            created,
        )
        return BuildResult(
            invoice_number=invoice_number,
            row_count=row_count,
            invoice=invoice,
            customer_created=created,
        )
