from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal

"""Domain entities for the invoice importer.

Customer, Invoice and InvoiceItem mirror the three persisted tables
(customers, invoices, invoice_items). Money fields are Decimal rounded
half-up to cents; item and invoice totals are derived properties and are
never taken from spreadsheet input.
"""

__all__ = [
    "CENT",
    "MAX_NAME_LENGTH",
    "PRICE_STEP",
    "QUANTITY_STEP",
    "Customer",
    "Invoice",
    "InvoiceItem",
    "money",
]

CENT = Decimal("0.01")
# scales of the invoice_items.quantity and unit_price columns
QUANTITY_STEP = Decimal("0.001")
PRICE_STEP = Decimal("0.0001")
MAX_NAME_LENGTH = 255


def money(value: Decimal | int | float) -> Decimal:
    """Round to cents, half away from zero."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class Customer:
    """Customer identified by the exact (name, address) pair."""
    name: str
    address: str
    customer_id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def identity(self) -> tuple[str, str]:
        return (self.name, self.address)

    @property
    def is_persisted(self) -> bool:
        return self.customer_id is not None

    def __str__(self) -> str:
        return f"Customer: {self.name} ({self.address})"


@dataclass
class InvoiceItem:
    product_name: str
    quantity: int | Decimal
    unit_price: Decimal
    item_id: int | None = None
    invoice_id: int | None = None

    @property
    def total_price(self) -> Decimal:
        # Derived on every access so it can never drift from quantity/price
        return money(Decimal(self.quantity) * self.unit_price)

    def __str__(self) -> str:
        return (
            f"Item: {self.product_name} (Qty: {self.quantity}, "
            f"Price: {self.unit_price}, Total: {self.total_price})"
        )


@dataclass
class Invoice:
    """One invoice group: header fields, customer and ordered line items."""
    invoice_number: int
    invoice_date: date
    customer: Customer | None = None
    items: list[InvoiceItem] = field(default_factory=list)
    invoice_id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def grand_total(self) -> Decimal:
        return money(sum((item.total_price for item in self.items), Decimal("0")))

    @property
    def customer_id(self) -> int | None:
        return self.customer.customer_id if self.customer is not None else None

    def add_item(self, item: InvoiceItem) -> None:
        item.invoice_id = self.invoice_id
        self.items.append(item)

    def assign_id(self, invoice_id: int | None) -> None:
        self.invoice_id = invoice_id
        for item in self.items:
            item.invoice_id = invoice_id

    def validation_errors(self) -> list[str]:
        """Return the invariant violations of this invoice (empty when valid)."""
        problems: list[str] = []
        if self.invoice_number <= 0:
            problems.append("Invoice number must be greater than 0")
        if not self.items:
            problems.append("Invoice must have at least one item")
        if self.customer is None:
            problems.append("Invoice must have a customer")
        return problems

    def __str__(self) -> str:
        name = self.customer.name if self.customer else "Unknown"
        return f"Invoice #{self.invoice_number} - {name} (Total: {self.grand_total})"
