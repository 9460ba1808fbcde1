from __future__ import annotations

import copy
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from ..errors import StorageError
from ..models.entities import Customer, Invoice

"""In-memory storage gateway.

Used when the database is disabled (``DISABLE_DB_CONNECT=1``) and by the test
suite. Transactions snapshot the tables and restore them on failure so
atomicity matches the PostgreSQL gateway; the unique invoice number
constraint is enforced the same way.
"""

__all__ = [
    "InMemoryGateway",
]


@dataclass
class _Tables:
    customers: dict[int, Customer] = field(default_factory=dict)
    invoices: dict[int, Invoice] = field(default_factory=dict)
    next_customer_id: int = 1
    next_invoice_id: int = 1
    next_item_id: int = 1


class InMemoryGateway:
    def __init__(self) -> None:
        self._tables = _Tables()
        self._in_transaction = False

    @property
    def customers(self) -> list[Customer]:
        return list(self._tables.customers.values())

    @property
    def invoices(self) -> list[Invoice]:
        return list(self._tables.invoices.values())

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._in_transaction:
            raise StorageError("nested transactions are not supported")
        snapshot = copy.deepcopy(self._tables)
        self._in_transaction = True
        try:
            yield
        except Exception:
            self._tables = snapshot
            raise
        finally:
            self._in_transaction = False

    def find_customer_by_identity(self, name: str, address: str) -> Customer | None:
        for customer in self._tables.customers.values():
            if customer.identity == (name, address):
                return customer
        return None

    def create_customer(self, customer: Customer) -> Customer:
        customer.customer_id = self._tables.next_customer_id
        self._tables.next_customer_id += 1
        self._tables.customers[customer.customer_id] = customer
        return customer

    def create_invoice_with_items(self, invoice: Invoice) -> Invoice:
        if invoice.customer_id is None or invoice.customer_id not in self._tables.customers:
            raise StorageError(
                f"invoice {invoice.invoice_number} references an unknown customer"
            )
        if any(i.invoice_number == invoice.invoice_number for i in self._tables.invoices.values()):
            raise StorageError(
                f"duplicate key value violates unique constraint: "
                f"invoice_number={invoice.invoice_number}"
            )
        invoice.assign_id(self._tables.next_invoice_id)
        self._tables.next_invoice_id += 1
        for item in invoice.items:
            item.item_id = self._tables.next_item_id
            self._tables.next_item_id += 1
        self._tables.invoices[invoice.invoice_id] = invoice
        return invoice
