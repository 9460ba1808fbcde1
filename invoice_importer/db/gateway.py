from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol

import psycopg2
from psycopg2.extras import execute_values

from ..errors import StorageError
from ..models.entities import Customer, Invoice

"""Storage gateway.

The import coordinator talks to storage only through this interface:
identity lookup, customer insert, invoice+items insert, and a transaction
scope that wraps exactly one invoice group.

PostgresGateway implements it with psycopg2. Item rows are written with
``psycopg2.extras.execute_values`` in a single round trip per invoice.
Driver errors are wrapped into StorageError so the coordinator can treat
them as group-scoped failures. psycopg2 rejects some values client side with
ValueError (NUL characters, text the connection encoding cannot represent);
those are wrapped the same way.
"""

__all__ = [
    "PostgresGateway",
    "StorageGateway",
]

logger = logging.getLogger(__name__)

_DRIVER_ERRORS = (psycopg2.Error, ValueError)


class StorageGateway(Protocol):
    def find_customer_by_identity(self, name: str, address: str) -> Customer | None: ...

    def create_customer(self, customer: Customer) -> Customer: ...

    def create_invoice_with_items(self, invoice: Invoice) -> Invoice: ...

    def transaction(self) -> Any:
        """Context manager: commit on success, rollback + StorageError on failure."""
        ...


class PostgresGateway:
    """psycopg2-backed gateway over the customers/invoices/invoice_items tables.

    The connection must have ``autocommit = False``; transaction boundaries are
    set by ``transaction()``.
    """

    def __init__(self, connection: Any, page_size: int = 1000) -> None:
        self.connection = connection
        self.page_size = page_size
        self._in_transaction = False

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._in_transaction:
            raise StorageError("nested transactions are not supported")
        self._in_transaction = True
        try:
            yield
            self.connection.commit()
        except Exception as e:
            self._rollback_quietly()
            if isinstance(e, StorageError):
                raise
            if isinstance(e, psycopg2.Error):
                raise StorageError(f"transaction failed: {e}") from e
            raise
        finally:
            self._in_transaction = False

    def _rollback_quietly(self) -> None:
        try:
            self.connection.rollback()
        except psycopg2.Error as e:
            logger.error("rollback failed: %s", e)

    def find_customer_by_identity(self, name: str, address: str) -> Customer | None:
        sql = (
            "SELECT customer_id, customer_name, customer_address, created_at "
            "FROM customers WHERE customer_name = %s AND customer_address = %s "
            "ORDER BY customer_id LIMIT 1"
        )
        try:
            with self.connection.cursor() as cur:
                cur.execute(sql, (name, address))
                row = cur.fetchone()
        except _DRIVER_ERRORS as e:
            # outside transaction(): clear the aborted implicit transaction here
            if not self._in_transaction:
                self._rollback_quietly()
            raise StorageError(f"Failed to find customer by name and address: {e}") from e
        if row is None:
            return None
        return Customer(customer_id=row[0], name=row[1], address=row[2], created_at=row[3])

    def create_customer(self, customer: Customer) -> Customer:
        sql = (
            "INSERT INTO customers (customer_name, customer_address, created_at, updated_at) "
            "VALUES (%s, %s, %s, %s) RETURNING customer_id"
        )
        try:
            with self.connection.cursor() as cur:
                cur.execute(
                    sql,
                    (customer.name, customer.address, customer.created_at, customer.created_at),
                )
                customer.customer_id = cur.fetchone()[0]
        except _DRIVER_ERRORS as e:
            raise StorageError(f"Failed to save customer: {e}") from e
        return customer

    def create_invoice_with_items(self, invoice: Invoice) -> Invoice:
        if invoice.customer_id is None:
            raise StorageError(
                f"invoice {invoice.invoice_number} references an unsaved customer"
            )
        invoice_sql = (
            "INSERT INTO invoices "
            "(invoice_number, invoice_date, customer_id, grand_total, created_at, updated_at) "
            "VALUES (%s, %s, %s, %s, %s, %s) RETURNING invoice_id"
        )
        items_sql = (
            "INSERT INTO invoice_items "
            "(invoice_id, product_name, quantity, unit_price, total_price, created_at, updated_at) "
            "VALUES %s RETURNING item_id"
        )
        try:
            with self.connection.cursor() as cur:
                cur.execute(
                    invoice_sql,
                    (
                        invoice.invoice_number,
                        invoice.invoice_date,
                        invoice.customer_id,
                        invoice.grand_total,
                        invoice.created_at,
                        invoice.created_at,
                    ),
                )
                invoice_id = cur.fetchone()[0]
                rows = [
                    (
                        invoice_id,
                        item.product_name,
                        item.quantity,
                        item.unit_price,
                        item.total_price,
                        invoice.created_at,
                        invoice.created_at,
                    )
                    for item in invoice.items
                ]
                returned = execute_values(
                    cur, items_sql, rows, page_size=self.page_size, fetch=True
                )
        except _DRIVER_ERRORS as e:
            raise StorageError(f"Failed to save invoice: {e}") from e

        # ids only once every row is written
        invoice.assign_id(invoice_id)
        for item, (item_id,) in zip(invoice.items, returned, strict=True):
            item.item_id = item_id
        return invoice
