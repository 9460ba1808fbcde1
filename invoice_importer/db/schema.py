from __future__ import annotations

import logging
from typing import Any

"""Schema bootstrap for the PostgreSQL store.

Tables: customers, invoices (unique invoice_number), invoice_items. Run once
before the first import when ``create_schema`` is enabled; statements are
idempotent (IF NOT EXISTS).
"""

__all__ = [
    "SCHEMA_TABLES",
    "SCHEMA_STATEMENTS",
    "create_schema",
    "ensure_schema",
    "schema_exists",
]

logger = logging.getLogger(__name__)

SCHEMA_TABLES = ("customers", "invoices", "invoice_items")

SCHEMA_STATEMENTS = (
    """CREATE TABLE IF NOT EXISTS customers (
        customer_id SERIAL PRIMARY KEY,
        customer_name VARCHAR(255) NOT NULL,
        customer_address TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS invoices (
        invoice_id SERIAL PRIMARY KEY,
        invoice_number INTEGER NOT NULL UNIQUE,
        invoice_date DATE NOT NULL,
        customer_id INTEGER NOT NULL REFERENCES customers(customer_id) ON DELETE CASCADE,
        grand_total NUMERIC(12, 2) NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS invoice_items (
        item_id SERIAL PRIMARY KEY,
        invoice_id INTEGER NOT NULL REFERENCES invoices(invoice_id) ON DELETE CASCADE,
        product_name VARCHAR(255) NOT NULL,
        quantity NUMERIC(12, 3) NOT NULL,
        unit_price NUMERIC(14, 4) NOT NULL,
        total_price NUMERIC(12, 2) NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )""",
    "CREATE INDEX IF NOT EXISTS idx_customers_identity ON customers(customer_name, md5(customer_address))",
    "CREATE INDEX IF NOT EXISTS idx_invoices_customer_id ON invoices(customer_id)",
    "CREATE INDEX IF NOT EXISTS idx_invoices_date ON invoices(invoice_date)",
    "CREATE INDEX IF NOT EXISTS idx_invoice_items_invoice_id ON invoice_items(invoice_id)",
)


def schema_exists(cursor: Any) -> bool:
    cursor.execute(
        "SELECT table_name FROM information_schema.tables "
        "WHERE table_schema = 'public' AND table_name = ANY(%s)",
        (list(SCHEMA_TABLES),),
    )
    return len(cursor.fetchall()) == len(SCHEMA_TABLES)


def create_schema(cursor: Any) -> None:
    for statement in SCHEMA_STATEMENTS:
        cursor.execute(statement)


def ensure_schema(connection: Any) -> bool:
    """Create the schema when missing. Returns True if it was created."""
    with connection.cursor() as cur:
        if schema_exists(cur):
            logger.debug("database schema already exists")
            return False
        create_schema(cur)
    connection.commit()
    logger.info("database schema created")
    return True
