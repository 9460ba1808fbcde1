"""Spreadsheet invoice importer: rows -> customers, invoices and line items."""

__version__ = "0.1.0"
