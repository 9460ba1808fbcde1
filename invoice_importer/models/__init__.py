"""Domain models for the invoice importer."""

from .config_models import DatabaseConfig, ImportConfig, ImportSettings
from .entities import Customer, Invoice, InvoiceItem, money
from .error_record import ErrorRecord
from .import_result import ImportResult, ImportStatistics

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    "ImportSettings",
    # Domain entities
    "Customer",
    "Invoice",
    "InvoiceItem",
    "money",
    # Run results
    "ErrorRecord",
    "ImportResult",
    "ImportStatistics",
]
