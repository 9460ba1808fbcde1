from __future__ import annotations

from dataclasses import asdict, dataclass, field

from .entities import Invoice

"""Run result models for the invoice importer.

ImportResult is what a caller receives for every run that was not aborted by a
fatal error; group-scoped failures appear in ``errors`` instead of raising.
ImportStatistics holds the per-run counters and is reset at the start of each
run.
"""

__all__ = [
    "ImportResult",
    "ImportStatistics",
]


@dataclass
class ImportStatistics:
    """Per-run counters exposed as a plain mapping via ``as_dict()``."""
    total_rows: int = 0
    processed_rows: int = 0
    successful_imports: int = 0
    failed_imports: int = 0
    customers_created: int = 0
    invoices_created: int = 0

    def reset(self, total_rows: int = 0) -> None:
        self.total_rows = total_rows
        self.processed_rows = 0
        self.successful_imports = 0
        self.failed_imports = 0
        self.customers_created = 0
        self.invoices_created = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class ImportResult:
    success_count: int = 0
    error_count: int = 0
    errors: list[str] = field(default_factory=list)
    imported_invoices: list[Invoice] = field(default_factory=list)
    statistics: dict[str, int] = field(default_factory=dict)  # snapshot taken at finalize

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.error_count += 1

    def add_imported_invoice(self, invoice: Invoice) -> None:
        self.imported_invoices.append(invoice)
        self.success_count += 1

    @property
    def is_success(self) -> bool:
        return self.error_count == 0

    @property
    def total_processed(self) -> int:
        return self.success_count + self.error_count
