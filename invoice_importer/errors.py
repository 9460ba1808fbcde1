from __future__ import annotations

"""Error taxonomy for the invoice import pipeline.

Two families:
- ProcessingError: fatal, aborts the whole run before or during grouping.
- GroupError: scoped to one invoice group; recorded in ImportResult and the
  run continues with the next group.
"""

__all__ = [
    "InvoiceImportError",
    "ProcessingError",
    "InvalidSourceError",
    "EmptyOrUngroupableError",
    "GroupError",
    "InvalidDateError",
    "ValidationError",
    "StorageError",
]


class InvoiceImportError(Exception):
    """Base class for all importer errors."""


class ProcessingError(InvoiceImportError):
    """Fatal run-level failure."""


class InvalidSourceError(ProcessingError):
    """Source file missing, unreadable, or of an unsupported type."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class EmptyOrUngroupableError(ProcessingError):
    """No row carried a numeric invoice number."""


class GroupError(InvoiceImportError):
    error_type = "GROUP_ERROR"


class InvalidDateError(GroupError):
    error_type = "INVALID_DATE"


class ValidationError(GroupError):
    error_type = "VALIDATION_ERROR"


class StorageError(GroupError):
    error_type = "STORAGE_ERROR"
