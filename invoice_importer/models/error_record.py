from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

One record per failed invoice group. The key set is fixed; ``to_json_line``
never emits extra keys.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Source spreadsheet name (``<rows>`` for in-memory input)
        invoice_number: Invoice number of the failed group
        row_count: Number of source rows in the failed group
        error_type: INVALID_DATE | VALIDATION_ERROR | STORAGE_ERROR
        message: Human readable failure description
    """
    timestamp: str
    file: str
    invoice_number: int
    row_count: int
    error_type: str
    message: str

    @staticmethod
    def create(
        file: str, invoice_number: int, row_count: int, error_type: str, message: str
    ) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            invoice_number=invoice_number,
            row_count=row_count,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
