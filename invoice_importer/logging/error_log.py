from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Failed invoice log.

One JSON Lines record per failed invoice group (fixed keys, see
ErrorRecord). Records stay in memory while the run processes groups and are
written when the run finalizes, to ``<log_dir>/errors-YYYYMMDD-HHMMSS.log``.
The stamp is the run start (UTC); a run without failures leaves no file.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """Collects failed invoice groups of one run. Not thread safe."""

    def __init__(self, log_dir: Path | None = None, started_at: datetime | None = None) -> None:
        self.log_dir = log_dir if log_dir is not None else LOGS_DIR
        stamp = (started_at or datetime.now(UTC)).strftime(TIMESTAMP_FMT)
        self.file_path = self.log_dir / f"errors-{stamp}.log"
        self._pending: list[ErrorRecord] = []
        self._written = 0

    def record(
        self,
        file: str,
        invoice_number: int,
        row_count: int,
        error_type: str,
        message: str,
    ) -> ErrorRecord:
        """Buffer the failure of one invoice group and return its record."""
        entry = ErrorRecord.create(
            file=file,
            invoice_number=invoice_number,
            row_count=row_count,
            error_type=error_type,
            message=message,
        )
        self.append(entry)
        return entry

    def append(self, record: ErrorRecord) -> None:
        self._pending.append(record)

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def counts_by_type(self) -> dict[str, int]:
        return dict(Counter(r.error_type for r in self._pending))

    @property
    def written(self) -> int:
        """Records written by flush() so far."""
        return self._written

    def flush(self) -> Path | None:
        """Append pending records; returns the log path, None if nothing was ever written."""
        if self._pending:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            lines = "".join(r.to_json_line() + "\n" for r in self._pending)
            with self.file_path.open("a", encoding="utf-8") as f:
                f.write(lines)
            self._written += len(self._pending)
            self._pending.clear()
        return self.file_path if self._written else None
