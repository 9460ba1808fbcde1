from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from ..db.gateway import StorageGateway
from ..errors import EmptyOrUngroupableError, InvalidSourceError, ProcessingError, StorageError
from ..excel.reader import SpreadsheetRowSource
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportSettings
from ..models.import_result import ImportResult, ImportStatistics
from .entity_builder import BuildResult, EntityBuilder
from .grouping import group_rows_by_invoice
from .progress import ProgressTracker

"""Import orchestration.

One run: Reading -> Grouping -> per-group processing -> Finalizing.

- Reading and Grouping failures are fatal (InvalidSourceError,
  EmptyOrUngroupableError) and propagate to the caller; nothing is imported.
- Every invoice group is built and persisted on its own. A group failure
  (invalid date, validation, storage) is recorded in the ImportResult and the
  run continues with the next group.
- Each group's writes (new customer, invoice, items) share exactly one
  transaction scope, opened and closed before the next group starts.

Groups are processed strictly one after another: the customer find-or-create
step is a lookup followed by an insert and is only duplicate-free when no
other group runs between the two.
"""

__all__ = [
    "ImportCoordinator",
    "RowSource",
    "RunState",
]

logger = logging.getLogger(__name__)

ROWS_SOURCE_NAME = "<rows>"


class RunState(Enum):
    """Coordinator lifecycle.

    IDLE -> READING -> GROUPING -> PROCESSING -> FINALIZING -> DONE
    Any fatal error moves the run to FAILED. A new run starts from any state.
    """
    IDLE = "idle"
    READING = "reading"
    GROUPING = "grouping"
    PROCESSING = "processing"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class RowSource(Protocol):
    def get_all_rows(self) -> list[list[Any]]: ...


class ImportCoordinator:
    """Drives invoice import runs against one storage gateway.

    Args:
        gateway: storage gateway, shared across groups but never concurrently
        settings: pipeline options
        error_log: optional JSON Lines buffer, flushed once per run
    """

    def __init__(
        self,
        gateway: StorageGateway,
        settings: ImportSettings | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.gateway = gateway
        self.settings = settings or ImportSettings()
        self.error_log = error_log
        self.builder = EntityBuilder(gateway, self.settings)
        self.state = RunState.IDLE
        self.statistics = ImportStatistics()
        self.group_count = 0
        self.elapsed_seconds = 0.0

    def get_statistics(self) -> dict[str, int]:
        return self.statistics.as_dict()

    # -- real runs ---------------------------------------------------------

    def import_file(self, path: Path | str) -> ImportResult:
        source = SpreadsheetRowSource(path, sheet_name=self.settings.sheet_name)
        return self.import_from_source(source, source_name=source.name)

    def import_from_source(self, source: RowSource, source_name: str = ROWS_SOURCE_NAME) -> ImportResult:
        started = time.perf_counter()
        self.statistics.reset()
        self.group_count = 0
        self.state = RunState.READING
        try:
            rows = self._read(source)
        except ProcessingError:
            self.state = RunState.FAILED
            raise
        try:
            return self._run(rows, source_name)
        finally:
            self.elapsed_seconds = time.perf_counter() - started

    def import_rows(self, rows: Sequence[Sequence[Any]], source_name: str = ROWS_SOURCE_NAME) -> ImportResult:
        """Run the pipeline over already materialized rows."""
        return self.import_from_source(_StaticRowSource(rows), source_name=source_name)

    def _read(self, source: RowSource) -> list[Sequence[Any]]:
        try:
            rows = source.get_all_rows()
        except InvalidSourceError:
            raise
        except (OSError, ValueError) as e:
            raise InvalidSourceError(f"Failed to read rows: {e}") from e
        if rows is None or isinstance(rows, (str, bytes)):
            raise InvalidSourceError("row source returned no row sequence")
        rows = list(rows)
        for index, row in enumerate(rows):
            if isinstance(row, (str, bytes)) or not isinstance(row, Sequence):
                raise InvalidSourceError(
                    f"row {index} is not a sequence of cells ({type(row).__name__})"
                )
        return rows

    def _group(self, rows: Sequence[Sequence[Any]]) -> dict[int, list[Sequence[Any]]]:
        grouped = group_rows_by_invoice(rows)
        if not grouped:
            raise EmptyOrUngroupableError("No valid invoice data found in the file")
        return grouped

    def _run(self, rows: list[Sequence[Any]], source_name: str) -> ImportResult:
        self.statistics.total_rows = len(rows)

        self.state = RunState.GROUPING
        try:
            grouped = self._group(rows)
        except ProcessingError:
            self.state = RunState.FAILED
            raise
        self.group_count = len(grouped)
        logger.info("source=%s rows=%d invoice_groups=%d", source_name, len(rows), len(grouped))

        self.state = RunState.PROCESSING
        result = ImportResult()
        with ProgressTracker(len(grouped)) as progress:
            for invoice_number, group_rows in grouped.items():
                progress.start_group(invoice_number)
                self._process_group(invoice_number, group_rows, result, source_name)
                progress.set_postfix(success=result.success_count, failed=result.error_count)
                progress.finish_group()

        self.state = RunState.FINALIZING
        result.statistics = self.statistics.as_dict()
        if self.error_log is not None:
            counts = self.error_log.counts_by_type()
            try:
                path = self.error_log.flush()
            except OSError as e:
                logger.warning("failed to write error log: %s", e)
            else:
                if counts and path is not None:
                    by_type = " ".join(f"{k}={v}" for k, v in sorted(counts.items()))
                    logger.info("error log written: %s (%s)", path, by_type)
        self.state = RunState.DONE
        return result

    def _process_group(
        self,
        invoice_number: int,
        rows: Sequence[Sequence[Any]],
        result: ImportResult,
        source_name: str,
    ) -> None:
        build = self.builder.build(invoice_number, rows)
        if build.ok:
            failure = self._persist(build)
        else:
            failure = (build.error_type, build.error)

        if failure is None:
            result.add_imported_invoice(build.invoice)
            self.statistics.successful_imports += 1
            self.statistics.invoices_created += 1
            if build.customer_created:
                self.statistics.customers_created += 1
            logger.debug(
                "invoice=%d imported items=%d grand_total=%s",
                invoice_number,
                len(build.invoice.items),
                build.invoice.grand_total,
            )
        else:
            error_type, message = failure
            self._record_failure(result, invoice_number, len(rows), error_type, message, source_name)

        self.statistics.processed_rows += len(rows)

    def _persist(self, build: BuildResult) -> tuple[str, str] | None:
        """Write one built group atomically. Returns (error_type, message) on failure."""
        invoice = build.invoice
        customer = invoice.customer
        try:
            with self.gateway.transaction():
                if build.customer_created:
                    self.gateway.create_customer(customer)
                self.gateway.create_invoice_with_items(invoice)
        except StorageError as e:
            # rolled back: none of the group's rows exist
            if build.customer_created:
                customer.customer_id = None
            invoice.assign_id(None)
            for item in invoice.items:
                item.item_id = None
            return (StorageError.error_type, str(e))
        return None

    def _record_failure(
        self,
        result: ImportResult,
        invoice_number: int,
        row_count: int,
        error_type: str,
        message: str,
        source_name: str,
    ) -> None:
        text = f"Invoice {invoice_number} processing failed: {message}"
        result.add_error(text)
        self.statistics.failed_imports += 1
        logger.warning(text)
        if self.error_log is not None:
            self.error_log.record(source_name, invoice_number, row_count, error_type, message)

    # -- dry run -----------------------------------------------------------

    def dry_run(self, source: RowSource) -> list[BuildResult]:
        """Read, group and build every group without persisting anything.

        Statistics of real runs are left untouched. Fatal errors propagate.
        """
        rows = self._read(source)
        grouped = self._group(rows)
        builder = EntityBuilder(self.gateway, self.settings)
        return [builder.build(number, group) for number, group in grouped.items()]

    def validate_rows(self, rows: Sequence[Sequence[Any]]) -> bool:
        return self._validate(_StaticRowSource(rows))

    def validate_file(self, path: Path | str) -> bool:
        return self._validate(SpreadsheetRowSource(path, sheet_name=self.settings.sheet_name))

    def _validate(self, source: RowSource) -> bool:
        """True when at least one group builds successfully."""
        try:
            results = self.dry_run(source)
        except ProcessingError as e:
            logger.debug("validation failed: %s", e)
            return False
        return any(r.ok for r in results)


class _StaticRowSource:
    def __init__(self, rows: Sequence[Sequence[Any]]) -> None:
        self._rows = rows

    def get_all_rows(self) -> list[Sequence[Any]]:
        return list(self._rows)

