from __future__ import annotations

from ..models.import_result import ImportResult

"""SUMMARY line rendering.

Format:
SUMMARY invoices={processed}/{groups} success={success} failed={failed}
rows={processed_rows}/{total_rows} customers_created={n} invoices_created={n}
elapsed_sec={elapsed}
"""

__all__ = [
    "format_seconds",
    "render_summary_line",
]


def format_seconds(seconds: float) -> str:
    """Integers without a decimal point; tiny values without scientific notation."""
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(total_groups: int, result: ImportResult, elapsed_seconds: float) -> str:
    """Render the SUMMARY line for one run.

    Args:
        total_groups: number of invoice groups found in the source
        result: finalized ImportResult (its ``statistics`` snapshot is used)
        elapsed_seconds: wall time of the run

    Examples:
        >>> r = ImportResult(success_count=2, statistics={
        ...     "total_rows": 4, "processed_rows": 3, "customers_created": 2,
        ...     "invoices_created": 2})
        >>> render_summary_line(2, r, 1.5)
        'SUMMARY invoices=2/2 success=2 failed=0 rows=3/4 customers_created=2 invoices_created=2 elapsed_sec=1.5'
    """
    stats = result.statistics
    return (
        f"SUMMARY invoices={result.total_processed}/{total_groups} "
        f"success={result.success_count} "
        f"failed={result.error_count} "
        f"rows={stats.get('processed_rows', 0)}/{stats.get('total_rows', 0)} "
        f"customers_created={stats.get('customers_created', 0)} "
        f"invoices_created={stats.get('invoices_created', 0)} "
        f"elapsed_sec={format_seconds(elapsed_seconds)}"
    )
