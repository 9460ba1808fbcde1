from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd

from invoice_importer.cli import main as cli_main

"""Integration: partial failure run (some invoice groups fail, others import)."""


def _write_rows(path: Path, rows: list[list[object]]) -> Path:
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="Invoices", header=False, index=False)
    return path


def test_partial_failure_run(temp_workdir: Path, capsys: Any) -> None:
    rows = [
        ["Invoice Number", "Invoice Date", "Customer Name", "Customer Address",
         "Product Name", "Quantity", "Unit Price"],
        [1, "2023-01-15", "John Doe", "123 Main St", "Widget A", 1, 10.0],
        [2, "2023-01-15", "   ", "456 Oak Ave", "Widget B", 1, 10.0],
        [3, "someday", "Jane Smith", "456 Oak Ave", "Widget C", 1, 10.0],
        [4, "2023-01-16", "Jane Smith", "456 Oak Ave", "Widget D", 0, 10.0],
        [5, "2023-01-17", "Jane Smith", "456 Oak Ave", "Widget E", 2, 7.25],
    ]
    path = _write_rows(temp_workdir / "data" / "mixed.xlsx", rows)

    exit_code = cli_main([str(path)])
    out = capsys.readouterr().out

    assert exit_code == 2
    assert (
        "SUMMARY invoices=5/5 success=2 failed=3 rows=5/6 customers_created=2 invoices_created=2"
        in out
    )
    assert "WARN Invoice 2 processing failed: Customer name cannot be empty" in out
    assert "WARN Invoice 4 processing failed: Failed to process item 1: Quantity must be greater than 0" in out
    assert "WARN Import completed with errors." in out

    logs = list((temp_workdir / "logs").glob("errors-*.log"))
    assert len(logs) == 1
    records = [json.loads(line) for line in logs[0].read_text(encoding="utf-8").splitlines()]
    assert [(r["invoice_number"], r["error_type"]) for r in records] == [
        (2, "VALIDATION_ERROR"),
        (3, "INVALID_DATE"),
        (4, "VALIDATION_ERROR"),
    ]
    assert all(r["file"] == "mixed.xlsx" and r["row_count"] == 1 for r in records)


def test_strict_totals_from_config(temp_workdir: Path, capsys: Any) -> None:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text("strict_totals: true\n", encoding="utf-8")
    rows = [
        [1, "2023-01-15", "John Doe", "123 Main St", "Widget A", 2, 10.0, 20.0, 20.0],
        [2, "2023-01-15", "John Doe", "123 Main St", "Widget B", 2, 10.0, 25.0, 25.0],
    ]
    path = _write_rows(temp_workdir / "data" / "totals.xlsx", rows)

    assert cli_main([str(path)]) == 2
    out = capsys.readouterr().out
    assert "line total 25" in out
    assert "does not match computed 20.00" in out
    assert "success=1 failed=1" in out
