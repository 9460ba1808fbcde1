from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from invoice_importer.cli import main as cli_main
from invoice_importer.db.memory import InMemoryGateway
from invoice_importer.services.orchestrator import ImportCoordinator

"""Integration: full runs over real spreadsheet files, in-memory storage."""

SUMMARY_RE = re.compile(
    r"^SUMMARY invoices=(\d+)/(\d+) success=(\d+) failed=(\d+) rows=(\d+)/(\d+) "
    r"customers_created=(\d+) invoices_created=(\d+) elapsed_sec=(\d+(?:\.\d+)?)$",
    re.MULTILINE,
)


def _make_excel_file(tmp_path: Path, name: str, rows: list[list[object]]) -> Path:
    excel_path = tmp_path / name
    with pd.ExcelWriter(excel_path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="Invoices", header=False, index=False)
    return excel_path


@pytest.fixture
def mixed_dates_workbook(temp_workdir: Path) -> dict[str, Any]:
    """Five invoices, three customers, every supported date representation."""
    rows = [
        ["Invoice Number", "Invoice Date", "Customer Name", "Customer Address",
         "Product Name", "Quantity", "Unit Price", "Line Total", "Grand Total"],
        [1001, "2023年1月15日", "John Doe", "123 Main St", "Widget A", 2, 25.50, 51.00, 66.00],
        [1001, "2023年1月15日", "John Doe", "123 Main St", "Widget B", 1, 15.00, 15.00, 66.00],
        [1002, datetime(2023, 1, 16), "Jane Smith", "456 Oak Ave", "Widget C", 3, 10.00, 30.00, 30.00],
        [1003, 44942, "John Doe", "123 Main St", "Widget A", 1, 25.50, 25.50, 25.50],
        [1004, "2023-01-18", "Bob Brown", "789 Pine Rd", "Widget D", 4, 0.335, 1.34, 1.34],
        ["Subtotal", None, None, None, None, None, None, None, 122.84],
        [1005, "2023/01/19", "Jane Smith", "456 Oak Ave", "Widget E", 1, 1000, 999, 999],
    ]
    path = _make_excel_file(temp_workdir / "data", "invoices.xlsx", rows)
    return {"path": path, "total_rows": len(rows), "grouped_rows": 6}


def test_coordinator_imports_workbook(mixed_dates_workbook: dict[str, Any]) -> None:
    gateway = InMemoryGateway()
    coordinator = ImportCoordinator(gateway)
    result = coordinator.import_file(mixed_dates_workbook["path"])

    assert result.is_success, result.errors
    assert [i.invoice_number for i in result.imported_invoices] == [1001, 1002, 1003, 1004, 1005]
    by_number = {i.invoice_number: i for i in result.imported_invoices}
    assert by_number[1001].grand_total == Decimal("66.00")
    assert by_number[1002].invoice_date.isoformat() == "2023-01-16"
    assert by_number[1003].invoice_date.isoformat() == "2023-01-16"
    assert by_number[1004].grand_total == Decimal("1.34")
    # supplied totals are ignored without strict mode
    assert by_number[1005].grand_total == Decimal("1000.00")

    stats = coordinator.get_statistics()
    assert stats["total_rows"] == mixed_dates_workbook["total_rows"]
    assert stats["processed_rows"] == mixed_dates_workbook["grouped_rows"]
    assert stats["customers_created"] == 3
    assert stats["invoices_created"] == 5
    assert len(gateway.customers) == 3
    john = gateway.find_customer_by_identity("John Doe", "123 Main St")
    assert [i.invoice_number for i in gateway.invoices if i.customer_id == john.customer_id] == [1001, 1003]


def test_cli_run_success(mixed_dates_workbook: dict[str, Any], capsys: Any) -> None:
    exit_code = cli_main([str(mixed_dates_workbook["path"])])
    output = capsys.readouterr().out

    assert exit_code == 0
    match = SUMMARY_RE.search(output)
    assert match is not None, output
    processed, groups, success, failed, rows_done, rows_total, customers, invoices, elapsed = match.groups()
    assert (int(processed), int(groups), int(success), int(failed)) == (5, 5, 5, 0)
    assert (int(rows_done), int(rows_total)) == (6, 8)
    assert (int(customers), int(invoices)) == (3, 5)
    assert float(elapsed) >= 0
    assert "ERROR" not in output
    assert "WARN" not in output


def test_cli_run_csv(temp_workdir: Path, capsys: Any) -> None:
    csv = temp_workdir / "data" / "invoices.csv"
    csv.write_text(
        "Invoice Number,Invoice Date,Customer Name,Customer Address,Product Name,Quantity,Unit Price\n"
        "1,2023年1月15日,John Doe,\"123 Main St, City, State\",Product A,2,25.50\n"
        "1,2023年1月15日,John Doe,\"123 Main St, City, State\",Product B,1,15.00\n"
        "2,2023年1月16日,Jane Smith,\"456 Oak Ave, City, State\",Product C,3,10.00\n",
        encoding="utf-8",
    )
    assert cli_main([str(csv)]) == 0
    out = capsys.readouterr().out
    assert "SUMMARY invoices=2/2 success=2 failed=0 rows=3/4 customers_created=2 invoices_created=2" in out
