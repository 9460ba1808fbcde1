from __future__ import annotations

from pathlib import Path

import pandas as pd

from invoice_importer.cli import main as cli_main
from invoice_importer.cli.__main__ import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL

"""Exit code contract: 0 all imported, 2 some groups failed, 1 fatal."""


def _xlsx(path: Path, rows: list[list[object]]) -> Path:
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, header=False, index=False)
    return path


def test_exit_code_values():
    assert (EXIT_SUCCESS_ALL, EXIT_FATAL, EXIT_PARTIAL_FAILURE) == (0, 1, 2)


def test_exit_code_all_success(invoice_xlsx: Path, capsys):
    assert cli_main([str(invoice_xlsx)]) == 0
    out = capsys.readouterr().out
    assert "SUMMARY invoices=2/2 success=2 failed=0" in out
    assert "INFO Import completed successfully!" in out


def test_exit_code_partial_failure(temp_workdir: Path, capsys):
    path = _xlsx(
        temp_workdir / "data" / "partial.xlsx",
        [
            [1, "2023-01-15", "A", "Addr", "P", 1, 5],
            [2, "2023-01-15", "B", "Addr", "P", -1, 5],
        ],
    )
    assert cli_main([str(path)]) == 2
    assert "SUMMARY invoices=2/2 success=1 failed=1" in capsys.readouterr().out


def test_exit_code_all_groups_failed_is_partial(temp_workdir: Path, capsys):
    path = _xlsx(temp_workdir / "data" / "allbad.xlsx", [[1, "nope", "A", "Addr", "P", 1, 5]])
    assert cli_main([str(path)]) == 2
    assert "failed=1" in capsys.readouterr().out


def test_exit_code_fatal_unreadable(temp_workdir: Path, capsys):
    broken = temp_workdir / "data" / "broken.xlsx"
    broken.write_bytes(b"\x00\x01 not a workbook")
    assert cli_main([str(broken)]) == 1
    out = capsys.readouterr().out
    assert "ERROR Import failed: Failed to read Excel file" in out
    assert "SUMMARY" not in out


def test_exit_code_fatal_config(invoice_xlsx: Path, temp_workdir: Path, capsys):
    (temp_workdir / "config" / "import.yml").write_text("strict_totals: maybe\n", encoding="utf-8")
    assert cli_main([str(invoice_xlsx)]) == 1
    assert "ERROR config:" in capsys.readouterr().out
