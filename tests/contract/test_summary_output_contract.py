from __future__ import annotations

import re
from pathlib import Path

from invoice_importer.cli import main as cli_main

"""SUMMARY output contract: exactly one line, fixed key order, on stdout."""

SUMMARY_LINE = re.compile(
    r"^SUMMARY invoices=\d+/\d+ success=\d+ failed=\d+ rows=\d+/\d+ "
    r"customers_created=\d+ invoices_created=\d+ elapsed_sec=\d+(\.\d+)?$"
)


def test_single_summary_line(invoice_xlsx: Path, capsys):
    cli_main([str(invoice_xlsx)])
    lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith("SUMMARY")]
    assert len(lines) == 1
    assert SUMMARY_LINE.match(lines[0]), lines[0]


def test_summary_is_last_before_completion_message(invoice_xlsx: Path, capsys):
    cli_main([str(invoice_xlsx)])
    lines = capsys.readouterr().out.splitlines()
    idx = next(i for i, line in enumerate(lines) if line.startswith("SUMMARY"))
    assert lines[idx + 1:] == ["INFO Import completed successfully!"]


def test_every_line_is_labeled(invoice_xlsx: Path, capsys):
    cli_main([str(invoice_xlsx), "--debug"])
    labels = {line.split(" ", 1)[0] for line in capsys.readouterr().out.splitlines() if line}
    assert labels <= {"DEBUG", "INFO", "WARN", "ERROR", "CRITICAL", "SUMMARY"}
