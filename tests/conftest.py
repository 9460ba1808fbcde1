# Shared pytest fixtures
from __future__ import annotations

import tempfile
from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest

from invoice_importer.db.memory import InMemoryGateway
from invoice_importer.logging.init import reset_logging

HEADER = [
    "Invoice Number",
    "Invoice Date",
    "Customer Name",
    "Customer Address",
    "Product Name",
    "Quantity",
    "Unit Price",
    "Line Total",
    "Grand Total",
]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
        yield p


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
strict_totals: false
create_schema: true
error_log_dir: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def sample_rows() -> list[list[object]]:
    """Header + two invoices, the second customer distinct from the first."""
    return [
        list(HEADER),
        [1, "2023年1月15日", "John Doe", "123 Main St, City, State", "Product A", 2, 25.50, 51.00, 66.00],
        [1, "2023年1月15日", "John Doe", "123 Main St, City, State", "Product B", 1, 15.00, 15.00, 66.00],
        [2, "2023年1月16日", "Jane Smith", "456 Oak Ave, City, State", "Product C", 3, 10.00, 30.00, 30.00],
    ]


@pytest.fixture()
def memory_gateway() -> InMemoryGateway:
    return InMemoryGateway()


def _make_excel(path: Path, rows: list[list[object]], sheet_name: str = "Invoices") -> Path:
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


@pytest.fixture()
def invoice_xlsx(temp_workdir: Path, sample_rows: list[list[object]]) -> Path:
    rows = [list(r) for r in sample_rows]
    # a real datetime cell, as Excel stores dates
    rows[3][1] = datetime(2023, 1, 16)
    return _make_excel(temp_workdir / "data" / "invoices.xlsx", rows)
