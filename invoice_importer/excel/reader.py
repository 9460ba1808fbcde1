from __future__ import annotations

import math
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from ..errors import InvalidSourceError

"""Spreadsheet row source.

Materializes one whole worksheet (or CSV file) as positional rows. No header
interpretation happens here; header detection belongs to the row grouper.
The whole sheet is held in memory, there is no streaming.
"""

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "SpreadsheetRowSource",
    "is_supported_extension",
]

SUPPORTED_EXTENSIONS = frozenset({"xlsx", "xls", "csv"})


def is_supported_extension(path: Path | str) -> bool:
    """Check the file extension only; content is not inspected."""
    suffix = Path(path).suffix.lower().lstrip(".")
    return suffix in SUPPORTED_EXTENSIONS


def _clean_cell(value: Any) -> Any:
    """Convert a pandas cell into a plain Python value.

    NaN/NaT -> None, numpy scalars -> Python scalars, pandas Timestamps ->
    datetime. Strings and native values pass through.
    """
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


class SpreadsheetRowSource:
    """Row source backed by pandas (openpyxl / xlrd engines for Excel)."""

    def __init__(self, path: Path | str, sheet_name: str | int | None = None) -> None:
        self.path = Path(path)
        self.sheet_name = sheet_name if sheet_name is not None else 0

    @property
    def name(self) -> str:
        return self.path.name

    def _check(self) -> None:
        if not self.path.exists():
            raise InvalidSourceError(f"Excel file not found: {self.path}", str(self.path))
        if not is_supported_extension(self.path):
            raise InvalidSourceError(
                f"Unsupported file type '{self.path.suffix}' "
                f"(expected one of {sorted(SUPPORTED_EXTENSIONS)})",
                str(self.path),
            )

    def _read_frame(self) -> pd.DataFrame:
        self._check()
        try:
            if self.path.suffix.lower() == ".csv":
                return pd.read_csv(self.path, header=None, skip_blank_lines=False)
            return pd.read_excel(self.path, sheet_name=self.sheet_name, header=None)
        except pd.errors.EmptyDataError:
            return pd.DataFrame()
        except Exception as e:
            raise InvalidSourceError(
                f"Failed to read Excel file: {e}", str(self.path)
            ) from e

    def get_all_rows(self) -> list[list[Any]]:
        """Return every row of the sheet as an ordered list of cell values."""
        df = self._read_frame()
        rows: list[list[Any]] = []
        for raw in df.itertuples(index=False, name=None):
            rows.append([_clean_cell(v) for v in raw])
        return rows

    def inspect(self, limit: int = 5) -> list[list[Any]]:
        return self.get_all_rows()[:limit]
