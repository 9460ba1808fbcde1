from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the invoice importer.

DatabaseConfig is the fallback used when connection environment variables are
not set. ImportSettings carries the values the pipeline itself reads; it is
passed explicitly into the coordinator.
"""

__all__ = [
    "DatabaseConfig",
    "ImportSettings",
    "ImportConfig",
]


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback; environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportSettings:
    """Pipeline options."""
    # Cross-check supplied line/grand totals against recomputed ones
    strict_totals: bool = False
    # Worksheet to read (name or 0-based index); None = first sheet
    sheet_name: str | int | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object loaded from config/import.yml."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    settings: ImportSettings = field(default_factory=ImportSettings)
    create_schema: bool = True
    error_log_dir: str = "./logs"
