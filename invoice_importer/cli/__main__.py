from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from invoice_importer.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from invoice_importer.db.gateway import PostgresGateway, StorageGateway
from invoice_importer.db.memory import InMemoryGateway
from invoice_importer.db.schema import ensure_schema
from invoice_importer.errors import ProcessingError
from invoice_importer.excel.reader import SpreadsheetRowSource, is_supported_extension
from invoice_importer.logging.error_log import ErrorLogBuffer
from invoice_importer.logging.init import log_summary, set_debug, setup_logging
from invoice_importer.models.config_models import DatabaseConfig, ImportConfig
from invoice_importer.models.import_result import ImportResult
from invoice_importer.services.orchestrator import ImportCoordinator
from invoice_importer.services.summary import render_summary_line

"""CLI entrypoint.

    invoice-import <file> [--config FILE] [--dry-run] [--inspect-data] [--debug]

Expected sheet layout (one row per invoice item, optional header row):
    Invoice Number | Invoice Date | Customer Name | Customer Address |
    Product Name | Quantity | Unit Price | Line Total | Grand Total

Exit codes: 0 every invoice imported, 2 some invoices failed, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

_PG_ENV_VARS = ("PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE")


def _resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Connection string resolution order.

    1. DATABASE_URL / PGDSN (``.env`` already loaded with override)
    2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. the ``database`` section of the config file: its ``dsn`` when set,
       otherwise its fields fill in what the environment leaves out
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN")
    if dsn:
        return dsn
    if db_cfg.dsn and not any(os.getenv(name) for name in _PG_ENV_VARS):
        return db_cfg.dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "invoices")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    conn = psycopg2.connect(_resolve_dsn(cfg.database))
    try:
        # the gateway owns transaction boundaries
        conn.autocommit = False
        yield conn
    finally:
        conn.close()


@contextmanager
def _open_gateway(cfg: ImportConfig, logger: Any) -> Iterator[tuple[StorageGateway, str]]:
    """Yield (gateway, mode). ``DISABLE_DB_CONNECT=1`` selects the in-memory store."""
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
        yield InMemoryGateway(), "mock"
        return
    with _db_connection(cfg) as conn:
        if cfg.create_schema:
            ensure_schema(conn)
        yield PostgresGateway(conn), "live"


def _load_env_file(path: Path, override: bool = True) -> None:
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="invoice-import",
        description="Import invoice line items from a spreadsheet (.xlsx, .xls, .csv)",
    )
    p.add_argument("path", type=Path, help="Spreadsheet to import")
    p.add_argument("--config", type=Path, default=None, help=f"Config file (default {DEFAULT_CONFIG_PATH})")
    p.add_argument("--dry-run", action="store_true", help="Validate without writing to the database")
    p.add_argument("--inspect-data", action="store_true", help="Print the first rows then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _load_cli_config(path: Path | None) -> ImportConfig:
    if path is not None:
        return load_config(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return ImportConfig()


def _inspect_data(source: SpreadsheetRowSource) -> int:
    try:
        rows = source.inspect(limit=5)
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    print(f"FILE: {source.name}")
    for index, row in enumerate(rows):
        cells = [c.isoformat() if hasattr(c, "isoformat") else c for c in row]
        print(f"  row {index}: {cells}")
    return EXIT_SUCCESS_ALL


def _dry_run(coordinator: ImportCoordinator, source: SpreadsheetRowSource, logger: Any) -> int:
    try:
        results = coordinator.dry_run(source)
    except ProcessingError as e:
        logger.error(f"validation: {e}")
        return EXIT_FATAL
    ok = [r for r in results if r.ok]
    for r in results:
        if not r.ok:
            logger.warning(f"Invoice {r.invoice_number}: {r.error}")
    logger.info(f"dry-run invoices={len(results)} valid={len(ok)} invalid={len(results) - len(ok)}")
    if not ok:
        logger.error("no invoice in the file passed validation")
        return EXIT_FATAL
    logger.info("File validation passed.")
    return EXIT_SUCCESS_ALL


def _display_results(result: ImportResult, logger: Any) -> None:
    logger.info(f"Total processed: {result.total_processed}")
    logger.info(f"Successful imports: {result.success_count}")
    logger.info(f"Failed imports: {result.error_count}")
    for error in result.errors:
        logger.warning(f"  - {error}")
    stats = result.statistics
    logger.info(f"Total rows: {stats.get('total_rows', 0)}")
    logger.info(f"Customers created: {stats.get('customers_created', 0)}")
    logger.info(f"Invoices created: {stats.get('invoices_created', 0)}")


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not fall back to sys.argv (pytest args)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = _load_cli_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    path: Path = args.path
    if not path.exists():
        logger.error(f"file not found: {path}")
        return EXIT_FATAL
    if not is_supported_extension(path):
        logger.error(f"unsupported file type: {path.name} (expected .xlsx, .xls or .csv)")
        return EXIT_FATAL

    source = SpreadsheetRowSource(path, sheet_name=cfg.settings.sheet_name)
    if args.inspect_data:
        return _inspect_data(source)

    logger.info(f"Importing invoices from: {path}")
    try:
        with _open_gateway(cfg, logger) as (gateway, mode):
            coordinator = ImportCoordinator(
                gateway,
                settings=cfg.settings,
                error_log=ErrorLogBuffer(Path(cfg.error_log_dir)),
            )
            if args.dry_run:
                return _dry_run(coordinator, source, logger)
            try:
                result = coordinator.import_from_source(source, source_name=source.name)
            except ProcessingError as e:
                logger.error(f"Import failed: {e}")
                return EXIT_FATAL
    except psycopg2.Error as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL

    logger.info(f"mode={mode} invoices={result.success_count}")
    _display_results(result, logger)
    summary_line = render_summary_line(coordinator.group_count, result, coordinator.elapsed_seconds)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line[len("SUMMARY "):])

    if result.is_success:
        logger.info("Import completed successfully!")
        return EXIT_SUCCESS_ALL
    logger.warning("Import completed with errors.")
    return EXIT_PARTIAL_FAILURE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
