"""DuckDB connections for the rule store."""

import logging
import os
from pathlib import Path

import duckdb

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"
DEFAULT_DB_PATH = "data/promptrules.db"


def get_db_path() -> str:
    """Database path from PROMPTRULES_DB_PATH, or data/promptrules.db."""
    return os.getenv("PROMPTRULES_DB_PATH", DEFAULT_DB_PATH)


def get_connection(
    db_path: str | None = None, read_only: bool = False
) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB connection.

    File databases get their parent directory created first; ``:memory:``
    gives a private in-memory database.

    Args:
        db_path: Database file, ``:memory:``, or None for get_db_path().
        read_only: Open the file read-only.
    """
    path = db_path or get_db_path()
    if path != IN_MEMORY:
        path = str(Path(path).expanduser())
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    logger.debug("Opening DuckDB database %s (read_only=%s)", path, read_only)
    return duckdb.connect(path, read_only=read_only)


def init_db(db_path: str | None = None) -> duckdb.DuckDBPyConnection:
    """Open a connection and bring its schema up to date."""
    from promptrules.db.migrations import run_migrations

    conn = get_connection(db_path)
    applied = run_migrations(conn)
    if applied:
        logger.info("Database %s migrated: %s", db_path or get_db_path(), ", ".join(applied))
    return conn
