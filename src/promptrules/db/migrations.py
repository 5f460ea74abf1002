"""Schema migrations for the prompting rules database."""

import logging
from pathlib import Path

import duckdb

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def ensure_migrations_table(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the migrations tracking table if it doesn't exist."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            applied_at TIMESTAMP NOT NULL DEFAULT current_timestamp
        )
    """)


def get_applied_migrations(conn: duckdb.DuckDBPyConnection) -> set[str]:
    """Return the versions of migrations already applied."""
    return {row[0] for row in conn.execute("SELECT version FROM schema_migrations").fetchall()}


def run_migrations(
    conn: duckdb.DuckDBPyConnection | str, migrations_dir: Path | None = None
) -> list[str]:
    """Run all pending database migrations.

    Args:
        conn: DuckDB connection or database path string.
        migrations_dir: Directory of numbered .sql files. Defaults to the
            migrations bundled with the package.

    Returns:
        Versions applied by this call, in order.
    """
    # If a string path is provided, open connection
    if isinstance(conn, str):
        conn = duckdb.connect(conn)

    migrations_dir = migrations_dir or MIGRATIONS_DIR
    if not migrations_dir.exists():
        raise FileNotFoundError(f"Migrations directory not found: {migrations_dir}")

    ensure_migrations_table(conn)
    applied = get_applied_migrations(conn)

    newly_applied = []
    for migration_file in sorted(migrations_dir.glob("*.sql")):
        version = migration_file.stem  # e.g., "001_prompting_rules"
        if version in applied:
            continue

        conn.execute(migration_file.read_text(encoding="utf-8"))
        conn.execute("INSERT INTO schema_migrations (version) VALUES (?)", [version])
        logger.info("Applied migration: %s", version)
        newly_applied.append(version)

    return newly_applied
