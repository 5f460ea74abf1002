"""Tests for database migrations."""

from promptrules.db import get_connection
from promptrules.db.migrations import (
    MIGRATIONS_DIR,
    ensure_migrations_table,
    get_applied_migrations,
    run_migrations,
)


def test_ensure_migrations_table():
    """Test that schema_migrations table is created."""
    conn = get_connection(":memory:")
    ensure_migrations_table(conn)

    result = conn.execute("SELECT COUNT(*) FROM schema_migrations").fetchone()
    assert result == (0,)
    assert get_applied_migrations(conn) == set()


def test_run_bundled_migrations():
    conn = get_connection(":memory:")

    applied = run_migrations(conn)

    assert applied == ["001_prompting_rules"]
    assert get_applied_migrations(conn) == {"001_prompting_rules"}
    assert conn.execute("SELECT COUNT(*) FROM prompting_rules").fetchone() == (0,)


def test_run_migrations_is_idempotent():
    conn = get_connection(":memory:")

    run_migrations(conn)
    assert run_migrations(conn) == []


def test_run_migrations_in_order(tmp_path):
    """Test that pending migrations apply in file-name order."""
    (tmp_path / "002_second.sql").write_text("CREATE TABLE second (id INTEGER);")
    (tmp_path / "001_first.sql").write_text("CREATE TABLE first (id INTEGER);")
    conn = get_connection(":memory:")

    assert run_migrations(conn, tmp_path) == ["001_first", "002_second"]

    (tmp_path / "003_third.sql").write_text("CREATE TABLE third (id INTEGER);")
    assert run_migrations(conn, tmp_path) == ["003_third"]


def test_migrations_dir_ships_sql_files():
    assert sorted(p.name for p in MIGRATIONS_DIR.glob("*.sql")) == ["001_prompting_rules.sql"]


def test_file_database_persists(tmp_path):
    db_path = str(tmp_path / "nested" / "rules.db")
    conn = get_connection(db_path)
    run_migrations(conn)
    conn.close()

    conn = get_connection(db_path)
    assert get_applied_migrations(conn) == {"001_prompting_rules"}
    conn.close()
