"""Database layer for promptrules.

This module provides DuckDB connection management and persistence
functions for prompting rules.
"""

from promptrules.db.connection import get_connection, get_db_path, init_db

__all__ = ["get_connection", "get_db_path", "init_db"]
