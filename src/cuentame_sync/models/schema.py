"""
SQLite schema for the key-value document store.

The store holds a handful of whole JSON documents (the episodes index
being the main one) keyed by name. Provides functions to create the
table and inspect the database.
"""

import sqlite3
from pathlib import Path


SCHEMA_SQL = """
-- ============================================================
-- KV_DOCUMENTS: Opaque text documents keyed by name
-- ============================================================
CREATE TABLE IF NOT EXISTS kv_documents (
    key             TEXT    PRIMARY KEY,
    value           TEXT    NOT NULL,  -- UTF-8 text, usually JSON
    updated_at      TEXT    DEFAULT (datetime('now'))
);
"""


def create_all_tables(db_path: Path) -> None:
    """
    Create database and the key-value table.

    This function is idempotent - safe to call multiple times.

    Args:
        db_path: Path to the SQLite database file to create/initialize

    Example:
        >>> create_all_tables(Path("data/db/cuentame.db"))
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA encoding = 'UTF-8'")

    try:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    finally:
        conn.close()


def get_table_names(db_path: Path) -> list[str]:
    """
    Get list of all tables in the database.

    Args:
        db_path: Path to the SQLite database file

    Returns:
        List of table names
    """
    conn = sqlite3.connect(str(db_path))
    try:
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
        return [row[0] for row in cursor.fetchall()]
    finally:
        conn.close()
