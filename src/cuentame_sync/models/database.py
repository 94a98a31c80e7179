"""
Key-value document store.

The episodes index is persisted as one opaque text document under a
single key. ``KeyValueStore`` is the narrow interface the sync passes
depend on; ``SqliteKeyValueStore`` backs it with a local SQLite file and
``MemoryKeyValueStore`` keeps everything in a dict (tests, dry runs).
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Optional

from ..errors import IndexWriteError, StoreError
from .schema import create_all_tables

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """
    Abstract document store with ``get``/``put`` semantics.

    Subclasses must implement:
        - ``get()`` -- return the stored text or None when absent
        - ``put()`` -- store text, raising ``IndexWriteError`` on failure
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read a document.

        Args:
            key: Document key

        Returns:
            Stored text, or None if the key is absent
        """

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """
        Write a document, replacing any previous value.

        Args:
            key: Document key
            value: Text to store

        Raises:
            IndexWriteError: If the write fails
        """


class SqliteKeyValueStore(KeyValueStore):
    """
    Key-value store backed by a SQLite database file.

    Example:
        >>> store = SqliteKeyValueStore(Path("data/db/cuentame.db"))
        >>> store.initialize()
        >>> store.put("episodes_index", '{"episodes": []}')
        >>> store.get("episodes_index")
        '{"episodes": []}'
    """

    def __init__(self, db_path: Path):
        """
        Initialize store manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def initialize(self) -> None:
        """
        Initialize database schema.

        Safe to call multiple times (idempotent).
        """
        create_all_tables(self.db_path)

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections.

        Commits on success, rolls back on error and always closes.

        Yields:
            sqlite3.Connection: Database connection with row factory set
        """
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA encoding = 'UTF-8'")
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            raise e
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        try:
            with self.get_connection() as conn:
                cursor = conn.execute(
                    "SELECT value FROM kv_documents WHERE key = ?", (key,)
                )
                row = cursor.fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read '{key}' from {self.db_path}: {e}") from e

        return row["value"] if row else None

    def put(self, key: str, value: str) -> None:
        try:
            with self.get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO kv_documents (key, value, updated_at)
                    VALUES (?, ?, datetime('now'))
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, value),
                )
        except sqlite3.Error as e:
            raise IndexWriteError(f"Failed to write '{key}' to {self.db_path}: {e}") from e

        logger.debug("Stored %d characters under '%s'", len(value), key)


class MemoryKeyValueStore(KeyValueStore):
    """In-process store keeping documents in a dictionary."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.documents: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.documents.get(key)

    def put(self, key: str, value: str) -> None:
        self.documents[key] = value
