# database/sqlite_connector.py
"""
SQLite database connector implementation.

This module provides a concrete implementation of the `DatabaseConnector`
for a local SQLite database file. It wraps the standard `sqlite3` library and
translates its errors into `StoreError`.
"""

import sqlite3
from typing import List, Tuple, Any, Iterable, Dict

import structlog

from database.base_connector import DatabaseConnector
from config import DB_FILE
from dbc.errors import StoreError

log = structlog.get_logger(__name__)


class SQLiteConnector(DatabaseConnector):
    """
    Manages connection and operations for a local SQLite database.

    The connection runs with `isolation_level=None`, so `sqlite3` never opens
    transactions implicitly; they are started and ended only through
    `begin`, `commit` and `rollback`.
    """

    def __init__(self, db_path: str = DB_FILE):
        """
        Initializes the SQLite connector.

        Args:
            - db_path (str): The file path for the SQLite database, or
                             ":memory:". Defaults to the value in `config.py`.
        """
        self.db_path = db_path
        self.conn: sqlite3.Connection | None = None
        self.cursor: sqlite3.Cursor | None = None

    def __enter__(self) -> "SQLiteConnector":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def connect(self):
        """
        Opens the SQLite file and creates a cursor.

        Rows are returned as `sqlite3.Row`, so `fetchall` can hand out
        dictionaries keyed by column name.
        """
        try:
            self.conn = sqlite3.connect(self.db_path, isolation_level=None)
            self.conn.row_factory = sqlite3.Row
            self.cursor = self.conn.cursor()
            log.info("SQLite connection successful.", path=self.db_path)
        except sqlite3.Error as e:
            log.exception("Failed to connect to SQLite database.", error=str(e))
            raise StoreError(f"Cannot open {self.db_path}: {e}") from e

    def close(self):
        """Closes the database connection if it is open."""
        if self.conn:
            self.conn.close()
            self.conn = None
            self.cursor = None
            log.info("SQLite connection closed.")

    def _require_cursor(self) -> sqlite3.Cursor:
        if not self.cursor:
            raise ConnectionError("Database not connected. Call connect() first.")
        return self.cursor

    def execute(self, sql: str, params: Tuple[Any, ...] = ()):
        """Executes a single SQL statement using the internal cursor."""
        cursor = self._require_cursor()
        try:
            cursor.execute(sql, params)
        except sqlite3.Error as e:
            log.error("SQLite execution error.", sql=sql, error=str(e))
            raise StoreError(str(e)) from e

    def executemany(self, sql: str, data_list: Iterable[Tuple[Any, ...]]):
        """Executes a SQL statement for each item in data_list using the cursor."""
        cursor = self._require_cursor()
        try:
            cursor.executemany(sql, data_list)
        except sqlite3.Error as e:
            log.error("SQLite executemany error.", sql=sql, error=str(e))
            raise StoreError(str(e)) from e

    def fetchall(self) -> List[Dict[str, Any]]:
        """Fetches all rows from the last query as a list of dictionaries."""
        cursor = self._require_cursor()
        return [dict(row) for row in cursor.fetchall()]

    def begin(self):
        self.execute("BEGIN")

    def commit(self):
        """Commits the current transaction, if one is open."""
        if self.conn and self.conn.in_transaction:
            try:
                self.conn.commit()
            except sqlite3.Error as e:
                log.error("SQLite commit error.", error=str(e))
                raise StoreError(str(e)) from e

    def rollback(self):
        """Rolls back the current transaction, if one is open."""
        if self.conn and self.conn.in_transaction:
            self.conn.rollback()
