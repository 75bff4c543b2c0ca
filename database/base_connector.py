# database/base_connector.py
"""
Defines the abstract base class for all database connectors.

The mapping layer only talks to a `DatabaseConnector`, never to `sqlite3`
directly. Besides the statement methods, the interface exposes explicit
transaction control: each DBC table is written inside one transaction that is
either committed as a whole or rolled back as a whole.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import List, Tuple, Any, Dict, Iterable, Iterator

import structlog

log = structlog.get_logger(__name__)


class DatabaseConnector(ABC):
    """
    Abstract Base Class that defines the interface for database connectors.

    Any class that inherits from DatabaseConnector MUST implement all methods
    decorated with `@abstractmethod`.
    """

    @abstractmethod
    def connect(self):
        """Opens the connection. Must be called before any other method."""
        pass

    @abstractmethod
    def close(self):
        """Closes the connection and releases any resources."""
        pass

    @abstractmethod
    def execute(self, sql: str, params: Tuple[Any, ...] = ()):
        """
        Executes a single SQL statement.

        Args:
            - sql (str): The SQL statement to execute.
            - params (Tuple[Any, ...]): Values bound to the statement's placeholders.
        """
        pass

    @abstractmethod
    def executemany(self, sql: str, data_list: Iterable[Tuple[Any, ...]]):
        """
        Executes a SQL statement against all parameter sequences in an iterable.

        Used for the bulk row inserts of a table, which is much faster than
        calling `execute` in a loop.
        """
        pass

    @abstractmethod
    def fetchall(self) -> List[Dict[str, Any]]:
        """Fetches all rows of the last executed query as dictionaries."""
        pass

    @abstractmethod
    def begin(self):
        """Starts a new transaction."""
        pass

    @abstractmethod
    def commit(self):
        """Commits the current transaction, making its changes permanent."""
        pass

    @abstractmethod
    def rollback(self):
        """Rolls back the current transaction, discarding its changes."""
        pass

    @contextmanager
    def transaction(self) -> Iterator["DatabaseConnector"]:
        """
        Runs the enclosed block in one transaction.

        Commits when the block finishes and rolls back when either the block
        or the commit raises. The exception is re-raised unchanged after the
        rollback.

        Usage:
            with db.transaction():
                db.execute(...)
                db.executemany(...)
        """
        self.begin()
        try:
            yield self
            self.commit()
        except BaseException:
            log.debug("Rolling back transaction.")
            self.rollback()
            raise
