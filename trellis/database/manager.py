"""
Database manager for Trellis.

This module owns the DuckDB connection and the document tables that back
each content collection.
"""

import asyncio
import logging
import re
import threading
from typing import Callable, Iterable, Type, TypeVar

import duckdb

from ..errors import InvariantViolation, StoreFailure
from ..models import Content
from .store import DocumentStore

R = TypeVar("R")
M = TypeVar("M", bound=Content)

_COLLECTION_NAME = re.compile(r"^[a-z][a-z0-9_]*$")


class DatabaseManager:
    """
    Manages the DuckDB database holding content, version and published tables.

    Store operations are executed in worker threads, one at a time, each on
    its own cursor of the shared connection.
    """

    def __init__(self, db_path: str = ":memory:"):
        """
        Initialize the database manager.

        Args:
            db_path: Path to the DuckDB database file, or ":memory:"
        """
        self.db_path = db_path
        self.connection = None
        self._lock = threading.Lock()

    def connect(self):
        """Establish connection to the database."""
        self.connection = duckdb.connect(self.db_path)

    def disconnect(self):
        """Close the database connection."""
        if self.connection:
            self.connection.close()
            self.connection = None

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()

    def initialize_database(self, collections: Iterable[str]):
        """
        Create the document tables for the given collections if they don't exist.

        Args:
            collections: Table names, one per document collection
        """
        if not self.connection:
            raise RuntimeError("Database connection not established")

        for name in collections:
            _check_collection_name(name)
            self.connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {name} (
                    id VARCHAR PRIMARY KEY,
                    content_id VARCHAR,
                    parent_id VARCHAR,
                    parent_path VARCHAR,
                    is_deleted BOOLEAN NOT NULL DEFAULT FALSE,
                    document VARCHAR NOT NULL
                )
            """)
            logging.debug(f"Collection table ready: {name}")

    def collection(self, name: str, model: Type[M]) -> DocumentStore[M]:
        """
        Get a document store over one collection table.

        Args:
            name: Collection (table) name
            model: Record model stored in the collection

        Returns:
            A DocumentStore bound to this database
        """
        _check_collection_name(name)
        return DocumentStore(self, name, model)

    async def run(self, operation: Callable[[duckdb.DuckDBPyConnection], R]) -> R:
        """
        Run a store operation without blocking the event loop.

        Args:
            operation: Callable receiving a DuckDB cursor

        Returns:
            Whatever the operation returns

        Raises:
            StoreFailure: If DuckDB rejects the operation
        """
        if not self.connection:
            raise RuntimeError("Database connection not established")
        return await asyncio.to_thread(self._run_locked, operation)

    def _run_locked(self, operation: Callable[[duckdb.DuckDBPyConnection], R]) -> R:
        with self._lock:
            cursor = self.connection.cursor()
            try:
                return operation(cursor)
            except duckdb.Error as e:
                logging.error(f"Store operation failed: {e}")
                raise StoreFailure(str(e)) from e
            finally:
                cursor.close()


def _check_collection_name(name: str) -> None:
    if not _COLLECTION_NAME.match(name):
        raise InvariantViolation(f"Invalid collection name: '{name}'")
