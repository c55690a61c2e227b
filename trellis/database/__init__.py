"""DuckDB-backed document storage."""

from .store import DocumentStore, StoreFilter
from .manager import DatabaseManager

__all__ = ["DatabaseManager", "DocumentStore", "StoreFilter"]
