"""
Document store over a DuckDB table.

Records are pydantic models persisted as JSON documents. The columns used
for lookups (id, content_id, parent_id, parent_path, is_deleted) are
duplicated next to the document so filters run in SQL.
"""

from typing import TYPE_CHECKING, Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from ..errors import InvariantViolation
from ..models import BulkUpdateResult, Content

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from .manager import DatabaseManager

T = TypeVar("T", bound=Content)

_COLUMNS = "id, content_id, parent_id, parent_path, is_deleted, document"


class StoreFilter(BaseModel):
    """
    Equality and prefix conditions on the indexed record columns.

    Conditions left as None are not applied.
    """

    id: Optional[str] = None
    content_id: Optional[str] = None
    parent_id: Optional[str] = None
    parent_path_prefix: Optional[str] = None
    is_deleted: Optional[bool] = None

    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())

    def to_sql(self) -> Tuple[str, List[Any]]:
        """Build a WHERE clause and its parameters."""
        clauses: List[str] = []
        params: List[Any] = []

        for column in ("id", "content_id", "parent_id", "is_deleted"):
            value = getattr(self, column)
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)

        # anchored: starts_with, never LIKE '%...%'
        if self.parent_path_prefix is not None:
            clauses.append("starts_with(parent_path, ?)")
            params.append(self.parent_path_prefix)

        return (" AND ".join(clauses) or "TRUE"), params


class DocumentStore(Generic[T]):
    """
    Generic record store: lookups, insert-or-update, delete and bulk update.
    """

    def __init__(self, manager: "DatabaseManager", collection: str, model: Type[T]):
        self.manager = manager
        self.collection = collection
        self.model = model

    async def find_by_id(self, record_id: Optional[str]) -> Optional[T]:
        """
        Retrieve a record by id.

        Args:
            record_id: The record id; an empty id never matches

        Returns:
            The record if found, None otherwise
        """
        if not record_id:
            return None
        return await self.find_one(StoreFilter(id=record_id))

    async def find_one(self, store_filter: StoreFilter) -> Optional[T]:
        """Return the first record matching the filter, or None."""
        where, params = store_filter.to_sql()

        def _find(cursor):
            return cursor.execute(
                f"SELECT document FROM {self.collection} WHERE {where} LIMIT 1", params
            ).fetchone()

        row = await self.manager.run(_find)
        return self.model.model_validate_json(row[0]) if row else None

    async def find_many(self, store_filter: StoreFilter) -> List[T]:
        """Return all records matching the filter, ordered by id."""
        where, params = store_filter.to_sql()

        def _find(cursor):
            return cursor.execute(
                f"SELECT document FROM {self.collection} WHERE {where} ORDER BY id", params
            ).fetchall()

        rows = await self.manager.run(_find)
        return [self.model.model_validate_json(row[0]) for row in rows]

    async def save(self, record: T) -> T:
        """
        Insert a record, or replace the stored record with the same id.

        Args:
            record: The record to persist; it must already have an id

        Returns:
            The persisted record
        """
        if not record.id:
            raise InvariantViolation(f"Cannot save a record without id into {self.collection}")
        values = self._row_values(record)

        def _save(cursor):
            cursor.execute(
                f"INSERT OR REPLACE INTO {self.collection} ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                values,
            )

        await self.manager.run(_save)
        return record

    async def delete_by_id(self, record_id: Optional[str]) -> Optional[T]:
        """
        Physically remove a record.

        Returns:
            The deleted record, or None if there was nothing to delete
        """
        if not record_id:
            return None

        def _delete(cursor):
            row = cursor.execute(
                f"SELECT document FROM {self.collection} WHERE id = ?", [record_id]
            ).fetchone()
            if row:
                cursor.execute(f"DELETE FROM {self.collection} WHERE id = ?", [record_id])
            return row

        row = await self.manager.run(_delete)
        return self.model.model_validate_json(row[0]) if row else None

    async def bulk_update(self, store_filter: StoreFilter, patch: Dict[str, Any]) -> BulkUpdateResult:
        """
        Apply the same field changes to every matching record in one transaction.

        Args:
            store_filter: Which records to update; must not be empty
            patch: Field names and their new values

        Returns:
            How many records matched
        """
        if store_filter.is_empty():
            raise InvariantViolation("Refusing a bulk update without conditions")
        unknown = set(patch) - set(self.model.model_fields)
        if unknown:
            raise InvariantViolation(f"Unknown fields in patch for {self.collection}: {sorted(unknown)}")

        where, params = store_filter.to_sql()

        def _bulk_update(cursor):
            cursor.begin()
            try:
                rows = cursor.execute(
                    f"SELECT document FROM {self.collection} WHERE {where}", params
                ).fetchall()
                for (document,) in rows:
                    record = self.model.model_validate_json(document).model_copy(update=patch)
                    cursor.execute(
                        f"INSERT OR REPLACE INTO {self.collection} ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                        self._row_values(record),
                    )
                cursor.commit()
            except Exception:
                cursor.rollback()
                raise
            return len(rows)

        matched = await self.manager.run(_bulk_update)
        return BulkUpdateResult(matched_count=matched)

    def _row_values(self, record: T) -> List[Any]:
        return [
            record.id,
            getattr(record, "content_id", None),
            record.parent_id,
            record.parent_path,
            record.is_deleted,
            record.model_dump_json(),
        ]
