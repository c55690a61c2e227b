"""
Tests for the DuckDB-backed document store.
"""

import os
import tempfile
import unittest
from pathlib import Path

from trellis.database import DatabaseManager, StoreFilter
from trellis.errors import InvariantViolation, StoreFailure
from trellis.models import Content, ContentVersion


class TestStoreFilter(unittest.TestCase):
    """Test SQL generation for store filters."""

    def test_empty_filter(self):
        """Test that an empty filter matches everything."""
        store_filter = StoreFilter()

        self.assertTrue(store_filter.is_empty())
        self.assertEqual(store_filter.to_sql(), ("TRUE", []))

    def test_combined_conditions(self):
        """Test equality and prefix conditions together."""
        where, params = StoreFilter(parent_path_prefix=",1,", is_deleted=False).to_sql()

        self.assertEqual(where, "is_deleted = ? AND starts_with(parent_path, ?)")
        self.assertEqual(params, [False, ",1,"])


class TestDocumentStore(unittest.IsolatedAsyncioTestCase):
    """Test document store operations on an in-memory database."""

    async def asyncSetUp(self):
        self.database = DatabaseManager()
        self.database.connect()
        self.database.initialize_database(["page", "page_version"])
        self.store = self.database.collection("page", Content)
        self.versions = self.database.collection("page_version", ContentVersion)

    async def asyncTearDown(self):
        self.database.disconnect()

    async def test_save_and_find_by_id(self):
        """Test insert and lookup by id."""
        await self.store.save(Content(id="a", name="Home", properties={"title": "Welcome"}))

        found = await self.store.find_by_id("a")
        self.assertIsNotNone(found)
        self.assertEqual(found.name, "Home")
        self.assertEqual(found.properties, {"title": "Welcome"})

    async def test_save_replaces_existing_record(self):
        """Test insert-or-update by identity."""
        await self.store.save(Content(id="a", name="Draft"))
        await self.store.save(Content(id="a", name="Final"))

        found = await self.store.find_by_id("a")
        self.assertEqual(found.name, "Final")
        self.assertEqual(len(await self.store.find_many(StoreFilter())), 1)

    async def test_empty_id_matches_nothing(self):
        """Test that an unset id never returns an unrelated record."""
        await self.store.save(Content(id="a"))

        self.assertIsNone(await self.store.find_by_id(""))
        self.assertIsNone(await self.store.find_by_id(None))
        self.assertIsNone(await self.store.find_by_id("missing"))

    async def test_save_requires_id(self):
        """Test that records must be identified before saving."""
        with self.assertRaises(InvariantViolation):
            await self.store.save(Content(name="anonymous"))

    async def test_find_one_and_many_by_filter(self):
        """Test filtering on indexed columns."""
        await self.store.save(Content(id="a"))
        await self.store.save(Content(id="b", parent_id="a", parent_path=",a,"))
        await self.store.save(Content(id="c", parent_id="a", parent_path=",a,", is_deleted=True))

        live = await self.store.find_many(StoreFilter(parent_id="a", is_deleted=False))
        self.assertEqual([c.id for c in live], ["b"])

        deleted = await self.store.find_one(StoreFilter(is_deleted=True))
        self.assertEqual(deleted.id, "c")

    async def test_find_versions_by_content_id(self):
        """Test the content_id column of version records."""
        await self.versions.save(ContentVersion(id="v1", content_id="a"))
        await self.versions.save(ContentVersion(id="v2", content_id="a"))
        await self.versions.save(ContentVersion(id="v3", content_id="b"))

        versions = await self.versions.find_many(StoreFilter(content_id="a"))
        self.assertEqual([v.id for v in versions], ["v1", "v2"])

    async def test_delete_by_id(self):
        """Test physical deletion returns the removed record."""
        await self.store.save(Content(id="a", name="Home"))

        deleted = await self.store.delete_by_id("a")
        self.assertEqual(deleted.name, "Home")
        self.assertIsNone(await self.store.find_by_id("a"))
        self.assertIsNone(await self.store.delete_by_id("a"))

    async def test_bulk_update_by_anchored_prefix(self):
        """Test that bulk updates only touch paths starting with the prefix."""
        await self.store.save(Content(id="b", parent_id="1", parent_path=",1,"))
        await self.store.save(Content(id="c", parent_id="b", parent_path=",1,b,"))
        await self.store.save(Content(id="d", parent_id="11", parent_path=",11,"))
        await self.store.save(Content(id="e", parent_id="1", parent_path=",21,1,"))

        result = await self.store.bulk_update(StoreFilter(parent_path_prefix=",1,"), {"is_deleted": True})

        self.assertEqual(result.matched_count, 2)
        self.assertTrue((await self.store.find_by_id("b")).is_deleted)
        self.assertTrue((await self.store.find_by_id("c")).is_deleted)
        self.assertFalse((await self.store.find_by_id("d")).is_deleted)
        self.assertFalse((await self.store.find_by_id("e")).is_deleted)
        # Indexed column kept in sync with the document
        self.assertEqual(len(await self.store.find_many(StoreFilter(is_deleted=True))), 2)

    async def test_bulk_update_rejects_empty_filter(self):
        """Test that a bulk update cannot silently hit every record."""
        with self.assertRaises(InvariantViolation):
            await self.store.bulk_update(StoreFilter(), {"is_deleted": True})

    async def test_bulk_update_rejects_unknown_fields(self):
        """Test that patches are checked against the record model."""
        with self.assertRaises(InvariantViolation):
            await self.store.bulk_update(StoreFilter(id="a"), {"colour": "red"})

    async def test_store_failure_wraps_database_errors(self):
        """Test that DuckDB errors surface as StoreFailure."""
        missing = self.database.collection("media", Content)

        with self.assertRaises(StoreFailure):
            await missing.find_by_id("a")

    async def test_invalid_collection_name(self):
        """Test that collection names are validated before use in SQL."""
        with self.assertRaises(InvariantViolation):
            self.database.collection("page; DROP TABLE page", Content)


class TestDatabaseManager(unittest.IsolatedAsyncioTestCase):
    """Test database management functionality."""

    def setUp(self):
        """Set up test database."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = Path(self.temp_dir) / "test.db"

    def tearDown(self):
        """Clean up test database."""
        for path in Path(self.temp_dir).iterdir():
            path.unlink()
        os.rmdir(self.temp_dir)

    async def test_records_persist_across_connections(self):
        """Test that a file database keeps records after reconnecting."""
        with DatabaseManager(str(self.db_path)) as db:
            db.initialize_database(["page"])
            await db.collection("page", Content).save(Content(id="a", name="Home"))

        self.assertTrue(self.db_path.exists())

        with DatabaseManager(str(self.db_path)) as db:
            db.initialize_database(["page"])
            found = await db.collection("page", Content).find_by_id("a")

        self.assertEqual(found.name, "Home")

    async def test_operations_require_connection(self):
        """Test that running without a connection is a programming error."""
        db = DatabaseManager()

        with self.assertRaises(RuntimeError):
            db.initialize_database(["page"])
        with self.assertRaises(RuntimeError):
            await db.collection("page", Content).find_by_id("a")


if __name__ == '__main__':
    unittest.main(verbosity=2)
