"""
Unit tests for the DuckDB, in-memory and remote REST stores.
"""

import json
import os
import shutil
import tempfile
import unittest

import httpx

from docforge.exceptions import StorageError
from docforge.storage import (
    DatabaseManager,
    DuckDBBlobStore,
    DuckDBDocumentStore,
    DuckDBSnapshotStore,
    MemoryBlobStore,
    RestDocumentStore,
)

from builders import document, media, paragraph, section


class TestDatabaseManager(unittest.TestCase):
    """Test database setup."""

    def setUp(self):
        """Set up a temporary database path."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_initialize_creates_tables(self):
        """Test every table exists after initialization."""
        with DatabaseManager(self.db_path) as db:
            self.assertEqual(db.table_counts(), {"documents": 0, "assets": 0, "snapshots": 0})

    def test_requires_connection(self):
        """Test queries fail before connecting."""
        db = DatabaseManager(self.db_path)
        with self.assertRaises(RuntimeError):
            db.initialize_database()


class TestDuckDBStores(unittest.IsolatedAsyncioTestCase):
    """Test the DuckDB-backed stores."""

    async def asyncSetUp(self):
        """Set up an in-memory database."""
        self.db = DatabaseManager(":memory:")
        self.db.__enter__()
        self.documents = DuckDBDocumentStore(self.db)
        self.blobs = DuckDBBlobStore(self.db)
        self.snapshots = DuckDBSnapshotStore(self.db)

    async def asyncTearDown(self):
        """Close the database."""
        self.db.__exit__(None, None, None)

    async def test_document_round_trip(self):
        """Test a nested document survives storage unchanged."""
        doc = document([
            section("A", blocks=[paragraph("p", "Hi <b>there</b>"), media("img", "asset-1")], children=[
                section("A.1", parent_id="A"),
            ]),
        ])
        await self.documents.save(doc)
        loaded = await self.documents.get(doc.id)
        self.assertEqual(loaded.to_record(), doc.to_record())
        self.assertIsNone(await self.documents.get("missing"))

    async def test_save_replaces(self):
        """Test saving an existing id overwrites it."""
        doc = document([section("A")])
        await self.documents.save(doc)
        await self.documents.save(doc.model_copy(update={"title": "Renamed"}))
        self.assertEqual((await self.documents.get(doc.id)).title, "Renamed")
        self.assertEqual(len(await self.documents.list_all()), 1)

    async def test_list_by_owner(self):
        """Test owner listings are newest first and exclude other owners."""
        older = document([section("A")], document_id="old").model_copy(update={"last_modified": "2024-01-01T00:00:00.000Z"})
        newer = document([section("A")], document_id="new").model_copy(update={"last_modified": "2024-02-01T00:00:00.000Z"})
        foreign = document([section("A")], document_id="bob", owner_id="bob")
        for doc in (older, newer, foreign):
            await self.documents.save(doc)
        self.assertEqual([d.id for d in await self.documents.list_by_owner("alice")], ["new", "old"])

        await self.documents.delete("new")
        self.assertEqual([d.id for d in await self.documents.list_by_owner("alice")], ["old"])

    async def test_blob_round_trip(self):
        """Test asset bytes and metadata are stored."""
        payload = bytes(range(256))
        record = await self.blobs.save(payload, "bytes.bin", "application/octet-stream")
        self.assertEqual(record.size, 256)

        stored = await self.blobs.get(record.id)
        self.assertEqual(stored.data, payload)
        self.assertEqual(stored.name, "bytes.bin")
        self.assertEqual((await self.blobs.get_record(record.id)).created_at, record.created_at)

        await self.blobs.delete(record.id)
        self.assertIsNone(await self.blobs.get(record.id))

    async def test_blob_keeps_given_id_and_timestamps(self):
        """Test restores keep the original id and timestamps."""
        record = await self.blobs.save(b"x", "x.png", "image/png", asset_id="fixed",
                                       created_at=1000, updated_at=2000)
        self.assertEqual(record.id, "fixed")
        stored = await self.blobs.get_record("fixed")
        self.assertEqual((stored.created_at, stored.updated_at), (1000, 2000))

    async def test_display_refs(self):
        """Test display references are issued and released once."""
        record = await self.blobs.save(b"x", "x.png", "image/png")
        ref = await self.blobs.resolve_display_ref(record.id)
        self.assertTrue(ref.url.startswith("blob:docforge/"))
        self.assertEqual(self.blobs.live_ref_count, 1)
        self.assertTrue(self.blobs.release_display_ref(ref.url))
        self.assertFalse(self.blobs.release_display_ref(ref.url))
        self.assertIsNone(await self.blobs.resolve_display_ref("missing"))

    async def test_snapshot_keys(self):
        """Test snapshot keys are listed by prefix in order."""
        await self.snapshots.put("auto_backup_0000000000002", "{}")
        await self.snapshots.put("auto_backup_0000000000001", "{}")
        await self.snapshots.put("manual_1", "{}")
        self.assertEqual(
            await self.snapshots.list_keys("auto_backup_"),
            ["auto_backup_0000000000001", "auto_backup_0000000000002"]
        )
        await self.snapshots.delete("auto_backup_0000000000001")
        self.assertIsNone(await self.snapshots.get("auto_backup_0000000000001"))
        self.assertEqual(await self.snapshots.get("manual_1"), "{}")

    async def test_unreadable_document_raises(self):
        """Test corrupt stored content surfaces as StorageError."""
        self.db.connection.execute(
            "INSERT INTO documents VALUES ('bad', 'alice', 'Bad', '', 'not json', '', '')"
        )
        with self.assertRaises(StorageError):
            await self.documents.get("bad")


class TestMemoryBlobStore(unittest.IsolatedAsyncioTestCase):
    """Test the in-memory blob store."""

    async def test_save_and_delete(self):
        """Test the store keeps independent copies."""
        blobs = MemoryBlobStore()
        record = await blobs.save(b"abc", "a.txt", "")
        self.assertEqual(record.type, "application/octet-stream")
        self.assertEqual(blobs.asset_ids(), [record.id])
        await blobs.delete(record.id)
        await blobs.delete(record.id)
        self.assertEqual(len(blobs), 0)


class TestRestDocumentStore(unittest.IsolatedAsyncioTestCase):
    """Test the remote store against a mocked REST service."""

    async def asyncSetUp(self):
        """Set up a fake documents table behind a mock transport."""
        self.rows = {}
        self.requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            params = request.url.params
            if request.method == "POST":
                row = json.loads(request.content)
                self.rows[row["id"]] = row
                return httpx.Response(201)
            if request.method == "DELETE":
                self.rows.pop(params["id"][len("eq."):], None)
                return httpx.Response(204)
            rows = list(self.rows.values())
            if "id" in params:
                rows = [r for r in rows if r["id"] == params["id"][len("eq."):]]
            if "user_id" in params:
                rows = [r for r in rows if r["user_id"] == params["user_id"][len("eq."):]]
            return httpx.Response(200, json=rows)

        self.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        self.store = RestDocumentStore("https://db.example.com/", "secret", client=self.client)

    async def asyncTearDown(self):
        """Close the client."""
        await self.client.aclose()

    async def test_save_and_get(self):
        """Test documents round-trip through snake_case rows."""
        doc = document([section("A", blocks=[paragraph("p", "Hello")])])
        await self.store.save(doc)

        post = self.requests[0]
        self.assertEqual(post.url.path, "/rest/v1/documents")
        self.assertEqual(post.url.params["on_conflict"], "id")
        self.assertIn("merge-duplicates", post.headers["Prefer"])
        self.assertEqual(post.headers["Authorization"], "Bearer secret")
        self.assertEqual(self.rows[doc.id]["user_id"], "alice")

        loaded = await self.store.get(doc.id)
        self.assertEqual(loaded.to_record(), doc.to_record())
        self.assertIsNone(await self.store.get("missing"))

    async def test_list_and_delete(self):
        """Test owner filtering and deletion."""
        await self.store.save(document([section("A")], document_id="a"))
        await self.store.save(document([section("A")], document_id="b", owner_id="bob"))
        self.assertEqual([d.id for d in await self.store.list_by_owner("bob")], ["b"])
        self.assertEqual(len(await self.store.list_all()), 2)

        await self.store.delete("a")
        self.assertIsNone(await self.store.get("a"))

    async def test_http_errors_wrapped(self):
        """Test transport and status failures raise StorageError."""

        def failing(request):
            return httpx.Response(500, json={"message": "boom"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(failing)) as client:
            store = RestDocumentStore("https://db.example.com", "secret", client=client)
            with self.assertRaises(StorageError):
                await store.get("x")

        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(unreachable)) as client:
            store = RestDocumentStore("https://db.example.com", "secret", client=client)
            with self.assertRaises(StorageError):
                await store.save(document([section("A")]))


if __name__ == '__main__':
    unittest.main(verbosity=2)
