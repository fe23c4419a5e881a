"""
Unit tests for backups, restores and automatic snapshots.
"""

import asyncio
import json
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from docforge.backup import BACKUP_VERSION, AutoSnapshotter, BackupEngine, iso_timestamp
from docforge.exceptions import InvalidFormatError
from docforge.hydration import encode_data_url
from docforge.models import Block, BlockType
from docforge.storage import MemoryBlobStore, MemoryDocumentStore, MemorySnapshotStore

from builders import document, media, paragraph, section


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x01" * 16


class FakeClock:
    """Clock that advances only when told to."""

    def __init__(self, start=datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class BrokenSnapshotStore(MemorySnapshotStore):
    """Snapshot store that rejects every write."""

    async def put(self, key, payload):
        raise ConnectionError("snapshot storage offline")


class TestBackupRestore(unittest.IsolatedAsyncioTestCase):
    """Test full backups and restores."""

    async def asyncSetUp(self):
        """Set up two owners' documents with assets."""
        self.documents = MemoryDocumentStore()
        self.blobs = MemoryBlobStore()
        self.clock = FakeClock()
        self.photo = await self.blobs.save(PNG_BYTES, "photo.png", "image/png")
        self.other = await self.blobs.save(b"other", "other.png", "image/png")

        await self.documents.save(document(
            [section("S", blocks=[paragraph("p", "hello"), media("img", self.photo.id)])],
            document_id="alice-doc", owner_id="alice"
        ))
        await self.documents.save(document(
            [section("S", blocks=[media("img", self.other.id)])],
            document_id="bob-doc", owner_id="bob"
        ))
        self.engine = BackupEngine(self.documents, self.blobs, clock=self.clock)

    async def test_backup_embeds_referenced_assets(self):
        """Test a backup carries the assets of the selected documents."""
        bundle = await self.engine.create_backup(owner_id="alice")
        self.assertEqual(bundle.version, BACKUP_VERSION)
        self.assertEqual(bundle.timestamp, "2024-06-01T08:00:00.000Z")
        self.assertEqual([d.id for d in bundle.documents], ["alice-doc"])
        self.assertEqual([a.id for a in bundle.assets], [self.photo.id])
        self.assertTrue(bundle.assets[0].data.startswith("data:image/png;base64,"))

    async def test_round_trip_into_empty_stores(self):
        """Test restoring a backup reproduces documents and asset bytes."""
        payload = self.engine.serialize(await self.engine.create_backup())

        documents = MemoryDocumentStore()
        blobs = MemoryBlobStore()
        target = BackupEngine(documents, blobs, clock=self.clock)
        result = await target.restore(target.parse_backup(payload), "alice")

        self.assertTrue(result.complete)
        self.assertEqual(result.restored, ["alice-doc"])
        self.assertEqual(result.skipped, 1)
        self.assertEqual(result.assets_restored, 1)

        restored = await documents.get("alice-doc")
        original = await self.documents.get("alice-doc")
        self.assertEqual(restored.to_record(), original.to_record())
        asset = await blobs.get(self.photo.id)
        self.assertEqual(asset.data, PNG_BYTES)
        self.assertEqual(asset.created_at, self.photo.created_at)
        # Other owners' assets are not restored
        self.assertIsNone(await blobs.get(self.other.id))

    async def test_inline_attachment_survives_round_trip(self):
        """Test an unmigrated inline attachment is carried through backup and restore."""
        inline = encode_data_url(b"legacy-bytes", "image/png")
        legacy = Block(id="legacy", type=BlockType.IMAGE, attachment_data=inline)
        await self.documents.save(document(
            [section("S", blocks=[legacy])], document_id="legacy-doc", owner_id="carol"
        ))
        bundle = await self.engine.create_backup(owner_id="carol")
        self.assertEqual(bundle.documents[0].sections[0].content[0].attachment_data, inline)

        documents = MemoryDocumentStore()
        target = BackupEngine(documents, MemoryBlobStore(), clock=self.clock)
        await target.restore(target.parse_backup(self.engine.serialize(bundle)), "carol")
        restored = await documents.get("legacy-doc")
        self.assertEqual(restored.sections[0].content[0].attachment_data, inline)

    async def test_missing_asset_not_backed_up(self):
        """Test a dangling reference does not fail the backup."""
        await self.blobs.delete(self.photo.id)
        bundle = await self.engine.create_backup(owner_id="alice")
        self.assertEqual(bundle.assets, [])
        self.assertEqual(len(bundle.documents), 1)

    async def test_parse_errors(self):
        """Test malformed bundles raise InvalidFormatError."""
        with self.assertRaises(InvalidFormatError):
            self.engine.parse_backup("not json")
        with self.assertRaises(InvalidFormatError):
            self.engine.parse_backup({"version": "2.0"})
        with self.assertRaises(InvalidFormatError):
            self.engine.parse_backup({"version": 2, "documents": []})
        with self.assertRaises(InvalidFormatError):
            self.engine.parse_backup({"version": "2.0", "documents": [{"title": "no id"}]})

    async def test_parse_fills_optional_fields(self):
        """Test missing assets and timestamp are defaulted."""
        bundle = self.engine.parse_backup(json.dumps({"version": "1.0", "documents": []}))
        self.assertEqual(bundle.assets, [])
        self.assertEqual(bundle.timestamp, iso_timestamp(self.clock()))

    async def test_restore_continues_after_failure(self):
        """Test one failing document does not stop the others."""

        class PickyStore(MemoryDocumentStore):
            async def save(self, doc):
                if doc.id == "bad":
                    raise ConnectionError("write rejected")
                await super().save(doc)

        bundle = self.engine.parse_backup({
            "version": "2.0",
            "documents": [
                document([section("S")], document_id="bad").to_record(),
                document([section("S")], document_id="good").to_record(),
            ],
        })
        target = BackupEngine(PickyStore(), MemoryBlobStore(), clock=self.clock)
        result = await target.restore(bundle, "alice")
        self.assertEqual(result.failed, ["bad"])
        self.assertEqual(result.restored, ["good"])
        self.assertFalse(result.complete)

    async def test_backup_file(self):
        """Test writing and reading a backup file."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = await self.engine.write_backup_file(Path(temp_dir) / "nested" / "backup.json")
            bundle = self.engine.read_backup_file(path)
        self.assertEqual(sorted(d.id for d in bundle.documents), ["alice-doc", "bob-doc"])
        self.assertEqual(BackupEngine.default_backup_name(self.clock()), "backup-2024-06-01.json")


class TestSnapshots(unittest.IsolatedAsyncioTestCase):
    """Test automatic snapshots and their retention."""

    async def asyncSetUp(self):
        """Set up an engine with a snapshot store and a fake clock."""
        self.documents = MemoryDocumentStore()
        self.blobs = MemoryBlobStore()
        self.snapshots = MemorySnapshotStore()
        self.clock = FakeClock()
        record = await self.blobs.save(PNG_BYTES, "photo.png", "image/png")
        await self.documents.save(document([section("S", blocks=[media("img", record.id)])]))
        self.engine = BackupEngine(
            self.documents, self.blobs, self.snapshots,
            clock=self.clock, key_prefix="auto_backup_", retention=5
        )

    async def test_retention_keeps_newest(self):
        """Test seven cycles leave the five newest snapshots."""
        keys = []
        for _ in range(7):
            keys.append(await self.engine.create_snapshot())
            self.clock.advance(minutes=10)

        remaining = await self.snapshots.list_keys("auto_backup_")
        self.assertEqual(remaining, keys[2:])
        self.assertIsNone(await self.snapshots.get(keys[0]))
        self.assertIsNone(await self.snapshots.get(keys[1]))

    async def test_snapshot_excludes_assets(self):
        """Test snapshots hold documents only."""
        key = await self.engine.create_snapshot()
        payload = json.loads(await self.snapshots.get(key))
        self.assertEqual(payload["assets"], [])
        self.assertEqual(len(payload["documents"]), 1)

    async def test_key_collision_bumps_timestamp(self):
        """Test two snapshots in the same millisecond get distinct keys."""
        first = await self.engine.create_snapshot()
        second = await self.engine.create_snapshot()
        self.assertNotEqual(first, second)
        self.assertLess(first, second)

    async def test_list_snapshots_newest_first(self):
        """Test listing orders snapshots by time, newest first."""
        await self.engine.create_snapshot()
        self.clock.advance(minutes=10)
        newest = await self.engine.create_snapshot()
        await self.snapshots.put("auto_backup_garbage", "{}")

        listed = await self.engine.list_snapshots()
        self.assertEqual(len(listed), 2)
        self.assertEqual(listed[0].key, newest)
        self.assertEqual(listed[0].timestamp, self.clock())
        self.assertEqual(listed[0].document_count, 1)

    async def test_restore_snapshot(self):
        """Test restoring from a snapshot key."""
        key = await self.engine.create_snapshot()
        await self.documents.delete("doc-1")
        result = await self.engine.restore_snapshot(key, "alice")
        self.assertEqual(result.restored, ["doc-1"])
        self.assertIsNotNone(await self.documents.get("doc-1"))
        self.assertIsNone(await self.engine.restore_snapshot("auto_backup_0000000000000", "alice"))

    async def test_snapshot_store_required(self):
        """Test snapshot methods need a snapshot store."""
        engine = BackupEngine(self.documents, self.blobs)
        with self.assertRaises(RuntimeError):
            await engine.create_snapshot()


class TestAutoSnapshotter(unittest.IsolatedAsyncioTestCase):
    """Test the snapshot scheduler."""

    def make_engine(self, snapshots=None):
        return BackupEngine(
            MemoryDocumentStore(), MemoryBlobStore(), snapshots or MemorySnapshotStore(),
            clock=FakeClock(), retention=5
        )

    async def test_first_cycle_runs_immediately(self):
        """Test a snapshot is taken as soon as the schedule starts."""
        scheduler = AutoSnapshotter(self.make_engine(), interval_minutes=60)
        scheduler.start()
        await asyncio.sleep(0.05)
        self.assertTrue(scheduler.running)
        self.assertEqual(scheduler.cycles, 1)
        await scheduler.aclose()
        self.assertFalse(scheduler.running)

    async def test_restart_replaces_schedule(self):
        """Test starting twice leaves a single running schedule."""
        scheduler = AutoSnapshotter(self.make_engine(), interval_minutes=60)
        scheduler.start()
        first_task = scheduler._task
        await asyncio.sleep(0.05)
        scheduler.start()
        await asyncio.sleep(0.05)
        self.assertTrue(first_task.cancelled())
        self.assertIsNot(scheduler._task, first_task)
        self.assertEqual(scheduler.cycles, 2)
        await scheduler.aclose()

    async def test_stop_without_start(self):
        """Test stopping an idle scheduler is a no-op."""
        scheduler = AutoSnapshotter(self.make_engine(), interval_minutes=60)
        scheduler.stop()
        await scheduler.aclose()
        self.assertFalse(scheduler.running)

    async def test_failure_keeps_schedule(self):
        """Test a failed snapshot does not end the schedule."""
        scheduler = AutoSnapshotter(self.make_engine(BrokenSnapshotStore()), interval_minutes=0.0005)
        scheduler.start()
        await asyncio.sleep(0.2)
        self.assertTrue(scheduler.running)
        self.assertGreaterEqual(scheduler.failures, 2)
        self.assertEqual(scheduler.cycles, 0)
        await scheduler.aclose()


if __name__ == '__main__':
    unittest.main(verbosity=2)
