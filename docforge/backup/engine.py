"""
Backup and restore engine for DocForge.

A backup bundle holds documents plus every asset they reference, with
asset payloads embedded as data URLs so the bundle is portable without a
companion blob store. Automatic snapshots are document-only bundles kept
in a snapshot store under timestamp-derived keys.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from pydantic import ValidationError

from ..config import config
from ..exceptions import InvalidFormatError
from ..hydration import decode_data_url, dehydrate_document, encode_data_url
from ..models import BackupAsset, BackupBundle, Document
from ..storage import BlobStore, DocumentStore, SnapshotStore
from ..tree import collect_attachment_ids, iter_sections


BACKUP_VERSION = "2.0"


def iso_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class RestoreResult:
    """
    Outcome of a best-effort restore.

    Documents that failed to save are listed in failed; the others were
    restored regardless.
    """
    restored: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    assets_restored: int = 0
    assets_failed: List[str] = field(default_factory=list)
    skipped: int = 0

    @property
    def complete(self) -> bool:
        return not self.failed and not self.assets_failed


@dataclass
class SnapshotInfo:
    """An automatic snapshot as listed for the user."""
    key: str
    timestamp: datetime
    bundle: BackupBundle

    @property
    def document_count(self) -> int:
        return len(self.bundle.documents)


class BackupEngine:
    """
    Creates and restores backup bundles and automatic snapshots.
    """

    def __init__(self, document_store: DocumentStore, blob_store: BlobStore,
                 snapshot_store: Optional[SnapshotStore] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 key_prefix: Optional[str] = None,
                 retention: Optional[int] = None):
        """
        Initialize the backup engine.

        Args:
            document_store: Source and restore target of documents
            blob_store: Source and restore target of assets
            snapshot_store: Store of automatic snapshots (required for snapshot methods)
            clock: Source of the current time
            key_prefix: Snapshot key prefix (defaults to config value)
            retention: Number of snapshots kept (defaults to config value)
        """
        self.document_store = document_store
        self.blob_store = blob_store
        self.snapshot_store = snapshot_store
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.key_prefix = key_prefix or config.snapshot_key_prefix
        self.retention = config.snapshot_retention if retention is None else retention

    # =========================================================================
    # Backup
    # =========================================================================

    async def create_backup(self, owner_id: Optional[str] = None,
                            include_assets: bool = True) -> BackupBundle:
        """
        Serialize documents and the assets they reference.

        Args:
            owner_id: Only back up this owner's documents (all documents when None)
            include_assets: Embed referenced assets (snapshots leave them out)

        Returns:
            The backup bundle
        """
        if owner_id is None:
            documents = await self.document_store.list_all()
        else:
            documents = await self.document_store.list_by_owner(owner_id)
        documents = [dehydrate_document(d) for d in documents]

        assets: List[BackupAsset] = []
        if include_assets:
            seen = set()
            for document in documents:
                for section in iter_sections(document.sections):
                    for block in section.content:
                        asset_id = block.attachment_id
                        if not asset_id or asset_id in seen:
                            continue
                        seen.add(asset_id)
                        asset = await self.blob_store.get(asset_id)
                        if asset is None:
                            logging.warning(f"Asset {asset_id} referenced by '{document.title}' is missing; not backed up")
                            continue
                        assets.append(BackupAsset(
                            **asset.record.model_dump(),
                            data=encode_data_url(asset.data, asset.type)
                        ))

        return BackupBundle(
            version=BACKUP_VERSION,
            timestamp=iso_timestamp(self.clock()),
            documents=documents,
            assets=assets
        )

    @staticmethod
    def serialize(bundle: BackupBundle) -> str:
        """Backup bundle as pretty-printed JSON."""
        return json.dumps(bundle.to_record(), indent=2, ensure_ascii=False)

    def parse_backup(self, payload: Union[str, bytes, dict]) -> BackupBundle:
        """
        Parse and validate a backup bundle.

        Args:
            payload: JSON text or an already decoded object

        Returns:
            The validated bundle

        Raises:
            InvalidFormatError: If the payload is not a well-formed bundle
        """
        raw: Any = payload
        if isinstance(payload, (str, bytes)):
            try:
                raw = json.loads(payload)
            except ValueError as e:
                raise InvalidFormatError(f"Invalid backup file format: {e}") from e

        if not isinstance(raw, dict) or not isinstance(raw.get("version"), str) \
                or not isinstance(raw.get("documents"), list):
            raise InvalidFormatError("Invalid backup file format")

        timestamp = raw.get("timestamp")
        normalized = {
            "version": raw["version"],
            "timestamp": timestamp if isinstance(timestamp, str) else iso_timestamp(self.clock()),
            "documents": raw["documents"],
            "assets": raw["assets"] if isinstance(raw.get("assets"), list) else []
        }
        try:
            return BackupBundle.model_validate(normalized)
        except ValidationError as e:
            raise InvalidFormatError(f"Invalid backup file format: {e}") from e

    async def restore(self, bundle: BackupBundle, owner_id: str) -> RestoreResult:
        """
        Restore one owner's documents and their referenced assets.

        Assets are stored under their original ids before any document is
        saved. A failure on one document or asset does not stop the rest.

        Args:
            bundle: A parsed backup bundle
            owner_id: Owner whose documents are restored

        Returns:
            RestoreResult listing restored and failed documents
        """
        documents = [d for d in bundle.documents if d.owner_id == owner_id]
        result = RestoreResult(skipped=len(bundle.documents) - len(documents))

        referenced = set()
        for document in documents:
            referenced |= collect_attachment_ids(document.sections)

        for asset in bundle.assets:
            if asset.id not in referenced:
                continue
            try:
                _, data = decode_data_url(asset.data)
                await self.blob_store.save(
                    data,
                    asset.name,
                    asset.type,
                    asset_id=asset.id,
                    created_at=asset.created_at,
                    updated_at=asset.updated_at
                )
                result.assets_restored += 1
            except Exception as e:
                logging.error(f"Failed to restore asset {asset.id} ({asset.name}): {e}")
                result.assets_failed.append(asset.id)

        for document in documents:
            try:
                await self.document_store.save(dehydrate_document(document))
                result.restored.append(document.id)
            except Exception as e:
                logging.error(f"Failed to restore document {document.id} ('{document.title}'): {e}", exc_info=True)
                result.failed.append(document.id)

        logging.info(
            f"Restored {len(result.restored)} documents and {result.assets_restored} assets "
            f"({len(result.failed)} failed, {result.skipped} belonging to other owners)"
        )
        return result

    async def write_backup_file(self, path: Union[str, Path], owner_id: Optional[str] = None) -> Path:
        """Create a backup and write it as JSON; returns the written path."""
        bundle = await self.create_backup(owner_id=owner_id)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.serialize(bundle), encoding="utf-8")
        logging.info(f"Wrote backup of {len(bundle.documents)} documents to {path}")
        return path

    def read_backup_file(self, path: Union[str, Path]) -> BackupBundle:
        """Read and validate a backup JSON file."""
        try:
            text = Path(path).read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise InvalidFormatError(f"Invalid backup file format: {e}") from e
        return self.parse_backup(text)

    @staticmethod
    def default_backup_name(on: Optional[datetime] = None) -> str:
        """File name of a manual backup: backup-YYYY-MM-DD.json."""
        on = on or datetime.now(timezone.utc)
        return f"backup-{on:%Y-%m-%d}.json"

    # =========================================================================
    # Automatic Snapshots
    # =========================================================================

    def _require_snapshot_store(self) -> SnapshotStore:
        if self.snapshot_store is None:
            raise RuntimeError("Snapshot store not configured")
        return self.snapshot_store

    def snapshot_key(self, millis: int) -> str:
        # Zero padding keeps lexical and chronological order aligned
        return f"{self.key_prefix}{millis:013d}"

    def parse_snapshot_key(self, key: str) -> Optional[datetime]:
        suffix = key[len(self.key_prefix):]
        if not suffix.isdigit():
            return None
        return datetime.fromtimestamp(int(suffix) / 1000, tz=timezone.utc)

    async def create_snapshot(self) -> str:
        """
        Capture a document-only snapshot and prune old ones.

        Returns:
            The new snapshot's key
        """
        store = self._require_snapshot_store()
        bundle = await self.create_backup(include_assets=False)

        existing = set(await store.list_keys(self.key_prefix))
        millis = int(self.clock().timestamp() * 1000)
        while self.snapshot_key(millis) in existing:
            millis += 1
        key = self.snapshot_key(millis)

        await store.put(key, self.serialize(bundle))
        await self.prune_snapshots()
        return key

    async def prune_snapshots(self) -> List[str]:
        """
        Delete all but the most recent snapshots.

        Returns:
            Keys of the deleted snapshots, oldest first
        """
        store = self._require_snapshot_store()
        keys = await store.list_keys(self.key_prefix)
        excess = keys[:max(len(keys) - self.retention, 0)]
        for key in excess:
            await store.delete(key)
        if excess:
            logging.debug(f"Pruned {len(excess)} old snapshots")
        return excess

    async def list_snapshots(self) -> List[SnapshotInfo]:
        """List automatic snapshots, newest first; unreadable ones are skipped."""
        store = self._require_snapshot_store()
        snapshots = []
        for key in await store.list_keys(self.key_prefix):
            timestamp = self.parse_snapshot_key(key)
            payload = await store.get(key)
            if timestamp is None or payload is None:
                continue
            try:
                bundle = self.parse_backup(payload)
            except InvalidFormatError as e:
                logging.warning(f"Skipping unreadable snapshot {key}: {e.reason}")
                continue
            snapshots.append(SnapshotInfo(key=key, timestamp=timestamp, bundle=bundle))
        snapshots.sort(key=lambda s: s.timestamp, reverse=True)
        return snapshots

    async def restore_snapshot(self, key: str, owner_id: str) -> Optional[RestoreResult]:
        """
        Restore one owner's documents from a snapshot.

        Returns:
            The restore outcome, or None if the snapshot does not exist
        """
        payload = await self._require_snapshot_store().get(key)
        if payload is None:
            return None
        return await self.restore(self.parse_backup(payload), owner_id)
