"""
In-memory store implementations.

Used for tests, previews and for restoring a backup into an empty store.
Records are copied on the way in and out so callers never share mutable
state with the store.
"""

from typing import Dict, List, Optional

from ..models import AssetRecord, Document, StoredAsset
from .base import BlobStore, DocumentStore, SnapshotStore, now_millis


class MemoryDocumentStore(DocumentStore):
    """Document store kept in a dictionary."""

    def __init__(self):
        self._documents: Dict[str, Document] = {}

    async def get(self, document_id: str) -> Optional[Document]:
        document = self._documents.get(document_id)
        return document.model_copy(deep=True) if document else None

    async def save(self, document: Document) -> None:
        self._documents[document.id] = document.model_copy(deep=True)

    async def delete(self, document_id: str) -> None:
        self._documents.pop(document_id, None)

    async def list_by_owner(self, owner_id: str) -> List[Document]:
        documents = [d for d in self._documents.values() if d.owner_id == owner_id]
        documents.sort(key=lambda d: d.last_modified, reverse=True)
        return [d.model_copy(deep=True) for d in documents]

    async def list_all(self) -> List[Document]:
        return [d.model_copy(deep=True) for d in self._documents.values()]

    def __len__(self) -> int:
        return len(self._documents)


class MemoryBlobStore(BlobStore):
    """Blob store kept in a dictionary."""

    def __init__(self):
        super().__init__()
        self._assets: Dict[str, StoredAsset] = {}

    async def save(self, data: bytes, name: str, mime_type: str,
                   asset_id: Optional[str] = None,
                   created_at: Optional[int] = None,
                   updated_at: Optional[int] = None) -> AssetRecord:
        now = now_millis()
        asset = StoredAsset(
            id=asset_id or self.new_asset_id(),
            name=name,
            type=mime_type or "application/octet-stream",
            size=len(data),
            created_at=created_at if created_at is not None else now,
            updated_at=updated_at if updated_at is not None else now,
            data=bytes(data)
        )
        self._assets[asset.id] = asset
        return asset.record

    async def get(self, asset_id: str) -> Optional[StoredAsset]:
        asset = self._assets.get(asset_id)
        return asset.model_copy() if asset else None

    async def get_record(self, asset_id: str) -> Optional[AssetRecord]:
        asset = self._assets.get(asset_id)
        return asset.record if asset else None

    async def delete(self, asset_id: str) -> None:
        self._assets.pop(asset_id, None)

    def asset_ids(self) -> List[str]:
        return list(self._assets)

    def __len__(self) -> int:
        return len(self._assets)


class MemorySnapshotStore(SnapshotStore):
    """Snapshot store kept in a dictionary."""

    def __init__(self):
        self._items: Dict[str, str] = {}

    async def put(self, key: str, payload: str) -> None:
        self._items[key] = payload

    async def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def list_keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._items if k.startswith(prefix))

    async def delete(self, key: str) -> None:
        self._items.pop(key, None)
