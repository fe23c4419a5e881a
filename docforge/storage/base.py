"""
Store interfaces for DocForge.

This module defines the abstract interfaces of the three persistence
boundaries: documents, binary assets and backup snapshots. Concrete
adapters (DuckDB, in-memory, remote HTTP) implement them.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import logging
import time
import uuid

from ..models import AssetRecord, DisplayRef, Document, StoredAsset


def now_millis() -> int:
    """Current time in milliseconds since epoch."""
    return int(time.time() * 1000)


class DocumentStore(ABC):
    """
    Keyed storage of Document records.
    """

    @abstractmethod
    async def get(self, document_id: str) -> Optional[Document]:
        """
        Retrieve a document.

        Args:
            document_id: The document ID

        Returns:
            The document, or None if absent
        """
        pass

    @abstractmethod
    async def save(self, document: Document) -> None:
        """Insert or replace a document."""
        pass

    @abstractmethod
    async def delete(self, document_id: str) -> None:
        """Delete a document; deleting an absent document is a no-op."""
        pass

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> List[Document]:
        """List every document of one owner, most recently modified first."""
        pass

    @abstractmethod
    async def list_all(self) -> List[Document]:
        """List every document in the store."""
        pass


class BlobStore(ABC):
    """
    Id-addressed binary asset storage.

    Besides the abstract storage methods, the base class keeps the registry
    of displayable references it has handed out. A reference stays live
    until release_display_ref is called for it.
    """

    REF_SCHEME = "blob:docforge/"

    def __init__(self):
        self._live_refs: Dict[str, str] = {}

    @abstractmethod
    async def save(self, data: bytes, name: str, mime_type: str,
                   asset_id: Optional[str] = None,
                   created_at: Optional[int] = None,
                   updated_at: Optional[int] = None) -> AssetRecord:
        """
        Store a binary payload.

        Args:
            data: The raw bytes
            name: Original file name
            mime_type: MIME type of the payload
            asset_id: Id to store under (a fresh id is generated when None)
            created_at: Creation timestamp to keep (restores)
            updated_at: Update timestamp to keep (restores)

        Returns:
            The stored asset's metadata
        """
        pass

    @abstractmethod
    async def get(self, asset_id: str) -> Optional[StoredAsset]:
        """Retrieve an asset with its bytes, or None if absent."""
        pass

    @abstractmethod
    async def delete(self, asset_id: str) -> None:
        """Delete an asset; deleting an absent asset is a no-op."""
        pass

    @abstractmethod
    async def get_record(self, asset_id: str) -> Optional[AssetRecord]:
        """Retrieve asset metadata only, or None if absent."""
        pass

    async def resolve_display_ref(self, asset_id: str) -> Optional[DisplayRef]:
        """
        Obtain a displayable reference to an asset.

        The caller owns the returned reference and must release it.

        Args:
            asset_id: The asset ID

        Returns:
            The reference, or None if the asset does not exist
        """
        record = await self.get_record(asset_id)
        if record is None:
            return None
        url = f"{self.REF_SCHEME}{uuid.uuid4()}"
        self._live_refs[url] = record.id
        return DisplayRef(url=url, name=record.name, type=record.type, asset_id=record.id)

    def release_display_ref(self, url: str) -> bool:
        """
        Release a displayable reference.

        Returns:
            True if the reference was live, False if unknown or already released
        """
        if url in self._live_refs:
            del self._live_refs[url]
            return True
        logging.debug(f"Display reference already released or unknown: {url}")
        return False

    def lookup_display_ref(self, url: str) -> Optional[str]:
        """Asset id behind a live display reference."""
        return self._live_refs.get(url)

    @property
    def live_ref_count(self) -> int:
        """Number of display references handed out and not yet released."""
        return len(self._live_refs)

    @staticmethod
    def new_asset_id() -> str:
        return str(uuid.uuid4())


class SnapshotStore(ABC):
    """
    Key-value storage of serialized backup snapshots.
    """

    @abstractmethod
    async def put(self, key: str, payload: str) -> None:
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> List[str]:
        """Keys starting with prefix, in ascending order."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass
