"""
Asset and bundle models for DocForge.

Assets are binary attachments kept in the blob store and referenced from
media blocks by id. Backup bundles embed them as portable data URLs.
"""

from typing import List, Optional
from pydantic import Field

from .document import Document, RecordModel


class AssetRecord(RecordModel):
    """
    Metadata of an asset held by the blob store.
    """

    id: str
    name: str = Field(
        default="",
        description="Original file name of the upload"
    )
    type: str = Field(
        default="application/octet-stream",
        description="MIME type of the payload"
    )
    size: int = Field(
        default=0,
        description="Payload length in bytes"
    )
    created_at: int = Field(
        default=0,
        description="Creation time in milliseconds since epoch"
    )
    updated_at: int = Field(
        default=0,
        description="Last update time in milliseconds since epoch"
    )


class StoredAsset(AssetRecord):
    """An asset together with its raw bytes."""

    data: bytes = b""

    @property
    def record(self) -> AssetRecord:
        """Metadata without the payload."""
        return AssetRecord(**self.model_dump(exclude={"data"}))


class DisplayRef(RecordModel):
    """
    A session-scoped displayable reference to an asset.

    Every reference handed out by a blob store must be released through
    BlobStore.release_display_ref once it is no longer shown.
    """

    url: str
    name: str = ""
    type: str = "application/octet-stream"
    asset_id: Optional[str] = None


class BackupAsset(AssetRecord):
    """An asset embedded in a backup bundle as a data URL."""

    data: str


class ManifestEntry(AssetRecord):
    """An asset listed in a single-document bundle manifest."""

    file_path: str


class BackupBundle(RecordModel):
    """
    A self-contained backup of documents and the assets they reference.
    """

    version: str
    timestamp: str
    documents: List[Document] = Field(default_factory=list)
    assets: List[BackupAsset] = Field(default_factory=list)
