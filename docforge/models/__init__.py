"""Data models for DocForge."""

from .document import (
    Block,
    BlockType,
    BulletStyle,
    Document,
    DocumentContent,
    ImageSize,
    NavItem,
    Section,
    TableCell,
    MEDIA_TYPES,
    HEADING_TYPES,
)
from .assets import AssetRecord, StoredAsset, DisplayRef, BackupAsset, BackupBundle, ManifestEntry

__all__ = [
    "Block",
    "BlockType",
    "BulletStyle",
    "Document",
    "DocumentContent",
    "ImageSize",
    "NavItem",
    "Section",
    "TableCell",
    "MEDIA_TYPES",
    "HEADING_TYPES",
    "AssetRecord",
    "StoredAsset",
    "DisplayRef",
    "BackupAsset",
    "BackupBundle",
    "ManifestEntry"
]
