"""Persistence adapters for DocForge."""

from .base import BlobStore, DocumentStore, SnapshotStore, now_millis
from .database import DatabaseManager, DuckDBBlobStore, DuckDBDocumentStore, DuckDBSnapshotStore
from .memory import MemoryBlobStore, MemoryDocumentStore, MemorySnapshotStore
from .remote import RestDocumentStore

__all__ = [
    "BlobStore",
    "DocumentStore",
    "SnapshotStore",
    "now_millis",
    "DatabaseManager",
    "DuckDBBlobStore",
    "DuckDBDocumentStore",
    "DuckDBSnapshotStore",
    "MemoryBlobStore",
    "MemoryDocumentStore",
    "MemorySnapshotStore",
    "RestDocumentStore"
]
