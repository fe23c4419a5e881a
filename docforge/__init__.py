"""
DocForge: a hierarchical block document engine.

Documents are trees of sections holding typed content blocks. DocForge
keeps binary attachments in a blob store, exports documents as standalone
static sites and backs up whole corpora with automatic snapshots.
"""

__version__ = "0.1.0"
__author__ = "DocForge Project"

# Import main components
from .models import Block, BlockType, Document, Section
from .storage import DatabaseManager, DuckDBBlobStore, DuckDBDocumentStore, DuckDBSnapshotStore
from .hydration import HydrationEngine, PendingUpload
from .export import StaticSiteExporter, export_document_bundle, import_document
from .backup import AutoSnapshotter, BackupEngine
from .session import DocumentSession, delete_document, duplicate_document, new_document

__all__ = [
    "Block",
    "BlockType",
    "Document",
    "Section",
    "DatabaseManager",
    "DuckDBBlobStore",
    "DuckDBDocumentStore",
    "DuckDBSnapshotStore",
    "HydrationEngine",
    "PendingUpload",
    "StaticSiteExporter",
    "export_document_bundle",
    "import_document",
    "AutoSnapshotter",
    "BackupEngine",
    "DocumentSession",
    "delete_document",
    "duplicate_document",
    "new_document"
]
