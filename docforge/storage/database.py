"""
Database manager for DocForge.

This module handles all local persistence using DuckDB: documents, binary
assets and automatic backup snapshots share one database file.
"""

import duckdb
import json
import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError

from ..exceptions import StorageError
from ..models import AssetRecord, Document, StoredAsset
from .base import BlobStore, DocumentStore, SnapshotStore, now_millis


class DatabaseManager:
    """
    Manages the DuckDB database holding documents, assets and snapshots.
    """

    def __init__(self, db_path: str = "docforge.db"):
        """
        Initialize the database manager.

        Args:
            db_path: Path to the DuckDB database file (":memory:" for a transient database)
        """
        self.db_path = db_path
        self.connection = None

    def connect(self):
        """Establish connection to the database."""
        self.connection = duckdb.connect(self.db_path)

    def disconnect(self):
        """Close the database connection."""
        if self.connection:
            self.connection.close()
            self.connection = None

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        self.initialize_database()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()

    def require_connection(self):
        """Return the live connection or fail loudly."""
        if not self.connection:
            raise RuntimeError("Database connection not established")
        return self.connection

    def initialize_database(self):
        """
        Create all necessary tables if they don't exist.
        """
        connection = self.require_connection()

        connection.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                id VARCHAR PRIMARY KEY,
                owner_id VARCHAR NOT NULL,
                title VARCHAR NOT NULL,
                description VARCHAR,
                content TEXT NOT NULL,
                last_modified VARCHAR,
                created_at VARCHAR
            )
        """)

        connection.execute("""
            CREATE TABLE IF NOT EXISTS assets (
                id VARCHAR PRIMARY KEY,
                name VARCHAR NOT NULL,
                type VARCHAR NOT NULL,
                size BIGINT NOT NULL,
                data BLOB NOT NULL,
                created_at BIGINT NOT NULL,
                updated_at BIGINT NOT NULL
            )
        """)

        connection.execute("""
            CREATE TABLE IF NOT EXISTS snapshots (
                snapshot_key VARCHAR PRIMARY KEY,
                payload TEXT NOT NULL,
                stored_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    def table_counts(self) -> dict:
        """Row counts of every table, for diagnostics."""
        connection = self.require_connection()
        return {
            table: connection.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            for table in ("documents", "assets", "snapshots")
        }


class DuckDBDocumentStore(DocumentStore):
    """
    Document store backed by the documents table.

    The section tree is kept as a JSON text column.
    """

    _COLUMNS = "id, owner_id, title, description, content, last_modified, created_at"

    def __init__(self, database: DatabaseManager):
        self.db = database

    def _row_to_document(self, row) -> Document:
        try:
            return Document(
                id=row[0],
                owner_id=row[1],
                title=row[2],
                description=row[3] or "",
                content=json.loads(row[4]),
                last_modified=row[5] or "",
                created_at=row[6] or ""
            )
        except (ValueError, ValidationError) as e:
            raise StorageError(f"Stored document {row[0]} is unreadable: {e}") from e

    async def get(self, document_id: str) -> Optional[Document]:
        connection = self.db.require_connection()
        try:
            row = connection.execute(
                f"SELECT {self._COLUMNS} FROM documents WHERE id = ?",
                [document_id]
            ).fetchone()
        except duckdb.Error as e:
            raise StorageError(f"Failed to load document {document_id}: {e}") from e
        return self._row_to_document(row) if row else None

    async def save(self, document: Document) -> None:
        connection = self.db.require_connection()
        content = json.dumps(document.content.to_record(), ensure_ascii=False)
        try:
            connection.execute(f"""
                INSERT OR REPLACE INTO documents ({self._COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, [
                document.id,
                document.owner_id,
                document.title,
                document.description,
                content,
                document.last_modified,
                document.created_at
            ])
        except duckdb.Error as e:
            raise StorageError(f"Failed to save document {document.id}: {e}") from e

    async def delete(self, document_id: str) -> None:
        connection = self.db.require_connection()
        try:
            connection.execute("DELETE FROM documents WHERE id = ?", [document_id])
        except duckdb.Error as e:
            raise StorageError(f"Failed to delete document {document_id}: {e}") from e

    async def list_by_owner(self, owner_id: str) -> List[Document]:
        connection = self.db.require_connection()
        try:
            rows = connection.execute(f"""
                SELECT {self._COLUMNS}
                FROM documents
                WHERE owner_id = ?
                ORDER BY last_modified DESC
            """, [owner_id]).fetchall()
        except duckdb.Error as e:
            raise StorageError(f"Failed to list documents of {owner_id}: {e}") from e
        return [self._row_to_document(row) for row in rows]

    async def list_all(self) -> List[Document]:
        connection = self.db.require_connection()
        try:
            rows = connection.execute(
                f"SELECT {self._COLUMNS} FROM documents ORDER BY created_at"
            ).fetchall()
        except duckdb.Error as e:
            raise StorageError(f"Failed to list documents: {e}") from e
        return [self._row_to_document(row) for row in rows]


class DuckDBBlobStore(BlobStore):
    """
    Blob store backed by the assets table.
    """

    def __init__(self, database: DatabaseManager):
        super().__init__()
        self.db = database

    async def save(self, data: bytes, name: str, mime_type: str,
                   asset_id: Optional[str] = None,
                   created_at: Optional[int] = None,
                   updated_at: Optional[int] = None) -> AssetRecord:
        connection = self.db.require_connection()
        now = now_millis()
        record = AssetRecord(
            id=asset_id or self.new_asset_id(),
            name=name,
            type=mime_type or "application/octet-stream",
            size=len(data),
            created_at=created_at if created_at is not None else now,
            updated_at=updated_at if updated_at is not None else now
        )
        try:
            connection.execute("""
                INSERT OR REPLACE INTO assets (id, name, type, size, data, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, [
                record.id, record.name, record.type, record.size,
                bytes(data), record.created_at, record.updated_at
            ])
        except duckdb.Error as e:
            raise StorageError(f"Failed to store asset {record.name}: {e}") from e
        logging.info(f"Stored asset {record.id} ({record.name}, {record.size} bytes)")
        return record

    async def get(self, asset_id: str) -> Optional[StoredAsset]:
        connection = self.db.require_connection()
        try:
            row = connection.execute("""
                SELECT id, name, type, size, created_at, updated_at, data
                FROM assets WHERE id = ?
            """, [asset_id]).fetchone()
        except duckdb.Error as e:
            raise StorageError(f"Failed to load asset {asset_id}: {e}") from e
        if not row:
            return None
        return StoredAsset(
            id=row[0], name=row[1], type=row[2], size=row[3],
            created_at=row[4], updated_at=row[5], data=bytes(row[6])
        )

    async def get_record(self, asset_id: str) -> Optional[AssetRecord]:
        connection = self.db.require_connection()
        try:
            row = connection.execute("""
                SELECT id, name, type, size, created_at, updated_at
                FROM assets WHERE id = ?
            """, [asset_id]).fetchone()
        except duckdb.Error as e:
            raise StorageError(f"Failed to load asset {asset_id}: {e}") from e
        if not row:
            return None
        return AssetRecord(
            id=row[0], name=row[1], type=row[2], size=row[3],
            created_at=row[4], updated_at=row[5]
        )

    async def delete(self, asset_id: str) -> None:
        connection = self.db.require_connection()
        try:
            connection.execute("DELETE FROM assets WHERE id = ?", [asset_id])
        except duckdb.Error as e:
            raise StorageError(f"Failed to delete asset {asset_id}: {e}") from e


class DuckDBSnapshotStore(SnapshotStore):
    """
    Snapshot store backed by the snapshots table.
    """

    def __init__(self, database: DatabaseManager):
        self.db = database

    async def put(self, key: str, payload: str) -> None:
        connection = self.db.require_connection()
        try:
            connection.execute("""
                INSERT OR REPLACE INTO snapshots (snapshot_key, payload, stored_at)
                VALUES (?, ?, ?)
            """, [key, payload, datetime.now()])
        except duckdb.Error as e:
            raise StorageError(f"Failed to store snapshot {key}: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        connection = self.db.require_connection()
        row = connection.execute(
            "SELECT payload FROM snapshots WHERE snapshot_key = ?", [key]
        ).fetchone()
        return row[0] if row else None

    async def list_keys(self, prefix: str = "") -> List[str]:
        connection = self.db.require_connection()
        rows = connection.execute("""
            SELECT snapshot_key FROM snapshots
            WHERE starts_with(snapshot_key, ?)
            ORDER BY snapshot_key
        """, [prefix]).fetchall()
        return [row[0] for row in rows]

    async def delete(self, key: str) -> None:
        connection = self.db.require_connection()
        try:
            connection.execute("DELETE FROM snapshots WHERE snapshot_key = ?", [key])
        except duckdb.Error as e:
            raise StorageError(f"Failed to delete snapshot {key}: {e}") from e
