"""
Single-document bundles.

A bundle is a zip archive holding project.json (the document without any
display references), assets/manifest.json and one file per referenced
asset under assets/{id}/{file name}. Import also accepts a bare JSON
document.
"""

import io
import json
import logging
import re
import zipfile
from datetime import date
from typing import List, Optional

from pydantic import ValidationError

from ..exceptions import InvalidFormatError
from ..hydration import dehydrate_document
from ..models import Document, ManifestEntry
from ..storage import BlobStore
from ..tree import collect_attachment_ids, iter_sections


PROJECT_FILE = "project.json"
MANIFEST_FILE = "assets/manifest.json"
MAX_FILE_NAME_LENGTH = 180

ZIP_CONTENT_TYPES = ("application/zip", "application/x-zip-compressed")

_UNSAFE_FILE_NAME_CHARS = re.compile(r'[/\\?%*:|"<>]')
_WHITESPACE = re.compile(r"\s+")


def sanitize_file_name(name: Optional[str]) -> str:
    """
    Make a file name safe for use inside an archive.

    Args:
        name: Original file name

    Returns:
        The name with path separators, wildcards and whitespace replaced
        by underscores, cut to 180 characters; "asset" if nothing is left
    """
    cleaned = _UNSAFE_FILE_NAME_CHARS.sub("_", (name or "").strip())
    cleaned = _WHITESPACE.sub("_", cleaned)
    return cleaned[:MAX_FILE_NAME_LENGTH] or "asset"


def sanitize_document(document: Document) -> Document:
    """Copy of a document without display references; unmigrated inline payloads stay."""
    return dehydrate_document(document)


def bundle_file_name(document: Document, on: Optional[date] = None) -> str:
    """Archive name of a document bundle: {title}_{YYYY-MM-DD}.zip."""
    on = on or date.today()
    return f"{sanitize_file_name(document.title or 'document')}_{on.isoformat()}.zip"


def _ordered_attachment_ids(document: Document) -> List[str]:
    ordered = []
    for section in iter_sections(document.sections):
        for block in section.content:
            if block.attachment_id and block.attachment_id not in ordered:
                ordered.append(block.attachment_id)
    return ordered


async def export_document_bundle(document: Document, blob_store: BlobStore) -> bytes:
    """
    Package one document and its assets as a zip archive.

    Args:
        document: The document to export
        blob_store: Store holding the referenced assets

    Returns:
        The archive bytes; assets missing from the store are skipped
    """
    sanitized = sanitize_document(document)
    attachment_ids = _ordered_attachment_ids(sanitized)

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(PROJECT_FILE, json.dumps(sanitized.to_record(), indent=2, ensure_ascii=False))

        manifest = []
        for asset_id in attachment_ids:
            asset = await blob_store.get(asset_id)
            if asset is None:
                logging.warning(f"Asset with id {asset_id} not found during export.")
                continue

            safe_name = sanitize_file_name(asset.name or f"asset-{asset_id}")
            file_path = f"assets/{asset_id}/{safe_name}"
            archive.writestr(file_path, asset.data)
            manifest.append(ManifestEntry(**asset.record.model_dump(), file_path=file_path).to_record())

        if attachment_ids:
            archive.writestr(MANIFEST_FILE, json.dumps(manifest, indent=2, ensure_ascii=False))

    logging.info(f"Bundled document '{document.title}' with {len(attachment_ids)} referenced assets")
    return buffer.getvalue()


def _looks_like_zip(data: bytes, filename: str, content_type: Optional[str]) -> bool:
    return (
        (filename or "").lower().endswith(".zip")
        or content_type in ZIP_CONTENT_TYPES
        or data[:4] == b"PK\x03\x04"
    )


def _parse_document(raw, owner_id: Optional[str]) -> Document:
    if (
        not isinstance(raw, dict)
        or not isinstance(raw.get("id"), str)
        or not isinstance(raw.get("title"), str)
        or "content" not in raw
    ):
        raise InvalidFormatError("Invalid document file format")

    if owner_id is not None:
        raw = {**raw, "ownerId": owner_id}
    try:
        return Document.model_validate(raw)
    except ValidationError as e:
        raise InvalidFormatError(f"Invalid document file format: {e}") from e


async def _restore_manifest_assets(archive: zipfile.ZipFile, blob_store: BlobStore) -> int:
    try:
        entries = json.loads(archive.read(MANIFEST_FILE).decode("utf-8"))
    except KeyError:
        return 0
    except (ValueError, UnicodeDecodeError) as e:
        logging.error(f"Failed to restore assets from bundle: {e}")
        return 0

    restored = 0
    for raw_entry in entries if isinstance(entries, list) else []:
        try:
            entry = ManifestEntry.model_validate(raw_entry)
        except ValidationError as e:
            logging.warning(f"Skipping malformed manifest entry: {e}")
            continue
        try:
            data = archive.read(entry.file_path)
        except KeyError:
            logging.warning(f"Asset file {entry.file_path} referenced in manifest not found.")
            continue

        try:
            await blob_store.save(
                data,
                entry.name,
                entry.type or "application/octet-stream",
                asset_id=entry.id,
                created_at=entry.created_at,
                updated_at=entry.updated_at
            )
        except Exception as e:
            logging.error(f"Failed to restore asset {entry.id} ({entry.name}): {e}")
            continue
        restored += 1
    return restored


async def import_document(data: bytes, filename: str, blob_store: Optional[BlobStore] = None,
                          owner_id: Optional[str] = None,
                          content_type: Optional[str] = None) -> Document:
    """
    Import a document from a bundle or a bare JSON file.

    Args:
        data: File contents
        filename: Original file name (".zip" selects the bundle format)
        blob_store: Store receiving the bundle's assets under their original ids
        owner_id: Owner to assign (keeps the file's owner when None)
        content_type: MIME type reported for the file, if known

    Returns:
        The imported document without display references

    Raises:
        InvalidFormatError: If the file is not a valid document or bundle
    """
    if not _looks_like_zip(data, filename, content_type):
        try:
            raw = json.loads(data.decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidFormatError(f"Invalid document file format: {e}") from e
        return sanitize_document(_parse_document(raw, owner_id))

    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise InvalidFormatError(f"Invalid project bundle: {e}") from e

    with archive:
        try:
            raw = json.loads(archive.read(PROJECT_FILE).decode("utf-8"))
        except KeyError:
            raise InvalidFormatError("Invalid project bundle: project.json is missing.")
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidFormatError(f"Invalid project bundle: {e}") from e

        document = sanitize_document(_parse_document(raw, owner_id))

        if blob_store is not None:
            restored = await _restore_manifest_assets(archive, blob_store)
            referenced = collect_attachment_ids(document.sections)
            logging.info(f"Imported '{document.title}': restored {restored} of {len(referenced)} referenced assets")

    return document
