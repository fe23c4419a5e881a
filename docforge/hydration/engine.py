"""
Asset hydration engine for DocForge.

Hydration turns the durable block form (attachment ids only) into the
working form (attachment ids plus resolved display references) and
migrates legacy inline attachments into the blob store. Dehydration goes
the other way before anything is persisted.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..models import Block, DisplayRef, Document, Section
from ..storage import BlobStore
from .data_urls import decode_data_url, is_data_url


class DisplayRefCache:
    """
    Per-session cache of display references keyed by asset id.

    Concurrent lookups of the same asset share one resolution, so an asset
    is never given two references within a session. Every reference held
    here is released on eviction or on release_all.
    """

    def __init__(self, blob_store: BlobStore):
        self.blob_store = blob_store
        self._refs: Dict[str, DisplayRef] = {}
        self._pending: Dict[str, asyncio.Task] = {}

    async def resolve(self, asset_id: str) -> Optional[DisplayRef]:
        """
        Get the cached reference of an asset, resolving it on first use.

        Args:
            asset_id: The asset ID

        Returns:
            The display reference, or None if the asset does not exist
        """
        if asset_id in self._refs:
            return self._refs[asset_id]
        if asset_id in self._pending:
            return await self._pending[asset_id]

        task = asyncio.ensure_future(self.blob_store.resolve_display_ref(asset_id))
        self._pending[asset_id] = task
        try:
            ref = await task
        finally:
            self._pending.pop(asset_id, None)

        if ref is not None:
            self._refs[asset_id] = ref
        return ref

    def get(self, asset_id: str) -> Optional[DisplayRef]:
        return self._refs.get(asset_id)

    def adopt(self, asset_id: str, ref: DisplayRef) -> None:
        """Take ownership of an already resolved reference."""
        previous = self._refs.get(asset_id)
        if previous is not None and previous.url != ref.url:
            self.blob_store.release_display_ref(previous.url)
        self._refs[asset_id] = ref

    def evict(self, asset_id: str) -> bool:
        """Release and forget the reference of one asset."""
        ref = self._refs.pop(asset_id, None)
        if ref is None:
            return False
        self.blob_store.release_display_ref(ref.url)
        return True

    def release_all(self) -> int:
        """Release every cached reference; returns how many were released."""
        count = 0
        for ref in self._refs.values():
            if self.blob_store.release_display_ref(ref.url):
                count += 1
        self._refs.clear()
        return count

    def __len__(self) -> int:
        return len(self._refs)

    def __contains__(self, asset_id: str) -> bool:
        return asset_id in self._refs


@dataclass
class HydrationResult:
    """
    Outcome of hydrating a section tree.

    A non-empty failure list means some blocks render as missing content;
    the tree itself is complete and ready for editing.
    """
    sections: List[Section]
    migrated: bool = False
    failed_asset_ids: List[str] = field(default_factory=list)
    failed_block_ids: List[str] = field(default_factory=list)
    warning: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return bool(self.failed_block_ids)


class HydrationEngine:
    """
    Resolves asset references of a section tree through a blob store.
    """

    def __init__(self, blob_store: BlobStore, cache: Optional[DisplayRefCache] = None):
        """
        Initialize the hydration engine.

        Args:
            blob_store: Store holding the referenced assets
            cache: Session reference cache (a private one is created when None)
        """
        self.blob_store = blob_store
        self.cache = cache or DisplayRefCache(blob_store)

    async def hydrate(self, sections: List[Section]) -> HydrationResult:
        """
        Hydrate every block of a section tree.

        Blocks of one section are resolved concurrently; a failure on one
        block leaves its attachment_data unset and does not affect others.

        Args:
            sections: The root section list in durable form

        Returns:
            HydrationResult with the working tree and any degradation
        """
        result = HydrationResult(sections=[])
        result.sections = await self._hydrate_sections(sections, result)

        if result.failed_block_ids:
            result.warning = (
                f"{len(result.failed_block_ids)} attachment(s) could not be loaded "
                f"and will show as missing"
            )
            logging.warning(result.warning)

        return result

    async def _hydrate_sections(self, sections: List[Section], result: HydrationResult) -> List[Section]:
        hydrated = await asyncio.gather(*(self._hydrate_section(s, result) for s in sections))
        return list(hydrated)

    async def _hydrate_section(self, section: Section, result: HydrationResult) -> Section:
        blocks = await asyncio.gather(*(self._hydrate_block(b, result) for b in section.content))
        update = {"content": list(blocks)}
        if section.children is not None:
            update["children"] = await self._hydrate_sections(section.children, result)
        return section.model_copy(update=update)

    async def _hydrate_block(self, block: Block, result: HydrationResult) -> Block:
        if block.attachment_data and not block.attachment_id:
            return await self._migrate_block(block, result)

        if not block.attachment_id:
            return block

        try:
            ref = await self.cache.resolve(block.attachment_id)
        except Exception as e:
            logging.warning(f"Failed to resolve attachment {block.attachment_id} of block {block.id}: {e}")
            ref = None
        else:
            if ref is None:
                logging.warning(f"Attachment {block.attachment_id} of block {block.id} is missing from the blob store")

        if ref is None:
            result.failed_asset_ids.append(block.attachment_id)
            result.failed_block_ids.append(block.id)
            return block.model_copy(update={"attachment_data": None})

        return block.model_copy(update={"attachment_data": ref.url})

    async def _migrate_block(self, block: Block, result: HydrationResult) -> Block:
        """Move a legacy inline attachment into the blob store."""
        if not is_data_url(block.attachment_data):
            logging.warning(f"Block {block.id} holds an inline attachment that is not a data URL; left unmigrated")
            result.failed_block_ids.append(block.id)
            return block

        try:
            mime_type, data = decode_data_url(block.attachment_data)
            name = block.attachment_name or block.content or "attachment"
            record = await self.blob_store.save(data, name, block.attachment_type or mime_type)
        except Exception as e:
            logging.warning(f"Failed to migrate inline attachment of block {block.id}: {e}")
            result.failed_block_ids.append(block.id)
            return block

        result.migrated = True
        logging.info(f"Migrated inline attachment of block {block.id} to asset {record.id}")

        try:
            ref = await self.cache.resolve(record.id)
        except Exception as e:
            logging.warning(f"Failed to resolve migrated attachment {record.id}: {e}")
            ref = None
        if ref is None:
            result.failed_asset_ids.append(record.id)
            result.failed_block_ids.append(block.id)

        return block.model_copy(update={
            "attachment_id": record.id,
            "attachment_name": record.name,
            "attachment_type": record.type,
            "attachment_data": ref.url if ref else None
        })


def _is_unmigrated_inline(block: Block) -> bool:
    return not block.attachment_id and is_data_url(block.attachment_data)


def dehydrate_block(block: Block) -> Block:
    """
    Strip the resolved display reference from a block.

    An inline legacy payload that has not been migrated yet is the only copy
    of its content and is kept.
    """
    if block.attachment_data is None or _is_unmigrated_inline(block):
        return block
    return block.model_copy(update={"attachment_data": None})


def dehydrate_sections(sections: List[Section]) -> List[Section]:
    """
    Strip display references from every block of a tree, recursively.

    Args:
        sections: A section list in working form

    Returns:
        The same tree in durable form
    """
    dehydrated = []
    for section in sections:
        update = {"content": [dehydrate_block(b) for b in section.content]}
        if section.children is not None:
            update["children"] = dehydrate_sections(section.children)
        dehydrated.append(section.model_copy(update=update))
    return dehydrated


def dehydrate_document(document: Document) -> Document:
    """Return a copy of a document safe to persist."""
    return document.with_sections(dehydrate_sections(document.sections))

