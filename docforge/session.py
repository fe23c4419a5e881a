"""
Document editing session for DocForge.

A session owns one open document: its in-memory section tree, the display
reference cache, an optional pending media upload and the debounced
auto-save task. Tree mutations are synchronous replace-on-path operations;
persistence and asset cleanup are asynchronous.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .backup import iso_timestamp
from .config import config
from .exceptions import DocForgeError, DocumentNotFoundError, StorageError
from .formatting import strip_markup
from .hydration import (
    DisplayRefCache,
    HydrationEngine,
    HydrationResult,
    PendingUpload,
    dehydrate_sections,
)
from .models import Block, BlockType, BulletStyle, Document, DocumentContent, NavItem, Section
from .storage import BlobStore, DocumentStore
from . import tree


DEFAULT_SECTION_TITLE = "Introduction"


def new_id() -> str:
    """Generate an opaque id for a document, section, block or nav item."""
    return uuid.uuid4().hex


def utc_now() -> str:
    return iso_timestamp(datetime.now(timezone.utc))


def new_section(title: str = "New Section") -> Section:
    return Section(id=new_id(), title=title, content=[])


def new_block(block_type: Union[BlockType, str], content: str = "") -> Block:
    """
    Create an empty non-media block of the given type.

    Media blocks are created through PendingUpload instead.
    """
    block_type = BlockType(block_type)
    block = Block(id=new_id(), type=block_type, content=content)
    if block_type == BlockType.TABLE:
        block = block.model_copy(update={"table_data": tree.new_table()})
    elif block_type == BlockType.BULLET_LIST:
        block = block.model_copy(update={"bullet_style": BulletStyle.DISC})
    elif block_type == BlockType.NAVIGATION:
        block = block.model_copy(update={"nav_items": []})
    return block


def new_document(owner_id: str, title: str = "Untitled Document",
                 document_id: Optional[str] = None) -> Document:
    """
    Create a document holding a single empty "Introduction" section.

    Args:
        owner_id: The owning user
        title: Document title
        document_id: Id to use (generated when None)

    Returns:
        The new, unsaved document
    """
    now = utc_now()
    return Document(
        id=document_id or new_id(),
        owner_id=owner_id,
        title=title,
        description="",
        content=DocumentContent(sections=[new_section(DEFAULT_SECTION_TITLE)]),
        last_modified=now,
        created_at=now
    )


def derive_description(sections: List[Section], length: Optional[int] = None) -> str:
    """
    Short description of a document: the text of the first block of its
    first section, without markup.
    """
    length = config.description_length if length is None else length
    if not sections or not sections[0].content:
        return ""
    return strip_markup(sections[0].content[0].content)[:length]


class DocumentSession:
    """
    Editing context of one document.
    """

    def __init__(self, document_store: DocumentStore, blob_store: BlobStore,
                 autosave_delay: Optional[float] = None,
                 clock: Optional[Callable[[], str]] = None):
        """
        Initialize the session.

        Args:
            document_store: Store the document is loaded from and saved to
            blob_store: Store holding the document's assets
            autosave_delay: Debounce delay in seconds (defaults to config value)
            clock: Source of ISO-8601 timestamps for lastModified
        """
        self.document_store = document_store
        self.blob_store = blob_store
        self.autosave_delay = config.autosave_delay if autosave_delay is None else autosave_delay
        self.clock = clock or utc_now

        self.cache = DisplayRefCache(blob_store)
        self.hydration = HydrationEngine(blob_store, self.cache)

        self.document: Optional[Document] = None
        self.sections: List[Section] = []
        self.title = ""
        self.dirty = False
        self._edit_count = 0
        self.pending_upload: Optional[PendingUpload] = None
        self.last_hydration: Optional[HydrationResult] = None
        self._save_timer: Optional[asyncio.Task] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def open(self, document_id: str) -> HydrationResult:
        """
        Load and hydrate a document.

        When legacy inline attachments were migrated, the document is saved
        again right away so its durable form only holds asset ids.

        Args:
            document_id: The document ID

        Returns:
            The hydration outcome (check its warning for missing assets)

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        document = await self.document_store.get(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)

        sections = document.sections or [new_section(DEFAULT_SECTION_TITLE)]
        result = await self.hydration.hydrate(tree.normalize_parent_ids(sections))

        self.document = document
        self.title = document.title
        self.sections = result.sections
        self.dirty = False
        self.last_hydration = result

        if result.migrated:
            logging.info(f"Re-saving '{document.title}' after attachment migration")
            await self.save()

        return result

    async def create(self, owner_id: str, title: str = "Untitled Document") -> Document:
        """Create, save and open a new document."""
        document = new_document(owner_id, title)
        await self.document_store.save(document)
        await self.open(document.id)
        return self.document

    async def save(self) -> Document:
        """
        Persist the current tree.

        The tree and title are captured when the call starts; edits made
        while the store write is in flight are not part of this save and
        leave the session dirty.

        Returns:
            The saved document record
        """
        if self.document is None:
            raise DocForgeError("No document is open")

        edits = self._edit_count
        durable = dehydrate_sections(self.sections)
        document = self.document.model_copy(update={
            "title": self.title,
            "description": derive_description(durable),
            "content": DocumentContent(sections=durable),
            "last_modified": self.clock()
        })

        await self.document_store.save(document)
        self.document = document
        if self._edit_count == edits:
            self.dirty = False
        logging.debug(f"Saved document {document.id}")
        return document

    def schedule_save(self) -> None:
        """
        Debounce a save: any save scheduled earlier and not yet started is
        replaced by one firing after the autosave delay.
        """
        if self._save_timer is not None and not self._save_timer.done():
            self._save_timer.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logging.debug("No running event loop; autosave not scheduled")
            self._save_timer = None
            return
        self._save_timer = loop.create_task(self._debounced_save())

    async def _debounced_save(self) -> None:
        await asyncio.sleep(self.autosave_delay)
        # Past this point the save can no longer be replaced by a newer edit
        self._save_timer = None
        try:
            await self.save()
        except Exception as e:
            logging.error(f"Auto-save failed: {e}", exc_info=True)

    @property
    def save_pending(self) -> bool:
        return self._save_timer is not None and not self._save_timer.done()

    async def flush(self) -> Optional[Document]:
        """Run a pending debounced save immediately."""
        if not self.save_pending:
            return None
        self._save_timer.cancel()
        self._save_timer = None
        return await self.save()

    async def close(self, flush: bool = True) -> None:
        """
        End the session.

        Cancels the pending save (saving first when flush is set and there
        are unsaved edits), cancels a pending upload and releases every
        cached display reference.
        """
        if self._save_timer is not None:
            self._save_timer.cancel()
            self._save_timer = None
        if flush and self.dirty and self.document is not None:
            await self.save()
        await self.cancel_upload()
        released = self.cache.release_all()
        logging.debug(f"Session closed; released {released} display references")

    # =========================================================================
    # Tree Mutations
    # =========================================================================

    def _replace_tree(self, sections: List[Section]) -> None:
        if sections is self.sections:
            return
        self.sections = sections
        self._mark_dirty()

    def _mark_dirty(self) -> None:
        self.dirty = True
        self._edit_count += 1
        self.schedule_save()

    def _update_section_content(self, section_id: str, content: List[Block]) -> None:
        self._replace_tree(tree.update_section(self.sections, section_id, "content", content))

    def find_section(self, section_id: str) -> Optional[Section]:
        return tree.find_section(section_id, self.sections)

    def set_title(self, title: str) -> None:
        if title != self.title:
            self.title = title
            self._mark_dirty()

    def add_section(self, title: str = "New Section") -> Section:
        """Append a root-level section."""
        section = new_section(title)
        self._replace_tree(tree.insert_section(self.sections, None, section))
        return section

    def add_subsection(self, parent_id: str, title: str = "New Sub-section") -> Optional[Section]:
        """Append a child section; returns None if the parent does not exist."""
        if self.find_section(parent_id) is None:
            return None
        section = new_section(title)
        self._replace_tree(tree.insert_section(self.sections, parent_id, section))
        return self.find_section(section.id)

    def rename_section(self, section_id: str, title: str) -> None:
        self._replace_tree(tree.update_section(self.sections, section_id, "title", title))

    def move_section(self, section_id: str, new_parent_id: Optional[str],
                     position: Optional[int] = None) -> bool:
        """Reparent a section; returns False when the move was rejected."""
        moved = tree.move_section(self.sections, section_id, new_parent_id, position)
        if moved is self.sections:
            return False
        self._replace_tree(moved)
        return True

    async def delete_section(self, section_id: str) -> tree.SectionDeletion:
        """
        Delete a section and its subtree, then delete every asset the
        subtree referenced.

        Returns:
            The deletion outcome; a rejected deletion leaves the tree as is
        """
        deletion = tree.delete_section(self.sections, section_id)
        if deletion.rejected:
            logging.info(f"Section deletion rejected: {deletion.reason}")
            return deletion
        if deletion.deleted:
            self._replace_tree(deletion.sections)
            await self._release_assets(deletion.released_attachment_ids)
        return deletion

    def add_block(self, section_id: str, block: Block, after_block_id: Optional[str] = None) -> bool:
        """Insert a block into a section; returns False if the section does not exist."""
        section = self.find_section(section_id)
        if section is None:
            return False
        self._update_section_content(section_id, tree.insert_block(section, block, after_block_id))
        return True

    def update_block(self, section_id: str, block_id: str, **changes: Any) -> bool:
        section = self.find_section(section_id)
        if section is None or tree.find_block(section, block_id) is None:
            return False
        self._update_section_content(section_id, tree.update_block(section, block_id, **changes))
        return True

    async def delete_block(self, section_id: str, block_id: str) -> tree.BlockDeletion:
        """Delete a block and the asset it referenced."""
        section = self.find_section(section_id)
        if section is None:
            return tree.BlockDeletion(content=[])
        deletion = tree.delete_block(section, block_id)
        if deletion.deleted:
            self._update_section_content(section_id, deletion.content)
            if deletion.released_attachment_id:
                await self._release_assets([deletion.released_attachment_id])
        return deletion

    def _apply_to_block(self, section_id: str, block_id: str,
                        transform: Callable[[Block], Block]) -> bool:
        section = self.find_section(section_id)
        block = tree.find_block(section, block_id) if section else None
        if block is None:
            return False
        updated = transform(block)
        if updated is not block:
            self._update_section_content(section_id, tree.replace_block(section, updated))
        return True

    def add_table_row(self, section_id: str, block_id: str, after_index: Optional[int] = None) -> bool:
        return self._apply_to_block(section_id, block_id, lambda b: tree.add_table_row(b, after_index))

    def add_table_column(self, section_id: str, block_id: str, after_index: Optional[int] = None) -> bool:
        return self._apply_to_block(section_id, block_id, lambda b: tree.add_table_column(b, after_index))

    def remove_table_row(self, section_id: str, block_id: str, index: Optional[int] = None) -> bool:
        return self._apply_to_block(section_id, block_id, lambda b: tree.remove_table_row(b, index))

    def remove_table_column(self, section_id: str, block_id: str, index: Optional[int] = None) -> bool:
        return self._apply_to_block(section_id, block_id, lambda b: tree.remove_table_column(b, index))

    def set_table_cell(self, section_id: str, block_id: str, row: int, column: int,
                       content: str, formatting: Optional[dict] = None) -> bool:
        return self._apply_to_block(
            section_id, block_id,
            lambda b: tree.set_table_cell(b, row, column, content, formatting)
        )

    def add_nav_item(self, section_id: str, block_id: str, label: str,
                     target_section_id: Optional[str] = None) -> Optional[NavItem]:
        item = NavItem(id=new_id(), label=label, target_section_id=target_section_id)
        if not self._apply_to_block(section_id, block_id, lambda b: tree.add_nav_item(b, item)):
            return None
        return item

    def remove_nav_item(self, section_id: str, block_id: str, item_id: str) -> bool:
        return self._apply_to_block(section_id, block_id, lambda b: tree.remove_nav_item(b, item_id))

    async def _release_assets(self, asset_ids: Iterable[str]) -> None:
        """Evict cached references and delete assets; failures are reported together."""
        failed = []
        for asset_id in sorted(asset_ids):
            self.cache.evict(asset_id)
            try:
                await self.blob_store.delete(asset_id)
            except Exception as e:
                logging.error(f"Failed to delete asset {asset_id}: {e}")
                failed.append(asset_id)
        if failed:
            raise StorageError(f"Failed to delete assets: {', '.join(failed)}")

    # =========================================================================
    # Media Uploads
    # =========================================================================

    async def begin_upload(self, block_type: Union[BlockType, str]) -> PendingUpload:
        """Start a media upload, cancelling any unfinished one."""
        await self.cancel_upload()
        self.pending_upload = PendingUpload(self.blob_store, self.cache, block_type)
        return self.pending_upload

    async def commit_upload(self, section_id: str, after_block_id: Optional[str] = None) -> Optional[Block]:
        """
        Finish the pending upload and insert its block.

        Returns:
            The inserted block, or None if the section does not exist (the
            upload is cancelled in that case)
        """
        if self.pending_upload is None:
            raise DocForgeError("No upload in progress")
        if self.find_section(section_id) is None:
            await self.cancel_upload()
            return None

        block = await self.pending_upload.commit()
        self.pending_upload = None
        self.add_block(section_id, block, after_block_id)
        return block

    async def cancel_upload(self) -> None:
        if self.pending_upload is not None:
            await self.pending_upload.cancel()
            self.pending_upload = None


# =============================================================================
# Document Operations
# =============================================================================


async def delete_document(document_store: DocumentStore, blob_store: BlobStore,
                          document_id: str) -> bool:
    """
    Delete a document and every asset referenced anywhere in its tree.

    Returns:
        False if the document did not exist
    """
    document = await document_store.get(document_id)
    if document is None:
        return False

    attachment_ids = tree.collect_attachment_ids(document.sections)
    await document_store.delete(document_id)
    for asset_id in sorted(attachment_ids):
        try:
            await blob_store.delete(asset_id)
        except Exception as e:
            logging.error(f"Failed to delete asset {asset_id} of document {document_id}: {e}")

    logging.info(f"Deleted document '{document.title}' and {len(attachment_ids)} assets")
    return True


def _remap_attachments(sections: List[Section], mapping: Dict[str, str]) -> List[Section]:
    remapped = []
    for section in sections:
        update: Dict[str, Any] = {"content": [
            b.model_copy(update={"attachment_id": mapping[b.attachment_id], "attachment_data": None})
            if b.attachment_id in mapping else b
            for b in section.content
        ]}
        if section.children is not None:
            update["children"] = _remap_attachments(section.children, mapping)
        remapped.append(section.model_copy(update=update))
    return remapped


async def duplicate_document(document_store: DocumentStore, blob_store: BlobStore,
                             document_id: str, new_document_id: Optional[str] = None) -> Document:
    """
    Copy a document, titled "<title> (Copy)", with its own asset copies.

    Raises:
        DocumentNotFoundError: If the source document does not exist
    """
    source = await document_store.get(document_id)
    if source is None:
        raise DocumentNotFoundError(document_id)

    mapping: Dict[str, str] = {}
    for asset_id in sorted(tree.collect_attachment_ids(source.sections)):
        asset = await blob_store.get(asset_id)
        if asset is None:
            logging.warning(f"Asset {asset_id} missing; the copy keeps a dangling reference")
            continue
        record = await blob_store.save(asset.data, asset.name, asset.type)
        mapping[asset_id] = record.id

    now = utc_now()
    copy = source.model_copy(update={
        "id": new_document_id or new_id(),
        "title": f"{source.title} (Copy)",
        "content": DocumentContent(sections=_remap_attachments(source.sections, mapping)),
        "last_modified": now,
        "created_at": now
    })
    await document_store.save(copy)
    logging.info(f"Duplicated '{source.title}' as {copy.id} with {len(mapping)} asset copies")
    return copy
