"""
Two-phase media upload.

A media block only enters the tree after its binary is durably stored.
Images additionally wait for a size choice between file pick and block
creation. The preview reference obtained at file pick is released on
both commit and cancel.
"""

import logging
import uuid
from enum import Enum
from typing import Optional, Union

from ..exceptions import UploadStateError
from ..models import AssetRecord, Block, BlockType, DisplayRef, ImageSize, MEDIA_TYPES
from ..storage import BlobStore
from .engine import DisplayRefCache


class UploadState(str, Enum):
    IDLE = "idle"
    FILE_PICKED = "file_picked"
    AWAITING_SIZE_CHOICE = "awaiting_size_choice"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


class PendingUpload:
    """
    State machine of one media insertion:
    idle -> file_picked -> awaiting_size_choice -> committed | cancelled.

    Only images pass through awaiting_size_choice; other media commit
    straight from file_picked.
    """

    def __init__(self, blob_store: BlobStore, cache: DisplayRefCache, block_type: Union[BlockType, str]):
        """
        Initialize a pending upload.

        Args:
            blob_store: Store receiving the binary
            cache: Session cache that will own the committed block's reference
            block_type: One of the media block types
        """
        block_type = BlockType(block_type)
        if block_type not in MEDIA_TYPES:
            raise UploadStateError(f"Block type '{block_type.value}' does not hold an attachment")

        self.blob_store = blob_store
        self.cache = cache
        self.block_type = block_type
        self.state = UploadState.IDLE
        self.record: Optional[AssetRecord] = None
        self.preview: Optional[DisplayRef] = None
        self.image_size: Optional[ImageSize] = None

    @property
    def is_finished(self) -> bool:
        return self.state in (UploadState.COMMITTED, UploadState.CANCELLED)

    def _require(self, *states: UploadState) -> None:
        if self.state not in states:
            expected = ", ".join(s.value for s in states)
            raise UploadStateError(f"Upload is '{self.state.value}', expected one of: {expected}")

    async def pick_file(self, data: bytes, name: str, mime_type: str) -> DisplayRef:
        """
        Store the picked file and obtain its preview reference.

        Args:
            data: File contents
            name: Original file name
            mime_type: MIME type of the file

        Returns:
            The preview reference to show while the upload is pending
        """
        self._require(UploadState.IDLE)

        record = await self.blob_store.save(data, name, mime_type)
        try:
            preview = await self.blob_store.resolve_display_ref(record.id)
        except Exception:
            await self.blob_store.delete(record.id)
            raise
        if preview is None:
            await self.blob_store.delete(record.id)
            raise UploadStateError(f"Stored asset {record.id} could not be resolved")

        self.record = record
        self.preview = preview
        self.state = UploadState.FILE_PICKED
        if self.block_type == BlockType.IMAGE:
            self.state = UploadState.AWAITING_SIZE_CHOICE
        return preview

    def choose_size(self, size: Union[ImageSize, str]) -> None:
        """Pick the display width of a pending image; may be changed until commit."""
        self._require(UploadState.AWAITING_SIZE_CHOICE)
        self.image_size = ImageSize(size)

    def _release_preview(self) -> None:
        if self.preview is not None:
            self.blob_store.release_display_ref(self.preview.url)
            self.preview = None

    async def commit(self, block_id: Optional[str] = None) -> Block:
        """
        Build the media block referencing the stored asset.

        Args:
            block_id: Id of the new block (generated when None)

        Returns:
            The block, ready for insertion into a section
        """
        if self.block_type == BlockType.IMAGE:
            self._require(UploadState.AWAITING_SIZE_CHOICE)
            if self.image_size is None:
                raise UploadStateError("No size chosen for the pending image")
        else:
            self._require(UploadState.FILE_PICKED)

        self._release_preview()
        ref = await self.cache.resolve(self.record.id)

        block = Block(
            id=block_id or uuid.uuid4().hex,
            type=self.block_type,
            content=self.record.name,
            attachment_id=self.record.id,
            attachment_name=self.record.name,
            attachment_type=self.record.type,
            attachment_data=ref.url if ref else None,
            image_size=self.image_size if self.block_type == BlockType.IMAGE else None
        )
        self.state = UploadState.COMMITTED
        logging.info(f"Committed {self.block_type.value} upload {self.record.id} ({self.record.name})")
        return block

    async def cancel(self) -> None:
        """
        Abandon the upload, releasing the preview and deleting the stored asset.

        Cancelling a finished upload is a no-op.
        """
        if self.is_finished:
            return

        self._release_preview()
        if self.record is not None:
            await self.blob_store.delete(self.record.id)
            logging.info(f"Cancelled upload; deleted asset {self.record.id}")
        self.state = UploadState.CANCELLED
