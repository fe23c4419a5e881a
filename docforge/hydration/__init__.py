"""Asset hydration: display references, legacy migration and media uploads."""

from .data_urls import decode_data_url, encode_data_url, is_data_url
from .engine import (
    DisplayRefCache,
    HydrationEngine,
    HydrationResult,
    dehydrate_block,
    dehydrate_document,
    dehydrate_sections,
)
from .upload import PendingUpload, UploadState

__all__ = [
    "decode_data_url",
    "encode_data_url",
    "is_data_url",
    "DisplayRefCache",
    "HydrationEngine",
    "HydrationResult",
    "dehydrate_block",
    "dehydrate_document",
    "dehydrate_sections",
    "PendingUpload",
    "UploadState"
]
