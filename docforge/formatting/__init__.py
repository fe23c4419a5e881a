"""Block rendering and rich-text sanitization."""

from .sanitizer import (
    ALLOWED_TAGS,
    SECTION_LINK_ATTR,
    escape_html,
    is_safe_href,
    sanitize_html,
    strip_markup,
)
from .blocks import (
    IMAGE_SIZE_CLASSES,
    image_size_class,
    render_block,
    render_blocks,
    split_list_items,
)

__all__ = [
    "ALLOWED_TAGS",
    "SECTION_LINK_ATTR",
    "escape_html",
    "is_safe_href",
    "sanitize_html",
    "strip_markup",
    "IMAGE_SIZE_CLASSES",
    "image_size_class",
    "render_block",
    "render_blocks",
    "split_list_items"
]
