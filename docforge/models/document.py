"""
Document tree data models for DocForge.

This module defines the durable records of the document tree: a Document
holds a forest of nested Sections, and every Section holds an ordered list
of typed content Blocks. Field names are camelCase on the wire and
snake_case in Python.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


def _to_camel(name: str) -> str:
    """Convert snake_case to camelCase for JSON serialization."""
    parts = name.split("_")
    return parts[0] + "".join(w.title() for w in parts[1:])


class RecordModel(BaseModel):
    """
    Base class for every record that travels as camelCase JSON.
    """

    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the JSON-compatible wire form."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BlockType(str, Enum):
    """Content kinds a block can hold."""

    PARAGRAPH = "paragraph"
    HEADING_1 = "h1"
    HEADING_2 = "h2"
    HEADING_3 = "h3"
    IMAGE = "image"
    PDF = "pdf"
    VIDEO = "video"
    LINK = "link"
    TABLE = "table"
    BULLET_LIST = "bulletList"
    NAVIGATION = "navigation"


# Block types whose content lives in the blob store
MEDIA_TYPES = frozenset({
    BlockType.IMAGE,
    BlockType.PDF,
    BlockType.VIDEO,
})

HEADING_TYPES = frozenset({
    BlockType.HEADING_1,
    BlockType.HEADING_2,
    BlockType.HEADING_3,
})


class ImageSize(str, Enum):
    """Display widths of an image block, narrowest first."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    FULL = "full"


class BulletStyle(str, Enum):
    """List marker styles of a bullet list block."""

    DISC = "disc"
    CIRCLE = "circle"
    SQUARE = "square"
    DECIMAL = "decimal"


class TableCell(RecordModel):
    """
    One cell of a table block. The content is a rich-text fragment.
    """

    content: str = Field(
        default="",
        description="Rich-text markup of the cell"
    )

    formatting: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Optional presentation hints (bold, italic, underline, align, backgroundColor)"
    )


class NavItem(RecordModel):
    """
    One in-document jump link of a navigation block.
    """

    id: str
    label: str = ""
    target_section_id: Optional[str] = Field(
        default=None,
        description="Section the link jumps to; unset items render as plain labels"
    )


class Block(RecordModel):
    """
    One typed unit of content inside a section.

    Media blocks reference their binary through attachment_id. The
    attachment_data field is the ephemeral, session-scoped displayable
    reference and is never part of the durable record.
    """

    id: str
    type: BlockType
    content: str = Field(
        default="",
        description="Text, rich-text markup, URL or newline-joined list items depending on type"
    )

    attachment_id: Optional[str] = Field(
        default=None,
        description="Durable blob store reference of a media block"
    )
    attachment_name: Optional[str] = None
    attachment_type: Optional[str] = Field(
        default=None,
        description="MIME type of the referenced asset"
    )
    attachment_data: Optional[str] = Field(
        default=None,
        description="Resolved displayable reference, recomputed on every load"
    )

    image_size: Optional[ImageSize] = None
    table_data: Optional[List[List[TableCell]]] = None
    bullet_style: Optional[BulletStyle] = None
    nav_items: Optional[List[NavItem]] = None

    @property
    def is_media(self) -> bool:
        """Whether the block's content lives in the blob store."""
        return self.type in MEDIA_TYPES


class Section(RecordModel):
    """
    A titled node of the document tree.

    Siblings are ordered; parent_id mirrors the section's position in the
    tree and is unset for root sections.
    """

    id: str
    title: str = ""
    content: List[Block] = Field(
        default_factory=list,
        description="Ordered content blocks of the section"
    )
    children: Optional[List['Section']] = Field(
        default=None,
        description="Nested sub-sections"
    )
    parent_id: Optional[str] = None

    @property
    def child_sections(self) -> List['Section']:
        """Children as a list, empty when unset."""
        return self.children or []


class DocumentContent(RecordModel):
    """The root list of a document's sections."""

    sections: List[Section] = Field(default_factory=list)


class Document(RecordModel):
    """
    A document owned by a single user.
    """

    id: str
    owner_id: str = Field(
        ...,
        alias="ownerId",
        validation_alias=AliasChoices("ownerId", "owner_id", "userId"),
        description="Identifier of the owning user"
    )
    title: str = "Untitled Document"
    description: str = ""
    content: DocumentContent = Field(default_factory=DocumentContent)
    last_modified: str = Field(
        default="",
        description="ISO-8601 timestamp of the last save"
    )
    created_at: str = Field(
        default="",
        description="ISO-8601 timestamp of creation"
    )

    @property
    def sections(self) -> List[Section]:
        """The document's root section list."""
        return self.content.sections

    def with_sections(self, sections: List[Section]) -> 'Document':
        """Return a copy of this document holding a different section tree."""
        return self.model_copy(update={"content": DocumentContent(sections=sections)})


# Enable forward references for self-referencing model
Section.model_rebuild()
