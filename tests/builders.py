"""
Small factories for building document trees in tests.
"""

from typing import List, Optional

from docforge.models import Block, BlockType, Document, DocumentContent, Section


def paragraph(block_id: str, text: str = "") -> Block:
    """A paragraph block."""
    return Block(id=block_id, type=BlockType.PARAGRAPH, content=text)


def media(block_id: str, attachment_id: Optional[str], block_type: BlockType = BlockType.IMAGE,
          name: str = "photo.png", mime_type: str = "image/png", **extra) -> Block:
    """A media block referencing an asset."""
    return Block(
        id=block_id,
        type=block_type,
        content=name,
        attachment_id=attachment_id,
        attachment_name=name,
        attachment_type=mime_type,
        **extra
    )


def section(section_id: str, title: str = "", blocks: Optional[List[Block]] = None,
            children: Optional[List[Section]] = None, parent_id: Optional[str] = None) -> Section:
    """A section, optionally with blocks and children."""
    return Section(
        id=section_id,
        title=title or section_id,
        content=blocks or [],
        children=children,
        parent_id=parent_id
    )


def document(sections: List[Section], document_id: str = "doc-1", owner_id: str = "alice",
             title: str = "Handbook") -> Document:
    """A document holding the given sections."""
    return Document(
        id=document_id,
        owner_id=owner_id,
        title=title,
        content=DocumentContent(sections=sections),
        last_modified="2024-03-05T10:00:00.000Z",
        created_at="2024-03-01T09:00:00.000Z"
    )
