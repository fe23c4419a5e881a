"""
Tree operations for the section/block hierarchy.

Every function here is pure: it takes a section forest (or a single
section/block) and returns a new value, leaving its input untouched.
Unknown ids are treated as "not found" and the operation becomes a no-op.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set
import logging

from ..models import Block, BlockType, NavItem, Section, TableCell


# =============================================================================
# Traversal
# =============================================================================


def iter_sections(sections: List[Section]) -> Iterator[Section]:
    """Yield every section of a forest in pre-order (parent before children)."""
    for section in sections:
        yield section
        yield from iter_sections(section.child_sections)


def flatten_sections(sections: List[Section]) -> List[Section]:
    """
    Linearize the section tree depth-first, parent before children.

    Args:
        sections: The root section list

    Returns:
        All sections in pre-order
    """
    return list(iter_sections(sections))


def count_sections(sections: List[Section]) -> int:
    """Count every section of the forest, nested ones included."""
    return sum(1 for _ in iter_sections(sections))


def find_section(section_id: str, sections: List[Section]) -> Optional[Section]:
    """
    Find a section anywhere in the tree by depth-first search.

    Args:
        section_id: The section ID
        sections: The root section list

    Returns:
        The first matching section, or None if not found
    """
    for section in iter_sections(sections):
        if section.id == section_id:
            return section
    return None


def find_parent_ids(section_id: str, sections: List[Section]) -> Optional[List[str]]:
    """
    Get the ancestor chain of a section, from root to immediate parent.

    Args:
        section_id: The section ID
        sections: The root section list

    Returns:
        Ancestor ids (empty for a root section), or None if not found
    """
    for section in sections:
        if section.id == section_id:
            return []
        found = find_parent_ids(section_id, section.child_sections)
        if found is not None:
            return [section.id] + found
    return None


def collect_attachment_ids(sections: List[Section]) -> Set[str]:
    """Collect every attachment id held by blocks anywhere in the forest."""
    ids: Set[str] = set()
    for section in iter_sections(sections):
        for block in section.content:
            if block.attachment_id:
                ids.add(block.attachment_id)
    return ids


def normalize_parent_ids(sections: List[Section], parent_id: Optional[str] = None) -> List[Section]:
    """
    Rewrite every section's parent_id so it matches its position in the tree.

    Args:
        sections: A section list
        parent_id: The id of the section owning this list (None for roots)

    Returns:
        The same structure with consistent parent ids
    """
    normalized = []
    for section in sections:
        update: dict = {}
        if section.parent_id != parent_id:
            update["parent_id"] = parent_id
        if section.children is not None:
            update["children"] = normalize_parent_ids(section.children, section.id)
        normalized.append(section.model_copy(update=update) if update else section)
    return normalized


# =============================================================================
# Section Mutations
# =============================================================================


@dataclass
class SectionDeletion:
    """
    Outcome of a section deletion.

    The released attachment ids must be forwarded to the blob store by the
    caller, otherwise the assets of the removed subtree are orphaned.
    """
    sections: List[Section]
    deleted: bool = False
    rejected: bool = False
    reason: Optional[str] = None
    released_attachment_ids: Set[str] = field(default_factory=set)


@dataclass
class BlockDeletion:
    """Outcome of a block deletion."""
    content: List[Block]
    deleted: bool = False
    released_attachment_id: Optional[str] = None


_SECTION_FIELDS = {
    "title": "title",
    "content": "content",
    "children": "children",
    "parentId": "parent_id",
    "parent_id": "parent_id",
}


def insert_section(sections: List[Section], parent_id: Optional[str], new_section: Section) -> List[Section]:
    """
    Append a section to the root list or to a parent's children.

    Args:
        sections: The root section list
        parent_id: Parent section ID, or None to append at root level
        new_section: The section to insert

    Returns:
        The new tree; unchanged if parent_id does not resolve
    """
    if parent_id is None:
        return list(sections) + [new_section.model_copy(update={"parent_id": None})]

    child = new_section.model_copy(update={"parent_id": parent_id})
    updated, found = _insert_child(sections, parent_id, child)
    if not found:
        logging.debug(f"insert_section: parent '{parent_id}' not found; tree unchanged")
        return sections
    return updated


def _insert_child(sections: List[Section], parent_id: str, child: Section):
    """Insert child under the first section matching parent_id."""
    result = []
    found = False
    for section in sections:
        if not found and section.id == parent_id:
            section = section.model_copy(update={"children": section.child_sections + [child]})
            found = True
        elif not found and section.children:
            children, found = _insert_child(section.children, parent_id, child)
            if found:
                section = section.model_copy(update={"children": children})
        result.append(section)
    return result, found


def delete_section(sections: List[Section], section_id: str) -> SectionDeletion:
    """
    Remove a section together with its entire subtree.

    A document must keep at least one section, so a deletion that would
    empty the tree is rejected and leaves it unchanged.

    Args:
        sections: The root section list
        section_id: The section to remove

    Returns:
        SectionDeletion carrying the new tree and the attachment ids
        transitively held by the removed subtree
    """
    target = find_section(section_id, sections)
    if target is None:
        return SectionDeletion(sections=sections)

    removed = count_sections([target])
    if count_sections(sections) - removed < 1:
        return SectionDeletion(
            sections=sections,
            rejected=True,
            reason="A document must have at least one section."
        )

    released = collect_attachment_ids([target])
    updated, _ = _remove_section(sections, section_id)
    return SectionDeletion(
        sections=updated,
        deleted=True,
        released_attachment_ids=released
    )


def _remove_section(sections: List[Section], section_id: str):
    """Remove the first section matching section_id; returns (tree, removed)."""
    result = []
    removed = False
    for section in sections:
        if not removed and section.id == section_id:
            removed = True
            continue
        if not removed and section.children:
            children, removed = _remove_section(section.children, section_id)
            if removed:
                section = section.model_copy(update={"children": children})
        result.append(section)
    return result, removed


def update_section(sections: List[Section], section_id: str, field_name: str, value: Any) -> List[Section]:
    """
    Replace one field of a section, rebuilding only the path to it.

    Args:
        sections: The root section list
        section_id: The section to update
        field_name: One of title, content, children, parentId
        value: The new field value

    Returns:
        The new tree; unchanged if the section does not exist
    """
    attr = _SECTION_FIELDS.get(field_name)
    if attr is None:
        logging.warning(f"update_section: unsupported field '{field_name}'")
        return sections

    updated, found = _replace_section(
        sections, section_id, lambda s: s.model_copy(update={attr: value})
    )
    return updated if found else sections


def replace_section(sections: List[Section], section_id: str, section: Section) -> List[Section]:
    """Swap a whole section (matched by id) for a new value."""
    updated, found = _replace_section(sections, section_id, lambda _: section)
    return updated if found else sections


def _replace_section(sections: List[Section], section_id: str, transform):
    """Apply transform to the first section matching section_id."""
    result = []
    found = False
    for section in sections:
        if not found and section.id == section_id:
            section = transform(section)
            found = True
        elif not found and section.children:
            children, found = _replace_section(section.children, section_id, transform)
            if found:
                section = section.model_copy(update={"children": children})
        result.append(section)
    return result, found


def move_section(sections: List[Section], section_id: str, new_parent_id: Optional[str],
                 position: Optional[int] = None) -> List[Section]:
    """
    Move a section (with its subtree) under a new parent.

    Args:
        sections: The root section list
        section_id: The section to move
        new_parent_id: New parent ID, or None to move to root level
        position: Index among the new siblings (None to append at end)

    Returns:
        The new tree; unchanged if either id does not resolve or the move
        would place a section inside itself or its own descendant
    """
    target = find_section(section_id, sections)
    if target is None:
        return sections

    if new_parent_id is not None:
        if new_parent_id == section_id:
            logging.warning("move_section: cannot move a section into itself")
            return sections
        if find_section(new_parent_id, target.child_sections) is not None:
            logging.warning("move_section: cannot move a section into its own descendant")
            return sections
        if find_section(new_parent_id, sections) is None:
            return sections

    remaining, _ = _remove_section(sections, section_id)
    moved = target.model_copy(update={"parent_id": new_parent_id})

    if new_parent_id is None:
        return _insert_at(remaining, moved, position)

    updated, _ = _replace_section(
        remaining,
        new_parent_id,
        lambda parent: parent.model_copy(
            update={"children": _insert_at(parent.child_sections, moved, position)}
        )
    )
    return updated


def _insert_at(items: list, item, position: Optional[int]) -> list:
    """Insert item at position (clamped), or append when position is None."""
    result = list(items)
    if position is None or position >= len(result):
        result.append(item)
    else:
        result.insert(max(position, 0), item)
    return result


# =============================================================================
# Block Mutations
# =============================================================================


def find_block(section: Section, block_id: str) -> Optional[Block]:
    """Find a block of a section by id."""
    for block in section.content:
        if block.id == block_id:
            return block
    return None


def insert_block(section: Section, block: Block, after_block_id: Optional[str] = None) -> List[Block]:
    """
    Insert a block into a section's content.

    Media blocks must only be inserted once their asset is durably stored
    (see hydration.upload.PendingUpload).

    Args:
        section: The owning section
        block: The block to insert
        after_block_id: Sibling to insert after; appends when None or unknown

    Returns:
        The new content list
    """
    content = list(section.content)
    if after_block_id is not None:
        for index, existing in enumerate(content):
            if existing.id == after_block_id:
                content.insert(index + 1, block)
                return content
    content.append(block)
    return content


def update_block(section: Section, block_id: str, **changes: Any) -> List[Block]:
    """
    Replace fields of one block.

    Args:
        section: The owning section
        block_id: The block to update
        **changes: Block fields to set, by attribute name or camelCase alias;
            values are validated, so enum fields accept their string values

    Returns:
        The new content list; unchanged if the block does not exist
    """
    return [
        _validated_update(block, changes) if block.id == block_id else block
        for block in section.content
    ]


def _validated_update(block: Block, changes: Dict[str, Any]) -> Block:
    record = block.model_dump(by_alias=True)
    for key, value in changes.items():
        info = Block.model_fields.get(key)
        record[info.alias or key if info else key] = value
    return Block.model_validate(record)


def replace_block(section: Section, block: Block) -> List[Block]:
    """Swap a block (matched by id) for a new value."""
    return [block if existing.id == block.id else existing for existing in section.content]


def delete_block(section: Section, block_id: str) -> BlockDeletion:
    """
    Remove a block from a section.

    Args:
        section: The owning section
        block_id: The block to remove

    Returns:
        BlockDeletion carrying the new content list and the attachment id
        the caller must release from the blob store
    """
    target = find_block(section, block_id)
    if target is None:
        return BlockDeletion(content=section.content)

    return BlockDeletion(
        content=[block for block in section.content if block.id != block_id],
        deleted=True,
        released_attachment_id=target.attachment_id
    )


# =============================================================================
# Table Operations
# =============================================================================


def new_table(rows: int = 2, columns: int = 2) -> List[List[TableCell]]:
    """Create an empty rectangular grid of at least 1x1."""
    rows = max(rows, 1)
    columns = max(columns, 1)
    return [[TableCell() for _ in range(columns)] for _ in range(rows)]


def _grid(block: Block) -> List[List[TableCell]]:
    """The block's table grid, or a fresh 1x1 grid when it has none."""
    if not block.table_data:
        return new_table(1, 1)
    return block.table_data


def table_shape(block: Block):
    """Return (rows, columns) of a table block; columns follow the first row."""
    grid = _grid(block)
    return len(grid), len(grid[0]) if grid else 0


def add_table_row(block: Block, after_index: Optional[int] = None) -> Block:
    """
    Add an empty row, sized to the first row's column count.

    Args:
        block: The table block
        after_index: Row to insert after (None to append)

    Returns:
        The updated block
    """
    grid = _grid(block)
    _, columns = table_shape(block)
    row = [TableCell() for _ in range(max(columns, 1))]
    position = None if after_index is None else after_index + 1
    return block.model_copy(update={"table_data": _insert_at(grid, row, position)})


def add_table_column(block: Block, after_index: Optional[int] = None) -> Block:
    """
    Add an empty column to every row.

    Args:
        block: The table block
        after_index: Column to insert after (None to append)

    Returns:
        The updated block
    """
    position = None if after_index is None else after_index + 1
    grid = [_insert_at(row, TableCell(), position) for row in _grid(block)]
    return block.model_copy(update={"table_data": grid})


def remove_table_row(block: Block, index: Optional[int] = None) -> Block:
    """
    Remove a row (the last one when index is None).

    A table keeps at least one row; removal below that is a no-op.
    """
    grid = _grid(block)
    if len(grid) <= 1:
        return block
    index = len(grid) - 1 if index is None else index
    if not 0 <= index < len(grid):
        return block
    return block.model_copy(update={"table_data": grid[:index] + grid[index + 1:]})


def remove_table_column(block: Block, index: Optional[int] = None) -> Block:
    """
    Remove a column (the last one when index is None) from every row.

    A table keeps at least one column; removal below that is a no-op.
    """
    grid = _grid(block)
    _, columns = table_shape(block)
    if columns <= 1:
        return block
    index = columns - 1 if index is None else index
    if not 0 <= index < columns:
        return block
    return block.model_copy(update={"table_data": [row[:index] + row[index + 1:] for row in grid]})


def set_table_cell(block: Block, row: int, column: int, content: str,
                   formatting: Optional[dict] = None) -> Block:
    """Set the content (and optionally formatting) of one cell; out-of-range is a no-op."""
    grid = _grid(block)
    if not (0 <= row < len(grid) and 0 <= column < len(grid[row])):
        return block
    cell = grid[row][column]
    update: dict = {"content": content}
    if formatting is not None:
        update["formatting"] = formatting
    new_row = list(grid[row])
    new_row[column] = cell.model_copy(update=update)
    new_grid = list(grid)
    new_grid[row] = new_row
    return block.model_copy(update={"table_data": new_grid})


# =============================================================================
# Navigation Items
# =============================================================================


def add_nav_item(block: Block, item: NavItem) -> Block:
    """Append a jump link to a navigation block."""
    if block.type != BlockType.NAVIGATION:
        return block
    return block.model_copy(update={"nav_items": list(block.nav_items or []) + [item]})


def remove_nav_item(block: Block, item_id: str) -> Block:
    """Remove a jump link from a navigation block."""
    items = [item for item in (block.nav_items or []) if item.id != item_id]
    return block.model_copy(update={"nav_items": items})
