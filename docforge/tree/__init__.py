"""Pure operations over the in-memory section/block tree."""

from .operations import (
    BlockDeletion,
    SectionDeletion,
    add_nav_item,
    add_table_column,
    add_table_row,
    collect_attachment_ids,
    count_sections,
    delete_block,
    delete_section,
    find_block,
    find_parent_ids,
    find_section,
    flatten_sections,
    insert_block,
    insert_section,
    iter_sections,
    move_section,
    new_table,
    normalize_parent_ids,
    remove_nav_item,
    remove_table_column,
    remove_table_row,
    replace_block,
    replace_section,
    set_table_cell,
    table_shape,
    update_block,
    update_section,
)
from .index import SectionIndex

__all__ = [
    "BlockDeletion",
    "SectionDeletion",
    "SectionIndex",
    "add_nav_item",
    "add_table_column",
    "add_table_row",
    "collect_attachment_ids",
    "count_sections",
    "delete_block",
    "delete_section",
    "find_block",
    "find_parent_ids",
    "find_section",
    "flatten_sections",
    "insert_block",
    "insert_section",
    "iter_sections",
    "move_section",
    "new_table",
    "normalize_parent_ids",
    "remove_nav_item",
    "remove_table_column",
    "remove_table_row",
    "replace_block",
    "replace_section",
    "set_table_cell",
    "table_shape",
    "update_block",
    "update_section"
]
