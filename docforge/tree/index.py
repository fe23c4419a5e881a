"""
Id-indexed view of a section tree.

SectionIndex flattens a section forest into an arena of entries keyed by
section id, each recording the parent id and depth. Lookups go through the
arena rather than walking nested references.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..models import Section


@dataclass
class IndexEntry:
    """One arena slot."""
    section: Section
    parent_id: Optional[str]
    depth: int
    order: int


class SectionIndex:
    """
    Arena of sections keyed by id.

    Duplicate ids resolve to the first section in pre-order.
    """

    def __init__(self, sections: List[Section]):
        """
        Build the index.

        Args:
            sections: The root section list
        """
        self._entries: Dict[str, IndexEntry] = {}
        self._order: List[str] = []
        self._add(sections, None, 0)

    def _add(self, sections: List[Section], parent_id: Optional[str], depth: int) -> None:
        for section in sections:
            if section.id not in self._entries:
                self._entries[section.id] = IndexEntry(section, parent_id, depth, len(self._order))
                self._order.append(section.id)
            self._add(section.child_sections, section.id, depth + 1)

    def __contains__(self, section_id: str) -> bool:
        return section_id in self._entries

    def __len__(self) -> int:
        return len(self._order)

    def get(self, section_id: str) -> Optional[Section]:
        entry = self._entries.get(section_id)
        return entry.section if entry else None

    def parent_id(self, section_id: str) -> Optional[str]:
        entry = self._entries.get(section_id)
        return entry.parent_id if entry else None

    def depth(self, section_id: str) -> int:
        entry = self._entries.get(section_id)
        return entry.depth if entry else 0

    def ancestors(self, section_id: str) -> List[str]:
        """Ancestor ids of a section from root to immediate parent."""
        chain = []
        current = self.parent_id(section_id)
        while current is not None and current not in chain:
            chain.append(current)
            current = self.parent_id(current)
        chain.reverse()
        return chain

    def is_descendant(self, section_id: str, ancestor_id: str) -> bool:
        """Whether section_id lies inside ancestor_id's subtree."""
        return ancestor_id in self.ancestors(section_id)

    def preorder(self) -> List[Section]:
        """Sections in pre-order, first occurrence of each id."""
        return [self._entries[section_id].section for section_id in self._order]

    def neighbours(self, section_id: str):
        """Return (previous, next) sections in pre-order, None at either end."""
        entry = self._entries.get(section_id)
        if entry is None:
            return None, None
        prev_section = self.get(self._order[entry.order - 1]) if entry.order > 0 else None
        next_section = self.get(self._order[entry.order + 1]) if entry.order + 1 < len(self._order) else None
        return prev_section, next_section

    def parent_mismatches(self) -> List[str]:
        """Ids of sections whose stored parent_id disagrees with their position."""
        return [
            section_id for section_id, entry in self._entries.items()
            if entry.section.parent_id != entry.parent_id
        ]
