"""
Unit tests for section tree operations.

Covers traversal, immutable section and block mutations, table editing,
navigation items and the id-indexed SectionIndex.
"""

import unittest

from docforge.models import Block, BlockType, BulletStyle, ImageSize, NavItem
from docforge.tree import (
    SectionIndex,
    add_nav_item,
    add_table_column,
    add_table_row,
    collect_attachment_ids,
    count_sections,
    delete_block,
    delete_section,
    find_parent_ids,
    find_section,
    flatten_sections,
    insert_block,
    insert_section,
    move_section,
    new_table,
    normalize_parent_ids,
    remove_nav_item,
    remove_table_column,
    remove_table_row,
    set_table_cell,
    table_shape,
    update_block,
    update_section,
)

from builders import media, paragraph, section


def sample_tree():
    """A -> A.1 -> A.1.a, B -> B.1"""
    return [
        section("A", children=[
            section("A.1", parent_id="A", children=[
                section("A.1.a", parent_id="A.1"),
            ]),
        ]),
        section("B", children=[
            section("B.1", parent_id="B"),
        ]),
    ]


class TestTraversal(unittest.TestCase):
    """Test lookups over nested sections."""

    def test_flatten_is_preorder(self):
        """Test flattening lists parents before their children."""
        ids = [s.id for s in flatten_sections(sample_tree())]
        self.assertEqual(ids, ["A", "A.1", "A.1.a", "B", "B.1"])

    def test_find_section_nested(self):
        """Test finding a deeply nested section."""
        found = find_section("A.1.a", sample_tree())
        self.assertIsNotNone(found)
        self.assertEqual(found.parent_id, "A.1")
        self.assertIsNone(find_section("missing", sample_tree()))

    def test_find_parent_ids(self):
        """Test the ancestor chain runs from root to immediate parent."""
        tree = sample_tree()
        self.assertEqual(find_parent_ids("A.1.a", tree), ["A", "A.1"])
        self.assertEqual(find_parent_ids("B", tree), [])
        self.assertIsNone(find_parent_ids("missing", tree))

    def test_duplicate_ids_resolve_to_first_match(self):
        """Test lookups return the first section in pre-order."""
        tree = [section("X", title="first"), section("X", title="second")]
        self.assertEqual(find_section("X", tree).title, "first")

    def test_normalize_parent_ids(self):
        """Test stored parent ids are rewritten to match positions."""
        tree = [section("A", parent_id="stale", children=[section("A.1", parent_id="B")])]
        normalized = normalize_parent_ids(tree)
        self.assertIsNone(normalized[0].parent_id)
        self.assertEqual(normalized[0].children[0].parent_id, "A")


class TestSectionMutations(unittest.TestCase):
    """Test immutable section mutations."""

    def test_insert_at_root_and_under_parent(self):
        """Test inserting at root level and as a child."""
        tree = sample_tree()
        with_root = insert_section(tree, None, section("C"))
        self.assertEqual([s.id for s in with_root], ["A", "B", "C"])

        with_child = insert_section(tree, "B.1", section("B.1.a"))
        child = find_section("B.1.a", with_child)
        self.assertEqual(child.parent_id, "B.1")
        self.assertIsNone(find_section("B.1.a", tree))

    def test_insert_under_unknown_parent_is_noop(self):
        """Test an unresolvable parent leaves the tree unchanged."""
        tree = sample_tree()
        self.assertIs(insert_section(tree, "missing", section("C")), tree)

    def test_delete_releases_subtree_attachments(self):
        """Test deleting a section releases every asset it holds."""
        tree = [
            section("S", blocks=[media("b1", "x"), media("b2", "y", BlockType.PDF, "a.pdf", "application/pdf")]),
            section("T"),
        ]
        result = delete_section(tree, "S")
        self.assertTrue(result.deleted)
        self.assertEqual(result.released_attachment_ids, {"x", "y"})
        self.assertEqual([s.id for s in result.sections], ["T"])

    def test_delete_includes_nested_attachments(self):
        """Test assets in descendant sections are released too."""
        tree = [
            section("A", children=[section("A.1", parent_id="A", blocks=[media("b", "nested")])]),
            section("B"),
        ]
        result = delete_section(tree, "A")
        self.assertEqual(result.released_attachment_ids, {"nested"})

    def test_delete_last_section_rejected(self):
        """Test a document cannot lose its last section."""
        tree = [section("only", children=[section("child", parent_id="only")])]
        result = delete_section(tree, "only")
        self.assertTrue(result.rejected)
        self.assertFalse(result.deleted)
        self.assertIs(result.sections, tree)
        self.assertEqual(result.released_attachment_ids, set())

    def test_delete_unknown_is_noop(self):
        """Test deleting a missing id changes nothing."""
        tree = sample_tree()
        result = delete_section(tree, "missing")
        self.assertFalse(result.deleted)
        self.assertFalse(result.rejected)
        self.assertIs(result.sections, tree)

    def test_update_section_leaves_input_untouched(self):
        """Test updates rebuild the path and keep the original tree."""
        tree = sample_tree()
        updated = update_section(tree, "A.1.a", "title", "Renamed")
        self.assertEqual(find_section("A.1.a", updated).title, "Renamed")
        self.assertEqual(find_section("A.1.a", tree).title, "A.1.a")
        # Untouched branches are shared
        self.assertIs(updated[1], tree[1])

    def test_update_unknown_field_is_noop(self):
        """Test unsupported fields are ignored."""
        tree = sample_tree()
        self.assertIs(update_section(tree, "A", "colour", "red"), tree)

    def test_move_section(self):
        """Test moving a subtree under another parent."""
        moved = move_section(sample_tree(), "A.1", "B")
        self.assertEqual(find_section("A", moved).child_sections, [])
        self.assertEqual(find_parent_ids("A.1.a", moved), ["B", "A.1"])
        self.assertEqual(find_section("A.1", moved).parent_id, "B")

    def test_move_into_descendant_rejected(self):
        """Test a section cannot be moved inside its own subtree."""
        tree = sample_tree()
        self.assertIs(move_section(tree, "A", "A.1.a"), tree)
        self.assertIs(move_section(tree, "A", "A"), tree)

    def test_move_to_root_at_position(self):
        """Test moving a child to the front of the root list."""
        moved = move_section(sample_tree(), "B.1", None, position=0)
        self.assertEqual([s.id for s in moved], ["B.1", "A", "B"])
        self.assertIsNone(moved[0].parent_id)

    def test_count_and_collect(self):
        """Test counting sections and collecting attachment ids."""
        tree = sample_tree()
        self.assertEqual(count_sections(tree), 5)
        tree = update_section(tree, "B.1", "content", [media("m", "asset-1"), paragraph("p")])
        self.assertEqual(collect_attachment_ids(tree), {"asset-1"})


class TestBlockMutations(unittest.TestCase):
    """Test block insertion, update and deletion."""

    def setUp(self):
        """Set up a section with two paragraphs."""
        self.section = section("S", blocks=[paragraph("p1", "one"), paragraph("p2", "two")])

    def test_insert_after_sibling(self):
        """Test inserting directly after a given block."""
        content = insert_block(self.section, paragraph("new"), after_block_id="p1")
        self.assertEqual([b.id for b in content], ["p1", "new", "p2"])

    def test_insert_after_unknown_appends(self):
        """Test an unknown sibling id appends at the end."""
        content = insert_block(self.section, paragraph("new"), after_block_id="missing")
        self.assertEqual([b.id for b in content], ["p1", "p2", "new"])

    def test_update_block(self):
        """Test updating one block's content."""
        content = update_block(self.section, "p2", content="changed")
        self.assertEqual(content[1].content, "changed")
        self.assertEqual(self.section.content[1].content, "two")

    def test_update_block_validates_values(self):
        """Test string values become enum members and camelCase keys are accepted."""
        listing = Block(id="list", type=BlockType.BULLET_LIST, content="a\nb")
        owner = section("S", blocks=[listing])
        updated = update_block(owner, "list", bullet_style="decimal", type="bulletList")[0]
        self.assertIs(updated.bullet_style, BulletStyle.DECIMAL)
        self.assertIs(updated.type, BlockType.BULLET_LIST)

        image = update_block(section("S", blocks=[media("img", "asset-1")]), "img", imageSize="large")[0]
        self.assertIs(image.image_size, ImageSize.LARGE)
        self.assertEqual(image.attachment_id, "asset-1")

    def test_delete_block_reports_attachment(self):
        """Test deleting a media block returns its asset id."""
        owner = section("S", blocks=[media("img", "asset-9"), paragraph("p")])
        result = delete_block(owner, "img")
        self.assertTrue(result.deleted)
        self.assertEqual(result.released_attachment_id, "asset-9")
        self.assertEqual([b.id for b in result.content], ["p"])

        missing = delete_block(owner, "nope")
        self.assertFalse(missing.deleted)
        self.assertIsNone(missing.released_attachment_id)


class TestTables(unittest.TestCase):
    """Test table grid editing."""

    def table(self, rows=2, columns=2):
        return Block(id="t", type=BlockType.TABLE, table_data=new_table(rows, columns))

    def test_add_row_and_column(self):
        """Test rows and columns keep the grid rectangular."""
        block = add_table_column(add_table_row(self.table()))
        self.assertEqual(table_shape(block), (3, 3))
        self.assertTrue(all(len(row) == 3 for row in block.table_data))

    def test_one_by_one_table_cannot_shrink(self):
        """Test removal stops at a single row and column."""
        block = self.table(1, 1)
        self.assertIs(remove_table_row(block), block)
        self.assertIs(remove_table_column(block), block)
        self.assertEqual(table_shape(block), (1, 1))

    def test_remove_specific_row(self):
        """Test removing a row by index."""
        block = set_table_cell(self.table(3, 1), 1, 0, "middle")
        block = remove_table_row(block, 1)
        self.assertEqual(table_shape(block), (2, 1))
        self.assertNotIn("middle", [row[0].content for row in block.table_data])

    def test_set_cell_out_of_range_is_noop(self):
        """Test writing outside the grid changes nothing."""
        block = self.table()
        self.assertIs(set_table_cell(block, 5, 0, "x"), block)
        updated = set_table_cell(block, 0, 1, "<b>Total</b>", {"bold": True})
        self.assertEqual(updated.table_data[0][1].content, "<b>Total</b>")
        self.assertEqual(updated.table_data[0][1].formatting, {"bold": True})


class TestNavItems(unittest.TestCase):
    """Test navigation block items."""

    def test_add_and_remove(self):
        """Test appending and removing jump links."""
        block = Block(id="n", type=BlockType.NAVIGATION, nav_items=[])
        block = add_nav_item(block, NavItem(id="i1", label="Go", target_section_id="B"))
        block = add_nav_item(block, NavItem(id="i2", label="Later"))
        self.assertEqual([item.id for item in block.nav_items], ["i1", "i2"])
        block = remove_nav_item(block, "i1")
        self.assertEqual([item.id for item in block.nav_items], ["i2"])

    def test_add_to_non_navigation_block_ignored(self):
        """Test nav items only attach to navigation blocks."""
        block = paragraph("p")
        self.assertIs(add_nav_item(block, NavItem(id="i")), block)


class TestSectionIndex(unittest.TestCase):
    """Test the id-indexed section arena."""

    def setUp(self):
        """Build an index over the sample tree."""
        self.index = SectionIndex(sample_tree())

    def test_lookup_and_depth(self):
        """Test lookups by id record parent and depth."""
        self.assertEqual(len(self.index), 5)
        self.assertIn("A.1.a", self.index)
        self.assertEqual(self.index.parent_id("A.1.a"), "A.1")
        self.assertEqual(self.index.depth("A.1.a"), 2)
        self.assertEqual(self.index.ancestors("A.1.a"), ["A", "A.1"])

    def test_neighbours_follow_preorder(self):
        """Test previous and next sections follow flattened order."""
        prev_section, next_section = self.index.neighbours("A.1.a")
        self.assertEqual(prev_section.id, "A.1")
        self.assertEqual(next_section.id, "B")
        first_prev, _ = self.index.neighbours("A")
        _, last_next = self.index.neighbours("B.1")
        self.assertIsNone(first_prev)
        self.assertIsNone(last_next)

    def test_descendant_check(self):
        """Test subtree membership."""
        self.assertTrue(self.index.is_descendant("A.1.a", "A"))
        self.assertFalse(self.index.is_descendant("B.1", "A"))

    def test_parent_mismatches(self):
        """Test stale parent ids are reported."""
        index = SectionIndex([section("A", children=[section("A.1", parent_id="wrong")])])
        self.assertEqual(index.parent_mismatches(), ["A.1"])


if __name__ == '__main__':
    unittest.main(verbosity=2)
