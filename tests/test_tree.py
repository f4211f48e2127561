from __future__ import annotations

import unittest

from helpers import svg

from svg_normalizer import NodeKind, Path, PatternRef, from_markup
from svg_normalizer.bbox import BoundingBox
from svg_normalizer.colors import Color
from svg_normalizer.overlay import OVERLAY_STROKE, draw_bboxes
from svg_normalizer.paths import rect_to_segments
from svg_normalizer.serialize import write_svg
from svg_normalizer.tree import Stroke

PATTERN_DOCUMENT = svg(
    '<pattern id="p" width="1" height="1"><rect id="tile" width="1" height="1"/></pattern>'
    '<rect id="a" width="10" height="10" fill="url(#p)"/>'
    '<g id="g" opacity="0.5"><rect id="b" width="1" height="1"/></g>'
)


class TraversalTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tree = from_markup(PATTERN_DOCUMENT)

    def test_descendants_visit_defs_before_canvas(self) -> None:
        ids = [node.id for node in self.tree.descendants()]
        self.assertEqual(ids, ['', 'tile', 'a', 'g', 'b'])

    def test_descendants_restart(self) -> None:
        first = list(self.tree.descendants())
        second = list(self.tree.descendants())
        self.assertEqual(len(first), len(second))
        self.assertTrue(all(x is y for x, y in zip(first, second)))

    def test_is_in_defs(self) -> None:
        self.assertTrue(self.tree.is_in_defs(self.tree.find('tile')))
        self.assertFalse(self.tree.is_in_defs(self.tree.find('a')))
        self.assertFalse(self.tree.is_in_defs(self.tree.root))

    def test_find(self) -> None:
        self.assertIs(self.tree.find('g').kind, NodeKind.GROUP)
        self.assertIsNone(self.tree.find('missing'))
        self.assertIsNone(self.tree.find(''))

    def test_paint_server_lookup(self) -> None:
        paint = self.tree.find('a').fill.paint
        self.assertIs(self.tree.paint_server(paint), self.tree.defs['p'])
        self.assertIsNone(self.tree.paint_server(Color(0, 0, 0)))

    def test_defs_are_read_only(self) -> None:
        with self.assertRaises(TypeError):
            self.tree.defs['x'] = None


class BoundingBoxTests(unittest.TestCase):
    def test_bbox_includes_transform(self) -> None:
        tree = from_markup(svg('<rect id="r" width="10" height="10" transform="translate(10 20)"/>'))
        self.assertEqual(tree.bbox(tree.find('r')), BoundingBox(10.0, 20.0, 10.0, 10.0))

    def test_group_bbox_is_union(self) -> None:
        tree = from_markup(svg('<g id="g" opacity="0.5"><rect width="10" height="10"/>'
                               '<rect x="20" y="5" width="10" height="10"/></g>'))
        self.assertEqual(tree.bbox(tree.find('g')), BoundingBox(0.0, 0.0, 30.0, 15.0))

    def test_visual_bbox_includes_stroke(self) -> None:
        tree = from_markup(svg('<rect id="r" width="10" height="10" stroke="black" stroke-width="2"/>'))
        box = tree.visual_bbox(tree.find('r'))
        self.assertAlmostEqual(box.x, -1.0, places=6)
        self.assertAlmostEqual(box.y, -1.0, places=6)
        self.assertAlmostEqual(box.width, 12.0, places=6)
        self.assertAlmostEqual(box.height, 12.0, places=6)

    def test_visual_bbox_without_stroke_is_geometry(self) -> None:
        tree = from_markup(svg('<rect id="r" width="10" height="10"/>'))
        node = tree.find('r')
        self.assertEqual(tree.visual_bbox(node), tree.bbox(node))

    def test_curve_bbox_uses_extrema(self) -> None:
        tree = from_markup(svg('<circle id="c" cx="50" cy="50" r="10"/>'))
        box = tree.bbox(tree.find('c'))
        self.assertAlmostEqual(box.x, 40.0)
        self.assertAlmostEqual(box.bottom, 60.0)

    def test_empty_group_has_no_bbox(self) -> None:
        tree = from_markup(svg(''))
        self.assertIsNone(tree.bbox(tree.root))

    def test_queries_leave_the_tree_unchanged(self) -> None:
        tree = from_markup(svg('<g id="g" opacity="0.5"><rect width="10" height="10" stroke="black"/>'
                               '<rect x="20" width="5" height="5"/></g>'))
        before = list(tree.descendants())
        first = [(tree.bbox(node), tree.visual_bbox(node)) for node in before]
        second = [(tree.bbox(node), tree.visual_bbox(node)) for node in tree.descendants()]
        self.assertEqual(first, second)
        self.assertTrue(all(x is y for x, y in zip(before, tree.descendants())))
        self.assertEqual(tree.root, from_markup(svg('<g id="g" opacity="0.5"><rect width="10" height="10" '
                                                    'stroke="black"/><rect x="20" width="5" height="5"/></g>')).root)

    def test_hidden_group_resolves_visibility_onto_leaves(self) -> None:
        tree = from_markup(svg('<g id="g" opacity="0.5" visibility="hidden"><rect width="1" height="1"/>'
                               '<rect width="2" height="2" visibility="visible"/></g>'))
        group = tree.find('g')
        self.assertFalse(hasattr(group, 'visibility'))
        self.assertEqual([child.visibility for child in group.children], ['hidden', 'visible'])


class AppendTests(unittest.TestCase):
    def test_append_adds_last_child(self) -> None:
        tree = from_markup(svg('<rect width="10" height="10"/>'))
        self.assertEqual(tree.bbox(tree.root), BoundingBox(0.0, 0.0, 10.0, 10.0))
        tree.append(Path(stroke=Stroke(Color(0, 0, 0)), segments=rect_to_segments(0, 0, 50, 50)))
        self.assertEqual(len(tree.root.children), 2)
        self.assertEqual(tree.bbox(tree.root), BoundingBox(0.0, 0.0, 50.0, 50.0))

    def test_draw_bboxes(self) -> None:
        tree = from_markup(svg('<rect width="10" height="10" transform="translate(5 5)"/>'))
        self.assertEqual(draw_bboxes(tree), 2)
        overlay = tree.root.children[-1]
        self.assertEqual(overlay.stroke, OVERLAY_STROKE)
        self.assertIsNone(overlay.fill)
        self.assertEqual(tree.bbox(overlay), BoundingBox(5.0, 5.0, 10.0, 10.0))
        self.assertIn('stroke-opacity="0.5"', write_svg(tree))

    def test_draw_bboxes_skips_definition_content(self) -> None:
        tree = from_markup(PATTERN_DOCUMENT)
        self.assertEqual(tree.find('a').fill.paint, PatternRef('p'))
        # root, a, g and b
        self.assertEqual(draw_bboxes(tree), 4)


if __name__ == '__main__':
    unittest.main()
