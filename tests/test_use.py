from __future__ import annotations

import unittest

from helpers import svg

from svg_normalizer import NodeKind, from_markup
from svg_normalizer.matrix import Transform


class UseTests(unittest.TestCase):
    def test_use_instance_takes_the_use_id(self) -> None:
        tree = from_markup(svg('<rect id="r" width="10" height="10"/><use id="u" xlink:href="#r" x="5"/>'))
        original, instance = tree.root.children
        self.assertEqual(original.id, 'r')
        self.assertIs(instance.kind, NodeKind.PATH)
        self.assertEqual(instance.id, 'u')
        self.assertEqual(instance.transform, Transform(1.0, 0.0, 0.0, 1.0, 5.0, 0.0))

    def test_plain_href_attribute(self) -> None:
        tree = from_markup(svg('<rect id="r" width="10" height="10"/><use href="#r" y="3"/>'))
        self.assertEqual(len(tree.root.children), 2)
        self.assertEqual(tree.root.children[1].transform.f, 3.0)

    def test_ids_inside_referenced_content_are_not_duplicated(self) -> None:
        tree = from_markup(svg('<g id="g1"><rect id="inner" width="1" height="1"/></g>'
                               '<use id="u" xlink:href="#g1"/>'))
        ids = [node.id for node in tree.descendants() if node.id]
        self.assertEqual(ids, ['inner', 'u'])

    def test_self_reference_terminates(self) -> None:
        tree = from_markup(svg('<g id="a"><use xlink:href="#a"/></g>'))
        self.assertEqual(tree.root.children, ())

    def test_mutual_reference_terminates(self) -> None:
        tree = from_markup(svg('<g id="a"><rect width="1" height="1"/><use xlink:href="#b"/></g>'
                               '<g id="b"><use xlink:href="#a"/></g>'))
        paths = [n for n in tree.descendants() if n.kind is NodeKind.PATH]
        self.assertEqual(len(paths), 3)

    def test_missing_target_renders_nothing(self) -> None:
        tree = from_markup(svg('<use xlink:href="#nowhere"/>'))
        self.assertEqual(tree.root.children, ())

    def test_symbol_view_box_maps_to_use_size(self) -> None:
        tree = from_markup(svg('<symbol id="s" viewBox="0 0 10 10"><rect width="10" height="10"/></symbol>'
                               '<use xlink:href="#s" width="20" height="20"/>'))
        self.assertEqual(len(tree.root.children), 1)
        box = tree.bbox(tree.root.children[0])
        self.assertAlmostEqual(box.x, 0.0)
        self.assertAlmostEqual(box.y, 0.0)
        self.assertAlmostEqual(box.width, 20.0)
        self.assertAlmostEqual(box.height, 20.0)

    def test_symbol_is_not_rendered_directly(self) -> None:
        tree = from_markup(svg('<symbol id="s"><rect width="10" height="10"/></symbol>'))
        self.assertEqual(tree.root.children, ())


class SwitchTests(unittest.TestCase):
    def test_first_matching_child_wins(self) -> None:
        tree = from_markup(svg('<switch>'
                               '<rect id="ext" width="1" height="1" requiredExtensions="http://example.com"/>'
                               '<rect id="fr" width="1" height="1" systemLanguage="fr"/>'
                               '<rect id="en" width="1" height="1" systemLanguage="de, en-US"/>'
                               '<rect id="any" width="1" height="1"/>'
                               '</switch>'))
        self.assertEqual([n.id for n in tree.root.children], ['en'])


class NestedSvgTests(unittest.TestCase):
    def test_nested_viewport_translates_and_scales(self) -> None:
        tree = from_markup(svg('<svg x="10" y="10" width="20" height="20" viewBox="0 0 10 10">'
                               '<rect id="r" width="10" height="10"/></svg>'))
        box = tree.bbox(tree.find('r'))
        self.assertAlmostEqual(box.x, 10.0)
        self.assertAlmostEqual(box.width, 20.0)

    def test_empty_nested_viewport_renders_nothing(self) -> None:
        tree = from_markup(svg('<svg width="0" height="20"><rect width="10" height="10"/></svg>'))
        self.assertEqual(tree.root.children, ())


if __name__ == '__main__':
    unittest.main()
