from __future__ import annotations

import unittest

from helpers import svg

from svg_normalizer import (
    DefKind, LinearGradientRef, NodeKind, PatternRef, RadialGradientRef, from_markup,
)
from svg_normalizer.colors import Color
from svg_normalizer.defs import ABSENT, DefsResolver, parse_func_iri
from svg_normalizer.document import Document
from svg_normalizer.options import Options
from svg_normalizer.tree import OBJECT_BBOX, USER_SPACE


class GradientTests(unittest.TestCase):
    def fill_of(self, body, index=-1):
        tree = from_markup(svg(body))
        return tree, tree.root.children[index].fill

    def test_gradient_without_stops_paints_nothing(self) -> None:
        tree, fill = self.fill_of('<linearGradient id="g"/><rect width="1" height="1" fill="url(#g)"/>')
        self.assertIsNone(fill)
        self.assertNotIn('g', tree.defs)

    def test_single_stop_is_a_solid_color(self) -> None:
        _, fill = self.fill_of('<linearGradient id="g"><stop offset="0.5" stop-color="#00f" stop-opacity="0.5"/>'
                               '</linearGradient><rect width="1" height="1" fill="url(#g)"/>')
        self.assertEqual(fill.paint, Color(0, 0, 255))
        self.assertEqual(fill.opacity, 0.5)

    def test_zero_length_vector_uses_last_stop(self) -> None:
        _, fill = self.fill_of('<linearGradient id="g" x2="0"><stop offset="0" stop-color="red"/>'
                               '<stop offset="1" stop-color="lime"/></linearGradient>'
                               '<rect width="1" height="1" fill="url(#g)"/>')
        self.assertEqual(fill.paint, Color(0, 255, 0))

    def test_bounding_box_units_need_an_area(self) -> None:
        _, fill = self.fill_of('<linearGradient id="g"><stop offset="0"/><stop offset="1" stop-color="red"/>'
                               '</linearGradient><line x2="10" stroke="red" fill="url(#g)"/>')
        self.assertIsNone(fill)

    def test_href_chain_inherits_stops(self) -> None:
        tree, fill = self.fill_of(
            '<linearGradient id="base"><stop offset="0"/><stop offset="1" stop-color="red"/></linearGradient>'
            '<linearGradient id="derived" xlink:href="#base" x1="0.5" gradientUnits="userSpaceOnUse"/>'
            '<rect width="10" height="10" fill="url(#derived)"/>'
        )
        self.assertEqual(fill.paint, LinearGradientRef('derived'))
        gradient = tree.defs['derived']
        self.assertEqual(gradient.kind, DefKind.LINEAR_GRADIENT)
        self.assertEqual(len(gradient.stops), 2)
        self.assertEqual(gradient.units, USER_SPACE)
        self.assertEqual(gradient.x1, 0.5)
        self.assertEqual(gradient.x2, 100.0)

    def test_href_cycle_terminates(self) -> None:
        _, fill = self.fill_of(
            '<linearGradient id="a" xlink:href="#b"/><linearGradient id="b" xlink:href="#a"/>'
            '<rect width="1" height="1" fill="url(#a)"/>'
        )
        self.assertIsNone(fill)

    def test_radial_defaults(self) -> None:
        tree, fill = self.fill_of('<radialGradient id="r"><stop offset="0"/><stop offset="1" stop-color="red"/>'
                                  '</radialGradient><rect width="1" height="1" fill="url(#r)"/>')
        self.assertEqual(fill.paint, RadialGradientRef('r'))
        gradient = tree.defs['r']
        self.assertEqual((gradient.cx, gradient.cy, gradient.r, gradient.fx, gradient.fy),
                         (0.5, 0.5, 0.5, 0.5, 0.5))
        self.assertEqual(gradient.units, OBJECT_BBOX)

    def test_stop_offsets_are_monotonic(self) -> None:
        tree, _ = self.fill_of('<linearGradient id="g"><stop offset="0.8"/><stop offset="20%" stop-color="red"/>'
                               '</linearGradient><rect width="1" height="1" fill="url(#g)"/>')
        self.assertEqual([stop.offset for stop in tree.defs['g'].stops], [0.8, 0.8])


class PatternTests(unittest.TestCase):
    def test_pattern_reference(self) -> None:
        tree = from_markup(svg('<pattern id="p" width="0.5" height="0.5"><rect width="2" height="2"/></pattern>'
                               '<rect width="10" height="10" fill="url(#p)"/>'))
        self.assertEqual(tree.root.children[0].fill.paint, PatternRef('p'))
        pattern = tree.defs['p']
        self.assertEqual(len(pattern.children), 1)

    def test_self_referencing_pattern_terminates(self) -> None:
        tree = from_markup(svg('<pattern id="p" width="0.5" height="0.5">'
                               '<rect id="inner" width="2" height="2" fill="url(#p)"/></pattern>'
                               '<rect width="10" height="10" fill="url(#p)"/>'))
        self.assertEqual(tree.root.children[0].fill.paint, PatternRef('p'))
        inner = tree.defs['p'].children[0]
        self.assertEqual(inner.id, 'inner')
        self.assertEqual(inner.visibility, 'hidden')

    def test_pattern_children_inherited_through_href(self) -> None:
        tree = from_markup(svg('<pattern id="base" width="1" height="1"><rect width="2" height="2"/></pattern>'
                               '<pattern id="p" xlink:href="#base"/>'
                               '<rect width="10" height="10" stroke="url(#p)"/>'))
        self.assertEqual(tree.root.children[0].stroke.paint, PatternRef('p'))

    def test_zero_size_pattern_hides_element(self) -> None:
        tree = from_markup(svg('<pattern id="p" width="0" height="1"><rect width="2" height="2"/></pattern>'
                               '<rect width="10" height="10" stroke="url(#p)"/>'))
        path = tree.root.children[0]
        self.assertIsNone(path.stroke)
        self.assertEqual(path.visibility, 'hidden')


class EffectTests(unittest.TestCase):
    def test_missing_references_have_no_effect(self) -> None:
        tree = from_markup(svg('<rect id="r" width="1" height="1" clip-path="url(#nope)" '
                               'mask="url(#nope)" filter="url(#nope)"/>'))
        self.assertIs(tree.root.children[0].kind, NodeKind.PATH)

    def test_clip_path_cycle_degrades_to_no_clip(self) -> None:
        tree = from_markup(svg(
            '<clipPath id="c1" clip-path="url(#c2)"><rect width="5" height="5"/></clipPath>'
            '<clipPath id="c2" clip-path="url(#c1)"><rect width="5" height="5"/></clipPath>'
            '<rect width="10" height="10" clip-path="url(#c1)"/>'
        ))
        group = tree.root.children[0]
        self.assertEqual(group.clip_path, 'c1')
        self.assertEqual(tree.defs['c1'].clip_path, 'c2')
        self.assertIsNone(tree.defs['c2'].clip_path)
        self.assertEqual(list(tree.defs), ['c2', 'c1'])

    def test_mask_cycle_degrades_to_no_nested_mask(self) -> None:
        with self.assertLogs('svg_normalizer.defs', 'WARNING') as logs:
            tree = from_markup(svg(
                '<mask id="m1" mask="url(#m2)"><rect width="100" height="100" fill="white"/></mask>'
                '<mask id="m2" mask="url(#m1)"><rect width="100" height="100" fill="white"/></mask>'
                '<rect width="10" height="10" mask="url(#m1)"/>'
            ))
        self.assertIn("Circular reference to 'm1' ignored", logs.output[0])
        group = tree.root.children[0]
        self.assertEqual(group.mask, 'm1')
        self.assertEqual(tree.defs['m1'].mask, 'm2')
        self.assertIsNone(tree.defs['m2'].mask)
        self.assertEqual(list(tree.defs), ['m2', 'm1'])

    def test_mask_content_referencing_its_own_mask(self) -> None:
        tree = from_markup(svg('<mask id="m"><rect id="inside" width="100" height="100" fill="white" '
                               'mask="url(#m)"/></mask>'
                               '<rect width="10" height="10" mask="url(#m)"/>'))
        self.assertEqual(tree.root.children[0].mask, 'm')
        content = tree.defs['m'].children
        self.assertEqual(len(content), 1)
        self.assertIs(content[0].kind, NodeKind.PATH)
        self.assertEqual(content[0].id, 'inside')
        self.assertEqual(list(tree.defs), ['m'])

    def test_clip_child_clipped_by_another_clip_path(self) -> None:
        tree = from_markup(svg('<clipPath id="inner"><rect width="3" height="3"/></clipPath>'
                               '<clipPath id="outer"><rect width="5" height="5" clip-path="url(#inner)"/></clipPath>'
                               '<rect width="10" height="10" clip-path="url(#outer)"/>'))
        child = tree.defs['outer'].children[0]
        self.assertIs(child.kind, NodeKind.GROUP)
        self.assertEqual(child.clip_path, 'inner')
        self.assertIs(child.children[0].kind, NodeKind.PATH)
        self.assertEqual(list(tree.defs), ['inner', 'outer'])

    def test_self_clipping_clip_path(self) -> None:
        tree = from_markup(svg('<clipPath id="c"><rect width="5" height="5" clip-path="url(#c)"/></clipPath>'
                               '<rect width="10" height="10" clip-path="url(#c)"/>'))
        self.assertEqual(tree.root.children[0].clip_path, 'c')

    def test_clip_path_accepts_use_of_shapes(self) -> None:
        tree = from_markup(svg('<defs><rect id="shape" width="5" height="5"/><g id="grp"/></defs>'
                               '<clipPath id="c"><use xlink:href="#shape"/><use xlink:href="#grp"/></clipPath>'
                               '<rect width="10" height="10" clip-path="url(#c)"/>'))
        self.assertEqual(len(tree.defs['c'].children), 1)

    def test_empty_mask_removes_element(self) -> None:
        tree = from_markup(svg('<mask id="m"><g/></mask><rect width="10" height="10" mask="url(#m)"/>'))
        self.assertEqual(tree.root.children, ())

    def test_mask_region_defaults(self) -> None:
        tree = from_markup(svg('<mask id="m"><rect width="10" height="10" fill="white"/></mask>'
                               '<rect width="10" height="10" mask="url(#m)"/>'))
        mask = tree.defs['m']
        self.assertEqual(tuple(mask.rect), (-0.1, -0.1, 1.2, 1.2))
        self.assertEqual(mask.units, OBJECT_BBOX)

    def test_filter_without_primitives_removes_element(self) -> None:
        tree = from_markup(svg('<filter id="f"/><rect width="10" height="10" filter="url(#f)"/>'))
        self.assertEqual(tree.root.children, ())

    def test_filter_primitives_are_kept(self) -> None:
        tree = from_markup(svg('<filter id="f"><feOffset dx="2"/><feMerge><feMergeNode in="SourceGraphic"/>'
                               '</feMerge></filter><rect width="10" height="10" filter="url(#f)"/>'))
        self.assertEqual(tree.root.children[0].filter, 'f')
        primitives = tree.defs['f'].primitives
        self.assertEqual([p.tag for p in primitives], ['feOffset', 'feMerge'])
        self.assertEqual(primitives[0].attributes, (('dx', '2'),))
        self.assertEqual(primitives[1].children[0].tag, 'feMergeNode')

    def test_unused_definitions_are_not_registered(self) -> None:
        tree = from_markup(svg('<linearGradient id="g"><stop offset="0"/><stop offset="1"/></linearGradient>'
                               '<clipPath id="c"><rect width="1" height="1"/></clipPath>'))
        self.assertEqual(dict(tree.defs), {})


class ResolverTests(unittest.TestCase):
    def test_resolve_by_kind(self) -> None:
        document = Document.from_markup(svg('<filter id="f"><feFlood/></filter><rect id="r"/>'))
        resolver = DefsResolver(document, Options(), converter=None, viewport_size=(100.0, 100.0))
        self.assertEqual(resolver.resolve('f', 'filter').id, 'f')
        self.assertIs(resolver.resolve('r', 'filter'), ABSENT)
        self.assertIs(resolver.resolve('missing', 'mask'), ABSENT)
        self.assertIs(resolver.resolve('f', 'filter'), resolver.resolve('f', 'filter'))
        with self.assertRaises(ValueError):
            resolver.resolve('f', 'sparkle')

    def test_parse_func_iri(self) -> None:
        self.assertEqual(parse_func_iri('url(#a)'), 'a')
        self.assertEqual(parse_func_iri("url( '#a' )"), 'a')
        self.assertIsNone(parse_func_iri('none'))
        self.assertIsNone(parse_func_iri('url(http://example.com/a.svg#a)'))


if __name__ == '__main__':
    unittest.main()
