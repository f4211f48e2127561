from __future__ import annotations

import unittest
import xml.etree.ElementTree as ET

from svg_normalizer.document import Document
from svg_normalizer.options import Options
from svg_normalizer.style import initial_style, parse_style_attribute, resolve_style, resolve_style_chain


class StyleResolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.root_style = initial_style(Options())

    def resolve(self, markup):
        group = ET.fromstring(markup)
        group_style = resolve_style(group, self.root_style)
        return group_style, resolve_style(group[0], group_style)

    def test_inherited_properties_flow_down(self) -> None:
        _, child = self.resolve('<g fill="red" stroke-width="3"><rect/></g>')
        self.assertEqual(child.get('fill'), 'red')
        self.assertEqual(child.get('stroke-width'), '3')

    def test_non_inherited_properties_stay_local(self) -> None:
        group, child = self.resolve('<g opacity="0.5" clip-path="url(#c)"><rect/></g>')
        self.assertEqual(group.get('opacity'), '0.5')
        self.assertIsNone(child.get('opacity'))
        self.assertIsNone(child.get('clip-path'))

    def test_inherit_keyword_copies_parent_value(self) -> None:
        _, child = self.resolve('<g opacity="0.5"><rect opacity="inherit"/></g>')
        self.assertEqual(child.local['opacity'], '0.5')

    def test_inline_style_wins_over_attribute(self) -> None:
        _, child = self.resolve('<g><rect fill="red" style="fill: blue !important; stroke:green"/></g>')
        self.assertEqual(child.get('fill'), 'blue')
        self.assertEqual(child.get('stroke'), 'green')

    def test_transform_is_not_a_style_property(self) -> None:
        _, child = self.resolve('<g transform="scale(2)"><rect/></g>')
        self.assertIsNone(child.get('transform'))

    def test_relative_font_size_becomes_absolute(self) -> None:
        group, child = self.resolve('<g font-size="20"><text font-size="150%"/></g>')
        self.assertEqual(group.font_size, 20.0)
        self.assertEqual(child.font_size, 30.0)
        _, child = self.resolve('<g font-size="20"><text font-size="2em"/></g>')
        self.assertEqual(child.font_size, 40.0)

    def test_defaults_come_from_options(self) -> None:
        style = initial_style(Options(font_family='Arial', font_size=16))
        self.assertEqual(style.font_family, 'Arial')
        self.assertEqual(style.font_size, 16.0)

    def test_marker_shorthand(self) -> None:
        _, child = self.resolve('<g><path style="marker: url(#m)"/></g>')
        self.assertEqual(child.get('marker-start'), 'url(#m)')
        self.assertEqual(child.get('marker-end'), 'url(#m)')

    def test_parse_style_attribute(self) -> None:
        self.assertEqual(parse_style_attribute('fill:red; ;bogus; Stroke : blue'),
                         {'fill': 'red', 'stroke': 'blue'})

    def test_style_chain_uses_own_ancestors(self) -> None:
        document = Document.from_markup(
            '<svg xmlns="http://www.w3.org/2000/svg"><g fill="green"><defs>'
            '<pattern id="p"><rect/></pattern></defs></g></svg>'
        )
        rect = document.element_by_id('p')[0]
        style = resolve_style_chain(document, rect, Options())
        self.assertEqual(style.get('fill'), 'green')


if __name__ == '__main__':
    unittest.main()
