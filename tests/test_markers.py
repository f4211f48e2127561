from __future__ import annotations

import unittest

from helpers import svg

from svg_normalizer import NodeKind, from_markup
from svg_normalizer.markers import path_vertices
from svg_normalizer.paths import parse_path_data

USER_MARKER = ('<marker id="m" markerUnits="userSpaceOnUse" markerWidth="2" markerHeight="2" {extra}>'
               '<rect width="2" height="2"/></marker>')


class MarkerTests(unittest.TestCase):
    def marker_boxes(self, body):
        tree = from_markup(svg(body))
        stroked, *instances = tree.root.children
        self.assertIs(stroked.kind, NodeKind.PATH)
        return [tree.bbox(node) for node in instances]

    def assertBox(self, box, x, y, width, height):
        self.assertAlmostEqual(box.x, x)
        self.assertAlmostEqual(box.y, y)
        self.assertAlmostEqual(box.width, width)
        self.assertAlmostEqual(box.height, height)

    def test_end_marker_sits_on_last_vertex(self) -> None:
        boxes = self.marker_boxes(USER_MARKER.format(extra='')
                                  + '<path d="M 0 0 L 10 0" stroke="black" marker-end="url(#m)"/>')
        self.assertEqual(len(boxes), 1)
        self.assertBox(boxes[0], 10.0, 0.0, 2.0, 2.0)

    def test_auto_orient_follows_direction(self) -> None:
        boxes = self.marker_boxes(USER_MARKER.format(extra='orient="auto"')
                                  + '<path d="M 0 0 L 0 10" stroke="black" marker-end="url(#m)"/>')
        self.assertBox(boxes[0], -2.0, 10.0, 2.0, 2.0)

    def test_ref_point_is_placed_on_vertex(self) -> None:
        boxes = self.marker_boxes(USER_MARKER.format(extra='refX="1" refY="1"')
                                  + '<line x1="5" y1="5" x2="20" y2="5" stroke="black" marker-start="url(#m)"/>')
        self.assertBox(boxes[0], 4.0, 4.0, 2.0, 2.0)

    def test_stroke_width_units_scale_content(self) -> None:
        boxes = self.marker_boxes('<marker id="m"><rect width="1" height="1"/></marker>'
                                  '<path d="M 5 5 L 10 5" stroke="black" stroke-width="3" marker-start="url(#m)"/>')
        self.assertBox(boxes[0], 5.0, 5.0, 3.0, 3.0)

    def test_every_vertex_of_polyline(self) -> None:
        boxes = self.marker_boxes(USER_MARKER.format(extra='')
                                  + '<polyline points="0,0 10,0 20,0" fill="none" stroke="black" '
                                    'marker-start="url(#m)" marker-mid="url(#m)" marker-end="url(#m)"/>')
        self.assertEqual([box.x for box in boxes], [0.0, 10.0, 20.0])

    def test_markers_ignored_on_basic_shapes(self) -> None:
        tree = from_markup(svg(USER_MARKER.format(extra='')
                               + '<rect width="5" height="5" marker-start="url(#m)"/>'))
        self.assertEqual(len(tree.root.children), 1)

    def test_empty_marker_draws_nothing(self) -> None:
        tree = from_markup(svg('<marker id="m" markerWidth="0"><rect width="1" height="1"/></marker>'
                               '<path d="M 0 0 L 10 0" stroke="black" marker-end="url(#m)"/>'))
        self.assertEqual(len(tree.root.children), 1)

    def test_path_vertices_of_closed_subpath(self) -> None:
        vertices = path_vertices(parse_path_data('M 0 0 L 10 0 L 10 10 Z'))
        self.assertEqual([(v[0], v[1]) for v in vertices], [(0, 0), (10, 0), (10, 10), (0, 0)])
        self.assertEqual(vertices[-1][3], (10.0, 0.0))


if __name__ == '__main__':
    unittest.main()
