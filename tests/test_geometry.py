from __future__ import annotations

import unittest
import xml.etree.ElementTree as ET

from svg_normalizer.matrix import IDENTITY, Transform, parse_transform
from svg_normalizer.paths import (
    CLOSE_PATH, CurveTo, LineTo, MoveTo, parse_path_data, rect_to_segments,
    shape_to_segments, simplify_segments,
)
from svg_normalizer.units import Viewport

VIEWPORT = Viewport(100.0, 100.0, 12.0, 96.0)


class TransformTests(unittest.TestCase):
    def test_functions_compose_left_to_right(self) -> None:
        matrix = parse_transform('translate(10, 20) scale(2)')
        self.assertEqual(matrix, Transform(2.0, 0.0, 0.0, 2.0, 10.0, 20.0))
        self.assertEqual(matrix.apply(1.0, 1.0), (12.0, 22.0))

    def test_empty_and_malformed(self) -> None:
        self.assertEqual(parse_transform(None), IDENTITY)
        self.assertEqual(parse_transform('  '), IDENTITY)
        self.assertIsNone(parse_transform('translate(10'))
        self.assertIsNone(parse_transform('wobble(3)'))
        self.assertIsNone(parse_transform('matrix(1 2 3)'))

    def test_rotate_around_point(self) -> None:
        x, y = parse_transform('rotate(90 10 10)').apply(20.0, 10.0)
        self.assertAlmostEqual(x, 10.0)
        self.assertAlmostEqual(y, 20.0)

    def test_inverse(self) -> None:
        matrix = Transform(2.0, 0.0, 0.0, 4.0, 10.0, -6.0)
        self.assertEqual(matrix.multiply(matrix.inverse()), IDENTITY)
        with self.assertRaises(ValueError):
            Transform.scale(0.0).inverse()
        self.assertFalse(Transform.scale(0.0, 1.0).is_invertible)


class PathDataTests(unittest.TestCase):
    def test_repeated_close_collapses(self) -> None:
        segments = simplify_segments(parse_path_data('M 10 20 L 10 30 Z Z Z'))
        self.assertEqual(segments, (MoveTo(10.0, 20.0), LineTo(10.0, 30.0), CLOSE_PATH))

    def test_relative_and_implicit_commands(self) -> None:
        segments = parse_path_data('m10 10 10 0 v10 h-10z')
        self.assertEqual(segments, [
            MoveTo(10.0, 10.0), LineTo(20.0, 10.0), LineTo(20.0, 20.0),
            LineTo(10.0, 20.0), CLOSE_PATH,
        ])

    def test_drawing_after_close_starts_a_subpath(self) -> None:
        segments = parse_path_data('M 0 0 L 10 0 Z L 0 10')
        self.assertEqual(segments[3], MoveTo(0.0, 0.0))
        self.assertEqual(segments[4], LineTo(0.0, 10.0))

    def test_number_compaction(self) -> None:
        segments = parse_path_data('M.5.5L-1-1')
        self.assertEqual(segments, [MoveTo(0.5, 0.5), LineTo(-1.0, -1.0)])

    def test_quadratic_becomes_cubic(self) -> None:
        segments = parse_path_data('M 0 0 Q 30 30 60 0')
        self.assertEqual(len(segments), 2)
        curve = segments[1]
        self.assertIsInstance(curve, CurveTo)
        self.assertAlmostEqual(curve.x1, 20.0)
        self.assertAlmostEqual(curve.y1, 20.0)
        self.assertAlmostEqual(curve.x2, 40.0)
        self.assertAlmostEqual(curve.y2, 20.0)
        self.assertEqual((curve.x, curve.y), (60.0, 0.0))

    def test_arc_ends_at_endpoint(self) -> None:
        segments = parse_path_data('M 0 0 A 10 10 0 0 1 20 0')
        self.assertTrue(all(isinstance(s, CurveTo) for s in segments[1:]))
        self.assertAlmostEqual(segments[-1].x, 20.0)
        self.assertAlmostEqual(segments[-1].y, 0.0)

    def test_compact_arc_flags(self) -> None:
        segments = parse_path_data('M0 0a10 10 0 0120 0')
        self.assertAlmostEqual(segments[-1].x, 20.0)

    def test_error_keeps_parsed_prefix(self) -> None:
        segments = parse_path_data('M 10 10 L 20 20 L oops')
        self.assertEqual(segments, [MoveTo(10.0, 10.0), LineTo(20.0, 20.0)])
        self.assertEqual(parse_path_data('L 10 10'), [])

    def test_simplify_move_runs(self) -> None:
        segments = simplify_segments([
            MoveTo(0, 0), MoveTo(5, 5), LineTo(6, 6), CLOSE_PATH, MoveTo(9, 9),
        ])
        self.assertEqual(segments, (MoveTo(5, 5), LineTo(6, 6), CLOSE_PATH))
        self.assertEqual(simplify_segments(segments), segments)


class ShapeTests(unittest.TestCase):
    def shape(self, markup):
        elem = ET.fromstring(markup)
        return shape_to_segments(elem, elem.tag, VIEWPORT)

    def test_rect_is_clockwise_from_top_left(self) -> None:
        self.assertEqual(self.shape('<rect x="1" y="2" width="10" height="20"/>'), (
            MoveTo(1.0, 2.0), LineTo(11.0, 2.0), LineTo(11.0, 22.0), LineTo(1.0, 22.0), CLOSE_PATH,
        ))

    def test_rounded_rect_uses_curves(self) -> None:
        segments = self.shape('<rect width="10" height="10" rx="2"/>')
        self.assertEqual(segments[0], MoveTo(2.0, 0.0))
        self.assertTrue(any(isinstance(s, CurveTo) for s in segments))
        self.assertEqual(segments[-1], CLOSE_PATH)

    def test_degenerate_shapes_have_no_geometry(self) -> None:
        self.assertEqual(self.shape('<rect width="0" height="10"/>'), ())
        self.assertEqual(self.shape('<circle r="-1"/>'), ())
        self.assertEqual(self.shape('<polyline points="5 5"/>'), ())
        self.assertEqual(self.shape('<path d="M 10 10"/>'), ())

    def test_polygon_closes(self) -> None:
        segments = self.shape('<polygon points="0,0 10,0 10,10"/>')
        self.assertEqual(segments[-1], CLOSE_PATH)
        self.assertEqual(len(segments), 4)

    def test_percent_lengths_use_viewport(self) -> None:
        segments = self.shape('<rect width="50%" height="10%"/>')
        self.assertEqual(segments[2], LineTo(50.0, 10.0))

    def test_rect_helper(self) -> None:
        self.assertEqual(len(rect_to_segments(0, 0, 5, 5)), 5)


if __name__ == '__main__':
    unittest.main()
