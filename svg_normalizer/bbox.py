"""
Bounding boxes.

Geometry boxes exclude the stroke and are exact for cubic curves. Visual
boxes include the stroke: the outline is flattened and buffered by half
the stroke width with shapely, which honors caps, joins and the miter
limit.
"""

import math
from dataclasses import dataclass

from shapely import affinity
from shapely.geometry import LinearRing, LineString, Point
from shapely.ops import unary_union

from .paths import ClosePath, CurveTo, LineTo, MoveTo, transform_segments


@dataclass(frozen=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self):
        return self.x + self.width

    @property
    def bottom(self):
        return self.y + self.height

    @property
    def is_degenerate(self):
        """True when the box has no area, which object-relative units cannot use."""
        return not (self.width > 0 and self.height > 0)

    @classmethod
    def from_extents(cls, min_x, min_y, max_x, max_y):
        return cls(min_x, min_y, max_x - min_x, max_y - min_y)

    @classmethod
    def from_points(cls, points):
        points = list(points)
        if not points:
            return None
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        return cls.from_extents(min(xs), min(ys), max(xs), max(ys))

    def union(self, other):
        if other is None:
            return self
        return BoundingBox.from_extents(
            min(self.x, other.x), min(self.y, other.y),
            max(self.right, other.right), max(self.bottom, other.bottom),
        )

    def corners(self):
        return [(self.x, self.y), (self.right, self.y),
                (self.right, self.bottom), (self.x, self.bottom)]

    def transform(self, matrix):
        """Axis-aligned box around the transformed corners."""
        return BoundingBox.from_points(matrix.apply(x, y) for x, y in self.corners())


def union_boxes(boxes):
    result = None
    for box in boxes:
        if box is None:
            continue
        result = box if result is None else result.union(box)
    return result


# =============================================================================
# GEOMETRY BOX
# =============================================================================

def _cubic_extrema(p0, p1, p2, p3):
    """Parameter values in (0, 1) where a 1-D cubic Bezier has a local extremum."""
    c0 = p1 - p0
    c1 = p2 - p1
    c2 = p3 - p2
    a = c0 - 2 * c1 + c2
    b = 2 * (c1 - c0)
    c = c0

    roots = []
    if abs(a) < 1e-12:
        if abs(b) > 1e-12:
            roots.append(-c / b)
    else:
        disc = b * b - 4 * a * c
        if disc >= 0:
            sq = math.sqrt(disc)
            roots.append((-b + sq) / (2 * a))
            roots.append((-b - sq) / (2 * a))
    return [t for t in roots if 0 < t < 1]


def _cubic_at(p0, p1, p2, p3, t):
    mt = 1 - t
    return mt * mt * mt * p0 + 3 * mt * mt * t * p1 + 3 * mt * t * t * p2 + t * t * t * p3


def segments_bbox(segments, matrix=None):
    """
    Geometry bounding box of a segment sequence, optionally after a transform.

    Returns None when there is no geometry.
    """
    if matrix is not None and not matrix.is_identity:
        segments = transform_segments(segments, matrix)

    points = []
    last = None
    for seg in segments:
        if isinstance(seg, (MoveTo, LineTo)):
            last = (seg.x, seg.y)
            points.append(last)
        elif isinstance(seg, CurveTo):
            if last is None:
                last = (seg.x1, seg.y1)
            x0, y0 = last
            points.append((seg.x, seg.y))
            for t in _cubic_extrema(x0, seg.x1, seg.x2, seg.x):
                points.append((_cubic_at(x0, seg.x1, seg.x2, seg.x, t),
                               _cubic_at(y0, seg.y1, seg.y2, seg.y, t)))
            for t in _cubic_extrema(y0, seg.y1, seg.y2, seg.y):
                points.append((_cubic_at(x0, seg.x1, seg.x2, seg.x, t),
                               _cubic_at(y0, seg.y1, seg.y2, seg.y, t)))
            last = (seg.x, seg.y)

    return BoundingBox.from_points(points)


# =============================================================================
# VISUAL BOX
# =============================================================================

_CAP_STYLES = {'butt': 'flat', 'round': 'round', 'square': 'square'}
_JOIN_STYLES = {'miter': 'mitre', 'round': 'round', 'bevel': 'bevel'}


def flatten_segments(segments, tolerance):
    """
    Split segments into polylines.

    Returns a list of (points, closed) per subpath; curves are subdivided so
    the chord error stays roughly under `tolerance`.
    """
    subpaths = []
    points = []
    closed = False
    for seg in segments:
        if isinstance(seg, MoveTo):
            if points:
                subpaths.append((points, closed))
            points = [(seg.x, seg.y)]
            closed = False
        elif isinstance(seg, LineTo):
            points.append((seg.x, seg.y))
        elif isinstance(seg, CurveTo):
            x0, y0 = points[-1]
            control_len = (math.hypot(seg.x1 - x0, seg.y1 - y0)
                           + math.hypot(seg.x2 - seg.x1, seg.y2 - seg.y1)
                           + math.hypot(seg.x - seg.x2, seg.y - seg.y2))
            steps = max(2, min(64, int(math.ceil(math.sqrt(control_len / tolerance)))))
            for i in range(1, steps + 1):
                t = i / steps
                points.append((_cubic_at(x0, seg.x1, seg.x2, seg.x, t),
                               _cubic_at(y0, seg.y1, seg.y2, seg.y, t)))
        elif isinstance(seg, ClosePath):
            closed = True
    if points:
        subpaths.append((points, closed))
    return subpaths


def stroke_outline(segments, stroke, tolerance):
    """Shapely geometry covered by the stroke, in the segments' own space."""
    half = stroke.width / 2.0
    cap_style = _CAP_STYLES.get(stroke.linecap, 'flat')
    join_style = _JOIN_STYLES.get(stroke.linejoin, 'mitre')

    geoms = []
    for points, closed in flatten_segments(segments, tolerance):
        distinct = list(dict.fromkeys(points))
        if len(distinct) == 1:
            # A zero-length subpath only paints with round or square caps.
            if cap_style == 'round':
                geoms.append(Point(distinct[0]).buffer(half))
            elif cap_style == 'square':
                geoms.append(Point(distinct[0]).buffer(half, cap_style='square'))
            continue
        if closed and len(distinct) >= 3:
            line = LinearRing(points)
        else:
            line = LineString(points)
        geoms.append(line.buffer(half, cap_style=cap_style, join_style=join_style,
                                 mitre_limit=stroke.miterlimit))

    if not geoms:
        return None
    return unary_union(geoms)


def stroked_bbox(segments, stroke, matrix, tolerance):
    """
    Visual (stroke-inclusive) bounding box of segments in canvas space.

    Falls back to the geometry box when the stroke covers nothing.
    """
    outline = stroke_outline(segments, stroke, tolerance)
    if outline is None or outline.is_empty:
        return segments_bbox(segments, matrix)
    a, b, c, d, e, f = matrix
    outline = affinity.affine_transform(outline, [a, c, b, d, e, f])
    min_x, min_y, max_x, max_y = outline.bounds
    return BoundingBox.from_extents(min_x, min_y, max_x, max_y)
