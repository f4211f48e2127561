"""
Markers.

A <marker> is converted once, in its own content space, and then stamped
onto the vertices of every path that references it. Each instance is the
marker content with a per-vertex transform prepended; the simplifier later
folds the wrapper groups away like any other transparent group.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Union

from .matrix import Transform
from .paths import ClosePath, CurveTo, LineTo, MoveTo
from .tree import Group, prepend_transform
from .units import (
    AXIS_X, AXIS_Y, DEFAULT_ASPECT, AspectRatio, Rect, convert_length,
    parse_aspect_ratio, parse_number, parse_view_box, view_box_transform,
)

logger = logging.getLogger(__name__)

MARKER_PROPERTIES = ('marker-start', 'marker-mid', 'marker-end')

STROKE_WIDTH_UNITS = 'strokeWidth'


@dataclass(frozen=True)
class Marker:
    ref_x: float
    ref_y: float
    width: float
    height: float
    units: str = STROKE_WIDTH_UNITS
    orient: Union[str, float] = 0.0
    view_box: Optional[Rect] = None
    aspect: AspectRatio = DEFAULT_ASPECT
    children: tuple = ()


def _parse_orient(value):
    if value is None:
        return 0.0
    value = value.strip()
    if value in ('auto', 'auto-start-reverse'):
        return value
    if value.endswith('deg'):
        value = value[:-3]
    return parse_number(value, 0.0)


def read_marker(elem, viewport, children):
    """Marker definition from a <marker> element; None when it draws nothing."""
    width = convert_length(elem.get('markerWidth'), AXIS_X, viewport, 3.0)
    height = convert_length(elem.get('markerHeight'), AXIS_Y, viewport, 3.0)
    if width <= 0 or height <= 0:
        logger.debug(f"Marker '{elem.get('id')}' has an empty viewport")
        return None
    if not children:
        return None

    units = elem.get('markerUnits')
    if units != 'userSpaceOnUse':
        units = STROKE_WIDTH_UNITS

    return Marker(
        ref_x=convert_length(elem.get('refX'), AXIS_X, viewport),
        ref_y=convert_length(elem.get('refY'), AXIS_Y, viewport),
        width=width,
        height=height,
        units=units,
        orient=_parse_orient(elem.get('orient')),
        view_box=parse_view_box(elem.get('viewBox')),
        aspect=parse_aspect_ratio(elem.get('preserveAspectRatio')),
        children=children,
    )


# =============================================================================
# VERTICES
# =============================================================================

def _direction(*vectors):
    """First non-zero vector of the candidates, or None."""
    for dx, dy in vectors:
        if abs(dx) > 1e-12 or abs(dy) > 1e-12:
            return dx, dy
    return None


def path_vertices(segments):
    """
    Vertices of a path with their incoming and outgoing directions.

    Returns a list of [x, y, incoming, outgoing]; a direction is an (dx, dy)
    vector or None where the path has none (the ends of open subpaths).
    """
    vertices = []
    current = start = (0.0, 0.0)
    start_index = 0

    for seg in segments:
        if isinstance(seg, MoveTo):
            current = start = (seg.x, seg.y)
            start_index = len(vertices)
            vertices.append([seg.x, seg.y, None, None])

        elif isinstance(seg, LineTo):
            d = _direction((seg.x - current[0], seg.y - current[1]))
            if vertices and vertices[-1][3] is None:
                vertices[-1][3] = d
            vertices.append([seg.x, seg.y, d, None])
            current = (seg.x, seg.y)

        elif isinstance(seg, CurveTo):
            x0, y0 = current
            out = _direction((seg.x1 - x0, seg.y1 - y0), (seg.x2 - x0, seg.y2 - y0),
                             (seg.x - x0, seg.y - y0))
            incoming = _direction((seg.x - seg.x2, seg.y - seg.y2), (seg.x - seg.x1, seg.y - seg.y1),
                                  (seg.x - x0, seg.y - y0))
            if vertices and vertices[-1][3] is None:
                vertices[-1][3] = out
            vertices.append([seg.x, seg.y, incoming, None])
            current = (seg.x, seg.y)

        elif isinstance(seg, ClosePath):
            d = _direction((start[0] - current[0], start[1] - current[1]))
            if d is not None:
                if vertices[-1][3] is None:
                    vertices[-1][3] = d
                vertices.append([start[0], start[1], d, None])
            # The closing vertex continues into the subpath's first segment.
            vertices[-1][3] = vertices[start_index][3]
            current = start

    return vertices


def _angle(vector):
    return math.degrees(math.atan2(vector[1], vector[0]))


def _bisect(incoming, outgoing):
    if incoming is None and outgoing is None:
        return 0.0
    if incoming is None:
        return _angle(outgoing)
    if outgoing is None:
        return _angle(incoming)
    a1 = math.radians(_angle(incoming))
    a2 = math.radians(_angle(outgoing))
    return math.degrees(math.atan2(math.sin(a1) + math.sin(a2), math.cos(a1) + math.cos(a2)))


# =============================================================================
# INSTANCES
# =============================================================================

def marker_transform(marker, x, y, angle, stroke_width):
    """Maps marker content space onto a vertex at (x, y)."""
    matrix = Transform.translate(x, y).multiply(Transform.rotate(angle))
    if marker.units == STROKE_WIDTH_UNITS:
        matrix = matrix.multiply(Transform.scale(stroke_width))

    if marker.view_box is not None:
        vb = Transform(*view_box_transform(marker.view_box, marker.aspect,
                                           marker.width, marker.height))
        ref_x, ref_y = vb.apply(marker.ref_x, marker.ref_y)
        return matrix.multiply(Transform.translate(-ref_x, -ref_y)).multiply(vb)
    return matrix.multiply(Transform.translate(-marker.ref_x, -marker.ref_y))


def _instance(marker, x, y, angle, stroke_width, path_transform):
    matrix = path_transform.multiply(marker_transform(marker, x, y, angle, stroke_width))
    if not matrix.is_invertible:
        return None
    children = tuple(prepend_transform(child, matrix) for child in marker.children)
    return Group(transform=matrix, children=children)


def place_markers(markers, segments, stroke_width, path_transform):
    """
    Marker instances for a path.

    `markers` maps 'marker-start' / 'marker-mid' / 'marker-end' to Marker
    values; missing keys draw nothing. Instances come in drawing order:
    start, mids, end.
    """
    vertices = path_vertices(segments)
    if not vertices:
        return []

    nodes = []
    last = len(vertices) - 1
    for index, (x, y, incoming, outgoing) in enumerate(vertices):
        if index == 0:
            marker = markers.get('marker-start')
        elif index == last:
            marker = markers.get('marker-end')
        else:
            marker = markers.get('marker-mid')
        if marker is None:
            continue

        if isinstance(marker.orient, str):
            angle = _bisect(incoming, outgoing)
            if index == 0 and marker.orient == 'auto-start-reverse':
                angle += 180.0
        else:
            angle = marker.orient

        instance = _instance(marker, x, y, angle, stroke_width, path_transform)
        if instance is not None:
            nodes.append(instance)
    return nodes
