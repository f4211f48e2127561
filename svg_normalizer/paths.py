"""
Geometry normalization.

Every shape element becomes a sequence of absolute MoveTo / LineTo /
CurveTo / ClosePath segments. Quadratic curves and elliptical arcs are
converted to cubics, so backends only ever see these four commands.
"""

import logging
import math
from dataclasses import dataclass

from .units import (
    AXIS_OTHER, AXIS_X, AXIS_Y, NUMBER_RE, convert_length, parse_length,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SEGMENTS
# =============================================================================

@dataclass(frozen=True)
class MoveTo:
    x: float
    y: float


@dataclass(frozen=True)
class LineTo:
    x: float
    y: float


@dataclass(frozen=True)
class CurveTo:
    x1: float
    y1: float
    x2: float
    y2: float
    x: float
    y: float


@dataclass(frozen=True)
class ClosePath:
    pass


CLOSE_PATH = ClosePath()


def transform_segments(segments, matrix):
    """Apply a transform to every coordinate of a segment sequence."""
    result = []
    for seg in segments:
        if isinstance(seg, MoveTo):
            result.append(MoveTo(*matrix.apply(seg.x, seg.y)))
        elif isinstance(seg, LineTo):
            result.append(LineTo(*matrix.apply(seg.x, seg.y)))
        elif isinstance(seg, CurveTo):
            x1, y1 = matrix.apply(seg.x1, seg.y1)
            x2, y2 = matrix.apply(seg.x2, seg.y2)
            x, y = matrix.apply(seg.x, seg.y)
            result.append(CurveTo(x1, y1, x2, y2, x, y))
        else:
            result.append(seg)
    return tuple(result)


def simplify_segments(segments):
    """
    Canonicalize a segment sequence.

    - a run of ClosePath collapses to a single ClosePath
    - a ClosePath right after a MoveTo closes nothing and is dropped
    - consecutive MoveTo keep only the last one
    - a trailing MoveTo is dropped

    Applying it twice gives the same result as applying it once.
    """
    result = []
    for seg in segments:
        if isinstance(seg, ClosePath):
            if not result or isinstance(result[-1], (ClosePath, MoveTo)):
                continue
        elif isinstance(seg, MoveTo):
            if result and isinstance(result[-1], MoveTo):
                result.pop()
        result.append(seg)

    while result and isinstance(result[-1], MoveTo):
        result.pop()

    return tuple(result)


# =============================================================================
# ARCS
# =============================================================================

def arc_to_cubics(x0, y0, rx, ry, x_axis_rotation, large_arc, sweep, x, y):
    """
    Approximate an SVG elliptical arc with cubic curves.

    Endpoint-to-center conversion follows the SVG implementation notes;
    each piece spans at most a quarter turn. Returns a list of CurveTo.
    """
    rx, ry = abs(rx), abs(ry)
    if (x0 == x and y0 == y) or rx == 0 or ry == 0:
        return []

    phi = math.radians(x_axis_rotation % 360.0)
    cos_phi, sin_phi = math.cos(phi), math.sin(phi)

    dx2 = (x0 - x) / 2.0
    dy2 = (y0 - y) / 2.0
    x1p = cos_phi * dx2 + sin_phi * dy2
    y1p = -sin_phi * dx2 + cos_phi * dy2

    # Scale up radii that are too small to reach the endpoint.
    lam = (x1p / rx) ** 2 + (y1p / ry) ** 2
    if lam > 1:
        s = math.sqrt(lam)
        rx *= s
        ry *= s

    num = rx * rx * ry * ry - rx * rx * y1p * y1p - ry * ry * x1p * x1p
    den = rx * rx * y1p * y1p + ry * ry * x1p * x1p
    coef = math.sqrt(max(0.0, num / den)) if den else 0.0
    if large_arc == sweep:
        coef = -coef
    cxp = coef * rx * y1p / ry
    cyp = -coef * ry * x1p / rx

    cx = cos_phi * cxp - sin_phi * cyp + (x0 + x) / 2.0
    cy = sin_phi * cxp + cos_phi * cyp + (y0 + y) / 2.0

    def angle(ux, uy, vx, vy):
        a = math.atan2(ux * vy - uy * vx, ux * vx + uy * vy)
        return a

    theta1 = angle(1.0, 0.0, (x1p - cxp) / rx, (y1p - cyp) / ry)
    delta = angle((x1p - cxp) / rx, (y1p - cyp) / ry, (-x1p - cxp) / rx, (-y1p - cyp) / ry)
    if not sweep and delta > 0:
        delta -= 2 * math.pi
    elif sweep and delta < 0:
        delta += 2 * math.pi

    count = max(1, int(math.ceil(abs(delta) / (math.pi / 2) - 1e-9)))
    step = delta / count
    alpha = 4.0 / 3.0 * math.tan(step / 4.0)

    def point(t):
        px, py = rx * math.cos(t), ry * math.sin(t)
        return (cos_phi * px - sin_phi * py + cx,
                sin_phi * px + cos_phi * py + cy)

    def derivative(t):
        px, py = -rx * math.sin(t), ry * math.cos(t)
        return (cos_phi * px - sin_phi * py,
                sin_phi * px + cos_phi * py)

    curves = []
    t1 = theta1
    for i in range(count):
        t2 = t1 + step
        p1x, p1y = point(t1)
        p2x, p2y = point(t2)
        d1x, d1y = derivative(t1)
        d2x, d2y = derivative(t2)
        if i == count - 1:
            p2x, p2y = x, y
        curves.append(CurveTo(p1x + alpha * d1x, p1y + alpha * d1y,
                              p2x - alpha * d2x, p2y - alpha * d2y,
                              p2x, p2y))
        t1 = t2
    return curves


# =============================================================================
# PATH DATA PARSING
# =============================================================================

_COMMANDS = set('MmZzLlHhVvCcSsQqTtAa')


class _PathDataError(ValueError):
    pass


class _Lexer:
    def __init__(self, text):
        self.text = text
        self.pos = 0

    def skip_separators(self):
        text = self.text
        while self.pos < len(text) and text[self.pos] in ' \t\r\n,':
            self.pos += 1

    @property
    def at_end(self):
        self.skip_separators()
        return self.pos >= len(self.text)

    def peek(self):
        self.skip_separators()
        return self.text[self.pos] if self.pos < len(self.text) else ''

    def number(self):
        self.skip_separators()
        match = NUMBER_RE.match(self.text, self.pos)
        if not match:
            raise _PathDataError(f"expected a number at offset {self.pos}")
        self.pos = match.end()
        return float(match.group(0))

    def flag(self):
        # Flags are single characters and are often written without separators.
        self.skip_separators()
        ch = self.text[self.pos:self.pos + 1]
        if ch not in ('0', '1'):
            raise _PathDataError(f"expected an arc flag at offset {self.pos}")
        self.pos += 1
        return ch == '1'


def parse_path_data(text):
    """
    Parse an SVG path 'd' attribute into absolute segments.

    Parsing stops at the first error; everything before it is kept, which
    is how SVG renderers treat broken path data.
    """
    segments = []
    if not text:
        return segments

    lexer = _Lexer(text)
    cmd = None
    cur_x = cur_y = 0.0
    start_x = start_y = 0.0
    prev_cubic_ctrl = None
    prev_quad_ctrl = None
    closed = False

    def line_to(x, y):
        nonlocal closed
        if closed:
            segments.append(MoveTo(cur_x, cur_y))
            closed = False
        segments.append(LineTo(x, y))

    def curve_to(x1, y1, x2, y2, x, y):
        nonlocal closed
        if closed:
            segments.append(MoveTo(cur_x, cur_y))
            closed = False
        segments.append(CurveTo(x1, y1, x2, y2, x, y))

    try:
        while not lexer.at_end:
            ch = lexer.peek()
            if ch in _COMMANDS:
                cmd = ch
                lexer.pos += 1
            elif cmd is None:
                raise _PathDataError(f"path data must start with a command, got {ch!r}")
            elif cmd in 'Zz':
                raise _PathDataError("'Z' takes no arguments")
            elif cmd == 'M':
                cmd = 'L'
            elif cmd == 'm':
                cmd = 'l'

            if not segments and cmd not in 'Mm':
                raise _PathDataError("path data must start with 'M'")

            lower = cmd.lower()
            relative = cmd.islower()
            ox, oy = (cur_x, cur_y) if relative else (0.0, 0.0)

            if lower == 'z':
                if segments:
                    segments.append(CLOSE_PATH)
                cur_x, cur_y = start_x, start_y
                closed = True
                prev_cubic_ctrl = prev_quad_ctrl = None
                continue

            if lower == 'm':
                x, y = lexer.number() + ox, lexer.number() + oy
                segments.append(MoveTo(x, y))
                cur_x, cur_y = start_x, start_y = x, y
                closed = False
                prev_cubic_ctrl = prev_quad_ctrl = None
                continue

            if lower == 'l':
                x, y = lexer.number() + ox, lexer.number() + oy
                line_to(x, y)
                cur_x, cur_y = x, y
                prev_cubic_ctrl = prev_quad_ctrl = None

            elif lower == 'h':
                x = lexer.number() + ox
                line_to(x, cur_y)
                cur_x = x
                prev_cubic_ctrl = prev_quad_ctrl = None

            elif lower == 'v':
                y = lexer.number() + oy
                line_to(cur_x, y)
                cur_y = y
                prev_cubic_ctrl = prev_quad_ctrl = None

            elif lower == 'c':
                x1, y1 = lexer.number() + ox, lexer.number() + oy
                x2, y2 = lexer.number() + ox, lexer.number() + oy
                x, y = lexer.number() + ox, lexer.number() + oy
                curve_to(x1, y1, x2, y2, x, y)
                prev_cubic_ctrl = (x2, y2)
                prev_quad_ctrl = None
                cur_x, cur_y = x, y

            elif lower == 's':
                x2, y2 = lexer.number() + ox, lexer.number() + oy
                x, y = lexer.number() + ox, lexer.number() + oy
                if prev_cubic_ctrl is not None:
                    x1, y1 = 2 * cur_x - prev_cubic_ctrl[0], 2 * cur_y - prev_cubic_ctrl[1]
                else:
                    x1, y1 = cur_x, cur_y
                curve_to(x1, y1, x2, y2, x, y)
                prev_cubic_ctrl = (x2, y2)
                prev_quad_ctrl = None
                cur_x, cur_y = x, y

            elif lower in ('q', 't'):
                if lower == 'q':
                    qx, qy = lexer.number() + ox, lexer.number() + oy
                elif prev_quad_ctrl is not None:
                    qx, qy = 2 * cur_x - prev_quad_ctrl[0], 2 * cur_y - prev_quad_ctrl[1]
                else:
                    qx, qy = cur_x, cur_y
                x, y = lexer.number() + ox, lexer.number() + oy
                curve_to(cur_x + 2.0 / 3.0 * (qx - cur_x), cur_y + 2.0 / 3.0 * (qy - cur_y),
                         x + 2.0 / 3.0 * (qx - x), y + 2.0 / 3.0 * (qy - y),
                         x, y)
                prev_quad_ctrl = (qx, qy)
                prev_cubic_ctrl = None
                cur_x, cur_y = x, y

            else:
                rx, ry = lexer.number(), lexer.number()
                rotation = lexer.number()
                large_arc, sweep = lexer.flag(), lexer.flag()
                x, y = lexer.number() + ox, lexer.number() + oy
                if rx == 0 or ry == 0:
                    line_to(x, y)
                else:
                    for curve in arc_to_cubics(cur_x, cur_y, rx, ry, rotation, large_arc, sweep, x, y):
                        curve_to(curve.x1, curve.y1, curve.x2, curve.y2, curve.x, curve.y)
                prev_cubic_ctrl = prev_quad_ctrl = None
                cur_x, cur_y = x, y

    except _PathDataError as e:
        logger.debug(f"Path data truncated: {e}")

    return segments


# =============================================================================
# SHAPES
# =============================================================================

KAPPA = 0.5522847498307936  # 4/3 * (sqrt(2) - 1)

SHAPE_TAGS = frozenset({'rect', 'circle', 'ellipse', 'line', 'polyline', 'polygon', 'path'})


def rect_to_segments(x, y, w, h, rx=0.0, ry=0.0):
    """Closed rectangle from the top-left corner, clockwise."""
    if rx <= 0 or ry <= 0:
        return (
            MoveTo(x, y),
            LineTo(x + w, y),
            LineTo(x + w, y + h),
            LineTo(x, y + h),
            CLOSE_PATH,
        )

    segments = [MoveTo(x + rx, y), LineTo(x + w - rx, y)]
    segments.extend(arc_to_cubics(x + w - rx, y, rx, ry, 0, False, True, x + w, y + ry))
    segments.append(LineTo(x + w, y + h - ry))
    segments.extend(arc_to_cubics(x + w, y + h - ry, rx, ry, 0, False, True, x + w - rx, y + h))
    segments.append(LineTo(x + rx, y + h))
    segments.extend(arc_to_cubics(x + rx, y + h, rx, ry, 0, False, True, x, y + h - ry))
    segments.append(LineTo(x, y + ry))
    segments.extend(arc_to_cubics(x, y + ry, rx, ry, 0, False, True, x + rx, y))
    segments.append(CLOSE_PATH)
    return tuple(segments)


def ellipse_to_segments(cx, cy, rx, ry):
    """Closed ellipse from four cubic quarter arcs, starting at the rightmost point."""
    kx, ky = rx * KAPPA, ry * KAPPA
    return (
        MoveTo(cx + rx, cy),
        CurveTo(cx + rx, cy + ky, cx + kx, cy + ry, cx, cy + ry),
        CurveTo(cx - kx, cy + ry, cx - rx, cy + ky, cx - rx, cy),
        CurveTo(cx - rx, cy - ky, cx - kx, cy - ry, cx, cy - ry),
        CurveTo(cx + kx, cy - ry, cx + rx, cy - ky, cx + rx, cy),
        CLOSE_PATH,
    )


def parse_points(text):
    """Parse a points attribute into (x, y) pairs; an odd trailing number is dropped."""
    if not text:
        return []
    nums = [float(n) for n in NUMBER_RE.findall(text)]
    return [(nums[i], nums[i + 1]) for i in range(0, len(nums) - 1, 2)]


def _rect_radii(elem, viewport, w, h):
    rx_len = parse_length(elem.get('rx'))
    ry_len = parse_length(elem.get('ry'))
    rx = convert_length(elem.get('rx'), AXIS_X, viewport) if rx_len else None
    ry = convert_length(elem.get('ry'), AXIS_Y, viewport) if ry_len else None
    if rx is not None and rx < 0:
        rx = None
    if ry is not None and ry < 0:
        ry = None
    if rx is None and ry is None:
        return 0.0, 0.0
    if rx is None:
        rx = ry
    if ry is None:
        ry = rx
    return min(rx, w / 2.0), min(ry, h / 2.0)


def shape_to_segments(elem, tag, viewport):
    """
    Convert a shape element to simplified segments.

    Returns an empty tuple for shapes that produce no geometry (zero size,
    missing points or data); callers drop those elements.
    """
    if tag == 'rect':
        w = convert_length(elem.get('width'), AXIS_X, viewport)
        h = convert_length(elem.get('height'), AXIS_Y, viewport)
        if w <= 0 or h <= 0:
            logger.debug(f"Skipping rect with invalid size {w}x{h}")
            return ()
        x = convert_length(elem.get('x'), AXIS_X, viewport)
        y = convert_length(elem.get('y'), AXIS_Y, viewport)
        rx, ry = _rect_radii(elem, viewport, w, h)
        segments = rect_to_segments(x, y, w, h, rx, ry)

    elif tag == 'circle':
        r = convert_length(elem.get('r'), AXIS_OTHER, viewport)
        if r <= 0:
            return ()
        cx = convert_length(elem.get('cx'), AXIS_X, viewport)
        cy = convert_length(elem.get('cy'), AXIS_Y, viewport)
        segments = ellipse_to_segments(cx, cy, r, r)

    elif tag == 'ellipse':
        rx = convert_length(elem.get('rx'), AXIS_X, viewport)
        ry = convert_length(elem.get('ry'), AXIS_Y, viewport)
        if rx <= 0 or ry <= 0:
            return ()
        cx = convert_length(elem.get('cx'), AXIS_X, viewport)
        cy = convert_length(elem.get('cy'), AXIS_Y, viewport)
        segments = ellipse_to_segments(cx, cy, rx, ry)

    elif tag == 'line':
        x1 = convert_length(elem.get('x1'), AXIS_X, viewport)
        y1 = convert_length(elem.get('y1'), AXIS_Y, viewport)
        x2 = convert_length(elem.get('x2'), AXIS_X, viewport)
        y2 = convert_length(elem.get('y2'), AXIS_Y, viewport)
        segments = (MoveTo(x1, y1), LineTo(x2, y2))

    elif tag in ('polyline', 'polygon'):
        points = parse_points(elem.get('points'))
        if len(points) < 2:
            return ()
        segments = [MoveTo(*points[0])]
        segments.extend(LineTo(x, y) for x, y in points[1:])
        if tag == 'polygon':
            segments.append(CLOSE_PATH)

    elif tag == 'path':
        segments = parse_path_data(elem.get('d'))

    else:
        return ()

    segments = simplify_segments(segments)
    if len(segments) < 2:
        return ()
    return segments
