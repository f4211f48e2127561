"""
Numbers, lengths and viewport mapping.
"""

import math
import re
from typing import NamedTuple, Optional

NUMBER_PATTERN = r'[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?'
NUMBER_RE = re.compile(NUMBER_PATTERN)
LENGTH_RE = re.compile(r'\s*(' + NUMBER_PATTERN + r')\s*(px|pt|pc|in|cm|mm|em|ex|%)?\s*$')

# Axis a length is measured along, used for percentages.
AXIS_X = 'x'
AXIS_Y = 'y'
AXIS_OTHER = 'other'


class Length(NamedTuple):
    number: float
    unit: str = ''


class Rect(NamedTuple):
    x: float
    y: float
    width: float
    height: float


class Viewport(NamedTuple):
    """Reference values needed to turn lengths into user units."""
    width: float
    height: float
    font_size: float
    dpi: float


def parse_number(text, default=None):
    """Parse a plain number; returns default on anything else."""
    if text is None:
        return default
    try:
        value = float(text.strip())
    except (ValueError, AttributeError):
        return default
    if not math.isfinite(value):
        return default
    return value


def parse_length(text):
    """Parse '12', '1.5mm', '50%'... into a Length, or None when invalid."""
    if text is None:
        return None
    match = LENGTH_RE.match(text)
    if not match:
        return None
    return Length(float(match.group(1)), match.group(2) or '')


def to_user_units(length, axis, viewport):
    """Convert a Length into user units against the given viewport."""
    number, unit = length
    if unit in ('', 'px'):
        return number
    if unit == '%':
        if axis == AXIS_X:
            ref = viewport.width
        elif axis == AXIS_Y:
            ref = viewport.height
        else:
            ref = math.sqrt((viewport.width ** 2 + viewport.height ** 2) / 2.0)
        return number * ref / 100.0
    if unit == 'em':
        return number * viewport.font_size
    if unit == 'ex':
        return number * viewport.font_size / 2.0
    if unit == 'in':
        return number * viewport.dpi
    if unit == 'cm':
        return number * viewport.dpi / 2.54
    if unit == 'mm':
        return number * viewport.dpi / 25.4
    if unit == 'pt':
        return number * viewport.dpi / 72.0
    if unit == 'pc':
        return number * viewport.dpi / 6.0
    return number


def convert_length(text, axis, viewport, default=0.0):
    """Parse and convert an attribute value, falling back to default."""
    length = parse_length(text)
    if length is None:
        return default
    return to_user_units(length, axis, viewport)


def convert_fraction(text, default):
    """
    Parse a coordinate expressed in objectBoundingBox units.

    Plain numbers are fractions already and percentages are divided by 100;
    absolute units make no sense there and are read as plain numbers.
    """
    length = parse_length(text)
    if length is None:
        return default
    number, unit = length
    if unit == '%':
        return number / 100.0
    return number


def parse_number_list(text):
    """Split a comma/whitespace separated number list. None when malformed."""
    if text is None:
        return []
    stripped = re.sub(r'[\s,]+', ' ', text).strip()
    if not stripped:
        return []
    try:
        return [float(n) for n in stripped.split(' ')]
    except ValueError:
        return None


def parse_opacity(text, default=1.0):
    """Opacity as a number or percentage, clamped to [0, 1]."""
    length = parse_length(text)
    if length is None or length.unit not in ('', '%'):
        return default
    value = length.number / 100.0 if length.unit == '%' else length.number
    return min(1.0, max(0.0, value))


def parse_view_box(text) -> Optional[Rect]:
    """Parse a viewBox attribute; None unless width and height are positive."""
    nums = parse_number_list(text)
    if not nums or len(nums) != 4:
        return None
    rect = Rect(*nums)
    if rect.width <= 0 or rect.height <= 0:
        return None
    return rect


# =============================================================================
# PRESERVE ASPECT RATIO
# =============================================================================

class AspectRatio(NamedTuple):
    align: str = 'xMidYMid'
    slice: bool = False

    def __str__(self):
        return self.align + (' slice' if self.slice else '')


DEFAULT_ASPECT = AspectRatio()

_ALIGNS = {
    'none', 'xMinYMin', 'xMidYMin', 'xMaxYMin', 'xMinYMid', 'xMidYMid',
    'xMaxYMid', 'xMinYMax', 'xMidYMax', 'xMaxYMax',
}


def parse_aspect_ratio(text):
    if not text:
        return DEFAULT_ASPECT
    parts = text.split()
    if parts and parts[0] == 'defer':
        parts = parts[1:]
    if not parts or parts[0] not in _ALIGNS:
        return DEFAULT_ASPECT
    slice_ = len(parts) > 1 and parts[1] == 'slice'
    return AspectRatio(parts[0], slice_)


def view_box_transform(view_box, aspect, width, height):
    """
    Matrix mapping a viewBox onto a width x height viewport.

    Returns the six matrix values (a, b, c, d, e, f).
    """
    sx = width / view_box.width
    sy = height / view_box.height

    if aspect.align == 'none':
        return (sx, 0.0, 0.0, sy, -view_box.x * sx, -view_box.y * sy)

    s = max(sx, sy) if aspect.slice else min(sx, sy)
    dx = -view_box.x * s
    dy = -view_box.y * s
    extra_w = width - view_box.width * s
    extra_h = height - view_box.height * s

    if 'xMid' in aspect.align:
        dx += extra_w / 2.0
    elif 'xMax' in aspect.align:
        dx += extra_w
    if 'YMid' in aspect.align:
        dy += extra_h / 2.0
    elif 'YMax' in aspect.align:
        dy += extra_h

    return (s, 0.0, 0.0, s, dx, dy)
