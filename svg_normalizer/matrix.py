"""
Affine transforms.

A transform is stored as the six SVG matrix values [a, b, c, d, e, f]:

    | a  c  e |
    | b  d  f |
    | 0  0  1 |
"""

import math
import re
from typing import NamedTuple

from .units import NUMBER_RE


class Transform(NamedTuple):
    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @classmethod
    def translate(cls, tx, ty=0.0):
        return cls(1.0, 0.0, 0.0, 1.0, tx, ty)

    @classmethod
    def scale(cls, sx, sy=None):
        return cls(sx, 0.0, 0.0, sx if sy is None else sy, 0.0, 0.0)

    @classmethod
    def rotate(cls, angle_deg, cx=0.0, cy=0.0):
        """Rotation around (cx, cy)."""
        rad = math.radians(angle_deg)
        cos_a = math.cos(rad)
        sin_a = math.sin(rad)
        return cls(cos_a, sin_a, -sin_a, cos_a,
                   cx - cos_a * cx + sin_a * cy,
                   cy - sin_a * cx - cos_a * cy)

    @property
    def is_identity(self):
        return self == IDENTITY

    @property
    def is_invertible(self):
        det = self.a * self.d - self.b * self.c
        return math.isfinite(det) and abs(det) > 1e-12

    def multiply(self, other):
        """
        Compose two transforms.

        Result = self x other, so `other` is applied first. Composing a
        parent's absolute transform with a child's local one is
        parent.multiply(child).
        """
        a1, b1, c1, d1, e1, f1 = self
        a2, b2, c2, d2, e2, f2 = other
        return Transform(
            a1 * a2 + c1 * b2,
            b1 * a2 + d1 * b2,
            a1 * c2 + c1 * d2,
            b1 * c2 + d1 * d2,
            a1 * e2 + c1 * f2 + e1,
            b1 * e2 + d1 * f2 + f1,
        )

    def apply(self, x, y):
        """Transform a point (x, y)."""
        return (self.a * x + self.c * y + self.e,
                self.b * x + self.d * y + self.f)

    def inverse(self):
        a, b, c, d, e, f = self
        det = a * d - b * c
        if not self.is_invertible:
            raise ValueError(f"transform {tuple(self)} is not invertible")
        return Transform(
            d / det,
            -b / det,
            -c / det,
            a / det,
            (c * f - d * e) / det,
            (b * e - a * f) / det,
        )

    def scale_factors(self):
        """Approximate (scale_x, scale_y) of the transform."""
        return math.hypot(self.a, self.b), math.hypot(self.c, self.d)

    def mean_scale(self):
        """Single scale factor for lengths that are not tied to an axis, like stroke width."""
        return math.sqrt(abs(self.a * self.d - self.b * self.c))


IDENTITY = Transform()


# =============================================================================
# TRANSFORM PARSING
# =============================================================================

_FUNCTION_RE = re.compile(r'\s*,?\s*(matrix|translate|scale|rotate|skewX|skewY)\s*\(([^)]*)\)\s*')


def parse_transform(text):
    """
    Parse an SVG transform attribute into a single composed transform.

    Functions are composed left to right, so the rightmost one is applied
    to the element first. Returns None when the list is malformed; callers
    treat that as "no valid transform".
    """
    if text is None:
        return IDENTITY
    text = text.strip()
    if not text:
        return IDENTITY

    result = IDENTITY
    pos = 0
    while pos < len(text):
        match = _FUNCTION_RE.match(text, pos)
        if not match:
            return None
        pos = match.end()

        name = match.group(1)
        nums = [float(n) for n in NUMBER_RE.findall(match.group(2))]

        if name == 'matrix':
            if len(nums) != 6:
                return None
            m = Transform(*nums)
        elif name == 'translate':
            if len(nums) not in (1, 2):
                return None
            m = Transform.translate(*nums)
        elif name == 'scale':
            if len(nums) not in (1, 2):
                return None
            m = Transform.scale(*nums)
        elif name == 'rotate':
            if len(nums) == 1:
                m = Transform.rotate(nums[0])
            elif len(nums) == 3:
                m = Transform.rotate(*nums)
            else:
                return None
        elif name == 'skewX':
            if len(nums) != 1:
                return None
            m = Transform(1.0, 0.0, math.tan(math.radians(nums[0])), 1.0, 0.0, 0.0)
        else:
            if len(nums) != 1:
                return None
            m = Transform(1.0, math.tan(math.radians(nums[0])), 0.0, 1.0, 0.0, 0.0)

        result = result.multiply(m)

    return result
