"""
svg_normalizer: turn SVG documents into flat, fully resolved render trees.

    from svg_normalizer import from_markup, to_svg

    tree = from_markup(open('drawing.svg').read())
    for node in tree.descendants():
        ...
    print(to_svg(tree))
"""

from .convert import from_file, from_markup, normalize
from .document import Document
from .errors import InvalidRootError, InvalidSizeError, NormalizeError, OptionsError, ParseError
from .options import Options
from .serialize import write_svg as to_svg
from .tree import (
    ClipPath, DefKind, Fill, Filter, Group, Image, LinearGradient,
    LinearGradientRef, Mask, NodeKind, Path, Pattern, PatternRef,
    RadialGradient, RadialGradientRef, Stroke, Text, Tree,
)
from .version import __version__

__all__ = [
    'normalize', 'from_markup', 'from_file', 'to_svg',
    'Document', 'Options', 'Tree',
    'NormalizeError', 'ParseError', 'InvalidRootError', 'InvalidSizeError', 'OptionsError',
    'NodeKind', 'Group', 'Path', 'Text', 'Image', 'Fill', 'Stroke',
    'LinearGradientRef', 'RadialGradientRef', 'PatternRef',
    'DefKind', 'LinearGradient', 'RadialGradient', 'Pattern', 'ClipPath', 'Mask', 'Filter',
    '__version__',
]
