"""
Style resolution.

Computes an element's effective presentation properties from its parent's
effective style, its presentation attributes and its inline style
attribute. The result is an immutable value passed down to the children;
nothing here touches the document.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .units import Viewport, parse_length, to_user_units, AXIS_OTHER

# Properties that flow from parent to child unless overridden.
INHERITED = frozenset({
    'fill', 'fill-opacity', 'fill-rule',
    'stroke', 'stroke-width', 'stroke-opacity', 'stroke-linecap',
    'stroke-linejoin', 'stroke-miterlimit', 'stroke-dasharray',
    'stroke-dashoffset',
    'font-family', 'font-size', 'font-weight', 'font-style', 'text-anchor',
    'visibility', 'color', 'clip-rule',
    'marker-start', 'marker-mid', 'marker-end',
})

# Properties that apply to the element itself only.
NON_INHERITED = frozenset({
    'opacity', 'clip-path', 'mask', 'filter', 'display',
    'stop-color', 'stop-opacity',
})

PROPERTIES = INHERITED | NON_INHERITED

_FONT_SIZE_KEYWORDS = {
    'xx-small': 3.0 / 5.0,
    'x-small': 3.0 / 4.0,
    'small': 8.0 / 9.0,
    'medium': 1.0,
    'large': 6.0 / 5.0,
    'x-large': 3.0 / 2.0,
    'xx-large': 2.0,
}


def _frozen(mapping):
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class ComputedStyle:
    """Effective style of one element."""
    inherited: Mapping[str, str] = field(default_factory=lambda: _frozen({}))
    local: Mapping[str, str] = field(default_factory=lambda: _frozen({}))
    medium_font_size: float = 12.0
    dpi: float = 96.0

    def get(self, name, default=None):
        if name in self.local:
            return self.local[name]
        return self.inherited.get(name, default)

    @property
    def font_size(self):
        return float(self.inherited.get('font-size', self.medium_font_size))

    @property
    def font_family(self):
        return self.inherited.get('font-family', '')

    def viewport(self, width, height):
        return Viewport(width, height, self.font_size, self.dpi)


def initial_style(options):
    """Style of the (virtual) parent of the root element."""
    return ComputedStyle(
        inherited=_frozen({
            'font-family': options.font_family,
            'font-size': repr(options.font_size),
        }),
        medium_font_size=options.font_size,
        dpi=options.dpi,
    )


def parse_style_attribute(text):
    """
    Parse an inline style attribute into {property: value}.

    Unknown properties are kept; the resolver filters them.
    """
    declarations = {}
    if not text:
        return declarations
    for item in text.split(';'):
        if ':' not in item:
            continue
        key, value = item.split(':', 1)
        key = key.strip().lower()
        value = value.strip()
        if value.endswith('!important'):
            value = value[:-len('!important')].strip()
        if key and value:
            declarations[key] = value
    return declarations


def _declared_properties(elem):
    declared = {}
    for name, value in elem.attrib.items():
        if name in PROPERTIES or name == 'marker':
            declared[name] = value.strip()
    declared.update(parse_style_attribute(elem.get('style')))

    # 'marker' is a shorthand; only the style form is valid, but
    # authoring tools emit the attribute form too.
    marker = declared.pop('marker', None)
    if marker is not None:
        for name in ('marker-start', 'marker-mid', 'marker-end'):
            declared.setdefault(name, marker)

    return {k: v for k, v in declared.items() if k in PROPERTIES}


def _compute_font_size(value, parent):
    parent_size = parent.font_size
    if value in _FONT_SIZE_KEYWORDS:
        return parent.medium_font_size * _FONT_SIZE_KEYWORDS[value]
    if value == 'larger':
        return parent_size * 1.2
    if value == 'smaller':
        return parent_size / 1.2
    length = parse_length(value)
    if length is None:
        return None
    if length.unit == '%':
        return parent_size * length.number / 100.0
    viewport = Viewport(parent_size, parent_size, parent_size, parent.dpi)
    return to_user_units(length, AXIS_OTHER, viewport)


def resolve_style(elem, parent):
    """
    Effective style of `elem` given its parent's effective style.

    Priority, lowest first: inherited value, presentation attribute, inline
    style declaration. 'inherit' copies the parent's value explicitly, which
    is the only way a non-inherited property reaches a child.
    """
    inherited = dict(parent.inherited)
    local = {}

    for name, value in _declared_properties(elem).items():
        if value == 'inherit':
            parent_value = parent.get(name)
            if name in NON_INHERITED and parent_value is not None:
                local[name] = parent_value
            continue

        if name == 'font-size':
            size = _compute_font_size(value, parent)
            if size is None or size < 0:
                continue
            value = repr(size)

        if name in INHERITED:
            inherited[name] = value
        else:
            local[name] = value

    return ComputedStyle(_frozen(inherited), _frozen(local), parent.medium_font_size, parent.dpi)


def resolve_style_chain(document, elem, options, cache=None):
    """
    Effective style of an element out of tree-walk order.

    Definitions (patterns, markers, clip paths) take their style from their
    own ancestors, not from whatever references them.
    """
    style = initial_style(options)
    for node in document.ancestors(elem) + [elem]:
        if cache is not None and node in cache:
            style = cache[node]
            continue
        style = resolve_style(node, style)
        if cache is not None:
            cache[node] = style
    return style
