"""
Definition resolution.

Gradients, patterns, clip paths, masks, filters and markers are looked up
by id on demand. Results are memoized per id; an id that is requested
again while it is still being resolved (a pattern painting itself, a clip
path clipped by itself, A -> B -> A chains) resolves to ABSENT for that
one link instead of recursing.
"""

import logging

from .colors import BLACK, parse_color
from .document import get_attr, parse_iri, tag_name
from .markers import read_marker
from .matrix import IDENTITY, parse_transform
from .style import resolve_style_chain
from .tree import (
    OBJECT_BBOX, USER_SPACE, ClipPath, Filter, FilterPrimitive, LinearGradient,
    Mask, Pattern, RadialGradient, Stop,
)
from .units import (
    AXIS_OTHER, AXIS_X, AXIS_Y, Rect, convert_fraction, convert_length,
    parse_aspect_ratio, parse_length, parse_opacity, parse_view_box,
)

logger = logging.getLogger(__name__)


class _Absent:
    """Marker for a definition that could not be resolved."""

    def __bool__(self):
        return False

    def __repr__(self):
        return 'ABSENT'


ABSENT = _Absent()

GRADIENT_TAGS = ('linearGradient', 'radialGradient')
PAINT_SERVER_TAGS = GRADIENT_TAGS + ('pattern',)

_SPREAD_METHODS = ('pad', 'reflect', 'repeat')


def parse_func_iri(value):
    """'url(#id)' -> 'id', else None."""
    if not value:
        return None
    value = value.strip()
    if not value.startswith('url(') or ')' not in value:
        return None
    inner = value[4:value.index(')')].strip().strip('\'"')
    return parse_iri(inner)


def _units(value, default):
    if value == USER_SPACE:
        return USER_SPACE
    if value == OBJECT_BBOX:
        return OBJECT_BBOX
    return default


def _fraction_or_length(value, units, axis, viewport, default):
    """Coordinate of a def: a fraction in objectBoundingBox units, a length otherwise."""
    if units == OBJECT_BBOX:
        return convert_fraction(value, default)
    length = parse_length(value)
    if length is None:
        # Defaults are given as fractions of the viewport.
        ref = {AXIS_X: viewport.width, AXIS_Y: viewport.height}.get(axis)
        if ref is None:
            ref = ((viewport.width ** 2 + viewport.height ** 2) / 2.0) ** 0.5
        return default * ref
    return convert_length(value, axis, viewport)


class DefsResolver:
    """
    Id-indexed resolver for one document.

    `converter` turns definition content (pattern tiles, clip path shapes,
    mask and marker content) into render nodes; it calls back into this
    resolver for references found inside that content.
    """

    def __init__(self, document, options, converter, viewport_size):
        self.document = document
        self.options = options
        self.converter = converter
        self.viewport_size = viewport_size
        self.registry = {}
        self._cache = {}
        self._in_progress = set()
        self._style_cache = {}

    # -------------------------------------------------------------------------
    # lookup
    # -------------------------------------------------------------------------

    def element(self, def_id, tags):
        """Referenced element if it exists and has one of the expected tags."""
        elem = self.document.element_by_id(def_id) if def_id else None
        if elem is None or tag_name(elem) not in tags:
            return None
        return elem

    def _resolve(self, def_id, tags, builder):
        elem = self.element(def_id, tags)
        if elem is None:
            logger.debug(f"Reference to missing or unsuitable element '{def_id}'")
            return ABSENT

        if def_id in self._cache:
            return self._cache[def_id]

        if def_id in self._in_progress:
            logger.warning(f"Circular reference to '{def_id}' ignored")
            return ABSENT

        self._in_progress.add(def_id)
        try:
            result = builder(elem, def_id)
        finally:
            self._in_progress.discard(def_id)

        self._cache[def_id] = result
        if result and not getattr(result, 'is_empty', False) and hasattr(result, 'id'):
            self.registry[def_id] = result
        return result

    def resolve(self, def_id, kind):
        """
        Resolve `def_id` as a definition of `kind`.

        kind is one of 'paint', 'clipPath', 'mask', 'filter', 'marker'.
        Returns the definition or ABSENT.
        """
        resolvers = {
            'paint': self.paint_server,
            'clipPath': self.clip_path,
            'mask': self.mask,
            'filter': self.filter,
            'marker': self.marker,
        }
        if kind not in resolvers:
            raise ValueError(f"unknown definition kind {kind!r}")
        return resolvers[kind](def_id)

    def paint_server(self, def_id):
        return self._resolve(def_id, PAINT_SERVER_TAGS, self._build_paint_server)

    def clip_path(self, def_id):
        return self._resolve(def_id, ('clipPath',), self._build_clip_path)

    def mask(self, def_id):
        return self._resolve(def_id, ('mask',), self._build_mask)

    def filter(self, def_id):
        return self._resolve(def_id, ('filter',), self._build_filter)

    def marker(self, def_id):
        return self._resolve(def_id, ('marker',), self._build_marker)

    # -------------------------------------------------------------------------
    # helpers
    # -------------------------------------------------------------------------

    def style_of(self, elem):
        return resolve_style_chain(self.document, elem, self.options, self._style_cache)

    def viewport(self, elem):
        width, height = self.viewport_size
        return self.style_of(elem).viewport(width, height)

    def _href_chain(self, elem, tags):
        """
        The element followed by the elements it inherits from via href.

        Stops at the first missing, unsuitable or already visited link.
        """
        chain = [elem]
        seen = {id(elem)}
        current = elem
        while True:
            link = parse_iri(get_attr(current, 'href'))
            target = self.element(link, tags)
            if target is None:
                break
            if id(target) in seen:
                logger.warning(f"Circular href chain through '{link}' ignored")
                break
            seen.add(id(target))
            chain.append(target)
            current = target
        return chain

    @staticmethod
    def _chain_attr(chain, name, tags=None):
        for elem in chain:
            if tags is not None and tag_name(elem) not in tags:
                continue
            value = elem.get(name)
            if value is not None:
                return value
        return None

    def _transform_attr(self, chain, name):
        transform = parse_transform(self._chain_attr(chain, name))
        if transform is None:
            logger.debug(f"Ignoring malformed {name}")
            return IDENTITY
        return transform

    # -------------------------------------------------------------------------
    # gradients and patterns
    # -------------------------------------------------------------------------

    def _build_paint_server(self, elem, def_id):
        if tag_name(elem) == 'pattern':
            return self._build_pattern(elem, def_id)
        return self._build_gradient(elem, def_id)

    def _stops(self, chain):
        for elem in chain:
            stop_elems = [child for child in elem if tag_name(child) == 'stop']
            if not stop_elems:
                continue

            stops = []
            last_offset = 0.0
            for stop in stop_elems:
                style = self.style_of(stop)
                offset = convert_fraction(stop.get('offset'), 0.0)
                offset = min(1.0, max(last_offset, offset))
                last_offset = offset

                value = style.get('stop-color', 'black')
                if value == 'currentColor':
                    value = style.get('color', 'black')
                parsed = parse_color(value)
                color, alpha = parsed if parsed else (BLACK, 1.0)
                opacity = parse_opacity(style.get('stop-opacity')) * alpha
                stops.append(Stop(offset, color, opacity))
            return tuple(stops)
        return ()

    def _build_gradient(self, elem, def_id):
        tag = tag_name(elem)
        chain = self._href_chain(elem, GRADIENT_TAGS)
        units = _units(self._chain_attr(chain, 'gradientUnits'), OBJECT_BBOX)
        transform = self._transform_attr(chain, 'gradientTransform')
        if not transform.is_invertible:
            logger.debug(f"Gradient '{def_id}' has a non-invertible transform")
            return ABSENT

        spread = self._chain_attr(chain, 'spreadMethod')
        if spread not in _SPREAD_METHODS:
            spread = 'pad'

        viewport = self.viewport(elem)
        stops = self._stops(chain)

        def coord(name, axis, default):
            value = self._chain_attr(chain, name, (tag,))
            return _fraction_or_length(value, units, axis, viewport, default)

        if tag == 'linearGradient':
            return LinearGradient(
                id=def_id,
                x1=coord('x1', AXIS_X, 0.0),
                y1=coord('y1', AXIS_Y, 0.0),
                x2=coord('x2', AXIS_X, 1.0),
                y2=coord('y2', AXIS_Y, 0.0),
                units=units, transform=transform, spread=spread, stops=stops,
            )

        cx = coord('cx', AXIS_X, 0.5)
        cy = coord('cy', AXIS_Y, 0.5)
        r = coord('r', AXIS_OTHER, 0.5)
        fx_value = self._chain_attr(chain, 'fx', (tag,))
        fy_value = self._chain_attr(chain, 'fy', (tag,))
        fx = cx if fx_value is None else coord('fx', AXIS_X, 0.5)
        fy = cy if fy_value is None else coord('fy', AXIS_Y, 0.5)
        if r < 0:
            logger.debug(f"Radial gradient '{def_id}' has a negative radius")
            return ABSENT
        return RadialGradient(
            id=def_id, cx=cx, cy=cy, r=r, fx=fx, fy=fy,
            units=units, transform=transform, spread=spread, stops=stops,
        )

    def _build_pattern(self, elem, def_id):
        chain = self._href_chain(elem, ('pattern',))
        units = _units(self._chain_attr(chain, 'patternUnits'), OBJECT_BBOX)
        content_units = _units(self._chain_attr(chain, 'patternContentUnits'), USER_SPACE)
        transform = self._transform_attr(chain, 'patternTransform')
        viewport = self.viewport(elem)

        def coord(name, axis):
            return _fraction_or_length(self._chain_attr(chain, name), units, axis, viewport, 0.0)

        rect = Rect(coord('x', AXIS_X), coord('y', AXIS_Y),
                    coord('width', AXIS_X), coord('height', AXIS_Y))
        if rect.width <= 0 or rect.height <= 0 or not transform.is_invertible:
            logger.debug(f"Pattern '{def_id}' has an empty tile")
            return ABSENT

        view_box = parse_view_box(self._chain_attr(chain, 'viewBox'))
        aspect = parse_aspect_ratio(self._chain_attr(chain, 'preserveAspectRatio'))

        owner = next((e for e in chain if len(e)), None)
        children = self.converter.convert_content(owner) if owner is not None else ()
        if not children:
            logger.debug(f"Pattern '{def_id}' has no usable content")
            return ABSENT

        return Pattern(
            id=def_id, rect=rect, units=units, content_units=content_units,
            transform=transform, view_box=view_box, aspect=aspect,
            children=children,
        )

    # -------------------------------------------------------------------------
    # clip paths, masks, filters, markers
    # -------------------------------------------------------------------------

    def _build_clip_path(self, elem, def_id):
        units = _units(elem.get('clipPathUnits'), USER_SPACE)
        transform = parse_transform(elem.get('transform'))
        if transform is None:
            transform = IDENTITY

        if not transform.is_invertible:
            logger.debug(f"clipPath '{def_id}' has a non-invertible transform")
            return ClipPath(id=def_id, units=units)

        # A clip path may itself be clipped.
        nested = None
        link = parse_func_iri(self.style_of(elem).local.get('clip-path'))
        if link:
            nested_clip = self.clip_path(link)
            if nested_clip is not ABSENT:
                if nested_clip.is_empty:
                    return ClipPath(id=def_id, units=units)
                nested = link

        children = self.converter.convert_clip_content(elem)
        if not children:
            logger.debug(f"clipPath '{def_id}' has no valid children")
        return ClipPath(id=def_id, units=units, transform=transform,
                        clip_path=nested, children=children)

    def _region(self, elem, units):
        viewport = self.viewport(elem)
        if units == OBJECT_BBOX:
            return Rect(convert_fraction(elem.get('x'), -0.1),
                        convert_fraction(elem.get('y'), -0.1),
                        convert_fraction(elem.get('width'), 1.2),
                        convert_fraction(elem.get('height'), 1.2))
        return Rect(_fraction_or_length(elem.get('x'), units, AXIS_X, viewport, -0.1),
                    _fraction_or_length(elem.get('y'), units, AXIS_Y, viewport, -0.1),
                    _fraction_or_length(elem.get('width'), units, AXIS_X, viewport, 1.2),
                    _fraction_or_length(elem.get('height'), units, AXIS_Y, viewport, 1.2))

    def _build_mask(self, elem, def_id):
        units = _units(elem.get('maskUnits'), OBJECT_BBOX)
        content_units = _units(elem.get('maskContentUnits'), USER_SPACE)
        rect = self._region(elem, units)
        if rect.width <= 0 or rect.height <= 0:
            logger.debug(f"mask '{def_id}' has an empty region")
            return Mask(id=def_id, rect=rect, units=units)

        nested = None
        link = parse_func_iri(self.style_of(elem).local.get('mask'))
        if link:
            nested_mask = self.mask(link)
            if nested_mask is not ABSENT:
                if nested_mask.is_empty:
                    return Mask(id=def_id, rect=rect, units=units)
                nested = link

        children = self.converter.convert_content(elem)
        if not children:
            logger.debug(f"mask '{def_id}' has no renderable content")
        return Mask(id=def_id, rect=rect, units=units, content_units=content_units,
                    mask=nested, children=children)

    def _build_filter(self, elem, def_id):
        chain = self._href_chain(elem, ('filter',))
        units = _units(self._chain_attr(chain, 'filterUnits'), OBJECT_BBOX)
        primitive_units = _units(self._chain_attr(chain, 'primitiveUnits'), USER_SPACE)
        rect = self._region(elem, units)

        owner = next((e for e in chain if any(tag_name(c).startswith('fe') for c in e)), None)
        primitives = ()
        if owner is not None and rect.width > 0 and rect.height > 0:
            primitives = tuple(_filter_primitive(c) for c in owner if tag_name(c).startswith('fe'))
        if not primitives:
            logger.debug(f"filter '{def_id}' has no primitives")
        return Filter(id=def_id, rect=rect, units=units,
                      primitive_units=primitive_units, primitives=primitives)

    def _build_marker(self, elem, def_id):
        children = self.converter.convert_content(elem, keep_ids=False)
        marker = read_marker(elem, self.viewport(elem), children)
        if marker is None:
            return ABSENT
        return marker


def _filter_primitive(elem):
    attributes = []
    for name, value in elem.attrib.items():
        if name.startswith('{'):
            if get_attr(elem, 'href') == value:
                attributes.append(('xlink:href', value))
            continue
        attributes.append((name, value))
    children = tuple(_filter_primitive(c) for c in elem if tag_name(c).startswith('fe'))
    return FilterPrimitive(tag=tag_name(elem), attributes=tuple(attributes), children=children)
