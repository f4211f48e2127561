"""
Element conversion.

Walks the document once, threading the effective style and the absolute
transform down by parameter, and turns every renderable element into
render tree nodes. Definitions are pulled in through the DefsResolver when
something references them; the result is then folded by the simplifier.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path as FilePath
from typing import FrozenSet, Tuple
from urllib.parse import unquote_to_bytes

from .colors import BLACK, parse_color
from .defs import ABSENT, GRADIENT_TAGS, PAINT_SERVER_TAGS, DefsResolver, parse_func_iri
from .document import Document, get_attr, parse_iri, tag_name
from .errors import InvalidSizeError
from .markers import MARKER_PROPERTIES, place_markers
from .matrix import IDENTITY, Transform, parse_transform
from .options import Options
from .paths import SHAPE_TAGS, shape_to_segments
from .bbox import segments_bbox
from .simplify import simplify_nodes
from .style import ComputedStyle, initial_style, resolve_style
from .text import build_chunks, collect_runs, paint_spans, text_layout_bbox
from .tree import (
    OBJECT_BBOX, Fill, Group, Image, ImageData, LinearGradientRef, NodeKind,
    PatternRef, Path, RadialGradientRef, Stroke, Text, Tree, def_children,
    iter_subtree,
)
from .units import (
    AXIS_OTHER, AXIS_X, AXIS_Y, Rect, convert_length, parse_aspect_ratio,
    parse_length, parse_number, parse_opacity, parse_view_box, to_user_units,
    view_box_transform,
)

logger = logging.getLogger(__name__)

GROUP_TAGS = frozenset({'g', 'a', 'svg', 'switch'})
RENDERABLE_TAGS = GROUP_TAGS | SHAPE_TAGS | {'text', 'image', 'use'}
CLIP_CHILD_TAGS = SHAPE_TAGS | {'text', 'use'}
MARKER_TAGS = frozenset({'path', 'line', 'polyline', 'polygon'})

_LINECAPS = ('butt', 'round', 'square')
_LINEJOINS = ('miter', 'round', 'bevel')

_DATA_URL_RE = re.compile(r'^data:([^;,]*)((?:;[^;,]*)*),(.*)$', re.DOTALL)

_MIME_KINDS = {
    'image/png': 'png',
    'image/jpeg': 'jpeg',
    'image/jpg': 'jpeg',
    'image/gif': 'gif',
    'image/svg+xml': 'svg',
}

_SUFFIX_KINDS = {
    '.png': 'png',
    '.jpg': 'jpeg',
    '.jpeg': 'jpeg',
    '.gif': 'gif',
    '.svg': 'svg',
    '.svgz': 'svg',
}


@dataclass(frozen=True)
class _State:
    """What a child needs from its parent while converting."""
    style: ComputedStyle
    transform: Transform
    viewport: Tuple[float, float]
    use_chain: FrozenSet[str] = frozenset()
    in_clip: bool = False
    keep_ids: bool = True


# =============================================================================
# HELPERS
# =============================================================================

def _paint_url(value):
    """Split 'url(#id) fallback' into ('id', 'fallback' or None)."""
    close = value.find(')')
    if close < 0:
        return None, None
    link = parse_func_iri(value[:close + 1])
    fallback = value[close + 1:].strip() or None
    return link, fallback


def _sniff_kind(data):
    if data.startswith(b'\x89PNG'):
        return 'png'
    if data.startswith(b'\xff\xd8'):
        return 'jpeg'
    if data.startswith(b'GIF8'):
        return 'gif'
    head = data[:256].lstrip()
    if head.startswith(b'<svg') or head.startswith(b'<?xml'):
        return 'svg'
    return None


def _decode_data_url(href):
    match = _DATA_URL_RE.match(href.strip())
    if not match:
        return None
    mime = match.group(1).strip().lower()
    params = match.group(2)
    payload = match.group(3)
    try:
        if ';base64' in params.lower():
            data = base64.b64decode(re.sub(r'\s+', '', payload), validate=True)
        else:
            data = unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as e:
        logger.debug(f"Undecodable data URL: {e}")
        return None

    kind = _MIME_KINDS.get(mime) or _sniff_kind(data)
    if kind is None:
        logger.debug(f"Unsupported image type '{mime}'")
        return None
    return ImageData(kind=kind, data=data)


def load_image(href, base_path):
    """
    Image data for an href: decoded bytes for data URLs, a resolved path
    for local file references. Nothing is read from disk.
    """
    if not href:
        return None
    href = href.strip()
    if href.startswith('data:'):
        return _decode_data_url(href)
    if re.match(r'^[a-zA-Z][a-zA-Z0-9+.-]+:', href) and not href.startswith('file:'):
        logger.debug(f"Skipping remote image '{href}'")
        return None
    if href.startswith('file://'):
        href = href[len('file://'):]
    elif href.startswith('file:'):
        href = href[len('file:'):]

    path = FilePath(href)
    kind = _SUFFIX_KINDS.get(path.suffix.lower())
    if kind is None:
        logger.debug(f"Unsupported image file '{href}'")
        return None
    if not path.is_absolute() and base_path is not None:
        path = base_path / path
    return ImageData(kind=kind, path=path)


def _dasharray(value, viewport):
    if value is None or value.strip() == 'none':
        return None
    parts = [p for p in re.split(r'[\s,]+', value.strip()) if p]
    lengths = []
    for part in parts:
        length = parse_length(part)
        if length is None:
            return None
        lengths.append(to_user_units(length, AXIS_OTHER, viewport))
    if not lengths or any(n < 0 for n in lengths) or sum(lengths) <= 0:
        return None
    if len(lengths) % 2:
        lengths = lengths * 2
    return tuple(lengths)


def _passes_conditions(elem):
    """Conditional processing attributes of a <switch> child."""
    if elem.get('requiredExtensions') is not None:
        return False
    languages = elem.get('systemLanguage')
    if languages is not None:
        codes = [code.strip().split('-')[0] for code in languages.split(',')]
        return 'en' in codes
    return True


def _definition_references(definition):
    refs = [getattr(definition, 'clip_path', None), getattr(definition, 'mask', None)]
    for child in def_children(definition):
        refs.extend(node_references(child))
    return [ref for ref in refs if ref]


def node_references(node):
    """Definition ids a subtree refers to, in traversal order."""
    refs = []
    for current in iter_subtree(node):
        if current.kind is NodeKind.GROUP:
            refs.extend((current.clip_path, current.mask, current.filter))
        elif current.kind is NodeKind.PATH:
            refs.extend(_paint_ids(current.fill, current.stroke))
        elif current.kind is NodeKind.TEXT:
            for chunk in current.chunks:
                for span in chunk.spans:
                    refs.extend(_paint_ids(span.fill, span.stroke))
    return [ref for ref in refs if ref]


def _paint_ids(fill, stroke):
    for holder in (fill, stroke):
        if holder is not None and isinstance(holder.paint, (LinearGradientRef, RadialGradientRef, PatternRef)):
            yield holder.paint.id


def collect_defs(root, registry):
    """
    Definitions reachable from the root, in first-use order.

    A definition is listed after the definitions its own content uses, so
    the order depends only on the output tree.
    """
    ordered = {}

    def visit(def_id):
        if def_id in ordered or def_id not in registry:
            return
        ordered[def_id] = None
        for ref in _definition_references(registry[def_id]):
            visit(ref)
        # Re-insert so dependencies come first.
        del ordered[def_id]
        ordered[def_id] = registry[def_id]

    for ref in node_references(root):
        visit(ref)
    return ordered


# =============================================================================
# CONVERTER
# =============================================================================

class Converter:
    """One conversion run over one document."""

    def __init__(self, document, options):
        self.document = document
        self.options = options
        self.viewport_size = (100.0, 100.0)
        self.defs = None

    # -------------------------------------------------------------------------
    # document
    # -------------------------------------------------------------------------

    def _root_geometry(self, root, style):
        view_box = None
        if root.get('viewBox') is not None:
            view_box = parse_view_box(root.get('viewBox'))
            if view_box is None:
                raise InvalidSizeError(f"invalid viewBox {root.get('viewBox')!r}")

        def dimension(name, axis, vb_size):
            length = parse_length(root.get(name))
            if length is None:
                return vb_size if view_box is not None else 100.0
            if length.unit == '%':
                base = vb_size if view_box is not None else 100.0
                return base * length.number / 100.0
            reference = style.viewport(100.0, 100.0)
            return to_user_units(length, axis, reference)

        width = dimension('width', AXIS_X, view_box.width if view_box else None)
        height = dimension('height', AXIS_Y, view_box.height if view_box else None)
        if not width > 0 or not height > 0:
            raise InvalidSizeError(f"root size must be positive, got {width}x{height}")

        if view_box is None:
            view_box = Rect(0.0, 0.0, width, height)
        return width, height, view_box

    def convert_document(self):
        root = self.document.root
        style = resolve_style(root, initial_style(self.options))
        width, height, view_box = self._root_geometry(root, style)
        aspect = parse_aspect_ratio(root.get('preserveAspectRatio'))

        self.viewport_size = (view_box.width, view_box.height)
        self.defs = DefsResolver(self.document, self.options, self, self.viewport_size)

        transform = parse_transform(root.get('transform'))
        if transform is None or not transform.is_invertible:
            transform = IDENTITY
        state = _State(style, transform, self.viewport_size)

        children = self.convert_children(root, state)
        effects = self._resolve_effects(root, style, False)
        if effects is None:
            children = []
        elif any((effects['opacity'] != 1.0, effects['clip_path'], effects['mask'], effects['filter'])):
            children = [Group(transform=transform, children=tuple(children), **effects)]

        group = Group(children=simplify_nodes(children, self.options.keep_named_groups))
        defs = collect_defs(group, self.defs.registry)
        logger.info(f"Normalized document: {sum(1 for _ in iter_subtree(group)) - 1} nodes, {len(defs)} defs")
        return Tree(root=group, width=width, height=height, view_box=view_box,
                    aspect=aspect, defs=defs, options=self.options)

    # -------------------------------------------------------------------------
    # definition content (called by the resolver)
    # -------------------------------------------------------------------------

    def convert_content(self, owner, keep_ids=True):
        """Children of a pattern, mask or marker in its own content space."""
        style = self.defs.style_of(owner)
        state = _State(style, IDENTITY, self.viewport_size, keep_ids=keep_ids)
        nodes = self.convert_children(owner, state)
        return simplify_nodes(nodes, self.options.keep_named_groups)

    def convert_clip_content(self, clip):
        style = self.defs.style_of(clip)
        state = _State(style, IDENTITY, self.viewport_size, in_clip=True)
        nodes = []
        for child in clip:
            if tag_name(child) not in CLIP_CHILD_TAGS:
                logger.debug(f"Ignoring <{tag_name(child) or child.tag}> inside clipPath")
                continue
            nodes.extend(self.convert_element(child, state))
        return simplify_nodes(nodes)

    # -------------------------------------------------------------------------
    # elements
    # -------------------------------------------------------------------------

    def convert_children(self, elem, state):
        nodes = []
        for child in elem:
            nodes.extend(self.convert_element(child, state))
        return nodes

    def _node_id(self, elem, state):
        return elem.get('id', '') if state.keep_ids else ''

    def convert_element(self, elem, state):
        """Nodes for one element; [] when it renders nothing."""
        tag = tag_name(elem)
        if tag not in RENDERABLE_TAGS:
            return []

        style = resolve_style(elem, state.style)
        if style.get('display') == 'none':
            return []

        local = parse_transform(elem.get('transform'))
        if local is None:
            logger.debug(f"Ignoring malformed transform on <{tag}>")
            local = IDENTITY
        transform = state.transform.multiply(local)
        if not transform.is_invertible:
            logger.debug(f"Skipping <{tag}> with a non-invertible transform")
            return []

        if tag == 'use':
            return self._convert_use(elem, style, transform, state)

        viewport = state.viewport
        if tag == 'svg':
            nested = self._nested_viewport(elem, style, state)
            if nested is None:
                return []
            transform = transform.multiply(nested[0])
            viewport = nested[1]

        effects = self._resolve_effects(elem, style, state.in_clip)
        if effects is None:
            return []

        if tag in GROUP_TAGS:
            child_state = replace(state, style=style, transform=transform, viewport=viewport)
            if tag == 'switch':
                children = self._convert_switch(elem, child_state)
            else:
                children = self.convert_children(elem, child_state)
            return [Group(id=self._node_id(elem, state), transform=transform,
                          children=tuple(children),
                          neutral_opacity='opacity' in style.local and effects['opacity'] == 1.0,
                          **effects)]

        if tag in SHAPE_TAGS:
            nodes = self._convert_shape(elem, tag, style, transform, state)
        elif tag == 'text':
            nodes = self._convert_text(elem, style, transform, state)
        else:
            nodes = self._convert_image(elem, style, transform, state)

        if not nodes:
            return []
        has_effects = (effects['opacity'] != 1.0 or effects['clip_path'] or effects['mask']
                       or effects['filter'])
        if has_effects or len(nodes) > 1:
            return [Group(transform=transform, children=tuple(nodes), **effects)]
        return nodes

    def _resolve_effects(self, elem, style, in_clip):
        """
        Group effects of an element.

        Returns None when a referenced clip path, mask or filter hides the
        element completely.
        """
        effects = {'opacity': 1.0, 'clip_path': None, 'mask': None, 'filter': None}

        link = parse_func_iri(style.local.get('clip-path'))
        if link:
            clip = self.defs.clip_path(link)
            if clip is not ABSENT:
                if clip.is_empty:
                    logger.debug(f"Omitting element clipped by empty clipPath '{link}'")
                    return None
                effects['clip_path'] = link

        if in_clip:
            return effects

        effects['opacity'] = parse_opacity(style.local.get('opacity'))

        link = parse_func_iri(style.local.get('mask'))
        if link:
            mask = self.defs.mask(link)
            if mask is not ABSENT:
                if mask.is_empty:
                    logger.debug(f"Omitting element masked by empty mask '{link}'")
                    return None
                effects['mask'] = link

        link = parse_func_iri(style.local.get('filter'))
        if link:
            filter_ = self.defs.filter(link)
            if filter_ is not ABSENT:
                if filter_.is_empty:
                    logger.debug(f"Omitting element with empty filter '{link}'")
                    return None
                effects['filter'] = link

        return effects

    def _nested_viewport(self, elem, style, state):
        """(transform, viewport size) that a nested <svg> establishes."""
        parent = style.viewport(*state.viewport)
        width = convert_length(elem.get('width', '100%'), AXIS_X, parent, 0.0)
        height = convert_length(elem.get('height', '100%'), AXIS_Y, parent, 0.0)
        if width <= 0 or height <= 0:
            logger.debug("Skipping nested svg with an empty viewport")
            return None

        x = convert_length(elem.get('x'), AXIS_X, parent)
        y = convert_length(elem.get('y'), AXIS_Y, parent)
        matrix = Transform.translate(x, y)
        view_box = parse_view_box(elem.get('viewBox'))
        if view_box is None:
            return matrix, (width, height)
        aspect = parse_aspect_ratio(elem.get('preserveAspectRatio'))
        matrix = matrix.multiply(Transform(*view_box_transform(view_box, aspect, width, height)))
        return matrix, (view_box.width, view_box.height)

    def _convert_switch(self, elem, state):
        for child in elem:
            if tag_name(child) in RENDERABLE_TAGS and _passes_conditions(child):
                return self.convert_element(child, state)
        return []

    def _convert_use(self, elem, style, transform, state):
        link = parse_iri(get_attr(elem, 'href'))
        target = self.document.element_by_id(link) if link else None
        if target is None:
            logger.debug(f"<use> references missing element '{link}'")
            return []
        if link in state.use_chain or target is elem:
            logger.warning(f"Circular <use> reference to '{link}' ignored")
            return []

        target_tag = tag_name(target)
        if state.in_clip and target_tag not in SHAPE_TAGS | {'text'}:
            return []

        viewport = style.viewport(*state.viewport)
        x = convert_length(elem.get('x'), AXIS_X, viewport)
        y = convert_length(elem.get('y'), AXIS_Y, viewport)
        transform = transform.multiply(Transform.translate(x, y))

        effects = self._resolve_effects(elem, style, state.in_clip)
        if effects is None:
            return []

        child_state = replace(state, style=style, transform=transform,
                              use_chain=state.use_chain | {link}, keep_ids=False)
        if target_tag == 'symbol':
            children = self._convert_symbol(elem, target, child_state)
        else:
            children = self.convert_element(target, child_state)

        return [Group(id=self._node_id(elem, state), transform=transform,
                      children=tuple(children), **effects)]

    def _convert_symbol(self, use, symbol, state):
        style = resolve_style(symbol, state.style)
        if style.get('display') == 'none':
            return []
        transform = state.transform
        viewport = state.viewport
        view_box = parse_view_box(symbol.get('viewBox'))
        if view_box is not None:
            parent = style.viewport(*state.viewport)
            width = convert_length(use.get('width', symbol.get('width', '100%')), AXIS_X, parent, 0.0)
            height = convert_length(use.get('height', symbol.get('height', '100%')), AXIS_Y, parent, 0.0)
            if width <= 0 or height <= 0:
                return []
            aspect = parse_aspect_ratio(symbol.get('preserveAspectRatio'))
            transform = transform.multiply(Transform(*view_box_transform(view_box, aspect, width, height)))
            viewport = (view_box.width, view_box.height)
        return self.convert_children(symbol, replace(state, style=style, transform=transform,
                                                     viewport=viewport))

    # -------------------------------------------------------------------------
    # paint
    # -------------------------------------------------------------------------

    def _resolve_paint(self, value, style, bbox):
        """
        Paint for a fill or stroke value.

        Returns (paint or None, hidden, alpha): hidden is set when the value
        names a pattern that turned out unusable.
        """
        value = (value or '').strip()
        if not value or value == 'none':
            return None, False, 1.0
        if value == 'currentColor':
            value = style.get('color', 'black')

        if value.startswith('url('):
            link, fallback = _paint_url(value)
            elem = self.defs.element(link, PAINT_SERVER_TAGS)
            if elem is None:
                logger.debug(f"Paint server '{link}' not found")
                if fallback and fallback != 'none' and not fallback.startswith('url('):
                    return self._resolve_paint(fallback, style, bbox)
                return None, False, 1.0
            return self._paint_server(link, tag_name(elem), bbox)

        parsed = parse_color(value)
        if parsed is None:
            logger.debug(f"Invalid color '{value}'")
            return None, False, 1.0
        color, alpha = parsed
        return color, False, alpha

    def _paint_server(self, link, tag, bbox):
        server = self.defs.paint_server(link)

        if tag == 'pattern':
            if server is ABSENT:
                return None, True, 1.0
            if server.units == OBJECT_BBOX and (bbox is None or bbox.is_degenerate):
                return None, False, 1.0
            return PatternRef(link), False, 1.0

        if server is ABSENT or not server.stops:
            return None, False, 1.0
        if len(server.stops) == 1:
            stop = server.stops[0]
            return stop.color, False, stop.opacity
        if server.units == OBJECT_BBOX and (bbox is None or bbox.is_degenerate):
            return None, False, 1.0

        if tag == 'linearGradient':
            degenerate = server.x1 == server.x2 and server.y1 == server.y2
        else:
            degenerate = server.r == 0
        if degenerate:
            stop = server.stops[-1]
            return stop.color, False, stop.opacity

        ref = LinearGradientRef(link) if tag == GRADIENT_TAGS[0] else RadialGradientRef(link)
        return ref, False, 1.0

    def _fill(self, style, bbox, in_clip):
        if in_clip:
            rule = style.get('clip-rule', 'nonzero')
            return Fill(BLACK, 1.0, rule if rule == 'evenodd' else 'nonzero'), False

        paint, hidden, alpha = self._resolve_paint(style.get('fill', 'black'), style, bbox)
        if paint is None:
            return None, hidden
        rule = style.get('fill-rule', 'nonzero')
        opacity = parse_opacity(style.get('fill-opacity')) * alpha
        return Fill(paint, opacity, rule if rule == 'evenodd' else 'nonzero'), hidden

    def _stroke(self, style, bbox, viewport, in_clip):
        if in_clip:
            return None, False

        paint, hidden, alpha = self._resolve_paint(style.get('stroke'), style, bbox)
        if paint is None:
            return None, hidden

        lengths = style.viewport(*viewport)
        width = convert_length(style.get('stroke-width'), AXIS_OTHER, lengths, 1.0)
        if width <= 0:
            return None, hidden

        linecap = style.get('stroke-linecap', 'butt')
        linejoin = style.get('stroke-linejoin', 'miter')
        miterlimit = parse_number(style.get('stroke-miterlimit'), 4.0)
        if miterlimit < 1:
            miterlimit = 4.0

        stroke = Stroke(
            paint=paint,
            width=width,
            opacity=parse_opacity(style.get('stroke-opacity')) * alpha,
            linecap=linecap if linecap in _LINECAPS else 'butt',
            linejoin=linejoin if linejoin in _LINEJOINS else 'miter',
            miterlimit=miterlimit,
            dasharray=_dasharray(style.get('stroke-dasharray'), lengths),
            dashoffset=convert_length(style.get('stroke-dashoffset'), AXIS_OTHER, lengths),
        )
        return stroke, hidden

    @staticmethod
    def _visibility(style):
        return 'visible' if style.get('visibility', 'visible') == 'visible' else 'hidden'

    # -------------------------------------------------------------------------
    # leaves
    # -------------------------------------------------------------------------

    def _convert_shape(self, elem, tag, style, transform, state):
        viewport = style.viewport(*state.viewport)
        segments = shape_to_segments(elem, tag, viewport)
        if not segments:
            return []

        bbox = segments_bbox(segments)
        fill, fill_hidden = self._fill(style, bbox, state.in_clip)
        stroke, stroke_hidden = self._stroke(style, bbox, state.viewport, state.in_clip)
        visibility = self._visibility(style)
        if fill_hidden or stroke_hidden:
            fill = stroke = None
            visibility = 'hidden'
        if state.in_clip and visibility != 'visible':
            return []

        nodes = [Path(id=self._node_id(elem, state), transform=transform, fill=fill,
                      stroke=stroke, visibility=visibility, segments=segments)]

        if not state.in_clip and tag in MARKER_TAGS:
            nodes.extend(self._markers(style, segments, transform, viewport))
        return nodes

    def _markers(self, style, segments, transform, viewport):
        markers = {}
        for name in MARKER_PROPERTIES:
            link = parse_func_iri(style.get(name))
            if not link:
                continue
            marker = self.defs.marker(link)
            if marker is not ABSENT:
                markers[name] = marker
        if not markers:
            return []
        stroke_width = convert_length(style.get('stroke-width'), AXIS_OTHER, viewport, 1.0)
        return place_markers(markers, segments, stroke_width, transform)

    def _convert_text(self, elem, style, transform, state):
        viewport = style.viewport(*state.viewport)
        chunks, styles = build_chunks(collect_runs(elem, style, viewport))
        if not chunks:
            return []

        bbox = text_layout_bbox(chunks, self.options)

        def paint_for(span_style):
            fill, fill_hidden = self._fill(span_style, bbox, state.in_clip)
            stroke, stroke_hidden = self._stroke(span_style, bbox, state.viewport, state.in_clip)
            return fill, stroke, fill_hidden or stroke_hidden

        chunks, hidden = paint_spans(chunks, styles, paint_for)
        visibility = 'hidden' if hidden else self._visibility(style)
        if state.in_clip and visibility != 'visible':
            return []
        return [Text(id=self._node_id(elem, state), transform=transform,
                     visibility=visibility, chunks=chunks)]

    def _convert_image(self, elem, style, transform, state):
        viewport = style.viewport(*state.viewport)
        width = convert_length(elem.get('width'), AXIS_X, viewport)
        height = convert_length(elem.get('height'), AXIS_Y, viewport)
        if width <= 0 or height <= 0:
            logger.debug("Skipping image without a positive size")
            return []

        data = load_image(get_attr(elem, 'href'), self.options.base_path)
        if data is None:
            return []

        view = Rect(convert_length(elem.get('x'), AXIS_X, viewport),
                    convert_length(elem.get('y'), AXIS_Y, viewport),
                    width, height)
        return [Image(id=self._node_id(elem, state), transform=transform,
                      visibility=self._visibility(style), view=view,
                      aspect=parse_aspect_ratio(elem.get('preserveAspectRatio')),
                      data=data)]


# =============================================================================
# ENTRY POINTS
# =============================================================================

def normalize(document, options=None):
    """Normalize a parsed Document into a render Tree."""
    if options is None:
        options = Options()
    return Converter(document, options).convert_document()


def from_markup(text, options=None):
    """Parse SVG markup and normalize it."""
    return normalize(Document.from_markup(text), options)


def from_file(path, options=None):
    """
    Parse an SVG file and normalize it.

    Relative image references resolve against the file's directory unless
    options.base_path says otherwise.
    """
    if options is None:
        options = Options()
    if options.base_path is None:
        options = replace(options, base_path=FilePath(path).resolve().parent)
    return normalize(Document.from_file(path), options)
