"""
Canonical SVG output.

Writes a Tree back out as SVG that normalizes to the same tree again:
transforms are written relative to the nearest written parent, defaults are
left out, attributes come in a fixed order per element and numbers use one
fixed format. The result is meant for golden-file comparison.
"""

import base64
import xml.etree.ElementTree as ET
from dataclasses import replace

from .colors import BLACK
from .document import SVG_NS, XLINK_NS
from .matrix import IDENTITY
from .paths import ClosePath, CurveTo, LineTo, MoveTo
from .tree import OBJECT_BBOX, USER_SPACE, DefKind, NodeKind
from .units import DEFAULT_ASPECT
from .version import __version__

STAMP_NAMESPACE = 'urn:svg-normalizer'

_MIME_TYPES = {
    'png': 'image/png',
    'jpeg': 'image/jpeg',
    'gif': 'image/gif',
    'svg': 'image/svg+xml',
}


# =============================================================================
# VALUES
# =============================================================================

def fmt(n):
    """Number with at most six decimals and no trailing zeros."""
    text = f'{n:.6f}'.rstrip('0').rstrip('.')
    if text in ('-0', ''):
        return '0'
    return text


def format_transform(matrix):
    return 'matrix(' + ' '.join(fmt(v) for v in matrix) + ')'


def format_path_data(segments):
    tokens = []
    for seg in segments:
        if isinstance(seg, MoveTo):
            tokens.extend(('M', fmt(seg.x), fmt(seg.y)))
        elif isinstance(seg, LineTo):
            tokens.extend(('L', fmt(seg.x), fmt(seg.y)))
        elif isinstance(seg, CurveTo):
            tokens.extend(('C', fmt(seg.x1), fmt(seg.y1), fmt(seg.x2), fmt(seg.y2),
                           fmt(seg.x), fmt(seg.y)))
        elif isinstance(seg, ClosePath):
            tokens.append('Z')
    return ' '.join(tokens)


def format_paint(paint):
    if hasattr(paint, 'to_hex'):
        return paint.to_hex()
    return f'url(#{paint.id})'


def _image_href(data):
    if data.data is not None:
        encoded = base64.b64encode(data.data).decode('ascii')
        return f'data:{_MIME_TYPES[data.kind]};base64,{encoded}'
    return data.path.as_posix()


def _relative(parent_transform, transform):
    return parent_transform.inverse().multiply(transform)


# =============================================================================
# ATTRIBUTES
# =============================================================================

def _fill_attributes(elem, fill, in_clip):
    if fill is None:
        elem.set('fill', 'none')
        return
    if in_clip:
        if fill.rule != 'nonzero':
            elem.set('clip-rule', fill.rule)
        return
    if fill.paint != BLACK:
        elem.set('fill', format_paint(fill.paint))
    if fill.opacity != 1.0:
        elem.set('fill-opacity', fmt(fill.opacity))
    if fill.rule != 'nonzero':
        elem.set('fill-rule', fill.rule)


def _stroke_attributes(elem, stroke):
    if stroke is None:
        return
    elem.set('stroke', format_paint(stroke.paint))
    if stroke.width != 1.0:
        elem.set('stroke-width', fmt(stroke.width))
    if stroke.opacity != 1.0:
        elem.set('stroke-opacity', fmt(stroke.opacity))
    if stroke.linecap != 'butt':
        elem.set('stroke-linecap', stroke.linecap)
    if stroke.linejoin != 'miter':
        elem.set('stroke-linejoin', stroke.linejoin)
    if stroke.miterlimit != 4.0:
        elem.set('stroke-miterlimit', fmt(stroke.miterlimit))
    if stroke.dasharray is not None:
        elem.set('stroke-dasharray', ' '.join(fmt(n) for n in stroke.dasharray))
    if stroke.dashoffset != 0.0:
        elem.set('stroke-dashoffset', fmt(stroke.dashoffset))


def _common_attributes(elem, node, parent_transform):
    if node.visibility != 'visible':
        elem.set('visibility', node.visibility)
    relative = _relative(parent_transform, node.transform)
    if not relative.is_identity:
        elem.set('transform', format_transform(relative))


def _region_attributes(elem, rect):
    elem.set('x', fmt(rect.x))
    elem.set('y', fmt(rect.y))
    elem.set('width', fmt(rect.width))
    elem.set('height', fmt(rect.height))


# =============================================================================
# NODES
# =============================================================================

def write_node(parent, node, parent_transform=IDENTITY, in_clip=False, clip_path=None):
    """Append the element for `node` to `parent`."""
    if node.kind is NodeKind.GROUP and in_clip:
        # clipPath content holds no <g>; a group's clip moves onto its leaves.
        children = node.children
        if node.id and len(children) == 1 and not children[0].id:
            children = (replace(children[0], id=node.id),)
        elem = None
        for child in children:
            elem = write_node(parent, child, parent_transform, in_clip, node.clip_path or clip_path)
        return elem

    if node.kind is NodeKind.GROUP:
        elem = ET.SubElement(parent, 'g')
        if node.id:
            elem.set('id', node.id)
        if node.opacity != 1.0:
            elem.set('opacity', fmt(node.opacity))
        if node.clip_path:
            elem.set('clip-path', f'url(#{node.clip_path})')
        if node.mask:
            elem.set('mask', f'url(#{node.mask})')
        if node.filter:
            elem.set('filter', f'url(#{node.filter})')
        relative = _relative(parent_transform, node.transform)
        if not relative.is_identity:
            elem.set('transform', format_transform(relative))
        for child in node.children:
            write_node(elem, child, node.transform, in_clip)

    elif node.kind is NodeKind.PATH:
        elem = ET.SubElement(parent, 'path')
        if node.id:
            elem.set('id', node.id)
        if clip_path:
            elem.set('clip-path', f'url(#{clip_path})')
        _fill_attributes(elem, node.fill, in_clip)
        _stroke_attributes(elem, node.stroke)
        _common_attributes(elem, node, parent_transform)
        elem.set('d', format_path_data(node.segments))

    elif node.kind is NodeKind.TEXT:
        elem = ET.SubElement(parent, 'text')
        if node.id:
            elem.set('id', node.id)
        if clip_path:
            elem.set('clip-path', f'url(#{clip_path})')
        _common_attributes(elem, node, parent_transform)
        for chunk in node.chunks:
            chunk_elem = ET.SubElement(elem, 'tspan')
            if chunk.x is not None:
                chunk_elem.set('x', fmt(chunk.x))
            if chunk.y is not None:
                chunk_elem.set('y', fmt(chunk.y))
            if chunk.anchor != 'start':
                chunk_elem.set('text-anchor', chunk.anchor)
            for span in chunk.spans:
                span_elem = ET.SubElement(chunk_elem, 'tspan')
                span_elem.set('font-family', span.font_family)
                span_elem.set('font-size', fmt(span.font_size))
                if span.font_weight != 'normal':
                    span_elem.set('font-weight', span.font_weight)
                if span.font_style != 'normal':
                    span_elem.set('font-style', span.font_style)
                _fill_attributes(span_elem, span.fill, in_clip)
                _stroke_attributes(span_elem, span.stroke)
                span_elem.text = span.text

    elif node.kind is NodeKind.IMAGE:
        elem = ET.SubElement(parent, 'image')
        if node.id:
            elem.set('id', node.id)
        _region_attributes(elem, node.view)
        if node.aspect != DEFAULT_ASPECT:
            elem.set('preserveAspectRatio', str(node.aspect))
        _common_attributes(elem, node, parent_transform)
        elem.set('xlink:href', _image_href(node.data))

    else:
        raise TypeError(f"unknown node kind {node.kind!r}")
    return elem


def _write_stops(elem, stops):
    for stop in stops:
        stop_elem = ET.SubElement(elem, 'stop')
        stop_elem.set('offset', fmt(stop.offset))
        stop_elem.set('stop-color', stop.color.to_hex())
        if stop.opacity != 1.0:
            stop_elem.set('stop-opacity', fmt(stop.opacity))


def _write_primitive(parent, primitive):
    elem = ET.SubElement(parent, primitive.tag)
    for name, value in primitive.attributes:
        elem.set(name, value)
    for child in primitive.children:
        _write_primitive(elem, child)


def write_definition(defs, definition):
    """Append the element for one registry entry to the <defs> element."""
    kind = definition.kind
    elem = ET.SubElement(defs, kind.value)
    elem.set('id', definition.id)

    if kind in (DefKind.LINEAR_GRADIENT, DefKind.RADIAL_GRADIENT):
        if kind is DefKind.LINEAR_GRADIENT:
            names = ('x1', 'y1', 'x2', 'y2')
        else:
            names = ('cx', 'cy', 'r', 'fx', 'fy')
        for name in names:
            elem.set(name, fmt(getattr(definition, name)))
        if definition.units == USER_SPACE:
            elem.set('gradientUnits', USER_SPACE)
        if definition.spread != 'pad':
            elem.set('spreadMethod', definition.spread)
        if not definition.transform.is_identity:
            elem.set('gradientTransform', format_transform(definition.transform))
        _write_stops(elem, definition.stops)

    elif kind is DefKind.PATTERN:
        _region_attributes(elem, definition.rect)
        if definition.units == USER_SPACE:
            elem.set('patternUnits', USER_SPACE)
        if definition.content_units == OBJECT_BBOX:
            elem.set('patternContentUnits', OBJECT_BBOX)
        if definition.view_box is not None:
            elem.set('viewBox', ' '.join(fmt(v) for v in definition.view_box))
            if definition.aspect != DEFAULT_ASPECT:
                elem.set('preserveAspectRatio', str(definition.aspect))
        if not definition.transform.is_identity:
            elem.set('patternTransform', format_transform(definition.transform))
        for child in definition.children:
            write_node(elem, child)

    elif kind is DefKind.CLIP_PATH:
        if definition.units == OBJECT_BBOX:
            elem.set('clipPathUnits', OBJECT_BBOX)
        if not definition.transform.is_identity:
            elem.set('transform', format_transform(definition.transform))
        if definition.clip_path:
            elem.set('clip-path', f'url(#{definition.clip_path})')
        for child in definition.children:
            write_node(elem, child, in_clip=True)

    elif kind is DefKind.MASK:
        _region_attributes(elem, definition.rect)
        if definition.units == USER_SPACE:
            elem.set('maskUnits', USER_SPACE)
        if definition.content_units == OBJECT_BBOX:
            elem.set('maskContentUnits', OBJECT_BBOX)
        if definition.mask:
            elem.set('mask', f'url(#{definition.mask})')
        for child in definition.children:
            write_node(elem, child)

    elif kind is DefKind.FILTER:
        _region_attributes(elem, definition.rect)
        if definition.units == USER_SPACE:
            elem.set('filterUnits', USER_SPACE)
        if definition.primitive_units == OBJECT_BBOX:
            elem.set('primitiveUnits', OBJECT_BBOX)
        for primitive in definition.primitives:
            _write_primitive(elem, primitive)

    return elem


# =============================================================================
# DOCUMENT
# =============================================================================

def _uses_xlink(tree):
    for node in tree.descendants():
        if node.kind is NodeKind.IMAGE:
            return True
    for definition in tree.defs.values():
        if definition.kind is DefKind.FILTER:
            stack = list(definition.primitives)
            while stack:
                primitive = stack.pop()
                if any(name == 'xlink:href' for name, _ in primitive.attributes):
                    return True
                stack.extend(primitive.children)
    return False


def indent(elem, level=0):
    """Two-space indentation that leaves the inside of <text> untouched."""
    pad = '\n' + '  ' * level
    if len(elem) and elem.tag != 'text':
        if not elem.text or not elem.text.strip():
            elem.text = pad + '  '
        for child in elem:
            indent(child, level + 1)
        last = elem[-1]
        last.tail = pad
    if level and (not elem.tail or not elem.tail.strip()):
        elem.tail = pad


def build_element(tree):
    """ElementTree element of the canonical document."""
    root = ET.Element('svg')
    root.set('xmlns', SVG_NS)
    if _uses_xlink(tree):
        root.set('xmlns:xlink', XLINK_NS)
    root.set('width', fmt(tree.width))
    root.set('height', fmt(tree.height))
    root.set('viewBox', ' '.join(fmt(v) for v in tree.view_box))
    if tree.aspect != DEFAULT_ASPECT:
        root.set('preserveAspectRatio', str(tree.aspect))
    root.set('xmlns:svgn', STAMP_NAMESPACE)
    root.set('svgn:version', __version__)

    defs = ET.SubElement(root, 'defs')
    for definition in tree.defs.values():
        write_definition(defs, definition)

    for child in tree.root.children:
        write_node(root, child, tree.root.transform)
    return root


def write_svg(tree):
    """Canonical SVG markup for a Tree."""
    root = build_element(tree)
    indent(root)
    return ET.tostring(root, encoding='unicode')
