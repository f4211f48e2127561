"""
Text runs.

A <text> element and its <tspan> descendants flatten into chunks (runs
that start at an absolute position) of spans (runs sharing one style),
with XML whitespace handling applied. Glyph shaping is left to backends;
the layout box computed here is a font-size based estimate.
"""

import logging
import re
from dataclasses import replace

from .bbox import BoundingBox, union_boxes
from .document import get_attr, tag_name
from .style import resolve_style
from .tree import TextChunk, TextSpan
from .units import AXIS_X, AXIS_Y, parse_length, to_user_units

logger = logging.getLogger(__name__)

ASCENT = 0.8
DESCENT = 0.2

_SPAN_TAGS = frozenset({'tspan', 'a'})


def _first_length(text, axis, viewport):
    """First entry of an x/y list; per-glyph positioning beyond it is not kept."""
    if not text:
        return None
    parts = re.split(r'[\s,]+', text.strip())
    length = parse_length(parts[0]) if parts and parts[0] else None
    if length is None:
        return None
    return to_user_units(length, axis, viewport)


def _clean_font_family(value):
    families = [f.strip().strip('\'"').strip() for f in value.split(',')]
    return ', '.join(f for f in families if f)


def _collapse(text, preserve):
    if preserve:
        return text.replace('\r\n', ' ').replace('\n', ' ').replace('\t', ' ')
    text = text.replace('\r', '').replace('\n', '').replace('\t', ' ')
    return re.sub(r' +', ' ', text)


def collect_runs(elem, style, viewport):
    """
    Flatten a text element into raw chunks.

    Returns a list of [x, y, anchor, [(text, style), ...]] entries, before
    whitespace trimming and paint resolution.
    """
    chunks = []

    def add_text(text, run_style, preserve):
        if not text:
            return
        text = _collapse(text, preserve)
        if not chunks:
            chunks.append([None, None, run_style.get('text-anchor', 'start'), []])
        chunks[-1][3].append((text, run_style, preserve))

    def start_chunk(node, node_style):
        x = _first_length(node.get('x'), AXIS_X, viewport)
        y = _first_length(node.get('y'), AXIS_Y, viewport)
        if x is None and y is None and chunks:
            return
        chunks.append([x, y, node_style.get('text-anchor', 'start'), []])

    def walk(node, node_style, preserve):
        space = get_attr(node, 'xml:space')
        if space is not None:
            preserve = space == 'preserve'
        start_chunk(node, node_style)
        add_text(node.text, node_style, preserve)
        for child in node:
            child_tag = tag_name(child)
            if child_tag in _SPAN_TAGS:
                child_style = resolve_style(child, node_style)
                if child_style.get('display') != 'none':
                    walk(child, child_style, preserve)
            add_text(child.tail, node_style, preserve)

    walk(elem, style, False)
    return chunks


def build_chunks(raw_chunks):
    """
    Apply whitespace rules and turn raw chunks into TextChunk values with
    unpainted spans. Returns a tuple of chunks and the style of every span,
    in the same order.
    """
    runs = [run for chunk in raw_chunks for run in chunk[3]]

    # Collapse spaces across span boundaries, then trim the ends of the element.
    previous_space = True
    cleaned = []
    for text, run_style, preserve in runs:
        if not preserve:
            if previous_space and text.startswith(' '):
                text = text[1:]
            if text:
                previous_space = text.endswith(' ')
        else:
            previous_space = False
        cleaned.append(text)

    for index in range(len(runs) - 1, -1, -1):
        if runs[index][2]:
            break
        stripped = cleaned[index].rstrip(' ')
        cleaned[index] = stripped
        if stripped:
            break

    chunks = []
    styles = []
    position = 0
    for x, y, anchor, chunk_runs in raw_chunks:
        spans = []
        for _, run_style, _ in chunk_runs:
            text = cleaned[position]
            position += 1
            if not text:
                continue
            spans.append(TextSpan(
                text=text,
                font_family=_clean_font_family(run_style.font_family),
                font_size=run_style.font_size,
                font_weight=run_style.get('font-weight', 'normal'),
                font_style=run_style.get('font-style', 'normal'),
            ))
            styles.append(run_style)
        if spans:
            chunks.append(TextChunk(x=x, y=y, anchor=anchor, spans=tuple(spans)))

    return tuple(chunks), styles


def text_layout_bbox(chunks, options):
    """
    Approximate box of laid out text in the element's own space.

    Each glyph advances by options.text_advance em; the line box spans the
    ascent and descent of the largest font in the chunk.
    """
    advance = options.text_advance if options is not None else 0.5
    boxes = []
    pen_x = pen_y = 0.0
    for chunk in chunks:
        x = pen_x if chunk.x is None else chunk.x
        y = pen_y if chunk.y is None else chunk.y
        width = sum(len(span.text) * span.font_size * advance for span in chunk.spans)
        size = max(span.font_size for span in chunk.spans)
        if chunk.anchor == 'middle':
            left = x - width / 2.0
        elif chunk.anchor == 'end':
            left = x - width
        else:
            left = x
        boxes.append(BoundingBox(left, y - size * ASCENT, width, size * (ASCENT + DESCENT)))
        pen_x, pen_y = left + width, y
    return union_boxes(boxes)


def paint_spans(chunks, styles, paint_for):
    """
    Attach fill and stroke to every span.

    `paint_for(style)` returns (fill, stroke, hidden); a span whose paint
    server turned out unusable marks the whole text hidden.
    """
    hidden = False
    painted = []
    position = 0
    for chunk in chunks:
        spans = []
        for span in chunk.spans:
            fill, stroke, span_hidden = paint_for(styles[position])
            position += 1
            hidden = hidden or span_hidden
            spans.append(replace(span, fill=fill, stroke=stroke))
        painted.append(replace(chunk, spans=tuple(spans)))
    return tuple(painted), hidden
