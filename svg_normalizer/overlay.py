"""
Bounding-box overlay for debugging layouts.
"""

import logging

from .colors import Color
from .paths import rect_to_segments
from .tree import Path, Stroke

logger = logging.getLogger(__name__)

OVERLAY_STROKE = Stroke(paint=Color(255, 0, 0), opacity=0.5)


def draw_bboxes(tree, visual=False):
    """
    Append one outline path per canvas node, tracing its bounding box.

    Nodes inside definitions are skipped. Boxes are collected before the
    first append so the overlay never outlines itself. Returns the number
    of outlines added.
    """
    boxes = []
    for node in tree.descendants():
        if tree.is_in_defs(node):
            continue
        box = tree.visual_bbox(node) if visual else tree.bbox(node)
        if box is not None and not box.is_degenerate:
            boxes.append(box)

    for box in boxes:
        tree.append(Path(stroke=OVERLAY_STROKE,
                         segments=rect_to_segments(box.x, box.y, box.width, box.height)))

    logger.info(f"Drew {len(boxes)} bounding boxes")
    return len(boxes)
