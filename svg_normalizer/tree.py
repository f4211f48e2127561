"""
Render tree.

The normalized output: four node variants with absolute transforms,
resolved paints and an id-indexed registry of definitions. Nodes are frozen
dataclasses; a Tree is only ever changed through Tree.append.
"""

import enum
import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import ClassVar, Optional, Tuple, Union

from .bbox import BoundingBox, segments_bbox, stroked_bbox, union_boxes
from .colors import BLACK, Color
from .matrix import IDENTITY, Transform
from .units import DEFAULT_ASPECT, AspectRatio, Rect

logger = logging.getLogger(__name__)

USER_SPACE = 'userSpaceOnUse'
OBJECT_BBOX = 'objectBoundingBox'


# =============================================================================
# PAINT
# =============================================================================

@dataclass(frozen=True)
class LinearGradientRef:
    id: str


@dataclass(frozen=True)
class RadialGradientRef:
    id: str


@dataclass(frozen=True)
class PatternRef:
    id: str


Paint = Union[Color, LinearGradientRef, RadialGradientRef, PatternRef]


@dataclass(frozen=True)
class Fill:
    paint: Paint = BLACK
    opacity: float = 1.0
    rule: str = 'nonzero'


@dataclass(frozen=True)
class Stroke:
    paint: Paint
    width: float = 1.0
    opacity: float = 1.0
    linecap: str = 'butt'
    linejoin: str = 'miter'
    miterlimit: float = 4.0
    dasharray: Optional[Tuple[float, ...]] = None
    dashoffset: float = 0.0


# =============================================================================
# NODES
# =============================================================================

class NodeKind(enum.Enum):
    GROUP = 'group'
    PATH = 'path'
    TEXT = 'text'
    IMAGE = 'image'


@dataclass(frozen=True)
class Group:
    """
    A container node.

    Groups carry no visibility of their own: `visibility` is inherited and
    is resolved onto every leaf beneath them. `neutral_opacity` marks a
    group written with an explicit opacity of 1, which is always unwrapped.
    """
    kind: ClassVar[NodeKind] = NodeKind.GROUP

    id: str = ''
    transform: Transform = IDENTITY
    opacity: float = 1.0
    clip_path: Optional[str] = None
    mask: Optional[str] = None
    filter: Optional[str] = None
    children: tuple = ()
    neutral_opacity: bool = field(default=False, compare=False)

    @property
    def has_effects(self):
        """True when the group is a compositing boundary and must be kept."""
        return (self.opacity != 1.0 or self.clip_path is not None
                or self.mask is not None or self.filter is not None)


@dataclass(frozen=True)
class Path:
    kind: ClassVar[NodeKind] = NodeKind.PATH

    id: str = ''
    transform: Transform = IDENTITY
    fill: Optional[Fill] = None
    stroke: Optional[Stroke] = None
    visibility: str = 'visible'
    segments: tuple = ()


@dataclass(frozen=True)
class TextSpan:
    text: str
    font_family: str
    font_size: float
    font_weight: str = 'normal'
    font_style: str = 'normal'
    fill: Optional[Fill] = None
    stroke: Optional[Stroke] = None


@dataclass(frozen=True)
class TextChunk:
    """A run of spans starting at one absolute position (None continues the previous chunk)."""
    x: Optional[float]
    y: Optional[float]
    anchor: str = 'start'
    spans: tuple = ()


@dataclass(frozen=True)
class Text:
    kind: ClassVar[NodeKind] = NodeKind.TEXT

    id: str = ''
    transform: Transform = IDENTITY
    visibility: str = 'visible'
    chunks: tuple = ()


@dataclass(frozen=True)
class ImageData:
    """Opaque image payload: decoded bytes from a data URL, or a file reference."""
    kind: str
    data: Optional[bytes] = None
    path: Optional[object] = None


@dataclass(frozen=True)
class Image:
    kind: ClassVar[NodeKind] = NodeKind.IMAGE

    id: str = ''
    transform: Transform = IDENTITY
    visibility: str = 'visible'
    view: Rect = Rect(0.0, 0.0, 0.0, 0.0)
    aspect: AspectRatio = DEFAULT_ASPECT
    data: Optional[ImageData] = None


Node = Union[Group, Path, Text, Image]


def retains_id(node, keep_named_groups=False):
    """Whether a node keeps its own id in the output."""
    if node.kind is NodeKind.GROUP:
        if node.has_effects:
            return True
        return keep_named_groups and not node.neutral_opacity
    return True


def prepend_transform(node, matrix):
    """Copy of a subtree with `matrix` applied before every absolute transform."""
    if matrix.is_identity:
        return node
    if node.kind is NodeKind.GROUP:
        children = tuple(prepend_transform(child, matrix) for child in node.children)
        return replace(node, transform=matrix.multiply(node.transform), children=children)
    return replace(node, transform=matrix.multiply(node.transform))


def iter_subtree(node):
    """Pre-order walk of a node and its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if current.kind is NodeKind.GROUP:
            stack.extend(reversed(current.children))


# =============================================================================
# DEFINITIONS
# =============================================================================

class DefKind(enum.Enum):
    LINEAR_GRADIENT = 'linearGradient'
    RADIAL_GRADIENT = 'radialGradient'
    PATTERN = 'pattern'
    CLIP_PATH = 'clipPath'
    MASK = 'mask'
    FILTER = 'filter'


@dataclass(frozen=True)
class Stop:
    offset: float
    color: Color
    opacity: float = 1.0


@dataclass(frozen=True)
class LinearGradient:
    kind: ClassVar[DefKind] = DefKind.LINEAR_GRADIENT

    id: str
    x1: float
    y1: float
    x2: float
    y2: float
    units: str = OBJECT_BBOX
    transform: Transform = IDENTITY
    spread: str = 'pad'
    stops: tuple = ()


@dataclass(frozen=True)
class RadialGradient:
    kind: ClassVar[DefKind] = DefKind.RADIAL_GRADIENT

    id: str
    cx: float
    cy: float
    r: float
    fx: float
    fy: float
    units: str = OBJECT_BBOX
    transform: Transform = IDENTITY
    spread: str = 'pad'
    stops: tuple = ()


@dataclass(frozen=True)
class Pattern:
    kind: ClassVar[DefKind] = DefKind.PATTERN

    id: str
    rect: Rect
    units: str = OBJECT_BBOX
    content_units: str = USER_SPACE
    transform: Transform = IDENTITY
    view_box: Optional[Rect] = None
    aspect: AspectRatio = DEFAULT_ASPECT
    children: tuple = ()


@dataclass(frozen=True)
class ClipPath:
    kind: ClassVar[DefKind] = DefKind.CLIP_PATH

    id: str
    units: str = USER_SPACE
    transform: Transform = IDENTITY
    clip_path: Optional[str] = None
    children: tuple = ()

    @property
    def is_empty(self):
        return not self.children


@dataclass(frozen=True)
class Mask:
    kind: ClassVar[DefKind] = DefKind.MASK

    id: str
    rect: Rect
    units: str = OBJECT_BBOX
    content_units: str = USER_SPACE
    mask: Optional[str] = None
    children: tuple = ()

    @property
    def is_empty(self):
        return not self.children


@dataclass(frozen=True)
class FilterPrimitive:
    """A filter primitive kept as-is; filter evaluation belongs to the backend."""
    tag: str
    attributes: tuple = ()
    children: tuple = ()


@dataclass(frozen=True)
class Filter:
    kind: ClassVar[DefKind] = DefKind.FILTER

    id: str
    rect: Rect
    units: str = OBJECT_BBOX
    primitive_units: str = USER_SPACE
    primitives: tuple = ()

    @property
    def is_empty(self):
        return not self.primitives


def def_children(definition):
    """Content nodes owned by a definition (empty for gradients and filters)."""
    return getattr(definition, 'children', ())


def object_bbox_transform(bbox):
    """Maps the unit square of objectBoundingBox units onto `bbox`."""
    return Transform(bbox.width, 0.0, 0.0, bbox.height, bbox.x, bbox.y)


# =============================================================================
# TREE
# =============================================================================

@dataclass
class Tree:
    """
    A normalized document.

    Nodes are immutable. Bounding-box queries fill internal caches as a
    side effect but never change a result another query can observe;
    concurrent readers may at worst compute the same entry twice.
    append() replaces the root, clears the caches and needs
    exclusive access.
    """
    root: Group
    width: float
    height: float
    view_box: Rect
    aspect: AspectRatio = DEFAULT_ASPECT
    defs: dict = field(default_factory=dict)
    options: object = None

    def __post_init__(self):
        self.defs = MappingProxyType(dict(self.defs))
        self._bbox_cache = {}
        self._visual_cache = {}
        self._defs_members = None

    @property
    def size(self):
        return self.width, self.height

    def descendants(self):
        """
        Pre-order iterator over every node: the root, the content of each
        definition in registry order, then the root's children. Each call
        returns a fresh iterator.
        """
        yield self.root
        for definition in self.defs.values():
            for child in def_children(definition):
                yield from iter_subtree(child)
        for child in self.root.children:
            yield from iter_subtree(child)

    def is_in_defs(self, node):
        """True for nodes that belong to a definition's content rather than to the canvas."""
        if self._defs_members is None:
            members = set()
            for definition in self.defs.values():
                for child in def_children(definition):
                    members.update(id(n) for n in iter_subtree(child))
            self._defs_members = members
        return id(node) in self._defs_members

    def find(self, node_id):
        """First node in traversal order with the given id."""
        if not node_id:
            return None
        for node in self.descendants():
            if node.id == node_id:
                return node
        return None

    def paint_server(self, paint):
        """Definition behind a gradient or pattern reference, or None for plain colors."""
        if isinstance(paint, (LinearGradientRef, RadialGradientRef, PatternRef)):
            return self.defs.get(paint.id)
        return None

    def bbox(self, node):
        """
        Geometry bounding box (stroke excluded) of a node in canvas space.

        None when the node has no geometry. Cached per node.
        """
        entry = self._bbox_cache.get(id(node))
        if entry is not None and entry[0] is node:
            return entry[1]
        box = self._compute_bbox(node)
        self._bbox_cache[id(node)] = (node, box)
        return box

    def visual_bbox(self, node):
        """Bounding box including the stroke, in canvas space. Cached per node."""
        entry = self._visual_cache.get(id(node))
        if entry is not None and entry[0] is node:
            return entry[1]

        if node.kind is NodeKind.PATH and node.stroke is not None:
            tolerance = self.options.curve_tolerance if self.options else 0.25
            box = stroked_bbox(node.segments, node.stroke, node.transform, tolerance)
        elif node.kind is NodeKind.GROUP:
            box = union_boxes(self.visual_bbox(child) for child in node.children)
        else:
            box = self.bbox(node)

        self._visual_cache[id(node)] = (node, box)
        return box

    def _compute_bbox(self, node):
        if node.kind is NodeKind.PATH:
            return segments_bbox(node.segments, node.transform)
        if node.kind is NodeKind.GROUP:
            return union_boxes(self.bbox(child) for child in node.children)
        if node.kind is NodeKind.TEXT:
            from .text import text_layout_bbox
            local = text_layout_bbox(node.chunks, self.options)
            return local.transform(node.transform) if local is not None else None
        if node.kind is NodeKind.IMAGE:
            return BoundingBox(*node.view).transform(node.transform)
        raise TypeError(f"unknown node kind {node.kind!r}")

    def append(self, node):
        """
        Append a node as the last child of the root.

        Meant for diagnostic overlays added after normalization. Not safe to
        call while another consumer is reading the tree.
        """
        self.root = replace(self.root, children=self.root.children + (node,))
        self._bbox_cache.clear()
        self._visual_cache.clear()
        logger.debug(f"Appended {node.kind.value} node to root")

    def to_svg(self):
        from .serialize import write_svg
        return write_svg(self)
