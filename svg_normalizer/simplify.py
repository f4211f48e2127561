"""
Tree simplification.

Transforms are absolute, so removing a group never moves anything: its
children are re-parented as they are. Groups survive only when they are a
compositing boundary, or when they are named and named groups are kept.
A group written with opacity="1" and no other effect is always unwrapped.
"""

import logging
from dataclasses import replace

from .tree import NodeKind, retains_id

logger = logging.getLogger(__name__)


def simplify_group(group, keep_named_groups=False):
    """
    Simplify one group.

    Returns the list of nodes that replace it in its parent: [group] when
    it is kept, its children when it is unwrapped, [] when it is dropped.
    """
    children = simplify_nodes(group.children, keep_named_groups)

    if not children:
        if group.id:
            logger.debug(f"Dropping empty group '{group.id}'")
        return []

    if group.has_effects:
        return [replace(group, children=children)]

    if group.id:
        if retains_id(group, keep_named_groups):
            return [replace(group, children=children)]
        if len(children) == 1 and not children[0].id:
            return [replace(children[0], id=group.id)]

    return list(children)


def simplify_nodes(nodes, keep_named_groups=False):
    """Simplify a sequence of sibling nodes; returns a tuple."""
    result = []
    for node in nodes:
        if node.kind is NodeKind.GROUP:
            result.extend(simplify_group(node, keep_named_groups))
        else:
            result.append(node)
    return tuple(result)
