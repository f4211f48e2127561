#!/usr/bin/env python3
"""
SVG Normalization Script
- Reads an SVG document from stdin
- Resolves styles, references, transforms and shapes into a flat render tree
- Writes the canonical form of that tree to stdout

Usage: normalize_svg.py [--keep-named-groups] [--draw-bboxes] [--base-path DIR]
"""

import logging
import sys

from svg_normalizer import NormalizeError, Options, from_markup, to_svg
from svg_normalizer.overlay import draw_bboxes

logger = logging.getLogger('normalize_svg')


def parse_args(argv):
    """Tiny flag parser; returns (options kwargs, draw_bboxes flag)."""
    kwargs = {}
    bboxes = False
    args = list(argv)
    while args:
        arg = args.pop(0)
        if arg == '--keep-named-groups':
            kwargs['keep_named_groups'] = True
        elif arg == '--draw-bboxes':
            bboxes = True
        elif arg == '--base-path' and args:
            kwargs['base_path'] = args.pop(0)
        else:
            print(__doc__.strip().splitlines()[-1], file=sys.stderr)
            sys.exit(1)
    return kwargs, bboxes


def main():
    logging.basicConfig(level=logging.INFO, format='[normalize_svg] %(message)s', stream=sys.stderr)

    kwargs, bboxes = parse_args(sys.argv[1:])
    options = Options(**kwargs)

    # Read SVG from stdin
    svg_input = sys.stdin.read()
    logger.info(f"Input size: {len(svg_input)} bytes")

    tree = from_markup(svg_input, options)
    logger.info(f"Size: {tree.width}x{tree.height}, defs: {len(tree.defs)}")

    if bboxes:
        draw_bboxes(tree)

    output = '<?xml version="1.0" encoding="utf-8"?>\n'
    output += to_svg(tree)

    logger.info(f"Output size: {len(output)} bytes")
    print(output)


if __name__ == '__main__':
    try:
        main()
    except NormalizeError as e:
        logger.error(f"ERROR: {e}")
        sys.exit(1)
