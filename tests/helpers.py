from __future__ import annotations

SVG_OPEN = (
    '<svg xmlns="http://www.w3.org/2000/svg" '
    'xmlns:xlink="http://www.w3.org/1999/xlink" width="100" height="100">'
)


def svg(body: str) -> str:
    """Wrap markup in a 100x100 root element."""
    return SVG_OPEN + body + '</svg>'
