"""
Attributed document model.

The input side of the normalizer: an xml.etree tree plus the lookups the
conversion passes need (id index, parent links, document order). Raw markup
parsing lives here only so callers and tests have a convenient way in; the
passes themselves never look at text.
"""

import logging
import xml.etree.ElementTree as ET

from .errors import InvalidRootError, ParseError

logger = logging.getLogger(__name__)

SVG_NS = 'http://www.w3.org/2000/svg'
XLINK_NS = 'http://www.w3.org/1999/xlink'
XML_NS = 'http://www.w3.org/XML/1998/namespace'


def tag_name(elem):
    """
    Local name of an SVG element.

    Elements in foreign namespaces (inkscape:, sodipodi:...) and comments
    give '' so every stage treats them as unknown.
    """
    tag = elem.tag
    if not isinstance(tag, str):
        return ''
    if tag.startswith('{'):
        uri, _, local = tag[1:].partition('}')
        return local if uri == SVG_NS else ''
    return tag


def get_attr(elem, name):
    """Read an attribute, mapping the namespaced ones we care about."""
    if name == 'href':
        value = elem.get(f'{{{XLINK_NS}}}href')
        if value is None:
            value = elem.get('href')
        return value
    if name == 'xml:space':
        return elem.get(f'{{{XML_NS}}}space')
    return elem.get(name)


def parse_iri(value):
    """'#id' -> 'id'. Anything that is not a local fragment gives None."""
    if not value:
        return None
    value = value.strip()
    if value.startswith('#') and len(value) > 1:
        return value[1:]
    return None


class Document:
    """
    An SVG document ready for normalization.

    The element tree is never modified by the normalizer.
    """

    def __init__(self, root):
        if root is None or tag_name(root) != 'svg':
            tag = getattr(root, 'tag', None)
            raise InvalidRootError(f"root element must be <svg>, got {tag!r}")

        self.root = root
        self._parents = {child: parent for parent in root.iter() for child in parent}
        self._ids = {}
        for elem in root.iter():
            elem_id = elem.get('id')
            if elem_id and elem_id not in self._ids:
                self._ids[elem_id] = elem

        logger.debug(f"Document: {len(self._parents) + 1} elements, {len(self._ids)} ids")

    @classmethod
    def from_markup(cls, text):
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            raise ParseError(f"malformed SVG markup: {e}") from e
        return cls(root)

    @classmethod
    def from_file(cls, path):
        try:
            tree = ET.parse(path)
        except ET.ParseError as e:
            raise ParseError(f"malformed SVG file {path}: {e}") from e
        return cls(tree.getroot())

    def element_by_id(self, elem_id):
        return self._ids.get(elem_id)

    def ancestors(self, elem):
        """Ancestors from the root down to the element's parent."""
        chain = []
        parent = self._parents.get(elem)
        while parent is not None:
            chain.append(parent)
            parent = self._parents.get(parent)
        chain.reverse()
        return chain

