"""
Structural block locator for the main document part.

Rows are located by scanning the serialized markup for ``<w:tr>`` boundaries.
Named blocks and line fragments are located through an lxml tree: the text
leaves holding the macros are found with XPath, their enclosing ``w:p`` nodes
are marked with comments, and the tree is serialized back so the paragraph
spans can be read off as offsets into the new text.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from lxml import etree

from ..exceptions import MacroNotFoundError, MalformedTemplateError
from .macros import block_close_macro, block_open_macro

logger = logging.getLogger(__name__)

W_NAMESPACE = 'http://schemas.openxmlformats.org/wordprocessingml/2006/main'
NS = {'w': W_NAMESPACE}

ROW_OPEN_TAGS = ('<w:tr ', '<w:tr>')
ROW_CLOSE_TAG = '</w:tr>'
TABLE_CLOSE_TAG = '</w:tbl>'

VMERGE_RESTART_MARKERS = ('<w:vMerge w:val="restart"/>', '<w:vMerge w:val="restart" />')
VMERGE_CONTINUE_MARKERS = (
    '<w:vMerge/>',
    '<w:vMerge />',
    '<w:vMerge w:val="continue"/>',
    '<w:vMerge w:val="continue" />',
)


@dataclass(frozen=True)
class RowBounds:
    """Half-open ``[start, end)`` span of one or more table rows."""
    start: int
    end: int


@dataclass(frozen=True)
class BlockMatch:
    """
    A named block located in a (re-serialized) main part.

    ``text`` is the serialization the offsets refer to. ``[start, end)`` covers
    both boundary paragraphs, ``[inner_start, inner_end)`` the markup between them.
    """
    text: str
    start: int
    end: int
    inner_start: int
    inner_end: int

    @property
    def full(self) -> str:
        return self.text[self.start:self.end]

    @property
    def inner(self) -> str:
        return self.text[self.inner_start:self.inner_end]

    def replace_full(self, replacement: str) -> str:
        """Return ``text`` with the full span replaced."""
        return self.text[:self.start] + replacement + self.text[self.end:]


@dataclass(frozen=True)
class FragmentSet:
    """Paragraph fragments located in a (re-serialized) main part."""
    text: str
    spans: Tuple[Tuple[int, int], ...]

    @property
    def fragments(self) -> List[str]:
        return [self.text[start:end] for start, end in self.spans]

    def replace_all(self, replacement: str) -> str:
        """Return ``text`` with every fragment replaced by ``replacement``."""
        pieces = []
        cursor = 0
        for start, end in self.spans:
            pieces.append(self.text[cursor:start])
            pieces.append(replacement)
            cursor = end
        pieces.append(self.text[cursor:])
        return ''.join(pieces)


# ----------------------------------------------------------------------
# Row scanning
# ----------------------------------------------------------------------

def find_row_start(document_part: str, offset: int) -> int:
    """
    Find the start position of the nearest table row before ``offset``.

    Raises:
        MacroNotFoundError: if no row opens before ``offset``
    """
    row_start = max(document_part.rfind(tag, 0, offset) for tag in ROW_OPEN_TAGS)
    if row_start < 0:
        raise MacroNotFoundError("Can not find the start position of the row to clone", f"offset {offset}")
    return row_start


def find_row_end(document_part: str, offset: int) -> Optional[int]:
    """Find the end position of the nearest table row after ``offset``, or ``None``."""
    position = document_part.find(ROW_CLOSE_TAG, offset)
    if position < 0:
        return None
    return position + len(ROW_CLOSE_TAG)


def _find_next_row_start(document_part: str, offset: int) -> Optional[int]:
    candidates = [p for p in (document_part.find(tag, offset) for tag in ROW_OPEN_TAGS) if p >= 0]
    return min(candidates) if candidates else None


def _contains_any(markup: str, markers: Iterable[str]) -> bool:
    return any(marker in markup for marker in markers)


def extend_merged_rows(document_part: str, bounds: RowBounds) -> RowBounds:
    """
    Extend ``bounds`` over the rows continuing a vertically merged cell.

    Only a row that restarts a vertical merge is extended. Following rows are
    probed one by one; probing stops when there is no next row, when the table
    closes first, or when a row carries no continue marker.
    """
    row_markup = document_part[bounds.start:bounds.end]
    if not _contains_any(row_markup, VMERGE_RESTART_MARKERS):
        return bounds

    row_end = bounds.end
    while True:
        next_start = _find_next_row_start(document_part, row_end)
        if next_start is None:
            break

        table_close = document_part.find(TABLE_CLOSE_TAG, row_end)
        if 0 <= table_close < next_start:
            break

        next_end = find_row_end(document_part, next_start)
        if next_end is None:
            break

        if not _contains_any(document_part[next_start:next_end], VMERGE_CONTINUE_MARKERS):
            break

        row_end = next_end

    if row_end != bounds.end:
        logger.debug(f"Merged rows extend span {bounds.start}:{bounds.end} to {bounds.start}:{row_end}")
    return RowBounds(bounds.start, row_end)


def locate_row(document_part: str, offset: int, follow_merges: bool = True) -> RowBounds:
    """
    Locate the row (or merged row group) enclosing ``offset``.

    Raises:
        MacroNotFoundError: if ``offset`` is not inside a row or the row end is missing
    """
    row_start = find_row_start(document_part, offset)
    # A row closed between its start and the offset means the offset is outside any row
    if document_part.find(ROW_CLOSE_TAG, row_start, offset) >= 0:
        raise MacroNotFoundError("Can not find the row to clone, variable is not inside a table row",
                                 f"offset {offset}")
    row_end = find_row_end(document_part, offset)
    if row_end is None:
        raise MacroNotFoundError("Can not find the end position of the row to clone", f"offset {offset}")

    bounds = RowBounds(row_start, row_end)
    if follow_merges:
        bounds = extend_merged_rows(document_part, bounds)
    return bounds


# ----------------------------------------------------------------------
# Tree based location
# ----------------------------------------------------------------------

def parse_part(document_part: str) -> etree._ElementTree:
    """Parse a part into an lxml tree."""
    parser = etree.XMLParser(huge_tree=True, resolve_entities=False)
    try:
        root = etree.fromstring(document_part.encode('utf-8'), parser)
    except etree.XMLSyntaxError as e:
        raise MalformedTemplateError("Could not parse document part", str(e)) from e
    return root.getroottree()


def serialize_tree(tree: etree._ElementTree) -> str:
    """Serialize a tree back to text, keeping the XML declaration."""
    return etree.tostring(
        tree,
        xml_declaration=True,
        encoding='UTF-8',
        standalone=tree.docinfo.standalone,
    ).decode('utf-8')


def _text_nodes(tree: etree._ElementTree) -> List[etree._Element]:
    return tree.xpath('//w:t', namespaces=NS)


def _enclosing_paragraph(node: etree._Element) -> Optional[etree._Element]:
    parent = node.getparent()
    while parent is not None:
        if etree.QName(parent).localname == 'p':
            return parent
        parent = parent.getparent()
    return None


def _serialize_with_markers(tree: etree._ElementTree,
                            anchors: Sequence[Tuple[etree._Element, str]]) -> Tuple[str, List[int]]:
    """
    Serialize ``tree`` with a marker comment at each ``(element, 'before'|'after')``
    anchor and return the text without markers plus the marker offsets in it.
    """
    # The tree is a throwaway parse, so the markers are never removed from it
    token = uuid.uuid4().hex
    for index, (element, side) in enumerate(anchors):
        comment = etree.Comment(f"tpl-{token}-{index}")
        if side == 'before':
            element.addprevious(comment)
        else:
            element.addnext(comment)

    text = serialize_tree(tree)

    found = []
    for index in range(len(anchors)):
        marker = f"<!--tpl-{token}-{index}-->"
        position = text.find(marker)
        if position < 0:
            raise MalformedTemplateError("Lost block marker while serializing document part")
        found.append((position, index, len(marker)))

    pieces = []
    offsets = [0] * len(anchors)
    cursor = 0
    length = 0
    for position, index, marker_length in sorted(found):
        pieces.append(text[cursor:position])
        length += position - cursor
        offsets[index] = length
        cursor = position + marker_length
    pieces.append(text[cursor:])
    return ''.join(pieces), offsets


def find_block(document_part: str, block_name: str) -> Optional[BlockMatch]:
    """
    Locate the ``${block_name}`` ... ``${/block_name}`` block.

    Returns ``None`` when either macro is missing, when the closing macro does
    not follow the opening one, or when both sit in the same paragraph.
    """
    open_macro = block_open_macro(block_name)
    close_macro = block_close_macro(block_name)

    tree = parse_part(document_part)

    start_node = end_node = None
    for node in _text_nodes(tree):
        text = node.text or ''
        if start_node is None:
            if open_macro in text:
                start_node = node
            continue
        if close_macro in text:
            end_node = node
            break

    if start_node is None or end_node is None:
        return None

    start_paragraph = _enclosing_paragraph(start_node)
    end_paragraph = _enclosing_paragraph(end_node)
    if start_paragraph is None or end_paragraph is None or start_paragraph is end_paragraph:
        return None

    text, offsets = _serialize_with_markers(tree, [
        (start_paragraph, 'before'),
        (start_paragraph, 'after'),
        (end_paragraph, 'before'),
        (end_paragraph, 'after'),
    ])
    if offsets != sorted(offsets):
        # End paragraph encloses or precedes the start paragraph
        return None

    start, inner_start, inner_end, end = offsets
    logger.debug(f"Block '{block_name}' spans {start}:{end} (inner {inner_start}:{inner_end})")
    return BlockMatch(text=text, start=start, end=end, inner_start=inner_start, inner_end=inner_end)


def find_paragraph_fragments(document_part: str, block_names: Iterable[str]) -> Optional[FragmentSet]:
    """
    Locate every paragraph holding ``${name}`` for any of ``block_names``.

    Returns ``None`` when no paragraph matches. Paragraphs matched more than
    once are reported once, in document order.
    """
    macros = [block_open_macro(name) for name in block_names]
    if not macros:
        return None

    tree = parse_part(document_part)

    paragraphs: List[etree._Element] = []
    seen = set()
    for node in _text_nodes(tree):
        text = node.text or ''
        if not any(macro in text for macro in macros):
            continue
        paragraph = _enclosing_paragraph(node)
        if paragraph is None or id(paragraph) in seen:
            continue
        seen.add(id(paragraph))
        paragraphs.append(paragraph)

    # Paragraphs nested inside a matched paragraph go with their ancestor
    matched = set(seen)
    paragraphs = [p for p in paragraphs if not any(id(a) in matched for a in p.iterancestors())]
    if not paragraphs:
        return None

    anchors = []
    for paragraph in paragraphs:
        anchors.append((paragraph, 'before'))
        anchors.append((paragraph, 'after'))
    text, offsets = _serialize_with_markers(tree, anchors)

    spans = tuple(sorted(zip(offsets[0::2], offsets[1::2])))
    logger.debug(f"Found {len(spans)} paragraph fragment(s) for {list(block_names)}")
    return FragmentSet(text=text, spans=spans)
