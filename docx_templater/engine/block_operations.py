"""
Block operations on the main document part.

Every function takes the current main part text and returns the new text (or
the new text plus a by-product); none of them mutate shared state, so a caller
commits the result only once the whole operation has succeeded.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from ..exceptions import MacroNotFoundError, TemplateConfigurationError
from .block_locator import find_block, find_paragraph_fragments, locate_row
from .macros import ensure_macro_completed, suffix_macros

logger = logging.getLogger(__name__)


def strip_fragments(markup: str, fragments: Iterable[str]) -> str:
    for fragment in fragments:
        markup = markup.replace(fragment, '')
    return markup


def make_clones(markup: str, clones: int, page_break_fragments: Sequence[str] = ()) -> List[str]:
    """Return ``clones`` copies of ``markup`` with macros suffixed ``#1`` .. ``#clones``."""
    if clones < 0:
        raise TemplateConfigurationError("Number of clones must not be negative", str(clones))
    return [
        strip_fragments(suffix_macros(markup, index), page_break_fragments)
        for index in range(1, clones + 1)
    ]


def clone_row(document_part: str, search: str, clones: int,
              page_break_fragments: Sequence[str] = ()) -> str:
    """
    Clone the table row holding ``search``.

    A row restarting a vertically merged cell is cloned together with the rows
    continuing the merge.

    Raises:
        MacroNotFoundError: if the macro or the row boundaries are missing
    """
    search = ensure_macro_completed(search)

    tag_position = document_part.find(search)
    if tag_position < 0:
        raise MacroNotFoundError(
            "Can not clone row, template variable not found or variable contains markup",
            search,
        )

    bounds = locate_row(document_part, tag_position)
    xml_row = document_part[bounds.start:bounds.end]
    copies = make_clones(xml_row, clones, page_break_fragments)

    logger.debug(f"Cloning row {bounds.start}:{bounds.end} for {search} x{clones}")
    return document_part[:bounds.start] + ''.join(copies) + document_part[bounds.end:]


def clone_block(document_part: str, block_name: str, clones: int = 1, auto_replace: bool = True,
                page_break_fragments: Sequence[str] = ()) -> Tuple[str, Optional[str]]:
    """
    Clone the ``block_name`` block.

    Returns:
        Tuple of (new main part, markup of the last clone). The main part is
        returned unchanged when the block is missing or ``auto_replace`` is false;
        the clone is ``None`` when the block is missing.
    """
    match = find_block(document_part, block_name)
    if match is None:
        logger.warning(f"Block '{block_name}' not found, nothing cloned")
        return document_part, None

    copies = make_clones(match.inner, clones, page_break_fragments)
    xml_block = copies[-1] if copies else match.inner

    if not auto_replace:
        return document_part, xml_block

    logger.debug(f"Cloning block '{block_name}' x{clones}")
    return match.replace_full(''.join(copies)), xml_block


def replace_block(document_part: str, block_name: str, replacement: str) -> str:
    """Replace the ``block_name`` block, boundary paragraphs included, with ``replacement``."""
    match = find_block(document_part, block_name)
    if match is None:
        logger.warning(f"Block '{block_name}' not found, nothing replaced")
        return document_part

    logger.debug(f"Replacing block '{block_name}' span {match.start}:{match.end}")
    return match.replace_full(replacement)


def delete_block(document_part: str, block_name: str) -> str:
    return replace_block(document_part, block_name, '')


def collapse_rewrites(document_part: str, line_break: str, rewrites: Sequence[str]) -> str:
    """Collapse each rewrite sequence to ``line_break`` until none is left."""
    for sequence in rewrites:
        while sequence in document_part:
            document_part = document_part.replace(sequence, line_break)
    return document_part


def insert_line_breaks(document_part: str, block_names: Iterable[str], line_break: str,
                       rewrites: Sequence[str] = ()) -> str:
    """
    Replace every paragraph holding one of the ``block_names`` macros with
    ``line_break``, then collapse redundant break sequences.
    """
    fragments = find_paragraph_fragments(document_part, list(block_names))
    if fragments is not None:
        logger.debug(f"Collapsing {len(fragments.spans)} paragraph(s) to line breaks")
        document_part = fragments.replace_all(line_break)
    return collapse_rewrites(document_part, line_break, rewrites)


def delete_white_lines(document_part: str, block_names: Iterable[str]) -> str:
    """Remove every paragraph holding one of the ``block_names`` macros."""
    fragments = find_paragraph_fragments(document_part, list(block_names))
    if fragments is None:
        return document_part

    logger.debug(f"Deleting {len(fragments.spans)} paragraph(s)")
    return fragments.replace_all('')
