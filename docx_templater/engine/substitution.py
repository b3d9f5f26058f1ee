"""
Substitution engine - replaces macros with values across document parts.

Two modes:
- unlimited (``limit == UNLIMITED``): literal substring replacement
- bounded (``limit >= 0``): escaped regex replacement capped per part
"""

from __future__ import annotations

import logging
import re
from typing import Any, List, Sequence, Tuple, Union

from ..exceptions import TemplateConfigurationError
from ..utils.xml_utils import ensure_text, escape_xml_text, sanitize_xml_string
from .macros import ensure_macro_completed

logger = logging.getLogger(__name__)

UNLIMITED = -1

SearchArg = Union[str, Sequence[str]]
ReplaceArg = Union[Any, Sequence[Any]]


def _is_many(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def normalize_pairs(search: SearchArg, replace: ReplaceArg) -> Tuple[List[Any], List[Any]]:
    """
    Normalize single-or-many arguments to two sequences of equal length.

    A single value is broadcast to the length of the other argument. Two
    sequences of different lengths are rejected.
    """
    searches = list(search) if _is_many(search) else None
    replaces = list(replace) if _is_many(replace) else None

    if searches is None and replaces is None:
        return [search], [replace]
    if searches is None:
        return [search] * len(replaces), replaces
    if replaces is None:
        return searches, [replace] * len(searches)
    if len(searches) != len(replaces):
        raise TemplateConfigurationError(
            "Search and replace sequences differ in length",
            f"{len(searches)} search terms, {len(replaces)} replacements",
        )
    return searches, replaces


def validate_limit(limit: int) -> int:
    if limit is None:
        return UNLIMITED
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < UNLIMITED:
        raise TemplateConfigurationError("Replacement limit must be -1 (unlimited) or a count >= 0", repr(limit))
    return limit


def prepare_replacement(value: Any, output_escaping: bool) -> str:
    """Decode, sanitize and optionally XML-escape a replacement value."""
    text = sanitize_xml_string(ensure_text(value))
    if output_escaping:
        text = escape_xml_text(text)
    return text


def prepare_pairs(search: SearchArg, replace: ReplaceArg, output_escaping: bool = False) -> List[Tuple[str, str]]:
    """Build ordered ``(macro, replacement)`` pairs ready for :func:`set_value_for_part`."""
    searches, replaces = normalize_pairs(search, replace)
    return [
        (ensure_macro_completed(ensure_text(term)), prepare_replacement(value, output_escaping))
        for term, value in zip(searches, replaces)
    ]


def set_value_for_part(pairs: Sequence[Tuple[str, str]], document_part: str, limit: int = UNLIMITED) -> str:
    """
    Find and replace macros in the given XML part.

    Pairs are applied in order, each one on the output of the previous.
    """
    if limit == UNLIMITED:
        for search, replace in pairs:
            document_part = document_part.replace(search, replace)
        return document_part

    if limit == 0:
        return document_part

    for search, replace in pairs:
        # Replacement is a function so values are never read as group references
        document_part = re.sub(re.escape(search), lambda _match, value=replace: value, document_part, count=limit)
    return document_part
