"""
Macro syntax helpers.

Macros are ``${name}`` tokens inside document text. Blocks are delimited by
``${name}`` and ``${/name}``; cloned copies rename ``${name}`` to ``${name#i}``.
"""

from __future__ import annotations

import re
from typing import List

MACRO_OPEN = '${'
MACRO_CLOSE = '}'

# A macro whose opening delimiter or name may have been split by markup tags
BROKEN_MACRO_PATTERN = re.compile(r'\$[^{]*\{[^}]*\}')
MACRO_PATTERN = re.compile(r'\$\{(.*?)\}', re.IGNORECASE)
TAG_PATTERN = re.compile(r'<[^>]*>')


def fix_broken_macros(document_part: str) -> str:
    """
    Finds parts of broken macros and sticks them together.

    Word processors split a macro typed as one token over several runs, e.g.
    ``$</w:t></w:r><w:r><w:t>{name}``. Every candidate match has its markup
    tags stripped so that a clean ``${name}`` remains.
    """
    return BROKEN_MACRO_PATTERN.sub(lambda match: TAG_PATTERN.sub('', match.group(0)), document_part)


def find_variables(document_part: str) -> List[str]:
    """Return macro names in order of appearance, duplicates included."""
    return MACRO_PATTERN.findall(document_part)


def ensure_macro_completed(macro: str) -> str:
    """Wrap a bare name as ``${name}``; leave already delimited terms alone."""
    if not macro.startswith(MACRO_OPEN) and not macro.endswith(MACRO_CLOSE):
        macro = MACRO_OPEN + macro + MACRO_CLOSE
    return macro


def block_open_macro(block_name: str) -> str:
    return MACRO_OPEN + block_name + MACRO_CLOSE


def block_close_macro(block_name: str) -> str:
    return MACRO_OPEN + '/' + block_name + MACRO_CLOSE


def suffix_macros(fragment: str, index: int) -> str:
    """Rename every macro in ``fragment`` to its ``#index`` clone name."""
    return MACRO_PATTERN.sub(lambda match: '${%s#%d}' % (match.group(1), index), fragment)
