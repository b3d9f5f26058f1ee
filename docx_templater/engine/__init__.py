"""
Template engine - macro syntax, substitution and structural block operations.
"""

from .block_locator import BlockMatch, FragmentSet, RowBounds, find_block, find_paragraph_fragments, locate_row
from .macros import ensure_macro_completed, find_variables, fix_broken_macros
from .substitution import UNLIMITED, normalize_pairs, set_value_for_part

__all__ = [
    "BlockMatch",
    "FragmentSet",
    "RowBounds",
    "find_block",
    "find_paragraph_fragments",
    "locate_row",
    "ensure_macro_completed",
    "find_variables",
    "fix_broken_macros",
    "UNLIMITED",
    "normalize_pairs",
    "set_value_for_part",
]
