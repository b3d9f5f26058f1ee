"""
DOCX package access - archive entries and document parts.
"""

from .archive import TemplateArchive
from .part_store import MAIN_PART, Part, PartRole, PartStore

__all__ = ["TemplateArchive", "Part", "PartRole", "PartStore", "MAIN_PART"]
