"""
Part store - XML text of the main document part, headers and footers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional

from .archive import TemplateArchive

logger = logging.getLogger(__name__)

MAIN_PART_NAME = 'word/document.xml'
HEADER_NAME_TEMPLATE = 'word/header%d.xml'
FOOTER_NAME_TEMPLATE = 'word/footer%d.xml'


class PartRole(Enum):
    MAIN = "main"
    HEADER = "header"
    FOOTER = "footer"


@dataclass(frozen=True)
class Part:
    """Address of a document part."""
    role: PartRole
    index: int = 0

    @property
    def entry_name(self) -> str:
        if self.role is PartRole.HEADER:
            return HEADER_NAME_TEMPLATE % self.index
        if self.role is PartRole.FOOTER:
            return FOOTER_NAME_TEMPLATE % self.index
        return MAIN_PART_NAME

    def __str__(self) -> str:
        if self.role is PartRole.MAIN:
            return self.role.value
        return f"{self.role.value}[{self.index}]"


MAIN_PART = Part(PartRole.MAIN)


class PartStore:
    """
    Holds the XML text of each document part.

    Headers and footers are numbered from 1 and contiguous. Iteration order is
    headers, main, footers.
    """

    def __init__(self, main: str, headers: Optional[Dict[int, str]] = None,
                 footers: Optional[Dict[int, str]] = None):
        self.main = main
        self.headers: Dict[int, str] = dict(headers or {})
        self.footers: Dict[int, str] = dict(footers or {})

    @classmethod
    def load(cls, archive: TemplateArchive, repair: Callable[[str], str] = lambda text: text) -> "PartStore":
        """
        Read all parts from ``archive``, passing each through ``repair``.

        Raises:
            MalformedTemplateError: if the main part is missing or unreadable
        """
        headers = cls._load_numbered(archive, PartRole.HEADER, repair)
        footers = cls._load_numbered(archive, PartRole.FOOTER, repair)
        main = repair(archive.get_from_name(MAIN_PART_NAME))
        logger.debug(f"Loaded main part, {len(headers)} header(s), {len(footers)} footer(s)")
        return cls(main, headers, footers)

    @staticmethod
    def _load_numbered(archive: TemplateArchive, role: PartRole,
                       repair: Callable[[str], str]) -> Dict[int, str]:
        parts: Dict[int, str] = {}
        index = 1
        while archive.locate_name(Part(role, index).entry_name):
            parts[index] = repair(archive.get_from_name(Part(role, index).entry_name))
            index += 1
        return parts

    def parts(self) -> List[Part]:
        return (
            [Part(PartRole.HEADER, i) for i in self.headers]
            + [MAIN_PART]
            + [Part(PartRole.FOOTER, i) for i in self.footers]
        )

    def get(self, part: Part) -> str:
        if part.role is PartRole.HEADER:
            return self.headers[part.index]
        if part.role is PartRole.FOOTER:
            return self.footers[part.index]
        return self.main

    def set(self, part: Part, text: str) -> None:
        if part.role is PartRole.HEADER:
            if part.index not in self.headers:
                raise KeyError(str(part))
            self.headers[part.index] = text
        elif part.role is PartRole.FOOTER:
            if part.index not in self.footers:
                raise KeyError(str(part))
            self.footers[part.index] = text
        else:
            self.main = text

    def items(self) -> Iterator[tuple]:
        for part in self.parts():
            yield part, self.get(part)

    def commit(self, updates: Dict[Part, str]) -> None:
        """Replace several parts at once; unknown parts are rejected before any change."""
        for part in updates:
            if part.role is PartRole.HEADER and part.index not in self.headers:
                raise KeyError(str(part))
            if part.role is PartRole.FOOTER and part.index not in self.footers:
                raise KeyError(str(part))
        for part, text in updates.items():
            self.set(part, text)

    def write_to(self, archive: TemplateArchive) -> None:
        """Write every part back to ``archive``."""
        for part, text in self.items():
            archive.add_from_string(part.entry_name, text)
