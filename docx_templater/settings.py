"""
Template processing settings.

Holds output escaping, temporary storage location and the markup fragments used
for page-break stripping and line-break normalization.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from .exceptions import TemplateConfigurationError

ENV_TEMP_DIR = "DOCX_TEMPLATER_TEMP_DIR"
ENV_OUTPUT_ESCAPING = "DOCX_TEMPLATER_OUTPUT_ESCAPING"

PAGE_BREAK_RUN = '<w:r><w:br w:type="page"/></w:r>'
LINE_BREAK_PARAGRAPH = '<w:p>' + PAGE_BREAK_RUN + '</w:p>'

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class TemplateSettings:
    """
    Settings shared by a template instance.

    Attributes:
        temp_dir: Directory for the working copy of the template
        output_escaping: Escape replacement values for XML text nodes
        line_break: Canonical line-break fragment
        page_break_fragments: Fragments stripped from cloned rows and blocks
        line_break_rewrites: Sequences collapsed to ``line_break`` after line insertion
    """

    temp_dir: Optional[Path] = None
    output_escaping: bool = False
    line_break: str = LINE_BREAK_PARAGRAPH
    page_break_fragments: Tuple[str, ...] = (PAGE_BREAK_RUN,)
    line_break_rewrites: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.temp_dir is not None:
            self.temp_dir = Path(self.temp_dir)
        if not self.line_break:
            raise TemplateConfigurationError("line_break must be a non-empty fragment")
        self.page_break_fragments = tuple(f for f in self.page_break_fragments if f)
        if not self.line_break_rewrites:
            self.line_break_rewrites = (self.line_break + self.line_break,)
        self.line_break_rewrites = tuple(self.line_break_rewrites)
        for sequence in self.line_break_rewrites:
            # Each rewrite must shrink the text, otherwise collapsing never settles
            if len(sequence) <= len(self.line_break):
                raise TemplateConfigurationError(
                    "Line-break rewrite sequences must be longer than the line break",
                    sequence[:60],
                )

    def get_temp_dir(self) -> Path:
        """Return the directory for temporary documents."""
        return self.temp_dir if self.temp_dir is not None else Path(tempfile.gettempdir())

    @classmethod
    def from_env(cls, **overrides) -> "TemplateSettings":
        """Build settings from ``DOCX_TEMPLATER_*`` environment variables."""
        values = {}
        temp_dir = os.environ.get(ENV_TEMP_DIR)
        if temp_dir:
            values["temp_dir"] = Path(temp_dir)
        escaping = os.environ.get(ENV_OUTPUT_ESCAPING)
        if escaping is not None:
            values["output_escaping"] = escaping.strip().lower() in _TRUE_VALUES
        values.update(overrides)
        return cls(**values)
