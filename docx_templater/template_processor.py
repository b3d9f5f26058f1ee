"""
Template processor - mail-merge operations on a DOCX template.

Works on a temporary copy of the template. Parts are read once at construction
(with broken macros repaired), mutated in memory and written back on save.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import weakref
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .engine import block_operations
from .engine.macros import find_variables, fix_broken_macros
from .engine.substitution import UNLIMITED, normalize_pairs, prepare_pairs, set_value_for_part, validate_limit
from .engine.xslt import build_transform, transform_part
from .exceptions import TemplateError, TemplateIOError
from .media.image_injector import (
    CONTENT_TYPES_PART_NAME,
    RELATIONSHIPS_PART_NAME,
    ImageInjector,
    apply_assets,
)
from .package.archive import TemplateArchive
from .package.part_store import PartStore
from .settings import TemplateSettings

logger = logging.getLogger(__name__)

MAXIMUM_REPLACEMENTS_DEFAULT = UNLIMITED


def _remove_file(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


class TemplateProcessor:
    """
    Mail-merge template engine for DOCX documents.

    Supports:
    - ``${name}`` macro discovery and replacement in body, headers and footers
    - Table row cloning (merged cells included)
    - Block cloning, replacement and deletion (``${name}`` ... ``${/name}``)
    - Image injection in place of macros
    - Line-break normalization and XSL transforms

    Not safe for concurrent use; callers serialize access per instance.
    """

    def __init__(self, document_template: Union[str, Path], settings: Optional[TemplateSettings] = None):
        """
        Copy the template to a temporary file and load its parts.

        Args:
            document_template: Path to the DOCX template
            settings: Processing settings (defaults read from the environment)

        Raises:
            TemplateIOError: if the temporary copy cannot be created
            MalformedTemplateError: if the package or its main part is unreadable
        """
        self.settings = settings if settings is not None else TemplateSettings.from_env()
        self.template_path = Path(document_template)

        try:
            fd, temp_name = tempfile.mkstemp(prefix='DocxTemplater', suffix='.docx',
                                             dir=str(self.settings.get_temp_dir()))
            os.close(fd)
        except OSError as e:
            raise TemplateIOError("Could not create temporary file", str(e)) from e

        self.temp_document_filename = temp_name
        self._finalizer = weakref.finalize(self, _remove_file, temp_name)

        try:
            shutil.copyfile(self.template_path, temp_name)
        except OSError as e:
            self._finalizer()
            raise TemplateIOError("Could not copy template", f"{self.template_path} to {temp_name}: {e}") from e

        try:
            self._archive = TemplateArchive(temp_name)
            self._parts = PartStore.load(self._archive, fix_broken_macros)
            self._rels = self._read_optional(RELATIONSHIPS_PART_NAME)
            self._types = self._read_optional(CONTENT_TYPES_PART_NAME)
            self._images = ImageInjector(self._rels)
        except TemplateError:
            self._finalizer()
            raise

        logger.info(f"Loaded template {self.template_path}")

    def _read_optional(self, name: str) -> str:
        if not self._archive.locate_name(name):
            return ''
        return self._archive.get_from_name(name)

    # ------------------------------------------------------------------
    # Part access
    # ------------------------------------------------------------------

    @property
    def main_part(self) -> str:
        return self._parts.main

    @property
    def headers(self) -> Dict[int, str]:
        return dict(self._parts.headers)

    @property
    def footers(self) -> Dict[int, str]:
        return dict(self._parts.footers)

    @property
    def relationships(self) -> str:
        return self._rels

    @property
    def content_types(self) -> str:
        return self._types

    @property
    def saved(self) -> bool:
        return self._archive.closed

    def _ensure_open(self) -> None:
        if self._archive.closed:
            raise TemplateIOError("Template has already been saved", self.temp_document_filename)

    # ------------------------------------------------------------------
    # Macros
    # ------------------------------------------------------------------

    def set_value(self, search: Union[str, Sequence[str]], replace: Any,
                  limit: int = MAXIMUM_REPLACEMENTS_DEFAULT) -> None:
        """
        Replace macros in every part.

        Args:
            search: Macro name (``name`` or ``${name}``) or a sequence of them
            replace: Replacement value or a sequence of values
            limit: Maximum replacements per part and pair, ``-1`` for unlimited

        Raises:
            TemplateConfigurationError: on mismatched sequences or invalid limit
        """
        self._ensure_open()
        limit = validate_limit(limit)
        pairs = prepare_pairs(search, replace, self.settings.output_escaping)

        updates = {part: set_value_for_part(pairs, text, limit) for part, text in self._parts.items()}
        self._parts.commit(updates)
        logger.debug(f"Set {len(pairs)} value(s) with limit {limit}")

    def get_variables(self) -> List[str]:
        """Return all macro names of the template, first occurrence order, without duplicates."""
        variables = find_variables(self._parts.main)
        for text in self._parts.headers.values():
            variables.extend(find_variables(text))
        for text in self._parts.footers.values():
            variables.extend(find_variables(text))
        return list(dict.fromkeys(variables))

    # ------------------------------------------------------------------
    # Rows and blocks
    # ------------------------------------------------------------------

    def clone_row(self, search: str, number_of_clones: int) -> None:
        """
        Clone the table row holding ``search``.

        Raises:
            MacroNotFoundError: if the macro is not in the main part
        """
        self._ensure_open()
        self._parts.main = block_operations.clone_row(
            self._parts.main, search, number_of_clones, self.settings.page_break_fragments)

    def clone_block(self, block_name: str, clones: int = 1, auto_replace: bool = True) -> Optional[str]:
        """
        Clone a block.

        Returns:
            Markup of the last clone, or ``None`` if the block is missing
        """
        self._ensure_open()
        main, xml_block = block_operations.clone_block(
            self._parts.main, block_name, clones, auto_replace, self.settings.page_break_fragments)
        self._parts.main = main
        return xml_block

    def replace_block(self, block_name: str, replacement: str) -> None:
        """Replace a block; nothing happens when the block is missing."""
        self._ensure_open()
        self._parts.main = block_operations.replace_block(self._parts.main, block_name, replacement)

    def delete_block(self, block_name: str) -> None:
        """Delete a block; nothing happens when the block is missing."""
        self.replace_block(block_name, '')

    def insert_line_breaks(self, block_names: Union[str, Iterable[str]]) -> bool:
        """Replace every paragraph holding one of the macros with a line break."""
        self._ensure_open()
        names = [block_names] if isinstance(block_names, str) else list(block_names)
        self._parts.main = block_operations.insert_line_breaks(
            self._parts.main, names, self.settings.line_break, self.settings.line_break_rewrites)
        return True

    def delete_white_lines(self, block_names: Union[str, Iterable[str]]) -> None:
        """Remove every paragraph holding one of the macros."""
        self._ensure_open()
        names = [block_names] if isinstance(block_names, str) else list(block_names)
        self._parts.main = block_operations.delete_white_lines(self._parts.main, names)

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def replace_images(self, search: Union[str, Sequence[str]],
                       image_paths: Union[str, Path, Sequence[Union[str, Path]]]) -> None:
        """
        Replace macros with images; ``search[i]`` receives ``image_paths[i]``.

        The main part, relationships and content types change together or not
        at all.

        Raises:
            TemplateIOError: if an image cannot be read
            MalformedTemplateError: if relationships or content types are missing
        """
        self._ensure_open()
        if isinstance(image_paths, (str, Path)):
            image_paths = [image_paths]
        searches, paths = normalize_pairs(search, list(image_paths))

        assets = self._images.plan(paths, self._archive.names())
        main, rels, types = apply_assets(self._parts.main, self._rels, self._types, searches, assets)

        created = []
        try:
            for asset in assets:
                if self._archive.locate_name(asset.entry_name):
                    raise TemplateIOError("Media entry already exists", asset.entry_name)
                self._archive.add_file(asset.source, asset.entry_name)
                created.append(asset.entry_name)
        except TemplateError:
            for name in created:
                self._archive.delete_name(name)
            raise

        self._parts.main = main
        self._rels = rels
        self._types = types
        self._images.commit(assets)
        logger.debug(f"Injected {len(assets)} image(s): {[a.rel_id for a in assets]}")

    # ------------------------------------------------------------------
    # XSL
    # ------------------------------------------------------------------

    def apply_xsl_stylesheet(self, stylesheet: Any, parameters: Optional[Dict[str, str]] = None) -> None:
        """
        Apply an XSL style sheet to headers, main part and footers.

        The style sheet output is not escaped or validated.

        Raises:
            MalformedTemplateError: if a part or the style sheet cannot be processed
        """
        self._ensure_open()
        transform = build_transform(stylesheet)
        updates = {part: transform_part(text, transform, parameters) for part, text in self._parts.items()}
        self._parts.commit(updates)

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save(self) -> str:
        """
        Save the result document to the temporary file.

        Returns:
            Path of the temporary document, owned by the caller from now on

        Raises:
            TemplateIOError: if the package cannot be written or was saved before
        """
        self._ensure_open()
        self._parts.write_to(self._archive)
        if self._rels:
            self._archive.add_from_string(RELATIONSHIPS_PART_NAME, self._rels)
        if self._types:
            self._archive.add_from_string(CONTENT_TYPES_PART_NAME, self._types)

        try:
            self._archive.close()
        except TemplateIOError:
            self._finalizer()
            raise

        self._finalizer.detach()
        return self.temp_document_filename

    def save_as(self, file_name: Union[str, Path]) -> None:
        """
        Save the result document to ``file_name``, replacing an existing file.

        Raises:
            TemplateIOError: if saving or copying fails
        """
        temp_file_name = self.save()
        try:
            target = Path(file_name)
            if target.exists():
                target.unlink()
            # Copy rather than rename so the target gets the caller's ownership
            shutil.copyfile(temp_file_name, target)
        except OSError as e:
            raise TemplateIOError("Could not copy document", f"{temp_file_name} to {file_name}: {e}") from e
        finally:
            _remove_file(temp_file_name)
        logger.info(f"Saved document to {file_name}")

    def close(self) -> None:
        """Discard an unsaved instance and its temporary file."""
        self._finalizer()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
