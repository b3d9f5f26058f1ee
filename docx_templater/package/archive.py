"""
Template archive for DOCX files.

Reads every entry of the package into memory on open; entries are replaced or
added in memory and the package is rewritten in place on close.
"""

import logging
import zipfile
from pathlib import Path
from typing import Dict, List, Union

from ..exceptions import MalformedTemplateError, TemplateIOError

logger = logging.getLogger(__name__)


class TemplateArchive:
    """
    Read/write access to the entries of a DOCX package.

    Handles entry lookup, text reads, text writes, file additions and
    finalization of the package.
    """

    def __init__(self, docx_path: Union[str, Path]):
        """
        Open the package.

        Args:
            docx_path: Path to the DOCX file (rewritten on close)
        """
        self.docx_path = Path(docx_path)
        self._entries: Dict[str, bytes] = {}
        self._infos: Dict[str, zipfile.ZipInfo] = {}
        self._closed = False

        self._open_package()

    def _open_package(self) -> None:
        """Read all package entries."""
        try:
            with zipfile.ZipFile(self.docx_path, 'r') as zip_file:
                for info in zip_file.infolist():
                    if info.is_dir():
                        continue
                    self._infos[info.filename] = info
                    self._entries[info.filename] = zip_file.read(info.filename)
        except FileNotFoundError as e:
            raise TemplateIOError("DOCX file not found", str(self.docx_path)) from e
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            raise MalformedTemplateError("Could not open DOCX package", f"{self.docx_path}: {e}") from e
        except OSError as e:
            raise TemplateIOError("Could not read DOCX package", f"{self.docx_path}: {e}") from e

        logger.info(f"Opened DOCX package: {self.docx_path} ({len(self._entries)} entries)")

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise TemplateIOError("DOCX package is already closed", str(self.docx_path))

    def names(self) -> List[str]:
        return list(self._entries)

    def locate_name(self, name: str) -> bool:
        """Return whether the package holds entry ``name``."""
        return name in self._entries

    def get_from_name(self, name: str) -> str:
        """
        Read entry ``name`` as UTF-8 text.

        Raises:
            MalformedTemplateError: if the entry is missing or not UTF-8
        """
        self._ensure_open()
        try:
            data = self._entries[name]
        except KeyError as e:
            raise MalformedTemplateError("Package entry not found", name) from e
        try:
            return data.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedTemplateError("Package entry is not valid UTF-8", name) from e

    def add_from_string(self, name: str, content: str) -> None:
        """Add or replace entry ``name`` with UTF-8 encoded ``content``."""
        self._ensure_open()
        self._entries[name] = content.encode('utf-8')

    def add_file(self, file_path: Union[str, Path], name: str) -> None:
        """
        Add or replace entry ``name`` with the bytes of ``file_path``.

        Raises:
            TemplateIOError: if the file cannot be read
        """
        self._ensure_open()
        try:
            self._entries[name] = Path(file_path).read_bytes()
        except OSError as e:
            raise TemplateIOError("Could not read file for package entry", f"{file_path}: {e}") from e
        logger.debug(f"Staged {file_path} as {name}")

    def delete_name(self, name: str) -> None:
        self._ensure_open()
        self._entries.pop(name, None)

    def close(self) -> None:
        """
        Write all entries back to the package file.

        Raises:
            TemplateIOError: on a second close or when writing fails
        """
        self._ensure_open()
        try:
            with zipfile.ZipFile(self.docx_path, 'w', zipfile.ZIP_DEFLATED) as zip_file:
                # [Content_Types].xml leads the package, as Word writes it
                names = sorted(self._entries, key=lambda n: n != '[Content_Types].xml')
                for name in names:
                    info = self._infos.get(name)
                    if info is not None:
                        target = zipfile.ZipInfo(name, date_time=info.date_time)
                        target.compress_type = info.compress_type
                        target.external_attr = info.external_attr
                        zip_file.writestr(target, self._entries[name])
                    else:
                        zip_file.writestr(name, self._entries[name])
        except OSError as e:
            raise TemplateIOError("Could not close zip file", f"{self.docx_path}: {e}") from e

        self._closed = True
        logger.info(f"DOCX package written: {self.docx_path}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self._closed:
            self.close()
