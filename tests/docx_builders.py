"""
Builders for minimal DOCX packages used across the test suite.
"""

import zipfile
from pathlib import Path
from typing import Dict, Iterable, Optional

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
ROOT_NAMESPACES = (
    f'xmlns:w="{W_NS}" xmlns:r="{R_NS}" '
    'xmlns:v="urn:schemas-microsoft-com:vml" xmlns:o="urn:schemas-microsoft-com:office:office"'
)

DEFAULT_RELATIONSHIPS = (
    XML_DECLARATION
    + '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/styles" Target="styles.xml"/>'
    '<Relationship Id="rId2" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/settings" Target="settings.xml"/>'
    '<Relationship Id="rId3" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/fontTable" Target="fontTable.xml"/>'
    '</Relationships>'
)

DEFAULT_CONTENT_TYPES = (
    XML_DECLARATION
    + '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/word/document.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
    '</Types>'
)


def p(text: str) -> str:
    """A paragraph with a single text run."""
    return f'<w:p><w:r><w:t>{text}</w:t></w:r></w:p>'


def tc(text: str, vmerge: str = '') -> str:
    """A table cell; ``vmerge`` is inserted verbatim into its properties."""
    properties = f'<w:tcPr>{vmerge}</w:tcPr>' if vmerge else ''
    return f'<w:tc>{properties}{p(text)}</w:tc>'


def tr(*cells: str, attributes: str = '') -> str:
    opening = f'<w:tr {attributes}>' if attributes else '<w:tr>'
    return opening + ''.join(cells) + '</w:tr>'


def tbl(*rows: str) -> str:
    return '<w:tbl>' + ''.join(rows) + '</w:tbl>'


def document(body: str) -> str:
    return f'{XML_DECLARATION}<w:document {ROOT_NAMESPACES}><w:body>{body}</w:body></w:document>'


def header(body: str) -> str:
    return f'{XML_DECLARATION}<w:hdr {ROOT_NAMESPACES}>{body}</w:hdr>'


def footer(body: str) -> str:
    return f'{XML_DECLARATION}<w:ftr {ROOT_NAMESPACES}>{body}</w:ftr>'


def build_docx(path: Path, body: Optional[str] = None, headers: Iterable[str] = (),
               footers: Iterable[str] = (), relationships: Optional[str] = DEFAULT_RELATIONSHIPS,
               content_types: Optional[str] = DEFAULT_CONTENT_TYPES,
               extra: Optional[Dict[str, str]] = None) -> Path:
    """
    Write a DOCX package to ``path``.

    ``body`` is wrapped in a ``w:document``; ``None`` leaves the main part out.
    Headers and footers are numbered from 1 and wrapped in ``w:hdr``/``w:ftr``.
    """
    with zipfile.ZipFile(path, 'w', zipfile.ZIP_DEFLATED) as zip_file:
        if content_types is not None:
            zip_file.writestr('[Content_Types].xml', content_types)
        if relationships is not None:
            zip_file.writestr('word/_rels/document.xml.rels', relationships)
        if body is not None:
            zip_file.writestr('word/document.xml', document(body))
        for index, text in enumerate(headers, start=1):
            zip_file.writestr(f'word/header{index}.xml', header(text))
        for index, text in enumerate(footers, start=1):
            zip_file.writestr(f'word/footer{index}.xml', footer(text))
        for name, text in (extra or {}).items():
            zip_file.writestr(name, text)
    return path


def read_entry(path: Path, name: str) -> str:
    with zipfile.ZipFile(path) as zip_file:
        return zip_file.read(name).decode('utf-8')
