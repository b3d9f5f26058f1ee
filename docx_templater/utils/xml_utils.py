"""
XML text helpers: decoding, sanitization and escaping of replacement values.
"""

from typing import Any
from xml.sax.saxutils import escape

# Control characters illegal in XML 1.0 (tab, LF and CR are allowed)
_ILLEGAL_XML_CHARS = ''.join(chr(c) for c in range(0x20) if c not in (0x09, 0x0A, 0x0D))
_ILLEGAL_XML_TABLE = str.maketrans('', '', _ILLEGAL_XML_CHARS)

_XML_ENTITIES = {'"': '&quot;', "'": '&apos;'}


def ensure_text(value: Any) -> str:
    """
    Coerce a replacement value to ``str``.

    Bytes are decoded as UTF-8 when valid, otherwise as Latin-1.
    ``None`` becomes an empty string.
    """
    if value is None:
        return ''
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode('utf-8')
        except UnicodeDecodeError:
            return bytes(value).decode('latin-1')
    if isinstance(value, str):
        return value
    return str(value)


def sanitize_xml_string(text: str) -> str:
    """Remove control characters that are illegal in XML 1.0."""
    if not text:
        return text
    return text.translate(_ILLEGAL_XML_TABLE)


def escape_xml_text(text: str) -> str:
    """Escape text for embedding inside an XML text node or attribute."""
    return escape(text, _XML_ENTITIES)
