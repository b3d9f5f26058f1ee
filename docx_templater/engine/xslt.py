"""XSL style sheet application to template parts."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Union

from lxml import etree

from ..exceptions import MalformedTemplateError
from .block_locator import parse_part, serialize_tree

logger = logging.getLogger(__name__)


def build_transform(stylesheet: Union[str, bytes, etree._ElementTree, etree._Element]) -> etree.XSLT:
    """Compile a style sheet given as markup, an element or a parsed tree."""
    try:
        if isinstance(stylesheet, (str, bytes)):
            data = stylesheet.encode('utf-8') if isinstance(stylesheet, str) else stylesheet
            stylesheet = etree.fromstring(data)
        return etree.XSLT(stylesheet)
    except (etree.XMLSyntaxError, etree.XSLTParseError) as e:
        raise MalformedTemplateError("Could not load the given XSL style sheet", str(e)) from e


def transform_part(document_part: str, transform: etree.XSLT,
                   parameters: Optional[Dict[str, str]] = None) -> str:
    """Apply ``transform`` to one part and return the transformed markup."""
    tree = parse_part(document_part)
    params = {name: etree.XSLT.strparam(str(value)) for name, value in (parameters or {}).items()}
    try:
        result = transform(tree, **params)
    except etree.XSLTApplyError as e:
        raise MalformedTemplateError("Could not transform the given XML document", str(e)) from e

    if result.getroot() is None:
        raise MalformedTemplateError("Could not transform the given XML document", "empty result")
    return serialize_tree(result)
