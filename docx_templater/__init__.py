"""
DOCX Templater - mail-merge engine for Microsoft Word DOCX templates.

Fills ``${name}`` macros in the main document part, headers and footers, and
restructures the template around them:

- Variable discovery and value substitution (unlimited or bounded)
- Table row cloning, merged-cell row groups included
- Block cloning, replacement and deletion (``${name}`` ... ``${/name}``)
- Image injection with relationship and content-type bookkeeping
- Line-break normalization and XSL transforms

Quick Start:
    from docx_templater import TemplateProcessor

    with TemplateProcessor("invoice.docx") as template:
        template.set_value("customer", "ACME Ltd.")
        template.clone_row("item", 3)
        template.save_as("invoice-filled.docx")
"""

from .version import __version__, __version_info__

from .exceptions import (
    TemplateError,
    MacroNotFoundError,
    MalformedTemplateError,
    TemplateIOError,
    TemplateConfigurationError,
)
from .settings import TemplateSettings
from .template_processor import TemplateProcessor
from .utils.logger import configure_logging, get_logger

__all__ = [
    "__version__",
    "__version_info__",
    "TemplateProcessor",
    "TemplateSettings",
    "TemplateError",
    "MacroNotFoundError",
    "MalformedTemplateError",
    "TemplateIOError",
    "TemplateConfigurationError",
    "configure_logging",
    "get_logger",
]
