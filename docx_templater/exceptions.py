"""Custom exceptions for DOCX Templater."""

from typing import Optional


class TemplateError(Exception):
    """Base exception for DOCX Templater errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class MacroNotFoundError(TemplateError):
    """Exception raised when a placeholder or a structural boundary is missing."""

    pass


class MalformedTemplateError(TemplateError):
    """Exception raised when a template part is missing or cannot be parsed."""

    pass


class TemplateIOError(TemplateError):
    """Exception raised when temporary storage or the archive cannot be handled."""

    pass


class TemplateConfigurationError(TemplateError, ValueError):
    """Exception raised for invalid arguments or settings."""

    pass
