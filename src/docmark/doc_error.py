"""Custom exceptions for document operations."""

from typing import Any


class DocmarkError(Exception):
    """Base exception for document operations."""

    def __init__(self, message: str, error_details: dict[str, Any] | None = None):
        """
        Initialize the exception.

        Args:
            message: Error message
            error_details: Optional dictionary with detailed error information
        """
        super().__init__(message)
        self.error_details = error_details


class ContentValidationError(DocmarkError):
    """Raised when a node does not satisfy its schema (content, attributes or marks)."""


class ContentExpressionError(DocmarkError):
    """Raised when a content expression cannot be parsed or resolved."""


class MarkdownParseError(DocmarkError):
    """Raised internally when markdown classification or materialization fails."""
