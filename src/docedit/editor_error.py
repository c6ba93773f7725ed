"""Custom exceptions for editing operations."""

from docmark.doc_error import DocmarkError


class EditorError(DocmarkError):
    """Base exception for editing operations."""


class TransactionError(EditorError):
    """Raised when a transaction step cannot be applied or its result is not a valid document."""


class InvalidCaretError(EditorError):
    """Raised when a caret does not point at a position inside a textblock."""
