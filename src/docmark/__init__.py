"""
Markdown to rich document conversion.

This package provides a schema-governed document tree, a markdown parser that
builds trees from a supported markdown subset, and a serializer that writes
them back out as markdown.
"""

from docmark.doc_error import (
    ContentExpressionError,
    ContentValidationError,
    DocmarkError,
    MarkdownParseError,
)
from docmark.doc_html_renderer import DocHTMLRenderer
from docmark.doc_json_serializer import DocJSONSerializer
from docmark.doc_materializer import DocMaterializer
from docmark.doc_node import DocMark, DocNode, DocVisitor
from docmark.doc_printer import DocTreePrinter
from docmark.doc_schema import DEFAULT_SCHEMA, AttrSpec, DocSchema, MarkSpec, NodeSpec, create_default_schema
from docmark.docmark_settings import DocmarkSettings
from docmark.markdown_parser import MarkdownParser, has_markdown_syntax, parse
from docmark.markdown_serializer import MarkdownSerializer, serialize

__all__ = [
    # Exceptions
    'DocmarkError',
    'ContentValidationError',
    'ContentExpressionError',
    'MarkdownParseError',

    # Schema and tree
    'AttrSpec',
    'DEFAULT_SCHEMA',
    'DocMark',
    'DocNode',
    'DocSchema',
    'DocVisitor',
    'MarkSpec',
    'NodeSpec',
    'create_default_schema',

    # Conversion
    'DocHTMLRenderer',
    'DocJSONSerializer',
    'DocMaterializer',
    'DocTreePrinter',
    'MarkdownParser',
    'MarkdownSerializer',
    'has_markdown_syntax',
    'parse',
    'serialize',

    # Configuration
    'DocmarkSettings',
]
