"""
Parser to construct a document tree from markdown.

The parser makes a single left-to-right scan over the input lines.  Each line
is classified by the first matching rule of a fixed, ordered rule list and
turned into intermediate markup; inline markdown is substituted per line.  The
markup is then sanitized and materialized into a schema-valid document.
"""

from dataclasses import dataclass
import logging
import re
from typing import Callable, Dict, List

from bs4 import BeautifulSoup
from bs4.element import Tag

from docmark.doc_error import MarkdownParseError
from docmark.doc_materializer import DocMaterializer
from docmark.doc_node import DocNode
from docmark.doc_schema import DEFAULT_SCHEMA, DocSchema
from docmark.markdown_inline import MarkdownInlineFormatter
from docmark.markup_sanitizer import MarkupSanitizer, parse_markup


class _LineScan:
    """State of one scan over the input lines."""

    def __init__(self, lines: List[str]) -> None:
        self.lines = lines
        self.index = 0
        self.root: BeautifulSoup = parse_markup("")

        # The list the previous line went into, so consecutive items of the same kind share it
        self.open_list_kind: str | None = None
        self.open_list: Tag | None = None


@dataclass(frozen=True)
class LineRule:
    """A line classification rule: the pattern is matched against the stripped line."""

    name: str
    pattern: re.Pattern
    handler: Callable[[_LineScan, str, str, re.Match], None]


class MarkdownParser:
    """
    Converts markdown text into a document tree.

    `parse` never raises: any failure produces an empty, valid document.
    """

    def __init__(self, schema: DocSchema = DEFAULT_SCHEMA) -> None:
        """
        Initialize the parser.

        Args:
            schema: The schema to build documents with
        """
        self._schema = schema
        self._logger = logging.getLogger("MarkdownParser")
        self._inline_formatter = MarkdownInlineFormatter()
        self._sanitizer = MarkupSanitizer()
        self._materializer = DocMaterializer(schema)

        # First match wins, so the order of this list is the classification priority
        self._line_rules: List[LineRule] = [
            LineRule("blank", re.compile(r'^$'), self._handle_blank),
            LineRule("heading", re.compile(r'^(#{1,6})\s+'), self._handle_heading),
            LineRule("code_fence", re.compile(r'^```'), self._handle_code_fence),
            LineRule("task_unchecked", re.compile(r'^-\s*\[\s*\]\s+'), self._handle_task_item),
            LineRule("task_checked", re.compile(r'^-\s*\[x\]\s+', re.IGNORECASE), self._handle_task_item),
            LineRule("ordered_item", re.compile(r'^\d+\.\s+'), self._handle_ordered_item),
            LineRule("bullet_item", re.compile(r'^[-*+]\s+'), self._handle_bullet_item),
            LineRule("blockquote", re.compile(r'^>\s+'), self._handle_blockquote),
            LineRule("horizontal_rule", re.compile(r'^---+$'), self._handle_horizontal_rule),
            LineRule("paragraph", re.compile(r''), self._handle_paragraph),
        ]

    def parse(self, source: str) -> DocNode:
        """
        Parse markdown into a document.

        Args:
            source: The markdown text

        Returns:
            A valid document; an empty document if the input could not be parsed
        """
        try:
            return self.parse_strict(source)

        except MarkdownParseError as e:
            self._logger.warning("failed to parse markdown, using an empty document: %s", e, exc_info=True)
            return self._schema.empty_doc()

    def parse_strict(self, source: str) -> DocNode:
        """
        Parse markdown into a document, reporting failures.

        Args:
            source: The markdown text

        Returns:
            A valid document

        Raises:
            MarkdownParseError: If the input is not text or could not be turned into a valid document
        """
        if not isinstance(source, str):
            raise MarkdownParseError(
                f"Expected markdown text, got {type(source).__name__}",
                {"type": type(source).__name__}
            )

        try:
            root = self.build_markup(source)
            self._sanitizer.sanitize(root)
            return self._materializer.materialize(root)

        except Exception as e:  # pylint: disable=broad-exception-caught
            raise MarkdownParseError(f"Failed to parse markdown: {e}") from e

    def build_markup(self, source: str) -> BeautifulSoup:
        """
        Classify every line and build the (unsanitized) intermediate markup.

        Args:
            source: The markdown text

        Returns:
            A markup tree holding one element per block
        """
        source = source.replace('\r\n', '\n').replace('\r', '\n').replace('\x00', '')
        scan = _LineScan(source.split('\n'))

        while scan.index < len(scan.lines):
            line = scan.lines[scan.index]
            stripped = line.strip()
            for rule in self._line_rules:
                match = rule.pattern.match(stripped)
                if match:
                    rule.handler(scan, line, stripped, match)
                    break

            scan.index += 1

        return scan.root

    def _inline_element(self, scan: _LineScan, tag: str, text: str, attrs: Dict[str, str] | None = None) -> Tag:
        """
        Create an element whose children are the inline markup of a line of text.

        Args:
            scan: The scan the element is created for
            tag: Tag of the element to create
            text: Markdown text for the element's content
            attrs: Element attributes

        Returns:
            The new element
        """
        element = scan.root.new_tag(tag, attrs=attrs or {})
        fragment = parse_markup(self._inline_formatter.to_markup(text))
        element.extend(list(fragment.contents))
        return element

    def _add_block(self, scan: _LineScan, element: Tag) -> None:
        scan.root.append(element)
        scan.open_list_kind = None
        scan.open_list = None

    def _add_list_item(self, scan: _LineScan, kind: str, list_tag: str, list_attrs: Dict[str, str], item: Tag) -> None:
        if scan.open_list_kind != kind or scan.open_list is None:
            scan.open_list = scan.root.new_tag(list_tag, attrs=list_attrs)
            scan.root.append(scan.open_list)
            scan.open_list_kind = kind

        scan.open_list.append(item)

    def _handle_blank(self, scan: _LineScan, _line: str, _stripped: str, _match: re.Match) -> None:
        # Blank lines are kept as empty paragraphs to preserve vertical spacing
        self._add_block(scan, scan.root.new_tag("p"))

    def _handle_heading(self, scan: _LineScan, _line: str, stripped: str, match: re.Match) -> None:
        level = len(match.group(1))
        self._add_block(scan, self._inline_element(scan, f"h{level}", stripped[match.end():]))

    def _handle_code_fence(self, scan: _LineScan, _line: str, stripped: str, match: re.Match) -> None:
        language = stripped[match.end():].strip()
        code_lines: List[str] = []

        # An unterminated fence absorbs the rest of the input
        scan.index += 1
        while scan.index < len(scan.lines) and not scan.lines[scan.index].strip().startswith('```'):
            code_lines.append(scan.lines[scan.index])
            scan.index += 1

        pre = scan.root.new_tag("pre", attrs={"data-language": language} if language else {})
        code = scan.root.new_tag("code")
        code.string = "\n".join(code_lines)
        pre.append(code)
        self._add_block(scan, pre)

    def _handle_task_item(self, scan: _LineScan, _line: str, stripped: str, match: re.Match) -> None:
        checked = 'x' in match.group(0).lower()
        item = self._inline_element(scan, "li", stripped[match.end():], {
            "data-type": "taskItem",
            "data-checked": "true" if checked else "false",
            "class": "task-item-checked" if checked else "task-item-unchecked"
        })
        self._add_list_item(scan, "task", "ul", {"data-type": "taskList"}, item)

    def _handle_ordered_item(self, scan: _LineScan, _line: str, stripped: str, match: re.Match) -> None:
        self._add_list_item(scan, "ordered", "ol", {}, self._inline_element(scan, "li", stripped[match.end():]))

    def _handle_bullet_item(self, scan: _LineScan, _line: str, stripped: str, match: re.Match) -> None:
        self._add_list_item(scan, "bullet", "ul", {}, self._inline_element(scan, "li", stripped[match.end():]))

    def _handle_blockquote(self, scan: _LineScan, _line: str, stripped: str, match: re.Match) -> None:
        self._add_block(scan, self._inline_element(scan, "blockquote", stripped[match.end():]))

    def _handle_horizontal_rule(self, scan: _LineScan, _line: str, _stripped: str, _match: re.Match) -> None:
        self._add_block(scan, scan.root.new_tag("hr"))

    def _handle_paragraph(self, scan: _LineScan, line: str, _stripped: str, _match: re.Match) -> None:
        # Paragraphs keep the line exactly as written, including its whitespace
        self._add_block(scan, self._inline_element(scan, "p", line))


_MARKDOWN_SYNTAX_PATTERNS = [
    re.compile(r'^#{1,6}\s+', re.MULTILINE),
    re.compile(r'\*\*.*?\*\*'),
    re.compile(r'(?<!\*)\*[^*]+\*(?!\*)'),
    re.compile(r'`.*?`'),
    re.compile(r'^> ', re.MULTILINE),
    re.compile(r'^\d+\.\s+', re.MULTILINE),
    re.compile(r'^[-*+]\s+', re.MULTILINE),
    re.compile(r'^```', re.MULTILINE),
    re.compile(r'\[[^\[\]]+\]\([^()]+\)'),
]


def has_markdown_syntax(text: str) -> bool:
    """
    Check whether text looks like markdown.

    Args:
        text: The text to check, e.g. pasted content

    Returns:
        True if any supported markdown construct appears in the text
    """
    if not text or not isinstance(text, str):
        return False

    return any(pattern.search(text) for pattern in _MARKDOWN_SYNTAX_PATTERNS)


def parse(source: str, schema: DocSchema = DEFAULT_SCHEMA) -> DocNode:
    """
    Parse markdown into a document.

    Args:
        source: The markdown text
        schema: The schema to build the document with

    Returns:
        A valid document; an empty document if the input could not be parsed
    """
    return MarkdownParser(schema).parse(source)
