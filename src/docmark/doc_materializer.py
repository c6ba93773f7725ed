"""
Materializes sanitized intermediate markup into a schema-valid document tree.

Each element is mapped by a fixed set of tag rules.  Inline runs that appear
where blocks are expected are wrapped in paragraphs, block elements that
appear inside inline content are flattened to their text, and every node is
built with `create_and_fill` so the result is always valid.
"""

import logging
from typing import List, Sequence, Tuple

from bs4.element import NavigableString, PageElement, Tag

from docmark.doc_node import DocMark, DocNode, join_inline
from docmark.doc_schema import DEFAULT_SCHEMA, DocSchema
from docmark.markup_sanitizer import MarkupSanitizer, parse_markup


HEADING_TAGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
INLINE_TAGS = frozenset({"strong", "em", "code", "a"})
LIST_TAGS = frozenset({"ul", "ol"})


class DocMaterializer:
    """Converts a sanitized markup tree into a document tree."""

    def __init__(self, schema: DocSchema = DEFAULT_SCHEMA) -> None:
        """
        Initialize the materializer.

        Args:
            schema: The schema to build nodes with
        """
        self._schema = schema
        self._logger = logging.getLogger("DocMaterializer")

    def materialize(self, root: Tag) -> DocNode:
        """
        Build a document from sanitized markup.

        Args:
            root: Root element whose children are the document's blocks

        Returns:
            A valid document node

        Raises:
            ContentValidationError: If the result unexpectedly fails schema validation
        """
        blocks = self._block_content(root.contents, list_type=None)
        doc = self._schema.create_and_fill(self._schema.top_node_type.name, children=blocks)
        self._schema.check(doc)
        return doc

    def from_html(self, html: str) -> DocNode:
        """
        Build a document from untrusted HTML.

        Args:
            html: HTML text, e.g. pasted rich text

        Returns:
            A valid document node
        """
        root = parse_markup(html)
        MarkupSanitizer().sanitize(root)
        return self.materialize(root)

    def _block_content(self, nodes: Sequence[PageElement], list_type: str | None) -> List[DocNode]:
        """
        Convert markup nodes appearing where block content is expected.

        Args:
            nodes: The markup nodes
            list_type: Node type name of the enclosing list, when the nodes are list children

        Returns:
            Block nodes
        """
        blocks: List[DocNode] = []
        inline_run: List[DocNode] = []

        def flush_inline() -> None:
            if not inline_run:
                return

            # Whitespace between blocks is formatting, not content
            if not all(node.is_text and not node.marks and not (node.text or "").strip() for node in inline_run):
                blocks.append(self._schema.create_and_fill("paragraph", children=join_inline(inline_run)))

            inline_run.clear()

        for node in nodes:
            if isinstance(node, NavigableString) or (isinstance(node, Tag) and node.name in INLINE_TAGS):
                inline_run.extend(self._inline_content([node], ()))
                continue

            if not isinstance(node, Tag):
                continue

            flush_inline()
            blocks.extend(self._block(node, list_type))

        flush_inline()
        return blocks

    def _block(self, element: Tag, list_type: str | None) -> List[DocNode]:
        """
        Convert a block-level element.

        Args:
            element: The element
            list_type: Node type name of the enclosing list, if any

        Returns:
            The resulting block nodes (usually exactly one)
        """
        tag = element.name
        schema = self._schema

        if tag == "p":
            return [schema.create_and_fill("paragraph", children=self._inline_children(element))]

        if tag in HEADING_TAGS:
            return [schema.create_and_fill(
                "heading", {"level": HEADING_TAGS[tag]}, self._inline_children(element)
            )]

        if tag == "blockquote":
            return [schema.create_and_fill("blockquote", children=self._block_content(element.contents, None))]

        if tag == "pre":
            text = element.get_text()
            language = element.attrs.get("data-language") or None
            children = [schema.text(text)] if text else []
            return [schema.create_and_fill("code_block", {"language": language}, children)]

        if tag == "hr":
            return [schema.create_and_fill("horizontal_rule")]

        if tag in LIST_TAGS:
            if tag == "ul" and element.attrs.get("data-type") == "taskList":
                new_list_type = "task_list"

            else:
                new_list_type = "bullet_list" if tag == "ul" else "ordered_list"

            items = self._list_items(element.contents, new_list_type)
            if not items:
                return []

            return [schema.create_and_fill(new_list_type, children=items)]

        if tag == "li":
            return [self._list_item(element, list_type)]

        return self._block_content(element.contents, list_type)

    def _list_items(self, nodes: Sequence[PageElement], list_type: str) -> List[DocNode]:
        """
        Convert the children of a list element into list items.

        Stray content between items is gathered into an item of its own.

        Args:
            nodes: The list element's children
            list_type: Node type name of the list

        Returns:
            Item nodes
        """
        items: List[DocNode] = []
        stray: List[PageElement] = []

        def flush_stray() -> None:
            if stray:
                content = self._block_content(stray, None)
                if content:
                    items.append(self._item_node(list_type, content, checked=False))

                stray.clear()

        for node in nodes:
            if isinstance(node, Tag) and node.name == "li":
                flush_stray()
                items.append(self._list_item(node, list_type))
                continue

            stray.append(node)

        flush_stray()
        return items

    def _list_item(self, element: Tag, list_type: str | None) -> DocNode:
        checked = element.attrs.get("data-checked") == "true"
        return self._item_node(list_type, self._block_content(element.contents, None), checked)

    def _item_node(self, list_type: str | None, content: List[DocNode], checked: bool) -> DocNode:
        if list_type == "task_list":
            return self._schema.create_and_fill("task_list_item", {"checked": checked}, content)

        return self._schema.create_and_fill("list_item", children=content)

    def _inline_children(self, element: Tag) -> List[DocNode]:
        return join_inline(self._inline_content(element.contents, ()))

    def _inline_content(self, nodes: Sequence[PageElement], marks: Tuple[DocMark, ...]) -> List[DocNode]:
        """
        Convert markup nodes appearing where inline content is expected.

        Args:
            nodes: The markup nodes
            marks: Marks inherited from enclosing inline elements

        Returns:
            Text nodes carrying their marks
        """
        result: List[DocNode] = []
        for node in nodes:
            if isinstance(node, NavigableString):
                if node:
                    result.append(self._schema.text(str(node), marks))

                continue

            if not isinstance(node, Tag):
                continue

            child_marks = marks
            if node.name in ("strong", "em", "code"):
                child_marks = self._schema.mark(node.name).add_to_set(marks)

            elif node.name == "a" and node.attrs.get("href"):
                child_marks = self._schema.mark("link", {"href": node.attrs["href"]}).add_to_set(marks)

            elif node.name == "hr":
                continue

            elif node.name not in INLINE_TAGS:
                self._logger.debug("flattened <%s> inside inline content", node.name)

            result.extend(self._inline_content(node.contents, child_marks))

        return result
