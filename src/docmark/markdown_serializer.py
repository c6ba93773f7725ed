"""
Serializer to convert a document tree back into markdown text.

Output is deterministic and is the inverse of the markdown parser for trees
the parser produced.  Content the markdown subset cannot express is flattened
to its text or omitted.
"""

import logging
import re
from typing import Dict, List

from docmark.doc_node import DocMark, DocNode, DocVisitor


class MarkdownSerializer(DocVisitor):
    """Visitor that renders each top-level block as markdown."""

    # Nested lists are indented by this much per level
    LIST_INDENT = "  "

    # Delimiters for the marks written around text; links are written separately
    MARK_DELIMITERS: Dict[str, str] = {"strong": "**", "em": "*", "code": "`"}

    _HTML_LIKE_PATTERN = re.compile(r'&(?=[A-Za-z#])|<(?=[A-Za-z/!?])')

    def __init__(self) -> None:
        """Initialize the serializer."""
        self._logger = logging.getLogger("MarkdownSerializer")

    def serialize(self, doc: DocNode) -> str:
        """
        Serialize a document to markdown.

        Top-level blocks are separated by exactly one newline.  A block that renders to
        nothing still takes its line, so vertical spacing is kept.

        Args:
            doc: The document node

        Returns:
            The markdown text, without a trailing newline
        """
        return "\n".join(self.visit(child) for child in doc.children)

    def inline_text(self, node: DocNode) -> str:
        """
        Render the inline content of a node, and of all its descendants, with mark syntax.

        A mark stays open for as long as consecutive runs carry it.  Runs sharing a link
        are written inside one link, which always wraps any other marks.

        Args:
            node: The node whose content to render

        Returns:
            The marked-up text
        """
        runs = self._text_runs(node)
        parts: List[str] = []
        index = 0
        while index < len(runs):
            link = self._link_mark(runs[index])
            end = index + 1
            while end < len(runs) and self._link_mark(runs[end]) == link:
                end += 1

            text = self._marked_runs(runs[index:end])
            if link is not None:
                text = f"[{text}]({link.attrs['href']})"

            parts.append(text)
            index = end

        return "".join(parts)

    def _text_runs(self, node: DocNode) -> List[DocNode]:
        runs: List[DocNode] = []
        for child in node.children:
            if child.is_text:
                runs.append(child)
                continue

            runs.extend(self._text_runs(child))

        return runs

    def _link_mark(self, run: DocNode) -> DocMark | None:
        for mark in run.marks:
            if mark.type_name == "link":
                return mark

        return None

    def _marked_runs(self, runs: List[DocNode]) -> str:
        """
        Render text runs with their non-link marks.

        Open marks form a stack.  When a run drops a mark, it and every mark opened inside
        it are closed, and marks the run still carries are opened again.  Of the marks
        opened together, the one carried furthest opens first so it ends up outermost.

        Args:
            runs: Consecutive text runs

        Returns:
            The marked-up text
        """
        parts: List[str] = []
        open_marks: List[DocMark] = []
        for position, run in enumerate(runs):
            marks = [mark for mark in run.marks if mark.type_name in self.MARK_DELIMITERS]

            kept = 0
            while kept < len(open_marks) and open_marks[kept] in marks:
                kept += 1

            for mark in reversed(open_marks[kept:]):
                parts.append(self.MARK_DELIMITERS[mark.type_name])

            del open_marks[kept:]

            # Marks are already in rank order, which breaks ties between equal extents
            opening = [
                (-self._mark_extent(runs, position, mark), rank, mark)
                for rank, mark in enumerate(marks) if mark not in open_marks
            ]
            for _extent, _rank, mark in sorted(opening):
                parts.append(self.MARK_DELIMITERS[mark.type_name])
                open_marks.append(mark)

            parts.append(self._escape_text(run.text or ""))

        for mark in reversed(open_marks):
            parts.append(self.MARK_DELIMITERS[mark.type_name])

        return "".join(parts)

    def _mark_extent(self, runs: List[DocNode], position: int, mark: DocMark) -> int:
        end = position
        while end < len(runs) and mark in runs[end].marks:
            end += 1

        return end - position

    def _escape_text(self, text: str) -> str:
        # The parser reads inline text as HTML, so anything that would start a tag or entity is escaped
        return self._HTML_LIKE_PATTERN.sub(lambda match: "&amp;" if match.group(0) == "&" else "&lt;", text)

    def visit_paragraph(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        return self.inline_text(node)

    def visit_heading(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        return f"{'#' * node.attrs['level']} {self.inline_text(node)}"

    def visit_blockquote(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        return f"> {self.inline_text(node)}"

    def visit_code_block(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        language = node.attrs.get("language") or ""
        return f"```{language}\n{node.text_content}\n```"

    def visit_horizontal_rule(self, _node: DocNode) -> str:  # pylint: disable=invalid-name
        return "---"

    def visit_bullet_list(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        return self._list(node, ordered=False)

    def visit_ordered_list(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        return self._list(node, ordered=True)

    def visit_task_list(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        lines: List[str] = []
        for item in node.children:
            text = self._item_text(item)
            if not text:
                continue

            checkbox = "[x]" if item.attrs.get("checked") else "[ ]"
            lines.append(f"- {checkbox} {text}")

        return "\n".join(lines)

    def generic_visit(self, node: DocNode) -> str:
        """
        Render a block the markdown subset has no syntax for.

        Args:
            node: The node

        Returns:
            Its flattened inline text, or an empty string if that is blank
        """
        text = self.inline_text(node)
        if not text.strip():
            self._logger.debug("omitted %s with no text", node.type_name)
            return ""

        self._logger.debug("flattened %s to plain text", node.type_name)
        return text

    def _list(self, node: DocNode, ordered: bool) -> str:
        """
        Render a bullet or ordered list.

        Items with no text are skipped, and the ordered counter only advances for items
        that are written.

        Args:
            node: The list node
            ordered: True to number the items

        Returns:
            One line per item, followed by the indented lines of nested lists
        """
        lines: List[str] = []
        number = node.attrs.get("start", 1)
        for item in node.children:
            text = self._item_text(item)
            if not text:
                continue

            marker = f"{number}." if ordered else "-"
            lines.append(f"{marker} {text}")
            if ordered:
                number += 1

        return "\n".join(lines)

    def _item_text(self, item: DocNode) -> str:
        """
        Get the markdown for the content of one list item.

        Args:
            item: A list_item or task_list_item node

        Returns:
            The item's paragraph text followed by any nested lists, stripped
        """
        text = ""
        for child in item.children:
            if child.type_name == "paragraph":
                text += self.inline_text(child)
                continue

            if child.type_name in ("bullet_list", "ordered_list", "task_list"):
                nested = self.visit(child)
                text += "\n" + "\n".join(self.LIST_INDENT + line for line in nested.split("\n"))
                continue

            self._logger.debug("omitted %s inside %s", child.type_name, item.type_name)

        return text.strip()


def serialize(doc: DocNode) -> str:
    """
    Serialize a document to markdown.

    Args:
        doc: The document node

    Returns:
        The markdown text
    """
    return MarkdownSerializer().serialize(doc)
