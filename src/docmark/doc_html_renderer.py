"""
Document tree visitor to render a document as HTML.
"""

import html

from docmark.doc_node import DocNode, DocVisitor


class DocHTMLRenderer(DocVisitor):
    """
    Visitor that renders a document tree as HTML.

    The output only uses the tags and attributes the markup sanitizer allows (plus
    `rel` and `start`), so materializing it again gives back the same tree.
    """

    def render(self, node: DocNode) -> str:
        """
        Render a node and its subtree to HTML.

        Args:
            node: The node to render, usually a doc node

        Returns:
            The HTML string
        """
        return self.visit(node)

    def _children(self, node: DocNode) -> str:
        return "".join(self.visit(child) for child in node.children)

    def visit_doc(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        return self._children(node)

    def visit_paragraph(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        return f"<p>{self._children(node)}</p>"

    def visit_heading(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        level = node.attrs["level"]
        return f"<h{level}>{self._children(node)}</h{level}>"

    def visit_blockquote(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        return f"<blockquote>{self._children(node)}</blockquote>"

    def visit_code_block(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        """
        Render a code block node to HTML.

        Args:
            node: The code block node to render

        Returns:
            A pre element carrying the language, with the escaped code inside a code element
        """
        language = node.attrs.get("language")
        attrs = f' data-language="{html.escape(language, quote=True)}"' if language else ""
        return f"<pre{attrs}><code>{html.escape(node.text_content, quote=False)}</code></pre>"

    def visit_horizontal_rule(self, _node: DocNode) -> str:  # pylint: disable=invalid-name
        return "<hr>"

    def visit_bullet_list(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        return f"<ul>{self._children(node)}</ul>"

    def visit_ordered_list(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        start = node.attrs.get("start", 1)
        attrs = f' start="{start}"' if start != 1 else ""
        return f"<ol{attrs}>{self._children(node)}</ol>"

    def visit_list_item(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        return f"<li>{self._children(node)}</li>"

    def visit_task_list(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        return f'<ul data-type="taskList">{self._children(node)}</ul>'

    def visit_task_list_item(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        checked = "true" if node.attrs.get("checked") else "false"
        return f'<li data-type="taskItem" data-checked="{checked}">{self._children(node)}</li>'

    def visit_text(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        """
        Render a text node to HTML.

        Marks are nested in rank order with the link outermost.

        Args:
            node: The text node to render

        Returns:
            The escaped text wrapped in one element per mark
        """
        content = html.escape(node.text or "", quote=False)
        link = None
        for mark in reversed(node.marks):
            if mark.type_name == "link":
                link = mark
                continue

            content = f"<{mark.type_name}>{content}</{mark.type_name}>"

        if link is not None:
            href = html.escape(link.attrs["href"], quote=True)
            content = f'<a href="{href}" rel="noopener noreferrer nofollow">{content}</a>'

        return content

    def generic_visit(self, node: DocNode) -> str:
        return self._children(node)
