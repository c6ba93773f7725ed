"""
Visitor class to print document trees for debugging.
"""

from typing import Any, List

from docmark.doc_node import DocNode, DocVisitor


class DocTreePrinter(DocVisitor):
    """Visitor that formats the tree structure for debugging, one node per line."""

    def __init__(self) -> None:
        """Initialize the printer with zero indentation."""
        super().__init__()
        self.indent_level = 0
        self.lines: List[str] = []

    def _indent(self) -> str:
        """
        Get the current indentation string.

        Returns:
            A string of spaces for the current indentation level
        """
        return "  " * self.indent_level

    def format(self, node: DocNode) -> str:
        """
        Format a node and its subtree.

        Args:
            node: The root node to format

        Returns:
            The indented tree, one line per node
        """
        self.indent_level = 0
        self.lines = []
        self.visit(node)
        return "\n".join(self.lines)

    def generic_visit(self, node: DocNode) -> List[Any]:
        """
        Default visit method that records the node type and its attributes.

        Args:
            node: The node to visit

        Returns:
            The results of visiting the children
        """
        attrs = ""
        if node.attrs:
            attrs = " (" + ", ".join(f"{name}={value!r}" for name, value in node.attrs.items()) + ")"

        self.lines.append(f"{self._indent()}{node.type_name}{attrs}")
        self.indent_level += 1
        results = super().generic_visit(node)
        self.indent_level -= 1
        return results

    def visit_text(self, node: DocNode) -> str:  # pylint: disable=invalid-name
        """
        Visit a text node and record its content and marks.

        Args:
            node: The text node to visit

        Returns:
            The text content
        """
        marks = ""
        if node.marks:
            names = []
            for mark in node.marks:
                names.append(f"{mark.type_name}({mark.attrs['href']})" if mark.type_name == "link" else mark.type_name)

            marks = " [" + ", ".join(names) + "]"

        self.lines.append(f"{self._indent()}text{marks}: '{node.text}'")
        return node.text or ""


def print_tree(node: DocNode) -> None:
    """
    Print a node and its subtree to stdout.

    Args:
        node: The root node to print
    """
    print(DocTreePrinter().format(node))
