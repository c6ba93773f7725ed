"""
Visitor class for serializing document trees to JSON.

The JSON form is the one `DocSchema.node_from_json` reads back:
`{"type", "attrs"?, "content"?, "text"?, "marks"?}`.
"""

import json
from typing import Any, Dict

from docmark.doc_node import DocNode, DocVisitor


class DocJSONSerializer(DocVisitor):
    """Visitor that serializes a document tree to JSON-compatible dictionaries."""

    def __init__(self, include_empty_attrs: bool = False) -> None:
        """
        Initialize the JSON serializer.

        Args:
            include_empty_attrs: Whether to write an "attrs" key for nodes without attributes
        """
        super().__init__()
        self.include_empty_attrs = include_empty_attrs

    def visit_text(self, node: DocNode) -> Dict[str, Any]:  # pylint: disable=invalid-name
        """Serialize a text node."""
        result: Dict[str, Any] = {"type": "text", "text": node.text}
        if node.marks:
            result["marks"] = [mark.to_json() for mark in node.marks]

        return result

    def generic_visit(self, node: DocNode) -> Dict[str, Any]:  # type: ignore[override]
        """Serialize a block node and its children."""
        result: Dict[str, Any] = {"type": node.type_name}
        if node.attrs or self.include_empty_attrs:
            result["attrs"] = dict(node.attrs)

        if node.children:
            result["content"] = [self.visit(child) for child in node.children]

        return result

    def to_json_string(self, node: DocNode, indent: int | None = 2) -> str:
        """
        Serialize a node to a JSON string.

        Args:
            node: The node to serialize
            indent: JSON indentation, or None for compact output

        Returns:
            The JSON text
        """
        return json.dumps(self.visit(node), indent=indent, ensure_ascii=False)
