"""
Document tree nodes and marks.

Nodes are plain mutable tree objects.  Construction through the schema
(`DocSchema.node`, `DocSchema.create_and_fill`) is what guarantees validity;
constructing a `DocNode` directly performs no checking.
"""

from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Sequence, Tuple

if TYPE_CHECKING:
    from docmark.doc_schema import MarkType, NodeType


class DocMark:
    """A formatting mark attached to a run of text."""

    def __init__(self, mark_type: "MarkType", attrs: Dict[str, Any] | None = None) -> None:
        """
        Initialize a mark.

        Args:
            mark_type: The schema mark type
            attrs: Mark attributes (already completed with defaults)
        """
        self.type = mark_type
        self.attrs: Dict[str, Any] = dict(attrs or {})

    @property
    def type_name(self) -> str:
        """Name of the mark type."""
        return self.type.name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DocMark):
            return NotImplemented

        return self.type.name == other.type.name and self.attrs == other.attrs

    def __hash__(self) -> int:
        return hash((self.type.name, tuple(sorted(self.attrs.items()))))

    def __repr__(self) -> str:
        if not self.attrs:
            return f"DocMark({self.type.name})"

        return f"DocMark({self.type.name}, {self.attrs!r})"

    def add_to_set(self, marks: Sequence["DocMark"]) -> Tuple["DocMark", ...]:
        """
        Add this mark to a mark set, replacing any mark of the same type.

        Args:
            marks: An ordered mark set

        Returns:
            A new mark set ordered by mark rank
        """
        result = [mark for mark in marks if mark.type.name != self.type.name]
        result.append(self)
        result.sort(key=lambda mark: mark.type.rank)
        return tuple(result)

    def remove_from_set(self, marks: Sequence["DocMark"]) -> Tuple["DocMark", ...]:
        """
        Remove any mark of this mark's type from a mark set.

        Args:
            marks: An ordered mark set

        Returns:
            A new mark set without this mark type
        """
        return tuple(mark for mark in marks if mark.type.name != self.type.name)

    def to_json(self) -> Dict[str, Any]:
        """
        Get the JSON form of the mark.

        Returns:
            Dictionary with the mark type and, when present, its attributes
        """
        result: Dict[str, Any] = {"type": self.type.name}
        if self.attrs:
            result["attrs"] = dict(self.attrs)

        return result


class DocNode:
    """A typed node of the document tree."""

    def __init__(
        self,
        node_type: "NodeType",
        attrs: Dict[str, Any] | None = None,
        children: Sequence["DocNode"] | None = None,
        text: str | None = None,
        marks: Sequence[DocMark] = ()
    ) -> None:
        """
        Initialize a node.

        Args:
            node_type: The schema node type
            attrs: Node attributes (already completed with defaults)
            children: Child nodes, for non-text nodes
            text: Text content, for text nodes
            marks: Marks, for text nodes
        """
        self.type = node_type
        self.attrs: Dict[str, Any] = dict(attrs or {})
        self.text = text
        self.marks: Tuple[DocMark, ...] = tuple(marks)
        self.parent: DocNode | None = None
        self.children: List[DocNode] = []
        for child in children or []:
            self.add_child(child)

    @property
    def type_name(self) -> str:
        """Name of the node type."""
        return self.type.name

    @property
    def is_text(self) -> bool:
        """True for text nodes."""
        return self.type.is_text

    @property
    def is_inline(self) -> bool:
        """True for inline nodes."""
        return self.type.is_inline

    @property
    def is_block(self) -> bool:
        """True for block nodes."""
        return self.type.is_block

    @property
    def is_textblock(self) -> bool:
        """True for blocks whose content is inline (paragraph, heading, code_block)."""
        return self.type.is_textblock

    @property
    def is_leaf(self) -> bool:
        """True for nodes that can hold no content."""
        return self.type.is_leaf

    def __repr__(self) -> str:
        if self.is_text:
            if self.marks:
                return f"DocNode(text, {self.text!r}, marks={list(self.marks)!r})"

            return f"DocNode(text, {self.text!r})"

        attrs = f", {self.attrs!r}" if self.attrs else ""
        return f"DocNode({self.type.name}{attrs}, {self.children!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DocNode):
            return NotImplemented

        return (
            self.type.name == other.type.name and
            self.attrs == other.attrs and
            self.text == other.text and
            self.marks == other.marks and
            self.children == other.children
        )

    __hash__ = None  # type: ignore[assignment]

    def add_child(self, child: "DocNode") -> "DocNode":
        """
        Add a child node to this node.

        Args:
            child: The child node to add

        Returns:
            The added child node for method chaining
        """
        child.parent = self
        self.children.append(child)
        return child

    def insert_child(self, index: int, child: "DocNode") -> "DocNode":
        """
        Insert a child node at a given index.

        Args:
            index: Position to insert at
            child: The child node to insert

        Returns:
            The inserted child node
        """
        child.parent = self
        self.children.insert(index, child)
        return child

    def remove_child(self, child: "DocNode") -> None:
        """
        Remove a child node from this node.

        Args:
            child: The child node to remove

        Raises:
            ValueError: If the child is not a child of this node
        """
        index = self.index_of(child)
        del self.children[index]
        child.parent = None

    def remove_children(self) -> None:
        """Remove all children from this node."""
        for child in self.children:
            child.parent = None

        self.children = []

    def set_children(self, children: Sequence["DocNode"]) -> None:
        """
        Replace all children of this node.

        Args:
            children: The new children
        """
        self.remove_children()
        for child in children:
            self.add_child(child)

    def index_of(self, child: "DocNode") -> int:
        """
        Get the index of a child by identity.

        Args:
            child: The child node

        Returns:
            The index of the child

        Raises:
            ValueError: If the node is not a child of this node
        """
        for index, candidate in enumerate(self.children):
            if candidate is child:
                return index

        raise ValueError("Node is not a child of this node")

    def previous_sibling(self) -> "DocNode | None":
        """
        Get the previous sibling of this node, if any.

        Returns:
            The previous sibling node, or None if this is the first child or has no parent
        """
        if self.parent is None:
            return None

        index = self.parent.index_of(self)
        if index > 0:
            return self.parent.children[index - 1]

        return None

    def next_sibling(self) -> "DocNode | None":
        """
        Get the next sibling of this node, if any.

        Returns:
            The next sibling node, or None if this is the last child or has no parent
        """
        if self.parent is None:
            return None

        index = self.parent.index_of(self)
        if index < len(self.parent.children) - 1:
            return self.parent.children[index + 1]

        return None

    @property
    def text_content(self) -> str:
        """The concatenated text of this node and all its descendants."""
        if self.is_text:
            return self.text or ""

        return "".join(child.text_content for child in self.children)

    def descendants(self) -> Iterator["DocNode"]:
        """
        Iterate over all descendants in document order (pre-order, excluding this node).

        Yields:
            Each descendant node
        """
        for child in self.children:
            yield child
            yield from child.descendants()

    def node_at(self, path: Sequence[int]) -> "DocNode":
        """
        Resolve a child-index path relative to this node.

        Args:
            path: Child indices from this node downwards

        Returns:
            The node at the path

        Raises:
            IndexError: If the path does not exist
        """
        node = self
        for index in path:
            if index < 0 or index >= len(node.children):
                raise IndexError(f"Invalid node path {list(path)!r}")

            node = node.children[index]

        return node

    def copy(self) -> "DocNode":
        """
        Create a deep copy of this node and its subtree.

        Returns:
            The copied node, detached from any parent
        """
        return DocNode(
            self.type,
            self.attrs,
            [child.copy() for child in self.children],
            self.text,
            self.marks
        )

    def with_text(self, text: str) -> "DocNode":
        """
        Create a text node with the same marks and different text.

        Args:
            text: The new text

        Returns:
            A new text node
        """
        return DocNode(self.type, text=text, marks=self.marks)

    def with_marks(self, marks: Sequence[DocMark]) -> "DocNode":
        """
        Create a text node with the same text and different marks.

        Args:
            marks: The new mark set

        Returns:
            A new text node
        """
        return DocNode(self.type, text=self.text, marks=marks)

    def inline_slice(self, start: int, end: int) -> List["DocNode"]:
        """
        Copy the inline content between two character offsets of this textblock.

        Args:
            start: Start offset (inclusive)
            end: End offset (exclusive)

        Returns:
            Copies of the text runs covering the range, cut at the offsets
        """
        result: List[DocNode] = []
        position = 0
        for child in self.children:
            text = child.text or ""
            child_start = position
            child_end = position + len(text)
            position = child_end
            if child_end <= start or child_start >= end:
                continue

            cut_start = max(start, child_start) - child_start
            cut_end = min(end, child_end) - child_start
            result.append(child.with_text(text[cut_start:cut_end]))

        return result

    def replace_inline(self, start: int, end: int, nodes: Sequence["DocNode"]) -> None:
        """
        Replace the inline content between two offsets of this textblock.

        Adjacent text runs with equal marks are merged and empty runs dropped afterwards.

        Args:
            start: Start offset (inclusive)
            end: End offset (exclusive)
            nodes: Inline nodes to put in place of the range
        """
        length = len(self.text_content)
        before = self.inline_slice(0, start)
        after = self.inline_slice(end, length)
        self.set_children(join_inline([*before, *nodes, *after]))

    def marks_at(self, offset: int) -> Tuple[DocMark, ...]:
        """
        Get the marks that text typed at an offset of this textblock would inherit.

        Marks come from the character before the offset (or after it at the start of the
        block).  At a run boundary, non-inclusive marks (such as links) are only kept when
        the runs on both sides carry them.

        Args:
            offset: Character offset

        Returns:
            The inherited mark set
        """
        position = 0
        before: DocNode | None = None
        after: DocNode | None = None
        for child in self.children:
            child_end = position + len(child.text or "")
            if position < offset < child_end:
                return child.marks

            if position == offset:
                after = child
                break

            if child_end == offset:
                before = child

            position = child_end

        main, other = (before, after) if before is not None else (after, None)
        if main is None:
            return ()

        return tuple(
            mark for mark in main.marks
            if mark.type.inclusive or (other is not None and mark in other.marks)
        )


def join_inline(nodes: Sequence[DocNode]) -> List[DocNode]:
    """
    Normalize a run of inline nodes.

    Args:
        nodes: Inline nodes

    Returns:
        Nodes with empty text runs removed and adjacent runs with equal marks merged
    """
    result: List[DocNode] = []
    for node in nodes:
        if node.is_text and not node.text:
            continue

        if result and node.is_text and result[-1].is_text and result[-1].marks == node.marks:
            result[-1] = result[-1].with_text((result[-1].text or "") + (node.text or ""))
            continue

        result.append(node)

    return result


class DocVisitor:
    """
    Base visitor class for document tree traversal.

    Dispatches to a `visit_<node type name>` method when one exists.
    """

    def visit(self, node: DocNode) -> Any:
        """
        Visit a node and dispatch to the appropriate visit method.

        Args:
            node: The node to visit

        Returns:
            The result of visiting the node
        """
        method_name = f'visit_{node.type.name}'
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node: DocNode) -> List[Any]:
        """
        Default visit method for nodes without specific handlers.

        Args:
            node: The node to visit

        Returns:
            A list of results from visiting each child
        """
        results = []
        for child in node.children:
            results.append(self.visit(child))

        return results
