"""
Editor state: an immutable snapshot of a document and the caret inside it.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from docmark.doc_node import DocMark, DocNode
from docmark.doc_schema import DocSchema

from docedit.editor_error import InvalidCaretError


@dataclass(frozen=True)
class EditorCaret:
    """
    A collapsed selection.

    Attributes:
        path: Child indices from the document node down to a textblock
        offset: Character offset inside the textblock
    """
    path: Tuple[int, ...]
    offset: int

    def with_offset(self, offset: int) -> "EditorCaret":
        """Get a caret in the same textblock at a different offset."""
        return EditorCaret(self.path, offset)


def textblock_paths(node: DocNode, base: Sequence[int] = ()) -> List[Tuple[int, ...]]:
    """
    Find every textblock below a node.

    Args:
        node: The node to search
        base: Path of the node itself

    Returns:
        Paths of the textblocks, in document order
    """
    paths: List[Tuple[int, ...]] = []
    for index, child in enumerate(node.children):
        path = (*base, index)
        if child.is_textblock:
            paths.append(path)
            continue

        paths.extend(textblock_paths(child, path))

    return paths


def check_caret(doc: DocNode, caret: EditorCaret) -> DocNode:
    """
    Check that a caret points inside a textblock of a document.

    Args:
        doc: The document
        caret: The caret

    Returns:
        The textblock the caret is in

    Raises:
        InvalidCaretError: If the path does not lead to a textblock or the offset is out of range
    """
    try:
        block = doc.node_at(caret.path)

    except IndexError as e:
        raise InvalidCaretError(f"Caret path {list(caret.path)!r} does not exist", {"path": list(caret.path)}) from e

    if not block.is_textblock:
        raise InvalidCaretError(
            f"Caret path {list(caret.path)!r} leads to {block.type_name}, not a textblock",
            {"path": list(caret.path), "type": block.type_name}
        )

    length = len(block.text_content)
    if not 0 <= caret.offset <= length:
        raise InvalidCaretError(
            f"Caret offset {caret.offset} is outside 0..{length}",
            {"path": list(caret.path), "offset": caret.offset}
        )

    return block


class EditorState:
    """
    An immutable editor snapshot.

    The document is shared between states and must not be mutated; transactions
    work on a copy.
    """

    def __init__(
        self,
        schema: DocSchema,
        doc: DocNode,
        caret: EditorCaret,
        stored_marks: Tuple[DocMark, ...] | None = None
    ) -> None:
        """
        Initialize a state.

        Args:
            schema: The document schema
            doc: The document
            caret: The caret, which must be inside a textblock of the document
            stored_marks: Marks for the next typed text, overriding the marks at the caret

        Raises:
            InvalidCaretError: If the caret is not valid for the document
        """
        check_caret(doc, caret)
        self._schema = schema
        self._doc = doc
        self._caret = caret
        self._stored_marks = stored_marks

    @classmethod
    def create(cls, schema: DocSchema, doc: DocNode | None = None) -> "EditorState":
        """
        Create a state with the caret at the start of the first textblock.

        A document without any textblock (e.g. a single horizontal rule) gets an empty
        paragraph appended so the caret has somewhere to go.

        Args:
            schema: The document schema
            doc: The document, or None for an empty one

        Returns:
            The new state
        """
        if doc is None:
            doc = schema.empty_doc()

        paths = textblock_paths(doc)
        if not paths:
            doc = doc.copy()
            doc.add_child(schema.node("paragraph"))
            paths = textblock_paths(doc)

        return cls(schema, doc, EditorCaret(paths[0], 0))

    @property
    def schema(self) -> DocSchema:
        """The document schema."""
        return self._schema

    @property
    def doc(self) -> DocNode:
        """The document."""
        return self._doc

    @property
    def caret(self) -> EditorCaret:
        """The caret."""
        return self._caret

    @property
    def stored_marks(self) -> Tuple[DocMark, ...] | None:
        """Marks for the next typed text, or None to use the marks at the caret."""
        return self._stored_marks

    def textblock(self) -> DocNode:
        """Get the textblock the caret is in."""
        return self._doc.node_at(self._caret.path)

    def input_marks(self) -> Tuple[DocMark, ...]:
        """
        Get the marks text typed at the caret will carry.

        Returns:
            The stored marks if set, else the marks inherited at the caret; never any inside code
        """
        block = self.textblock()
        if block.type.is_code:
            return ()

        if self._stored_marks is not None:
            return self._stored_marks

        return block.marks_at(self._caret.offset)

    def with_caret(self, caret: EditorCaret) -> "EditorState":
        """
        Get a state with the caret moved.

        Args:
            caret: The new caret

        Returns:
            A new state sharing this state's document; stored marks are dropped

        Raises:
            InvalidCaretError: If the caret is not valid for the document
        """
        return EditorState(self._schema, self._doc, caret)
