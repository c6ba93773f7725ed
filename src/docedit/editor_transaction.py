"""
Atomic document edits.

A transaction copies the document of the state it starts from and applies
its steps to that copy.  Nothing becomes visible until `apply()` validates
the whole tree and returns a new state, so a failing step or an invalid
result leaves the original state untouched.
"""

import logging
from typing import Any, Dict, List, Sequence, Tuple

from docmark.doc_error import ContentValidationError
from docmark.doc_node import DocMark, DocNode, join_inline

from docedit.editor_error import InvalidCaretError, TransactionError
from docedit.editor_state import EditorCaret, EditorState, check_caret, textblock_paths


LIST_ITEM_TYPES = frozenset({"list_item", "task_list_item"})


Path = Tuple[int, ...]


class EditorTransaction:
    """
    A sequence of steps producing a new editor state.

    Steps return the transaction so they can be chained.  Steps that move text also move
    the caret the way typing would.
    """

    def __init__(self, state: EditorState) -> None:
        """
        Start a transaction.

        Args:
            state: The state the transaction starts from
        """
        self._logger = logging.getLogger("EditorTransaction")
        self.before = state
        self.schema = state.schema
        self.doc = state.doc.copy()
        self.caret = state.caret
        self.stored_marks = state.stored_marks
        self.steps: List[str] = []
        self.meta: Dict[str, Any] = {}
        self._stored_marks_set = False

    @property
    def doc_changed(self) -> bool:
        """True if any step changed the document."""
        return bool(self.steps)

    def _node(self, path: Sequence[int]) -> DocNode:
        try:
            return self.doc.node_at(path)

        except IndexError as e:
            raise TransactionError(f"No node at path {list(path)!r}", {"path": list(path)}) from e

    def _textblock(self, path: Sequence[int]) -> DocNode:
        node = self._node(path)
        if not node.is_textblock:
            raise TransactionError(f"Node at path {list(path)!r} is {node.type_name}, not a textblock")

        return node

    def _parent_and_index(self, path: Sequence[int]) -> Tuple[DocNode, int]:
        if not path:
            raise TransactionError("The document node has no parent")

        return self._node(path[:-1]), path[-1]

    def _check_range(self, block: DocNode, start: int, end: int) -> None:
        if not 0 <= start <= end <= len(block.text_content):
            raise TransactionError(
                f"Range {start}..{end} is outside the textblock",
                {"start": start, "end": end, "length": len(block.text_content)}
            )

    def _make(self, type_name: str, attrs: Dict[str, Any] | None, children: Sequence[DocNode]) -> DocNode:
        try:
            return self.schema.node(type_name, attrs, children)

        except ContentValidationError as e:
            raise TransactionError(f"Cannot create {type_name}: {e}", e.error_details) from e

    def _fitted_inline(self, block_type_name: str, nodes: Sequence[DocNode]) -> List[DocNode]:
        """Drop marks the block type does not allow."""
        try:
            node_type = self.schema.node_type(block_type_name)

        except ContentValidationError as e:
            raise TransactionError(str(e)) from e

        result = []
        for node in nodes:
            marks = tuple(mark for mark in node.marks if node_type.allows_mark(mark.type_name))
            result.append(node if marks == node.marks else node.with_marks(marks))

        return result

    def _step(self, name: str) -> None:
        self.steps.append(name)
        if not self._stored_marks_set:
            self.stored_marks = None

    def set_caret(self, path: Sequence[int], offset: int) -> "EditorTransaction":
        """
        Move the caret.

        The caret is checked when the transaction is applied.

        Args:
            path: Path to a textblock
            offset: Character offset inside it

        Returns:
            This transaction
        """
        self.caret = EditorCaret(tuple(path), offset)
        if not self._stored_marks_set:
            self.stored_marks = None

        return self

    def set_stored_marks(self, marks: Sequence[DocMark] | None) -> "EditorTransaction":
        """
        Set the marks the next typed text will carry.

        Args:
            marks: The marks, or None to use the marks at the caret again

        Returns:
            This transaction
        """
        self.stored_marks = tuple(marks) if marks is not None else None
        self._stored_marks_set = True
        return self

    def insert_text(
        self,
        path: Sequence[int],
        offset: int,
        text: str,
        marks: Sequence[DocMark] | None = None
    ) -> "EditorTransaction":
        """
        Insert text into a textblock.

        Args:
            path: Path to the textblock
            offset: Where to insert
            text: The text to insert
            marks: Marks for the text; None inherits the marks at the offset

        Returns:
            This transaction

        Raises:
            TransactionError: If the path or offset is invalid
        """
        block = self._textblock(path)
        self._check_range(block, offset, offset)
        if not text:
            return self

        if marks is None:
            marks = block.marks_at(offset)

        node = self.schema.text(text, marks)
        block.replace_inline(offset, offset, self._fitted_inline(block.type_name, [node]))

        if self.caret.path == tuple(path) and self.caret.offset >= offset:
            self.caret = self.caret.with_offset(self.caret.offset + len(text))

        self._step("insert_text")
        return self

    def delete_text(self, path: Sequence[int], start: int, end: int) -> "EditorTransaction":
        """
        Delete a range of text from a textblock.

        Args:
            path: Path to the textblock
            start: Start offset (inclusive)
            end: End offset (exclusive)

        Returns:
            This transaction

        Raises:
            TransactionError: If the path or range is invalid
        """
        block = self._textblock(path)
        self._check_range(block, start, end)
        if start == end:
            return self

        block.replace_inline(start, end, [])

        if self.caret.path == tuple(path):
            if self.caret.offset >= end:
                self.caret = self.caret.with_offset(self.caret.offset - (end - start))

            elif self.caret.offset > start:
                self.caret = self.caret.with_offset(start)

        self._step("delete_text")
        return self

    def add_mark(self, path: Sequence[int], start: int, end: int, mark: DocMark) -> "EditorTransaction":
        """
        Apply a mark to a range of text, replacing any mark of the same type there.

        Args:
            path: Path to the textblock
            start: Start offset (inclusive)
            end: End offset (exclusive)
            mark: The mark to add

        Returns:
            This transaction

        Raises:
            TransactionError: If the range is invalid or the textblock does not allow the mark
        """
        block = self._textblock(path)
        self._check_range(block, start, end)
        if not block.type.allows_mark(mark.type_name):
            raise TransactionError(f"{block.type_name} does not allow the {mark.type_name} mark")

        marked = [node.with_marks(mark.add_to_set(node.marks)) for node in block.inline_slice(start, end)]
        block.replace_inline(start, end, marked)
        self._step("add_mark")
        return self

    def remove_mark(self, path: Sequence[int], start: int, end: int, mark_name: str) -> "EditorTransaction":
        """
        Remove every mark of a type from a range of text.

        Args:
            path: Path to the textblock
            start: Start offset (inclusive)
            end: End offset (exclusive)
            mark_name: Name of the mark type to remove

        Returns:
            This transaction
        """
        block = self._textblock(path)
        self._check_range(block, start, end)
        unmarked = [
            node.with_marks(tuple(mark for mark in node.marks if mark.type_name != mark_name))
            for node in block.inline_slice(start, end)
        ]
        block.replace_inline(start, end, unmarked)
        self._step("remove_mark")
        return self

    def set_block_type(
        self,
        path: Sequence[int],
        type_name: str,
        attrs: Dict[str, Any] | None = None
    ) -> "EditorTransaction":
        """
        Change the type of a textblock, keeping its text.

        Marks the new type does not allow (all of them, for a code block) are removed.

        Args:
            path: Path to the textblock
            type_name: Name of the new textblock type
            attrs: Attributes for the new type

        Returns:
            This transaction

        Raises:
            TransactionError: If the new node cannot hold the text
        """
        block = self._textblock(path)
        parent, index = self._parent_and_index(path)
        children = join_inline(self._fitted_inline(type_name, [child.copy() for child in block.children]))
        new_block = self._make(type_name, attrs, children)
        if not new_block.is_textblock:
            raise TransactionError(f"{type_name} is not a textblock type")

        self._replace_children(parent, index, 1, [new_block])
        self._step("set_block_type")
        return self

    def wrap_block(self, path: Sequence[int], wrappers: Sequence[Tuple[str, Dict[str, Any]]]) -> "EditorTransaction":
        """
        Wrap a block in one or more container nodes.

        If the block's previous sibling has the same type as the outermost wrapper, the new
        content is joined into that sibling instead.

        Args:
            path: Path to the block
            wrappers: (type name, attributes) pairs, outermost first

        Returns:
            This transaction

        Raises:
            TransactionError: If the wrapping would produce invalid content
        """
        if not wrappers:
            raise TransactionError("No wrapper given")

        path = tuple(path)
        parent, index = self._parent_and_index(path)
        block = self._node(path)

        wrapped = block.copy()
        for type_name, attrs in reversed(wrappers):
            wrapped = self._make(type_name, attrs, [wrapped])

        previous = parent.children[index - 1] if index > 0 else None
        if previous is not None and previous.type_name == wrapped.type_name:
            first_index = len(previous.children)
            for child in list(wrapped.children):
                previous.add_child(child)

            self._replace_children(parent, index, 1, [])
            new_path = (*path[:-1], index - 1, first_index, *([0] * (len(wrappers) - 1)))

        else:
            self._replace_children(parent, index, 1, [wrapped])
            new_path = (*path, *([0] * len(wrappers)))

        self._move_caret_from(path, new_path)
        self._step("wrap_block")
        return self

    def replace_block(self, path: Sequence[int], nodes: Sequence[DocNode]) -> "EditorTransaction":
        """
        Replace a block with other blocks.

        A caret inside the replaced block moves to the start of the first textblock of the
        new blocks, or to the next textblock after them.

        Args:
            path: Path to the block
            nodes: The replacement blocks

        Returns:
            This transaction
        """
        path = tuple(path)
        parent, index = self._parent_and_index(path)
        self._node(path)
        self._replace_children(parent, index, 1, list(nodes))

        if self.caret.path[:len(path)] == path:
            inner = [(*path[:-1], index + offset, *sub) for offset, node in enumerate(nodes)
                     for sub in ([()] if node.is_textblock else textblock_paths(node))]
            if inner:
                self.caret = EditorCaret(inner[0], 0)

            else:
                following = [p for p in textblock_paths(self.doc) if p > (*path[:-1], index + len(nodes) - 1)]
                if following:
                    self.caret = EditorCaret(following[0], 0)

        self._step("replace_block")
        return self

    def insert_blocks(self, path: Sequence[int], offset: int, nodes: Sequence[DocNode]) -> "EditorTransaction":
        """
        Insert blocks at a position inside a textblock, splitting it there.

        Halves of the textblock that end up empty are dropped.  The caret moves to the end of
        the last inserted textblock; if the last inserted block holds no text (a horizontal
        rule) the caret moves to the start of the block after it, which is created if needed.

        Args:
            path: Path to the textblock
            offset: Where to insert
            nodes: The blocks to insert

        Returns:
            This transaction
        """
        path = tuple(path)
        block = self._textblock(path)
        self._check_range(block, offset, offset)
        parent, index = self._parent_and_index(path)
        length = len(block.text_content)

        replacement: List[DocNode] = []
        before = block.inline_slice(0, offset)
        if before:
            replacement.append(self._make(block.type_name, block.attrs, before))

        replacement.extend(nodes)
        after = block.inline_slice(offset, length)
        trailing_leaf = bool(nodes) and not nodes[-1].is_textblock and not textblock_paths(nodes[-1])
        if after or trailing_leaf:
            replacement.append(self._make(block.type_name, block.attrs, after))

        self._replace_children(parent, index, 1, replacement)

        first_inserted = index + (1 if before else 0)
        inserted_paths = [
            (*path[:-1], first_inserted + position, *sub) for position, node in enumerate(nodes)
            for sub in ([()] if node.is_textblock else textblock_paths(node))
        ]
        if trailing_leaf:
            self.caret = EditorCaret((*path[:-1], index + len(replacement) - 1), 0)

        elif inserted_paths:
            last = inserted_paths[-1]
            self.caret = EditorCaret(last, len(self.doc.node_at(last).text_content))

        self._step("insert_blocks")
        return self

    def split_block(self, path: Sequence[int], offset: int) -> "EditorTransaction":
        """
        Split a textblock in two at an offset.

        Splitting a heading at its end starts a paragraph rather than another heading.

        Args:
            path: Path to the textblock
            offset: Where to split

        Returns:
            This transaction
        """
        path = tuple(path)
        block = self._textblock(path)
        self._check_range(block, offset, offset)
        parent, index = self._parent_and_index(path)
        length = len(block.text_content)

        before = block.inline_slice(0, offset)
        after = block.inline_slice(offset, length)
        if block.type_name == "heading" and offset == length:
            new_block = self._make("paragraph", None, [])

        else:
            new_block = self._make(block.type_name, block.attrs, after)

        self._replace_children(parent, index, 1, [self._make(block.type_name, block.attrs, before), new_block])
        self.caret = EditorCaret((*path[:-1], index + 1), 0)
        self._step("split_block")
        return self

    def _list_item_context(self, path: Path) -> Tuple[DocNode, DocNode, int]:
        """
        Find the list item a textblock starts.

        Returns:
            (item, list, index of the item in the list)
        """
        if len(path) < 3 or path[-1] != 0:
            raise TransactionError("Block does not start a list item")

        item = self._node(path[:-1])
        if item.type_name not in LIST_ITEM_TYPES:
            raise TransactionError("Block is not inside a list item")

        return item, self._node(path[:-2]), path[-2]

    def split_list_item(self, path: Sequence[int], offset: int) -> "EditorTransaction":
        """
        Split the list item whose first paragraph contains the caret.

        Text after the offset and any nested content move to a new item after the current one.

        Args:
            path: Path to the first paragraph of a list item
            offset: Where to split

        Returns:
            This transaction
        """
        path = tuple(path)
        block = self._textblock(path)
        self._check_range(block, offset, offset)
        item, list_node, item_index = self._list_item_context(path)
        length = len(block.text_content)

        new_paragraph = self._make("paragraph", None, block.inline_slice(offset, length))
        block.replace_inline(offset, length, [])
        rest = item.children[1:]
        item.set_children(item.children[:1])

        attrs = {"checked": False} if item.type_name == "task_list_item" else None
        new_item = self._make(item.type_name, attrs, [new_paragraph, *rest])
        self._replace_children(list_node, item_index + 1, 0, [new_item])
        self.caret = EditorCaret((*path[:-2], item_index + 1, 0), 0)
        self._step("split_list_item")
        return self

    def lift_list_item(self, path: Sequence[int]) -> "EditorTransaction":
        """
        Move a list item out of its list.

        A nested item becomes an item of the enclosing list; a top-level item's content
        becomes plain blocks after the list.  Items that followed it stay in a list after it.

        Args:
            path: Path to the first paragraph of a list item

        Returns:
            This transaction
        """
        path = tuple(path)
        item, list_node, item_index = self._list_item_context(path)
        list_path = path[:-2]
        container, list_index = self._parent_and_index(list_path)

        following = list_node.children[item_index + 1:]
        list_node.set_children(list_node.children[:item_index])
        list_empty = not list_node.children

        if container.type_name in LIST_ITEM_TYPES:
            # Nested list: the item joins the outer list after the item holding the nested list
            if following:
                item.add_child(self._make(list_node.type_name, list_node.attrs, following))

            outer_list, container_index = self._parent_and_index(list_path[:-1])
            if list_empty:
                self._replace_children(container, list_index, 1, [])

            lifted = item
            if outer_list.type_name == "task_list" and item.type_name != "task_list_item":
                lifted = self._make("task_list_item", None, item.children)

            elif outer_list.type_name != "task_list" and item.type_name != "list_item":
                lifted = self._make("list_item", None, item.children)

            self._replace_children(outer_list, container_index + 1, 0, [lifted])
            new_path = (*list_path[:-2], container_index + 1, 0)

        else:
            blocks = list(item.children)
            if following:
                blocks.append(self._make(list_node.type_name, list_node.attrs, following))

            if list_empty:
                self._replace_children(container, list_index, 1, blocks)
                new_path = (*list_path[:-1], list_index)

            else:
                self._replace_children(container, list_index + 1, 0, blocks)
                new_path = (*list_path[:-1], list_index + 1)

        self._move_caret_from(path, new_path)
        self._step("lift_list_item")
        return self

    def sink_list_item(self, path: Sequence[int]) -> "EditorTransaction":
        """
        Nest a list item inside the item before it.

        Args:
            path: Path to the first paragraph of a list item

        Returns:
            This transaction

        Raises:
            TransactionError: If the item is the first of its list
        """
        path = tuple(path)
        item, list_node, item_index = self._list_item_context(path)
        if item_index == 0:
            raise TransactionError("The first item of a list cannot be nested")

        previous = list_node.children[item_index - 1]
        self._replace_children(list_node, item_index, 1, [])

        last = previous.children[-1]
        if last.type_name == list_node.type_name:
            last.add_child(item)
            new_path = (*path[:-2], item_index - 1, len(previous.children) - 1, len(last.children) - 1, 0)

        else:
            previous.add_child(self._make(list_node.type_name, None, [item]))
            new_path = (*path[:-2], item_index - 1, len(previous.children) - 1, 0, 0)

        self._move_caret_from(path, new_path)
        self._step("sink_list_item")
        return self

    def lift_block(self, path: Sequence[int]) -> "EditorTransaction":
        """
        Move the first block of a blockquote out, in front of the blockquote.

        Args:
            path: Path to the first block inside a blockquote

        Returns:
            This transaction
        """
        path = tuple(path)
        if len(path) < 2 or path[-1] != 0:
            raise TransactionError("Block does not start a container")

        quote = self._node(path[:-1])
        if quote.type_name != "blockquote":
            raise TransactionError("Block is not inside a blockquote")

        container, quote_index = self._parent_and_index(path[:-1])
        block = quote.children[0]
        self._replace_children(quote, 0, 1, [])
        if not quote.children:
            self._replace_children(container, quote_index, 1, [block])

        else:
            self._replace_children(container, quote_index, 0, [block])

        self._move_caret_from(path, path[:-1])
        self._step("lift_block")
        return self

    def join_with_previous(self, path: Sequence[int]) -> "EditorTransaction":
        """
        Join a textblock onto the content before it.

        A previous leaf block (a horizontal rule) is deleted instead.  Joining into a
        container joins into its last textblock.

        Args:
            path: Path to the textblock

        Returns:
            This transaction

        Raises:
            TransactionError: If there is nothing before the block to join with
        """
        path = tuple(path)
        block = self._textblock(path)
        parent, index = self._parent_and_index(path)
        if index == 0:
            raise TransactionError("No previous block to join with")

        previous = parent.children[index - 1]
        if previous.is_leaf:
            self._replace_children(parent, index - 1, 1, [])
            self._move_caret_from(path, (*path[:-1], index - 1))
            self._step("join_with_previous")
            return self

        if previous.is_textblock:
            target_path: Path = (*path[:-1], index - 1)

        else:
            inner = textblock_paths(previous, (*path[:-1], index - 1))
            if not inner:
                raise TransactionError(f"No textblock inside {previous.type_name} to join with")

            target_path = inner[-1]

        target = self._node(target_path)
        join_offset = len(target.text_content)
        inline = self._fitted_inline(target.type_name, [child.copy() for child in block.children])
        target.replace_inline(join_offset, join_offset, inline)
        self._replace_children(parent, index, 1, [])

        if self.caret.path == path:
            self.caret = EditorCaret(target_path, join_offset + self.caret.offset)

        self._step("join_with_previous")
        return self

    def _replace_children(self, parent: DocNode, index: int, count: int, nodes: Sequence[DocNode]) -> None:
        for node in nodes:
            node.parent = parent

        parent.children[index:index + count] = list(nodes)

    def _move_caret_from(self, old_path: Path, new_path: Path) -> None:
        if self.caret.path[:len(old_path)] == old_path:
            self.caret = EditorCaret((*new_path, *self.caret.path[len(old_path):]), self.caret.offset)

    def validate(self) -> None:
        """
        Check the resulting document and caret.

        Raises:
            TransactionError: If the document does not satisfy the schema or the caret is invalid
        """
        try:
            self.schema.check(self.doc)
            check_caret(self.doc, self.caret)

        except ContentValidationError as e:
            raise TransactionError(f"Transaction produces an invalid document: {e}", e.error_details) from e

        except InvalidCaretError as e:
            raise TransactionError(f"Transaction leaves an invalid caret: {e}", e.error_details) from e

    def apply(self) -> EditorState:
        """
        Validate the transaction and produce the new state.

        Returns:
            The new editor state

        Raises:
            TransactionError: If the result is invalid; the starting state is unaffected
        """
        self.validate()
        self._logger.debug("applied transaction: %s", self.steps)
        return EditorState(self.schema, self.doc, self.caret, self.stored_marks)
