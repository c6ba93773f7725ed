"""
Editing session: owns one document and applies keystroke-level edits to it.

Every edit is one transaction, so it is atomic and is one undo step.
Change listeners receive the serialized markdown and the new document after
every document-changing transaction.
"""

import logging
from typing import Callable, List, Sequence

from docmark.doc_node import DocNode
from docmark.doc_schema import DEFAULT_SCHEMA, DocSchema
from docmark.docmark_settings import DocmarkSettings
from docmark.markdown_parser import MarkdownParser, has_markdown_syntax
from docmark.markdown_serializer import MarkdownSerializer

from docedit.editor_error import TransactionError
from docedit.editor_history import EditorHistory
from docedit.editor_input_rule import InputRuleEngine
from docedit.editor_input_rules import create_default_input_rules
from docedit.editor_state import EditorCaret, EditorState, textblock_paths
from docedit.editor_transaction import LIST_ITEM_TYPES, EditorTransaction


ChangeListener = Callable[[str, DocNode], None]


class EditorSession:
    """An editing session for a single document."""

    def __init__(
        self,
        markdown: str = "",
        schema: DocSchema = DEFAULT_SCHEMA,
        settings: DocmarkSettings | None = None
    ) -> None:
        """
        Initialize the session.

        Args:
            markdown: Initial content
            schema: The document schema
            settings: Editing settings; defaults are used if not given
        """
        self._logger = logging.getLogger("EditorSession")
        self._schema = schema
        self._settings = settings if settings is not None else DocmarkSettings.create_default()
        self._parser = MarkdownParser(schema)
        self._serializer = MarkdownSerializer()
        self._input_rules = InputRuleEngine(create_default_input_rules(schema, self._settings))
        self._history = EditorHistory(self._settings.history_depth)
        self._listeners: List[ChangeListener] = []
        self._state = EditorState.create(schema, self._parser.parse(markdown))

    @property
    def state(self) -> EditorState:
        """The current editor state."""
        return self._state

    @property
    def doc(self) -> DocNode:
        """The current document."""
        return self._state.doc

    @property
    def caret(self) -> EditorCaret:
        """The current caret."""
        return self._state.caret

    @property
    def history(self) -> EditorHistory:
        """The undo history."""
        return self._history

    def add_change_listener(self, listener: ChangeListener) -> None:
        """
        Register a callback for document changes.

        Args:
            listener: Called with the markdown and the document after each change
        """
        self._listeners.append(listener)

    def remove_change_listener(self, listener: ChangeListener) -> None:
        """
        Unregister a change callback.

        Args:
            listener: A previously registered callback
        """
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_content(self, markdown: str) -> None:
        """
        Replace the whole document.

        This is not an edit: history is cleared and listeners are not called.

        Args:
            markdown: The new content
        """
        self._state = EditorState.create(self._schema, self._parser.parse(markdown))
        self._history.clear()

    def markdown(self) -> str:
        """Serialize the current document to markdown."""
        return self._serializer.serialize(self._state.doc)

    def set_caret(self, path: Sequence[int], offset: int) -> None:
        """
        Move the caret.

        Args:
            path: Path to a textblock
            offset: Character offset inside it

        Raises:
            InvalidCaretError: If the position is not inside a textblock
        """
        self._state = self._state.with_caret(EditorCaret(tuple(path), offset))

    def move_caret_to_end(self) -> None:
        """Move the caret to the end of the last textblock."""
        last = textblock_paths(self._state.doc)[-1]
        self._state = self._state.with_caret(EditorCaret(last, len(self._state.doc.node_at(last).text_content)))

    def dispatch(self, transaction: EditorTransaction) -> None:
        """
        Apply a transaction to the session.

        Args:
            transaction: A transaction started from the current state

        Raises:
            TransactionError: If the transaction is stale or produces an invalid document
        """
        if transaction.before is not self._state:
            raise TransactionError("Transaction was not started from the current state")

        new_state = transaction.apply()
        if transaction.doc_changed:
            self._history.record(self._state)

        self._state = new_state
        if transaction.doc_changed:
            self._notify()

    def _notify(self) -> None:
        markdown = self.markdown()
        for listener in list(self._listeners):
            listener(markdown, self._state.doc)

    def type_text(self, text: str) -> None:
        """
        Type text at the caret, one keystroke per character.

        Each character first goes through the input rules; if none fires it is inserted with
        the marks at the caret.  A newline acts like Enter.

        Args:
            text: The typed text
        """
        for char in text:
            if char == "\n":
                self.split_block()
                continue

            transaction = self._input_rules.handle_text_input(self._state, char)
            if transaction is None:
                transaction = EditorTransaction(self._state)
                transaction.insert_text(self._state.caret.path, self._state.caret.offset, char, self._state.input_marks())

            self.dispatch(transaction)

    def split_block(self) -> bool:
        """
        Handle Enter.

        Inside a code block a newline is inserted.  Inside a list item the item is split, or
        lifted out of the list when it is empty.  Elsewhere the textblock is split.

        Returns:
            True if the document changed
        """
        transaction = EditorTransaction(self._state)
        return self._try_dispatch(transaction, self._split_at_caret)

    def _split_at_caret(self, transaction: EditorTransaction) -> None:
        path, offset = transaction.caret.path, transaction.caret.offset
        block = transaction.doc.node_at(path)

        if block.type.is_code:
            transaction.insert_text(path, offset, "\n")

        elif _starts_list_item(transaction.doc, path):
            if not block.text_content and len(block.parent.children) == 1:
                transaction.lift_list_item(path)

            else:
                transaction.split_list_item(path, offset)

        else:
            transaction.split_block(path, offset)

    def delete_backward(self) -> bool:
        """
        Handle Backspace.

        Deletes the character before the caret.  At the start of a textblock, a list item
        is lifted out of its list, a block is lifted out of a blockquote, or the block is
        joined onto the block before it; a heading or code block with nothing before it
        becomes a paragraph.

        Returns:
            True if the document changed
        """
        transaction = EditorTransaction(self._state)
        return self._try_dispatch(transaction, self._delete_before_caret)

    def _delete_before_caret(self, transaction: EditorTransaction) -> None:
        path, offset = transaction.caret.path, transaction.caret.offset
        block = transaction.doc.node_at(path)

        if offset > 0:
            transaction.delete_text(path, offset - 1, offset)

        elif _starts_list_item(transaction.doc, path):
            transaction.lift_list_item(path)

        elif len(path) > 1 and path[-1] == 0 and block.parent.type_name == "blockquote":
            transaction.lift_block(path)

        elif path[-1] > 0:
            transaction.join_with_previous(path)

        elif block.type_name != "paragraph":
            transaction.set_block_type(path, "paragraph")

    def sink_list_item(self) -> bool:
        """
        Handle Tab: nest the current list item inside the one before it.

        Returns:
            True if the item was nested
        """
        if not _starts_list_item(self._state.doc, self._state.caret.path):
            return False

        transaction = EditorTransaction(self._state)
        return self._try_dispatch(transaction, lambda tr: tr.sink_list_item(tr.caret.path))

    def lift_list_item(self) -> bool:
        """
        Handle Shift-Tab: move the current list item out one level.

        Returns:
            True if the item was lifted
        """
        if not _starts_list_item(self._state.doc, self._state.caret.path):
            return False

        transaction = EditorTransaction(self._state)
        return self._try_dispatch(transaction, lambda tr: tr.lift_list_item(tr.caret.path))

    def _try_dispatch(self, transaction: EditorTransaction, build: Callable[[EditorTransaction], object]) -> bool:
        """
        Build and dispatch a keystroke transaction, treating an impossible edit as a no-op.

        Args:
            transaction: A new transaction from the current state
            build: Adds the steps to the transaction

        Returns:
            True if the document changed
        """
        try:
            build(transaction)
            if not transaction.doc_changed:
                return False

            self.dispatch(transaction)

        except TransactionError as e:
            self._logger.debug("edit not applied: %s", e)
            return False

        return True

    def paste(self, text: str) -> bool:
        """
        Paste text at the caret, as one undo step.

        Text that looks like markdown is parsed and inserted as blocks.  Other text, or
        markdown whose blocks cannot be placed at the caret, is inserted as plain text with
        each line break acting like Enter.

        Args:
            text: The pasted text

        Returns:
            True if the document changed
        """
        if not text:
            return False

        if has_markdown_syntax(text) and not self._state.textblock().type.is_code:
            blocks = list(self._parser.parse(text).children)
            transaction = EditorTransaction(self._state)
            if self._try_dispatch(
                transaction,
                lambda tr: tr.insert_blocks(tr.caret.path, tr.caret.offset, blocks)
            ):
                return True

        lines = text.replace('\r\n', '\n').replace('\r', '\n').replace('\x00', '').split('\n')

        def insert_lines(transaction: EditorTransaction) -> None:
            for index, line in enumerate(lines):
                if index > 0:
                    self._split_at_caret(transaction)

                transaction.insert_text(transaction.caret.path, transaction.caret.offset, line)

        return self._try_dispatch(EditorTransaction(self._state), insert_lines)

    def undo(self) -> bool:
        """
        Undo the last document change.

        Returns:
            True if a change was undone
        """
        previous = self._history.undo(self._state)
        if previous is None:
            return False

        self._state = previous
        self._notify()
        return True

    def redo(self) -> bool:
        """
        Redo the last undone change.

        Returns:
            True if a change was redone
        """
        following = self._history.redo(self._state)
        if following is None:
            return False

        self._state = following
        self._notify()
        return True


def _starts_list_item(doc: DocNode, path: Sequence[int]) -> bool:
    """Check whether a path leads to the first block of a list item."""
    if len(path) < 3 or path[-1] != 0:
        return False

    return doc.node_at(path[:-1]).type_name in LIST_ITEM_TYPES
