"""
The default markdown input rules.

Rules are grouped so that settings can switch groups off; the evaluation
order of the groups is fixed.
"""

import re
from typing import Any, Callable, Dict, List, Sequence, Tuple

from docmark.doc_schema import DocSchema
from docmark.docmark_settings import DocmarkSettings

from docedit.editor_input_rule import InputRule
from docedit.editor_state import EditorState
from docedit.editor_transaction import EditorTransaction


AttrsFromMatch = Callable[[re.Match], Dict[str, Any]]


def textblock_type_rule(name: str, pattern: str, type_name: str, get_attrs: AttrsFromMatch | None = None) -> InputRule:
    """
    Create a rule that removes the matched text and changes the type of the textblock.

    Args:
        name: Rule name
        pattern: Regular expression, anchored at the start of the block
        type_name: Name of the new textblock type
        get_attrs: Computes the new block's attributes from the match

    Returns:
        The input rule
    """
    def handler(state: EditorState, match: re.Match, start: int, end: int, _text: str) -> EditorTransaction:
        path = state.caret.path
        transaction = EditorTransaction(state)
        transaction.delete_text(path, start, end)
        transaction.set_block_type(path, type_name, get_attrs(match) if get_attrs else None)
        return transaction

    return InputRule(name, re.compile(pattern), handler, block_start=True)


def wrapping_rule(name: str, pattern: str, wrappers: Callable[[re.Match], Sequence[Tuple[str, Dict[str, Any]]]]) -> InputRule:
    """
    Create a rule that removes the matched text and wraps the textblock in containers.

    Args:
        name: Rule name
        pattern: Regular expression, anchored at the start of the block
        wrappers: Computes the (type name, attributes) wrappers, outermost first, from the match

    Returns:
        The input rule
    """
    def handler(state: EditorState, match: re.Match, start: int, end: int, _text: str) -> EditorTransaction:
        path = state.caret.path
        transaction = EditorTransaction(state)
        transaction.delete_text(path, start, end)
        transaction.wrap_block(path, wrappers(match))
        return transaction

    return InputRule(name, re.compile(pattern), handler, block_start=True)


def mark_rule(name: str, pattern: str, mark_name: str) -> InputRule:
    """
    Create a rule that replaces delimited text with the same text carrying a mark.

    Text typed after the marked text does not continue the mark.

    Args:
        name: Rule name
        pattern: Regular expression whose first group is the text to mark
        mark_name: Name of the mark type

    Returns:
        The input rule
    """
    def handler(state: EditorState, match: re.Match, start: int, end: int, _text: str) -> EditorTransaction:
        path = state.caret.path
        content = match.group(1)
        block = state.textblock()
        marks = block.marks_at(start)
        mark = state.schema.mark(mark_name)

        transaction = EditorTransaction(state)
        transaction.delete_text(path, start, end)
        transaction.insert_text(path, start, content, marks)
        transaction.add_mark(path, start, start + len(content), mark)
        transaction.set_stored_marks(mark.remove_from_set(marks))
        return transaction

    return InputRule(name, re.compile(pattern), handler)


def link_rule(name: str, pattern: str) -> InputRule:
    """
    Create a rule for `[text](href)` links.

    Args:
        name: Rule name
        pattern: Regular expression whose groups are the link text and target

    Returns:
        The input rule
    """
    def handler(state: EditorState, match: re.Match, start: int, end: int, _text: str) -> EditorTransaction:
        path = state.caret.path
        content, href = match.group(1), match.group(2)
        link = state.schema.mark("link", {"href": href})
        marks = state.textblock().marks_at(start)

        transaction = EditorTransaction(state)
        transaction.delete_text(path, start, end)
        transaction.insert_text(path, start, content, marks)
        transaction.add_mark(path, start, start + len(content), link)
        return transaction

    return InputRule(name, re.compile(pattern), handler)


def auto_link_rule(name: str, pattern: str) -> InputRule:
    """
    Create a rule that links a URL as it is typed.

    The typed character is inserted and the whole URL, including it, is linked.

    Args:
        name: Rule name
        pattern: Regular expression matching the URL

    Returns:
        The input rule
    """
    def handler(state: EditorState, match: re.Match, start: int, end: int, text: str) -> EditorTransaction:
        path = state.caret.path
        link = state.schema.mark("link", {"href": match.group(0)})

        transaction = EditorTransaction(state)
        transaction.insert_text(path, end, text, state.input_marks())
        transaction.add_mark(path, start, end + len(text), link)
        return transaction

    return InputRule(name, re.compile(pattern), handler)


def horizontal_rule_rule(name: str, pattern: str) -> InputRule:
    """
    Create a rule that replaces the textblock with a horizontal rule followed by a paragraph.

    Text after the caret moves into the new paragraph, which receives the caret.

    Args:
        name: Rule name
        pattern: Regular expression, anchored at the start of the block

    Returns:
        The input rule
    """
    def handler(state: EditorState, _match: re.Match, _start: int, end: int, _text: str) -> EditorTransaction:
        block = state.textblock()
        rest = block.inline_slice(end, len(block.text_content))
        schema = state.schema

        transaction = EditorTransaction(state)
        transaction.replace_block(state.caret.path, [
            schema.node("horizontal_rule"),
            schema.node("paragraph", None, rest)
        ])
        return transaction

    return InputRule(name, re.compile(pattern), handler, block_start=True)


def text_replacement_rule(name: str, pattern: str, replacement: str) -> InputRule:
    """
    Create a rule that replaces the matched text with other text.

    Args:
        name: Rule name
        pattern: Regular expression matching the text to replace
        replacement: The text to put in its place

    Returns:
        The input rule
    """
    def handler(state: EditorState, _match: re.Match, start: int, end: int, _text: str) -> EditorTransaction:
        path = state.caret.path
        transaction = EditorTransaction(state)
        transaction.delete_text(path, start, end)
        transaction.insert_text(path, start, replacement, ())
        return transaction

    return InputRule(name, re.compile(pattern), handler)


def create_default_input_rules(schema: DocSchema, settings: DocmarkSettings | None = None) -> List[InputRule]:
    """
    Create the markdown input rules in evaluation order.

    Args:
        schema: The document schema; groups whose node or mark types it lacks are left out
        settings: Settings selecting which rule groups are enabled

    Returns:
        The enabled rules
    """
    if settings is None:
        settings = DocmarkSettings.create_default()

    groups: List[Tuple[str, Tuple[str, ...], Callable[[], List[InputRule]]]] = [
        ("heading", ("heading",), lambda: [
            textblock_type_rule("heading", r'^(#{1,6})\s$', "heading", lambda match: {"level": len(match.group(1))}),
        ]),
        ("list", ("bullet_list", "ordered_list", "list_item"), lambda: [
            wrapping_rule("bullet_list", r'^\s*([-+*])\s$', lambda match: [("bullet_list", {}), ("list_item", {})]),
            wrapping_rule(
                "ordered_list",
                r'^\s*(\d+)\.\s$',
                lambda match: [("ordered_list", {"start": int(match.group(1))}), ("list_item", {})]
            ),
        ]),
        ("code_block", ("code_block",), lambda: [
            textblock_type_rule(
                "code_block", r'^```(\S*)\s$', "code_block", lambda match: {"language": match.group(1) or None}
            ),
        ]),
        ("blockquote", ("blockquote",), lambda: [
            wrapping_rule("blockquote", r'^\s*>\s$', lambda match: [("blockquote", {})]),
        ]),
        ("mark", ("strong", "em", "code"), lambda: [
            mark_rule("strong_asterisk", r'\*\*([^*]+)\*\*$', "strong"),
            mark_rule("strong_underscore", r'__([^_]+)__$', "strong"),
            mark_rule("em_asterisk", r'(?<!\*)\*([^*]+)\*(?!\*)$', "em"),
            mark_rule("em_underscore", r'(?<!_)_([^_]+)_(?!_)$', "em"),
            mark_rule("code", r'`([^`]+)`$', "code"),
        ]),
        ("link", ("link",), lambda: [
            link_rule("link", r'\[([^\]]+)\]\(([^)]+)\)$'),
        ]),
        ("auto_link", ("link",), lambda: [
            auto_link_rule("auto_link", r'https?://[^\s]+$'),
        ]),
        ("horizontal_rule", ("horizontal_rule", "paragraph"), lambda: [
            horizontal_rule_rule("horizontal_rule", r'^(---|—-)$'),
        ]),
        ("arrow", (), lambda: [
            text_replacement_rule("right_arrow", r'->$', "→"),
            text_replacement_rule("left_arrow", r'<-$', "←"),
        ]),
        ("task_list", ("task_list", "task_list_item"), lambda: [
            wrapping_rule(
                "task_list", r'^\[\]\s$', lambda match: [("task_list", {}), ("task_list_item", {"checked": False})]
            ),
        ]),
    ]

    rules: List[InputRule] = []
    for group, required_types, create in groups:
        if not settings.rule_enabled(group):
            continue

        if not all(name in schema.nodes or name in schema.marks for name in required_types):
            continue

        rules.extend(create())

    return rules
