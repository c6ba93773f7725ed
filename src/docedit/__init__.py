"""
Editing of rich documents.

This package provides immutable editor states, atomic transactions with undo
history, the markdown input rules that turn typed markdown into structure,
and an editing session that ties them together.
"""

from docedit.editor_error import EditorError, InvalidCaretError, TransactionError
from docedit.editor_history import EditorHistory
from docedit.editor_input_rule import InputRule, InputRuleEngine
from docedit.editor_input_rules import create_default_input_rules
from docedit.editor_session import EditorSession
from docedit.editor_state import EditorCaret, EditorState
from docedit.editor_transaction import EditorTransaction

__all__ = [
    # Exceptions
    'EditorError',
    'InvalidCaretError',
    'TransactionError',

    # State and editing
    'EditorCaret',
    'EditorHistory',
    'EditorSession',
    'EditorState',
    'EditorTransaction',

    # Input rules
    'InputRule',
    'InputRuleEngine',
    'create_default_input_rules',
]
