"""
Input rules: patterns matched against the text before the caret as the user
types, turning markdown-like sequences into structural edits.
"""

from dataclasses import dataclass
import logging
import re
from typing import Callable, List, Sequence

from docmark.doc_error import DocmarkError

from docedit.editor_state import EditorState
from docedit.editor_transaction import EditorTransaction


# Handler arguments: state, match, start offset, end offset (the caret) and the typed text
InputRuleHandler = Callable[[EditorState, re.Match, int, int, str], EditorTransaction | None]


@dataclass(frozen=True)
class InputRule:
    """
    A single input rule.

    Attributes:
        name: Rule name, for logging
        pattern: Regular expression matched against the text before the caret plus the typed text;
            it must be anchored at the end with `$`
        handler: Builds the transaction for a match, or returns None to let later rules try
        block_start: Only fire when the match starts at the beginning of the textblock
    """
    name: str
    pattern: re.Pattern
    handler: InputRuleHandler
    block_start: bool = False


class InputRuleEngine:
    """Evaluates input rules, in order, for each piece of typed text."""

    # Maximum amount of text before the caret that rules look at
    MAX_MATCH = 500

    def __init__(self, rules: Sequence[InputRule]) -> None:
        """
        Initialize the engine.

        Args:
            rules: The rules, highest priority first
        """
        self._rules: List[InputRule] = list(rules)
        self._logger = logging.getLogger("InputRuleEngine")

    @property
    def rules(self) -> List[InputRule]:
        """The rules, highest priority first."""
        return list(self._rules)

    def handle_text_input(self, state: EditorState, text: str) -> EditorTransaction | None:
        """
        Find the first rule that fires for text typed at the caret.

        A rule fires when its pattern matches, any block-start requirement holds and its
        handler returns a transaction that produces a valid document.  The typed text is
        consumed by the firing rule.

        Args:
            state: The current state
            text: The typed text (usually one character)

        Returns:
            The transaction of the firing rule, or None to insert the text normally
        """
        block = state.textblock()
        if block.type.is_code or not text:
            return None

        offset = state.caret.offset
        text_before = block.text_content[max(0, offset - self.MAX_MATCH):offset] + text

        for rule in self._rules:
            match = rule.pattern.search(text_before)
            if match is None or match.end() != len(text_before):
                continue

            start = offset - (len(match.group(0)) - len(text))
            if rule.block_start and start != 0:
                continue

            try:
                transaction = rule.handler(state, match, start, offset, text)
                if transaction is None:
                    continue

                transaction.validate()

            except DocmarkError as e:
                self._logger.debug("input rule %s did not fire: %s", rule.name, e)
                continue

            transaction.meta["input_rule"] = rule.name
            self._logger.debug("input rule %s fired", rule.name)
            return transaction

        return None
