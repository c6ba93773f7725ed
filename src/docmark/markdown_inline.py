"""
Inline markdown substitutions.

Turns the text of a single markdown line into an HTML fragment using a fixed,
ordered list of regular expression substitutions.  The fragment is untrusted:
it still carries any raw markup the line contained, and must go through the
markup sanitizer before it reaches a document.
"""

import html
import re
from typing import List, Tuple


class MarkdownInlineFormatter:
    """Applies the inline substitutions to one line of text."""

    # Applied in this order; emphasis never fires on a delimiter that is part of a strong pair
    SUBSTITUTIONS: List[Tuple[str, re.Pattern, str]] = [
        ("strong", re.compile(r'\*\*(.*?)\*\*'), r'<strong>\1</strong>'),
        ("em", re.compile(r'(?<!\*)\*([^*]+)\*(?!\*)'), r'<em>\1</em>'),
        ("strong", re.compile(r'__(.*?)__'), r'<strong>\1</strong>'),
        ("em", re.compile(r'(?<!_)_([^_]+)_(?!_)'), r'<em>\1</em>'),
        ("code", re.compile(r'`(.*?)`'), r'<code>\1</code>'),
    ]

    _LINK_PATTERN = re.compile(r'\[([^\[\]]+)\]\(([^()]+)\)')
    _PLACEHOLDER_PATTERN = re.compile(r'\x00(\d+)\x00')

    def to_markup(self, text: str) -> str:
        """
        Convert inline markdown to an HTML fragment.

        Links are substituted first.  Their targets are held back as placeholders while the
        other substitutions run so that delimiters inside a URL are never rewritten.

        Args:
            text: The text of one line

        Returns:
            The HTML fragment
        """
        text = text.replace('\x00', '')
        targets: List[str] = []

        def stash_link(match: re.Match) -> str:
            targets.append(match.group(2))
            return f'<a href="\x00{len(targets) - 1}\x00">{match.group(1)}</a>'

        markup = self._LINK_PATTERN.sub(stash_link, text)
        for _name, pattern, replacement in self.SUBSTITUTIONS:
            markup = pattern.sub(replacement, markup)

        return self._PLACEHOLDER_PATTERN.sub(
            lambda match: html.escape(targets[int(match.group(1))], quote=True),
            markup
        )
