"""
Intermediate markup parsing and allow-list sanitization.

Markup is held as a BeautifulSoup tree.  The sanitizer is the only boundary
between untrusted markdown or pasted HTML and the document tree: anything the
allow-lists do not name is dropped without raising.
"""

import logging
import re
import warnings
from typing import Dict, List

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning
from bs4.element import PreformattedString, Tag


ALLOWED_TAGS = frozenset({
    "h1", "h2", "h3", "h4", "h5", "h6", "p", "strong", "em", "code",
    "pre", "ul", "ol", "li", "blockquote", "a", "hr"
})

ALLOWED_ATTRIBUTES = frozenset({"href", "data-language", "data-type", "data-checked", "class"})

# Disallowed elements whose content is removed along with them
FORBIDDEN_CONTENT_TAGS = [
    "script", "style", "template", "iframe", "frame", "frameset", "object", "embed",
    "noscript", "noembed", "noframes", "textarea", "title", "xmp", "plaintext",
    "select", "option", "svg", "math", "head", "applet"
]

# Elements nested deeper than this are unwrapped, their content is kept
MAX_DEPTH = 128

# Schemes that may appear in a link target; relative references are allowed too
_SAFE_URI_PATTERN = re.compile(
    r'^(?:(?:https?|mailto|ftp|tel):|[^a-z]|[a-z+.\-]+(?:[^a-z+.\-:]|$))',
    re.IGNORECASE
)

# Characters browsers ignore inside a URI scheme
_URI_IGNORED_PATTERN = re.compile(r'[\x00-\x20\xa0\u1680\u180e\u2000-\u2029\u205f\u3000]')


def parse_markup(markup: str) -> BeautifulSoup:
    """
    Parse an HTML fragment into a markup tree.

    Args:
        markup: The HTML text

    Returns:
        The parsed tree; nothing in it has been sanitized yet
    """
    with warnings.catch_warnings():
        # Short lines of markdown text can look like file names or URLs to bs4
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        return BeautifulSoup(markup, "html.parser", multi_valued_attributes=None)


class MarkupSanitizer:
    """Filters a markup tree down to allow-listed tags and attributes."""

    def __init__(self) -> None:
        """Initialize the sanitizer."""
        self._logger = logging.getLogger("MarkupSanitizer")

    def sanitize(self, root: Tag) -> Tag:
        """
        Sanitize a markup tree in place.

        The root itself is kept whatever its name; only its descendants are filtered.

        Args:
            root: The root of the tree, usually a `BeautifulSoup` object

        Returns:
            The same root, now holding only allowed content
        """
        # Comments, doctypes, CDATA and processing instructions never carry content
        for node in list(root.descendants):
            if isinstance(node, PreformattedString):
                node.extract()

        for tag in root.find_all(FORBIDDEN_CONTENT_TAGS):
            if tag.decomposed:
                continue

            self._logger.debug("removed <%s> and its content", tag.name)
            tag.decompose()

        self._flatten_deep_nesting(root)

        for tag in root.find_all(True):
            if tag.name not in ALLOWED_TAGS:
                self._logger.debug("unwrapped disallowed <%s>", tag.name)
                tag.unwrap()
                continue

            tag.attrs = self._sanitize_attrs(tag)

        return root

    def is_safe_uri(self, uri: str) -> bool:
        """
        Check whether a link target uses a safe scheme.

        Args:
            uri: The link target

        Returns:
            True if the target is relative or uses http, https, mailto, ftp or tel
        """
        return bool(_SAFE_URI_PATTERN.match(_URI_IGNORED_PATTERN.sub('', uri)))

    def _flatten_deep_nesting(self, root: Tag) -> None:
        depths: Dict[int, int] = {id(root): 0}
        too_deep: List[Tag] = []

        # find_all walks in document order, so a parent's depth is always known first
        for tag in root.find_all(True):
            depth = depths[id(tag.parent)] + 1
            depths[id(tag)] = depth
            if depth > MAX_DEPTH:
                too_deep.append(tag)

        if too_deep:
            self._logger.debug("unwrapped %d elements nested deeper than %d", len(too_deep), MAX_DEPTH)

        for tag in too_deep:
            tag.unwrap()

    def _sanitize_attrs(self, tag: Tag) -> Dict[str, str]:
        attrs = {}
        for name, value in tag.attrs.items():
            if name not in ALLOWED_ATTRIBUTES:
                self._logger.debug("dropped attribute %s on <%s>", name, tag.name)
                continue

            if name == "href" and not self.is_safe_uri(value):
                self._logger.debug("dropped unsafe link target on <%s>", tag.name)
                continue

            attrs[name] = value

        return attrs
