"""
Content expressions for document node types.

A content expression is a space separated sequence of terms.  Each term names a
node type or a node group, optionally followed by a quantifier:

    paragraph block*
    list_item+
    inline*

Matching is greedy and left to right, which is sufficient for the small, fixed
grammars used by the document schema.
"""

from dataclasses import dataclass
import re
from typing import Callable, Dict, FrozenSet, List, Sequence, Tuple, TypeVar

from docmark.doc_error import ContentExpressionError


UNBOUNDED = -1

T = TypeVar('T')


@dataclass(frozen=True)
class ContentTerm:
    """A single term of a content expression."""

    name: str  # The type or group name as written in the expression
    types: FrozenSet[str]  # Node type names the term accepts
    fill_type: str  # Node type used when the term has to be filled
    min_count: int
    max_count: int  # UNBOUNDED for no limit

    def accepts(self, type_name: str) -> bool:
        """
        Check whether a node type can appear in this term.

        Args:
            type_name: Name of the node type

        Returns:
            True if the type is accepted by the term
        """
        return type_name in self.types

    def allows_more(self, count: int) -> bool:
        """
        Check whether another node can be added to a term that already holds count nodes.

        Args:
            count: Number of nodes already matched by the term

        Returns:
            True if the term can take another node
        """
        return self.max_count == UNBOUNDED or count < self.max_count


class ContentExpression:
    """Parsed content expression."""

    _TERM_PATTERN = re.compile(r'^([a-z_][a-z0-9_]*)([*+?]?)$')

    def __init__(self, source: str, terms: List[ContentTerm]) -> None:
        """
        Initialize a content expression.

        Args:
            source: The original expression text
            terms: The resolved terms
        """
        self.source = source
        self.terms = terms

    def __repr__(self) -> str:
        return f"ContentExpression({self.source!r})"

    @classmethod
    def parse(cls, source: str, names: Dict[str, List[str]]) -> "ContentExpression":
        """
        Parse a content expression.

        Args:
            source: Expression text, e.g. "paragraph block*"
            names: Mapping from every node type and group name to the node types it covers,
                in schema declaration order

        Returns:
            The parsed expression

        Raises:
            ContentExpressionError: If the expression is malformed or names an unknown type
        """
        terms: List[ContentTerm] = []
        for token in source.split():
            match = cls._TERM_PATTERN.match(token)
            if not match:
                raise ContentExpressionError(f"Invalid content expression term: {token!r}", {"expression": source})

            name, quantifier = match.group(1), match.group(2)
            if name not in names or not names[name]:
                raise ContentExpressionError(f"Unknown node type or group: {name!r}", {"expression": source})

            min_count, max_count = {
                '': (1, 1),
                '?': (0, 1),
                '*': (0, UNBOUNDED),
                '+': (1, UNBOUNDED)
            }[quantifier]

            type_names = names[name]
            terms.append(ContentTerm(name, frozenset(type_names), type_names[0], min_count, max_count))

        return cls(source, terms)

    def is_empty(self) -> bool:
        """
        Check whether the expression allows no content at all (a leaf node).

        Returns:
            True if the expression has no terms
        """
        return not self.terms

    def allowed_types(self) -> FrozenSet[str]:
        """
        Get every node type that may appear somewhere in the content.

        Returns:
            Set of node type names
        """
        allowed: FrozenSet[str] = frozenset()
        for term in self.terms:
            allowed = allowed | term.types

        return allowed

    def matches(self, type_names: Sequence[str]) -> bool:
        """
        Check whether a sequence of child types satisfies the expression.

        Args:
            type_names: Child node type names in order

        Returns:
            True if the sequence is valid content
        """
        index = 0
        for term in self.terms:
            count = 0
            while index < len(type_names) and term.accepts(type_names[index]) and term.allows_more(count):
                index += 1
                count += 1

            if count < term.min_count:
                return False

        return index == len(type_names)

    def fit(
        self,
        children: Sequence[T],
        type_of: Callable[[T], str],
        create_fill: Callable[[str], T]
    ) -> Tuple[List[T], List[T]]:
        """
        Fit children into the expression, filling missing required nodes.

        Children that cannot be placed anywhere after the current term are dropped.

        Args:
            children: Candidate children in order
            type_of: Returns the node type name of a child
            create_fill: Creates a minimal valid node of the given type

        Returns:
            A tuple of (fitted children, dropped children)
        """
        fitted: List[T] = []
        dropped: List[T] = []
        term_index = 0
        count = 0

        for child in children:
            child_type = type_of(child)
            placed = False
            while term_index < len(self.terms):
                term = self.terms[term_index]
                if term.accepts(child_type) and term.allows_more(count):
                    fitted.append(child)
                    count += 1
                    placed = True
                    break

                # Only move past this term if a later one can take the child
                if not any(later.accepts(child_type) for later in self.terms[term_index + 1:]):
                    break

                for _ in range(term.min_count - count):
                    fitted.append(create_fill(term.fill_type))

                term_index += 1
                count = 0

            if not placed:
                dropped.append(child)

        while term_index < len(self.terms):
            term = self.terms[term_index]
            for _ in range(term.min_count - count):
                fitted.append(create_fill(term.fill_type))

            term_index += 1
            count = 0

        return fitted, dropped
