"""
Document schema.

The schema defines the node and mark vocabulary of a document, the content
expression each node type must satisfy and the attribute defaults of every
type.  Every other component builds and validates trees through it.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Sequence, Tuple

from docmark.doc_content_expression import ContentExpression
from docmark.doc_error import ContentValidationError
from docmark.doc_node import DocMark, DocNode


class _Required:
    """Marker for attributes that have no default."""

    def __repr__(self) -> str:
        return "REQUIRED"


REQUIRED: Any = _Required()


@dataclass(frozen=True)
class AttrSpec:
    """Specification of a node or mark attribute."""

    default: Any = REQUIRED
    validator: Callable[[Any], bool] | None = None

    @property
    def is_required(self) -> bool:
        """True if the attribute has no default value."""
        return self.default is REQUIRED


@dataclass(frozen=True, eq=False)
class NodeSpec:
    """Specification of a node type."""

    content: str = ""  # Content expression, empty for leaf nodes
    group: str = ""  # Space separated group names
    attrs: Mapping[str, AttrSpec] = field(default_factory=dict)
    marks: str | None = None  # None allows every mark, "" allows none
    inline: bool = False
    code: bool = False  # Content is raw code text
    defining: bool = False


@dataclass(frozen=True, eq=False)
class MarkSpec:
    """Specification of a mark type."""

    attrs: Mapping[str, AttrSpec] = field(default_factory=dict)
    inclusive: bool = True  # Whether text typed at the end of the mark inherits it


def _compute_attrs(owner: str, specs: Mapping[str, AttrSpec], attrs: Mapping[str, Any] | None) -> Dict[str, Any]:
    """
    Complete and validate a set of attributes.

    Args:
        owner: Name of the node or mark type, for error messages
        specs: Attribute specifications
        attrs: Supplied attributes; unknown names are ignored

    Returns:
        Attribute dictionary holding a value for every declared attribute

    Raises:
        ContentValidationError: If a required attribute is missing or a value is invalid
    """
    supplied = attrs or {}
    result: Dict[str, Any] = {}
    for name, spec in specs.items():
        if name in supplied:
            value = supplied[name]

        elif spec.is_required:
            raise ContentValidationError(f"No value supplied for attribute {name!r} of {owner!r}")

        else:
            value = spec.default

        if spec.validator is not None and not spec.validator(value):
            raise ContentValidationError(
                f"Invalid value {value!r} for attribute {name!r} of {owner!r}",
                {"type": owner, "attribute": name}
            )

        result[name] = value

    return result


class NodeType:
    """A node type bound to a schema."""

    def __init__(self, name: str, spec: NodeSpec, schema: "DocSchema") -> None:
        self.name = name
        self.spec = spec
        self.schema = schema
        self.groups: Tuple[str, ...] = tuple(spec.group.split())
        self.content_match: ContentExpression = ContentExpression("", [])
        self.allowed_marks: FrozenSet[str] = frozenset()
        self.is_textblock = False

    def __repr__(self) -> str:
        return f"NodeType({self.name})"

    @property
    def is_text(self) -> bool:
        """True for the text type."""
        return self.name == "text"

    @property
    def is_inline(self) -> bool:
        """True for inline types."""
        return self.spec.inline

    @property
    def is_block(self) -> bool:
        """True for block types."""
        return not self.spec.inline

    @property
    def is_leaf(self) -> bool:
        """True for types that take no content."""
        return self.content_match.is_empty()

    @property
    def is_code(self) -> bool:
        """True for types holding raw code text."""
        return self.spec.code

    def compute_attrs(self, attrs: Mapping[str, Any] | None) -> Dict[str, Any]:
        """
        Complete and validate attributes for this type.

        Args:
            attrs: Supplied attributes

        Returns:
            Full attribute dictionary

        Raises:
            ContentValidationError: If an attribute is missing or invalid
        """
        return _compute_attrs(self.name, self.spec.attrs, attrs)

    def allows_mark(self, mark_name: str) -> bool:
        """
        Check whether inline content of this type may carry a mark.

        Args:
            mark_name: Name of the mark type

        Returns:
            True if the mark is allowed
        """
        return mark_name in self.allowed_marks

    def valid_content(self, children: Sequence[DocNode]) -> bool:
        """
        Check whether a list of children is valid content for this type.

        Args:
            children: Candidate children

        Returns:
            True if the children satisfy the content expression and carry only allowed marks
        """
        if not self.content_match.matches([child.type.name for child in children]):
            return False

        for child in children:
            for mark in child.marks:
                if not self.allows_mark(mark.type.name):
                    return False

        return True


class MarkType:
    """A mark type bound to a schema."""

    def __init__(self, name: str, spec: MarkSpec, rank: int, schema: "DocSchema") -> None:
        self.name = name
        self.spec = spec
        self.rank = rank
        self.schema = schema

    def __repr__(self) -> str:
        return f"MarkType({self.name})"

    @property
    def inclusive(self) -> bool:
        """True if text typed at the end of the mark inherits it."""
        return self.spec.inclusive

    def compute_attrs(self, attrs: Mapping[str, Any] | None) -> Dict[str, Any]:
        """
        Complete and validate attributes for this mark.

        Args:
            attrs: Supplied attributes

        Returns:
            Full attribute dictionary

        Raises:
            ContentValidationError: If an attribute is missing or invalid
        """
        return _compute_attrs(self.name, self.spec.attrs, attrs)


class DocSchema:
    """
    An immutable document schema.

    Node types are declared in order; the first type of a group is the one used
    when that group has to be filled with a minimal node.
    """

    def __init__(
        self,
        nodes: Sequence[Tuple[str, NodeSpec]],
        marks: Sequence[Tuple[str, MarkSpec]],
        top_node: str = "doc"
    ) -> None:
        """
        Initialize a schema.

        Args:
            nodes: (name, spec) pairs in declaration order
            marks: (name, spec) pairs in rank order
            top_node: Name of the root node type

        Raises:
            ContentExpressionError: If a content expression is invalid
            ContentValidationError: If the schema has no text type or top node type
        """
        self._logger = logging.getLogger("DocSchema")

        self.nodes: Dict[str, NodeType] = {}
        for name, spec in nodes:
            self.nodes[name] = NodeType(name, spec, self)

        self.marks: Dict[str, MarkType] = {}
        for rank, (name, mark_spec) in enumerate(marks):
            self.marks[name] = MarkType(name, mark_spec, rank, self)

        if "text" not in self.nodes or top_node not in self.nodes:
            raise ContentValidationError("Schema needs a text type and a top node type")

        # Every type name and group name resolves to the types it covers
        names: Dict[str, List[str]] = {}
        for node_type in self.nodes.values():
            names.setdefault(node_type.name, []).append(node_type.name)
            for group in node_type.groups:
                names.setdefault(group, []).append(node_type.name)

        for node_type in self.nodes.values():
            node_type.content_match = ContentExpression.parse(node_type.spec.content, names)
            allowed = node_type.content_match.allowed_types()
            node_type.is_textblock = node_type.is_block and bool(allowed) and all(
                self.nodes[name].is_inline for name in allowed
            )

            if node_type.spec.marks is None:
                node_type.allowed_marks = frozenset(self.marks)

            else:
                node_type.allowed_marks = frozenset(node_type.spec.marks.split())

        self.top_node_type = self.nodes[top_node]

    def node_type(self, name: str) -> NodeType:
        """
        Look up a node type.

        Args:
            name: Node type name

        Returns:
            The node type

        Raises:
            ContentValidationError: If the type is unknown
        """
        node_type = self.nodes.get(name)
        if node_type is None:
            raise ContentValidationError(f"Unknown node type: {name!r}")

        return node_type

    def mark_type(self, name: str) -> MarkType:
        """
        Look up a mark type.

        Args:
            name: Mark type name

        Returns:
            The mark type

        Raises:
            ContentValidationError: If the type is unknown
        """
        mark_type = self.marks.get(name)
        if mark_type is None:
            raise ContentValidationError(f"Unknown mark type: {name!r}")

        return mark_type

    def mark(self, name: str, attrs: Mapping[str, Any] | None = None) -> DocMark:
        """
        Create a mark.

        Args:
            name: Mark type name
            attrs: Mark attributes

        Returns:
            The new mark

        Raises:
            ContentValidationError: If the type is unknown or the attributes are invalid
        """
        mark_type = self.mark_type(name)
        return DocMark(mark_type, mark_type.compute_attrs(attrs))

    def text(self, text: str, marks: Sequence[DocMark] = ()) -> DocNode:
        """
        Create a text node.

        Args:
            text: The text, which must not be empty
            marks: Marks to apply; at most one per mark type survives

        Returns:
            The new text node

        Raises:
            ContentValidationError: If the text is empty
        """
        if not text:
            raise ContentValidationError("Empty text nodes are not allowed")

        mark_set: Tuple[DocMark, ...] = ()
        for mark in marks:
            mark_set = mark.add_to_set(mark_set)

        return DocNode(self.nodes["text"], text=text, marks=mark_set)

    def node(
        self,
        name: str,
        attrs: Mapping[str, Any] | None = None,
        children: Sequence[DocNode] = ()
    ) -> DocNode:
        """
        Create a node, checking its attributes and content.

        Args:
            name: Node type name
            attrs: Node attributes
            children: Child nodes

        Returns:
            The new node

        Raises:
            ContentValidationError: If the type is unknown or the node would be invalid
        """
        node_type = self.node_type(name)
        if node_type.is_text:
            raise ContentValidationError("Use text() to create text nodes")

        computed = node_type.compute_attrs(attrs)
        if not node_type.valid_content(children):
            raise ContentValidationError(
                f"Invalid content for node {name!r}: {[child.type.name for child in children]!r}",
                {"type": name, "expression": node_type.content_match.source}
            )

        return DocNode(node_type, computed, children)

    def create_and_fill(
        self,
        name: str,
        attrs: Mapping[str, Any] | None = None,
        children: Sequence[DocNode] = ()
    ) -> DocNode:
        """
        Create a node, filling in the minimal required content.

        Args:
            name: Node type name
            attrs: Node attributes
            children: Child nodes; children that cannot be placed are dropped

        Returns:
            The new, valid node

        Raises:
            ContentValidationError: If the type is unknown or the attributes are invalid
        """
        node_type = self.node_type(name)
        computed = node_type.compute_attrs(attrs)
        return DocNode(node_type, computed, self.fit_content(name, children))

    def fit_content(self, name: str, children: Sequence[DocNode]) -> List[DocNode]:
        """
        Fit children into the content expression of a node type.

        Args:
            name: Node type name
            children: Candidate children

        Returns:
            Valid content: misplaced children removed, missing required children filled in
        """
        node_type = self.node_type(name)
        candidates: List[DocNode] = []
        for child in children:
            if child.is_text:
                allowed = tuple(mark for mark in child.marks if node_type.allows_mark(mark.type.name))
                if allowed != child.marks:
                    child = child.with_marks(allowed)

            candidates.append(child)

        fitted, dropped = node_type.content_match.fit(
            candidates,
            lambda child: child.type.name,
            self.create_and_fill
        )

        if dropped:
            self._logger.debug(
                "dropped %d node(s) not allowed in %s: %s",
                len(dropped), name, [child.type.name for child in dropped]
            )

        return fitted

    def empty_doc(self) -> DocNode:
        """
        Create an empty, valid document.

        Returns:
            A top node holding its minimal content (one empty paragraph)
        """
        return self.create_and_fill(self.top_node_type.name)

    def check(self, node: DocNode) -> None:
        """
        Check that a node and its whole subtree satisfy the schema.

        Args:
            node: The node to check

        Raises:
            ContentValidationError: If any node in the tree is invalid
        """
        node_type = self.nodes.get(node.type.name)
        if node_type is None or node_type is not node.type:
            raise ContentValidationError(f"Node type {node.type.name!r} does not belong to this schema")

        if node_type.is_text:
            if not node.text:
                raise ContentValidationError("Empty text node")

            seen = set()
            for mark in node.marks:
                if mark.type.name in seen:
                    raise ContentValidationError(f"Duplicate mark {mark.type.name!r} on text run")

                seen.add(mark.type.name)
                if mark.attrs != mark.type.compute_attrs(mark.attrs):
                    raise ContentValidationError(f"Invalid attributes on mark {mark.type.name!r}")

            return

        if node.attrs != node_type.compute_attrs(node.attrs):
            raise ContentValidationError(f"Invalid attributes on node {node.type.name!r}")

        if not node_type.valid_content(node.children):
            raise ContentValidationError(
                f"Invalid content for node {node.type.name!r}: {[child.type.name for child in node.children]!r}",
                {"type": node.type.name, "expression": node_type.content_match.source}
            )

        for child in node.children:
            self.check(child)

    def node_from_json(self, data: Mapping[str, Any]) -> DocNode:
        """
        Rebuild a node from its JSON form.

        Args:
            data: Dictionary with "type" and optional "attrs", "content", "text" and "marks"

        Returns:
            The validated node

        Raises:
            ContentValidationError: If the data does not describe a valid node
        """
        if not isinstance(data, Mapping) or not isinstance(data.get("type"), str):
            raise ContentValidationError("Invalid node JSON: missing type")

        if data["type"] == "text":
            marks = [self.mark(mark["type"], mark.get("attrs")) for mark in data.get("marks", [])]
            return self.text(data.get("text", ""), marks)

        children = [self.node_from_json(child) for child in data.get("content", [])]
        return self.node(data["type"], data.get("attrs"), children)


def _is_heading_level(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 6


def _is_list_start(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _is_optional_str(value: Any) -> bool:
    return value is None or isinstance(value, str)


def create_default_schema() -> DocSchema:
    """
    Create the rich document schema.

    Returns:
        The schema used by the markdown parser, serializer and editor
    """
    return DocSchema(
        nodes=[
            ("doc", NodeSpec(content="block+")),
            ("paragraph", NodeSpec(content="inline*", group="block")),
            ("blockquote", NodeSpec(content="block+", group="block", defining=True)),
            ("horizontal_rule", NodeSpec(group="block")),
            ("heading", NodeSpec(
                content="inline*",
                group="block",
                defining=True,
                attrs={"level": AttrSpec(1, _is_heading_level)}
            )),
            ("code_block", NodeSpec(
                content="text*",
                group="block",
                marks="",
                code=True,
                defining=True,
                attrs={"language": AttrSpec(None, _is_optional_str)}
            )),
            ("text", NodeSpec(group="inline", inline=True)),
            ("bullet_list", NodeSpec(content="list_item+", group="block")),
            ("ordered_list", NodeSpec(
                content="list_item+",
                group="block",
                attrs={"start": AttrSpec(1, _is_list_start)}
            )),
            ("list_item", NodeSpec(content="paragraph block*", defining=True)),
            ("task_list", NodeSpec(content="task_list_item+", group="block")),
            ("task_list_item", NodeSpec(
                content="paragraph block*",
                defining=True,
                attrs={"checked": AttrSpec(False, lambda value: isinstance(value, bool))}
            )),
        ],
        marks=[
            ("strong", MarkSpec()),
            ("em", MarkSpec()),
            ("code", MarkSpec()),
            ("link", MarkSpec(
                attrs={
                    "href": AttrSpec(validator=lambda value: isinstance(value, str)),
                    "title": AttrSpec(None, _is_optional_str)
                },
                inclusive=False
            )),
        ]
    )


DEFAULT_SCHEMA = create_default_schema()
