"""
Tests for the document schema and content expressions
"""
import pytest

from docmark.doc_content_expression import ContentExpression
from docmark.doc_error import ContentExpressionError, ContentValidationError
from docmark.doc_schema import AttrSpec, DocSchema, MarkSpec, NodeSpec


def test_default_schema_types(schema):
    """Test the default schema declares the expected node and mark types."""
    assert set(schema.nodes) == {
        "doc", "paragraph", "blockquote", "horizontal_rule", "heading", "code_block", "text",
        "bullet_list", "ordered_list", "list_item", "task_list", "task_list_item"
    }
    assert list(schema.marks) == ["strong", "em", "code", "link"]


def test_textblock_flags(schema):
    """Test which node types are textblocks."""
    assert schema.node_type("paragraph").is_textblock
    assert schema.node_type("heading").is_textblock
    assert schema.node_type("code_block").is_textblock
    assert not schema.node_type("blockquote").is_textblock
    assert not schema.node_type("list_item").is_textblock
    assert schema.node_type("horizontal_rule").is_leaf


def test_code_block_allows_no_marks(schema):
    """Test code blocks allow no marks while paragraphs allow all of them."""
    assert not schema.node_type("code_block").allows_mark("strong")
    assert schema.node_type("paragraph").allows_mark("link")


def test_node_checks_content(schema):
    """Test checked construction rejects invalid content."""
    with pytest.raises(ContentValidationError):
        schema.node("doc", None, [schema.text("loose text")])

    with pytest.raises(ContentValidationError):
        schema.node("bullet_list", None, [])

    with pytest.raises(ContentValidationError):
        schema.node("list_item", None, [schema.node("heading")])


def test_node_checks_attrs(schema):
    """Test checked construction validates attributes."""
    with pytest.raises(ContentValidationError):
        schema.node("heading", {"level": 7})

    with pytest.raises(ContentValidationError):
        schema.node("task_list_item", {"checked": "yes"}, [schema.node("paragraph")])

    heading = schema.node("heading", {"level": 3})
    assert heading.attrs == {"level": 3}


def test_attribute_defaults(schema):
    """Test attribute defaults are filled in."""
    assert schema.node("heading").attrs == {"level": 1}
    assert schema.node("code_block").attrs == {"language": None}
    assert schema.node("ordered_list", None, [schema.node("list_item", None, [schema.node("paragraph")])]).attrs == {
        "start": 1
    }


def test_link_requires_href(schema):
    """Test the link mark has a required href attribute."""
    with pytest.raises(ContentValidationError):
        schema.mark("link")

    link = schema.mark("link", {"href": "https://example.com"})
    assert link.attrs == {"href": "https://example.com", "title": None}


def test_empty_text_rejected(schema):
    """Test empty text nodes cannot be created."""
    with pytest.raises(ContentValidationError):
        schema.text("")


def test_text_mark_set_is_ordered(schema):
    """Test mark sets are kept in rank order with one mark per type."""
    link = schema.mark("link", {"href": "a"})
    other_link = schema.mark("link", {"href": "b"})
    text = schema.text("x", [link, schema.mark("em"), schema.mark("strong"), other_link])
    assert [mark.type_name for mark in text.marks] == ["strong", "em", "link"]
    assert text.marks[-1].attrs["href"] == "b"


def test_create_and_fill_empty_doc(schema):
    """Test an empty document is filled with one empty paragraph."""
    doc = schema.empty_doc()
    assert doc.type_name == "doc"
    assert len(doc.children) == 1
    assert doc.children[0].type_name == "paragraph"
    assert doc.children[0].children == []
    schema.check(doc)


def test_create_and_fill_list_item(schema):
    """Test a list item missing its paragraph gets one filled in."""
    nested = schema.node("bullet_list", None, [schema.node("list_item", None, [schema.node("paragraph")])])
    item = schema.create_and_fill("list_item", children=[nested])
    assert [child.type_name for child in item.children] == ["paragraph", "bullet_list"]


def test_fit_content_drops_misplaced_children(schema):
    """Test children that cannot be placed are dropped."""
    fitted = schema.fit_content("doc", [schema.text("loose"), schema.node("paragraph")])
    assert [child.type_name for child in fitted] == ["paragraph"]


def test_fit_content_strips_disallowed_marks(schema):
    """Test marks the parent does not allow are removed."""
    fitted = schema.fit_content("code_block", [schema.text("x", [schema.mark("strong")])])
    assert fitted[0].marks == ()


def test_check_rejects_invalid_tree(schema):
    """Test recursive validation finds an invalid node deep in the tree."""
    doc = schema.empty_doc()
    doc.children[0].add_child(schema.node("paragraph"))
    with pytest.raises(ContentValidationError):
        schema.check(doc)


def test_node_from_json(schema):
    """Test rebuilding a tree from its JSON form."""
    doc = schema.node_from_json({
        "type": "doc",
        "content": [
            {"type": "heading", "attrs": {"level": 2}, "content": [{"type": "text", "text": "Title"}]},
            {"type": "paragraph", "content": [
                {"type": "text", "text": "bold", "marks": [{"type": "strong"}]}
            ]}
        ]
    })
    assert doc.children[0].attrs["level"] == 2
    assert doc.children[1].children[0].marks[0].type_name == "strong"


def test_node_from_json_invalid(schema):
    """Test invalid JSON trees are rejected."""
    with pytest.raises(ContentValidationError):
        schema.node_from_json({"type": "doc", "content": [{"type": "text", "text": "x"}]})

    with pytest.raises(ContentValidationError):
        schema.node_from_json({"content": []})


def test_unknown_types(schema):
    """Test looking up unknown types raises."""
    with pytest.raises(ContentValidationError):
        schema.node_type("table")

    with pytest.raises(ContentValidationError):
        schema.mark("underline")


def test_custom_schema():
    """Test a minimal custom schema."""
    custom = DocSchema(
        nodes=[
            ("doc", NodeSpec(content="paragraph+")),
            ("paragraph", NodeSpec(content="text*")),
            ("text", NodeSpec(group="inline", inline=True)),
        ],
        marks=[("em", MarkSpec())]
    )
    doc = custom.empty_doc()
    assert [child.type_name for child in doc.children] == ["paragraph"]


def test_schema_requires_text_type():
    """Test a schema without a text type is rejected."""
    with pytest.raises(ContentValidationError):
        DocSchema(nodes=[("doc", NodeSpec(content=""))], marks=[])


def test_required_attr_spec():
    """Test an attribute without a default is required."""
    assert AttrSpec().is_required
    assert not AttrSpec(default=None).is_required


@pytest.mark.parametrize("expression,types,expected", [
    ("paragraph block*", ["paragraph"], True),
    ("paragraph block*", ["paragraph", "bullet_list", "paragraph"], True),
    ("paragraph block*", ["bullet_list"], False),
    ("paragraph block*", [], False),
    ("block+", [], False),
    ("block+", ["heading", "paragraph"], True),
    ("inline*", [], True),
    ("heading?", ["heading", "heading"], False),
    ("", [], True),
    ("", ["paragraph"], False),
])
def test_content_expression_matches(expression, types, expected):
    """Test content expression matching."""
    names = {
        "paragraph": ["paragraph"],
        "heading": ["heading"],
        "bullet_list": ["bullet_list"],
        "text": ["text"],
        "block": ["paragraph", "heading", "bullet_list"],
        "inline": ["text"],
    }
    assert ContentExpression.parse(expression, names).matches(types) is expected


def test_content_expression_errors():
    """Test malformed or unknown content expression terms."""
    with pytest.raises(ContentExpressionError):
        ContentExpression.parse("paragraph{2}", {"paragraph": ["paragraph"]})

    with pytest.raises(ContentExpressionError):
        ContentExpression.parse("table+", {"paragraph": ["paragraph"]})
