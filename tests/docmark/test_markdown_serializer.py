"""
Tests for the markdown serializer
"""
import pytest

from docmark.markdown_serializer import serialize


@pytest.fixture
def nested_list_doc(schema):
    """Fixture providing a bullet list nested three levels deep."""
    def item(text, *nested):
        return schema.node("list_item", None, [
            schema.node("paragraph", None, [schema.text(text)]),
            *nested
        ])

    innermost = schema.node("bullet_list", None, [item("c")])
    inner = schema.node("ordered_list", None, [item("b", innermost)])
    return schema.node("doc", None, [schema.node("bullet_list", None, [item("a", inner), item("d")])])


def test_serialize_empty_doc(schema, serializer):
    """Test an empty document serializes to an empty string."""
    assert serializer.serialize(schema.empty_doc()) == ""


def test_serialize_module_function(parser):
    """Test the module level serialize function."""
    assert serialize(parser.parse("## Title")) == "## Title"


@pytest.mark.parametrize("level", [1, 2, 3, 4, 5, 6])
def test_serialize_heading(schema, serializer, level):
    """Test headings of every level."""
    heading = schema.node("heading", {"level": level}, [schema.text("Title")])
    assert serializer.serialize(schema.node("doc", None, [heading])) == "#" * level + " Title"


def test_serialize_marks(schema, serializer):
    """Test each mark's syntax."""
    paragraph = schema.node("paragraph", None, [
        schema.text("b", [schema.mark("strong")]),
        schema.text(" "),
        schema.text("i", [schema.mark("em")]),
        schema.text(" "),
        schema.text("c", [schema.mark("code")]),
        schema.text(" "),
        schema.text("l", [schema.mark("link", {"href": "https://example.com"})]),
    ])
    doc = schema.node("doc", None, [paragraph])
    assert serializer.serialize(doc) == "**b** *i* `c` [l](https://example.com)"


def test_serialize_link_wraps_other_marks(schema, serializer):
    """Test a link is written outside other marks on the same run."""
    run = schema.text("text", [schema.mark("link", {"href": "https://example.com"}), schema.mark("strong")])
    doc = schema.node("doc", None, [schema.node("paragraph", None, [run])])
    assert serializer.serialize(doc) == "[**text**](https://example.com)"


def test_serialize_nested_marks(schema, serializer):
    """Test strong wraps emphasis, which wraps code."""
    run = schema.text("x", [schema.mark("code"), schema.mark("strong"), schema.mark("em")])
    doc = schema.node("doc", None, [schema.node("paragraph", None, [run])])
    assert serializer.serialize(doc) == "***`x`***"


def test_serialize_mark_spanning_runs(schema, serializer):
    """Test a mark carried by consecutive runs is written once around all of them."""
    em, strong = schema.mark("em"), schema.mark("strong")
    paragraph = schema.node("paragraph", None, [
        schema.text("a ", [em]),
        schema.text("b", [strong, em]),
        schema.text(" c", [em]),
    ])
    assert serializer.serialize(schema.node("doc", None, [paragraph])) == "*a **b** c*"


def test_serialize_link_spanning_runs(schema, serializer):
    """Test runs sharing a link are written inside one link."""
    link = schema.mark("link", {"href": "https://example.com"})
    paragraph = schema.node("paragraph", None, [
        schema.text("a ", [link]),
        schema.text("b", [schema.mark("em"), link]),
        schema.text(" c", [link]),
    ])
    assert serializer.serialize(schema.node("doc", None, [paragraph])) == "[a *b* c](https://example.com)"


def test_serialize_escapes_markup_in_text(schema, serializer):
    """Test text that would read back as a tag or an entity is escaped."""
    paragraph = schema.node("paragraph", None, [schema.text("<b>hi</b> & &amp; a < b")])
    doc = schema.node("doc", None, [paragraph])
    assert serializer.serialize(doc) == "&lt;b>hi&lt;/b> & &amp;amp; a < b"


def test_serialize_code_block_not_escaped(schema, serializer):
    """Test code block text is written verbatim."""
    code = schema.node("code_block", None, [schema.text("<b>&amp;</b>")])
    assert serializer.serialize(schema.node("doc", None, [code])) == "```\n<b>&amp;</b>\n```"


def test_serialize_code_block(schema, serializer):
    """Test code blocks with and without a language."""
    doc = schema.node("doc", None, [
        schema.node("code_block", {"language": "js"}, [schema.text("let a = 1;")]),
        schema.node("code_block"),
    ])
    assert serializer.serialize(doc) == "```js\nlet a = 1;\n```\n```\n\n```"


def test_serialize_task_list(schema, serializer):
    """Test task list checkboxes."""
    def task(text, checked):
        return schema.node("task_list_item", {"checked": checked}, [
            schema.node("paragraph", None, [schema.text(text)])
        ])

    doc = schema.node("doc", None, [schema.node("task_list", None, [task("done", True), task("todo", False)])])
    assert serializer.serialize(doc) == "- [x] done\n- [ ] todo"


def test_serialize_nested_lists(nested_list_doc, serializer):
    """Test nested lists are indented two spaces per level."""
    assert serializer.serialize(nested_list_doc) == "- a\n  1. b\n    - c\n- d"


def test_serialize_ordered_list_start(schema, serializer):
    """Test numbering starts from the list's start attribute and skips empty items."""
    def item(text):
        children = [schema.text(text)] if text else []
        return schema.node("list_item", None, [schema.node("paragraph", None, children)])

    ordered = schema.node("ordered_list", {"start": 3}, [item("x"), item(""), item("y")])
    assert serializer.serialize(schema.node("doc", None, [ordered])) == "3. x\n4. y"


def test_serialize_blockquote(schema, serializer):
    """Test blockquotes are written on one line."""
    quote = schema.node("blockquote", None, [schema.node("paragraph", None, [schema.text("quoted")])])
    assert serializer.serialize(schema.node("doc", None, [quote])) == "> quoted"


def test_serialize_blank_paragraphs_keep_lines(schema, serializer):
    """Test empty paragraphs still take a line."""
    doc = schema.node("doc", None, [
        schema.node("paragraph", None, [schema.text("a")]),
        schema.node("paragraph"),
        schema.node("paragraph", None, [schema.text("b")]),
    ])
    assert serializer.serialize(doc) == "a\n\nb"


@pytest.mark.parametrize("markdown", [
    "",
    "plain text",
    "# One\n## Two\n###### Six",
    "**bold** and *em* and `code`",
    "[**text**](https://example.com)",
    "- one\n- two",
    "1. one\n2. two",
    "- [x] done\n- [ ] todo",
    "> quoted",
    "---",
    "```python\ndef f():\n    pass\n```",
    "```\n\n```",
    "a\n\nb\n",
    "  indented text",
    "para\n- item\n\n> quote\n---\n```\ncode\n```\n## end",
    "*a **b** c*",
    "**a *b* c**",
    "**a *b* `c`**",
    "**a `b`**",
    "[**bold** link](https://example.com) after",
    "[a *b* c](https://example.com)",
    "Fish & chips",
    "a < b and c > d",
    "&amp;lt;",
])
def test_round_trip(round_trip, markdown):
    """Test markdown the serializer writes parses back to itself."""
    assert round_trip(markdown) == markdown


@pytest.mark.parametrize("markdown,expected", [
    ("* star\n+ plus", "- star\n- plus"),
    ("5. five", "1. five"),
    ("-----", "---"),
    ("__strong__ _em_", "**strong** *em*"),
    ("#   Spaced   ", "# Spaced"),
    ("```js\nunterminated", "```js\nunterminated\n```"),
])
def test_normalizing_round_trip(round_trip, markdown, expected):
    """Test alternative syntax is normalized and then stable."""
    once = round_trip(markdown)
    assert once == expected
    assert round_trip(once) == once


@pytest.mark.parametrize("markdown,expected", [
    ("&lt;b&gt;hi&lt;/b&gt;", "&lt;b>hi&lt;/b>"),
    ("# &lt;h1&gt;", "# &lt;h1>"),
    ("`&lt;div&gt;` tag", "`&lt;div>` tag"),
    ("Fish &amp; chips &copy; 2024", "Fish & chips © 2024"),
    ("*see [docs](https://example.com) now*", "*see *[*docs*](https://example.com)* now*"),
])
def test_entity_and_nested_mark_round_trip(round_trip, markdown, expected):
    """Test escaped markup and marks around links are stable once serialized."""
    once = round_trip(markdown)
    assert once == expected
    assert round_trip(once) == once


def test_escaped_script_stays_text(parser, round_trip):
    """Test escaped script markup never comes back as a script element."""
    once = round_trip("x &lt;script&gt;alert(1)&lt;/script&gt;")
    assert "<script>" not in once
    assert round_trip(once) == once
    assert parser.parse(once).children[0].text_content == "x <script>alert(1)</script>"
