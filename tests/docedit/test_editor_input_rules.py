"""
Tests for markdown input rules
"""
import re

import pytest

from docmark.doc_schema import DocSchema, NodeSpec
from docmark.docmark_settings import DocmarkSettings

from docedit.editor_input_rule import InputRule, InputRuleEngine
from docedit.editor_input_rules import create_default_input_rules
from docedit.editor_session import EditorSession
from docedit.editor_state import EditorCaret
from docedit.editor_transaction import EditorTransaction


def block_types(doc):
    """Get the type names of the top level blocks of a document."""
    return [child.type_name for child in doc.children]


def test_default_rule_order(schema):
    """Test the default rules and their evaluation order."""
    names = [rule.name for rule in create_default_input_rules(schema)]
    assert names == [
        "heading", "bullet_list", "ordered_list", "code_block", "blockquote",
        "strong_asterisk", "strong_underscore", "em_asterisk", "em_underscore", "code",
        "link", "auto_link", "horizontal_rule", "right_arrow", "left_arrow", "task_list"
    ]


def test_disabled_groups_left_out(schema):
    """Test settings can switch rule groups off."""
    settings = DocmarkSettings.create_default()
    settings.input_rules["mark"] = False
    settings.input_rules["arrow"] = False
    names = [rule.name for rule in create_default_input_rules(schema, settings)]
    assert "strong_asterisk" not in names
    assert "right_arrow" not in names
    assert "heading" in names


def test_groups_need_schema_types():
    """Test groups whose types the schema lacks are left out."""
    minimal = DocSchema(
        nodes=[
            ("doc", NodeSpec(content="paragraph+")),
            ("paragraph", NodeSpec(content="text*")),
            ("text", NodeSpec(group="inline", inline=True)),
        ],
        marks=[]
    )
    names = [rule.name for rule in create_default_input_rules(minimal)]
    assert names == ["right_arrow", "left_arrow"]


@pytest.mark.parametrize("level", [1, 2, 3, 4, 5, 6])
def test_heading_rule(session, level):
    """Test typing hashes and a space makes a heading."""
    session.type_text("#" * level + " Title")
    heading = session.doc.children[0]
    assert heading.type_name == "heading"
    assert heading.attrs["level"] == level
    assert session.markdown() == "#" * level + " Title"


def test_heading_rule_needs_block_start(session):
    """Test hashes typed after other text stay text."""
    session.type_text("a # b")
    assert block_types(session.doc) == ["paragraph"]
    assert session.markdown() == "a # b"


@pytest.mark.parametrize("marker", ["-", "*", "+"])
def test_bullet_list_rule(session, marker):
    """Test typing a bullet marker and a space starts a list."""
    session.type_text(f"{marker} item")
    assert block_types(session.doc) == ["bullet_list"]
    assert session.markdown() == "- item"
    assert session.caret == EditorCaret((0, 0, 0), 4)


def test_ordered_list_rule(session):
    """Test typing a number starts an ordered list from that number."""
    session.type_text("3. third")
    ordered = session.doc.children[0]
    assert ordered.type_name == "ordered_list"
    assert ordered.attrs["start"] == 3
    assert session.markdown() == "3. third"


def test_code_block_rule(session):
    """Test typing a fence with a language makes a code block."""
    session.type_text("```js ")
    code = session.doc.children[0]
    assert code.type_name == "code_block"
    assert code.attrs["language"] == "js"
    assert code.children == []


def test_code_block_rule_without_language(session):
    """Test a fence without a language."""
    session.type_text("``` ")
    assert session.doc.children[0].attrs["language"] is None


def test_no_rules_inside_code(session):
    """Test markdown typed inside a code block stays literal."""
    session.type_text("``` # not **bold** -> ")
    code = session.doc.children[0]
    assert code.type_name == "code_block"
    assert code.text_content == "# not **bold** -> "


def test_blockquote_rule(session):
    """Test typing a greater-than sign and a space makes a blockquote."""
    session.type_text("> quoted")
    assert block_types(session.doc) == ["blockquote"]
    assert session.markdown() == "> quoted"


def test_task_list_rule(session):
    """Test typing empty brackets and a space makes a task list."""
    session.type_text("[] todo")
    task_list = session.doc.children[0]
    assert task_list.type_name == "task_list"
    assert task_list.children[0].attrs["checked"] is False
    assert session.markdown() == "- [ ] todo"


@pytest.mark.parametrize("typed,expected", [
    ("**bold** x", "**bold** x"),
    ("__bold__ x", "**bold** x"),
    ("*em* x", "*em* x"),
    ("_em_ x", "*em* x"),
    ("`code` x", "`code` x"),
    ("a **b** c", "a **b** c"),
])
def test_mark_rules(session, typed, expected):
    """Test delimited text becomes marked text."""
    session.type_text(typed)
    assert session.markdown() == expected


def test_mark_rule_does_not_continue_mark(session):
    """Test text typed after a mark rule fires is unmarked."""
    session.type_text("**b**")
    assert session.state.stored_marks == ()

    session.type_text("c")
    runs = session.doc.children[0].children
    assert [run.text for run in runs] == ["b", "c"]
    assert runs[1].marks == ()
    assert session.state.stored_marks is None


def test_strong_does_not_fire_em_early(session):
    """Test the first closing asterisk of a strong pair does not make emphasis."""
    session.type_text("**bold*")
    assert session.markdown() == "**bold*"


def test_link_rule(session):
    """Test typing markdown link syntax makes a link."""
    session.type_text("see [docs](https://example.com/docs) now")
    runs = session.doc.children[0].children
    assert [run.text for run in runs] == ["see ", "docs", " now"]
    assert runs[1].marks[0].attrs["href"] == "https://example.com/docs"
    assert session.markdown() == "see [docs](https://example.com/docs) now"


def test_auto_link_rule(session):
    """Test a typed URL is linked as it grows and ends at whitespace."""
    session.type_text("go https://example.com now")
    runs = session.doc.children[0].children
    assert [run.text for run in runs] == ["go ", "https://example.com", " now"]
    assert runs[1].marks[0].attrs["href"] == "https://example.com"


def test_horizontal_rule_rule(session):
    """Test typing three dashes makes a horizontal rule."""
    session.type_text("---")
    assert block_types(session.doc) == ["horizontal_rule", "paragraph"]
    assert session.caret == EditorCaret((1,), 0)

    session.type_text("after")
    assert session.markdown() == "---\nafter"


@pytest.mark.parametrize("typed,expected", [
    ("a->b", "a→b"),
    ("a<-b", "a←b"),
])
def test_arrow_rules(session, typed, expected):
    """Test arrow replacements."""
    session.type_text(typed)
    assert session.markdown() == expected


def test_rule_producing_invalid_document_does_not_fire(session):
    """Test a heading rule inside a list item leaves the text as typed."""
    session.type_text("- # x")
    item = session.doc.children[0].children[0]
    assert item.children[0].type_name == "paragraph"
    assert item.children[0].text_content == "# x"


def test_disabled_rule_group():
    """Test a switched off group does not fire."""
    settings = DocmarkSettings.create_default()
    settings.input_rules["heading"] = False
    session = EditorSession(settings=settings)
    session.type_text("# x")
    assert block_types(session.doc) == ["paragraph"]


def test_input_rule_is_one_undo_step(session):
    """Test undoing a fired rule gives back the typed text."""
    session.type_text("# ")
    assert block_types(session.doc) == ["heading"]

    session.undo()
    assert block_types(session.doc) == ["paragraph"]
    assert session.markdown() == "#"


def test_engine_marks_firing_rule(make_state):
    """Test the engine records which rule fired."""
    state = make_state("#").with_caret(EditorCaret((0,), 1))
    engine = InputRuleEngine(create_default_input_rules(state.schema))
    transaction = engine.handle_text_input(state, " ")
    assert transaction.meta["input_rule"] == "heading"


def test_engine_no_match(make_state):
    """Test the engine returns None when no rule fires."""
    state = make_state("abc").with_caret(EditorCaret((0,), 3))
    engine = InputRuleEngine(create_default_input_rules(state.schema))
    assert engine.handle_text_input(state, "d") is None


def test_engine_custom_rule(make_state):
    """Test a custom rule and a handler that declines."""
    calls = []

    def decline(state, match, start, end, text):
        calls.append("decline")
        return None

    def shout(state, match, start, end, text):
        calls.append((start, end, text))
        transaction = EditorTransaction(state)
        transaction.delete_text(state.caret.path, start, end)
        transaction.insert_text(state.caret.path, start, match.group(1).upper() + "!")
        return transaction

    engine = InputRuleEngine([
        InputRule("decline", re.compile(r'(\w+)!$'), decline),
        InputRule("shout", re.compile(r'(\w+)!$'), shout),
    ])
    state = make_state("say hey").with_caret(EditorCaret((0,), 7))
    transaction = engine.handle_text_input(state, "!")
    assert calls == ["decline", (4, 7, "!")]
    assert transaction.apply().doc.children[0].text_content == "say HEY!"
