"""Shared fixtures for editing tests."""

import pytest

from docmark.doc_schema import DEFAULT_SCHEMA
from docmark.markdown_parser import MarkdownParser

from docedit.editor_session import EditorSession
from docedit.editor_state import EditorState


@pytest.fixture
def schema():
    """Fixture providing the default document schema."""
    return DEFAULT_SCHEMA


@pytest.fixture
def session():
    """Fixture providing an editing session on an empty document."""
    return EditorSession()


@pytest.fixture
def make_state(schema):
    """Fixture providing a function that creates an editor state from markdown."""
    parser = MarkdownParser(schema)

    def _make_state(markdown):
        return EditorState.create(schema, parser.parse(markdown))

    return _make_state
