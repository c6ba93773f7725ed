"""Shared fixtures for document tests."""

import pytest

from docmark.doc_schema import DEFAULT_SCHEMA
from docmark.markdown_parser import MarkdownParser
from docmark.markdown_serializer import MarkdownSerializer


@pytest.fixture
def schema():
    """Fixture providing the default document schema."""
    return DEFAULT_SCHEMA


@pytest.fixture
def parser():
    """Fixture providing a markdown parser."""
    return MarkdownParser()


@pytest.fixture
def serializer():
    """Fixture providing a markdown serializer."""
    return MarkdownSerializer()


@pytest.fixture
def round_trip(parser, serializer):
    """Fixture providing a function that parses markdown and serializes it again."""
    def _round_trip(markdown):
        return serializer.serialize(parser.parse(markdown))

    return _round_trip
