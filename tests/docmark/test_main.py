"""
Tests for the command line entry point
"""
import io
import json
import logging
from logging.handlers import RotatingFileHandler

import pytest

from docmark.__main__ import main, parse_arguments, render


@pytest.fixture(autouse=True)
def restore_logging():
    """Fixture that removes the handlers the command line tool installs on the root logger."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, RotatingFileHandler):  # pylint: disable=unidiomatic-typecheck
            root.removeHandler(handler)
            handler.close()

    root.setLevel(level)


@pytest.fixture
def markdown_file(tmp_path):
    """Fixture providing a small markdown file."""
    path = tmp_path / "notes.md"
    path.write_text("*  item\n####   Title", encoding="utf-8")
    return path


def test_parse_arguments():
    """Test argument parsing."""
    args = parse_arguments(["html", "in.md", "--log-level", "DEBUG"])
    assert args.command == "html"
    assert args.input == "in.md"
    assert args.log_level == "DEBUG"
    assert args.settings is None


def test_parse_arguments_rejects_unknown_command():
    """Test an unknown output format is rejected."""
    with pytest.raises(SystemExit):
        parse_arguments(["pdf"])


@pytest.mark.parametrize("command,expected", [
    ("markdown", "# Title"),
    ("html", "<h1>Title</h1>"),
    ("tree", "doc\n  heading (level=1)\n    text: 'Title'"),
])
def test_render(command, expected):
    """Test each output format."""
    assert render(command, "#  Title") == expected


def test_render_json():
    """Test JSON output can be read back."""
    data = json.loads(render("json", "text"))
    assert data["content"][0]["type"] == "paragraph"


def test_main_file(markdown_file, capsys):
    """Test converting a file to normalized markdown."""
    assert main(["markdown", str(markdown_file)]) == 0
    assert capsys.readouterr().out == "- item\n#### Title\n"


def test_main_stdin(monkeypatch, capsys):
    """Test reading markdown from stdin."""
    monkeypatch.setattr("sys.stdin", io.StringIO("**b**"))
    assert main(["html"]) == 0
    assert capsys.readouterr().out == "<p><strong>b</strong></p>\n"


def test_main_log_file(markdown_file, tmp_path, capsys):
    """Test logging to a file."""
    log_file = tmp_path / "docmark.log"
    assert main(["markdown", str(markdown_file), "--log-file", str(log_file), "--log-level", "DEBUG"]) == 0
    assert log_file.exists()
    assert capsys.readouterr().out == "- item\n#### Title\n"


def test_main_missing_input(tmp_path, capsys):
    """Test a missing input file is reported."""
    assert main(["markdown", str(tmp_path / "missing.md")]) == 1
    assert "Error: cannot read" in capsys.readouterr().err


def test_main_bad_settings(markdown_file, tmp_path, capsys):
    """Test an unreadable settings file is reported."""
    settings = tmp_path / "settings.json"
    settings.write_text("{broken", encoding="utf-8")
    assert main(["markdown", str(markdown_file), "--settings", str(settings)]) == 1
    assert "Error: cannot load settings" in capsys.readouterr().err
