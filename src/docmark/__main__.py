"""Command line entry point: convert markdown through the document tree."""

import argparse
import json
import logging
from logging.handlers import RotatingFileHandler
import sys
from typing import List

from docmark.doc_html_renderer import DocHTMLRenderer
from docmark.doc_json_serializer import DocJSONSerializer
from docmark.doc_printer import DocTreePrinter
from docmark.docmark_settings import DocmarkSettings
from docmark.markdown_parser import MarkdownParser
from docmark.markdown_serializer import MarkdownSerializer


def setup_logging(level: str, log_file: str | None = None) -> None:
    """
    Configure logging, to stderr or to a rotating log file.

    Args:
        level: Name of the log level
        log_file: Path of the log file, or None to log to stderr
    """
    handlers: List[logging.Handler] = []
    if log_file:
        # Keep up to 50 log files, max 1MB each
        handlers.append(RotatingFileHandler(
            log_file,
            maxBytes=1024*1024,  # 1MB
            backupCount=49,  # Keep 50 files total (current + 49 backups)
            encoding='utf-8'
        ))

    else:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


def parse_arguments(argv: List[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="docmark",
        description="Parse markdown into a rich document tree and write it out again",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Normalize a markdown file
  python -m docmark markdown notes.md

  # Render markdown from stdin as HTML
  cat notes.md | python -m docmark html

  # Show the document tree, logging to a file
  python -m docmark tree notes.md --log-file docmark.log
        """
    )

    parser.add_argument(
        'command',
        choices=['markdown', 'html', 'json', 'tree'],
        help='Output format'
    )

    parser.add_argument(
        'input',
        nargs='?',
        help='Markdown file to read (default: stdin)'
    )

    parser.add_argument(
        '--settings',
        help='JSON settings file'
    )

    parser.add_argument(
        '--log-file',
        help='Write logs to a rotating log file instead of stderr'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Log level (overrides the settings file)'
    )

    return parser.parse_args(argv)


def render(command: str, source: str) -> str:
    """
    Parse markdown and render the resulting document.

    Args:
        command: One of "markdown", "html", "json" or "tree"
        source: The markdown text

    Returns:
        The rendered output
    """
    doc = MarkdownParser().parse(source)
    if command == "html":
        return DocHTMLRenderer().render(doc)

    if command == "json":
        return DocJSONSerializer().to_json_string(doc)

    if command == "tree":
        return DocTreePrinter().format(doc)

    return MarkdownSerializer().serialize(doc)


def main(argv: List[str] | None = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    settings = DocmarkSettings.create_default()
    if args.settings:
        try:
            settings = DocmarkSettings.load(args.settings)

        except (OSError, json.JSONDecodeError) as e:
            print(f"Error: cannot load settings from {args.settings}: {e}", file=sys.stderr)
            return 1

    setup_logging(args.log_level or settings.log_level, args.log_file)
    logger = logging.getLogger("docmark")

    try:
        if args.input:
            with open(args.input, 'r', encoding='utf-8') as f:
                source = f.read()

        else:
            source = sys.stdin.read()

    except OSError as e:
        logger.error("failed to read input: %s", e)
        print(f"Error: cannot read {args.input}: {e}", file=sys.stderr)
        return 1

    print(render(args.command, source))
    return 0


if __name__ == "__main__":
    sys.exit(main())
