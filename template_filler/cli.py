"""
Command-line interface for Template Filler.

Usage:
    template-filler fill template.docx data.json -o output.docx
    template-filler info template.odt --json
    template-filler version
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .api import TemplateDocument
from .config import GenerationOptions
from .exceptions import TemplateFillerError
from .models.data import pages_from_data
from .utils.logger import configure_logging

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="template-filler",
        description="Template Filler - fill DOCX and ODT templates with data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  template-filler fill letter.docx people.json -o letters.docx
  template-filler fill invoice.odt invoice.json -o out.odt --ignore-missing
  template-filler info letter.docx --json
  template-filler version
        """,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--rich",
        action="store_true",
        help="Render log output with rich"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Fill command
    fill_parser = subparsers.add_parser("fill", help="Fill a template with JSON data")
    fill_parser.add_argument("template", help="Template file (DOCX or ODT)")
    fill_parser.add_argument("data", help="JSON file: an object (one page) or a list of objects")
    fill_parser.add_argument(
        "-o", "--output",
        required=True,
        help="Output file path"
    )
    fill_parser.add_argument(
        "--ignore-missing",
        action="store_true",
        help="Leave placeholders without a value instead of failing"
    )
    fill_parser.add_argument(
        "--allow-empty",
        action="store_true",
        help="Accept data without pages"
    )
    fill_parser.add_argument(
        "--no-page-breaks",
        action="store_true",
        help="Do not separate pages with hard page breaks"
    )
    fill_parser.add_argument(
        "--link-external-images",
        action="store_true",
        help="Reference local/URL images instead of embedding them"
    )
    fill_parser.add_argument(
        "--vml",
        action="store_true",
        help="Create VML pictures instead of DrawingML (DOCX)"
    )

    # Info command
    info_parser = subparsers.add_parser("info", help="Show template placeholders and tables")
    info_parser.add_argument("template", help="Template file (DOCX or ODT)")
    info_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON"
    )

    # Version command
    subparsers.add_parser("version", help="Show version information")

    return parser


def cmd_fill(args) -> int:
    """Handle fill command."""
    template_path = Path(args.template)
    data_path = Path(args.data)
    for path in (template_path, data_path):
        if not path.exists():
            print(f"Error: File not found: {path}", file=sys.stderr)
            return 1

    try:
        data = json.loads(data_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in {data_path}: {e}", file=sys.stderr)
        return 1

    options = GenerationOptions(
        ignore_missing_values=args.ignore_missing,
        ignore_missing_data_pages=args.allow_empty,
        insert_hard_page_breaks=not args.no_page_breaks,
        embed_external_images=not args.link_external_images,
        prefer_drawing_element=not args.vml,
    )

    try:
        pages = pages_from_data(data)
        document = TemplateDocument.open(template_path, options)
        document.generate(pages, args.output)
    except TemplateFillerError as e:
        logger.debug("Generation failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(f"Saved: {args.output} ({len(pages)} pages)")
    return 0


def cmd_info(args) -> int:
    """Handle info command."""
    template_path = Path(args.template)
    if not template_path.exists():
        print(f"Error: File not found: {template_path}", file=sys.stderr)
        return 1

    try:
        document = TemplateDocument.open(template_path)
        found = document.list_placeholders()
    except TemplateFillerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    custom_xml = document.custom_xml
    info = {
        "file": str(template_path),
        "format": document.format_name,
        "placeholders": found["placeholders"],
        "tables": found["tables"],
        "pictures": found["pictures"],
        "custom_xml_parts": custom_xml.count_parts() if custom_xml is not None else 0,
    }

    if args.json:
        print(json.dumps(info, indent=2, ensure_ascii=False))
    else:
        print(f"File: {info['file']}")
        print(f"   Format: {info['format']}")
        print()
        for section in ("placeholders", "tables", "pictures"):
            print(f"{section.capitalize()}:")
            for name in info[section]:
                print(f"   {name}")
        if info["custom_xml_parts"]:
            print()
            print(f"Custom XML parts: {info['custom_xml_parts']}")
    return 0


def cmd_version(args=None) -> int:
    """Handle version command."""
    from .version import __version__
    print(f"Template Filler v{__version__}")
    print("Fills DOCX and ODT templates with data")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else "WARNING", use_rich=args.rich)

    if args.command == "fill":
        return cmd_fill(args)
    elif args.command == "info":
        return cmd_info(args)
    elif args.command == "version":
        return cmd_version(args)

    # No command specified, show help
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
