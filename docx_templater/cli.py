"""
Command-line interface for DOCX Templater.

Usage:
    docx-templater variables template.docx
    docx-templater variables template.docx --json
    docx-templater fill template.docx plan.json --output filled.docx
    docx-templater version
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import TemplateError
from .settings import TemplateSettings
from .template_processor import TemplateProcessor
from .utils.logger import configure_logging

EXIT_OK = 0
EXIT_TEMPLATE_ERROR = 1
EXIT_USAGE_ERROR = 2

PLAN_KEYS = (
    "values",
    "clone_rows",
    "clone_blocks",
    "replace_blocks",
    "delete_blocks",
    "images",
    "line_breaks",
    "delete_lines",
)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="docx-templater",
        description="DOCX Templater - mail-merge for Word DOCX templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  docx-templater variables invoice.docx
  docx-templater fill invoice.docx plan.json --output out.docx
  docx-templater version

Plan file keys (applied in this order):
  values, clone_rows, clone_blocks, replace_blocks, delete_blocks,
  images, line_breaks, delete_lines
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    variables_parser = subparsers.add_parser("variables", help="List template variables")
    variables_parser.add_argument("template", help="Template DOCX file")
    variables_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON"
    )

    fill_parser = subparsers.add_parser("fill", help="Fill a template from a JSON merge plan")
    fill_parser.add_argument("template", help="Template DOCX file")
    fill_parser.add_argument("plan", help="JSON merge plan")
    fill_parser.add_argument(
        "-o", "--output",
        required=True,
        help="Output DOCX file path"
    )
    fill_parser.add_argument(
        "--escape",
        action="store_true",
        help="Escape replacement values for XML"
    )
    fill_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every template operation"
    )

    subparsers.add_parser("version", help="Show version information")

    return parser


def load_plan(plan_path: Path) -> Dict[str, Any]:
    """
    Read and check a merge plan.

    Raises:
        ValueError: if the plan is unreadable, not a JSON object or has unknown keys
    """
    try:
        plan = json.loads(plan_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Could not read plan {plan_path}: {e}") from e

    if not isinstance(plan, dict):
        raise ValueError("Plan must be a JSON object")
    unknown = sorted(set(plan) - set(PLAN_KEYS))
    if unknown:
        raise ValueError(f"Unknown plan keys: {', '.join(unknown)}")
    return plan


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else [value]


def apply_plan(template: TemplateProcessor, plan: Dict[str, Any]) -> None:
    """Apply each section of ``plan`` to ``template`` in plan-key order."""
    for name, value in plan.get("values", {}).items():
        template.set_value(name, value)
    for name, count in plan.get("clone_rows", {}).items():
        template.clone_row(name, int(count))
    for name, count in plan.get("clone_blocks", {}).items():
        template.clone_block(name, int(count))
    for name, markup in plan.get("replace_blocks", {}).items():
        template.replace_block(name, markup)
    for name in plan.get("delete_blocks", []):
        template.delete_block(name)
    for name, paths in plan.get("images", {}).items():
        paths = _as_list(paths)
        template.replace_images([name] * len(paths), paths)
    if plan.get("line_breaks"):
        template.insert_line_breaks(plan["line_breaks"])
    if plan.get("delete_lines"):
        template.delete_white_lines(plan["delete_lines"])


def cmd_variables(args) -> int:
    """Handle variables command."""
    with TemplateProcessor(args.template) as template:
        variables = template.get_variables()

    if args.json:
        print(json.dumps(variables, indent=2, ensure_ascii=False))
    else:
        for name in variables:
            print(name)
    return EXIT_OK


def cmd_fill(args) -> int:
    """Handle fill command."""
    if args.verbose:
        configure_logging("DEBUG", rich_output=True)

    try:
        plan = load_plan(Path(args.plan))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE_ERROR

    settings = TemplateSettings.from_env(output_escaping=True) if args.escape else TemplateSettings.from_env()
    with TemplateProcessor(args.template, settings) as template:
        apply_plan(template, plan)
        template.save_as(args.output)

    print(f"Saved: {args.output}")
    return EXIT_OK


def cmd_version(args=None) -> int:
    """Handle version command."""
    from .version import __version__
    print(f"DOCX Templater v{__version__}")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    commands = {
        "variables": cmd_variables,
        "fill": cmd_fill,
        "version": cmd_version,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return EXIT_USAGE_ERROR

    try:
        return handler(args)
    except TemplateError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_TEMPLATE_ERROR


if __name__ == "__main__":
    sys.exit(main())
