"""
Command-line interface for the embedded SQL scanner.

Provides a CLI for scanning source trees for invalid SQL, creating a
configuration file and listing the available rules.
"""

import argparse
import logging
import sys
import os
from typing import Optional, List

from embedsql import __version__
from embedsql.config import load_scan_config, create_default_config, CONFIG_FILE_NAMES
from embedsql.core.engine import ScanEngine, DEFAULT_IGNORE_PATTERNS
from embedsql.core.rules import registry
from embedsql.formatters import get_formatter
from embedsql.grammar import DEFAULT_DIALECT, list_dialects


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="embedsql",
        description="Find SQL command text embedded in source code and report invalid SQL.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  embedsql scan ./src                    # Scan a directory
  embedsql scan app.py                   # Scan a single file
  embedsql scan . --format json          # Output as JSON
  embedsql scan . --format sarif -o out  # SARIF output to file
  embedsql scan . --dialect postgres     # Validate against another dialect
  embedsql init                          # Create config file
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Scan command
    scan_parser = subparsers.add_parser("scan", help="Scan code for invalid SQL")
    scan_parser.add_argument(
        "target",
        nargs="?",
        default=".",
        help="Target file or directory to scan (default: current directory)",
    )
    scan_parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
    )
    scan_parser.add_argument(
        "-f", "--format",
        choices=["text", "json", "sarif"],
        default=None,
        help="Output format (default: text)",
    )
    scan_parser.add_argument(
        "-o", "--output",
        help="Output file (default: stdout)",
    )
    scan_parser.add_argument(
        "-s", "--severity",
        choices=["error", "warning", "info"],
        default=None,
        help="Minimum severity to report (default: info)",
    )
    scan_parser.add_argument(
        "-d", "--dialect",
        help=f"SQL dialect to validate against (default: {DEFAULT_DIALECT})",
    )
    scan_parser.add_argument(
        "--include",
        action="append",
        help="Include patterns (can be specified multiple times)",
    )
    scan_parser.add_argument(
        "--exclude",
        action="append",
        help="Exclude patterns (can be specified multiple times)",
    )
    scan_parser.add_argument(
        "--disable",
        action="append",
        metavar="RULE_ID",
        help="Disable a rule (can be specified multiple times)",
    )
    scan_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output and debug logging",
    )
    scan_parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )
    scan_parser.add_argument(
        "--show-suppressed",
        action="store_true",
        help="Show suppressed findings",
    )
    scan_parser.add_argument(
        "-j", "--jobs",
        type=int,
        default=None,
        help="Number of parallel workers (default: 4)",
    )

    # Init command
    init_parser = subparsers.add_parser("init", help="Create a configuration file")
    init_parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Overwrite existing config file",
    )

    # List-rules command
    subparsers.add_parser("list-rules", help="List available rules")

    # List-dialects command
    subparsers.add_parser("list-dialects", help="List SQL dialects the validator understands")

    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def cmd_scan(args: argparse.Namespace) -> int:
    """Execute the scan command."""
    config = load_scan_config(args.config, start_dir=args.target)

    # Apply command-line overrides
    if args.severity:
        config.severity_threshold = args.severity
    if args.jobs is not None:
        config.max_workers = args.jobs
    if args.dialect:
        config.dialect = args.dialect
    if args.include:
        config.include_patterns = args.include
    if args.exclude:
        config.exclude_patterns = list(config.exclude_patterns or DEFAULT_IGNORE_PATTERNS) + args.exclude
    if args.disable:
        config.rules.disabled = config.rules.disabled + args.disable
    if args.format:
        config.output.format = args.format
    if args.output:
        config.output.output_file = args.output

    engine = ScanEngine(config.to_engine_config())
    result = engine.scan(args.target)

    formatter = get_formatter(config.output.format)

    if hasattr(formatter, "verbose"):
        formatter.verbose = args.verbose or config.output.verbose
    if hasattr(formatter, "use_color"):
        formatter.use_color = formatter.use_color and config.output.color and not args.no_color
    formatter.include_suppressed = args.show_suppressed or config.output.show_suppressed

    output = formatter.format_result(result)

    if config.output.output_file:
        with open(config.output.output_file, "w", encoding="utf-8") as f:
            f.write(output)
        if config.output.format == "text":
            print(f"Results written to {config.output.output_file}")
    else:
        print(output)

    return 1 if result.error_count > 0 else 0


def cmd_init(args: argparse.Namespace) -> int:
    """Execute the init command."""
    config_file = CONFIG_FILE_NAMES[0]

    if os.path.exists(config_file) and not args.force:
        print(f"Configuration file {config_file} already exists.")
        print("Use --force to overwrite.")
        return 1

    with open(config_file, "w", encoding="utf-8") as f:
        f.write(create_default_config())

    print(f"Created configuration file: {config_file}")
    return 0


def cmd_list_rules(args: argparse.Namespace) -> int:
    """Execute the list-rules command."""
    print("\nAvailable Rules")
    print("=" * 70)

    for rule_id in registry.rule_ids():
        meta = registry.create_rule(rule_id).metadata
        status = "+" if registry.is_enabled_by_default(rule_id) else "-"
        print(f"  {status} {meta.rule_id:<16} {meta.name:<30} [{meta.severity.value}]")
        print(f"      {meta.description}")

    print(f"\nTotal: {registry.rule_count} rules")
    print("+ = enabled by default, - = disabled by default")
    return 0


def cmd_list_dialects(args: argparse.Namespace) -> int:
    for dialect in list_dialects():
        marker = " (default)" if dialect == DEFAULT_DIALECT else ""
        print(f"{dialect}{marker}")
    return 0


COMMANDS = {
    "scan": cmd_scan,
    "init": cmd_init,
    "list-rules": cmd_list_rules,
    "list-dialects": cmd_list_dialects,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(getattr(args, "verbose", False))

    try:
        return COMMANDS[args.command](args)
    except KeyboardInterrupt:
        print("\nScan interrupted.")
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if os.environ.get("DEBUG"):
            raise
        return 1


if __name__ == "__main__":
    sys.exit(main())
