"""Entry point for python -m envfile.

Usage:
    # Show what a file parses to
    python -m envfile parse .env
    python -m envfile parse .env --format json
    python -m envfile parse .env --entries

    # Assemble .env + .env.defaults and print the result
    python -m envfile load --path .env --defaults .env.defaults

    # Verify every key of .env.example is set
    python -m envfile check --example .env.example

    # Run a command with the assembled variables exported
    python -m envfile run -- ./manage.py runserver
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import subprocess
import sys
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

logger = logging.getLogger("envfile.cli")


def _setup_logging(args: argparse.Namespace) -> None:
    """Configure logging based on command-line arguments."""
    from envfile.logging_config import enable_debug_mode, setup_logging

    if args.debug:
        enable_debug_mode()
    else:
        setup_logging(
            level=args.log_level,
            log_to_console=True,
            log_to_file=args.log_file,
        )


def _print_json(data: Any) -> None:
    """Print data as JSON to stdout."""
    print(json.dumps(data, indent=2, default=str))


def _print_table(rows: list[dict[str, Any]], columns: list[str]) -> None:
    """Print data as a table."""
    if not rows:
        print("No results.")
        return

    table = Table(*columns, header_style="bold")
    for row in rows:
        table.add_row(*(Text(str(row.get(col, ""))) for col in columns))
    Console().print(table)


def _print_config(conf: dict[str, str], fmt: str) -> None:
    """Print a parsed or assembled configuration in the requested format."""
    from envfile.writer import stringify

    if fmt == "json":
        _print_json(conf)
    elif fmt == "dotenv":
        sys.stdout.write(stringify(conf))
    else:
        _print_table(
            [{"Key": key, "Value": value} for key, value in conf.items()],
            ["Key", "Value"],
        )


def _error(message: object) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _build_options(args: argparse.Namespace, **forced: Any) -> Any:
    """Combine an options file, command-line flags and forced values.

    Precedence, lowest first: ConfigOptions defaults, --options file, flags,
    forced values.
    """
    from envfile.config import load_options, merge_options
    from envfile.models import ConfigOptions

    options = load_options(args.options) if args.options else ConfigOptions()
    overrides = {
        "path": args.path,
        "defaults": "" if args.no_defaults else args.defaults,
        "example": args.example,
        "safe": True if getattr(args, "safe", False) else None,
        "allow_empty_values": True if args.allow_empty_values else None,
    }
    overrides.update(forced)
    return merge_options(options, overrides)


# =============================================================================
# CLI Command Handlers
# =============================================================================


def _print_entries(entries: list[Any], fmt: str) -> None:
    """Print raw assignments with their line numbers and quote kinds."""
    from envfile.models import model_to_dict

    if fmt == "json":
        _print_json([model_to_dict(entry) for entry in entries])
    else:
        _print_table(
            [
                {
                    "Line": entry.line,
                    "Key": entry.key,
                    "Quote": entry.quote_kind.value,
                    "Value": entry.raw_value,
                }
                for entry in entries
            ],
            ["Line", "Key", "Quote", "Value"],
        )


def cmd_parse(args: argparse.Namespace) -> int:
    """Handle parse command."""
    from envfile.config import parse_file, read_entries
    from envfile.exceptions import EnvfileError

    if args.entries:
        if args.format == "dotenv":
            return _error("--entries supports table and json output only")
        try:
            entries = read_entries(args.file)
        except OSError as e:
            return _error(e)
        _print_entries(entries, args.format)
        return 0

    try:
        conf = parse_file(args.file)
    except (EnvfileError, OSError) as e:
        from envfile.logging_config import log_exception

        log_exception(logger, e, f"Failed to parse {args.file}", include_traceback=False)
        return _error(e)

    _print_config(conf, args.format)
    return 0


async def cmd_load(args: argparse.Namespace) -> int:
    """Handle load command."""
    from envfile.config import load_config_async
    from envfile.exceptions import EnvfileError, MissingEnvVarsError

    try:
        options = _build_options(args, export=False)
        conf = await load_config_async(options)
    except MissingEnvVarsError as e:
        return _error(e.message)
    except (EnvfileError, OSError) as e:
        from envfile.logging_config import log_exception

        log_exception(logger, e, "Failed to load configuration", include_traceback=False)
        return _error(e)

    _print_config(conf, args.format)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Handle check command."""
    from envfile.config import load_config_sync
    from envfile.exceptions import EnvfileError, MissingEnvVarsError

    try:
        options = _build_options(args, safe=True, export=False)
        conf = load_config_sync(options)
    except MissingEnvVarsError as e:
        if args.json:
            _print_json({"success": False, "missing": e.missing})
        else:
            print(e.message, file=sys.stderr)
        return 1
    except (EnvfileError, OSError) as e:
        return _error(e)

    if args.json:
        _print_json({"success": True, "missing": [], "keys": len(conf)})
    else:
        print(f"OK: all variables from {options.example} are set")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Handle run command."""
    from envfile.config import load_config_sync
    from envfile.exceptions import EnvfileError, MissingEnvVarsError

    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        return _error("No command given")

    try:
        options = _build_options(args, export=True)
        load_config_sync(options)
    except MissingEnvVarsError as e:
        return _error(e.message)
    except (EnvfileError, OSError) as e:
        return _error(e)

    logger.debug("Running %s", command[0])
    try:
        completed = subprocess.run(command)
    except OSError as e:
        return _error(f"Failed to run {command[0]}: {e}")
    return completed.returncode


def _run_async(coro: Any) -> int:
    """Run an async coroutine and return exit code."""
    return asyncio.run(coro)


# =============================================================================
# Argument Parser Setup
# =============================================================================


def _add_format_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=["table", "json", "dotenv"],
        default="table",
        help="Output format (default: table)",
    )


def _add_load_args(parser: argparse.ArgumentParser, *, safe_flag: bool = True) -> None:
    """Add the options shared by the commands that assemble a configuration."""
    parser.add_argument("--path", help="Primary env file (default: .env)")
    parser.add_argument(
        "--defaults",
        help="File supplying values for absent keys (default: .env.defaults)",
    )
    parser.add_argument(
        "--no-defaults",
        action="store_true",
        help="Do not read a defaults file",
    )
    parser.add_argument("--example", help="Example file (default: .env.example)")
    if safe_flag:
        parser.add_argument(
            "--safe",
            action="store_true",
            help="Fail if a key of the example file is not set",
        )
    parser.add_argument(
        "--allow-empty-values",
        action="store_true",
        help="Treat keys set to an empty string as present",
    )
    parser.add_argument(
        "--options",
        help="JSON file with loader options",
    )


def _create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="envfile",
        description="Parse, check and load dotenv files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show the parsed contents of a file
  envfile parse .env

  # Merge .env with .env.defaults and print as JSON
  envfile load --format json

  # Check against .env.example
  envfile check

  # Run a command with the variables exported
  envfile run --safe -- python app.py
""",
    )

    # Global arguments
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to console",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set log level (default: WARNING)",
    )
    parser.add_argument(
        "--log-file",
        action="store_true",
        help="Also log to ~/.config/envfile/logs/envfile.log",
    )

    subparsers = parser.add_subparsers(dest="command_name", help="Available commands")

    # parse
    parse_parser = subparsers.add_parser(
        "parse",
        help="Parse a single file and print the result",
    )
    parse_parser.add_argument("file", help="File to parse")
    parse_parser.add_argument(
        "--entries",
        action="store_true",
        help="List raw assignments with line numbers, without expansion",
    )
    _add_format_arg(parse_parser)

    # load
    load_parser = subparsers.add_parser(
        "load",
        help="Assemble the configuration and print it",
    )
    _add_load_args(load_parser)
    _add_format_arg(load_parser)

    # check
    check_parser = subparsers.add_parser(
        "check",
        help="Verify every key of the example file is set",
    )
    _add_load_args(check_parser, safe_flag=False)
    check_parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )

    # run
    run_parser = subparsers.add_parser(
        "run",
        help="Export the configuration and run a command",
    )
    _add_load_args(run_parser)
    run_parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command to run, after --",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the envfile command."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    # Initialize logging
    _setup_logging(args)

    if args.command_name == "parse":
        return cmd_parse(args)

    if args.command_name == "load":
        return _run_async(cmd_load(args))

    if args.command_name == "check":
        return cmd_check(args)

    if args.command_name == "run":
        return cmd_run(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
