#!/usr/bin/env python3
"""
Command-line interface for timew-import with subcommand structure.

Provides subcommands: fetch, check, boundaries, validate.
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

import toml

from .admission import filter_batch
from .boundaries import boundaries_for, range_boundaries
from .config import (
    default_data_dir,
    get_earliest_date,
    get_max_future,
    get_offset,
    load_config,
    with_overrides,
)
from .config_validation import validate_and_warn, validate_config
from .duplicates import format_overlap_error, overlap_details
from .errors import OverlapBlockedError, TimewImportError
from .importer import import_range, resolve_fetch_range
from .output import setup_logging, user_output
from .sql_store import SqlStore
from .timebasis import format_instant, format_offset, utc_now
from .timew_source import TimewSource
from .utils import parse_date_arg

logger = logging.getLogger(__name__)

# Exit code for a batch blocked by overlapping stored intervals
EXIT_BLOCKED = 2


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        description='Import Timewarrior intervals into a database, without duplicates',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Subcommands:
  fetch       Import intervals for a date or date range
  check       Report what an import would reject or block, without writing
  boundaries  Show the UTC range covered by a local calendar day
  validate    Validate configuration file

Examples:
  # Import everything from earliest_date up to yesterday
  %(prog)s fetch all

  # Import a single day
  %(prog)s fetch 2026-01-14

  # Import a range, preview only
  %(prog)s fetch 2026-01-01 2026-01-14 --dry-run

  # Check yesterday against the database
  %(prog)s check yesterday

  # Show which UTC instants belong to a local day
  %(prog)s --offset +08:00 boundaries 2024-01-15
        """
    )

    # Global options (available for all subcommands)
    parser.add_argument(
        '--config',
        metavar='FILE',
        type=Path,
        help='Path to configuration file (default: $XDG_CONFIG_HOME/timew-import/config.toml)'
    )
    parser.add_argument(
        '--offset',
        metavar='OFFSET',
        help='Fixed local UTC offset, e.g. +08:00 (overrides utc_offset from config)'
    )
    parser.add_argument(
        '--db-url',
        metavar='URL',
        help='SQLAlchemy database URL (overrides database.url from config)'
    )
    parser.add_argument(
        '--log-level',
        choices=['NONE', 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='DEBUG',
        help='Set file logging level (default: DEBUG)'
    )
    parser.add_argument(
        '--console-log-level',
        choices=['NONE', 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='WARNING',
        help='Set console logging level (default: WARNING)'
    )
    parser.add_argument(
        '--log-file',
        metavar='FILE',
        type=Path,
        help='Log file path (default: ~/.local/share/timew-import/timew-import.json.log)'
    )
    parser.add_argument(
        '--no-log-json',
        action='store_true',
        help='Do not write logs in JSON format'
    )

    subparsers = parser.add_subparsers(dest='subcommand', help='Subcommand to run')

    # ===== FETCH subcommand =====
    fetch_parser = subparsers.add_parser(
        'fetch',
        help='Import intervals for a date or date range',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Date specification:
  all                  From earliest_date (or $START_DATE) to yesterday
  DATE                 A single local day
  DATE DATE            An inclusive range of local days

DATE is YYYY-MM-DD or a relative phrase such as "yesterday".
Intervals starting today are never imported, as today may still change.
        """
    )
    fetch_parser.add_argument(
        'dates',
        nargs='+',
        metavar='DATE',
        help="'all', a single date, or a start and end date"
    )
    fetch_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Run all checks but do not write to the database'
    )
    fetch_parser.add_argument(
        '--group-type',
        metavar='TEXT',
        help='Group type for every day (skips the interactive prompt)'
    )
    fetch_parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show every rejected record'
    )

    # ===== CHECK subcommand =====
    check_parser = subparsers.add_parser(
        'check',
        help='Report rejected records and overlaps without writing',
    )
    check_parser.add_argument(
        'dates',
        nargs='+',
        metavar='DATE',
        help='A single date or a start and end date'
    )
    check_parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show every rejected record'
    )

    # ===== BOUNDARIES subcommand =====
    boundaries_parser = subparsers.add_parser(
        'boundaries',
        help='Show the UTC range covered by a local calendar day',
    )
    boundaries_parser.add_argument('date', metavar='DATE', help='Local calendar day')

    # ===== VALIDATE subcommand =====
    subparsers.add_parser(
        'validate',
        help='Validate configuration file',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate default config
  %(prog)s

  # Validate custom config
  %(prog)s --config my_config.toml
        """
    )

    return parser


def get_default_log_file(json: bool) -> Path:
    """
    Get the default log file path.

    Returns:
        Path to the default log file in the user's data directory
    """
    log_dir = default_data_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    json_postfix = '.json' if json else ''

    return log_dir / f'timew-import{json_postfix}.log'


def configure_logging(args: argparse.Namespace, subcommand: str) -> None:
    """
    Configure logging based on command-line arguments.

    Args:
        args: Parsed command-line arguments
        subcommand: The subcommand being executed
    """
    log_level = getattr(logging, args.log_level, 0)
    console_log_level = getattr(logging, args.console_log_level, 0)

    if getattr(args, 'verbose', False):
        console_log_level = logging.INFO

    log_file = None
    if args.log_file and log_level > 0:
        log_file = args.log_file
    elif log_level > 0:
        log_file = get_default_log_file(not args.no_log_json)

    run_mode = {
        'subcommand': subcommand,
        'dry_run': getattr(args, 'dry_run', False),
    }

    setup_logging(
        json_format=not args.no_log_json,
        log_level=log_level,
        console_log_level=console_log_level,
        log_file=log_file,
        run_mode=run_mode
    )


def prompt_group_type(day: date) -> str:
    """Ask the user for the group type of one local day."""
    return input(f"Please assign time interval group type for {day}: ")


def print_rejections(rejections: list, verbose: bool) -> None:
    """Print a summary of rejected records, or every one of them when verbose."""
    if not rejections:
        return
    user_output(f"{len(rejections)} records not imported", color='yellow')
    if verbose:
        for rejection in rejections:
            user_output(f"  [{rejection.reason.value}] {rejection.message}")


def run_fetch(args: argparse.Namespace, config: dict) -> int:
    """Execute the fetch subcommand."""
    offset = get_offset(config)
    now = utc_now()
    first_day, last_day = resolve_fetch_range(args.dates, get_earliest_date(config), offset, now)

    user_output(f"Fetching entries from {first_day} to {last_day} (UTC{format_offset(offset)})...")
    if args.dry_run:
        user_output("=== DRY RUN MODE ===\nNo changes will be made to the database\n")

    if args.group_type:
        def ask_group_type(_day: date) -> str:
            return args.group_type
    else:
        ask_group_type = prompt_group_type

    source = TimewSource(command=config['timew']['command'], timeout=config['timew']['timeout'])
    store = SqlStore.from_url(config['database']['url'])
    try:
        summary = import_range(
            store,
            source,
            offset,
            now,
            first_day,
            last_day,
            ask_group_type,
            earliest=get_earliest_date(config),
            max_future=get_max_future(config),
            dry_run=args.dry_run,
        )
    finally:
        store.close()

    print_rejections(summary.rejected, args.verbose)
    if args.dry_run:
        user_output(f"Would insert {summary.accepted} of {summary.exported} entries.")
    else:
        user_output(
            f"Inserted {summary.inserted} out of {summary.exported} entries "
            f"from date range {first_day} to {last_day}.",
            color='green',
        )
    return 0


def run_check(args: argparse.Namespace, config: dict) -> int:
    """Execute the check subcommand."""
    offset = get_offset(config)
    now = utc_now()
    first_day, last_day = resolve_fetch_range(args.dates, get_earliest_date(config), offset, now)
    range_start, range_end = range_boundaries(first_day, last_day, offset)

    source = TimewSource(command=config['timew']['command'], timeout=config['timew']['timeout'])
    raws = source.export(first_day, last_day, offset)
    admission = filter_batch(
        raws, offset, now, earliest=get_earliest_date(config), max_future=get_max_future(config)
    )
    candidates = [c for c in admission.accepted if range_start <= c.start <= range_end]

    store = SqlStore.from_url(config['database']['url'])
    try:
        report = overlap_details(store, range_start, range_end, candidates)
    finally:
        store.close()

    user_output(
        f"{first_day} to {last_day}: {len(raws)} exported, {len(candidates)} importable, "
        f"{report.existing_count} already stored"
    )
    print_rejections(admission.rejected, args.verbose)

    if report.has_overlap:
        user_output(format_overlap_error(report.overlaps, len(candidates), offset), color='red')
        return EXIT_BLOCKED
    user_output("No overlaps with stored entries", color='green')
    return 0


def run_boundaries(args: argparse.Namespace, config: dict) -> int:
    """Execute the boundaries subcommand."""
    offset = get_offset(config)
    day = parse_date_arg(args.date, offset, utc_now())
    boundary = boundaries_for(day, offset)

    user_output(f"Local day {day} (UTC{format_offset(offset)})", attrs=['bold'])
    user_output(f"  local: {boundary.local_start()} .. {boundary.local_end()}")
    user_output(f"  UTC:   {format_instant(boundary.start)} .. {format_instant(boundary.end)}")
    return 0


def run_validate(args: argparse.Namespace, config: dict) -> int:
    """Execute the validate subcommand."""
    errors, warnings = validate_config(config)
    for warning in warnings:
        user_output(f"  warning: {warning}", color='yellow')
    if errors:
        print("Configuration errors found:")
        for error in errors:
            print(f"  - {error}")
        return 1
    print("Configuration is valid")
    return 0


SUBCOMMANDS = {
    'fetch': run_fetch,
    'check': run_check,
    'boundaries': run_boundaries,
    'validate': run_validate,
}


def validate_args(args: argparse.Namespace) -> Optional[str]:
    """Validate argument combinations argparse cannot express."""
    if args.subcommand == 'check' and len(args.dates) > 2:
        return "Error: check takes a single date or a start and end date"
    if args.subcommand == 'check' and 'all' in args.dates:
        return "Error: check takes a single date or a start and end date, not 'all'"
    if args.subcommand == 'fetch' and args.group_type is not None and not args.group_type.strip():
        return "Error: --group-type must not be empty"
    return None


def main(argv=None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 2 for a blocked import, 1 for other errors)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.subcommand:
        parser.print_help()
        return 1

    error = validate_args(args)
    if error:
        print(error, file=sys.stderr)
        return 1

    try:
        config = with_overrides(load_config(args.config), offset=args.offset, db_url=args.db_url)
    except (FileNotFoundError, toml.TomlDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    configure_logging(args, args.subcommand)

    if args.subcommand != 'validate' and not validate_and_warn(config):
        print("Error: invalid configuration, run the validate subcommand for details", file=sys.stderr)
        return 1

    try:
        return SUBCOMMANDS[args.subcommand](args, config)

    except OverlapBlockedError as e:
        print(str(e), file=sys.stderr)
        return EXIT_BLOCKED
    except KeyboardInterrupt:
        print("\nExiting...")
        return 0
    except (TimewImportError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("Unexpected error")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
