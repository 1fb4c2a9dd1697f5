"""
surreal-migrate - Command line entry point

Commands:
    add <NAME>   Create a new migration (paired up/down folder by default)
    list         Show the migrations found in the migrations directory
    check        Fail if two migrations share a prefix

Usage:
    surreal-migrate add "Create users"
    surreal-migrate add "Create users" --single --temporal
    surreal-migrate list --dir db/migrations
    surreal-migrate check -v
"""

import argparse
import sys
from typing import List, Optional

from surreal_migrate.errors import MigrationError
from surreal_migrate.ingest.source import DiskSource
from surreal_migrate.models import LayoutMode, PrefixMode
from surreal_migrate.processing.allocator import create_migration
from surreal_migrate.processing.scanner import find_duplicate_prefixes, scan_migrations
from surreal_migrate.utils.directories import resolve_migrations_dir
from surreal_migrate.utils.logging import get_logger, level_for_verbosity, setup_logging

logger = get_logger("surreal_migrate.cli")


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--dir",
        type=str,
        default=None,
        help="Migrations directory (default: ./migrations, or the enclosing migrations dir)"
    )
    common.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Verbose logging (-v debug, -vv trace)"
    )

    parser = argparse.ArgumentParser(
        prog="surreal-migrate",
        description="Create uniquely prefixed SurrealDB migration files"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", parents=[common], help="Add a new migration")
    add.add_argument("name", help="Name of the migration (will be sanitized)")
    add.add_argument(
        "-t", "--temporal",
        action="store_true",
        help="Use a UTC timestamp prefix instead of a numeric one"
    )
    add.add_argument(
        "--single",
        action="store_true",
        help="Create a single .surql file instead of an up/down folder"
    )

    subparsers.add_parser("list", parents=[common], help="List existing migrations")
    subparsers.add_parser("check", parents=[common], help="Check for duplicate prefixes")

    return parser


def run_add(args: argparse.Namespace) -> int:
    directory = resolve_migrations_dir(args.dir)
    created = create_migration(
        directory,
        args.name,
        prefix_mode=PrefixMode.TEMPORAL if args.temporal else PrefixMode.NUMERIC,
        layout=LayoutMode.SINGLE if args.single else LayoutMode.PAIRED,
    )
    for path in created.files:
        print(path)
    return 0


def run_list(args: argparse.Namespace) -> int:
    directory = resolve_migrations_dir(args.dir)
    if not directory.exists():
        logger.info(f"No migrations directory at {directory}")
        return 0

    migrations = DiskSource(directory).list()
    if not migrations:
        logger.info(f"No migrations found in {directory}")
    for migration in migrations:
        print(f"{migration.name}\t{migration.kind.value}")
    return 0


def run_check(args: argparse.Namespace) -> int:
    directory = resolve_migrations_dir(args.dir)
    duplicates = find_duplicate_prefixes(scan_migrations(directory))

    if duplicates:
        print("Duplicate migration prefixes found:")
        for prefix in sorted(duplicates):
            print(f"  {prefix}: {', '.join(duplicates[prefix])}")
        return 1

    print("Migration prefixes are unique")
    return 0


COMMANDS = {
    "add": run_add,
    "list": run_list,
    "check": run_check,
}


def main(argv: Optional[List[str]] = None) -> None:
    """Parse arguments, run one command and exit with its status."""
    args = build_parser().parse_args(argv)
    try:
        setup_logging("surreal_migrate", level_for_verbosity(args.verbose))
    except ValueError as e:
        # Bad LOG_LEVEL setting; logging is not usable yet
        print(f"ERROR: {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)
    logger.debug(f"Arguments: {vars(args)}")

    try:
        sys.exit(COMMANDS[args.command](args))

    except MigrationError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"ERROR: {e.kind}: {e}", file=sys.stderr)
        sys.exit(1)

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        logger.error(f"{args.command} failed with unhandled exception: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
