#!/usr/bin/env python3
"""Fail if migrations have duplicate prefixes.

Usage:
  python scripts/check_migration_prefixes.py [MIGRATIONS_DIR]
"""

from __future__ import annotations

import sys
from pathlib import Path

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from surreal_migrate.config.settings import get_settings  # noqa: E402
from surreal_migrate.errors import MigrationError  # noqa: E402
from surreal_migrate.processing.scanner import find_duplicate_prefixes, scan_migrations  # noqa: E402


def main(argv: list[str]) -> int:
    migrations_dir = Path(argv[0]) if argv else repo_root / get_settings().MIGRATIONS_DIR

    if not migrations_dir.exists():
        print(f"No migrations directory found at {migrations_dir}")
        return 0

    try:
        duplicates = find_duplicate_prefixes(scan_migrations(migrations_dir))
    except MigrationError as exc:
        print(f"ERROR: {exc.kind}: {exc}", file=sys.stderr)
        return 1

    if duplicates:
        print("Duplicate migration prefixes found:")
        for prefix in sorted(duplicates):
            files = ", ".join(duplicates[prefix])
            print(f"  {prefix}: {files}")
        return 1

    print("Migration prefixes are unique")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
