"""
surreal-migrate - Migrations directory scanner

Lists a migrations directory and parses each item into a MigrationEntry:
- files:   <digits>_<name>.surql      (single layout)
- folders: <digits>_<name>/           (paired layout)

Anything else is skipped, never fatal.
"""

import re
from pathlib import Path
from typing import Dict, Hashable, List, Optional, Union

from surreal_migrate.config.settings import get_settings
from surreal_migrate.errors import DirectoryUnreadableError, InvalidExistingEntryError
from surreal_migrate.models import TIMESTAMP_DIGITS, LayoutMode, MigrationEntry
from surreal_migrate.utils.logging import TRACE, get_logger

logger = get_logger(__name__)
settings = get_settings()

MIGRATION_RE = re.compile(r"^(?P<digits>\d+)_(?P<rest>.+)$")
SUFFIX_RE = re.compile(r"^(?P<suffix>\d+)_.+$")


def parse_entry(path: Path, extension: Optional[str] = None) -> MigrationEntry:
    """
    Parse one directory item.

    Args:
        path: Item inside the migrations directory
        extension: Migration file extension (default: settings.MIGRATION_EXTENSION)

    Returns:
        Parsed MigrationEntry

    Raises:
        InvalidExistingEntryError: If the item is not a migration
    """
    extension = extension or settings.MIGRATION_EXTENSION
    name = path.name

    if name.startswith("."):
        raise InvalidExistingEntryError(f"hidden entry: {name}", path)

    if path.is_dir():
        kind = LayoutMode.PAIRED
        stem = name
    elif name.endswith(extension):
        kind = LayoutMode.SINGLE
        stem = name[: -len(extension)]
    else:
        raise InvalidExistingEntryError(f"not a {extension} file: {name}", path)

    match = MIGRATION_RE.match(stem)
    if not match:
        raise InvalidExistingEntryError(f"no numeric prefix: {name}", path)

    digits = match.group("digits")
    suffix = None
    if len(digits) == TIMESTAMP_DIGITS:
        suffix_match = SUFFIX_RE.match(match.group("rest"))
        if suffix_match:
            suffix = int(suffix_match.group("suffix"))

    return MigrationEntry(name=name, path=path, kind=kind, digits=digits, suffix=suffix)


def scan_migrations(
    directory: Union[str, Path],
    extension: Optional[str] = None,
) -> List[MigrationEntry]:
    """
    List the migrations currently present in a directory.

    A directory that does not exist yet holds no migrations.

    Args:
        directory: Migrations directory
        extension: Migration file extension (default: settings.MIGRATION_EXTENSION)

    Returns:
        Entries sorted by name

    Raises:
        DirectoryUnreadableError: If the directory exists but cannot be listed
    """
    directory = Path(directory)

    if not directory.exists():
        logger.debug(f"Migrations directory does not exist yet: {directory}")
        return []

    try:
        paths = sorted(directory.iterdir())
    except OSError as e:
        raise DirectoryUnreadableError(f"Failed to list {directory}: {e}", directory) from e

    entries: List[MigrationEntry] = []
    for path in paths:
        try:
            entry = parse_entry(path, extension)
        except InvalidExistingEntryError as e:
            logger.log(TRACE, f"Skipping {path.name}: {e}")
            continue
        logger.log(TRACE, f"Found migration {entry.name} (prefix={entry.label}, kind={entry.kind.value})")
        entries.append(entry)

    logger.debug(f"Scanned {directory}: {len(entries)} migration(s)")
    return entries


def find_duplicate_prefixes(entries: List[MigrationEntry]) -> Dict[str, List[str]]:
    """
    Group entries that share a prefix.

    Numeric prefixes compare by value, so `3_a` and `003_b` collide.
    `T_1_x` is read as suffix 1, the form same-second retries are written in,
    so it does not collide with `T_x`. Allocation stays stricter and avoids
    both readings (see MigrationEntry.temporal_keys).

    Args:
        entries: Scanned entries

    Returns:
        Dict mapping prefix label -> sorted entry names, only for shared prefixes
    """
    groups: Dict[Hashable, List[MigrationEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.key, []).append(entry)

    duplicates = {}
    for members in groups.values():
        if len(members) > 1:
            label = min(m.label for m in members)
            duplicates[label] = sorted(m.name for m in members)
    return duplicates
