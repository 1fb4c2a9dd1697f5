"""
surreal-migrate - Prefix allocation

Derives the next migration prefix from what is already on disk and drives the
create loop:

1. Scan the directory (fresh on every attempt)
2. Propose a candidate prefix from the scan
3. Create the migration exclusively
4. Re-scan; if another entry holds the same prefix, remove ours and retry

The listing and the create are not atomic as a pair, so only the exclusive
create and the post-create scan decide whether a prefix is really ours.
Attempts are capped by MAX_ALLOCATION_ATTEMPTS.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from surreal_migrate.config.settings import get_settings
from surreal_migrate.errors import (
    AllocationExhaustedError,
    AlreadyExistsError,
    MigrationError,
)
from surreal_migrate.export.writer import remove_migration, write_migration
from surreal_migrate.models import (
    CreatedMigration,
    LayoutMode,
    MigrationEntry,
    MigrationState,
    NumericPrefix,
    PrefixMode,
    TemporalPrefix,
)
from surreal_migrate.processing.sanitizer import sanitize_name
from surreal_migrate.processing.scanner import scan_migrations
from surreal_migrate.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

Prefix = Union[NumericPrefix, TemporalPrefix]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """YYYYMMDDHHMMSS in UTC."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def next_numeric_prefix(
    entries: List[MigrationEntry],
    width: Optional[int] = None,
    floor: int = 0,
) -> NumericPrefix:
    """
    Next numeric prefix: highest existing value + 1, or 0 for no migrations.

    Gaps are never filled.

    Args:
        entries: Scanned directory entries
        width: Zero-padding width (default: settings.NUMERIC_PREFIX_WIDTH)
        floor: Lowest acceptable value (previous failed candidate + 1)

    Returns:
        NumericPrefix
    """
    width = width or settings.NUMERIC_PREFIX_WIDTH
    next_value = max((e.value for e in entries), default=-1) + 1
    return NumericPrefix(value=max(next_value, floor), width=width)


def next_temporal_prefix(
    entries: List[MigrationEntry],
    timestamp: str,
    start_suffix: int = 0,
    max_attempts: Optional[int] = None,
) -> TemporalPrefix:
    """
    First free same-second slot for `timestamp`: unsuffixed, then _1, _2, ...

    Args:
        entries: Scanned directory entries
        timestamp: YYYYMMDDHHMMSS
        start_suffix: Lowest suffix to consider
        max_attempts: Suffix ceiling (default: settings.MAX_ALLOCATION_ATTEMPTS)

    Returns:
        TemporalPrefix

    Raises:
        AllocationExhaustedError: If every suffix below the ceiling is taken
    """
    max_attempts = max_attempts or settings.MAX_ALLOCATION_ATTEMPTS

    taken = set()
    for entry in entries:
        taken |= entry.temporal_keys()

    suffix = start_suffix
    while (timestamp, suffix) in taken:
        suffix += 1

    if suffix >= max_attempts:
        raise AllocationExhaustedError(
            f"No free suffix for timestamp {timestamp} after {max_attempts} attempts",
            attempts=max_attempts,
        )
    return TemporalPrefix(timestamp=timestamp, suffix=suffix)


def _find_peers(entries: List[MigrationEntry], prefix: Prefix, created: CreatedMigration) -> List[str]:
    """Names of other entries that hold `prefix`."""
    peers = []
    for entry in entries:
        if entry.name == created.entry_name:
            continue
        if isinstance(prefix, TemporalPrefix):
            if prefix.key in entry.temporal_keys():
                peers.append(entry.name)
        elif entry.value == prefix.value:
            peers.append(entry.name)
    return peers


def _enter(state: MigrationState, detail: str = "") -> MigrationState:
    logger.debug(f"State -> {state.value}" + (f" ({detail})" if detail else ""))
    return state


def create_migration(
    directory: Union[str, Path],
    raw_name: str,
    prefix_mode: PrefixMode = PrefixMode.NUMERIC,
    layout: LayoutMode = LayoutMode.PAIRED,
    max_attempts: Optional[int] = None,
    width: Optional[int] = None,
    extension: Optional[str] = None,
) -> CreatedMigration:
    """
    Create a new uniquely prefixed migration.

    Args:
        directory: Resolved migrations directory (created if missing)
        raw_name: Migration name as typed by the user
        prefix_mode: Numeric or temporal prefix
        layout: Single file or paired up/down folder
        max_attempts: Retry ceiling (default: settings.MAX_ALLOCATION_ATTEMPTS)
        width: Numeric zero-padding (default: settings.NUMERIC_PREFIX_WIDTH)
        extension: Migration file extension (default: settings.MIGRATION_EXTENSION)

    Returns:
        CreatedMigration with the created path(s)

    Raises:
        EmptyNameError: If the name sanitizes to nothing
        DirectoryUnreadableError: If the directory cannot be listed
        AllocationExhaustedError: If no prefix could be claimed within the ceiling
        WriteFailedError, DirectoryCreationError: On write failures
    """
    directory = Path(directory)
    max_attempts = max_attempts or settings.MAX_ALLOCATION_ATTEMPTS
    prefix_mode = PrefixMode(prefix_mode)
    layout = LayoutMode(layout)

    _enter(MigrationState.RESOLVED, f"{directory}, {prefix_mode.value}, {layout.value}")

    try:
        name = sanitize_name(raw_name)
    except MigrationError:
        _enter(MigrationState.FAILED, "empty name")
        raise
    _enter(MigrationState.SANITIZED, name)

    # One clock read per invocation; same-second collisions use suffixes
    created_at = utcnow()
    timestamp = format_timestamp(created_at)

    previous: Optional[Prefix] = None
    for attempt in range(1, max_attempts + 1):
        _enter(MigrationState.ALLOCATING, f"attempt {attempt}/{max_attempts}")
        try:
            entries = scan_migrations(directory, extension)
            if prefix_mode == PrefixMode.TEMPORAL:
                start = previous.suffix + 1 if previous is not None else 0
                prefix = next_temporal_prefix(entries, timestamp, start, max_attempts)
            else:
                floor = previous.value + 1 if previous is not None else 0
                prefix = next_numeric_prefix(entries, width, floor)

            _enter(MigrationState.WRITING, prefix.render())
            try:
                created = write_migration(
                    directory, prefix.render(), name, raw_name, layout, created_at, extension
                )
            except AlreadyExistsError as e:
                _enter(MigrationState.COLLIDING, str(e))
                previous = prefix
                continue

            peers = _find_peers(scan_migrations(directory, extension), prefix, created)
            if peers:
                logger.warning(
                    f"Prefix {prefix} was also claimed by {', '.join(peers)}; retrying"
                )
                remove_migration(created)
                _enter(MigrationState.COLLIDING, f"shared with {', '.join(peers)}")
                previous = prefix
                continue

        except MigrationError as e:
            if e.path is None:
                e.path = directory
            _enter(MigrationState.FAILED, e.kind)
            raise

        _enter(MigrationState.CREATED, str(created.path))
        logger.info(f"Created {layout.value} migration {created.path}")
        return created

    _enter(MigrationState.FAILED, "retry ceiling reached")
    raise AllocationExhaustedError(
        f"Could not allocate a unique {prefix_mode.value} prefix in {directory} "
        f"after {max_attempts} attempts",
        directory,
        attempts=max_attempts,
    )
