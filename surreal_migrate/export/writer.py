"""
surreal-migrate - Migration writer

Materializes a migration on disk:
- single: <dir>/<prefix>_<name>.surql
- paired: <dir>/<prefix>_<name>/up.surql and down.surql

Every create is exclusive so a concurrent writer is detected, never
overwritten.
"""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from surreal_migrate.config.settings import DOWN_STEM, UP_STEM, get_settings
from surreal_migrate.errors import (
    AlreadyExistsError,
    DirectoryCreationError,
    MigrationError,
    WriteFailedError,
)
from surreal_migrate.models import CreatedMigration, LayoutMode
from surreal_migrate.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def render_header(raw_name: str, created_at: datetime, direction: Optional[str] = None) -> str:
    """
    Build the comment block written at the top of every migration file.

    Args:
        raw_name: Migration name as typed by the user
        created_at: Creation time
        direction: "up" or "down" for paired files, None for single files

    Returns:
        Header text followed by an empty body line
    """
    # Keep the name on a single comment line
    name = " ".join(raw_name.strip().splitlines())

    lines = [f"-- migration: {name}"]
    if direction:
        lines.append(f"-- direction: {direction}")
    lines.append(f"-- created: {created_at.isoformat(timespec='seconds')}")
    return "\n".join(lines) + "\n\n"


def ensure_directory(directory: Path) -> None:
    """Create the migrations root (and parents) if missing."""
    if directory.is_dir():
        return
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryCreationError(f"Failed to create {directory}: {e}", directory) from e
    logger.debug(f"Created migrations directory {directory}")


def _create_file(path: Path, content: str) -> None:
    try:
        with open(path, "x", encoding="utf-8") as f:
            f.write(content)
    except FileExistsError as e:
        raise AlreadyExistsError(f"{path.name} already exists", path) from e
    except OSError as e:
        raise WriteFailedError(f"Failed to write {path}: {e}", path) from e


def write_migration(
    directory: Union[str, Path],
    prefix: str,
    name: str,
    raw_name: str,
    layout: LayoutMode,
    created_at: datetime,
    extension: Optional[str] = None,
) -> CreatedMigration:
    """
    Create a migration file or folder.

    Args:
        directory: Migrations directory (created if missing)
        prefix: Rendered prefix (e.g. "004" or "20250101120000_1")
        name: Sanitized migration name
        raw_name: Original name, recorded in the header
        layout: Single file or paired folder
        created_at: Creation time recorded in the header
        extension: Migration file extension (default: settings.MIGRATION_EXTENSION)

    Returns:
        CreatedMigration describing what was written

    Raises:
        AlreadyExistsError: If the target file or folder is already present
        WriteFailedError: If writing fails for any other reason
        DirectoryCreationError: If the migrations directory cannot be created
    """
    directory = Path(directory)
    extension = extension or settings.MIGRATION_EXTENSION
    ensure_directory(directory)

    if layout == LayoutMode.SINGLE:
        path = directory / f"{prefix}_{name}{extension}"
        _create_file(path, render_header(raw_name, created_at))
        files = [path]
    else:
        path = directory / f"{prefix}_{name}"
        try:
            path.mkdir()
        except FileExistsError as e:
            raise AlreadyExistsError(f"{path.name} already exists", path) from e
        except OSError as e:
            raise WriteFailedError(f"Failed to create {path}: {e}", path) from e

        files = []
        try:
            for direction in (UP_STEM, DOWN_STEM):
                file_path = path / f"{direction}{extension}"
                _create_file(file_path, render_header(raw_name, created_at, direction=direction))
                files.append(file_path)
        except MigrationError:
            # A half-built folder would still hold the prefix
            shutil.rmtree(path, ignore_errors=True)
            logger.debug(f"Removed incomplete migration {path}")
            raise

    logger.debug(f"Wrote {layout.value} migration {path}")
    return CreatedMigration(
        prefix=prefix,
        name=name,
        raw_name=raw_name,
        layout=layout,
        path=path,
        files=files,
    )


def remove_migration(created: CreatedMigration) -> None:
    """
    Delete a migration this process just created.

    Used when another process turned out to hold the same prefix.
    """
    try:
        if created.layout == LayoutMode.PAIRED:
            shutil.rmtree(created.path)
        else:
            created.path.unlink()
    except OSError as e:
        raise WriteFailedError(f"Failed to remove {created.path}: {e}", created.path) from e
    logger.debug(f"Removed {created.path}")
