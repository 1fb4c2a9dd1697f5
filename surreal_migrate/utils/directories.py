"""Resolve which directory new migrations go to."""

from pathlib import Path
from typing import Optional, Union

from surreal_migrate.config.settings import get_settings
from surreal_migrate.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def resolve_migrations_dir(
    dir_override: Optional[Union[str, Path]] = None,
    cwd: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Pick the migrations directory.

    Order:
    1. An explicit --dir
    2. The current directory or its nearest ancestor named like MIGRATIONS_DIR
       (case-insensitive), when invoked from inside one
    3. <cwd>/MIGRATIONS_DIR

    Nothing is created here; the writer creates the directory on first use.

    Args:
        dir_override: Directory given on the command line
        cwd: Working directory (default: Path.cwd())

    Returns:
        Absolute path of the migrations directory
    """
    cwd = Path(cwd) if cwd is not None else Path.cwd()

    if dir_override is not None:
        directory = Path(dir_override)
        if not directory.is_absolute():
            directory = cwd / directory
        logger.debug(f"Using overridden migrations dir {directory}")
        return directory

    cwd = cwd.resolve()
    target_name = Path(settings.MIGRATIONS_DIR).name.lower()
    for candidate in (cwd, *cwd.parents):
        if candidate.name.lower() == target_name:
            logger.debug(f"Running inside migrations dir {candidate}")
            return candidate

    directory = cwd / settings.MIGRATIONS_DIR
    logger.debug(f"Using default migrations dir {directory}")
    return directory
