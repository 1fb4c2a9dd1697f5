"""
surreal-migrate - Logging Configuration
Human-readable console logs by default, structured JSON in production
"""

import logging
import sys
from typing import Optional, Union

from pythonjsonlogger.json import JsonFormatter

from surreal_migrate.config.settings import get_settings

settings = get_settings()

# Finer than DEBUG; used for per-entry directory scan records
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


def level_for_verbosity(verbosity: int) -> Union[int, str]:
    """
    Map a -v count to a log level.

    Args:
        verbosity: Number of -v flags given on the command line

    Returns:
        The configured LOG_LEVEL for 0, DEBUG for 1, TRACE for 2 or more
    """
    if verbosity <= 0:
        return settings.LOG_LEVEL
    if verbosity == 1:
        return logging.DEBUG
    return TRACE


def _resolve_level(log_level: Union[int, str, None]) -> int:
    if log_level is None:
        log_level = settings.LOG_LEVEL
    if isinstance(log_level, int):
        return log_level
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")
    return level


def setup_logging(
    name: str = "surreal_migrate",
    log_level: Optional[Union[int, str]] = None,
) -> logging.Logger:
    """
    Configure logging for the command line tool.

    Args:
        name: Logger name
        log_level: Level to log at; falls back to settings.LOG_LEVEL

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(log_level))

    # Remove existing handlers
    logger.handlers = []
    # Avoid double logging when root handlers are configured
    logger.propagate = False

    # stdout is reserved for command output (created paths, listings)
    handler = logging.StreamHandler(sys.stderr)

    if settings.ENVIRONMENT == "production":
        # JSON formatter for production (better for log aggregation)
        formatter = JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s", datefmt="%Y-%m-%dT%H:%M:%S"
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Optional: File handler for persistence
    if settings.LOG_DIR:
        import os
        from datetime import datetime

        log_file = os.path.join(settings.LOG_DIR, f"{name}_{datetime.now().strftime('%Y%m%d')}.log")

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Configure root so module loggers without handlers also log to file/console
    root_logger = logging.getLogger()
    root_logger.setLevel(logger.level)
    root_logger.handlers = []
    for handler in logger.handlers:
        root_logger.addHandler(handler)

    return logger


def get_logger(module_name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        module_name: Name of the module (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(module_name)
