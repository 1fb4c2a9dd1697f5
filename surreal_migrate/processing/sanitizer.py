"""
surreal-migrate - Migration name sanitization

Turns free-form user text into a filename fragment made of [A-Za-z0-9_]:

1. Trim surrounding whitespace
2. Replace whitespace runs with a single underscore
3. Drop every other character outside [A-Za-z0-9_]
4. Collapse repeated underscores
5. Strip leading/trailing underscores
"""

import string

from surreal_migrate.errors import EmptyNameError
from surreal_migrate.utils.logging import TRACE, get_logger

logger = get_logger(__name__)

SEPARATOR = "_"
ALLOWED_CHARS = frozenset(string.ascii_letters + string.digits)


def sanitize_name(raw: str) -> str:
    """
    Sanitize a migration name into a filesystem-safe component.

    Args:
        raw: Name as typed by the user (e.g. "Create users")

    Returns:
        Sanitized name (e.g. "Create_users")

    Raises:
        EmptyNameError: If nothing is left after cleaning
    """
    chars = []
    for ch in raw.strip():
        if ch.isspace() or ch == SEPARATOR:
            # Never lead with, or repeat, a separator
            if chars and chars[-1] != SEPARATOR:
                chars.append(SEPARATOR)
        elif ch in ALLOWED_CHARS:
            chars.append(ch)

    sanitized = "".join(chars).rstrip(SEPARATOR)
    logger.log(TRACE, f"Sanitized {raw!r} -> {sanitized!r}")

    if not sanitized:
        raise EmptyNameError(raw)
    return sanitized
