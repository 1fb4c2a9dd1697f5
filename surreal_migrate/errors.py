"""
surreal-migrate - Error taxonomy

Every failure the core can report derives from MigrationError. The CLI prints
`kind` and the message; the allocator consumes AlreadyExistsError itself.
"""

from pathlib import Path
from typing import Optional, Union


class MigrationError(Exception):
    """Base exception for migration generation errors"""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None

    @property
    def kind(self) -> str:
        return type(self).__name__


class EmptyNameError(MigrationError):
    """Raised when a migration name sanitizes to nothing"""

    def __init__(self, raw_name: str):
        super().__init__(f"sanitized name is empty (input: {raw_name!r})")
        self.raw_name = raw_name


class DirectoryUnreadableError(MigrationError):
    """Raised when the migrations directory cannot be listed"""
    pass


class InvalidExistingEntryError(MigrationError):
    """Raised for a directory entry that is not a migration; never fatal"""
    pass


class AllocationExhaustedError(MigrationError):
    """Raised when the retry ceiling is reached without a free prefix"""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None, attempts: int = 0):
        super().__init__(message, path)
        self.attempts = attempts


class AlreadyExistsError(MigrationError):
    """Raised when an exclusive create finds its target already present"""
    pass


class WriteFailedError(MigrationError):
    """Raised when a migration file or folder cannot be written"""
    pass


class DirectoryCreationError(MigrationError):
    """Raised when the migrations directory cannot be created"""
    pass


class MigrationSourceError(MigrationError):
    """Raised when a migration source cannot list or read a migration"""
    pass
