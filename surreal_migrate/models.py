"""
surreal-migrate - Core data types

Prefixes, layouts, scanned directory entries and creation results.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Hashable, List, Optional, Set, Tuple

# Length of a YYYYMMDDHHMMSS prefix
TIMESTAMP_DIGITS = 14


class PrefixMode(str, Enum):
    """How a new migration is prefixed"""
    NUMERIC = "numeric"  # 000, 001, ...
    TEMPORAL = "temporal"  # YYYYMMDDHHMMSS[_n]


class LayoutMode(str, Enum):
    """How a migration is stored on disk"""
    SINGLE = "single"  # <prefix>_<name>.surql (up only)
    PAIRED = "paired"  # <prefix>_<name>/up.surql + down.surql


class MigrationState(str, Enum):
    """Lifecycle of one `add` invocation"""
    RESOLVED = "resolved"
    SANITIZED = "sanitized"
    ALLOCATING = "allocating"
    COLLIDING = "colliding"
    WRITING = "writing"
    CREATED = "created"
    FAILED = "failed"


@dataclass(frozen=True)
class NumericPrefix:
    value: int
    width: int = 3

    @property
    def key(self) -> Hashable:
        return self.value

    def render(self) -> str:
        # Format spec widens automatically once value needs more digits
        return f"{self.value:0{self.width}d}"

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class TemporalPrefix:
    timestamp: str
    suffix: int = 0

    @property
    def key(self) -> Hashable:
        return (self.timestamp, self.suffix)

    def render(self) -> str:
        if self.suffix:
            return f"{self.timestamp}_{self.suffix}"
        return self.timestamp

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class MigrationEntry:
    """
    One existing item in a migrations directory.

    `digits` is the leading numeric prefix exactly as written on disk.
    `suffix` is only set for timestamp prefixes followed by `_<n>_`; such a
    name is ambiguous (the sanitized name itself may start with digits), so
    `temporal_keys` reports both readings.
    """
    name: str
    path: Path
    kind: LayoutMode
    digits: str
    suffix: Optional[int] = None

    @property
    def value(self) -> int:
        return int(self.digits)

    @property
    def is_temporal(self) -> bool:
        return len(self.digits) == TIMESTAMP_DIGITS

    @property
    def key(self) -> Hashable:
        if self.is_temporal:
            return (self.digits, self.suffix or 0)
        return self.value

    @property
    def label(self) -> str:
        if self.is_temporal:
            return TemporalPrefix(self.digits, self.suffix or 0).render()
        return self.digits

    def temporal_keys(self) -> Set[Tuple[str, int]]:
        if not self.is_temporal:
            return set()
        keys = {(self.digits, 0)}
        if self.suffix is not None:
            keys.add((self.digits, self.suffix))
        return keys


@dataclass(frozen=True)
class Migration:
    """A migration discovered by a migration source"""
    name: str
    kind: LayoutMode


@dataclass
class CreatedMigration:
    """Result of a successful `add`"""
    prefix: str
    name: str
    raw_name: str
    layout: LayoutMode
    path: Path  # the file (single) or folder (paired)
    files: List[Path] = field(default_factory=list)

    @property
    def entry_name(self) -> str:
        return self.path.name
