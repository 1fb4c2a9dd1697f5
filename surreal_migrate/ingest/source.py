"""
Migration sources

Read-only access to existing migrations. A source lists migrations in the
order they should be applied and loads their up/down scripts; it never talks
to a database.

Layouts understood by every source:
- <prefix>_<name>.surql     single file, up script only
- <prefix>_<name>/          paired folder with up.surql and down.surql

Entries whose names do not start with an ASCII digit are ignored.
"""

from abc import ABC, abstractmethod
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Iterable, List, Optional, Union

from surreal_migrate.config.settings import DOWN_STEM, UP_STEM, get_settings
from surreal_migrate.errors import MigrationSourceError
from surreal_migrate.models import LayoutMode, Migration
from surreal_migrate.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


class MigrationSource(ABC):
    """
    Abstract base class for migration sources.

    Callers use list() to discover migrations, then get_up() / get_down() to
    load their scripts.
    """

    @abstractmethod
    def list(self) -> List[Migration]:
        """
        List available migrations.

        Returns:
            Migrations sorted by name, which is the order to apply them in
        """
        pass

    @abstractmethod
    def get_up(self, migration: Migration) -> str:
        """
        Load the up script of a migration.

        Raises:
            MigrationSourceError: If the script cannot be read
        """
        pass

    @abstractmethod
    def get_down(self, migration: Migration) -> Optional[str]:
        """
        Load the down script of a migration.

        Returns:
            Script text for paired migrations, None for single-file ones

        Raises:
            MigrationSourceError: If the script cannot be read
        """
        pass


def _collect(items: Iterable[Union[Path, Traversable]]) -> List[Migration]:
    migrations = []
    for item in items:
        name = item.name
        if not name[:1].isdigit() or not name[:1].isascii():
            continue
        kind = LayoutMode.PAIRED if item.is_dir() else LayoutMode.SINGLE
        migrations.append(Migration(name=name, kind=kind))
    return sorted(migrations, key=lambda m: m.name)


def _paired_file(direction: str) -> str:
    return f"{direction}{settings.MIGRATION_EXTENSION}"


class DiskSource(MigrationSource):
    """Migrations stored in a directory on the local filesystem."""

    def __init__(self, path: Union[str, Path]):
        self.source = Path(path)

    def list(self) -> List[Migration]:
        try:
            migrations = _collect(self.source.iterdir())
        except OSError as e:
            raise MigrationSourceError(f"Failed to list {self.source}: {e}", self.source) from e
        logger.debug(f"Discovered {len(migrations)} migration(s) in {self.source}")
        return migrations

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise MigrationSourceError(f"Failed to read {path}: {e}", path) from e

    def get_up(self, migration: Migration) -> str:
        path = self.source / migration.name
        if migration.kind == LayoutMode.PAIRED:
            path = path / _paired_file(UP_STEM)
        return self._read(path)

    def get_down(self, migration: Migration) -> Optional[str]:
        if migration.kind == LayoutMode.SINGLE:
            return None
        return self._read(self.source / migration.name / _paired_file(DOWN_STEM))


class ResourceSource(MigrationSource):
    """
    Migrations shipped as package data, read through importlib.resources.

    Usage:
        source = ResourceSource("myapp", "migrations")
        for migration in source.list():
            print(migration.name, len(source.get_up(migration)))
    """

    def __init__(self, package: str, subdir: str = "migrations"):
        self.package = package
        self.subdir = subdir

    def _root(self) -> Traversable:
        try:
            return resources.files(self.package).joinpath(self.subdir)
        except (ModuleNotFoundError, TypeError) as e:
            raise MigrationSourceError(f"Package not found: {self.package}: {e}") from e

    def list(self) -> List[Migration]:
        root = self._root()
        if not root.is_dir():
            raise MigrationSourceError(f"No {self.subdir}/ directory in package {self.package}")
        return _collect(root.iterdir())

    def _read(self, item: Traversable) -> str:
        try:
            return item.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise MigrationSourceError(
                f"Failed to read {item.name} from package {self.package}: {e}"
            ) from e

    def get_up(self, migration: Migration) -> str:
        item = self._root().joinpath(migration.name)
        if migration.kind == LayoutMode.PAIRED:
            item = item.joinpath(_paired_file(UP_STEM))
        return self._read(item)

    def get_down(self, migration: Migration) -> Optional[str]:
        if migration.kind == LayoutMode.SINGLE:
            return None
        return self._read(self._root().joinpath(migration.name).joinpath(_paired_file(DOWN_STEM)))
