"""
Pytest configuration and shared fixtures for surreal-migrate tests.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest

import surreal_migrate.processing.allocator as allocator

# Fixed clock used by temporal tests
FROZEN_NOW = datetime(2025, 3, 14, 15, 9, 26, tzinfo=timezone.utc)
FROZEN_TIMESTAMP = "20250314150926"


@pytest.fixture(autouse=True)
def restore_logging():
    """setup_logging rewires the root logger; undo it after each test."""
    root = logging.getLogger()
    package = logging.getLogger("surreal_migrate")
    saved = (root.handlers[:], root.level, package.handlers[:], package.level, package.propagate)
    yield
    root.handlers = saved[0]
    root.setLevel(saved[1])
    package.handlers = saved[2]
    package.setLevel(saved[3])
    package.propagate = saved[4]


@pytest.fixture
def migrations_dir(tmp_path) -> Path:
    """Return a migrations directory path that does not exist yet."""
    return tmp_path / "migrations"


@pytest.fixture
def frozen_clock(monkeypatch) -> datetime:
    """Pin the allocator clock to FROZEN_NOW."""
    monkeypatch.setattr(allocator, "utcnow", lambda: FROZEN_NOW)
    return FROZEN_NOW


@pytest.fixture
def make_entries(migrations_dir) -> Callable[..., Path]:
    """
    Create existing migrations by name.

    Names ending in .surql become files; other names become paired folders.
    """

    def _make(*names: str) -> Path:
        migrations_dir.mkdir(parents=True, exist_ok=True)
        for name in names:
            path = migrations_dir / name
            if name.endswith(".surql"):
                path.write_text("-- existing\n", encoding="utf-8")
            else:
                path.mkdir()
                (path / "up.surql").write_text("-- up\n", encoding="utf-8")
                (path / "down.surql").write_text("-- down\n", encoding="utf-8")
        return migrations_dir

    return _make
