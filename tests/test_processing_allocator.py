from datetime import datetime, timedelta, timezone

import pytest

import surreal_migrate.processing.allocator as allocator
from surreal_migrate.errors import (
    AllocationExhaustedError,
    DirectoryCreationError,
    EmptyNameError,
)
from surreal_migrate.export.writer import write_migration
from surreal_migrate.models import LayoutMode, PrefixMode
from surreal_migrate.processing.scanner import find_duplicate_prefixes, scan_migrations

from conftest import FROZEN_TIMESTAMP


# --- numeric -----------------------------------------------------------------


def test_numeric_empty_directory_yields_000(migrations_dir):
    created = allocator.create_migration(migrations_dir, "init", layout=LayoutMode.SINGLE)

    assert created.prefix == "000"
    assert created.path == migrations_dir / "000_init.surql"


def test_numeric_uses_max_plus_one_not_gap(make_entries):
    directory = make_entries("000_a.surql", "001_b.surql", "003_c.surql")

    created = allocator.create_migration(directory, "d", layout=LayoutMode.SINGLE)

    assert created.prefix == "004"


def test_numeric_counts_paired_folders(make_entries):
    directory = make_entries("000_a", "001_b")

    created = allocator.create_migration(directory, "c")

    assert created.prefix == "002"
    assert created.path == directory / "002_c"


def test_numeric_prefix_widens_past_999(make_entries):
    directory = make_entries("998_a.surql", "999_b.surql")

    first = allocator.create_migration(directory, "c", layout=LayoutMode.SINGLE)
    second = allocator.create_migration(directory, "d", layout=LayoutMode.SINGLE)

    assert first.prefix == "1000"
    assert second.prefix == "1001"
    # existing files are never renamed
    assert (directory / "998_a.surql").exists()


def test_next_numeric_prefix_respects_floor():
    prefix = allocator.next_numeric_prefix([], width=3, floor=5)

    assert prefix.render() == "005"


def test_next_numeric_prefix_custom_width():
    assert allocator.next_numeric_prefix([], width=4).render() == "0000"


# --- temporal ----------------------------------------------------------------


def test_format_timestamp_is_utc():
    moment = datetime(2025, 3, 14, 16, 9, 26, tzinfo=timezone(timedelta(hours=1)))

    assert allocator.format_timestamp(moment) == FROZEN_TIMESTAMP


def test_temporal_same_second_gets_suffix(migrations_dir, frozen_clock):
    first = allocator.create_migration(
        migrations_dir, "create users", prefix_mode=PrefixMode.TEMPORAL, layout=LayoutMode.SINGLE
    )
    second = allocator.create_migration(
        migrations_dir, "create posts", prefix_mode=PrefixMode.TEMPORAL, layout=LayoutMode.SINGLE
    )

    assert first.prefix == FROZEN_TIMESTAMP
    assert second.prefix == f"{FROZEN_TIMESTAMP}_1"
    assert (migrations_dir / f"{FROZEN_TIMESTAMP}_create_users.surql").exists()
    assert (migrations_dir / f"{FROZEN_TIMESTAMP}_1_create_posts.surql").exists()


def test_temporal_same_name_same_second(migrations_dir, frozen_clock):
    names = [
        allocator.create_migration(migrations_dir, "x", prefix_mode=PrefixMode.TEMPORAL).prefix
        for _ in range(3)
    ]

    assert names == [FROZEN_TIMESTAMP, f"{FROZEN_TIMESTAMP}_1", f"{FROZEN_TIMESTAMP}_2"]


def test_temporal_ignores_other_seconds(make_entries, frozen_clock):
    directory = make_entries("20250314150925_old.surql", "20250314150927_future.surql")

    created = allocator.create_migration(
        directory, "now", prefix_mode=PrefixMode.TEMPORAL, layout=LayoutMode.SINGLE
    )

    assert created.prefix == FROZEN_TIMESTAMP


def test_temporal_suffix_ceiling(make_entries, frozen_clock):
    names = [f"{FROZEN_TIMESTAMP}_taken.surql"]
    names += [f"{FROZEN_TIMESTAMP}_{n}_taken.surql" for n in range(1, 5)]
    directory = make_entries(*names)
    before = sorted(p.name for p in directory.iterdir())

    with pytest.raises(AllocationExhaustedError):
        allocator.create_migration(
            directory, "taken", prefix_mode=PrefixMode.TEMPORAL, max_attempts=5
        )

    assert sorted(p.name for p in directory.iterdir()) == before


def test_next_temporal_prefix_skips_taken_suffixes(make_entries):
    directory = make_entries(
        f"{FROZEN_TIMESTAMP}_a.surql",
        f"{FROZEN_TIMESTAMP}_1_b.surql",
        f"{FROZEN_TIMESTAMP}_3_c",
    )

    prefix = allocator.next_temporal_prefix(scan_migrations(directory), FROZEN_TIMESTAMP)

    assert prefix.suffix == 2
    assert prefix.render() == f"{FROZEN_TIMESTAMP}_2"


# --- layouts -----------------------------------------------------------------


def test_paired_layout_is_default(migrations_dir):
    created = allocator.create_migration(migrations_dir, "Create users")

    folder = migrations_dir / "000_Create_users"
    assert created.path == folder
    assert folder.is_dir()
    assert (folder / "up.surql").is_file()
    assert (folder / "down.surql").is_file()
    assert created.files == [folder / "up.surql", folder / "down.surql"]


def test_single_layout_creates_only_a_file(migrations_dir):
    created = allocator.create_migration(migrations_dir, "Create users", layout=LayoutMode.SINGLE)

    assert [p.name for p in migrations_dir.iterdir()] == ["000_Create_users.surql"]
    assert created.files == [migrations_dir / "000_Create_users.surql"]


def test_prefix_mode_accepts_plain_strings(migrations_dir, frozen_clock):
    created = allocator.create_migration(migrations_dir, "x", prefix_mode="temporal", layout="single")

    assert created.prefix == FROZEN_TIMESTAMP
    assert created.layout == LayoutMode.SINGLE


# --- errors and races --------------------------------------------------------


def test_empty_name_aborts_before_any_write(migrations_dir):
    with pytest.raises(EmptyNameError):
        allocator.create_migration(migrations_dir, '"<>|')

    assert not migrations_dir.exists()


def test_directory_creation_failure(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(DirectoryCreationError):
        allocator.create_migration(blocker / "migrations", "x")


def test_same_name_race_retries_next_prefix(migrations_dir, monkeypatch):
    """Another process creates our exact file between our scan and our create."""
    real_write = allocator.write_migration
    calls = []

    def racing_write(directory, prefix, name, raw_name, layout, created_at, extension=None):
        if not calls:
            write_migration(directory, prefix, name, raw_name, layout, created_at, extension)
        calls.append(prefix)
        return real_write(directory, prefix, name, raw_name, layout, created_at, extension)

    monkeypatch.setattr(allocator, "write_migration", racing_write)

    created = allocator.create_migration(migrations_dir, "users", layout=LayoutMode.SINGLE)

    assert calls == ["000", "001"]
    assert created.prefix == "001"
    assert sorted(p.name for p in migrations_dir.iterdir()) == ["000_users.surql", "001_users.surql"]


def test_different_name_race_backs_off(migrations_dir, monkeypatch):
    """Another process claims the same prefix under another name."""
    real_write = allocator.write_migration
    raced = []

    def racing_write(directory, prefix, name, raw_name, layout, created_at, extension=None):
        if not raced:
            raced.append(
                write_migration(directory, prefix, "other", "other", LayoutMode.SINGLE, created_at)
            )
        return real_write(directory, prefix, name, raw_name, layout, created_at, extension)

    monkeypatch.setattr(allocator, "write_migration", racing_write)

    created = allocator.create_migration(migrations_dir, "mine")

    assert created.prefix == "001"
    assert sorted(p.name for p in migrations_dir.iterdir()) == ["000_other.surql", "001_mine"]
    assert find_duplicate_prefixes(scan_migrations(migrations_dir)) == {}


def test_temporal_race_moves_to_next_suffix(migrations_dir, frozen_clock, monkeypatch):
    real_write = allocator.write_migration
    raced = []

    def racing_write(directory, prefix, name, raw_name, layout, created_at, extension=None):
        if not raced:
            raced.append(
                write_migration(directory, prefix, "other", "other", LayoutMode.SINGLE, created_at)
            )
        return real_write(directory, prefix, name, raw_name, layout, created_at, extension)

    monkeypatch.setattr(allocator, "write_migration", racing_write)

    created = allocator.create_migration(
        migrations_dir, "mine", prefix_mode=PrefixMode.TEMPORAL, layout=LayoutMode.SINGLE
    )

    assert created.prefix == f"{FROZEN_TIMESTAMP}_1"
    assert sorted(p.name for p in migrations_dir.iterdir()) == [
        f"{FROZEN_TIMESTAMP}_1_mine.surql",
        f"{FROZEN_TIMESTAMP}_other.surql",
    ]


def test_numeric_retry_ceiling_never_overwrites(make_entries, monkeypatch):
    """A stale view of the directory makes every candidate collide."""
    directory = make_entries(*[f"{n:03d}_users.surql" for n in range(5)])
    monkeypatch.setattr(allocator, "scan_migrations", lambda *args, **kwargs: [])

    with pytest.raises(AllocationExhaustedError) as exc:
        allocator.create_migration(directory, "users", layout=LayoutMode.SINGLE, max_attempts=5)

    assert exc.value.attempts == 5
    assert exc.value.path == directory
    assert len(list(directory.iterdir())) == 5
    assert all(p.read_text() == "-- existing\n" for p in directory.iterdir())


def test_default_ceiling_comes_from_settings(make_entries, monkeypatch):
    directory = make_entries(*[f"{n:03d}_users.surql" for n in range(3)])
    monkeypatch.setattr(allocator, "scan_migrations", lambda *args, **kwargs: [])
    monkeypatch.setattr(allocator.settings, "MAX_ALLOCATION_ATTEMPTS", 3)

    with pytest.raises(AllocationExhaustedError):
        allocator.create_migration(directory, "users", layout=LayoutMode.SINGLE)
