# tests/backend/test_backup.py
"""
Tests for store snapshots and retention
"""

import sqlite3
from datetime import datetime, timedelta

import pytest

from errors import BackupError
from services.backup import BackupManager


class SteppingClock:
    """Returns a time one day later on every call."""

    def __init__(self, start: datetime):
        self.current = start - timedelta(days=1)

    def __call__(self) -> datetime:
        self.current += timedelta(days=1)
        return self.current


@pytest.fixture
def populated_store(store):
    store.upsert({"brand": "Canon", "model": "EOS R5"})
    store.upsert({"brand": "Nikon", "model": "Z9"})
    return store


def make_manager(settings, retain=7, clock=None):
    return BackupManager(
        store_path=settings.database_path,
        backups_dir=settings.backups_dir,
        retain_count=retain,
        settings=settings,
        now=clock or SteppingClock(datetime(2024, 5, 1, 3, 0)),
    )


class TestSnapshot:
    """Tests for snapshot()"""

    def test_snapshot_contains_store_rows(self, settings, populated_store):
        manager = make_manager(settings)

        path = manager.snapshot()

        assert path.name == "store-backup-20240501T030000000000Z.db"
        with sqlite3.connect(str(path)) as conn:
            count = conn.execute("SELECT COUNT(*) FROM cameras").fetchone()[0]
        assert count == 2

    def test_missing_store_raises(self, settings, tmp_path):
        manager = BackupManager(
            store_path=tmp_path / "nope.db",
            backups_dir=tmp_path / "backups",
            settings=settings,
        )

        with pytest.raises(BackupError) as exc_info:
            manager.snapshot()
        assert exc_info.value.recoverable is False

    def test_uncreatable_backups_dir_raises(self, settings, populated_store, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        manager = BackupManager(
            store_path=settings.database_path,
            backups_dir=blocker / "backups",
            settings=settings,
        )

        with pytest.raises(BackupError):
            manager.ensure_backups_dir()

    def test_same_instant_gets_distinct_names(self, settings, populated_store):
        fixed = datetime(2024, 5, 1, 3, 0)
        manager = make_manager(settings, clock=lambda: fixed)

        first = manager.snapshot()
        second = manager.snapshot()

        assert first != second
        assert first.name < second.name


class TestPrune:
    """Tests for prune()"""

    def test_ten_snapshots_pruned_to_seven(self, settings, populated_store):
        manager = make_manager(settings)
        created = [manager.snapshot() for _ in range(10)]

        deleted = manager.prune(7)

        remaining = manager.list_snapshots()
        assert len(remaining) == 7
        assert deleted == created[:3]
        assert remaining == created[3:]
        assert manager.latest_snapshot() == created[-1]

    def test_zero_retain_keeps_newest(self, settings, populated_store):
        manager = make_manager(settings)
        created = [manager.snapshot() for _ in range(3)]

        manager.prune(0)

        assert manager.list_snapshots() == [created[-1]]

    def test_unrelated_files_untouched(self, settings, populated_store):
        manager = make_manager(settings, retain=1)
        manager.snapshot()
        manager.snapshot()
        notes = manager.backups_dir / "README.txt"
        notes.write_text("keep me")

        manager.prune()

        assert notes.exists()
        assert len(manager.list_snapshots()) == 1

    def test_run_snapshots_then_prunes(self, settings, populated_store):
        manager = make_manager(settings, retain=2)
        for _ in range(4):
            manager.run()

        assert len(manager.list_snapshots()) == 2

    def test_empty_directory(self, settings):
        manager = make_manager(settings)
        assert manager.list_snapshots() == []
        assert manager.latest_snapshot() is None
        assert manager.prune() == []
