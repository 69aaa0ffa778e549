# backend/services/backup.py
"""
Backup Manager

Rolling snapshots of the record store file:
- snapshot() copies the live store with SQLite's online backup API, so
  pages still in the WAL are included and writers are not blocked
- prune() keeps the newest N snapshots (never fewer than one)

Snapshot names embed a sortable UTC timestamp, so lexicographic order of
file names is chronological order.
"""

import logging
import os
import re
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, List, Optional, Union

from config import Settings, get_settings
from errors import BackupError

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "store-backup-"
SNAPSHOT_SUFFIX = ".db"
TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S%fZ"
SNAPSHOT_PATTERN = re.compile(r"^store-backup-(\d{8}T\d{12}Z)\.db$")


class BackupManager:
    """Creates and prunes timestamped copies of the store file."""

    def __init__(
        self,
        store_path: Optional[Union[str, Path]] = None,
        backups_dir: Optional[Union[str, Path]] = None,
        retain_count: Optional[int] = None,
        settings: Optional[Settings] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        settings = settings or get_settings()
        self.store_path = Path(store_path or settings.database_path)
        self.backups_dir = Path(backups_dir or settings.backups_dir)
        self.retain_count = settings.backup_retain_count if retain_count is None else retain_count
        self._now = now or datetime.utcnow

    def ensure_backups_dir(self) -> Path:
        """
        Create the backups directory.

        Raises:
            BackupError: directory cannot be created
        """
        try:
            self.backups_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupError(f"Cannot create backups directory: {e}", path=str(self.backups_dir)) from e
        return self.backups_dir

    def _snapshot_path(self) -> Path:
        stamp = self._now()
        path = self.backups_dir / f"{SNAPSHOT_PREFIX}{stamp.strftime(TIMESTAMP_FORMAT)}{SNAPSHOT_SUFFIX}"
        # Two snapshots inside one clock tick must still get distinct, ordered names
        while path.exists():
            stamp += timedelta(microseconds=1)
            path = self.backups_dir / f"{SNAPSHOT_PREFIX}{stamp.strftime(TIMESTAMP_FORMAT)}{SNAPSHOT_SUFFIX}"
        return path

    def snapshot(self) -> Path:
        """
        Copy the store to backups/store-backup-<timestamp>.db.

        Returns:
            Path of the new snapshot

        Raises:
            BackupError: store missing, or the copy failed
        """
        if not self.store_path.is_file():
            raise BackupError(f"Store file not found: {self.store_path}", path=str(self.store_path))

        self.ensure_backups_dir()
        target = self._snapshot_path()
        partial = target.with_name(f".{target.name}.partial")

        try:
            source = sqlite3.connect(f"file:{self.store_path}?mode=ro", uri=True)
            try:
                destination = sqlite3.connect(str(partial))
                try:
                    source.backup(destination)
                finally:
                    destination.close()
            finally:
                source.close()
            os.replace(partial, target)
        except (sqlite3.Error, OSError) as e:
            if partial.exists():
                partial.unlink()
            raise BackupError(f"Snapshot failed: {e}", path=str(target)) from e

        size_mb = target.stat().st_size / (1024 * 1024)
        logger.info(f"Store snapshot saved: {target.name} ({size_mb:.2f} MB)")
        return target

    def list_snapshots(self) -> List[Path]:
        """Snapshots oldest first."""
        if not self.backups_dir.is_dir():
            return []
        return sorted(
            (p for p in self.backups_dir.iterdir() if p.is_file() and SNAPSHOT_PATTERN.match(p.name)),
            key=lambda p: p.name,
        )

    def latest_snapshot(self) -> Optional[Path]:
        snapshots = self.list_snapshots()
        return snapshots[-1] if snapshots else None

    def prune(self, retain_count: Optional[int] = None) -> List[Path]:
        """
        Delete the oldest snapshots beyond retain_count.

        A retain_count below 1 is treated as 1, so the newest snapshot always
        survives.

        Returns:
            Paths that were deleted
        """
        retain = self.retain_count if retain_count is None else retain_count
        retain = max(1, retain)

        snapshots = self.list_snapshots()
        excess = snapshots[:-retain] if len(snapshots) > retain else []

        deleted = []
        for path in excess:
            try:
                path.unlink()
                deleted.append(path)
            except OSError as e:
                logger.warning(f"Failed to delete old snapshot {path.name}: {e}")

        if deleted:
            logger.info(f"Pruned {len(deleted)} old snapshots, keeping {min(retain, len(snapshots))}")
        return deleted

    def run(self) -> Path:
        """Snapshot then prune; the scheduled daily job."""
        path = self.snapshot()
        self.prune()
        return path


# Singleton instance
_backup_manager: Optional[BackupManager] = None


def get_backup_manager() -> BackupManager:
    """Get singleton BackupManager for the configured store."""
    global _backup_manager
    if _backup_manager is None:
        _backup_manager = BackupManager()
    return _backup_manager
