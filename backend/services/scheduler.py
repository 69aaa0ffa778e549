# backend/services/scheduler.py
"""
Automation Scheduler

Drives the discovery engine and backup manager on their cadences:
- One discovery pass at start, then one every discovery_interval_hours
- One store backup per day at backup_time (local HH:MM)
- The daily quota is reset when the local date changes, checked before
  every pass

Discovery never overlaps itself (the engine drops the second trigger);
backups run in a worker thread and may overlap a pass.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Tuple

from config import Settings, get_settings
from errors import BackupError, ConfigurationError
from models.automation import DiscoveryRunLog, RunStatus
from services.backup import BackupManager, get_backup_manager
from services.discovery import DiscoveryEngine, get_discovery_engine
from services.run_logger import timed
from utils.rate_limiter import DailyQuota

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def parse_backup_time(value: str) -> Tuple[int, int]:
    """
    Parse "HH:MM" into (hour, minute).

    Raises:
        ConfigurationError: malformed or out of range
    """
    try:
        hour_text, minute_text = value.strip().split(":")
        hour, minute = int(hour_text), int(minute_text)
    except (AttributeError, ValueError):
        raise ConfigurationError(f"Invalid backup time '{value}', expected HH:MM", setting="backup_time")

    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ConfigurationError(f"Backup time '{value}' out of range", setting="backup_time")
    return hour, minute


def next_backup_at(now: datetime, backup_time: str) -> datetime:
    """Next local occurrence of backup_time strictly after now."""
    hour, minute = parse_backup_time(backup_time)
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


@dataclass
class SchedulerState:
    """Snapshot of what the scheduler has done and will do next."""
    started: bool = False
    last_quota_reset: Optional[str] = None
    saved_today: int = 0
    last_run: Optional[DiscoveryRunLog] = None
    next_discovery_at: Optional[datetime] = None
    next_backup_at: Optional[datetime] = None
    last_backup_at: Optional[datetime] = None
    last_backup_path: Optional[str] = None
    last_backup_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started": self.started,
            "lastQuotaReset": self.last_quota_reset,
            "savedToday": self.saved_today,
            "lastRun": self.last_run.to_dict() if self.last_run else None,
            "nextDiscoveryAt": self.next_discovery_at.isoformat() if self.next_discovery_at else None,
            "nextBackupAt": self.next_backup_at.isoformat() if self.next_backup_at else None,
            "lastBackupAt": self.last_backup_at.isoformat() if self.last_backup_at else None,
            "lastBackupPath": self.last_backup_path,
            "lastBackupError": self.last_backup_error,
        }


class Scheduler:
    """
    Owns the discovery and backup loops.

    Time sources are injectable: now() returns local wall-clock time and
    sleep(seconds) is awaited between cycles.
    """

    def __init__(
        self,
        engine: DiscoveryEngine,
        backup_manager: BackupManager,
        quota: Optional[DailyQuota] = None,
        settings: Optional[Settings] = None,
        now: Optional[Callable[[], datetime]] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.engine = engine
        self.backup_manager = backup_manager
        self.settings = settings or get_settings()
        self.quota = quota or DailyQuota(self.settings.daily_limit)
        self._now = now or datetime.now
        self._sleep = sleep or asyncio.sleep

        # Fail fast on a bad backup time rather than inside the loop
        parse_backup_time(self.settings.backup_time)

        self.state = SchedulerState(last_quota_reset=self.quota.last_reset_date)
        self._shutdown = False
        self._loops: Set[asyncio.Task] = set()
        self._in_flight: Set[asyncio.Task] = set()
        self._manual_task: Optional[asyncio.Task] = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start both loops; the first discovery pass runs immediately."""
        if self.state.started:
            logger.debug("Scheduler already started")
            return

        self._shutdown = False
        self.engine.clear_stop()
        self._loops = {
            asyncio.create_task(self._discovery_loop()),
            asyncio.create_task(self._backup_loop()),
        }
        self.state.started = True
        logger.info(
            f"Scheduler started: discovery every {self.settings.discovery_interval_hours}h, "
            f"backup daily at {self.settings.backup_time}, quota {self.quota.daily_limit}/day"
        )

    async def stop(self) -> None:
        """
        Graceful shutdown.

        Signals the engine to stop after its current candidate, cancels the
        loops while they sleep and waits for in-flight work to finish.
        """
        self._shutdown = True
        self.engine.request_stop()

        for task in list(self._loops):
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._loops.clear()

        if self._in_flight:
            logger.info(f"Waiting for {len(self._in_flight)} in-flight jobs")
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
            self._in_flight.clear()

        self.state.started = False
        logger.info("Scheduler stopped")

    # -------------------------------------------------------------------------
    # Loops
    # -------------------------------------------------------------------------

    async def _discovery_loop(self) -> None:
        interval = max(0.0, self.settings.discovery_interval_hours) * 3600

        while not self._shutdown:
            # Shielded so cancelling the loop never interrupts a candidate mid-write
            task = self._track(self.trigger_discovery())
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Discovery pass crashed: {e}", exc_info=True)

            self.state.next_discovery_at = self._now() + timedelta(seconds=interval)
            try:
                await self._sleep(interval)
            except asyncio.CancelledError:
                break

        logger.info("Discovery loop ended")

    async def _backup_loop(self) -> None:
        while not self._shutdown:
            now = self._now()
            due = next_backup_at(now, self.settings.backup_time)
            self.state.next_backup_at = due

            try:
                await self._sleep((due - now).total_seconds())
            except asyncio.CancelledError:
                break

            if self._shutdown:
                break

            task = self._track(self.trigger_backup())
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.state.last_backup_error = str(e)
                logger.error(f"Scheduled backup crashed: {e}", exc_info=True)

        logger.info("Backup loop ended")

    def _track(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    # -------------------------------------------------------------------------
    # Triggers
    # -------------------------------------------------------------------------

    async def trigger_discovery(self) -> DiscoveryRunLog:
        """
        Run one discovery pass now.

        Returns a skipped log if a pass is already running.
        """
        if self.quota.reset_if_new_day():
            self.state.last_quota_reset = self.quota.last_reset_date

        log = await self.engine.run_discovery_pass(self.quota)

        self.state.saved_today = self.quota.saved_today
        if log.status != RunStatus.SKIPPED:
            self.state.last_run = log
        else:
            logger.info(f"Discovery pass skipped: {log.reason}")
        return log

    def start_discovery_task(self) -> bool:
        """
        Kick off a pass in the background for manual triggers.

        Returns:
            False if a pass is already running, so the trigger was dropped
        """
        if self._shutdown:
            return False
        manual_pending = self._manual_task is not None and not self._manual_task.done()
        if self.engine.is_running or manual_pending:
            logger.info("Manual discovery trigger dropped: a pass is already running")
            return False

        self._manual_task = self._track(self.trigger_discovery())
        return True

    @timed("store backup")
    async def trigger_backup(self) -> Optional[Path]:
        """
        Snapshot and prune the store now.

        Returns:
            Snapshot path, or None if the backup failed (logged)
        """
        try:
            path = await asyncio.to_thread(self.backup_manager.run)
        except BackupError as e:
            self.state.last_backup_error = e.message
            logger.error(f"Backup failed: {e.message}")
            return None

        self.state.last_backup_at = self._now()
        self.state.last_backup_path = str(path)
        self.state.last_backup_error = None
        return path

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def status(self) -> Dict[str, Any]:
        status = self.state.to_dict()
        status["quota"] = self.quota.get_status()
        status["engine"] = self.engine.get_status()
        latest = self.backup_manager.latest_snapshot()
        status["latestSnapshot"] = latest.name if latest else None
        return status


# Singleton instance
_scheduler: Optional[Scheduler] = None


def get_scheduler() -> Scheduler:
    """Get singleton Scheduler wired to the configured engine and backup manager."""
    global _scheduler
    if _scheduler is None:
        _scheduler = Scheduler(
            engine=get_discovery_engine(),
            backup_manager=get_backup_manager(),
        )
    return _scheduler
