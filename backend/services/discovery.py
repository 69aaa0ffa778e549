# backend/services/discovery.py
"""
Camera Discovery Engine

Walks a candidate catalog, skips cameras already in the vault, and for new
ones acquires an image and writes the record, subject to the daily quota.

- Only one pass runs at a time; overlapping triggers are dropped, not queued
- Candidates are processed sequentially with a politeness delay
- A failing candidate is retried a bounded number of times, then abandoned
- Every pass leaves an audit row, a run report and an attribution report
"""

import asyncio
import logging
import threading
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from config import Settings, get_settings
from errors import CameraVaultError
from models.automation import (
    AcquiredImage,
    CameraCandidate,
    DiscoveryRunLog,
    ImageSource,
    RunStatus,
)
from services.camera_adapter import adapt_candidate
from services.catalog import CandidateCatalog, get_catalog
from services.image_acquirer import ImageAcquirer, get_image_acquirer
from services.record_store import RecordStore, get_record_store
from services.reporting import write_attribution_report, write_run_report
from services.run_logger import RunLogger
from utils.rate_limiter import DailyQuota

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class EngineState(str, Enum):
    """Discovery engine state"""
    IDLE = "idle"
    RUNNING = "running"


def dedupe_candidates(candidates: List[CameraCandidate]) -> List[CameraCandidate]:
    """Drop repeated (brand, model) pairs, keeping the first occurrence."""
    seen: Set[Tuple[str, str]] = set()
    unique = []
    for candidate in candidates:
        if candidate.key in seen:
            logger.debug(f"Duplicate candidate {candidate.label} dropped")
            continue
        seen.add(candidate.key)
        unique.append(candidate)
    return unique


class DiscoveryEngine:
    """
    Discovery pass runner.

    The run guard is a non-blocking lock acquire, so a trigger that arrives
    mid-run returns a skipped log immediately instead of waiting.
    """

    def __init__(
        self,
        store: RecordStore,
        acquirer: ImageAcquirer,
        catalog: CandidateCatalog,
        settings: Optional[Settings] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.store = store
        self.acquirer = acquirer
        self.catalog = catalog
        self.settings = settings or get_settings()
        self._sleep = sleep or asyncio.sleep

        self._run_lock = threading.Lock()
        self._stop = threading.Event()
        self.state = EngineState.IDLE
        self.current_run: Optional[DiscoveryRunLog] = None
        self.last_run: Optional[DiscoveryRunLog] = None

    # -------------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def request_stop(self) -> None:
        """Stop after the current candidate; later passes return immediately."""
        self._stop.set()

    def clear_stop(self) -> None:
        self._stop.clear()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    # -------------------------------------------------------------------------
    # Discovery pass
    # -------------------------------------------------------------------------

    async def run_discovery_pass(self, quota: DailyQuota) -> DiscoveryRunLog:
        """
        Run one discovery pass.

        Args:
            quota: today's quota; consumed once per saved camera

        Returns:
            The finalized DiscoveryRunLog. Never raises for per-candidate
            failures; those are counted in the log.
        """
        log = DiscoveryRunLog()

        if not self._run_lock.acquire(blocking=False):
            log.reason = "discovery already running"
            logger.info("Discovery trigger dropped: a pass is already running")
            return log.finalize(RunStatus.SKIPPED)

        try:
            if self._stop.is_set():
                log.reason = "shutting down"
                return log.finalize(RunStatus.SKIPPED)

            if quota.exhausted:
                log.reason = "daily quota exhausted"
                logger.info(f"Discovery skipped: daily quota of {quota.daily_limit} used")
                return log.finalize(RunStatus.SKIPPED)

            self.state = EngineState.RUNNING
            self.current_run = log
            return await self._run(log, quota)
        finally:
            self.state = EngineState.IDLE
            self.current_run = None
            self._run_lock.release()

    async def _run(self, log: DiscoveryRunLog, quota: DailyQuota) -> DiscoveryRunLog:
        run_logger = RunLogger(log.run_id)
        await asyncio.to_thread(self.store.start_run, log)

        try:
            candidates = dedupe_candidates(self.catalog.candidates())
        except CameraVaultError as e:
            log.record_error(self.catalog.name, e.message)
            run_logger.error(f"Catalog unavailable: {e.message}")
            log.finalize(RunStatus.FAILED)
            await asyncio.to_thread(self._finish, log, run_logger)
            return log

        log.cameras_discovered = len(candidates)
        run_logger.info(
            f"Discovery pass started: {len(candidates)} candidates, "
            f"quota {quota.remaining}/{quota.daily_limit}"
        )

        final_status: Optional[RunStatus] = None
        worked = False

        for candidate in candidates:
            if self._stop.is_set():
                log.reason = "stopped"
                run_logger.info("Stop requested, ending pass early")
                break

            try:
                if await asyncio.to_thread(self.store.exists, candidate.brand, candidate.model):
                    continue
            except Exception as e:
                log.record_error(candidate.label, f"existence check failed: {e}")
                run_logger.error(f"{candidate.label}: existence check failed: {e}")
                continue

            if quota.exhausted:
                final_status = RunStatus.QUOTA_EXHAUSTED
                run_logger.info(f"Daily quota reached after {log.cameras_saved} saves, deferring the rest")
                break

            # Politeness delay between cameras that hit external sources
            if worked:
                await self._sleep(self.settings.request_delay_seconds)
            worked = True

            if await self._process_with_retries(candidate, log, run_logger):
                quota.consume()

        if final_status is None:
            if log.error_count == 0:
                final_status = RunStatus.SUCCESS
            elif log.cameras_saved > 0:
                final_status = RunStatus.PARTIAL
            else:
                final_status = RunStatus.FAILED

        log.finalize(final_status)
        await asyncio.to_thread(self._finish, log, run_logger)
        return log

    async def _process_with_retries(
        self,
        candidate: CameraCandidate,
        log: DiscoveryRunLog,
        run_logger: RunLogger,
    ) -> bool:
        """Process one candidate, retrying on failure. True if it was saved."""
        attempts = max(1, self.settings.max_attempts_per_candidate)

        for attempt in range(1, attempts + 1):
            try:
                await self._process_candidate(candidate, log, run_logger)
                return True
            except Exception as e:
                log.record_error(candidate.label, f"attempt {attempt}/{attempts}: {e}")
                run_logger.warning(f"{candidate.label} failed (attempt {attempt}/{attempts}): {e}")

            if attempt < attempts and not self._stop.is_set():
                await self._sleep(self.settings.request_delay_seconds)

        run_logger.error(f"Giving up on {candidate.label} after {attempts} attempts")
        return False

    async def _process_candidate(
        self,
        candidate: CameraCandidate,
        log: DiscoveryRunLog,
        run_logger: RunLogger,
    ) -> int:
        """Acquire the image and write the record. Returns the camera id."""
        record = adapt_candidate(candidate)

        with run_logger.stage("acquire", camera=candidate.label) as stage:
            slug = await asyncio.to_thread(self.store.planned_slug, candidate.brand, candidate.model)
            image = await self.acquirer.acquire_image(candidate, slug=slug)
            stage.metadata["source"] = image.attribution.source_name

        with run_logger.stage("persist", camera=candidate.label):
            camera_id = await asyncio.to_thread(self._persist, record, image)

        log.cameras_saved += 1
        if image.source == ImageSource.PLACEHOLDER:
            log.placeholders += 1
        else:
            log.real_images += 1

        run_logger.info(f"Saved {candidate.label} ({image.source.value} image, id={camera_id})")
        return camera_id

    def _persist(self, record: Dict[str, Any], image: AcquiredImage) -> int:
        """Upsert the record, then narrow-update its image columns."""
        camera_id = self.store.upsert(record)
        self._store_image(camera_id, image)
        self._record_attribution(camera_id, image)
        return camera_id

    def _store_image(self, camera_id: int, image: AcquiredImage) -> None:
        self.store.update_image_fields(
            camera_id,
            local_image_path=image.local_image_path,
            thumb_path=image.thumb_path,
            image_url=image.image_url,
            attribution=image.credit,
            image_source=image.source.value,
        )

    def _record_attribution(self, camera_id: int, image: AcquiredImage) -> None:
        # Reused files can be left over from an attempt that never reached the store
        if image.reused and self.store.has_attribution(
            camera_id, image.attribution.source_name, image.attribution.image_url
        ):
            return
        self.store.save_attribution(camera_id, image.attribution)

    def _finish(self, log: DiscoveryRunLog, run_logger: RunLogger) -> None:
        """Audit row and report files for a finished pass."""
        try:
            self.store.finish_run(log)
        except Exception as e:
            run_logger.error(f"Failed to record run in store: {e}")

        write_run_report(log, self.settings.report_path)
        write_attribution_report(self.settings.attributions_dir)

        metrics = run_logger.complete()
        run_logger.info(
            f"Discovery pass {log.status.value}: {log.cameras_saved} saved "
            f"({log.real_images} real, {log.placeholders} placeholders), "
            f"{log.error_count} errors, success rate {log.success_rate:.2f}% "
            f"in {(metrics.total_duration_ms or 0) / 1000:.1f}s"
        )
        self.last_run = log

    # -------------------------------------------------------------------------
    # Image backfill
    # -------------------------------------------------------------------------

    async def run_image_backfill(self, limit: int = 50) -> Dict[str, Any]:
        """
        Retry real images for records still on a placeholder or missing one.

        Shares the run guard with discovery passes.
        """
        if not self._run_lock.acquire(blocking=False):
            logger.info("Image backfill dropped: a pass is already running")
            return {"status": RunStatus.SKIPPED.value, "reason": "discovery already running"}

        summary = {"status": RunStatus.SUCCESS.value, "checked": 0, "upgraded": 0, "placeholders": 0, "errors": 0}
        try:
            self.state = EngineState.RUNNING
            cameras = await asyncio.to_thread(self.store.list_needing_images, limit)
            logger.info(f"Image backfill: {len(cameras)} cameras need images")

            for index, camera in enumerate(cameras):
                if self._stop.is_set():
                    break
                if index:
                    await self._sleep(self.settings.request_delay_seconds)

                summary["checked"] += 1
                try:
                    image = await self.acquirer.acquire_image(camera)
                    await asyncio.to_thread(self._store_image, camera.id, image)
                    if image.source == ImageSource.REAL:
                        await asyncio.to_thread(self._record_attribution, camera.id, image)
                        summary["upgraded"] += 1
                    else:
                        summary["placeholders"] += 1
                except Exception as e:
                    summary["errors"] += 1
                    logger.warning(f"Backfill failed for {camera.brand} {camera.model}: {e}")

            if summary["errors"]:
                summary["status"] = RunStatus.PARTIAL.value if summary["upgraded"] else RunStatus.FAILED.value
        finally:
            self.state = EngineState.IDLE
            self._run_lock.release()

        await asyncio.to_thread(write_attribution_report, self.settings.attributions_dir)
        logger.info(
            f"Image backfill done: {summary['upgraded']} upgraded, "
            f"{summary['placeholders']} still placeholders, {summary['errors']} errors"
        )
        return summary

    def get_status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "running": self.is_running,
            "stopRequested": self._stop.is_set(),
            "currentRun": self.current_run.to_dict() if self.current_run else None,
            "lastRun": self.last_run.to_dict() if self.last_run else None,
        }


# Singleton instance
_engine_instance: Optional[DiscoveryEngine] = None


def get_discovery_engine() -> DiscoveryEngine:
    """Get singleton DiscoveryEngine wired to the configured store, acquirer and catalog."""
    global _engine_instance
    if _engine_instance is None:
        _engine_instance = DiscoveryEngine(
            store=get_record_store(),
            acquirer=get_image_acquirer(),
            catalog=get_catalog(),
        )
    return _engine_instance
