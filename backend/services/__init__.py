# backend/services/__init__.py
"""
Camera Vault Automation Services

This package contains the discovery pipeline: record store, image
acquisition, discovery engine, scheduler and backups.
"""

from .record_store import RecordStore, get_record_store
from .image_acquirer import ImageAcquirer, get_image_acquirer
from .discovery import DiscoveryEngine, get_discovery_engine
from .scheduler import Scheduler, SchedulerState, get_scheduler
from .backup import BackupManager, get_backup_manager
from .run_logger import (
    RunLogger,
    RunMetrics,
    StageMetrics,
    timed,
    configure_logging,
)

__all__ = [
    # Pipeline
    "RecordStore",
    "get_record_store",
    "ImageAcquirer",
    "get_image_acquirer",
    "DiscoveryEngine",
    "get_discovery_engine",
    "Scheduler",
    "SchedulerState",
    "get_scheduler",
    "BackupManager",
    "get_backup_manager",
    # Logging
    "RunLogger",
    "RunMetrics",
    "StageMetrics",
    "timed",
    "configure_logging",
]
