# backend/models/automation.py
"""
Automation Data Models

Defines the data structures passed between catalog, image acquirer,
discovery engine and scheduler.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4


# =============================================================================
# ENUMS
# =============================================================================

class ImageSource(str, Enum):
    """Where a camera's stored image came from"""
    REAL = "real"                   # Downloaded from an image source
    PLACEHOLDER = "placeholder"     # Synthesized locally


class RunStatus(str, Enum):
    """Outcome of a discovery pass"""
    RUNNING = "running"
    SUCCESS = "success"                     # Completed with no errors
    PARTIAL = "partial"                     # Completed, some candidates failed
    FAILED = "failed"                       # Nothing saved and errors occurred
    SKIPPED = "skipped"                     # Not started (quota or already running)
    QUOTA_EXHAUSTED = "quota_exhausted"     # Stopped early at the daily quota


# License strings recorded with each attribution
LICENSE_FAIR_USE = "Fair Use - Educational"
LICENSE_CC_BY_SA = "CC BY-SA"
LICENSE_PLACEHOLDER = "Generated placeholder"


# =============================================================================
# CATALOG MODELS
# =============================================================================

@dataclass
class CameraCandidate:
    """A (brand, model) pair offered by a catalog, plus any raw metadata"""
    brand: str
    model: str
    category: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.brand, self.model)

    @property
    def label(self) -> str:
        return f"{self.brand} {self.model}"


# =============================================================================
# IMAGE MODELS
# =============================================================================

@dataclass
class AttributionRecord:
    """Credit for one acquired image, mirrored to attributions/<slug>.json"""
    camera_ref: str
    source_name: str
    license: str
    source_url: Optional[str] = None
    image_url: Optional[str] = None
    attribution: Optional[str] = None
    downloaded_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_placeholder(self) -> bool:
        return self.license == LICENSE_PLACEHOLDER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cameraRef": self.camera_ref,
            "sourceName": self.source_name,
            "sourceUrl": self.source_url,
            "imageUrl": self.image_url,
            "license": self.license,
            "attribution": self.attribution,
            "downloadedAt": self.downloaded_at.isoformat() + "Z",
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttributionRecord":
        downloaded = data.get("downloadedAt")
        if downloaded:
            downloaded_at = datetime.fromisoformat(downloaded.rstrip("Z"))
        else:
            downloaded_at = datetime.utcnow()
        return cls(
            camera_ref=data.get("cameraRef", ""),
            source_name=data.get("sourceName", "unknown"),
            license=data.get("license", LICENSE_FAIR_USE),
            source_url=data.get("sourceUrl"),
            image_url=data.get("imageUrl"),
            attribution=data.get("attribution"),
            downloaded_at=downloaded_at,
        )


@dataclass
class AcquiredImage:
    """Result of acquire_image; paths are site-relative"""
    local_image_path: str
    thumb_path: str
    attribution: AttributionRecord
    source: ImageSource
    image_url: Optional[str] = None
    reused: bool = False            # Existing files were returned untouched

    @property
    def credit(self) -> str:
        return self.attribution.attribution or self.attribution.source_name


# =============================================================================
# RUN MODELS
# =============================================================================

@dataclass
class DiscoveryRunLog:
    """One discovery pass, created at start and finalized at the end"""
    run_id: str = field(default_factory=lambda: str(uuid4()))
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None
    cameras_discovered: int = 0
    cameras_saved: int = 0
    real_images: int = 0
    placeholders: int = 0
    error_count: int = 0
    duration_seconds: Optional[float] = None
    status: RunStatus = RunStatus.RUNNING
    errors: List[Dict[str, str]] = field(default_factory=list)
    reason: Optional[str] = None

    def record_error(self, camera: str, error: str) -> None:
        self.error_count += 1
        self.errors.append({"camera": camera, "error": error})

    @property
    def success_rate(self) -> float:
        attempted = self.cameras_saved + len({e["camera"] for e in self.errors})
        if attempted == 0:
            return 100.0
        return round(self.cameras_saved / attempted * 100, 2)

    def finalize(self, status: RunStatus) -> "DiscoveryRunLog":
        self.finished_at = datetime.utcnow()
        self.duration_seconds = (self.finished_at - self.started_at).total_seconds()
        self.status = status
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runId": self.run_id,
            "startedAt": self.started_at.isoformat() + "Z",
            "finishedAt": self.finished_at.isoformat() + "Z" if self.finished_at else None,
            "camerasDiscovered": self.cameras_discovered,
            "camerasSaved": self.cameras_saved,
            "realImages": self.real_images,
            "placeholders": self.placeholders,
            "errorCount": self.error_count,
            "durationSeconds": self.duration_seconds,
            "status": self.status.value,
            "errors": list(self.errors),
            "reason": self.reason,
        }

    def to_report(self) -> Dict[str, Any]:
        """Shape of automation-report.json"""
        return {
            "timestamp": (self.finished_at or datetime.utcnow()).isoformat() + "Z",
            "runId": self.run_id,
            "status": self.status.value,
            "camerasDiscovered": self.cameras_discovered,
            "camerasSaved": self.cameras_saved,
            "realImages": self.real_images,
            "placeholders": self.placeholders,
            "errors": list(self.errors),
            "successRate": f"{self.success_rate:.2f}%",
        }
