# backend/models/__init__.py
"""
Camera Vault Data Models

This package contains all data models for the discovery pipeline.
Includes both dataclasses (in-flight pipeline state) and SQLAlchemy models
(persistence).
"""

from .automation import (
    # Enums
    ImageSource,
    RunStatus,

    # License strings
    LICENSE_FAIR_USE,
    LICENSE_CC_BY_SA,
    LICENSE_PLACEHOLDER,

    # Pipeline models
    CameraCandidate,
    AttributionRecord,
    AcquiredImage,
    DiscoveryRunLog,
)
from .orm import (
    Camera,
    ImageAttribution,
    DiscoveryRun,
    IMAGE_COLUMNS,
    WRITABLE_COLUMNS,
)

__all__ = [
    # Enums
    "ImageSource",
    "RunStatus",

    # License strings
    "LICENSE_FAIR_USE",
    "LICENSE_CC_BY_SA",
    "LICENSE_PLACEHOLDER",

    # Pipeline models
    "CameraCandidate",
    "AttributionRecord",
    "AcquiredImage",
    "DiscoveryRunLog",

    # ORM Models
    "Camera",
    "ImageAttribution",
    "DiscoveryRun",
    "IMAGE_COLUMNS",
    "WRITABLE_COLUMNS",
]
