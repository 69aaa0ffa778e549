# backend/models/orm.py
"""
SQLAlchemy ORM models for persistent storage.
These models are for database persistence, separate from the dataclasses
passed around the discovery pipeline.
"""

from typing import Dict, Any
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Float,
    Boolean,
    DateTime,
    JSON,
    Index,
    ForeignKey,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class Camera(Base):
    """
    One camera model in the vault.

    The schema is intentionally wide and almost entirely nullable: source
    data is heterogeneous and partial, and a later discovery pass may fill
    in what an earlier one lacked.
    """

    __tablename__ = "cameras"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Identity
    brand = Column(String(128), nullable=False)
    model = Column(String(255), nullable=False)
    slug = Column(String(128), nullable=False, unique=True)

    # Descriptive
    full_name = Column(String(400), nullable=True)
    category = Column(String(64), nullable=True)
    release_year = Column(Integer, nullable=True)
    discontinued = Column(Boolean, nullable=True)
    description = Column(Text, nullable=True)

    # Sensor
    sensor_size = Column(String(64), nullable=True)
    sensor_type = Column(String(64), nullable=True)
    sensor_megapixels = Column(Float, nullable=True)
    sensor_crop_factor = Column(Float, nullable=True)
    sensor_notes = Column(Text, nullable=True)
    processor = Column(String(128), nullable=True)

    # ISO
    iso_min = Column(Integer, nullable=True)
    iso_max = Column(Integer, nullable=True)
    iso_extended_min = Column(Integer, nullable=True)
    iso_extended_max = Column(Integer, nullable=True)

    # Shutter
    shutter_speed_min = Column(String(32), nullable=True)
    shutter_speed_max = Column(String(32), nullable=True)
    electronic_shutter_max = Column(String(32), nullable=True)
    flash_sync_speed = Column(String(32), nullable=True)
    continuous_shooting = Column(Float, nullable=True)

    # Autofocus
    af_points = Column(Integer, nullable=True)
    af_type = Column(String(128), nullable=True)
    af_subject_detection = Column(String(255), nullable=True)

    # Video
    video_max_resolution = Column(String(32), nullable=True)
    video_max_frame_rate = Column(Integer, nullable=True)
    video_formats = Column(String(255), nullable=True)
    video_4k = Column(Boolean, nullable=True)
    video_8k = Column(Boolean, nullable=True)
    video_bit_depth = Column(Integer, nullable=True)
    video_log_profile = Column(String(64), nullable=True)
    raw_video = Column(Boolean, nullable=True)

    # Audio / ports
    hdmi = Column(Boolean, nullable=True)
    headphone_jack = Column(Boolean, nullable=True)
    microphone_jack = Column(Boolean, nullable=True)
    usb_type = Column(String(64), nullable=True)

    # Connectivity
    wireless = Column(String(128), nullable=True)
    bluetooth = Column(Boolean, nullable=True)
    gps = Column(Boolean, nullable=True)
    connectivity = Column(String(255), nullable=True)

    # Battery
    battery_life = Column(Integer, nullable=True)
    battery_type = Column(String(64), nullable=True)

    # Build
    weather_sealed = Column(Boolean, nullable=True)
    weight = Column(Float, nullable=True)
    dimensions_width = Column(Float, nullable=True)
    dimensions_height = Column(Float, nullable=True)
    dimensions_depth = Column(Float, nullable=True)
    body_material = Column(String(128), nullable=True)

    # Stabilization / lens
    ibis = Column(Boolean, nullable=True)
    ibis_stops = Column(Float, nullable=True)
    lens_mount = Column(String(64), nullable=True)

    # Flash
    built_in_flash = Column(Boolean, nullable=True)
    hot_shoe = Column(Boolean, nullable=True)

    # Viewfinder / screen
    viewfinder_type = Column(String(64), nullable=True)
    viewfinder_coverage = Column(Float, nullable=True)
    viewfinder_magnification = Column(Float, nullable=True)
    viewfinder_resolution = Column(Integer, nullable=True)
    screen_size = Column(Float, nullable=True)
    screen_resolution = Column(Integer, nullable=True)
    screen_articulation = Column(String(64), nullable=True)
    touchscreen = Column(Boolean, nullable=True)

    # Storage
    dual_card_slots = Column(Boolean, nullable=True)
    card_slot1_type = Column(String(64), nullable=True)
    card_slot2_type = Column(String(64), nullable=True)

    # Pricing / resources
    msrp = Column(Float, nullable=True)
    current_price = Column(Float, nullable=True)
    manual_url = Column(Text, nullable=True)

    # Image reference
    image_url = Column(Text, nullable=True)
    local_image_path = Column(Text, nullable=True)
    thumb_path = Column(Text, nullable=True)
    image_attribution = Column(Text, nullable=True)
    image_source = Column(String(16), nullable=True)  # 'real' | 'placeholder'

    # Timestamps
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    attributions = relationship("ImageAttribution", back_populates="camera")

    __table_args__ = (
        Index("idx_cameras_brand_model", "brand", "model", unique=True),
        Index("idx_cameras_slug", "slug"),
    )

    def __repr__(self) -> str:
        return f"<Camera({self.id} - {self.brand} {self.model})>"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, every column included."""
        result: Dict[str, Any] = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if hasattr(value, "isoformat"):
                value = value.isoformat()
            result[column.name] = value
        return result


# Columns the store manages itself; never accepted from ingestion payloads
PROTECTED_COLUMNS = frozenset({"id", "slug", "created_at", "updated_at"})

IMAGE_COLUMNS = frozenset({
    "image_url",
    "local_image_path",
    "thumb_path",
    "image_attribution",
    "image_source",
})

# Every column an ingestion payload may set
WRITABLE_COLUMNS = frozenset(
    c.name for c in Camera.__table__.columns if c.name not in PROTECTED_COLUMNS
)


class ImageAttribution(Base):
    """
    Credit for an acquired image.
    Written once per successful acquisition and never modified.
    """

    __tablename__ = "image_attributions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    camera_id = Column(Integer, ForeignKey("cameras.id", ondelete="CASCADE"), nullable=False)
    source_name = Column(String(128), nullable=False)
    source_url = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    license = Column(String(128), nullable=False)
    attribution = Column(Text, nullable=True)
    downloaded_at = Column(DateTime, nullable=False)

    camera = relationship("Camera", back_populates="attributions")

    __table_args__ = (
        Index("idx_attributions_camera", "camera_id"),
    )

    def __repr__(self) -> str:
        return f"<ImageAttribution({self.camera_id} - {self.source_name})>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "camera_id": self.camera_id,
            "source_name": self.source_name,
            "source_url": self.source_url,
            "image_url": self.image_url,
            "license": self.license,
            "attribution": self.attribution,
            "downloaded_at": self.downloaded_at.isoformat() if self.downloaded_at else None,
        }


class DiscoveryRun(Base):
    """
    Audit trail of discovery passes. Append-only.
    """

    __tablename__ = "discovery_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String(64), nullable=False, unique=True)
    started_at = Column(DateTime, nullable=False)
    finished_at = Column(DateTime, nullable=True)
    cameras_discovered = Column(Integer, default=0)
    cameras_saved = Column(Integer, default=0)
    real_images = Column(Integer, default=0)
    placeholders = Column(Integer, default=0)
    error_count = Column(Integer, default=0)
    duration_seconds = Column(Float, nullable=True)
    status = Column(String(32), nullable=False, default="running")
    errors = Column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<DiscoveryRun({self.run_id} - {self.status})>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "cameras_discovered": self.cameras_discovered,
            "cameras_saved": self.cameras_saved,
            "real_images": self.real_images,
            "placeholders": self.placeholders,
            "error_count": self.error_count,
            "duration_seconds": self.duration_seconds,
            "status": self.status,
            "errors": self.errors or [],
        }
