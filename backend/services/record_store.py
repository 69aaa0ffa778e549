# backend/services/record_store.py
"""
Record store for camera models.

Owns the SQLite store file and its schema lifecycle. Provides existence
checks, partial-update upserts, narrow image-field updates, attribution
and discovery-run persistence.
"""

import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy import func, or_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config import get_settings
from database import create_session_factory, create_store_engine, init_db, session_scope
from errors import DuplicateSlugError, RecordStoreError, StoreInitializationError
from models.automation import AttributionRecord, DiscoveryRunLog, ImageSource
from models.orm import Camera, DiscoveryRun, ImageAttribution, IMAGE_COLUMNS, WRITABLE_COLUMNS
from utils.slugs import resolve_unique_slug, slugify

logger = logging.getLogger(__name__)

# Stored image paths that still point at a generic stand-in
PLACEHOLDER_MARKER = "placeholder"


class RecordStore:
    """
    Durable keyed storage of camera records.

    Writes are serialized with a lock: the store is a single-file embedded
    database with exactly one writer process.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None, echo: bool = False):
        self.db_path = Path(db_path or get_settings().database_path)
        self.echo = echo
        self._engine = None
        self._factory = None
        self._write_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def initialize(self) -> "RecordStore":
        """
        Open the store file and ensure the schema exists.

        Raises:
            StoreInitializationError: file unreadable or corrupt
        """
        if self._engine is not None:
            return self

        logger.info(f"Opening camera store: {self.db_path}")
        try:
            engine = create_store_engine(self.db_path, echo=self.echo)
            with engine.connect() as conn:
                result = conn.execute(text("PRAGMA quick_check")).scalar()
                if result != "ok":
                    raise StoreInitializationError(str(self.db_path), f"integrity check: {result}")
            init_db(engine)
        except StoreInitializationError:
            raise
        except (SQLAlchemyError, sqlite3.DatabaseError, OSError) as e:
            raise StoreInitializationError(str(self.db_path), str(e)) from e

        self._engine = engine
        self._factory = create_session_factory(engine)
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._factory = None

    def __enter__(self) -> "RecordStore":
        return self.initialize()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _session(self):
        if self._factory is None:
            self.initialize()
        return session_scope(self._factory)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def exists(self, brand: str, model: str) -> bool:
        """Case-sensitive exact match on (brand, model)."""
        with self._session() as db:
            row = (
                db.query(Camera.id)
                .filter(Camera.brand == brand, Camera.model == model)
                .first()
            )
            return row is not None

    def slug_exists(self, slug: str) -> bool:
        with self._session() as db:
            return self._slug_taken(db, slug)

    def get(self, camera_id: int) -> Optional[Camera]:
        with self._session() as db:
            return db.get(Camera, camera_id)

    def get_by_brand_model(self, brand: str, model: str) -> Optional[Camera]:
        with self._session() as db:
            return (
                db.query(Camera)
                .filter(Camera.brand == brand, Camera.model == model)
                .first()
            )

    def get_by_slug(self, slug: str) -> Optional[Camera]:
        with self._session() as db:
            return db.query(Camera).filter(Camera.slug == slug).first()

    def planned_slug(self, brand: str, model: str) -> str:
        """
        Slug the record for (brand, model) has, or will get on insert.

        Lets image files be named before the record is written. Stable as
        long as no other insert happens in between (single writer).
        """
        with self._session() as db:
            row = (
                db.query(Camera.slug)
                .filter(Camera.brand == brand, Camera.model == model)
                .first()
            )
            if row is not None:
                return row.slug
            return resolve_unique_slug(slugify(brand, model), lambda s: self._slug_taken(db, s))

    def count_all(self) -> int:
        with self._session() as db:
            return db.query(func.count(Camera.id)).scalar() or 0

    def list_needing_images(self, limit: int = 50) -> List[Camera]:
        """
        Records whose image is missing or still a generic placeholder.
        Drives image backfill.
        """
        with self._session() as db:
            return (
                db.query(Camera)
                .filter(
                    or_(
                        Camera.local_image_path.is_(None),
                        Camera.local_image_path == "",
                        Camera.local_image_path.like(f"%{PLACEHOLDER_MARKER}%"),
                        Camera.image_source == ImageSource.PLACEHOLDER.value,
                    )
                )
                .order_by(Camera.brand, Camera.model)
                .limit(limit)
                .all()
            )

    def list_attributions(self, camera_id: int) -> List[ImageAttribution]:
        with self._session() as db:
            return (
                db.query(ImageAttribution)
                .filter(ImageAttribution.camera_id == camera_id)
                .order_by(ImageAttribution.downloaded_at)
                .all()
            )

    def has_attribution(self, camera_id: int, source_name: str, image_url: Optional[str] = None) -> bool:
        """True if a row for this camera, source and image URL was already saved."""
        with self._session() as db:
            return (
                db.query(ImageAttribution.id)
                .filter(
                    ImageAttribution.camera_id == camera_id,
                    ImageAttribution.source_name == source_name,
                    ImageAttribution.image_url == image_url,
                )
                .first()
                is not None
            )

    def stats(self) -> Dict[str, int]:
        """Counts for status reporting."""
        with self._session() as db:
            total = db.query(func.count(Camera.id)).scalar() or 0
            brands = db.query(func.count(func.distinct(Camera.brand))).scalar() or 0
            with_images = (
                db.query(func.count(Camera.id))
                .filter(Camera.local_image_path.isnot(None), Camera.local_image_path != "")
                .scalar()
                or 0
            )
            placeholders = (
                db.query(func.count(Camera.id))
                .filter(Camera.image_source == ImageSource.PLACEHOLDER.value)
                .scalar()
                or 0
            )
        return {
            "total_cameras": total,
            "total_brands": brands,
            "cameras_with_images": with_images,
            "placeholder_images": placeholders,
        }

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def upsert(self, record: Dict[str, Any]) -> int:
        """
        Insert a new camera or update the one matching (brand, model).

        Only non-null supplied fields overwrite stored values, so a pass that
        lacks a field never erases previously known data. Slugs are derived
        here and never taken from the payload.

        Returns:
            Camera id

        Raises:
            RecordStoreError: write failed for a reason other than a slug clash
        """
        brand = record.get("brand")
        model = record.get("model")
        if not brand or not model:
            raise RecordStoreError("brand and model are required", brand=brand, model=model)

        values = {
            key: value
            for key, value in record.items()
            if key in WRITABLE_COLUMNS and value is not None
        }

        with self._write_lock:
            try:
                try:
                    return self._upsert_locked(brand, model, values)
                except DuplicateSlugError as e:
                    logger.warning(f"Slug clash for {brand} {model} on '{e.slug}', re-slugging")
                    return self._upsert_locked(brand, model, values, avoid={e.slug})
            except RecordStoreError:
                raise
            except (SQLAlchemyError, OSError) as e:
                logger.error(f"Failed to save {brand} {model}: {e}")
                raise RecordStoreError(f"Write failed: {e}", brand=brand, model=model) from e

    def _upsert_locked(
        self,
        brand: str,
        model: str,
        values: Dict[str, Any],
        avoid: Iterable[str] = (),
    ) -> int:
        avoid = set(avoid)
        with self._session() as db:
            existing = (
                db.query(Camera)
                .filter(Camera.brand == brand, Camera.model == model)
                .first()
            )

            if existing:
                for key, value in values.items():
                    if key in ("brand", "model"):
                        continue
                    setattr(existing, key, value)
                existing.updated_at = datetime.utcnow()
                logger.debug(f"Updated {brand} {model} (id={existing.id})")
                return existing.id

            slug = resolve_unique_slug(
                slugify(brand, model),
                lambda candidate: candidate in avoid or self._slug_taken(db, candidate),
            )
            camera = Camera(slug=slug, **values)
            camera.brand = brand
            camera.model = model
            db.add(camera)

            try:
                db.flush()
            except IntegrityError as e:
                if "slug" in str(e.orig):
                    raise DuplicateSlugError(slug) from e
                raise

            logger.info(f"Saved {brand} {model} as '{slug}' (id={camera.id})")
            return camera.id

    def update_image_fields(
        self,
        camera_id: int,
        local_image_path: Optional[str] = None,
        thumb_path: Optional[str] = None,
        image_url: Optional[str] = None,
        attribution: Optional[str] = None,
        image_source: Optional[str] = None,
    ) -> bool:
        """
        Narrow update of image columns only.

        Independent of upsert so it never clobbers spec-sheet fields written
        concurrently by another pass.
        """
        changes = {
            "local_image_path": local_image_path,
            "thumb_path": thumb_path,
            "image_url": image_url,
            "image_attribution": attribution,
            "image_source": image_source,
        }
        changes = {k: v for k, v in changes.items() if v is not None and k in IMAGE_COLUMNS}
        if not changes:
            return False
        changes["updated_at"] = datetime.utcnow()

        with self._write_lock:
            try:
                with self._session() as db:
                    updated = (
                        db.query(Camera)
                        .filter(Camera.id == camera_id)
                        .update(changes, synchronize_session=False)
                    )
            except SQLAlchemyError as e:
                logger.error(f"Failed to update image fields for camera {camera_id}: {e}")
                raise RecordStoreError(f"Image update failed: {e}", details={"cameraId": camera_id}) from e

        return updated > 0

    def save_attribution(self, camera_id: int, record: AttributionRecord) -> int:
        """Persist an attribution row. Rows are never modified afterwards."""
        with self._write_lock:
            try:
                with self._session() as db:
                    row = ImageAttribution(
                        camera_id=camera_id,
                        source_name=record.source_name,
                        source_url=record.source_url,
                        image_url=record.image_url,
                        license=record.license,
                        attribution=record.attribution,
                        downloaded_at=record.downloaded_at,
                    )
                    db.add(row)
                    db.flush()
                    return row.id
            except SQLAlchemyError as e:
                logger.error(f"Failed to save attribution for camera {camera_id}: {e}")
                raise RecordStoreError(f"Attribution write failed: {e}", details={"cameraId": camera_id}) from e

    # -------------------------------------------------------------------------
    # Discovery run audit trail
    # -------------------------------------------------------------------------

    def start_run(self, log: DiscoveryRunLog) -> None:
        with self._write_lock:
            with self._session() as db:
                db.add(DiscoveryRun(
                    run_id=log.run_id,
                    started_at=log.started_at,
                    status=log.status.value,
                ))

    def finish_run(self, log: DiscoveryRunLog) -> None:
        with self._write_lock:
            with self._session() as db:
                run = db.query(DiscoveryRun).filter(DiscoveryRun.run_id == log.run_id).first()
                if run is None:
                    run = DiscoveryRun(run_id=log.run_id, started_at=log.started_at)
                    db.add(run)
                run.finished_at = log.finished_at
                run.cameras_discovered = log.cameras_discovered
                run.cameras_saved = log.cameras_saved
                run.real_images = log.real_images
                run.placeholders = log.placeholders
                run.error_count = log.error_count
                run.duration_seconds = log.duration_seconds
                run.status = log.status.value
                run.errors = list(log.errors)

    def list_runs(self, limit: int = 20) -> List[DiscoveryRun]:
        with self._session() as db:
            return (
                db.query(DiscoveryRun)
                .order_by(DiscoveryRun.started_at.desc())
                .limit(limit)
                .all()
            )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _slug_taken(db: Session, slug: str) -> bool:
        return db.query(Camera.id).filter(Camera.slug == slug).first() is not None


# Singleton instance
_store_instance: Optional[RecordStore] = None


def get_record_store() -> RecordStore:
    """Get singleton RecordStore instance bound to the configured store file."""
    global _store_instance
    if _store_instance is None:
        _store_instance = RecordStore().initialize()
    return _store_instance
