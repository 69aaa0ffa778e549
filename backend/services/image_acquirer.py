# backend/services/image_acquirer.py
"""
Image acquisition for camera records.

Walks the provider chain for a real product photo, normalizes it to a
full-size image plus thumbnail, and records where it came from. When no
source produces a usable image a branded placeholder is synthesized, so
callers always get image paths back.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Tuple

from config import Settings, get_settings
from errors import ImageDownloadError, ImageProcessingError, ImageValidationError
from models.automation import (
    AcquiredImage,
    AttributionRecord,
    ImageSource,
    LICENSE_PLACEHOLDER,
)
from services.providers import ImageSearchResult, ImageSourceProvider, build_provider_chain
from integrations.image_downloader import ImageDownloader
from utils.imaging import fit_width, load_image, render_placeholder, save_jpeg
from utils.files import write_json_atomic
from utils.slugs import safe_filename, slugify

logger = logging.getLogger(__name__)

THUMB_SUFFIX = "thumb"
THUMB_QUALITY = 80


class ImageAcquirer:
    """
    Produces a full-size image, a thumbnail and an attribution for a camera.

    Files are laid out as:
        <images_dir>/<slug>.jpg
        <images_dir>/<thumbs_subdir>/<slug>-thumb.jpg
        <attributions_dir>/<slug>.json
    """

    def __init__(
        self,
        providers: Optional[List[ImageSourceProvider]] = None,
        downloader: Optional[ImageDownloader] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.downloader = downloader or ImageDownloader(
            timeout_seconds=self.settings.download_timeout_seconds,
            max_bytes=self.settings.max_download_bytes,
            user_agent=self.settings.user_agent,
        )
        if providers is None:
            providers = build_provider_chain(self.settings, downloader=self.downloader)
        self.providers = providers

        self.images_dir = Path(self.settings.images_dir)
        self.thumbs_dir = Path(self.settings.thumbs_dir)
        self.attributions_dir = Path(self.settings.attributions_dir)

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    def file_paths(self, slug: str) -> Tuple[Path, Path, Path]:
        """(full image, thumbnail, attribution json) on disk."""
        return (
            self.images_dir / safe_filename(slug),
            self.thumbs_dir / safe_filename(slug, THUMB_SUFFIX),
            self.attributions_dir / safe_filename(slug, ext=".json"),
        )

    def site_paths(self, slug: str) -> Tuple[str, str]:
        """(full image, thumbnail) as stored on the record, relative to the site root."""
        prefix = self.settings.image_url_prefix.rstrip("/")
        return (
            f"{prefix}/{safe_filename(slug)}",
            f"{prefix}/{self.settings.thumbs_subdir}/{safe_filename(slug, THUMB_SUFFIX)}",
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def acquire_image(self, camera: Any, slug: Optional[str] = None) -> AcquiredImage:
        """
        Obtain an image for a camera.

        Args:
            camera: anything with brand and model attributes (a candidate or
                a stored Camera) or a dict with those keys
            slug: file stem to use; defaults to the camera's own slug or
                slugify(brand, model)

        Returns:
            AcquiredImage with site-relative paths. A placeholder is produced
            when every source fails.

        Raises:
            ImageProcessingError: only when even the placeholder cannot be
                written (disk full, permissions)
        """
        brand, model = _identity(camera)
        slug = slug or _field(camera, "slug") or slugify(brand, model)

        existing = self._existing_image(slug)
        if existing:
            logger.debug(f"Reusing existing image for {brand} {model} ({slug})")
            return existing

        acquired = await self._acquire_real(brand, model, slug)
        if acquired:
            return acquired

        # Pillow work is CPU bound; keep it off the event loop
        return await asyncio.to_thread(self._write_placeholder, brand, model, slug)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _existing_image(self, slug: str) -> Optional[AcquiredImage]:
        """Existing non-placeholder files for this slug, if complete."""
        full_path, thumb_path, attribution_path = self.file_paths(slug)
        if not (full_path.is_file() and thumb_path.is_file() and attribution_path.is_file()):
            return None

        try:
            attribution = AttributionRecord.from_dict(json.loads(attribution_path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable attribution {attribution_path.name}, re-acquiring: {e}")
            return None

        if attribution.is_placeholder:
            return None

        site_full, site_thumb = self.site_paths(slug)
        return AcquiredImage(
            local_image_path=site_full,
            thumb_path=site_thumb,
            attribution=attribution,
            source=ImageSource.REAL,
            image_url=attribution.image_url,
            reused=True,
        )

    async def _acquire_real(self, brand: str, model: str, slug: str) -> Optional[AcquiredImage]:
        for provider in self.providers:
            result = await provider.search(brand, model)
            if not result:
                logger.debug(f"[{provider.name}] no image for {brand} {model}")
                continue

            for url in result.urls:
                try:
                    content = await self.downloader.download(url)
                    image = await asyncio.to_thread(load_image, content, self.settings.min_image_dimension)
                    return await asyncio.to_thread(self._write_real, brand, model, slug, image, result, url)
                except (ImageDownloadError, ImageValidationError) as e:
                    logger.warning(f"[{provider.name}] {brand} {model}: {e.message} ({url})")
                except ImageProcessingError as e:
                    logger.error(f"[{provider.name}] {brand} {model}: {e.message}")

        return None

    def _write_real(
        self,
        brand: str,
        model: str,
        slug: str,
        image,
        result: ImageSearchResult,
        url: str,
    ) -> AcquiredImage:
        full_path, thumb_path, attribution_path = self.file_paths(slug)

        save_jpeg(fit_width(image, self.settings.max_image_width), full_path, self.settings.jpeg_quality)
        save_jpeg(fit_width(image, self.settings.thumb_width), thumb_path, THUMB_QUALITY)

        attribution = AttributionRecord(
            camera_ref=slug,
            source_name=result.source_name,
            license=result.license,
            source_url=result.source_url,
            image_url=url,
            attribution=result.attribution,
        )
        self._write_attribution(attribution_path, attribution)

        logger.info(f"Saved real image for {brand} {model} from {result.source_name}")
        site_full, site_thumb = self.site_paths(slug)
        return AcquiredImage(
            local_image_path=site_full,
            thumb_path=site_thumb,
            attribution=attribution,
            source=ImageSource.REAL,
            image_url=url,
        )

    def _write_placeholder(self, brand: str, model: str, slug: str) -> AcquiredImage:
        full_path, thumb_path, attribution_path = self.file_paths(slug)

        image = render_placeholder(
            brand,
            model,
            width=self.settings.placeholder_width,
            height=self.settings.placeholder_height,
        )
        save_jpeg(fit_width(image, self.settings.max_image_width), full_path, self.settings.jpeg_quality)
        save_jpeg(fit_width(image, self.settings.thumb_width), thumb_path, THUMB_QUALITY)

        attribution = AttributionRecord(
            camera_ref=slug,
            source_name="placeholder",
            license=LICENSE_PLACEHOLDER,
            attribution=LICENSE_PLACEHOLDER,
        )
        try:
            self._write_attribution(attribution_path, attribution)
        except ImageProcessingError as e:
            # Images are in place; a missing attribution only forces a retry next time
            logger.warning(f"Placeholder attribution for {slug} not written: {e.message}")

        logger.info(f"Generated placeholder for {brand} {model}")
        site_full, site_thumb = self.site_paths(slug)
        return AcquiredImage(
            local_image_path=site_full,
            thumb_path=site_thumb,
            attribution=attribution,
            source=ImageSource.PLACEHOLDER,
        )

    def _write_attribution(self, path: Path, attribution: AttributionRecord) -> None:
        try:
            write_json_atomic(path, attribution.to_dict())
        except OSError as e:
            raise ImageProcessingError(f"Failed to write {path.name}: {e}", path=str(path)) from e


def _field(camera: Any, name: str) -> Any:
    if isinstance(camera, dict):
        return camera.get(name)
    return getattr(camera, name, None)


def _identity(camera: Any) -> Tuple[str, str]:
    return (_field(camera, "brand") or "").strip(), (_field(camera, "model") or "").strip()


# Singleton instance
_acquirer_instance: Optional[ImageAcquirer] = None


def get_image_acquirer() -> ImageAcquirer:
    """Get singleton ImageAcquirer with the configured provider chain."""
    global _acquirer_instance
    if _acquirer_instance is None:
        _acquirer_instance = ImageAcquirer()
    return _acquirer_instance
