# backend/services/providers/wikimedia_provider.py
"""
Wikimedia Commons image provider.

Community-archive photos licensed CC BY-SA. Uses the MediaWiki API file
search and takes the first raster image whose title mentions the model.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from errors import ProviderError
from models.automation import LICENSE_CC_BY_SA
from utils.html import text_of

from .base import ImageSearchResult, ImageSourceProvider, ProviderInfo

logger = logging.getLogger(__name__)

COMMONS_API_URL = "https://commons.wikimedia.org/w/api.php"
RASTER_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")


class WikimediaImageProvider(ImageSourceProvider):
    """Freely licensed photos from Wikimedia Commons."""

    def __init__(self, *args: Any, thumb_width: int = 1200, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.thumb_width = thumb_width

    @property
    def info(self) -> ProviderInfo:
        return ProviderInfo(
            name="wikimedia",
            version="1.0.0",
            license=LICENSE_CC_BY_SA,
            description="Wikimedia Commons file search (CC BY-SA)",
        )

    def _query_params(self, brand: str, model: str) -> Dict[str, str]:
        return {
            "action": "query",
            "format": "json",
            "generator": "search",
            "gsrsearch": f'"{brand} {model}" camera',
            "gsrnamespace": "6",  # File: namespace
            "gsrlimit": "10",
            "prop": "imageinfo",
            "iiprop": "url|mime|extmetadata",
            "iiurlwidth": str(self.thumb_width),
        }

    async def _search(self, brand: str, model: str) -> Optional[ImageSearchResult]:
        body = await self.downloader.fetch_text(COMMONS_API_URL, params=self._query_params(brand, model))
        if not body:
            return None

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise ProviderError(self.name, "non-JSON response from Commons API") from e

        pages = list((data.get("query") or {}).get("pages", {}).values())
        # Search rank, not page id, is the relevance order
        pages.sort(key=lambda p: p.get("index", 0))

        for page in self._matching_pages(pages, model):
            info = (page.get("imageinfo") or [{}])[0]
            if info.get("mime") not in RASTER_MIME_TYPES:
                continue

            image_url = info.get("thumburl") or info.get("url")
            if not image_url:
                continue

            meta = info.get("extmetadata") or {}
            artist = text_of((meta.get("Artist") or {}).get("value"))
            license_name = text_of((meta.get("LicenseShortName") or {}).get("value")) or LICENSE_CC_BY_SA

            attribution = f"{page.get('title', 'Wikimedia Commons')}"
            if artist:
                attribution = f"{artist}, {license_name}, via Wikimedia Commons"

            return ImageSearchResult(
                image_url=image_url,
                source_name=self.name,
                source_url=info.get("descriptionurl"),
                license=license_name,
                attribution=attribution,
                alternates=[info["url"]] if info.get("thumburl") and info.get("url") else [],
            )

        logger.debug(f"No Commons file matched {brand} {model}")
        return None

    @staticmethod
    def _matching_pages(pages: List[Dict[str, Any]], model: str) -> List[Dict[str, Any]]:
        """Pages whose file title contains the model's alphanumerics."""
        needle = re.sub(r"[^a-z0-9]", "", model.lower())
        if not needle:
            return pages
        return [
            p for p in pages
            if needle in re.sub(r"[^a-z0-9]", "", p.get("title", "").lower())
        ]
