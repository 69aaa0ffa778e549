# backend/services/providers/manufacturer_provider.py
"""
Manufacturer website image provider.

Tries known product-page URL patterns for each brand and takes the page's
advertised product image (og:image) or the first matching gallery image.
"""

import logging
import re
from typing import Dict, List, Optional

from models.automation import LICENSE_FAIR_USE
from utils.html import absolutize, image_sources, meta_image, soupify
from utils.slugs import slug_text

from .base import ImageSearchResult, ImageSourceProvider, ProviderInfo

logger = logging.getLogger(__name__)

# Product page URL templates per brand, tried in order
# Placeholders: {model_slug} "eos-r5", {model_compact} "eosr5", {model_raw} "EOS R5"
MANUFACTURER_PAGES: Dict[str, Dict[str, List[str]]] = {
    "canon": {
        "patterns": [
            "https://www.usa.canon.com/shop/p/{model_slug}",
            "https://www.usa.canon.com/cameras/{model_slug}",
            "https://global.canon/en/c-museum/product/{model_compact}.html",
        ],
        "selectors": [".product-image img", ".pic img", "#product-image"],
    },
    "nikon": {
        "patterns": [
            "https://www.nikonusa.com/p/{model_slug}",
            "https://www.nikonusa.com/en/nikon-products/product/{model_slug}.html",
            "https://imaging.nikon.com/lineup/dslr/{model_compact}/",
        ],
        "selectors": [".product-photo img", ".mainimg img"],
    },
    "sony": {
        "patterns": [
            "https://electronics.sony.com/imaging/interchangeable-lens-cameras/p/{model_compact}",
            "https://www.sony.com/electronics/interchangeable-lens-cameras/{model_compact}",
        ],
        "selectors": [".primary-image img", ".product-primary-image img"],
    },
    "fujifilm": {
        "patterns": [
            "https://fujifilm-x.com/global/products/cameras/{model_slug}/",
        ],
        "selectors": [".product-main-visual img", ".mainvisual img"],
    },
    "panasonic": {
        "patterns": [
            "https://shop.panasonic.com/products/lumix-{model_slug}",
        ],
        "selectors": [".product__media img"],
    },
    "leica": {
        "patterns": [
            "https://leica-camera.com/en-US/photography/cameras/{model_slug}",
        ],
        "selectors": [".product-stage img"],
    },
    "hasselblad": {
        "patterns": [
            "https://www.hasselblad.com/{model_slug}/",
        ],
        "selectors": [".hero img"],
    },
    "red": {
        "patterns": [
            "https://www.red.com/{model_slug}",
        ],
        "selectors": [".product-hero img"],
    },
    "arri": {
        "patterns": [
            "https://www.arri.com/en/camera-systems/cameras/{model_slug}",
        ],
        "selectors": [".stage img", ".product-image img"],
    },
    "blackmagic": {
        "patterns": [
            "https://www.blackmagicdesign.com/products/{model_compact}",
        ],
        "selectors": [".product-image img", ".hero img"],
    },
}


class ManufacturerImageProvider(ImageSourceProvider):
    """Official product imagery from the brand's own website."""

    @property
    def info(self) -> ProviderInfo:
        return ProviderInfo(
            name="manufacturer",
            version="1.0.0",
            license=LICENSE_FAIR_USE,
            description="Official product page images from known manufacturer URL patterns",
        )

    def _normalize_brand(self, brand: str) -> str:
        """Normalize brand name for pattern lookup."""
        if not brand:
            return ""
        normalized = brand.lower().strip()
        if normalized.startswith("blackmagic"):
            return "blackmagic"
        if normalized in ("fuji", "fujifilm"):
            return "fujifilm"
        return normalized

    def candidate_pages(self, brand: str, model: str) -> List[str]:
        """
        Product page URLs to try for a camera.
        Returns empty list for brands without known patterns.
        """
        entry = MANUFACTURER_PAGES.get(self._normalize_brand(brand))
        if not entry:
            return []

        values = {
            "model_slug": slug_text(model),
            "model_compact": re.sub(r"[^a-z0-9]", "", model.lower()),
            "model_raw": model,
        }

        urls = []
        for pattern in entry["patterns"]:
            try:
                urls.append(pattern.format(**values))
            except KeyError:
                # Pattern has placeholder we don't have, skip it
                pass
        return urls

    async def _search(self, brand: str, model: str) -> Optional[ImageSearchResult]:
        entry = MANUFACTURER_PAGES.get(self._normalize_brand(brand))
        if not entry:
            logger.debug(f"No manufacturer patterns for {brand}")
            return None

        for page_url in self.candidate_pages(brand, model):
            html = await self.downloader.fetch_text(page_url)
            if not html:
                continue

            soup = soupify(html)
            urls = []
            og_image = meta_image(soup)
            if og_image:
                urls.append(absolutize(page_url, og_image))
            urls.extend(u for u in image_sources(soup, entry["selectors"], page_url) if u not in urls)

            if urls:
                logger.info(f"Manufacturer image for {brand} {model}: {urls[0]}")
                return ImageSearchResult(
                    image_url=urls[0],
                    source_name=self.name,
                    source_url=page_url,
                    license=LICENSE_FAIR_USE,
                    attribution=f"Image courtesy of {brand}",
                    alternates=urls[1:3],
                )

        return None
