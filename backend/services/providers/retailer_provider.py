# backend/services/providers/retailer_provider.py
"""
Retail and review aggregator image providers.

Both scrape a site's search results page for the first product thumbnail
and, where the site's URL scheme allows it, rewrite it to the high-res
variant.
"""

import logging
from typing import List, Optional, Tuple
from urllib.parse import quote_plus

from models.automation import LICENSE_FAIR_USE
from utils.html import image_sources, soupify

from .base import ImageSearchResult, ImageSourceProvider, ProviderInfo

logger = logging.getLogger(__name__)


class SearchPageImageProvider(ImageSourceProvider):
    """
    Shared logic for providers that scrape a search results page.

    Subclasses set the class attributes below.
    """

    provider_name: str = ""
    display_name: str = ""
    base_url: str = ""
    search_url: str = ""            # Format string with {query}
    selectors: List[str] = []
    # (old, new) substring rewrites that turn a thumbnail URL into full size
    high_res_rewrites: List[Tuple[str, str]] = []

    @property
    def info(self) -> ProviderInfo:
        return ProviderInfo(
            name=self.provider_name,
            version="1.0.0",
            license=LICENSE_FAIR_USE,
            description=f"{self.display_name} search results",
        )

    def build_search_url(self, brand: str, model: str) -> str:
        return self.search_url.format(query=quote_plus(f"{brand} {model} camera"))

    def high_res(self, url: str) -> str:
        for old, new in self.high_res_rewrites:
            url = url.replace(old, new)
        return url

    async def _search(self, brand: str, model: str) -> Optional[ImageSearchResult]:
        page_url = self.build_search_url(brand, model)
        html = await self.downloader.fetch_text(page_url)
        if not html:
            return None

        found = image_sources(soupify(html), self.selectors, self.base_url)
        if not found:
            logger.debug(f"[{self.name}] no product images for {brand} {model}")
            return None

        thumb = found[0]
        full = self.high_res(thumb)
        return ImageSearchResult(
            image_url=full,
            source_name=self.name,
            source_url=page_url,
            license=LICENSE_FAIR_USE,
            attribution=f"Image courtesy of {self.display_name}",
            # The thumbnail itself is a usable fallback if the rewrite 404s
            alternates=[thumb] if full != thumb else [],
        )


class BHPhotoImageProvider(SearchPageImageProvider):
    """B&H Photo Video product thumbnails."""

    provider_name = "bhphoto"
    display_name = "B&H Photo Video"
    base_url = "https://www.bhphotovideo.com"
    search_url = "https://www.bhphotovideo.com/c/search?q={query}&sts=ma"
    selectors = [
        'img[data-selenium="miniProductImage"]',
        'div[data-selenium="miniProductPage"] img',
        ".c-product-item__image img",
    ]
    high_res_rewrites = [
        ("/images/smallimages/", "/images/images2500x2500/"),
        ("/smallimages/", "/images2500x2500/"),
        ("_sm.jpg", ".jpg"),
    ]


class DPReviewImageProvider(SearchPageImageProvider):
    """DPReview product database images."""

    provider_name = "dpreview"
    display_name = "DPReview"
    base_url = "https://www.dpreview.com"
    search_url = "https://www.dpreview.com/search?q={query}"
    selectors = [
        ".productSearch img",
        ".productImage img",
        ".entry img",
    ]
