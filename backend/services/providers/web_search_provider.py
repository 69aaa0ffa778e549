# backend/services/providers/web_search_provider.py
"""
Web image search provider (DuckDuckGo).

Last resort before a placeholder: generic image search, preferring
results hosted by the brand or a known camera retailer.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from duckduckgo_search import DDGS

from models.automation import LICENSE_FAIR_USE

from .base import ImageSearchResult, ImageSourceProvider, ProviderInfo

logger = logging.getLogger(__name__)

# Hosts whose product shots are clean studio images
PREFERRED_HOSTS = (
    "bhphotovideo.com",
    "adorama.com",
    "dpreview.com",
    "wikimedia.org",
)


class WebSearchImageProvider(ImageSourceProvider):
    """DuckDuckGo image search."""

    def __init__(self, *args: Any, max_results: int = 8, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.max_results = max_results

    @property
    def info(self) -> ProviderInfo:
        return ProviderInfo(
            name="web_search",
            version="1.0.0",
            license=LICENSE_FAIR_USE,
            description="DuckDuckGo image search fallback",
        )

    def _query(self, brand: str, model: str) -> str:
        return f"{brand} {model} camera product photo"

    def _run_search(self, query: str) -> List[Dict[str, Any]]:
        with DDGS() as ddgs:
            return list(ddgs.images(query, max_results=self.max_results))

    @staticmethod
    def _rank(results: List[Dict[str, Any]], brand: str) -> List[Dict[str, Any]]:
        brand_key = brand.lower().replace(" ", "")

        def score(result: Dict[str, Any]) -> int:
            page = (result.get("url") or "").lower()
            if brand_key and brand_key in page:
                return 0
            if any(host in page for host in PREFERRED_HOSTS):
                return 1
            return 2

        # sorted() is stable, so search order breaks ties
        return sorted(results, key=score)

    async def _search(self, brand: str, model: str) -> Optional[ImageSearchResult]:
        query = self._query(brand, model)
        logger.info(f"Searching images: {query}")

        # DDGS is synchronous; keep it off the event loop
        results = await asyncio.to_thread(self._run_search, query)
        results = [r for r in results if r.get("image")]
        if not results:
            logger.info(f"No web image results for {brand} {model}")
            return None

        ranked = self._rank(results, brand)
        best = ranked[0]
        return ImageSearchResult(
            image_url=best["image"],
            source_name=self.name,
            source_url=best.get("url"),
            license=LICENSE_FAIR_USE,
            attribution=f"Image via {best.get('source') or 'web search'}: {best.get('url') or best['image']}",
            alternates=[r["image"] for r in ranked[1:3]],
        )
