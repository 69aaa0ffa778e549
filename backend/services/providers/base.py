# backend/services/providers/base.py
"""
Abstract base class for image source providers.

Every image source (manufacturer sites, community archives, retailers,
web search) implements this interface. Providers are tried in order by the
image acquirer until one yields a usable image.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from errors import ProviderError
from integrations.image_downloader import ImageDownloader
from models.automation import LICENSE_FAIR_USE

logger = logging.getLogger(__name__)


@dataclass
class ProviderInfo:
    """Provider metadata"""
    name: str
    version: str
    license: str = LICENSE_FAIR_USE
    requires_network: bool = True
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "license": self.license,
            "requiresNetwork": self.requires_network,
            "description": self.description,
        }


@dataclass
class ImageSearchResult:
    """A candidate image found by a provider"""
    image_url: str
    source_name: str
    source_url: Optional[str] = None
    license: str = LICENSE_FAIR_USE
    attribution: Optional[str] = None
    alternates: List[str] = field(default_factory=list)  # Fallback URLs from the same page

    @property
    def urls(self) -> List[str]:
        return [self.image_url] + [u for u in self.alternates if u != self.image_url]


class ImageSourceProvider(ABC):
    """
    Abstract base class for image source providers.

    Subclasses implement _search(); callers use search(), which applies the
    provider timeout and converts any failure into a miss.
    """

    def __init__(
        self,
        downloader: Optional[ImageDownloader] = None,
        timeout_seconds: float = 12.0,
    ):
        self.downloader = downloader or ImageDownloader()
        self.timeout_seconds = timeout_seconds

    @property
    @abstractmethod
    def info(self) -> ProviderInfo:
        """Return provider metadata"""
        pass

    @property
    def name(self) -> str:
        """Provider name for identification"""
        return self.info.name

    @abstractmethod
    async def _search(self, brand: str, model: str) -> Optional[ImageSearchResult]:
        """
        Look up a product image for one camera.

        Returns:
            ImageSearchResult, or None if this source has nothing

        Raises:
            Anything; search() contains it
        """
        pass

    async def search(self, brand: str, model: str) -> Optional[ImageSearchResult]:
        """Find an image URL for (brand, model). Never raises."""
        try:
            return await asyncio.wait_for(self._search(brand, model), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"[{self.name}] {brand} {model}: timed out after {self.timeout_seconds}s")
        except asyncio.CancelledError:
            raise
        except ProviderError as e:
            logger.warning(f"[{self.name}] {brand} {model}: {e.message}")
        except Exception as e:
            logger.warning(f"[{self.name}] {brand} {model}: {type(e).__name__}: {e}")
        return None

    def is_available(self) -> bool:
        """
        Check if provider is currently usable.

        Returns:
            True if provider can accept search requests
        """
        return True

    async def health_check(self) -> dict:
        """
        Perform health check on provider.

        Returns:
            Dict with status and details
        """
        try:
            available = self.is_available()
            return {
                "provider": self.name,
                "available": available,
                "status": "healthy" if available else "unavailable",
            }
        except Exception as e:
            return {
                "provider": self.name,
                "available": False,
                "status": "error",
                "error": str(e),
            }
