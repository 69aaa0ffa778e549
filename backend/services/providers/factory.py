# backend/services/providers/factory.py
"""
Provider factory for building the ordered image source chain.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Type

from config import Settings, get_settings
from integrations.image_downloader import ImageDownloader

from .base import ImageSourceProvider, ProviderInfo
from .manufacturer_provider import ManufacturerImageProvider
from .retailer_provider import BHPhotoImageProvider, DPReviewImageProvider
from .web_search_provider import WebSearchImageProvider
from .wikimedia_provider import WikimediaImageProvider

logger = logging.getLogger(__name__)


class ProviderType(str, Enum):
    """Available provider types"""
    MANUFACTURER = "manufacturer"
    WIKIMEDIA = "wikimedia"
    BHPHOTO = "bhphoto"
    DPREVIEW = "dpreview"
    WEB_SEARCH = "web_search"


# Provider registry
_PROVIDER_CLASSES: Dict[ProviderType, Type[ImageSourceProvider]] = {
    ProviderType.MANUFACTURER: ManufacturerImageProvider,
    ProviderType.WIKIMEDIA: WikimediaImageProvider,
    ProviderType.BHPHOTO: BHPhotoImageProvider,
    ProviderType.DPREVIEW: DPReviewImageProvider,
    ProviderType.WEB_SEARCH: WebSearchImageProvider,
}


def create_provider(
    provider_type: ProviderType,
    downloader: Optional[ImageDownloader] = None,
    settings: Optional[Settings] = None,
) -> ImageSourceProvider:
    """Instantiate one provider with the configured timeout."""
    settings = settings or get_settings()
    cls = _PROVIDER_CLASSES[provider_type]
    return cls(downloader=downloader, timeout_seconds=settings.provider_timeout_seconds)


def build_provider_chain(
    settings: Optional[Settings] = None,
    downloader: Optional[ImageDownloader] = None,
) -> List[ImageSourceProvider]:
    """
    Build the ordered provider chain from settings.enabled_providers.

    Unknown names are logged and skipped; order follows the setting.
    All providers share one downloader.
    """
    settings = settings or get_settings()
    downloader = downloader or ImageDownloader(
        timeout_seconds=settings.download_timeout_seconds,
        max_bytes=settings.max_download_bytes,
        user_agent=settings.user_agent,
    )

    chain: List[ImageSourceProvider] = []
    for name in settings.provider_names:
        try:
            provider_type = ProviderType(name)
        except ValueError:
            logger.warning(f"Unknown image provider '{name}' in enabled_providers, skipping")
            continue

        provider = create_provider(provider_type, downloader=downloader, settings=settings)
        if not provider.is_available():
            logger.info(f"Image provider {name} unavailable, skipping")
            continue
        chain.append(provider)

    logger.info(f"Image provider chain: {[p.name for p in chain] or 'none (placeholders only)'}")
    return chain


def get_available_providers(chain: List[ImageSourceProvider]) -> List[ProviderInfo]:
    """
    Get list of available providers in a chain.

    Returns:
        List of ProviderInfo for available providers
    """
    return [p.info for p in chain if p.is_available()]


async def check_all_providers(chain: List[ImageSourceProvider]) -> Dict[str, dict]:
    """
    Perform health check on all providers.

    Returns:
        Dict mapping provider name to health status
    """
    results = {}
    for provider in chain:
        results[provider.name] = await provider.health_check()
    return results
