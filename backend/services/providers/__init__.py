# backend/services/providers/__init__.py
"""
Camera Vault Image Source Providers

Provider abstraction layer for the sources product images are pulled from.
"""

from .base import ImageSearchResult, ImageSourceProvider, ProviderInfo
from .manufacturer_provider import ManufacturerImageProvider
from .wikimedia_provider import WikimediaImageProvider
from .retailer_provider import BHPhotoImageProvider, DPReviewImageProvider
from .web_search_provider import WebSearchImageProvider
from .factory import (
    ProviderType,
    build_provider_chain,
    check_all_providers,
    create_provider,
    get_available_providers,
)

__all__ = [
    # Base
    "ImageSearchResult",
    "ImageSourceProvider",
    "ProviderInfo",
    # Implementations
    "ManufacturerImageProvider",
    "WikimediaImageProvider",
    "BHPhotoImageProvider",
    "DPReviewImageProvider",
    "WebSearchImageProvider",
    # Factory
    "ProviderType",
    "build_provider_chain",
    "check_all_providers",
    "create_provider",
    "get_available_providers",
]
