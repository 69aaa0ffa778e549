# backend/utils/__init__.py
"""
Utility modules for the Camera Vault automation backend.
"""

from .rate_limiter import DailyQuota, local_date_string
from .slugs import slugify, slug_text, resolve_unique_slug, safe_filename

__all__ = [
    # Daily quota
    "DailyQuota",
    "local_date_string",
    # Slugs
    "slugify",
    "slug_text",
    "resolve_unique_slug",
    "safe_filename",
]
