"""
Identity normalization for camera records.

Derives the brand+model slug used as the stable record identifier and as
the stem for image and attribution filenames.
"""

import re
from typing import Any, Callable

MAX_SLUG_LENGTH = 100

# Whitespace and characters that are unsafe in filenames/URLs
_SEPARATORS = re.compile(r'[\s/\\:*?"<>|]+')
_DISALLOWED = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-{2,}")


def _clean_part(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def slug_text(text: str) -> str:
    """Slug form of a single free-text value; may be empty."""
    slug = _SEPARATORS.sub("-", text.lower())
    slug = _DISALLOWED.sub("", slug)
    return _HYPHEN_RUNS.sub("-", slug).strip("-")


def slugify(brand: Any, model: Any) -> str:
    """
    Build the slug for a (brand, model) pair.

    Pure and total: never raises, and always returns a non-empty slug.

        >>> slugify("Canon", "EOS R5")
        'canon-eos-r5'
    """
    brand_part = _clean_part(brand, "unknown")
    model_part = _clean_part(model, "model")

    slug = slug_text(f"{brand_part}-{model_part}")
    slug = slug[:MAX_SLUG_LENGTH].rstrip("-")

    return slug or "unknown-model"


def resolve_unique_slug(candidate: str, exists_fn: Callable[[str], bool]) -> str:
    """
    Return `candidate`, or `candidate-2`, `candidate-3`, ... whichever is free.

    Only used at insert time; assigned slugs are never recomputed.
    """
    if not exists_fn(candidate):
        return candidate

    suffix = 2
    while exists_fn(f"{candidate}-{suffix}"):
        suffix += 1
    return f"{candidate}-{suffix}"


def safe_filename(slug: str, suffix: str = "", ext: str = ".jpg") -> str:
    """Filename for an image or attribution file derived from a slug."""
    stem = f"{slug}-{suffix}" if suffix else slug
    return f"{stem}{ext}"
