# backend/services/catalog.py
"""
Candidate catalogs for discovery.

A catalog yields the (brand, model, category) identities a discovery pass
walks through. The built-in seed list covers current and classic bodies;
a JSON seed file can replace it without code changes.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from config import Settings, get_settings
from errors import ConfigurationError
from models.automation import CameraCandidate

logger = logging.getLogger(__name__)


# Seed list: (brand, model, category)
CAMERA_LIST = [
    # DSLRs
    ("Canon", "EOS 5D Mark IV", "dslr"),
    ("Nikon", "D850", "dslr"),
    ("Nikon", "D780", "dslr"),

    # Mirrorless
    ("Sony", "A7R V", "mirrorless"),
    ("Sony", "A7 IV", "mirrorless"),
    ("Sony", "A7S III", "mirrorless"),
    ("Canon", "EOS R5", "mirrorless"),
    ("Canon", "EOS R6", "mirrorless"),
    ("Canon", "EOS R7", "mirrorless"),
    ("Nikon", "Z9", "mirrorless"),
    ("Nikon", "Z6 III", "mirrorless"),
    ("Fujifilm", "X-T5", "mirrorless"),
    ("Fujifilm", "X-H2S", "mirrorless"),
    ("Fujifilm", "GFX 100 II", "medium-format"),

    # Cinema
    ("Sony", "FX6", "cinema"),
    ("Sony", "FX3", "cinema"),
    ("RED", "KOMODO", "cinema"),
    ("ARRI", "ALEXA Mini LF", "cinema"),
    ("Blackmagic", "URSA Mini Pro 12K", "cinema"),

    # Film
    ("Hasselblad", "500C/M", "film"),
    ("Leica", "M6", "film"),
    ("Nikon", "F3", "film"),
    ("Canon", "AE-1", "film"),
]


def order_by_brand(candidates: Iterable[CameraCandidate]) -> List[CameraCandidate]:
    """
    Group candidates by brand, brands in order of first appearance.

    Order within a brand is preserved, so passes are deterministic for a
    given catalog.
    """
    groups: Dict[str, List[CameraCandidate]] = {}
    for candidate in candidates:
        groups.setdefault(candidate.brand, []).append(candidate)
    return [c for group in groups.values() for c in group]


class CandidateCatalog(ABC):
    """Source of candidate camera identities."""

    name: str = "catalog"

    @abstractmethod
    def _load(self) -> List[CameraCandidate]:
        pass

    def candidates(self) -> List[CameraCandidate]:
        """All candidates, grouped by brand in a fixed order."""
        return order_by_brand(self._load())


class StaticCatalog(CandidateCatalog):
    """Candidates from an in-memory list (the built-in seed list by default)."""

    name = "static"

    def __init__(self, entries: Optional[Iterable[Any]] = None):
        self._entries = list(CAMERA_LIST if entries is None else entries)

    def _load(self) -> List[CameraCandidate]:
        result = []
        for entry in self._entries:
            if isinstance(entry, CameraCandidate):
                result.append(entry)
            elif isinstance(entry, dict):
                result.append(_candidate_from_dict(entry))
            else:
                brand, model, *rest = entry
                result.append(CameraCandidate(brand=brand, model=model, category=rest[0] if rest else None))
        return result


class JsonFileCatalog(CandidateCatalog):
    """
    Candidates from a JSON seed file.

    Accepts a top-level list or {"cameras": [...]}. Each entry needs brand
    and model; category and any spec-sheet fields are passed through as metadata
    for the ingestion adapter.
    """

    name = "json"

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> List[CameraCandidate]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                f"Cannot read catalog file {self.path}: {e}",
                setting="catalog_path",
            ) from e

        entries = data.get("cameras", []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise ConfigurationError(
                f"Catalog file {self.path} must contain a list of cameras",
                setting="catalog_path",
            )

        result = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict) or not entry.get("brand") or not entry.get("model"):
                logger.warning(f"Skipping catalog entry {index} in {self.path.name}: brand and model required")
                continue
            result.append(_candidate_from_dict(entry))

        logger.info(f"Loaded {len(result)} candidates from {self.path}")
        return result


def _candidate_from_dict(entry: Dict[str, Any]) -> CameraCandidate:
    metadata = {k: v for k, v in entry.items() if k not in ("brand", "model", "category")}
    return CameraCandidate(
        brand=str(entry["brand"]).strip(),
        model=str(entry["model"]).strip(),
        category=entry.get("category"),
        metadata=metadata,
    )


def get_catalog(settings: Optional[Settings] = None) -> CandidateCatalog:
    """Catalog selected by settings.catalog_path, else the built-in seed list."""
    settings = settings or get_settings()
    if settings.catalog_file:
        return JsonFileCatalog(settings.catalog_file)
    return StaticCatalog()
