"""
Pytest configuration and fixtures for Camera Vault automation tests.
"""

import io
import pytest
import sys
from pathlib import Path
from typing import Optional

# Add backend to path for imports
backend_path = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(backend_path))

from PIL import Image

from config import Settings
from services.providers.base import ImageSearchResult, ImageSourceProvider, ProviderInfo
from services.record_store import RecordStore


def make_jpeg(width: int = 800, height: int = 600, color=(30, 90, 160)) -> bytes:
    """Encoded JPEG bytes of a solid image."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="JPEG")
    return buffer.getvalue()


async def no_sleep(seconds: float) -> None:
    """Stand-in for asyncio.sleep that returns immediately."""
    return None


class FailingProvider(ImageSourceProvider):
    """Provider whose lookup always blows up."""

    def __init__(self, name: str = "failing"):
        super().__init__(downloader=None, timeout_seconds=1.0)
        self._name = name
        self.calls = 0

    @property
    def info(self) -> ProviderInfo:
        return ProviderInfo(name=self._name, version="test", license="n/a")

    async def _search(self, brand: str, model: str) -> Optional[ImageSearchResult]:
        self.calls += 1
        raise RuntimeError("source unavailable")


class FixedUrlProvider(ImageSourceProvider):
    """Provider that always points at the same image URL."""

    def __init__(self, url: str = "https://img.example.com/camera.jpg", name: str = "fixed"):
        super().__init__(downloader=None, timeout_seconds=1.0)
        self.url = url
        self._name = name
        self.calls = 0

    @property
    def info(self) -> ProviderInfo:
        return ProviderInfo(name=self._name, version="test", license="CC BY-SA")

    async def _search(self, brand: str, model: str) -> Optional[ImageSearchResult]:
        self.calls += 1
        return ImageSearchResult(
            image_url=self.url,
            source_name=self._name,
            source_url="https://example.com/product",
            license="CC BY-SA",
            attribution=f"Photo of {brand} {model}",
        )


@pytest.fixture
def settings(tmp_path):
    """Settings with every path under a temporary directory."""
    return Settings(
        database_path=str(tmp_path / "data" / "camera-vault.db"),
        images_dir=str(tmp_path / "public" / "images" / "cameras"),
        attributions_dir=str(tmp_path / "data" / "attributions"),
        backups_dir=str(tmp_path / "data" / "backups"),
        report_path=str(tmp_path / "data" / "automation-report.json"),
        request_delay_seconds=0,
        scheduler_autostart=False,
        daily_limit=200,
    )


@pytest.fixture
def store(settings):
    """Initialized record store on a temporary file."""
    record_store = RecordStore(settings.database_path).initialize()
    yield record_store
    record_store.close()


@pytest.fixture
def jpeg_bytes():
    return make_jpeg()


@pytest.fixture
def sample_candidates():
    """Ten distinct candidates across three brands."""
    from models.automation import CameraCandidate

    return [
        CameraCandidate(brand="Canon", model=f"EOS Test {i}", category="mirrorless")
        for i in range(4)
    ] + [
        CameraCandidate(brand="Nikon", model=f"Z Test {i}", category="mirrorless")
        for i in range(3)
    ] + [
        CameraCandidate(brand="Leica", model=f"M Test {i}", category="film")
        for i in range(3)
    ]
