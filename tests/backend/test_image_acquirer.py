# tests/backend/test_image_acquirer.py
"""
Tests for image acquisition: provider walk, normalization, placeholders
and idempotence
"""

import json
import threading

import httpx
import pytest
from PIL import Image

from conftest import FailingProvider, FixedUrlProvider, make_jpeg
from integrations.image_downloader import ImageDownloader
from models.automation import CameraCandidate, ImageSource, LICENSE_PLACEHOLDER
from services.image_acquirer import ImageAcquirer


def image_transport(content: bytes, content_type: str = "image/jpeg", status: int = 200):
    """MockTransport serving the same body for every request, counting calls."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(status, content=content, headers={"content-type": content_type})

    transport = httpx.MockTransport(handler)
    transport.calls = calls
    return transport


@pytest.fixture
def camera():
    return CameraCandidate(brand="Canon", model="EOS R5", category="mirrorless")


class TestPlaceholderFallback:
    """Tests for total-failure behavior"""

    @pytest.mark.asyncio
    async def test_all_providers_failing_yields_placeholder(self, settings, camera):
        providers = [FailingProvider("a"), FailingProvider("b")]
        acquirer = ImageAcquirer(providers=providers, downloader=ImageDownloader(), settings=settings)

        result = await acquirer.acquire_image(camera)

        full_path, thumb_path, attribution_path = acquirer.file_paths("canon-eos-r5")
        assert result.source == ImageSource.PLACEHOLDER
        assert result.local_image_path == "/images/cameras/canon-eos-r5.jpg"
        assert result.thumb_path == "/images/cameras/thumbs/canon-eos-r5-thumb.jpg"
        assert full_path.is_file()
        assert thumb_path.is_file()

        data = json.loads(attribution_path.read_text())
        assert data["license"] == LICENSE_PLACEHOLDER
        assert all(p.calls == 1 for p in providers)

    @pytest.mark.asyncio
    async def test_placeholder_dimensions(self, settings, camera):
        acquirer = ImageAcquirer(providers=[], downloader=ImageDownloader(), settings=settings)
        await acquirer.acquire_image(camera)

        full_path, thumb_path, _ = acquirer.file_paths("canon-eos-r5")
        with Image.open(full_path) as full, Image.open(thumb_path) as thumb:
            assert full.size == (1200, 800)
            assert thumb.size == (300, 200)

    @pytest.mark.asyncio
    async def test_undecodable_download_falls_back(self, settings, camera):
        transport = image_transport(b"<html>not an image</html>", content_type="image/jpeg")
        acquirer = ImageAcquirer(
            providers=[FixedUrlProvider()],
            downloader=ImageDownloader(transport=transport),
            settings=settings,
        )

        result = await acquirer.acquire_image(camera)
        assert result.source == ImageSource.PLACEHOLDER

    @pytest.mark.asyncio
    async def test_tiny_image_rejected(self, settings, camera):
        transport = image_transport(make_jpeg(50, 50))
        acquirer = ImageAcquirer(
            providers=[FixedUrlProvider()],
            downloader=ImageDownloader(transport=transport),
            settings=settings,
        )

        result = await acquirer.acquire_image(camera)
        assert result.source == ImageSource.PLACEHOLDER


class TestRealImages:
    """Tests for successful downloads"""

    @pytest.mark.asyncio
    async def test_downloads_and_resizes(self, settings, camera):
        transport = image_transport(make_jpeg(2400, 1600))
        acquirer = ImageAcquirer(
            providers=[FailingProvider(), FixedUrlProvider()],
            downloader=ImageDownloader(transport=transport),
            settings=settings,
        )

        result = await acquirer.acquire_image(camera)

        full_path, thumb_path, attribution_path = acquirer.file_paths("canon-eos-r5")
        assert result.source == ImageSource.REAL
        assert result.image_url == "https://img.example.com/camera.jpg"
        assert result.credit == "Photo of Canon EOS R5"
        with Image.open(full_path) as full, Image.open(thumb_path) as thumb:
            assert full.size == (1200, 800)
            assert thumb.size == (300, 200)
        assert json.loads(attribution_path.read_text())["sourceName"] == "fixed"

    @pytest.mark.asyncio
    async def test_small_images_not_upscaled(self, settings, camera):
        transport = image_transport(make_jpeg(640, 480))
        acquirer = ImageAcquirer(
            providers=[FixedUrlProvider()],
            downloader=ImageDownloader(transport=transport),
            settings=settings,
        )

        await acquirer.acquire_image(camera)

        full_path, _, _ = acquirer.file_paths("canon-eos-r5")
        with Image.open(full_path) as full:
            assert full.size == (640, 480)

    @pytest.mark.asyncio
    async def test_explicit_slug_names_files(self, settings, camera):
        transport = image_transport(make_jpeg())
        acquirer = ImageAcquirer(
            providers=[FixedUrlProvider()],
            downloader=ImageDownloader(transport=transport),
            settings=settings,
        )

        result = await acquirer.acquire_image(camera, slug="canon-eos-r5-2")

        assert result.local_image_path.endswith("/canon-eos-r5-2.jpg")
        assert acquirer.file_paths("canon-eos-r5-2")[0].is_file()


class TestIdempotence:
    """Tests for reusing existing images"""

    @pytest.mark.asyncio
    async def test_second_call_makes_no_requests(self, settings, camera):
        transport = image_transport(make_jpeg())
        provider = FixedUrlProvider()
        acquirer = ImageAcquirer(
            providers=[provider],
            downloader=ImageDownloader(transport=transport),
            settings=settings,
        )

        first = await acquirer.acquire_image(camera)
        second = await acquirer.acquire_image(camera)

        assert first.source == ImageSource.REAL
        assert second.reused is True
        assert second.local_image_path == first.local_image_path
        assert provider.calls == 1
        assert len(transport.calls) == 1

    @pytest.mark.asyncio
    async def test_placeholder_is_retried(self, settings, camera):
        failing = FailingProvider()
        acquirer = ImageAcquirer(providers=[failing], downloader=ImageDownloader(), settings=settings)

        await acquirer.acquire_image(camera)
        await acquirer.acquire_image(camera)

        assert failing.calls == 2

    @pytest.mark.asyncio
    async def test_accepts_dict_camera(self, settings):
        acquirer = ImageAcquirer(providers=[], downloader=ImageDownloader(), settings=settings)
        result = await acquirer.acquire_image({"brand": "Leica", "model": "M6"})
        assert result.local_image_path.endswith("/leica-m6.jpg")


class TestEventLoop:
    """Tests that Pillow work stays off the event loop thread"""

    @pytest.mark.asyncio
    async def test_image_writes_run_in_worker_threads(self, settings, camera, monkeypatch):
        import services.image_acquirer as image_acquirer_module

        loop_thread = threading.get_ident()
        write_threads = []
        original_save = image_acquirer_module.save_jpeg

        def recording_save(image, path, quality=85):
            write_threads.append(threading.get_ident())
            return original_save(image, path, quality)

        monkeypatch.setattr(image_acquirer_module, "save_jpeg", recording_save)

        real = ImageAcquirer(
            providers=[FixedUrlProvider()],
            downloader=ImageDownloader(transport=image_transport(make_jpeg())),
            settings=settings,
        )
        await real.acquire_image(camera)

        placeholder = ImageAcquirer(providers=[FailingProvider()], downloader=ImageDownloader(), settings=settings)
        await placeholder.acquire_image({"brand": "Leica", "model": "M6"})

        assert len(write_threads) == 4
        assert loop_thread not in write_threads
