# tests/backend/test_reporting.py
"""
Tests for report files, atomic writes and image helpers
"""

import json

import pytest
from PIL import Image

from conftest import make_jpeg
from errors import ImageValidationError
from models.automation import DiscoveryRunLog, RunStatus
from services.reporting import (
    ATTRIBUTION_REPORT_NAME,
    build_attribution_report,
    write_attribution_report,
    write_run_report,
)
from utils.files import write_json_atomic
from utils.imaging import brand_color, fit_width, load_image, render_placeholder, save_jpeg


class TestRunReport:
    """Tests for automation-report.json"""

    def test_report_shape(self, tmp_path):
        log = DiscoveryRunLog()
        log.cameras_discovered = 4
        log.cameras_saved = 3
        log.real_images = 2
        log.placeholders = 1
        log.record_error("Acme Cam", "boom")
        log.finalize(RunStatus.PARTIAL)

        path = write_run_report(log, tmp_path / "reports" / "automation-report.json")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["status"] == "partial"
        assert data["camerasSaved"] == 3
        assert data["realImages"] == 2
        assert data["timestamp"].endswith("Z")
        assert len(data["errors"]) == 1

    def test_unwritable_path_returns_none(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        assert write_run_report(DiscoveryRunLog(), blocker / "automation-report.json") is None


class TestAttributionReport:
    """Tests for the grouped attribution report"""

    def test_groups_by_source(self, tmp_path):
        write_json_atomic(tmp_path / "canon-eos-r5.json", {
            "sourceName": "wikimedia",
            "license": "CC BY-SA 4.0",
            "attribution": "Jane Doe",
        })
        write_json_atomic(tmp_path / "nikon-z9.json", {"sourceName": "manufacturer"})
        write_json_atomic(tmp_path / "sony-fx3.json", {"sourceName": "wikimedia"})

        report = build_attribution_report(tmp_path)

        assert report["totalImages"] == 3
        assert len(report["sources"]["wikimedia"]) == 2
        assert report["sources"]["wikimedia"][0]["camera"] == "canon-eos-r5"

    def test_skips_unreadable_and_previous_report(self, tmp_path):
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
        write_json_atomic(tmp_path / "leica-m6.json", {"sourceName": "web_search"})

        first = write_attribution_report(tmp_path)
        assert first.name == ATTRIBUTION_REPORT_NAME

        report = build_attribution_report(tmp_path)
        assert report["totalImages"] == 1
        assert list(report["sources"]) == ["web_search"]

    def test_missing_directory_is_empty(self, tmp_path):
        report = build_attribution_report(tmp_path / "nope")
        assert report["totalImages"] == 0
        assert report["sources"] == {}


class TestAtomicJson:
    """Tests for write_json_atomic"""

    def test_replaces_existing_file(self, tmp_path):
        target = tmp_path / "data.json"
        write_json_atomic(target, {"version": 1})
        write_json_atomic(target, {"version": 2})

        assert json.loads(target.read_text(encoding="utf-8")) == {"version": 2}
        assert [p.name for p in tmp_path.iterdir()] == ["data.json"]

    def test_unserializable_leaves_no_temp_file(self, tmp_path):
        target = tmp_path / "data.json"

        with pytest.raises(ValueError):
            write_json_atomic(target, _circular())

        assert list(tmp_path.iterdir()) == []


def _circular():
    data = {}
    data["self"] = data
    return data


class TestImaging:
    """Tests for image validation and JPEG output"""

    def test_rejects_small_images(self):
        with pytest.raises(ImageValidationError) as exc_info:
            load_image(make_jpeg(80, 300), min_dimension=100)
        assert exc_info.value.details["width"] == 80

    def test_rejects_garbage(self):
        with pytest.raises(ImageValidationError):
            load_image(b"<html>not an image</html>")

    def test_fit_width_never_upscales(self):
        small = Image.new("RGB", (300, 200))
        large = Image.new("RGB", (2400, 1600))

        assert fit_width(small, 1200).size == (300, 200)
        assert fit_width(large, 1200).size == (1200, 800)

    def test_save_jpeg_flattens_transparency(self, tmp_path):
        image = Image.new("RGBA", (200, 200), (255, 0, 0, 0))

        path = save_jpeg(image, tmp_path / "out" / "cam.jpg")

        with Image.open(path) as saved:
            assert saved.format == "JPEG"
            assert min(saved.getpixel((100, 100))) > 240

    def test_placeholder_is_stable_per_brand(self):
        assert brand_color("Canon") == brand_color("Canon")

        image = render_placeholder("Canon", "EOS R5", width=600, height=400)
        assert image.size == (600, 400)
        assert image.getpixel((5, 5)) == brand_color("Canon")
