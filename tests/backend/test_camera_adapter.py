# tests/backend/test_camera_adapter.py
"""
Tests for mapping heterogeneous camera payloads onto store columns
"""

from models.automation import CameraCandidate
from services.camera_adapter import (
    adapt_camera_data,
    adapt_candidate,
    default_sensor_size,
    guess_lens_mount,
    guess_release_year,
    normalize_category,
)


class TestHeuristics:
    """Tests for the documented defaults"""

    def test_category_sensor_defaults(self):
        assert default_sensor_size("Medium Format") == "Medium Format"
        assert default_sensor_size("cinema") == "Super 35"
        assert default_sensor_size("film") == "35mm"
        assert default_sensor_size("compact") is None
        assert default_sensor_size(None) is None

    def test_normalize_category(self):
        assert normalize_category(" Medium_Format ") == "medium-format"

    def test_lens_mount_guesses(self):
        assert guess_lens_mount("Canon", "EOS R5") == "Canon RF"
        assert guess_lens_mount("Canon", "EOS 5D Mark IV") == "Canon EF"
        assert guess_lens_mount("Nikon", "Z9") == "Nikon Z"
        assert guess_lens_mount("Nikon", "D850") == "Nikon F"
        assert guess_lens_mount("Fujifilm", "GFX 100 II") == "Fujifilm G"
        assert guess_lens_mount("Acme", "Cam 1") is None

    def test_release_year_table(self):
        assert guess_release_year("D850") == 2017
        assert guess_release_year("Unknown 1") is None


class TestAdaptCameraData:
    """Tests for adapt_camera_data"""

    def test_nested_and_camel_case_sources(self):
        record = adapt_camera_data({
            "brand": "Sony",
            "model": "A7R V",
            "category": "mirrorless",
            "sensor": {"megapixels": "61.0 MP", "type": "BSI CMOS"},
            "isoMax": "32,000",
            "weatherSealed": "yes",
            "video_max_resolution": "8K",
        })

        assert record["sensor_megapixels"] == 61.0
        assert record["sensor_type"] == "BSI CMOS"
        assert record["weather_sealed"] is True
        assert record["video_8k"] is True
        assert record["video_4k"] is True
        assert record["release_year"] == 2022
        assert record["lens_mount"] == "Sony E"
        assert record["sensor_size"] == "Full Frame"
        assert record["full_name"] == "Sony A7R V"

    def test_explicit_values_beat_heuristics(self):
        record = adapt_camera_data({
            "brand": "Canon",
            "model": "EOS R7",
            "category": "mirrorless",
            "sensorSize": "APS-C",
            "lensMount": "Canon RF",
        })

        assert record["sensor_size"] == "APS-C"

    def test_unknown_values_are_omitted(self):
        record = adapt_camera_data({"brand": "Acme", "model": "Cam 1", "iso_max": "n/a"})

        assert "iso_max" not in record
        assert "sensor_size" not in record
        assert "slug" not in record
        assert all(value is not None for value in record.values())

    def test_adapt_candidate_passes_metadata(self):
        candidate = CameraCandidate(
            brand="RED",
            model="KOMODO",
            category="cinema",
            metadata={"weight": 950},
        )

        record = adapt_candidate(candidate)

        assert record["brand"] == "RED"
        assert record["category"] == "cinema"
        assert record["sensor_size"] == "Super 35"
        assert record["weight"] == 950.0
        assert record["release_year"] == 2021
