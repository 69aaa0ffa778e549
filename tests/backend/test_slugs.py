# tests/backend/test_slugs.py
"""
Tests for slug derivation and collision handling
"""

import pytest

from utils.slugs import resolve_unique_slug, safe_filename, slug_text, slugify


class TestSlugify:
    """Tests for slugify"""

    def test_basic_brand_model(self):
        assert slugify("Canon", "EOS R5") == "canon-eos-r5"

    def test_is_deterministic(self):
        assert slugify("Sony", "A7R V") == slugify("Sony", "A7R V")

    @pytest.mark.parametrize("brand,model,expected", [
        ("Hasselblad", "500C/M", "hasselblad-500c-m"),
        ("ARRI", "ALEXA   Mini LF", "arri-alexa-mini-lf"),
        ("Acme", 'Cam: "Pro" <X>|Y', "acme-cam-pro-x-y"),
        ("Nikon", "Z6 III", "nikon-z6-iii"),
        ("  RED ", " KOMODO ", "red-komodo"),
    ])
    def test_separators_collapse_to_single_hyphen(self, brand, model, expected):
        assert slugify(brand, model) == expected

    def test_missing_parts_use_defaults(self):
        assert slugify(None, None) == "unknown-model"
        assert slugify("", "X100V") == "unknown-x100v"
        assert slugify("Fujifilm", "") == "fujifilm-model"

    def test_everything_stripped_falls_back(self):
        assert slugify("***", "???") == "unknown-model"
        assert slugify("日本", "カメラ") == "unknown-model"

    def test_non_string_input_never_raises(self):
        assert slugify(123, 4.5) == "123-45"

    def test_truncated_without_trailing_hyphen(self):
        slug = slugify("Brand", "x" * 94 + " yyyy")
        assert len(slug) <= 100
        assert not slug.endswith("-")
        assert slug.startswith("brand-xxx")


class TestSlugText:
    """Tests for slug_text"""

    def test_model_slug(self):
        assert slug_text("EOS R5") == "eos-r5"

    def test_may_be_empty(self):
        assert slug_text("!!!") == ""


class TestResolveUniqueSlug:
    """Tests for resolve_unique_slug"""

    def test_free_candidate_returned(self):
        assert resolve_unique_slug("acme-cam-1", lambda s: False) == "acme-cam-1"

    def test_appends_counter_until_free(self):
        taken = {"acme-cam-1", "acme-cam-1-2", "acme-cam-1-3"}
        assert resolve_unique_slug("acme-cam-1", taken.__contains__) == "acme-cam-1-4"

    def test_colliding_pairs_get_distinct_slugs(self):
        """("Acme", "Cam 1") and ("Acme", "Cam-1") slug identically"""
        taken = set()
        first = resolve_unique_slug(slugify("Acme", "Cam 1"), taken.__contains__)
        taken.add(first)
        second = resolve_unique_slug(slugify("Acme", "Cam-1"), taken.__contains__)

        assert first == "acme-cam-1"
        assert second == "acme-cam-1-2"


class TestSafeFilename:
    """Tests for safe_filename"""

    def test_image_names(self):
        assert safe_filename("canon-eos-r5") == "canon-eos-r5.jpg"
        assert safe_filename("canon-eos-r5", "thumb") == "canon-eos-r5-thumb.jpg"
        assert safe_filename("canon-eos-r5", ext=".json") == "canon-eos-r5.json"
