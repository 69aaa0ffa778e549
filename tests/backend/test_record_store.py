# tests/backend/test_record_store.py
"""
Tests for the SQLite record store
"""

import pytest

from errors import RecordStoreError, StoreInitializationError
from models.automation import AttributionRecord, DiscoveryRunLog, RunStatus
from services.record_store import RecordStore


class TestInitialization:
    """Tests for store lifecycle"""

    def test_creates_file_and_schema(self, settings):
        store = RecordStore(settings.database_path).initialize()
        try:
            assert store.count_all() == 0
        finally:
            store.close()

    def test_corrupt_file_raises(self, tmp_path):
        bad = tmp_path / "corrupt.db"
        bad.write_bytes(b"this is not a sqlite database at all" * 100)

        with pytest.raises(StoreInitializationError) as exc_info:
            RecordStore(bad).initialize()
        assert exc_info.value.recoverable is False


class TestUpsert:
    """Tests for insert / partial update"""

    def test_insert_assigns_slug(self, store):
        camera_id = store.upsert({"brand": "Canon", "model": "EOS R5", "category": "mirrorless"})

        camera = store.get(camera_id)
        assert camera.slug == "canon-eos-r5"
        assert store.exists("Canon", "EOS R5")

    def test_exists_is_case_sensitive(self, store):
        store.upsert({"brand": "Canon", "model": "EOS R5"})
        assert not store.exists("canon", "eos r5")

    def test_colliding_slugs_are_distinct(self, store):
        first = store.upsert({"brand": "Acme", "model": "Cam 1"})
        second = store.upsert({"brand": "Acme", "model": "Cam-1"})

        assert store.get(first).slug == "acme-cam-1"
        assert store.get(second).slug == "acme-cam-1-2"

    def test_partial_update_keeps_existing_fields(self, store):
        camera_id = store.upsert({
            "brand": "Nikon",
            "model": "D850",
            "sensor_megapixels": 45.7,
            "iso_max": 25600,
        })

        same_id = store.upsert({
            "brand": "Nikon",
            "model": "D850",
            "sensor_megapixels": None,
            "weight": 1005.0,
        })

        camera = store.get(camera_id)
        assert same_id == camera_id
        assert camera.sensor_megapixels == 45.7
        assert camera.iso_max == 25600
        assert camera.weight == 1005.0
        assert store.count_all() == 1

    def test_slug_never_recomputed(self, store):
        camera_id = store.upsert({"brand": "Sony", "model": "FX3"})
        store.upsert({"brand": "Sony", "model": "FX3", "slug": "something-else", "full_name": "Sony FX3"})

        camera = store.get(camera_id)
        assert camera.slug == "sony-fx3"
        assert camera.full_name == "Sony FX3"

    def test_unknown_keys_ignored(self, store):
        camera_id = store.upsert({"brand": "Leica", "model": "M6", "not_a_column": 1})
        assert store.get(camera_id).model == "M6"

    def test_brand_and_model_required(self, store):
        with pytest.raises(RecordStoreError):
            store.upsert({"brand": "Leica"})

    def test_planned_slug_matches_insert(self, store):
        store.upsert({"brand": "Acme", "model": "Cam 1"})

        planned = store.planned_slug("Acme", "Cam-1")
        camera_id = store.upsert({"brand": "Acme", "model": "Cam-1"})

        assert planned == "acme-cam-1-2"
        assert store.get(camera_id).slug == planned
        assert store.planned_slug("Acme", "Cam 1") == "acme-cam-1"


class TestImageFields:
    """Tests for image column updates and backfill selection"""

    def test_update_image_fields_only_touches_images(self, store):
        camera_id = store.upsert({"brand": "RED", "model": "KOMODO", "sensor_size": "Super 35"})

        updated = store.update_image_fields(
            camera_id,
            local_image_path="/images/cameras/red-komodo.jpg",
            thumb_path="/images/cameras/thumbs/red-komodo-thumb.jpg",
            image_source="real",
        )

        camera = store.get(camera_id)
        assert updated is True
        assert camera.local_image_path == "/images/cameras/red-komodo.jpg"
        assert camera.sensor_size == "Super 35"

    def test_update_with_nothing_is_noop(self, store):
        camera_id = store.upsert({"brand": "RED", "model": "KOMODO"})
        assert store.update_image_fields(camera_id) is False

    def test_list_needing_images(self, store):
        missing = store.upsert({"brand": "Canon", "model": "AE-1"})
        placeholder = store.upsert({
            "brand": "Canon",
            "model": "EOS R7",
            "local_image_path": "/images/cameras/canon-eos-r7.jpg",
            "image_source": "placeholder",
        })
        store.upsert({
            "brand": "Canon",
            "model": "EOS R6",
            "local_image_path": "/images/cameras/canon-eos-r6.jpg",
            "image_source": "real",
        })

        ids = {camera.id for camera in store.list_needing_images()}
        assert ids == {missing, placeholder}

    def test_save_attribution(self, store):
        camera_id = store.upsert({"brand": "Sony", "model": "A7 IV"})
        store.save_attribution(camera_id, AttributionRecord(
            camera_ref="sony-a7-iv",
            source_name="wikimedia",
            license="CC BY-SA 4.0",
            attribution="Jane Doe, CC BY-SA 4.0, via Wikimedia Commons",
        ))

        rows = store.list_attributions(camera_id)
        assert len(rows) == 1
        assert rows[0].source_name == "wikimedia"

    def test_has_attribution_matches_source_and_url(self, store):
        camera_id = store.upsert({"brand": "Sony", "model": "A7 IV"})
        assert not store.has_attribution(camera_id, "wikimedia", "https://upload.example.org/a7iv.jpg")

        store.save_attribution(camera_id, AttributionRecord(
            camera_ref="sony-a7-iv",
            source_name="wikimedia",
            license="CC BY-SA 4.0",
            image_url="https://upload.example.org/a7iv.jpg",
        ))

        assert store.has_attribution(camera_id, "wikimedia", "https://upload.example.org/a7iv.jpg")
        assert not store.has_attribution(camera_id, "wikimedia", "https://upload.example.org/other.jpg")
        assert not store.has_attribution(camera_id, "placeholder")


class TestRunsAndStats:
    """Tests for the run audit trail and counts"""

    def test_run_round_trip(self, store):
        log = DiscoveryRunLog()
        store.start_run(log)
        log.cameras_saved = 3
        log.record_error("Acme Cam", "boom")
        log.finalize(RunStatus.PARTIAL)
        store.finish_run(log)

        runs = store.list_runs()
        assert len(runs) == 1
        assert runs[0].status == "partial"
        assert runs[0].cameras_saved == 3
        assert runs[0].error_count == 1

    def test_stats(self, store):
        store.upsert({"brand": "Canon", "model": "EOS R5", "local_image_path": "/a.jpg", "image_source": "real"})
        store.upsert({"brand": "Nikon", "model": "Z9", "local_image_path": "/b.jpg", "image_source": "placeholder"})

        stats = store.stats()
        assert stats["total_cameras"] == 2
        assert stats["total_brands"] == 2
        assert stats["cameras_with_images"] == 2
        assert stats["placeholder_images"] == 1


class TestLookups:
    """Tests for slug lookups"""

    def test_get_by_slug(self, store):
        camera_id = store.upsert({"brand": "Fujifilm", "model": "X-T5"})

        assert store.slug_exists("fujifilm-x-t5")
        assert not store.slug_exists("fujifilm-x-t4")
        assert store.get_by_slug("fujifilm-x-t5").id == camera_id
        assert store.get_by_slug("missing") is None
