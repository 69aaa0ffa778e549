# backend/services/camera_adapter.py
"""
Ingestion adapter.

Maps heterogeneous camera payloads (nested groups like ``sensor.size`` or
flat keys like ``sensorSize`` / ``sensor_size``) onto the record store's
canonical columns. Fields that are unknown stay None; the only values filled
in without source data are the documented heuristics below.
"""

import logging
import re
from typing import Any, Dict, Iterable, Optional

from models.automation import CameraCandidate

logger = logging.getLogger(__name__)

# Default sensor format per category
CATEGORY_SENSOR_SIZES = {
    "medium-format": "Medium Format",
    "cinema": "Super 35",
    "mirrorless": "Full Frame",
    "dslr": "Full Frame",
    "film": "35mm",
}

# Release years for well-known bodies
KNOWN_RELEASE_YEARS = {
    "A7R V": 2022,
    "A7 IV": 2021,
    "A7S III": 2020,
    "EOS R5": 2020,
    "Z9": 2021,
    "FX6": 2020,
    "KOMODO": 2021,
    "EOS 5D Mark IV": 2016,
    "D850": 2017,
    "X-T5": 2022,
}

# canonical column -> ordered list of source paths ("a.b" walks nested dicts)
FIELD_SOURCES: Dict[str, Iterable[str]] = {
    "full_name": ("fullName", "full_name", "name"),
    "release_year": ("releaseYear", "release_year", "year"),
    "discontinued": ("discontinued",),
    "description": ("description",),
    "sensor_size": ("sensor.size", "sensorSize", "sensor_size"),
    "sensor_type": ("sensor.type", "sensorType", "sensor_type"),
    "sensor_megapixels": ("sensor.megapixels", "sensorMegapixels", "sensor_megapixels", "megapixels"),
    "sensor_crop_factor": ("sensor.cropFactor", "sensorCropFactor", "sensor_crop_factor"),
    "sensor_notes": ("sensor.notes", "sensorNotes", "sensor_notes"),
    "processor": ("processor", "sensor.processor"),
    "iso_min": ("iso.min", "isoMin", "iso_min"),
    "iso_max": ("iso.max", "isoMax", "iso_max"),
    "iso_extended_min": ("iso.extendedMin", "isoExtendedMin", "iso_extended_min"),
    "iso_extended_max": ("iso.extendedMax", "isoExtendedMax", "iso_extended_max"),
    "shutter_speed_min": ("shutter.min", "shutterSpeedMin", "shutter_speed_min"),
    "shutter_speed_max": ("shutter.max", "shutterSpeedMax", "shutter_speed_max"),
    "electronic_shutter_max": ("shutter.electronicMax", "electronicShutterMax", "electronic_shutter_max"),
    "flash_sync_speed": ("shutter.flashSync", "flashSyncSpeed", "flash_sync_speed"),
    "continuous_shooting": ("continuousShooting", "continuous_shooting", "shutter.continuous"),
    "af_points": ("autofocus.points", "afPoints", "af_points"),
    "af_type": ("autofocus.type", "afType", "af_type"),
    "af_subject_detection": ("autofocus.subjectDetection", "afSubjectDetection", "af_subject_detection"),
    "video_max_resolution": ("video.maxResolution", "videoMaxResolution", "video_max_resolution"),
    "video_max_frame_rate": ("video.maxFrameRate", "videoMaxFrameRate", "video_max_frame_rate"),
    "video_formats": ("video.formats", "videoFormats", "video_formats"),
    "video_bit_depth": ("video.bitDepth", "videoBitDepth", "video_bit_depth"),
    "video_log_profile": ("video.logProfile", "videoLogProfile", "video_log_profile"),
    "raw_video": ("video.raw", "rawVideo", "raw_video"),
    "hdmi": ("video.hdmi", "ports.hdmi", "hdmi"),
    "headphone_jack": ("video.headphoneJack", "ports.headphone", "headphoneJack", "headphone_jack"),
    "microphone_jack": ("video.microphoneJack", "ports.microphone", "microphoneJack", "microphone_jack"),
    "usb_type": ("ports.usb", "usbType", "usb_type"),
    "wireless": ("connectivity.wireless", "wireless"),
    "bluetooth": ("connectivity.bluetooth", "bluetooth"),
    "gps": ("connectivity.gps", "gps"),
    "connectivity": ("connectivity.other", "connectivity"),
    "battery_life": ("battery.life", "batteryLife", "battery_life"),
    "battery_type": ("battery.type", "batteryType", "battery_type"),
    "weather_sealed": ("build.weatherSealed", "features.weatherSealed", "weatherSealed", "weather_sealed"),
    "weight": ("build.weight", "weight"),
    "dimensions_width": ("build.dimensions.width", "dimensionsWidth", "dimensions_width"),
    "dimensions_height": ("build.dimensions.height", "dimensionsHeight", "dimensions_height"),
    "dimensions_depth": ("build.dimensions.depth", "dimensionsDepth", "dimensions_depth"),
    "body_material": ("build.material", "bodyMaterial", "body_material"),
    "ibis": ("features.ibis", "stabilization.ibis", "ibis"),
    "ibis_stops": ("stabilization.stops", "ibisStops", "ibis_stops"),
    "lens_mount": ("features.mount", "lensMount", "lens_mount", "mount"),
    "built_in_flash": ("features.builtInFlash", "builtInFlash", "built_in_flash"),
    "hot_shoe": ("features.hotShoe", "hotShoe", "hot_shoe"),
    "viewfinder_type": ("viewfinder.type", "viewfinderType", "viewfinder_type"),
    "viewfinder_coverage": ("viewfinder.coverage", "viewfinderCoverage", "viewfinder_coverage"),
    "viewfinder_magnification": ("viewfinder.magnification", "viewfinderMagnification", "viewfinder_magnification"),
    "viewfinder_resolution": ("viewfinder.resolution", "viewfinderResolution", "viewfinder_resolution"),
    "screen_size": ("screen.size", "screenSize", "screen_size"),
    "screen_resolution": ("screen.resolution", "screenResolution", "screen_resolution"),
    "screen_articulation": ("screen.articulation", "screenArticulation", "screen_articulation"),
    "touchscreen": ("screen.touch", "touchscreen"),
    "dual_card_slots": ("storage.dualSlots", "features.dualCardSlots", "dualCardSlots", "dual_card_slots"),
    "card_slot1_type": ("storage.slot1", "cardSlot1Type", "card_slot1_type"),
    "card_slot2_type": ("storage.slot2", "cardSlot2Type", "card_slot2_type"),
    "msrp": ("msrp", "price"),
    "current_price": ("currentPrice", "current_price", "price"),
    "manual_url": ("manualUrl", "manual_url"),
    "image_url": ("image.url", "imageUrl", "image_url"),
}

INT_FIELDS = {
    "release_year", "iso_min", "iso_max", "iso_extended_min", "iso_extended_max",
    "af_points", "video_max_frame_rate", "video_bit_depth", "battery_life",
    "viewfinder_resolution", "screen_resolution",
}
FLOAT_FIELDS = {
    "sensor_megapixels", "sensor_crop_factor", "continuous_shooting", "weight",
    "dimensions_width", "dimensions_height", "dimensions_depth", "ibis_stops",
    "viewfinder_coverage", "viewfinder_magnification", "screen_size", "msrp", "current_price",
}
BOOL_FIELDS = {
    "discontinued", "raw_video", "hdmi", "headphone_jack", "microphone_jack",
    "bluetooth", "gps", "weather_sealed", "ibis", "built_in_flash", "hot_shoe",
    "touchscreen", "dual_card_slots",
}
LIST_FIELDS = {"video_formats", "connectivity"}

_NUMBER = re.compile(r"-?\d+(?:[.,]\d+)?")


def _lookup(payload: Dict[str, Any], path: str) -> Any:
    node: Any = payload
    for part in path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def _first(payload: Dict[str, Any], paths: Iterable[str]) -> Any:
    for path in paths:
        value = _lookup(payload, path)
        if value is not None and value != "":
            return value
    return None


def _to_number(value: Any, cast) -> Optional[Any]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return cast(value)
    match = _NUMBER.search(str(value).replace(",", ""))
    if not match:
        return None
    return cast(float(match.group(0)))


def _to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in ("yes", "true", "y", "1"):
        return True
    if text in ("no", "false", "n", "0", "none"):
        return False
    return None


def _coerce(column: str, value: Any) -> Any:
    if value is None:
        return None
    if column in INT_FIELDS:
        return _to_number(value, int)
    if column in FLOAT_FIELDS:
        return _to_number(value, float)
    if column in BOOL_FIELDS:
        return _to_bool(value)
    if column in LIST_FIELDS and isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if isinstance(value, (dict, list)):
        return None
    return str(value).strip() if isinstance(value, str) else value


def normalize_category(category: Any) -> str:
    """Lower-case, hyphenated category, e.g. "medium-format"."""
    return re.sub(r"[\s_]+", "-", str(category).strip().lower())


def default_sensor_size(category: Optional[str]) -> Optional[str]:
    """Sensor format implied by a category, if the category is a known one."""
    if not category:
        return None
    return CATEGORY_SENSOR_SIZES.get(normalize_category(category))


def guess_release_year(model: str) -> Optional[int]:
    """Release year for bodies in the known table, else None."""
    return KNOWN_RELEASE_YEARS.get((model or "").strip())


def guess_lens_mount(brand: str, model: str) -> Optional[str]:
    """Lens mount implied by brand and model naming, else None."""
    brand_key = (brand or "").strip().lower()
    model = (model or "").strip()

    if brand_key == "canon":
        return "Canon RF" if "EOS R" in model else "Canon EF"
    if brand_key == "nikon":
        return "Nikon Z" if model.upper().startswith("Z") else "Nikon F"
    if brand_key == "sony":
        return "Sony E"
    if brand_key in ("fujifilm", "fuji"):
        return "Fujifilm G" if "GFX" in model.upper() else "Fujifilm X"
    if brand_key == "leica":
        return "Leica M"
    if brand_key == "hasselblad":
        return "Hasselblad V"
    if brand_key == "red":
        return "RED RF"
    if brand_key == "arri":
        return "ARRI LPL"
    if brand_key.startswith("blackmagic"):
        return "Canon EF"
    return None


def adapt_camera_data(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a raw camera payload into a record-store dict.

    Only keys with a known value are returned, so the result can be handed
    straight to RecordStore.upsert without erasing stored data. Slugs are
    never produced here; the store derives them.
    """
    brand = (payload.get("brand") or "").strip()
    model = (payload.get("model") or "").strip()
    category = payload.get("category")

    record: Dict[str, Any] = {"brand": brand, "model": model}
    if category:
        record["category"] = normalize_category(category)

    for column, paths in FIELD_SOURCES.items():
        value = _coerce(column, _first(payload, paths))
        if value is not None:
            record[column] = value

    record.setdefault("full_name", f"{brand} {model}".strip())

    if "sensor_size" not in record:
        sensor_size = default_sensor_size(category)
        if sensor_size:
            record["sensor_size"] = sensor_size
    if "release_year" not in record:
        year = guess_release_year(model)
        if year:
            record["release_year"] = year
    if "lens_mount" not in record:
        mount = guess_lens_mount(brand, model)
        if mount:
            record["lens_mount"] = mount

    resolution = str(record.get("video_max_resolution") or "").upper()
    if resolution:
        record.setdefault("video_8k", "8K" in resolution)
        record.setdefault("video_4k", "4K" in resolution or "8K" in resolution)

    return record


def adapt_candidate(candidate: CameraCandidate) -> Dict[str, Any]:
    """Record dict for a catalog candidate and its metadata."""
    payload = dict(candidate.metadata or {})
    payload["brand"] = candidate.brand
    payload["model"] = candidate.model
    if candidate.category:
        payload["category"] = candidate.category
    return adapt_camera_data(payload)
