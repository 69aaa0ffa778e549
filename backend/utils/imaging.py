"""
Image normalization and placeholder synthesis.

All product images are stored as RGB JPEGs: a full-size version capped at a
maximum width and a thumbnail, both written atomically so readers never
see a partial file.
"""

import hashlib
import io
import logging
import os
import tempfile
from pathlib import Path
from typing import Tuple, Union

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from errors import ImageProcessingError, ImageValidationError

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

# Stable brand palette; unknown brands get a hash-derived color
BRAND_COLORS = {
    "canon": (204, 0, 0),
    "nikon": (230, 184, 0),
    "sony": (235, 102, 0),
    "fujifilm": (0, 150, 70),
    "panasonic": (0, 102, 204),
    "olympus": (0, 120, 200),
    "om system": (0, 120, 200),
    "leica": (180, 0, 20),
    "hasselblad": (60, 60, 60),
    "pentax": (20, 20, 20),
    "ricoh": (40, 40, 40),
    "sigma": (30, 30, 30),
    "red": (150, 0, 0),
    "arri": (0, 70, 140),
    "blackmagic": (50, 50, 50),
}
DEFAULT_COLOR: RGB = (102, 102, 102)
TEXT_COLOR: RGB = (255, 255, 255)


def brand_color(brand: str) -> RGB:
    """Deterministic placeholder color for a brand."""
    key = (brand or "").strip().lower()
    if not key:
        return DEFAULT_COLOR
    if key in BRAND_COLORS:
        return BRAND_COLORS[key]

    # Darkened so white text stays readable
    digest = hashlib.md5(key.encode("utf-8")).digest()
    return (40 + digest[0] % 150, 40 + digest[1] % 150, 40 + digest[2] % 150)


def load_image(content: bytes, min_dimension: int = 100) -> Image.Image:
    """
    Decode downloaded bytes and reject anything that is not a usable photo.

    Raises:
        ImageValidationError: undecodable, or a side below min_dimension
    """
    if not content:
        raise ImageValidationError("empty response body")

    try:
        image = Image.open(io.BytesIO(content))
        image.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise ImageValidationError("unrecognized image format", {"error": str(e)}) from e

    width, height = image.size
    if width < min_dimension or height < min_dimension:
        raise ImageValidationError(
            f"too small ({width}x{height})",
            {"width": width, "height": height, "minDimension": min_dimension},
        )
    return image


def fit_width(image: Image.Image, max_width: int) -> Image.Image:
    """Scale down to max_width keeping aspect ratio; never upscales."""
    width, height = image.size
    if width <= max_width:
        return image.copy()

    new_height = max(1, round(height * max_width / width))
    return image.resize((max_width, new_height), Image.Resampling.LANCZOS)


def _to_rgb(image: Image.Image) -> Image.Image:
    if image.mode == "RGB":
        return image
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        # Flatten transparency onto white, product shots usually sit on white
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return image.convert("RGB")


def save_jpeg(image: Image.Image, path: Union[str, Path], quality: int = 85) -> Path:
    """
    Write image as JPEG via temp file + rename.

    Raises:
        ImageProcessingError: encode or disk failure; no partial file remains
    """
    path = Path(path)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}-", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "wb") as handle:
            _to_rgb(image).save(handle, format="JPEG", quality=quality, optimize=True)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise ImageProcessingError(f"Failed to write {path.name}: {e}", path=str(path)) from e
    finally:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
    return path


def _load_font(size: int) -> ImageFont.ImageFont:
    for name in ("DejaVuSans-Bold.ttf", "Arial.ttf", "arial.ttf"):
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _draw_centered(draw: ImageDraw.ImageDraw, center: Tuple[float, float], text: str, font) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = center[0] - (right - left) / 2 - left
    y = center[1] - (bottom - top) / 2 - top
    draw.text((x, y), text, font=font, fill=TEXT_COLOR)


def render_placeholder(brand: str, model: str, width: int = 1200, height: int = 800) -> Image.Image:
    """Solid brand-colored card with the camera name on it."""
    image = Image.new("RGB", (width, height), brand_color(brand))
    draw = ImageDraw.Draw(image)

    title = f"{brand or 'Unknown'} {model or ''}".strip()
    title_size = max(12, height // 16)
    title_font = _load_font(title_size)
    caption_font = _load_font(max(10, height // 32))

    # Shrink long names until they fit with a margin
    max_text_width = width * 0.9
    while title_size > 12:
        left, _, right, _ = draw.textbbox((0, 0), title, font=title_font)
        if right - left <= max_text_width:
            break
        title_size -= 4
        title_font = _load_font(title_size)

    _draw_centered(draw, (width / 2, height / 2), title, title_font)
    _draw_centered(draw, (width / 2, height / 2 + height * 0.09), "Product Image", caption_font)
    return image
