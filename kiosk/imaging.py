# Program: Print Image Transforms
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""In-memory raster transforms applied before an image reaches the printer."""

from __future__ import annotations

import base64
import io
from typing import Tuple

from PIL import Image, ImageDraw, ImageOps

WHITE = (255, 255, 255)


def _flatten(image: Image.Image) -> Image.Image:
    """Return an RGB copy with any transparency composited onto white."""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, WHITE)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


def _fit(image: Image.Image, size: Tuple[int, int]) -> Image.Image:
    flat = _flatten(image)
    if flat.size == size:
        return flat
    return flat.resize(size, Image.Resampling.LANCZOS)


def tile_horizontally(image: Image.Image, target_width: int, target_height: int) -> Image.Image:
    """Place two copies side by side on a white ``2*width x height`` canvas.

    Used for the 2x6 cut frame: the strip is printed twice on a 4x6 sheet
    which is then cut in half. The source is drawn at exactly
    ``target_width x target_height`` in each half.
    """

    if target_width <= 0 or target_height <= 0:
        raise ValueError("target size must be positive")
    tile = _fit(image, (target_width, target_height))
    canvas = Image.new("RGB", (target_width * 2, target_height), WHITE)
    canvas.paste(tile, (0, 0))
    canvas.paste(tile, (target_width, 0))
    return canvas


def tile_vertically(image: Image.Image, target_width: int, target_height: int) -> Image.Image:
    """Stack two copies on a white ``width x 2*height`` canvas (6x2 cut frame)."""

    if target_width <= 0 or target_height <= 0:
        raise ValueError("target size must be positive")
    tile = _fit(image, (target_width, target_height))
    canvas = Image.new("RGB", (target_width, target_height * 2), WHITE)
    canvas.paste(tile, (0, 0))
    canvas.paste(tile, (0, target_height))
    return canvas


def apply_paper_calibration(
    image: Image.Image,
    scale: float = 100.0,
    vertical: float = 0.0,
    horizontal: float = 0.0,
) -> Image.Image:
    """Zoom and shift content inside a fixed output size.

    Output size always equals the input size. Below 100 % the content shrinks
    onto white padding, centred and then shifted by the offsets. Above 100 %
    the content is enlarged and cropped around the centre, the offsets moving
    the crop window. At 100 % the offsets alone shift the content.
    """

    source = _flatten(image)
    width, height = source.size
    factor = scale / 100.0
    scaled_w = max(1, int(width * factor))
    scaled_h = max(1, int(height * factor))

    if factor < 1.0:
        resized = source.resize((scaled_w, scaled_h), Image.Resampling.LANCZOS)
        pad_x = (width - scaled_w) / 2.0
        pad_y = (height - scaled_h) / 2.0
        canvas = Image.new("RGB", (width, height), WHITE)
        canvas.paste(resized, (int(max(pad_x + horizontal, 0.0)), int(max(pad_y + vertical, 0.0))))
        return canvas

    if factor > 1.0:
        resized = source.resize((scaled_w, scaled_h), Image.Resampling.LANCZOS)
        max_x = scaled_w - width
        max_y = scaled_h - height
        crop_x = int(min(max((max_x / 2.0) - horizontal, 0.0), float(max_x)))
        crop_y = int(min(max((max_y / 2.0) - vertical, 0.0), float(max_y)))
        return resized.crop((crop_x, crop_y, crop_x + width, crop_y + height))

    if abs(horizontal) > 0.1 or abs(vertical) > 0.1:
        canvas = Image.new("RGB", (width, height), WHITE)
        canvas.paste(source, (int(horizontal), int(vertical)))
        return canvas
    return source


def render_test_card(width: int = 1200, height: int = 1800) -> Image.Image:
    """Alignment card: border, centre cross, and a 10 % grid."""

    card = Image.new("RGB", (width, height), WHITE)
    draw = ImageDraw.Draw(card)
    for step in range(1, 10):
        x = width * step // 10
        y = height * step // 10
        draw.line([(x, 0), (x, height)], fill=(210, 210, 210), width=1)
        draw.line([(0, y), (width, y)], fill=(210, 210, 210), width=1)
    draw.rectangle([(0, 0), (width - 1, height - 1)], outline=(0, 0, 0), width=6)
    draw.line([(width // 2, 0), (width // 2, height)], fill=(220, 0, 0), width=3)
    draw.line([(0, height // 2), (width, height // 2)], fill=(220, 0, 0), width=3)
    draw.text((24, 24), f"TEST {width}x{height}", fill=(0, 0, 0))
    return card


def load_image(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return ImageOps.exif_transpose(image)


def image_extension(data: bytes, default: str = "png") -> str:
    try:
        with Image.open(io.BytesIO(data)) as image:
            fmt = image.format
    except OSError:
        return default
    return {"JPEG": "jpg"}.get(fmt or "", (fmt or default).lower())


def encode_jpeg(image: Image.Image, quality: int = 100) -> bytes:
    buffer = io.BytesIO()
    _flatten(image).save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def from_base64(payload: str) -> bytes:
    """Decode plain or ``data:image/...;base64,`` prefixed payloads."""
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    return base64.b64decode(payload)


# Created by Dr. Z. Bakhtiyorov
