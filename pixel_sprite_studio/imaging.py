"""Embedded image payload handling.

Rotation artwork lives inside the project document as base64-encoded PNG.
These helpers convert between payload strings, PIL images and RGBA numpy
arrays of shape (height, width, 4).
"""
import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .config import get_config
from .constants import THUMBNAIL_QUALITY
from .errors import MalformedPayloadError, ProjectIOError

log = logging.getLogger(__name__)

ImageLike = Union[Image.Image, np.ndarray]


def _to_image(img: ImageLike) -> Image.Image:
    if isinstance(img, np.ndarray):
        return Image.fromarray(np.ascontiguousarray(img, dtype=np.uint8))
    return img


def _fit_within(img: Image.Image, max_size: int, resample) -> Image.Image:
    """Downscale so neither side exceeds max_size, preserving aspect ratio."""
    width, height = img.size
    if width <= max_size and height <= max_size:
        return img
    scale = min(max_size / width, max_size / height)
    new_size = (max(1, int(width * scale)), max(1, int(height * scale)))
    log.debug(f"Resize {img.size} -> {new_size}")
    return img.resize(new_size, resample)


def encode_png(img: ImageLike) -> str:
    """Encode an image or RGBA array as a base64 PNG payload."""
    buf = io.BytesIO()
    _to_image(img).save(buf, format='PNG')
    return base64.b64encode(buf.getvalue()).decode('ascii')


def decode_image(payload: str) -> Image.Image:
    """Decode a base64 payload into an RGBA PIL image."""
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise MalformedPayloadError(f"Base64 decode error: {e}") from e
    try:
        with Image.open(io.BytesIO(raw)) as img:
            return img.convert('RGBA')
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise MalformedPayloadError(f"Image load error: {e}") from e


def decode_payload(payload: str) -> np.ndarray:
    """Decode a base64 payload into a uint8 RGBA array (h, w, 4)."""
    return np.array(decode_image(payload), dtype=np.uint8)


def flip_horizontal(pixels: np.ndarray) -> np.ndarray:
    """Mirror an (h, w, 4) array left to right."""
    return pixels[:, ::-1, :].copy()


def is_pixel_opaque(payload: str, x: int, y: int) -> bool:
    """True when the payload pixel at (x, y) has non-zero alpha.

    Out-of-bounds coordinates and undecodable payloads count as transparent.
    """
    try:
        pixels = decode_payload(payload)
    except MalformedPayloadError:
        return False
    height, width = pixels.shape[:2]
    if x < 0 or y < 0 or x >= width or y >= height:
        return False
    return bool(pixels[y, x, 3] > 0)


def import_image_as_base64(path: Path) -> str:
    """Read an image file and re-encode it as a PNG payload.

    Images larger than the configured texture limit are shrunk with
    nearest-neighbour sampling so pixel art stays crisp.
    """
    config = get_config()
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ProjectIOError(f"Failed to read file: {e}", path) from e
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            img = img.convert('RGBA')
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise MalformedPayloadError(f"Invalid image: {e}") from e

    img = _fit_within(img, config.max_texture_size, Image.NEAREST)
    return encode_png(img)


def create_reference_thumbnail(path: Path, max_size: int = None) -> tuple[str, tuple[int, int]]:
    """Create a small JPEG thumbnail of a reference image.

    Used as a stand-in when the reference file goes missing.

    Returns:
        (base64 JPEG payload, original (width, height))
    """
    if max_size is None:
        max_size = get_config().thumbnail_max_size
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ProjectIOError(f"Failed to read file: {e}", path) from e
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            original_size = img.size
            # JPEG has no alpha channel
            img = img.convert('RGB')
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise MalformedPayloadError(f"Invalid image: {e}") from e

    img = _fit_within(img, max_size, Image.BILINEAR)
    buf = io.BytesIO()
    img.save(buf, format='JPEG', quality=THUMBNAIL_QUALITY)
    return base64.b64encode(buf.getvalue()).decode('ascii'), original_size


def calculate_fit_scale(image_size: tuple[int, int], canvas_size: tuple[int, int]) -> float:
    """Scale that fits image_size inside canvas_size, preserving aspect ratio."""
    scale_x = canvas_size[0] / image_size[0]
    scale_y = canvas_size[1] / image_size[1]
    return min(scale_x, scale_y)
