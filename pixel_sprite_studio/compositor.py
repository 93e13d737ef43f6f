"""Frame compositing.

Renders one animation frame by alpha-blending its placed parts, in list
order, onto a transparent canvas.
"""
import logging
import math
from typing import Optional

import numpy as np
from PIL import Image

from .config import get_config
from .errors import FrameNotFoundError
from .imaging import decode_payload, flip_horizontal
from .model import Animation, Character, PlacedPart, Project
from .rotation import RotationMode

log = logging.getLogger(__name__)


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _to_u8(values: np.ndarray) -> np.ndarray:
    """Normalized floats -> 8-bit channels, rounding halves up."""
    return np.clip(np.floor(values * 255.0 + 0.5), 0, 255).astype(np.uint8)


def blend_over(dst: np.ndarray, src: np.ndarray):
    """Composite src over dst in place. Both are uint8 (h, w, 4) of equal shape.

    out_a = src_a + dst_a * (1 - src_a)
    out_c = (src_c * src_a + dst_c * dst_a * (1 - src_a)) / out_a

    Pixels whose resulting alpha is zero are left untouched.
    """
    s = src.astype(np.float64) / 255.0
    d = dst.astype(np.float64) / 255.0
    src_a = s[..., 3:4]
    dst_a = d[..., 3:4]
    keep = dst_a * (1.0 - src_a)
    out_a = src_a + keep

    covered = out_a[..., 0] > 0
    if not covered.any():
        return
    out_c = (s[..., :3] * src_a + d[..., :3] * keep) / np.where(out_a > 0, out_a, 1.0)

    dst[covered, :3] = _to_u8(out_c[covered])
    dst[covered, 3] = _to_u8(out_a[covered, 0])


def paste_blended(canvas: np.ndarray, pixels: np.ndarray, x: int, y: int):
    """Blend pixels onto canvas with their top-left at (x, y), clipping to the canvas."""
    canvas_h, canvas_w = canvas.shape[:2]
    src_h, src_w = pixels.shape[:2]
    x0, y0 = max(0, x), max(0, y)
    x1, y1 = min(canvas_w, x + src_w), min(canvas_h, y + src_h)
    if x0 >= x1 or y0 >= y1:
        return
    blend_over(canvas[y0:y1, x0:x1], pixels[y0 - y:y1 - y, x0 - x:x1 - x])


def resolve_artwork(table: dict[int, Character], placed: PlacedPart,
                    allow_mirror: bool = False) -> Optional[tuple[str, bool]]:
    """Find the payload a placement shows.

    Follows character id -> part -> state -> rotation. Returns
    (payload, needs_flip), or None when anything along the way is missing.
    With allow_mirror, a blank rotation borrows the artwork of its mirror
    angle, to be flipped horizontally.
    """
    character = table.get(placed.character_id)
    if character is None:
        return None
    part = character.get_part(placed.part_name)
    state = part.get_state(placed.state_name) if part else None
    if state is None:
        return None
    rotation = state.get_rotation(placed.rotation)
    if rotation is not None and rotation.image_data is not None:
        return rotation.image_data, False
    if not allow_mirror:
        return None

    mirror = state.get_rotation(RotationMode.mirror_angle(placed.rotation))
    if mirror is None or mirror is rotation or mirror.image_data is None or mirror.is_mirrored:
        return None
    return mirror.image_data, True


def render_frame(project: Project, animation: Animation, frame_index: int,
                 canvas_size: tuple[int, int]) -> np.ndarray:
    """Render a frame to an RGBA uint8 array of shape (height, width, 4).

    Args:
        project: Project holding the characters the placements refer to
        animation: Animation containing the frame
        frame_index: Index into animation.frames
        canvas_size: (width, height) of the output

    Raises:
        FrameNotFoundError: frame_index is out of range
        MalformedPayloadError: a referenced payload cannot be decoded
    """
    frame = animation.get_frame(frame_index)
    if frame is None:
        raise FrameNotFoundError(frame_index)

    config = get_config()
    canvas_w, canvas_h = canvas_size
    canvas = np.zeros((canvas_h, canvas_w, 4), dtype=np.uint8)
    table = project.character_table()

    for i, placed in enumerate(frame.placed_parts):
        if not placed.visible:
            continue
        artwork = resolve_artwork(table, placed, config.mirror_missing_rotations)
        if artwork is None:
            log.debug(f"  [{i}] {placed.display_name}: no artwork")
            continue

        payload, needs_flip = artwork
        pixels = decode_payload(payload)
        if needs_flip:
            pixels = flip_horizontal(pixels)

        x = round_half_away(placed.position[0])
        y = round_half_away(placed.position[1])
        log.debug(f"  [{i}] {placed.display_name}: img={pixels.shape[1]}x{pixels.shape[0]}, "
                  f"pos=({x},{y}){' mirrored' if needs_flip else ''}")
        paste_blended(canvas, pixels, x, y)

    return canvas


def render_frame_image(project: Project, animation: Animation, frame_index: int,
                       canvas_size: tuple[int, int]) -> Image.Image:
    """render_frame as a PIL RGBA image."""
    return Image.fromarray(render_frame(project, animation, frame_index, canvas_size))
