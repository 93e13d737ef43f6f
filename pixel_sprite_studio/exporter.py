"""Spritesheet packing and export.

Frames of an animation are rendered with the compositor and tiled into a
grid; a JSON sidecar with the same base name records each frame's rectangle
and duration.
"""
import io
import json
import logging
import math
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import numpy as np
from PIL import Image
from tqdm import tqdm

from .compositor import render_frame
from .config import get_config
from .constants import STRIP_MAX_FRAMES, force_sheet_suffix, metadata_path_for, sanitize_filename
from .errors import AnimationNotFoundError, EmptyAnimationError, ExportWriteError
from .model import Animation, Character, Project

log = logging.getLogger(__name__)


@dataclass
class SheetResult:
    """A packed sheet before it is written to disk."""
    image: Image.Image
    metadata: dict[str, Any]


def grid_size(frame_count: int) -> tuple[int, int]:
    """(columns, rows) for a sheet of frame_count frames.

    Small animations stay a single readable strip; larger ones grow roughly
    square.
    """
    if frame_count <= STRIP_MAX_FRAMES:
        return frame_count, 1
    cols = math.ceil(math.sqrt(frame_count))
    rows = math.ceil(frame_count / cols)
    return cols, rows


def build_sheet(project: Project, character: Character, animation: Animation,
                sheet_name: str = "", include_character: bool = False) -> SheetResult:
    """Render every frame of animation and pack them into one image.

    include_character adds the owning character's name to the metadata.

    Raises:
        EmptyAnimationError: the animation has no frames
    """
    if not animation.frames:
        raise EmptyAnimationError(animation.name)

    canvas_w, canvas_h = character.canvas_size
    cols, rows = grid_size(len(animation.frames))
    sheet = np.zeros((rows * canvas_h, cols * canvas_w, 4), dtype=np.uint8)

    log.debug(f"=== Packing '{animation.name}': {len(animation.frames)} frames, "
              f"grid={cols}x{rows}, cell={canvas_w}x{canvas_h} ===")

    frames_meta = []
    for i, frame in enumerate(animation.frames):
        pixels = render_frame(project, animation, i, character.canvas_size)
        x = (i % cols) * canvas_w
        y = (i // cols) * canvas_h
        # Cells never overlap, so a plain copy is enough
        sheet[y:y + canvas_h, x:x + canvas_w] = pixels
        frames_meta.append({
            "x": x,
            "y": y,
            "width": canvas_w,
            "height": canvas_h,
            "duration_ms": frame.duration_ms,
        })

    metadata = {"sprite_sheet": sheet_name}
    if include_character:
        metadata["character"] = character.name
    metadata.update({
        "animation": animation.name,
        "frame_width": canvas_w,
        "frame_height": canvas_h,
        "columns": cols,
        "rows": rows,
        "frames": frames_meta,
    })
    return SheetResult(Image.fromarray(sheet), metadata)


def _write_bytes(path: Path, data: bytes, atomic: bool):
    """Write data to path, optionally via a temp file renamed into place."""
    if not atomic:
        path.write_bytes(data)
        return
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def write_sheet(result: SheetResult, png_path: Path) -> tuple[Path, Path]:
    """Save the sheet image and its metadata sidecar. Returns both paths."""
    config = get_config()
    json_path = metadata_path_for(png_path)

    buf = io.BytesIO()
    result.image.save(buf, format='PNG')
    try:
        _write_bytes(png_path, buf.getvalue(), config.atomic_writes)
    except OSError as e:
        raise ExportWriteError(f"Failed to save {png_path}: {e}", png_path) from e

    text = json.dumps(result.metadata, indent=config.indent)
    try:
        _write_bytes(json_path, text.encode('utf-8'), config.atomic_writes)
    except OSError as e:
        raise ExportWriteError(f"Failed to save {json_path}: {e}", json_path) from e

    log.debug(f"Saved: {png_path}, {json_path}")
    return png_path, json_path


def _get_animation(character: Character, animation_index: int) -> Animation:
    if not 0 <= animation_index < len(character.animations):
        raise AnimationNotFoundError(
            f"Animation {animation_index} not found for character '{character.name}'")
    return character.animations[animation_index]


def export_animation(project: Project, character_id: int, animation_index: int,
                     output_path: Path) -> tuple[Path, Path]:
    """Export one animation as <output>.png plus <output>.json.

    ".png" is appended to output_path when missing. Nothing is written when
    the animation has no frames.

    Returns:
        (png_path, json_path)
    """
    character = project.require_character(character_id)
    animation = _get_animation(character, animation_index)
    if not animation.frames:
        raise EmptyAnimationError(animation.name)

    png_path = force_sheet_suffix(Path(output_path))
    result = build_sheet(project, character, animation, png_path.name)
    paths = write_sheet(result, png_path)
    log.info(f"Exported '{animation.name}' ({len(animation.frames)} frames) to {png_path}")
    return paths


def export_all_animations(project: Project, character_id: int,
                          output_dir: Optional[Path] = None) -> int:
    """Export every animation of a character into output_dir.

    Files are named "{character}_{animation}" with the animation name
    sanitized. Animations without frames are skipped.

    Returns:
        Number of sheets written
    """
    config = get_config()
    character = project.require_character(character_id)
    output_dir = Path(output_dir) if output_dir is not None else config.output_dir
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExportWriteError(f"Failed to create output directory: {e}", output_dir) from e

    exported = 0
    iterable = tqdm(character.animations, desc=f"Exporting {character.name}",
                    disable=not config.show_progress)
    for animation in iterable:
        if not animation.frames:
            log.debug(f"SKIP '{animation.name}': no frames")
            continue
        png_path = output_dir / f"{character.name}_{sanitize_filename(animation.name)}.png"
        result = build_sheet(project, character, animation, png_path.name, include_character=True)
        write_sheet(result, png_path)
        exported += 1

    log.info(f"Exported {exported} animation(s) of '{character.name}' to {output_dir}")
    return exported
