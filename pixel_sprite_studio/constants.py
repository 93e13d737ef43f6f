"""Constant definitions and helper utilities."""
import re
from pathlib import Path

# Schema
SCHEMA_VERSION = "2.0"
MULTI_CHAR_SUFFIX = " (multi-char)"

# Defaults for freshly created entities
DEFAULT_CANVAS_SIZE = (64, 64)
DEFAULT_FPS = 12
DEFAULT_FRAME_DURATION_MS = 100
DEFAULT_ANIMATION_NAME = "Untitled Animation"
DEFAULT_STATE_NAME = "default"
DEFAULT_PROJECT_NAME = "Untitled"

# Imaging limits
MAX_TEXTURE_SIZE = 2048
THUMBNAIL_MAX_SIZE = 256
THUMBNAIL_QUALITY = 80

# Export
SHEET_SUFFIX = ".png"
METADATA_SUFFIX = ".json"
STRIP_MAX_FRAMES = 8  # Up to this many frames export as a single row

# Filename sanitization (compiled once)
UNSAFE_FILENAME_CHARS = re.compile(r'[^A-Za-z0-9_-]')


def sanitize_filename(name: str) -> str:
    """Replace every character outside [A-Za-z0-9_-] with an underscore."""
    return UNSAFE_FILENAME_CHARS.sub('_', name)


def force_sheet_suffix(path: Path) -> Path:
    """Append .png unless the path already ends with it (case-insensitive)."""
    if path.name.lower().endswith(SHEET_SUFFIX):
        return path
    return path.with_name(path.name + SHEET_SUFFIX)


def metadata_path_for(sheet_path: Path) -> Path:
    """Sidecar metadata path sharing the sheet's base name."""
    return sheet_path.with_suffix(METADATA_SUFFIX)
