"""
Pixel Sprite Studio core package

Layered pixel-art character sprites with:
- Rotatable, stateful parts stored as embedded PNG artwork
- Frame compositing with straight-alpha "over" blending
- Grid-packed spritesheet export with JSON sidecar metadata
- Version-tolerant project documents with legacy schema migration
"""
from .config import Config, setup_logging, get_config, reset_config
from .constants import SCHEMA_VERSION, sanitize_filename
from .errors import (
    SpriteStudioError,
    NotFoundError,
    FrameNotFoundError,
    CharacterNotFoundError,
    AnimationNotFoundError,
    MalformedInputError,
    MalformedPayloadError,
    DocumentParseError,
    SpriteIOError,
    ProjectIOError,
    ExportWriteError,
    PreconditionError,
    EmptyAnimationError,
    DuplicateNameError,
)
from .rotation import RotationMode, mirror_angle
from .model import (
    Rotation,
    State,
    Part,
    PlacedPart,
    FrameReference,
    Frame,
    Animation,
    Character,
    Project,
    unique_layer_name,
)
from .imaging import encode_png, decode_payload, import_image_as_base64, create_reference_thumbnail
from .compositor import render_frame, render_frame_image
from .exporter import grid_size, build_sheet, export_animation, export_all_animations
from .migration import parse_project, dump_project, load_project, save_project, migrate

__version__ = "1.0.0"
__all__ = [
    "Config",
    "setup_logging",
    "get_config",
    "reset_config",
    "SCHEMA_VERSION",
    "sanitize_filename",
    "SpriteStudioError",
    "NotFoundError",
    "FrameNotFoundError",
    "CharacterNotFoundError",
    "AnimationNotFoundError",
    "MalformedInputError",
    "MalformedPayloadError",
    "DocumentParseError",
    "SpriteIOError",
    "ProjectIOError",
    "ExportWriteError",
    "PreconditionError",
    "EmptyAnimationError",
    "DuplicateNameError",
    "RotationMode",
    "mirror_angle",
    "Rotation",
    "State",
    "Part",
    "PlacedPart",
    "FrameReference",
    "Frame",
    "Animation",
    "Character",
    "Project",
    "unique_layer_name",
    "encode_png",
    "decode_payload",
    "import_image_as_base64",
    "create_reference_thumbnail",
    "render_frame",
    "render_frame_image",
    "grid_size",
    "build_sheet",
    "export_animation",
    "export_all_animations",
    "parse_project",
    "dump_project",
    "load_project",
    "save_project",
    "migrate",
]
