"""Sprite data model.

A Project owns Characters; a Character owns Parts (artwork) and Animations
(timed Frames of PlacedParts). PlacedParts point at artwork through the
character's numeric id plus part/state names and a rotation angle, so a
character can be renamed without breaking any frame that uses it.

Every entity converts to and from the plain dicts stored in the project
document. ``from_dict`` fills absent fields with defaults so older documents
still load; see ``migration`` for the schema upgrade itself.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

from .constants import (
    DEFAULT_ANIMATION_NAME,
    DEFAULT_CANVAS_SIZE,
    DEFAULT_FPS,
    DEFAULT_FRAME_DURATION_MS,
    DEFAULT_PROJECT_NAME,
    DEFAULT_STATE_NAME,
    SCHEMA_VERSION,
)
from .errors import (
    CharacterNotFoundError,
    DuplicateNameError,
    MalformedInputError,
    RotationNotFoundError,
)
from .rotation import RotationMode

log = logging.getLogger(__name__)


def _pair(value, default, cast):
    """Read a 2-element [a, b] document value as a tuple."""
    if value is None:
        return default
    a, b = value
    return cast(a), cast(b)


def unique_layer_name(base: str, existing: set[str]) -> str:
    """Return base, or the first of "base 2", "base 3", ... not in existing."""
    if base not in existing:
        return base
    n = 2
    while f"{base} {n}" in existing:
        n += 1
    return f"{base} {n}"


@dataclass
class Rotation:
    """One directional artwork variant of a state."""
    angle: int
    image_data: Optional[str] = None  # Base64 PNG, None = not drawn yet
    is_mirrored: bool = False  # Runtime only: payload was flipped from the mirror angle

    def to_dict(self) -> dict[str, Any]:
        # Mirrored payloads are regenerated, never stored
        return {
            "angle": self.angle,
            "image_data": None if self.is_mirrored else self.image_data,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Rotation":
        image_data = data.get("image_data")
        if image_data is not None and not isinstance(image_data, str):
            raise TypeError(f"Rotation {data['angle']}: image_data must be a base64 string")
        return cls(angle=int(data["angle"]), image_data=image_data)


@dataclass
class State:
    """A named visual variant of a part, holding one Rotation per mode angle."""
    name: str
    rotation_mode: RotationMode = RotationMode.DEG_45
    rotations: dict[int, Rotation] = field(default_factory=dict)

    def __post_init__(self):
        self.rotation_mode = RotationMode.parse(self.rotation_mode)
        self._normalize_rotations()

    def _normalize_rotations(self):
        """Make the rotation keys exactly the mode's angle set."""
        angles = self.rotation_mode.angles()
        extra = set(self.rotations) - set(angles)
        if extra:
            log.warning(f"State '{self.name}': dropping rotations {sorted(extra)} "
                        f"not in {self.rotation_mode.value}")
        self.rotations = {
            angle: self.rotations.get(angle) or Rotation(angle)
            for angle in angles
        }

    def get_rotation(self, angle: int) -> Optional[Rotation]:
        return self.rotations.get(angle)

    def has_images(self) -> bool:
        return any(r.image_data is not None and not r.is_mirrored
                   for r in self.rotations.values())

    def set_image(self, angle: int, image_data: Optional[str]):
        """Store authored artwork for an angle. Clears the mirrored flag."""
        rotation = self.rotations.get(angle)
        if rotation is None:
            raise RotationNotFoundError(
                f"Angle {angle} is not part of {self.rotation_mode.value} for state '{self.name}'")
        rotation.image_data = image_data
        rotation.is_mirrored = False

    def fill_mirrored(self) -> int:
        """Synthesize blank rotations by flipping their mirror-angle artwork.

        Only authored rotations are used as sources. Returns the number of
        rotations filled.
        """
        from .imaging import decode_payload, encode_png, flip_horizontal

        filled = 0
        for angle, rotation in self.rotations.items():
            if rotation.image_data is not None:
                continue
            source = self.rotations.get(RotationMode.mirror_angle(angle))
            if source is None or source is rotation or source.image_data is None or source.is_mirrored:
                continue
            rotation.image_data = encode_png(flip_horizontal(decode_payload(source.image_data)))
            rotation.is_mirrored = True
            filled += 1
        return filled

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "rotation_mode": self.rotation_mode.value,
            "rotations": {str(a): r.to_dict() for a, r in self.rotations.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "State":
        rotations = {}
        for key, value in (data.get("rotations") or {}).items():
            value = dict(value)
            value.setdefault("angle", key)
            rotation = Rotation.from_dict(value)
            rotations[rotation.angle] = rotation
        return cls(
            name=data["name"],
            rotation_mode=RotationMode.parse(data.get("rotation_mode")),
            rotations=rotations,
        )


@dataclass
class Part:
    """A named body region of a character (head, torso, cape...)."""
    name: str
    states: list[State] = field(default_factory=lambda: [State(DEFAULT_STATE_NAME)])
    default_z: int = 0

    def get_state(self, name: str) -> Optional[State]:
        return next((s for s in self.states if s.name == name), None)

    def add_state(self, state: State) -> State:
        if self.get_state(state.name) is not None:
            raise DuplicateNameError(f"Part '{self.name}' already has a state named '{state.name}'")
        self.states.append(state)
        return state

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "states": [s.to_dict() for s in self.states],
            "default_z": self.default_z,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Part":
        return cls(
            name=data["name"],
            states=[State.from_dict(s) for s in data.get("states", [])],
            default_z=int(data.get("default_z", 0)),
        )


@dataclass
class PlacedPart:
    """An instance of a part/state/rotation positioned within a frame."""
    id: int
    character_id: Optional[int]
    part_name: str
    state_name: str
    rotation: int = 0
    position: tuple[float, float] = (0.0, 0.0)
    z_override: Optional[int] = None
    layer_name: str = ""
    visible: bool = True
    # Set only while loading documents that referenced characters by name
    legacy_character_name: Optional[str] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if not self.layer_name:
            self.layer_name = self.part_name

    @property
    def display_name(self) -> str:
        return self.layer_name or self.part_name

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "character_id": self.character_id,
            "part_name": self.part_name,
            "layer_name": self.layer_name,
            "state_name": self.state_name,
            "rotation": self.rotation,
            "position": list(self.position),
            "z_override": self.z_override,
            "visible": self.visible,
        }
        if self.character_id is None and self.legacy_character_name:
            # Keep an unresolved name reference so it can be repaired later
            data["character_name"] = self.legacy_character_name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlacedPart":
        character_id = data.get("character_id")
        z_override = data.get("z_override")
        return cls(
            id=int(data["id"]),
            character_id=None if character_id is None else int(character_id),
            part_name=data["part_name"],
            state_name=data["state_name"],
            rotation=int(data.get("rotation", 0)),
            position=_pair(data.get("position"), (0.0, 0.0), float),
            z_override=None if z_override is None else int(z_override),
            layer_name=data.get("layer_name") or "",
            visible=bool(data.get("visible", True)),
            legacy_character_name=data.get("character_name"),
        )


@dataclass
class FrameReference:
    """Reference/tracing image shown behind a frame."""
    file_path: str
    position: tuple[float, float] = (0.0, 0.0)
    scale: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {"file_path": self.file_path, "position": list(self.position), "scale": self.scale}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FrameReference":
        return cls(
            file_path=data["file_path"],
            position=_pair(data.get("position"), (0.0, 0.0), float),
            scale=float(data.get("scale", 1.0)),
        )


@dataclass
class Frame:
    """One timed snapshot. placed_parts order is paint order, last on top."""
    duration_ms: int = DEFAULT_FRAME_DURATION_MS
    placed_parts: list[PlacedPart] = field(default_factory=list)
    z_overrides: dict[str, int] = field(default_factory=dict)
    reference: Optional[FrameReference] = None

    def layer_names(self) -> set[str]:
        return {p.display_name for p in self.placed_parts}

    def find_placed_part(self, part_id: int) -> Optional[PlacedPart]:
        return next((p for p in self.placed_parts if p.id == part_id), None)

    def remove_placed_part(self, part_id: int) -> bool:
        before = len(self.placed_parts)
        self.placed_parts = [p for p in self.placed_parts if p.id != part_id]
        return len(self.placed_parts) != before

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration_ms": self.duration_ms,
            "placed_parts": [p.to_dict() for p in self.placed_parts],
            "z_overrides": dict(self.z_overrides),
            "reference": self.reference.to_dict() if self.reference else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Frame":
        reference = data.get("reference")
        return cls(
            duration_ms=int(data.get("duration_ms", DEFAULT_FRAME_DURATION_MS)),
            placed_parts=[PlacedPart.from_dict(p) for p in data.get("placed_parts", [])],
            z_overrides={k: int(v) for k, v in (data.get("z_overrides") or {}).items()},
            reference=FrameReference.from_dict(reference) if reference else None,
        )


@dataclass
class Animation:
    name: str
    frames: list[Frame] = field(default_factory=lambda: [Frame()])
    fps: int = DEFAULT_FPS
    z_overrides: dict[str, int] = field(default_factory=dict)

    def add_frame(self, duration_ms: int = DEFAULT_FRAME_DURATION_MS) -> Frame:
        frame = Frame(duration_ms)
        self.frames.append(frame)
        return frame

    def get_frame(self, index: int) -> Optional[Frame]:
        if 0 <= index < len(self.frames):
            return self.frames[index]
        return None

    def placed_parts(self) -> Iterator[PlacedPart]:
        for frame in self.frames:
            yield from frame.placed_parts

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "frames": [f.to_dict() for f in self.frames],
            "z_overrides": dict(self.z_overrides),
            "fps": self.fps,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Animation":
        return cls(
            name=data["name"],
            frames=[Frame.from_dict(f) for f in data.get("frames", [])],
            fps=int(data.get("fps", DEFAULT_FPS)),
            z_overrides={k: int(v) for k, v in (data.get("z_overrides") or {}).items()},
        )


@dataclass
class Character:
    """An identity-stable sprite subject. ``id`` is assigned by the Project."""
    name: str
    id: Optional[int] = None
    canvas_size: tuple[int, int] = DEFAULT_CANVAS_SIZE
    parts: list[Part] = field(default_factory=list)
    animations: list[Animation] = field(default_factory=lambda: [Animation(DEFAULT_ANIMATION_NAME)])

    def get_part(self, name: str) -> Optional[Part]:
        return next((p for p in self.parts if p.name == name), None)

    def add_part(self, part: Part) -> Part:
        if self.get_part(part.name) is not None:
            raise DuplicateNameError(f"Character '{self.name}' already has a part named '{part.name}'")
        self.parts.append(part)
        return part

    def get_animation(self, name: str) -> Optional[Animation]:
        return next((a for a in self.animations if a.name == name), None)

    def add_animation(self, animation: Animation) -> Animation:
        self.animations.append(animation)
        return animation

    def resolve_image(self, part_name: str, state_name: str, angle: int) -> Optional[Rotation]:
        """Follow part -> state -> rotation. None when any step is missing."""
        part = self.get_part(part_name)
        state = part.get_state(state_name) if part else None
        return state.get_rotation(angle) if state else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "canvas_size": list(self.canvas_size),
            "parts": [p.to_dict() for p in self.parts],
            "animations": [a.to_dict() for a in self.animations],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_canvas: tuple[int, int] = DEFAULT_CANVAS_SIZE) -> "Character":
        char_id = data.get("id")
        return cls(
            name=data["name"],
            id=None if char_id is None else int(char_id),
            canvas_size=_pair(data.get("canvas_size"), default_canvas, int),
            parts=[Part.from_dict(p) for p in data.get("parts", [])],
            animations=[Animation.from_dict(a) for a in data.get("animations", [])],
        )


@dataclass
class Project:
    """The complete document. Owns every entity beneath it."""
    name: str = DEFAULT_PROJECT_NAME
    version: str = SCHEMA_VERSION
    canvas_size: tuple[int, int] = DEFAULT_CANVAS_SIZE
    characters: list[Character] = field(default_factory=list)
    reference_thumbnails: dict[str, str] = field(default_factory=dict)  # file path -> base64 JPEG
    # Deprecated project-level animations, read from old documents only
    legacy_animations: list[Animation] = field(default_factory=list, repr=False)
    # Runtime counters, recomputed at load time
    next_part_id: int = field(default=1, compare=False)
    next_character_id: int = field(default=1, compare=False)

    # Identity

    def next_id(self) -> int:
        """Allocate a unique placed-part id."""
        part_id = self.next_part_id
        self.next_part_id += 1
        return part_id

    def _allocate_character_id(self) -> int:
        char_id = self.next_character_id
        self.next_character_id += 1
        return char_id

    # Characters

    def add_character(self, character: Character) -> Character:
        """Append a character, giving it a fresh id when it has none.

        The placement counter is raised past any ids the character brings along.
        """
        if character.id is None:
            character.id = self._allocate_character_id()
        elif self.get_character_by_id(character.id) is not None:
            raise DuplicateNameError(f"Character id {character.id} is already in use")
        else:
            self.next_character_id = max(self.next_character_id, character.id + 1)
        self.characters.append(character)
        max_part_id = max((p.id for a in character.animations for p in a.placed_parts()), default=0)
        self.next_part_id = max(self.next_part_id, max_part_id + 1)
        return character

    def new_character(self, name: str) -> Character:
        if self.get_character(name) is not None:
            raise DuplicateNameError(f"A character named '{name}' already exists")
        return self.add_character(Character(name, canvas_size=self.canvas_size))

    def remove_character(self, character_id: int) -> Character:
        """Delete a character and everything it owns. Its id is not reused."""
        character = self.require_character(character_id)
        self.characters.remove(character)
        return character

    def rename_character(self, character_id: int, new_name: str) -> Character:
        character = self.require_character(character_id)
        if not new_name:
            raise MalformedInputError("Character name cannot be empty")
        other = self.get_character(new_name)
        if other is not None and other is not character:
            raise DuplicateNameError(f"A character named '{new_name}' already exists")
        character.name = new_name
        return character

    def character_table(self) -> dict[int, Character]:
        """id -> Character lookup table."""
        return {c.id: c for c in self.characters if c.id is not None}

    def get_character_by_id(self, character_id: int) -> Optional[Character]:
        return next((c for c in self.characters if c.id == character_id), None)

    def get_character(self, name: str) -> Optional[Character]:
        """Lookup by display name. Prefer ids; names change on rename."""
        return next((c for c in self.characters if c.name == name), None)

    def require_character(self, character_id: int) -> Character:
        character = self.get_character_by_id(character_id)
        if character is None:
            raise CharacterNotFoundError(f"Character {character_id} not found")
        return character

    # Placements

    def place_part(self, frame: Frame, character_id: int, part_name: str, state_name: str,
                   position: tuple[float, float] = (0.0, 0.0), rotation: int = 0) -> PlacedPart:
        """Add a new placement on top of frame with a collision-free layer name."""
        placed = PlacedPart(
            id=self.next_id(),
            character_id=character_id,
            part_name=part_name,
            state_name=state_name,
            rotation=rotation,
            position=(float(position[0]), float(position[1])),
            layer_name=unique_layer_name(part_name, frame.layer_names()),
        )
        frame.placed_parts.append(placed)
        return placed

    def all_placed_parts(self, include_legacy: bool = False) -> Iterator[PlacedPart]:
        for character in self.characters:
            for animation in character.animations:
                yield from animation.placed_parts()
        if include_legacy:
            for animation in self.legacy_animations:
                yield from animation.placed_parts()

    # Reference images

    def cache_reference_thumbnail(self, file_path: str) -> str:
        """Store a thumbnail for a reference image once per path."""
        from .imaging import create_reference_thumbnail

        key = str(file_path)
        if key not in self.reference_thumbnails:
            thumbnail, _ = create_reference_thumbnail(Path(file_path))
            self.reference_thumbnails[key] = thumbnail
        return self.reference_thumbnails[key]

    # Schema

    def was_migrated(self) -> bool:
        """True when the document is at the current schema with no legacy data.

        This cannot tell a project created at the current schema from one
        upgraded from an older document; both report True.
        """
        return self.version == SCHEMA_VERSION and not self.legacy_animations

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "name": self.name,
            "canvas_size": list(self.canvas_size),
            "characters": [c.to_dict() for c in self.characters],
            "reference_thumbnails": dict(self.reference_thumbnails),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        """Build a project in the current shape without any migration."""
        canvas_size = _pair(data.get("canvas_size"), DEFAULT_CANVAS_SIZE, int)
        return cls(
            name=data.get("name", DEFAULT_PROJECT_NAME),
            version=str(data.get("version", "1.0")),
            canvas_size=canvas_size,
            characters=[Character.from_dict(c, canvas_size) for c in data.get("characters", [])],
            reference_thumbnails=dict(data.get("reference_thumbnails") or {}),
            legacy_animations=[Animation.from_dict(a) for a in data.get("animations") or []],
        )
