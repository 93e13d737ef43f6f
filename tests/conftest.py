"""
Shared fixtures for Pixel Sprite Studio tests.

Provides payload builders, a small two-character project and a legacy
(schema 1.0) project document.
"""
import json

import pytest
from PIL import Image

from pixel_sprite_studio import reset_config
from pixel_sprite_studio.imaging import encode_png
from pixel_sprite_studio.model import Animation, Frame, FrameReference, Part, Project


RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)
TRANSPARENT = (0, 0, 0, 0)


def solid_payload(width, height, color):
    """Base64 PNG of a single-colour rectangle"""
    return encode_png(Image.new('RGBA', (width, height), color))


def split_payload(width, height, left, right):
    """Base64 PNG whose left half is one colour and right half another"""
    img = Image.new('RGBA', (width, height), right)
    img.paste(Image.new('RGBA', (width // 2, height), left), (0, 0))
    return encode_png(img)


@pytest.fixture(autouse=True)
def fresh_config():
    """Every test starts from default configuration"""
    config = reset_config()
    yield config
    reset_config()


@pytest.fixture
def project():
    """Project with one character 'Hero' (8x8 canvas) owning head/body parts.

    head/default has a 2x2 red image at 0 degrees and a split image at 45.
    body/default has a 4x4 blue image at 0 degrees.
    The first animation 'idle' has an empty first frame.
    """
    proj = Project("Test Project", canvas_size=(8, 8))
    hero = proj.new_character("Hero")
    hero.animations[0].name = "idle"

    head = hero.add_part(Part("head"))
    head.get_state("default").set_image(0, solid_payload(2, 2, RED))
    head.get_state("default").set_image(45, split_payload(2, 2, RED, GREEN))

    body = hero.add_part(Part("body", default_z=-1))
    body.get_state("default").set_image(0, solid_payload(4, 4, BLUE))
    return proj


@pytest.fixture
def hero(project):
    return project.get_character("Hero")


@pytest.fixture
def idle(hero):
    return hero.animations[0]


@pytest.fixture
def walk(project, hero):
    """Three-frame animation with one placement per frame"""
    anim = hero.add_animation(Animation("walk", frames=[Frame(80), Frame(90), Frame(100)]))
    for i, frame in enumerate(anim.frames):
        project.place_part(frame, hero.id, "head", "default", position=(i, 0))
    anim.frames[1].reference = FrameReference("trace.png", (1.0, 2.0), 0.5)
    return anim


def _placement(part_id, character_name, part_name="head"):
    return {
        "id": part_id,
        "character_name": character_name,
        "part_name": part_name,
        "state_name": "default",
        "rotation": 0,
        "position": [0.0, 0.0],
        "z_override": None,
    }


def _legacy_animation(name, placements):
    return {
        "name": name,
        "frames": [{"duration_ms": 100, "placed_parts": placements, "z_overrides": {}}],
        "z_overrides": {},
    }


@pytest.fixture
def legacy_document():
    """Schema 1.0 document: project-level animations, name references, no ids"""
    head = {
        "name": "head",
        "default_z": 0,
        "states": [{
            "name": "default",
            "rotation_mode": "Deg45",
            "rotations": {"0": {"angle": 0, "image_data": solid_payload(2, 2, RED)}},
        }],
    }
    return {
        "version": "1.0",
        "name": "Old Project",
        "canvas_size": [32, 32],
        "characters": [
            {"name": "Hero", "parts": [head]},
            {"name": "Slime", "parts": []},
            {"name": "Ghost", "parts": [], "canvas_size": [16, 16]},
        ],
        "animations": [
            _legacy_animation("walk", [_placement(3, "Hero"), _placement(4, "Hero")]),
            _legacy_animation("duel", [_placement(7, "Slime"), _placement(5, "Hero")]),
            _legacy_animation("blank", []),
        ],
    }


@pytest.fixture
def legacy_text(legacy_document):
    return json.dumps(legacy_document)
