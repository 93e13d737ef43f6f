"""
Tests for frame compositing.

Verifies:
- Paint order only matters where parts overlap
- The over operator on partial and full alpha
- Invisible, unresolved and off-canvas placements
- Position rounding and optional mirror synthesis
"""
import numpy as np
import pytest

from pixel_sprite_studio.compositor import (
    blend_over,
    render_frame,
    render_frame_image,
    round_half_away,
)
from pixel_sprite_studio.errors import FrameNotFoundError, MalformedPayloadError

from conftest import BLUE, GREEN, RED, TRANSPARENT


def pixel(canvas, x, y):
    return tuple(int(c) for c in canvas[y, x])


# ══════════════════════════════════════════════════════════════════════════
# Over operator
# ══════════════════════════════════════════════════════════════════════════

class TestBlendOver:

    def test_half_red_over_opaque_blue(self):
        dst = np.array([[[0, 0, 255, 255]]], dtype=np.uint8)
        src = np.array([[[255, 0, 0, 128]]], dtype=np.uint8)
        blend_over(dst, src)
        assert pixel(dst, 0, 0) == (128, 0, 127, 255)

    def test_opaque_source_replaces(self):
        dst = np.array([[[12, 34, 56, 200]]], dtype=np.uint8)
        src = np.array([[[10, 200, 30, 255]]], dtype=np.uint8)
        blend_over(dst, src)
        assert pixel(dst, 0, 0) == (10, 200, 30, 255)
        blend_over(dst, src)
        assert pixel(dst, 0, 0) == (10, 200, 30, 255)

    def test_transparent_over_transparent_untouched(self):
        dst = np.array([[[5, 6, 7, 0]]], dtype=np.uint8)
        src = np.array([[[9, 9, 9, 0]]], dtype=np.uint8)
        blend_over(dst, src)
        assert pixel(dst, 0, 0) == (5, 6, 7, 0)

    def test_partial_over_transparent_keeps_colour(self):
        dst = np.zeros((1, 1, 4), dtype=np.uint8)
        src = np.array([[[200, 100, 50, 64]]], dtype=np.uint8)
        blend_over(dst, src)
        assert pixel(dst, 0, 0) == (200, 100, 50, 64)


def test_round_half_away():
    assert round_half_away(0.5) == 1
    assert round_half_away(1.5) == 2
    assert round_half_away(2.49) == 2
    assert round_half_away(-0.5) == -1
    assert round_half_away(-1.2) == -1


# ══════════════════════════════════════════════════════════════════════════
# Frame rendering
# ══════════════════════════════════════════════════════════════════════════

class TestRenderFrame:

    def test_empty_frame_is_transparent(self, project, idle):
        canvas = render_frame(project, idle, 0, (8, 8))
        assert canvas.shape == (8, 8, 4)
        assert not canvas.any()

    def test_frame_not_found(self, project, idle):
        with pytest.raises(FrameNotFoundError):
            render_frame(project, idle, 5, (8, 8))
        with pytest.raises(FrameNotFoundError):
            render_frame(project, idle, -1, (8, 8))

    def test_non_overlapping_parts(self, project, hero, idle):
        frame = idle.frames[0]
        project.place_part(frame, hero.id, "head", "default", position=(0, 0))
        project.place_part(frame, hero.id, "body", "default", position=(4, 4))
        canvas = render_frame(project, idle, 0, (8, 8))
        assert pixel(canvas, 1, 1) == RED
        assert pixel(canvas, 5, 5) == BLUE
        assert pixel(canvas, 7, 7) == BLUE
        assert pixel(canvas, 3, 3) == TRANSPARENT

    def test_later_parts_draw_on_top(self, project, hero, idle):
        frame = idle.frames[0]
        project.place_part(frame, hero.id, "body", "default", position=(0, 0))
        project.place_part(frame, hero.id, "head", "default", position=(1, 1))
        canvas = render_frame(project, idle, 0, (8, 8))
        assert pixel(canvas, 1, 1) == RED
        assert pixel(canvas, 0, 0) == BLUE

        frame.placed_parts.reverse()
        canvas = render_frame(project, idle, 0, (8, 8))
        assert pixel(canvas, 1, 1) == BLUE

    def test_invisible_part_skipped(self, project, hero, idle):
        frame = idle.frames[0]
        project.place_part(frame, hero.id, "body", "default")
        head = project.place_part(frame, hero.id, "head", "default")
        head.visible = False
        canvas = render_frame(project, idle, 0, (8, 8))
        assert pixel(canvas, 0, 0) == BLUE

    def test_unresolved_artwork_skipped(self, project, hero, idle):
        frame = idle.frames[0]
        project.place_part(frame, hero.id, "head", "default", rotation=90)  # not drawn yet
        project.place_part(frame, hero.id, "tail", "default")
        project.place_part(frame, hero.id, "head", "angry")
        project.place_part(frame, 404, "head", "default")
        canvas = render_frame(project, idle, 0, (8, 8))
        assert not canvas.any()

    def test_reference_by_id_survives_rename(self, project, hero, idle):
        project.place_part(idle.frames[0], hero.id, "head", "default")
        project.rename_character(hero.id, "Renamed")
        canvas = render_frame(project, idle, 0, (8, 8))
        assert pixel(canvas, 0, 0) == RED

    def test_position_rounding(self, project, hero, idle):
        project.place_part(idle.frames[0], hero.id, "head", "default", position=(2.5, 1.4))
        canvas = render_frame(project, idle, 0, (8, 8))
        assert pixel(canvas, 3, 1) == RED
        assert pixel(canvas, 4, 2) == RED
        assert pixel(canvas, 2, 1) == TRANSPARENT
        assert pixel(canvas, 3, 3) == TRANSPARENT

    def test_clipped_at_edges(self, project, hero, idle):
        frame = idle.frames[0]
        project.place_part(frame, hero.id, "body", "default", position=(-2, -2))
        project.place_part(frame, hero.id, "body", "default", position=(6, 6))
        project.place_part(frame, hero.id, "body", "default", position=(20, 0))
        canvas = render_frame(project, idle, 0, (8, 8))
        assert pixel(canvas, 0, 0) == BLUE
        assert pixel(canvas, 1, 1) == BLUE
        assert pixel(canvas, 2, 2) == TRANSPARENT
        assert pixel(canvas, 7, 7) == BLUE
        assert pixel(canvas, 5, 5) == TRANSPARENT

    def test_rotation_selects_artwork(self, project, hero, idle):
        project.place_part(idle.frames[0], hero.id, "head", "default", rotation=45)
        canvas = render_frame(project, idle, 0, (8, 8))
        assert pixel(canvas, 0, 0) == RED
        assert pixel(canvas, 1, 0) == GREEN

    def test_malformed_payload(self, project, hero, idle):
        hero.get_part("head").get_state("default").set_image(0, "not base64!!")
        project.place_part(idle.frames[0], hero.id, "head", "default")
        with pytest.raises(MalformedPayloadError):
            render_frame(project, idle, 0, (8, 8))

    def test_render_image(self, project, hero, idle):
        project.place_part(idle.frames[0], hero.id, "head", "default")
        img = render_frame_image(project, idle, 0, (8, 6))
        assert img.mode == "RGBA"
        assert img.size == (8, 6)
        assert img.getpixel((0, 0)) == RED


class TestMirrorFallback:

    def test_blank_rotation_stays_blank_by_default(self, project, hero, idle):
        project.place_part(idle.frames[0], hero.id, "head", "default", rotation=315)
        assert not render_frame(project, idle, 0, (8, 8)).any()

    def test_blank_rotation_flipped_when_enabled(self, fresh_config, project, hero, idle):
        fresh_config.mirror_missing_rotations = True
        project.place_part(idle.frames[0], hero.id, "head", "default", rotation=315)
        canvas = render_frame(project, idle, 0, (8, 8))
        # 45 degrees is red|green, so 315 shows green|red
        assert pixel(canvas, 0, 0) == GREEN
        assert pixel(canvas, 1, 0) == RED

    def test_axis_angles_never_mirror(self, fresh_config, project, hero, idle):
        fresh_config.mirror_missing_rotations = True
        project.place_part(idle.frames[0], hero.id, "body", "default", rotation=180)
        assert not render_frame(project, idle, 0, (8, 8)).any()

    def test_render_does_not_mutate_project(self, fresh_config, project, hero, idle):
        fresh_config.mirror_missing_rotations = True
        project.place_part(idle.frames[0], hero.id, "head", "default", rotation=315)
        render_frame(project, idle, 0, (8, 8))
        assert hero.resolve_image("head", "default", 315).image_data is None
