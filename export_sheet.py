#!/usr/bin/env python3
"""
Pixel Sprite Studio - Spritesheet Export Entry Point

Loads a project document (upgrading older schemas on the fly) and exports
one or all animations of a character as packed PNG sheets with JSON metadata.
"""
import logging
import sys
from argparse import ArgumentParser
from pathlib import Path

from pixel_sprite_studio import (
    SpriteStudioError,
    CharacterNotFoundError,
    AnimationNotFoundError,
    setup_logging,
    get_config,
    sanitize_filename,
    load_project,
    export_animation,
    export_all_animations,
)

log = logging.getLogger(__name__)


def resolve_character(project, value: str):
    """Find a character by name, falling back to a numeric id."""
    if not project.characters:
        raise CharacterNotFoundError("Project has no characters")
    if not value:
        return project.characters[0]
    character = project.get_character(value)
    if character is None and value.isdigit():
        character = project.get_character_by_id(int(value))
    if character is None:
        raise CharacterNotFoundError(f"Character '{value}' not found")
    return character


def resolve_animation_index(character, value: str) -> int:
    """Find an animation index by name, falling back to a numeric index."""
    if not value:
        return 0
    for i, animation in enumerate(character.animations):
        if animation.name == value:
            return i
    if value.isdigit():
        return int(value)
    raise AnimationNotFoundError(f"Animation '{value}' not found for character '{character.name}'")


def main(argv=None):
    """Main entry point for export.
    
    Args:
        argv: Optional list of command-line arguments. If None, uses sys.argv.
              Example: ['hero.json', '-c', 'Hero', '-a', 'walk', '-o', 'out/walk']

    Returns:
        Process exit code
    """
    parser = ArgumentParser(description="Export spritesheets from a Pixel Sprite Studio project.")
    parser.add_argument("project", type=Path, help="Project document (.json)")
    parser.add_argument("-c", "--character", type=str, default="",
        help="Character name or id (default: first character)")
    parser.add_argument("-a", "--animation", type=str, default="",
        help="Animation name or index (default: first animation)")
    parser.add_argument("-o", "--output", type=Path, default=None,
        help="Output file (single animation) or directory (--all)")
    parser.add_argument("--all", action="store_true",
        help="Export every animation of the character")
    parser.add_argument("--mirror", action="store_true",
        help="Fill blank rotations by flipping their mirror-angle artwork")
    parser.add_argument("--atomic", action="store_true",
        help="Write through a temporary file and rename on success")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")

    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(args.debug)

    # Configure global state
    config = get_config()
    config.debug = args.debug
    config.show_progress = args.all
    config.atomic_writes = args.atomic
    config.mirror_missing_rotations = args.mirror

    try:
        project = load_project(args.project)
        character = resolve_character(project, args.character)

        if args.all:
            output_dir = args.output or config.output_dir
            count = export_all_animations(project, character.id, output_dir)
            log.info(f"{count} spritesheet(s) written to {output_dir}")
        else:
            index = resolve_animation_index(character, args.animation)
            output = args.output
            if output is None:
                anim_name = character.animations[index].name if index < len(character.animations) else str(index)
                output = config.output_dir / f"{character.name}_{sanitize_filename(anim_name)}"
            png_path, json_path = export_animation(project, character.id, index, output)
            log.info(f"Wrote {png_path} and {json_path}")
    except SpriteStudioError as e:
        log.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
