"""Project document loading, saving and schema migration.

Documents written by any schema version load into the current shape:

- 1.x documents kept animations at project level and referenced characters
  by name. Those animations are moved onto the character they use.
- Documents from before character ids get ids assigned in list order, and
  name references in placements are resolved to ids.
- Counters (placement ids, character ids) are always recomputed from the
  data, never read from the file.
"""
import json
import logging
from pathlib import Path
from typing import Any, Union

from .config import get_config
from .constants import DEFAULT_ANIMATION_NAME, MULTI_CHAR_SUFFIX, SCHEMA_VERSION
from .errors import DocumentParseError, ProjectIOError
from .model import Animation, Character, PlacedPart, Project

log = logging.getLogger(__name__)


def project_from_dict(data: Any) -> Project:
    """Build and migrate a project from a decoded JSON document."""
    if not isinstance(data, dict):
        raise DocumentParseError("Project document must be a JSON object")
    try:
        project = Project.from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DocumentParseError(f"Parse error: invalid project structure ({e!r})") from e
    return migrate(project)


def parse_project(text: Union[str, bytes]) -> Project:
    """Parse a serialized project and bring it to the current schema."""
    try:
        data = json.loads(text)
    except ValueError as e:
        raise DocumentParseError(f"Parse error: {e}") from e
    return project_from_dict(data)


def dump_project(project: Project) -> str:
    """Serialize a project. Legacy data and runtime fields are not written."""
    return json.dumps(project.to_dict(), indent=get_config().indent)


def load_project(path: Path) -> Project:
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise ProjectIOError(f"Read error: {e}", path) from e
    project = parse_project(text)
    log.debug(f"Loaded project '{project.name}' from {path}: {len(project.characters)} character(s)")
    return project


def save_project(project: Project, path: Path):
    path = Path(path)
    text = dump_project(project)
    try:
        path.write_text(text, encoding='utf-8')
    except OSError as e:
        raise ProjectIOError(f"Write error: {e}", path) from e
    log.debug(f"Saved project '{project.name}' to {path}")


# Migration steps

def assign_character_ids(project: Project):
    """Give id-less characters fresh ids after the highest existing one."""
    next_id = max((c.id for c in project.characters if c.id is not None), default=0) + 1
    seen = set()
    for character in project.characters:
        if character.id is None or character.id in seen:
            if character.id is not None:
                log.warning(f"Character '{character.name}': duplicate id {character.id}, reassigning")
            character.id = next_id
            next_id += 1
        seen.add(character.id)
    project.next_character_id = next_id


def resolve_character_names(project: Project):
    """Point name-only placements at the id of the character with that name."""
    by_name = {}
    for character in project.characters:
        by_name.setdefault(character.name, character.id)

    for placed in project.all_placed_parts(include_legacy=True):
        if placed.character_id is not None or placed.legacy_character_name is None:
            continue
        char_id = by_name.get(placed.legacy_character_name)
        if char_id is None:
            log.warning(f"Placement {placed.id}: unknown character '{placed.legacy_character_name}'")
            continue
        placed.character_id = char_id
        placed.legacy_character_name = None


def recompute_part_counter(project: Project):
    """next_part_id = highest placement id anywhere + 1."""
    max_id = max((p.id for p in project.all_placed_parts(include_legacy=True)), default=0)
    project.next_part_id = max_id + 1


def _character_name_of(placed: PlacedPart, table: dict[int, Character]) -> Union[str, None]:
    if placed.legacy_character_name is not None:
        return placed.legacy_character_name
    character = table.get(placed.character_id)
    return character.name if character else None


def referenced_characters(animation: Animation, table: dict[int, Character]) -> list[str]:
    """Distinct character names used by an animation, in first-seen order."""
    names = {}
    for placed in animation.placed_parts():
        name = _character_name_of(placed, table)
        if name is not None:
            names.setdefault(name, None)
    return list(names)


def migrate_legacy_animations(project: Project) -> bool:
    """Move project-level animations onto characters.

    One referenced character: the animation moves unchanged. Several: it
    moves to the first one encountered and gets a " (multi-char)" suffix.
    None: it is dropped. An animation whose first name matches no character
    is dropped too, even when a later name would resolve.
    Returns True when there was anything to migrate.
    """
    if not project.legacy_animations:
        return False

    table = project.character_table()
    for animation in project.legacy_animations:
        names = referenced_characters(animation, table)
        if not names:
            log.warning(f"Dropping legacy animation '{animation.name}': no placed parts")
            continue

        target = project.get_character(names[0])
        if target is None:
            log.warning(f"Dropping legacy animation '{animation.name}': "
                        f"character '{names[0]}' does not exist")
            continue
        if len(names) > 1:
            log.debug(f"Legacy animation '{animation.name}' uses {names}, assigning to '{target.name}'")
            animation.name = f"{animation.name}{MULTI_CHAR_SUFFIX}"
        target.add_animation(animation)
        log.debug(f"MIGRATE animation '{animation.name}' -> '{target.name}'")

    project.legacy_animations = []

    for character in project.characters:
        if not character.animations:
            character.add_animation(Animation(DEFAULT_ANIMATION_NAME))
    return True


def migrate(project: Project) -> Project:
    """Normalize a freshly parsed project to the current schema.

    Idempotent: a current document with no legacy animations comes back
    unchanged apart from its recomputed counters.
    """
    assign_character_ids(project)
    resolve_character_names(project)
    recompute_part_counter(project)
    if migrate_legacy_animations(project):
        log.info(f"Migrated project '{project.name}' from schema {project.version} to {SCHEMA_VERSION}")
    project.version = SCHEMA_VERSION
    return project
