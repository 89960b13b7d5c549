import json
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional

from catchery import log_warning

from idlecombat.core.utils import cprint
from idlecombat.models.catalog import MapDefinition, MonsterTemplate, SkillDefinition


class ContentRepository:
    """
    Registry of the maps, monster templates and skills loaded from disk.

    Implements the monster catalog read by the arena manager, and resolves
    skill ids for the character directory.
    """

    monsters: dict[int, MonsterTemplate]
    maps: dict[int, MapDefinition]
    skills: dict[int, SkillDefinition]

    def __init__(self, data_dir: Path | None = None) -> None:
        """
        Initialize the ContentRepository.

        Args:
            data_dir (Path | None):
                The directory containing data files to load. An empty
                repository is created when None.

        """
        self.monsters = {}
        self.maps = {}
        self.skills = {}
        if data_dir:
            self.reload(data_dir)

    def reload(self, root: Path) -> None:
        """
        (Re)load all JSON assets from disk. Running fights pick up edited
        monster stats on their next roster regeneration.

        Args:
            root (Path):
                The directory containing data files to load.
        """
        self.monsters = _load_json_file(
            root / "monsters.json",
            _load_by_id(MonsterTemplate),
            "monsters",
        )
        self.skills = _load_json_file(
            root / "skills.json",
            _load_by_id(SkillDefinition),
            "skills",
        )
        self.maps = _load_json_file(
            root / "maps.json",
            _load_by_id(MapDefinition),
            "maps",
        )

    # ============================================================================
    # MONSTER CATALOG
    # ============================================================================

    def get_map(self, map_id: int) -> Optional[MapDefinition]:
        """Get a map by id, or None if not found."""
        return self.maps.get(map_id)

    def get_by_id(self, template_id: int) -> Optional[MonsterTemplate]:
        """Get a monster template by id, or None if not found."""
        return self.monsters.get(template_id)

    def get_monster_pool(self, game_map: MapDefinition) -> list[MonsterTemplate]:
        """
        Returns the templates that can spawn on a map, skipping unknown ids.

        Args:
            game_map (MapDefinition):
                The map whose pool to resolve.

        Returns:
            list[MonsterTemplate]:
                The resolvable templates, in the order the map lists them.

        """
        pool = []
        for template_id in game_map.monster_ids:
            template = self.monsters.get(template_id)
            if template is None:
                log_warning(
                    f"Map '{game_map.name}' references unknown monster {template_id}.",
                    {"map_id": game_map.id, "template_id": template_id},
                )
                continue
            pool.append(template)
        return pool

    def register_monster(self, template: MonsterTemplate) -> None:
        """Adds or replaces a monster template."""
        self.monsters[template.id] = template

    def remove_monster(self, template_id: int) -> None:
        """Deletes a monster template; rosters referencing it become stale."""
        self.monsters.pop(template_id, None)

    # ============================================================================
    # SKILLS
    # ============================================================================

    def get_skill(self, skill_id: int) -> Optional[SkillDefinition]:
        """Get a skill by id, or None if not found."""
        return self.skills.get(skill_id)

    def get_skills(self, skill_ids: list[int]) -> list[SkillDefinition]:
        """Resolves skill ids, skipping the unknown ones."""
        skills = []
        for skill_id in skill_ids:
            skill = self.skills.get(skill_id)
            if skill is None:
                log_warning(
                    f"Unknown skill {skill_id}, ignoring it.",
                    {"skill_id": skill_id},
                )
                continue
            skills.append(skill)
        return skills


def _load_by_id(model: type) -> Callable[[list[dict]], dict[int, Any]]:
    """
    Builds a loader validating each entry with a pydantic model and keying
    it by its id.

    Raises:
        ValueError: If duplicate ids are found.

    """

    def loader(data: list[dict]) -> dict[int, Any]:
        entries: dict[int, Any] = {}
        for entry_data in data:
            entry = model(**entry_data)
            if entry.id in entries:
                raise ValueError(f"Duplicate {model.__name__} id: {entry.id}")
            entries[entry.id] = entry
        return entries

    loader.__name__ = f"load_{model.__name__}"
    return loader


def load_json_list(filepath: Path) -> list[dict]:
    """
    Loads a JSON file holding a non-empty list.

    Raises:
        ValueError: If the file is missing, empty, or not a list.

    """
    try:
        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")
        if not filepath.is_file():
            raise ValueError(f"Not a file: {filepath}")
        with open(filepath, encoding="utf-8") as f:
            data = json.load(f)
        if not data:
            raise ValueError(f"Empty data list in {filepath}")
        if not isinstance(data, list):
            raise ValueError(f"Expected list in {filepath}, got {type(data).__name__}")
        return data
    except (json.JSONDecodeError, FileNotFoundError) as e:
        raise ValueError(f"File {filepath} raised an error: {e}") from e


def _load_json_file(
    filepath: Path,
    loader_func: Callable[[list[dict]], dict[int, Any]],
    description: str,
) -> dict[int, Any]:
    """Helper to load and validate JSON files"""
    cprint(
        f"  Loading {description} using {loader_func.__name__}...",
        style="bold green",
    )
    return loader_func(load_json_list(filepath))
