"""
Tests for loading the monster, skill and map catalog from JSON files.
"""

import json
from pathlib import Path

import pytest

from idlecombat.catalog import ContentRepository, load_json_list
from idlecombat.core.constants import MonsterType, TargetScope

BUNDLED = Path(__file__).resolve().parents[2] / "idlecombat" / "data"


def write_catalog(root: Path, monsters=None, skills=None, maps=None) -> Path:
    monsters = monsters or [{"id": 1, "name": "Goblin", "hp_base": 30}]
    skills = skills or [{"id": 1, "name": "Bash", "damage": 10}]
    maps = maps or [{"id": 1, "name": "Floor 1", "monster_ids": [1]}]
    (root / "monsters.json").write_text(json.dumps(monsters))
    (root / "skills.json").write_text(json.dumps(skills))
    (root / "maps.json").write_text(json.dumps(maps))
    return root


def test_empty_repository():
    repo = ContentRepository()
    assert repo.monsters == {}
    assert repo.get_map(1) is None


def test_load_from_directory(tmp_path):
    repo = ContentRepository(write_catalog(tmp_path))
    assert repo.get_by_id(1).name == "Goblin"
    assert repo.get_skill(1).damage == 10
    assert repo.get_monster_pool(repo.get_map(1)) == [repo.get_by_id(1)]


def test_duplicate_ids_are_rejected(tmp_path):
    write_catalog(
        tmp_path,
        monsters=[{"id": 1, "name": "Goblin"}, {"id": 1, "name": "Kobold"}],
    )
    with pytest.raises(ValueError, match="Duplicate"):
        ContentRepository(tmp_path)


def test_missing_file_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        load_json_list(tmp_path / "nothing.json")


def test_file_must_hold_a_list(tmp_path):
    path = tmp_path / "monsters.json"
    path.write_text('{"id": 1}')
    with pytest.raises(ValueError):
        load_json_list(path)


def test_unknown_pool_entries_are_skipped(tmp_path, mocker):
    warn = mocker.patch("idlecombat.catalog.repository.log_warning")
    repo = ContentRepository(
        write_catalog(tmp_path, maps=[{"id": 3, "name": "Ruins", "monster_ids": [1, 9]}])
    )
    pool = repo.get_monster_pool(repo.get_map(3))
    assert [t.id for t in pool] == [1]
    warn.assert_called_once()


def test_removed_template_disappears(tmp_path):
    repo = ContentRepository(write_catalog(tmp_path))
    repo.remove_monster(1)
    assert repo.get_by_id(1) is None
    repo.remove_monster(1)


def test_bundled_catalog_loads():
    repo = ContentRepository(BUNDLED)
    assert len(repo.monsters) == 5
    assert repo.get_by_id(5).type == MonsterType.BOSS
    assert repo.get_skill(2).target_scope == TargetScope.ALL
    for game_map in repo.maps.values():
        assert len(repo.get_monster_pool(game_map)) == len(game_map.monster_ids)
