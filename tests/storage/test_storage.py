"""
Tests for the in-memory stores, the lock registry and the character directory.
"""

import threading

import pytest

from idlecombat.core.constants import PotionGrade, PotionKind
from idlecombat.core.error_handling import CharacterNotFoundError, StateConflictError
from idlecombat.models.combat_log import CombatLogEntry
from idlecombat.models.results import ItemDrop, PotionDrop
from idlecombat.storage import CharacterLockRegistry, InMemoryCombatLog


def log_entry(clock, **fields):
    return CombatLogEntry(character_id=1, map_id=1, created_at=clock(), **fields)


# ============================================================================
# STATE STORE
# ============================================================================


def test_load_unknown_character_gives_idle_state(store):
    state = store.load(7)
    assert state.character_id == 7
    assert not state.is_fighting
    assert state.version == 0


def test_save_and_load_round_trip_copies(store, state_factory, monster_factory):
    state = state_factory(monster_factory(2, hp=30), hp=80)
    store.save(state)
    assert state.version == 1

    loaded = store.load(1)
    loaded.roster[2].hp = 1
    assert store.load(1).roster[2].hp == 30
    assert store.load(1).hp == 80


def test_stale_save_is_rejected(store, state_factory):
    store.save(state_factory())
    first = store.load(1)
    second = store.load(1)
    first.rounds = 3
    store.save(first)

    second.rounds = 9
    with pytest.raises(StateConflictError):
        store.save(second)
    assert store.load(1).rounds == 3


def test_delete(store, state_factory):
    store.save(state_factory(hp=5))
    store.delete(1)
    assert store.load(1).hp is None


# ============================================================================
# LOCKS
# ============================================================================


def test_same_character_shares_a_lock():
    registry = CharacterLockRegistry()
    assert registry.lock_for(1) is registry.lock_for(1)
    assert registry.lock_for(1) is not registry.lock_for(2)


def test_hold_is_reentrant_for_the_owner():
    registry = CharacterLockRegistry()
    with registry.hold(1) as outer:
        with registry.hold(1, blocking=False) as inner:
            assert outer and inner


def test_hold_fails_without_blocking_when_another_thread_owns_it():
    registry = CharacterLockRegistry()
    taken = threading.Event()
    release = threading.Event()

    def owner():
        with registry.hold(1):
            taken.set()
            release.wait(5)

    thread = threading.Thread(target=owner)
    thread.start()
    taken.wait(5)
    try:
        with registry.hold(1, blocking=False) as acquired:
            assert not acquired
        with registry.hold(2, blocking=False) as other:
            assert other
    finally:
        release.set()
        thread.join(5)


# ============================================================================
# COMBAT LOG
# ============================================================================


def test_log_ids_and_listing_order(clock):
    book = InMemoryCombatLog(listing_limit=2)
    ids = [book.write(log_entry(clock, round_number=n)) for n in (1, 2, 3)]

    assert ids == [1, 2, 3]
    assert [e.round_number for e in book.logs(1)] == [3, 2]
    assert book.detail(1, 1).round_number == 1
    assert book.detail(1, 42) is None
    assert book.detail(2, 1) is None


def test_log_stats(clock):
    book = InMemoryCombatLog()
    book.write(log_entry(clock, victory=True, damage_dealt=10, experience_gained=5))
    book.write(
        log_entry(clock, damage_dealt=4, damage_taken=6, copper_gained=3, loot_dropped={"copper": 3})
    )
    book.write(log_entry(clock, defeat=True, damage_dealt=14, damage_taken=20))

    stats = book.stats(1)
    assert stats.total_rounds == 3
    assert stats.victories == 1
    assert stats.defeats == 1
    assert stats.total_damage_dealt == 28
    assert stats.total_damage_taken == 26
    assert stats.total_experience == 5
    assert stats.total_copper == 3
    assert stats.total_loot_drops == 1


def test_stats_cover_entries_past_the_listing_limit(clock):
    book = InMemoryCombatLog(listing_limit=1)
    for _ in range(3):
        book.write(log_entry(clock, damage_dealt=5))
    assert len(book.logs(1)) == 1
    assert book.stats(1).total_rounds == 3
    assert book.stats(1).total_damage_dealt == 15


# ============================================================================
# CHARACTER DIRECTORY
# ============================================================================


def test_unknown_character(directory):
    assert directory.get_profile(99) is None
    with pytest.raises(CharacterNotFoundError):
        directory.get(99)


def test_profiles_are_copies(directory):
    directory.get_profile(1).current_map_id = 42
    assert directory.get_profile(1).current_map_id == 1


def test_select_map(directory):
    directory.select_map(1, None)
    assert directory.get_profile(1).current_map_id is None


def test_difficulty_comes_from_the_tier(directory, settings):
    directory.get(1).profile.difficulty_tier = 2
    multipliers = directory.get_difficulty_multipliers(directory.get_profile(1))
    assert multipliers == settings.difficulty_multipliers[2]


def test_unknown_tier_falls_back_to_tier_zero(directory):
    directory.get(1).profile.difficulty_tier = 17
    multipliers = directory.get_difficulty_multipliers(directory.get_profile(1))
    assert multipliers.reward == 1.0


def test_active_skills_skip_unknown_ids(directory, strike):
    directory.get(1).skill_ids = [strike.id, 404]
    assert directory.get_active_skills(directory.get_profile(1)) == [strike]


def test_update_potion_settings_rejects_unknown_keys(directory):
    with pytest.raises(ValueError):
        directory.update_potion_settings(1, attack=999)


def test_grant_and_discover(directory, profile):
    directory.grant(profile, 12, 4)
    directory.grant(profile, 3, 0)
    directory.discover_monster(profile, 1)
    directory.discover_monster(profile, 1)

    record = directory.get(1)
    assert record.experience == 15
    assert record.copper == 4
    assert record.discovered_monsters == {1}


def test_potions_stack(directory, profile):
    drop = PotionDrop(kind=PotionKind.HP, grade=PotionGrade.MINOR)
    directory.create_potion(profile, drop)
    directory.create_potion(profile, drop)
    directory.create_potion(profile, PotionDrop(kind=PotionKind.MP, grade=PotionGrade.MINOR))

    potions = directory.get_potions(1)
    assert [(p.kind, p.quantity) for p in potions] == [(PotionKind.HP, 2), (PotionKind.MP, 1)]

    directory.consume_potion(1, potions[1])
    assert [p.kind for p in directory.get_potions(1)] == [PotionKind.HP]


def test_items_are_kept(directory, profile):
    drop = ItemDrop(item_type="ring", quality="rare", level=3)
    assert directory.create_item(profile, drop) == drop
    assert directory.get(1).items == [drop]


def test_load_characters_from_file(content, settings, tmp_path):
    from idlecombat.storage import InMemoryCharacterDirectory

    path = tmp_path / "characters.json"
    path.write_text(
        '[{"profile": {"id": 5, "name": "Aiz"}, "stats": {"attack": 90, "max_hp": 300}}]'
    )
    characters = InMemoryCharacterDirectory(content, settings)
    characters.load(path)
    assert characters.get_profile(5).name == "Aiz"
    assert characters.get_combat_stats(characters.get_profile(5)).attack == 90
