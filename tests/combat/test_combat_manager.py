"""
Tests for the combat manager state machine.
"""

import threading

import pytest

from idlecombat.core.constants import CombatPhase, PotionGrade, PotionKind
from idlecombat.core.error_handling import (
    CharacterNotFoundError,
    ConcurrentRoundError,
    MapNotFoundError,
    MapNotSelectedError,
    MonsterMissingError,
)
from idlecombat.models.results import OutcomeKind, PotionDrop
from idlecombat.potions import potion_from_drop


@pytest.fixture
def fighting(store, clock, state_factory, monster_factory):
    """Persists a running fight against one sturdy monster in slot 0."""

    def build(hp=None, attack=20, template_id=1):
        state = state_factory(
            monster_factory(0, hp=1000, attack=attack, template_id=template_id),
            hp=hp,
            is_fighting=True,
            roster_refreshed_at=clock(),
            combat_started_at=clock(),
        )
        store.save(state)
        return state

    return build


# ============================================================================
# ROUNDS
# ============================================================================


def test_first_round_starts_fighting(manager, store, combat_log, directory):
    outcome = manager.execute_round(1)

    assert outcome.kind == OutcomeKind.ROUND
    # One goblin spawns and dies to the first hit.
    assert outcome.damage_dealt == 45
    assert outcome.victory
    assert outcome.rounds == 1
    assert outcome.experience_gained == 5
    assert outcome.current_hp == 200
    assert outcome.combat_log_id == 1
    assert len(outcome.monsters) == 5

    state = store.load(1)
    assert state.is_fighting
    assert state.rounds == 1
    assert state.hp == 200
    assert state.version == 1

    record = directory.get(1)
    assert record.experience == 5
    assert record.discovered_monsters == {1}
    assert combat_log.logs(1)[0].victory


def test_round_against_a_running_fight(manager, store, fighting, clock):
    fighting()
    clock.advance(5)

    outcome = manager.execute_round(1)

    assert outcome.damage_dealt == 50
    assert outcome.damage_taken == 17
    assert outcome.current_hp == 183
    assert outcome.monster_hp_before_round == 1000
    assert not outcome.victory

    state = store.load(1)
    assert state.roster[0].hp == 950
    assert state.roster[0].instance_id == "m-test-0"
    assert state.total_damage_dealt == 50
    assert state.total_damage_taken == 17


def test_round_log_is_written(manager, combat_log, fighting, clock):
    fighting()
    clock.advance(12)
    outcome = manager.execute_round(1)

    entry = combat_log.detail(1, outcome.combat_log_id)
    assert entry.map_id == 1
    assert entry.monster_id == 1
    assert entry.damage_dealt == 50
    assert entry.duration_seconds == 12
    assert entry.details is not None
    assert not entry.defeat


def test_hp_is_never_persisted_negative(manager, store, fighting):
    fighting(hp=5, attack=500)
    manager.execute_round(1)
    assert store.load(1).hp == 0


# ============================================================================
# PRECONDITIONS
# ============================================================================


def test_unknown_character(manager):
    with pytest.raises(CharacterNotFoundError):
        manager.execute_round(99)


def test_no_map_selected(manager, directory, store):
    directory.select_map(1, None)
    with pytest.raises(MapNotSelectedError):
        manager.execute_round(1)
    assert store.load(1).version == 0


def test_selected_map_does_not_exist(manager, directory, store):
    directory.select_map(1, 42)
    with pytest.raises(MapNotFoundError) as exc_info:
        manager.execute_round(1)
    assert exc_info.value.context["map_id"] == 42
    assert store.load(1).version == 0


def test_map_without_monsters(manager, directory, store):
    directory.select_map(1, 2)
    with pytest.raises(MonsterMissingError):
        manager.execute_round(1)
    assert store.load(1).version == 0
    assert not store.load(1).is_fighting


def test_precondition_errors_are_reported(manager, directory):
    directory.select_map(1, None)
    with pytest.raises(MapNotSelectedError):
        manager.execute_round(1)
    assert manager.errors.error_history[-1].context == {"character_id": 1}


def test_deleted_template_clears_the_state(manager, store, fighting):
    fighting(template_id=77)
    with pytest.raises(MonsterMissingError) as exc_info:
        manager.execute_round(1)

    assert exc_info.value.context["template_id"] == 77
    state = store.load(1)
    assert not state.has_roster()
    assert not state.is_fighting


def test_concurrent_round_is_rejected(manager):
    taken = threading.Event()
    release = threading.Event()

    def hold():
        with manager.locks.hold(1):
            taken.set()
            release.wait(5)

    thread = threading.Thread(target=hold)
    thread.start()
    taken.wait(5)
    try:
        with pytest.raises(ConcurrentRoundError):
            manager.execute_round(1, blocking=False)
    finally:
        release.set()
        thread.join(5)


# ============================================================================
# DEFEAT AND AUTO-STOP
# ============================================================================


def test_defeat_clears_the_fight(manager, store, combat_log, fighting):
    fighting(hp=5, attack=100)

    outcome = manager.execute_round(1)

    assert outcome.kind == OutcomeKind.DEFEAT
    assert outcome.defeat and outcome.auto_stopped
    assert outcome.current_hp == 0
    assert outcome.monsters == []
    assert outcome.damage_dealt == 50

    state = store.load(1)
    assert not state.is_fighting
    assert not state.has_roster()
    assert state.phase == CombatPhase.DEFEATED

    entry = combat_log.logs(1)[0]
    assert entry.defeat
    assert entry.damage_taken == 97
    assert combat_log.stats(1).defeats == 1


def test_potion_is_drunk_on_the_losing_round(manager, directory, store, combat_log, fighting):
    directory.update_potion_settings(1, auto_use_hp_potion=True, hp_potion_threshold=100)
    directory.get(1).potions = [
        potion_from_drop(PotionDrop(kind=PotionKind.HP, grade=PotionGrade.FULL))
    ]
    fighting(hp=5, attack=100)

    outcome = manager.execute_round(1)

    # The defeat is decided before the potion; it only restores HP for later.
    assert outcome.kind == OutcomeKind.DEFEAT
    assert outcome.potion_used.hp.restored == 200
    assert directory.get_potions(1) == []
    assert combat_log.logs(1)[0].potion_used.hp.name == "Superior Healing Potion"
    state = store.load(1)
    assert not state.is_fighting
    assert state.hp == 200


def test_round_without_hp_auto_stops(manager, store, combat_log, fighting):
    fighting(hp=0)

    outcome = manager.execute_round(1)

    assert outcome.kind == OutcomeKind.AUTO_STOPPED
    assert outcome.auto_stopped
    assert outcome.reason == "insufficient_hp"
    assert not store.load(1).is_fighting
    assert combat_log.logs(1) == []


def test_defeated_character_stays_stopped(manager, fighting):
    fighting(hp=5, attack=100)
    manager.execute_round(1)
    assert manager.execute_round(1).kind == OutcomeKind.AUTO_STOPPED


# ============================================================================
# POTIONS
# ============================================================================


def test_potion_tops_up_hp_after_the_round(manager, directory, store, fighting):
    directory.update_potion_settings(1, auto_use_hp_potion=True, hp_potion_threshold=50)
    directory.get(1).potions = [
        potion_from_drop(PotionDrop(kind=PotionKind.HP, grade=PotionGrade.LIGHT))
    ]
    fighting(hp=100)

    outcome = manager.execute_round(1)

    # 100 - 17 = 83 is below half, the potion restores 100.
    assert outcome.potion_used.hp.restored == 100
    assert outcome.current_hp == 183
    assert store.load(1).hp == 183
    assert directory.get_potions(1) == []


# ============================================================================
# STATUS AND CONTROL
# ============================================================================


def test_status_of_an_idle_character(manager):
    status = manager.get_status(1)
    assert status.phase == CombatPhase.IDLE
    assert not status.is_fighting
    assert status.current_hp == 200
    assert status.current_mana == 100
    assert status.monsters == []


def test_status_of_a_fighting_character(manager, fighting):
    fighting(hp=150)
    status = manager.get_status(1)
    assert status.phase == CombatPhase.FIGHTING
    assert status.current_hp == 150
    assert len(status.monsters) == 5
    assert status.current_monster.hp == 1000


def test_status_of_unknown_character(manager):
    with pytest.raises(CharacterNotFoundError):
        manager.get_status(99)


def test_stop_keeps_the_roster(manager, store, fighting):
    fighting()
    status = manager.stop(1)

    assert not status.is_fighting
    state = store.load(1)
    assert state.has_roster()
    assert state.roster[0].instance_id == "m-test-0"


def test_resume_after_stop_continues_the_same_fight(manager, store, fighting):
    fighting()
    manager.stop(1)
    outcome = manager.execute_round(1)
    assert outcome.monster_hp_before_round == 1000
    assert store.load(1).is_fighting


def test_reset_keeps_resources(manager, store, fighting):
    fighting(hp=50)
    manager.reset(1)
    state = store.load(1)
    assert not state.has_roster()
    assert state.hp == 50


def test_reset_can_restore_resources(manager, fighting):
    fighting(hp=50)
    manager.reset(1, restore_resources=True)
    assert manager.get_status(1).current_hp == 200


def test_refresh_if_stale(manager, store, fighting, clock):
    fighting()
    assert manager.refresh_if_stale(1) == []

    clock.advance(61)
    appeared = manager.refresh_if_stale(1)

    assert [m.position for m in appeared] == [0]
    # The alive occupant keeps its id; its HP is clamped to the new maximum.
    assert appeared[0].instance_id == "m-test-0"
    assert appeared[0].hp == 40
    assert store.load(1).roster_refreshed_at == clock()


def test_refresh_without_map_does_nothing(manager, directory, fighting, clock):
    fighting()
    directory.select_map(1, None)
    clock.advance(61)
    assert manager.refresh_if_stale(1) == []
