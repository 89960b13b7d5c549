"""
Shared fixtures for the combat core tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

import pytest

from idlecombat.catalog.repository import ContentRepository
from idlecombat.combat.combat_manager import CombatManager
from idlecombat.core.config import CombatSettings
from idlecombat.core.constants import MonsterType, TargetScope
from idlecombat.core.error_handling import ErrorHandler
from idlecombat.models.catalog import (
    CharacterProfile,
    CombatStats,
    DifficultyMultipliers,
    DropTable,
    MapDefinition,
    MonsterTemplate,
    SkillDefinition,
)
from idlecombat.models.monster import MonsterInstance, copy_roster, empty_roster
from idlecombat.models.results import (
    BattleDetails,
    CharacterDetails,
    DamageDetails,
    DifficultyDetails,
    RoundDetails,
    RoundResult,
)
from idlecombat.models.state import CombatState
from idlecombat.potions import ThresholdPotionPolicy
from idlecombat.storage import (
    CharacterRecord,
    InMemoryCharacterDirectory,
    InMemoryCombatLog,
    InMemoryCombatStateStore,
)

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class ScriptedRandom:
    """
    A random source replaying fixed values.

    Integer draws pop from ``ints`` (the range low when exhausted), float draws
    from ``floats`` (0.99 when exhausted, so crits and chance rolls fail) and
    choices from ``choices`` as indexes (0 when exhausted). Shuffling keeps
    the order.
    """

    def __init__(
        self,
        ints: Sequence[int] = (),
        floats: Sequence[float] = (),
        choices: Sequence[int] = (),
    ) -> None:
        self.ints = list(ints)
        self.floats = list(floats)
        self.choices = list(choices)
        self.int_calls: list[tuple[int, int]] = []

    def next(self, low: int, high: int) -> int:
        self.int_calls.append((low, high))
        value = self.ints.pop(0) if self.ints else low
        assert low <= value <= high, f"scripted {value} outside [{low}, {high}]"
        return value

    def next_float(self) -> float:
        return self.floats.pop(0) if self.floats else 0.99

    def choice(self, items):
        index = self.choices.pop(0) if self.choices else 0
        return items[index]

    def shuffle(self, items) -> None:
        pass


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def make_monster(
    position: int,
    hp: int = 100,
    max_hp: Optional[int] = None,
    attack: int = 0,
    defense: int = 0,
    experience: int = 5,
    template_id: int = 1,
    is_new: bool = False,
    level: int = 1,
) -> MonsterInstance:
    return MonsterInstance(
        template_id=template_id,
        instance_id=f"m-test-{position}",
        name="Goblin",
        level=level,
        hp=hp,
        max_hp=max_hp if max_hp is not None else max(hp, 1),
        attack=attack,
        defense=defense,
        experience=experience,
        position=position,
        is_new=is_new,
    )


def make_state(*monsters: MonsterInstance, **fields) -> CombatState:
    """A combat state holding the given monsters at their positions."""
    roster = empty_roster()
    for monster in monsters:
        roster[monster.position] = monster
    state = CombatState(character_id=fields.pop("character_id", 1), **fields)
    state.set_roster(roster)
    return state


@pytest.fixture
def settings():
    """Default settings, except that regenerated monsters can be hit at once."""
    return CombatSettings(mark_regenerated_as_new=False)


@pytest.fixture
def rng():
    return ScriptedRandom()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def difficulty():
    return DifficultyMultipliers()


@pytest.fixture
def profile():
    return CharacterProfile(id=1, name="Bell", level=5, current_map_id=1)


@pytest.fixture
def stats():
    return CombatStats(
        attack=50, defense=10, crit_rate=0.0, crit_damage=1.5, max_hp=200, max_mana=100
    )


@pytest.fixture
def goblin():
    return MonsterTemplate(
        id=1,
        name="Goblin",
        type=MonsterType.NORMAL,
        level=5,
        hp_base=40,
        attack_base=10,
        defense_base=10,
        experience_base=5,
        drop_table=DropTable(potion_chance=0.0, item_chance=0.0),
    )


@pytest.fixture
def orc():
    return MonsterTemplate(
        id=2,
        name="Orc",
        type=MonsterType.ELITE,
        level=8,
        hp_base=120,
        attack_base=20,
        defense_base=6,
        experience_base=20,
        drop_table=DropTable(potion_chance=0.0, item_chance=0.0),
    )


@pytest.fixture
def strike():
    return SkillDefinition(id=1, name="Strike", mana_cost=10, cooldown=2, damage=30)


@pytest.fixture
def whirlwind():
    return SkillDefinition(
        id=2,
        name="Whirlwind",
        mana_cost=20,
        cooldown=3,
        damage=20,
        target_scope=TargetScope.ALL,
    )


@pytest.fixture
def content(goblin, orc, strike, whirlwind):
    repo = ContentRepository()
    repo.register_monster(goblin)
    repo.register_monster(orc)
    repo.maps[1] = MapDefinition(id=1, name="Floor 1", monster_ids=[1])
    repo.maps[2] = MapDefinition(id=2, name="Empty Floor", monster_ids=[99])
    repo.skills[strike.id] = strike
    repo.skills[whirlwind.id] = whirlwind
    return repo


@pytest.fixture
def directory(content, settings, profile, stats):
    characters = InMemoryCharacterDirectory(content, settings)
    characters.add(CharacterRecord(profile=profile, stats=stats))
    return characters


@pytest.fixture
def store():
    return InMemoryCombatStateStore()


@pytest.fixture
def combat_log():
    return InMemoryCombatLog()


@pytest.fixture
def manager(directory, content, store, combat_log, rng, settings, clock):
    return CombatManager(
        stats=directory,
        skills=directory,
        monsters=content,
        store=store,
        potions=ThresholdPotionPolicy(directory, settings),
        combat_log=combat_log,
        rewards=directory,
        loot_factory=directory,
        rng=rng,
        settings=settings,
        clock=clock,
        errors=ErrorHandler(),
    )


@pytest.fixture
def monster_factory():
    return make_monster


@pytest.fixture
def state_factory():
    return make_state


@pytest.fixture
def scripted():
    """Builds scripted random sources: ``scripted(ints=[...], floats=[...])``."""
    return ScriptedRandom


def make_result(state: CombatState, died: Sequence[int] = (), **fields) -> RoundResult:
    """A resolved round over the state's roster, as handed to replenishment."""
    details = RoundDetails(
        character=CharacterDetails(
            level=1, character_class="", attack=0, defense=0, crit_rate=0, crit_damage=1.5
        ),
        damage=DamageDetails(),
        battle=BattleDetails(
            round=1, alive_count=0, killed_count=0, is_crit=False, is_aoe=False
        ),
        difficulty=DifficultyDetails(tier=0, multiplier=1.0),
    )
    return RoundResult(
        round_number=fields.pop("round_number", 1),
        char_hp=fields.pop("char_hp", 100),
        char_mana=fields.pop("char_mana", 100),
        roster=copy_roster(state.roster),
        slots_died_this_round=list(died),
        details=details,
        **fields,
    )


@pytest.fixture
def result_factory():
    return make_result
