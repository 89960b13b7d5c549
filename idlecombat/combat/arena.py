"""
Arena manager.

Owns the five-slot roster of a character: decides when the whole roster is
regenerated from the catalog, instantiates monsters into slots, and runs the
per-round replenishment that refills empty and dead slots.

Slot index identity matters: each index is a seat the client draws, so
monsters are always written to, and kept at, an explicit slot.
"""

import uuid
from datetime import datetime
from typing import Callable, Optional

from catchery import log_debug
from pydantic import BaseModel, Field

from idlecombat.core.config import CombatSettings
from idlecombat.core.error_handling import StaleStateError
from idlecombat.core.rng import RandomSource, roll_percent
from idlecombat.core.utils import Clock, utc_now
from idlecombat.interfaces import MonsterCatalog
from idlecombat.models.catalog import DifficultyMultipliers, MapDefinition, MonsterTemplate
from idlecombat.models.monster import (
    MonsterInstance,
    Roster,
    copy_roster,
    empty_roster,
    fillable_slots,
    first_alive_monster,
    roster_hp_totals,
)
from idlecombat.models.results import MonsterSummary, RoundResult
from idlecombat.models.state import CombatState


def new_instance_id() -> str:
    """Returns an opaque, unique monster instance id."""
    return f"m-{uuid.uuid4().hex}"


class RosterSnapshot(BaseModel):
    """The roster a round is about to be fought against."""

    reference: MonsterInstance = Field(
        description="First alive monster, used by single-monster displays.",
    )
    template: MonsterTemplate = Field(
        description="Template of the reference monster.",
    )
    total_hp: int = Field(description="Combined HP of the roster.")
    total_max_hp: int = Field(description="Combined max HP of the roster.")
    regenerated: bool = Field(
        False, description="The roster was regenerated for this round."
    )

    @property
    def level(self) -> int:
        return self.reference.level


class ArenaView(BaseModel):
    """The roster shaped for the presentation layer."""

    monsters: list[Optional[MonsterInstance]] = Field(
        description="Exactly five slots, empty seats are None.",
    )
    first_alive: MonsterSummary = Field(
        description="First alive monster, or a placeholder when none is alive.",
    )


class ArenaManager:
    """Manages the monster roster of each character."""

    def __init__(
        self,
        monsters: MonsterCatalog,
        rng: RandomSource,
        settings: CombatSettings,
        clock: Clock = utc_now,
        id_factory: Callable[[], str] = new_instance_id,
    ) -> None:
        self.monsters = monsters
        self.rng = rng
        self.settings = settings
        self.clock = clock
        self.id_factory = id_factory

    # ============================================================================
    # STALE TIMER
    # ============================================================================

    def should_regenerate_roster(
        self, state: CombatState, now: Optional[datetime] = None
    ) -> bool:
        """
        True if the roster was never generated, or was generated at least
        ``monster_refresh_interval`` seconds ago.
        """
        if state.roster_refreshed_at is None:
            return True
        now = now or self.clock()
        elapsed = (now - state.roster_refreshed_at).total_seconds()
        return elapsed >= self.settings.monster_refresh_interval

    # ============================================================================
    # SPAWNING
    # ============================================================================

    def _roll_base_level(self, template: MonsterTemplate) -> int:
        spread = self.settings.base_level_spread
        return max(1, template.level + self.rng.next(-spread, spread))

    def _roll_instance_level(self, base_level: int) -> int:
        spread = self.settings.instance_level_spread
        return max(1, base_level + self.rng.next(-spread, spread))

    def spawn_instance(
        self,
        template: MonsterTemplate,
        level: int,
        slot: int,
        difficulty: DifficultyMultipliers,
        hp: Optional[int] = None,
        instance_id: Optional[str] = None,
        is_new: bool = False,
    ) -> MonsterInstance:
        """
        Instantiates a template into a slot, scaled by the difficulty.

        Args:
            template (MonsterTemplate): The template to instantiate.
            level (int): The instance level.
            slot (int): The slot the instance occupies.
            difficulty (DifficultyMultipliers): The character's multipliers.
            hp (Optional[int]): HP carried over from a previous occupant,
                clamped to the new max HP. Full HP when None.
            instance_id (Optional[str]): Id carried over from a previous
                occupant. A fresh id when None.
            is_new (bool): Whether the instance sits out its first round.

        Returns:
            MonsterInstance: The new instance.

        """
        max_hp = int(template.hp_base * difficulty.monster_hp)
        return MonsterInstance(
            template_id=template.id,
            instance_id=instance_id or self.id_factory(),
            name=template.name,
            type=template.type,
            level=level,
            hp=max_hp if hp is None else min(hp, max_hp),
            max_hp=max_hp,
            attack=int(template.attack_base * difficulty.monster_damage),
            defense=int(template.defense_base * difficulty.monster_damage),
            experience=int(template.experience_base * difficulty.reward),
            position=slot,
            is_new=is_new,
        )

    def full_regeneration(
        self,
        state: CombatState,
        pool: list[MonsterTemplate],
        difficulty: DifficultyMultipliers,
        is_refresh: bool = False,
    ) -> MonsterTemplate:
        """
        Replaces the whole roster with a new wave and resets the fight counters.

        On a refresh, a new monster landing in a slot that held an instance,
        alive or dead, keeps that instance id and HP, clamped to the new max
        HP. A stat refresh never heals a monster mid-fight and a corpse stays
        a corpse.

        Args:
            state (CombatState): The working combat state, modified in place.
            pool (list[MonsterTemplate]): The map's monster pool, not empty.
            difficulty (DifficultyMultipliers): The character's multipliers.
            is_refresh (bool): Whether an existing roster is being refreshed.

        Returns:
            MonsterTemplate: The base template of the wave.

        """
        count = self.rng.next(self.settings.spawn_min, self.settings.spawn_max)
        template = self.rng.choice(pool)
        base_level = self._roll_base_level(template)

        previous = state.roster if is_refresh else empty_roster()
        roster = empty_roster()
        for slot in range(count):
            level = self._roll_instance_level(base_level)
            occupant = previous[slot]
            carried = occupant is not None
            roster[slot] = self.spawn_instance(
                template,
                level,
                slot,
                difficulty,
                hp=occupant.hp if carried else None,
                instance_id=occupant.instance_id if carried else None,
                is_new=self.settings.mark_regenerated_as_new and not carried,
            )

        now = self.clock()
        state.set_roster(roster)
        state.reset_fight_counters()
        state.roster_refreshed_at = now
        state.combat_started_at = now
        state.reference_monster_id = template.id
        log_debug(
            f"Roster of character {state.character_id} regenerated: "
            f"{count} x {template.name} around level {base_level}"
            f"{' (refresh)' if is_refresh else ''}"
        )
        return template

    # ============================================================================
    # PREPARATION
    # ============================================================================

    def prepare_roster(
        self,
        state: CombatState,
        game_map: MapDefinition,
        difficulty: DifficultyMultipliers,
    ) -> Optional[RosterSnapshot]:
        """
        Returns the roster to fight this round, regenerating it when needed.

        The current roster is kept when it has an alive monster and the stale
        timer has not expired. Otherwise a full regeneration runs, as a
        refresh when a roster already exists.

        Args:
            state (CombatState): The working combat state, modified in place.
            game_map (MapDefinition): The character's map.
            difficulty (DifficultyMultipliers): The character's multipliers.

        Raises:
            StaleStateError: The first alive monster references a template
                that no longer exists.

        Returns:
            Optional[RosterSnapshot]: The snapshot, or None when the map's
            pool is empty.

        """
        stale = self.should_regenerate_roster(state)
        if state.has_active_combat() and not stale:
            reference = first_alive_monster(state.roster)
            assert reference is not None
            template = self.monsters.get_by_id(reference.template_id)
            if template is None:
                raise StaleStateError(
                    "Combat roster references a deleted monster template",
                    {
                        "character_id": state.character_id,
                        "template_id": reference.template_id,
                    },
                )
            total_hp, total_max_hp = roster_hp_totals(state.roster)
            return RosterSnapshot(
                reference=reference,
                template=template,
                total_hp=total_hp,
                total_max_hp=total_max_hp,
            )

        pool = self.monsters.get_monster_pool(game_map)
        if not pool:
            return None
        template = self.full_regeneration(
            state, pool, difficulty, is_refresh=stale and state.has_roster()
        )
        reference = first_alive_monster(state.roster) or state.roster[0]
        assert reference is not None
        return RosterSnapshot(
            reference=reference,
            template=template,
            total_hp=state.monster_hp,
            total_max_hp=state.monster_max_hp,
            regenerated=True,
        )

    def refresh_if_stale(
        self,
        state: CombatState,
        game_map: MapDefinition,
        difficulty: DifficultyMultipliers,
    ) -> list[MonsterInstance]:
        """
        Regenerates a fighting character's stale roster ahead of a round.

        Returns:
            list[MonsterInstance]: The monsters that appeared, empty when the
            roster was fresh, the character idle, or the pool empty.

        """
        if not state.is_fighting or not self.should_regenerate_roster(state):
            return []
        pool = self.monsters.get_monster_pool(game_map)
        if not pool:
            return []
        self.full_regeneration(state, pool, difficulty, is_refresh=state.has_roster())
        return [m for m in state.roster if m is not None]

    # ============================================================================
    # REPLENISHMENT
    # ============================================================================

    def _sync_totals(self, result: RoundResult, roster: Roster) -> RoundResult:
        result.monster_hp, result.monster_max_hp = roster_hp_totals(roster)
        return result

    def replenish(
        self,
        state: CombatState,
        game_map: MapDefinition,
        difficulty: DifficultyMultipliers,
        result: RoundResult,
        current_round: int,
    ) -> RoundResult:
        """
        May refill empty and dead slots after a round.

        Slots whose monster died this round are never refilled in the same
        round. Otherwise a 1-100 roll at or below ``replenish_skip_chance``
        spawns nothing; any other roll spawns a weighted number of monsters of
        one new base template into randomly chosen fillable slots.

        Args:
            state (CombatState): The working combat state, modified in place.
            game_map (MapDefinition): The character's map.
            difficulty (DifficultyMultipliers): The character's multipliers.
            result (RoundResult): The resolved round, updated in place.
            current_round (int): The resolved round.

        Returns:
            RoundResult: The round result, with the roster and combined HP
            synced with the state.

        """
        roster = copy_roster(state.roster)
        died = set(result.slots_died_this_round)
        slots = [s for s in fillable_slots(roster) if s not in died]
        if not slots:
            return self._sync_totals(result, roster)

        if roll_percent(self.rng, self.settings.replenish_skip_chance):
            return self._sync_totals(result, roster)

        wanted = self.settings.replenish_count_for(self.rng.next(1, 100))
        count = min(len(slots), wanted)

        pool = self.monsters.get_monster_pool(game_map)
        if not pool:
            return self._sync_totals(result, roster)

        self.rng.shuffle(slots)
        chosen = slots[:count]
        template = self.rng.choice(pool)
        base_level = self._roll_base_level(template)
        for slot in chosen:
            roster[slot] = self.spawn_instance(
                template,
                self._roll_instance_level(base_level),
                slot,
                difficulty,
                is_new=self.settings.mark_replenished_as_new,
            )

        state.set_roster(roster)
        result.roster = copy_roster(roster)
        result.spawned_positions = sorted(chosen)
        log_debug(
            f"Round {current_round}: {count} x {template.name} joined character "
            f"{state.character_id} in slots {result.spawned_positions}"
        )
        return self._sync_totals(result, roster)

    # ============================================================================
    # PRESENTATION
    # ============================================================================

    @staticmethod
    def format_monsters_for_response(state: CombatState) -> ArenaView:
        """
        Shapes the roster as exactly five slots plus the first alive monster.

        Falls back to a generic level 1 placeholder when no monster is alive.
        """
        monsters = copy_roster(state.roster)
        first = first_alive_monster(monsters)
        if first is None:
            summary = MonsterSummary()
        else:
            summary = MonsterSummary(
                template_id=first.template_id,
                name=first.name,
                type=first.type.value,
                level=first.level,
                hp=first.hp,
                max_hp=first.max_hp,
            )
        return ArenaView(monsters=monsters, first_alive=summary)
