"""
Combat manager.

The entry point of the combat core and owner of the per-character state
machine::

    Idle --round request--> Fighting --defeat--> Defeated (state cleared)
                               ^  |
                               +--+ round resolved

A round request runs under the character's lock: load the state, prepare
the roster, resolve the round, drink potions, then either record a defeat or
replenish the roster, persist, hand out rewards and write the round log.
Precondition failures are raised before anything is persisted.
"""

from datetime import datetime
from typing import Any, Optional

from catchery import log_warning
from pydantic import BaseModel, Field

from idlecombat.combat.arena import ArenaManager, RosterSnapshot
from idlecombat.combat.resolver import RoundResolver
from idlecombat.combat.rewards import RewardCoordinator
from idlecombat.core.config import CombatSettings, get_settings
from idlecombat.core.constants import CombatPhase
from idlecombat.core.error_handling import (
    ERROR_HANDLER,
    CharacterNotFoundError,
    ConcurrentRoundError,
    ErrorHandler,
    ErrorSeverity,
    MapNotFoundError,
    MapNotSelectedError,
    MonsterMissingError,
    StaleStateError,
)
from idlecombat.core.logging import get_logger
from idlecombat.core.rng import RandomSource, SeededRandom
from idlecombat.core.utils import Clock, utc_now
from idlecombat.interfaces import (
    CombatLogSink,
    CombatStateStore,
    LootFactory,
    MonsterCatalog,
    PotionPolicy,
    RewardSink,
    SkillCatalog,
    StatProvider,
)
from idlecombat.models.catalog import (
    CharacterProfile,
    CombatStats,
    DifficultyMultipliers,
    MapDefinition,
)
from idlecombat.models.combat_log import CombatLogEntry
from idlecombat.models.monster import MonsterInstance
from idlecombat.models.results import (
    CombatOutcome,
    MonsterSummary,
    OutcomeKind,
    PotionReport,
    RoundResult,
)
from idlecombat.models.state import CombatState
from idlecombat.storage.locks import CharacterLockRegistry

logger = get_logger(__name__)

# Reason attached to an auto-stopped outcome.
INSUFFICIENT_HP = "insufficient_hp"


class CombatStatus(BaseModel):
    """Snapshot of a character's combat, for status screens."""

    character_id: int
    phase: CombatPhase
    is_fighting: bool
    map_id: int | None = None
    combat_stats: CombatStats
    current_hp: int
    current_mana: int
    last_combat_at: datetime | None = None
    skill_cooldowns: dict[int, int] = Field(default_factory=dict)
    rounds: int = 0
    monsters: list[Optional[MonsterInstance]] = Field(default_factory=list)
    current_monster: Optional[MonsterSummary] = None


class CombatManager:
    """Drives rounds of combat for any number of characters."""

    def __init__(
        self,
        stats: StatProvider,
        skills: SkillCatalog,
        monsters: MonsterCatalog,
        store: CombatStateStore,
        potions: PotionPolicy,
        combat_log: CombatLogSink,
        rewards: RewardSink,
        loot_factory: LootFactory,
        rng: Optional[RandomSource] = None,
        settings: Optional[CombatSettings] = None,
        clock: Clock = utc_now,
        locks: Optional[CharacterLockRegistry] = None,
        errors: ErrorHandler = ERROR_HANDLER,
    ) -> None:
        self.stats = stats
        self.skills = skills
        self.monsters = monsters
        self.store = store
        self.potions = potions
        self.combat_log = combat_log
        self.settings = settings or get_settings()
        self.rng = rng or SeededRandom()
        self.clock = clock
        self.locks = locks or CharacterLockRegistry()
        self.errors = errors
        self.arena = ArenaManager(monsters, self.rng, self.settings, clock=clock)
        self.resolver = RoundResolver(monsters, self.rng, self.settings)
        self.rewards = RewardCoordinator(
            monsters, rewards, loot_factory, self.rng, self.settings
        )

    # ============================================================================
    # PRECONDITIONS
    # ============================================================================

    def _require_profile(self, character_id: int) -> CharacterProfile:
        profile = self.stats.get_profile(character_id)
        if profile is None:
            raise self.errors.report(
                CharacterNotFoundError(
                    "Character not found", {"character_id": character_id}
                )
            )
        return profile

    def _require_map(self, profile: CharacterProfile) -> MapDefinition:
        if profile.current_map_id is None:
            raise self.errors.report(
                MapNotSelectedError(
                    "Select a map before fighting", {"character_id": profile.id}
                ),
                ErrorSeverity.LOW,
            )
        game_map = self.monsters.get_map(profile.current_map_id)
        if game_map is None:
            raise self.errors.report(
                MapNotFoundError(
                    "Selected map does not exist",
                    {"character_id": profile.id, "map_id": profile.current_map_id},
                )
            )
        return game_map

    @staticmethod
    def _initialize_hp_mana(state: CombatState, stats: CombatStats) -> None:
        """Fills unset HP and mana to their maximum and clamps the rest."""
        state.hp = stats.max_hp if state.hp is None else min(state.hp, stats.max_hp)
        state.mana = stats.max_mana if state.mana is None else min(state.mana, stats.max_mana)

    # ============================================================================
    # ROUND
    # ============================================================================

    def execute_round(
        self,
        character_id: int,
        skill_ids: Optional[list[int]] = None,
        blocking: bool = True,
    ) -> CombatOutcome:
        """
        Resolves one round of combat for a character.

        Args:
            character_id (int): The fighting character.
            skill_ids (Optional[list[int]]): Auto-cast shortlist; empty or None
                lets every learned active skill be considered.
            blocking (bool): Wait for a round already in flight for the same
                character instead of failing.

        Raises:
            ConcurrentRoundError: A round is in flight and ``blocking`` is False.
            PreconditionError: No character, no map selected, map not found,
                or no monster to fight. Nothing was persisted.

        Returns:
            CombatOutcome: A round, a defeat, or an auto-stop when the
            character had no HP left.

        """
        with self.locks.hold(character_id, blocking=blocking) as acquired:
            if not acquired:
                raise self.errors.report(
                    ConcurrentRoundError(
                        "A round is already in progress", {"character_id": character_id}
                    ),
                    ErrorSeverity.LOW,
                )
            return self._execute_round_locked(character_id, skill_ids or [])

    def _execute_round_locked(
        self, character_id: int, skill_ids: list[int]
    ) -> CombatOutcome:
        profile = self._require_profile(character_id)
        game_map = self._require_map(profile)
        state = self.store.load(character_id)
        stats = self.stats.get_combat_stats(profile)
        difficulty = self.stats.get_difficulty_multipliers(profile)
        self._initialize_hp_mana(state, stats)

        if state.hp is not None and state.hp <= 0:
            return self._auto_stop(state)

        if not state.is_fighting:
            state.is_fighting = True
            state.last_combat_at = self.clock()
            logger.info(f"Character {character_id} starts fighting on {game_map.name}")

        snapshot = self._prepare_roster(state, game_map, difficulty)
        current_round = state.rounds + 1
        result = self.resolver.resolve_round(
            state,
            profile,
            stats,
            difficulty,
            self.skills.get_active_skills(profile),
            current_round,
            skill_ids,
        )

        potion_used = self._drink_potions(profile, stats, result)
        self._apply_round(state, result)

        if result.defeat:
            return self._handle_defeat(
                state, profile, game_map, snapshot, result, potion_used
            )

        result = self.arena.replenish(state, game_map, difficulty, result, current_round)
        self.store.save(state)
        result.loot = self.rewards.distribute(profile, result)

        view = self.arena.format_monsters_for_response(state)
        log_id = self.combat_log.write(
            self._round_log(state, profile, game_map, snapshot, result, potion_used)
        )
        logger.info(
            f"Character {character_id} round {current_round}: "
            f"dealt {result.damage_dealt}, took {result.damage_taken}, "
            f"killed {len(result.killed)}, hp {state.hp}"
            f"{' - all monsters down' if result.victory else ''}"
        )
        return CombatOutcome(
            kind=OutcomeKind.ROUND,
            victory=result.victory,
            monsters=view.monsters,
            monster=self._monster_summary(view.first_alive, snapshot, result),
            monster_hp_before_round=snapshot.total_hp,
            damage_dealt=result.damage_dealt,
            damage_taken=result.damage_taken,
            rounds=current_round,
            experience_gained=result.experience_gained,
            copper_gained=result.copper_gained,
            loot=result.loot,
            skills_used=result.skills_used,
            skill_usage=list(state.skill_usage.values()),
            skill_target_positions=result.skill_target_positions,
            skill_cooldowns=dict(state.skill_cooldowns),
            potion_used=potion_used,
            current_hp=state.hp or 0,
            current_mana=state.mana or 0,
            combat_log_id=log_id,
            round=result,
        )

    def _prepare_roster(
        self,
        state: CombatState,
        game_map: MapDefinition,
        difficulty: DifficultyMultipliers,
    ) -> RosterSnapshot:
        """Returns the roster to fight, clearing the state if it is inconsistent."""
        try:
            snapshot = self.arena.prepare_roster(state, game_map, difficulty)
        except StaleStateError as exc:
            self.errors.report(exc)
            state.clear()
            self.store.save(state)
            raise self.errors.report(
                MonsterMissingError(
                    "Combat monster no longer exists, combat state was cleared",
                    exc.context,
                )
            ) from exc
        if snapshot is None:
            raise self.errors.report(
                MonsterMissingError(
                    "Map has no monster to fight",
                    {"character_id": state.character_id, "map_id": game_map.id},
                )
            )
        return snapshot

    def _drink_potions(
        self, profile: CharacterProfile, stats: CombatStats, result: RoundResult
    ) -> PotionReport:
        """Lets the potion policy top up HP and mana; never lowers them."""
        report = self.potions.try_auto_use(
            profile, max(0, result.char_hp), max(0, result.char_mana), stats
        )
        if report.hp is not None and report.hp.restored > 0:
            result.char_hp = min(stats.max_hp, max(0, result.char_hp) + report.hp.restored)
        if report.mp is not None and report.mp.restored > 0:
            result.char_mana = min(
                stats.max_mana, max(0, result.char_mana) + report.mp.restored
            )
        return report

    @staticmethod
    def _apply_round(state: CombatState, result: RoundResult) -> None:
        """Writes a resolved round into the working state."""
        state.hp = max(0, result.char_hp)
        state.mana = max(0, result.char_mana)
        state.total_damage_dealt += result.damage_dealt
        state.total_damage_taken += result.damage_taken
        state.rounds = result.round_number
        state.skill_usage = dict(result.skill_usage)
        state.skill_cooldowns = dict(result.cooldowns)
        state.set_roster(
            [m.model_copy(deep=True) if m is not None else None for m in result.roster]
        )

    @staticmethod
    def _monster_summary(
        first_alive: MonsterSummary, snapshot: RosterSnapshot, result: RoundResult
    ) -> MonsterSummary:
        """Single-monster display fields, carrying the combined roster HP."""
        totals = {"hp": result.monster_hp, "max_hp": result.monster_max_hp}
        if first_alive.template_id is not None:
            return first_alive.model_copy(update=totals)
        return MonsterSummary(
            template_id=snapshot.template.id,
            name=snapshot.template.name,
            type=snapshot.template.type.value,
            level=snapshot.level,
            **totals,
        )

    def _duration(self, state: CombatState) -> int:
        if state.combat_started_at is None:
            return 0
        return max(0, int((self.clock() - state.combat_started_at).total_seconds()))

    # ============================================================================
    # OUTCOMES
    # ============================================================================

    def _auto_stop(self, state: CombatState) -> CombatOutcome:
        """Stops a fight the character has no HP left for."""
        state.clear()
        self.store.save(state)
        logger.info(f"Character {state.character_id} has no HP left, combat stopped")
        return CombatOutcome(
            kind=OutcomeKind.AUTO_STOPPED,
            auto_stopped=True,
            reason=INSUFFICIENT_HP,
            current_hp=0,
            current_mana=state.mana or 0,
        )

    def _handle_defeat(
        self,
        state: CombatState,
        profile: CharacterProfile,
        game_map: MapDefinition,
        snapshot: RosterSnapshot,
        result: RoundResult,
        potion_used: PotionReport,
    ) -> CombatOutcome:
        """
        Logs the defeat, clears the combat state and persists it.

        The defeat stands even when a potion drunk after the round restored
        some HP; that HP is kept for the next fight.
        """
        total_dealt = state.total_damage_dealt
        total_taken = state.total_damage_taken
        skill_usage = list(state.skill_usage.values())
        entry = CombatLogEntry(
            character_id=profile.id,
            map_id=game_map.id,
            monster_id=snapshot.template.id,
            defeat=True,
            round_number=result.round_number,
            damage_dealt=total_dealt,
            damage_taken=total_taken,
            duration_seconds=self._duration(state),
            skills_used=result.skills_used,
            skills_aggregated=skill_usage,
            potion_used=potion_used,
            details=result.details,
            created_at=self.clock(),
        )
        state.clear()
        self.store.save(state)
        log_id = self.combat_log.write(entry)
        logger.info(
            f"Character {profile.id} was defeated on round {result.round_number} "
            f"by {snapshot.template.name}"
        )
        return CombatOutcome(
            kind=OutcomeKind.DEFEAT,
            defeat=True,
            auto_stopped=True,
            monsters=[],
            monster=MonsterSummary(
                template_id=snapshot.template.id,
                name=snapshot.template.name,
                type=snapshot.template.type.value,
                level=snapshot.level,
                hp=result.monster_hp,
                max_hp=snapshot.total_max_hp,
            ),
            monster_hp_before_round=snapshot.total_hp,
            damage_dealt=total_dealt,
            damage_taken=total_taken,
            rounds=result.round_number,
            skills_used=result.skills_used,
            skill_usage=skill_usage,
            skill_target_positions=result.skill_target_positions,
            potion_used=potion_used,
            current_hp=state.hp or 0,
            current_mana=state.mana or 0,
            combat_log_id=log_id,
            round=result,
        )

    def _round_log(
        self,
        state: CombatState,
        profile: CharacterProfile,
        game_map: MapDefinition,
        snapshot: RosterSnapshot,
        result: RoundResult,
        potion_used: PotionReport,
    ) -> CombatLogEntry:
        first_alive = next(
            (m for m in state.roster if m is not None and m.is_alive()), None
        )
        loot: Optional[dict[str, Any]] = None
        if not result.loot.is_empty():
            loot = result.loot.model_dump(mode="json", exclude_none=True)
        return CombatLogEntry(
            character_id=profile.id,
            map_id=game_map.id,
            monster_id=first_alive.template_id if first_alive else snapshot.template.id,
            victory=result.victory,
            round_number=result.round_number,
            damage_dealt=result.damage_dealt,
            damage_taken=result.damage_taken,
            experience_gained=result.experience_gained,
            copper_gained=result.copper_gained,
            loot_dropped=loot,
            duration_seconds=self._duration(state),
            skills_used=result.skills_used,
            skills_aggregated=list(state.skill_usage.values()),
            potion_used=potion_used,
            details=result.details,
            created_at=self.clock(),
        )

    # ============================================================================
    # STATUS AND CONTROL
    # ============================================================================

    def get_status(self, character_id: int) -> CombatStatus:
        """
        Reports the combat state of a character without changing it.

        Raises:
            CharacterNotFoundError: If the character does not exist.

        """
        profile = self._require_profile(character_id)
        state = self.store.load(character_id)
        stats = self.stats.get_combat_stats(profile)
        self._initialize_hp_mana(state, stats)

        status = CombatStatus(
            character_id=character_id,
            phase=state.phase,
            is_fighting=state.is_fighting,
            map_id=profile.current_map_id,
            combat_stats=stats,
            current_hp=state.hp or 0,
            current_mana=state.mana or 0,
            last_combat_at=state.last_combat_at,
            skill_cooldowns=dict(state.skill_cooldowns),
            rounds=state.rounds,
        )
        if not state.is_fighting:
            return status

        status.monsters = self.arena.format_monsters_for_response(state).monsters
        occupied = [m for m in state.roster if m is not None]
        current = next((m for m in occupied if m.is_alive()), occupied[-1] if occupied else None)
        if current is not None:
            status.current_monster = MonsterSummary(
                template_id=current.template_id,
                name=current.name,
                type=current.type.value,
                level=current.level,
                hp=current.hp,
                max_hp=current.max_hp,
            )
        elif state.reference_monster_id is not None:
            template = self.monsters.get_by_id(state.reference_monster_id)
            if template is not None:
                status.current_monster = MonsterSummary(
                    template_id=template.id,
                    name=template.name,
                    type=template.type.value,
                    level=template.level,
                    hp=state.monster_hp,
                    max_hp=state.monster_max_hp,
                )
        return status

    def stop(self, character_id: int) -> CombatStatus:
        """
        Stops fighting. The roster is kept, so resuming continues the same
        fight until its stale timer expires.
        """
        with self.locks.hold(character_id):
            state = self.store.load(character_id)
            if state.is_fighting:
                state.is_fighting = False
                self.store.save(state)
                logger.info(f"Character {character_id} stopped fighting")
        return self.get_status(character_id)

    def reset(self, character_id: int, restore_resources: bool = False) -> None:
        """
        Wipes the combat state of a character.

        HP and mana are kept unless ``restore_resources`` is set, in which
        case they are refilled to their maximum on the next round.
        """
        with self.locks.hold(character_id):
            state = self.store.load(character_id)
            state.clear()
            if restore_resources:
                state.hp = None
                state.mana = None
            self.store.save(state)
        log_warning("Combat state reset", {"character_id": character_id})

    def refresh_if_stale(self, character_id: int) -> list[MonsterInstance]:
        """
        Regenerates a fighting character's roster when its stale timer has
        expired, ahead of the next round.

        Returns:
            list[MonsterInstance]: The monsters that appeared, if any.

        """
        with self.locks.hold(character_id):
            profile = self._require_profile(character_id)
            if profile.current_map_id is None:
                return []
            game_map = self.monsters.get_map(profile.current_map_id)
            if game_map is None:
                return []
            state = self.store.load(character_id)
            appeared = self.arena.refresh_if_stale(
                state, game_map, self.stats.get_difficulty_multipliers(profile)
            )
            if appeared:
                self.store.save(state)
            return appeared
