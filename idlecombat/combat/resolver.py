"""
Round resolver.

Resolves exactly one round of combat: chooses a skill, picks targets, applies
damage in both directions, detects kills and computes the round's rewards.

The resolver is a pure function of its inputs and the random source: it
works on a deep copy of the roster and never writes to the combat state.
The combat manager applies the returned :class:`RoundResult`.
"""

from typing import Optional

from pydantic import BaseModel, Field

from idlecombat.combat.damage import (
    build_damage_details,
    compute_hit_damage,
    roll_critical,
    total_counter_damage,
)
from idlecombat.combat.rewards import roll_copper, scale_reward
from idlecombat.combat.skill_selection import select_optimal_skill
from idlecombat.core.config import CombatSettings
from idlecombat.core.logging import get_logger
from idlecombat.core.rng import RandomSource
from idlecombat.interfaces import MonsterCatalog
from idlecombat.models.catalog import (
    CharacterProfile,
    CombatStats,
    DifficultyMultipliers,
    SkillDefinition,
)
from idlecombat.models.monster import (
    MonsterInstance,
    Roster,
    alive_monsters,
    copy_roster,
    first_alive_monster,
    has_alive_monster,
    roster_hp_totals,
)
from idlecombat.models.results import (
    BattleDetails,
    CharacterDetails,
    DifficultyDetails,
    MonsterDetails,
    RoundDetails,
    RoundResult,
    SkillUseRecord,
)
from idlecombat.models.state import CombatState, SkillUsage

logger = get_logger(__name__)


class SkillCast(BaseModel):
    """Outcome of the skill resolution step."""

    skill: Optional[SkillDefinition] = Field(
        None, description="The skill cast this round, None for a plain attack."
    )
    mana: int = Field(description="Character mana after paying for the skill.")
    cooldowns: dict[int, int] = Field(default_factory=dict)
    usage: dict[int, SkillUsage] = Field(default_factory=dict)
    records: list[SkillUseRecord] = Field(default_factory=list)


def available_skills(
    skills: list[SkillDefinition],
    requested_skill_ids: list[int],
    mana: int,
    cooldowns: dict[int, int],
    current_round: int,
) -> list[SkillDefinition]:
    """
    Filters the learned skills down to the ones castable this round.

    Args:
        skills (list[SkillDefinition]): The character's active skills.
        requested_skill_ids (list[int]): Shortlist sent by the client; empty
            means every learned skill is a candidate.
        mana (int): Current mana.
        cooldowns (dict[int, int]): Skill id to first round it is usable again.
        current_round (int): The round being resolved.

    Returns:
        list[SkillDefinition]: The affordable skills that are off cooldown.

    """
    candidates = skills
    if requested_skill_ids:
        requested = set(requested_skill_ids)
        candidates = [s for s in skills if s.id in requested]
    return [
        s
        for s in candidates
        if mana >= s.mana_cost and cooldowns.get(s.id, 0) <= current_round
    ]


class RoundResolver:
    """Resolves single rounds of combat."""

    def __init__(
        self,
        monsters: MonsterCatalog,
        rng: RandomSource,
        settings: CombatSettings,
    ) -> None:
        self.monsters = monsters
        self.rng = rng
        self.settings = settings

    # ============================================================================
    # STEP A: SKILLS
    # ============================================================================

    def resolve_skill(
        self,
        state: CombatState,
        stats: CombatStats,
        skills: list[SkillDefinition],
        alive: list[MonsterInstance],
        current_round: int,
        requested_skill_ids: list[int],
    ) -> SkillCast:
        """Chooses the skill of the round and pays for it."""
        mana = state.mana if state.mana is not None else stats.max_mana
        cooldowns = dict(state.skill_cooldowns)
        usage = {k: v.model_copy() for k, v in state.skill_usage.items()}

        castable = available_skills(
            skills, requested_skill_ids, mana, cooldowns, current_round
        )
        selection = select_optimal_skill(castable, alive, stats.attack, self.settings)
        if selection is None:
            return SkillCast(mana=mana, cooldowns=cooldowns, usage=usage)

        skill = selection.skill
        mana -= skill.mana_cost
        cooldowns[skill.id] = current_round + skill.cooldown
        aggregate = usage.get(skill.id)
        if aggregate is None:
            aggregate = SkillUsage(skill_id=skill.id, name=skill.name, icon=skill.icon)
            usage[skill.id] = aggregate
        aggregate.use_count += 1
        record = SkillUseRecord(
            skill_id=skill.id,
            name=skill.name,
            icon=skill.icon,
            effect_key=skill.effect_key,
            target_type=skill.target_scope,
        )
        return SkillCast(
            skill=skill, mana=mana, cooldowns=cooldowns, usage=usage, records=[record]
        )

    # ============================================================================
    # STEP B: TARGETS
    # ============================================================================

    def select_targets(
        self, roster: Roster, skill: Optional[SkillDefinition]
    ) -> list[MonsterInstance]:
        """
        Every targetable monster for an area skill, otherwise one at random.
        Monsters spawned this round are not targetable.
        """
        targetable = [m for m in alive_monsters(roster) if not m.is_new]
        if not targetable:
            return []
        if skill is not None and skill.is_area:
            return targetable
        return [self.rng.choice(targetable)]

    # ============================================================================
    # ROUND
    # ============================================================================

    def resolve_round(
        self,
        state: CombatState,
        profile: CharacterProfile,
        stats: CombatStats,
        difficulty: DifficultyMultipliers,
        skills: list[SkillDefinition],
        current_round: int,
        requested_skill_ids: Optional[list[int]] = None,
    ) -> RoundResult:
        """
        Resolves one round against the state's roster.

        Args:
            state (CombatState): The combat state; it is not modified.
            profile (CharacterProfile): The fighting character.
            stats (CombatStats): Derived stats of the character.
            difficulty (DifficultyMultipliers): Multipliers of the character's tier.
            skills (list[SkillDefinition]): Active skills of the character.
            current_round (int): The round being resolved.
            requested_skill_ids (Optional[list[int]]): Auto-cast shortlist.

        Returns:
            RoundResult: Everything the round changed.

        """
        roster = copy_roster(state.roster)
        hp_before = [m.hp if m is not None else 0 for m in roster]
        alive_at_start = alive_monsters(roster)
        sitting_out = {m.position for m in alive_at_start if m.is_new}

        # Step A: skill.
        cast = self.resolve_skill(
            state, stats, skills, alive_at_start, current_round, requested_skill_ids or []
        )
        skill = cast.skill

        # Step B: crit and targets.
        is_crit = roll_critical(self.rng, stats.crit_rate)
        targets = self.select_targets(roster, skill)
        is_area = skill is not None and skill.is_area
        area_scaled = is_area and len(targets) >= 2

        # Step C: damage to monsters.
        for monster in roster:
            if monster is not None:
                monster.reset_round_flags()
        damage_dealt = 0
        for target in targets:
            damage = compute_hit_damage(
                stats.attack,
                target.defense,
                self.settings,
                skill_damage=skill.damage if skill is not None else None,
                is_crit=is_crit,
                crit_multiplier=stats.crit_damage,
                area_scaled=area_scaled,
            )
            damage_dealt += target.take_damage(damage)
        for monster in roster:
            if monster is not None:
                monster.is_new = False

        # Step D: counter damage. Monsters that sat out the round do not strike.
        attackers = [
            m for m in roster if m is not None and m.position not in sitting_out
        ]
        damage_taken = total_counter_damage(attackers, stats.defense, self.settings)
        char_hp = (state.hp if state.hp is not None else stats.max_hp) - damage_taken

        # Step E: kills and rewards.
        killed: list[MonsterInstance] = []
        experience = 0
        copper = 0
        for index, monster in enumerate(roster):
            if monster is None or hp_before[index] <= 0 or monster.is_alive():
                continue
            killed.append(monster)
            experience += monster.experience
            copper += roll_copper(
                self.monsters.get_by_id(monster.template_id), self.rng, self.settings
            )

        monster_hp, monster_max_hp = roster_hp_totals(roster)
        alive_after = has_alive_monster(roster)
        result = RoundResult(
            round_number=current_round,
            damage_dealt=damage_dealt,
            damage_taken=damage_taken,
            char_hp=char_hp,
            char_mana=cast.mana,
            defeat=char_hp <= 0,
            has_alive_monster=alive_after,
            victory=not alive_after,
            skills_used=cast.records,
            skill_target_positions=[t.position for t in targets],
            cooldowns=cast.cooldowns,
            skill_usage=cast.usage,
            roster=roster,
            slots_died_this_round=[m.position for m in killed],
            killed=killed,
            experience_gained=scale_reward(experience, difficulty.reward),
            copper_gained=scale_reward(copper, difficulty.reward),
            monster_hp=monster_hp,
            monster_max_hp=monster_max_hp,
            details=self._build_details(
                profile,
                stats,
                difficulty,
                roster,
                killed,
                targets,
                skill,
                is_crit,
                damage_dealt,
                damage_taken,
                current_round,
                len(alive_at_start),
            ),
        )
        logger.debug(
            f"Round {current_round} resolved for character {profile.id}: "
            f"skill={skill.name if skill else None}, crit={is_crit}, "
            f"targets={result.skill_target_positions}, dealt={damage_dealt}, "
            f"taken={damage_taken}, killed={result.slots_died_this_round}"
        )
        return result

    def _build_details(
        self,
        profile: CharacterProfile,
        stats: CombatStats,
        difficulty: DifficultyMultipliers,
        roster: Roster,
        killed: list[MonsterInstance],
        targets: list[MonsterInstance],
        skill: Optional[SkillDefinition],
        is_crit: bool,
        damage_dealt: int,
        damage_taken: int,
        current_round: int,
        alive_count: int,
    ) -> RoundDetails:
        """Builds the log breakdown around the first alive monster, or the last known one."""
        reference = first_alive_monster(roster)
        if reference is None and killed:
            reference = killed[-1]
        if reference is None:
            occupied = [m for m in roster if m is not None]
            reference = occupied[-1] if occupied else None

        return RoundDetails(
            character=CharacterDetails(
                level=profile.level,
                character_class=profile.character_class,
                attack=stats.attack,
                defense=stats.defense,
                crit_rate=stats.crit_rate,
                crit_damage=stats.crit_damage,
            ),
            monster=MonsterDetails.from_instance(reference) if reference else None,
            damage=build_damage_details(
                stats.attack,
                targets[0].defense if targets else 0,
                len(targets),
                damage_dealt,
                damage_taken,
                self.settings,
                skill_damage=skill.damage if skill is not None else None,
                is_crit=is_crit,
                crit_multiplier=stats.crit_damage,
                is_area=skill is not None and skill.is_area,
            ),
            battle=BattleDetails(
                round=current_round,
                alive_count=alive_count,
                killed_count=len(killed),
                is_crit=is_crit,
                is_aoe=skill is not None and skill.is_area,
            ),
            difficulty=DifficultyDetails(
                tier=profile.difficulty_tier,
                multiplier=difficulty.reward,
            ),
        )
