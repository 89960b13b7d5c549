"""
Skill selection heuristics.

Picks the skill to cast when more than one is available this round. The
rules are evaluated in priority order and the first one that yields a skill
wins:

    1. Several wounded monsters: prefer area skills.
    2. The fight is nearly over: prefer the cheapest skill.
    3. Otherwise: the most mana-efficient damaging skill, if it beats a plain
       attack by enough or can one-shot the remaining HP.
    4. Fallback: the cheapest skill.
"""

from enum import Enum
from functools import cmp_to_key
from typing import Optional

from catchery import log_debug
from pydantic import BaseModel, Field

from idlecombat.core.config import CombatSettings
from idlecombat.models.catalog import SkillDefinition
from idlecombat.models.monster import MonsterInstance


class SelectionRule(Enum):
    """The heuristic that picked a skill."""

    SINGLE = "single"
    AREA = "area"
    FINISHING = "finishing"
    EFFICIENCY = "efficiency"
    CHEAPEST = "cheapest"


class SkillSelection(BaseModel):
    """
    Represents a selected skill along with the rule that picked it and its
    efficiency.
    """

    skill: SkillDefinition = Field(
        description="The skill to cast.",
    )
    rule: SelectionRule = Field(
        description="The heuristic that picked the skill.",
    )
    efficiency: float = Field(
        description="Damage per point of mana of the skill.",
    )


def _selection(skill: SkillDefinition, rule: SelectionRule) -> SkillSelection:
    return SkillSelection(skill=skill, rule=rule, efficiency=skill.efficiency)


def _by_efficiency_then_damage(tolerance: float):
    """
    Comparator sorting by efficiency descending; efficiencies within the
    tolerance of each other are tied and sorted by damage descending.
    """

    def compare(a: SkillDefinition, b: SkillDefinition) -> int:
        if abs(a.efficiency - b.efficiency) > tolerance:
            return -1 if a.efficiency > b.efficiency else 1
        return b.damage - a.damage

    return cmp_to_key(compare)


# =============================================================================
# RULES
# =============================================================================


def _area_rule(
    skills: list[SkillDefinition],
    alive: list[MonsterInstance],
    settings: CombatSettings,
) -> Optional[SkillDefinition]:
    """Rule 1: prefer area skills when enough alive monsters are low on HP."""
    if len(alive) < settings.aoe_min_alive:
        return None
    low_hp = sum(1 for m in alive if m.hp_ratio <= settings.low_hp_ratio)
    if low_hp < settings.aoe_min_low_hp:
        return None
    area_skills = [s for s in skills if s.is_area]
    if not area_skills:
        return None
    area_skills.sort(key=_by_efficiency_then_damage(settings.efficiency_tie_tolerance))
    return area_skills[0]


def _finishing_rule(
    skills: list[SkillDefinition],
    total_hp: int,
    attack: int,
    settings: CombatSettings,
) -> Optional[SkillDefinition]:
    """Rule 2: when the fight is nearly over, spend as little mana as possible."""
    if total_hp > attack * settings.finishing_attack_factor:
        return None
    return sorted(skills, key=lambda s: (s.mana_cost, -s.efficiency))[0]


def _efficiency_rule(
    skills: list[SkillDefinition],
    total_hp: int,
    attack: int,
    settings: CombatSettings,
) -> Optional[SkillDefinition]:
    """Rule 3: the most efficient damaging skill, if it is worth casting."""
    damaging = [s for s in skills if s.damage > 0]
    if not damaging:
        return None
    best = sorted(damaging, key=lambda s: -s.efficiency)[0]
    plain_attack_efficiency = int(attack * settings.plain_attack_efficiency_ratio)
    if best.efficiency >= plain_attack_efficiency * settings.efficiency_adoption_ratio:
        return best
    if best.damage > total_hp * settings.one_shot_hp_ratio:
        return best
    return None


def _cheapest_rule(skills: list[SkillDefinition]) -> SkillDefinition:
    """Rule 4: the cheapest skill, zero-cost skills first."""
    return sorted(skills, key=lambda s: s.mana_cost)[0]


# =============================================================================
# SELECTION
# =============================================================================


def select_optimal_skill(
    skills: list[SkillDefinition],
    alive: list[MonsterInstance],
    attack: int,
    settings: CombatSettings,
) -> Optional[SkillSelection]:
    """
    Chooses the skill to cast among the available ones.

    Args:
        skills (list[SkillDefinition]):
            The skills that are affordable and off cooldown.
        alive (list[MonsterInstance]):
            The alive monsters at the start of the round.
        attack (int):
            The character attack.
        settings (CombatSettings):
            The thresholds of the heuristics.

    Returns:
        Optional[SkillSelection]:
            The selected skill, or None if no skill is available.

    """
    if not skills:
        return None
    if len(skills) == 1:
        return _selection(skills[0], SelectionRule.SINGLE)

    total_hp = sum(m.hp for m in alive)

    skill = _area_rule(skills, alive, settings)
    if skill is not None:
        log_debug(f"Area skill {skill.name} selected against {len(alive)} monsters.")
        return _selection(skill, SelectionRule.AREA)

    skill = _finishing_rule(skills, total_hp, attack, settings)
    if skill is not None:
        log_debug(f"Finishing skill {skill.name} selected, {total_hp} HP left.")
        return _selection(skill, SelectionRule.FINISHING)

    skill = _efficiency_rule(skills, total_hp, attack, settings)
    if skill is not None:
        log_debug(f"Efficient skill {skill.name} selected ({skill.efficiency:.2f}).")
        return _selection(skill, SelectionRule.EFFICIENCY)

    return _selection(_cheapest_rule(skills), SelectionRule.CHEAPEST)
