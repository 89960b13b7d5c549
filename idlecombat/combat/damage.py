"""
Damage module for the combat core.

Holds the damage formulas in both directions: the character hitting monsters
(defense mitigation, critical hits, flat skill damage, area scaling) and the
monsters striking back. Every value that reaches a monster or the character
is truncated to an integer the same way, so rounding is decided here only.
"""

from typing import Iterable, Optional

from idlecombat.core.config import CombatSettings
from idlecombat.core.rng import RandomSource
from idlecombat.models.monster import MonsterInstance
from idlecombat.models.results import DamageDetails


def roll_critical(rng: RandomSource, crit_rate: float) -> bool:
    """
    Rolls the single critical check of a round.

    The draw is always consumed so that the random sequence of a round does
    not depend on the character's crit rate.

    Args:
        rng (RandomSource): The random source.
        crit_rate (float): The crit chance of the character, in [0, 1].

    Returns:
        bool: True if the round is a critical hit.

    """
    roll = rng.next_float()
    return crit_rate > 0 and roll <= crit_rate


def mitigated_damage(attack: int, defense: int, reduction: float) -> float:
    """Attack minus the share of defense it cannot get through. May be negative."""
    return attack - defense * reduction


def compute_hit_damage(
    attack: int,
    defense: int,
    settings: CombatSettings,
    skill_damage: Optional[int] = None,
    is_crit: bool = False,
    crit_multiplier: float = 1.0,
    area_scaled: bool = False,
) -> int:
    """
    Computes the damage the character deals to one monster.

    Args:
        attack (int): The character attack.
        defense (int): The monster defense.
        settings (CombatSettings): Holds the reduction coefficients.
        skill_damage (Optional[int]): Flat damage of the skill used, None for a
            plain attack. Skill damage is added after mitigation and is never
            multiplied by a critical hit.
        is_crit (bool): Whether the round is a critical hit.
        crit_multiplier (float): The crit damage multiplier of the character.
        area_scaled (bool): Whether an area skill hit two or more targets.

    Returns:
        int: The damage to apply, never negative.

    """
    base = mitigated_damage(attack, defense, settings.defense_reduction)
    if skill_damage is not None:
        damage = int(base + skill_damage)
    else:
        damage = int(base * (crit_multiplier if is_crit else 1))
    if area_scaled:
        damage = int(damage * settings.aoe_damage_multiplier)
    return max(0, damage)


def counter_damage(monster_attack: int, character_defense: int, reduction: float) -> int:
    """Damage one monster deals back to the character; zero when defense absorbs it."""
    damage = mitigated_damage(monster_attack, character_defense, reduction)
    return int(damage) if damage > 0 else 0


def total_counter_damage(
    monsters: Iterable[MonsterInstance],
    character_defense: int,
    settings: CombatSettings,
) -> int:
    """
    Sums the counter damage of the given monsters.

    Args:
        monsters (Iterable[MonsterInstance]): The monsters striking back.
        character_defense (int): The character defense.
        settings (CombatSettings): Holds the monster defense reduction.

    Returns:
        int: The total damage taken by the character.

    """
    return sum(
        counter_damage(m.attack, character_defense, settings.monster_defense_reduction)
        for m in monsters
        if m.is_alive()
    )


def build_damage_details(
    attack: int,
    first_target_defense: int,
    target_count: int,
    total_dealt: int,
    total_taken: int,
    settings: CombatSettings,
    skill_damage: Optional[int] = None,
    is_crit: bool = False,
    crit_multiplier: float = 1.0,
    is_area: bool = False,
) -> DamageDetails:
    """
    Builds the damage breakdown written to the combat log.

    The base attack is measured against the first target. With a skill it is
    the skill damage; otherwise it is the mitigated attack, floored at zero,
    and a critical hit reports its extra damage separately. The area loss is
    what area scaling took away across all targets.

    Returns:
        DamageDetails: The breakdown of the round.

    """
    if skill_damage is not None:
        base_attack = skill_damage
        crit_extra = 0
        per_target = max(
            0,
            int(
                mitigated_damage(attack, first_target_defense, settings.defense_reduction)
                + skill_damage
            ),
        )
    else:
        base_attack = max(
            0, int(mitigated_damage(attack, first_target_defense, settings.defense_reduction))
        )
        crit_extra = int(base_attack * (crit_multiplier - 1)) if is_crit else 0
        per_target = base_attack + crit_extra
    aoe_loss = 0
    if is_area and target_count > 1:
        aoe_loss = int(per_target * (1 - settings.aoe_damage_multiplier) * target_count)
    return DamageDetails(
        base_attack=base_attack,
        skill_damage=skill_damage or 0,
        crit_damage=crit_extra,
        aoe_damage=aoe_loss,
        total=total_dealt,
        defense_reduction=settings.defense_reduction,
        monster_counter=total_taken,
    )
