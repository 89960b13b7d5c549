"""
Rewards module.

Copper and loot rolls for killed monsters, and the coordinator that hands a
round's experience, copper, items and potions to the external collaborators.
Reward numbers are computed here; instantiating items and potions is left
to the :class:`~idlecombat.interfaces.LootFactory`.
"""

from typing import Optional

from catchery import log_debug, log_warning

from idlecombat.core.config import CombatSettings
from idlecombat.core.constants import ItemQuality, PotionGrade, PotionKind
from idlecombat.core.error_handling import ensure_non_negative_int
from idlecombat.core.rng import RandomSource, roll_chance, weighted_key
from idlecombat.interfaces import LootFactory, MonsterCatalog, RewardSink
from idlecombat.models.catalog import CharacterProfile, MonsterTemplate
from idlecombat.models.results import ItemDrop, LootSummary, PotionDrop, RoundResult


def scale_reward(amount: int, multiplier: float) -> int:
    """Applies a difficulty reward multiplier, truncating to an integer; never negative."""
    return ensure_non_negative_int(
        int(amount * multiplier), "reward", context={"amount": amount, "multiplier": multiplier}
    )


def roll_copper(
    template: Optional[MonsterTemplate],
    rng: RandomSource,
    settings: CombatSettings,
) -> int:
    """
    Rolls the copper dropped by one killed monster, before difficulty scaling.

    A template whose drop table sets a positive copper chance uses its own
    chance, base and range (missing values come from the global config);
    any other template uses the global config. A monster whose template can
    no longer be found drops a small fallback amount.

    Args:
        template (Optional[MonsterTemplate]): The template of the monster.
        rng (RandomSource): The random source.
        settings (CombatSettings): The global copper settings.

    Returns:
        int: The copper dropped.

    """
    if template is None:
        return rng.next(settings.copper_fallback_min, settings.copper_fallback_max)

    drops = template.drop_table
    if drops.copper_chance is not None and drops.copper_chance > 0:
        chance = drops.copper_chance
        base = drops.copper_base if drops.copper_base is not None else settings.copper_drop_base
        spread = (
            drops.copper_range if drops.copper_range is not None else settings.copper_drop_range
        )
    else:
        chance = settings.copper_drop_chance
        base = settings.copper_drop_base
        spread = settings.copper_drop_range

    if not roll_chance(rng, chance):
        return 0
    return rng.next(base, base + spread)


def roll_item_quality(rng: RandomSource, chances: dict[str, float]) -> ItemQuality:
    """
    Rolls the quality of a dropped item.

    The roll is a percentage with two decimals. Qualities are walked in the
    configured order, each one claiming the top slice of the 0-100 range
    above ``100 - cumulative``.

    Args:
        rng (RandomSource): The random source.
        chances (dict[str, float]): Percent chance of each quality.

    Returns:
        ItemQuality: The rolled quality, common when nothing matches.

    """
    roll = rng.next(1, 10000) / 100
    cumulative = 0.0
    for quality, chance in chances.items():
        cumulative += chance
        if roll >= 100 - cumulative:
            return ItemQuality(quality)
    return ItemQuality.COMMON


def generate_loot(
    template: MonsterTemplate,
    character_level: int,
    rng: RandomSource,
    settings: CombatSettings,
) -> tuple[Optional[PotionDrop], Optional[ItemDrop]]:
    """
    Rolls the potion and item dropped by one killed monster.

    Args:
        template (MonsterTemplate): The template of the killed monster.
        character_level (int): Level of the character, caps the item level.
        rng (RandomSource): The random source.
        settings (CombatSettings): Default chances and quality table.

    Returns:
        tuple[Optional[PotionDrop], Optional[ItemDrop]]: The dropped potion
        and item, each None when nothing dropped.

    """
    drops = template.drop_table

    potion: Optional[PotionDrop] = None
    potion_chance = (
        drops.potion_chance
        if drops.potion_chance is not None
        else settings.default_potion_chance
    )
    if roll_chance(rng, potion_chance):
        potion = PotionDrop(
            kind=PotionKind(weighted_key(rng, settings.potion_kind_weights)),
            grade=PotionGrade.for_level(template.level),
        )

    item: Optional[ItemDrop] = None
    item_chance = (
        drops.item_chance if drops.item_chance is not None else settings.default_item_chance
    )
    if drops.item_types and roll_chance(rng, item_chance):
        item = ItemDrop(
            item_type=rng.choice(drops.item_types),
            quality=roll_item_quality(rng, settings.item_quality_chances),
            level=min(character_level, template.level + 3),
        )

    return potion, item


class RewardCoordinator:
    """Hands the rewards of a resolved round to the external collaborators."""

    def __init__(
        self,
        monsters: MonsterCatalog,
        rewards: RewardSink,
        loot_factory: LootFactory,
        rng: RandomSource,
        settings: CombatSettings,
    ) -> None:
        self.monsters = monsters
        self.rewards = rewards
        self.loot_factory = loot_factory
        self.rng = rng
        self.settings = settings

    def distribute(self, profile: CharacterProfile, result: RoundResult) -> LootSummary:
        """
        Grants experience and copper, then rolls loot for this round's kills.

        At most one item and one potion are created per round, whatever the
        number of kills: the first drop of each kind wins.

        Args:
            profile (CharacterProfile): The rewarded character.
            result (RoundResult): The resolved round.

        Returns:
            LootSummary: The copper and the created item and potion.

        """
        if result.experience_gained > 0 or result.copper_gained > 0:
            self.rewards.grant(profile, result.experience_gained, result.copper_gained)

        potion_drop: Optional[PotionDrop] = None
        item_drop: Optional[ItemDrop] = None
        for monster in result.killed:
            template = self.monsters.get_by_id(monster.template_id)
            if template is None:
                log_warning(
                    "Killed monster has no template, skipping its loot",
                    {"template_id": monster.template_id, "position": monster.position},
                )
                continue
            self.rewards.discover_monster(profile, template.id)
            potion, item = generate_loot(template, profile.level, self.rng, self.settings)
            if potion_drop is None:
                potion_drop = potion
            if item_drop is None:
                item_drop = item

        summary = LootSummary(copper=result.copper_gained)
        if potion_drop is not None:
            summary.potion = self.loot_factory.create_potion(profile, potion_drop)
        if item_drop is not None:
            summary.item = self.loot_factory.create_item(profile, item_drop)
        if not summary.is_empty():
            log_debug(
                f"Loot for character {profile.id}: copper={summary.copper}, "
                f"item={item_drop}, potion={potion_drop}"
            )
        return summary
