"""
Combat settings.

Every tunable of the combat core lives here so it can be overridden from the
environment (``IDLECOMBAT_`` prefix) or an ``.env`` file. The skill selection
thresholds are play-tested constants; they are exposed so they can be tuned,
not because they are expected to change.
"""

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from idlecombat.core.constants import ROSTER_SIZE
from idlecombat.models.catalog import DifficultyMultipliers


class CombatSettings(BaseSettings):
    """Settings for the combat core."""

    model_config = SettingsConfigDict(
        env_prefix="IDLECOMBAT_",
        env_file=".env",
        extra="ignore",
    )

    # Arena.
    monster_refresh_interval: int = Field(
        60,
        ge=0,
        description="Seconds after which a roster is regenerated from the catalog.",
    )
    roster_size: int = Field(
        ROSTER_SIZE,
        description="Number of arena slots. Fixed.",
    )
    spawn_min: int = Field(1, ge=1, description="Minimum monsters per full spawn.")
    spawn_max: int = Field(5, ge=1, description="Maximum monsters per full spawn.")
    base_level_spread: int = Field(
        3,
        ge=0,
        description="Max deviation of a wave's base level from the template level.",
    )
    instance_level_spread: int = Field(
        1,
        ge=0,
        description="Max deviation of an instance level from the wave's base level.",
    )
    replenish_skip_chance: int = Field(
        30,
        ge=0,
        le=100,
        description="A replenish roll (1-100) at or below this value spawns nothing.",
    )
    replenish_weights: list[tuple[int, int]] = Field(
        default_factory=lambda: [(40, 1), (65, 2), (85, 3), (95, 4), (100, 5)],
        description="Cumulative (upper bound of 1-100 roll, spawn count) pairs.",
    )
    # Replenishment spawns are attackable at once unless flagged here.
    mark_regenerated_as_new: bool = Field(
        True,
        description="Fresh monsters of a full regeneration sit out their first round.",
    )
    mark_replenished_as_new: bool = Field(
        False,
        description="Monsters added by replenishment sit out their first round.",
    )

    # Damage.
    defense_reduction: float = Field(
        0.5,
        ge=0,
        description="Fraction of monster defense subtracted from the character attack.",
    )
    monster_defense_reduction: float = Field(
        0.3,
        ge=0,
        description="Fraction of character defense subtracted from monster attack.",
    )
    aoe_damage_multiplier: float = Field(
        0.7,
        ge=0,
        description="Per-target damage factor of area skills hitting two or more targets.",
    )

    # Skill selection.
    aoe_min_alive: int = Field(3, description="Alive monsters needed to prefer area skills.")
    aoe_min_low_hp: int = Field(2, description="Low HP monsters needed to prefer area skills.")
    low_hp_ratio: float = Field(0.3, description="HP ratio at or below which a monster is low.")
    finishing_attack_factor: float = Field(
        2.0,
        description="Fight is nearly over when alive HP <= attack times this factor.",
    )
    plain_attack_efficiency_ratio: float = Field(
        0.5,
        description="Share of the character attack used as plain attack efficiency.",
    )
    efficiency_adoption_ratio: float = Field(
        0.5,
        description="Best skill is adopted when its efficiency reaches this share of plain attack.",
    )
    one_shot_hp_ratio: float = Field(
        0.5,
        description="Best skill is adopted when its damage exceeds this share of alive HP.",
    )
    efficiency_tie_tolerance: float = Field(
        0.1,
        description="Efficiencies closer than this are tied and broken by raw damage.",
    )

    # Rewards.
    copper_drop_chance: float = Field(0.5, ge=0, le=1, description="Global copper chance.")
    copper_drop_base: int = Field(1, ge=0, description="Global minimum copper per drop.")
    copper_drop_range: int = Field(10, ge=0, description="Global copper spread per drop.")
    copper_fallback_min: int = Field(1, ge=0, description="Copper when no template is found.")
    copper_fallback_max: int = Field(10, ge=0, description="Copper when no template is found.")
    default_potion_chance: float = Field(0.1, ge=0, le=1)
    default_item_chance: float = Field(0.05, ge=0, le=1)
    item_quality_chances: dict[str, float] = Field(
        default_factory=lambda: {
            "common": 60.0,
            "magic": 25.0,
            "rare": 10.0,
            "legendary": 4.0,
            "mythic": 1.0,
        },
        description="Percent chance of each item quality.",
    )
    potion_kind_weights: dict[str, float] = Field(
        default_factory=lambda: {"hp": 0.6, "mp": 0.4},
    )

    # Difficulty tiers: tier -> multipliers.
    difficulty_multipliers: dict[int, DifficultyMultipliers] = Field(
        default_factory=lambda: {
            0: DifficultyMultipliers(),
            1: DifficultyMultipliers(monster_hp=1.5, monster_damage=1.3, reward=1.5),
            2: DifficultyMultipliers(monster_hp=2.2, monster_damage=1.7, reward=2.2),
            3: DifficultyMultipliers(monster_hp=3.2, monster_damage=2.2, reward=3.0),
            4: DifficultyMultipliers(monster_hp=4.5, monster_damage=3.0, reward=4.0),
        },
    )

    # Potions.
    hp_potion_threshold: int = Field(30, description="Default HP percent for auto potions.")
    mp_potion_threshold: int = Field(30, description="Default mana percent for auto potions.")

    def model_post_init(self, _: Any) -> None:
        """Validates fields after model initialization."""
        if self.roster_size != ROSTER_SIZE:
            raise ValueError(f"roster_size must be {ROSTER_SIZE}, got {self.roster_size}")
        if self.spawn_min > self.spawn_max:
            raise ValueError("spawn_min must not exceed spawn_max")
        if self.spawn_max > self.roster_size:
            raise ValueError("spawn_max must not exceed roster_size")
        if not self.replenish_weights or self.replenish_weights[-1][0] < 100:
            raise ValueError("replenish_weights must cover rolls up to 100")
        if 0 not in self.difficulty_multipliers:
            raise ValueError("difficulty_multipliers must define tier 0")

    def difficulty_for(self, tier: int) -> DifficultyMultipliers:
        """
        Returns the multipliers of a difficulty tier, falling back to tier 0.

        Args:
            tier (int): The difficulty tier of the character.

        Returns:
            DifficultyMultipliers: The multipliers for the tier.

        """
        return self.difficulty_multipliers.get(tier, self.difficulty_multipliers[0])

    def replenish_count_for(self, roll: int) -> int:
        """Maps a 1-100 roll onto a spawn count using the cumulative weights."""
        for upper, count in self.replenish_weights:
            if roll <= upper:
                return count
        return self.replenish_weights[-1][1]


@lru_cache()
def get_settings() -> CombatSettings:
    """Get the CombatSettings singleton."""
    return CombatSettings()
