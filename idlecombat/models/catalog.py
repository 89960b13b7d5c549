"""
Catalog models.

Read-only snapshots handed to the core by its collaborators: character
profiles and derived stats, difficulty multipliers, skill definitions,
monster templates with their drop tables, and maps.
"""

from pydantic import BaseModel, Field

from idlecombat.core.constants import DEFAULT_ITEM_TYPES, MonsterType, TargetScope


class CombatStats(BaseModel):
    """Derived combat stats of a character, passive bonuses already folded in."""

    attack: int = Field(0, ge=0, description="Attack power.")
    defense: int = Field(0, ge=0, description="Defense.")
    crit_rate: float = Field(0.0, ge=0, le=1, description="Chance of a critical hit.")
    crit_damage: float = Field(1.5, ge=1, description="Damage multiplier of a critical hit.")
    max_hp: int = Field(1, ge=1, description="Maximum health.")
    max_mana: int = Field(0, ge=0, description="Maximum mana.")


class DifficultyMultipliers(BaseModel):
    """Per-tier scaling of monster HP, monster damage and rewards."""

    monster_hp: float = Field(1.0, ge=0, description="Monster HP multiplier.")
    monster_damage: float = Field(
        1.0, ge=0, description="Monster attack and defense multiplier."
    )
    reward: float = Field(1.0, ge=0, description="Experience and copper multiplier.")


class CharacterProfile(BaseModel):
    """The parts of a character the combat core needs besides its stats."""

    id: int = Field(description="Character id.")
    name: str = Field("", description="Display name.")
    level: int = Field(1, ge=1, description="Character level.")
    character_class: str = Field("", description="Character class key.")
    current_map_id: int | None = Field(None, description="Selected map, if any.")
    difficulty_tier: int = Field(0, ge=0, description="Selected difficulty tier.")
    auto_use_hp_potion: bool = Field(False, description="Drink HP potions automatically.")
    hp_potion_threshold: int | None = Field(
        None, description="HP percent that triggers a potion; global default when unset."
    )
    auto_use_mp_potion: bool = Field(False, description="Drink mana potions automatically.")
    mp_potion_threshold: int | None = Field(
        None, description="Mana percent that triggers a potion; global default when unset."
    )


class SkillDefinition(BaseModel):
    """An active skill learned by a character."""

    id: int = Field(description="Skill id.")
    name: str = Field(description="Skill name.")
    icon: str | None = Field(None, description="Icon key for the client.")
    effect_key: str | None = Field(None, description="Visual effect key for the client.")
    mana_cost: int = Field(0, ge=0, description="Mana spent per use.")
    cooldown: int = Field(0, ge=0, description="Rounds before the skill is usable again.")
    damage: int = Field(0, ge=0, description="Flat damage added to the attack.")
    target_scope: TargetScope = Field(
        TargetScope.SINGLE, description="Single target or every alive monster."
    )

    @property
    def is_area(self) -> bool:
        return self.target_scope.is_area

    @property
    def efficiency(self) -> float:
        """Damage per point of mana; free skills count their raw damage."""
        if self.mana_cost > 0:
            return self.damage / self.mana_cost
        return float(self.damage)


class DropTable(BaseModel):
    """Loot configuration of a monster template."""

    copper_chance: float | None = Field(
        None, ge=0, le=1, description="Copper drop chance; global config when unset."
    )
    copper_base: int | None = Field(None, ge=0, description="Minimum copper per drop.")
    copper_range: int | None = Field(None, ge=0, description="Copper spread per drop.")
    potion_chance: float | None = Field(None, ge=0, le=1, description="Potion drop chance.")
    item_chance: float | None = Field(None, ge=0, le=1, description="Item drop chance.")
    item_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ITEM_TYPES),
        description="Equipment types that can drop.",
    )


class MonsterTemplate(BaseModel):
    """A monster archetype from the catalog."""

    id: int = Field(description="Template id.")
    name: str = Field(description="Monster name.")
    type: MonsterType = Field(MonsterType.NORMAL, description="Monster rank.")
    level: int = Field(1, ge=1, description="Template level.")
    hp_base: int = Field(1, ge=1, description="Base HP.")
    attack_base: int = Field(0, ge=0, description="Base attack.")
    defense_base: int = Field(0, ge=0, description="Base defense.")
    experience_base: int = Field(0, ge=0, description="Base experience reward.")
    drop_table: DropTable = Field(default_factory=DropTable, description="Loot table.")
    icon: str | None = Field(None, description="Icon key for the client.")


class MapDefinition(BaseModel):
    """A hunting map and the monsters it can spawn."""

    id: int = Field(description="Map id.")
    name: str = Field(description="Map name.")
    monster_ids: list[int] = Field(
        default_factory=list, description="Templates that can spawn on this map."
    )
