"""
Round result models.

A :class:`RoundResult` is what the round resolver returns for one round; the
arena manager and the reward coordinator enrich it, and the combat manager
turns it into a :class:`CombatOutcome` for the caller.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from idlecombat.core.constants import ItemQuality, PotionGrade, PotionKind, TargetScope
from idlecombat.models.monster import MonsterInstance
from idlecombat.models.state import SkillUsage


class SkillUseRecord(BaseModel):
    """A skill cast during a round."""

    skill_id: int = Field(description="The skill id.")
    name: str = Field(description="The skill name.")
    icon: str | None = Field(None, description="The skill icon.")
    effect_key: str | None = Field(None, description="The visual effect key.")
    target_type: TargetScope = Field(TargetScope.SINGLE, description="Target scope.")


# ============================================================================
# ROUND DETAILS (durable combat log breakdown)
# ============================================================================


class CharacterDetails(BaseModel):
    level: int
    character_class: str
    attack: int
    defense: int
    crit_rate: float
    crit_damage: float


class MonsterDetails(BaseModel):
    level: int
    hp: int
    max_hp: int
    attack: int
    defense: int
    experience: int

    @classmethod
    def from_instance(cls, monster: MonsterInstance) -> "MonsterDetails":
        return cls(
            level=monster.level,
            hp=monster.hp,
            max_hp=monster.max_hp,
            attack=monster.attack,
            defense=monster.defense,
            experience=monster.experience,
        )


class DamageDetails(BaseModel):
    base_attack: int = Field(0, description="Base attack damage against the first target.")
    skill_damage: int = Field(0, description="Flat skill damage.")
    crit_damage: int = Field(0, description="Extra damage from the critical hit.")
    aoe_damage: int = Field(0, description="Damage given up by area scaling.")
    total: int = Field(0, description="Damage dealt to all monsters.")
    defense_reduction: float = Field(0.0, description="Defense reduction coefficient.")
    monster_counter: int = Field(0, description="Damage taken from monsters.")


class BattleDetails(BaseModel):
    round: int
    alive_count: int = Field(description="Alive monsters at the start of the round.")
    killed_count: int = Field(description="Monsters killed this round.")
    is_crit: bool
    is_aoe: bool


class DifficultyDetails(BaseModel):
    tier: int
    multiplier: float = Field(description="Reward multiplier of the tier.")


class RoundDetails(BaseModel):
    """Character, monster, damage, battle and difficulty breakdown of a round."""

    character: CharacterDetails
    monster: Optional[MonsterDetails] = None
    damage: DamageDetails
    battle: BattleDetails
    difficulty: DifficultyDetails


# ============================================================================
# LOOT
# ============================================================================


class ItemDrop(BaseModel):
    """Request to instantiate a dropped item."""

    item_type: str
    quality: ItemQuality
    level: int


class PotionDrop(BaseModel):
    """Request to instantiate a dropped potion."""

    kind: PotionKind
    grade: PotionGrade


class LootSummary(BaseModel):
    """Rewards handed out after a round."""

    copper: int = 0
    item: Any = Field(None, description="Item created by the loot factory, if any.")
    potion: Any = Field(None, description="Potion created by the loot factory, if any.")

    def is_empty(self) -> bool:
        return self.copper <= 0 and self.item is None and self.potion is None


# ============================================================================
# ROUND RESULT
# ============================================================================


class RoundResult(BaseModel):
    """Everything one resolved round changed."""

    round_number: int = Field(description="The round that was resolved.")
    damage_dealt: int = Field(0, description="Damage dealt this round.")
    damage_taken: int = Field(0, description="Damage taken this round.")
    char_hp: int = Field(description="Character HP after the round, may be negative.")
    char_mana: int = Field(description="Character mana after the round.")
    defeat: bool = Field(False, description="The character HP reached zero.")
    has_alive_monster: bool = Field(False, description="Any slot still has HP.")
    victory: bool = Field(False, description="No monster is alive after the round.")
    skills_used: list[SkillUseRecord] = Field(default_factory=list)
    skill_target_positions: list[int] = Field(default_factory=list)
    cooldowns: dict[int, int] = Field(default_factory=dict)
    skill_usage: dict[int, SkillUsage] = Field(default_factory=dict)
    roster: list[Optional[MonsterInstance]] = Field(
        default_factory=list, description="Roster snapshot after the round."
    )
    slots_died_this_round: list[int] = Field(
        default_factory=list,
        description="Slots whose monster died this round; not refilled this round.",
    )
    killed: list[MonsterInstance] = Field(
        default_factory=list, description="Monsters killed this round."
    )
    experience_gained: int = Field(0, description="Experience, difficulty scaled.")
    copper_gained: int = Field(0, description="Copper, difficulty scaled.")
    monster_hp: int = Field(0, description="Combined HP of the roster.")
    monster_max_hp: int = Field(0, description="Combined max HP of the roster.")
    spawned_positions: list[int] = Field(
        default_factory=list, description="Slots refilled by replenishment."
    )
    loot: LootSummary = Field(default_factory=LootSummary)
    details: RoundDetails


# ============================================================================
# COMBAT OUTCOME
# ============================================================================


class OutcomeKind(Enum):
    ROUND = "round"
    DEFEAT = "defeat"
    AUTO_STOPPED = "auto_stopped"


class PotionUse(BaseModel):
    name: str
    restored: int


class PotionReport(BaseModel):
    """Potions drunk automatically after a round."""

    hp: Optional[PotionUse] = None
    mp: Optional[PotionUse] = None

    def is_empty(self) -> bool:
        return self.hp is None and self.mp is None


class MonsterSummary(BaseModel):
    """Single-monster display fields kept for older clients."""

    template_id: int | None = None
    name: str = "Monster"
    type: str = "normal"
    level: int = 1
    hp: int = 0
    max_hp: int = 0


class CombatOutcome(BaseModel):
    """Result of a round request, shaped for the presentation layer."""

    kind: OutcomeKind
    victory: bool = False
    defeat: bool = False
    auto_stopped: bool = False
    reason: str | None = None
    monsters: list[Optional[MonsterInstance]] = Field(default_factory=list)
    monster: MonsterSummary = Field(default_factory=MonsterSummary)
    monster_hp_before_round: int = 0
    damage_dealt: int = 0
    damage_taken: int = 0
    rounds: int = 0
    experience_gained: int = 0
    copper_gained: int = 0
    loot: LootSummary = Field(default_factory=LootSummary)
    skills_used: list[SkillUseRecord] = Field(default_factory=list)
    skill_usage: list[SkillUsage] = Field(default_factory=list)
    skill_target_positions: list[int] = Field(default_factory=list)
    skill_cooldowns: dict[int, int] = Field(default_factory=dict)
    potion_used: PotionReport = Field(default_factory=PotionReport)
    current_hp: int = 0
    current_mana: int = 0
    combat_log_id: int | None = None
    round: Optional[RoundResult] = None
