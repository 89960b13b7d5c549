"""
Combat state module.

The persisted, per-character combat state. It is read and written only by
the combat manager, under the character's lock.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from idlecombat.core.constants import ROSTER_SIZE, CombatPhase
from idlecombat.models.monster import MonsterInstance, Roster, empty_roster, has_alive_monster


class SkillUsage(BaseModel):
    """How many times a skill was used during the current fight."""

    skill_id: int = Field(description="The skill id.")
    name: str = Field(description="The skill name.")
    icon: str | None = Field(None, description="The skill icon.")
    use_count: int = Field(0, ge=0, description="Number of uses this fight.")


class CombatState(BaseModel):
    """Combat state of one character."""

    character_id: int = Field(description="Owning character.")
    roster: list[Optional[MonsterInstance]] = Field(
        default_factory=empty_roster,
        description="The five arena slots.",
    )
    rounds: int = Field(0, ge=0, description="Rounds resolved since the last regeneration.")
    hp: int | None = Field(None, description="Current HP; None until initialised.")
    mana: int | None = Field(None, description="Current mana; None until initialised.")
    skill_cooldowns: dict[int, int] = Field(
        default_factory=dict,
        description="Skill id -> round at which the skill is available again.",
    )
    skill_usage: dict[int, SkillUsage] = Field(
        default_factory=dict,
        description="Skill id -> usage accumulated across the fight.",
    )
    total_damage_dealt: int = Field(0, ge=0, description="Damage dealt this fight.")
    total_damage_taken: int = Field(0, ge=0, description="Damage taken this fight.")
    roster_refreshed_at: datetime | None = Field(
        None, description="Time of the last full regeneration."
    )
    is_fighting: bool = Field(False, description="False is the idle state.")
    last_combat_at: datetime | None = Field(None, description="Last time combat started.")
    combat_started_at: datetime | None = Field(
        None, description="Start of the current fight, reset on regeneration."
    )
    reference_monster_id: int | None = Field(
        None, description="Template of the current wave, for single-monster displays."
    )
    monster_hp: int = Field(0, ge=0, description="Combined HP of the roster.")
    monster_max_hp: int = Field(0, ge=0, description="Combined max HP of the roster.")
    version: int = Field(0, ge=0, description="Incremented on every successful save.")

    def model_post_init(self, _: Any) -> None:
        """Validates fields after model initialization."""
        if len(self.roster) != ROSTER_SIZE:
            raise ValueError(
                f"roster must have exactly {ROSTER_SIZE} slots, got {len(self.roster)}"
            )
        for index, monster in enumerate(self.roster):
            if monster is not None and monster.position != index:
                raise ValueError(
                    f"monster in slot {index} has position {monster.position}"
                )

    @property
    def phase(self) -> CombatPhase:
        """The state machine phase derived from the stored fields."""
        if self.is_fighting:
            return CombatPhase.FIGHTING
        if self.hp is not None and self.hp <= 0:
            return CombatPhase.DEFEATED
        return CombatPhase.IDLE

    def has_active_combat(self) -> bool:
        """True when at least one monster in the roster is alive."""
        return has_alive_monster(self.roster)

    def has_roster(self) -> bool:
        return any(m is not None for m in self.roster)

    def set_roster(self, roster: Roster) -> None:
        """Replaces the roster and keeps the combined HP figures in sync."""
        self.roster = roster
        occupied = [m for m in roster if m is not None]
        self.monster_hp = sum(m.hp for m in occupied)
        self.monster_max_hp = sum(m.max_hp for m in occupied)

    def reset_fight_counters(self) -> None:
        """Resets the per-fight counters, as done on roster regeneration."""
        self.rounds = 0
        self.total_damage_dealt = 0
        self.total_damage_taken = 0
        self.skill_cooldowns = {}
        self.skill_usage = {}

    def clear(self) -> None:
        """Wipes the combat state on defeat or explicit reset. HP and mana are kept."""
        self.roster = empty_roster()
        self.reset_fight_counters()
        self.roster_refreshed_at = None
        self.combat_started_at = None
        self.reference_monster_id = None
        self.monster_hp = 0
        self.monster_max_hp = 0
        self.is_fighting = False
