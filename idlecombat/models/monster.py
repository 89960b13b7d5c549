"""
Monster instance module.

A monster instance is a concrete copy of a template sitting in one arena
slot. The roster is a fixed list of five slots, each holding an instance or
``None``. A dead instance stays in its slot as a placeholder until the slot
is refilled or the whole roster regenerates.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from idlecombat.core.constants import NOT_ATTACKED, ROSTER_SIZE, MonsterType


class MonsterInstance(BaseModel):
    """A spawned monster occupying one arena slot."""

    template_id: int = Field(description="Template this instance was built from.")
    instance_id: str = Field(
        description="Stable id for the lifetime of the monster in its slot.",
    )
    name: str = Field(description="Monster name, copied from the template.")
    type: MonsterType = Field(MonsterType.NORMAL, description="Monster rank.")
    level: int = Field(1, ge=1, description="Instance level.")
    hp: int = Field(ge=0, description="Current HP, floored at zero.")
    max_hp: int = Field(ge=0, description="Maximum HP after difficulty scaling.")
    attack: int = Field(0, ge=0, description="Attack after difficulty scaling.")
    defense: int = Field(0, ge=0, description="Defense after difficulty scaling.")
    experience: int = Field(0, ge=0, description="Experience after reward scaling.")
    position: int = Field(ge=0, lt=ROSTER_SIZE, description="Slot index.")
    is_new: bool = Field(
        False,
        description="Spawned this round; cannot deal or receive damage until next round.",
    )
    was_attacked: bool = Field(False, description="Hit during the last resolved round.")
    damage_taken: int = Field(
        NOT_ATTACKED,
        description="Damage taken during the last resolved round, -1 when not attacked.",
    )

    def model_post_init(self, _: Any) -> None:
        """Validates fields after model initialization."""
        if self.hp > self.max_hp:
            raise ValueError(f"hp {self.hp} exceeds max_hp {self.max_hp}")

    def is_alive(self) -> bool:
        return self.hp > 0

    def is_dead(self) -> bool:
        return self.hp <= 0

    @property
    def hp_ratio(self) -> float:
        return self.hp / self.max_hp if self.max_hp > 0 else 0.0

    def take_damage(self, amount: int) -> int:
        """
        Applies damage, never letting HP drop below zero.

        Args:
            amount (int): The damage to apply.

        Returns:
            int: The damage recorded on the monster.

        """
        self.hp = max(0, self.hp - amount)
        self.damage_taken = amount
        self.was_attacked = True
        return amount

    def reset_round_flags(self) -> None:
        self.was_attacked = False
        self.damage_taken = NOT_ATTACKED


Roster = list[Optional[MonsterInstance]]


# ============================================================================
# ROSTER HELPERS
# ============================================================================


def empty_roster() -> Roster:
    """Returns a roster with every slot empty."""
    return [None] * ROSTER_SIZE


def copy_roster(roster: Roster) -> Roster:
    """Returns a deep copy of a roster."""
    return [m.model_copy(deep=True) if m is not None else None for m in roster]


def alive_monsters(roster: Roster) -> list[MonsterInstance]:
    """Returns the alive monsters in slot order."""
    return [m for m in roster if m is not None and m.is_alive()]


def has_alive_monster(roster: Roster) -> bool:
    return any(m is not None and m.is_alive() for m in roster)


def first_alive_monster(roster: Roster) -> Optional[MonsterInstance]:
    """Returns the first alive monster in slot order, if any."""
    for monster in roster:
        if monster is not None and monster.is_alive():
            return monster
    return None


def fillable_slots(roster: Roster) -> list[int]:
    """Returns the slots that are empty or hold a dead monster."""
    return [i for i, m in enumerate(roster) if m is None or m.is_dead()]


def roster_hp_totals(roster: Roster) -> tuple[int, int]:
    """
    Sums HP and max HP over every occupied slot, dead placeholders included.

    Args:
        roster (Roster): The roster.

    Returns:
        tuple[int, int]: Combined HP and combined max HP.

    """
    occupied = [m for m in roster if m is not None]
    return sum(m.hp for m in occupied), sum(m.max_hp for m in occupied)
