"""
Automatic potion use.

After each round the combat manager lets a potion policy top up the
character's HP and mana. :class:`ThresholdPotionPolicy` drinks the strongest
potion of a kind when the resource falls to or below the character's
threshold, as a percentage of its maximum.
"""

from typing import Optional, Protocol

from pydantic import BaseModel, Field

from idlecombat.core.config import CombatSettings, get_settings
from idlecombat.core.constants import PotionGrade, PotionKind
from idlecombat.core.error_handling import ensure_int_in_range
from idlecombat.core.logging import get_logger
from idlecombat.models.catalog import CharacterProfile, CombatStats
from idlecombat.models.results import PotionDrop, PotionReport, PotionUse

logger = get_logger(__name__)

# Name and restore amount of each potion a monster can drop.
POTION_CATALOG: dict[tuple[PotionKind, PotionGrade], tuple[str, int]] = {
    (PotionKind.HP, PotionGrade.MINOR): ("Minor Healing Potion", 50),
    (PotionKind.HP, PotionGrade.LIGHT): ("Healing Potion", 100),
    (PotionKind.HP, PotionGrade.MEDIUM): ("Greater Healing Potion", 200),
    (PotionKind.HP, PotionGrade.FULL): ("Superior Healing Potion", 400),
    (PotionKind.MP, PotionGrade.MINOR): ("Minor Mana Potion", 30),
    (PotionKind.MP, PotionGrade.LIGHT): ("Mana Potion", 60),
    (PotionKind.MP, PotionGrade.MEDIUM): ("Greater Mana Potion", 120),
    (PotionKind.MP, PotionGrade.FULL): ("Superior Mana Potion", 240),
}


class PotionItem(BaseModel):
    """A stack of identical potions in a character's bag."""

    name: str = Field(description="Potion name.")
    kind: PotionKind = Field(description="Resource restored by the potion.")
    grade: PotionGrade = Field(description="Potion strength.")
    restore: int = Field(ge=0, description="Amount restored per potion.")
    quantity: int = Field(1, ge=0, description="Potions left in the stack.")


def potion_from_drop(drop: PotionDrop) -> PotionItem:
    """Builds a single potion from a loot drop."""
    name, restore = POTION_CATALOG[(drop.kind, drop.grade)]
    return PotionItem(name=name, kind=drop.kind, grade=drop.grade, restore=restore)


class PotionInventory(Protocol):
    """Where the policy finds and consumes a character's potions."""

    def get_potions(self, character_id: int) -> list[PotionItem]:
        ...

    def consume_potion(self, character_id: int, potion: PotionItem) -> None:
        """Removes one potion from the stack."""
        ...


def find_best_potion(potions: list[PotionItem], kind: PotionKind) -> Optional[PotionItem]:
    """Returns the potion of the given kind restoring the most, if any is left."""
    candidates = [p for p in potions if p.kind == kind and p.quantity > 0]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.restore)


def resource_percent(current: int, maximum: int) -> float:
    """Current value as a percentage of the maximum; a zero maximum counts as full."""
    if maximum <= 0:
        return 100.0
    return current / maximum * 100


class ThresholdPotionPolicy:
    """Drinks potions when HP or mana drops to a per-character threshold."""

    def __init__(
        self,
        inventory: PotionInventory,
        settings: Optional[CombatSettings] = None,
    ) -> None:
        self.inventory = inventory
        self.settings = settings or get_settings()

    def _threshold(self, value: Optional[int], default: int, name: str) -> int:
        if value is None:
            return default
        return ensure_int_in_range(value, name, 1, 100, default)

    def _drink(
        self,
        profile: CharacterProfile,
        kind: PotionKind,
        current: int,
        maximum: int,
        threshold: int,
    ) -> Optional[PotionUse]:
        if resource_percent(current, maximum) > threshold:
            return None
        potion = find_best_potion(self.inventory.get_potions(profile.id), kind)
        if potion is None:
            return None
        self.inventory.consume_potion(profile.id, potion)
        restored = max(0, min(potion.restore, maximum - max(0, current)))
        logger.info(
            f"Character {profile.id} drank {potion.name}, restoring {restored} {kind.value}"
        )
        return PotionUse(name=potion.name, restored=restored)

    def try_auto_use(
        self,
        profile: CharacterProfile,
        hp: int,
        mana: int,
        stats: CombatStats,
    ) -> PotionReport:
        """
        Drinks at most one HP and one mana potion.

        Args:
            profile (CharacterProfile): The character, with its potion settings.
            hp (int): HP after the round.
            mana (int): Mana after the round.
            stats (CombatStats): Holds the maximum HP and mana.

        Returns:
            PotionReport: The potions drunk and the amounts actually restored.

        """
        report = PotionReport()
        if profile.auto_use_hp_potion:
            threshold = self._threshold(
                profile.hp_potion_threshold,
                self.settings.hp_potion_threshold,
                "hp_potion_threshold",
            )
            report.hp = self._drink(profile, PotionKind.HP, hp, stats.max_hp, threshold)
        if profile.auto_use_mp_potion:
            threshold = self._threshold(
                profile.mp_potion_threshold,
                self.settings.mp_potion_threshold,
                "mp_potion_threshold",
            )
            report.mp = self._drink(profile, PotionKind.MP, mana, stats.max_mana, threshold)
        return report
