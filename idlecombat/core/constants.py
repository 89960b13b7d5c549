"""
Constants and enumerations for the combat engine.

Defines the fixed arena size, sentinel values, and the enumerations for skill
target scopes, monster types, combat phases, potions and item qualities.
"""

from enum import Enum

# Number of seats in the arena. Slot index identity is load-bearing: the
# client maps each index to a visible seat.
ROSTER_SIZE = 5

# Damage value stored on a monster that was not attacked this round.
NOT_ATTACKED = -1

# Equipment types that can drop when a template has no explicit list.
DEFAULT_ITEM_TYPES: tuple[str, ...] = (
    "weapon",
    "helmet",
    "armor",
    "gloves",
    "boots",
    "ring",
    "amulet",
    "belt",
)


class NiceEnum(Enum):
    """An enumeration that provides a nicer string representation."""

    def __str__(self) -> str:
        return self.name

    @property
    def display_name(self) -> str:
        return self.name.lower().capitalize()


class TargetScope(NiceEnum):
    """Defines how many monsters a skill hits."""

    SINGLE = "single"
    ALL = "all"

    @property
    def is_area(self) -> bool:
        return self is TargetScope.ALL


class MonsterType(NiceEnum):
    """Defines the rank of a monster template."""

    NORMAL = "normal"
    ELITE = "elite"
    BOSS = "boss"

    @property
    def emoji(self) -> str:
        """Returns the emoji associated with this monster type."""
        return {
            MonsterType.NORMAL: "👹",
            MonsterType.ELITE: "👺",
            MonsterType.BOSS: "🐉",
        }.get(self, "❔")

    @property
    def color(self) -> str:
        """Returns the color string associated with this monster type."""
        return {
            MonsterType.NORMAL: "bold white",
            MonsterType.ELITE: "bold yellow",
            MonsterType.BOSS: "bold red",
        }.get(self, "dim white")

    def colorize(self, message: str) -> str:
        """Applies monster type color formatting to a message."""
        return f"[{self.color}]{message}[/]"


class CombatPhase(NiceEnum):
    """States of the per-character combat state machine."""

    IDLE = "idle"
    FIGHTING = "fighting"
    DEFEATED = "defeated"


class PotionKind(NiceEnum):
    """The resource a potion restores."""

    HP = "hp"
    MP = "mp"


class PotionGrade(NiceEnum):
    """Potion strength, chosen from the level of the monster that dropped it."""

    MINOR = "minor"
    LIGHT = "light"
    MEDIUM = "medium"
    FULL = "full"

    @staticmethod
    def for_level(level: int) -> "PotionGrade":
        """
        Returns the potion grade dropped by a monster of the given level.

        Args:
            level (int): The template level of the monster.

        Returns:
            PotionGrade: The grade of the dropped potion.

        """
        if level <= 10:
            return PotionGrade.MINOR
        if level <= 30:
            return PotionGrade.LIGHT
        if level <= 60:
            return PotionGrade.MEDIUM
        return PotionGrade.FULL


class ItemQuality(NiceEnum):
    """Quality tiers of dropped equipment."""

    COMMON = "common"
    MAGIC = "magic"
    RARE = "rare"
    LEGENDARY = "legendary"
    MYTHIC = "mythic"
