"""
Collaborator interfaces.

The combat core reads character stats, skills and monsters from catalogs it
does not own, and hands persistence, logging, rewards and loot instantiation
to collaborators. Each seam is a Protocol so tests and hosts can plug in
their own implementation.
"""

from typing import Any, Optional, Protocol

from idlecombat.models.catalog import (
    CharacterProfile,
    CombatStats,
    DifficultyMultipliers,
    MapDefinition,
    MonsterTemplate,
    SkillDefinition,
)
from idlecombat.models.combat_log import CombatLogEntry
from idlecombat.models.results import ItemDrop, PotionDrop, PotionReport
from idlecombat.models.state import CombatState


class StatProvider(Protocol):
    """Read-only access to character profiles and derived stats."""

    def get_profile(self, character_id: int) -> Optional[CharacterProfile]:
        """Returns the character profile, or None if it does not exist."""
        ...

    def get_combat_stats(self, profile: CharacterProfile) -> CombatStats:
        """Returns the derived combat stats of the character."""
        ...

    def get_difficulty_multipliers(self, profile: CharacterProfile) -> DifficultyMultipliers:
        """Returns the multipliers of the character's difficulty tier."""
        ...


class SkillCatalog(Protocol):
    """Read-only access to learned skills."""

    def get_active_skills(self, profile: CharacterProfile) -> list[SkillDefinition]:
        """Returns the active (non-passive) skills the character has learned."""
        ...


class MonsterCatalog(Protocol):
    """Read-only access to maps and monster templates."""

    def get_map(self, map_id: int) -> Optional[MapDefinition]:
        ...

    def get_monster_pool(self, game_map: MapDefinition) -> list[MonsterTemplate]:
        """Returns the templates that can spawn on a map."""
        ...

    def get_by_id(self, template_id: int) -> Optional[MonsterTemplate]:
        ...


class CombatStateStore(Protocol):
    """Persistence of combat states."""

    def load(self, character_id: int) -> CombatState:
        """Returns the stored state, or a fresh idle state."""
        ...

    def save(self, state: CombatState) -> None:
        """Persists the state atomically."""
        ...


class PotionPolicy(Protocol):
    """Automatic potion use after a round."""

    def try_auto_use(
        self,
        profile: CharacterProfile,
        hp: int,
        mana: int,
        stats: CombatStats,
    ) -> PotionReport:
        """Consumes potions if thresholds are crossed and reports what was restored."""
        ...


class CombatLogSink(Protocol):
    """Durable combat log."""

    def write(self, entry: CombatLogEntry) -> int:
        """Writes an entry and returns its id."""
        ...


class RewardSink(Protocol):
    """Character progression, fed with the rewards of a round."""

    def grant(self, profile: CharacterProfile, experience: int, copper: int) -> None:
        ...

    def discover_monster(self, profile: CharacterProfile, template_id: int) -> None:
        """Marks a monster as seen in the character's compendium."""
        ...


class LootFactory(Protocol):
    """Instantiates dropped items and potions in the character's inventory."""

    def create_item(self, profile: CharacterProfile, drop: ItemDrop) -> Any:
        """Returns the created item, or None if it could not be created."""
        ...

    def create_potion(self, profile: CharacterProfile, drop: PotionDrop) -> Any:
        """Returns the created potion, or None if it could not be created."""
        ...
