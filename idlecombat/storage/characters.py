"""
In-memory character directory.

A small host for the combat core: it stores characters with their stats,
learned skills, progression and bag, and implements the stat provider, skill
catalog, reward sink, loot factory and potion inventory on top of them.
"""

import threading
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from idlecombat.catalog.repository import ContentRepository, load_json_list
from idlecombat.core.config import CombatSettings, get_settings
from idlecombat.core.error_handling import CharacterNotFoundError
from idlecombat.core.logging import get_logger
from idlecombat.models.catalog import (
    CharacterProfile,
    CombatStats,
    DifficultyMultipliers,
    SkillDefinition,
)
from idlecombat.models.results import ItemDrop, PotionDrop
from idlecombat.potions import PotionItem, potion_from_drop

logger = get_logger(__name__)


class CharacterRecord(BaseModel):
    """A stored character."""

    profile: CharacterProfile = Field(description="Identity and settings.")
    stats: CombatStats = Field(description="Derived combat stats.")
    skill_ids: list[int] = Field(default_factory=list, description="Learned active skills.")
    experience: int = Field(0, ge=0, description="Experience earned.")
    copper: int = Field(0, ge=0, description="Copper owned.")
    discovered_monsters: set[int] = Field(
        default_factory=set, description="Monster templates seen in combat."
    )
    items: list[ItemDrop] = Field(default_factory=list, description="Looted equipment.")
    potions: list[PotionItem] = Field(default_factory=list, description="Potion stacks.")


class InMemoryCharacterDirectory:
    """Characters keyed by id."""

    def __init__(
        self,
        content: ContentRepository,
        settings: Optional[CombatSettings] = None,
    ) -> None:
        self.content = content
        self.settings = settings or get_settings()
        self._lock = threading.RLock()
        self._records: dict[int, CharacterRecord] = {}

    def add(self, record: CharacterRecord) -> None:
        with self._lock:
            self._records[record.profile.id] = record

    def get(self, character_id: int) -> CharacterRecord:
        """
        Returns the stored record.

        Raises:
            CharacterNotFoundError: If the character does not exist.

        """
        with self._lock:
            record = self._records.get(character_id)
        if record is None:
            raise CharacterNotFoundError(
                "Character not found", {"character_id": character_id}
            )
        return record

    def load(self, filepath: Path) -> None:
        """Adds every character of a JSON file."""
        for data in load_json_list(filepath):
            self.add(CharacterRecord(**data))

    # ============================================================================
    # STAT PROVIDER / SKILL CATALOG
    # ============================================================================

    def get_profile(self, character_id: int) -> Optional[CharacterProfile]:
        with self._lock:
            record = self._records.get(character_id)
            return record.profile.model_copy() if record else None

    def get_combat_stats(self, profile: CharacterProfile) -> CombatStats:
        return self.get(profile.id).stats.model_copy()

    def get_difficulty_multipliers(self, profile: CharacterProfile) -> DifficultyMultipliers:
        return self.settings.difficulty_for(profile.difficulty_tier)

    def get_active_skills(self, profile: CharacterProfile) -> list[SkillDefinition]:
        return self.content.get_skills(self.get(profile.id).skill_ids)

    # ============================================================================
    # SETTINGS
    # ============================================================================

    def select_map(self, character_id: int, map_id: Optional[int]) -> None:
        with self._lock:
            self.get(character_id).profile.current_map_id = map_id

    def update_potion_settings(self, character_id: int, **settings: Any) -> CharacterProfile:
        """
        Updates the automatic potion settings of a character.

        Only ``auto_use_hp_potion``, ``hp_potion_threshold``,
        ``auto_use_mp_potion`` and ``mp_potion_threshold`` are accepted.

        Raises:
            ValueError: If an unknown setting is given.

        """
        allowed = {
            "auto_use_hp_potion",
            "hp_potion_threshold",
            "auto_use_mp_potion",
            "mp_potion_threshold",
        }
        unknown = set(settings) - allowed
        if unknown:
            raise ValueError(f"Unknown potion settings: {sorted(unknown)}")
        with self._lock:
            record = self.get(character_id)
            record.profile = record.profile.model_copy(update=settings)
            return record.profile.model_copy()

    # ============================================================================
    # REWARD SINK
    # ============================================================================

    def grant(self, profile: CharacterProfile, experience: int, copper: int) -> None:
        with self._lock:
            record = self.get(profile.id)
            record.experience += experience
            record.copper += copper
        logger.debug(
            f"Character {profile.id} gained {experience} experience and {copper} copper"
        )

    def discover_monster(self, profile: CharacterProfile, template_id: int) -> None:
        with self._lock:
            self.get(profile.id).discovered_monsters.add(template_id)

    # ============================================================================
    # LOOT FACTORY / POTION INVENTORY
    # ============================================================================

    def create_item(self, profile: CharacterProfile, drop: ItemDrop) -> ItemDrop:
        with self._lock:
            self.get(profile.id).items.append(drop)
        return drop

    def create_potion(self, profile: CharacterProfile, drop: PotionDrop) -> PotionItem:
        """Adds a potion to the bag, stacking it with identical potions."""
        potion = potion_from_drop(drop)
        with self._lock:
            record = self.get(profile.id)
            for stack in record.potions:
                if stack.kind == potion.kind and stack.grade == potion.grade:
                    stack.quantity += 1
                    return potion
            record.potions.append(potion.model_copy())
        return potion

    def get_potions(self, character_id: int) -> list[PotionItem]:
        with self._lock:
            return list(self.get(character_id).potions)

    def consume_potion(self, character_id: int, potion: PotionItem) -> None:
        with self._lock:
            record = self.get(character_id)
            for stack in record.potions:
                if stack.kind == potion.kind and stack.grade == potion.grade:
                    stack.quantity -= 1
                    if stack.quantity <= 0:
                        record.potions.remove(stack)
                    return
