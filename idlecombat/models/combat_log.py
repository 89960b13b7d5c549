"""
Combat log models.

A log entry is the only durable artifact the combat core shapes. Writing it
is delegated to a :class:`~idlecombat.interfaces.CombatLogSink`.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from idlecombat.models.results import PotionReport, RoundDetails, SkillUseRecord
from idlecombat.models.state import SkillUsage


class CombatLogEntry(BaseModel):
    """One logged round, or the defeat that ended a fight."""

    id: int | None = Field(None, description="Assigned by the sink on write.")
    character_id: int
    map_id: int
    monster_id: int | None = Field(None, description="Reference monster template.")
    victory: bool = False
    defeat: bool = False
    round_number: int = 0
    damage_dealt: int = 0
    damage_taken: int = 0
    experience_gained: int = 0
    copper_gained: int = 0
    loot_dropped: dict[str, Any] | None = None
    duration_seconds: int = 0
    skills_used: list[SkillUseRecord] = Field(default_factory=list)
    skills_aggregated: list[SkillUsage] = Field(default_factory=list)
    potion_used: PotionReport = Field(default_factory=PotionReport)
    details: Optional[RoundDetails] = None
    created_at: datetime


class CombatLogStats(BaseModel):
    """Totals over the logged entries of a character."""

    total_rounds: int = 0
    victories: int = 0
    defeats: int = 0
    total_damage_dealt: int = 0
    total_damage_taken: int = 0
    total_experience: int = 0
    total_copper: int = 0
    total_loot_drops: int = 0
