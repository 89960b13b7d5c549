"""
In-memory combat log book.

Keeps every written entry; listings return the most recent ones first.
"""

import itertools
import threading
from typing import Optional

from idlecombat.models.combat_log import CombatLogEntry, CombatLogStats


class InMemoryCombatLog:
    """Combat log entries grouped by character."""

    def __init__(self, listing_limit: int = 50) -> None:
        self.listing_limit = listing_limit
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._entries: dict[int, list[CombatLogEntry]] = {}

    def write(self, entry: CombatLogEntry) -> int:
        """Stores a copy of the entry under a new id and returns the id."""
        with self._lock:
            stored = entry.model_copy(deep=True)
            stored.id = next(self._ids)
            self._entries.setdefault(stored.character_id, []).append(stored)
            return stored.id

    def logs(self, character_id: int) -> list[CombatLogEntry]:
        """Returns the latest entries of a character, newest first."""
        with self._lock:
            entries = self._entries.get(character_id, [])
            return list(reversed(entries[-self.listing_limit :]))

    def detail(self, character_id: int, log_id: int) -> Optional[CombatLogEntry]:
        """Returns one entry of a character, or None if it does not exist."""
        with self._lock:
            for entry in self._entries.get(character_id, []):
                if entry.id == log_id:
                    return entry
            return None

    def stats(self, character_id: int) -> CombatLogStats:
        """Totals over every entry of a character."""
        with self._lock:
            entries = list(self._entries.get(character_id, []))
        return CombatLogStats(
            total_rounds=len(entries),
            victories=sum(1 for e in entries if e.victory),
            defeats=sum(1 for e in entries if e.defeat),
            total_damage_dealt=sum(e.damage_dealt for e in entries),
            total_damage_taken=sum(e.damage_taken for e in entries),
            total_experience=sum(e.experience_gained for e in entries),
            total_copper=sum(e.copper_gained for e in entries),
            total_loot_drops=sum(1 for e in entries if e.loot_dropped),
        )
