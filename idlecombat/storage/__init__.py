"""
In-memory storage: combat states, per-character locks, the combat log book
and a character directory. Hosts with durable storage provide their own.
"""

from idlecombat.storage.characters import CharacterRecord, InMemoryCharacterDirectory
from idlecombat.storage.combat_log import InMemoryCombatLog
from idlecombat.storage.locks import CharacterLockRegistry
from idlecombat.storage.state_store import InMemoryCombatStateStore

__all__ = [
    "CharacterLockRegistry",
    "CharacterRecord",
    "InMemoryCharacterDirectory",
    "InMemoryCombatLog",
    "InMemoryCombatStateStore",
]
