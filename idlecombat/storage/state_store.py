"""
In-memory combat state store.

Stores deep copies, so a caller can never mutate persisted state without
saving it, and rejects a save whose version is behind the stored one.
"""

import threading

from idlecombat.core.error_handling import StateConflictError
from idlecombat.models.state import CombatState


class InMemoryCombatStateStore:
    """Combat states keyed by character id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[int, CombatState] = {}

    def load(self, character_id: int) -> CombatState:
        """Returns a copy of the stored state, or a fresh idle state."""
        with self._lock:
            state = self._states.get(character_id)
            if state is None:
                return CombatState(character_id=character_id)
            return state.model_copy(deep=True)

    def save(self, state: CombatState) -> None:
        """
        Persists a copy of the state and bumps its version.

        Raises:
            StateConflictError: The state was saved by someone else since it
                was loaded.

        """
        with self._lock:
            stored = self._states.get(state.character_id)
            stored_version = stored.version if stored is not None else 0
            if state.version != stored_version:
                raise StateConflictError(
                    "Combat state was modified concurrently",
                    {
                        "character_id": state.character_id,
                        "expected_version": stored_version,
                        "actual_version": state.version,
                    },
                )
            state.version += 1
            self._states[state.character_id] = state.model_copy(deep=True)

    def delete(self, character_id: int) -> None:
        with self._lock:
            self._states.pop(character_id, None)
