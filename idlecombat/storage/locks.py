"""
Per-character locks.

At most one round may be in flight for a character. Each character id gets
its own re-entrant lock, so different characters never contend.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class CharacterLockRegistry:
    """Hands out one lock per character id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.RLock] = {}

    def lock_for(self, character_id: int) -> threading.RLock:
        """Returns the lock of a character, creating it on first use."""
        with self._guard:
            lock = self._locks.get(character_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[character_id] = lock
            return lock

    @contextmanager
    def hold(
        self, character_id: int, blocking: bool = True, timeout: float = -1
    ) -> Iterator[bool]:
        """
        Holds a character's lock for the duration of the block.

        Args:
            character_id (int): The character to lock.
            blocking (bool): Wait for the lock when another thread holds it.
            timeout (float): Seconds to wait when blocking, -1 for no limit.

        Yields:
            bool: True if the lock was acquired. The block still runs when it
            was not, so the caller must check.

        """
        lock = self.lock_for(character_id)
        acquired = lock.acquire(blocking, timeout if blocking else -1)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()
