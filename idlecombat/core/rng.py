"""
Random sources for the combat core.

Every random draw of the core (crits, targets, spawn counts, levels, loot)
goes through an injected :class:`RandomSource`, so a fight can be replayed
bit-for-bit from a seed.
"""

from __future__ import annotations

import random
from typing import Protocol, Sequence, runtime_checkable

from typing_extensions import TypeVar

T = TypeVar("T")


@runtime_checkable
class RandomSource(Protocol):
    """The random operations used by the arena and the round resolver."""

    def next(self, low: int, high: int) -> int:
        """Uniform integer in the closed range [low, high]."""
        ...

    def next_float(self) -> float:
        """Uniform float in [0, 1)."""
        ...

    def choice(self, items: Sequence[T]) -> T:
        """Uniformly chosen element of a non-empty sequence."""
        ...

    def shuffle(self, items: list[T]) -> None:
        """Shuffles a list in place."""
        ...


class SeededRandom:
    """RandomSource backed by :class:`random.Random`."""

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self._rnd = random.Random(seed)

    def next(self, low: int, high: int) -> int:
        if low > high:
            raise ValueError(f"Empty range [{low}, {high}]")
        return self._rnd.randint(low, high)

    def next_float(self) -> float:
        return self._rnd.random()

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise ValueError("Cannot choose from an empty sequence")
        return items[self.next(0, len(items) - 1)]

    def shuffle(self, items: list[T]) -> None:
        self._rnd.shuffle(items)


def roll_chance(rng: RandomSource, chance: float) -> bool:
    """Return *True* with probability **chance** (0 <= chance <= 1)."""
    if chance <= 0.0:
        return False
    if chance >= 1.0:
        return True
    return rng.next_float() < chance


def roll_percent(rng: RandomSource, percent: float) -> bool:
    """Return *True* when a 1-100 roll lands at or below **percent**."""
    return rng.next(1, 100) <= percent


def weighted_key(rng: RandomSource, weights: dict[str, float]) -> str:
    """
    Picks a key of ``weights`` proportionally to its weight.

    Args:
        rng (RandomSource): The random source.
        weights (dict[str, float]): Non-negative weights by key.

    Returns:
        str: The chosen key. The first key when all weights are zero.

    """
    if not weights:
        raise ValueError("weights cannot be empty")
    total = sum(weights.values())
    keys = list(weights)
    if total <= 0:
        return keys[0]
    point = rng.next_float() * total
    cumulative = 0.0
    for key in keys:
        cumulative += weights[key]
        if point < cumulative:
            return key
    return keys[-1]
