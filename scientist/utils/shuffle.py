"""Randomized submission ordering for experiment behaviors."""

import random
from typing import List, MutableSequence, Optional, Protocol, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    """Anything exposing ``randrange``; ``random.Random`` satisfies it."""

    def randrange(self, stop: int) -> int: ...


def fisher_yates_shuffle(
    items: MutableSequence[T], rng: Optional[RandomSource] = None
) -> MutableSequence[T]:
    """
    Shuffle ``items`` in place with the Fisher-Yates algorithm.

    Args:
        items: Sequence to shuffle (mutated)
        rng: Random source; a fresh ``random.Random`` when omitted

    Returns:
        The same sequence, for chaining
    """
    rng = rng or random.Random()
    for i in range(len(items) - 1, 0, -1):
        j = rng.randrange(i + 1)
        items[i], items[j] = items[j], items[i]
    return items


def shuffled(items, rng: Optional[RandomSource] = None) -> List[T]:
    """Return a shuffled copy of ``items``."""
    return list(fisher_yates_shuffle(list(items), rng))
