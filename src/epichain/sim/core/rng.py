from __future__ import annotations

import math
import random
from typing import MutableSequence, Optional, Sequence, TypeVar

T = TypeVar("T")

Seed = int | str


class DeterministicRng:
    def __init__(self, seed: Seed):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> Seed:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_range(self, low: float, high: float) -> float:
        # One draw is consumed even for an empty range so streams stay aligned.
        r = self._random.random()
        if low == high:
            return low
        return low + (high - low) * r

    def next_int(self, low: int, high: int) -> int:
        """Uniform integer in [low, high)."""
        return low + int(self._random.random() * (high - low))

    def next_bool(self, probability: float = 0.5) -> bool:
        return self._random.random() < probability

    def next_gaussian(self, mean: float = 0.0, stddev: float = 1.0) -> float:
        u1 = 0.0
        while u1 == 0.0:
            u1 = self._random.random()
        u2 = self._random.random()
        z = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + stddev * z

    def sample_choice(self, items: Sequence[T]) -> Optional[T]:
        if not items:
            return None
        return items[int(self._random.random() * len(items))]

    def shuffle(self, items: MutableSequence[T]) -> None:
        for i in range(len(items) - 1, 0, -1):
            j = int(self._random.random() * (i + 1))
            items[i], items[j] = items[j], items[i]
