"""
Explicitly owned random stream.
Every simulation receives its own instance, nothing is module-global.
"""
import math
from typing import Optional, Mapping, TypeVar, List, Sequence

import numpy as np

T = TypeVar("T")

class RandomStream:
    """
    Seeded wrapper around numpy's Generator with the draws the
    order flow model needs.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._generator = np.random.default_rng(seed)

    def uniform(self) -> float:
        """Uniform draw on [0, 1)"""
        return float(self._generator.random())

    def integer(self, low: int, high: int) -> int:
        """Uniform integer on [low, high] (both inclusive)"""
        if high < low:
            raise ValueError(f"Empty integer range [{low}, {high}]")
        return int(self._generator.integers(low, high + 1))

    def exponential_time(self, rate: float) -> float:
        """Inter-arrival time of a Poisson process with the given rate"""
        if rate <= 0:
            raise ValueError(f"Rate must be positive, got {rate}")
        u = self.uniform()
        # F(x) = 1 - exp(-rate * x)
        return -math.log(1.0 - u) / rate

    def index_from_probabilities(self, probabilities: Sequence[float]) -> int:
        """
        Single draw by cumulative sum and compare.
        Outcomes with zero probability are never returned.
        """
        probabilities = np.asarray(probabilities, dtype=float)
        cumulative = np.cumsum(probabilities)
        r = 1.0 - self.uniform()  # (0, 1]
        index = int(np.searchsorted(cumulative, r, side='left'))
        if index >= len(probabilities):
            # rounding left the total slightly below r
            index = int(np.flatnonzero(probabilities > 0)[-1])
        return index

    def from_probabilities(self, probabilities: Mapping[T, float]) -> T:
        """Draw a key with the attached probability"""
        keys = list(probabilities.keys())
        return keys[self.index_from_probabilities(list(probabilities.values()))]

    def from_weights(self, weights: Mapping[T, float]) -> T:
        """Draw a key proportional to its (non-negative) weight"""
        keys = list(weights.keys())
        values = np.fromiter(weights.values(), dtype=float, count=len(keys))
        total = values.sum()
        if total <= 0:
            raise ValueError("Weights must have a positive total")
        return keys[self.index_from_probabilities(values / total)]

    def draw_many(self, weights: Mapping[T, float], size: int) -> List[T]:
        """Vectorised version of from_weights"""
        keys = list(weights.keys())
        values = np.fromiter(weights.values(), dtype=float, count=len(keys))
        cumulative = np.cumsum(values / values.sum())
        r = 1.0 - self._generator.random(size)
        indices = np.searchsorted(cumulative, r, side='left')
        np.minimum(indices, int(np.flatnonzero(values > 0)[-1]), out=indices)
        return [keys[i] for i in indices]
