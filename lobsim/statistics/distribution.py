"""
Immutable discrete distribution over numeric keys.
Derived views (probability, cumulative weight) are computed once and cached.
"""
from sortedcontainers import SortedDict
from typing import Optional, Mapping, Iterable, Tuple, List
import logging

import numpy as np

logger = logging.getLogger(__name__)

class DiscreteDistribution:
    """
    Weights over sorted keys, e.g. volume per distance to the best opposite quote.

    Operations never mutate the instance; `scale` and `divide` return
    new distributions.
    """

    def __init__(self, data: Mapping[float, float]):
        if data is None:
            raise ValueError("Data cannot be None")

        self._data = SortedDict({float(k): float(v) for k, v in data.items()})
        self._keys = np.fromiter(self._data.keys(), dtype=float, count=len(self._data))
        self._weights = np.fromiter(self._data.values(), dtype=float, count=len(self._data))
        self._keys.setflags(write=False)
        self._weights.setflags(write=False)

        self.total_weight = float(self._weights.sum())

        self._probability: Optional[np.ndarray] = None
        self._cumulative: Optional[np.ndarray] = None

    @classmethod
    def from_samples(
        cls,
        keys: Iterable[float],
        weights: Optional[Iterable[float]] = None
    ) -> 'DiscreteDistribution':
        """Aggregate raw samples by key (unit weight if none given)"""
        keys = np.asarray(keys if isinstance(keys, np.ndarray) else list(keys), dtype=float)
        if weights is None:
            weights = np.ones_like(keys)
        else:
            weights = np.asarray(weights if isinstance(weights, np.ndarray) else list(weights), dtype=float)

        if keys.size == 0:
            return cls({})

        unique, inverse = np.unique(keys, return_inverse=True)
        totals = np.bincount(inverse, weights=weights, minlength=unique.size)
        return cls(dict(zip(unique.tolist(), totals.tolist())))

    # ========================================================================
    # VIEWS
    # ========================================================================

    @property
    def keys(self) -> np.ndarray:
        return self._keys

    @property
    def weights(self) -> np.ndarray:
        return self._weights

    def items(self) -> List[Tuple[float, float]]:
        return list(self._data.items())

    def weight(self, key: float) -> float:
        return self._data.get(float(key), 0.0)

    @property
    def probabilities(self) -> np.ndarray:
        if self._probability is None:
            if self.total_weight == 0:
                self._probability = np.zeros_like(self._weights)
            else:
                self._probability = self._weights / self.total_weight
            self._probability.setflags(write=False)
        return self._probability

    @property
    def cumulative_weights(self) -> np.ndarray:
        if self._cumulative is None:
            self._cumulative = np.cumsum(self._weights)
            self._cumulative.setflags(write=False)
        return self._cumulative

    def probability(self, key: float) -> float:
        """Weight of key relative to the total weight"""
        index = self._data.bisect_left(float(key))
        if index < len(self._keys) and self._keys[index] == float(key):
            return float(self.probabilities[index])
        return 0.0

    def cdf(self, key: float) -> float:
        """Cumulative weight of all keys <= key"""
        index = self._data.bisect_right(float(key))
        if index == 0:
            return 0.0
        return float(self.cumulative_weights[index - 1])

    def weight_between(self, lower: float, upper: float) -> float:
        """Total weight of keys within [lower, upper]"""
        return float(sum(self._data[k] for k in self._data.irange(lower, upper)))

    # ========================================================================
    # STATISTICS
    # ========================================================================

    def quantile(self, q: float) -> float:
        """Smallest key whose cumulative weight reaches q * total weight"""
        if not 0.0 <= q <= 1.0:
            raise ValueError(f"Quantile probability must be within [0, 1], got {q}")
        if not self._data:
            raise ValueError("The distribution is empty")

        if q == 0.0:
            return float(self._keys[0])
        if q == 1.0:
            return float(self._keys[-1])

        index = int(np.searchsorted(self.cumulative_weights, q * self.total_weight, side='left'))
        return float(self._keys[min(index, len(self._keys) - 1)])

    def moment(self, n: int) -> float:
        return float(np.sum(self._keys ** n * self.probabilities))

    @property
    def mean(self) -> float:
        return self.moment(1)

    @property
    def variance(self) -> float:
        mean = self.mean
        return self.moment(2) - mean * mean

    # ========================================================================
    # ALGEBRA
    # ========================================================================

    def scale(self, scale_key: float, scale_weight: float) -> 'DiscreteDistribution':
        """Multiply every key by scale_key and every weight by scale_weight"""
        scaled = {}
        for key, weight in self._data.items():
            new_key = key * scale_key
            scaled[new_key] = scaled.get(new_key, 0.0) + weight * scale_weight
        return DiscreteDistribution(scaled)

    def divide(self, other: 'DiscreteDistribution') -> 'DiscreteDistribution':
        """Elementwise weight ratio on keys present (with non-zero weight) in both"""
        data = {}
        for key, weight in self._data.items():
            denominator = other.weight(key)
            if denominator != 0:
                data[key] = weight / denominator
        return DiscreteDistribution(data)

    # ========================================================================
    # UTILITIES
    # ========================================================================

    def __len__(self):
        return len(self._data)

    def __bool__(self):
        return bool(self._data)

    def __repr__(self):
        return f"DiscreteDistribution(keys={len(self._data)}, total_weight={self.total_weight})"
