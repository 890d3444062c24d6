"""
Discrete distributions and the seeded random stream.
"""

from .distribution import DiscreteDistribution
from .random_stream import RandomStream

__all__ = [
    "DiscreteDistribution",
    "RandomStream"
]
